"""
API dependencies - the shared flow interpreter
"""
import logging
from functools import lru_cache

from ..flow.executor import FlowInterpreter
from ..flow.result import ExecutionResult
from ..models.instance import FlowInstance
from ..services.business_hours import BusinessHoursService
from ..services.database import SupabaseFlowStore
from ..services.media import SupabaseMediaResolver
from ..services.webhook import HttpxWebhookInvoker

logger = logging.getLogger(__name__)


async def log_delayed_result(instance: FlowInstance, result: ExecutionResult) -> None:
    """Delivery hook for DELAY continuations; the messaging layer polls the history"""
    if result.has_response:
        logger.info(
            f"[DELAY] Instance {instance.id} produced a delayed response for "
            f"contact {instance.contact_id}: {(result.response_text or '')[:50]}"
        )


@lru_cache()
def get_interpreter() -> FlowInterpreter:
    """Interpreter wired to Supabase, httpx and the business-hours tables"""
    return FlowInterpreter(
        store=SupabaseFlowStore(),
        webhook_invoker=HttpxWebhookInvoker(),
        media_resolver=SupabaseMediaResolver(),
        business_hours=BusinessHoursService(),
        on_delayed_result=log_delayed_result
    )
