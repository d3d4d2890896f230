"""
Webhook routes - inbound WhatsApp messages
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel, AliasChoices, Field

from ...flow.executor import FlowInterpreter
from ..dependencies import get_interpreter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhook", tags=["webhook"])


class InboundMessage(BaseModel):
    """Text message received on a channel session"""

    tenant_id: str = Field(validation_alias=AliasChoices("tenant_id", "company_id"))
    channel_session_id: str = Field(validation_alias=AliasChoices("channel_session_id", "session_id"))
    contact_id: str
    text: str = ""
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None


@router.post("/messages")
async def receive_message(
    message: InboundMessage,
    interpreter: FlowInterpreter = Depends(get_interpreter)
):
    """Run the contact's flow for an inbound message and return what to send"""
    logger.info(
        f"Message from contact {message.contact_id} (tenant {message.tenant_id}): "
        f"{message.text[:50]}"
    )

    result = await interpreter.process_message(
        tenant_id=message.tenant_id,
        channel_session_id=message.channel_session_id,
        contact_id=message.contact_id,
        text=message.text,
        contact_name=message.contact_name,
        contact_phone=message.contact_phone
    )

    if not result.success:
        logger.debug(f"No flow response for contact {message.contact_id}: {result.error}")

    return result.to_dict()
