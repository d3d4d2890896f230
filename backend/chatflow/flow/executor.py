"""
Flow Interpreter - Runs chatbot flows for WhatsApp contacts

Drives one Conversation Flow Instance per (tenant, session, contact) through
its flow definition: starts flows on trigger keywords, resumes them with the
contact's answers and continues them when DELAY timers fire.
"""
import base64
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from ..core.config import settings
from ..models.flow import (
    FlowNode, NodeType, AuthType,
    MessageNode, ImageNode, FileNode, InputNode, ConditionNode,
    DelayNode, WebhookNode, TransferNode, TicketNode, EndNode,
)
from ..models.instance import FlowInstance, FlowHistoryEntry, HistoryAction, instance_key
from ..services.adapters import (
    WebhookInvoker, WebhookResponse, MediaResolver, MediaRef, BusinessHoursOracle,
)
from ..services.business_hours import format_next_open
from ..services.flow_store import FlowStore, ConcurrencyConflictError
from ..services.locks import KeyedLock
from ..services.scheduler import DelayScheduler
from .context import TurnContext
from .evaluator import ConditionEvaluator
from .input_validators import validate_input, REQUIRED_MESSAGE
from .result import (
    NodeResult, Outcome, ExecutionResult,
    continue_result, wait_result, park_result, finish_result, failure_result,
)
from .templating import render, parse_custom_payload
from .validator import FlowValidator, FlowDefinitionError

logger = logging.getLogger(__name__)


# Default texts
DEFAULT_INPUT_PROMPT = "Por favor, responda:"
DEFAULT_CONDITION_PROMPT = "Escolha uma opção:"
DEFAULT_TRANSFER_MESSAGE = "Aguarde, vou transferir você para um atendente."
DEFAULT_TICKET_MESSAGE = "Ticket criado com sucesso! Em breve entraremos em contato."
DEFAULT_END_MESSAGE = "Conversa finalizada."
OUT_OF_HOURS_MESSAGE = (
    "Desculpe, nosso atendimento humano está fora do horário de funcionamento no momento."
)
BUSINESS_HOURS_UNAVAILABLE_MESSAGE = (
    "Não foi possível verificar nosso horário de atendimento agora. "
    "Por favor, envie uma nova mensagem em instantes."
)
MEDIA_UNAVAILABLE_MESSAGE = {
    NodeType.IMAGE: "Desculpe, não foi possível carregar a imagem.",
    NodeType.FILE: "Desculpe, não foi possível carregar o arquivo.",
}

DEFAULT_RESPONSE_VARIABLE = "webhook_response"

DelayedResultHook = Callable[[FlowInstance, ExecutionResult], Awaitable[None]]


class FlowInterpreter:
    """
    Flow interpreter for chatbot flows.

    Features:
    - One active instance per (tenant, session, contact)
    - Auto-advance through nodes that do not wait, bounded per turn
    - Input validation and condition branching
    - Webhook, media and business-hours adapters
    - DELAY continuations through a cancellable scheduler
    - Per-contact serialization plus optimistic versioned writes
    """

    def __init__(
        self,
        store: FlowStore,
        webhook_invoker: WebhookInvoker,
        media_resolver: MediaResolver,
        business_hours: BusinessHoursOracle,
        scheduler: Optional[DelayScheduler] = None,
        locks: Optional[KeyedLock] = None,
        max_steps: Optional[int] = None,
        on_delayed_result: Optional[DelayedResultHook] = None,
        separator: Optional[str] = None
    ):
        """
        Initialize the FlowInterpreter.

        Args:
            store: Persistence for definitions, instances and history
            webhook_invoker: Adapter for WEBHOOK nodes
            media_resolver: Adapter for IMAGE / FILE nodes
            business_hours: Adapter for TRANSFER nodes
            scheduler: Timer service for DELAY nodes
            locks: Per-contact locks
            max_steps: Maximum nodes executed in a single turn
            on_delayed_result: Receives the output of DELAY continuations
            separator: Joins the messages of one turn
        """
        self.store = store
        self.webhook_invoker = webhook_invoker
        self.media_resolver = media_resolver
        self.business_hours = business_hours
        self.scheduler = scheduler or DelayScheduler()
        self.locks = locks or KeyedLock()
        self.max_steps = max_steps or settings.MAX_AUTO_ADVANCE_STEPS
        self.on_delayed_result = on_delayed_result
        self.separator = settings.RESPONSE_SEPARATOR if separator is None else separator
        self.evaluator = ConditionEvaluator()

        # Handler registries
        self._handlers: Dict[NodeType, Callable] = self._register_handlers()
        self._resume_handlers: Dict[NodeType, Callable] = {
            NodeType.INPUT: self._handle_input,
            NodeType.CONDITION: self._handle_condition,
            NodeType.TRANSFER: self._handle_transfer,
        }

    def _register_handlers(self) -> Dict[NodeType, Callable]:
        """Register all node type handlers"""
        return {
            NodeType.START: self._handle_start,
            NodeType.MESSAGE: self._handle_message,
            NodeType.IMAGE: self._handle_media,
            NodeType.FILE: self._handle_media,
            NodeType.INPUT: self._handle_input,
            NodeType.CONDITION: self._handle_condition,
            NodeType.DELAY: self._handle_delay,
            NodeType.WEBHOOK: self._handle_webhook,
            NodeType.TRANSFER: self._handle_transfer,
            NodeType.TICKET: self._handle_ticket,
            NodeType.END: self._handle_end,
        }

    # ==================== Public operations ====================

    async def start_flow(
        self,
        tenant_id: str,
        channel_session_id: str,
        contact_id: str,
        flow_id: str,
        trigger_text: str = "",
        contact_name: Optional[str] = None,
        contact_phone: Optional[str] = None
    ) -> ExecutionResult:
        """
        Start a flow for a contact, replacing any active one.

        Never raises; a missing, disabled or invalid definition yields a
        failed result.
        """
        async with self.locks.acquire(instance_key(tenant_id, channel_session_id, contact_id)):
            return await self._start_flow(
                tenant_id, channel_session_id, contact_id, flow_id,
                trigger_text, contact_name, contact_phone
            )

    async def resume_flow(
        self,
        tenant_id: str,
        channel_session_id: str,
        contact_id: str,
        input_text: str
    ) -> ExecutionResult:
        """
        Feed the contact's message to the active instance.

        Returns a failed result without touching state when no instance is
        active or the active one is not waiting for input.
        """
        async with self.locks.acquire(instance_key(tenant_id, channel_session_id, contact_id)):
            return await self._resume_flow(tenant_id, channel_session_id, contact_id, input_text)

    async def should_start_flow(self, tenant_id: str, message_text: str) -> Optional[str]:
        """ID of the first enabled flow whose trigger keyword is in the message"""
        if not message_text:
            return None

        for flow in await self.store.list_enabled_flows(tenant_id):
            if flow.matches_trigger(message_text):
                logger.info(f"Message triggers flow {flow.id} for tenant {tenant_id}")
                return flow.id
        return None

    async def process_message(
        self,
        tenant_id: str,
        channel_session_id: str,
        contact_id: str,
        text: str,
        contact_name: Optional[str] = None,
        contact_phone: Optional[str] = None
    ) -> ExecutionResult:
        """
        Handle an inbound message end to end.

        Resumes a waiting flow; when that yields nothing to say, a message
        containing a trigger keyword starts a new flow.
        """
        async with self.locks.acquire(instance_key(tenant_id, channel_session_id, contact_id)):
            resumed: Optional[ExecutionResult] = None

            active = await self.store.get_active_instance(tenant_id, channel_session_id, contact_id)
            if active and active.awaiting_input and text:
                resumed = await self._resume_flow(tenant_id, channel_session_id, contact_id, text)
                if resumed.success and resumed.has_response:
                    return resumed

            flow_id = await self.should_start_flow(tenant_id, text)
            if flow_id:
                started = await self._start_flow(
                    tenant_id, channel_session_id, contact_id, flow_id,
                    text, contact_name, contact_phone
                )
                if started.success or resumed is None:
                    return started

            if resumed is not None:
                return resumed
            return failure_result("No active flow and no trigger matched")

    async def cancel_flow(self, tenant_id: str, channel_session_id: str, contact_id: str) -> bool:
        """Deactivate the contact's active flow (e.g. an agent closed the ticket)"""
        async with self.locks.acquire(instance_key(tenant_id, channel_session_id, contact_id)):
            deactivated = await self.store.deactivate_active_instances(
                tenant_id, channel_session_id, contact_id
            )
            for instance_id in deactivated:
                self.scheduler.cancel(instance_id)

        if deactivated:
            logger.info(f"Cancelled flow instances {deactivated} for contact {contact_id}")
        return bool(deactivated)

    async def get_active_instance(
        self,
        tenant_id: str,
        channel_session_id: str,
        contact_id: str
    ) -> Optional[FlowInstance]:
        """Active instance of the contact, if any"""
        return await self.store.get_active_instance(tenant_id, channel_session_id, contact_id)

    # ==================== Turn entry points ====================

    async def _start_flow(
        self,
        tenant_id: str,
        channel_session_id: str,
        contact_id: str,
        flow_id: str,
        trigger_text: str,
        contact_name: Optional[str],
        contact_phone: Optional[str]
    ) -> ExecutionResult:
        definition = await self.store.get_flow(tenant_id, flow_id)
        if definition is None or not definition.enabled:
            logger.warning(f"Flow {flow_id} not found or disabled for tenant {tenant_id}")
            return failure_result(f"Flow {flow_id} not found or disabled")

        try:
            FlowValidator.ensure_valid(definition)
        except FlowDefinitionError as e:
            logger.error(f"Refusing to start flow {flow_id}: {e}")
            return failure_result(str(e))

        start_node = definition.start_node()

        variables: Dict[str, Any] = {
            "triggerText": trigger_text or "",
            "startedAt": datetime.now().isoformat(),
        }
        if contact_name:
            variables["userName"] = contact_name
        if contact_phone:
            variables["phoneNumber"] = contact_phone

        # Created, and the previous instance replaced, only when the first turn commits
        instance = FlowInstance(
            tenant_id=tenant_id,
            channel_session_id=channel_session_id,
            contact_id=contact_id,
            flow_id=flow_id,
            current_node_id=start_node.id,
            variables=variables,
        )
        logger.info(f"Starting flow {flow_id} for contact {contact_id} (instance {instance.id})")

        ctx = TurnContext(
            instance=instance,
            definition=definition,
            expected_version=instance.version,
            is_new=True
        )
        ctx.record(start_node, HistoryAction.ENTERED, input=trigger_text)
        return await self._run_turn(ctx, start_node, resume=False)

    async def _resume_flow(
        self,
        tenant_id: str,
        channel_session_id: str,
        contact_id: str,
        input_text: str
    ) -> ExecutionResult:
        instance = await self.store.get_active_instance(tenant_id, channel_session_id, contact_id)
        if instance is None:
            return failure_result("No active flow")
        if not instance.awaiting_input:
            return failure_result("Flow is not awaiting input", instance.id, instance.current_node_id)

        definition = await self.store.get_flow(tenant_id, instance.flow_id)
        node = definition.get_node(instance.current_node_id) if definition else None
        if node is None:
            logger.error(
                f"Instance {instance.id} points at missing flow/node "
                f"{instance.flow_id}/{instance.current_node_id}"
            )
            return failure_result("Flow definition unavailable", instance.id, instance.current_node_id)

        ctx = TurnContext(
            instance=instance,
            definition=definition,
            expected_version=instance.version,
            pending_input=input_text
        )
        ctx.variables["lastUserMessage"] = input_text
        ctx.variables["lastMessageAt"] = datetime.now().isoformat()
        ctx.record(node, HistoryAction.USER_INPUT, input=input_text)

        # A turn cut short by the step bound continues with the node it did not run
        enter = instance.enter_on_resume
        ctx.instance.awaiting_input = False
        ctx.instance.enter_on_resume = False
        if enter:
            ctx.record(node, HistoryAction.ENTERED)

        return await self._run_turn(ctx, node, resume=not enter)

    async def _continue_after_delay(
        self,
        tenant_id: str,
        channel_session_id: str,
        contact_id: str,
        instance_id: str,
        flow_id: str,
        node_id: str
    ) -> Optional[ExecutionResult]:
        """Timer callback of a DELAY node"""
        async with self.locks.acquire(instance_key(tenant_id, channel_session_id, contact_id)):
            instance = await self.store.get_instance(instance_id)
            if (
                instance is None
                or not instance.is_active
                or instance.flow_id != flow_id
                or instance.current_node_id != node_id
                or instance.awaiting_input
            ):
                logger.info(f"Skipping stale delay continuation for instance {instance_id}")
                return None

            definition = await self.store.get_flow(tenant_id, flow_id)
            node = definition.get_node(node_id) if definition else None
            if node is None:
                logger.error(f"Delay node {node_id} of flow {flow_id} no longer exists")
                return None

            ctx = TurnContext(instance=instance, definition=definition, expected_version=instance.version)
            ctx.record(node, HistoryAction.TIMEOUT)
            result = await self._run_turn(ctx, node, resume=True)

        if self.on_delayed_result:
            await self.on_delayed_result(instance, result)
        return result

    # ==================== Turn execution ====================

    async def _run_turn(self, ctx: TurnContext, node: FlowNode, resume: bool) -> ExecutionResult:
        """Run nodes from ``node`` until the flow waits, parks or finishes, then commit"""
        try:
            await self._advance(ctx, node, resume)
        except Exception as e:
            current_id = ctx.instance.current_node_id
            logger.exception(f"Error executing node {current_id} of instance {ctx.instance.id}: {e}")
            failed_node = ctx.definition.get_node(current_id) or node
            await self._write_history([FlowHistoryEntry(
                instance_id=ctx.instance.id,
                node_id=failed_node.id,
                node_type=str(getattr(failed_node.type, "value", failed_node.type)),
                action=HistoryAction.ERROR,
                input=ctx.variables.get("lastUserMessage") if resume else None,
                output=str(e),
            )])
            return failure_result(f"Internal error at node {current_id}", ctx.instance.id, current_id)

        return await self._commit(ctx)

    async def _advance(self, ctx: TurnContext, node: FlowNode, resume: bool) -> None:
        current = node
        resuming = resume

        while True:
            ctx.steps += 1
            ctx.instance.current_node_id = current.id

            if resuming:
                handler = self._resume_handlers.get(current.type, self._resume_passthrough)
                resuming = False
            else:
                handler = self._handlers.get(current.type, self._handle_unknown)

            result: NodeResult = await handler(ctx, current)

            if handler != self._resume_passthrough:
                ctx.record(current, HistoryAction.EXECUTED, output=result.output)
            if not result.forward_input:
                ctx.pending_input = None
            ctx.emit(result.output, result.media)

            if result.outcome == Outcome.WAIT:
                ctx.instance.awaiting_input = True
                return

            if result.outcome == Outcome.PARK:
                ctx.instance.awaiting_input = False
                return

            if result.outcome == Outcome.FINISH:
                ctx.instance.is_active = False
                ctx.instance.awaiting_input = False
                return

            next_node = ctx.definition.get_node(result.next_node_id)
            if next_node is None:
                logger.warning(f"Node {current.id} points at missing node {result.next_node_id}; finishing flow")
                ctx.instance.is_active = False
                ctx.instance.awaiting_input = False
                return

            if ctx.steps >= self.max_steps:
                logger.warning(
                    f"Instance {ctx.instance.id} executed {ctx.steps} nodes in one turn; "
                    f"pausing before node {next_node.id}"
                )
                ctx.instance.current_node_id = next_node.id
                ctx.instance.awaiting_input = True
                ctx.instance.enter_on_resume = True
                return

            ctx.record(next_node, HistoryAction.ENTERED)
            current = next_node

    async def _commit(self, ctx: TurnContext) -> ExecutionResult:
        """Persist the turn with an optimistic version check"""
        try:
            if ctx.is_new:
                saved = await self._replace_active_instance(ctx.instance)
            else:
                saved = await self.store.save_instance(ctx.instance, ctx.expected_version)
        except ConcurrencyConflictError as e:
            logger.warning(f"Discarding turn of instance {ctx.instance.id}: {e}")
            return failure_result("Concurrent update", ctx.instance.id, ctx.instance.current_node_id)

        await self._write_history(ctx.history)

        if not saved.is_active:
            self.scheduler.cancel(saved.id)
        elif ctx.delay_seconds is not None:
            self._schedule_delay(saved, saved.current_node_id, ctx.delay_seconds)

        result = ExecutionResult(
            success=True,
            response_text=ctx.response_text(self.separator),
            media_refs=list(ctx.media),
            awaiting_input=saved.awaiting_input,
            instance_id=saved.id,
            node_id=saved.current_node_id,
            finished=not saved.is_active,
        )

        logger.info(
            f"Turn of instance {saved.id} done in {ctx.elapsed_ms()}ms - "
            f"{ctx.steps} nodes, node: {saved.current_node_id}, "
            f"awaiting: {saved.awaiting_input}, active: {saved.is_active}"
        )
        return result

    async def _replace_active_instance(self, instance: FlowInstance) -> FlowInstance:
        deactivated = await self.store.deactivate_active_instances(
            instance.tenant_id, instance.channel_session_id, instance.contact_id
        )
        for instance_id in deactivated:
            self.scheduler.cancel(instance_id)
        if deactivated:
            logger.info(f"Replaced active flow instances {deactivated} for contact {instance.contact_id}")

        return await self.store.create_instance(instance)

    async def _write_history(self, entries: List[FlowHistoryEntry]) -> None:
        for entry in entries:
            try:
                await self.store.append_history(entry)
            except Exception as e:
                logger.exception(f"Error recording history for instance {entry.instance_id}: {e}")

    def _schedule_delay(self, instance: FlowInstance, node_id: str, seconds: float) -> None:
        async def continuation() -> None:
            await self._continue_after_delay(
                instance.tenant_id,
                instance.channel_session_id,
                instance.contact_id,
                instance.id,
                instance.flow_id,
                node_id
            )

        self.scheduler.schedule(instance.id, seconds, continuation)

    # ==================== Helpers ====================

    def _next_or_finish(
        self,
        ctx: TurnContext,
        node: FlowNode,
        output: Optional[str] = None,
        media: Optional[MediaRef] = None
    ) -> NodeResult:
        next_node = ctx.definition.successor(node)
        if next_node is None:
            return finish_result(output, media)
        return continue_result(next_node.id, output, media)

    def _after_output(
        self,
        ctx: TurnContext,
        node: FlowNode,
        output: Optional[str],
        media: Optional[MediaRef],
        await_input: bool
    ) -> NodeResult:
        """Message-like nodes: end, wait on themselves, or move on"""
        next_node = ctx.definition.successor(node)
        if next_node is None:
            return finish_result(output, media)
        if await_input:
            return wait_result(output, media)
        return continue_result(next_node.id, output, media)

    # ==================== Node handlers ====================

    async def _handle_start(self, ctx: TurnContext, node: FlowNode) -> NodeResult:
        """Handle START node"""
        return self._next_or_finish(ctx, node)

    async def _handle_message(self, ctx: TurnContext, node: MessageNode) -> NodeResult:
        """Handle MESSAGE node"""
        config = node.config
        text = render(config.message or config.label, ctx.variables)
        return self._after_output(ctx, node, text, None, config.await_input)

    async def _handle_media(self, ctx: TurnContext, node: Union[ImageNode, FileNode]) -> NodeResult:
        """Handle IMAGE and FILE nodes"""
        config = node.config
        caption = render(config.message, ctx.variables)
        media = await self._resolve_media(ctx, node)

        if media is None:
            return self._after_output(
                ctx, node, MEDIA_UNAVAILABLE_MESSAGE[node.type], None, config.await_input
            )
        return self._after_output(ctx, node, caption, media, config.await_input)

    async def _resolve_media(self, ctx: TurnContext, node: Union[ImageNode, FileNode]) -> Optional[MediaRef]:
        config = node.config
        default_kind = "image" if node.type == NodeType.IMAGE else "document"

        if config.media_id:
            try:
                media = await self.media_resolver.resolve(config.media_id, ctx.instance.tenant_id)
            except Exception as e:
                logger.exception(f"Error resolving media {config.media_id}: {e}")
                return None
            if media is None:
                logger.warning(f"Media {config.media_id} of node {node.id} not found")
                return None
            if config.file_name and not media.file_name:
                media.file_name = config.file_name
            return media

        if config.media_url:
            return MediaRef(
                url=render(config.media_url, ctx.variables),
                kind=default_kind,
                file_name=config.file_name,
            )

        logger.warning(f"Media node {node.id} has neither mediaId nor mediaUrl")
        return None

    async def _handle_input(self, ctx: TurnContext, node: InputNode) -> NodeResult:
        """Handle INPUT node - capture and validate an answer"""
        config = node.config
        answer = ctx.take_input()

        if answer is None:
            prompt = config.message or config.label or config.placeholder or DEFAULT_INPUT_PROMPT
            return wait_result(render(prompt, ctx.variables))

        if not answer.strip():
            if config.required:
                return wait_result(REQUIRED_MESSAGE)
            value = ""
        else:
            validation = validate_input(config.validation, answer)
            if not validation.is_valid:
                logger.info(f"Input node {node.id} rejected answer as invalid {config.validation}")
                return wait_result(
                    render(config.error_message, ctx.variables) or validation.error_message
                )
            value = validation.cleaned_value

        if config.variable_name:
            ctx.variables[config.variable_name] = value

        return self._next_or_finish(ctx, node)

    async def _handle_condition(self, ctx: TurnContext, node: ConditionNode) -> NodeResult:
        """Handle CONDITION node - first matching rule wins"""
        config = node.config
        answer = ctx.take_input()

        if answer is None:
            return wait_result(render(config.message or DEFAULT_CONDITION_PROMPT, ctx.variables))

        rule = self.evaluator.select_branch(config.conditions, answer, ctx.variables)
        if rule is not None:
            label = rule.label or rule.id
            ctx.record(
                node,
                HistoryAction.CONDITION_MET,
                input=answer,
                output=f'Condição "{label}" atendida',
                condition_label=label
            )

            target = ctx.definition.get_node(rule.target_node_id)
            if target is None:
                edge = ctx.definition.edge_for_label(node.id, rule.label)
                target = ctx.definition.get_node(edge.target_node_id) if edge else None
            if target is not None:
                return continue_result(target.id)

            logger.warning(f"Condition '{label}' of node {node.id} has no target; using default edge")

        edge = ctx.definition.default_edge(node.id)
        if edge and ctx.definition.get_node(edge.target_node_id):
            return continue_result(edge.target_node_id)

        return finish_result()

    async def _handle_delay(self, ctx: TurnContext, node: DelayNode) -> NodeResult:
        """Handle DELAY node - park until the timer fires"""
        seconds = node.config.delay_seconds
        if seconds <= 0 or ctx.definition.successor(node) is None:
            return self._next_or_finish(ctx, node)

        ctx.delay_seconds = seconds
        logger.debug(f"Delay node {node.id}: continuing in {seconds}s")
        return park_result()

    async def _handle_webhook(self, ctx: TurnContext, node: WebhookNode) -> NodeResult:
        """Handle WEBHOOK node - always advances"""
        config = node.config
        url = render(config.webhook_url, ctx.variables)
        method = (config.webhook_method or "POST").upper()
        headers = self._build_webhook_headers(ctx, node)
        body = self._build_webhook_payload(ctx, node)

        try:
            response = await self.webhook_invoker.invoke(
                url,
                method,
                headers,
                body,
                config.timeout_seconds or settings.WEBHOOK_TIMEOUT_SECONDS
            )
        except Exception as e:
            logger.exception(f"Webhook invoker error at node {node.id}: {e}")
            response = WebhookResponse(success=False, error=str(e))

        if response.success:
            logger.info(f"Webhook node {node.id}: {method} {url} -> {response.status}")
            if config.wait_for_response:
                ctx.variables[config.response_variable or DEFAULT_RESPONSE_VARIABLE] = response.body
        else:
            logger.warning(f"Webhook node {node.id}: {method} {url} failed: {response.error}")

        return self._next_or_finish(ctx, node)

    def _build_webhook_headers(self, ctx: TurnContext, node: WebhookNode) -> Dict[str, str]:
        config = node.config
        headers = {
            "Content-Type": "application/json",
            "User-Agent": settings.WEBHOOK_USER_AGENT,
        }
        for key, value in config.headers.items():
            headers[key] = render(value, ctx.variables)

        if not config.use_authentication:
            return headers

        try:
            auth_type: Optional[AuthType] = AuthType((config.auth_type or "").lower())
        except ValueError:
            auth_type = None

        if auth_type == AuthType.BEARER and config.auth_token:
            headers["Authorization"] = f"Bearer {config.auth_token}"
        elif auth_type == AuthType.API_KEY and config.api_key_header and config.api_key_value:
            headers[config.api_key_header] = config.api_key_value
        elif auth_type == AuthType.BASIC and config.basic_username and config.basic_password:
            credentials = f"{config.basic_username}:{config.basic_password}".encode("utf-8")
            headers["Authorization"] = f"Basic {base64.b64encode(credentials).decode('ascii')}"
        else:
            logger.warning(f"Webhook node {node.id}: incomplete '{config.auth_type}' authentication")

        return headers

    def _build_webhook_payload(self, ctx: TurnContext, node: WebhookNode) -> Dict[str, Any]:
        config = node.config
        instance = ctx.instance
        payload: Dict[str, Any] = {}

        if config.include_flow_variables:
            payload["variables"] = dict(ctx.variables)

        if config.include_metadata:
            payload["metadata"] = {
                "company_id": instance.tenant_id,
                "contact_id": instance.contact_id,
                "session_id": instance.channel_session_id,
                "flow_id": instance.flow_id,
                "timestamp": datetime.now().isoformat(),
            }

        custom = parse_custom_payload(config.custom_payload, ctx.variables)
        if isinstance(custom, dict):
            payload.update(custom)
        elif custom is not None:
            logger.warning(f"Webhook node {node.id}: custom payload is not a JSON object; ignored")

        return payload

    async def _handle_transfer(self, ctx: TurnContext, node: TransferNode) -> NodeResult:
        """Handle TRANSFER node - hand off, or wait when the business is closed"""
        config = node.config
        ctx.take_input()
        tenant_id = ctx.instance.tenant_id

        if config.check_business_hours:
            try:
                is_open = await self.business_hours.is_open_now(tenant_id)
            except Exception as e:
                logger.exception(f"Business hours lookup failed for tenant {tenant_id}: {e}")
                return wait_result(BUSINESS_HOURS_UNAVAILABLE_MESSAGE)

            if not is_open:
                message = render(config.out_of_hours_message, ctx.variables) or OUT_OF_HOURS_MESSAGE
                try:
                    next_open = await self.business_hours.next_open_time(tenant_id)
                except Exception as e:
                    logger.warning(f"Next opening lookup failed for tenant {tenant_id}: {e}")
                    next_open = None
                if next_open:
                    message += f"\n\nPróximo horário de atendimento: {format_next_open(next_open)}"
                return wait_result(message)

        return finish_result(render(config.transfer_message, ctx.variables) or DEFAULT_TRANSFER_MESSAGE)

    async def _handle_ticket(self, ctx: TurnContext, node: TicketNode) -> NodeResult:
        """Handle TICKET node"""
        return finish_result(render(node.config.message, ctx.variables) or DEFAULT_TICKET_MESSAGE)

    async def _handle_end(self, ctx: TurnContext, node: EndNode) -> NodeResult:
        """Handle END node"""
        return finish_result(render(node.config.message, ctx.variables) or DEFAULT_END_MESSAGE)

    async def _handle_unknown(self, ctx: TurnContext, node: FlowNode) -> NodeResult:
        """Unknown node types pass through"""
        logger.warning(f"Unknown node type '{node.type}' at node {node.id}; passing through")
        return self._next_or_finish(ctx, node)

    async def _resume_passthrough(self, ctx: TurnContext, node: FlowNode) -> NodeResult:
        """Resuming a node without its own resume step moves to its successor"""
        next_node = ctx.definition.successor(node)
        if next_node is None:
            return finish_result()
        return NodeResult(
            outcome=Outcome.CONTINUE,
            next_node_id=next_node.id,
            forward_input=True
        )
