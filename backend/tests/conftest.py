"""
Pytest configuration and shared fixtures for ChatFlow tests.
"""
import pytest
from typing import Any, Dict
from datetime import datetime
from unittest.mock import AsyncMock

from chatflow.flow.executor import FlowInterpreter
from chatflow.models.flow import FlowDefinition
from chatflow.services.adapters import WebhookResponse, MediaRef
from chatflow.services.flow_store import InMemoryFlowStore

from builders import node, edge, flow


@pytest.fixture
def email_flow_data() -> Dict[str, Any]:
    """start -> message("Hi") -> input(email) -> end"""
    return flow(
        "email-flow",
        [
            node("start", "start"),
            node("hi", "message", message="Hi"),
            node("ask_email", "input", message="Qual seu e-mail?", variableName="email",
                 validation="email", required=True),
            node("end", "end"),
        ],
        [
            edge("start", "hi"),
            edge("hi", "ask_email"),
            edge("ask_email", "end"),
        ],
        triggers=["oi", "cadastro"],
    )


@pytest.fixture
def menu_flow_data() -> Dict[str, Any]:
    """start -> message -> condition(1 -> A, default -> D)"""
    return flow(
        "menu-flow",
        [
            node("start", "start"),
            node("menu", "message", message="Digite 1 para vendas"),
            node("choice", "condition", conditions=[
                {"id": "c1", "field": "message", "operator": "equals", "value": "1", "label": "A"},
            ]),
            node("node_a", "end", message="Vendas"),
            node("node_d", "end", message="Outros assuntos"),
        ],
        [
            edge("start", "menu"),
            edge("menu", "choice"),
            edge("choice", "node_a", "A"),
            edge("choice", "node_d"),
        ],
        triggers=["menu"],
    )


@pytest.fixture
def transfer_flow_data() -> Dict[str, Any]:
    """start -> message -> transfer"""
    return flow(
        "transfer-flow",
        [
            node("start", "start"),
            node("welcome", "message", message="Olá! Quer falar com um atendente?"),
            node("handoff", "transfer", transferMessage="Transferindo para um atendente...",
                 outOfHoursMessage="Estamos fechados."),
        ],
        [
            edge("start", "welcome"),
            edge("welcome", "handoff"),
        ],
        triggers=["atendente"],
    )


@pytest.fixture
def webhook_flow_data() -> Dict[str, Any]:
    """start -> input(name) -> webhook -> message"""
    return flow(
        "webhook-flow",
        [
            node("start", "start"),
            node("ask_name", "input", message="Qual seu nome?", variableName="nome"),
            node("hook", "webhook", webhookUrl="https://crm.example.com/leads/{{nome}}",
                 includeFlowVariables=True, includeMetadata=True,
                 customPayload='{"lead": "{{nome}}", "origem": "whatsapp"}',
                 waitForResponse=True, responseVariable="crm"),
            node("thanks", "message", message="Obrigado, {{nome}}!", awaitInput=False),
            node("end", "end", message="Até logo."),
        ],
        [
            edge("start", "ask_name"),
            edge("ask_name", "hook"),
            edge("hook", "thanks"),
            edge("thanks", "end"),
        ],
    )


@pytest.fixture
def delay_flow_data() -> Dict[str, Any]:
    """start -> message(no wait) -> delay(1s) -> message(no wait) -> end"""
    return flow(
        "delay-flow",
        [
            node("start", "start"),
            node("before", "message", message="Um momento...", awaitInput=False),
            node("pause", "delay", delay=1, delayUnit="seconds"),
            node("after", "message", message="Pronto!", awaitInput=False),
            node("end", "end", message="Fim."),
        ],
        [
            edge("start", "before"),
            edge("before", "pause"),
            edge("pause", "after"),
            edge("after", "end"),
        ],
    )


@pytest.fixture
def media_flow_data() -> Dict[str, Any]:
    """start -> image(mediaId) -> file(mediaUrl) -> end"""
    return flow(
        "media-flow",
        [
            node("start", "start"),
            node("photo", "image", mediaId="media-1", message="Nosso catálogo", awaitInput=False),
            node("doc", "file", mediaUrl="https://cdn.example.com/tabela.pdf",
                 fileName="tabela.pdf", awaitInput=False),
            node("end", "end"),
        ],
        [
            edge("start", "photo"),
            edge("photo", "doc"),
            edge("doc", "end"),
        ],
    )


@pytest.fixture
def webhook_invoker():
    """Webhook invoker that answers 200 with a small JSON body"""
    invoker = AsyncMock()
    invoker.invoke.return_value = WebhookResponse(success=True, status=200, body={"id": 42})
    return invoker


@pytest.fixture
def media_resolver():
    resolver = AsyncMock()
    resolver.resolve.return_value = MediaRef(
        url="https://storage.example.com/catalogo.jpg",
        kind="image",
        file_name="catalogo.jpg"
    )
    return resolver


@pytest.fixture
def business_hours():
    """Business-hours oracle that is open"""
    oracle = AsyncMock()
    oracle.is_open_now.return_value = True
    oracle.next_open_time.return_value = datetime(2025, 10, 20, 8, 0)
    return oracle


@pytest.fixture
def store(email_flow_data, menu_flow_data, transfer_flow_data,
          webhook_flow_data, delay_flow_data, media_flow_data) -> InMemoryFlowStore:
    """In-memory store holding every sample flow"""
    return InMemoryFlowStore([
        FlowDefinition.model_validate(data)
        for data in (
            email_flow_data, menu_flow_data, transfer_flow_data,
            webhook_flow_data, delay_flow_data, media_flow_data,
        )
    ])


@pytest.fixture
async def interpreter(store, webhook_invoker, media_resolver, business_hours):
    """FlowInterpreter wired to the in-memory store and mocked adapters"""
    interpreter = FlowInterpreter(
        store=store,
        webhook_invoker=webhook_invoker,
        media_resolver=media_resolver,
        business_hours=business_hours
    )
    yield interpreter
    await interpreter.scheduler.shutdown()
