"""
Unit tests for the flow stores.
"""
import pytest
from unittest.mock import MagicMock

from chatflow.models.flow import FlowDefinition
from chatflow.models.instance import FlowInstance, FlowHistoryEntry, HistoryAction
from chatflow.services.database import SupabaseFlowStore
from chatflow.services.flow_store import InMemoryFlowStore, ConcurrencyConflictError

from builders import TENANT, SESSION, CONTACT


def new_instance(**overrides) -> FlowInstance:
    data = {
        "tenant_id": TENANT,
        "channel_session_id": SESSION,
        "contact_id": CONTACT,
        "flow_id": "email-flow",
        "current_node_id": "start",
    }
    data.update(overrides)
    return FlowInstance(**data)


class TestInMemoryFlowStore:
    """Tests for the dict-backed store."""

    async def test_create_sets_version(self):
        store = InMemoryFlowStore()
        created = await store.create_instance(new_instance())
        assert created.version == 1
        assert (await store.get_active_instance(TENANT, SESSION, CONTACT)).id == created.id

    async def test_second_active_instance_rejected(self):
        store = InMemoryFlowStore()
        await store.create_instance(new_instance())
        with pytest.raises(ConcurrencyConflictError):
            await store.create_instance(new_instance())

    async def test_save_checks_version(self):
        store = InMemoryFlowStore()
        created = await store.create_instance(new_instance())

        created.current_node_id = "hi"
        saved = await store.save_instance(created, expected_version=1)
        assert saved.version == 2

        with pytest.raises(ConcurrencyConflictError) as exc_info:
            await store.save_instance(created, expected_version=1)
        assert exc_info.value.actual_version == 2

    async def test_returns_copies(self):
        store = InMemoryFlowStore()
        created = await store.create_instance(new_instance())
        created.variables["x"] = 1
        assert (await store.get_instance(created.id)).variables == {}

    async def test_deactivate(self):
        store = InMemoryFlowStore()
        created = await store.create_instance(new_instance())

        assert await store.deactivate_active_instances(TENANT, SESSION, CONTACT) == [created.id]
        assert await store.get_active_instance(TENANT, SESSION, CONTACT) is None
        assert await store.deactivate_active_instances(TENANT, SESSION, CONTACT) == []

    async def test_flows_are_scoped_by_tenant(self, email_flow_data):
        store = InMemoryFlowStore([FlowDefinition.model_validate(email_flow_data)])
        assert await store.get_flow(TENANT, "email-flow") is not None
        assert await store.get_flow("company-2", "email-flow") is None
        assert await store.list_enabled_flows("company-2") == []


@pytest.fixture
def client():
    return MagicMock()


class TestSupabaseFlowStore:
    """Tests for the Supabase row mapping."""

    async def test_get_flow_maps_row(self, client, menu_flow_data):
        query = client.table.return_value.select.return_value.eq.return_value.eq.return_value
        query.limit.return_value.execute.return_value = MagicMock(data=[{
            "id": "menu-flow",
            "company_id": TENANT,
            "name": "Menu",
            "is_active": True,
            "triggers": '["Menu"]',
            "nodes": menu_flow_data["nodes"],
            "edges": menu_flow_data["edges"],
        }])

        definition = await SupabaseFlowStore(client=client).get_flow(TENANT, "menu-flow")

        assert definition.tenant_id == TENANT
        assert definition.trigger_keywords == ["menu"]
        assert definition.start_node().id == "start"
        client.table.assert_called_with("chat_flows")

    async def test_get_active_instance_maps_row(self, client):
        query = client.table.return_value.select.return_value.eq.return_value.eq.return_value.eq.return_value.eq.return_value
        query.limit.return_value.execute.return_value = MagicMock(data=[{
            "id": "state-1",
            "company_id": TENANT,
            "messaging_session_id": SESSION,
            "contact_id": CONTACT,
            "chat_flow_id": "menu-flow",
            "current_node_id": "menu",
            "is_active": True,
            "awaiting_input": True,
            "variables": '{"userName": "Ana"}',
            "version": 3,
        }])

        instance = await SupabaseFlowStore(client=client).get_active_instance(TENANT, SESSION, CONTACT)

        assert instance.id == "state-1"
        assert instance.flow_id == "menu-flow"
        assert instance.awaiting_input
        assert not instance.enter_on_resume
        assert instance.variables == {"userName": "Ana"}
        assert instance.version == 3

    async def test_save_conflict(self, client):
        update = client.table.return_value.update.return_value.eq.return_value.eq.return_value
        update.execute.return_value = MagicMock(data=[])
        lookup = client.table.return_value.select.return_value.eq.return_value
        lookup.limit.return_value.execute.return_value = MagicMock(data=[])

        with pytest.raises(ConcurrencyConflictError):
            await SupabaseFlowStore(client=client).save_instance(new_instance(id="state-1"), expected_version=2)

        client.table.return_value.update.return_value.eq.assert_called_with("id", "state-1")
        client.table.return_value.update.return_value.eq.return_value.eq.assert_called_with("version", 2)

    async def test_append_history(self, client):
        entry = FlowHistoryEntry(
            instance_id="state-1",
            node_id="choice",
            node_type="condition",
            action=HistoryAction.CONDITION_MET,
            input="1",
            condition_label="A",
        )
        await SupabaseFlowStore(client=client).append_history(entry)

        row = client.table.return_value.insert.call_args.args[0]
        assert row["contact_flow_state_id"] == "state-1"
        assert row["action"] == "CONDITION_MET"
        assert row["condition_result"] == "A"
        client.table.assert_called_with("contact_flow_history")
