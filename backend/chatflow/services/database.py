"""
Database service - Supabase-backed flow store
"""
import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..core.config import settings
from ..core.supabase_client import supabase
from ..models.flow import FlowDefinition
from ..models.instance import FlowInstance, FlowHistoryEntry, HistoryAction
from .flow_store import ConcurrencyConflictError

logger = logging.getLogger(__name__)


def _flow_from_row(row: Dict[str, Any]) -> FlowDefinition:
    return FlowDefinition.model_validate({
        "id": row["id"],
        "tenant_id": row.get("company_id"),
        "name": row.get("name"),
        "enabled": row.get("is_active", True),
        "trigger_keywords": row.get("triggers") or [],
        "nodes": row.get("nodes") or [],
        "edges": row.get("edges") or [],
    })


def _instance_from_row(row: Dict[str, Any]) -> FlowInstance:
    variables = row.get("variables") or {}
    if isinstance(variables, str):
        variables = json.loads(variables) if variables else {}
    return FlowInstance(
        id=row["id"],
        tenant_id=row["company_id"],
        channel_session_id=row["messaging_session_id"],
        contact_id=row["contact_id"],
        flow_id=row["chat_flow_id"],
        current_node_id=row["current_node_id"],
        is_active=row.get("is_active", True),
        awaiting_input=row.get("awaiting_input", False),
        enter_on_resume=row.get("enter_on_resume") or False,
        variables=variables,
        version=row.get("version") or 0,
        created_at=row.get("created_at") or datetime.now(),
        updated_at=row.get("updated_at") or datetime.now(),
    )


def _instance_to_row(instance: FlowInstance) -> Dict[str, Any]:
    return {
        "id": instance.id,
        "company_id": instance.tenant_id,
        "messaging_session_id": instance.channel_session_id,
        "contact_id": instance.contact_id,
        "chat_flow_id": instance.flow_id,
        "current_node_id": instance.current_node_id,
        "is_active": instance.is_active,
        "awaiting_input": instance.awaiting_input,
        "enter_on_resume": instance.enter_on_resume,
        "variables": instance.variables,
        "version": instance.version,
        "created_at": instance.created_at.isoformat(),
        "updated_at": instance.updated_at.isoformat(),
    }


class SupabaseFlowStore:
    """FlowStore on Supabase tables; updates are conditional on ``version``"""

    def __init__(self, client: Any = None):
        self.client = client or supabase

    # ==================== FLOWS ====================

    async def get_flow(self, tenant_id: str, flow_id: str) -> Optional[FlowDefinition]:
        """Get flow definition by ID"""
        response = self.client.table(settings.FLOWS_TABLE).select("*").eq(
            "id", flow_id
        ).eq("company_id", tenant_id).limit(1).execute()
        if response.data and len(response.data) > 0:
            return _flow_from_row(response.data[0])
        return None

    async def list_enabled_flows(self, tenant_id: str) -> List[FlowDefinition]:
        """List enabled flows of a tenant"""
        response = self.client.table(settings.FLOWS_TABLE).select("*").eq(
            "company_id", tenant_id
        ).eq("is_active", True).order("created_at").execute()

        flows = []
        for row in response.data or []:
            try:
                flows.append(_flow_from_row(row))
            except ValueError as e:
                logger.error(f"Skipping unreadable flow {row.get('id')}: {e}")
        return flows

    # ==================== INSTANCES ====================

    async def get_active_instance(
        self, tenant_id: str, channel_session_id: str, contact_id: str
    ) -> Optional[FlowInstance]:
        """Get the active instance of a contact on a session"""
        response = self.client.table(settings.FLOW_STATES_TABLE).select("*").eq(
            "company_id", tenant_id
        ).eq("messaging_session_id", channel_session_id).eq(
            "contact_id", contact_id
        ).eq("is_active", True).limit(1).execute()
        if response.data and len(response.data) > 0:
            return _instance_from_row(response.data[0])
        return None

    async def get_instance(self, instance_id: str) -> Optional[FlowInstance]:
        """Get instance by ID"""
        response = self.client.table(settings.FLOW_STATES_TABLE).select("*").eq(
            "id", instance_id
        ).limit(1).execute()
        if response.data and len(response.data) > 0:
            return _instance_from_row(response.data[0])
        return None

    async def create_instance(self, instance: FlowInstance) -> FlowInstance:
        """Insert a new instance at version 1"""
        stored = instance.model_copy(deep=True)
        stored.version = 1
        response = self.client.table(settings.FLOW_STATES_TABLE).insert(
            _instance_to_row(stored)
        ).execute()
        return _instance_from_row(response.data[0]) if response.data else stored

    async def save_instance(self, instance: FlowInstance, expected_version: int) -> FlowInstance:
        """Update the instance only if nobody else wrote it meanwhile"""
        stored = instance.model_copy(deep=True)
        stored.version = expected_version + 1
        stored.updated_at = datetime.now()

        data = _instance_to_row(stored)
        data.pop("id")
        data.pop("created_at")

        response = self.client.table(settings.FLOW_STATES_TABLE).update(data).eq(
            "id", instance.id
        ).eq("version", expected_version).execute()

        if not response.data:
            current = await self.get_instance(instance.id)
            raise ConcurrencyConflictError(
                instance.id,
                expected_version,
                current.version if current else None
            )
        return _instance_from_row(response.data[0])

    async def deactivate_active_instances(
        self, tenant_id: str, channel_session_id: str, contact_id: str
    ) -> List[str]:
        """Deactivate every active instance of the tuple"""
        response = self.client.table(settings.FLOW_STATES_TABLE).select("id, version").eq(
            "company_id", tenant_id
        ).eq("messaging_session_id", channel_session_id).eq(
            "contact_id", contact_id
        ).eq("is_active", True).execute()

        deactivated = []
        for row in response.data or []:
            self.client.table(settings.FLOW_STATES_TABLE).update({
                "is_active": False,
                "awaiting_input": False,
                "version": (row.get("version") or 0) + 1,
                "updated_at": datetime.now().isoformat(),
            }).eq("id", row["id"]).execute()
            deactivated.append(row["id"])
        return deactivated

    # ==================== HISTORY ====================

    async def append_history(self, entry: FlowHistoryEntry) -> None:
        """Append an audit record"""
        self.client.table(settings.FLOW_HISTORY_TABLE).insert({
            "contact_flow_state_id": entry.instance_id,
            "node_id": entry.node_id,
            "node_type": entry.node_type,
            "action": entry.action.value,
            "input": entry.input,
            "output": entry.output,
            "condition_result": entry.condition_label,
            "created_at": entry.timestamp.isoformat(),
        }).execute()

    async def list_history(self, instance_id: str) -> List[FlowHistoryEntry]:
        """Audit records of an instance, oldest first"""
        response = self.client.table(settings.FLOW_HISTORY_TABLE).select("*").eq(
            "contact_flow_state_id", instance_id
        ).order("created_at").execute()
        return [
            FlowHistoryEntry(
                instance_id=row["contact_flow_state_id"],
                node_id=row["node_id"],
                node_type=row["node_type"],
                action=HistoryAction(row["action"]),
                input=row.get("input"),
                output=row.get("output"),
                condition_label=row.get("condition_result"),
                timestamp=row.get("created_at") or datetime.now(),
            )
            for row in response.data or []
        ]
