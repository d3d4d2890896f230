"""
Flow state store - Definitions, instances and history

FlowStore is the contract the interpreter persists through. InMemoryFlowStore
keeps everything in process memory (tests, single-process deployments);
SupabaseFlowStore lives in services/database.py.
"""
import asyncio
import logging
from datetime import datetime
from typing import Dict, List, Optional, Protocol

from ..models.flow import FlowDefinition
from ..models.instance import FlowInstance, FlowHistoryEntry, instance_key

logger = logging.getLogger(__name__)


class ConcurrencyConflictError(Exception):
    """The stored instance changed since it was read"""

    def __init__(self, instance_id: str, expected_version: int, actual_version: Optional[int] = None):
        self.instance_id = instance_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Instance {instance_id} version conflict: expected {expected_version}, "
            f"found {actual_version}"
        )


class FlowStore(Protocol):
    async def get_flow(self, tenant_id: str, flow_id: str) -> Optional[FlowDefinition]:
        ...

    async def list_enabled_flows(self, tenant_id: str) -> List[FlowDefinition]:
        ...

    async def get_active_instance(
        self, tenant_id: str, channel_session_id: str, contact_id: str
    ) -> Optional[FlowInstance]:
        ...

    async def get_instance(self, instance_id: str) -> Optional[FlowInstance]:
        ...

    async def create_instance(self, instance: FlowInstance) -> FlowInstance:
        ...

    async def save_instance(self, instance: FlowInstance, expected_version: int) -> FlowInstance:
        ...

    async def deactivate_active_instances(
        self, tenant_id: str, channel_session_id: str, contact_id: str
    ) -> List[str]:
        ...

    async def append_history(self, entry: FlowHistoryEntry) -> None:
        ...

    async def list_history(self, instance_id: str) -> List[FlowHistoryEntry]:
        ...


class InMemoryFlowStore:
    """Dict-backed FlowStore. Returned instances are copies."""

    def __init__(self, flows: Optional[List[FlowDefinition]] = None):
        self._flows: Dict[str, FlowDefinition] = {}
        self._instances: Dict[str, FlowInstance] = {}
        self._history: Dict[str, List[FlowHistoryEntry]] = {}
        self._lock = asyncio.Lock()
        for flow in flows or []:
            self.add_flow(flow)

    # ==================== Definitions ====================

    def add_flow(self, flow: FlowDefinition) -> None:
        self._flows[flow.id] = flow

    async def get_flow(self, tenant_id: str, flow_id: str) -> Optional[FlowDefinition]:
        flow = self._flows.get(flow_id)
        if flow is None:
            return None
        if flow.tenant_id is not None and flow.tenant_id != tenant_id:
            return None
        return flow

    async def list_enabled_flows(self, tenant_id: str) -> List[FlowDefinition]:
        return [
            flow for flow in self._flows.values()
            if flow.enabled and flow.tenant_id in (None, tenant_id)
        ]

    # ==================== Instances ====================

    async def get_active_instance(
        self, tenant_id: str, channel_session_id: str, contact_id: str
    ) -> Optional[FlowInstance]:
        key = instance_key(tenant_id, channel_session_id, contact_id)
        for instance in self._instances.values():
            if instance.is_active and instance.key == key:
                return instance.model_copy(deep=True)
        return None

    async def get_instance(self, instance_id: str) -> Optional[FlowInstance]:
        instance = self._instances.get(instance_id)
        return instance.model_copy(deep=True) if instance else None

    async def create_instance(self, instance: FlowInstance) -> FlowInstance:
        async with self._lock:
            for existing in self._instances.values():
                if existing.is_active and existing.key == instance.key:
                    raise ConcurrencyConflictError(existing.id, instance.version, existing.version)

            stored = instance.model_copy(deep=True)
            stored.version = 1
            self._instances[stored.id] = stored
            return stored.model_copy(deep=True)

    async def save_instance(self, instance: FlowInstance, expected_version: int) -> FlowInstance:
        async with self._lock:
            current = self._instances.get(instance.id)
            if current is None or current.version != expected_version:
                raise ConcurrencyConflictError(
                    instance.id,
                    expected_version,
                    current.version if current else None
                )

            stored = instance.model_copy(deep=True)
            stored.version = expected_version + 1
            stored.updated_at = datetime.now()
            self._instances[stored.id] = stored
            return stored.model_copy(deep=True)

    async def deactivate_active_instances(
        self, tenant_id: str, channel_session_id: str, contact_id: str
    ) -> List[str]:
        key = instance_key(tenant_id, channel_session_id, contact_id)
        deactivated = []
        async with self._lock:
            for instance in self._instances.values():
                if instance.is_active and instance.key == key:
                    instance.is_active = False
                    instance.awaiting_input = False
                    instance.version += 1
                    instance.updated_at = datetime.now()
                    deactivated.append(instance.id)
        return deactivated

    # ==================== History ====================

    async def append_history(self, entry: FlowHistoryEntry) -> None:
        self._history.setdefault(entry.instance_id, []).append(entry)

    async def list_history(self, instance_id: str) -> List[FlowHistoryEntry]:
        return list(self._history.get(instance_id, []))
