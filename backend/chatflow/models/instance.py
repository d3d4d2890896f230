"""
Flow instance models - a contact's live position in a flow and its audit trail
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from .flow import FlowVariables


class HistoryAction(str, Enum):
    """What happened at a node"""
    ENTERED = "ENTERED"
    EXECUTED = "EXECUTED"
    USER_INPUT = "USER_INPUT"
    CONDITION_MET = "CONDITION_MET"
    TIMEOUT = "TIMEOUT"
    ERROR = "ERROR"


def instance_key(tenant_id: str, channel_session_id: str, contact_id: str) -> str:
    """Key of the (tenant, session, contact) tuple"""
    return f"{tenant_id}:{channel_session_id}:{contact_id}"


class FlowInstance(BaseModel):
    """
    Execution state of one flow for one contact on one channel session.

    At most one active instance exists per (tenant, session, contact).
    Instances are deactivated, never deleted. ``version`` grows by one on
    every committed write and guards against lost updates.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    tenant_id: str
    channel_session_id: str
    contact_id: str
    flow_id: str
    current_node_id: str
    is_active: bool = True
    awaiting_input: bool = False
    # Resume runs the current node from its entry instead of its resume step
    enter_on_resume: bool = False
    variables: FlowVariables = Field(default_factory=dict)
    version: int = 0
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @property
    def key(self) -> str:
        return instance_key(self.tenant_id, self.channel_session_id, self.contact_id)


class FlowHistoryEntry(BaseModel):
    """Append-only audit record; never read back by the interpreter"""

    instance_id: str
    node_id: str
    node_type: str
    action: HistoryAction
    input: Optional[str] = None
    output: Optional[str] = None
    condition_label: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.now)
