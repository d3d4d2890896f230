"""
Flow definition models - nodes, edges and triggers of a chatbot flow

Definitions are authored in the flow builder and stored as JSON. The models
accept the builder's shape (camelCase keys, ``data`` instead of ``config``,
``source``/``target`` on edges) and are frozen once loaded.
"""
import json
from enum import Enum
from typing import Optional, Any, List, Dict, Union
from pydantic import BaseModel, Field, AliasChoices, JsonValue, field_validator
from pydantic.alias_generators import to_camel


# Variables collected during a conversation. Webhook responses of arbitrary
# shape are kept as opaque JSON values.
FlowVariables = Dict[str, JsonValue]


class NodeType(str, Enum):
    """Node kinds understood by the interpreter"""
    START = "start"
    MESSAGE = "message"
    IMAGE = "image"
    FILE = "file"
    INPUT = "input"
    CONDITION = "condition"
    DELAY = "delay"
    WEBHOOK = "webhook"
    TRANSFER = "transfer"
    TICKET = "ticket"
    END = "end"


# Node kinds that may end a branch without an outgoing edge
TERMINAL_NODE_TYPES = {NodeType.END, NodeType.TICKET, NodeType.TRANSFER}


class ValidationFormat(str, Enum):
    """Formats accepted by INPUT nodes"""
    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    NUMBER = "number"
    CPF = "cpf"
    CNPJ = "cnpj"
    CNH = "cnh"
    PLATE = "plate"


class AuthType(str, Enum):
    """Authentication schemes for WEBHOOK nodes"""
    BEARER = "bearer"
    API_KEY = "api-key"
    BASIC = "basic"


class DelayUnit(str, Enum):
    """Time unit of a DELAY node"""
    SECONDS = "seconds"
    MINUTES = "minutes"
    HOURS = "hours"


_UNIT_SECONDS = {
    DelayUnit.SECONDS: 1,
    DelayUnit.MINUTES: 60,
    DelayUnit.HOURS: 3600,
}


# ============ NODE CONFIGURATIONS ============

class NodeConfig(BaseModel):
    """Base configuration shared by every node kind"""

    model_config = {
        "extra": "allow",  # Builder sends presentation fields we ignore
        "alias_generator": to_camel,
        "populate_by_name": True,
        "frozen": True,
    }

    label: Optional[str] = None


class StartConfig(NodeConfig):
    """START nodes carry no behaviour"""


class MessageConfig(NodeConfig):
    """MESSAGE node: text sent to the contact"""

    message: Optional[str] = None
    await_input: bool = True  # Wait for an answer before moving on


class MediaConfig(MessageConfig):
    """IMAGE / FILE node: stored media plus an optional caption (``message``)"""

    media_id: Optional[str] = None
    media_url: Optional[str] = None
    file_name: Optional[str] = None
    mime_type: Optional[str] = None


class InputConfig(NodeConfig):
    """INPUT node: captures a validated answer into a variable"""

    message: Optional[str] = None
    variable_name: Optional[str] = None
    validation: str = ValidationFormat.TEXT.value
    placeholder: Optional[str] = None
    required: bool = True
    error_message: Optional[str] = None


class FlowCondition(BaseModel):
    """A single branching rule of a CONDITION node"""

    model_config = {
        "extra": "allow",
        "alias_generator": to_camel,
        "populate_by_name": True,
        "frozen": True,
    }

    id: Optional[str] = None
    field: str = "message"
    operator: str = "equals"
    value: str = ""
    label: Optional[str] = None
    target_node_id: Optional[str] = None

    @field_validator("value", mode="before")
    @classmethod
    def _stringify_value(cls, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)


class ConditionConfig(NodeConfig):
    """CONDITION node: ordered rules, first match wins"""

    message: Optional[str] = None
    conditions: List[FlowCondition] = Field(default_factory=list)


class DelayConfig(NodeConfig):
    """DELAY node: continue after a pause without blocking the request"""

    delay: float = 0
    delay_unit: DelayUnit = DelayUnit.SECONDS

    @property
    def delay_seconds(self) -> float:
        return float(self.delay) * _UNIT_SECONDS[self.delay_unit]


class WebhookConfig(NodeConfig):
    """WEBHOOK node: outbound HTTP call"""

    webhook_url: str = ""
    webhook_method: str = "POST"
    headers: Dict[str, str] = Field(default_factory=dict)

    # Authentication
    use_authentication: bool = False
    auth_type: Optional[str] = None
    auth_token: Optional[str] = None
    api_key_header: Optional[str] = None
    api_key_value: Optional[str] = None
    basic_username: Optional[str] = None
    basic_password: Optional[str] = None

    # Payload
    include_flow_variables: bool = False
    include_metadata: bool = False
    custom_payload: Optional[Union[str, Dict[str, Any], List[Any]]] = None

    # Response handling
    wait_for_response: bool = False
    response_variable: Optional[str] = None
    timeout_seconds: Optional[float] = None


class TransferConfig(NodeConfig):
    """TRANSFER node: hand the conversation to a human agent"""

    transfer_message: Optional[str] = None
    out_of_hours_message: Optional[str] = None
    check_business_hours: bool = True
    department: Optional[str] = None


class TicketConfig(NodeConfig):
    """TICKET node: close the flow; the caller opens the ticket"""

    message: Optional[str] = None
    ticket_category: Optional[str] = None
    ticket_priority: Optional[str] = None


class EndConfig(NodeConfig):
    """END node: close the flow"""

    message: Optional[str] = None


# ============ NODES ============

def _config_field(factory):
    # The builder stores node configuration under "data"
    return Field(default_factory=factory, validation_alias=AliasChoices("config", "data"))


class BaseNode(BaseModel):
    """Common node fields"""

    model_config = {"extra": "ignore", "populate_by_name": True, "frozen": True}

    id: str


class StartNode(BaseNode):
    type: NodeType = NodeType.START
    config: StartConfig = _config_field(StartConfig)


class MessageNode(BaseNode):
    type: NodeType = NodeType.MESSAGE
    config: MessageConfig = _config_field(MessageConfig)


class ImageNode(BaseNode):
    type: NodeType = NodeType.IMAGE
    config: MediaConfig = _config_field(MediaConfig)


class FileNode(BaseNode):
    type: NodeType = NodeType.FILE
    config: MediaConfig = _config_field(MediaConfig)


class InputNode(BaseNode):
    type: NodeType = NodeType.INPUT
    config: InputConfig = _config_field(InputConfig)


class ConditionNode(BaseNode):
    type: NodeType = NodeType.CONDITION
    config: ConditionConfig = _config_field(ConditionConfig)


class DelayNode(BaseNode):
    type: NodeType = NodeType.DELAY
    config: DelayConfig = _config_field(DelayConfig)


class WebhookNode(BaseNode):
    type: NodeType = NodeType.WEBHOOK
    config: WebhookConfig = _config_field(WebhookConfig)


class TransferNode(BaseNode):
    type: NodeType = NodeType.TRANSFER
    config: TransferConfig = _config_field(TransferConfig)


class TicketNode(BaseNode):
    type: NodeType = NodeType.TICKET
    config: TicketConfig = _config_field(TicketConfig)


class EndNode(BaseNode):
    type: NodeType = NodeType.END
    config: EndConfig = _config_field(EndConfig)


class UnknownNode(BaseNode):
    """Node whose type this interpreter does not know; passed through"""

    type: str
    config: NodeConfig = _config_field(NodeConfig)


FlowNode = Union[
    StartNode, MessageNode, ImageNode, FileNode, InputNode, ConditionNode,
    DelayNode, WebhookNode, TransferNode, TicketNode, EndNode, UnknownNode,
]

NODE_MODELS: Dict[NodeType, type] = {
    NodeType.START: StartNode,
    NodeType.MESSAGE: MessageNode,
    NodeType.IMAGE: ImageNode,
    NodeType.FILE: FileNode,
    NodeType.INPUT: InputNode,
    NodeType.CONDITION: ConditionNode,
    NodeType.DELAY: DelayNode,
    NodeType.WEBHOOK: WebhookNode,
    NodeType.TRANSFER: TransferNode,
    NodeType.TICKET: TicketNode,
    NodeType.END: EndNode,
}


def parse_node(data: Any) -> FlowNode:
    """Build the node model matching ``data["type"]``"""
    if isinstance(data, BaseNode):
        return data
    if not isinstance(data, dict):
        raise ValueError(f"Node must be an object, got {type(data).__name__}")

    raw_type = str(data.get("type") or "").strip().lower()
    try:
        node_type = NodeType(raw_type)
    except ValueError:
        return UnknownNode(**{**data, "type": raw_type or "unknown"})

    return NODE_MODELS[node_type].model_validate({**data, "type": node_type})


class FlowEdge(BaseModel):
    """Directed connection between two nodes"""

    model_config = {"extra": "ignore", "populate_by_name": True, "frozen": True}

    id: str = ""
    source_node_id: str = Field(
        validation_alias=AliasChoices("source_node_id", "sourceNodeId", "source")
    )
    target_node_id: str = Field(
        validation_alias=AliasChoices("target_node_id", "targetNodeId", "target")
    )
    label: Optional[str] = None

    @field_validator("label", mode="before")
    @classmethod
    def _blank_label_is_default(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        value = str(value).strip()
        return value or None


def _load_json(value: Any) -> Any:
    # Definitions persisted by the builder keep these columns as JSON strings
    if isinstance(value, str):
        return json.loads(value) if value.strip() else []
    return value


class FlowDefinition(BaseModel):
    """
    Immutable chatbot flow: nodes, edges and trigger keywords.

    The interpreter only reads definitions; edits produce a new definition.
    """

    model_config = {"extra": "ignore", "populate_by_name": True, "frozen": True}

    id: str
    tenant_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("tenant_id", "tenantId", "company_id", "companyId"),
    )
    name: Optional[str] = None
    enabled: bool = Field(
        default=True,
        validation_alias=AliasChoices("enabled", "is_active", "isActive"),
    )
    trigger_keywords: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("trigger_keywords", "triggerKeywords", "triggers"),
    )
    nodes: Dict[str, FlowNode] = Field(default_factory=dict)
    edges: List[FlowEdge] = Field(default_factory=list)

    @field_validator("trigger_keywords", mode="before")
    @classmethod
    def _normalize_triggers(cls, value: Any) -> List[str]:
        value = _load_json(value) or []
        if isinstance(value, str):
            value = [value]
        keywords: List[str] = []
        for keyword in value:
            if not isinstance(keyword, str):
                continue
            keyword = keyword.strip().lower()
            if keyword and keyword not in keywords:
                keywords.append(keyword)
        return keywords

    @field_validator("nodes", mode="before")
    @classmethod
    def _parse_nodes(cls, value: Any) -> Dict[str, FlowNode]:
        value = _load_json(value) or []
        if isinstance(value, dict):
            items = [
                {**node, "id": node.get("id", node_id)} if isinstance(node, dict) else node
                for node_id, node in value.items()
            ]
        else:
            items = list(value)

        nodes: Dict[str, FlowNode] = {}
        for item in items:
            node = parse_node(item)
            if node.id in nodes:
                raise ValueError(f"Duplicate node id: {node.id}")
            nodes[node.id] = node
        return nodes

    @field_validator("edges", mode="before")
    @classmethod
    def _parse_edges(cls, value: Any) -> Any:
        return _load_json(value) or []

    # ==================== Graph helpers ====================

    def get_node(self, node_id: Optional[str]) -> Optional[FlowNode]:
        """Get a node by ID"""
        if not node_id:
            return None
        return self.nodes.get(node_id)

    def start_node(self) -> Optional[FlowNode]:
        """Get the START node"""
        for node in self.nodes.values():
            if node.type == NodeType.START:
                return node
        return None

    def outgoing_edges(self, node_id: str) -> List[FlowEdge]:
        """Edges leaving a node, in authoring order"""
        return [edge for edge in self.edges if edge.source_node_id == node_id]

    def default_edge(self, node_id: str) -> Optional[FlowEdge]:
        """The unlabeled outgoing edge of a node"""
        for edge in self.outgoing_edges(node_id):
            if edge.label is None:
                return edge
        return None

    def edge_for_label(self, node_id: str, label: Optional[str]) -> Optional[FlowEdge]:
        """The outgoing edge carrying ``label`` (case-insensitive)"""
        if not label:
            return None
        wanted = label.strip().lower()
        for edge in self.outgoing_edges(node_id):
            if edge.label is not None and edge.label.lower() == wanted:
                return edge
        return None

    def successor(self, node: FlowNode) -> Optional[FlowNode]:
        """
        Single successor of a node.

        The unlabeled edge wins; non-condition nodes fall back to their first
        edge so that a stray label drawn in the builder does not strand them.
        """
        edge = self.default_edge(node.id)
        if edge is None and node.type != NodeType.CONDITION:
            edges = self.outgoing_edges(node.id)
            edge = edges[0] if edges else None
        if edge is None:
            return None
        return self.get_node(edge.target_node_id)

    def matches_trigger(self, message: str) -> bool:
        """True when a trigger keyword is one of the message's words"""
        if not message or not self.trigger_keywords:
            return False
        words = set(message.lower().split())
        return any(keyword in words for keyword in self.trigger_keywords)
