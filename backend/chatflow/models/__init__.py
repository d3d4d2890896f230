from .flow import (
    FlowVariables,
    NodeType,
    TERMINAL_NODE_TYPES,
    ValidationFormat,
    AuthType,
    DelayUnit,
    NodeConfig,
    MessageConfig,
    MediaConfig,
    InputConfig,
    FlowCondition,
    ConditionConfig,
    DelayConfig,
    WebhookConfig,
    TransferConfig,
    TicketConfig,
    EndConfig,
    BaseNode,
    StartNode,
    MessageNode,
    ImageNode,
    FileNode,
    InputNode,
    ConditionNode,
    DelayNode,
    WebhookNode,
    TransferNode,
    TicketNode,
    EndNode,
    UnknownNode,
    FlowNode,
    parse_node,
    FlowEdge,
    FlowDefinition,
)
from .instance import HistoryAction, FlowInstance, FlowHistoryEntry, instance_key

__all__ = [
    "FlowVariables",
    "NodeType",
    "TERMINAL_NODE_TYPES",
    "ValidationFormat",
    "AuthType",
    "DelayUnit",
    "NodeConfig",
    "MessageConfig",
    "MediaConfig",
    "InputConfig",
    "FlowCondition",
    "ConditionConfig",
    "DelayConfig",
    "WebhookConfig",
    "TransferConfig",
    "TicketConfig",
    "EndConfig",
    "BaseNode",
    "StartNode",
    "MessageNode",
    "ImageNode",
    "FileNode",
    "InputNode",
    "ConditionNode",
    "DelayNode",
    "WebhookNode",
    "TransferNode",
    "TicketNode",
    "EndNode",
    "UnknownNode",
    "FlowNode",
    "parse_node",
    "FlowEdge",
    "FlowDefinition",
    "HistoryAction",
    "FlowInstance",
    "FlowHistoryEntry",
    "instance_key",
]
