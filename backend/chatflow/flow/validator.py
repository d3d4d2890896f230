"""
Flow Validator - Structural checks on flow definitions before execution
"""
import logging
from typing import Tuple, List, Dict, Any, Set, Optional, Union
from datetime import datetime

from pydantic import ValidationError

from ..models.flow import (
    FlowDefinition, FlowNode, NodeType, TERMINAL_NODE_TYPES,
    InputNode, ConditionNode, WebhookNode, MessageNode, ImageNode, FileNode,
    UnknownNode,
)

logger = logging.getLogger(__name__)


class FlowValidationError:
    """Represents a validation error"""

    def __init__(
        self,
        code: str,
        message: str,
        node_id: Optional[str] = None,
        severity: str = "error"  # error, warning
    ):
        self.code = code
        self.message = message
        self.node_id = node_id
        self.severity = severity
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "node_id": self.node_id,
            "severity": self.severity,
            "timestamp": self.timestamp.isoformat()
        }

    def __str__(self) -> str:
        node_info = f" [Node: {self.node_id}]" if self.node_id else ""
        return f"[{self.severity.upper()}] {self.code}: {self.message}{node_info}"


class FlowDefinitionError(Exception):
    """A flow definition cannot be executed"""

    def __init__(self, flow_id: Optional[str], errors: List[FlowValidationError]):
        self.flow_id = flow_id
        self.errors = errors
        details = "; ".join(str(e) for e in errors) or "invalid definition"
        super().__init__(f"Flow {flow_id} is invalid: {details}")


class FlowValidator:
    """
    Validates flow definitions.

    Errors make a definition unusable; warnings are reported only:
    - exactly one START node
    - edges point at existing nodes, edge ids are unique
    - at most one default (unlabeled) edge per node
    - condition rules resolve to an edge or node
    - INPUT nodes name a variable, WEBHOOK nodes have a URL
    - unreachable nodes, dead ends and loops that never wait (warnings)
    """

    @classmethod
    def validate(
        cls,
        definition: Union[FlowDefinition, Dict[str, Any]]
    ) -> Tuple[bool, List[FlowValidationError]]:
        """
        Validate a flow definition.

        Args:
            definition: FlowDefinition or the authored JSON dictionary

        Returns:
            Tuple of (is_valid, list of errors)
        """
        if not isinstance(definition, FlowDefinition):
            try:
                definition = FlowDefinition.model_validate(definition)
            except (ValidationError, ValueError) as e:
                error = FlowValidationError("INVALID_DEFINITION", str(e))
                logger.error(str(error))
                return False, [error]

        errors: List[FlowValidationError] = []

        # 1. Start node
        errors.extend(cls._validate_start(definition))

        # 2. Edges
        errors.extend(cls._validate_edges(definition))

        # 3. Node configuration
        for node in definition.nodes.values():
            errors.extend(cls._validate_node(definition, node))

        # 4. Reachability and dead ends
        errors.extend(cls._detect_orphan_nodes(definition))
        errors.extend(cls._detect_dead_ends(definition))

        # 5. Loops the interpreter would spin through without waiting
        errors.extend(cls._detect_cycles(definition))

        is_valid = not any(e.severity == "error" for e in errors)

        if errors:
            logger.warning(f"Flow {definition.id} validation found {len(errors)} issues")
            for error in errors:
                if error.severity == "error":
                    logger.error(str(error))
                else:
                    logger.warning(str(error))

        return is_valid, errors

    @classmethod
    def ensure_valid(cls, definition: FlowDefinition) -> None:
        """Raise FlowDefinitionError when the definition has errors"""
        is_valid, errors = cls.validate(definition)
        if not is_valid:
            raise FlowDefinitionError(
                definition.id,
                [e for e in errors if e.severity == "error"]
            )

    @classmethod
    def _validate_start(cls, definition: FlowDefinition) -> List[FlowValidationError]:
        """Exactly one START node"""
        starts = [n for n in definition.nodes.values() if n.type == NodeType.START]
        if not starts:
            return [FlowValidationError("MISSING_START_NODE", "Flow has no start node")]
        if len(starts) > 1:
            return [
                FlowValidationError(
                    "MULTIPLE_START_NODES",
                    f"Flow has {len(starts)} start nodes",
                    node.id
                )
                for node in starts[1:]
            ]
        return []

    @classmethod
    def _validate_edges(cls, definition: FlowDefinition) -> List[FlowValidationError]:
        """Validate edge references and default edges"""
        errors = []
        seen_ids: Set[str] = set()

        for edge in definition.edges:
            if edge.id:
                if edge.id in seen_ids:
                    errors.append(FlowValidationError(
                        "DUPLICATE_EDGE_ID",
                        f"Duplicate edge id: {edge.id}"
                    ))
                seen_ids.add(edge.id)

            if edge.source_node_id not in definition.nodes:
                errors.append(FlowValidationError(
                    "INVALID_EDGE_SOURCE",
                    f"Edge '{edge.id}' source '{edge.source_node_id}' does not exist"
                ))
            if edge.target_node_id not in definition.nodes:
                errors.append(FlowValidationError(
                    "INVALID_EDGE_TARGET",
                    f"Edge '{edge.id}' target '{edge.target_node_id}' does not exist",
                    edge.source_node_id
                ))

        for node_id in definition.nodes:
            defaults = [e for e in definition.outgoing_edges(node_id) if e.label is None]
            if len(defaults) > 1:
                errors.append(FlowValidationError(
                    "MULTIPLE_DEFAULT_EDGES",
                    f"Node has {len(defaults)} unlabeled outgoing edges",
                    node_id
                ))

        return errors

    @classmethod
    def _validate_node(cls, definition: FlowDefinition, node: FlowNode) -> List[FlowValidationError]:
        """Validate a single node's configuration"""
        errors = []

        if isinstance(node, UnknownNode):
            errors.append(FlowValidationError(
                "UNKNOWN_NODE_TYPE",
                f"Unknown node type '{node.type}' will be passed through",
                node.id,
                severity="warning"
            ))

        elif isinstance(node, InputNode):
            if not node.config.variable_name:
                errors.append(FlowValidationError(
                    "MISSING_VARIABLE_NAME",
                    "Input node has no variableName",
                    node.id
                ))

        elif isinstance(node, WebhookNode):
            if not node.config.webhook_url.strip():
                errors.append(FlowValidationError(
                    "MISSING_WEBHOOK_URL",
                    "Webhook node has no URL",
                    node.id
                ))

        elif isinstance(node, ConditionNode):
            for rule in node.config.conditions:
                if rule.target_node_id:
                    if rule.target_node_id not in definition.nodes:
                        errors.append(FlowValidationError(
                            "INVALID_CONDITION_TARGET",
                            f"Condition '{rule.label or rule.id}' targets missing node '{rule.target_node_id}'",
                            node.id
                        ))
                elif definition.edge_for_label(node.id, rule.label) is None:
                    errors.append(FlowValidationError(
                        "UNRESOLVED_CONDITION",
                        f"Condition '{rule.label or rule.id}' has no target node or labeled edge",
                        node.id
                    ))

        return errors

    @classmethod
    def _successor_ids(cls, definition: FlowDefinition, node: FlowNode) -> List[str]:
        ids = [edge.target_node_id for edge in definition.outgoing_edges(node.id)]
        if isinstance(node, ConditionNode):
            ids.extend(r.target_node_id for r in node.config.conditions if r.target_node_id)
        return ids

    @classmethod
    def _detect_orphan_nodes(cls, definition: FlowDefinition) -> List[FlowValidationError]:
        """Detect nodes that are not reachable from the start node"""
        start = definition.start_node()
        if start is None:
            return []

        # BFS to find all reachable nodes
        reachable = set()
        queue = [start.id]

        while queue:
            current = queue.pop(0)
            if current in reachable:
                continue
            reachable.add(current)

            node = definition.get_node(current)
            if node is None:
                continue
            for next_id in cls._successor_ids(definition, node):
                if next_id and next_id not in reachable:
                    queue.append(next_id)

        return [
            FlowValidationError(
                "ORPHAN_NODE",
                f"Node '{orphan}' is not reachable from start node",
                orphan,
                severity="warning"
            )
            for orphan in sorted(set(definition.nodes) - reachable)
        ]

    @classmethod
    def _detect_dead_ends(cls, definition: FlowDefinition) -> List[FlowValidationError]:
        """Non-terminal nodes without a way out end the flow silently"""
        errors = []
        for node in definition.nodes.values():
            if node.type in TERMINAL_NODE_TYPES:
                continue
            if not cls._successor_ids(definition, node):
                errors.append(FlowValidationError(
                    "DEAD_END",
                    f"Node '{node.id}' ({node.type}) has no outgoing edge; the flow ends there",
                    node.id,
                    severity="warning"
                ))
        return errors

    @classmethod
    def _waits(cls, node: FlowNode) -> bool:
        """Whether executing the node can stop the turn"""
        if isinstance(node, (MessageNode, ImageNode, FileNode)):
            return node.config.await_input
        return not isinstance(node, UnknownNode) and node.type not in (NodeType.START, NodeType.WEBHOOK)

    @classmethod
    def _detect_cycles(cls, definition: FlowDefinition) -> List[FlowValidationError]:
        """Detect loops made only of nodes that never wait"""
        errors = []
        visiting: Set[str] = set()
        done: Set[str] = set()
        reported: Set[str] = set()

        def visit(node_id: str) -> None:
            node = definition.get_node(node_id)
            if node is None or cls._waits(node) or node_id in done:
                return
            if node_id in visiting:
                if node_id not in reported:
                    reported.add(node_id)
                    errors.append(FlowValidationError(
                        "AUTO_ADVANCE_LOOP",
                        f"Node '{node_id}' is part of a loop that never waits for input",
                        node_id,
                        severity="warning"
                    ))
                return
            visiting.add(node_id)
            for next_id in cls._successor_ids(definition, node):
                visit(next_id)
            visiting.discard(node_id)
            done.add(node_id)

        for node_id in definition.nodes:
            visit(node_id)

        return errors
