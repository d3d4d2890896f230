"""
Turn Context - Working state of a single interpreter turn
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ..models.flow import FlowDefinition, FlowNode
from ..models.instance import FlowInstance, FlowHistoryEntry, HistoryAction
from ..services.adapters import MediaRef


@dataclass
class TurnContext:
    """
    Everything one turn reads and writes.

    ``instance`` is a private copy; nothing reaches the store until the
    interpreter commits the turn.
    """

    instance: FlowInstance
    definition: FlowDefinition
    expected_version: int
    # First turn of a flow; the instance is not stored yet
    is_new: bool = False

    # Inbound text not yet consumed by a node
    pending_input: Optional[str] = None

    outputs: List[str] = field(default_factory=list)
    media: List[MediaRef] = field(default_factory=list)
    history: List[FlowHistoryEntry] = field(default_factory=list)

    steps: int = 0
    delay_seconds: Optional[float] = None  # Set when the turn parks on a DELAY node
    started_at: datetime = field(default_factory=datetime.now)

    @property
    def variables(self):
        return self.instance.variables

    def take_input(self) -> Optional[str]:
        """Consume the pending input"""
        value = self.pending_input
        self.pending_input = None
        return value

    def emit(self, text: Optional[str] = None, media: Optional[MediaRef] = None) -> None:
        if text:
            self.outputs.append(text)
        if media:
            self.media.append(media)

    def record(
        self,
        node: FlowNode,
        action: HistoryAction,
        input: Optional[str] = None,
        output: Optional[str] = None,
        condition_label: Optional[str] = None
    ) -> None:
        """Buffer a history entry; written when the turn commits"""
        self.history.append(FlowHistoryEntry(
            instance_id=self.instance.id,
            node_id=node.id,
            node_type=str(getattr(node.type, "value", node.type)),
            action=action,
            input=input,
            output=output,
            condition_label=condition_label,
        ))

    def response_text(self, separator: str) -> Optional[str]:
        return separator.join(self.outputs) if self.outputs else None

    def elapsed_ms(self) -> int:
        return int((datetime.now() - self.started_at).total_seconds() * 1000)
