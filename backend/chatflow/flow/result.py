"""
Flow Result - Data classes for node and turn execution results
"""
from dataclasses import dataclass, field
from typing import Optional, Any, Dict, List
from enum import Enum

from ..services.adapters import MediaRef


class Outcome(str, Enum):
    """What the interpreter does after a node ran"""
    CONTINUE = "continue"  # Move to next_node_id within this turn
    WAIT = "wait"          # Stop on this node until the contact answers
    PARK = "park"          # Stop on this node until a timer fires
    FINISH = "finish"      # Deactivate the instance


@dataclass
class NodeResult:
    """
    Result of executing a single node.

    Handlers only describe the transition; the interpreter applies it.
    """

    outcome: Outcome
    output: Optional[str] = None
    media: Optional[MediaRef] = None
    next_node_id: Optional[str] = None

    # Hand the pending input on to the next node
    forward_input: bool = False

    def __str__(self) -> str:
        return f"NodeResult({self.outcome.value}, next={self.next_node_id})"


# Factory functions for common node results

def continue_result(
    next_node_id: str,
    output: Optional[str] = None,
    media: Optional[MediaRef] = None,
    forward_input: bool = False
) -> NodeResult:
    """Advance to the next node in the same turn"""
    return NodeResult(
        outcome=Outcome.CONTINUE,
        output=output,
        media=media,
        next_node_id=next_node_id,
        forward_input=forward_input
    )


def wait_result(
    output: Optional[str] = None,
    media: Optional[MediaRef] = None
) -> NodeResult:
    """Suspend on the current node awaiting input"""
    return NodeResult(outcome=Outcome.WAIT, output=output, media=media)


def park_result() -> NodeResult:
    """Suspend on the current node until its timer fires"""
    return NodeResult(outcome=Outcome.PARK)


def finish_result(
    output: Optional[str] = None,
    media: Optional[MediaRef] = None
) -> NodeResult:
    """End the flow"""
    return NodeResult(outcome=Outcome.FINISH, output=output, media=media)


@dataclass
class ExecutionResult:
    """
    Result of one interpreter turn, returned to the caller.

    ``response_text`` is every message produced in the turn joined with the
    configured separator; ``media_refs`` lists media in emission order.
    """

    success: bool
    response_text: Optional[str] = None
    media_refs: List[MediaRef] = field(default_factory=list)
    awaiting_input: bool = False
    instance_id: Optional[str] = None
    node_id: Optional[str] = None
    finished: bool = False
    error: Optional[str] = None

    @property
    def media_ref(self) -> Optional[MediaRef]:
        """First media of the turn"""
        return self.media_refs[0] if self.media_refs else None

    @property
    def has_response(self) -> bool:
        return bool(self.response_text) or bool(self.media_refs)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "success": self.success,
            "response_text": self.response_text,
            "media_ref": self.media_ref.to_dict() if self.media_ref else None,
            "media_refs": [media.to_dict() for media in self.media_refs],
            "awaiting_input": self.awaiting_input,
            "instance_id": self.instance_id,
            "node_id": self.node_id,
            "finished": self.finished,
            "error": self.error,
        }

    def __str__(self) -> str:
        status = "OK" if self.success else f"ERROR: {self.error}"
        return (
            f"ExecutionResult(node={self.node_id}, awaiting={self.awaiting_input}, "
            f"finished={self.finished}, status={status})"
        )


def failure_result(error: str, instance_id: Optional[str] = None, node_id: Optional[str] = None) -> ExecutionResult:
    """Create a failed turn result"""
    return ExecutionResult(success=False, error=error, instance_id=instance_id, node_id=node_id)
