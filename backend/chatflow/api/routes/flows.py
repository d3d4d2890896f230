"""
Flow routes - cancellation, inspection and validation
"""
from typing import Any, Dict
from fastapi import APIRouter, Depends, HTTPException

from ...flow.executor import FlowInterpreter
from ...flow.validator import FlowValidator
from ..dependencies import get_interpreter

router = APIRouter(prefix="/flows", tags=["flows"])


@router.post("/validate")
async def validate_flow(definition: Dict[str, Any]):
    """Validate an authored flow definition"""
    is_valid, errors = FlowValidator.validate(definition)
    return {
        "valid": is_valid,
        "errors": [e.to_dict() for e in errors if e.severity == "error"],
        "warnings": [e.to_dict() for e in errors if e.severity == "warning"],
    }


@router.get("/{tenant_id}/{session_id}/{contact_id}")
async def get_active_flow(
    tenant_id: str,
    session_id: str,
    contact_id: str,
    interpreter: FlowInterpreter = Depends(get_interpreter)
):
    """Get the contact's active flow instance"""
    instance = await interpreter.get_active_instance(tenant_id, session_id, contact_id)
    if not instance:
        raise HTTPException(status_code=404, detail="No active flow")
    return instance


@router.post("/{tenant_id}/{session_id}/{contact_id}/cancel")
async def cancel_flow(
    tenant_id: str,
    session_id: str,
    contact_id: str,
    interpreter: FlowInterpreter = Depends(get_interpreter)
):
    """Cancel the contact's active flow"""
    cancelled = await interpreter.cancel_flow(tenant_id, session_id, contact_id)
    return {"cancelled": cancelled}
