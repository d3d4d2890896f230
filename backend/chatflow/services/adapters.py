"""
Adapter contracts - outbound side effects the interpreter depends on.

Implementations live next to this module (httpx webhook invoker, Supabase
media resolver, business-hours calendar). Tests substitute fakes.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Protocol


@dataclass
class WebhookResponse:
    """Outcome of an outbound webhook call. Never raised, always returned."""
    success: bool
    status: Optional[int] = None
    body: Any = None
    error: Optional[str] = None


@dataclass
class MediaRef:
    """Resolved media reference handed to the transport layer"""
    url: str
    kind: str  # image, video, audio, document
    file_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "kind": self.kind,
            "file_name": self.file_name,
        }


class WebhookInvoker(Protocol):
    async def invoke(
        self,
        url: str,
        method: str,
        headers: Dict[str, str],
        body: Optional[Dict[str, Any]],
        timeout: Optional[float] = None,
    ) -> WebhookResponse:
        ...


class MediaResolver(Protocol):
    async def resolve(self, media_id: str, tenant_id: str) -> Optional[MediaRef]:
        ...


class BusinessHoursOracle(Protocol):
    async def is_open_now(self, tenant_id: str) -> bool:
        ...

    async def next_open_time(self, tenant_id: str) -> Optional[datetime]:
        ...
