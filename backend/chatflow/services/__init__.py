"""
Services Module
Persistence, timers and outbound adapters used by the flow interpreter
"""

# Adapter contracts
from .adapters import (
    WebhookInvoker,
    WebhookResponse,
    MediaResolver,
    MediaRef,
    BusinessHoursOracle
)

# Flow storage
from .flow_store import FlowStore, InMemoryFlowStore, ConcurrencyConflictError
from .database import SupabaseFlowStore

# Outbound webhooks (httpx)
from .webhook import HttpxWebhookInvoker

# Media lookup
from .media import SupabaseMediaResolver, media_kind

# Business hours
from .business_hours import (
    BusinessHoursService,
    DaySchedule,
    Holiday,
    HolidayType,
    is_open_at,
    next_open_time,
    format_next_open
)

# Concurrency
from .scheduler import DelayScheduler
from .locks import KeyedLock

__all__ = [
    "WebhookInvoker",
    "WebhookResponse",
    "MediaResolver",
    "MediaRef",
    "BusinessHoursOracle",
    "FlowStore",
    "InMemoryFlowStore",
    "ConcurrencyConflictError",
    "SupabaseFlowStore",
    "HttpxWebhookInvoker",
    "SupabaseMediaResolver",
    "media_kind",
    "BusinessHoursService",
    "DaySchedule",
    "Holiday",
    "HolidayType",
    "is_open_at",
    "next_open_time",
    "format_next_open",
    "DelayScheduler",
    "KeyedLock",
]
