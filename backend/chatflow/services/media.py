"""
Media resolver - Stored media lookup for IMAGE and FILE nodes
"""
import logging
from typing import Any, Optional

from ..core.config import settings
from ..core.supabase_client import supabase
from .adapters import MediaRef

logger = logging.getLogger(__name__)


def media_kind(mime_type: Optional[str]) -> str:
    """image, video, audio or document"""
    mime_type = (mime_type or "").lower()
    if mime_type.startswith("image/"):
        return "image"
    if mime_type.startswith("video/"):
        return "video"
    if mime_type.startswith("audio/"):
        return "audio"
    return "document"


class SupabaseMediaResolver:
    """Resolves media ids to public storage URLs, scoped to the tenant"""

    def __init__(self, client: Any = None, bucket: Optional[str] = None):
        self.client = client or supabase
        self.bucket = bucket or settings.MEDIA_BUCKET

    async def resolve(self, media_id: str, tenant_id: str) -> Optional[MediaRef]:
        """Return the media's reference, or None when it does not exist"""
        response = self.client.table(settings.MEDIA_TABLE).select("*").eq(
            "id", media_id
        ).eq("company_id", tenant_id).limit(1).execute()

        if not response.data:
            logger.warning(f"Media {media_id} not found for tenant {tenant_id}")
            return None

        row = response.data[0]
        url = row.get("url")
        if not url and row.get("storage_path"):
            url = self.client.storage.from_(self.bucket).get_public_url(row["storage_path"])
        if not url:
            logger.warning(f"Media {media_id} has no URL or storage path")
            return None

        return MediaRef(
            url=url,
            kind=media_kind(row.get("mime_type")),
            file_name=row.get("original_name") or row.get("file_name"),
        )
