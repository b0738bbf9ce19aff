"""Supabase repository implementation."""

import logging
from typing import Optional

from supabase import create_client, Client

from ..models import CertificateRecord
from .base import CertificateRepository
from .local import record_to_row, row_to_record

logger = logging.getLogger(__name__)

TABLE = "certificates"


class SupabaseClientManager:
    """Manages Supabase client lifecycle."""

    def __init__(self, url: str, key: str):
        self.url = url
        self.key = key
        self._client: Optional[Client] = None

    def get_client(self) -> Client:
        """Get or create Supabase client."""
        if self._client is None:
            self._client = create_client(self.url, self.key)
        return self._client


class SupabaseCertificateRepository(CertificateRepository):
    """Supabase-backed certificate repository."""

    def __init__(self, client_manager: SupabaseClientManager):
        self.client_manager = client_manager

    async def save(self, record: CertificateRecord) -> None:
        client = self.client_manager.get_client()
        client.table(TABLE).insert(record_to_row(record)).execute()
        logger.info("Certificate %s stored in Supabase", record.certificate.full_no)

    async def get_by_work_no(self, work_no: str) -> Optional[CertificateRecord]:
        client = self.client_manager.get_client()
        response = client.table(TABLE).select("*").eq("work_no", work_no).limit(1).execute()
        if response.data:
            return row_to_record(response.data[0])
        return None

    async def count_by_days(self, days_to_target: int) -> int:
        client = self.client_manager.get_client()
        response = (
            client.table(TABLE)
            .select("full_no", count="exact")
            .eq("days_to_target", days_to_target)
            .execute()
        )
        return int(response.count or 0)

    async def get_all(self) -> list[CertificateRecord]:
        client = self.client_manager.get_client()
        response = (
            client.table(TABLE)
            .select("*")
            .order("created_at", desc=True)
            .execute()
        )
        return [row_to_record(item) for item in response.data]
