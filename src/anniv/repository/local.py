"""Local JSON file repository implementation."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import aiofiles

from ..models import CertificateRecord, CertificateResult
from .base import CertificateRepository

logger = logging.getLogger(__name__)


def record_to_row(record: CertificateRecord) -> dict:
    """Convert CertificateRecord to a storage row."""
    certificate = record.certificate
    return {
        "full_no": certificate.full_no,
        "scs_code": certificate.scs_code,
        "days_to_target": certificate.days_to_target,
        "name": certificate.name,
        "start_date": certificate.start_date,
        "work_no": certificate.work_no,
        "wishes": certificate.wishes,
        "created_at": record.created_at.isoformat(),
    }


def row_to_record(data: dict) -> CertificateRecord:
    """Convert a storage row to CertificateRecord."""
    created_at = data["created_at"]
    if isinstance(created_at, str):
        created_at = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
    return CertificateRecord(
        certificate=CertificateResult(
            full_no=data["full_no"],
            scs_code=data["scs_code"],
            days_to_target=int(data["days_to_target"]),
            name=data["name"],
            start_date=data["start_date"],
            work_no=data["work_no"],
            wishes=data.get("wishes"),
        ),
        created_at=created_at,
    )


class LocalCertificateRepository(CertificateRepository):
    """JSON file-based certificate repository."""

    def __init__(self, data_path: str):
        self.file_path = Path(data_path) / "certificates.json"

    async def _read_all(self) -> list[dict]:
        """Read all certificates from file."""
        if not self.file_path.exists():
            return []
        async with aiofiles.open(self.file_path, "r", encoding="utf-8") as f:
            content = await f.read()
            return json.loads(content) if content else []

    async def _write_all(self, data: list[dict]) -> None:
        """Write all certificates to file."""
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(self.file_path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(data, indent=2, ensure_ascii=False, default=str))

    async def save(self, record: CertificateRecord) -> None:
        data = await self._read_all()
        data.append(record_to_row(record))
        await self._write_all(data)
        logger.info("Certificate %s stored in %s", record.certificate.full_no, self.file_path)

    async def get_by_work_no(self, work_no: str) -> Optional[CertificateRecord]:
        data = await self._read_all()
        for item in data:
            if item["work_no"] == work_no:
                return row_to_record(item)
        return None

    async def count_by_days(self, days_to_target: int) -> int:
        data = await self._read_all()
        return sum(1 for item in data if int(item["days_to_target"]) == days_to_target)

    async def get_all(self) -> list[CertificateRecord]:
        data = await self._read_all()
        records = [row_to_record(item) for item in data]
        return sorted(records, key=lambda r: r.created_at, reverse=True)
