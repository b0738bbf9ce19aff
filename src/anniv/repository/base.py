"""Abstract repository interfaces."""

from abc import ABC, abstractmethod
from typing import Optional

from ..models import CertificateRecord


class CertificateRepository(ABC):
    """Abstract interface for issued certificate storage."""

    @abstractmethod
    async def save(self, record: CertificateRecord) -> None:
        """Persist a newly issued certificate."""
        pass

    @abstractmethod
    async def get_by_work_no(self, work_no: str) -> Optional[CertificateRecord]:
        """Get the certificate issued to an employee, if any."""
        pass

    @abstractmethod
    async def count_by_days(self, days_to_target: int) -> int:
        """Count certificates sharing a day count (for numbering)."""
        pass

    @abstractmethod
    async def get_all(self) -> list[CertificateRecord]:
        """Get all certificates, newest first."""
        pass
