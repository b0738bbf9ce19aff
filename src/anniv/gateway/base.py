"""Abstract gateway to the quiz and certificate endpoints."""

from abc import ABC, abstractmethod
from typing import Optional

from ..models import CertificateResult, QuizData, ValidationResult


class QuizGateway(ABC):
    """Abstract interface for the three wizard backend calls."""

    @abstractmethod
    async def fetch_quiz(self) -> QuizData:
        """Fetch the active question set."""
        pass

    @abstractmethod
    async def validate_answers(self, answers: list[dict], quiz_code: str) -> ValidationResult:
        """Validate a full answer set and obtain a pass token."""
        pass

    @abstractmethod
    async def issue_certificate(
        self,
        *,
        name: str,
        join_date: str,
        employee_id: str,
        wishes: Optional[str],
        pass_token: str,
    ) -> CertificateResult:
        """Issue a certificate for a validated visitor."""
        pass

    async def aclose(self) -> None:
        """Release network resources."""
        pass
