"""Offline demo fallback.

Only wired in when ``ANNIV_WIZARD_ALLOW_DEMO_FALLBACK`` is set. Never enable it
in production: it hides backend outages and fabricates certificate numbers.
"""

import itertools
import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from ..errors import ApiError
from ..models import AnswerItem, CertificateResult, QuizData, ValidationResult
from ..quiz_bank import ANNIVERSARY_QUIZ, score_answer
from .base import QuizGateway

logger = logging.getLogger(__name__)

DEMO_TOKEN_PREFIX = "demo_"


class DemoFallbackGateway(QuizGateway):
    """Wraps a real gateway and substitutes local data when it fails."""

    def __init__(
        self,
        inner: QuizGateway,
        *,
        target_date: date,
        scs_code: str = "SCS01",
        quiz: QuizData = ANNIVERSARY_QUIZ,
    ):
        self.inner = inner
        self.target_date = target_date
        self.scs_code = scs_code
        self.quiz = quiz
        self._sequence = itertools.count(1)

    async def fetch_quiz(self) -> QuizData:
        try:
            return await self.inner.fetch_quiz()
        except ApiError as exc:
            logger.warning("Quiz fetch failed (%s); serving built-in demo quiz", exc)
            return self.quiz

    async def validate_answers(self, answers: list[dict], quiz_code: str) -> ValidationResult:
        try:
            return await self.inner.validate_answers(answers, quiz_code)
        except ApiError as exc:
            logger.warning("Quiz validation failed (%s); issuing demo pass token", exc)
        items = tuple(
            AnswerItem(
                question_id=answer["questionId"],
                correct=score_answer(self.quiz, answer["questionId"], answer.get("optionId")),
            )
            for answer in answers
        )
        expires_at = datetime.now(timezone.utc) + timedelta(hours=24)
        return ValidationResult(
            all_correct=all(item.correct for item in items),
            items=items,
            pass_token=f"{DEMO_TOKEN_PREFIX}{uuid.uuid4().hex}",
            expires_at=expires_at.isoformat(),
        )

    async def issue_certificate(
        self,
        *,
        name: str,
        join_date: str,
        employee_id: str,
        wishes: Optional[str],
        pass_token: str,
    ) -> CertificateResult:
        try:
            return await self.inner.issue_certificate(
                name=name,
                join_date=join_date,
                employee_id=employee_id,
                wishes=wishes,
                pass_token=pass_token,
            )
        except ApiError as exc:
            logger.warning("Certificate issuance failed (%s); generating DEMO certificate", exc)
        days = (self.target_date - date.fromisoformat(join_date)).days
        return CertificateResult(
            full_no=f"{self.scs_code}-{days:04d}-{next(self._sequence):04d}",
            scs_code=self.scs_code,
            days_to_target=days,
            name=name,
            start_date=join_date,
            work_no=employee_id,
            wishes=wishes,
        )

    async def aclose(self) -> None:
        await self.inner.aclose()
