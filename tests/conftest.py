import asyncio
from typing import Optional

import pytest

from anniv.config.settings import WizardSettings
from anniv.errors import ApiError
from anniv.gateway.base import QuizGateway
from anniv.models import AnswerItem, CertificateResult, Option, Question, QuizData, ValidationResult
from anniv.quiz_bank import score_answer


THREE_QUESTION_QUIZ = QuizData(
    quiz_code="TESTQZ-0001",
    title="test quiz",
    questions=(
        Question(
            id=1,
            idx_no=1,
            content="Which constellation?",
            options=(
                Option(id=1, idx_no=1, content="Big Dipper"),
                Option(id=2, idx_no=2, content="Galaxy Center", if_correct=True),
                Option(id=3, idx_no=3, content="Orion"),
                Option(id=4, idx_no=4, content="Other"),
            ),
        ),
        Question(
            id=2,
            idx_no=2,
            content="Founded in?",
            options=(
                Option(id=5, idx_no=1, content="2017", if_correct=True),
                Option(id=6, idx_no=2, content="2018", if_correct=False),
            ),
        ),
        Question(
            id=3,
            idx_no=3,
            content="Which city?",
            options=(
                Option(id=7, idx_no=1, content="Shanghai", if_correct=False),
                Option(id=8, idx_no=2, content="Hangzhou", if_correct=True),
            ),
        ),
    ),
)


class FakeGateway(QuizGateway):
    """Scripted gateway: counts calls, can fail N times, can block on gates."""

    def __init__(self, quiz: QuizData = THREE_QUESTION_QUIZ):
        self.quiz = quiz
        self.failures = {"fetch": 0, "validate": 0, "issue": 0}
        self.calls = {"fetch": 0, "validate": 0, "issue": 0}
        self.validate_gate: Optional[asyncio.Event] = None
        self.issue_gate: Optional[asyncio.Event] = None
        self.last_answers: Optional[list[dict]] = None
        self.issue_kwargs: Optional[dict] = None

    def _record(self, name: str) -> None:
        self.calls[name] += 1
        if self.failures[name] > 0:
            self.failures[name] -= 1
            raise ApiError(f"{name} unavailable", status_code=503)

    async def fetch_quiz(self) -> QuizData:
        self._record("fetch")
        return self.quiz

    async def validate_answers(self, answers, quiz_code):
        self._record("validate")
        if self.validate_gate is not None:
            await self.validate_gate.wait()
        self.last_answers = answers
        items = tuple(
            AnswerItem(question_id=a["questionId"], correct=score_answer(self.quiz, a["questionId"], a["optionId"]))
            for a in answers
        )
        return ValidationResult(
            all_correct=all(item.correct for item in items),
            items=items,
            pass_token="pass-token-123",
            expires_at="2025-09-07T00:00:00+00:00",
        )

    async def issue_certificate(self, *, name, join_date, employee_id, wishes, pass_token):
        self._record("issue")
        if self.issue_gate is not None:
            await self.issue_gate.wait()
        self.issue_kwargs = {
            "name": name,
            "join_date": join_date,
            "employee_id": employee_id,
            "wishes": wishes,
            "pass_token": pass_token,
        }
        return CertificateResult(
            full_no="SCS01-0700-0001",
            scs_code="SCS01",
            days_to_target=700,
            name=name,
            start_date=join_date,
            work_no=employee_id,
        )


@pytest.fixture()
def quiz() -> QuizData:
    return THREE_QUESTION_QUIZ


@pytest.fixture()
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture()
def wizard_settings() -> WizardSettings:
    return WizardSettings(
        min_join_date="2017-09-06",
        max_join_date="2025-09-05",
        issue_delay_seconds=0,
        hint_delay_seconds=0,
        hint_display_seconds=0,
        text_option_marker="[填空]",
        allow_demo_fallback=False,
    )
