"""HTTP gateway to the anniversary backend."""

import logging
from typing import Optional

import httpx

from ..config.settings import ApiSettings
from ..errors import ApiError, MalformedResponseError
from ..models import AnswerItem, CertificateResult, Option, Question, QuizData, ValidationResult
from ..transport import ApiTransport
from .base import QuizGateway

logger = logging.getLogger(__name__)

SUCCESS_MESSAGES = frozenset({"恭喜成功", "ok", "保存成功"})


class HttpQuizGateway(QuizGateway):
    """httpx-backed gateway for GET /anniv/quiz and friends."""

    def __init__(self, settings: ApiSettings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self.transport = ApiTransport(settings.base_url, settings.timeout_seconds, client)

    def _to_option(self, data: dict) -> Option:
        if_correct = data.get("ifCorrect")
        return Option(
            id=int(data["id"]),
            idx_no=int(data["idxNo"]),
            content=str(data["content"]),
            if_correct=None if if_correct is None else bool(if_correct),
        )

    def _to_question(self, data: dict) -> Question:
        return Question(
            id=int(data["id"]),
            idx_no=int(data["idxNo"]),
            content=str(data["content"]),
            options=tuple(self._to_option(item) for item in data.get("options") or []),
        )

    def _to_quiz(self, data: dict) -> QuizData:
        """Convert the fetch-quiz data object to QuizData."""
        return QuizData(
            quiz_code=str(data["quizCode"]),
            title=str(data.get("title") or ""),
            questions=tuple(self._to_question(item) for item in data["questions"]),
        )

    def _to_validation(self, data: dict) -> ValidationResult:
        pass_token = data["passToken"]
        if not pass_token:
            raise KeyError("passToken")
        return ValidationResult(
            all_correct=bool(data.get("allCorrect")),
            items=tuple(
                AnswerItem(question_id=int(item["questionId"]), correct=bool(item["correct"]))
                for item in data.get("items") or []
            ),
            pass_token=str(pass_token),
            expires_at=data.get("expiresAt"),
        )

    def _to_certificate(self, data: dict) -> CertificateResult:
        full_no = data["fullNo"]
        if not full_no:
            raise KeyError("fullNo")
        return CertificateResult(
            full_no=str(full_no),
            scs_code=str(data.get("scsCode") or ""),
            days_to_target=int(data["daysToTarget"]),
            name=str(data["name"]),
            start_date=str(data["startDate"]),
            work_no=str(data["workNo"]),
            wishes=data.get("wishes"),
        )

    def _unwrap(self, payload: dict, accepted: frozenset, fallback_message: str) -> dict:
        """Return payload["data"] when the envelope reports success."""
        message = payload.get("message")
        data = payload.get("data")
        if message not in accepted:
            raise ApiError(str(message or fallback_message))
        if not isinstance(data, dict):
            raise MalformedResponseError(f"{fallback_message}: response has no data")
        return data

    async def fetch_quiz(self) -> QuizData:
        payload = await self.transport.request_json("GET", "/anniv/quiz")
        data = self._unwrap(payload, frozenset({"ok"}), "Failed to load quiz")
        try:
            quiz = self._to_quiz(data)
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedResponseError(f"malformed quiz data: {exc}") from exc
        logger.info("Loaded quiz %s with %d questions", quiz.quiz_code, len(quiz.questions))
        return quiz

    async def validate_answers(self, answers: list[dict], quiz_code: str) -> ValidationResult:
        if not answers:
            raise ValueError("answers must not be empty")
        payload = await self.transport.request_json(
            "POST",
            "/anniv/quiz/validate",
            json={"answers": answers, "quizCode": quiz_code},
        )
        data = self._unwrap(payload, frozenset({"ok"}), "Quiz validation failed")
        try:
            result = self._to_validation(data)
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedResponseError(f"malformed validation data: {exc}") from exc
        logger.info(
            "Quiz %s validated (%d answers, all_correct=%s)", quiz_code, len(answers), result.all_correct
        )
        return result

    async def issue_certificate(
        self,
        *,
        name: str,
        join_date: str,
        employee_id: str,
        wishes: Optional[str],
        pass_token: str,
    ) -> CertificateResult:
        body = {
            "name": name,
            "startDate": join_date,
            "workNo": employee_id,
            "passToken": pass_token,
        }
        if wishes:
            body["wishes"] = wishes
        payload = await self.transport.request_json("POST", "/anniv/certificates/issue", json=body)
        data = self._unwrap(payload, SUCCESS_MESSAGES, "Certificate generation failed")
        try:
            certificate = self._to_certificate(data)
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedResponseError(f"malformed certificate data: {exc}") from exc
        logger.info("Certificate %s issued", certificate.full_no)
        return certificate

    async def aclose(self) -> None:
        await self.transport.aclose()
