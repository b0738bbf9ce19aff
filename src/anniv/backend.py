"""Development backend for the three wizard endpoints.

Serves the built-in question set, scores answers, signs pass tokens and issues
certificates into the configured repository.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from jose import JWTError, jwt
from pydantic import BaseModel

from .config.settings import BackendSettings
from .models import CertificateRecord, CertificateResult, QuizData
from .quiz_bank import ANNIVERSARY_QUIZ, quiz_to_wire, score_answer
from .repository.base import CertificateRepository

logger = logging.getLogger(__name__)

TOKEN_ALGORITHM = "HS256"
# fullNo carries the day count in four digits
MAX_DAYS = 9999


class AnswerIn(BaseModel):
    questionId: int
    optionId: Optional[int] = None


class ValidateIn(BaseModel):
    answers: list[AnswerIn] = []
    quizCode: str = ""


class IssueIn(BaseModel):
    name: str = ""
    startDate: str = ""
    workNo: str = ""
    wishes: Optional[str] = None
    passToken: str = ""


class PassTokenSigner:
    """Signs and checks pass tokens tying a visitor to a validated quiz."""

    def __init__(self, secret: str, ttl_hours: int):
        self.secret = secret
        self.ttl = timedelta(hours=ttl_hours)

    def issue(self, quiz_code: str, now: datetime | None = None) -> tuple[str, datetime]:
        now = now or datetime.now(timezone.utc)
        expires_at = now + self.ttl
        token = jwt.encode(
            {"quiz": quiz_code, "iat": int(now.timestamp()), "exp": int(expires_at.timestamp())},
            self.secret,
            algorithm=TOKEN_ALGORITHM,
        )
        return token, expires_at

    def verify(self, token: str) -> str | None:
        """Return the quiz code of a valid token, None otherwise."""
        try:
            claims = jwt.decode(token, self.secret, algorithms=[TOKEN_ALGORITHM])
        except JWTError:
            return None
        return claims.get("quiz")


def _envelope(data: dict, message: str = "ok") -> dict:
    return {"message": message, "data": data}


def certificate_to_wire(certificate: CertificateResult) -> dict:
    data = {
        "fullNo": certificate.full_no,
        "scsCode": certificate.scs_code,
        "daysToTarget": certificate.days_to_target,
        "name": certificate.name,
        "startDate": certificate.start_date,
        "workNo": certificate.work_no,
    }
    if certificate.wishes:
        data["wishes"] = certificate.wishes
    return data


def create_app(
    settings: BackendSettings,
    repository: CertificateRepository,
    quiz: QuizData = ANNIVERSARY_QUIZ,
) -> FastAPI:
    app = FastAPI(title="Anniversary Certificate Dev Backend", version="1.0.0")
    router = APIRouter(prefix="/api/anniv")
    signer = PassTokenSigner(settings.token_secret, settings.pass_token_ttl_hours)
    issue_lock = asyncio.Lock()

    if settings.token_secret.strip().lower() in {"change-me", "secret", ""}:
        logger.warning("BACKEND_TOKEN_SECRET is the default value; do not expose this backend")

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=int(exc.status_code), content={"message": str(exc.detail)})

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    @router.get("/quiz")
    async def get_quiz() -> dict:
        return _envelope(quiz_to_wire(quiz))

    @router.post("/quiz/validate")
    async def validate_quiz(body: ValidateIn) -> dict:
        if not body.answers or not body.quizCode:
            raise HTTPException(status_code=400, detail="Invalid request format")
        if body.quizCode != quiz.quiz_code:
            raise HTTPException(status_code=400, detail="Unknown quiz code")

        items = [
            {
                "questionId": answer.questionId,
                "correct": score_answer(quiz, answer.questionId, answer.optionId),
            }
            for answer in body.answers
        ]
        # Scoring is informational; a token is issued regardless of correctness.
        token, expires_at = signer.issue(quiz.quiz_code)
        all_correct = all(item["correct"] for item in items)
        logger.info("Quiz %s validated: %d answers, all_correct=%s", body.quizCode, len(items), all_correct)
        return _envelope(
            {
                "allCorrect": all_correct,
                "items": items,
                "passToken": token,
                "expiresAt": expires_at.isoformat(),
            }
        )

    @router.post("/certificates/issue")
    async def issue_certificate(body: IssueIn) -> dict:
        name, start, work_no = body.name.strip(), body.startDate.strip(), body.workNo.strip()
        if not name or not start or not work_no or not body.passToken:
            raise HTTPException(status_code=400, detail="Missing required fields")
        if signer.verify(body.passToken) != quiz.quiz_code:
            raise HTTPException(status_code=401, detail="Invalid pass token")
        try:
            start_date = date.fromisoformat(start)
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid startDate")
        days = (settings.target_date - start_date).days
        if not 0 <= days <= MAX_DAYS:
            raise HTTPException(status_code=400, detail="startDate out of range")

        async with issue_lock:
            existing = await repository.get_by_work_no(work_no)
            if existing is not None:
                if existing.certificate.name != name:
                    logger.warning(
                        "workNo already holds certificate %s under another name", existing.certificate.full_no
                    )
                    raise HTTPException(status_code=409, detail="workNo already issued to another name")
                logger.info("Returning existing certificate %s", existing.certificate.full_no)
                return _envelope(certificate_to_wire(existing.certificate))

            sequence = await repository.count_by_days(days) + 1
            certificate = CertificateResult(
                full_no=f"{settings.scs_code}-{days:04d}-{sequence:04d}",
                scs_code=settings.scs_code,
                days_to_target=days,
                name=name,
                start_date=start_date.isoformat(),
                work_no=work_no,
                wishes=(body.wishes or "").strip() or None,
            )
            await repository.save(CertificateRecord(certificate=certificate, created_at=datetime.now(timezone.utc)))

        logger.info("Certificate %s issued", certificate.full_no)
        return _envelope(certificate_to_wire(certificate), message="恭喜成功")

    app.include_router(router)
    return app
