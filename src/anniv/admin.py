"""Authenticated client for the admin console endpoints."""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx
from jose import JWTError, jwt

from .config.settings import ApiSettings
from .errors import ApiError, AuthExpiredError, MalformedResponseError
from .transport import ApiTransport

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = {
    "id": "fullNo",
    "name": "name",
    "employeeId": "workNo",
    "joinDate": "startDate",
    "workYears": "workDays",
    "blessing": "wishes",
    "createdAt": "createdAt",
}

TREND_RANGES = (7, 30, 90)


def normalize_display_date(value: str) -> str:
    """Turn yyyy/M/d, yyyy.M.d or 'yyyy-MM-dd HH:mm:ss' into yyyy-MM-dd.

    Returns "" when the value cannot be parsed.
    """
    if not value:
        return ""
    base = value.strip().split(" ")[0].replace(".", "-").replace("/", "-")
    parts = base.split("-")
    if len(parts) != 3:
        return ""
    try:
        year, month, day = (int(p) for p in parts)
    except ValueError:
        return ""
    return f"{year}-{month:02d}-{day:02d}"


@dataclass(frozen=True)
class Credentials:
    """Admin session passed explicitly into every authenticated call."""
    token: str
    username: str
    name: str = ""

    def is_expired(self, now: Optional[float] = None) -> bool:
        """Check the unverified exp claim; unreadable tokens count as expired."""
        try:
            claims = jwt.get_unverified_claims(self.token)
        except JWTError:
            return True
        exp = claims.get("exp")
        if exp is None:
            return False
        return (now if now is not None else time.time()) >= float(exp)


@dataclass(frozen=True)
class AdminCertificate:
    id: str
    name: str
    employee_id: str
    join_date: str
    work_years: int
    blessing: str
    created_at: str
    status: str = "generated"


@dataclass(frozen=True)
class DashboardStats:
    total_certificates: int
    today_submissions: int
    average_work_years: float
    valid_blessings: int


@dataclass(frozen=True)
class QuestionStat:
    id: int
    question: str
    total_answers: int
    correct_answers: int
    correct_rate: float
    is_simple: bool


@dataclass(frozen=True)
class SurveyStats:
    total_participants: int
    passed_participants: int
    pass_rate: float
    average_score: float
    today_answers: int
    questions: list[QuestionStat] = field(default_factory=list)


@dataclass(frozen=True)
class TrendPoint:
    label: str
    count: int


class AdminClient:
    """Client for login, certificate CRUD, export and statistics."""

    def __init__(self, settings: ApiSettings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self.transport = ApiTransport(settings.base_url, settings.timeout_seconds, client)

    async def aclose(self) -> None:
        await self.transport.aclose()

    async def login(self, username: str, password: str) -> Credentials:
        payload = await self.transport.request_json(
            "POST", "/auth/login", json={"username": username, "password": password}
        )
        token = payload.get("token")
        if not token:
            raise MalformedResponseError("login response has no token")
        logger.info("Admin %s logged in", username)
        return Credentials(token=str(token), username=username, name=str(payload.get("name") or username))

    async def _authed(
        self,
        method: str,
        path: str,
        credentials: Credentials,
        **kwargs: Any,
    ) -> httpx.Response:
        if credentials is None or not credentials.token or credentials.is_expired():
            raise AuthExpiredError("admin session expired; please log in again")
        headers = {"Authorization": f"Bearer {credentials.token}"}
        try:
            return await self.transport.request(method, path, headers=headers, **kwargs)
        except ApiError as exc:
            if exc.status_code == 401:
                logger.info("Admin token rejected; forcing logout")
                raise AuthExpiredError("admin session rejected by server") from exc
            raise

    async def _authed_json(self, method: str, path: str, credentials: Credentials, **kwargs: Any) -> Any:
        response = await self._authed(method, path, credentials, **kwargs)
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponseError("response body is not JSON", status_code=response.status_code) from exc

    def _to_certificate(self, data: dict) -> AdminCertificate:
        return AdminCertificate(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            employee_id=str(data.get("employeeId") or ""),
            join_date=str(data.get("joinDate") or ""),
            work_years=int(data.get("workYears") or 0),
            blessing=str(data.get("blessing") or ""),
            created_at=str(data.get("createdAt") or ""),
            status=str(data.get("status") or "generated"),
        )

    async def list_certificates(self, credentials: Credentials, q: Optional[str] = None) -> list[AdminCertificate]:
        params = {"q": q.strip()} if q and q.strip() else None
        data = await self._authed_json("GET", "/admin/certificates", credentials, params=params)
        if isinstance(data, dict):
            data = data.get("data") or data.get("items") or []
        try:
            return [self._to_certificate(item) for item in data]
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedResponseError(f"malformed certificate list: {exc}") from exc

    async def update_certificate(self, credentials: Credentials, full_no: str, changes: dict) -> None:
        body = dict(changes)
        if "joinDate" in body:
            body["joinDate"] = normalize_display_date(str(body["joinDate"]))
        await self._authed("PUT", f"/admin/certificates/{full_no}", credentials, json=body)
        logger.info("Certificate %s updated", full_no)

    async def delete_certificate(self, credentials: Credentials, full_no: str) -> None:
        await self._authed("DELETE", f"/admin/certificates/{full_no}", credentials)
        logger.info("Certificate %s deleted", full_no)

    async def export_certificates(
        self,
        credentials: Credentials,
        columns: list[str],
        q: Optional[str] = None,
        limit: int = 5000,
    ) -> bytes:
        """Export certificates as CSV; columns use the table's keys (see EXPORT_COLUMNS)."""
        if not columns:
            raise ValueError("select at least one column to export")
        unknown = [c for c in columns if c not in EXPORT_COLUMNS]
        if unknown:
            raise ValueError(f"unknown export columns: {', '.join(unknown)}")
        payload: dict[str, Any] = {
            "columns": [EXPORT_COLUMNS[c] for c in columns],
            "limit": limit,
            "format": "csv",
        }
        if q and q.strip():
            payload["q"] = q.strip()
        response = await self._authed(
            "POST",
            "/admin/certificates/export",
            credentials,
            json=payload,
            timeout=self.settings.export_timeout_seconds,
        )
        return response.content

    async def get_stats(self, credentials: Credentials) -> DashboardStats:
        data = await self._authed_json("GET", "/admin/stats", credentials)
        try:
            return DashboardStats(
                total_certificates=int(data["totalCertificates"]),
                today_submissions=int(data["todaySubmissions"]),
                average_work_years=float(data["averageWorkYears"]),
                valid_blessings=int(data["validBlessings"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedResponseError(f"malformed stats: {exc}") from exc

    async def get_survey_stats(self, credentials: Credentials) -> SurveyStats:
        data = await self._authed_json("GET", "/admin/survey-stats", credentials)
        try:
            return SurveyStats(
                total_participants=int(data["totalParticipants"]),
                passed_participants=int(data["passedParticipants"]),
                pass_rate=float(data["passRate"]),
                average_score=float(data["averageScore"]),
                today_answers=int(data["todayAnswers"]),
                questions=[
                    QuestionStat(
                        id=int(item["id"]),
                        question=str(item["question"]),
                        total_answers=int(item["totalAnswers"]),
                        correct_answers=int(item["correctAnswers"]),
                        correct_rate=float(item["correctRate"]),
                        is_simple=bool(item.get("isSimple")),
                    )
                    for item in data.get("questions") or []
                ],
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedResponseError(f"malformed survey stats: {exc}") from exc

    async def get_trend(self, credentials: Credentials, days: int = 30) -> list[TrendPoint]:
        """Certificate issuance trend; missing values count as zero."""
        if days not in TREND_RANGES:
            raise ValueError(f"days must be one of {TREND_RANGES}")
        data = await self._authed_json("GET", "/admin/trend", credentials, params={"days": days})
        labels = data.get("labels") or []
        values = data.get("values") or []
        return [
            TrendPoint(label=str(label), count=int(values[i]) if i < len(values) and values[i] is not None else 0)
            for i, label in enumerate(labels)
        ]
