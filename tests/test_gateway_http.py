import asyncio
import json

import httpx
import pytest

from anniv.config.settings import ApiSettings
from anniv.errors import ApiError, ApiTimeoutError, MalformedResponseError
from anniv.gateway.http import HttpQuizGateway
from anniv.transport import join_url

QUIZ_PAYLOAD = {
    "message": "ok",
    "data": {
        "quizCode": "ANNIV25QZ-0001",
        "title": "quiz",
        "questions": [
            {
                "id": 1,
                "idxNo": 1,
                "content": "Which constellation?",
                "options": [
                    {"id": 1, "idxNo": 1, "content": "Big Dipper"},
                    {"id": 2, "idxNo": 2, "content": "Galaxy Center", "ifCorrect": True},
                ],
            },
            {
                "id": 4,
                "idxNo": 2,
                "content": "One word",
                "options": [{"id": 13, "idxNo": 1, "content": "[填空]"}],
            },
        ],
    },
}

CERTIFICATE_DATA = {
    "fullNo": "SCS01-0700-0001",
    "scsCode": "SCS01",
    "daysToTarget": 700,
    "name": "Alice",
    "startDate": "2023-10-07",
    "workNo": "E001",
}


def _gateway(handler, base_url: str = "http://backend.test/api") -> HttpQuizGateway:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpQuizGateway(ApiSettings(base_url=base_url, timeout_seconds=5), client=client)


def test_join_url_handles_slashes() -> None:
    assert join_url("http://h/api/", "/anniv/quiz") == "http://h/api/anniv/quiz"
    assert join_url("http://h/api", "anniv/quiz") == "http://h/api/anniv/quiz"


def test_fetch_quiz_parses_questions_and_options() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, str(request.url)))
        return httpx.Response(200, json=QUIZ_PAYLOAD)

    quiz = asyncio.run(_gateway(handler, "http://backend.test/api/").fetch_quiz())

    assert seen == [("GET", "http://backend.test/api/anniv/quiz")]
    assert quiz.quiz_code == "ANNIV25QZ-0001"
    first, text = quiz.questions
    assert [o.label for o in first.options] == ["A", "B"]
    assert first.options[0].if_correct is None
    assert first.options[1].if_correct is True
    assert text.is_text_input("[填空]")


def test_fetch_quiz_rejects_missing_questions() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"message": "ok", "data": {"quizCode": "X"}})

    with pytest.raises(MalformedResponseError):
        asyncio.run(_gateway(handler).fetch_quiz())


def test_non_success_message_raises_with_server_text() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"message": "题库未发布", "data": None})

    with pytest.raises(ApiError, match="题库未发布"):
        asyncio.run(_gateway(handler).fetch_quiz())


def test_http_error_carries_status_and_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="maintenance")

    with pytest.raises(ApiError) as excinfo:
        asyncio.run(_gateway(handler).fetch_quiz())
    assert excinfo.value.status_code == 503
    assert excinfo.value.body == "maintenance"
    assert "HTTP 503" in str(excinfo.value)
    assert "maintenance" in str(excinfo.value)


def test_timeout_maps_to_timeout_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(ApiTimeoutError):
        asyncio.run(_gateway(handler).fetch_quiz())


def test_non_json_body_is_malformed() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>")

    with pytest.raises(MalformedResponseError):
        asyncio.run(_gateway(handler).fetch_quiz())


def test_validate_sends_answers_and_quiz_code() -> None:
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(
            200,
            json={
                "message": "ok",
                "data": {
                    "allCorrect": False,
                    "items": [{"questionId": 2, "correct": False}],
                    "passToken": "tok",
                    "expiresAt": "2025-09-07T00:00:00Z",
                },
            },
        )

    answers = [{"questionId": 2, "optionId": 5}]
    result = asyncio.run(_gateway(handler).validate_answers(answers, "ANNIV25QZ-0001"))

    assert bodies == [{"answers": answers, "quizCode": "ANNIV25QZ-0001"}]
    assert result.pass_token == "tok"
    assert result.all_correct is False
    assert result.items[0].question_id == 2


def test_validate_without_pass_token_is_malformed() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"message": "ok", "data": {"allCorrect": True, "passToken": ""}})

    with pytest.raises(MalformedResponseError):
        asyncio.run(_gateway(handler).validate_answers([{"questionId": 1, "optionId": 1}], "Q"))


def test_validate_rejects_empty_answers() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    with pytest.raises(ValueError):
        asyncio.run(_gateway(handler).validate_answers([], "Q"))


def test_issue_accepts_all_success_messages_and_omits_empty_wishes() -> None:
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"message": "保存成功", "data": CERTIFICATE_DATA})

    certificate = asyncio.run(
        _gateway(handler).issue_certificate(
            name="Alice", join_date="2023-10-07", employee_id="E001", wishes=None, pass_token="tok"
        )
    )

    assert bodies == [{"name": "Alice", "startDate": "2023-10-07", "workNo": "E001", "passToken": "tok"}]
    assert certificate.full_no == "SCS01-0700-0001"
    assert certificate.days_to_target == 700
    assert certificate.wishes is None


def test_issue_includes_wishes_when_given() -> None:
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"message": "恭喜成功", "data": {**CERTIFICATE_DATA, "wishes": "hi"}})

    certificate = asyncio.run(
        _gateway(handler).issue_certificate(
            name="Alice", join_date="2023-10-07", employee_id="E001", wishes="hi", pass_token="tok"
        )
    )
    assert bodies[0]["wishes"] == "hi"
    assert certificate.wishes == "hi"


def test_issue_without_full_no_is_malformed() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"message": "ok", "data": {**CERTIFICATE_DATA, "fullNo": ""}})

    with pytest.raises(MalformedResponseError):
        asyncio.run(
            _gateway(handler).issue_certificate(
                name="Alice", join_date="2023-10-07", employee_id="E001", wishes=None, pass_token="tok"
            )
        )
