import asyncio
from datetime import date

from anniv.config.settings import Settings, WizardSettings
from anniv.gateway import DemoFallbackGateway, HttpQuizGateway, create_gateway
from anniv.quiz_bank import ANNIVERSARY_QUIZ

from conftest import FakeGateway


def _failing_demo() -> DemoFallbackGateway:
    inner = FakeGateway()
    inner.failures = {"fetch": 5, "validate": 5, "issue": 5}
    return DemoFallbackGateway(inner, target_date=date(2025, 9, 6))


def test_demo_serves_builtin_quiz_when_backend_fails() -> None:
    quiz = asyncio.run(_failing_demo().fetch_quiz())
    assert quiz is ANNIVERSARY_QUIZ


def test_demo_pass_token_and_scoring() -> None:
    answers = [{"questionId": 1, "optionId": 3}, {"questionId": 2, "optionId": 7}]
    result = asyncio.run(_failing_demo().validate_answers(answers, "ANNIV25QZ-0001"))

    assert result.pass_token.startswith("demo_")
    assert [item.correct for item in result.items] == [True, False]
    assert result.all_correct is False


def test_demo_certificate_numbers_increment() -> None:
    async def scenario():
        gateway = _failing_demo()
        kwargs = dict(name="Alice", join_date="2023-10-07", employee_id="E001", wishes=None, pass_token="demo_x")
        return await gateway.issue_certificate(**kwargs), await gateway.issue_certificate(**kwargs)

    first, second = asyncio.run(scenario())
    assert first.full_no == "SCS01-0700-0001"
    assert second.full_no == "SCS01-0700-0002"
    assert first.days_to_target == 700


def test_demo_passes_through_real_results() -> None:
    inner = FakeGateway()
    gateway = DemoFallbackGateway(inner, target_date=date(2025, 9, 6))
    quiz = asyncio.run(gateway.fetch_quiz())
    assert quiz is inner.quiz


def test_factory_wraps_only_when_enabled() -> None:
    plain = create_gateway(Settings())
    assert isinstance(plain, HttpQuizGateway)

    settings = Settings(wizard=WizardSettings(allow_demo_fallback=True))
    wrapped = create_gateway(settings)
    assert isinstance(wrapped, DemoFallbackGateway)
    assert isinstance(wrapped.inner, HttpQuizGateway)
