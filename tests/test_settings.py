from datetime import date

import pytest

from anniv.config.settings import Settings, WizardSettings
from anniv.errors import FormValidationError
from anniv.models import ApplicantForm
from anniv.state_machine import validate_form


def test_defaults() -> None:
    settings = Settings()
    assert settings.wizard.min_join_date == date(2017, 9, 6)
    assert settings.wizard.max_join_date == date(2025, 9, 5)
    assert settings.wizard.allow_demo_fallback is False
    assert settings.backend.target_date == date(2025, 9, 6)
    assert settings.api.export_timeout_seconds == 60


def test_env_overrides_join_window(monkeypatch) -> None:
    monkeypatch.setenv("ANNIV_WIZARD_MIN_JOIN_DATE", "1998-05-12")
    monkeypatch.setenv("ANNIV_API_BASE_URL", "https://anniv.example/api")
    settings = Settings()
    assert settings.api.base_url == "https://anniv.example/api"

    form = ApplicantForm(name="Alice", employee_id="E001", join_date="1990-01-01", wishes="hi")
    with pytest.raises(FormValidationError, match="入职时间不能早于1998年5月12日"):
        validate_form(form, "token", settings.wizard)

    form.join_date = "2000-01-01"
    validate_form(form, "token", settings.wizard)


def test_missing_pass_token_is_last_rule() -> None:
    form = ApplicantForm(name="Alice", employee_id="E001", join_date="2020-01-01", wishes="")
    with pytest.raises(FormValidationError, match="请输入祝福语"):
        validate_form(form, None, WizardSettings())

    form.wishes = "hi"
    with pytest.raises(FormValidationError, match="请先完成问答验证"):
        validate_form(form, None, WizardSettings())
