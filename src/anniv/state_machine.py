"""Certificate wizard state machine: hero → quiz → wishes → form → loading → result."""

import asyncio
import logging
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Awaitable, Callable, Optional, TypeVar

from .config.settings import WizardSettings
from .errors import AnnivError, FormValidationError
from .gateway.base import QuizGateway
from .models import (
    CONSTELLATION_QUESTION_ID,
    IDLE,
    Action,
    ApplicantForm,
    CertificateResult,
    Error,
    Loading,
    Question,
    QuizSession,
    ShowingHint,
    Status,
    ValidationResult,
    WizardStep,
    constellation_for,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

MISSING_ANSWER = "请先选择一个答案"
MISSING_ANSWERS = "请先完成答题"
MISSING_WISHES = "请输入祝福语"


def _format_cn_date(value: date) -> str:
    return f"{value.year}年{value.month}月{value.day}日"


def validate_form(form: ApplicantForm, pass_token: Optional[str], settings: WizardSettings) -> None:
    """Check the applicant form; the first violated rule raises FormValidationError."""
    if not form.name.strip():
        raise FormValidationError("请输入姓名")
    if not form.employee_id.strip():
        raise FormValidationError("请输入工号")
    if not form.join_date.strip():
        raise FormValidationError("请输入入职时间")
    try:
        joined = date.fromisoformat(form.join_date.strip())
    except ValueError:
        raise FormValidationError("入职时间格式不正确")
    if joined > settings.max_join_date:
        raise FormValidationError(f"入职时间不能超过{_format_cn_date(settings.max_join_date)}")
    if joined < settings.min_join_date:
        raise FormValidationError(f"入职时间不能早于{_format_cn_date(settings.min_join_date)}")
    if not form.wishes.strip():
        raise FormValidationError(MISSING_WISHES)
    if not pass_token:
        raise FormValidationError("请先完成问答验证")


class CertificateWizard:
    """Drives one visitor through the quiz and certificate flow.

    Every network action is guarded so that a second trigger while the first is
    in flight is ignored. Responses that arrive after the visitor has moved on
    (previous question, restart, step change) are dropped.
    """

    def __init__(
        self,
        gateway: QuizGateway,
        settings: WizardSettings,
        renderer: Optional[Callable[[CertificateResult, Path], Path]] = None,
    ):
        self.gateway = gateway
        self.settings = settings
        self.renderer = renderer
        self.on_hint: Optional[Callable[[str], None]] = None

        self.step = WizardStep.HERO
        self.session = QuizSession()
        self.form = ApplicantForm()
        self.validation: Optional[ValidationResult] = None
        self.certificate: Optional[CertificateResult] = None
        self._status: Status = IDLE
        self.hints: list[str] = []
        self.issue_attempts = 0

        self._epoch = 0
        self._in_flight: set[Action] = set()
        self._issue_lock = asyncio.Lock()
        self._issue_task: Optional[asyncio.Task] = None
        self._timers: set[asyncio.TimerHandle] = set()
        self._deferred_hint: Optional[tuple[str, int]] = None

    @property
    def status(self) -> Status:
        return self._status

    @status.setter
    def status(self, value: Status) -> None:
        self._status = value
        if value == IDLE and self._deferred_hint is not None:
            text, epoch = self._deferred_hint
            self._deferred_hint = None
            if epoch == self._epoch:
                self._schedule_hint(text)

    @property
    def is_loading(self) -> bool:
        return bool(self._in_flight)

    @property
    def error(self) -> Optional[str]:
        return self.status.message if isinstance(self.status, Error) else None

    @property
    def marker(self) -> str:
        return self.settings.text_option_marker

    def _go(self, step: WizardStep) -> None:
        logger.info("Wizard %s -> %s", self.step.name, step.name)
        self.step = step
        self._epoch += 1

    def _is_stale(self, epoch: int, step: WizardStep) -> bool:
        return epoch != self._epoch or step is not self.step

    async def _run(self, action: Action, call: Callable[[], Awaitable[T]]) -> Optional[T]:
        """Run one guarded network action.

        Returns the result, or None when the call failed, was a duplicate, or
        its response went stale.
        """
        if action in self._in_flight:
            logger.debug("%s already in flight; ignoring trigger", action.value)
            return None
        epoch, step = self._epoch, self.step
        self._in_flight.add(action)
        self.status = Loading(action)
        try:
            result = await call()
        except AnnivError as exc:
            if self._is_stale(epoch, step):
                logger.info("Dropping stale %s failure: %s", action.value, exc)
                self._clear_loading(action)
                return None
            logger.warning("%s failed: %s", action.value, exc)
            self.status = Error(str(exc) or f"{action.value} failed", action)
            return None
        finally:
            self._in_flight.discard(action)

        if self._is_stale(epoch, step):
            logger.info("Dropping stale %s response", action.value)
            self._clear_loading(action)
            return None
        self.status = IDLE
        return result

    def _clear_loading(self, action: Action) -> None:
        if isinstance(self.status, Loading) and self.status.action is action:
            self.status = IDLE

    # hero / quiz

    async def explore(self) -> None:
        """hero -> quiz; loads the question set on entry."""
        if self.step is not WizardStep.HERO:
            return
        self._go(WizardStep.QUIZ)
        if self.session.quiz is None:
            await self.fetch_quiz()

    async def fetch_quiz(self) -> None:
        """Load the question set if none is loaded yet."""
        if self.step is not WizardStep.QUIZ or self.session.quiz is not None:
            return
        quiz = await self._run(Action.FETCH_QUIZ, self.gateway.fetch_quiz)
        if quiz is None:
            return
        if not quiz.questions:
            self.status = Error("暂无问题", Action.FETCH_QUIZ)
            return
        self.session.load(quiz)

    async def retry_fetch(self) -> None:
        """Manual retry after a failed question-set load."""
        await self.fetch_quiz()

    def _require_question(self, question_id: int) -> Question:
        if self.step is not WizardStep.QUIZ or self.session.quiz is None:
            raise ValueError("no quiz is active")
        question = self.session.quiz.find_question(question_id)
        if question is None:
            raise ValueError(f"unknown question {question_id}")
        return question

    def _clear_local_error(self) -> None:
        if isinstance(self.status, Error) and not self.status.retryable:
            self.status = IDLE

    def select_option(self, question_id: int, option_id: int) -> None:
        """Record (or replace) the chosen option for a question."""
        question = self._require_question(question_id)
        if question.find_option(option_id) is None:
            raise ValueError(f"option {option_id} does not belong to question {question_id}")
        self.session.select_option(question_id, option_id)
        if question_id == CONSTELLATION_QUESTION_ID:
            self.form.constellation = constellation_for(option_id)
        self._clear_local_error()

    def enter_text(self, question_id: int, text: str) -> None:
        """Record (or replace) a free-text answer."""
        self._require_question(question_id)
        self.session.enter_text(question_id, text)
        self._clear_local_error()

    def _hint_for(self, question: Question) -> Optional[str]:
        if question.is_text_input(self.marker):
            return None
        option_id = self.session.selected_answers.get(question.id)
        if option_id is None or not question.is_wrong_choice(option_id):
            return None
        correct = question.correct_option()
        if correct is None:
            return None
        return f"正确答案：{correct.label}. {correct.content}"

    async def next_question(self) -> None:
        """Advance, or validate on the last question. Wrong answers never block."""
        if self.step is not WizardStep.QUIZ or self.session.quiz is None:
            return
        if Action.VALIDATE in self._in_flight:
            return
        question = self.session.current_question
        if not self.session.has_answer(question, self.marker):
            self.status = Error(MISSING_ANSWER)
            return

        hint = self._hint_for(question)
        self.status = IDLE
        if self.session.is_last_question:
            if await self._validate():
                self._go(WizardStep.WISHES)
                self._schedule_hint(hint)
        else:
            self.session.current_question_index += 1
            self._schedule_hint(hint)

    def previous_question(self) -> None:
        if self.step is not WizardStep.QUIZ or self.session.current_question_index == 0:
            return
        self.session.current_question_index -= 1
        self._epoch += 1
        self.status = IDLE

    async def _validate(self) -> bool:
        answers = self.session.answer_payload(self.marker)
        if not answers:
            self.status = Error(MISSING_ANSWERS)
            return False
        quiz_code = self.session.quiz_code
        result = await self._run(
            Action.VALIDATE,
            lambda: self.gateway.validate_answers(answers, quiz_code),
        )
        if result is None:
            return False
        self.validation = result
        self.session.pass_token = result.pass_token
        self.session.pass_token_expires_at = result.expires_at
        if not result.all_correct:
            logger.info("Quiz passed with wrong answers; progression is not gated on score")
        return True

    # hint overlay

    def _call_later(self, delay: float, callback: Callable[..., None], *args) -> None:
        """Schedule a timer that forgets its handle once it has fired."""
        handle: Optional[asyncio.TimerHandle] = None

        def fire() -> None:
            self._timers.discard(handle)
            callback(*args)

        handle = asyncio.get_running_loop().call_later(delay, fire)
        self._timers.add(handle)

    def _schedule_hint(self, text: Optional[str]) -> None:
        if not text:
            return
        self._call_later(self.settings.hint_delay_seconds, self._show_hint, text, self._epoch)

    def _show_hint(self, text: str, epoch: int) -> None:
        if epoch != self._epoch:
            return
        # Loading and errors keep the screen; the hint waits until status is idle again.
        if isinstance(self.status, (Loading, Error)):
            self._deferred_hint = (text, epoch)
            return
        self.status = ShowingHint(text)
        self.hints.append(text)
        if self.on_hint is not None:
            self.on_hint(text)
        if self.settings.hint_display_seconds > 0:
            self._call_later(self.settings.hint_display_seconds, self._expire_hint, text)

    def _expire_hint(self, text: str) -> None:
        if self.status == ShowingHint(text):
            self.status = IDLE

    def dismiss_hint(self) -> None:
        if isinstance(self.status, ShowingHint):
            self.status = IDLE

    # wishes / form

    def set_wishes(self, text: str) -> None:
        self.form.wishes = text
        self._clear_local_error()

    async def complete_wishes(self) -> None:
        """wishes -> form, re-validating the full answer set."""
        if self.step is not WizardStep.WISHES:
            return
        if not self.form.wishes.strip():
            self.status = Error(MISSING_WISHES)
            return
        if await self._validate():
            self._go(WizardStep.FORM)

    def update_form(
        self,
        *,
        name: Optional[str] = None,
        employee_id: Optional[str] = None,
        join_date: Optional[str] = None,
    ) -> None:
        if name is not None:
            self.form.name = name
        if employee_id is not None:
            self.form.employee_id = employee_id
        if join_date is not None:
            self.form.join_date = join_date

    async def submit_form(self) -> None:
        """form -> loading once every form rule holds."""
        if self.step is not WizardStep.FORM:
            return
        try:
            validate_form(self.form, self.session.pass_token, self.settings)
        except FormValidationError as exc:
            self.status = Error(str(exc))
            return
        self.status = IDLE
        self._go(WizardStep.LOADING)
        self._enter_loading()

    # loading / result

    def _enter_loading(self) -> None:
        """Schedule the delayed issuance exactly once per entry."""
        if self.step is not WizardStep.LOADING or self.certificate is not None:
            return
        if not self.session.pass_token:
            return
        if self._issue_task is not None and not self._issue_task.done():
            return
        self._issue_task = asyncio.get_running_loop().create_task(self._delayed_issue(self._epoch))

    async def _delayed_issue(self, epoch: int) -> None:
        await asyncio.sleep(self.settings.issue_delay_seconds)
        if epoch != self._epoch:
            return
        await self._issue()

    async def _issue(self) -> None:
        async with self._issue_lock:
            if self.certificate is not None or self.step is not WizardStep.LOADING:
                return
            form = self.form
            pass_token = self.session.pass_token
            self.issue_attempts += 1
            result = await self._run(
                Action.ISSUE,
                lambda: self.gateway.issue_certificate(
                    name=form.name.strip(),
                    join_date=form.join_date.strip(),
                    employee_id=form.employee_id.strip(),
                    wishes=form.wishes.strip() or None,
                    pass_token=pass_token,
                ),
            )
            if result is None:
                return
            if result.wishes is None and form.wishes.strip():
                result = replace(result, wishes=form.wishes.strip())
            self.certificate = result
            self._go(WizardStep.RESULT)

    async def retry_issuance(self) -> None:
        """Manual retry after a failed issuance."""
        if self.step is not WizardStep.LOADING or self.certificate is not None:
            return
        if not (isinstance(self.status, Error) and self.status.action is Action.ISSUE):
            return
        await self._issue()

    async def retry(self) -> None:
        """Re-invoke whichever call failed last."""
        if not isinstance(self.status, Error) or self.status.action is None:
            return
        match self.status.action:
            case Action.FETCH_QUIZ:
                await self.retry_fetch()
            case Action.VALIDATE if self.step is WizardStep.QUIZ:
                await self.next_question()
            case Action.VALIDATE if self.step is WizardStep.WISHES:
                await self.complete_wishes()
            case Action.ISSUE:
                await self.retry_issuance()

    async def wait_for_certificate(self) -> Optional[CertificateResult]:
        """Wait for the scheduled issuance to settle."""
        task = self._issue_task
        if task is not None and not task.done():
            await asyncio.wait({task})
        return self.certificate

    async def download(self, path: Path) -> Path:
        """Render the certificate to a file. No state transition."""
        if self.step is not WizardStep.RESULT or self.certificate is None:
            raise ValueError("no certificate to download")
        if self.renderer is None:
            raise ValueError("no renderer configured")
        return await asyncio.to_thread(self.renderer, self.certificate, Path(path))

    def _cancel_pending(self) -> None:
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()
        self._deferred_hint = None
        if self._issue_task is not None and not self._issue_task.done():
            self._issue_task.cancel()
        self._issue_task = None

    def restart(self) -> None:
        """Discard the session and form and return to hero."""
        self._cancel_pending()
        self._go(WizardStep.HERO)
        self.session = QuizSession()
        self.form = ApplicantForm()
        self.validation = None
        self.certificate = None
        self.status = IDLE

    def close(self) -> None:
        """Cancel timers and background tasks."""
        self._epoch += 1
        self._cancel_pending()
