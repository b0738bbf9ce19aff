"""Domain models for the anniversary certificate wizard."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Optional, Union


class WizardStep(Enum):
    """Primary steps of the certificate wizard."""
    HERO = auto()
    QUIZ = auto()
    WISHES = auto()
    FORM = auto()
    LOADING = auto()
    RESULT = auto()


class Action(Enum):
    """Network actions the wizard can have in flight."""
    FETCH_QUIZ = "fetch_quiz"
    VALIDATE = "validate"
    ISSUE = "issue"


@dataclass(frozen=True)
class Option:
    """One answer option of a quiz question."""
    id: int
    idx_no: int
    content: str
    if_correct: Optional[bool] = None

    @property
    def label(self) -> str:
        """Display letter derived from idx_no (1 -> A, 2 -> B, ...)."""
        return chr(ord("A") + self.idx_no - 1)


@dataclass(frozen=True)
class Question:
    """A quiz question with its ordered options."""
    id: int
    idx_no: int
    content: str
    options: tuple[Option, ...] = ()

    def is_text_input(self, marker: str) -> bool:
        """Free-response questions have no options, or a single marker option."""
        if not self.options:
            return True
        return len(self.options) == 1 and marker in self.options[0].content

    def find_option(self, option_id: int) -> Optional[Option]:
        for option in self.options:
            if option.id == option_id:
                return option
        return None

    def find_option_by_label(self, label: str) -> Optional[Option]:
        for option in self.options:
            if option.label == label.upper():
                return option
        return None

    def correct_option(self) -> Optional[Option]:
        for option in self.options:
            if option.if_correct is True:
                return option
        return None

    def is_wrong_choice(self, option_id: int) -> bool:
        """True if the chosen option is known to be wrong."""
        option = self.find_option(option_id)
        if option is None:
            return False
        if option.if_correct is False:
            return True
        return option.if_correct is None and self.correct_option() is not None


@dataclass(frozen=True)
class QuizData:
    """A loaded question set."""
    quiz_code: str
    title: str
    questions: tuple[Question, ...]

    def find_question(self, question_id: int) -> Optional[Question]:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None


@dataclass(frozen=True)
class AnswerItem:
    """Per-question outcome reported by quiz validation."""
    question_id: int
    correct: bool


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of quiz validation; the pass token gates issuance."""
    all_correct: bool
    items: tuple[AnswerItem, ...]
    pass_token: str
    expires_at: Optional[str] = None


@dataclass(frozen=True)
class CertificateResult:
    """An issued certificate. Immutable once created."""
    full_no: str
    scs_code: str
    days_to_target: int
    name: str
    start_date: str
    work_no: str
    wishes: Optional[str] = None


@dataclass(frozen=True)
class CertificateRecord:
    """A persisted certificate as kept by the certificate store."""
    certificate: CertificateResult
    created_at: datetime


CONSTELLATIONS = {
    1: "bigdipper",
    2: "galaxy",
    3: "orion",
    4: "other",
}

CONSTELLATION_QUESTION_ID = 1


def constellation_for(option_id: int) -> str:
    """Map the answer to the constellation question onto its key."""
    return CONSTELLATIONS.get(option_id, "other")


@dataclass
class QuizSession:
    """Runtime quiz state for one visitor attempt (not persisted)."""
    quiz: Optional[QuizData] = None
    current_question_index: int = 0
    selected_answers: dict[int, int] = field(default_factory=dict)
    text_answers: dict[int, str] = field(default_factory=dict)
    pass_token: Optional[str] = None
    pass_token_expires_at: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def quiz_code(self) -> Optional[str]:
        return self.quiz.quiz_code if self.quiz else None

    @property
    def questions(self) -> tuple[Question, ...]:
        return self.quiz.questions if self.quiz else ()

    @property
    def current_question(self) -> Optional[Question]:
        if not self.questions:
            return None
        return self.questions[self.current_question_index]

    @property
    def is_last_question(self) -> bool:
        return self.current_question_index == len(self.questions) - 1

    def load(self, quiz: QuizData) -> None:
        self.quiz = quiz
        self.current_question_index = 0

    def select_option(self, question_id: int, option_id: int) -> None:
        self.selected_answers[question_id] = option_id

    def enter_text(self, question_id: int, text: str) -> None:
        self.text_answers[question_id] = text

    def has_answer(self, question: Question, marker: str) -> bool:
        if question.is_text_input(marker):
            return bool(self.text_answers.get(question.id, "").strip())
        return question.id in self.selected_answers

    def answer_payload(self, marker: str) -> list[dict]:
        """Answers in question order, shaped for the validate endpoint.

        Text answers are sent through their marker option; questions with no
        options at all are free response and are not submitted.
        """
        answers = []
        for question in self.questions:
            if question.is_text_input(marker):
                if question.options and self.text_answers.get(question.id, "").strip():
                    answers.append({"questionId": question.id, "optionId": question.options[0].id})
                continue
            if question.id in self.selected_answers:
                answers.append({
                    "questionId": question.id,
                    "optionId": self.selected_answers[question.id],
                })
        return answers


@dataclass
class ApplicantForm:
    """Personal data collected before issuance."""
    name: str = ""
    employee_id: str = ""
    join_date: str = ""
    constellation: str = ""
    wishes: str = ""


@dataclass(frozen=True)
class Idle:
    """Nothing pending."""


@dataclass(frozen=True)
class Loading:
    """A network action is in flight."""
    action: Action


@dataclass(frozen=True)
class Error:
    """A user-visible error; retryable when it carries the failed action."""
    message: str
    action: Optional[Action] = None

    @property
    def retryable(self) -> bool:
        return self.action is not None


@dataclass(frozen=True)
class ShowingHint:
    """Informational correct-answer hint; blocks nothing."""
    text: str


Status = Union[Idle, Loading, Error, ShowingHint]

IDLE = Idle()
