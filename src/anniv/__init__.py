"""Anniversary quiz → certificate wizard."""

from .models import CertificateResult, QuizSession, WizardStep
from .state_machine import CertificateWizard

__all__ = [
    "CertificateResult",
    "CertificateWizard",
    "QuizSession",
    "WizardStep",
]
