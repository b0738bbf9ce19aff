"""Gateway factory."""

from ..config.settings import Settings
from .base import QuizGateway
from .demo import DemoFallbackGateway
from .http import HttpQuizGateway


def create_gateway(settings: Settings) -> QuizGateway:
    """Create the wizard gateway.

    Args:
        settings: Application settings

    Returns:
        The HTTP gateway, wrapped in the demo fallback only when
        ``wizard.allow_demo_fallback`` is on.
    """
    gateway: QuizGateway = HttpQuizGateway(settings.api)
    if settings.wizard.allow_demo_fallback:
        gateway = DemoFallbackGateway(
            gateway,
            target_date=settings.backend.target_date,
            scs_code=settings.backend.scs_code,
        )
    return gateway
