"""Gateway layer for the wizard's backend calls."""

from .base import QuizGateway
from .demo import DemoFallbackGateway
from .factory import create_gateway
from .http import HttpQuizGateway

__all__ = [
    "QuizGateway",
    "DemoFallbackGateway",
    "HttpQuizGateway",
    "create_gateway",
]
