"""Repository layer for issued certificates."""

from .base import CertificateRepository
from .factory import create_repository
from .local import LocalCertificateRepository

__all__ = [
    "CertificateRepository",
    "LocalCertificateRepository",
    "create_repository",
]
