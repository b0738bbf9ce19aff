"""Repository factory."""

from ..config.settings import Settings
from .base import CertificateRepository
from .local import LocalCertificateRepository


def create_repository(settings: Settings) -> CertificateRepository:
    """Create the certificate repository.

    Args:
        settings: Application settings

    Returns:
        The configured certificate repository

    Raises:
        ValueError: If the storage backend is unknown or Supabase is not configured
    """
    backend = settings.storage.backend.strip().lower()
    if backend == "local":
        return LocalCertificateRepository(settings.storage.data_path)
    if backend == "supabase":
        if not settings.supabase.is_configured:
            raise ValueError(
                "SUPABASE_URL and SUPABASE_KEY must be set in environment"
            )
        from .supabase import SupabaseClientManager, SupabaseCertificateRepository

        return SupabaseCertificateRepository(
            SupabaseClientManager(settings.supabase.url, settings.supabase.key)
        )
    raise ValueError(f"Unknown STORAGE_BACKEND: {settings.storage.backend}")
