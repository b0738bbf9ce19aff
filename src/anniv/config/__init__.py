"""Application configuration."""

from .settings import (
    ApiSettings,
    BackendSettings,
    RenderSettings,
    ServerSettings,
    Settings,
    StorageSettings,
    SupabaseSettings,
    WizardSettings,
)

__all__ = [
    "ApiSettings",
    "BackendSettings",
    "RenderSettings",
    "ServerSettings",
    "Settings",
    "StorageSettings",
    "SupabaseSettings",
    "WizardSettings",
]
