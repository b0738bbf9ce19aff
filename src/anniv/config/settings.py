"""Configuration settings using Pydantic."""

from datetime import date
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ApiSettings(BaseSettings):
    """Backend API configuration."""
    model_config = SettingsConfigDict(env_prefix="ANNIV_API_")

    base_url: str = "http://localhost:8000/api"
    timeout_seconds: float = 15.0
    export_timeout_seconds: float = 60.0


class WizardSettings(BaseSettings):
    """Certificate wizard rules and pacing."""
    model_config = SettingsConfigDict(env_prefix="ANNIV_WIZARD_")

    min_join_date: date = date(2017, 9, 6)
    max_join_date: date = date(2025, 9, 5)
    issue_delay_seconds: float = 2.0
    hint_delay_seconds: float = 0.3
    hint_display_seconds: float = 4.0  # 0 keeps the hint until dismissed
    text_option_marker: str = "[填空]"
    allow_demo_fallback: bool = False


class ServerSettings(BaseSettings):
    """WebSocket server configuration."""
    model_config = SettingsConfigDict(env_prefix="SERVER_")

    host: str = "0.0.0.0"
    port: int = 8765
    health_port: int = 8080


class BackendSettings(BaseSettings):
    """Development backend configuration."""
    model_config = SettingsConfigDict(env_prefix="BACKEND_")

    host: str = "127.0.0.1"
    port: int = 8000
    scs_code: str = "SCS01"
    target_date: date = date(2025, 9, 6)
    pass_token_ttl_hours: int = 24
    token_secret: str = "change-me"


class StorageSettings(BaseSettings):
    """Storage backend configuration."""
    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    backend: str = "local"  # local, supabase
    data_path: str = "./data"


class SupabaseSettings(BaseSettings):
    """Supabase configuration."""
    model_config = SettingsConfigDict(env_prefix="SUPABASE_")

    url: str = ""
    key: str = ""

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.key)


class RenderSettings(BaseSettings):
    """Certificate rendering configuration."""
    model_config = SettingsConfigDict(env_prefix="RENDER_")

    font_path: Optional[str] = None
    output_dir: str = "./data/certificates"


class Settings(BaseSettings):
    """Main application settings."""
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    api: ApiSettings = Field(default_factory=ApiSettings)
    wizard: WizardSettings = Field(default_factory=WizardSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    backend: BackendSettings = Field(default_factory=BackendSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    supabase: SupabaseSettings = Field(default_factory=SupabaseSettings)
    render: RenderSettings = Field(default_factory=RenderSettings)
