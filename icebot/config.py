"""
Configuration management for Ice Order Bot.
Loads settings from environment variables with validation.
"""

import json
from pathlib import Path
from typing import Annotated, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


DEFAULT_CATALOG = {
    "sachet": ["₱100", "₱200", "₱500"],
    "tube": ["₱150", "₱300", "₱600"],
    "block": ["₱250", "₱500", "₱1000"],
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    base_dir: Path = Path(__file__).parent.parent
    data_dir: Path = Path(__file__).parent.parent / "data"

    # Telegram
    telegram_bot_token: str = Field(..., description="Telegram Bot API token")

    # Admins
    admin_ids: Annotated[list[int], NoDecode] = Field(
        default_factory=list, description="Telegram IDs allowed to run admin commands"
    )
    admin_chat_id: Optional[int] = Field(
        default=None, description="Chat that receives order announcements"
    )

    # Shop
    shop_name: str = Field(default="Ice Order Bot", description="Shop display name")
    catalog: dict[str, list[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_CATALOG.items()},
        description="Category -> amount labels offered in the chat",
    )
    shop_open_on_start: bool = Field(
        default=True, description="Whether the shop accepts orders right after startup"
    )
    payment_instructions: str = Field(
        default="Please pay via GCash and upload a screenshot of the receipt here.",
        description="Text shown after the customer acknowledges payment",
    )
    payment_qr_file_id: Optional[str] = Field(
        default=None, description="Telegram file id of the payment QR image"
    )

    # Storage
    storage: Literal["sql", "memory"] = Field(
        default="sql", description="Order ledger backend"
    )
    database_url: Optional[str] = Field(
        default=None,
        description="Database connection URL",
    )

    @property
    def db_url(self) -> str:
        """Get database URL with absolute path."""
        if self.database_url:
            return self.database_url
        return f"sqlite+aiosqlite:///{self.data_dir / 'icebot.db'}"

    # Sessions
    session_idle_minutes: int = Field(
        default=60, description="Evict conversations idle longer than this"
    )
    session_sweep_interval_seconds: int = Field(
        default=300, description="How often the idle sweep runs"
    )
    bridge_max_entries: int = Field(
        default=10_000, description="Admin reply mappings kept in memory"
    )

    # Reverse geocoding
    geocoder_url: str = Field(
        default="https://nominatim.openstreetmap.org/reverse",
        description="Nominatim reverse endpoint",
    )
    geocoder_user_agent: str = Field(
        default="IceOrderBot/1.0", description="User-Agent required by Nominatim"
    )
    geocoder_timeout_seconds: float = Field(
        default=5.0, description="Upper bound for a reverse-geocode lookup"
    )

    # Webhook / web server
    webhook_base_url: Optional[str] = Field(
        default=None, description="Public base URL; enables webhook mode when set"
    )
    webhook_path: str = Field(default="/telegram/webhook", description="Webhook path")
    webhook_secret: Optional[str] = Field(
        default=None, description="Secret token checked on webhook requests"
    )
    web_host: str = Field(default="0.0.0.0", description="Web server bind host")
    web_port: int = Field(default=8080, description="Web server port")
    admin_api_enabled: bool = Field(
        default=True, description="Serve the admin orders HTTP API"
    )

    # Debug
    debug: bool = Field(default=False, description="Debug mode")

    @field_validator("admin_ids", mode="before")
    @classmethod
    def split_admin_ids(cls, value):
        """Accept a comma separated list as well as JSON."""
        if isinstance(value, int):
            return [value]
        if isinstance(value, str):
            if value.strip().startswith("["):
                return json.loads(value)
            return [int(part) for part in value.split(",") if part.strip()]
        return value

    @property
    def announce_chat_id(self) -> Optional[int]:
        """Chat receiving new-order announcements."""
        if self.admin_chat_id is not None:
            return self.admin_chat_id
        return self.admin_ids[0] if self.admin_ids else None

    @property
    def webhook_url(self) -> Optional[str]:
        """Full webhook URL, None in polling mode."""
        if not self.webhook_base_url:
            return None
        return self.webhook_base_url.rstrip("/") + self.webhook_path

    @property
    def exports_dir(self) -> Path:
        """Directory for XLSX exports."""
        return self.data_dir / "exports"


# Global settings instance
settings = Settings()
