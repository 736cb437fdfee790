"""Application configuration using Pydantic settings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Azure Bot Registration - Legacy (optional, not used if CONNECTIONS__* vars are set)
    app_id: str = Field(
        "", alias="MICROSOFT_APP_ID",
        description="Azure Bot Registration app ID. Legacy field, optional when CONNECTIONS__* vars are set.",
    )
    app_password: str = Field(
        "", alias="MICROSOFT_APP_PASSWORD",
        description="Azure Bot Registration app password. Legacy field, optional when CONNECTIONS__* vars are set.",
    )
    app_tenant_id: str = Field(
        "", alias="MICROSOFT_APP_TENANT_ID",
        description="Azure AD tenant ID of the bot registration.",
    )

    # Salesforce Einstein / Agentforce Agent API
    sf_token_url: str = Field(
        ..., alias="SF_TOKEN_URL",
        description="OAuth token endpoint used for the client credentials exchange.",
    )
    sf_client_id: str = Field(
        ..., alias="SF_CLIENT_ID",
        description="Connected app consumer key.",
    )
    sf_client_secret: str = Field(
        ..., alias="SF_CLIENT_SECRET",
        description="Connected app consumer secret.",
    )
    sf_session_url: str = Field(
        ..., alias="SF_SESSION_URL",
        description="Agent API endpoint that creates a new agent session.",
    )
    sf_instance_url: str = Field(
        ..., alias="SF_INSTANCE_URL",
        description="Salesforce instance (My Domain) URL sent as instanceConfig.endpoint on session creation.",
    )
    sf_message_url: str = Field(
        ..., alias="SF_MESSAGE_URL",
        description="Base URL for session messages; {session_id}/messages is appended per call.",
    )
    sf_timeout: float = Field(
        120.0, alias="SF_TIMEOUT",
        description="HTTP timeout in seconds for Salesforce calls, including stream reads.",
    )

    # Session lifecycle
    session_timeout_minutes: float = Field(
        30, alias="MIN_SESSION",
        description="Minutes after creation that a cached agent session stays reusable.",
    )
    session_sweep_interval: float = Field(
        900, alias="SESSION_SWEEP_INTERVAL",
        description="Seconds between background sweeps that evict expired sessions.",
    )
    session_counter_maxsize: int = Field(
        10000, alias="SESSION_COUNTER_MAXSIZE",
        description="Max number of per-session message sequence counters kept in memory.",
    )

    # Bot behaviour
    status_message: str = Field(
        "Processing your request...", alias="STATUS_MESSAGE",
        description="Message sent to the user while the agent is working on a reply.",
    )

    # Server
    host: str = Field(
        "0.0.0.0", alias="HOST",
        description="Host address to bind the aiohttp server to.",
    )
    port: int = Field(
        3978, alias="PORT",
        description="Port number for the aiohttp server. Azure Bot Service expects 3978 by default.",
    )

    # Logging
    log_level: str = Field(
        "INFO", alias="LOG_LEVEL",
        description="Logging level: DEBUG, INFO, WARNING, ERROR, or CRITICAL.",
    )
    log_file: str = Field(
        "", alias="LOG_FILE",
        description="Path to log file for file-based logging with rotation. Empty = console only.",
    )
    log_file_max_bytes: int = Field(
        10_485_760, alias="LOG_FILE_MAX_BYTES",
        description="Max size in bytes per log file before rotation. Default: 10 MB.",
    )
    log_file_backup_count: int = Field(
        5, alias="LOG_FILE_BACKUP_COUNT",
        description="Number of rotated backup log files to keep.",
    )

    @property
    def session_timeout_seconds(self) -> float:
        return self.session_timeout_minutes * 60


def get_settings() -> Settings:
    """Get application settings (cached)."""
    return Settings()
