"""
Module: settings.py
Description: Application configuration using pydantic-settings.

Configures provider secrets, storage, retry schedule and downstream
forwarding from environment variables with validation and defaults.
Supports .env files for local development.
"""

import re
from typing import List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEPLOYED_STAGES = ("prod", "production")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application settings
    app_name: str = Field(default="Courier Webhooks", description="Application name")
    app_version: str = Field(default="0.3.0", description="Application version")
    log_level: str = Field(default="INFO", description="Logging level")
    stage: str = Field(default="dev", description="Deployment stage")

    # Storage settings
    webhook_storage_backend: str = Field(
        default="file",
        pattern=r"^(file|dynamodb)$",
        description="Durable backend for webhook records"
    )
    webhook_storage_path: str = Field(
        default="data/webhooks",
        description="Directory holding one JSON file per webhook record"
    )
    webhooks_table_name: str = Field(
        default="courier-webhooks",
        description="Name of the DynamoDB webhooks table"
    )
    aws_region: str = Field(default="us-east-1", description="AWS region")

    # Provider secrets
    doordash_signing_secret: str = Field(
        default="",
        description="DoorDash webhook signing secret"
    )
    doordash_developer_id: str = Field(
        default="",
        description="DoorDash developer id, part of the signed message"
    )
    doordash_signature_tolerance_seconds: int = Field(
        default=300,
        ge=1,
        description="Maximum age of a DoorDash signature timestamp"
    )
    uber_client_secret: str = Field(
        default="",
        description="Uber client secret used to sign webhooks"
    )
    webhook_verification_bypass: bool = Field(
        default=False,
        description="Skip signature verification (local development only)"
    )

    # Retry settings
    max_processing_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts before a webhook is marked failed"
    )
    retry_intervals_seconds: List[float] = Field(
        default_factory=lambda: [60.0, 300.0, 1800.0],
        description="Delay before each retry, indexed by attempt number"
    )
    restart_retry_delay_seconds: float = Field(
        default=5.0,
        ge=0,
        description="Delay before re-arming pending retries after startup"
    )

    # Downstream settings
    status_sink_url: Optional[str] = Field(
        default=None,
        description="Optional URL receiving normalized delivery status events"
    )
    status_sink_timeout: int = Field(
        default=10,
        ge=1,
        le=30,
        description="HTTP timeout in seconds for status forwarding"
    )

    # Metrics settings
    metrics_enabled: bool = Field(default=False, description="Publish CloudWatch metrics")
    metrics_namespace: str = Field(default="CourierWebhooks", description="CloudWatch namespace")

    @field_validator('webhooks_table_name')
    @classmethod
    def validate_table_name(cls, v: str) -> str:
        """Validate DynamoDB table name."""
        if not re.match(r'^[a-zA-Z0-9_.-]+$', v):
            raise ValueError(
                "Table name must contain only letters, numbers, dots, hyphens, and underscores"
            )
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(valid_levels)}")
        return v.upper()

    @field_validator('retry_intervals_seconds')
    @classmethod
    def validate_retry_intervals(cls, v: List[float]) -> List[float]:
        """Retry schedule must be non-empty and non-negative."""
        if not v:
            raise ValueError("retry_intervals_seconds must not be empty")
        if any(interval < 0 for interval in v):
            raise ValueError("retry_intervals_seconds must be non-negative")
        return v

    @field_validator('status_sink_url')
    @classmethod
    def validate_status_sink_url(cls, v: Optional[str]) -> Optional[str]:
        """Status sink must be an HTTP(S) URL when set."""
        if v and not v.startswith(('http://', 'https://')):
            raise ValueError("status_sink_url must be a valid HTTP/HTTPS URL")
        return v or None

    @model_validator(mode='after')
    def forbid_bypass_when_deployed(self) -> "Settings":
        """Signature bypass is never allowed in a deployed stage."""
        if self.webhook_verification_bypass and self.stage.lower() in DEPLOYED_STAGES:
            raise ValueError(
                "webhook_verification_bypass cannot be enabled in a production stage"
            )
        return self


# Global settings instance
settings = Settings()
