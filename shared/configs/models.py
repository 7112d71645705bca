"""
Configuration models using Pydantic for validation.
"""
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator


# =============================================================================
# Watchlist Configuration
# =============================================================================

class WatchlistManagerOptions(BaseModel):
    """Options the watchlist manager needs at construction time."""
    enable_email_notification: bool = Field(default=False, description="Send e-mail when watched pages change")
    show_updated_marker: bool = Field(default=True, description="Mark watched pages changed since last visit")

    @property
    def tracks_notification_timestamps(self) -> bool:
        """Whether per-page notification timestamps drive anything."""
        return self.enable_email_notification or self.show_updated_marker


class ReadOnlyConfig(BaseModel):
    """Read-only mode configuration."""
    enabled: bool = Field(default=False, description="Reject all watchlist writes")
    reason: Optional[str] = Field(default=None, description="Reason shown to users")


class NamespaceConfig(BaseModel):
    """Namespace policy configuration."""
    non_watchable: List[int] = Field(default_factory=list, description="Extra namespaces that can't be watched")

    @field_validator('non_watchable', mode='before')
    @classmethod
    def wrap_single_namespace(cls, v):
        """Accept a single namespace, as given by one environment value."""
        if isinstance(v, (int, str)):
            return [v]
        return v

    @field_validator('non_watchable')
    @classmethod
    def validate_subject_namespaces(cls, v):
        """Validate that only real namespaces are listed."""
        for ns in v:
            if ns < 0:
                raise ValueError(f"Namespace {ns} is virtual and never watchable")
        return v


# =============================================================================
# Logging Configuration
# =============================================================================

class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format (json or text)")
    file_path: Optional[str] = Field(default=None, description="Log file path")

    @field_validator('level')
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

    @field_validator('format')
    @classmethod
    def validate_log_format(cls, v):
        """Validate log format."""
        if v.lower() not in ('json', 'text'):
            raise ValueError("Log format must be 'json' or 'text'")
        return v.lower()


class WatchlistServiceConfig(BaseModel):
    """Watchlist service configuration."""
    options: WatchlistManagerOptions = Field(default_factory=WatchlistManagerOptions)
    read_only: ReadOnlyConfig = Field(default_factory=ReadOnlyConfig)
    namespaces: NamespaceConfig = Field(default_factory=NamespaceConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_settings(cls, settings) -> "WatchlistServiceConfig":
        """
        Build the service configuration from environment settings.

        Args:
            settings: Settings instance

        Returns:
            WatchlistServiceConfig instance
        """
        return cls(
            options=WatchlistManagerOptions(
                enable_email_notification=settings.enable_email_notification,
                show_updated_marker=settings.show_updated_marker,
            ),
            read_only=ReadOnlyConfig(
                enabled=settings.read_only,
                reason=settings.read_only_reason,
            ),
            namespaces=NamespaceConfig(non_watchable=settings.non_watchable_namespaces),
            logging=LoggingConfig(
                level=settings.log_level,
                format=settings.log_format,
                file_path=settings.log_file,
            ),
        )
