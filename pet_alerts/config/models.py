"""Configuration schema models using Pydantic."""

from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator


class EmptyFacetPolicy(str, Enum):
    """How an empty preference facet (no species, no breeds, no sizes) is read."""

    ANY = "any"  # empty list accepts every listing value
    NONE = "none"  # empty list accepts nothing


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class MatchingConfig(BaseModel):
    """Preference matching rules."""

    empty_facet: EmptyFacetPolicy = Field(
        EmptyFacetPolicy.ANY,
        description="Meaning of an empty species/breeds/size list (any or none)",
    )


class DispatchConfig(BaseModel):
    """Background cycle and notification dispatch settings."""

    max_workers: int = Field(
        4, ge=1, le=64, description="Concurrent sends within one dispatch cycle"
    )
    cycle_workers: int = Field(
        2, ge=1, le=32, description="Listing cycles that may run at the same time"
    )
    timeout_seconds: float = Field(
        30.0, gt=0, le=600, description="Per-recipient send timeout in seconds"
    )
    deduplicate: bool = Field(
        True, description="Skip recipients already notified about the same listing"
    )

    @model_validator(mode="after")
    def validate_worker_balance(self):
        """Cycles share the SMTP server, so keep total concurrency bounded."""
        if self.max_workers * self.cycle_workers > 256:
            raise ValueError(
                "max_workers * cycle_workers must not exceed 256 concurrent sends"
            )
        return self


class EmailConfig(BaseModel):
    """Email notification settings."""

    use_tls: bool = Field(True, description="Use TLS/STARTTLS for secure connection")
    listing_url_template: str = Field(
        "",
        description="Optional link to the listing, e.g. https://example.org/pets/{listing_id}",
    )

    @field_validator("listing_url_template")
    @classmethod
    def validate_listing_url_template(cls, v: str) -> str:
        """Only the {listing_id} placeholder may be used."""
        v = v.strip()
        if v:
            try:
                v.format(listing_id="example")
            except (KeyError, IndexError, ValueError) as e:
                raise ValueError(
                    f"listing_url_template may only reference {{listing_id}}: {e}"
                ) from e
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AppConfig(BaseModel):
    """Root configuration object for the pet alert notifier."""

    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    dispatch: DispatchConfig = Field(default_factory=DispatchConfig)
    email: EmailConfig = Field(default_factory=EmailConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
