"""Configuration management.

Loads from TOML config files + environment variables.
Uses pydantic-settings for validation and env var overriding.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings

from .errors import ConfigError
from .models import PlaybookRubric, RiskSettings


# ---------------------------------------------------------------------------
# Sub-configs
# ---------------------------------------------------------------------------

class AnalyticsConfig(BaseModel):
    starting_balance: float = 10_000.0
    risk_per_r_pct: float = 1.0  # Currency value of 1R as % of starting balance
    kelly_min_sample: int = 30
    kelly_fraction: float = 0.5  # Half-Kelly
    max_suggested_risk_pct: float = 2.0
    default_risk_pct: float = 1.0  # Suggested risk below the Kelly sample size
    warning_threshold: float = 0.8  # Fraction of a risk limit that raises a warning
    primary_multiplier: float = 1.2  # Extra weight for primary confluences


class ObservabilityConfig(BaseModel):
    log_level: str = "INFO"
    log_format: str = "console"  # "json" or "console"


# ---------------------------------------------------------------------------
# Top-level settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """Top-level application settings.

    Values from the TOML file and explicit overrides take precedence;
    ``JOURNAL_*`` environment variables fill in anything they leave unset.
    """

    risk: RiskSettings = Field(default_factory=RiskSettings)
    rubric: PlaybookRubric = Field(default_factory=PlaybookRubric)
    analytics: AnalyticsConfig = Field(default_factory=AnalyticsConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    model_config = {"env_prefix": "JOURNAL_", "env_nested_delimiter": "__"}


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load settings from TOML file + env vars.

    Args:
        config_path: Path to TOML config file (optional).
        overrides: Dict of overrides to apply on top.

    Raises:
        ConfigError: the file is not valid TOML or a value fails validation.
    """
    data: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            import tomli

            try:
                with open(path, "rb") as f:
                    data = tomli.load(f)
            except tomli.TOMLDecodeError as exc:
                raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc

    if overrides:
        data.update(overrides)

    try:
        return Settings(**data)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc
