"""
Known Agents Middleware - Runtime Settings
==========================================

What:  Process-wide runtime settings loaded with Pydantic Settings.
How:   Every field can be overridden by a `KNOWNAGENTS_`-prefixed environment
       variable or a `.env` file; a singleton `settings` is created at import.
Who:   Services read endpoints, timeouts and pool sizes from here; the
       application factory reads the config file location and log level.

Module configuration (access token, robots.txt policy) normally comes from a
`knownagents { ... }` block (see directive.py). The `access_token` and
`robots_*` fields below are only consulted when no block is supplied.
"""

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Runtime settings for the Known Agents middleware.

    Attributes are grouped by concern.
    """

    # ── Remote API ────────────────────────────────────────────────────────
    analytics_endpoint: str = Field(
        default="https://api.knownagents.com/visits",
        description="Known Agents agent analytics API endpoint",
    )
    robots_txt_endpoint: str = Field(
        default="https://api.knownagents.com/robots-txts",
        description="Known Agents robots.txt generation API endpoint",
    )

    # Seconds. The robots.txt fetch blocks provisioning, so keep it bounded.
    robots_txt_timeout: float = Field(default=10.0, gt=0, le=120)
    analytics_timeout: float = Field(default=10.0, gt=0, le=120)

    # ── Visit Reporting Pool ──────────────────────────────────────────────
    # What: Number of background workers sending visit events, and how many
    # events may wait for a worker before new ones are dropped.
    report_workers: int = Field(default=4, ge=1, le=64)
    report_queue_size: int = Field(default=1000, ge=1, le=100_000)

    # ── Module Configuration Source ───────────────────────────────────────
    # Path to a file holding a `knownagents { ... }` block.
    config_file: Optional[str] = Field(default=None)

    # Fallbacks used when config_file is not set.
    access_token: str = Field(default="")
    # Comma-separated agent type labels, or "*" for the whole catalog.
    robots_agent_types: str = Field(default="")
    robots_disallow: str = Field(default="/")

    # ── Logging ───────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @property
    def robots_agent_types_list(self) -> List[str]:
        """
        What: Splits comma-separated agent types into a list.
        Why property: Labels contain spaces, so a plain env string is easier to write.
        """
        return [item.strip() for item in self.robots_agent_types.split(",") if item.strip()]

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_prefix": "KNOWNAGENTS_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


settings = Settings()
