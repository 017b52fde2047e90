"""
Known Agents Middleware - Configuration and Payload Schemas
===========================================================

What:  Pydantic models for the module configuration (`ModuleConfig`,
       `RobotsPolicy`), the visit event sent to the analytics API
       (`VisitEvent`) and the health check response.
How:   Field names match the JSON the Known Agents API and the host's JSON
       config mode use, so `model_dump()` is the wire format.
When:  `ModuleConfig` is built once when the configuration is loaded and is
       frozen afterwards. A `VisitEvent` lives for one request.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_DISALLOW = "/"


# ══════════════════════════════════════════════════════════════════════════
# Module Configuration
# ══════════════════════════════════════════════════════════════════════════


class RobotsPolicy(BaseModel):
    """
    What:  Which agent types to disallow, and from which path.
    Who:   Serialized as the body of the robots.txt generation request.

    Serialized form:
        {"agent_types": ["AI Assistant", "Archiver"], "disallow": "/"}
    """

    agent_types: List[str] = Field(
        min_length=1,
        description="Agent types to block, in configuration order without duplicates",
    )
    disallow: str = Field(
        default=DEFAULT_DISALLOW,
        description="Path to disallow for the listed agent types",
    )

    model_config = {"frozen": True}

    @field_validator("agent_types")
    @classmethod
    def drop_duplicates(cls, v: List[str]) -> List[str]:
        """Keeps the first occurrence of each label, preserving order."""
        return list(dict.fromkeys(v))

    @field_validator("disallow")
    @classmethod
    def default_disallow(cls, v: str) -> str:
        return v or DEFAULT_DISALLOW


class ModuleConfig(BaseModel):
    """
    What:  Everything the middleware needs: the API access token and an
           optional robots.txt policy.
    How:   Produced by the directive parser, by `model_validate()` on a JSON
           config object, or from environment settings.

    The access token may still contain `{env.NAME}` placeholders here; they
    are resolved when the module is provisioned.
    """

    access_token: str = Field(description="Known Agents project access token")
    robots_txt: Optional[RobotsPolicy] = Field(
        default=None,
        description="Enables robots.txt generation when set",
    )

    model_config = {"frozen": True}

    @field_validator("access_token")
    @classmethod
    def require_access_token(cls, v: str) -> str:
        if not v:
            raise ValueError("missing access token")
        return v


# ══════════════════════════════════════════════════════════════════════════
# Outbound Payloads
# ══════════════════════════════════════════════════════════════════════════


class VisitEvent(BaseModel):
    """
    What:  Sanitized metadata describing one inbound request.
    Who:   Built by the middleware after the downstream handler succeeds,
           sent by the visit reporter, then discarded.

    request_headers maps canonical header names to every value received for
    that header. The Cookie header is never present.
    """

    request_path: str
    request_method: str
    request_headers: Dict[str, List[str]] = Field(default_factory=dict)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class HealthResponse(BaseModel):
    """
    What:  Health check response for GET /health.

    Fields:
        robots_txt:      "cached" when a generated robots.txt is held,
                         "disabled" when no robots policy is configured,
                         "pending" before provisioning completes
        pending_reports: Visit events waiting for a reporter worker
    """

    status: str = Field(description="Overall status: healthy or starting")
    version: str = Field(description="Middleware version")
    robots_txt: str = Field(description="Robots.txt cache state")
    pending_reports: int = Field(description="Queued visit events")
