"""
Known Agents Middleware - Module Instance
=========================================

What:  One activated `knownagents` module: its configuration, the cached
       robots.txt and the visit reporter.
How:   `activate()` validates the configuration, resolves placeholders in the
       access token, fetches the robots.txt once and starts the reporter.
       After that the instance is read-only and shared by every request.
Who:   Created by the registry's module factory, activated by the host's
       lifespan, consumed by `KnownAgentsMiddleware`.

Lifecycle:
    KnownAgents(config)      → parsed configuration, nothing fetched yet
    await activate()         → validate() + provision()
    ... requests ...         → robots_txt read, report_visit() called
    await cleanup()          → reporter stopped
"""

import logging
import os
import re
from typing import Optional

import httpx

from knownagents import agents
from knownagents.exceptions import ConfigurationError
from knownagents.schemas.knownagents import ModuleConfig, VisitEvent
from knownagents.services.analytics import VisitReporter
from knownagents.services.robots_txt import RobotsTxtFetcher

logger = logging.getLogger(__name__)

MODULE_ID = "http.handlers.knownagents"

_PLACEHOLDER = re.compile(r"\{([^{}\s]+)\}")


def replace_placeholders(value: str) -> str:
    """
    Resolve `{env.NAME}` placeholders from the process environment.

    Unset variables and unknown placeholders resolve to an empty string.
    """

    def _resolve(match: "re.Match") -> str:
        key = match.group(1)
        if key.startswith("env."):
            return os.environ.get(key[len("env."):], "")
        return ""

    return _PLACEHOLDER.sub(_resolve, value)


def mask_secret(value: str) -> str:
    """Keep the last four characters of a secret for log correlation."""
    if len(value) <= 4:
        return "*" * len(value)
    return "*" * (len(value) - 4) + value[-4:]


class KnownAgents:
    """
    Middleware module state shared across requests.

    Args:
        config:    Parsed module configuration
        transport: Optional httpx transport for both outbound services
        fetcher:   Optional robots.txt fetcher override
    """

    def __init__(
        self,
        config: ModuleConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        fetcher: Optional[RobotsTxtFetcher] = None,
    ):
        self.config = config
        self._transport = transport
        self._fetcher = fetcher or RobotsTxtFetcher(transport=transport)
        self.reporter: Optional[VisitReporter] = None
        self._robots_txt: Optional[str] = None
        self._provisioned = False

    # ── State ─────────────────────────────────────────────────────────────

    @property
    def provisioned(self) -> bool:
        return self._provisioned

    @property
    def robots_txt_enabled(self) -> bool:
        return self.config.robots_txt is not None

    @property
    def robots_txt(self) -> str:
        """The cached robots.txt; empty until provisioning has fetched it."""
        return self._robots_txt or ""

    # ── Activation ────────────────────────────────────────────────────────

    def validate(self) -> None:
        """
        Check configured agent types against the catalog.

        Raises:
            UnrecognizedAgentTypeError: naming the first unknown label.
        """
        logger.debug("Access Token: %s", mask_secret(self.config.access_token))

        policy = self.config.robots_txt
        if policy is not None:
            agents.validate_agent_types(policy.agent_types)
            logger.debug("Agent Types: %s", ",".join(policy.agent_types))
            logger.debug("Disallow: %s", policy.disallow)

        logger.info("Knownagents middleware validated")

    async def provision(self) -> None:
        """
        Resolve the access token, fetch the robots.txt and start reporting.

        When: Once, from the host lifespan, before the first request is served.
              Calling it again after success is a no-op.

        Why fetch here and not per request:
            The generated robots.txt only depends on the configured policy,
            so one fetch at startup serves every request. A failed fetch
            raises, and the host refuses to start instead of serving requests
            with an empty robots.txt.

        Raises:
            ConfigurationError: the access token resolves to an empty string.
            RobotsTxtFetchError: the robots.txt request failed.
        """
        if self._provisioned:
            return

        access_token = replace_placeholders(self.config.access_token)
        if not access_token:
            raise ConfigurationError("missing access token")
        self.config = self.config.model_copy(update={"access_token": access_token})

        if self.config.robots_txt is not None:
            self._robots_txt = await self._fetcher.fetch(self.config.robots_txt, access_token)

        self.reporter = VisitReporter(access_token, transport=self._transport)
        await self.reporter.start()
        self._provisioned = True

    async def activate(self) -> None:
        """Validate, then provision."""
        self.validate()
        await self.provision()

    async def cleanup(self) -> None:
        if self.reporter is not None:
            await self.reporter.aclose()
            self.reporter = None
        self._provisioned = False

    # ── Request Path ──────────────────────────────────────────────────────

    def report_visit(self, event: VisitEvent) -> bool:
        """Hand a visit event to the reporter without waiting for delivery."""
        if self.reporter is None:
            logger.warning("Module not provisioned; dropping visit event")
            return False
        return self.reporter.submit(event)
