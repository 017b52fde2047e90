"""
Known Agents Middleware - Custom Exception Hierarchy
====================================================

What:  Application-specific exceptions for configuration, provisioning and
       reporting failures.
How:   Each exception carries a message and an optional context dict. The
       message is what operators see; context holds extra debug fields.
Who:   Raised by the directive parser, the module instance and the services.
When:  Configuration and fetch errors surface while the host starts up.
       Report errors are raised inside background workers and only logged.

Exception Hierarchy:
    KnownAgentsError (base)
    ├── ConfigurationError              → host refuses to start
    │   ├── DirectiveSyntaxError        → malformed `knownagents { ... }` block
    │   └── UnrecognizedAgentTypeError  → label missing from the catalog
    ├── RobotsTxtFetchError             → provisioning fails
    └── VisitReportError                → logged by the reporter, never surfaced
"""

from typing import Any, Dict, Optional


class KnownAgentsError(Exception):
    """
    Base exception for all Known Agents middleware errors.

    Attributes:
        message:  Human-readable error description
        context:  Additional debug info (logged, not shown to HTTP clients)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ConfigurationError(KnownAgentsError):
    """
    Raised when the module configuration is missing or invalid.

    When:    Parsing the directive block, validating agent types, or assembling
             configuration from the environment.
    Effect:  Module activation fails; the host must not start with it.
    """

    def __init__(
        self,
        message: str = "Invalid configuration",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DirectiveSyntaxError(ConfigurationError):
    """
    Raised when the directive block does not follow the expected grammar.

    The string form points at the offending line, e.g.:
        Caddyfile:3 - Error during parsing: unknown subdirective 'foo'
    """

    def __init__(
        self,
        message: str,
        filename: str = "Caddyfile",
        line: int = 0,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["filename"] = filename
        ctx["line"] = line
        super().__init__(message=message, context=ctx)
        self.filename = filename
        self.line = line

    def __str__(self) -> str:
        return f"{self.filename}:{self.line} - Error during parsing: {self.message}"


class UnrecognizedAgentTypeError(ConfigurationError):
    """Raised when a robots.txt agent type is not in the known catalog."""

    def __init__(
        self,
        agent_type: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["agent_type"] = agent_type
        super().__init__(message=f"unrecognized agent type '{agent_type}'", context=ctx)
        self.agent_type = agent_type


class RobotsTxtFetchError(KnownAgentsError):
    """
    Raised when the robots.txt generation request fails.

    When:    Transport error, timeout, non-2xx status, or a body that is not
             valid UTF-8.
    Effect:  Provisioning aborts so a misconfigured deployment fails fast
             instead of serving an empty robots.txt.
    """

    def __init__(
        self,
        message: str = "Failed to fetch generated robots.txt",
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if status_code is not None:
            ctx["status_code"] = status_code
        super().__init__(message=message, context=ctx)
        self.status_code = status_code


class VisitReportError(KnownAgentsError):
    """
    Raised when a visit event could not be delivered.

    Only ever raised inside reporter workers, which log it and move on.
    """

    def __init__(
        self,
        message: str = "Failed to send visit event",
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if status_code is not None:
            ctx["status_code"] = status_code
        super().__init__(message=message, context=ctx)
        self.status_code = status_code
