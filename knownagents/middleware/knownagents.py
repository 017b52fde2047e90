"""
Known Agents Middleware - Request Interceptor
=============================================

What:  Publishes the generated robots.txt to downstream handlers and reports
       every successfully handled request to the Known Agents analytics API.
How:   Starlette BaseHTTPMiddleware wrapping the rest of the application.
Who:   Installed by the application factory with the activated module.
When:  Every request.

Per-request flow:
    1. robots.txt configured → set request var `ka_robots_txt`
    2. call_next(request)    → downstream exception propagates, nothing reported
    3. build VisitEvent      → path, method, headers minus Cookie
    4. submit to reporter    → queued, never awaited
    5. return the downstream response unchanged

The visit event is reported for any status code the downstream handler
produces. Only an exception escaping the handler suppresses it.
"""

import logging
from typing import Dict, Iterable, List, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from knownagents.module import KnownAgents
from knownagents.schemas.knownagents import VisitEvent
from knownagents.vars import ROBOTS_TXT_VAR, set_var

logger = logging.getLogger(__name__)

# Headers never forwarded to the analytics API (lowercase).
SENSITIVE_HEADERS = frozenset({"cookie"})


def canonical_header_key(name: str) -> str:
    """`user-agent` → `User-Agent`."""
    return "-".join(part[:1].upper() + part[1:].lower() for part in name.split("-"))


def sanitize_headers(raw_headers: Iterable[Tuple[bytes, bytes]]) -> Dict[str, List[str]]:
    """
    Group raw ASGI headers by canonical name, dropping sensitive ones.

    Repeated headers keep every value in arrival order.
    """
    headers: Dict[str, List[str]] = {}
    for raw_name, raw_value in raw_headers:
        name = raw_name.decode("latin-1")
        if name.lower() in SENSITIVE_HEADERS:
            continue
        headers.setdefault(canonical_header_key(name), []).append(raw_value.decode("latin-1"))
    return headers


def build_visit_event(request: Request) -> VisitEvent:
    """
    Snapshot the request for the analytics API.

    The path is taken from the ASGI scope, already percent-decoded. It is
    not re-parsed through `request.url`, which would cut a decoded `?` or
    `#` (from `%3F` / `%23`) out of the path.
    """
    return VisitEvent(
        request_path=request.scope.get("root_path", "") + request.scope["path"],
        request_method=request.method,
        request_headers=sanitize_headers(request.headers.raw),
    )


class KnownAgentsMiddleware(BaseHTTPMiddleware):
    """
    Request interceptor backed by an activated `KnownAgents` module.

    The module must be activated before the first request; until then the
    robots.txt variable is empty and visit events are dropped.
    """

    def __init__(self, app: ASGIApp, module: KnownAgents):
        super().__init__(app)
        self.module = module

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """
        Publish the robots.txt variable, run the handler, report the visit.

        Why no try/except around call_next:
            A handler exception must reach the host's error handling
            unchanged, and a request that failed is not a visit. Letting it
            propagate skips the report with no extra bookkeeping.

        Why report after call_next:
            Only requests the handler completed are visits. `report_visit`
            only queues the event, so the response is not delayed.
        """
        if self.module.robots_txt_enabled:
            set_var(request, ROBOTS_TXT_VAR, self.module.robots_txt)

        # run the next handler
        response = await call_next(request)

        try:
            event = build_visit_event(request)
        except ValueError as e:
            logger.error("Error building visit event: %s", str(e))
        else:
            self.module.report_visit(event)

        return response
