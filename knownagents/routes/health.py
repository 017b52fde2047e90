"""
Known Agents Middleware - Health Check Route
============================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Reads the activated module from `app.state.knownagents`.

Status levels:
    - healthy:  module provisioned, reporter running
    - starting: provisioning has not completed (HTTP 503)
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from knownagents import __version__
from knownagents.schemas.knownagents import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Middleware health check",
)
async def health_check(request: Request):
    module = request.app.state.knownagents

    if not module.robots_txt_enabled:
        robots_state = "disabled"
    elif module.provisioned:
        robots_state = "cached"
    else:
        robots_state = "pending"

    pending = module.reporter.pending if module.reporter is not None else 0
    body = HealthResponse(
        status="healthy" if module.provisioned else "starting",
        version=__version__,
        robots_txt=robots_state,
        pending_reports=pending,
    )
    if not module.provisioned:
        logger.warning("Health check: module not provisioned")
        return JSONResponse(status_code=503, content=body.model_dump())
    return body
