"""
Known Agents Middleware - FastAPI Application Factory
=====================================================

What:  Builds a FastAPI host application with the Known Agents middleware
       installed, plus the robots.txt and health routes.
How:   Factory pattern: create_app() registers the module, loads its
       configuration, and wires middleware, routes, exception handlers and
       lifespan.
Who:   `uvicorn --factory knownagents.main:create_app`, or tests passing an
       already built module.

Configuration sources (first match wins):
    1. `module` argument (already built KnownAgents)
    2. `config` argument (JSON object, host JSON config mode)
    3. `config_text` argument (a `knownagents { ... }` block)
    4. KNOWNAGENTS_CONFIG_FILE (file holding such a block)
    5. KNOWNAGENTS_ACCESS_TOKEN / KNOWNAGENTS_ROBOTS_* environment settings

Lifecycle:
    Startup:
    1. Configure logging
    2. Activate the module (validate agent types, resolve the access token,
       fetch robots.txt, start the visit reporter). Any failure aborts startup.

    Shutdown:
    1. Stop the visit reporter (queued events are abandoned)
"""

import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from knownagents import __version__
from knownagents.caddyfile import Dispenser
from knownagents.config import settings
from knownagents.directive import from_settings
from knownagents.exceptions import ConfigurationError, KnownAgentsError
from knownagents.middleware.knownagents import KnownAgentsMiddleware
from knownagents.module import MODULE_ID, KnownAgents
from knownagents.registry import HandlerRegistry, register
from knownagents.routes import health, robots
from knownagents.schemas.knownagents import ModuleConfig

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger from settings.log_level.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
        force=True,
    )

    # httpx logs every request at INFO, including each visit report
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Module Loading
# ══════════════════════════════════════════════════════════════════════════

def load_module(
    registry: HandlerRegistry,
    config_text: Optional[str] = None,
    config: Optional[Dict[str, Any]] = None,
) -> KnownAgents:
    """
    Build a KnownAgents module from the first available configuration source.

    Raises:
        ConfigurationError: no usable configuration, or it is invalid.
    """
    if config is not None:
        try:
            module_config = ModuleConfig.model_validate(config)
        except ValidationError as e:
            raise ConfigurationError(
                message=f"invalid knownagents JSON config: {e}",
                context={"errors": e.errors()},
            ) from e
        return registry.modules[MODULE_ID].new(module_config)

    filename = "Caddyfile"
    if config_text is None and settings.config_file:
        logger.info("Loading knownagents configuration from %s", settings.config_file)
        with open(settings.config_file, encoding="utf-8") as fh:
            config_text = fh.read()
        filename = os.path.basename(settings.config_file)

    if config_text is not None:
        return registry.setup_directive(Dispenser.from_text(config_text, filename))

    return registry.modules[MODULE_ID].new(from_settings(settings))


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Activate the module on startup and stop it on shutdown.

    Activation errors are logged and re-raised so the server refuses to start
    with a broken configuration or an unreachable robots.txt endpoint.
    """
    setup_logging()
    module: KnownAgents = app.state.knownagents

    logger.info("Known Agents middleware starting up...")
    try:
        await module.activate()
    except KnownAgentsError as e:
        logger.error("Module activation failed: %s", str(e))
        raise

    logger.info("Known Agents middleware ready")

    yield

    logger.info("Known Agents middleware shutting down...")
    await module.cleanup()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map unhandled exceptions to JSON 500 responses.

    Downstream handler exceptions pass through the middleware untouched and
    land here. Details are logged server-side only.

    Why only a catch-all `Exception` handler:
        Starlette installs handlers for specific exception classes in the
        inner ExceptionMiddleware, below KnownAgentsMiddleware. Such a handler
        would turn a failure into a response before `call_next` returns, and
        the failed request would be reported as a visit. The `Exception`
        handler runs in the outermost ServerErrorMiddleware instead.
    """

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("Unexpected error: %s", str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred.",
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    module: Optional[KnownAgents] = None,
    config_text: Optional[str] = None,
    config: Optional[Dict[str, Any]] = None,
) -> FastAPI:
    """
    Create a FastAPI host with the Known Agents middleware installed.

    Raises:
        ConfigurationError: the configuration could not be parsed.
    """
    registry = HandlerRegistry()
    register(registry)

    if module is None:
        module = load_module(registry, config_text=config_text, config=config)

    app = FastAPI(
        title="Known Agents Middleware",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.knownagents = module
    app.state.registry = registry

    app.add_middleware(KnownAgentsMiddleware, module=module)

    register_exception_handlers(app)

    app.include_router(robots.router)
    app.include_router(health.router)

    return app
