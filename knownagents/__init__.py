"""
Known Agents Middleware - Package Initializer
=============================================

What: ASGI middleware that reports visit events to the Known Agents analytics
      API and serves a robots.txt generated by the Known Agents API.
Who:  Mounted on a FastAPI/Starlette application through
      `knownagents.main.create_app()` or by hand with `app.add_middleware()`.

Architecture Note:

    ┌─────────────────────────────────────┐
    │     Host app (FastAPI, routes)      │  ← main.py, routes/
    ├─────────────────────────────────────┤
    │   Middleware (request interceptor)  │  ← middleware/knownagents.py
    ├─────────────────────────────────────┤
    │  Module instance (provision/state)  │  ← module.py, registry.py
    ├─────────────────────────────────────┤
    │  Services (robots.txt, analytics)   │  ← services/
    ├─────────────────────────────────────┤
    │  Configuration (directive, schemas) │  ← caddyfile.py, directive.py
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
