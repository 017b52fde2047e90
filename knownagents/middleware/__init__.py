"""
Known Agents Middleware - Middleware Package
============================================

What:  The request interceptor applied to every request of the host app.

Middleware Chain:
    Request → [KnownAgents] → Route Handler
    Response ← [KnownAgents] ← Route Handler  (visit event queued here)

Position:
    The `knownagents` directive is ordered before the host's `header`
    directive (see registry.py). The robots.txt variable is always set before
    any route reads it.
"""
