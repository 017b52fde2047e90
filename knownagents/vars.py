"""
Known Agents Middleware - Request-Scoped Variables
==================================================

What:  A per-request name → value table that middleware fills in and
       downstream handlers read.
How:   The table lives in the ASGI scope's "state" dict, which every
       `Request` built from the same scope shares through `request.state`.
       Each request has its own scope, so concurrent requests never see each
       other's values.

Usage:
    set_var(request, ROBOTS_TXT_VAR, text)      # middleware, before call_next
    get_var(request, ROBOTS_TXT_VAR)            # route handler
"""

from typing import Any, Dict

from starlette.requests import HTTPConnection

# Name of the variable holding the generated robots.txt.
ROBOTS_TXT_VAR = "ka_robots_txt"

_STATE_KEY = "vars"


def _table(conn: HTTPConnection) -> Dict[str, Any]:
    state = conn.scope.setdefault("state", {})
    return state.setdefault(_STATE_KEY, {})


def set_var(conn: HTTPConnection, name: str, value: Any) -> None:
    _table(conn)[name] = value


def get_var(conn: HTTPConnection, name: str, default: Any = None) -> Any:
    return _table(conn).get(name, default)


def has_var(conn: HTTPConnection, name: str) -> bool:
    return name in _table(conn)
