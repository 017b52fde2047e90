"""
Known Agents Middleware - Robots.txt Route
==========================================

What:  Serves GET /robots.txt from the `ka_robots_txt` request variable.
How:   The middleware publishes the cached robots.txt into the request before
       this handler runs; the handler only reads it back.
When:  404 when the variable is absent, i.e. no robots_txt block configured.
"""

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import PlainTextResponse

from knownagents.vars import ROBOTS_TXT_VAR, get_var, has_var

router = APIRouter(tags=["Robots"])


@router.get(
    "/robots.txt",
    response_class=PlainTextResponse,
    summary="Generated robots.txt",
)
async def robots_txt(request: Request) -> PlainTextResponse:
    if not has_var(request, ROBOTS_TXT_VAR):
        raise HTTPException(status_code=404, detail="robots.txt is not configured")
    return PlainTextResponse(get_var(request, ROBOTS_TXT_VAR))
