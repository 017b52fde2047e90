"""
Known Agents Middleware - Test Configuration (conftest.py)
==========================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Outbound calls go through an httpx.MockTransport backed by
       `KnownAgentsApi`, an in-memory stand-in for the Known Agents API that
       records every request it receives.

Fixture Hierarchy:
    Function-scoped:
    ├── api:             recording fake of the Known Agents API
    ├── transport:       httpx.MockTransport routed to `api`
    ├── robots_config:   ModuleConfig with a robots_txt policy
    ├── module:          activated KnownAgents (cleaned up after the test)
    └── test_client:     HTTPX AsyncClient talking to the host app
"""

import json
import os
from typing import List

# Keep test output quiet and independent of any local .env
os.environ["KNOWNAGENTS_LOG_LEVEL"] = "WARNING"
os.environ.pop("KNOWNAGENTS_CONFIG_FILE", None)

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from knownagents.agents import AI_ASSISTANT, AI_DATA_SCRAPER, AI_SEARCH_CRAWLER
from knownagents.main import create_app
from knownagents.module import KnownAgents
from knownagents.schemas.knownagents import ModuleConfig, RobotsPolicy

ACCESS_TOKEN = "aHVudGVyMg=="

GENERATED_ROBOTS_TXT = (
    "User-agent: ChatGPT-User\n"
    "User-agent: Claude-Web\n"
    "Disallow: /\n"
)


class KnownAgentsApi:
    """
    In-memory Known Agents API.

    Attributes:
        requests:        every httpx.Request received, in order
        robots_status:   status code returned by /robots-txts
        robots_body:     body returned by /robots-txts
        visits_status:   status code returned by /visits
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.robots_status = 200
        self.robots_body: bytes = GENERATED_ROBOTS_TXT.encode("utf-8")
        self.visits_status = 202

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/robots-txts":
            return httpx.Response(self.robots_status, content=self.robots_body)
        if request.url.path == "/visits":
            return httpx.Response(self.visits_status)
        return httpx.Response(404)

    def requests_to(self, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    @property
    def robots_requests(self) -> List[httpx.Request]:
        return self.requests_to("/robots-txts")

    @property
    def visit_requests(self) -> List[httpx.Request]:
        return self.requests_to("/visits")

    def visit_payloads(self) -> List[dict]:
        return [json.loads(r.content) for r in self.visit_requests]


@pytest.fixture
def api():
    return KnownAgentsApi()


@pytest.fixture
def transport(api):
    return httpx.MockTransport(api.handler)


@pytest.fixture
def robots_config():
    return ModuleConfig(
        access_token=ACCESS_TOKEN,
        robots_txt=RobotsPolicy(
            agent_types=[AI_ASSISTANT, AI_SEARCH_CRAWLER, AI_DATA_SCRAPER],
            disallow="/",
        ),
    )


@pytest_asyncio.fixture
async def module(robots_config, transport):
    """An activated module with a robots.txt policy."""
    mod = KnownAgents(robots_config, transport=transport)
    await mod.activate()
    yield mod
    await mod.cleanup()


@pytest.fixture
def app(module):
    """Host app around the activated `module`. Tests may add routes to it."""
    return create_app(module=module)


@pytest_asyncio.fixture
async def test_client(app):
    """
    HTTPX AsyncClient for endpoint testing.

    raise_app_exceptions=False lets tests observe the 500 response produced
    when a downstream handler raises.
    """
    asgi = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=asgi, base_url="http://test") as client:
        yield client
