"""
Tests for module and directive registration.
"""

import pytest

from knownagents.caddyfile import Dispenser
from knownagents.exceptions import DirectiveSyntaxError
from knownagents.module import MODULE_ID, KnownAgents
from knownagents.registry import (
    DEFAULT_DIRECTIVE_ORDER,
    HandlerRegistry,
    ModuleInfo,
    Position,
    register,
)
from knownagents.schemas.knownagents import ModuleConfig


@pytest.fixture
def registry():
    reg = HandlerRegistry()
    register(reg)
    return reg


class TestRegister:

    def test_module_registered_under_namespaced_id(self, registry):
        info = registry.modules[MODULE_ID]
        assert info.id == "http.handlers.knownagents"
        module = info.new(ModuleConfig(access_token="token"))
        assert isinstance(module, KnownAgents)
        assert not module.provisioned

    def test_directive_ordered_immediately_before_header(self, registry):
        assert registry.directive_index("knownagents") == registry.directive_index("header") - 1
        assert registry.order[registry.directive_index("knownagents") - 1] == "vars"

    def test_registering_twice_fails(self, registry):
        with pytest.raises(ValueError):
            register(registry)

    def test_fresh_registry_is_empty(self):
        reg = HandlerRegistry()
        assert reg.modules == {}
        assert reg.directives == {}
        assert tuple(reg.order) == DEFAULT_DIRECTIVE_ORDER


class TestDirectiveOrder:

    def test_after_position(self):
        reg = HandlerRegistry()
        reg.register_directive_order("custom", Position.AFTER, "header")
        assert reg.directive_index("custom") == reg.directive_index("header") + 1

    def test_reordering_moves_existing_entry(self):
        reg = HandlerRegistry()
        reg.register_directive_order("custom", Position.BEFORE, "header")
        reg.register_directive_order("custom", Position.AFTER, "file_server")
        assert reg.order.count("custom") == 1
        assert reg.order[-1] == "custom"

    def test_unknown_anchor_fails(self):
        reg = HandlerRegistry()
        with pytest.raises(ValueError, match="does not exist"):
            reg.register_directive_order("custom", Position.BEFORE, "nope")

    def test_duplicate_module_id_fails(self):
        reg = HandlerRegistry()
        reg.register_module(ModuleInfo(id="http.handlers.x", new=KnownAgents))
        with pytest.raises(ValueError, match="already registered"):
            reg.register_module(ModuleInfo(id="http.handlers.x", new=KnownAgents))


class TestSetupDirective:

    def test_builds_module_from_block(self, registry):
        d = Dispenser.from_text(
            "knownagents {\n"
            "    access_token abc123\n"
            "    robots_txt {\n"
            "        agent_types Archiver Scraper\n"
            "    }\n"
            "}\n"
        )
        module = registry.setup_directive(d)

        assert isinstance(module, KnownAgents)
        assert module.config.access_token == "abc123"
        assert module.config.robots_txt.agent_types == ["Archiver", "Scraper"]
        assert module.config.robots_txt.disallow == "/"

    def test_unknown_directive_fails(self, registry):
        d = Dispenser.from_text("visitstats {\n    access_token abc\n}\n")
        with pytest.raises(DirectiveSyntaxError, match="unrecognized directive: visitstats"):
            registry.setup_directive(d)

    def test_empty_input_fails(self, registry):
        with pytest.raises(DirectiveSyntaxError):
            registry.setup_directive(Dispenser.from_text(""))

    def test_parse_errors_propagate(self, registry):
        d = Dispenser.from_text("knownagents {\n    robots_txt {\n        agent_types *\n    }\n}\n")
        with pytest.raises(DirectiveSyntaxError, match="missing access token"):
            registry.setup_directive(d)
