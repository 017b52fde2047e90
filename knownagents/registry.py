"""
Known Agents Middleware - Module Registry
=========================================

What:  Records which HTTP handler modules and configuration directives the
       host knows about, and the order directives run in.
How:   A `HandlerRegistry` instance holds module descriptors, directive
       setup functions and an ordered list of directive names. `register()`
       adds the Known Agents module to a registry; the application factory
       calls it once at startup. Importing this module registers nothing.

Directive Order:
    Handlers run in the order their directives appear in `order`. The
    `knownagents` directive is placed immediately before `header`:

        ..., vars, knownagents, header, request_body, ..., file_server
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List

from knownagents.caddyfile import Dispenser
from knownagents.directive import DIRECTIVE_NAME, parse_directive
from knownagents.module import MODULE_ID, KnownAgents
from knownagents.schemas.knownagents import ModuleConfig

logger = logging.getLogger(__name__)

# Host handler directives in their default order.
DEFAULT_DIRECTIVE_ORDER = (
    "tracing",
    "map",
    "vars",
    "header",
    "request_body",
    "redir",
    "rewrite",
    "uri",
    "try_files",
    "basic_auth",
    "request_header",
    "encode",
    "templates",
    "handle",
    "route",
    "abort",
    "error",
    "respond",
    "reverse_proxy",
    "file_server",
)

DirectiveSetup = Callable[[Dispenser], KnownAgents]


class Position(str, Enum):
    BEFORE = "before"
    AFTER = "after"


@dataclass(frozen=True)
class ModuleInfo:
    """Capability descriptor: a namespaced module ID and its constructor."""

    id: str
    new: Callable[[ModuleConfig], KnownAgents]


class HandlerRegistry:
    """Modules, directives and directive order known to one host."""

    def __init__(self):
        self.modules: Dict[str, ModuleInfo] = {}
        self.directives: Dict[str, DirectiveSetup] = {}
        self.order: List[str] = list(DEFAULT_DIRECTIVE_ORDER)

    def register_module(self, info: ModuleInfo) -> None:
        if info.id in self.modules:
            raise ValueError(f"module already registered: {info.id}")
        self.modules[info.id] = info
        logger.debug("Registered module %s", info.id)

    def register_handler_directive(self, name: str, setup: DirectiveSetup) -> None:
        if name in self.directives:
            raise ValueError(f"directive {name} already registered")
        self.directives[name] = setup

    def register_directive_order(self, name: str, position: Position, relative_to: str) -> None:
        """Place `name` directly before or after an already ordered directive."""
        if relative_to not in self.order:
            raise ValueError(f"the directive '{relative_to}' does not exist in the order")
        if name in self.order:
            self.order.remove(name)
        index = self.order.index(relative_to)
        if position is Position.AFTER:
            index += 1
        self.order.insert(index, name)

    def directive_index(self, name: str) -> int:
        return self.order.index(name)

    def setup_directive(self, d: Dispenser) -> KnownAgents:
        """
        Build the handler for the directive at the dispenser's first token.

        Raises:
            DirectiveSyntaxError: the directive is unknown or malformed.
        """
        if not d.next():
            raise d.err("expected a directive")
        name = d.val()
        setup = self.directives.get(name)
        if setup is None:
            raise d.errf("unrecognized directive: %s", name)
        # setup functions consume the directive name themselves
        d.reset()
        return setup(d)


def setup_knownagents(d: Dispenser) -> KnownAgents:
    """Handler directive setup: parse the block into a new module instance."""
    return KnownAgents(parse_directive(d))


def register(registry: HandlerRegistry) -> None:
    """Register the Known Agents module, its directive and its order."""
    registry.register_module(ModuleInfo(id=MODULE_ID, new=KnownAgents))
    registry.register_handler_directive(DIRECTIVE_NAME, setup_knownagents)
    registry.register_directive_order(DIRECTIVE_NAME, Position.BEFORE, "header")
