"""
Known Agents Middleware - Directive Parser
==========================================

What:  Turns a `knownagents { ... }` configuration block into a `ModuleConfig`.
How:   Walks the block with a `Dispenser`, collecting the access token and the
       optional robots.txt policy, then checks required values are present.
Who:   Registered as the handler directive for `knownagents` (registry.py) and
       called by the application factory.
When:  Once, when the host loads its configuration.

Syntax:

    knownagents {
        access_token <token>
        robots_txt {
            agent_types <agent type...> | *
            disallow <path>
        }
    }

Agent type labels are only checked for catalog membership later, when the
module is validated (module.py). This parser accepts any label verbatim.
"""

from typing import List, Optional

from knownagents import agents
from knownagents.caddyfile import Dispenser
from knownagents.config import Settings, settings
from knownagents.exceptions import ConfigurationError
from knownagents.schemas.knownagents import DEFAULT_DISALLOW, ModuleConfig, RobotsPolicy


DIRECTIVE_NAME = "knownagents"


def parse_directive(d: Dispenser) -> ModuleConfig:
    """
    Parse the directive the dispenser is positioned before.

    Raises:
        DirectiveSyntaxError: naming the offending token and its line.
    """
    d.next()  # consume directive name

    access_token = ""
    robots_configured = False
    agent_types: List[str] = []
    disallow = DEFAULT_DISALLOW

    nesting = d.nesting()
    while d.next_block(nesting):
        key = d.val()

        if key == "robots_txt":
            if robots_configured:
                raise d.err("robots_txt is already configured")
            robots_configured = True

            inner = d.nesting()
            while d.next_block(inner):
                subkey = d.val()
                if subkey == "agent_types":
                    if not d.next_arg():
                        raise d.arg_err()
                    if d.val() == agents.WILDCARD:
                        if d.next_arg():
                            raise d.errf("unexpected argument '%s'", d.val())
                        agent_types = list(agents.ALL_AGENT_TYPES)
                    else:
                        agent_types.append(d.val())
                        agent_types.extend(d.remaining_args())

                elif subkey == "disallow":
                    if not d.next_arg():
                        raise d.arg_err()
                    disallow = d.val()
                    if d.next_arg():
                        raise d.errf("unexpected argument '%s'", d.val())

                else:
                    raise d.errf("unknown subdirective '%s'", subkey)

        elif key == "access_token":
            if not d.next_arg():
                raise d.arg_err()
            access_token = d.val()
            if d.next_arg():
                raise d.errf("unexpected argument '%s'", d.val())

        else:
            raise d.errf("unrecognized subdirective '%s'", key)

    if d.next_arg():
        raise d.errf("unexpected argument '%s'", d.val())

    if not access_token:
        raise d.err("missing access token")

    robots_txt: Optional[RobotsPolicy] = None
    if robots_configured:
        if not agent_types:
            raise d.err("missing agent type filters")
        robots_txt = RobotsPolicy(agent_types=agent_types, disallow=disallow)

    return ModuleConfig(access_token=access_token, robots_txt=robots_txt)


def parse_text(text: str, filename: str = "Caddyfile") -> ModuleConfig:
    """Tokenize `text` and parse the `knownagents` block it holds."""
    return parse_directive(Dispenser.from_text(text, filename))


def from_settings(source: Settings = settings) -> ModuleConfig:
    """
    Assemble a configuration from `KNOWNAGENTS_*` environment settings.

    Used when no configuration block is supplied. A robots.txt policy is only
    configured when `KNOWNAGENTS_ROBOTS_AGENT_TYPES` is set; "*" selects the
    whole catalog.

    Raises:
        ConfigurationError: when the access token is missing.
    """
    if not source.access_token:
        raise ConfigurationError("missing access token")

    labels = source.robots_agent_types_list
    robots_txt: Optional[RobotsPolicy] = None
    if labels:
        if labels[0] == agents.WILDCARD:
            if len(labels) > 1:
                raise ConfigurationError(f"unexpected argument '{labels[1]}'")
            labels = list(agents.ALL_AGENT_TYPES)
        robots_txt = RobotsPolicy(agent_types=labels, disallow=source.robots_disallow)

    return ModuleConfig(access_token=source.access_token, robots_txt=robots_txt)
