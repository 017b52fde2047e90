"""
Tests for the agent type catalog.
"""

import pytest

from knownagents import agents
from knownagents.exceptions import ConfigurationError, UnrecognizedAgentTypeError


class TestCatalog:

    def test_catalog_has_thirteen_unique_labels(self):
        assert len(agents.ALL_AGENT_TYPES) == 13
        assert len(set(agents.ALL_AGENT_TYPES)) == 13

    def test_catalog_order(self):
        assert agents.ALL_AGENT_TYPES[0] == "AI Assistant"
        assert agents.ALL_AGENT_TYPES[-1] == "Undocumented AI Agent"

    def test_wildcard_is_not_a_label(self):
        assert not agents.is_known_agent_type(agents.WILDCARD)


class TestValidateAgentTypes:

    @pytest.mark.parametrize("label", agents.ALL_AGENT_TYPES)
    def test_each_label_is_accepted(self, label):
        assert agents.validate_agent_types([label]) == [label]

    def test_all_labels_together(self):
        labels = list(reversed(agents.ALL_AGENT_TYPES))
        assert agents.validate_agent_types(labels) == labels

    def test_unknown_label_is_named(self):
        with pytest.raises(UnrecognizedAgentTypeError) as exc_info:
            agents.validate_agent_types(["Archiver", "Friendly Robot", "Nope"])
        assert exc_info.value.agent_type == "Friendly Robot"
        assert exc_info.value.message == "unrecognized agent type 'Friendly Robot'"

    def test_labels_are_case_sensitive(self):
        with pytest.raises(UnrecognizedAgentTypeError):
            agents.validate_agent_types(["archiver"])

    def test_error_is_a_configuration_error(self):
        with pytest.raises(ConfigurationError):
            agents.validate_agent_types(["Friendly Robot"])
