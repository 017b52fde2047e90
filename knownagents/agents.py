"""
Known Agents Middleware - Agent Type Catalog
============================================

What:  The fixed list of agent types the Known Agents API classifies
       automated web clients into.
Who:   The directive parser expands `agent_types *` to this list; the module
       validates configured labels against it.

The catalog order is the wildcard expansion order sent to the API.
"""

from typing import Iterable, List

from knownagents.exceptions import UnrecognizedAgentTypeError

AI_ASSISTANT = "AI Assistant"
AI_DATA_SCRAPER = "AI Data Scraper"
AI_SEARCH_CRAWLER = "AI Search Crawler"
ARCHIVER = "Archiver"
DEVELOPER_HELPER = "Developer Helper"
FETCHER = "Fetcher"
HEADLESS_BROWSER = "Headless Browser"
INTELLIGENCE_GATHERER = "Intelligence Gatherer"
SCRAPER = "Scraper"
SEARCH_ENGINE_CRAWLER = "Search Engine Crawler"
SEO_CRAWLER = "SEO Crawler"
UNCATEGORIZED = "Uncategorized"
UNDOCUMENTED_AI_AGENT = "Undocumented AI Agent"

ALL_AGENT_TYPES = (
    AI_ASSISTANT,
    AI_DATA_SCRAPER,
    AI_SEARCH_CRAWLER,
    ARCHIVER,
    DEVELOPER_HELPER,
    FETCHER,
    HEADLESS_BROWSER,
    INTELLIGENCE_GATHERER,
    SCRAPER,
    SEARCH_ENGINE_CRAWLER,
    SEO_CRAWLER,
    UNCATEGORIZED,
    UNDOCUMENTED_AI_AGENT,
)

# Token that stands for the whole catalog in `agent_types`.
WILDCARD = "*"

_KNOWN = frozenset(ALL_AGENT_TYPES)


def is_known_agent_type(label: str) -> bool:
    return label in _KNOWN


def validate_agent_types(labels: Iterable[str]) -> List[str]:
    """
    Check every label against the catalog.

    Returns:
        The labels as a list, unchanged.

    Raises:
        UnrecognizedAgentTypeError: naming the first label not in the catalog.
    """
    checked = []
    for label in labels:
        if not is_known_agent_type(label):
            raise UnrecognizedAgentTypeError(label)
        checked.append(label)
    return checked
