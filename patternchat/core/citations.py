"""
Citation deduplication and markdown formatting.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Set, Tuple

SOURCES_HEADER = "## Sources"


@dataclass(frozen=True)
class Citation:
    """A web citation. (url, title) identifies it."""
    url: str
    title: str
    cited_text: str = ""

    @property
    def key(self) -> Tuple[str, str]:
        return (self.url, self.title)


def format_citation(citation: Citation) -> str:
    text = f"- [{citation.title}]({citation.url})"
    if citation.cited_text:
        text += f' - "{citation.cited_text}"'
    return text


@dataclass
class CitationDeduplicator:
    """Keeps the first occurrence of every (url, title) pair seen in one response."""

    _seen: Set[Tuple[str, str]] = field(default_factory=set)

    def add(self, citation: Citation) -> bool:
        """Record the citation. Returns False for a duplicate."""
        if citation.key in self._seen:
            return False
        self._seen.add(citation.key)
        return True

    def add_and_format(self, citation: Citation) -> str:
        """Formatted list item for a new citation, "" for a duplicate."""
        if not self.add(citation):
            return ""
        return format_citation(citation)


def deduplicate(citations: Iterable[Citation]) -> List[Citation]:
    dedup = CitationDeduplicator()
    return [c for c in citations if dedup.add(c)]


def deduplicate_and_format(citations: Iterable[Citation]) -> List[str]:
    return [format_citation(c) for c in deduplicate(citations)]


def format_sources_section(formatted: List[str]) -> str:
    """The trailing Sources section, or "" when there is nothing to cite."""
    if not formatted:
        return ""
    return f"\n\n{SOURCES_HEADER}\n\n" + "\n".join(formatted)


def append_sources(text: str, citations: Iterable[Citation]) -> str:
    return text + format_sources_section(deduplicate_and_format(citations))
