"""Discover recurring "## Section" headers the extraction engine does not handle yet."""

import json
import re
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import UTC, datetime

from common.constants import KNOWN_SECTIONS
from common.logger import get_logger

from .extractors import iter_bullets
from .sections import find_section

logger = get_logger(__name__)

_SECTION_HEADER = re.compile(r"^##[ \t]+(?P<name>[^#\n]*?\w)[^\w\n]*$", re.MULTILINE)


@dataclass
class DiscoveredSection:
    header: str
    occurrences: int
    dates: list[str] = field(default_factory=list)
    samples: list[str] = field(default_factory=list)


def is_known_section(name: str, known: tuple[str, ...] = KNOWN_SECTIONS) -> bool:
    lowered = name.lower()
    return any(section.lower() in lowered for section in known)


class SectionPatternLearner:
    """Count unknown section headers across a corpus of insight documents."""

    def __init__(self, known: tuple[str, ...] = KNOWN_SECTIONS, max_samples: int = 3):
        self.known = known
        self.max_samples = max_samples
        self.section_names: Counter = Counter()
        self.section_capitalization: dict[str, Counter] = defaultdict(Counter)
        self.section_dates: dict[str, set[str]] = defaultdict(set)
        self.samples: dict[str, list[str]] = defaultdict(list)

    def analyze(self, content: str, date: str) -> None:
        """Record every unknown "##" header in one document.

        Args:
            content: Insight markdown
            date: Date the document covers
        """
        for match in _SECTION_HEADER.finditer(content):
            name = match.group("name").strip()
            if is_known_section(name, self.known):
                continue

            key = name.lower()
            self.section_names[key] += 1
            self.section_capitalization[key][name] += 1
            self.section_dates[key].add(date)

            samples = self.samples[key]
            for item in iter_bullets(find_section(content, name)):
                if len(samples) >= self.max_samples:
                    break
                if item not in samples:
                    samples.append(item)

    def discoveries(self, min_occurrences: int = 1) -> list[DiscoveredSection]:
        """Return discovered sections, most frequent first."""
        results = []
        for key, count in self.section_names.most_common():
            if count < min_occurrences:
                continue
            name, _ = self.section_capitalization[key].most_common(1)[0]
            results.append(
                DiscoveredSection(
                    header=name,
                    occurrences=count,
                    dates=sorted(self.section_dates[key]),
                    samples=list(self.samples[key]),
                )
            )
        return results


def check_for_new_sections(
    store, user_id: int, seen_at: str | None = None, recent: int = 30
) -> list[DiscoveredSection]:
    """Scan a user's most recent insights and persist unknown sections as pending.

    Args:
        store: DataStore to read insights from and record discoveries in
        user_id: Whose insights to scan
        seen_at: ISO date recorded as last seen (default: today in UTC)
        recent: Number of most recent insights to scan

    Returns:
        The sections found in this scan
    """
    learner = SectionPatternLearner()
    for insight in store.list_insights(user_id=user_id, limit=recent):
        learner.analyze(insight["content"], insight["date"])

    found = learner.discoveries()
    seen_at = seen_at or datetime.now(UTC).date().isoformat()
    for section in found:
        store.record_discovery(
            section.header,
            occurrences=section.occurrences,
            sample=json.dumps(section.samples),
            seen_at=seen_at,
        )

    if found:
        logger.info(f"Discovered [bold]{len(found)}[/bold] unrecognized section(s) for user {user_id}")
    return found
