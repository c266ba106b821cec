"""Keyword-based tagging of sound names."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Mapping, Tuple

from .settings import DEFAULT_TAG, DEFAULT_TAG_RULES


@dataclass(frozen=True, slots=True)
class TagRule:
    """A tag label and the lowercase keywords that select it."""

    tag: str
    keywords: Tuple[str, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "keywords", tuple(word.lower() for word in self.keywords if word))

    def matches(self, lowered_name: str) -> bool:
        return any(keyword in lowered_name for keyword in self.keywords)


class Classifier:
    """Assign tags to a name using an ordered, immutable rule table."""

    def __init__(self, rules: Iterable[TagRule], default_tag: str = DEFAULT_TAG) -> None:
        if not default_tag:
            raise ValueError("default_tag must be a non-empty string")
        self._rules: Tuple[TagRule, ...] = tuple(rules)
        self._default_tag = default_tag

    @classmethod
    def from_mapping(
        cls, mapping: Mapping[str, Iterable[str]], default_tag: str = DEFAULT_TAG
    ) -> "Classifier":
        """Build a classifier from a ``tag -> keywords`` mapping, keeping its order."""

        rules = [
            TagRule(tag=tag, keywords=tuple(words))
            for tag, words in mapping.items()
        ]
        return cls(rules, default_tag=default_tag)

    @property
    def rules(self) -> Tuple[TagRule, ...]:
        return self._rules

    @property
    def default_tag(self) -> str:
        return self._default_tag

    def classify(self, name: str) -> List[str]:
        lowered = name.lower()
        tags: List[str] = []
        for rule in self._rules:
            if rule.tag not in tags and rule.matches(lowered):
                tags.append(rule.tag)
        return tags or [self._default_tag]


def default_classifier() -> Classifier:
    return Classifier.from_mapping(DEFAULT_TAG_RULES, default_tag=DEFAULT_TAG)
