"""Lexical expansion (synonyms, hyponyms, hypernyms) abstraction."""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

# Relation of an expanded word to the original word
LEMMA = "lemma"
SYNONYM = "synonym"
HYPONYM = "hyponym"
HYPERNYM = "hypernym"
DERIVED = "related form"


@dataclass(frozen=True)
class SynonymCandidate:
    """A word related to the expanded word, with a score in (0, 1]."""

    word: str
    score: float
    trace: tuple[str, ...] = field(default=(), compare=False)
    relation: str = SYNONYM


class SynonymProvider(ABC):
    """Lexical expansion service. Pure given a fixed lexicon snapshot."""

    @abstractmethod
    def expand(self, word: str, pos: Optional[str] = None) -> list[SynonymCandidate]:
        """
        Expand a word into related words.

        Args:
            word: Word or phrase to expand (underscores are treated as spaces)
            pos: Part of speech ("n", "v", "j", "r"), None for any

        Returns:
            Related words. Synonyms are undamped, hyponyms damped and
            hypernyms heavily damped.

        Raises:
            LookupFailure: if the backend fails
        """


def merge_candidates(candidates: list[SynonymCandidate]) -> list[SynonymCandidate]:
    """Keep the best-scored candidate per word, ordered by descending score."""
    best: dict[str, SynonymCandidate] = {}
    for c in candidates:
        word = c.word.replace("_", " ")
        previous = best.get(word)
        if previous is None or c.score > previous.score:
            best[word] = SynonymCandidate(word, c.score, c.trace, c.relation)
    return sorted(best.values(), key=lambda c: c.score, reverse=True)


class StaticSynonymProvider(SynonymProvider):
    """Synonym provider backed by a fixed mapping.

    Example mapping::

        {"write": [{"word": "author", "score": 0.8, "relation": "related form"}]}
    """

    def __init__(self, entries: Optional[dict[str, list]] = None):
        self.entries: dict[str, list[SynonymCandidate]] = {}
        for word, related in (entries or {}).items():
            self.add(word, related)

    def add(self, word: str, related: list) -> None:
        """Register related words, given as dicts, tuples or SynonymCandidate."""
        key = word.replace("_", " ").lower()
        bucket = self.entries.setdefault(key, [])
        for item in related:
            if isinstance(item, SynonymCandidate):
                candidate = item
            elif isinstance(item, dict):
                relation = item.get("relation", SYNONYM)
                candidate = SynonymCandidate(
                    word=item["word"],
                    score=float(item.get("score", 1.0)),
                    trace=(key, f"{item['word']} ({relation})"),
                    relation=relation,
                )
            else:
                related_word, score = item[0], float(item[1])
                relation = item[2] if len(item) > 2 else SYNONYM
                candidate = SynonymCandidate(
                    related_word, score, (key, f"{related_word} ({relation})"), relation
                )
            bucket.append(candidate)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "StaticSynonymProvider":
        """Load a mapping from a JSON file."""
        with open(path, "r", encoding="utf-8") as f:
            return cls(json.load(f))

    def expand(self, word: str, pos: Optional[str] = None) -> list[SynonymCandidate]:
        return merge_candidates(self.entries.get(word.replace("_", " ").lower(), []))
