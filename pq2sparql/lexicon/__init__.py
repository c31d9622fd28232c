"""Lexical expansion backends."""

from .base import (
    DERIVED,
    HYPERNYM,
    HYPONYM,
    LEMMA,
    SYNONYM,
    StaticSynonymProvider,
    SynonymCandidate,
    SynonymProvider,
    merge_candidates,
)

__all__ = [
    "DERIVED",
    "HYPERNYM",
    "HYPONYM",
    "LEMMA",
    "SYNONYM",
    "StaticSynonymProvider",
    "SynonymCandidate",
    "SynonymProvider",
    "WordNetSynonymProvider",
    "merge_candidates",
]


def __getattr__(name):
    if name == "WordNetSynonymProvider":
        from .wordnet import WordNetSynonymProvider
        return WordNetSynonymProvider
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
