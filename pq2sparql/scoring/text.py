"""String helpers shared by the candidate scorers."""

import re
from difflib import SequenceMatcher
from urllib.parse import unquote


def normalize(text: str) -> str:
    """Lower-case, underscores to spaces, collapsed whitespace."""
    return " ".join(text.replace("_", " ").lower().split())


def longest_common_substring(a: str, b: str) -> str:
    """Longest contiguous substring shared by ``a`` and ``b``."""
    if not a or not b:
        return ""
    matcher = SequenceMatcher(None, a, b, autojunk=False)
    match = matcher.find_longest_match(0, len(a), 0, len(b))
    return a[match.a:match.a + match.size]


def overlap_ratio(query: str, candidate: str) -> float:
    """
    Share of ``candidate`` covered by its longest common substring with ``query``.

    Both strings are normalized first. An empty candidate scores 0.
    """
    candidate = normalize(candidate)
    if not candidate:
        return 0.0
    common = longest_common_substring(normalize(query), candidate)
    return len(common) / len(candidate)


def has_part(haystack: str, needle: str) -> bool:
    """
    Test if ``needle`` is a sequence of whole words of ``haystack``.

    ("abc def", "def") -> True, ("abc def", "de") -> False
    """
    return f" {needle} " in f" {haystack} "


def has_part_starting_with(haystack: str, needle: str) -> bool:
    """
    Test if a word of ``haystack`` starts with ``needle``.

    ("abc def", "de") -> True, ("abc def", "bc") -> False
    """
    return f" {needle}" in f" {haystack}"


def uri_local_name(uri: str) -> str:
    """Part of the URI after the last '#' or '/' (or after the prefix colon)."""
    for sep in ("#", "/"):
        if sep in uri:
            return uri.rsplit(sep, 1)[1]
    if ":" in uri:
        return uri.split(":", 1)[1]
    return uri


def resource_name_from_uri(uri: str) -> str:
    """Display name derived from a resource URI, e.g. ``.../Dan_Brown`` -> ``Dan Brown``."""
    return unquote(uri_local_name(uri)).replace("_", " ")


_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def format_resource_name(name: str) -> str:
    """
    Format ontology names like ``EuropeanCapital123`` as natural language.

    ``EuropeanCapital123`` -> ``european capital``, ``birth_place`` -> ``birth place``
    """
    spaced = _CAMEL_BOUNDARY.sub(" ", name.replace("_", " "))
    words = re.findall(r"[^\W\d_]+", spaced)
    return " ".join(w.lower() for w in words)


def partial_main_words(phrase: str) -> list[tuple[str, float]]:
    """
    Semantically meaningful tails of a phrase, weighted by length ratio.

    "official web site" -> [("site", .24), ("web site", .53), ("official web site", 1.0)]
    """
    tokens = phrase.split()
    if not tokens:
        return []
    result = []
    for i in range(len(tokens) - 1, -1, -1):
        part = " ".join(tokens[i:])
        result.append((part, len(part) / len(phrase)))
    return result
