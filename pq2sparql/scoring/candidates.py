"""Scoring of resource, property and class candidates.

All functions here are pure: callers pass in whatever the knowledge base
returned and get scored, trace-annotated candidates back.
"""

import math
from typing import Callable, Iterable, Optional

from ..config import SearchConfig
from ..lexicon.base import HYPERNYM
from ..query import MappedString, ScoredCandidate, rank
from .text import (
    format_resource_name,
    has_part,
    has_part_starting_with,
    normalize,
    overlap_ratio,
    resource_name_from_uri,
    uri_local_name,
)

_DEFAULTS = SearchConfig()


def expansion_score(score: float, relation: str, search: SearchConfig = _DEFAULTS) -> float:
    """Score of a lexical expansion; hypernyms rank below synonyms of equal score."""
    if relation == HYPERNYM:
        return score * search.hypernym_penalty
    return score


def resource_match(
    query_text: str,
    candidate_label: str,
    candidate_uri: str,
    inexact_match_penalty: float = _DEFAULTS.inexact_match_penalty,
) -> tuple[float, bool]:
    """
    Score how well a resource matches the searched text.

    The score averages two overlap ratios: against the resource label and
    against the display name derived from its URI. Anything short of an exact
    match on both is multiplied by ``inexact_match_penalty``, which strongly
    favours exact lexical matches.

    Args:
        query_text: Text searched for (e.g. "Dan Brown")
        candidate_label: Label of the candidate resource
        candidate_uri: URI of the candidate resource
        inexact_match_penalty: Multiplier for partial matches

    Returns:
        Tuple of (score, is_exact)
    """
    label_score = overlap_ratio(query_text, candidate_label)
    uri_score = overlap_ratio(query_text, resource_name_from_uri(candidate_uri))
    combined = 0.5 * label_score + 0.5 * uri_score
    if combined < 1.0:
        return combined * inexact_match_penalty, False
    return combined, True


def score_resource_match(
    query_text: str,
    candidate_label: str,
    candidate_uri: str,
    inexact_match_penalty: float = _DEFAULTS.inexact_match_penalty,
) -> float:
    """Score of :func:`resource_match` without the exactness flag."""
    return resource_match(query_text, candidate_label, candidate_uri, inexact_match_penalty)[0]


def rank_resource_hits(
    query_text: str,
    hits: Iterable,
    shorten: Callable[[str], str],
    config: SearchConfig = _DEFAULTS,
) -> list[ScoredCandidate[MappedString]]:
    """Score resource search hits (``uri``/``label`` pairs) and rank them."""
    best: dict[str, ScoredCandidate[MappedString]] = {}
    for hit in hits:
        score, exact = resource_match(
            query_text, hit.label, hit.uri, config.inexact_match_penalty
        )
        if score <= 0.0:
            continue
        note = "exact match" if exact else "partial match"
        mapped = MappedString(hit.uri, (query_text, f"{shorten(hit.uri)} ({note})"))
        # The same resource is often found through several labels
        previous = best.get(hit.uri)
        if previous is None or score > previous.score:
            best[hit.uri] = ScoredCandidate(mapped, score)
    return rank(best.values())


def property_type_multiplier(
    is_object_property: bool,
    object_is_bound_resource: bool,
    config: SearchConfig = _DEFAULTS,
) -> float:
    """Preference for object properties, mandatory when the object is a resource."""
    if object_is_bound_resource and not is_object_property:
        return config.non_object_property_penalty
    if is_object_property:
        return config.object_property_bonus
    return 1.0


def connectivity_bonus(connection_count: int, config: SearchConfig = _DEFAULTS) -> float:
    """
    Very small bonus for well-connected properties.

    Logarithmic so that an untyped property with many connections cannot
    outrank a precisely typed one with few; it only matters in near ties.
    """
    return config.connectivity_bonus_weight * math.log(1 + max(connection_count, 0))


def score_property_match(
    candidate_name: str,
    synonym: Optional[ScoredCandidate[MappedString]],
    connection_count: int,
    is_object_property: bool,
    object_is_bound_resource: bool,
    config: SearchConfig = _DEFAULTS,
) -> float:
    """
    Score a property against one name/synonym candidate.

    Args:
        candidate_name: Natural-language form of the property (e.g. "birth place")
        synonym: Matched word with its own score, or None for a wildcard predicate
        connection_count: Number of connections of the property in the KB
        is_object_property: Whether the property links resources
        object_is_bound_resource: Whether the object side is a known resource
        config: Search constants

    Returns:
        name match x type preference + connectivity bonus; without a synonym,
        type preference + connectivity bonus.
    """
    multiplier = property_type_multiplier(is_object_property, object_is_bound_resource, config)
    bonus = connectivity_bonus(connection_count, config)
    if synonym is None:
        return multiplier + bonus
    if not candidate_name:
        return bonus
    name_match = len(synonym.value.value) / len(candidate_name) * synonym.score
    return name_match * multiplier + bonus


def rank_property_hits(
    hits: Iterable,
    name_candidates: list[ScoredCandidate[MappedString]],
    object_is_bound_resource: bool,
    shorten: Callable[[str], str],
    config: SearchConfig = _DEFAULTS,
) -> list[ScoredCandidate[MappedString]]:
    """
    Match property hits against name candidates and keep the top K.

    A property matches a candidate word when one of the words of its
    formatted local name starts with the candidate ("birth place" matches
    "place" and "birth", not "irth"). With no name candidates at all every
    property is kept and ranked by type preference and connectivity.
    """
    best: dict[str, ScoredCandidate[MappedString]] = {}

    def keep(candidate: ScoredCandidate[MappedString]) -> None:
        previous = best.get(candidate.value.value)
        if previous is None or candidate.score > previous.score:
            best[candidate.value.value] = candidate

    for hit in hits:
        short = shorten(hit.uri)
        p_name = format_resource_name(uri_local_name(hit.uri))
        if not name_candidates:
            score = score_property_match(
                p_name, None, hit.count, hit.is_object_property, object_is_bound_resource, config
            )
            keep(ScoredCandidate(MappedString(hit.uri, (short,)), score))
            continue
        for candidate in name_candidates:
            word = normalize(candidate.value.value)
            if not word or not has_part_starting_with(p_name, word):
                continue
            score = score_property_match(
                p_name,
                candidate,
                hit.count,
                hit.is_object_property,
                object_is_bound_resource,
                config,
            )
            mapped = MappedString(hit.uri, candidate.value.trace + (f"{short} (URI match)",))
            keep(ScoredCandidate(mapped, score))

    return rank(best.values())[: config.property_candidates]


def score_type_match(word: str, word_score: float, class_name: str) -> float:
    """Score of a class whose formatted name contains ``word`` as whole words."""
    if not class_name or not has_part(class_name, word):
        return 0.0
    return word_score * len(word) / len(class_name)


def best_type_match(
    name_candidates: Iterable[ScoredCandidate[MappedString]],
    classes: Iterable[str],
    population_count: Callable[[str], int],
    shorten: Callable[[str], str],
    config: SearchConfig = _DEFAULTS,
) -> Optional[ScoredCandidate[MappedString]]:
    """
    Pick the class that best matches any of the name candidates.

    Ties among the top-scored classes are broken by preferring the class with
    the larger population (log-scaled). Population counts are only requested
    for tied classes.

    Returns:
        The best class as a scored, traced URI, or None if nothing matches.
    """
    class_names = [(uri, format_resource_name(uri_local_name(uri))) for uri in classes]
    matches: dict[str, ScoredCandidate[MappedString]] = {}
    for candidate in name_candidates:
        word = normalize(candidate.value.value)
        if not word:
            continue
        for uri, class_name in class_names:
            score = score_type_match(word, candidate.score, class_name)
            if score <= 0.0:
                continue
            previous = matches.get(uri)
            if previous is None or score > previous.score:
                trace = candidate.value.trace + (f"{shorten(uri)} (URI match)",)
                matches[uri] = ScoredCandidate(MappedString(uri, trace), score)

    if not matches:
        return None
    ranked = rank(matches.values())
    top_score = ranked[0].score
    tied = [c for c in ranked if math.isclose(c.score, top_score, rel_tol=1e-9)]
    if len(tied) == 1:
        return tied[0]
    return max(
        tied,
        key=lambda c: config.population_bonus_weight
        * math.log(1 + max(population_count(c.value.value), 0)),
    )
