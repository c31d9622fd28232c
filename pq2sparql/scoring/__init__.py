"""Scoring of resource, property and class candidates."""

from .candidates import (
    resource_match,
    score_resource_match,
    rank_resource_hits,
    score_property_match,
    rank_property_hits,
    score_type_match,
    best_type_match,
)
from .text import format_resource_name, longest_common_substring

__all__ = [
    "resource_match",
    "score_resource_match",
    "rank_resource_hits",
    "score_property_match",
    "rank_property_hits",
    "score_type_match",
    "best_type_match",
    "format_resource_name",
    "longest_common_substring",
]
