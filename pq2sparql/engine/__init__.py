"""Semantic query synthesis: type inference, triple resolution, candidate search."""

from .builder import QueryCandidateBuilder
from .cache import CandidateCache
from .engine import QuerySynthesisEngine
from .resolver import TripleResolver
from .selector import first_answered, select_best
from .types import VariableTypeInferrer

__all__ = [
    "CandidateCache",
    "QueryCandidateBuilder",
    "QuerySynthesisEngine",
    "TripleResolver",
    "VariableTypeInferrer",
    "first_answered",
    "select_best",
]
