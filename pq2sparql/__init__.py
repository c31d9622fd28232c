"""
pq2sparql: semantic query synthesis from pseudo queries to SPARQL.

A pseudo query is a loosely typed set of triples extracted from a question,
e.g. "Which books were written by Dan Brown?" becomes
``[?book] ["author"] ["Dan Brown"]``. The engine maps variables to classes,
text to resources and predicates to properties, ranks the resulting SPARQL
queries and returns the first one that yields data.

Basic usage:
    >>> from pq2sparql import answer, pseudo_query_from_dict
    >>> pq = pseudo_query_from_dict({
    ...     "focus": "book",
    ...     "variables": {"book": "unknown"},
    ...     "triples": [["?book", "author", "Dan Brown"]],
    ... })
    >>> result = answer(pq)
    >>> print(result.sparql)

Advanced usage:
    >>> from pq2sparql import QuerySynthesisEngine
    >>> from pq2sparql.kb import GraphGateway
    >>> engine = QuerySynthesisEngine(GraphGateway.from_file("books.ttl"))
    >>> candidates = engine.build_ranked_query_candidates(pq)
"""

__version__ = "0.1.0"

from dataclasses import dataclass, field
from typing import Optional

from .config import (
    EngineConfig,
    GatewayConfig,
    SearchConfig,
    TypeDefaults,
    DBPEDIA_ENDPOINT,
)
from .errors import (
    Pq2SparqlError,
    InputError,
    GatewayError,
    LookupFailure,
    GatewayUnavailable,
    SearchCancelled,
)
from .query import (
    BasicKind,
    Constant,
    MappedString,
    PseudoQuery,
    Query,
    ScoredCandidate,
    Triple,
    TypeConstraint,
    Variable,
    VariableCategory,
)


class NoAnswer:
    """Outcome of a search in which no candidate query returned data.

    Not an error: the knowledge base simply yields nothing for any of the
    candidate mappings. Falsy, so ``if engine.select_best(pq):`` reads well.
    """

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_ANSWER"


NO_ANSWER = NoAnswer()


@dataclass
class AnswerResult:
    """Result of answering a pseudo query."""

    pseudo_query: PseudoQuery
    query: Optional[Query] = None
    sparql: Optional[str] = None
    answers: list = field(default_factory=list)
    num_candidates: int = 0
    candidates_tried: int = 0
    error: Optional[str] = None

    @property
    def answered(self) -> bool:
        """Check if a candidate query returned data."""
        return self.query is not None and len(self.answers) > 0

    @property
    def score(self) -> float:
        return self.query.score if self.query is not None else 0.0


# Lazy imports to avoid loading SPARQLWrapper/nltk at import time
def _get_engine():
    """Lazy load the QuerySynthesisEngine class."""
    from .engine.engine import QuerySynthesisEngine
    return QuerySynthesisEngine


def answer(
    pseudo_query: PseudoQuery,
    endpoint: str = DBPEDIA_ENDPOINT,
    use_wordnet: bool = False,
) -> AnswerResult:
    """
    Answer a pseudo query against a SPARQL endpoint.

    This is the main entry point for simple usage. For more control (other
    gateways, lexicons, configuration), use QuerySynthesisEngine directly.

    Args:
        pseudo_query: The pseudo query to answer
        endpoint: SPARQL endpoint URL
        use_wordnet: Whether to expand words with WordNet (requires the nltk
            wordnet corpus)

    Returns:
        AnswerResult with the winning query and its answers
    """
    synonyms = None
    if use_wordnet:
        from .lexicon.wordnet import WordNetSynonymProvider
        synonyms = WordNetSynonymProvider()

    QuerySynthesisEngine = _get_engine()
    engine = QuerySynthesisEngine.from_endpoint(endpoint, synonyms=synonyms)
    return engine.answer(pseudo_query)


# Re-export key classes and functions
__all__ = [
    # Main API
    "answer",
    "QuerySynthesisEngine",
    "load_pseudo_query",
    "pseudo_query_from_dict",
    # Types
    "BasicKind",
    "Constant",
    "MappedString",
    "PseudoQuery",
    "Query",
    "ScoredCandidate",
    "Triple",
    "TypeConstraint",
    "Variable",
    "VariableCategory",
    "NoAnswer",
    "NO_ANSWER",
    "AnswerResult",
    # Errors
    "Pq2SparqlError",
    "InputError",
    "GatewayError",
    "LookupFailure",
    "GatewayUnavailable",
    "SearchCancelled",
    # Configuration
    "EngineConfig",
    "GatewayConfig",
    "SearchConfig",
    "TypeDefaults",
    "DBPEDIA_ENDPOINT",
    # Version
    "__version__",
]


# Lazy exports
def __getattr__(name):
    if name == "QuerySynthesisEngine":
        return _get_engine()
    if name in ("load_pseudo_query", "pseudo_query_from_dict"):
        from . import io
        return getattr(io, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
