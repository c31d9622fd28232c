"""Query synthesis engine: from pseudo query to answered SPARQL query."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Optional, Union

from .. import AnswerResult, NoAnswer
from ..config import EngineConfig
from ..errors import InputError
from ..kb.base import KBGateway, SerializedGateway
from ..kb.render import SparqlRenderer
from ..lexicon.base import SynonymProvider
from ..query import PseudoQuery, Query, ScoredCandidate
from .builder import QueryCandidateBuilder
from .cache import CandidateCache
from .resolver import TripleResolver
from .selector import first_answered, select_best
from .types import VariableTypeInferrer

logger = logging.getLogger(__name__)


class QuerySynthesisEngine:
    """
    Turns pseudo queries into ranked SPARQL query candidates and picks the
    first candidate that returns data.

    One engine is meant to be long-lived: its candidate cache is shared by
    every search it runs, including concurrent ones.

    Example:
        >>> from pq2sparql.kb import EndpointGateway
        >>> engine = QuerySynthesisEngine(EndpointGateway())
        >>> result = engine.answer(pseudo_query)
        >>> print(result.sparql)
    """

    def __init__(
        self,
        gateway: KBGateway,
        synonyms: Optional[SynonymProvider] = None,
        config: Optional[EngineConfig] = None,
        cache: Optional[CandidateCache] = None,
    ):
        """
        Initialize the engine.

        Args:
            gateway: Knowledge base gateway; calls to a gateway that is not
                thread safe are serialised
            synonyms: Lexical expansion service (None to use literal words only)
            config: Engine configuration
            cache: Candidate cache (a new one if not given)
        """
        renderer = getattr(gateway, "renderer", None)
        if not gateway.thread_safe:
            gateway = SerializedGateway(gateway)
        self.gateway = gateway
        self.synonyms = synonyms
        self.config = config or EngineConfig()
        self.cache = cache or CandidateCache()

        self.inferrer = VariableTypeInferrer(gateway, synonyms, self.cache, self.config)
        self.resolver = TripleResolver(gateway, synonyms, self.cache, self.config)
        self.builder = QueryCandidateBuilder(self.inferrer, self.resolver, self.config)

        if not isinstance(renderer, SparqlRenderer):
            renderer = SparqlRenderer(
                prefixes=self.config.gateway.prefixes,
                graphs=self.config.gateway.graphs,
                label_language=self.config.gateway.label_language,
            )
        self.renderer = renderer

    @classmethod
    def from_endpoint(
        cls,
        endpoint: Optional[str] = None,
        synonyms: Optional[SynonymProvider] = None,
        config: Optional[EngineConfig] = None,
    ) -> "QuerySynthesisEngine":
        """Engine over a remote SPARQL endpoint (configuration from the environment)."""
        from ..kb.endpoint import EndpointGateway

        config = config or EngineConfig.from_env(endpoint=endpoint)
        if endpoint:
            config.gateway.endpoint = endpoint
        return cls(EndpointGateway(config.gateway), synonyms=synonyms, config=config)

    def build_ranked_query_candidates(
        self,
        pseudo_query: PseudoQuery,
        cancel: Optional[threading.Event] = None,
    ) -> list[ScoredCandidate[Query]]:
        """
        Ranked, resolved query candidates for a pseudo query.

        Raises:
            InputError: if the pseudo query is malformed
            GatewayUnavailable: if the knowledge base cannot be reached
            SearchCancelled: if ``cancel`` is set during the search
        """
        pseudo_query.validate()
        return self.builder.build(pseudo_query, cancel)

    def select_best(
        self,
        pseudo_query: PseudoQuery,
        cancel: Optional[threading.Event] = None,
    ) -> Union[Query, NoAnswer]:
        """The best query candidate that returns data, or NO_ANSWER."""
        candidates = self.build_ranked_query_candidates(pseudo_query, cancel)
        return select_best(candidates, self.gateway, cancel)

    def answer(
        self,
        pseudo_query: PseudoQuery,
        cancel: Optional[threading.Event] = None,
    ) -> AnswerResult:
        """
        Answer a pseudo query.

        Returns:
            AnswerResult with the winning query, its SPARQL and the focus
            variable's bindings; ``answered`` is False when no candidate
            returned data
        """
        candidates = self.build_ranked_query_candidates(pseudo_query, cancel)
        found = first_answered(candidates, self.gateway, cancel)
        if found is None:
            logger.info("No answer among %d candidates", len(candidates))
            return AnswerResult(
                pseudo_query=pseudo_query,
                num_candidates=len(candidates),
                candidates_tried=len(candidates),
            )

        query, rows, tried = found
        focus = query.focus.name
        answers = [row[focus] for row in rows if focus in row]
        return AnswerResult(
            pseudo_query=pseudo_query,
            query=query,
            sparql=self.to_sparql(query),
            answers=answers,
            num_candidates=len(candidates),
            candidates_tried=tried,
        )

    def answer_many(
        self,
        pseudo_queries: Iterable[PseudoQuery],
        max_workers: int = 4,
    ) -> list[AnswerResult]:
        """
        Answer independent pseudo queries concurrently, one search per thread.

        Malformed pseudo queries yield a result carrying the error; gateway
        outages propagate.
        """
        pseudo_queries = list(pseudo_queries)

        def run(pseudo_query: PseudoQuery) -> AnswerResult:
            try:
                return self.answer(pseudo_query)
            except InputError as e:
                logger.warning("Rejected pseudo query: %s", e)
                return AnswerResult(pseudo_query=pseudo_query, error=str(e))

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            return list(executor.map(run, pseudo_queries))

    def to_sparql(self, query: Query) -> str:
        """Readable SPARQL for a resolved query."""
        return self.renderer.select(query)
