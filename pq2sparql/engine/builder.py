"""Combinatorial assembly of whole-query candidates."""

import logging
import threading
from typing import Optional

from ..config import EngineConfig
from ..errors import SearchCancelled
from ..query import PseudoQuery, Query, ScoredCandidate, rank
from .resolver import TripleResolver
from .types import VariableTypeInferrer

logger = logging.getLogger(__name__)


def _check_cancelled(cancel: Optional[threading.Event]) -> None:
    if cancel is not None and cancel.is_set():
        raise SearchCancelled("Search cancelled")


class QueryCandidateBuilder:
    """
    Builds ranked query candidates in two stages.

    Type stage: every variable in turn multiplies each partial candidate by
    each of its type choices (including "no constraint"). A branch whose
    running score is not above the "no constraints anywhere" baseline
    ``P_none ** n`` is pruned immediately; the all-unconstrained branch is the
    baseline itself and always survives as the fallback.

    Triple stage: starting from an empty seed per type assignment, every
    pseudo triple multiplies each partial query by each candidate triple (both
    orientations) resolved under that assignment.
    """

    def __init__(
        self,
        inferrer: VariableTypeInferrer,
        resolver: TripleResolver,
        config: Optional[EngineConfig] = None,
    ):
        self.inferrer = inferrer
        self.resolver = resolver
        self.config = config or EngineConfig()

    def type_assignments(
        self,
        pseudo_query: PseudoQuery,
        cancel: Optional[threading.Event] = None,
    ) -> list[ScoredCandidate[Query]]:
        """
        Expand the pseudo query into scored type assignments.

        Returns:
            Query copies whose variables carry the chosen type constraints,
            scored by the product of the type choice scores
        """
        variables = pseudo_query.ordered_variables()
        penalty = self.config.search.no_type_constraint_penalty
        baseline = penalty ** len(variables)

        # Each branch remembers whether it is still fully unconstrained
        seed = Query.from_pseudo_query(pseudo_query, score=1.0)
        branches: list[tuple[Query, bool]] = [(seed, True)]
        for i, var in enumerate(variables):
            _check_cancelled(cancel)
            choices = self.inferrer.choices(var)
            logger.debug("Type choices for ?%s: %s", var.name, choices)
            expanded: list[tuple[Query, bool]] = []
            for choice in choices:
                for query, unconstrained in branches:
                    score = query.score * choice.score
                    still_unconstrained = unconstrained and choice.value is None
                    if score <= baseline and not still_unconstrained:
                        continue
                    branch = query.clone()
                    branch.score = score
                    branch.variables[var.name].type_constraint = choice.value
                    expanded.append((branch, still_unconstrained))
            branches = expanded

        assignments = rank(ScoredCandidate(query, query.score) for query, _ in branches)
        logger.debug("Generated %d type assignments", len(assignments))
        return assignments

    def triple_candidates(
        self,
        assignment: ScoredCandidate[Query],
        cancel: Optional[threading.Event] = None,
    ) -> list[ScoredCandidate[Query]]:
        """
        Resolve every triple of one type assignment.

        A triple without candidates makes the whole assignment unsatisfiable
        (no candidates are returned).
        """
        typed = assignment.value
        seed = typed.clone()
        seed.triples = []
        seed.score = assignment.score
        partials = [seed]

        for triple in typed.triples:
            _check_cancelled(cancel)
            # The triple's variables carry this assignment's type constraints
            triple_candidates = self.resolver.resolve_both(triple)
            if not triple_candidates:
                logger.debug("No candidates for %s", triple)
                return []
            extended = []
            for partial in partials:
                for candidate in triple_candidates:
                    query = partial.clone()
                    query.triples.append(query.adopt(candidate.value))
                    query.score = partial.score * candidate.score
                    extended.append(query)
            partials = extended

        return [ScoredCandidate(query, query.score) for query in partials]

    def build(
        self,
        pseudo_query: PseudoQuery,
        cancel: Optional[threading.Event] = None,
    ) -> list[ScoredCandidate[Query]]:
        """All query candidates, best first, capped at ``max_query_candidates``."""
        candidates: list[ScoredCandidate[Query]] = []
        for assignment in self.type_assignments(pseudo_query, cancel):
            _check_cancelled(cancel)
            candidates.extend(self.triple_candidates(assignment, cancel))

        ranked = rank(candidates)[: self.config.search.max_query_candidates]
        logger.debug("Generated %d query candidates", len(ranked))
        for candidate in ranked:
            logger.debug("%.6f\n%s", candidate.score, candidate.value)
        return ranked
