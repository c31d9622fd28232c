"""Inference of type constraints for query variables."""

import logging
from typing import Optional

from ..config import EngineConfig
from ..errors import LookupFailure
from ..kb.base import KBGateway
from ..lexicon.base import HYPERNYM, LEMMA, SYNONYM, SynonymProvider
from ..query import (
    NUMERIC_LITERAL,
    BasicKind,
    MappedString,
    ScoredCandidate,
    TypeConstraint,
    Variable,
    VariableCategory,
)
from ..scoring.candidates import best_type_match, expansion_score
from .cache import CandidateCache

logger = logging.getLogger(__name__)

# Expansions that may name the class of a variable ("writer" -> "author", "person")
TYPE_RELATIONS = (LEMMA, SYNONYM, HYPERNYM)


class VariableTypeInferrer:
    """
    Maps a variable's coarse category to ranked type constraints.

    Categories known from the wh-word map to fixed constraints with score 1.0:
    - AGENT ("who"): instance of one of the agent classes (person, organisation)
    - PLACE ("where"): instance of a place class
    - DATE ("when"): date literal
    - NUMBER ("how many"): numeric literal
    - LITERAL: any literal

    For UNKNOWN variables the variable name ("book", "official_language") and
    its lexical expansions are matched against the classes of the knowledge
    base; at most the single best class is returned.
    """

    def __init__(
        self,
        gateway: KBGateway,
        synonyms: Optional[SynonymProvider] = None,
        cache: Optional[CandidateCache] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.gateway = gateway
        self.synonyms = synonyms
        self.cache = cache or CandidateCache()
        self.config = config or EngineConfig()

    def infer(self, var: Variable) -> list[ScoredCandidate[TypeConstraint]]:
        """
        Ranked type constraints for a variable, not including "no constraint".

        Args:
            var: Variable to type

        Returns:
            Candidates with scores in (0, 1]
        """
        given = var.type_constraint
        if given is not None:
            if not given.is_class_constraint or self._is_known_class(given.type_id.value):
                return [ScoredCandidate(given, 1.0)]
            logger.warning("?%s: %s is not a known class, inferring a type", var.name, given.type_id)

        types = self.config.types
        category = var.category
        if category is VariableCategory.AGENT:
            return [self._fixed(var, BasicKind.RESOURCE, uri, "who") for uri in types.agent_classes]
        if category is VariableCategory.PLACE:
            return [self._fixed(var, BasicKind.RESOURCE, uri, "where") for uri in types.place_classes]
        if category is VariableCategory.DATE:
            return [self._fixed(var, BasicKind.LITERAL, types.date_datatype, "when")]
        if category is VariableCategory.NUMBER:
            return [self._fixed(var, BasicKind.LITERAL, NUMERIC_LITERAL, "how many")]
        if category is VariableCategory.LITERAL:
            return [ScoredCandidate(TypeConstraint(BasicKind.LITERAL), 1.0)]
        return self._infer_unknown(var)

    def choices(self, var: Variable) -> list[ScoredCandidate[Optional[TypeConstraint]]]:
        """Type candidates plus the "no constraint" option scored with the penalty."""
        choices: list[ScoredCandidate[Optional[TypeConstraint]]] = list(self.infer(var))
        choices.append(ScoredCandidate(None, self.config.search.no_type_constraint_penalty))
        return choices

    def _fixed(
        self, var: Variable, kind: BasicKind, type_id: str, wh_word: str
    ) -> ScoredCandidate[TypeConstraint]:
        if type_id == NUMERIC_LITERAL:
            shown = "number"
        else:
            shown = self.gateway.shorten_uri(type_id)
        mapped = MappedString(type_id, (var.name, f'{shown} ("{wh_word}")'))
        return ScoredCandidate(TypeConstraint(kind, mapped), 1.0)

    def _infer_unknown(self, var: Variable) -> list[ScoredCandidate[TypeConstraint]]:
        phrase = " ".join(var.name.replace("_", " ").split())
        if not phrase:
            return []
        try:
            found = self.cache.get_or_compute("type", phrase.lower(), lambda: self._best_class(phrase))
        except LookupFailure as e:
            logger.warning("Type lookup for ?%s failed: %s", var.name, e)
            return []
        return [
            ScoredCandidate(TypeConstraint(BasicKind.RESOURCE, c.value), c.score) for c in found
        ]

    def _best_class(self, phrase: str) -> list[ScoredCandidate[MappedString]]:
        # The literal name always outranks its expansions
        name_candidates = [ScoredCandidate(MappedString(phrase, (phrase,)), 1.0)]
        if self.synonyms is not None:
            search = self.config.search
            for syn in self.synonyms.expand(phrase, "n"):
                if syn.relation not in TYPE_RELATIONS:
                    continue
                trace = syn.trace or (phrase, f"{syn.word} ({syn.relation})")
                name_candidates.append(
                    ScoredCandidate(
                        MappedString(syn.word, trace),
                        expansion_score(syn.score, syn.relation, search) * search.synonym_penalty,
                    )
                )

        best = best_type_match(
            name_candidates,
            self.gateway.classes_in_use(),
            self.gateway.class_population_count,
            self.gateway.shorten_uri,
            self.config.search,
        )
        if best is None:
            logger.debug("No class found for '%s'", phrase)
            return []
        logger.debug("Class for '%s': %s (%.3f)", phrase, best.value.value, best.score)
        return [best]

    def _is_known_class(self, uri: str) -> bool:
        try:
            return self.gateway.is_known_class(uri)
        except LookupFailure as e:
            logger.warning("Class check for %s failed: %s", uri, e)
            return False
