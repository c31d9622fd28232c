"""Mapping of pseudo triples to scored knowledge base triples."""

import logging
from typing import Callable, Hashable, Optional

from ..config import EngineConfig
from ..errors import LookupFailure
from ..kb.base import KBGateway
from ..lexicon.base import SynonymProvider
from ..query import (
    Constant,
    Element,
    MappedString,
    ScoredCandidate,
    Triple,
    TypeConstraint,
    Variable,
    rank,
)
from ..scoring.candidates import expansion_score, rank_property_hits, rank_resource_hits
from .cache import CandidateCache

logger = logging.getLogger(__name__)


class TripleResolver:
    """
    Produces scored candidate triples for one pseudo triple.

    Handled shapes, in priority order:
    1. constant subject, variable object: resource candidates for the subject,
       property candidates connecting each of them to the object's type
    2. variable subject, constant object: the same, mirrored
    3. variables on both ends and a predicate: property candidates connecting
       the two variables' types
    Any other shape has no candidates.

    Type context comes from the variables of the triple itself, so the caller
    passes triples whose variables carry the type constraints of its branch.
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

    def resolve(self, triple: Triple) -> list[ScoredCandidate[Triple]]:
        """Candidates for the triple in its given orientation, best first."""
        subject, predicate, obj = triple.subject, triple.predicate, triple.object
        if isinstance(subject, Constant) and isinstance(obj, Variable):
            return self._resolve_bound(subject, predicate, obj, constant_is_subject=True)
        if isinstance(subject, Variable) and isinstance(obj, Constant):
            return self._resolve_bound(obj, predicate, subject, constant_is_subject=False)
        if isinstance(subject, Variable) and isinstance(obj, Variable) and predicate is not None:
            props = self.property_candidates(
                predicate,
                subject_type=subject.type_constraint,
                object_type=obj.type_constraint,
            )
            return rank(
                ScoredCandidate(Triple(subject, _constant(prop.value), obj), prop.score)
                for prop in props
            )
        return []

    def resolve_both(self, triple: Triple) -> list[ScoredCandidate[Triple]]:
        """
        Candidates for the triple and for its subject/object-swapped form.

        Extraction cannot always tell "X written by Y" from "Y author of X",
        so both orientations compete on score.
        """
        best: dict[Triple, ScoredCandidate[Triple]] = {}
        for candidate in self.resolve(triple) + self.resolve(triple.swapped()):
            previous = best.get(candidate.value)
            if previous is None or candidate.score > previous.score:
                best[candidate.value] = candidate
        candidates = rank(best.values())
        logger.debug("%d candidates for %s", len(candidates), triple)
        return candidates

    def _resolve_bound(
        self,
        constant: Constant,
        predicate: Optional[Element],
        var: Variable,
        constant_is_subject: bool,
    ) -> list[ScoredCandidate[Triple]]:
        search = self.config.search
        results: list[ScoredCandidate[Triple]] = []
        tried = 0
        for resource in self.resource_candidates(constant):
            uri = resource.value.value
            if constant_is_subject:
                props = self.property_candidates(predicate, subject=uri, object_type=var.type_constraint)
            else:
                props = self.property_candidates(predicate, object=uri, subject_type=var.type_constraint)

            bound = _constant(resource.value)
            for prop in props:
                if constant_is_subject:
                    mapped = Triple(bound, _constant(prop.value), var)
                else:
                    mapped = Triple(var, _constant(prop.value), bound)
                results.append(ScoredCandidate(mapped, resource.score * prop.score))

            # Try at least N resources, more only while nothing matched
            tried += 1
            if tried >= search.min_resources_to_try and results:
                break
        return rank(results)

    def resource_candidates(self, constant: Constant) -> list[ScoredCandidate[MappedString]]:
        """Best resources for a constant's text (a resolved constant is its own candidate)."""
        if constant.resolved:
            return [ScoredCandidate(MappedString(constant.name, constant.trace or (constant.name,)), 1.0)]
        text = " ".join(constant.name.split())
        if not text:
            return []
        search = self.config.search

        def compute():
            hits = self.gateway.search_resources_by_text(text, search.resource_search_limit)
            ranked = rank_resource_hits(text, hits, self.gateway.shorten_uri, search)
            return ranked[: search.resource_candidates]

        return self._lookup("resource", text.lower(), compute)

    def name_candidates(self, predicate: Optional[Element]) -> list[ScoredCandidate[MappedString]]:
        """
        Words a property name should match.

        A textual predicate is matched literally; with a part-of-speech
        suffix ("write#v") its lexical expansions are added. Wildcards and
        variable predicates have no name candidates.
        """
        if not isinstance(predicate, Constant):
            return []
        name = predicate.name.lower()
        pos = None
        if "#" in name:
            name, pos = name.split("#", 1)
        name = " ".join(name.split())
        if not name:
            return []

        candidates = [ScoredCandidate(MappedString(name, (name,)), 1.0)]
        if pos and self.synonyms is not None:

            def compute():
                return self.synonyms.expand(name, pos)

            for syn in self._lookup("synonyms", (name, pos), compute):
                if syn.word == name:
                    continue
                trace = syn.trace or (name, f"{syn.word} ({syn.relation})")
                score = expansion_score(syn.score, syn.relation, self.config.search)
                candidates.append(ScoredCandidate(MappedString(syn.word, trace), score))
        return rank(candidates)

    def property_candidates(
        self,
        predicate: Optional[Element],
        subject: Optional[str] = None,
        object: Optional[str] = None,
        subject_type: Optional[TypeConstraint] = None,
        object_type: Optional[TypeConstraint] = None,
    ) -> list[ScoredCandidate[MappedString]]:
        """Top properties connecting the given ends, scored against the predicate."""
        if isinstance(predicate, Constant) and predicate.resolved:
            return [ScoredCandidate(MappedString(predicate.name, predicate.trace or (predicate.name,)), 1.0)]

        names = self.name_candidates(predicate)
        search = self.config.search
        key = (
            tuple(c.value.value for c in names),
            subject,
            object,
            subject_type,
            object_type,
        )

        def compute():
            hits = self.gateway.search_properties_connecting(
                subject=subject,
                object=object,
                subject_type=subject_type,
                object_type=object_type,
                limit=search.property_search_limit,
            )
            return rank_property_hits(
                hits, names, object is not None, self.gateway.shorten_uri, search
            )

        return self._lookup("property", key, compute)

    def _lookup(self, kind: str, key: Hashable, compute: Callable[[], list]) -> list:
        try:
            return self.cache.get_or_compute(kind, key, compute)
        except LookupFailure as e:
            # The branch simply contributes no candidates
            logger.warning("%s lookup %r failed: %s", kind, key, e)
            return []


def _constant(mapped: MappedString) -> Constant:
    return Constant(mapped.value, resolved=True, trace=mapped.trace)
