"""WordNet-backed synonym provider (nltk)."""

import logging
import threading
from typing import Optional

from ..errors import LookupFailure
from ..scoring.text import partial_main_words
from .base import (
    DERIVED,
    HYPERNYM,
    HYPONYM,
    LEMMA,
    SYNONYM,
    SynonymCandidate,
    SynonymProvider,
    merge_candidates,
)

logger = logging.getLogger(__name__)

# The nltk corpus reader is one shared handle and is not thread safe
_WORDNET_LOCK = threading.Lock()


class WordNetSynonymProvider(SynonymProvider):
    """
    Expands words with WordNet.

    For every tail of the phrase ("official web site" -> "site", "web site",
    "official web site"), weighted by its share of the phrase, it collects:
    - the lemma itself and its direct synonyms (score 1.0)
    - transitive synonyms through other senses (score 0.5)
    - hyponyms, damped by depth
    - hypernyms, damped by depth (the engine damps them further)
    - derivationally related forms ("write" -> "writer")
    """

    def __init__(
        self,
        max_depth: int = 3,
        transitive_synonym_score: float = 0.5,
    ):
        """
        Initialize the provider.

        Args:
            max_depth: Depth limit for hyponym/hypernym chains
            transitive_synonym_score: Score of synonyms reached through another sense
        """
        from nltk.corpus import wordnet

        self.wn = wordnet
        self.max_depth = max_depth
        self.transitive_synonym_score = transitive_synonym_score
        # WordNet POS tags; the corpus constants would force loading the corpus here
        self._pos_map = {"n": "n", "v": "v", "j": "a", "a": "a", "r": "r"}

    def _pos(self, pos: Optional[str]) -> Optional[str]:
        if not pos:
            return None
        return self._pos_map.get(pos.lower()[0])

    def expand(self, word: str, pos: Optional[str] = None) -> list[SynonymCandidate]:
        phrase = " ".join(word.replace("_", " ").lower().split())
        wn_pos = self._pos(pos)
        try:
            with _WORDNET_LOCK:
                candidates = self._expand(phrase, wn_pos)
        except LookupError as e:
            # Corpus not downloaded (nltk.download("wordnet"))
            raise LookupFailure(f"WordNet corpus unavailable: {e}") from e
        return merge_candidates(candidates)

    def _expand(self, phrase: str, wn_pos: Optional[str]) -> list[SynonymCandidate]:
        result: list[SynonymCandidate] = []
        for part, factor in partial_main_words(phrase):
            for lemma in self.wn.lemmas(part.replace(" ", "_"), pos=wn_pos):
                name = lemma.name().replace("_", " ")
                trace = (phrase,)
                # Only mention the partial word if it actually is only a part
                if name != phrase:
                    trace += (f"{name} (partial word)",)
                result.append(SynonymCandidate(name, factor, trace, LEMMA))
                result.extend(self._synonyms(lemma, factor, trace))
                result.extend(self._related(lemma.synset(), "hyponyms", HYPONYM, factor, trace))
                result.extend(self._related(lemma.synset(), "hypernyms", HYPERNYM, factor, trace))
                for form in lemma.derivationally_related_forms():
                    form_name = form.name().replace("_", " ")
                    form_trace = trace + (f"{form_name} ({DERIVED})",)
                    result.append(SynonymCandidate(form_name, factor, form_trace, DERIVED))
                    result.extend(self._synonyms(form, factor, form_trace))
        return result

    def _synonyms(self, lemma, factor: float, trace: tuple[str, ...]) -> list[SynonymCandidate]:
        result = []
        for synonym in lemma.synset().lemmas():
            name = synonym.name().replace("_", " ")
            if synonym.name() != lemma.name():
                result.append(
                    SynonymCandidate(name, factor, trace + (f"{name} ({SYNONYM})",), SYNONYM)
                )
        # Synonyms through the other senses of the same word
        for sense in self.wn.lemmas(lemma.name(), pos=lemma.synset().pos()):
            if sense.synset() == lemma.synset():
                continue
            for synonym in sense.synset().lemmas():
                name = synonym.name().replace("_", " ")
                if synonym.name() != lemma.name():
                    result.append(
                        SynonymCandidate(
                            name,
                            factor * self.transitive_synonym_score,
                            trace + (f"{name} ({SYNONYM})",),
                            SYNONYM,
                        )
                    )
        return result

    def _related(
        self,
        synset,
        relation: str,
        label: str,
        factor: float,
        trace: tuple[str, ...],
    ) -> list[SynonymCandidate]:
        result = []
        frontier = [(synset, trace)]
        for depth in range(1, self.max_depth):
            score = factor * (1.0 - depth / self.max_depth)
            next_frontier = []
            for current, current_trace in frontier:
                for related in getattr(current, relation)():
                    for lemma in related.lemmas():
                        name = lemma.name().replace("_", " ")
                        result.append(
                            SynonymCandidate(
                                name, score, current_trace + (f"{name} ({label})",), label
                            )
                        )
                    gloss_trace = current_trace + (f"{related.definition()} ({label})",)
                    next_frontier.append((related, gloss_trace))
            frontier = next_frontier
        return result
