"""Execution-guided selection among ranked query candidates."""

import logging
import threading
from typing import Iterable, Optional, Union

from .. import NoAnswer, NO_ANSWER
from ..errors import LookupFailure, SearchCancelled
from ..kb.base import KBGateway, ResultRow
from ..query import Query, ScoredCandidate

logger = logging.getLogger(__name__)


def first_answered(
    candidates: Iterable[ScoredCandidate[Query]],
    gateway: KBGateway,
    cancel: Optional[threading.Event] = None,
) -> Optional[tuple[Query, list[ResultRow], int]]:
    """
    Execute candidates best first and stop at the first one returning rows.

    A candidate whose execution fails is skipped like an empty one.
    GatewayUnavailable propagates.

    Returns:
        Tuple of (query, rows, number of candidates tried), or None if no
        candidate returned data
    """
    tried = 0
    for candidate in candidates:
        if cancel is not None and cancel.is_set():
            raise SearchCancelled("Search cancelled")
        tried += 1
        try:
            rows = gateway.execute(candidate.value)
        except LookupFailure as e:
            logger.warning("Skipping candidate %d: %s", tried, e)
            continue
        if rows:
            logger.debug("Candidate %d (%.6f) returned %d rows", tried, candidate.score, len(rows))
            return candidate.value, rows, tried
        logger.debug("Candidate %d (%.6f) returned no rows", tried, candidate.score)
    return None


def select_best(
    candidates: Iterable[ScoredCandidate[Query]],
    gateway: KBGateway,
    cancel: Optional[threading.Event] = None,
) -> Union[Query, NoAnswer]:
    """The best candidate that returns data, or NO_ANSWER."""
    found = first_answered(candidates, gateway, cancel)
    if found is None:
        return NO_ANSWER
    return found[0]
