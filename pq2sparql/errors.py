"""Exception hierarchy for pq2sparql.

Only infrastructure problems and malformed input are exceptions. A search
that finds nothing returns a ``NoAnswer`` value instead.
"""


class Pq2SparqlError(Exception):
    """Base class for all pq2sparql errors."""


class InputError(Pq2SparqlError, ValueError):
    """The pseudo query is malformed and cannot be searched."""


class GatewayError(Pq2SparqlError):
    """A knowledge base or lexicon backend failed."""


class LookupFailure(GatewayError):
    """A single lookup failed (bad request, malformed response, timeout).

    The search recovers from these locally: the affected lookup contributes
    no candidates.
    """


class GatewayUnavailable(GatewayError):
    """The knowledge base cannot be reached at all."""


class SearchCancelled(Pq2SparqlError):
    """The caller abandoned the search at a candidate boundary."""
