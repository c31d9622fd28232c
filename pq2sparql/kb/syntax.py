"""Parser checks for rendered candidate queries."""

from typing import Optional

from rdflib.plugins.sparql import prepareQuery

from ..errors import LookupFailure


def parse_error(sparql: str) -> Optional[str]:
    """
    Message of rdflib's SPARQL parser for ``sparql``.

    Returns:
        None when the query parses, otherwise a short description with the
        parser's own message
    """
    try:
        prepareQuery(sparql)
    except Exception as e:
        message = str(e)
        if "unresolved prefix" in message.lower():
            return f"undeclared prefix: {message}"
        if "Expected" in message:
            return f"unexpected token: {message}"
        return message
    return None


def check_candidate(sparql: str) -> None:
    """
    Reject a rendered candidate query that the parser does not accept.

    A candidate is built from knowledge base names; one that does not parse
    (e.g. a local name that cannot be written as a prefixed name) is a failed
    lookup for that candidate, not an outage.

    Raises:
        LookupFailure: if ``sparql`` is not valid SPARQL
    """
    error = parse_error(sparql)
    if error is not None:
        raise LookupFailure(f"Invalid candidate query: {error}")


def validate_syntax(sparql: str) -> tuple[bool, Optional[str]]:
    """(is_valid, error) for user-supplied queries."""
    error = parse_error(sparql)
    return (error is None, error)
