"""Knowledge base gateways."""

from .base import (
    AnswerType,
    Binding,
    KBGateway,
    PropertyHit,
    ResourceHit,
    ResultRow,
    SerializedGateway,
)
from .render import SparqlRenderer
from .sparql import SPARQLGateway
from .syntax import check_candidate, validate_syntax

__all__ = [
    "AnswerType",
    "Binding",
    "KBGateway",
    "PropertyHit",
    "ResourceHit",
    "ResultRow",
    "SerializedGateway",
    "SparqlRenderer",
    "SPARQLGateway",
    "EndpointGateway",
    "GraphGateway",
    "check_candidate",
    "validate_syntax",
]


# Lazy exports to avoid importing SPARQLWrapper/rdflib graphs until needed
def __getattr__(name):
    if name == "EndpointGateway":
        from .endpoint import EndpointGateway
        return EndpointGateway
    if name == "GraphGateway":
        from .graph import GraphGateway
        return GraphGateway
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
