"""Knowledge base gateway over an in-process rdflib graph."""

from pathlib import Path
from typing import Optional, Union

from rdflib import BNode, Graph, Literal, URIRef

from ..config import GatewayConfig
from ..errors import LookupFailure
from .sparql import RawRow, SPARQLGateway


def term_to_raw(term) -> dict:
    """Convert an rdflib term to a SPARQL JSON results binding."""
    if isinstance(term, URIRef):
        return {"type": "uri", "value": str(term)}
    if isinstance(term, BNode):
        return {"type": "bnode", "value": str(term)}
    if isinstance(term, Literal):
        raw = {"type": "literal", "value": str(term)}
        if term.datatype is not None:
            raw["datatype"] = str(term.datatype)
        if term.language:
            raw["xml:lang"] = term.language
        return raw
    return {"type": "literal", "value": str(term)}


class GraphGateway(SPARQLGateway):
    """Local rdflib graph (small knowledge bases, offline use, tests)."""

    def __init__(self, graph: Graph, config: Optional[GatewayConfig] = None):
        super().__init__(config)
        self.graph = graph

    @classmethod
    def from_file(
        cls,
        path: Union[str, Path],
        format: Optional[str] = None,
        config: Optional[GatewayConfig] = None,
    ) -> "GraphGateway":
        """Load an RDF file (format guessed from the extension if not given)."""
        graph = Graph()
        graph.parse(str(path), format=format)
        return cls(graph, config)

    def _select(self, sparql: str) -> list[RawRow]:
        try:
            result = self.graph.query(sparql)
        except Exception as e:
            raise LookupFailure(f"Query failed on local graph: {e}") from e

        rows = []
        for row in result:
            rows.append({name: term_to_raw(term) for name, term in row.asdict().items()})
        return rows
