"""Knowledge base gateway speaking SPARQL.

All lookups of the engine are written here as SPARQL SELECT queries. How the
queries are run (HTTP endpoint, in-memory rdflib graph) is left to
subclasses, which return bindings in the SPARQL 1.1 JSON results layout.
"""

import logging
from abc import abstractmethod
from typing import Optional

from rdflib import Literal

from ..config import GatewayConfig
from ..query import BasicKind, Query, TypeConstraint
from .base import AnswerType, Binding, KBGateway, PropertyHit, ResourceHit, ResultRow
from .render import SparqlRenderer
from .syntax import check_candidate

logger = logging.getLogger(__name__)

XSD = "http://www.w3.org/2001/XMLSchema#"

# XSD datatype -> answer type; plain literals (no datatype) are strings
DATATYPE_ANSWER_TYPES = {
    None: AnswerType.STRING,
    XSD + "string": AnswerType.STRING,
    XSD + "date": AnswerType.DATE,
    XSD + "dateTime": AnswerType.DATE,
    XSD + "gYear": AnswerType.DATE,
    XSD + "integer": AnswerType.NUMBER,
    XSD + "int": AnswerType.NUMBER,
    XSD + "nonNegativeInteger": AnswerType.NUMBER,
    XSD + "positiveInteger": AnswerType.NUMBER,
    XSD + "float": AnswerType.NUMBER,
    XSD + "double": AnswerType.NUMBER,
    XSD + "decimal": AnswerType.NUMBER,
    XSD + "boolean": AnswerType.BOOLEAN,
}

# Raw binding in SPARQL JSON results format: {"type": ..., "value": ..., "datatype": ...}
RawRow = dict[str, dict]


def to_binding(raw: dict, label: Optional[str] = None) -> Binding:
    """Convert a raw JSON binding to a typed :class:`Binding`."""
    if raw.get("type") in ("uri", "bnode"):
        return Binding(value=raw.get("value", ""), type=AnswerType.RESOURCE, label=label)
    answer_type = DATATYPE_ANSWER_TYPES.get(raw.get("datatype"), AnswerType.STRING)
    return Binding(value=raw.get("value", ""), type=answer_type)


class SPARQLGateway(KBGateway):
    """
    Base class for SPARQL-backed gateways.

    Subclasses implement :meth:`_select`. Instances are not thread safe unless
    a subclass says so; the engine serialises calls to them.
    """

    def __init__(self, config: Optional[GatewayConfig] = None):
        """
        Initialize the gateway.

        Args:
            config: Gateway configuration (endpoint, graphs, prefixes, ...)
        """
        self.config = config or GatewayConfig()
        self.renderer = SparqlRenderer(
            prefixes=self.config.prefixes,
            graphs=self.config.graphs,
            label_language=self.config.label_language,
        )
        self._object_properties: Optional[frozenset[str]] = None
        self._classes: Optional[tuple[str, ...]] = None
        self._class_set: frozenset[str] = frozenset()
        self._population: dict[str, int] = {}

    @abstractmethod
    def _select(self, sparql: str) -> list[RawRow]:
        """Run a complete SELECT query and return its raw bindings."""

    def select(self, sparql: str, finalized: bool = False) -> list[RawRow]:
        """
        Run a SELECT query.

        Args:
            sparql: Query text; PREFIX and FROM clauses are added unless ``finalized``
            finalized: Whether ``sparql`` is already complete

        Returns:
            Raw bindings, one dict per row
        """
        if not finalized:
            sparql = self.renderer.finalize(sparql)
        logger.debug("SPARQL: %s", sparql.replace("\n", " "))
        return self._select(sparql)

    def shorten_uri(self, uri: str) -> str:
        return self.renderer.shorten_uri(uri)

    def search_resources_by_text(self, text: str, limit: int) -> list[ResourceHit]:
        # Strip part-of-speech tags ("france#n")
        text = text.split("#", 1)[0].strip()
        if not text:
            return []
        search = self.config.text_search_pattern.replace("$x", "?name").replace(
            "$text", Literal(text).n3()
        )
        lang = Literal(self.config.label_language).n3()
        sparql = (
            "SELECT DISTINCT ?subject ?name WHERE {\n"
            f"  {{ ?subject foaf:name ?name . {search} }}\n"
            "  UNION\n"
            f"  {{ ?subject rdfs:label ?name . {search} }}\n"
            f'  FILTER(lang(?name) = "" || langMatches(lang(?name), {lang}))\n'
            f"}} LIMIT {limit}"
        )
        hits = []
        for row in self.select(sparql):
            subject = row.get("subject")
            name = row.get("name")
            if subject is None or name is None or subject.get("type") != "uri":
                continue
            hits.append(ResourceHit(uri=subject["value"], label=name.get("value", "")))
        return hits

    def search_properties_connecting(
        self,
        subject: Optional[str] = None,
        object: Optional[str] = None,
        subject_type: Optional[TypeConstraint] = None,
        object_type: Optional[TypeConstraint] = None,
        limit: int = 1000,
    ) -> list[PropertyHit]:
        subject_has_class = subject_type is not None and subject_type.kind is BasicKind.RESOURCE
        object_has_class = object_type is not None and object_type.kind is BasicKind.RESOURCE
        # At least one end must be anchored, otherwise we would scan the entire KB
        if subject is None and object is None and not subject_has_class and not object_has_class:
            logger.debug("Refusing unanchored property search")
            return []

        query_subject = self.renderer.shorten_uri(subject) if subject else "?s"
        query_object = self.renderer.shorten_uri(object) if object else "?o"
        if subject is None:
            count = "COUNT(?s)"
        elif object is None:
            count = "COUNT(?o)"
        else:
            count = "COUNT(*)"
        sparql = f"SELECT ?p ({count} AS ?count) WHERE {{\n   {query_subject} ?p {query_object} .\n"
        if subject is None:
            sparql += self.renderer.type_constraint_clause(subject_type, "s")
        if object is None:
            sparql += self.renderer.type_constraint_clause(object_type, "o")
        sparql += f"}} GROUP BY ?p ORDER BY DESC(?count) LIMIT {limit}"

        object_properties = self.object_properties()
        hits = []
        for row in self.select(sparql):
            p = row.get("p")
            # An empty result set may still come back as one row with count 0
            if p is None:
                break
            try:
                n = int(float(row.get("count", {}).get("value", 0)))
            except ValueError:
                n = 0
            hits.append(
                PropertyHit(
                    uri=p["value"],
                    count=n,
                    is_object_property=p["value"] in object_properties,
                )
            )
        return hits

    def object_properties(self) -> frozenset[str]:
        """URIs of all owl:ObjectProperty resources (loaded once)."""
        if self._object_properties is None:
            rows = self.select("SELECT DISTINCT ?t WHERE { ?t a owl:ObjectProperty }")
            self._object_properties = frozenset(
                row["t"]["value"] for row in rows if "t" in row
            )
        return self._object_properties

    def classes_in_use(self) -> list[str]:
        if self._classes is None:
            rows = self.select("SELECT DISTINCT ?t WHERE { ?s a ?t }")
            classes = tuple(
                row["t"]["value"] for row in rows if row.get("t", {}).get("type") == "uri"
            )
            self._class_set = frozenset(classes)
            self._classes = classes
        return list(self._classes)

    def is_known_class(self, uri: str) -> bool:
        self.classes_in_use()
        return uri in self._class_set

    def class_population_count(self, class_uri: str) -> int:
        count = self._population.get(class_uri)
        if count is None:
            rows = self.select(
                f"SELECT (COUNT(?s) AS ?count) WHERE {{ ?s a {self.renderer.shorten_uri(class_uri)} }}"
            )
            count = 0
            for row in rows:
                try:
                    count = int(float(row.get("count", {}).get("value", 0)))
                except ValueError:
                    count = 0
            self._population[class_uri] = count
        return count

    def execute(self, query: Query) -> list[ResultRow]:
        """
        Execute a resolved query with respect to its focus variable.

        Raises:
            LookupFailure: if the rendered query is not valid SPARQL or the
                backend rejects it
        """
        sparql = self.renderer.select_with_label(query, self.config.result_limit)
        check_candidate(sparql)

        rows = []
        for raw in self.select(sparql, finalized=True):
            label = raw.get("_label", {}).get("value")
            row: ResultRow = {}
            for name, value in raw.items():
                if name == "_label":
                    continue
                row[name] = to_binding(value, label if name == query.focus.name else None)
            if query.focus.name in row:
                rows.append(row)
        return rows
