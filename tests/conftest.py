"""
Shared test fixtures for the pq2sparql test suite.
"""

from collections import Counter
from typing import Callable, Optional

import pytest

from pq2sparql.config import EngineConfig, TypeDefaults
from pq2sparql.errors import GatewayUnavailable, LookupFailure
from pq2sparql.kb.base import AnswerType, Binding, KBGateway, PropertyHit, ResourceHit
from pq2sparql.lexicon import StaticSynonymProvider
from pq2sparql.query import (
    NUMERIC_LITERAL,
    BasicKind,
    Constant,
    PseudoQuery,
    Query,
    Triple,
    TypeConstraint,
    Variable,
    VariableCategory,
)


KB = "http://kb.example.org/"


def kb(name: str) -> str:
    return KB + name


def _is_resource(value: str) -> bool:
    return value.startswith("http://")


# =============================================================================
# Stub Gateway
# =============================================================================


class StubGateway(KBGateway):
    """
    In-memory knowledge base over a list of (subject, property, object) facts.

    Values starting with "http://" are resources, anything else is a literal.
    Queries are executed by matching their triples against the facts.
    """

    def __init__(
        self,
        facts=(),
        labels: Optional[dict] = None,
        classes: Optional[dict] = None,
        object_properties=(),
        type_aware_properties: bool = True,
    ):
        self.facts = [tuple(f) for f in facts]
        self.labels = dict(labels or {})
        self.classes = {c: set(members) for c, members in (classes or {}).items()}
        self.object_property_uris = set(object_properties)
        self.type_aware_properties = type_aware_properties

        # Failure injection
        self.failing_texts: set[str] = set()
        self.fail_properties = False
        self.fail_classes = False
        self.unavailable = False
        self.fail_execute: Optional[Callable[[Query], bool]] = None
        self.empty_for: Optional[Callable[[Query], bool]] = None

        self.calls = Counter()
        self.executed: list[Query] = []

    def shorten_uri(self, uri: str) -> str:
        if uri.startswith(KB):
            return "kb:" + uri[len(KB):]
        return uri

    def search_resources_by_text(self, text, limit):
        self.calls["resources"] += 1
        if text.lower() in self.failing_texts:
            raise LookupFailure(f"search for {text} failed")
        needle = text.lower()
        hits = [
            ResourceHit(uri, label)
            for uri, label in self.labels.items()
            if needle in label.lower()
        ]
        return hits[:limit]

    def matches_type(self, value: str, constraint: Optional[TypeConstraint]) -> bool:
        if constraint is None:
            return True
        if constraint.kind is BasicKind.RESOURCE:
            if not _is_resource(value):
                return False
            if constraint.type_id is None:
                return True
            return value in self.classes.get(constraint.type_id.value, ())
        if _is_resource(value):
            return False
        if constraint.type_id is not None and constraint.type_id.value == NUMERIC_LITERAL:
            return value.replace(".", "", 1).isdigit()
        return True

    def search_properties_connecting(
        self, subject=None, object=None, subject_type=None, object_type=None, limit=1000
    ):
        self.calls["properties"] += 1
        if self.fail_properties:
            raise LookupFailure("property search failed")
        counts = Counter()
        for s, p, o in self.facts:
            if subject is not None and s != subject:
                continue
            if object is not None and o != object:
                continue
            if self.type_aware_properties:
                if subject is None and not self.matches_type(s, subject_type):
                    continue
                if object is None and not self.matches_type(o, object_type):
                    continue
            counts[p] += 1
        return [
            PropertyHit(p, n, p in self.object_property_uris)
            for p, n in counts.most_common(limit)
        ]

    def class_population_count(self, class_uri):
        self.calls["population"] += 1
        return len(self.classes.get(class_uri, ()))

    def is_known_class(self, uri):
        return uri in self.classes

    def classes_in_use(self):
        self.calls["classes"] += 1
        if self.fail_classes:
            raise LookupFailure("class listing failed")
        return list(self.classes)

    def execute(self, query):
        self.calls["execute"] += 1
        self.executed.append(query)
        if self.unavailable:
            raise GatewayUnavailable("knowledge base is down")
        if self.fail_execute is not None and self.fail_execute(query):
            raise LookupFailure("query rejected")
        if self.empty_for is not None and self.empty_for(query):
            return []

        bindings = [{}]
        for triple in query.triples:
            extended = []
            for binding in bindings:
                for fact in self.facts:
                    b = dict(binding)
                    if all(
                        _unify(element, value, b)
                        for element, value in zip((triple.subject, triple.predicate, triple.object), fact)
                    ):
                        extended.append(b)
            bindings = extended

        focus = query.focus.name
        seen = []
        for b in bindings:
            ok = all(
                self.matches_type(b[var.name], var.type_constraint)
                for var in query.variables.values()
                if var.name in b
            )
            if ok and focus in b and b[focus] not in seen:
                seen.append(b[focus])

        rows = []
        for value in seen:
            if _is_resource(value):
                rows.append({focus: Binding(value, AnswerType.RESOURCE, self.labels.get(value))})
            else:
                rows.append({focus: Binding(value, AnswerType.STRING)})
        return rows


def _unify(element, value: str, binding: dict) -> bool:
    if element is None:
        return True
    if isinstance(element, Constant):
        return element.name == value
    bound = binding.get(element.name)
    if bound is None:
        binding[element.name] = value
        return True
    return bound == value


# =============================================================================
# Sample Knowledge Base
# =============================================================================

BOOK_FACTS = [
    (kb("The_Da_Vinci_Code"), kb("author"), kb("Dan_Brown")),
    (kb("Angels_and_Demons"), kb("author"), kb("Dan_Brown")),
    (kb("Inferno"), kb("author"), kb("Dan_Brown")),
    (kb("Dan_Brown"), kb("birthPlace"), kb("Exeter")),
    (kb("Dan_Brown"), kb("birthYear"), "1964"),
    (kb("Paris"), kb("locatedIn"), kb("France")),
    (kb("Lyon"), kb("locatedIn"), kb("France")),
    (kb("France"), kb("locatedIn"), kb("Europe")),
    (kb("France"), kb("capital"), kb("Paris")),
]

BOOK_LABELS = {
    kb("Dan_Brown"): "Dan Brown",
    kb("The_Da_Vinci_Code"): "The Da Vinci Code",
    kb("Angels_and_Demons"): "Angels and Demons",
    kb("Inferno"): "Inferno",
    kb("Exeter"): "Exeter",
    kb("Paris"): "Paris",
    kb("Lyon"): "Lyon",
    kb("France"): "France",
    kb("Europe"): "Europe",
}

BOOK_CLASSES = {
    kb("Book"): {kb("The_Da_Vinci_Code"), kb("Angels_and_Demons"), kb("Inferno")},
    kb("Person"): {kb("Dan_Brown")},
    kb("Place"): {kb("Exeter"), kb("Paris"), kb("Lyon"), kb("France"), kb("Europe")},
    kb("City"): {kb("Exeter"), kb("Paris"), kb("Lyon")},
}

BOOK_OBJECT_PROPERTIES = {kb("author"), kb("birthPlace"), kb("locatedIn"), kb("capital")}


# The same books as RDF, for the rdflib-backed gateway
BOOKS_TTL = """
@prefix dbo: <http://dbpedia.org/ontology/> .
@prefix dbr: <http://dbpedia.org/resource/> .
@prefix owl: <http://www.w3.org/2002/07/owl#> .
@prefix rdfs: <http://www.w3.org/2000/01/rdf-schema#> .
@prefix xsd: <http://www.w3.org/2001/XMLSchema#> .

dbo:author a owl:ObjectProperty .
dbo:birthPlace a owl:ObjectProperty .

dbr:Dan_Brown a dbo:Person ;
    rdfs:label "Dan Brown"@en ;
    dbo:birthPlace dbr:Exeter ;
    dbo:birthYear "1964"^^xsd:gYear .

dbr:Exeter a dbo:Place ; rdfs:label "Exeter"@en .

dbr:Inferno a dbo:Book ;
    rdfs:label "Inferno"@en , "Inferno"@it ;
    dbo:author dbr:Dan_Brown .

dbr:Angels_and_Demons a dbo:Book ;
    rdfs:label "Angels and Demons"@en ;
    dbo:author dbr:Dan_Brown .
"""


@pytest.fixture
def books_file(tmp_path):
    """Turtle file with the sample books."""
    path = tmp_path / "books.ttl"
    path.write_text(BOOKS_TTL, encoding="utf-8")
    return path


@pytest.fixture
def config():
    """Engine configuration with the test KB's agent/place classes."""
    return EngineConfig(
        types=TypeDefaults(
            agent_classes=(kb("Person"),),
            place_classes=(kb("Place"),),
        )
    )


@pytest.fixture
def gateway():
    """Stub gateway over the sample book KB."""
    return StubGateway(
        facts=BOOK_FACTS,
        labels=BOOK_LABELS,
        classes=BOOK_CLASSES,
        object_properties=BOOK_OBJECT_PROPERTIES,
    )


@pytest.fixture
def synonyms():
    """Small static lexicon."""
    return StaticSynonymProvider({
        "write": [{"word": "author", "score": 0.8, "relation": "related form"}],
        "novel": [{"word": "book", "score": 1.0, "relation": "synonym"}],
    })


# =============================================================================
# Sample Pseudo Queries
# =============================================================================


def make_pseudo_query(triples, variables, focus) -> PseudoQuery:
    return PseudoQuery(
        triples=list(triples),
        variables={v.name: v for v in variables},
        focus=focus,
    )


@pytest.fixture
def book_query():
    """Which books were written by Dan Brown?"""
    book = Variable("book", VariableCategory.UNKNOWN)
    return make_pseudo_query(
        [Triple(book, Constant("author"), Constant("Dan Brown"))],
        [book],
        book,
    )


@pytest.fixture
def two_triple_query():
    """Where was the author of Inferno born?"""
    person = Variable("person", VariableCategory.UNKNOWN)
    place = Variable("place", VariableCategory.PLACE)
    return make_pseudo_query(
        [
            Triple(Constant("Inferno"), Constant("author"), person),
            Triple(person, Constant("birth place"), place),
        ],
        [person, place],
        place,
    )
