"""Pseudo queries, resolved queries and their building blocks.

A pseudo query is a set of loosely typed triples extracted from a question,
e.g. ``[?book] ["author"] ["Dan Brown"]``. The engine resolves it into a
``Query`` whose triples reference knowledge base URIs, e.g.
``[?book] [dbpedia-owl:author] [dbpedia:Dan_Brown]``.
"""

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, Iterable, Iterator, Optional, TypeVar, Union

from .errors import InputError

T = TypeVar("T")

# Marker type for "any numeric literal" (rendered as isNumeric, not a datatype)
NUMERIC_LITERAL = "numeric"


@dataclass(frozen=True)
class MappedString:
    """A value mapped from one representation to another, possibly in several steps.

    Example trace: ``write -> author (synonym) -> dbpedia-owl:author (URI match)``.
    The trace is explanation only; equality looks at ``value`` alone.
    """

    value: str
    trace: tuple[str, ...] = field(default=(), compare=False)

    def __str__(self) -> str:
        return self.value


class BasicKind(Enum):
    RESOURCE = "resource"
    LITERAL = "literal"


class VariableCategory(Enum):
    """Coarse semantic category of a variable, usually derived from the wh-word."""

    AGENT = "agent"  # who
    PLACE = "place"  # where
    DATE = "date"  # when
    NUMBER = "number"  # how many
    LITERAL = "literal"
    UNKNOWN = "unknown"

    @classmethod
    def from_string(cls, value: Optional[str]) -> "VariableCategory":
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise InputError(f"Unknown variable category '{value}'")


@dataclass(frozen=True)
class TypeConstraint:
    """Resource/literal classification of a variable plus an optional type URI."""

    kind: BasicKind
    type_id: Optional[MappedString] = None

    @property
    def is_class_constraint(self) -> bool:
        return self.kind is BasicKind.RESOURCE and self.type_id is not None

    def __str__(self) -> str:
        return f"{self.type_id} ({self.kind.value})"


@dataclass(frozen=True)
class Constant:
    """A fixed element: free text (``"Dan Brown"``) or, if resolved, a URI."""

    name: str
    resolved: bool = False
    trace: tuple[str, ...] = field(default=(), compare=False)

    def __str__(self) -> str:
        if self.resolved:
            return f"<{self.name}>"
        return f'"{self.name}"'


@dataclass(eq=False)
class Variable:
    """An unbound slot. Identity matters: triples share the same instance."""

    name: str
    category: VariableCategory = VariableCategory.UNKNOWN
    type_constraint: Optional[TypeConstraint] = None
    trace: tuple[str, ...] = ()

    def __post_init__(self):
        if not self.trace:
            # A variable has no real derivation trace
            self.trace = (self.name,)

    def __str__(self) -> str:
        return f"?{self.name}"

    def __repr__(self) -> str:
        return f"?{self.name} ({self.category.value}, {self.type_constraint})"


Element = Union[Constant, Variable]


@dataclass(frozen=True)
class Triple:
    """Subject/predicate/object unit. A ``None`` predicate is a wildcard."""

    subject: Optional[Element]
    predicate: Optional[Element]
    object: Optional[Element]

    def swapped(self) -> "Triple":
        return Triple(self.object, self.predicate, self.subject)

    def elements(self) -> Iterator[Element]:
        for element in (self.subject, self.predicate, self.object):
            if element is not None:
                yield element

    def variables(self) -> Iterator[Variable]:
        for element in self.elements():
            if isinstance(element, Variable):
                yield element

    def __str__(self) -> str:
        return f"[Subject: {self.subject}] [Predicate: {self.predicate}] [Object: {self.object}]"


@dataclass(frozen=True)
class ScoredCandidate(Generic[T]):
    """A scored guess competing with siblings of the same kind."""

    value: T
    score: float


def rank(candidates: Iterable[ScoredCandidate[T]]) -> list[ScoredCandidate[T]]:
    """Sort candidates by descending score, keeping insertion order on ties."""
    return sorted(candidates, key=lambda c: c.score, reverse=True)


def _rewire(element: Optional[Element], table: dict[int, Variable]) -> Optional[Element]:
    if isinstance(element, Variable):
        try:
            return table[id(element)]
        except KeyError:
            raise InputError(f"Variable ?{element.name} is not registered in the query")
    return element


@dataclass(eq=False)
class PseudoQuery:
    """Extracted, partially typed query skeleton prior to knowledge base mapping.

    Every variable referenced by a triple must be the very instance stored in
    ``variables``; type choices are applied to those instances and must
    propagate to all triples mentioning the variable.
    """

    triples: list[Triple]
    variables: dict[str, Variable]
    focus: Optional[Variable]

    def validate(self) -> None:
        """
        Check the structural invariants of the query.

        Raises:
            InputError: if there are no triples, no focus variable, a triple
                without subject and object, or a variable that is not the
                registered instance of its name.
        """
        if not self.triples:
            raise InputError("Pseudo query has no triples")
        if self.focus is None:
            raise InputError("Pseudo query has no focus variable")
        if self.variables.get(self.focus.name) is not self.focus:
            raise InputError(f"Focus variable ?{self.focus.name} is not registered in the query")
        for triple in self.triples:
            if triple.subject is None and triple.object is None:
                raise InputError(f"Triple has neither subject nor object: {triple}")
            for var in triple.variables():
                if self.variables.get(var.name) is not var:
                    raise InputError(
                        f"Variable ?{var.name} in {triple} is not the registered instance"
                    )

    def _copy_fields(self) -> tuple[list[Triple], dict[str, Variable], Optional[Variable]]:
        # Fresh variable table first, then every triple rewritten through it
        table = {id(var): dataclasses.replace(var) for var in self.variables.values()}
        variables = {name: table[id(var)] for name, var in self.variables.items()}
        triples = [
            Triple(
                _rewire(t.subject, table),
                _rewire(t.predicate, table),
                _rewire(t.object, table),
            )
            for t in self.triples
        ]
        focus = _rewire(self.focus, table) if self.focus is not None else None
        return triples, variables, focus

    def clone(self) -> "PseudoQuery":
        triples, variables, focus = self._copy_fields()
        return PseudoQuery(triples=triples, variables=variables, focus=focus)

    def ordered_variables(self) -> list[Variable]:
        """Variables in a fixed order (registration order)."""
        return list(self.variables.values())

    def __str__(self) -> str:
        lines = ["SELECT * WHERE {"]
        for t in self.triples:
            lines.append(f"   {t}")
        for var in self.variables.values():
            constraint = var.type_constraint if var.type_constraint else var.category.value
            lines.append(f"   [?{var.name} TYPE {constraint}]")
        lines.append("}")
        return "\n".join(lines)


@dataclass(eq=False)
class Query(PseudoQuery):
    """A (partially or fully) resolved pseudo query with an aggregate score."""

    score: float = 1.0

    @classmethod
    def from_pseudo_query(cls, pseudo_query: PseudoQuery, score: float = 1.0) -> "Query":
        triples, variables, focus = pseudo_query._copy_fields()
        return cls(triples=triples, variables=variables, focus=focus, score=score)

    def clone(self) -> "Query":
        triples, variables, focus = self._copy_fields()
        return Query(triples=triples, variables=variables, focus=focus, score=self.score)

    def adopt(self, triple: Triple) -> Triple:
        """
        Rewire a triple built against another copy of this query onto this
        query's variable instances (matched by name).

        Raises:
            InputError: if the triple mentions a variable this query lacks.
        """

        def own(element: Optional[Element]) -> Optional[Element]:
            if isinstance(element, Variable):
                try:
                    return self.variables[element.name]
                except KeyError:
                    raise InputError(f"Variable ?{element.name} is not part of the query")
            return element

        return Triple(own(triple.subject), own(triple.predicate), own(triple.object))
