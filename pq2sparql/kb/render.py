"""Rendering of resolved queries and type constraints as SPARQL."""

import re
from typing import Iterable, Optional

from rdflib import Literal

from ..config import DEFAULT_PREFIXES
from ..query import (
    NUMERIC_LITERAL,
    BasicKind,
    Constant,
    Element,
    Query,
    TypeConstraint,
    Variable,
)

# Local names that can be written as prefix:local without escaping
_VALID_LOCAL_NAME = re.compile(r"[A-Za-z0-9_](?:[A-Za-z0-9_\-.]*[A-Za-z0-9_\-])?")


class SparqlRenderer:
    """Turns queries into SPARQL strings using known namespace prefixes."""

    def __init__(
        self,
        prefixes: Optional[dict[str, str]] = None,
        graphs: Iterable[str] = (),
        label_language: str = "en",
    ):
        """
        Initialize the renderer.

        Args:
            prefixes: Mapping of namespace -> prefix
            graphs: Graph URIs added as FROM clauses
            label_language: Language of the labels fetched with answers
        """
        self.prefixes = dict(prefixes if prefixes is not None else DEFAULT_PREFIXES)
        self.graphs = list(graphs)
        self.label_language = label_language
        # Longest namespaces first so that nested namespaces resolve correctly
        self._namespaces = sorted(self.prefixes.items(), key=lambda kv: len(kv[0]), reverse=True)

    def shorten_uri(self, uri: str) -> str:
        """
        Short representation of a URI using known prefixes.

        Falls back to ``<uri>`` when no prefix applies or the local name is
        not valid in a prefixed name.
        """
        for ns, prefix in self._namespaces:
            if uri.startswith(ns):
                local = uri[len(ns):]
                if _VALID_LOCAL_NAME.fullmatch(local):
                    return f"{prefix}:{local}"
        return f"<{uri}>"

    def term(self, element: Optional[Element], wildcard: str = "?_p") -> str:
        """SPARQL form of a triple element."""
        if element is None:
            return wildcard
        if isinstance(element, Variable):
            return f"?{element.name}"
        if isinstance(element, Constant):
            if element.resolved:
                return self.shorten_uri(element.name)
            return Literal(element.name).n3()
        raise TypeError(f"Unexpected element {element!r}")

    def type_constraint_clause(self, constraint: Optional[TypeConstraint], var_name: str) -> str:
        """Graph pattern or filter enforcing a type constraint on ``?var_name``."""
        if constraint is None:
            return ""
        var = f"?{var_name}"
        type_id = constraint.type_id.value if constraint.type_id is not None else None
        if constraint.kind is BasicKind.RESOURCE:
            if type_id is None:
                return f"   FILTER(isIRI({var})) .\n"
            return f"   {var} a {self.shorten_uri(type_id)} .\n"
        if type_id is None:
            return f"   FILTER(isLiteral({var})) .\n"
        if type_id == NUMERIC_LITERAL:
            return f"   FILTER(isNumeric({var})) .\n"
        return f"   FILTER(isLiteral({var}) && datatype({var}) = {self.shorten_uri(type_id)}) .\n"

    def prefix_declarations(self, query: str) -> str:
        """PREFIX lines for every known prefix used in ``query``."""
        lines = []
        for ns, prefix in self.prefixes.items():
            if re.search(rf"(?<![\w\-]){re.escape(prefix)}:", query):
                lines.append(f"PREFIX {prefix}: <{ns}>")
        return "\n".join(lines)

    def finalize(self, query: str) -> str:
        """Add FROM clauses and PREFIX declarations to a query body."""
        if self.graphs:
            from_clauses = "".join(f"FROM <{g}>\n" for g in self.graphs)
            query = query.replace("WHERE", from_clauses + "WHERE", 1)
        declarations = self.prefix_declarations(query)
        if declarations:
            return declarations + "\n" + query
        return query

    def _body(self, query: Query) -> str:
        body = ""
        for var in query.ordered_variables():
            body += self.type_constraint_clause(var.type_constraint, var.name)
        for i, t in enumerate(query.triples):
            body += (
                f"   {self.term(t.subject)} {self.term(t.predicate, f'?_p{i}')} "
                f"{self.term(t.object)} .\n"
            )
        return body

    def select(self, query: Query, limit: Optional[int] = None) -> str:
        """Plain SELECT of the focus variable (for display and export)."""
        sparql = f"SELECT DISTINCT ?{query.focus.name} WHERE {{\n{self._body(query)}}}"
        if limit is not None:
            sparql += f" LIMIT {limit}"
        return self.finalize(sparql)

    def select_with_label(self, query: Query, limit: int) -> str:
        """SELECT of the focus variable plus one sampled label per answer."""
        focus = f"?{query.focus.name}"
        lang = Literal(self.label_language).n3()
        sparql = (
            f"SELECT DISTINCT {focus} (SAMPLE(?_string) AS ?_label) WHERE {{\n"
            f"{self._body(query)}"
            f"   OPTIONAL {{ {{ {focus} rdfs:label ?_string }} UNION {{ {focus} foaf:name ?_string }}"
            f" FILTER(lang(?_string) = {lang}) }}\n"
            f"}} GROUP BY {focus} LIMIT {limit}"
        )
        return self.finalize(sparql)
