"""JSON reading and writing of pseudo queries and resolved queries.

Pseudo query format::

    {
        "focus": "book",
        "variables": {"book": "unknown"},
        "triples": [["?book", "author", "Dan Brown"]]
    }

Triple elements: ``"?name"`` is a variable, ``"<uri>"`` a resolved constant,
``null`` a wildcard (predicate only) and any other string free text. A
variable may also be declared with a class, e.g.
``{"category": "unknown", "type": "<http://dbpedia.org/ontology/Book>"}``.
Variables used in triples but not declared are of unknown category.
"""

import json
from pathlib import Path
from typing import Any, Callable, Optional, Union

from .errors import InputError
from .query import (
    BasicKind,
    Constant,
    Element,
    MappedString,
    PseudoQuery,
    Query,
    Triple,
    TypeConstraint,
    Variable,
    VariableCategory,
)


def _parse_variable(name: str, spec: Any) -> Variable:
    if spec is None or isinstance(spec, str):
        return Variable(name, VariableCategory.from_string(spec))
    if not isinstance(spec, dict):
        raise InputError(f"Invalid declaration of variable ?{name}: {spec!r}")

    var = Variable(name, VariableCategory.from_string(spec.get("category")))
    type_uri = spec.get("type")
    if type_uri:
        kind = BasicKind(spec.get("kind", BasicKind.RESOURCE.value))
        var.type_constraint = TypeConstraint(kind, MappedString(type_uri.strip("<>"), (name,)))
    return var


def _parse_element(value: Any, variables: dict[str, Variable]) -> Optional[Element]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InputError(f"Invalid triple element: {value!r}")
    value = value.strip()
    if value.startswith("?"):
        name = value[1:]
        if not name:
            raise InputError("Empty variable name")
        # Undeclared variables are registered on first use
        if name not in variables:
            variables[name] = Variable(name)
        return variables[name]
    if value.startswith("<") and value.endswith(">"):
        return Constant(value[1:-1], resolved=True, trace=(value,))
    return Constant(value)


def pseudo_query_from_dict(data: dict) -> PseudoQuery:
    """
    Build a pseudo query from its JSON representation.

    Raises:
        InputError: if the data is malformed or the query fails validation
    """
    if not isinstance(data, dict):
        raise InputError("Pseudo query must be a JSON object")

    variables: dict[str, Variable] = {}
    for name, spec in (data.get("variables") or {}).items():
        variables[name.lstrip("?")] = _parse_variable(name.lstrip("?"), spec)

    triples = []
    for raw in data.get("triples") or []:
        if isinstance(raw, dict):
            raw = [raw.get("subject"), raw.get("predicate"), raw.get("object")]
        if not isinstance(raw, (list, tuple)) or len(raw) != 3:
            raise InputError(f"Triple must have subject, predicate and object: {raw!r}")
        subject, predicate, obj = (_parse_element(v, variables) for v in raw)
        triples.append(Triple(subject, predicate, obj))

    focus_name = (data.get("focus") or "").lstrip("?")
    focus = variables.get(focus_name) if focus_name else None
    if focus_name and focus is None:
        raise InputError(f"Focus variable ?{focus_name} does not occur in the query")

    pseudo_query = PseudoQuery(triples=triples, variables=variables, focus=focus)
    pseudo_query.validate()
    return pseudo_query


def load_pseudo_query(path: Union[str, Path]) -> PseudoQuery:
    """Load a pseudo query from a JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise InputError(f"Invalid JSON in {path}: {e}") from e
    return pseudo_query_from_dict(data)


def _element_to_dict(element: Optional[Element], shorten: Callable[[str], str]) -> Optional[dict]:
    if element is None:
        return None
    if isinstance(element, Variable):
        return {"variable": element.name}
    result = {"value": shorten(element.name) if element.resolved else element.name}
    if element.resolved:
        result["uri"] = element.name
    if element.trace:
        result["trace"] = list(element.trace)
    return result


def query_to_dict(
    query: PseudoQuery,
    shorten: Callable[[str], str] = lambda uri: uri,
) -> dict:
    """
    Explainable representation of a (resolved) query.

    Args:
        query: Query to serialize
        shorten: URI formatter for display values (e.g. the gateway's shorten_uri)

    Returns:
        Dict with the triples, their derivation traces, the variable type
        constraints and, for resolved queries, the score
    """
    variables = {}
    for var in query.ordered_variables():
        entry: dict[str, Any] = {"category": var.category.value}
        tc = var.type_constraint
        if tc is not None:
            entry["kind"] = tc.kind.value
            if tc.type_id is not None:
                entry["type"] = tc.type_id.value
                entry["trace"] = list(tc.type_id.trace)
        variables[var.name] = entry

    result: dict[str, Any] = {
        "focus": query.focus.name if query.focus is not None else None,
        "variables": variables,
        "triples": [
            {
                "subject": _element_to_dict(t.subject, shorten),
                "predicate": _element_to_dict(t.predicate, shorten),
                "object": _element_to_dict(t.object, shorten),
            }
            for t in query.triples
        ],
    }
    if isinstance(query, Query):
        result["score"] = query.score
    return result
