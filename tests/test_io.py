"""
Tests for pseudo query JSON reading and query export.
"""

import json

import pytest

from pq2sparql.errors import InputError
from pq2sparql.io import load_pseudo_query, pseudo_query_from_dict, query_to_dict
from pq2sparql.query import BasicKind, Constant, Query, Triple, Variable, VariableCategory

from .conftest import kb


BOOK_JSON = {
    "focus": "book",
    "variables": {"book": "unknown"},
    "triples": [["?book", "author", "Dan Brown"]],
}


class TestPseudoQueryFromDict:

    def test_basic(self):
        pq = pseudo_query_from_dict(BOOK_JSON)
        triple = pq.triples[0]
        assert triple.subject is pq.variables["book"]
        assert pq.focus is pq.variables["book"]
        assert triple.predicate == Constant("author")
        assert triple.object == Constant("Dan Brown")

    def test_shared_variable_is_one_instance(self):
        pq = pseudo_query_from_dict({
            "focus": "?place",
            "variables": {"person": "agent", "place": "place"},
            "triples": [
                ["Inferno", "author", "?person"],
                {"subject": "?person", "predicate": "birth place", "object": "?place"},
            ],
        })
        assert pq.triples[0].object is pq.triples[1].subject
        assert pq.variables["person"].category is VariableCategory.AGENT
        assert pq.focus.category is VariableCategory.PLACE

    def test_undeclared_variable_is_unknown(self):
        pq = pseudo_query_from_dict({"focus": "x", "triples": [["?x", None, "France"]]})
        assert pq.variables["x"].category is VariableCategory.UNKNOWN
        assert pq.triples[0].predicate is None

    def test_uri_is_resolved_constant(self):
        pq = pseudo_query_from_dict({
            "focus": "book",
            "triples": [["?book", f"<{kb('author')}>", "Dan Brown"]],
        })
        predicate = pq.triples[0].predicate
        assert predicate.resolved
        assert predicate.name == kb("author")

    def test_declared_type(self):
        pq = pseudo_query_from_dict({
            "focus": "book",
            "variables": {"book": {"category": "unknown", "type": f"<{kb('Book')}>"}},
            "triples": [["?book", "author", "Dan Brown"]],
        })
        constraint = pq.variables["book"].type_constraint
        assert constraint.kind is BasicKind.RESOURCE
        assert constraint.type_id.value == kb("Book")

    @pytest.mark.parametrize("data,message", [
        ({"focus": "x", "variables": {"x": "unknown"}, "triples": []}, "no triples"),
        ({"triples": [["?x", "p", "o"]]}, "no focus"),
        ({"focus": "y", "triples": [["?x", "p", "o"]]}, "does not occur"),
        ({"focus": "x", "triples": [["?x", "p"]]}, "subject, predicate and object"),
        ({"focus": "x", "triples": [["?x", 3, "o"]]}, "Invalid triple element"),
        ({"focus": "x", "variables": {"x": "colour"}, "triples": [["?x", "p", "o"]]}, "colour"),
    ])
    def test_malformed(self, data, message):
        with pytest.raises(InputError, match=message):
            pseudo_query_from_dict(data)

    def test_not_an_object(self):
        with pytest.raises(InputError):
            pseudo_query_from_dict([1, 2, 3])


class TestLoadPseudoQuery:

    def test_load(self, tmp_path):
        path = tmp_path / "q.json"
        path.write_text(json.dumps(BOOK_JSON), encoding="utf-8")
        assert load_pseudo_query(path).focus.name == "book"

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "q.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(InputError, match="Invalid JSON"):
            load_pseudo_query(path)


class TestQueryToDict:

    def test_pseudo_query(self):
        data = query_to_dict(pseudo_query_from_dict(BOOK_JSON))
        assert data["focus"] == "book"
        assert data["variables"] == {"book": {"category": "unknown"}}
        assert data["triples"][0]["subject"] == {"variable": "book"}
        assert data["triples"][0]["object"] == {"value": "Dan Brown"}
        assert "score" not in data

    def test_resolved_query_with_traces(self, gateway, config, book_query):
        from pq2sparql.engine import QuerySynthesisEngine

        engine = QuerySynthesisEngine(gateway, config=config)
        best = engine.build_ranked_query_candidates(book_query)[0].value
        data = query_to_dict(best, gateway.shorten_uri)

        obj = data["triples"][0]["object"]
        assert obj == {
            "value": "kb:Dan_Brown",
            "uri": kb("Dan_Brown"),
            "trace": ["Dan Brown", "kb:Dan_Brown (exact match)"],
        }
        assert data["variables"]["book"]["type"] == kb("Book")
        assert data["variables"]["book"]["kind"] == "resource"
        assert data["score"] == best.score
        # Serializable as is
        json.dumps(data)

    def test_wildcard_predicate(self):
        x = Variable("x")
        query = Query(triples=[Triple(x, None, Constant("France"))], variables={"x": x}, focus=x)
        assert query_to_dict(query)["triples"][0]["predicate"] is None
