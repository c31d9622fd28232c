"""
Tests for the query data model: cloning, aliasing and validation.
"""

import pytest

from pq2sparql.errors import InputError
from pq2sparql.query import (
    BasicKind,
    Constant,
    MappedString,
    PseudoQuery,
    Query,
    ScoredCandidate,
    Triple,
    TypeConstraint,
    Variable,
    VariableCategory,
    rank,
)


class TestMappedString:

    def test_equality_ignores_trace(self):
        a = MappedString("http://kb/author", ("write", "author (synonym)"))
        b = MappedString("http://kb/author", ("author",))
        assert a == b
        assert hash(a) == hash(b)


class TestVariableCategory:

    def test_from_string(self):
        assert VariableCategory.from_string("Agent") is VariableCategory.AGENT
        assert VariableCategory.from_string(None) is VariableCategory.UNKNOWN
        assert VariableCategory.from_string("") is VariableCategory.UNKNOWN

    def test_from_string_rejects_unknown_value(self):
        with pytest.raises(InputError):
            VariableCategory.from_string("color")


class TestRank:

    def test_descending_and_stable(self):
        a = ScoredCandidate("a", 0.5)
        b = ScoredCandidate("b", 0.9)
        c = ScoredCandidate("c", 0.5)
        assert [x.value for x in rank([a, b, c])] == ["b", "a", "c"]


class TestTriple:

    def test_swapped(self):
        x = Variable("x")
        t = Triple(x, Constant("located in"), Constant("France"))
        s = t.swapped()
        assert s.subject == Constant("France")
        assert s.object is x
        assert s.predicate == t.predicate

    def test_variables(self):
        x, y = Variable("x"), Variable("y")
        t = Triple(x, None, y)
        assert list(t.variables()) == [x, y]
        assert list(t.elements()) == [x, y]


@pytest.fixture
def shared_query():
    """Two triples sharing the variable ?person."""
    person = Variable("person")
    place = Variable("place", VariableCategory.PLACE)
    return PseudoQuery(
        triples=[
            Triple(Constant("Inferno"), Constant("author"), person),
            Triple(person, Constant("birth place"), place),
        ],
        variables={"person": person, "place": place},
        focus=place,
    )


class TestAliasing:

    def test_clone_preserves_sharing(self, shared_query):
        query = Query.from_pseudo_query(shared_query, score=0.5)
        clone = query.clone()

        first, second = clone.triples
        assert first.object is second.subject
        assert first.object is clone.variables["person"]
        assert clone.focus is clone.variables["place"]
        assert clone.score == 0.5

    def test_clone_creates_new_instances(self, shared_query):
        query = Query.from_pseudo_query(shared_query)
        clone = query.clone()
        for name in query.variables:
            assert clone.variables[name] is not query.variables[name]
        assert clone.triples[0].object is not query.triples[0].object

    def test_type_choice_propagates_to_all_triples(self, shared_query):
        clone = Query.from_pseudo_query(shared_query).clone()
        constraint = TypeConstraint(BasicKind.RESOURCE, MappedString("http://kb/Person"))
        clone.variables["person"].type_constraint = constraint

        assert clone.triples[0].object.type_constraint == constraint
        assert clone.triples[1].subject.type_constraint == constraint
        # The source query is untouched
        assert shared_query.variables["person"].type_constraint is None

    def test_clone_of_clone(self, shared_query):
        clone = Query.from_pseudo_query(shared_query).clone().clone()
        assert clone.triples[0].object is clone.triples[1].subject

    def test_adopt_rewires_by_name(self, shared_query):
        a = Query.from_pseudo_query(shared_query)
        b = a.clone()
        adopted = b.adopt(a.triples[1])
        assert adopted.subject is b.variables["person"]
        assert adopted.object is b.variables["place"]

    def test_adopt_unknown_variable(self, shared_query):
        query = Query.from_pseudo_query(shared_query)
        with pytest.raises(InputError):
            query.adopt(Triple(Variable("other"), None, Constant("x")))


class TestValidation:

    def test_valid(self, shared_query):
        shared_query.validate()

    def test_no_triples(self):
        x = Variable("x")
        with pytest.raises(InputError, match="no triples"):
            PseudoQuery(triples=[], variables={"x": x}, focus=x).validate()

    def test_no_focus(self, shared_query):
        shared_query.focus = None
        with pytest.raises(InputError, match="no focus"):
            shared_query.validate()

    def test_unregistered_focus(self, shared_query):
        shared_query.focus = Variable("place")
        with pytest.raises(InputError):
            shared_query.validate()

    def test_both_ends_missing(self):
        x = Variable("x")
        query = PseudoQuery(
            triples=[Triple(None, Constant("author"), None)],
            variables={"x": x},
            focus=x,
        )
        with pytest.raises(InputError, match="neither subject nor object"):
            query.validate()

    def test_variable_copy_breaks_aliasing(self, shared_query):
        # Same name, different instance
        shared_query.triples.append(Triple(Variable("person"), None, Constant("Paris")))
        with pytest.raises(InputError, match="not the registered instance"):
            shared_query.validate()

    def test_str_lists_triples_and_types(self, shared_query):
        text = str(shared_query)
        assert "[Subject: ?person]" in text
        assert "[?place TYPE place]" in text
