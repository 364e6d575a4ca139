import datetime

import pytest

from markup.markup_datatypes import PathNotFound
from markup.markup_resolver import PathResolver, ScopeStack
from markup.markup_runtime import Mark


class Person:
    def __init__(self):
        self.age = 36
        self._secret = "x"

    def get_name(self):
        return "Adam"


@pytest.fixture
def resolver():
    return PathResolver()


CONTEXT = {
    "name": {"first": "John", "last": "Doe"},
    "brothers": ["Jack", "Joe", "Jim"],
    "sisters": [{"name": "Jill"}, {"name": "Jen"}],
    "race": None,
    "codes": {1: "one"},
}


@pytest.mark.parametrize("subject, expected", [
    ("name.first", "John"),
    ("brothers.0", "Jack"),
    ("brothers.2", "Jim"),
    ("sisters.1.name", "Jen"),
    ("race", None),
    ("codes.1", "one"),
])
def test_resolves_dotted_paths(resolver, subject, expected):
    assert resolver.resolve(subject, ScopeStack(CONTEXT)) == expected


@pytest.mark.parametrize("subject", [
    "whatever",
    "name.middle",
    "brothers.3",
    "brothers.-1",
    "name.first.x",
    "race.x",
])
def test_absent_paths_raise(resolver, subject):
    with pytest.raises(PathNotFound):
        resolver.resolve(subject, ScopeStack(CONTEXT))


def test_no_fallback_to_enclosing_scope(resolver):
    scopes = ScopeStack(CONTEXT)
    scopes.push({"name": {"first": "Jake"}})
    assert resolver.resolve("name.first", scopes) == "Jake"
    with pytest.raises(PathNotFound):
        resolver.resolve("name.last", scopes)
    with pytest.raises(PathNotFound):
        resolver.resolve("brothers", scopes)


def test_self_reference(resolver):
    scopes = ScopeStack(CONTEXT)
    with scopes.pushed("Jack"):
        assert resolver.resolve(".", scopes) == "Jack"
    assert resolver.resolve(".", scopes) is CONTEXT


def test_counters_use_nearest_loop_frame(resolver):
    scopes = ScopeStack(CONTEXT)
    with pytest.raises(PathNotFound):
        resolver.resolve("#", scopes)
    with scopes.pushed("Joe", 1, 3):
        assert resolver.resolve("#", scopes) == 1
        assert resolver.resolve("##", scopes) == 2
        # an object section inside the loop keeps the loop's counters
        with scopes.pushed({"x": 1}):
            assert resolver.resolve("#", scopes) == 1


def test_object_attributes(resolver):
    scopes = ScopeStack({"adam": Person()})
    assert resolver.resolve("adam.age", scopes) == 36
    for subject in ("adam._secret", "adam.get_name", "adam.missing"):
        with pytest.raises(PathNotFound):
            resolver.resolve(subject, scopes)


def test_date_fields(resolver):
    scopes = ScopeStack({"d": datetime.date(2011, 2, 1)})
    assert resolver.resolve("d.year", scopes) == 2011


def test_globals_fill_names_missing_from_top_scope():
    resolver = PathResolver({"site": {"title": "Home"}})
    scopes = ScopeStack({"site": {"title": "shadowed"}})
    scopes.push({})
    assert resolver.resolve("site.title", scopes) == "Home"


def test_scope_stack_root_cannot_be_popped():
    scopes = ScopeStack({})
    scopes.push(1)
    assert len(scopes) == 2
    assert scopes.pop().value == 1
    with pytest.raises(IndexError):
        scopes.pop()


@pytest.mark.parametrize("ctx", [{"a": ["x"]}, {"a": {2: "two"}}], ids=["sequence", "mapping"])
def test_non_ascii_digits_are_not_indexes(resolver, ctx):
    with pytest.raises(PathNotFound):
        resolver.resolve("a.²", ScopeStack(ctx))


def test_non_ascii_digit_path_renders_placeholder():
    assert Mark.up("{{a.²}}", {"a": ["x"]}) == "???"
    assert Mark.up("{{a.²}}", {"a": {2: "two"}}) == "???"


def test_top_scope_wins_over_globals():
    resolver = PathResolver({"site": {"title": "Home"}, "year": 2011})
    scopes = ScopeStack({"site": {"title": "Local"}})
    assert resolver.resolve("site.title", scopes) == "Local"
    assert resolver.resolve("year", scopes) == 2011
    with scopes.pushed({"other": 1}):
        assert resolver.resolve("site.title", scopes) == "Home"
