import datetime
from collections import OrderedDict

import pytest

from markup.markup_datatypes import (
    Kind, kind_of, markup_method, Literal, PipeCall, Tag, Template,
    MarkupError, ParseError, PathNotFound, PipeError, ConfigurationError
)


class Thing:
    pass


@pytest.mark.parametrize("value, kind", [
    (None, Kind.NULL),
    (True, Kind.BOOL),
    (False, Kind.BOOL),
    (0, Kind.NUMBER),
    (3.5, Kind.NUMBER),
    ("", Kind.STRING),
    ("x", Kind.STRING),
    ([1, 2], Kind.SEQUENCE),
    ((1, 2), Kind.SEQUENCE),
    ({}, Kind.MAPPING),
    (OrderedDict(a=1), Kind.MAPPING),
    (datetime.date(2011, 2, 1), Kind.DATE),
    (datetime.datetime(2011, 2, 1, 12), Kind.DATE),
    (b"bytes", Kind.OBJECT),
    (Thing(), Kind.OBJECT),
])
def test_kind_of(value, kind):
    assert kind_of(value) is kind


def test_markup_method_marks_function():
    @markup_method
    def greet(self):
        return "hi"
    assert greet._is_markup_method is True


def test_error_hierarchy():
    for cls in (ParseError, PathNotFound, PipeError, ConfigurationError):
        assert issubclass(cls, MarkupError)


def test_parse_error_str():
    assert str(ParseError("Empty tag.")) == "Empty tag."
    assert str(ParseError("Empty tag.", 3, 7, "{{}}")) == "Empty tag. (line 3, col 7)"


def test_pipe_error_message():
    err = PipeError("call", "no method 'x' on number")
    assert str(err) == "call: no method 'x' on number"
    assert err.name == "call"


def test_path_not_found_key():
    assert PathNotFound("last").key == "last"


def test_node_equality():
    assert Literal("a") == Literal("a")
    assert PipeCall("join", ("-",)) == PipeCall("join", ["-"])
    assert PipeCall("join", ("-",)) != PipeCall("join", ("+",))
    a = Tag(Tag.LEAF, "name", (PipeCall("upcase"),))
    b = Tag(Tag.LEAF, "name", (PipeCall("upcase"),))
    assert a == b
    assert hash(a) == hash(b)
    assert a != Tag(Tag.SECTION, "name", (PipeCall("upcase"),))


def test_tag_str_repr():
    tag = Tag(Tag.IF, "n", (PipeCall("more", ("1",)),), (Literal("yes"),), (Literal("no"),))
    assert tag.to_str_repr() == "{{if n|more>1}}yes{{else}}no{{/if}}"


def test_template_holds_nodes():
    tpl = Template("x", [Literal("x")])
    assert tpl.nodes == (Literal("x"),)
    assert tpl.delimiter == ">"
