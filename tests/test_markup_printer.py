import datetime
import math

import pytest

from markup.markup_parser import compile_template
from markup.markup_printer import Printer, OPAQUE


@pytest.fixture
def printer():
    return Printer()


class Thing:
    pass


# Test cases: (id, value, expected_text)
TEXT_CASES = [
    ("none", None, ""),
    ("true", True, "true"),
    ("false", False, "false"),
    ("int", 145, "145"),
    ("negative", -3, "-3"),
    ("float", 33.3, "33.3"),
    ("integral_float", 1.0, "1"),
    ("nan", math.nan, "NaN"),
    ("inf", math.inf, "Infinity"),
    ("neg_inf", -math.inf, "-Infinity"),
    ("small", 1e-7, "1e-7"),
    ("small_fraction", 1.5e-10, "1.5e-10"),
    ("large", 1e21, "1e+21"),
    ("str", " J. Doe ", " J. Doe "),
    ("list", ["Jack", "Joe", "Jim"], "JackJoeJim"),
    ("nested_list", [1, [2, 3], None, True], "123true"),
    ("dict", {"a": 1}, OPAQUE),
    ("object", Thing(), OPAQUE),
    ("date", datetime.date(2011, 2, 1), "2011-02-01"),
]


@pytest.mark.parametrize("value, expected", [c[1:] for c in TEXT_CASES], ids=[c[0] for c in TEXT_CASES])
def test_to_text(printer, value, expected):
    assert printer.to_text(value) == expected


@pytest.mark.parametrize("source", [
    "gender: {{gender|upcase|downcase}}",
    "{{brothers}}{{#}}-{{.}} {{/brothers}}",
    "{{if brothers|more>1}}{{brothers.0}}{{else}}no!{{/if}}",
    "{{sisters|sort>name}}*{{name}}*{{/sisters}}",
    "{{brothers|join> * }}",
    r"{{x|sub>a\>b>c\|d}}",
])
def test_pformat_reproduces_source(printer, source):
    assert printer.pformat(compile_template(source)) == source


def test_pformat_normalizes_whitespace(printer):
    assert printer.pformat(compile_template("{{ gender | upcase }}")) == "{{gender|upcase}}"


def test_pformat_custom_delimiter():
    tpl = compile_template("{{x|between:1:10}}", ":")
    assert Printer(":").pformat(tpl) == "{{x|between:1:10}}"
