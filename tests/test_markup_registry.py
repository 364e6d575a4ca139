import threading

import pytest

from markup.markup_datatypes import ConfigurationError
from markup.markup_registry import (
    PipeRegistry, IncludeRegistry, GlobalRegistry, validate_entries
)


def upcase(value):
    return str(value).upper()


def shout(value):
    return str(value).upper() + "!"


@pytest.fixture
def registry():
    return PipeRegistry({"upcase": upcase})


def test_builtins_are_visible(registry):
    assert registry["upcase"] is upcase
    assert "upcase" in registry
    assert len(registry) == 1
    assert registry.is_builtin("upcase")


def test_register_and_lookup(registry):
    registry.register("shout", shout)
    assert registry["shout"] is shout
    assert not registry.is_builtin("shout")
    assert sorted(registry) == ["shout", "upcase"]


def test_duplicate_custom_name_needs_replace(registry):
    registry.register("shout", shout)
    with pytest.raises(ConfigurationError, match="Duplicate pipe"):
        registry.register("shout", upcase)
    registry.register("shout", upcase, replace=True)
    assert registry["shout"] is upcase


def test_item_assignment_replaces(registry):
    registry["shout"] = shout
    registry["shout"] = upcase
    assert registry["shout"] is upcase


def test_builtin_can_be_shadowed_and_restored(registry):
    registry.register("upcase", shout)
    assert registry["upcase"] is shout
    assert not registry.is_builtin("upcase")
    registry.unregister("upcase")
    assert registry["upcase"] is upcase


def test_unregister_custom(registry):
    registry["shout"] = shout
    del registry["shout"]
    assert "shout" not in registry
    with pytest.raises(KeyError):
        registry.unregister("shout")


@pytest.mark.parametrize("name", ["", "two words", "a|b", "{a}", "a>b", "a/b", "a\\b", None, 3])
def test_invalid_names(registry, name):
    with pytest.raises(ConfigurationError):
        registry.register(name, shout)


def test_pipes_must_be_callable(registry):
    with pytest.raises(ConfigurationError, match="must be callable"):
        registry.register("nope", "not a function")


def test_freeze(registry):
    registry["shout"] = shout
    registry.freeze()
    assert registry.frozen
    with pytest.raises(ConfigurationError, match="frozen"):
        registry.register("other", shout)
    with pytest.raises(ConfigurationError, match="frozen"):
        registry.unregister("shout")
    # reads still work
    assert registry["shout"] is shout


def test_reset(registry):
    registry["shout"] = shout
    registry.register("upcase", shout)
    registry.freeze()
    registry.reset()
    assert not registry.frozen
    assert dict(registry) == {"upcase": upcase}


def test_include_registry_rules():
    includes = IncludeRegistry()
    includes["greeting"] = "Hi {{name}}"
    includes["lazy"] = lambda: "later"
    with pytest.raises(ConfigurationError):
        includes["a.b"] = "x"
    with pytest.raises(ConfigurationError):
        includes["num"] = 3


def test_global_registry_rules():
    globals_ = GlobalRegistry()
    globals_["site"] = {"title": "Home"}
    assert globals_["site"]["title"] == "Home"
    with pytest.raises(ConfigurationError):
        globals_["site.title"] = "x"


def test_validate_entries(registry):
    assert validate_entries(registry, None, "pipes") == {}
    assert validate_entries(registry, {"shout": shout}, "pipes") == {"shout": shout}
    with pytest.raises(ConfigurationError, match="must be a mapping"):
        validate_entries(registry, [shout], "pipes")
    with pytest.raises(ConfigurationError):
        validate_entries(registry, {"bad name": shout}, "pipes")
    # validation never registers
    assert "shout" not in registry


def test_reader_keeps_its_table_during_writes(registry):
    snapshot = dict(registry)
    errors = []

    def writer(i):
        try:
            registry.register(f"p{i}", shout)
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=writer, args=(i,)) for i in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert not errors
    assert len(registry) == 21
    assert snapshot == {"upcase": upcase}
