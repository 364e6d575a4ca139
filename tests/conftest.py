import pytest

from markup.markup_runtime import Mark


@pytest.fixture(autouse=True)
def clean_registries():
    """Every test starts and ends with only the built-in entries registered."""
    for registry in (Mark.pipes, Mark.includes, Mark.globals):
        registry.reset()
    yield
    for registry in (Mark.pipes, Mark.includes, Mark.globals):
        registry.reset()
