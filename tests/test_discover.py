"""Tests for locating the node tree to render."""

from pathlib import Path

import pytest

from streamtree import Element, render
from streamtree._cli.config import ModuleSource, ScriptSource
from streamtree._cli.discover import as_renderable, find_target, import_script, load_target

SCRIPT = """
import streamtree as st


def Shout(props, context):
    return "HEY"


second = st.create_element(Shout)
first = st.create_element(st.Fragment, "first")
"""


@pytest.fixture
def script(tmp_path: Path, request: pytest.FixtureRequest) -> Path:
    path = tmp_path / f"discover_{request.node.name}.py"
    path.write_text(SCRIPT)
    return path


class TestFindTarget:
    """Tests for choosing the renderable within a module."""

    async def test_first_defined_element(self, script: Path) -> None:
        """Without a name, the earliest defined Element is used."""
        target = find_target(import_script(script))

        assert await render(target) == "HEY"

    async def test_named_component_becomes_element(self, script: Path) -> None:
        target = find_target(import_script(script), "Shout")

        assert isinstance(target, Element)
        assert await render(target) == "HEY"

    def test_missing_name(self, script: Path) -> None:
        with pytest.raises(ValueError, match="Could not find 'absent'"):
            find_target(import_script(script), "absent")

    def test_module_without_elements(self, tmp_path: Path) -> None:
        path = tmp_path / "empty_tree.py"
        path.write_text("value = 1\n")

        with pytest.raises(ValueError, match="try using --name"):
            find_target(import_script(path))


class TestLoadTarget:
    """Tests for loading a TargetSource."""

    async def test_script_source(self, script: Path) -> None:
        target = load_target(ScriptSource(script=script, name="first"))

        assert await render(target) == "first"

    async def test_module_source(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "tree_module_source.py").write_text(SCRIPT)
        monkeypatch.syspath_prepend(str(tmp_path))

        target = load_target(ModuleSource(module_path="tree_module_source:first"))

        assert await render(target) == "first"

    def test_missing_script(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_target(ScriptSource(script=tmp_path / "nowhere.py"))


class TestAsRenderable:
    """Tests for as_renderable."""

    def test_values_are_kept(self) -> None:
        assert as_renderable("text") == "text"

    def test_component_is_wrapped(self) -> None:
        def Component(props, context):
            return ""

        element = as_renderable(Component)

        assert isinstance(element, Element)
        assert element.component is Component
