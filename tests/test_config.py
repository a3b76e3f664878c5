"""Tests for the [tool.streamtree] configuration."""

from pathlib import Path

import pytest

from streamtree._cli.config import (
    ConfigError,
    ModuleSource,
    ScriptSource,
    StreamTreeConfig,
    find_pyproject_toml,
    get_config,
    load_config,
    parse_target,
)


def write_pyproject(directory: Path, section: str) -> Path:
    path = directory / "pyproject.toml"
    path.write_text(f"[project]\nname = 'demo'\n\n[tool.streamtree]\n{section}\n")
    return path


class TestParseTarget:
    """Tests for interpreting a target string."""

    def test_script_path(self) -> None:
        assert parse_target("examples/greeting.py") == ScriptSource(script=Path("examples/greeting.py"))

    def test_script_path_with_name(self) -> None:
        assert parse_target("greeting.py", name="page") == ScriptSource(script=Path("greeting.py"), name="page")

    def test_relative_script_resolved_against_root(self, tmp_path: Path) -> None:
        source = parse_target("examples/greeting.py", root=tmp_path)

        assert source == ScriptSource(script=tmp_path / "examples/greeting.py")

    def test_absolute_script_kept(self, tmp_path: Path) -> None:
        script = tmp_path / "greeting.py"

        assert parse_target(str(script), root=Path("/elsewhere")) == ScriptSource(script=script)

    def test_module_reference(self) -> None:
        assert parse_target("examples.greeting:page") == ModuleSource(module_path="examples.greeting:page")

    @pytest.mark.parametrize("text", ["examples.greeting", "examples/greeting"])
    def test_neither_script_nor_module(self, text: str) -> None:
        with pytest.raises(ConfigError, match="Invalid target"):
            parse_target(text)

    def test_module_reference_does_not_take_a_name(self) -> None:
        """The variable of a module reference comes after the colon, not from --name."""
        with pytest.raises(ConfigError, match="Invalid target"):
            parse_target("examples.greeting:page", name="other")


class TestLoadConfigTarget:
    """Tests for the target setting."""

    def test_script_string(self, tmp_path: Path) -> None:
        config = load_config(write_pyproject(tmp_path, 'target = "examples/greeting.py"'))

        assert config.target == ScriptSource(script=tmp_path / "examples/greeting.py")

    def test_module_string(self, tmp_path: Path) -> None:
        config = load_config(write_pyproject(tmp_path, 'target = "examples.greeting:page"'))

        assert config.target == ModuleSource(module_path="examples.greeting:page")

    def test_script_table(self, tmp_path: Path) -> None:
        config = load_config(write_pyproject(tmp_path, 'target = { script = "greeting.py", name = "page" }'))

        assert config.target == ScriptSource(script=tmp_path / "greeting.py", name="page")

    def test_table_without_script(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match=r"target"):
            load_config(write_pyproject(tmp_path, 'target = { name = "page" }'))

    def test_table_with_unknown_key(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match=r"Invalid \[tool.streamtree\]"):
            load_config(write_pyproject(tmp_path, 'target = { script = "greeting.py", module = "x" }'))

    def test_target_of_wrong_type(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match=r"Invalid \[tool.streamtree\]"):
            load_config(write_pyproject(tmp_path, "target = 123"))


class TestLoadConfigAppendOnly:
    """Tests for the append_only setting."""

    def test_enabled(self, tmp_path: Path) -> None:
        config = load_config(write_pyproject(tmp_path, "append_only = true"))

        assert config == StreamTreeConfig(append_only=True)

    def test_must_be_boolean(self, tmp_path: Path) -> None:
        """Strings are not coerced to booleans."""
        with pytest.raises(ConfigError, match="append_only"):
            load_config(write_pyproject(tmp_path, 'append_only = "yes"'))

    def test_unknown_setting_is_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="append-only"):
            load_config(write_pyproject(tmp_path, "append-only = true"))


class TestLoadConfigDefaults:
    """Tests for files without settings."""

    def test_empty_section(self, tmp_path: Path) -> None:
        assert load_config(write_pyproject(tmp_path, "")) == StreamTreeConfig()

    def test_no_section(self, tmp_path: Path) -> None:
        path = tmp_path / "pyproject.toml"
        path.write_text("[project]\nname = 'demo'\n")

        assert load_config(path) == StreamTreeConfig()

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "pyproject.toml"
        path.write_text("[tool.streamtree\n")

        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_config(path)


class TestGetConfig:
    """Tests for locating the project configuration."""

    def test_nearest_pyproject_from_subdirectory(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        write_pyproject(tmp_path, 'target = "app.py"\nappend_only = true')
        nested = tmp_path / "docs" / "notes"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)

        config = get_config()

        assert config.target == ScriptSource(script=tmp_path / "app.py")
        assert config.append_only is True

    def test_find_pyproject_toml_prefers_innermost(self, tmp_path: Path) -> None:
        write_pyproject(tmp_path, "")
        (tmp_path / "sub").mkdir()
        inner = write_pyproject(tmp_path / "sub", "")

        assert find_pyproject_toml(tmp_path / "sub") == inner

