"""The `[tool.streamtree]` section of pyproject.toml.

Example:
    [tool.streamtree]
    target = "examples/greeting.py"   # or "examples.greeting:page"
    append_only = true

    # A script with an explicit variable name:
    # target = { script = "examples/greeting.py", name = "page" }

"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ConfigDict, StrictBool, StrictStr, ValidationError


class ConfigError(Exception):
    """Error in streamtree configuration."""


@dataclass(slots=True, frozen=True)
class ScriptSource:
    """A Python file, and optionally the name of the variable to render."""

    script: Path
    name: str | None = None


@dataclass(slots=True, frozen=True)
class ModuleSource:
    """An importable `module.path:variable` reference."""

    module_path: str


type TargetSource = ScriptSource | ModuleSource


def parse_target(text: str, name: str | None = None, root: Path | None = None) -> TargetSource:
    """Interpret a target given as text.

    Paths ending in `.py` are scripts, resolved against `root` when relative.
    Anything else must be a `module.path:variable` reference.

    Raises:
        ConfigError: If `text` is neither.

    """
    if text.endswith(".py"):
        script = Path(text)
        if root is not None and not script.is_absolute():
            script = root / script
        return ScriptSource(script=script, name=name)
    if ":" in text and name is None:
        return ModuleSource(module_path=text)
    msg = f"Invalid target '{text}'. Expected 'path/to/script.py' or 'module.path:variable'"
    raise ConfigError(msg)


class _ScriptTable(BaseModel):
    model_config = ConfigDict(extra="forbid")

    script: StrictStr
    name: StrictStr | None = None


class _ToolSection(BaseModel):
    model_config = ConfigDict(extra="forbid")

    target: StrictStr | _ScriptTable | None = None
    append_only: StrictBool = False


@dataclass(slots=True, frozen=True)
class StreamTreeConfig:
    """Settings used by the CLI when no command line value is given."""

    target: TargetSource | None = None
    append_only: bool = False


def find_pyproject_toml(start_dir: Path | None = None) -> Path | None:
    """Return the nearest pyproject.toml in `start_dir` (default: cwd) or its parents."""
    start = (start_dir or Path.cwd()).resolve()
    for directory in (start, *start.parents):
        candidate = directory / "pyproject.toml"
        if candidate.is_file():
            return candidate
    return None


def load_config(pyproject_path: Path) -> StreamTreeConfig:
    """Load `[tool.streamtree]` from a pyproject.toml.

    A missing section gives the default configuration.

    Raises:
        ConfigError: If the file is not valid TOML or the section is malformed.

    """
    try:
        data = tomllib.loads(pyproject_path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {pyproject_path}: {e}"
        raise ConfigError(msg) from e

    try:
        section = _ToolSection.model_validate(data.get("tool", {}).get("streamtree", {}))
    except ValidationError as e:
        problems = "; ".join(f"{'.'.join(map(str, error['loc']))}: {error['msg']}" for error in e.errors())
        msg = f"Invalid [tool.streamtree] in {pyproject_path}: {problems}"
        raise ConfigError(msg) from e

    root = pyproject_path.parent
    match section.target:
        case None:
            target = None
        case str(text):
            target = parse_target(text, root=root)
        case _ScriptTable(script=script, name=name):
            target = parse_target(script, name=name, root=root)

    return StreamTreeConfig(target=target, append_only=section.append_only)


def get_config() -> StreamTreeConfig:
    """Load the configuration of the project containing the working directory."""
    pyproject_path = find_pyproject_toml()
    if pyproject_path is None:
        return StreamTreeConfig()
    return load_config(pyproject_path)
