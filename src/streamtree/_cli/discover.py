"""Locate the node tree a CLI command should render."""

from __future__ import annotations

import importlib
import importlib.util
import logging
import sys
from typing import TYPE_CHECKING, Any

from streamtree._node import Element, create_element

from .config import ModuleSource, ScriptSource

if TYPE_CHECKING:
    from pathlib import Path
    from types import ModuleType

    from streamtree._node import Renderable

    from .config import TargetSource

logger = logging.getLogger(__name__)


def as_renderable(obj: Any) -> Renderable:
    """Components (callables that are not Elements) are rendered without props."""
    if callable(obj) and not isinstance(obj, Element):
        return create_element(obj)
    return obj


def import_script(path: Path) -> ModuleType:
    """Execute a Python file as a module named after its stem.

    The script's directory is put on `sys.path` first, so it can import its neighbours.

    Raises:
        FileNotFoundError: If `path` is not a file.

    """
    path = path.resolve()
    if not path.is_file():
        msg = f"Script not found: {path}"
        raise FileNotFoundError(msg)

    spec = importlib.util.spec_from_file_location(path.stem, path)
    if spec is None or spec.loader is None:
        msg = f"Cannot import {path}"
        raise ImportError(msg)

    sys.path.insert(0, str(path.parent))
    module = importlib.util.module_from_spec(spec)
    sys.modules[spec.name] = module
    spec.loader.exec_module(module)
    logger.debug("Imported %s as %s", path, spec.name)
    return module


def find_target(module: ModuleType, name: str | None = None) -> Renderable:
    """Pick the renderable named `name`, or else the first Element defined in `module`.

    Raises:
        ValueError: If there is no such variable or no Element at all.

    """
    if name is not None:
        try:
            return as_renderable(getattr(module, name))
        except AttributeError:
            msg = f"Could not find '{name}' in {module.__name__}"
            raise ValueError(msg) from None

    elements = [(attr, value) for attr, value in vars(module).items() if isinstance(value, Element)]
    if not elements:
        msg = f"Could not find an Element in {module.__name__}, try using --name"
        raise ValueError(msg)
    attr, element = elements[0]
    logger.debug("Rendering %s.%s", module.__name__, attr)
    return element


def load_target(source: TargetSource) -> Renderable:
    """Import the module a TargetSource points at and return its renderable."""
    match source:
        case ScriptSource(script=script, name=name):
            return find_target(import_script(script), name)
        case ModuleSource(module_path=module_path):
            module_name, _, name = module_path.partition(":")
            return find_target(importlib.import_module(module_name), name)
