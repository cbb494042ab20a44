"""Named pre-capture action files."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from screendiff.errors import BuildError
from screendiff.models.task import Action

_ACTION_LIST = TypeAdapter(list[Action])


def load_actions(action_dir: str | Path, name: str) -> list[Action]:
    """Load and validate ``<action_dir>/<name>.json``.

    The whole list is validated up front; an unsupported action or target
    fails the build.
    """
    path = Path(action_dir) / f"{name}.json"
    try:
        with open(path) as f:
            raw = json.load(f)
    except (OSError, ValueError) as e:
        raise BuildError(f"unable to find action: {name}") from e
    try:
        return _ACTION_LIST.validate_python(raw)
    except ValidationError as e:
        raise BuildError(f"invalid action {name}: {e}") from e
