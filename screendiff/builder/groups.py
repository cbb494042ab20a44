"""Group sources — static JSON files or executables printing a JSON array."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

from pydantic import ValidationError

from screendiff.errors import BuildError
from screendiff.models.task import GroupItem

logger = logging.getLogger(__name__)


class GroupSource:
    """Resolves a group name to its ordered list of items."""

    def __init__(self, group_dir: str | Path, group_builder_dir: str | Path):
        self.group_dir = Path(group_dir)
        self.group_builder_dir = Path(group_builder_dir)

    async def get_items(self, name: str) -> list[GroupItem]:
        json_path = self.group_dir / f"{name}.json"
        if json_path.is_file():
            logger.debug("Loading group %s from %s", name, json_path)
            try:
                with open(json_path) as f:
                    raw = json.load(f)
            except ValueError as e:
                raise BuildError(f"error parsing group file {json_path}: {e}") from e
            return self._parse(name, raw)

        script = self.group_builder_dir / name
        if not script.is_file():
            raise BuildError(f"Couldn't find group or group-building script called: {name}")

        logger.debug("Running group-building script %s", script)
        stdout = await self._run_script(name, script)
        try:
            raw = json.loads(stdout)
        except ValueError as e:
            raise BuildError(f"error parsing group items data: {e}") from e
        return self._parse(name, raw)

    async def _run_script(self, name: str, script: Path) -> str:
        try:
            proc = await asyncio.create_subprocess_exec(
                str(script),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise BuildError(f"Couldn't run group-building script {name}: {e}") from e
        stdout, stderr = await proc.communicate()
        if proc.returncode != 0:
            raise BuildError(
                f"Group-building script {name} exited with {proc.returncode}: "
                f"{stderr.decode(errors='replace').strip()}"
            )
        return stdout.decode()

    @staticmethod
    def _parse(name: str, raw: object) -> list[GroupItem]:
        if not isinstance(raw, list):
            raise BuildError(f"Group {name} must be a JSON array, got {type(raw).__name__}")
        items = []
        for i, item in enumerate(raw):
            # a bad item is skipped like any other failing group item
            try:
                items.append(GroupItem.model_validate(item))
            except ValidationError as e:
                logger.warning("Skipping invalid item %d in group %s: %s", i, name, e)
        return items
