"""Instant answer metadata lookup."""

from __future__ import annotations

import asyncio
import bz2
import json
import logging
from typing import Any

import requests

from screendiff.errors import BuildError

logger = logging.getLogger(__name__)


class MetadataClient:
    """Fetches the full metadata dump once and serves lookups from memory."""

    def __init__(self, metadata_url: str, timeout: float = 60.0):
        self.metadata_url = metadata_url
        self.timeout = timeout
        self._cache: dict[str, Any] | None = None
        self._lock = asyncio.Lock()

    async def get_metadata(self, ia_name: str) -> dict[str, Any]:
        """Return the metadata record for a live instant answer."""
        all_metadata = await self._get_all()
        record = all_metadata.get(ia_name)
        if not record:
            raise BuildError(f"Couldn't find metadata for IA: {ia_name}. Is it live?")
        if record.get("dev_milestone") != "live":
            raise BuildError(f"IA {ia_name} isn't live")
        return record

    async def _get_all(self) -> dict[str, Any]:
        async with self._lock:
            if self._cache is None:
                self._cache = await asyncio.to_thread(self._fetch_all)
        return self._cache

    def _fetch_all(self) -> dict[str, Any]:
        logger.info("Fetching IA metadata from %s", self.metadata_url)
        try:
            resp = requests.get(self.metadata_url, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise BuildError(f"Failed to fetch IA metadata: {e}") from e
        try:
            data = json.loads(bz2.decompress(resp.content).decode("utf-8"))
        except (OSError, ValueError) as e:
            raise BuildError(f"Failed to decode IA metadata: {e}") from e
        logger.debug("Loaded metadata for %d IAs", len(data))
        return data


def get_tab_name(metadata: dict[str, Any]) -> str:
    """Derive the ``ia=`` tab identifier from a metadata record."""
    if metadata.get("is_stackexchange"):
        return "qa"

    match metadata.get("repo"):
        case "fathead":
            tab_name = metadata.get("tab") or "about"
        case "goodies":
            tab_name = metadata.get("tab") or "answer"
        case _:
            tab_name = metadata.get("tab") or metadata.get("name") or ""

    return tab_name.lower().replace(" ", "", 1)
