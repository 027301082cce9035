"""Source-map resolver adapter.

Implements SourceMapPort by following the ``//# sourceMappingURL=``
comment of a compiled file, either to a map file next to it or to an
inline base64 data URL, and returning the map's sources.
"""

import asyncio
import base64
import json
import logging
import os
import re
from typing import Any
from urllib.parse import unquote

from suitesync.core.ports import SourceMapPort

logger = logging.getLogger(__name__)

_SOURCE_MAPPING_URL_RE = re.compile(r"^\s*//[#@]\s*sourceMappingURL=(\S+)\s*$", re.MULTILINE)


class FileSourceMapResolver(SourceMapPort):
    """Reads source maps from disk."""

    async def resolve(self, file: str) -> list[str]:
        try:
            return await asyncio.to_thread(self._resolve, file)
        except (OSError, ValueError) as e:
            logger.debug(f"No usable source map for {file}: {e}")
            return [file]

    def _resolve(self, file: str) -> list[str]:
        with open(file, encoding="utf-8") as f:
            content = f.read()
        matches = _SOURCE_MAPPING_URL_RE.findall(content)
        if not matches:
            return [file]
        url = matches[-1]

        source_map, map_dir = self._load_map(file, url)
        source_root = source_map.get("sourceRoot") or ""
        if source_root.startswith("file://"):
            source_root = unquote(source_root[len("file://"):])
        sources = []
        for source in source_map.get("sources") or []:
            if source.startswith("file://"):
                source = unquote(source[len("file://"):])
            sources.append(os.path.normpath(os.path.join(map_dir, source_root, source)))
        return sources or [file]

    @staticmethod
    def _load_map(file: str, url: str) -> tuple[dict[str, Any], str]:
        """Return the parsed map and the directory its sources are relative to.

        Raises:
            ValueError: If the map is not valid JSON or the data URL is not base64.
        """
        file_dir = os.path.dirname(file)
        if url.startswith("data:"):
            header, _, payload = url.partition(",")
            if not header.endswith(";base64"):
                raise ValueError("Inline source map is not base64 encoded")
            try:
                text = base64.b64decode(payload).decode("utf-8")
            except ValueError as e:
                raise ValueError(f"Invalid inline source map: {e}") from e
            return json.loads(text), file_dir

        map_path = os.path.join(file_dir, unquote(url))
        with open(map_path, encoding="utf-8") as f:
            return json.load(f), os.path.dirname(map_path)
