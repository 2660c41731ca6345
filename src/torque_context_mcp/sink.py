"""Destinations for finished environment context artifacts."""

import logging
import re
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import aiofiles

logger = logging.getLogger(__name__)


class ArtifactSink:
    """Receives a finished artifact and reports where it was delivered."""

    async def deliver(
        self, artifact: str, space_name: str, environment_id: str
    ) -> str:
        raise NotImplementedError


def _safe_name(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9._-]+", "_", value)


class FileArtifactSink(ArtifactSink):
    """Writes artifacts to ``environment-{space}-{env}-{timestamp}.{ext}``."""

    def __init__(self, directory: Optional[str] = None, extension: str = "yaml"):
        self.directory = Path(directory) if directory else Path(tempfile.gettempdir())
        self.extension = extension

    def build_path(
        self,
        space_name: str,
        environment_id: str,
        now: Optional[datetime] = None,
    ) -> Path:
        timestamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%dT%H%M%S")
        file_name = (
            f"environment-{_safe_name(space_name)}-{_safe_name(environment_id)}"
            f"-{timestamp}.{self.extension}"
        )
        return self.directory / file_name

    async def deliver(
        self, artifact: str, space_name: str, environment_id: str
    ) -> str:
        path = self.build_path(space_name, environment_id)
        path.parent.mkdir(parents=True, exist_ok=True)

        async with aiofiles.open(path, "w", encoding="utf-8") as f:
            await f.write(artifact)

        logger.info(
            f"Environment details for {environment_id} have been written to {path}"
        )
        return str(path)
