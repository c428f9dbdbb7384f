"""Embed sidecar metadata into video containers with ffmpeg.

The muxer remuxes (``-c copy``) into a temporary file beside the source and
atomically replaces the source on success. ffprobe is used to skip files
whose container already carries every field.
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from vidmeta.exceptions import MuxerError

logger = logging.getLogger(__name__)

# Sidecar fields copied into the container, grouped the way players show them.
TITLE_FIELDS = (
    "title",
    "subtitle",
    "description",
    "long_description",
    "summary",
    "synopsis",
)
CREDIT_FIELDS = (
    "actor",
    "author",
    "artist",
    "creator",
    "studio",
    "publisher",
    "producer",
    "performer",
    "composer",
    "director",
    "writer",
)
DATE_FIELDS = (
    "creation_time",
    "date",
    "originally_available_at",
    "release_date",
    "upload_date",
    "year",
)
SHOW_FIELDS = ("episode_id", "episode_sort", "season_number", "season_title", "show")
OTHER_FIELDS = ("genre", "hd_video", "language")

# Plural list fields merged into their singular credit field.
_PLURAL_CREDITS = {f"{name}s": name for name in CREDIT_FIELDS}

# Alternate source keys used when the primary one is empty.
_FALLBACKS = {
    "title": ("fulltitle",),
    "long_description": ("long-description",),
    "description": ("plot",),
    "release_date": ("releasedate", "premiered"),
}

DEFAULT_TIMEOUT = 600


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, list):
        return "; ".join(v.strip() for v in value if isinstance(v, str) and v.strip())
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def build_field_map(meta: Mapping[str, Any]) -> dict[str, str]:
    """Build the ``-metadata`` key/value map from sidecar fields.

    Lists of strings are joined with ``"; "``. Empty values are omitted.
    """
    fields: dict[str, str] = {}
    for name in (
        TITLE_FIELDS + CREDIT_FIELDS + DATE_FIELDS + SHOW_FIELDS + OTHER_FIELDS
    ):
        value = _as_text(meta.get(name))
        if not value:
            for alt in _FALLBACKS.get(name, ()):
                value = _as_text(meta.get(alt))
                if value:
                    break
        if value:
            fields[name] = value

    for plural, singular in _PLURAL_CREDITS.items():
        value = _as_text(meta.get(plural))
        if value and singular not in fields:
            fields[singular] = value
    return fields


class FfmpegMuxer:
    """Writes container metadata with ffmpeg and checks it with ffprobe."""

    def __init__(
        self,
        ffmpeg: str = "ffmpeg",
        ffprobe: str = "ffprobe",
        timeout: int | None = DEFAULT_TIMEOUT,
    ) -> None:
        self.ffmpeg = ffmpeg
        self.ffprobe = ffprobe
        self.timeout = timeout

    def build_command(
        self, source: Path, output: Path, field_map: Mapping[str, str]
    ) -> list[str]:
        cmd = [
            self.ffmpeg,
            "-y",
            "-hide_banner",
            "-loglevel",
            "error",
            "-i",
            str(source),
            "-map",
            "0",
            "-c",
            "copy",
        ]
        for key, value in field_map.items():
            cmd.extend(["-metadata", f"{key}={value}"])
        cmd.append(str(output))
        return cmd

    def mux(self, path: Path, field_map: Mapping[str, str]) -> None:
        """Rewrite ``path`` with ``field_map`` embedded.

        Raises:
            MuxerError: If ffmpeg cannot run, fails, or times out.
        """
        with tempfile.NamedTemporaryFile(
            prefix=f".{path.stem}.", suffix=path.suffix, delete=False, dir=path.parent
        ) as tmp:
            temp_path = Path(tmp.name)

        cmd = self.build_command(path, temp_path, field_map)
        logger.debug("Running %s", " ".join(cmd))
        try:
            try:
                result = subprocess.run(  # nosec B603 - fixed flags, local paths
                    cmd,
                    capture_output=True,
                    text=True,
                    timeout=self.timeout,
                    encoding="utf-8",
                    errors="replace",
                )
            except subprocess.TimeoutExpired as e:
                raise MuxerError(
                    f"ffmpeg timed out after {self.timeout}s for {path}"
                ) from e
            except (subprocess.SubprocessError, OSError) as e:
                raise MuxerError(f"ffmpeg failed for {path}: {e}") from e

            if result.returncode != 0:
                raise MuxerError(
                    f"ffmpeg exited with {result.returncode} for {path}: "
                    f"{result.stderr.strip()}"
                )
            if not temp_path.exists() or temp_path.stat().st_size == 0:
                raise MuxerError(f"ffmpeg produced no output for {path}")

            os.replace(temp_path, path)
            logger.info("Embedded %d metadata fields into %s", len(field_map), path)
        finally:
            temp_path.unlink(missing_ok=True)

    def probe_tags(self, path: Path) -> dict[str, str]:
        """Return the container's format tags with lower-cased keys.

        Raises:
            MuxerError: If ffprobe fails or prints invalid JSON.
        """
        try:
            result = subprocess.run(  # nosec B603 - fixed flags, local path
                [
                    self.ffprobe,
                    "-v",
                    "error",
                    "-print_format",
                    "json",
                    "-show_format",
                    str(path),
                ],
                capture_output=True,
                text=True,
                errors="replace",
                check=True,
                timeout=60,
            )
            data = json.loads(result.stdout)
        except (subprocess.SubprocessError, OSError, json.JSONDecodeError) as e:
            raise MuxerError(f"ffprobe failed for {path}: {e}") from e

        tags = data.get("format", {}).get("tags", {}) or {}
        return {str(k).lower(): str(v) for k, v in tags.items()}

    def already_applied(self, path: Path, field_map: Mapping[str, str]) -> bool:
        """True if every field in ``field_map`` is already in the container."""
        if not field_map:
            return True
        tags = self.probe_tags(path)
        for key, value in field_map.items():
            if tags.get(key.lower(), "").strip() != value.strip():
                logger.debug("Container field %s differs for %s", key, path)
                return False
        return True
