"""Shared test fixtures for vidmeta."""

from __future__ import annotations

import io
import json
import os
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from vidmeta.config import (
    EnvReader,
    MuxerConfig,
    ProcessingConfig,
    TransformConfig,
    VidmetaConfig,
)
from vidmeta.prompt import LineReader, OverwritePrompter, PromptState

NFO_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<movie>
    <title>{title}</title>
    <plot>A plot</plot>
</movie>
"""


@pytest.fixture(autouse=True)
def isolated_config(tmp_path_factory: pytest.TempPathFactory, monkeypatch) -> Path:
    """Point the config file at an empty location and clear VIDMETA_* vars."""
    for var in list(os.environ):
        if var.startswith("VIDMETA_"):
            monkeypatch.delenv(var, raising=False)
    path = tmp_path_factory.mktemp("vidmeta-home") / "config.toml"
    monkeypatch.setenv("VIDMETA_CONFIG_PATH", str(path))
    return path


@pytest.fixture
def empty_env() -> EnvReader:
    """EnvReader that sees no environment variables."""
    return EnvReader(env={})


@pytest.fixture
def write_json() -> Callable[[Path, dict[str, Any]], Path]:
    """Write a JSON sidecar the way downloaders do."""

    def _write(path: Path, data: dict[str, Any]) -> Path:
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def write_nfo() -> Callable[..., Path]:
    """Write a minimal NFO sidecar."""

    def _write(path: Path, title: str = "T", text: str | None = None) -> Path:
        path.write_text(
            text if text is not None else NFO_TEMPLATE.format(title=title),
            encoding="utf-8",
        )
        return path

    return _write


@pytest.fixture
def make_video() -> Callable[..., Path]:
    """Create a fake video file with some content."""

    def _make(path: Path, content: bytes = b"\x00\x00\x00\x18ftypmp42 fake") -> Path:
        path.write_bytes(content)
        return path

    return _make


@pytest.fixture
def answers() -> Callable[..., OverwritePrompter]:
    """Build a prompter that reads scripted answers instead of stdin."""

    def _prompter(
        *lines: str,
        state: PromptState | None = None,
        stop_event: threading.Event | None = None,
    ) -> OverwritePrompter:
        stream = io.StringIO("".join(f"{line}\n" for line in lines))
        return OverwritePrompter(
            state=state or PromptState(),
            reader=LineReader(stream),
            stop_event=stop_event,
        )

    return _prompter


@pytest.fixture
def make_config() -> Callable[..., VidmetaConfig]:
    """Build a VidmetaConfig with a single worker and no muxing."""

    def _make(
        processing: ProcessingConfig | None = None, **transform: Any
    ) -> VidmetaConfig:
        return VidmetaConfig(
            processing=processing or ProcessingConfig(workers=1),
            transform=TransformConfig(**transform),
            muxer=MuxerConfig(enabled=False),
        )

    return _make
