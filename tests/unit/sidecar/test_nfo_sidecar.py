"""Tests for the NFO sidecar adapter."""

from pathlib import Path

import pytest

from vidmeta.exceptions import FormatError
from vidmeta.records import MetaKind
from vidmeta.sidecar import NfoSidecar, open_sidecar
from vidmeta.sidecar.nfo_file import (
    NfoFieldStore,
    ensure_xml_structure,
    parse_nfo_fields,
)

CAST_NFO = """<?xml version="1.0" encoding="UTF-8"?>
<movie>
    <title>Show</title>
    <cast>
        <actor>
            <name>Jane Doe</name>
        </actor>
    </cast>
    <showinfo>
        <episode>3</episode>
    </showinfo>
</movie>
"""


class TestEnsureXmlStructure:
    def test_adds_declaration(self) -> None:
        text = ensure_xml_structure("<movie><title>T</title></movie>")
        assert text.startswith("<?xml")

    def test_adds_movie_root(self) -> None:
        text = ensure_xml_structure("")
        assert "<movie>" in text
        assert parse_nfo_fields(text) == {}


class TestParseNfoFields:
    """Tests for parse_nfo_fields()."""

    def test_flat_fields_cast_and_nested(self) -> None:
        assert parse_nfo_fields(CAST_NFO) == {
            "title": "Show",
            "actor": ["Jane Doe"],
            "episode": "3",
        }

    def test_malformed(self) -> None:
        with pytest.raises(FormatError, match="malformed"):
            parse_nfo_fields("<movie><title>T</movie>")


class TestNfoFieldStore:
    """Tests for text-level NFO editing."""

    def test_replace_existing_field(self) -> None:
        store = NfoFieldStore(CAST_NFO)
        assert store.set("title", "New Show")
        assert "<title>New Show</title>" in store.text
        assert store["title"] == "New Show"

    def test_set_same_value_is_noop(self) -> None:
        store = NfoFieldStore(CAST_NFO)
        assert not store.set("title", "Show")

    def test_insert_missing_field(self) -> None:
        store = NfoFieldStore(CAST_NFO)
        assert store.set("studio", "ACME")
        assert parse_nfo_fields(store.text)["studio"] == "ACME"

    def test_values_are_escaped(self) -> None:
        store = NfoFieldStore(CAST_NFO)
        store.set("title", "Tom & Jerry <live>")
        assert "<title>Tom &amp; Jerry &lt;live&gt;</title>" in store.text
        assert store["title"] == "Tom & Jerry <live>"
        assert parse_nfo_fields(store.text)["title"] == "Tom & Jerry <live>"

    def test_edits_chain(self) -> None:
        store = NfoFieldStore(CAST_NFO)
        store.set("title", "A")
        store.set("title", store["title"] + "B")
        assert store["title"] == "AB"

    def test_iteration_lists_fields(self) -> None:
        store = NfoFieldStore(CAST_NFO)
        assert list(store) == ["title", "showinfo", "episode", "actor"]

    def test_missing_field_raises_key_error(self) -> None:
        store = NfoFieldStore(CAST_NFO)
        with pytest.raises(KeyError):
            store["plot"]


class TestActorInsertion:
    """Tests for additive actor edits."""

    def test_adds_new_actor_to_existing_cast(self) -> None:
        store = NfoFieldStore(CAST_NFO)
        assert store.set("actor", "John Roe")
        assert store["actor"] == ["Jane Doe", "John Roe"]
        assert store.text.count("<cast>") == 1
        assert parse_nfo_fields(store.text)["actor"] == ["Jane Doe", "John Roe"]

    def test_existing_actor_not_duplicated(self) -> None:
        store = NfoFieldStore(CAST_NFO)
        assert not store.set("actor", "Jane Doe")
        assert not store.set("actor", "Jane  Doe")
        assert store.text.count("<name>") == 1

    def test_creates_cast_block(self, write_nfo, tmp_path: Path) -> None:
        store = NfoFieldStore(write_nfo(tmp_path / "a.nfo").read_text())
        assert "actor" not in store
        assert store.set("actor", "Jane Doe")
        assert parse_nfo_fields(store.text)["actor"] == ["Jane Doe"]

    def test_actor_is_additive(self) -> None:
        store = NfoFieldStore(CAST_NFO)
        assert store.is_additive("actor")
        assert not store.is_additive("title")


class TestNfoSidecar:
    """Tests for NfoSidecar file IO."""

    def test_decode_and_write(self, tmp_path: Path, write_nfo) -> None:
        path = write_nfo(tmp_path / "clip.nfo", title="Old")
        with open_sidecar(path, MetaKind.NFO) as sidecar:
            assert isinstance(sidecar, NfoSidecar)
            assert sidecar.decode()["title"] == "Old"
            sidecar.write({"title": "New", "views": 3})

        text = path.read_text()
        assert "<title>New</title>" in text
        assert "<plot>A plot</plot>" in text
        assert "views" not in text

    def test_repairs_missing_declaration_on_write(self, tmp_path: Path) -> None:
        path = tmp_path / "clip.nfo"
        path.write_text("<movie><title>T</title></movie>")
        with open_sidecar(path, MetaKind.NFO) as sidecar:
            sidecar.write({"title": "U"})
        assert path.read_text().startswith("<?xml")

    def test_invalid_utf8(self, tmp_path: Path) -> None:
        path = tmp_path / "clip.nfo"
        path.write_bytes(b"\xff\xfe<movie/>")
        with open_sidecar(path, MetaKind.NFO) as sidecar:
            with pytest.raises(FormatError, match="UTF-8"):
                sidecar.decode()
