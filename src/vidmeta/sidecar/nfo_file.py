"""NFO (XML) sidecar adapter.

NFO files are edited as text, by literal ``<field>...</field>`` substring,
so formatting and unknown elements survive untouched. Each edit applies to
the output of the previous one. For reading, the repaired document is
parsed with lxml into a flat field map.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator, Mapping
from typing import Any
from xml.sax.saxutils import escape, unescape

from lxml import etree

from vidmeta.exceptions import FormatError
from vidmeta.records import MetaKind
from vidmeta.sidecar.base import FieldStore, SidecarFile

logger = logging.getLogger(__name__)

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'

_MOVIE_OPEN = re.compile(r"<movie(?:\s[^>]*)?>")
_OPEN_TAG = re.compile(r"<([A-Za-z_][\w.\-]*)(?:\s[^>]*)?>")
_WHITESPACE = re.compile(r"\s+")

# Structural elements that never act as editable fields.
_STRUCTURAL_TAGS = frozenset({"movie", "cast", "actor", "name"})

ACTOR_FIELD = "actor"


def ensure_xml_structure(text: str) -> str:
    """Repair a document so it has an XML declaration and a ``<movie>`` root."""
    if not text.lstrip().startswith("<?xml"):
        text = f"{XML_DECLARATION}\n{text}"
    if _MOVIE_OPEN.search(text) is None:
        text = f"{text.rstrip()}\n<movie>\n</movie>\n"
    return text


def _field_pattern(field: str) -> re.Pattern[str]:
    name = re.escape(field)
    return re.compile(rf"<{name}(?:\s[^>]*)?>(.*?)</{name}>", re.DOTALL)


def parse_nfo_fields(text: str) -> dict[str, Any]:
    """Parse an NFO document into a flat field map.

    Top-level ``<movie>`` children map tag to text. ``cast/actor/name``
    values become a list under ``actor``. Children of nested elements such
    as ``showinfo`` or ``webpage`` are keyed by their own tag.

    Raises:
        FormatError: If the XML is malformed or has no ``<movie>`` element.
    """
    try:
        root = etree.fromstring(text.encode("utf-8"))
    except etree.XMLSyntaxError as e:
        raise FormatError(f"malformed NFO document: {e}") from e

    movie = root if root.tag == "movie" else root.find(".//movie")
    if movie is None:
        raise FormatError("NFO document has no <movie> element")

    data: dict[str, Any] = {}
    for child in movie:
        if not isinstance(child.tag, str):
            continue
        if child.tag == "cast":
            names = [
                n.text.strip() for n in child.iter("name") if n.text and n.text.strip()
            ]
            data.setdefault(ACTOR_FIELD, []).extend(names)
        elif len(child):
            for sub in child:
                if isinstance(sub.tag, str):
                    data.setdefault(sub.tag, (sub.text or "").strip())
        else:
            data.setdefault(child.tag, (child.text or "").strip())
    return data


class NfoFieldStore(FieldStore):
    """Field store that edits NFO text in place.

    ``actor`` reads as the list of cast names; setting it adds a new actor
    to ``<cast>`` unless one with the same (whitespace-insensitive) name
    exists.
    """

    def __init__(self, text: str) -> None:
        self.text = ensure_xml_structure(text)

    def __getitem__(self, field: str) -> Any:
        if field == ACTOR_FIELD:
            names = self._actor_names()
            if not names:
                raise KeyError(field)
            return names
        match = _field_pattern(field).search(self.text)
        if match is None:
            raise KeyError(field)
        return unescape(match.group(1).strip())

    def __iter__(self) -> Iterator[str]:
        seen: list[str] = []
        for name in _OPEN_TAG.findall(self.text):
            if name in _STRUCTURAL_TAGS or name in seen:
                continue
            if f"</{name}>" in self.text:
                seen.append(name)
        if self._actor_names():
            seen.append(ACTOR_FIELD)
        return iter(seen)

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def is_additive(self, field: str) -> bool:
        return field == ACTOR_FIELD

    def set(self, field: str, value: str) -> bool:
        if field == ACTOR_FIELD:
            return self._add_actor(value)

        escaped = escape(value)
        match = _field_pattern(field).search(self.text)
        if match is not None:
            if unescape(match.group(1).strip()) == value:
                return False
            self.text = (
                self.text[: match.start(1)] + escaped + self.text[match.end(1) :]
            )
            return True

        self._insert_after_movie(f"\n    <{field}>{escaped}</{field}>")
        logger.debug("Inserted new NFO field <%s>", field)
        return True

    def _insert_after_movie(self, snippet: str) -> None:
        movie = _MOVIE_OPEN.search(self.text)
        if movie is None:
            raise FormatError("NFO document has no <movie> element")
        self.text = self.text[: movie.end()] + snippet + self.text[movie.end() :]

    def _actor_names(self) -> list[str]:
        cast = _field_pattern("cast").search(self.text)
        if cast is None:
            return []
        return [
            unescape(n.strip())
            for n in re.findall(r"<name>(.*?)</name>", cast.group(1), re.DOTALL)
            if n.strip()
        ]

    def _add_actor(self, name: str) -> bool:
        flat_name = _WHITESPACE.sub("", escape(name))
        flat_text = _WHITESPACE.sub("", self.text)
        if f"<name>{flat_name}</name>" in flat_text:
            logger.debug("Actor %r already present in cast", name)
            return False

        escaped = escape(name)
        if "<cast>" not in self.text:
            self._insert_after_movie(
                "\n    <cast>"
                "\n        <actor>"
                f"\n            <name>{escaped}</name>"
                "\n        </actor>"
                "\n    </cast>"
            )
            return True

        close = self.text.find("</cast>")
        if close < 0:
            raise FormatError("NFO <cast> element is not closed")
        actor = (
            "    <actor>\n"
            f"            <name>{escaped}</name>\n"
            "        </actor>\n    "
        )
        self.text = self.text[:close] + actor + self.text[close:]
        return True


class NfoSidecar(SidecarFile):
    """Adapter for ``.nfo`` sidecars."""

    kind = MetaKind.NFO

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._text: str | None = None

    @property
    def text(self) -> str:
        """Current repaired document text."""
        if self._text is None:
            self.refresh()
        assert self._text is not None
        return self._text

    def decode(self) -> dict[str, Any]:
        """Parse the repaired document into a flat field map."""
        return parse_nfo_fields(self.text)

    def refresh(self) -> dict[str, Any]:
        """Re-read the file from disk, repair its structure, and parse it."""
        raw = self.read_bytes()
        try:
            content = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise FormatError(f"NFO {self.path} is not valid UTF-8: {e}") from e
        self._text = ensure_xml_structure(content)
        return parse_nfo_fields(self._text)

    def write(self, data: Mapping[str, Any]) -> None:
        """Set each string field of ``data`` into the document and write it."""
        store = self.field_store()
        for field, value in data.items():
            if isinstance(value, str):
                store.set(field, value)
        self.commit_store(store)

    def write_text(self, text: str) -> None:
        """Write a raw document."""
        self.write_bytes(text.encode("utf-8"))
        self._text = text

    def field_store(self) -> NfoFieldStore:
        return NfoFieldStore(self.text)

    def commit_store(self, store: FieldStore) -> None:
        if not isinstance(store, NfoFieldStore):
            raise TypeError(f"expected NfoFieldStore, got {type(store).__name__}")
        parse_nfo_fields(store.text)
        self.write_text(store.text)
