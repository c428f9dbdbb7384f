"""Tests for {meta:field} template expansion."""

from vidmeta.ops.templates import expand_templates, has_templates


class TestExpandTemplates:
    """Tests for expand_templates()."""

    def test_substitutes_fields(self) -> None:
        meta = {"uploader": "Chan", "title": "Clip"}
        assert expand_templates("{meta:uploader} - {meta:title}", meta) == (
            "Chan - Clip"
        )

    def test_missing_field_left_literal(self) -> None:
        assert expand_templates("[{meta:nope}]", {}) == "[{meta:nope}]"

    def test_non_string_value_left_literal(self) -> None:
        assert expand_templates("{meta:count}", {"count": 3}) == "{meta:count}"

    def test_plain_text_unchanged(self) -> None:
        assert expand_templates("no tags {here}", {"here": "x"}) == "no tags {here}"


class TestTemplateInspection:
    def test_has_templates(self) -> None:
        assert has_templates("a {meta:b}")
        assert not has_templates("a {b}")
