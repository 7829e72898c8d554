"""Tests for slug generation and path-to-category mapping."""

from __future__ import annotations

from docsync.services.slug_service import (
    MAX_SLUG_LENGTH,
    build_subpath,
    path_to_slug,
    segment_to_name,
    slugify,
)


class TestSlugify:
    def test_basic_title(self) -> None:
        assert slugify("Hello World") == "hello-world"

    def test_special_characters_replaced(self) -> None:
        assert slugify("C# & .NET: Getting Started!") == "c-net-getting-started"

    def test_unicode_folded_to_ascii(self) -> None:
        assert slugify("Café Résumé") == "cafe-resume"

    def test_empty_uses_fallback(self) -> None:
        assert slugify("   ") == "untitled"
        assert slugify("!!!", fallback="category") == "category"

    def test_long_title_truncated_at_word_boundary(self) -> None:
        slug = slugify("word " * 40)
        assert len(slug) <= MAX_SLUG_LENGTH
        assert not slug.endswith("-")
        assert slug.endswith("word")


class TestPathToSlug:
    def test_nested_path(self) -> None:
        assert path_to_slug("guides/Getting Started.md") == "guides/getting-started"

    def test_custom_extension(self) -> None:
        assert path_to_slug("api/Index.markdown", ".markdown") == "api/index"

    def test_strips_leading_and_trailing_separators(self) -> None:
        assert path_to_slug("/_drafts/notes_.md") == "drafts/notes"


class TestBuildSubpath:
    def test_root_file_has_no_categories(self) -> None:
        assert build_subpath("intro.md") == []

    def test_nested_directories(self) -> None:
        assert build_subpath("guides/advanced/config.md") == ["Guides", "Advanced"]

    def test_separators_become_spaces(self) -> None:
        assert build_subpath("getting-started/api_reference/x.md") == [
            "Getting Started",
            "Api Reference",
        ]

    def test_segment_to_name(self) -> None:
        assert segment_to_name("release_notes-2024") == "Release Notes 2024"
