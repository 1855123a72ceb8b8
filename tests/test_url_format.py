"""Tests for slug generation and URL format rendering."""

from category_tree.utils.slug_utils import generate_slug, make_unique
from category_tree.utils.url_format import format_tokens, render_url_format


class TestGenerateSlug:
    """Tests for generate_slug()."""

    def test_basic(self):
        assert generate_slug("Layer Cakes") == "layer-cakes"

    def test_accents_transliterated(self):
        assert generate_slug("Crème Brûlée") == "creme-brulee"

    def test_punctuation_dropped(self):
        assert generate_slug("  Fish & Chips!  ") == "fish-chips"

    def test_empty(self):
        assert generate_slug("") == ""
        assert generate_slug("!!!") == ""


class TestMakeUnique:
    """Tests for make_unique()."""

    def test_free_value_is_kept(self):
        assert make_unique("fruit", lambda candidate: False) == "fruit"

    def test_suffixes_until_free(self):
        taken = {"fruit", "fruit-2"}
        assert make_unique("fruit", lambda candidate: candidate in taken) == "fruit-3"


class TestRenderUrlFormat:
    """Tests for render_url_format()."""

    def test_slug_token(self):
        assert render_url_format("categories/{slug}", {"slug": "c1"}) == "categories/c1"

    def test_parent_uri_token(self):
        values = {"parent.uri": "topics/fruit", "slug": "apples"}
        assert render_url_format("{parent.uri}/{slug}", values) == "topics/fruit/apples"

    def test_missing_token_collapses_slashes(self):
        assert render_url_format("{parent.uri}/{slug}", {"slug": "apples"}) == "apples"

    def test_id_and_level_tokens(self):
        assert render_url_format("c/{level}/{id}", {"id": 7, "level": 2}) == "c/2/7"

    def test_empty_format(self):
        assert render_url_format(None, {"slug": "x"}) is None
        assert render_url_format("", {"slug": "x"}) is None

    def test_all_tokens_empty(self):
        assert render_url_format("{slug}", {}) is None

    def test_format_tokens(self):
        assert format_tokens("{parent.uri}/{ slug }") == {"parent.uri", "slug"}
        assert format_tokens(None) == set()
