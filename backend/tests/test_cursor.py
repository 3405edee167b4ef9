"""Tests for cursor normalization."""

from pbagent.productboard import encode_query, normalize_cursor, split_skip, with_skip


class TestEncodeQuery:
    def test_skips_empty_values(self):
        assert encode_query({"a": None, "b": "", "c": [], "d": 1}) == "d=1"

    def test_lists_become_repeated_keys_in_order(self):
        query = encode_query({"customFieldId": ["z", "a", "m"], "limit": 5})
        assert query == "customFieldId=z&customFieldId=a&customFieldId=m&limit=5"

    def test_booleans_are_lowercase(self):
        assert encode_query({"archived": False}) == "archived=false"

    def test_values_are_escaped(self):
        assert encode_query({"updatedSince": "2024-01-01T00:00:00+00:00"}) == (
            "updatedSince=2024-01-01T00%3A00%3A00%2B00%3A00"
        )

    def test_none_params(self):
        assert encode_query(None) == ""


class TestNormalizeCursor:
    def test_no_cursor_builds_first_page(self):
        assert normalize_cursor(None, "/features", {"limit": 20}) == "/features?limit=20"

    def test_whitespace_cursor_is_treated_as_absent(self):
        assert normalize_cursor("   ", "/features", {"limit": 20}) == "/features?limit=20"

    def test_no_params_returns_base_path(self):
        assert normalize_cursor(None, "/products") == "/products"

    def test_absolute_url_passes_through(self):
        url = "https://api.productboard.com/features?pageCursor=abc"
        assert normalize_cursor(url, "/features") == url

    def test_absolute_url_is_case_insensitive(self):
        url = "HTTPS://api.productboard.com/features?pageCursor=abc"
        assert normalize_cursor(url, "/features", {"limit": 5}) == url

    def test_normalization_is_idempotent(self):
        once = normalize_cursor("tok/1+2", "/features")
        assert normalize_cursor(once, "/features") == once

    def test_root_relative_path_passes_through(self):
        assert normalize_cursor("/features?pageCursor=xyz", "/releases") == "/features?pageCursor=xyz"

    def test_opaque_token_is_encoded(self):
        assert normalize_cursor("a b/c=", "/notes") == "/notes?pageCursor=a%20b%2Fc%3D"

    def test_params_are_ignored_with_a_cursor(self):
        assert normalize_cursor("abc", "/notes", {"limit": 5}) == "/notes?pageCursor=abc"


class TestSkipSuffix:
    def test_round_trip(self):
        cursor = with_skip("/releases?limit=10", 7)
        assert cursor == "/releases?limit=10#skip=7"
        assert split_skip(cursor) == ("/releases?limit=10", 7)

    def test_plain_cursor_has_no_skip(self):
        assert split_skip("https://pb.test/notes?pageCursor=a") == ("https://pb.test/notes?pageCursor=a", 0)
        assert split_skip(None) == (None, 0)

    def test_only_trailing_suffix_counts(self):
        assert split_skip("abc#skip=x") == ("abc#skip=x", 0)
