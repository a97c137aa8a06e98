"""Tests for per-call cache bypass resolution."""

import pytest

from tablecache.cache.bypass import CacheMode, QueryOptions, should_read_cache


class TestShouldReadCache:
    """Tests for the default/override truth table."""

    @pytest.mark.parametrize(
        ("default", "mode", "expected"),
        [
            (True, CacheMode.DEFAULT, True),
            (True, CacheMode.FORCE_BYPASS, False),
            (False, CacheMode.FORCE_USE, True),
            (False, CacheMode.DEFAULT, False),
        ],
    )
    def test_truth_table(self, default: bool, mode: CacheMode, expected: bool) -> None:
        """Override wins when present, otherwise the default applies."""
        options = QueryOptions(where={"id": 1}, cache_mode=mode)
        assert should_read_cache(options, default) is expected

    def test_force_use_with_default_enabled(self) -> None:
        options = QueryOptions(where={"id": 1}, cache_mode=CacheMode.FORCE_USE)
        assert should_read_cache(options, True) is True

    def test_force_bypass_with_default_disabled(self) -> None:
        options = QueryOptions(where={"id": 1}, cache_mode=CacheMode.FORCE_BYPASS)
        assert should_read_cache(options, False) is False

    def test_missing_options(self) -> None:
        """No options means no cache."""
        assert should_read_cache(None, True) is False

    def test_options_without_where(self) -> None:
        """Options without a where clause are never cached, even when forced."""
        assert should_read_cache(QueryOptions(), True) is False
        assert should_read_cache(QueryOptions(cache_mode=CacheMode.FORCE_USE), True) is False

    def test_empty_where_is_a_clause(self) -> None:
        assert should_read_cache(QueryOptions(where={}), True) is True

    def test_plain_mapping_uses_default(self) -> None:
        assert should_read_cache({"where": {"id": 1}}, True) is True
        assert should_read_cache({"where": {"id": 1}}, False) is False
        assert should_read_cache({"limit": 1}, True) is False

    @pytest.mark.parametrize("options", [42, "users", ["where"]])
    def test_malformed_options(self, options: object) -> None:
        assert should_read_cache(options, True) is False


class TestQueryOptions:
    """Tests for QueryOptions."""

    def test_key_params_excludes_cache_mode(self) -> None:
        options = QueryOptions(
            where={"id": 1},
            order=("-created_at",),
            limit=10,
            cache_mode=CacheMode.FORCE_BYPASS,
        )

        assert options.key_params() == {
            "where": {"id": 1},
            "order": ["-created_at"],
            "limit": 10,
        }

    def test_from_mapping(self) -> None:
        options = QueryOptions.from_mapping(
            {"where": {"id": 1}, "attributes": ["id", "name"], "offset": 5}
        )

        assert options.where == {"id": 1}
        assert options.attributes == ("id", "name")
        assert options.offset == 5
        assert options.cache_mode is CacheMode.DEFAULT
