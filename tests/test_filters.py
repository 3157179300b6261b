"""
Tests for the generic DataTable filters and their request binding.
"""

import pytest

from metrica.datatable import DataTable
from metrica.filters import (
    GENERIC_FILTERS,
    ExcludeLowPopulationFilter,
    LimitFilter,
    PatternFilter,
    SortFilter,
    apply_generic_filters,
    build_generic_filters,
)
from metrica.request import ApiRequest


def _labels(table):
    return table.get_column("label")


# ═══════════════════════════════════════════════════════════════════════════
#  Individual filters
# ═══════════════════════════════════════════════════════════════════════════

class TestPatternFilter:

    def test_regex_is_case_insensitive(self, visits_table):
        PatternFilter("label", "^fire").apply(visits_table)
        assert _labels(visits_table) == ["Firefox"]

    def test_search_anywhere(self, visits_table):
        PatternFilter("label", "er").apply(visits_table)
        assert _labels(visits_table) == ["Opera", "Internet Explorer"]

    def test_invalid_regex_matches_literally(self):
        table = DataTable([{"label": "a(b"}, {"label": "ab"}])
        PatternFilter("label", "a(").apply(table)
        assert _labels(table) == ["a(b"]

    def test_rows_without_column_are_removed(self):
        table = DataTable([{"label": "x"}, {"other": "x"}])
        PatternFilter("label", "x").apply(table)
        assert len(table) == 1

    def test_numeric_cells_are_matched_as_text(self, visits_table):
        PatternFilter("nb_visits", "^1").apply(visits_table)
        assert _labels(visits_table) == ["Firefox", "Internet Explorer"]


class TestExcludeLowPopulationFilter:

    def test_strictly_below_minimum_is_removed(self, visits_table):
        ExcludeLowPopulationFilter("nb_visits", 45).apply(visits_table)
        assert _labels(visits_table) == ["Firefox", "Chrome", "Safari"]

    def test_missing_and_non_numeric_count_as_zero(self):
        table = DataTable([{"v": 5}, {"v": "n/a"}, {}, {"v": "7"}])
        ExcludeLowPopulationFilter("v", 1).apply(table)
        assert table.get_column("v") == [5, "7"]


class TestSortFilter:

    def test_default_is_visits_descending(self, visits_table):
        SortFilter().apply(visits_table)
        assert visits_table.get_column("nb_visits") == [310, 120, 45, 12, 4]

    def test_ascending(self, visits_table):
        SortFilter("nb_visits", "asc").apply(visits_table)
        assert visits_table.get_column("nb_visits") == [4, 12, 45, 120, 310]

    def test_text_is_case_insensitive(self):
        table = DataTable([{"label": "b"}, {"label": "C"}, {"label": "a"}])
        SortFilter("label", "asc").apply(table)
        assert _labels(table) == ["a", "b", "C"]

    def test_numeric_strings_sort_numerically(self):
        table = DataTable([{"v": "10"}, {"v": "9"}, {"v": "100"}])
        SortFilter("v", "asc").apply(table)
        assert table.get_column("v") == ["9", "10", "100"]

    @pytest.mark.parametrize("order", ["asc", "desc"])
    def test_missing_values_go_last(self, order):
        table = DataTable([{"label": "none"}, {"label": "one", "v": 1}, {"label": "two", "v": 2}])
        SortFilter("v", order).apply(table)
        assert _labels(table)[-1] == "none"

    def test_unknown_order_means_descending(self, visits_table):
        SortFilter("nb_visits", "sideways").apply(visits_table)
        assert visits_table.get_column("nb_visits")[0] == 310

    def test_order_is_case_insensitive(self, visits_table):
        SortFilter("nb_visits", "ASC").apply(visits_table)
        assert visits_table.get_column("nb_visits")[0] == 4


class TestLimitFilter:

    def test_sub_range(self):
        table = DataTable({"n": i} for i in range(100))
        LimitFilter(10, 5).apply(table)
        assert table.get_column("n") == [10, 11, 12, 13, 14]

    def test_negative_limit_keeps_the_rest(self):
        table = DataTable({"n": i} for i in range(5))
        LimitFilter(2, -1).apply(table)
        assert table.get_column("n") == [2, 3, 4]

    def test_zero_limit_empties(self):
        table = DataTable({"n": i} for i in range(5))
        LimitFilter(0, 0).apply(table)
        assert len(table) == 0


# ═══════════════════════════════════════════════════════════════════════════
#  Request binding
# ═══════════════════════════════════════════════════════════════════════════

class TestBuildGenericFilters:

    def test_fixed_order(self):
        assert [cls for cls, _ in GENERIC_FILTERS] == [
            PatternFilter, ExcludeLowPopulationFilter, SortFilter, LimitFilter,
        ]

    def test_sort_always_applies(self):
        filters = build_generic_filters(ApiRequest.from_string(""))
        assert filters == [SortFilter("nb_visits", "desc")]

    def test_default_sort_column_is_configurable(self):
        filters = build_generic_filters(ApiRequest.from_string(""), default_sort_column="label")
        assert filters == [SortFilter("label", "desc")]

    def test_all_filters_from_request(self):
        request = ApiRequest.from_string(
            "filter_column=label&filter_pattern=o"
            "&filter_excludelowpop=nb_visits&filter_excludelowpop_value=10"
            "&filter_sort_column=label&filter_sort_order=asc"
            "&filter_offset=1&filter_limit=2"
        )
        assert build_generic_filters(request) == [
            PatternFilter("label", "o"),
            ExcludeLowPopulationFilter("nb_visits", 10.0),
            SortFilter("label", "asc"),
            LimitFilter(1, 2),
        ]

    def test_partial_parameters_skip_the_filter(self):
        request = ApiRequest.from_string("filter_column=label&filter_limit=3")
        assert build_generic_filters(request) == [SortFilter()]

    def test_malformed_parameters_skip_the_filter(self):
        request = ApiRequest.from_string("filter_offset=0&filter_limit=many")
        assert build_generic_filters(request) == [SortFilter()]


class TestApplyGenericFilters:

    def test_pattern_then_sort_then_limit(self, visits_table):
        request = ApiRequest.from_string("filter_column=label&filter_pattern=^f&filter_offset=0&filter_limit=10")
        apply_generic_filters(visits_table, request)
        assert _labels(visits_table) == ["Firefox"]

    def test_limit_sees_filtered_and_sorted_rows(self):
        table = DataTable({"label": f"row{i}", "nb_visits": i} for i in range(100))
        request = ApiRequest.from_string(
            "filter_excludelowpop=nb_visits&filter_excludelowpop_value=50"
            "&filter_sort_order=asc&filter_offset=10&filter_limit=5"
        )
        apply_generic_filters(table, request)
        assert table.get_column("nb_visits") == [60, 61, 62, 63, 64]

    def test_excluded_rows_never_reappear(self, visits_table):
        request = ApiRequest.from_string(
            "filter_excludelowpop=nb_visits&filter_excludelowpop_value=50&filter_offset=0&filter_limit=10"
        )
        apply_generic_filters(visits_table, request)
        assert all(value >= 50 for value in visits_table.get_column("nb_visits"))
        assert len(visits_table) == 2

    def test_returns_applied_filters(self, visits_table):
        applied = apply_generic_filters(visits_table, ApiRequest.from_string("filter_sort_column=label"))
        assert list(applied) == [SortFilter("label", "desc")]
        assert _labels(visits_table)[0] == "Safari"
