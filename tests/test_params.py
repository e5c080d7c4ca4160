"""Tests for request parameter normalization."""

import json

import pytest
from fastapi_datatables.config import DataTablesConfig
from fastapi_datatables.exceptions import MalformedParameterError
from fastapi_datatables.models import SortDirection
from fastapi_datatables.params import coerce_draw, normalize_request, unflatten_query_params

COLUMNS = [
    {"data": "name", "name": "", "searchable": "true", "orderable": "true",
     "search": {"value": "", "regex": "false"}},
    {"data": "email", "name": "", "searchable": "true", "orderable": "true",
     "search": {"value": "example", "regex": "false"}},
    {"data": "created_at", "name": "", "searchable": "false", "orderable": "true",
     "search": {"value": "", "regex": "false"}},
]
ORDER = [{"column": "1", "dir": "desc"}, {"column": "0", "dir": "asc"}]


def as_index_map(items):
    return {str(i): item for i, item in enumerate(items)}


class TestDefaults:
    """Tests for absent parameters."""

    def test_empty_request(self):
        params = normalize_request({})
        assert params.draw == 0
        assert params.start == 0
        assert params.length == 10
        assert params.order == []
        assert params.columns == []
        assert params.search_value is None
        assert params.paginated is True

    def test_default_length_from_config(self):
        params = normalize_request({}, DataTablesConfig(default_length=25))
        assert params.length == 25


class TestWireShapes:
    """The same request in every supported encoding."""

    def check(self, params):
        assert params.displayed_columns == ["name", "email", "created_at"]
        assert [(o.column, o.dir) for o in params.order] == [
            (1, SortDirection.DESC),
            (0, SortDirection.ASC),
        ]
        assert params.search_value == "alice smith"
        assert params.columns[2].searchable is False
        assert params.per_column_search == {1: "example"}

    def test_index_keyed_maps(self):
        raw = {
            "draw": "3",
            "columns": as_index_map(COLUMNS),
            "order": as_index_map(ORDER),
            "search": {"value": "alice smith", "regex": "false"},
        }
        self.check(normalize_request(raw))

    def test_json_encoded_strings(self):
        raw = {
            "draw": "3",
            "columns": json.dumps(COLUMNS),
            "order": json.dumps(ORDER),
            "search": json.dumps({"value": "alice smith", "regex": False}),
        }
        self.check(normalize_request(raw))

    def test_mixed_shapes(self):
        """Each field is decoded independently."""
        raw = {
            "columns": as_index_map(COLUMNS),
            "order": json.dumps(ORDER),
            "search": {"value": "alice smith"},
        }
        self.check(normalize_request(raw))

    def test_plain_lists(self):
        raw = {"columns": COLUMNS, "order": ORDER, "search": {"value": "alice smith"}}
        self.check(normalize_request(raw))

    def test_index_keys_sorted_numerically(self):
        order = {str(i): {"column": str(i), "dir": "asc"} for i in range(12)}
        params = normalize_request({"order": order})
        assert [o.column for o in params.order] == list(range(12))

    def test_literal_value_search_is_kept(self):
        params = normalize_request({"search": {"value": "value"}})
        assert params.search_value == "value"

    def test_blank_json_string_means_absent(self):
        params = normalize_request({"order": "", "search": ""})
        assert params.order == []
        assert params.search_value is None


class TestMalformed:
    """Tests for parameters that cannot be decoded."""

    def test_invalid_json_order(self):
        with pytest.raises(MalformedParameterError) as exc_info:
            normalize_request({"order": "[{"})
        assert exc_info.value.status_code == 400
        assert "order" in exc_info.value.detail

    def test_invalid_json_search(self):
        with pytest.raises(MalformedParameterError):
            normalize_request({"search": "not json"})

    def test_non_numeric_index_keys(self):
        with pytest.raises(MalformedParameterError):
            normalize_request({"columns": {"a": {"data": "name"}}})

    def test_search_must_be_object(self):
        with pytest.raises(MalformedParameterError):
            normalize_request({"search": "[1, 2]"})

    def test_order_column_must_be_integer(self):
        with pytest.raises(MalformedParameterError):
            normalize_request({"order": [{"column": "name", "dir": "asc"}]})

    def test_length_must_be_integer(self):
        with pytest.raises(MalformedParameterError):
            normalize_request({"length": "ten"})

    @pytest.mark.parametrize("length", ["0", "-2"])
    def test_length_out_of_range(self, length):
        with pytest.raises(MalformedParameterError):
            normalize_request({"length": length})


class TestScalars:
    """Tests for draw, start, length and direction coercion."""

    @pytest.mark.parametrize(
        "raw, expected",
        [("5", 5), (5, 5), (None, 0), ("abc", 0), ("", 0), (" 7 ", 7)],
    )
    def test_coerce_draw(self, raw, expected):
        assert coerce_draw(raw) == expected

    def test_draw_echoed_as_int(self):
        assert normalize_request({"draw": "42"}).draw == 42

    def test_negative_start_clamped(self):
        assert normalize_request({"start": "-5"}).start == 0

    def test_all_rows_sentinel(self):
        params = normalize_request({"length": "-1"})
        assert params.length == -1
        assert params.paginated is False

    def test_all_rows_disallowed_by_config(self):
        config = DataTablesConfig(allow_all_rows=False, default_length=20)
        assert normalize_request({"length": "-1"}, config).length == 20

    def test_length_clamped_to_max(self):
        config = DataTablesConfig(max_length=50)
        assert normalize_request({"length": "500"}, config).length == 50

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("asc", SortDirection.ASC),
            ("desc", SortDirection.DESC),
            ("DESC", SortDirection.DESC),
            ("Asc", SortDirection.ASC),
            ("sideways", SortDirection.ASC),
            (None, SortDirection.ASC),
        ],
    )
    def test_direction(self, raw, expected):
        params = normalize_request({"order": [{"column": "0", "dir": raw}]})
        assert params.order[0].dir == expected


class TestUnflattenQueryParams:
    """Tests for bracket-encoded query string keys."""

    def test_nested_keys(self):
        items = [
            ("draw", "1"),
            ("columns[0][data]", "name"),
            ("columns[0][search][value]", "al"),
            ("columns[1][data]", "email"),
            ("order[0][column]", "1"),
            ("order[0][dir]", "desc"),
            ("search[value]", "smith"),
        ]
        assert unflatten_query_params(items) == {
            "draw": "1",
            "columns": {"0": {"data": "name", "search": {"value": "al"}}, "1": {"data": "email"}},
            "order": {"0": {"column": "1", "dir": "desc"}},
            "search": {"value": "smith"},
        }

    def test_plain_value_replaced_by_nested(self):
        assert unflatten_query_params([("search", "x"), ("search[value]", "y")]) == {
            "search": {"value": "y"}
        }

    def test_round_trip_through_normalizer(self):
        items = [
            ("columns[0][data]", "name"),
            ("order[0][column]", "0"),
            ("order[0][dir]", "desc"),
            ("search[value]", "smith"),
            ("start", "20"),
            ("length", "10"),
        ]
        params = normalize_request(unflatten_query_params(items))
        assert params.displayed_columns == ["name"]
        assert params.order[0].dir == SortDirection.DESC
        assert params.search_value == "smith"
        assert (params.start, params.length) == (20, 10)
