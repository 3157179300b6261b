"""
Tests for ApiRequest parsing.
"""

import pytest

from metrica.request import ApiRequest


class TestFromString:

    def test_simple_pairs(self):
        request = ApiRequest.from_string("method=Example.getBrowsers&idSite=1&format=xml")
        assert request["method"] == "Example.getBrowsers"
        assert request["idSite"] == "1"
        assert request["format"] == "xml"
        assert len(request) == 3

    def test_multiline_request_with_tabs(self):
        request = ApiRequest.from_string(
            "\n\tmethod=Example.getBrowsers\n\t\t&idSite=1\n\t\t&filter_limit=5\n"
        )
        assert request.to_dict() == {
            "method": "Example.getBrowsers",
            "idSite": "1",
            "filter_limit": "5",
        }

    def test_percent_decoding(self):
        request = ApiRequest.from_string("filter_pattern=%5EFire&label=Internet+Explorer")
        assert request["filter_pattern"] == "^Fire"
        assert request["label"] == "Internet Explorer"

    def test_last_value_wins(self):
        request = ApiRequest.from_string("format=xml&format=json")
        assert request["format"] == "json"

    def test_php_array_keys(self):
        request = ApiRequest.from_string("ids[]=1&ids[]=2&ids[]=3")
        assert request["ids"] == ["1", "2", "3"]

    def test_blank_values_are_kept(self):
        request = ApiRequest.from_string("filter_pattern=&method=A.b")
        assert request["filter_pattern"] == ""

    def test_empty_string(self):
        assert len(ApiRequest.from_string("   ")) == 0


class TestMapping:

    def test_from_mapping_stringifies(self):
        request = ApiRequest.from_mapping({"idSite": 3, "ids": (1, 2), "none": None})
        assert request["idSite"] == "3"
        assert request["ids"] == ["1", "2"]
        assert request["none"] == ""

    def test_missing_key_raises_key_error(self):
        request = ApiRequest.from_string("a=1")
        with pytest.raises(KeyError):
            request["b"]
        assert request.get("b") is None

    def test_with_params_returns_copy(self):
        request = ApiRequest.from_string("format=xml&idSite=1")
        changed = request.with_params(format="json")
        assert changed["format"] == "json"
        assert changed["idSite"] == "1"
        assert request["format"] == "xml"

    def test_to_dict_copies_lists(self):
        request = ApiRequest.from_string("ids[]=1")
        data = request.to_dict()
        data["ids"].append("2")
        assert request["ids"] == ["1"]
