"""
Tests for the output renderers and format selection.
"""

import json
import math

import pytest

from metrica.datatable import DataTable
from metrica.faults import UnsupportedFormatFault
from metrica.renderers import (
    CSVRenderer,
    HTMLRenderer,
    JSONRenderer,
    PHPRenderer,
    RendererSelector,
    XMLRenderer,
    php_serialize,
    php_unserialize,
    render,
)

ROWS = [
    {"label": "Firefox", "nb_visits": 120},
    {"label": "Chrome", "nb_visits": 310},
]


# ═══════════════════════════════════════════════════════════════════════════
#  PHP serialize
# ═══════════════════════════════════════════════════════════════════════════

class TestPHPSerialize:

    @pytest.mark.parametrize("value,expected", [
        (None, "N;"),
        (True, "b:1;"),
        (False, "b:0;"),
        (42, "i:42;"),
        (-7, "i:-7;"),
        (1.5, "d:1.5;"),
        ("abc", 's:3:"abc";'),
        ([], "a:0:{}"),
    ])
    def test_scalars(self, value, expected):
        assert php_serialize(value) == expected

    def test_string_length_is_in_bytes(self):
        assert php_serialize("é") == 's:2:"é";'

    def test_list_of_rows(self):
        assert php_serialize([{"label": "a", "nb_visits": 1}]) == (
            'a:1:{i:0;a:2:{s:5:"label";s:1:"a";s:9:"nb_visits";i:1;}}'
        )

    def test_special_floats(self):
        assert php_serialize(math.inf) == "d:INF;"
        assert php_serialize(-math.inf) == "d:-INF;"
        assert php_serialize(math.nan) == "d:NAN;"

    def test_datatable(self):
        assert php_serialize(DataTable(ROWS)) == php_serialize(ROWS)

    def test_unserialize_reverses_rows(self):
        assert php_unserialize(php_serialize(ROWS)) == ROWS

    def test_unserialize_mixed_values(self):
        value = {"result": "error", "nested": [1, 2.5, None, True], "ü": "ß"}
        assert php_unserialize(php_serialize(value)) == value

    def test_unserialize_non_sequential_keys_stay_dict(self):
        assert php_unserialize("a:2:{i:1;s:1:\"a\";i:5;s:1:\"b\";}") == {1: "a", 5: "b"}

    def test_unserialize_empty_dict_comes_back_as_list(self):
        assert php_unserialize(php_serialize([{"label": "a", "meta": {}}])) == [{"label": "a", "meta": []}]

    def test_unserialize_rejects_objects(self):
        with pytest.raises(ValueError):
            php_unserialize('O:8:"stdClass":0:{}')


# ═══════════════════════════════════════════════════════════════════════════
#  Renderers
# ═══════════════════════════════════════════════════════════════════════════

class TestXMLRenderer:

    def test_rows(self):
        assert XMLRenderer().render(DataTable(ROWS)) == (
            '<?xml version="1.0" encoding="utf-8" ?>\n'
            "<result>\n"
            "\t<row>\n"
            "\t\t<label>Firefox</label>\n"
            "\t\t<nb_visits>120</nb_visits>\n"
            "\t</row>\n"
            "\t<row>\n"
            "\t\t<label>Chrome</label>\n"
            "\t\t<nb_visits>310</nb_visits>\n"
            "\t</row>\n"
            "</result>"
        )

    def test_empty_table(self):
        assert XMLRenderer().render(DataTable()).endswith("<result />")

    def test_escaping_and_tag_sanitizing(self):
        output = XMLRenderer().render([{"a b": "<&>", "1st": None}])
        assert "<a_b>&lt;&amp;&gt;</a_b>" in output
        assert "<_1st></_1st>" in output

    def test_scalar(self):
        assert XMLRenderer().render(42).endswith("<result>42</result>")

    def test_error(self):
        output = XMLRenderer().render_error('Bad "method"')
        assert '<error message=\'Bad "method"\' />' in output


class TestJSONRenderer:

    def test_rows(self):
        assert json.loads(JSONRenderer().render(DataTable(ROWS))) == ROWS

    def test_error(self):
        assert json.loads(JSONRenderer().render_error("oops")) == {"result": "error", "message": "oops"}

    def test_unicode_is_kept(self):
        assert "Zürich" in JSONRenderer().render([{"city": "Zürich"}])


class TestHTMLRenderer:

    def test_table(self):
        output = HTMLRenderer().render(DataTable(ROWS))
        assert "<th>label</th>" in output
        assert "<td>Firefox</td>" in output
        assert "<td>310</td>" in output

    def test_autoescape(self):
        output = HTMLRenderer().render([{"label": "<script>"}])
        assert "<script>" not in output
        assert "&lt;script&gt;" in output

    def test_empty(self):
        assert "No data available" in HTMLRenderer().render(DataTable())

    def test_scalar(self):
        assert "<pre>42</pre>" in HTMLRenderer().render(42)

    def test_error(self):
        assert '<p class="error">oops</p>' in HTMLRenderer().render_error("oops")


class TestCSVRenderer:

    def test_rows(self):
        assert CSVRenderer().render(DataTable(ROWS)) == "label,nb_visits\nFirefox,120\nChrome,310\n"

    def test_union_of_columns(self):
        output = CSVRenderer().render([{"a": 1}, {"b": 2}])
        assert output == "a,b\n1,\n,2\n"

    def test_quoting(self):
        assert CSVRenderer().render([{"label": "a,b"}]) == 'label\n"a,b"\n'

    def test_empty(self):
        assert CSVRenderer().render(DataTable()) == ""

    def test_scalar(self):
        assert CSVRenderer().render(42) == "value\n42\n"

    def test_error(self):
        assert CSVRenderer().render_error("oops") == "result,message\nerror,oops\n"


# ═══════════════════════════════════════════════════════════════════════════
#  Selection
# ═══════════════════════════════════════════════════════════════════════════

class TestRendererSelector:

    def test_builtin_formats(self):
        assert RendererSelector().formats == ["php", "xml", "json", "html", "csv"]

    def test_case_insensitive(self):
        assert isinstance(RendererSelector().get("XML"), XMLRenderer)

    def test_unknown_format(self):
        with pytest.raises(UnsupportedFormatFault) as exc_info:
            RendererSelector().get("yaml")
        assert exc_info.value.format == "yaml"
        assert "php, xml, json, html, csv" in exc_info.value.message

    def test_custom_renderer(self):
        class TSVRenderer(CSVRenderer):
            format_suffix = "tsv"
            media_type = "text/tab-separated-values"

            def __init__(self):
                super().__init__(delimiter="\t")

        selector = RendererSelector()
        selector.register(TSVRenderer())
        assert selector.render(ROWS, "tsv") == "label\tnb_visits\nFirefox\t120\nChrome\t310\n"

    def test_restricted_set(self):
        selector = RendererSelector([JSONRenderer()])
        assert selector.formats == ["json"]
        assert not selector.supports("php")

    def test_content_types(self):
        assert PHPRenderer().content_type == "text/plain; charset=utf-8"
        assert JSONRenderer().content_type == "application/json; charset=utf-8"

    def test_module_render_defaults_to_php(self):
        assert render(ROWS) == php_serialize(ROWS)
