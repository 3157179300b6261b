"""
Shared test fixtures and helpers for the Metrica test suite.
"""

import pytest

from metrica.config import MetricaConfig
from metrica.datatable import DataTable
from metrica.dispatcher import ApiDispatcher
from metrica.plugins import register_builtin_plugins
from metrica.registry import PluginRegistry


# ============================================================================
# Sample data
# ============================================================================

VISITS = [
    {"label": "Firefox", "nb_visits": 120, "nb_actions": 410},
    {"label": "Chrome", "nb_visits": 310, "nb_actions": 990},
    {"label": "Safari", "nb_visits": 45, "nb_actions": 130},
    {"label": "Opera", "nb_visits": 4, "nb_actions": 9},
    {"label": "Internet Explorer", "nb_visits": 12, "nb_actions": 20},
]


class ReportsAPI:
    """Test plugin covering the binding cases the dispatcher has to handle."""

    def __init__(self):
        self.calls = []

    def getVisits(self, idSite: int, period: str = "day"):
        self.calls.append(("getVisits", idSite, period))
        return DataTable(VISITS)

    def getNumbered(self, count: int = 100):
        self.calls.append(("getNumbered", count))
        return DataTable({"label": f"row{i}", "nb_visits": i} for i in range(count))

    def getSegments(self, segments: list = None):
        self.calls.append(("getSegments", segments))
        return segments

    def getEcho(self, value):
        self.calls.append(("getEcho", value))
        return value

    def getNothing(self, marker=None):
        self.calls.append(("getNothing", marker))
        return marker

    def getTagged(self):
        table = DataTable(VISITS)
        table.queue_filter(_tag_rows, "tagged")
        return table

    def getBroken(self):
        raise RuntimeError("database password is hunter2")

    def _private(self):
        return "secret"


def _tag_rows(table, tag):
    for row in table:
        row["tag"] = tag


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def visits_table():
    return DataTable(VISITS)


@pytest.fixture
def reports_api():
    return ReportsAPI()


@pytest.fixture
def registry(reports_api):
    registry = PluginRegistry()
    registry.register("Reports", reports_api)
    register_builtin_plugins(registry)
    return registry


@pytest.fixture
def config():
    return MetricaConfig()


@pytest.fixture
def dispatcher(registry, config):
    return ApiDispatcher(registry, config=config)

