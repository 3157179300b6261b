"""
Example plugin - a small, self-contained report API over sample data.

    method=Example.getBrowsers&idSite=1&period=week&format=json
"""

from __future__ import annotations

from typing import Any, Dict, List

from ..datatable import DataTable
from ..faults import RequestFault

__all__ = ["ExampleAPI"]

PERIOD_DAYS = {"day": 1, "week": 7, "month": 30, "year": 365}

# Per-day figures for each sample site.
_BROWSERS: Dict[int, List[Dict[str, Any]]] = {
    1: [
        {"label": "Firefox", "nb_visits": 120, "nb_actions": 410, "sum_visit_length": 36000},
        {"label": "Chrome", "nb_visits": 310, "nb_actions": 990, "sum_visit_length": 81000},
        {"label": "Safari", "nb_visits": 45, "nb_actions": 130, "sum_visit_length": 9100},
        {"label": "Opera", "nb_visits": 4, "nb_actions": 9, "sum_visit_length": 600},
        {"label": "Internet Explorer", "nb_visits": 12, "nb_actions": 20, "sum_visit_length": 1500},
    ],
    2: [
        {"label": "Firefox", "nb_visits": 8, "nb_actions": 30, "sum_visit_length": 2400},
        {"label": "Chrome", "nb_visits": 17, "nb_actions": 51, "sum_visit_length": 4000},
    ],
}

_RESOLUTIONS: Dict[int, List[Dict[str, Any]]] = {
    1: [
        {"label": "1920x1080", "nb_visits": 260},
        {"label": "1366x768", "nb_visits": 140},
        {"label": "2560x1440", "nb_visits": 70},
        {"label": "1024x768", "nb_visits": 6},
        {"label": "unknown", "nb_visits": 15},
    ],
}


def _scaled(rows: List[Dict[str, Any]], period: str) -> List[Dict[str, Any]]:
    try:
        days = PERIOD_DAYS[period]
    except KeyError:
        raise RequestFault(
            "INVALID_PERIOD",
            f"The period '{period}' is not supported. Try any of the following instead: "
            f"{', '.join(PERIOD_DAYS)}.",
            metadata={"period": period},
        ) from None
    return [
        {key: value * days if isinstance(value, int) else value for key, value in row.items()}
        for row in rows
    ]


def _add_visit_share(table: DataTable) -> None:
    total = sum(row.get("nb_visits", 0) for row in table)
    for row in table:
        row["visit_share"] = round(100.0 * row.get("nb_visits", 0) / total, 1) if total else 0.0


class ExampleAPI:
    """Browsers and screen resolutions of the sample sites."""

    def getBrowsers(self, idSite: int, period: str = "day") -> DataTable:
        """Visits, actions and visit length per browser."""
        return DataTable(_scaled(_BROWSERS.get(idSite, []), period))

    def getResolutions(self, idSite: int, period: str = "day") -> DataTable:
        """Visits per screen resolution, with each row's share of the visits shown."""
        table = DataTable(_scaled(_RESOLUTIONS.get(idSite, []), period))
        table.queue_filter(_add_visit_share)
        return table

    def getSites(self) -> List[Dict[str, Any]]:
        """Sample sites (a plain list, returned as is)."""
        return [{"idsite": idsite, "name": f"Site {idsite}"} for idsite in sorted(_BROWSERS)]

    def getAnswerToLife(self) -> int:
        return 42
