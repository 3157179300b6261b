"""Metrica CLI - call the API, list plugins and serve it over HTTP."""

__version__ = "0.1.0"
__cli_name__ = "metrica"
