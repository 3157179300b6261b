"""
Metrica Faults - core types.

A fault is an exception that knows how to be reported: a stable code for
machines, a message for people, the area of the system it came from and
how loud it should be in the logs. ``public`` decides whether the message
may be shown to API callers.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Optional


class Severity(str, Enum):
    """How serious a fault is; maps onto a ``logging`` level."""

    INFO = "info"
    WARN = "warn"       # caller mistake
    ERROR = "error"
    FATAL = "fatal"     # the process cannot continue as configured

    @property
    def log_level(self) -> int:
        return {
            Severity.INFO: logging.INFO,
            Severity.WARN: logging.WARNING,
            Severity.ERROR: logging.ERROR,
            Severity.FATAL: logging.CRITICAL,
        }[self]


class FaultDomain(str, Enum):
    """Functional area a fault belongs to."""

    CONFIG = "config"
    REQUEST = "request"
    REGISTRY = "registry"
    RENDER = "render"
    SYSTEM = "system"

    @property
    def default_severity(self) -> Severity:
        if self in (FaultDomain.CONFIG, FaultDomain.SYSTEM):
            return Severity.FATAL
        if self is FaultDomain.RENDER:
            return Severity.ERROR
        return Severity.WARN

    def __str__(self) -> str:
        return self.value


class Fault(Exception):
    """
    Structured, typed exception.

    Example::

        raise Fault(
            "PLUGIN_NOT_ENABLED",
            "The plugin 'Referers' is not enabled.",
            domain=FaultDomain.REGISTRY,
            public=True,
        )

    Without an explicit *severity* the domain's default is used.
    """

    def __init__(
        self,
        code: str,
        message: str,
        *,
        domain: FaultDomain,
        severity: Optional[Severity] = None,
        public: bool = False,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.domain = FaultDomain(domain)
        self.severity = severity if severity is not None else self.domain.default_severity
        self.public = public
        self.metadata = dict(metadata or {})

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code!r}, domain={self.domain.value!r})"

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data view for logs and diagnostics."""
        data = dict(code=self.code, message=self.message, public=self.public)
        data["domain"] = self.domain.value
        data["severity"] = self.severity.value
        data["metadata"] = self.metadata
        return data
