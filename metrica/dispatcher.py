"""
API dispatcher - from a request to a rendered response body.

    request = ApiRequest.from_string(
        "method=Example.getBrowsers&idSite=1&period=week"
        "&format=xml&filter_limit=5&filter_offset=0"
    )
    body = ApiDispatcher(registry).dispatch(request)

Dispatch steps:

1. read ``method`` and split it into ``module.methodName``
2. check the module is enabled and exposes the method
3. bind every declared parameter of the method from the request
4. call the method with the bound values, in declaration order
5. if it returned a ``DataTable``: apply the generic filters, then the
   filters the method queued, then render it in the requested ``format``;
   any other return value is handed back unchanged

Every failure is caught at this boundary and turned into an error payload,
so callers always get a response body, never an exception.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Union

from .coercion import REQUIRED, BindingResult, Default, ParamType, bind_request_var, get_request_var
from .config import BINDING_STRICT, MetricaConfig
from .datatable import DataTable
from .descriptors import MethodDescriptorRegistry, ParameterDescriptor
from .faults import (
    Fault,
    InvalidMethodFormatFault,
    MethodNotFoundFault,
    PluginNotEnabledFault,
)
from .filters import apply_generic_filters
from .registry import OperationInvoker, PluginAvailability, PluginRegistry
from .renderers import BaseRenderer, RendererSelector, get_default_selector
from .request import ApiRequest

__all__ = [
    "MethodIdentifier",
    "BindingError",
    "ApiDispatcher",
    "GENERIC_ERROR_MESSAGE",
]

GENERIC_ERROR_MESSAGE = "An unexpected error occurred while processing the API request."


@dataclass(frozen=True)
class MethodIdentifier:
    """``module.methodName`` split into its two parts."""
    module: str
    method: str

    @classmethod
    def parse(cls, value: Any) -> "MethodIdentifier":
        if not isinstance(value, str):
            raise InvalidMethodFormatFault(None if value is None else str(value))
        parts = value.split(".")
        if len(parts) != 2 or not all(parts):
            raise InvalidMethodFormatFault(value)
        return cls(parts[0], parts[1])

    def __str__(self) -> str:
        return f"{self.module}.{self.method}"


class BindingError(Fault):
    """A parameter of the target method could not be bound (strict policy)."""

    def __init__(self, identifier: MethodIdentifier, failures: List[BindingResult]):
        first = failures[0].error
        super().__init__(
            code=first.code,
            message=first.message,
            domain=first.domain,
            severity=first.severity,
            public=True,
            metadata={
                "method": str(identifier),
                "parameters": [result.name for result in failures],
            },
        )
        self.failures = failures


class ApiDispatcher:
    """
    Dispatches API requests to plugin methods.

    The three collaborators default to a single ``PluginRegistry`` that
    answers all of them; they can be supplied separately.
    """

    def __init__(
        self,
        registry: Optional[PluginRegistry] = None,
        *,
        plugins: Optional[PluginAvailability] = None,
        descriptors: Optional[MethodDescriptorRegistry] = None,
        invoker: Optional[OperationInvoker] = None,
        renderers: Optional[RendererSelector] = None,
        config: Optional[MetricaConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        registry = registry if registry is not None else PluginRegistry()
        self.plugins: PluginAvailability = plugins or registry
        self.descriptors: MethodDescriptorRegistry = descriptors or registry
        self.invoker: OperationInvoker = invoker or registry
        self.renderers = renderers or get_default_selector()
        self.config = config or MetricaConfig()
        self.logger = logger or logging.getLogger("metrica.dispatch")

    # ========================================================================
    # Public API
    # ========================================================================

    def dispatch(self, request: Union[ApiRequest, str, Mapping[str, Any]]) -> Any:
        """
        Process one API request.

        Returns the rendered DataTable, the method's raw return value, or an
        error payload in the requested format.
        """
        if isinstance(request, str):
            request = ApiRequest.from_string(request)
        elif not isinstance(request, ApiRequest):
            request = ApiRequest.from_mapping(request)

        try:
            return self._process(request)
        except Exception as exc:
            return self._error_payload(exc, request)

    process = dispatch

    def resolve(self, request: Mapping[str, Any]) -> MethodIdentifier:
        """Parse ``method`` and check the target is enabled and exists."""
        try:
            raw_method = get_request_var("method", REQUIRED, ParamType.STRING, request)
        except Fault:
            raise InvalidMethodFormatFault(None) from None

        identifier = MethodIdentifier.parse(raw_method)

        if not self.plugins.is_enabled(identifier.module):
            raise PluginNotEnabledFault(identifier.module)

        if not self.descriptors.exists(identifier.module, identifier.method):
            raise MethodNotFoundFault(identifier.module, identifier.method)

        return identifier

    def bind_parameters(
        self,
        descriptors: List[ParameterDescriptor],
        request: Mapping[str, Any],
    ) -> List[BindingResult]:
        """Bind each descriptor from *request*, in declaration order."""
        return [
            bind_request_var(descriptor.name, descriptor.default, descriptor.type, request)
            for descriptor in descriptors
        ]

    def render(self, table: DataTable, request: Mapping[str, Any]) -> str:
        """Render *table* in the request's ``format``."""
        format = get_request_var(
            "format", Default(self.config.default_format), ParamType.STRING, request
        )
        return self.renderers.render(table, format)

    # ========================================================================
    # Internals
    # ========================================================================

    def _process(self, request: ApiRequest) -> Any:
        identifier = self.resolve(request)
        descriptors = self.descriptors.describe(identifier.module, identifier.method)
        arguments = self._arguments(identifier, descriptors, request)

        self.logger.debug("Calling %s with %d argument(s)", identifier, len(arguments))
        result = self.invoker.invoke(identifier.module, identifier.method, arguments)

        if isinstance(result, DataTable):
            if not self._flag(request, "disable_generic_filters"):
                apply_generic_filters(
                    result, request, default_sort_column=self.config.default_sort_column
                )
            if not self._flag(request, "disable_queued_filters"):
                result.apply_queued_filters()
            return self.render(result, request)

        return result

    def _arguments(
        self,
        identifier: MethodIdentifier,
        descriptors: List[ParameterDescriptor],
        request: ApiRequest,
    ) -> List[Any]:
        results = self.bind_parameters(descriptors, request)
        failures = [result for result in results if not result.ok]

        for failure in failures:
            self.logger.warning(
                "The required variable '%s' is not correct or has not been found in the API request "
                "for %s: %s. Request parameters: %r",
                failure.name, identifier, failure.error, request.to_dict(),
            )

        if failures and self.config.binding_policy == BINDING_STRICT:
            raise BindingError(identifier, failures)

        return [result.value for result in results]

    def _flag(self, request: Mapping[str, Any], name: str) -> bool:
        try:
            return bool(get_request_var(name, Default(False), ParamType.BOOLEAN, request))
        except Fault:
            return False

    def renderer_for(self, request: Mapping[str, Any]) -> BaseRenderer:
        """
        Renderer for responses that must not fail: the requested format when
        it is supported, else the configured default.
        """
        format = request.get("format")
        if isinstance(format, str) and format and self.renderers.supports(format):
            return self.renderers.get(format)
        if self.renderers.supports(self.config.default_format):
            return self.renderers.get(self.config.default_format)
        return self.renderers.get(self.renderers.formats[0])

    def _error_payload(self, exc: Exception, request: Mapping[str, Any]) -> str:
        if isinstance(exc, Fault):
            self.logger.log(exc.severity.log_level, "API request failed: %s", exc)
            message = exc.message if (exc.public or self.config.debug) else GENERIC_ERROR_MESSAGE
        else:
            self.logger.exception("Unexpected error while processing API request")
            message = str(exc) if self.config.debug else GENERIC_ERROR_MESSAGE
        return self.renderer_for(request).render_error(message)
