"""
Metrica Faults - Domain-specific fault types.

Provides concrete fault classes for each domain:
- CONFIG faults
- REQUEST faults (method parsing, parameter binding)
- REGISTRY faults (plugin and method resolution)
- RENDER faults
"""

from typing import Any, Optional
from .core import Fault, FaultDomain, Severity


# ============================================================================
# CONFIG Faults
# ============================================================================

class ConfigFault(Fault):
    """Base class for configuration faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.FATAL,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.CONFIG,
            severity=severity,
            public=False,
            metadata=metadata,
        )


class ConfigInvalidFault(ConfigFault):
    """Configuration value is invalid."""

    def __init__(self, key: str, reason: str, **kwargs):
        super().__init__(
            code="CONFIG_INVALID",
            message=f"Configuration key '{key}' is invalid: {reason}",
            metadata={"key": key, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# REQUEST Faults
# ============================================================================

class RequestFault(Fault):
    """Base class for faults caused by the API request itself."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.WARN,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.REQUEST,
            severity=severity,
            public=True,
            metadata=metadata,
        )


class InvalidMethodFormatFault(RequestFault):
    """The ``method`` parameter is not of the form ``module.methodName``."""

    def __init__(self, value: Optional[str], **kwargs):
        super().__init__(
            code="INVALID_METHOD_FORMAT",
            message="The method name is invalid. Must be on the form 'module.methodName'",
            metadata={"method": value, **kwargs.get("metadata", {})},
        )


class MissingRequiredParameterFault(RequestFault):
    """A parameter without default value is absent from the request."""

    def __init__(self, name: str, **kwargs):
        super().__init__(
            code="MISSING_REQUIRED_PARAMETER",
            message=f"The parameter '{name}' isn't set in the Request, and a default value wasn't provided.",
            metadata={"parameter": name, **kwargs.get("metadata", {})},
        )
        self.parameter = name


class InvalidParameterTypeFault(RequestFault):
    """A request value cannot be converted to the declared type."""

    def __init__(self, name: str, expected: str, value: Any, **kwargs):
        super().__init__(
            code="INVALID_PARAMETER_TYPE",
            message=f"The parameter '{name}' must be of type {expected}, got {value!r}.",
            metadata={
                "parameter": name,
                "expected": expected,
                "value": value,
                **kwargs.get("metadata", {}),
            },
        )
        self.parameter = name


# ============================================================================
# REGISTRY Faults
# ============================================================================

class RegistryFault(Fault):
    """Base class for plugin / method resolution faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.WARN,
        public: bool = True,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.REGISTRY,
            severity=severity,
            public=public,
            metadata=metadata,
        )


class PluginNotEnabledFault(RegistryFault):
    """The requested module is not registered or not enabled."""

    def __init__(self, module: str, **kwargs):
        super().__init__(
            code="PLUGIN_NOT_ENABLED",
            message=f"The plugin '{module}' is not enabled.",
            metadata={"module": module, **kwargs.get("metadata", {})},
        )


class MethodNotFoundFault(RegistryFault):
    """The module does not expose the requested method."""

    def __init__(self, module: str, method: str, **kwargs):
        super().__init__(
            code="METHOD_NOT_FOUND",
            message=f"The method '{method}' does not exist or is not available in the module '{module}'.",
            metadata={"module": module, "method": method, **kwargs.get("metadata", {})},
        )


class PluginRegistrationFault(RegistryFault):
    """A plugin could not be registered."""

    def __init__(self, module: str, reason: str, **kwargs):
        super().__init__(
            code="PLUGIN_REGISTRATION_FAILED",
            message=f"Cannot register plugin '{module}': {reason}",
            severity=Severity.ERROR,
            public=False,
            metadata={"module": module, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# RENDER Faults
# ============================================================================

class RenderFault(Fault):
    """Base class for output rendering faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.ERROR,
        public: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.RENDER,
            severity=severity,
            public=public,
            metadata=metadata,
        )


class UnsupportedFormatFault(RenderFault):
    """No renderer is registered for the requested format."""

    def __init__(self, format: str, available: Optional[list[str]] = None, **kwargs):
        super().__init__(
            code="UNSUPPORTED_FORMAT",
            message=f"Renderer format '{format}' not valid. Try any of the following instead: "
                    f"{', '.join(available or [])}.",
            severity=Severity.WARN,
            public=True,
            metadata={"format": format, "available": available or [], **kwargs.get("metadata", {})},
        )
        self.format = format
