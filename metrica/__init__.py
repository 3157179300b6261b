"""
Metrica - web analytics reporting API

Complete integration of:
- Request: explicit query-string parameter bag
- Coercion: typed parameter binding with explicit defaults
- Registry: plugin modules, entry-point discovery, method introspection
- Filters: the generic Pattern / ExcludeLowPopulation / Sort / Limit chain
- Renderers: php, xml, json, html and csv output
- Faults: structured error handling with fault domains
"""

__version__ = "0.1.0"

# ============================================================================
# Core
# ============================================================================

from .request import ApiRequest
from .datatable import DataTable, INDEX_NB_VISITS
from .coercion import (
    ParamType,
    Default,
    REQUIRED,
    BindingResult,
    get_request_var,
    bind_request_var,
)
from .descriptors import ParameterDescriptor, describe_callable
from .registry import PluginRegistry
from .filters import (
    PatternFilter,
    ExcludeLowPopulationFilter,
    SortFilter,
    LimitFilter,
    apply_generic_filters,
)
from .renderers import RendererSelector, render
from .config import MetricaConfig, ConfigLoader
from .dispatcher import ApiDispatcher, MethodIdentifier, BindingError
from .asgi import ApiApplication, build_dispatcher, create_app

# ============================================================================
# Faults
# ============================================================================

from .faults import (
    Fault,
    FaultDomain,
    Severity,
    InvalidMethodFormatFault,
    MissingRequiredParameterFault,
    InvalidParameterTypeFault,
    PluginNotEnabledFault,
    MethodNotFoundFault,
    UnsupportedFormatFault,
)

__all__ = [
    "__version__",
    "ApiRequest",
    "DataTable",
    "INDEX_NB_VISITS",
    "ParamType",
    "Default",
    "REQUIRED",
    "BindingResult",
    "get_request_var",
    "bind_request_var",
    "ParameterDescriptor",
    "describe_callable",
    "PluginRegistry",
    "PatternFilter",
    "ExcludeLowPopulationFilter",
    "SortFilter",
    "LimitFilter",
    "apply_generic_filters",
    "RendererSelector",
    "render",
    "MetricaConfig",
    "ConfigLoader",
    "ApiDispatcher",
    "MethodIdentifier",
    "BindingError",
    "ApiApplication",
    "build_dispatcher",
    "create_app",
    "Fault",
    "FaultDomain",
    "Severity",
    "InvalidMethodFormatFault",
    "MissingRequiredParameterFault",
    "InvalidParameterTypeFault",
    "PluginNotEnabledFault",
    "MethodNotFoundFault",
    "UnsupportedFormatFault",
]
