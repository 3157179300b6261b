"""
Metrica Faults - Structured error handling.

Every failure the dispatch core can report is a typed ``Fault`` with a
stable code, a domain and a severity. Faults are raised where the problem
is detected and converted to an error payload exactly once, at the
dispatcher boundary.
"""

from .core import (
    Fault,
    FaultDomain,
    Severity,
)

from .domains import (
    ConfigFault,
    ConfigInvalidFault,
    RequestFault,
    InvalidMethodFormatFault,
    MissingRequiredParameterFault,
    InvalidParameterTypeFault,
    RegistryFault,
    PluginNotEnabledFault,
    MethodNotFoundFault,
    PluginRegistrationFault,
    RenderFault,
    UnsupportedFormatFault,
)

__all__ = [
    # Core types
    "Fault",
    "FaultDomain",
    "Severity",

    # Domain faults
    "ConfigFault",
    "ConfigInvalidFault",
    "RequestFault",
    "InvalidMethodFormatFault",
    "MissingRequiredParameterFault",
    "InvalidParameterTypeFault",
    "RegistryFault",
    "PluginNotEnabledFault",
    "MethodNotFoundFault",
    "PluginRegistrationFault",
    "RenderFault",
    "UnsupportedFormatFault",
]
