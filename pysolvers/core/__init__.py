"""
Core infrastructure for PySolvers.

This module provides the shared abstractions used by both capabilities
(linsol, qpsol): the plugin registry, the option schema, sparsity patterns,
matrix marshaling, the per-instance workspace and native state, the
hot-start protocol and the error taxonomy.

Key components:
    protocols: DataSource, LinsolBackend, QpsolBackend protocols
    registry: PluginRegistry, PluginDescriptor
    options: Option, OptionSchema, ResolvedConfig
    sparsity: Sparsity pattern value type
    marshal: densify / copy / nonzeros / to_csc
    workspace: Workspace arena with named slots
    handle: NativeHandle owning backend-native state
    hotstart: HotStartProtocol state machine
    status: StatusMap error mapper, Classification
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy
"""

from pysolvers.core.protocols import DataSource, Backend, LinsolBackend, QpsolBackend
from pysolvers.core.result import Result
from pysolvers.core.sparsity import Sparsity
from pysolvers.core.options import (
    Option,
    OptionSchema,
    ResolvedConfig,
    OT_BOOL,
    OT_INT,
    OT_REAL,
    OT_STRING,
)
from pysolvers.core.registry import PluginDescriptor, PluginRegistry
from pysolvers.core.status import StatusKind, Classification, StatusMap
from pysolvers.core.hotstart import HotStartState, StartMode
from pysolvers.core.handle import NativeHandle
from pysolvers.core.workspace import Workspace
from pysolvers.core.exceptions import (
    PySolversError,
    ConfigurationError,
    StructuralError,
    NumericalFailure,
    IterationLimitReached,
    BackendFatal,
    ResourceError,
    ContractViolation,
)

__all__ = [
    # Protocols
    "DataSource",
    "Backend",
    "LinsolBackend",
    "QpsolBackend",
    # Result
    "Result",
    # Descriptors and options
    "Sparsity",
    "Option",
    "OptionSchema",
    "ResolvedConfig",
    "OT_BOOL",
    "OT_INT",
    "OT_REAL",
    "OT_STRING",
    # Registry
    "PluginDescriptor",
    "PluginRegistry",
    # Status
    "StatusKind",
    "Classification",
    "StatusMap",
    "HotStartState",
    "StartMode",
    # Per-instance state
    "NativeHandle",
    "Workspace",
    # Exceptions
    "PySolversError",
    "ConfigurationError",
    "StructuralError",
    "NumericalFailure",
    "IterationLimitReached",
    "BackendFatal",
    "ResourceError",
    "ContractViolation",
]
