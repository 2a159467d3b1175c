"""
Plugin registry: backend name -> factory + metadata.

A PluginRegistry is the catalog for one capability ('linsol' or 'qpsol').
It is populated at import time with the built-in backends, or by an
explicit load() call for third-party backends discovered through package
entry points. It never loads anything as a side effect of another call:
create() with an unknown name fails with the list of known backends.

Registration ABI (mirrors a C plugin descriptor):

    def register_qpsol_mysolver(plugin: PluginDescriptor) -> int:
        plugin.name = 'mysolver'
        plugin.creator = lambda design, config, name: Qpsol(MyBackend(), design, config, name)
        plugin.doc = "My QP solver."
        plugin.version = 1
        plugin.options = MyBackend.options
        return 0

Third-party packages expose the registration function as an entry point:

    [project.entry-points."pysolvers.qpsol"]
    mysolver = "mypkg.plugin:register_qpsol_mysolver"

The registry object is an explicit handle: the process-wide instances live
in pysolvers.linsol and pysolvers.qpsol, and every public entry point takes
an optional registry argument so tests can use a private one.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from importlib.metadata import entry_points as _entry_points
from typing import Any, Callable, Mapping

from pysolvers.core.exceptions import ConfigurationError
from pysolvers.core.options import OptionSchema, ResolvedConfig

logger = logging.getLogger(__name__)

# (design, config, instance name) -> solver instance
Creator = Callable[[Any, ResolvedConfig, str], Any]


@dataclass
class PluginDescriptor:
    """
    Mutable descriptor filled in by a registration function.

    Attributes:
        name: Unique backend key
        creator: Factory closure building a solver instance
        doc: Documentation string
        version: Plugin version integer
        options: Backend-specific option schema
        capabilities: Capability strings the backend advertises
    """
    name: str = ''
    creator: Creator | None = None
    doc: str = ''
    version: int = 0
    options: OptionSchema = field(default_factory=OptionSchema)
    capabilities: frozenset[str] = frozenset()


RegisterFunction = Callable[[PluginDescriptor], int]


class PluginRegistry:
    """
    Catalog of the backends available for one capability.

    Args:
        kind: Capability name ('linsol', 'qpsol'); the entry point group
              is 'pysolvers.<kind>'
        common_options: Options every backend of this kind accepts
        entry_points: Entry point lookup, defaults to importlib.metadata
    """

    def __init__(
        self,
        kind: str,
        *,
        common_options: OptionSchema | None = None,
        entry_points: Callable[..., Any] | None = None,
    ):
        self._kind = kind
        self._common = common_options if common_options is not None else OptionSchema()
        self._entry_points = entry_points if entry_points is not None else _entry_points
        self._plugins: dict[str, PluginDescriptor] = {}
        self._schemas: dict[str, OptionSchema] = {}
        self._lock = threading.Lock()

    @property
    def kind(self) -> str:
        return self._kind

    @property
    def group(self) -> str:
        """Entry point group searched by load()."""
        return f"pysolvers.{self._kind}"

    @property
    def common_options(self) -> OptionSchema:
        return self._common

    # === Registration ===

    def register(self, plugin: PluginDescriptor) -> None:
        """
        Add a filled-in descriptor.

        Raises:
            ConfigurationError: If the descriptor is incomplete, its options
                clash with the common options, or the name is taken
        """
        if not plugin.name:
            raise ConfigurationError(f"{self._kind} plugin registered without a name")
        if plugin.creator is None:
            raise ConfigurationError(
                f"{self._kind} plugin '{plugin.name}' registered without a creator"
            )
        schema = self._common.extend(plugin.options)
        with self._lock:
            if plugin.name in self._plugins:
                raise ConfigurationError(
                    f"{self._kind} plugin '{plugin.name}' is already registered"
                )
            self._plugins[plugin.name] = plugin
            self._schemas[plugin.name] = schema
        logger.debug(
            "registered %s plugin '%s' (version %d)", self._kind, plugin.name, plugin.version
        )

    def register_plugin(self, regfn: RegisterFunction) -> PluginDescriptor:
        """Run a registration function against a fresh descriptor and add it."""
        plugin = PluginDescriptor()
        flag = regfn(plugin)
        if flag != 0:
            raise ConfigurationError(
                f"registration function {getattr(regfn, '__name__', regfn)!r} "
                f"for {self._kind} failed with status {flag}"
            )
        self.register(plugin)
        return plugin

    def load(self, name: str) -> PluginDescriptor:
        """
        Explicitly load a plugin published under the entry point group.

        A plugin that is already registered is returned unchanged.

        Raises:
            ConfigurationError: If no entry point provides the plugin or it
                fails to import
        """
        if name in self._plugins:
            return self._plugins[name]
        for ep in self._entry_points(group=self.group):
            if ep.name != name:
                continue
            try:
                regfn = ep.load()
            except ImportError as e:
                raise ConfigurationError(
                    f"cannot load {self._kind} plugin '{name}': {e}"
                ) from e
            plugin = self.register_plugin(regfn)
            if plugin.name != name:
                raise ConfigurationError(
                    f"entry point '{name}' registered a plugin named '{plugin.name}'"
                )
            logger.info("loaded %s plugin '%s' from %s", self._kind, name, ep.value)
            return plugin
        raise ConfigurationError(
            f"no {self._kind} plugin '{name}' found in entry point group '{self.group}'"
        )

    # === Lookup ===

    def has(self, name: str) -> bool:
        return name in self._plugins

    def names(self) -> tuple[str, ...]:
        return tuple(sorted(self._plugins))

    def get(self, name: str) -> PluginDescriptor:
        try:
            return self._plugins[name]
        except KeyError:
            known = ', '.join(self.names()) or '(none)'
            raise ConfigurationError(
                f"unknown {self._kind} plugin '{name}'. Known plugins: {known}"
            ) from None

    def schema(self, name: str) -> OptionSchema:
        """Full option schema (common + backend) of a plugin."""
        self.get(name)
        return self._schemas[name]

    def create(
        self,
        name: str,
        design: Any,
        options: Mapping[str, Any] | None = None,
        *,
        instance_name: str | None = None,
    ) -> Any:
        """
        Instantiate a solver.

        Options are validated before the plugin's creator runs, so a bad
        option never produces a partially constructed instance.

        Raises:
            ConfigurationError: Unknown plugin or invalid options
        """
        plugin = self.get(name)
        config = self._schemas[name].resolve(options)
        label = instance_name or f"{self._kind}_{name}"
        logger.debug("creating %s '%s' with plugin '%s'", self._kind, label, name)
        return plugin.creator(design, config, label)

    def documentation(self, name: str) -> str:
        """Plugin documentation followed by its option table."""
        plugin = self.get(name)
        header = f"{self._kind} plugin '{plugin.name}' (version {plugin.version})"
        return "\n".join([
            header,
            "=" * len(header),
            plugin.doc.strip(),
            "",
            "Options:",
            self._schemas[name].describe(),
        ])

    def plugins(self) -> list[dict[str, Any]]:
        """Metadata of every registered plugin."""
        return [
            {
                'name': plugin.name,
                'version': plugin.version,
                'capabilities': sorted(plugin.capabilities),
                'options': self._schemas[plugin.name].names,
            }
            for plugin in (self._plugins[n] for n in self.names())
        ]

    def __contains__(self, name: object) -> bool:
        return name in self._plugins

    def __repr__(self) -> str:
        return f"PluginRegistry({self._kind!r}, plugins={list(self.names())})"


__all__ = [
    'PluginDescriptor',
    'PluginRegistry',
    'RegisterFunction',
]
