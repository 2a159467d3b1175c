"""
Tests for the plugin registry.

Validates:
    - Registration through the descriptor ABI
    - Duplicate names and failing registration functions are rejected
    - Unknown names fail with the list of known plugins
    - Explicit loading through entry points
    - Options validated before the creator runs
"""

import pytest

from pysolvers.core.exceptions import ConfigurationError
from pysolvers.core.options import Option, OptionSchema, OT_BOOL, OT_INT
from pysolvers.core.registry import PluginDescriptor, PluginRegistry
from pysolvers.linsol import LINSOL_PLUGINS
from pysolvers.linsol.backends import (
    load_linsol_lapackchol,
    load_linsol_lapacklu,
    load_linsol_superlu,
)
from pysolvers.qpsol import QPSOL_PLUGINS
from pysolvers.qpsol.backends import load_qpsol_lbfgsb, load_qpsol_slsqp


COMMON = OptionSchema((Option('verbose', OT_BOOL, False, "Log diagnostics"),))

BUILTIN_LOADERS = [
    ('linsol', load_linsol_lapacklu, 'lapacklu'),
    ('linsol', load_linsol_lapackchol, 'lapackchol'),
    ('linsol', load_linsol_superlu, 'superlu'),
    ('qpsol', load_qpsol_slsqp, 'slsqp'),
    ('qpsol', load_qpsol_lbfgsb, 'lbfgsb'),
]


class Created:
    """What the fake creator returns."""

    def __init__(self, design, config, name):
        self.design = design
        self.config = config
        self.name = name


def register_fake(plugin: PluginDescriptor) -> int:
    plugin.name = 'fake'
    plugin.creator = Created
    plugin.doc = "A fake backend for tests."
    plugin.version = 3
    plugin.options = OptionSchema((
        Option('depth', OT_INT, 2, "How deep", interval=(0, 10)),
    ))
    plugin.capabilities = frozenset({'qpsol'})
    return 0


def register_broken(plugin: PluginDescriptor) -> int:
    plugin.name = 'broken'
    return 1


class FakeEntryPoint:
    """Stands in for importlib.metadata.EntryPoint."""

    def __init__(self, name, value, target):
        self.name = name
        self.value = value
        self._target = target

    def load(self):
        if isinstance(self._target, Exception):
            raise self._target
        return self._target


def entry_points_returning(*eps):
    calls = []

    def lookup(group):
        calls.append(group)
        return list(eps)

    lookup.calls = calls
    return lookup


@pytest.fixture
def registry():
    reg = PluginRegistry('qpsol', common_options=COMMON,
                         entry_points=entry_points_returning())
    reg.register_plugin(register_fake)
    return reg


# ═══════════════════════════════════════════════════════════════════════
# Registration
# ═══════════════════════════════════════════════════════════════════════


class TestRegistration:

    def test_registered(self, registry):
        assert registry.has('fake')
        assert 'fake' in registry
        assert registry.names() == ('fake',)
        assert registry.get('fake').version == 3

    def test_duplicate_rejected(self, registry):
        with pytest.raises(ConfigurationError, match="already registered"):
            registry.register_plugin(register_fake)

    def test_failing_registration_function(self, registry):
        with pytest.raises(ConfigurationError, match="failed with status 1"):
            registry.register_plugin(register_broken)
        assert not registry.has('broken')

    def test_missing_name(self, registry):
        with pytest.raises(ConfigurationError, match="without a name"):
            registry.register(PluginDescriptor(creator=Created))

    def test_missing_creator(self, registry):
        with pytest.raises(ConfigurationError, match="without a creator"):
            registry.register(PluginDescriptor(name='nocreator'))

    def test_option_clash_with_common(self, registry):
        def register_clash(plugin):
            plugin.name = 'clash'
            plugin.creator = Created
            plugin.options = OptionSchema((Option('verbose', OT_BOOL, True, "again"),))
            return 0

        with pytest.raises(ConfigurationError):
            registry.register_plugin(register_clash)

    def test_schema_includes_common(self, registry):
        assert set(registry.schema('fake').names) == {'verbose', 'depth'}


# ═══════════════════════════════════════════════════════════════════════
# Lookup and creation
# ═══════════════════════════════════════════════════════════════════════


class TestLookup:

    def test_unknown_lists_known(self, registry):
        with pytest.raises(ConfigurationError, match="unknown qpsol plugin 'nope'.*fake"):
            registry.get('nope')

    def test_unknown_never_loads(self, registry):
        with pytest.raises(ConfigurationError):
            registry.create('nope', design=None)
        assert registry._entry_points.calls == []

    def test_create_passes_resolved_config(self, registry):
        inst = registry.create('fake', 'design', {'depth': 5}, instance_name='qp1')
        assert inst.design == 'design'
        assert inst.config['depth'] == 5
        assert inst.config['verbose'] is False
        assert inst.name == 'qp1'

    def test_default_instance_name(self, registry):
        assert registry.create('fake', None).name == 'qpsol_fake'

    def test_bad_option_never_reaches_creator(self):
        created = []

        def register_tracking(plugin):
            register_fake(plugin)
            plugin.creator = lambda d, c, n: created.append(n)
            return 0

        reg = PluginRegistry('qpsol', common_options=COMMON)
        reg.register_plugin(register_tracking)
        with pytest.raises(ConfigurationError):
            reg.create('fake', None, {'depth': 99})
        with pytest.raises(ConfigurationError):
            reg.create('fake', None, {'no_such_option': 1})
        assert created == []

    def test_documentation(self, registry):
        doc = registry.documentation('fake')
        assert "qpsol plugin 'fake' (version 3)" in doc
        assert "A fake backend for tests." in doc
        assert "depth" in doc
        assert "verbose" in doc

    def test_plugins_metadata(self, registry):
        (meta,) = registry.plugins()
        assert meta['name'] == 'fake'
        assert meta['capabilities'] == ['qpsol']
        assert 'depth' in meta['options']


# ═══════════════════════════════════════════════════════════════════════
# Explicit loading
# ═══════════════════════════════════════════════════════════════════════


class TestLoad:

    def _registry(self, *eps):
        return PluginRegistry('qpsol', common_options=COMMON,
                              entry_points=entry_points_returning(*eps))

    def test_load_from_entry_point(self):
        reg = self._registry(FakeEntryPoint('fake', 'tests:register_fake', register_fake))
        plugin = reg.load('fake')
        assert plugin.name == 'fake'
        assert reg.has('fake')
        assert reg._entry_points.calls == ['pysolvers.qpsol']

    def test_load_is_idempotent(self):
        reg = self._registry(FakeEntryPoint('fake', 'tests:register_fake', register_fake))
        first = reg.load('fake')
        assert reg.load('fake') is first

    def test_load_missing(self):
        reg = self._registry(FakeEntryPoint('other', 'x:y', register_fake))
        with pytest.raises(ConfigurationError, match="no qpsol plugin 'missing'"):
            reg.load('missing')

    def test_load_import_failure(self):
        reg = self._registry(FakeEntryPoint('fake', 'x:y', ImportError("no module x")))
        with pytest.raises(ConfigurationError, match="cannot load qpsol plugin 'fake'"):
            reg.load('fake')

    def test_load_name_mismatch(self):
        reg = self._registry(FakeEntryPoint('alias', 'x:y', register_fake))
        with pytest.raises(ConfigurationError, match="registered a plugin named 'fake'"):
            reg.load('alias')


# ═══════════════════════════════════════════════════════════════════════
# Built-in registries
# ═══════════════════════════════════════════════════════════════════════


class TestBuiltins:

    def test_linsol_builtins(self):
        assert set(LINSOL_PLUGINS.names()) >= {'lapacklu', 'lapackchol', 'superlu'}

    def test_qpsol_builtins(self):
        assert set(QPSOL_PLUGINS.names()) >= {'slsqp', 'lbfgsb'}

    def test_group_names(self):
        assert LINSOL_PLUGINS.group == 'pysolvers.linsol'
        assert QPSOL_PLUGINS.group == 'pysolvers.qpsol'

    @pytest.mark.parametrize("kind, load, name", BUILTIN_LOADERS, ids=lambda v: getattr(v, '__name__', v))
    def test_loader_into_fresh_registry(self, kind, load, name):
        registry = PluginRegistry(kind, common_options=COMMON)
        load(registry=registry)
        assert list(registry.names()) == [name]
        assert registry.documentation(name)

        load(registry=registry)
        assert list(registry.names()) == [name]

    @pytest.mark.parametrize("kind, load, name", BUILTIN_LOADERS, ids=lambda v: getattr(v, '__name__', v))
    def test_loader_defaults_to_process_registry(self, kind, load, name):
        registry = LINSOL_PLUGINS if kind == 'linsol' else QPSOL_PLUGINS
        before = list(registry.names())
        load()
        assert list(registry.names()) == before
        assert registry.has(name)
