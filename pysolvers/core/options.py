"""
Option schema and validator.

Every backend declares its tunables as a fixed, ordered table of Option
entries. At instance construction the caller's option dict is resolved
against the schema into an immutable ResolvedConfig:

    - a key not in the schema is a ConfigurationError (unknown option)
    - a value of the wrong type or outside its domain is a
      ConfigurationError (invalid value)
    - an option not supplied takes its declared default

Validation never allocates backend state, so a bad option cannot leak a
partially constructed instance.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from difflib import get_close_matches
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator
import numbers
import numpy as np

from pysolvers.core.exceptions import ConfigurationError


class OptionType(Enum):
    OT_BOOL = 'bool'
    OT_INT = 'int'
    OT_REAL = 'real'
    OT_STRING = 'string'


OT_BOOL = OptionType.OT_BOOL
OT_INT = OptionType.OT_INT
OT_REAL = OptionType.OT_REAL
OT_STRING = OptionType.OT_STRING


@dataclass(frozen=True)
class Option:
    """
    One tunable in a backend's schema.

    Attributes:
        name: Option key
        type: Declared OptionType
        default: Default value; None means "unset, the backend derives one"
        description: User-facing documentation
        allowed: Enumerated domain for OT_STRING options
        interval: Inclusive (low, high) bounds for numeric options; either
                  end may be None
    """
    name: str
    type: OptionType
    default: Any
    description: str
    allowed: tuple[str, ...] | None = None
    interval: tuple[float | None, float | None] | None = None

    def check(self, value: Any) -> Any:
        """
        Validate one value and return it converted to the declared type.

        Raises:
            ConfigurationError: If the value does not match type or domain
        """
        if value is None:
            if self.default is None:
                return None
            raise self._invalid(value, "None is only accepted for options without a default")

        if self.type is OT_BOOL:
            if not isinstance(value, (bool, np.bool_)):
                raise self._invalid(value, "expected bool")
            return bool(value)

        if self.type is OT_INT:
            if isinstance(value, bool) or not isinstance(value, numbers.Integral):
                raise self._invalid(value, "expected int")
            value = int(value)
            self._check_interval(value)
            return value

        if self.type is OT_REAL:
            if isinstance(value, bool) or not isinstance(value, numbers.Real):
                raise self._invalid(value, "expected real")
            value = float(value)
            if value != value:
                raise self._invalid(value, "NaN is not a valid setting")
            self._check_interval(value)
            return value

        if not isinstance(value, str):
            raise self._invalid(value, "expected str")
        if self.allowed is not None and value not in self.allowed:
            raise self._invalid(value, f"allowed values are {'|'.join(self.allowed)}")
        return value

    def _check_interval(self, value: float) -> None:
        if self.interval is None:
            return
        low, high = self.interval
        if low is not None and value < low:
            raise self._invalid(value, f"must be >= {low}")
        if high is not None and value > high:
            raise self._invalid(value, f"must be <= {high}")

    def _invalid(self, value: Any, reason: str) -> ConfigurationError:
        return ConfigurationError(
            f"invalid value for option '{self.name}' ({self.type.value}): "
            f"{value!r}, {reason}"
        )

    def domain_text(self) -> str:
        if self.allowed is not None:
            return '|'.join(self.allowed)
        if self.interval is not None:
            low, high = self.interval
            return f"[{'-inf' if low is None else low}, {'inf' if high is None else high}]"
        return ''


class OptionSchema:
    """
    Ordered, fixed table of options accepted by one backend.

    Usage:
        schema = OptionSchema((
            Option('max_iter', OT_INT, None, "Iteration budget", interval=(0, None)),
            Option('print_level', OT_STRING, 'none', "Output", allowed=('none', 'low')),
        ))
        config = schema.resolve({'max_iter': 50})
        config['print_level']   # 'none'
    """

    def __init__(self, options: tuple[Option, ...] = ()):
        names = [opt.name for opt in options]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ConfigurationError(f"duplicate option declarations: {duplicates}")
        self._options: dict[str, Option] = {opt.name: opt for opt in options}

    def extend(self, other: OptionSchema) -> OptionSchema:
        """Schema with this schema's options followed by other's."""
        return OptionSchema(tuple(self) + tuple(other))

    def __iter__(self) -> Iterator[Option]:
        return iter(self._options.values())

    def __len__(self) -> int:
        return len(self._options)

    def __contains__(self, name: object) -> bool:
        return name in self._options

    def __getitem__(self, name: str) -> Option:
        return self._options[name]

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._options)

    def defaults(self) -> dict[str, Any]:
        return {name: opt.default for name, opt in self._options.items()}

    def resolve(self, options: Mapping[str, Any] | None = None) -> ResolvedConfig:
        """
        Validate caller options and fill in defaults.

        Raises:
            ConfigurationError: On an unknown option or an invalid value
        """
        options = dict(options or {})
        for key in options:
            if key not in self._options:
                hint = get_close_matches(str(key), self.names, n=3)
                suggestion = f" Did you mean: {', '.join(hint)}?" if hint else ""
                raise ConfigurationError(
                    f"unknown option '{key}'.{suggestion} "
                    f"Known options: {', '.join(self.names)}"
                )

        values = {}
        for name, opt in self._options.items():
            if name in options:
                values[name] = opt.check(options[name])
            else:
                values[name] = opt.default
        return ResolvedConfig(values, frozenset(options))

    def describe(self) -> str:
        """Option table for user-facing documentation."""
        if not self._options:
            return "(no options)"
        width = max(len(name) for name in self._options)
        lines = [
            f"{'Option':<{width}}  {'Type':<6}  {'Default':<12}  Description",
            "-" * (width + 40),
        ]
        for opt in self:
            default = 'unset' if opt.default is None else repr(opt.default)
            text = opt.description
            domain = opt.domain_text()
            if domain:
                text = f"{text} ({domain})"
            lines.append(f"{opt.name:<{width}}  {opt.type.value:<6}  {default:<12}  {text}")
        return "\n".join(lines)


class ResolvedConfig(Mapping):
    """
    Immutable name -> typed value mapping bound to one solver instance.

    Holds every schema option with its resolved value, plus the set of
    names the caller supplied explicitly.
    """

    __slots__ = ('_values', '_explicit')

    def __init__(
        self,
        values: Mapping[str, Any] | None = None,
        explicit: frozenset[str] = frozenset(),
    ):
        self._values = MappingProxyType(dict(values or {}))
        self._explicit = frozenset(explicit)

    def __getitem__(self, name: str) -> Any:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def is_set(self, name: str) -> bool:
        """True if the caller supplied this option explicitly."""
        return name in self._explicit

    def __repr__(self) -> str:
        return f"ResolvedConfig({dict(self._values)!r})"


__all__ = [
    'OptionType',
    'OT_BOOL',
    'OT_INT',
    'OT_REAL',
    'OT_STRING',
    'Option',
    'OptionSchema',
    'ResolvedConfig',
]
