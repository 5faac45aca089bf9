"""
Configuration schema.

- ConfigParameter: one named, typed slot (scalar or fixed-size array)
- NamelistGroup: the ordered parameters of one `$GROUP ... $END` section
- Catalog: all groups, indexed by parameter name
- Config: the immutable snapshot produced by parsing

A group is declared in one place as a sequence of parameters, so its size is
whatever was listed. A declared count is only accepted to check tables that
were ported from fixed-count sources.
"""

import dataclasses as dc
import typing as _t
from collections.abc import Mapping
from types import MappingProxyType

from rams_core.config.setters import Setter, setter_for
from rams_core.errors import SchemaError


MAX_NAME_LENGTH = 16
DEFAULT_STRING_LENGTH = 80

_ZEROS = {"integer": 0, "real": 0.0, "string": ""}


@dc.dataclass(frozen=True)
class ConfigParameter:
    name: str
    kind: str
    """one of 'integer', 'real', 'string'"""
    min: float | None = None
    max: float | None = None
    size: int = 1
    """number of slots; more than one makes it an array"""
    default: _t.Any = None
    max_length: int = DEFAULT_STRING_LENGTH
    """only for strings"""

    def __post_init__(self):
        object.__setattr__(self, "name", self.name.upper())

    @property
    def is_array(self):
        return self.size > 1

    @property
    def setter(self) -> Setter:
        return setter_for(self.kind)

    def initial_value(self):
        """The compiled-in default, a zero-equivalent unless declared."""
        default = _ZEROS[self.kind] if self.default is None else self.default
        if not self.is_array:
            return default
        if isinstance(default, (list, tuple)):
            padding = [_ZEROS[self.kind]] * (self.size - len(default))
            return list(default) + padding
        return [default] * self.size


def integer(name: str, min: int, max: int, default: int | None = None, size: int = 1):
    return ConfigParameter(name, "integer", min, max, size, default)


def real(name: str, min: float, max: float, default: float | None = None, size: int = 1):
    return ConfigParameter(name, "real", min, max, size, default)


def string(name: str, max_length: int = DEFAULT_STRING_LENGTH, default: str | None = None, size: int = 1):
    return ConfigParameter(name, "string", size=size, default=default, max_length=max_length)


@dc.dataclass(frozen=True)
class NamelistGroup:
    name: str
    parameters: tuple[ConfigParameter, ...]
    declared_count: int | None = None

    def __post_init__(self):
        object.__setattr__(self, "name", self.name.upper())
        object.__setattr__(self, "parameters", tuple(self.parameters))

    @property
    def names(self):
        return tuple(p.name for p in self.parameters)

    def validate(self):
        """Raise SchemaError if the declaration is inconsistent."""
        names = self.names
        distinct = set(names)

        if len(distinct) != len(names):
            duplicates = sorted({n for n in names if names.count(n) > 1})
            raise SchemaError(f"Group {self.name} lists {', '.join(duplicates)} more than once")

        if self.declared_count is not None and self.declared_count != len(distinct):
            raise SchemaError(
                f"Group {self.name} declares {self.declared_count} names but lists {len(distinct)}"
            )

        for parameter in self.parameters:
            _validate_parameter(self.name, parameter)


def _validate_parameter(group: str, parameter: ConfigParameter):
    if not 0 < len(parameter.name) <= MAX_NAME_LENGTH:
        raise SchemaError(f"Group {group}: name {parameter.name!r} must have 1 to {MAX_NAME_LENGTH} characters")
    if parameter.kind not in _ZEROS:
        raise SchemaError(f"Group {group}: {parameter.name} has unknown kind {parameter.kind!r}")
    if parameter.size < 1:
        raise SchemaError(f"Group {group}: {parameter.name} must have at least one slot")
    if parameter.kind == "string":
        return
    if parameter.min is None or parameter.max is None or parameter.min > parameter.max:
        raise SchemaError(f"Group {group}: {parameter.name} has an invalid range [{parameter.min}, {parameter.max}]")

    initial = parameter.initial_value()
    for value in initial if parameter.is_array else [initial]:
        # zero-equivalents of unset array slots are not range checked
        if value != _ZEROS[parameter.kind] and not parameter.min <= value <= parameter.max:
            raise SchemaError(f"Group {group}: default of {parameter.name} lies outside its range")


class Binding(_t.NamedTuple):
    group: NamelistGroup
    parameter: ConfigParameter


class Catalog:
    """All namelist groups, with a name -> binding index across groups."""

    def __init__(self, groups: _t.Iterable[NamelistGroup]):
        self.groups: tuple[NamelistGroup, ...] = tuple(groups)
        self._bindings: dict[str, Binding] = {}
        self._groups_by_name: dict[str, NamelistGroup] = {}

        for group in self.groups:
            group.validate()
            if group.name in self._groups_by_name:
                raise SchemaError(f"Group {group.name} is declared twice")
            self._groups_by_name[group.name] = group
            for parameter in group.parameters:
                if parameter.name in self._bindings:
                    other = self._bindings[parameter.name].group.name
                    raise SchemaError(f"{parameter.name} is declared in both {other} and {group.name}")
                self._bindings[parameter.name] = Binding(group, parameter)

    def lookup(self, name: str) -> Binding | None:
        return self._bindings.get(name.upper())

    def has_group(self, name: str):
        return name.upper() in self._groups_by_name

    def initial_values(self) -> dict[str, _t.Any]:
        return {name: binding.parameter.initial_value() for [name, binding] in self._bindings.items()}

    def snapshot(self, values: Mapping[str, _t.Any]) -> "Config":
        membership = {group.name: group.names for group in self.groups}
        return Config(values, membership)


def _freeze(value):
    if isinstance(value, list):
        return tuple(value)
    return value


class Config(Mapping):
    """
    Immutable configuration snapshot.

    Lookup is case-insensitive, both as item (`config["iuvwtend"]`) and as
    attribute (`config.IUVWTEND`). Array parameters are tuples.
    """

    def __init__(self, values: Mapping[str, _t.Any], groups: Mapping[str, _t.Sequence[str]] | None = None):
        frozen = {key.upper(): _freeze(value) for [key, value] in values.items()}
        if groups is None:
            groups = {}
        object.__setattr__(self, "_values", MappingProxyType(frozen))
        object.__setattr__(
            self, "_groups", MappingProxyType({g.upper(): tuple(n.upper() for n in names) for [g, names] in groups.items()})
        )

    def __getitem__(self, key: str):
        return self._values[key.upper()]

    def __getattr__(self, name: str):
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._values[name.upper()]
        except KeyError:
            raise AttributeError(f"Config has no parameter {name!r}") from None

    def __setattr__(self, name, value):
        raise AttributeError("Config is immutable")

    def __iter__(self):
        return iter(self._values)

    def __len__(self):
        return len(self._values)

    def __repr__(self):
        return f"Config({len(self)} parameters in groups {', '.join(self._groups)})"

    @property
    def group_names(self) -> tuple[str, ...]:
        return tuple(self._groups)

    def group(self, name: str) -> "Config":
        """A narrow view holding only the parameters of one group."""
        names = self._groups[name.upper()]
        return Config({n: self._values[n] for n in names}, {name: names})
