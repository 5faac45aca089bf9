"""
Configuration files: reading the namelist, archiving and reporting the snapshot.

The namelist is the input format. The resolved snapshot is archived in TOML,
using tomllib (Python 3.11+) or tomli (backport) for reading and tomli_w for
writing, one table per namelist group.
"""

import logging
import sys
from pathlib import Path
from typing import Any

# Import tomllib or backport
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomli_w

from rams_core.config.catalog import default_catalog
from rams_core.config.parser import parse_namelist
from rams_core.config.schema import Catalog, Config
from rams_core.errors import NamelistValueError, UnrecognizedNameError


logger = logging.getLogger(__name__)


_PYTHON_TYPES = {"integer": (int,), "real": (int, float), "string": (str,)}


def load_namelist(path: str | Path, catalog: Catalog | None = None) -> Config:
    """Read a namelist file and return the configuration snapshot."""
    path = Path(path)
    logger.info(f"Reading namelist {path}")
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    return parse_namelist(text, catalog)


def save_config(config: Config, path: str | Path) -> None:
    """Archive a Config as TOML, one table per group."""
    path = Path(path)
    data: dict[str, Any] = {}
    for group_name in config.group_names:
        data[group_name] = {
            name: list(value) if isinstance(value, tuple) else value
            for [name, value] in config.group(group_name).items()
        }

    with open(path, "wb") as f:
        tomli_w.dump(data, f)


def load_config(path: str | Path, catalog: Catalog | None = None) -> Config:
    """
    Load an archived TOML snapshot.

    Every value is checked again against the catalog, so an edited archive
    obeys the same rules as the namelist.
    """
    if catalog is None:
        catalog = default_catalog()

    path = Path(path)
    with open(path, "rb") as f:
        data = tomllib.load(f)

    values = catalog.initial_values()
    unrecognized = []
    for [group_name, table] in data.items():
        for [name, value] in table.items():
            binding = catalog.lookup(name)
            if binding is None or binding.group.name != group_name.upper():
                unrecognized.append(name)
                continue
            parameter = binding.parameter
            slots = value if parameter.is_array else [value]
            if len(slots) > parameter.size:
                raise NamelistValueError(parameter.name, repr(value), f"holds at most {parameter.size} values")
            for [index, slot] in enumerate(slots):
                _restore(values, parameter, index, slot)

    if unrecognized:
        raise UnrecognizedNameError(unrecognized)

    return catalog.snapshot(values)


def _restore(values: dict, parameter, index: int, value):
    if isinstance(value, bool) or not isinstance(value, _PYTHON_TYPES[parameter.kind]):
        raise NamelistValueError(parameter.name, repr(value), f"expected a {parameter.kind} value")
    if parameter.kind == "real":
        value = float(value)
    parameter.setter.check(parameter, value, repr(value))
    if parameter.is_array:
        values[parameter.name][index] = value
    else:
        values[parameter.name] = value


def report_config(config: Config) -> None:
    """Log every resolved parameter once, for the record of the run."""
    for group_name in config.group_names:
        logger.info(f"${group_name}")
        for [name, value] in config.group(group_name).items():
            if isinstance(value, tuple):
                value = ", ".join(repr(v) for v in value)
            else:
                value = repr(value)
            logger.info(f"    {name:<16} = {value}")
        logger.info("$END")
