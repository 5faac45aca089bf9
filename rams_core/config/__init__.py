"""
Configuration module for namelist-based model parameters.

Provides:
- Typed setters with range checks
- The schema: parameters, groups, catalog and the immutable Config snapshot
- The namelist parser
- TOML archiving and the startup report of the resolved values
"""

from .schema import (
    Config,
    ConfigParameter,
    NamelistGroup,
    Catalog,
    integer,
    real,
    string,
)

from .setters import IntegerSetter, RealSetter, StringSetter

from .catalog import default_catalog

from .parser import parse_namelist

from .loader import load_namelist, save_config, load_config, report_config

__all__ = [
    # Schema classes
    "Config",
    "ConfigParameter",
    "NamelistGroup",
    "Catalog",
    "integer",
    "real",
    "string",
    # Setters
    "IntegerSetter",
    "RealSetter",
    "StringSetter",
    # Catalog and parser
    "default_catalog",
    "parse_namelist",
    # Loader functions
    "load_namelist",
    "save_config",
    "load_config",
    "report_config",
]
