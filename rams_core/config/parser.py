"""
Parser of the model namelist text.

The text holds sections

    $MODEL_GRIDS
       NNXP = 42, 22,   ! one value per grid
       DELTAX = 5000.,
    $END

Assignments are `NAME = value[, value, ...]`, values may continue on the
following lines, and `!` starts a comment outside of quotes. Names are
case-insensitive. Outside of sections only blanks and comments are allowed.
"""

import logging
import re
import typing as _t

from rams_core.config.catalog import default_catalog
from rams_core.config.schema import Catalog, Config
from rams_core.errors import ConfigError, NamelistValueError, UnrecognizedNameError


logger = logging.getLogger(__name__)


_SECTION_RE = re.compile(r"\$(?P<name>[A-Za-z_]\w*)(?P<body>.*?)\$END\b", re.IGNORECASE | re.DOTALL)
_HEADER_RE = re.compile(r"\$(?P<name>[A-Za-z_]\w*)")
_QUOTED_RE = re.compile(r"'[^']*'|\"[^\"]*\"")
_ASSIGN_RE = re.compile(r"(?P<name>[A-Za-z_]\w*)\s*=")
_TOKEN_RE = re.compile(r"'[^']*'|\"[^\"]*\"|[^,\s]+")


def strip_comments(text: str) -> str:
    """Remove '!' comments, respecting quoted strings."""
    lines = []
    for line in text.splitlines():
        quote = None
        for [position, char] in enumerate(line):
            if quote is not None:
                if char == quote:
                    quote = None
            elif char in "'\"":
                quote = char
            elif char == "!":
                line = line[:position]
                break
        lines.append(line)
    return "\n".join(lines)


def _mask_quoted(text: str) -> str:
    # keep positions, hide the content of strings from the assignment search
    return _QUOTED_RE.sub(lambda m: "#" * len(m.group(0)), text)


def split_assignments(body: str) -> _t.Iterator[tuple[str, str]]:
    """Yield (NAME, value chunk) pairs of one section body, in order."""
    masked = _mask_quoted(body)
    matches = list(_ASSIGN_RE.finditer(masked))

    leading = body[:matches[0].start()] if matches else body
    if leading.strip():
        raise NamelistValueError("?", leading.strip(), "expected an assignment of the form NAME = value")

    for [count, match] in enumerate(matches):
        end = matches[count + 1].start() if count + 1 < len(matches) else len(body)
        yield match.group("name").upper(), body[match.end():end]


def split_values(chunk: str) -> list[str]:
    return _TOKEN_RE.findall(chunk)


def parse_namelist(text: str, catalog: Catalog | None = None) -> Config:
    """
    Parse namelist text into an immutable configuration snapshot.

    Parameters not mentioned keep their defaults. A scalar mentioned twice
    takes the last value; an array continues filling from the next free slot.

    Raises
    ------
    SchemaError
        The catalog itself is inconsistent (checked before any text is read).
    ConfigError
        A group header has no matching $END, or an $END has no header.
    NamelistValueError
        A token is malformed or out of range. Raised at the first offence.
    UnrecognizedNameError
        Some names (or group headers) are not declared, or assignments sit
        outside of any group. All of them are reported before this is raised.
    """
    # constructing the catalog validates the groups
    if catalog is None:
        catalog = default_catalog()

    values = catalog.initial_values()
    next_slot: dict[str, int] = {}
    unrecognized: list[str] = []

    text = strip_comments(text)
    # same positions, no '$' or '=' from inside strings
    masked = _mask_quoted(text)
    position = 0

    for section in _SECTION_RE.finditer(masked):
        _check_outside(text[position:section.start()], masked[position:section.start()], unrecognized)
        position = section.end()

        group_name = section.group("name").upper()
        if group_name == "END":
            raise ConfigError("Namelist has an $END without a group header")
        nested = _HEADER_RE.search(section.group("body"))
        if nested is not None:
            raise ConfigError(f"Namelist group ${group_name} has no $END before ${nested.group('name').upper()}")

        if not catalog.has_group(group_name):
            logger.error(f"Unrecognized namelist group ${group_name}")
            unrecognized.append(f"${group_name}")
            continue

        for [name, chunk] in split_assignments(text[section.start("body"):section.end("body")]):
            binding = catalog.lookup(name)
            if binding is None:
                logger.error(f"Unrecognized namelist variable {name} in group ${group_name}")
                unrecognized.append(name)
                continue

            parameter = binding.parameter
            tokens = split_values(chunk)
            if len(tokens) == 0:
                raise NamelistValueError(name, chunk.strip(), "no value given")

            if not parameter.is_array:
                if len(tokens) > 1:
                    raise NamelistValueError(name, chunk.strip(), "expects a single value")
                parameter.setter.assign(values, parameter, 0, tokens[0])
                continue

            start = next_slot.get(name, 0)
            for [offset, token] in enumerate(tokens):
                parameter.setter.assign(values, parameter, start + offset, token)
            next_slot[name] = start + len(tokens)

    _check_outside(text[position:], masked[position:], unrecognized)

    if unrecognized:
        logger.error(f"Found {len(unrecognized)} unrecognized name(s) in the namelist")
        raise UnrecognizedNameError(unrecognized)

    return catalog.snapshot(values)


def _check_outside(text: str, masked: str, unrecognized: list[str]):
    """Text between sections may only hold blanks; assignments there belong to no group."""
    header = _HEADER_RE.search(masked)
    if header is not None:
        name = header.group("name").upper()
        if name == "END":
            raise ConfigError("Namelist has an $END without a group header")
        raise ConfigError(f"Namelist group ${name} has no $END")

    for [name, _] in split_assignments(text):
        logger.error(f"Namelist variable {name} is outside of any group")
        unrecognized.append(name)
