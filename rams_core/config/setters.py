"""
Typed setters: text token -> checked value -> target slot.

Each setter knows one value kind. It converts a token taken from the namelist
text, validates it against the declared bounds and writes it into the slot
of a parameter inside a plain dict of values.
"""

import re
import typing as _t

from rams_core.errors import NamelistValueError

if _t.TYPE_CHECKING:
    from rams_core.config.schema import ConfigParameter


_INTEGER_RE = re.compile(r"^[+-]?\d+$")
# Fortran style reals: 1. / .5 / 1e3 / 1.0d-2 / -3
_REAL_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eEdD][+-]?\d+)?$")


class Setter:
    """Common behaviour of all setters."""

    kind: str = ""

    def convert(self, parameter: "ConfigParameter", token: str):
        raise NotImplementedError

    def check(self, parameter: "ConfigParameter", value, token: str):
        raise NotImplementedError

    def assign(self, values: dict, parameter: "ConfigParameter", index: int, token: str):
        """Convert and check the token, then write it into slot `index` of the parameter."""
        value = self.convert(parameter, token)
        self.check(parameter, value, token)

        if not 0 <= index < parameter.size:
            raise NamelistValueError(
                parameter.name, token,
                f"too many values, {parameter.name} holds at most {parameter.size}",
            )

        if parameter.is_array:
            values[parameter.name][index] = value
        else:
            values[parameter.name] = value
        return value


class _NumericSetter(Setter):

    def check(self, parameter, value, token):
        # bounds are inclusive
        if not parameter.min <= value <= parameter.max:
            raise NamelistValueError(
                parameter.name, token,
                f"out of range, valid bounds are [{parameter.min}, {parameter.max}]",
            )


class IntegerSetter(_NumericSetter):

    kind = "integer"

    def convert(self, parameter, token):
        if not _INTEGER_RE.match(token):
            raise NamelistValueError(parameter.name, token, "not an integer")
        return int(token)


class RealSetter(_NumericSetter):

    kind = "real"

    def convert(self, parameter, token):
        if not _REAL_RE.match(token):
            raise NamelistValueError(parameter.name, token, "not a real number")
        return float(token.replace("d", "e").replace("D", "e"))


class StringSetter(Setter):

    kind = "string"

    def convert(self, parameter, token):
        if len(token) >= 2 and token[0] == token[-1] and token[0] in "'\"":
            return token[1:-1]
        if any(quote in token for quote in "'\""):
            raise NamelistValueError(parameter.name, token, "unbalanced quotes")
        return token

    def check(self, parameter, value, token):
        if len(value) > parameter.max_length:
            raise NamelistValueError(
                parameter.name, token,
                f"string longer than {parameter.max_length} characters",
            )


SETTERS: dict[str, Setter] = {
    setter.kind: setter for setter in (IntegerSetter(), RealSetter(), StringSetter())
}


def setter_for(kind: str) -> Setter:
    try:
        return SETTERS[kind]
    except KeyError:
        raise ValueError(f"Unknown parameter kind: {kind}") from None
