"""
Exceptions raised by the configuration and registry machinery.

Three kinds of failure are distinguished:
- schema defects, i.e. programming errors in a declaration table;
- user input errors in the namelist text;
- lifecycle violations between field storage and the registry.

All of them are fatal for a run.
"""


class RamsCoreError(Exception):
    """Base class of all errors raised by this package."""


class ConfigError(RamsCoreError):
    """Something is wrong with the configuration."""


class SchemaError(ConfigError):
    """A declaration table is inconsistent. This is a defect of the code, not of the input."""


class NamelistValueError(ConfigError):
    """A value in the namelist text is malformed or out of range."""

    def __init__(self, name: str, token: str, reason: str):
        self.name = name
        self.token = token
        self.reason = reason
        super().__init__(f"Namelist variable {name} = {token!r}: {reason}")


class UnrecognizedNameError(ConfigError):
    """The namelist text mentions names that no group declares."""

    def __init__(self, names: list[str]):
        self.names = list(names)
        super().__init__(
            f"{len(self.names)} unrecognized namelist name(s): {', '.join(self.names)}"
        )


class RegistryError(RamsCoreError):
    """Misuse of a variable registry."""


class LifecycleError(RegistryError):
    """Field storage and its registry entry (or instrumentation) are out of step."""
