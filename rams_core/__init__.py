"""
Core of a RAMS-style atmospheric model.

- config: namelist parsing into an immutable configuration snapshot
- registry: per-grid catalog of model fields and their output / sync intents
- output: output streams and halo exchange driven by the registries
- physics: model memory and the Coriolis tendencies
- run: black-box model execution
"""

__version__ = "0.1.0"
