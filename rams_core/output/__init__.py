"""
Output module: serialization and synchronization of registered fields.

Provides:
- OutputSyncDriver: walks the registries on every output / exchange cycle
- Subdomain: the part of a grid held by this process
- NpyIO: the serializer writing .npy files per stream

The muGrid halo exchange lives in `rams_core.output.exchange`.
"""

from .io import NpyIO, Stream
from .driver import OutputSyncDriver, Stencil, HaloExchanger, Subdomain, selected_lite_vars, whole_domain
