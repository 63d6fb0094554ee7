"""
=========================================================

LATTICELAB Package (:mod:`latticelab`)

=========================================================

This is the root of the latticelab package, containing submodules for:
- Custom types (`types`)
- Lattice geometry and crystal building (`ucell`)
- Ewald diffraction (`simul`)
- Tight-binding bands and DOS (`tb`)
- JSON payload I/O and request hashing (`inout`)
- The engine operations (`engine`)

Each submodule can be directly accessed after importing latticelab.
"""

import jax

jax.config.update("jax_enable_x64", True)

from . import config, engine, errors, inout, simul, tb, types, ucell  # noqa: E402
