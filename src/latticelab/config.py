"""
Engine Configuration
====================
Central registry for the numeric tolerances, request defaults and resource
limits used by the computation engine.

All values are plain module constants. The only environment-driven setting is
the log level, read from ``LATTICELAB_LOG_LEVEL``.

Exports:
    Tolerances: DET_TOL, ILL_CONDITIONED, UNIT_TOL, ORTHO_TOL, EWALD_ABS_TOL,
        EWALD_REL_TOL, ZERO_G_TOL, PARALLEL_TOL, G_SORT_DECIMALS
    Defaults: DEFAULT_G_MAX, DEFAULT_HEX_C, DEFAULT_SIGMA,
        DEFAULT_N_PER_SEGMENT, DEFAULT_NE, DEFAULT_ETA, DOS_MARGIN_ETAS
    Limits: N_PER_SEGMENT_RANGE, NE_RANGE, MAX_KPATH_VERTICES,
        MAX_SUPERCELL_ATOMS, MAX_HKL_CANDIDATES
    LOG_LEVELS (tuple): Accepted logging level names.
    env_log_level: CLI default level, validated against LOG_LEVELS.
"""
import os

import jax

jax.config.update("jax_enable_x64", True)

# Lattice geometry
DET_TOL: float = 1e-9
ILL_CONDITIONED: float = 1e8
DEFAULT_HEX_C: float = 5.0

# Crystal builder
DEFAULT_G_MAX: float = 8.0
G_SORT_DECIMALS: int = 9
MAX_SUPERCELL_ATOMS: int = 250_000
MAX_HKL_CANDIDATES: int = 2_000_000

# Ewald solver, all tolerances in reciprocal Angstrom unless noted
UNIT_TOL: float = 1e-6
ORTHO_TOL: float = 1e-6
EWALD_ABS_TOL: float = 1e-6
EWALD_REL_TOL: float = 1e-2
ZERO_G_TOL: float = 1e-9
PARALLEL_TOL: float = 1e-9
DEFAULT_SIGMA: float = 1.0

# Tight binding
DEFAULT_N_PER_SEGMENT: int = 200
N_PER_SEGMENT_RANGE: tuple = (10, 800)
MAX_KPATH_VERTICES: int = 64
DEFAULT_NE: int = 1200
NE_RANGE: tuple = (200, 4000)
DEFAULT_ETA: float = 0.03
DOS_MARGIN_ETAS: float = 100.0

LOG_LEVELS: tuple = ("DEBUG", "INFO", "WARNING", "ERROR")


def env_log_level(default: str = "INFO") -> str:
    """``LATTICELAB_LOG_LEVEL`` if it names one of `LOG_LEVELS`, else `default`."""
    value = os.environ.get("LATTICELAB_LOG_LEVEL", default).strip().upper()
    return value if value in LOG_LEVELS else default
