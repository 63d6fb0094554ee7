"""Custom types and data structures for the computation engine.

Extended Summary
----------------
This module defines the immutable request and result structures of the three
engine components. Result structures are PyTrees registered with JAX so they
pass through `jax.jit`, `jax.vmap` and `jax.tree_util` unchanged. Request
structures are built through `create_*` factory functions that validate the
caller's input and raise `InvalidInputError` on the first violation.

Routine Listings
----------------
LatticeKind, TBLattice, IntensityModel : enum
    Closed tag sets for the three dispatch points
LatticeParams, BasisAtom, PlaneSpec, CrystalBuildRequest : class
    Crystal builder input
SupercellAtoms, ReciprocalLattice, PlaneMesh, CrystalBuild : class
    Crystal builder output
ReciprocalCloud, Beam, Detector, EwaldRequest : class
    Ewald solver input
EwaldPattern : class
    Ewald solver output
TBParams, KPoint, KPath, DOSOptions, TBRequest : class
    Tight-binding input
KPathSamples, BandStructure, DensityOfStates, TBResult : class
    Tight-binding output

Type Aliases
------------
- `scalar_float`, `non_jax_number`
"""

from .crystal_types import (
    BasisAtom,
    CrystalBuild,
    CrystalBuildRequest,
    LatticeKind,
    LatticeParams,
    PlaneMesh,
    PlaneSpec,
    ReciprocalLattice,
    SupercellAtoms,
    create_basis_atom,
    create_crystal_build_request,
    create_lattice_params,
    create_plane_spec,
    create_reciprocal_lattice,
    create_supercell_atoms,
)
from .custom_types import (
    ClosedEnum,
    non_jax_number,
    scalar_float,
)
from .ewald_types import (
    Beam,
    Detector,
    EwaldPattern,
    EwaldRequest,
    IntensityModel,
    ReciprocalCloud,
    create_beam,
    create_detector,
    create_ewald_pattern,
    create_ewald_request,
    create_reciprocal_cloud,
)
from .tb_types import (
    BandStructure,
    DensityOfStates,
    DOSOptions,
    KPath,
    KPathSamples,
    KPoint,
    TBLattice,
    TBParams,
    TBRequest,
    TBResult,
    create_band_structure,
    create_dos_options,
    create_kpath,
    create_kpoint,
    create_tb_params,
    create_tb_request,
)

__all__ = [
    "ClosedEnum",
    "scalar_float",
    "non_jax_number",
    "LatticeKind",
    "LatticeParams",
    "BasisAtom",
    "PlaneSpec",
    "CrystalBuildRequest",
    "SupercellAtoms",
    "ReciprocalLattice",
    "PlaneMesh",
    "CrystalBuild",
    "create_lattice_params",
    "create_basis_atom",
    "create_plane_spec",
    "create_crystal_build_request",
    "create_supercell_atoms",
    "create_reciprocal_lattice",
    "IntensityModel",
    "ReciprocalCloud",
    "Beam",
    "Detector",
    "EwaldRequest",
    "EwaldPattern",
    "create_reciprocal_cloud",
    "create_beam",
    "create_detector",
    "create_ewald_request",
    "create_ewald_pattern",
    "TBLattice",
    "TBParams",
    "KPoint",
    "KPath",
    "DOSOptions",
    "TBRequest",
    "KPathSamples",
    "BandStructure",
    "DensityOfStates",
    "TBResult",
    "create_tb_params",
    "create_kpoint",
    "create_kpath",
    "create_dos_options",
    "create_tb_request",
    "create_band_structure",
]
