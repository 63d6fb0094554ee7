"""Unit cell and crystallographic utilities.

Extended Summary
----------------
This module provides the lattice geometry (real and reciprocal bases) and the
crystal builder (supercell expansion, G-vector enumeration, plane meshes).

Routine Listings
----------------
basis_for : function
    Real-space basis for a lattice kind
reciprocal_basis : function
    Reciprocal basis B = 2 pi (A^-1)^T
is_singular : function
    Singularity test for a basis
lattice_condition_number : function
    Condition number of a basis
expand_supercell : function
    Tile basis atoms over a block of unit cells
hkl_search_radius : function
    Miller-index box half-width for a cutoff
miller_to_reciprocal : function
    Cartesian G for Miller indices
generate_reciprocal_points : function
    Sorted G-vectors within a cutoff
default_plane_size : function
    Fallback half-extent of plane meshes
plane_mesh : function
    Quadrilateral mesh of an (hkl) plane
plane_outside_supercell : function
    Whether a plane misses the supercell
build_crystal_structure : function
    Full crystal builder pipeline
"""

from .geometry import (
    basis_for,
    is_singular,
    lattice_condition_number,
    reciprocal_basis,
)
from .unitcell import (
    build_crystal_structure,
    default_plane_size,
    expand_supercell,
    generate_reciprocal_points,
    hkl_search_radius,
    miller_to_reciprocal,
    plane_mesh,
    plane_outside_supercell,
)

__all__ = [
    "basis_for",
    "reciprocal_basis",
    "is_singular",
    "lattice_condition_number",
    "expand_supercell",
    "hkl_search_radius",
    "miller_to_reciprocal",
    "generate_reciprocal_points",
    "default_plane_size",
    "plane_mesh",
    "plane_outside_supercell",
    "build_crystal_structure",
]
