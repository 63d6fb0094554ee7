"""Functions for supercell expansion, G-vector enumeration and plane meshes.

Extended Summary
----------------
This module implements the crystal builder: it expands the unit-cell basis
into a supercell, enumerates the reciprocal-lattice points inside a cutoff
sphere and builds a drawable quadrilateral for each requested (hkl) plane.

Routine Listings
----------------
expand_supercell : function
    Tile basis atoms over an (nx, ny, nz) block of unit cells
hkl_search_radius : function
    Half-width of the Miller-index box that contains the cutoff sphere
generate_reciprocal_points : function
    Sorted G-vectors with |G| <= g_max, excluding the origin
miller_to_reciprocal : function
    Cartesian reciprocal vector for Miller indices
plane_mesh : function
    Two-triangle quadrilateral for one (hkl) plane
plane_outside_supercell : function
    Whether a plane misses the supercell entirely
default_plane_size : function
    Half-extent used when a plane has no explicit size
build_crystal_structure : function
    Complete crystal builder pipeline

Notes
-----
Array shapes depend on the request (atom count, number of G-vectors), so
these functions run eagerly rather than under `jax.jit`.
"""

import logging
import math

import jax
import jax.numpy as jnp
from beartype import beartype
from beartype.typing import List, Tuple
from jaxtyping import Array, Bool, Float, Int, jaxtyped

from latticelab import config
from latticelab.errors import InvalidInputError
from latticelab.types import (
    BasisAtom,
    CrystalBuild,
    CrystalBuildRequest,
    PlaneMesh,
    PlaneSpec,
    ReciprocalLattice,
    SupercellAtoms,
    create_reciprocal_lattice,
    create_supercell_atoms,
    scalar_float,
)

from .geometry import basis_for, lattice_condition_number, reciprocal_basis

jax.config.update("jax_enable_x64", True)
logger = logging.getLogger(__name__)


@jaxtyped(typechecker=beartype)
def expand_supercell(
    basis_atoms: Tuple[BasisAtom, ...],
    real_basis: Float[Array, "3 3"],
    supercell: Tuple[int, int, int],
) -> SupercellAtoms:
    """Tile the basis atoms over a block of unit cells.

    Parameters
    ----------
    basis_atoms : Tuple[BasisAtom, ...]
        Unit-cell basis in fractional coordinates.
    real_basis : Float[Array, "3 3"]
        Real-space basis A, rows are lattice vectors.
    supercell : Tuple[int, int, int]
        Number of cells (nx, ny, nz) along each lattice vector.

    Returns
    -------
    SupercellAtoms
        nx * ny * nz * len(basis_atoms) atoms. The cell offset loop is
        outermost with x slowest, atoms follow the basis order inside each
        cell.

    Algorithm
    ---------
    - Build all integer offsets (i, j, k) with `indexing="ij"` so that the
      flattened order is x-major
    - Broadcast offsets against basis fractions to shape (cells, atoms, 3)
    - Flatten, then map fractional rows to Cartesian with frac @ A
    """
    nx, ny, nz = supercell
    ii, jj, kk = jnp.meshgrid(
        jnp.arange(nx), jnp.arange(ny), jnp.arange(nz), indexing="ij"
    )
    offsets: Float[Array, "C 3"] = jnp.stack(
        [ii.ravel(), jj.ravel(), kk.ravel()], axis=-1
    ).astype(jnp.float64)
    basis_frac: Float[Array, "P 3"] = jnp.stack(
        [atom.frac for atom in basis_atoms]
    )
    frac: Float[Array, "N 3"] = (
        offsets[:, None, :] + basis_frac[None, :, :]
    ).reshape(-1, 3)
    positions: Float[Array, "N 3"] = frac @ real_basis
    n_cells = offsets.shape[0]
    elements = tuple(atom.element for atom in basis_atoms) * n_cells
    magmoms = tuple(atom.magmom for atom in basis_atoms) * n_cells
    return create_supercell_atoms(frac, positions, elements, magmoms)


@jaxtyped(typechecker=beartype)
def hkl_search_radius(
    recip_basis: Float[Array, "3 3"], g_max: scalar_float
) -> int:
    """Half-width n of the box [-n, n]^3 that contains |G| <= g_max.

    Uses ceil(g_max / min_i |B_i|) + 1. For strongly oblique cells this is a
    heuristic bound, the extra shell covers typical skew.
    """
    shortest = float(jnp.min(jnp.linalg.norm(recip_basis, axis=1)))
    return int(math.ceil(float(g_max) / shortest)) + 1


@jaxtyped(typechecker=beartype)
def miller_to_reciprocal(
    hkl: Int[Array, "... 3"], recip_basis: Float[Array, "3 3"]
) -> Float[Array, "... 3"]:
    """G = h B_0 + k B_1 + l B_2 for one or many Miller triples."""
    return hkl.astype(jnp.float64) @ recip_basis


@jaxtyped(typechecker=beartype)
def generate_reciprocal_points(
    recip_basis: Float[Array, "3 3"],
    g_max: scalar_float,
) -> ReciprocalLattice:
    """Enumerate reciprocal-lattice vectors inside a cutoff sphere.

    Parameters
    ----------
    recip_basis : Float[Array, "3 3"]
        Reciprocal basis B, rows are reciprocal vectors.
    g_max : scalar_float
        Cutoff radius in 1/Angstrom.

    Returns
    -------
    ReciprocalLattice
        All G with 0 < |G| <= g_max, sorted by |G| and then by (h, k, l).

    Raises
    ------
    InvalidInputError
        If the search box would exceed `config.MAX_HKL_CANDIDATES` points.

    Algorithm
    ---------
    - Compute the box half-width n from the shortest reciprocal vector
    - Build the (2n+1)^3 Miller grid and map it to Cartesian G
    - Keep rows with |G| <= g_max and hkl != (0, 0, 0)
    - Sort with `jnp.lexsort` on (l, k, h, rounded |G|); |G| is rounded to
      `config.G_SORT_DECIMALS` so symmetry-equivalent points tie exactly
    """
    n = hkl_search_radius(recip_basis, g_max)
    n_candidates = (2 * n + 1) ** 3
    if n_candidates > config.MAX_HKL_CANDIDATES:
        raise InvalidInputError(
            f"search box of {n_candidates} Miller triples exceeds the limit "
            f"of {config.MAX_HKL_CANDIDATES}; lower gMax",
            "reciprocal.gMax",
        )
    logger.debug("Enumerating G-vectors in [-%d, %d]^3", n, n)
    span: Int[Array, "S"] = jnp.arange(-n, n + 1)
    hh, kk, ll = jnp.meshgrid(span, span, span, indexing="ij")
    hkl: Int[Array, "C 3"] = jnp.stack(
        [hh.ravel(), kk.ravel(), ll.ravel()], axis=-1
    )
    g_all: Float[Array, "C 3"] = miller_to_reciprocal(hkl, recip_basis)
    g_norm: Float[Array, "C"] = jnp.linalg.norm(g_all, axis=1)
    is_origin: Bool[Array, "C"] = jnp.all(hkl == 0, axis=1)
    keep: Bool[Array, "C"] = (g_norm <= g_max) & (~is_origin)
    hkl_kept = hkl[keep]
    g_kept = g_all[keep]
    sort_key = jnp.round(g_norm[keep], config.G_SORT_DECIMALS)
    order = jnp.lexsort(
        (hkl_kept[:, 2], hkl_kept[:, 1], hkl_kept[:, 0], sort_key)
    )
    return create_reciprocal_lattice(
        recip_basis, g_kept[order], hkl_kept[order]
    )


@jaxtyped(typechecker=beartype)
def default_plane_size(
    real_basis: Float[Array, "3 3"], supercell: Tuple[int, int, int]
) -> float:
    """Longest lattice vector times the largest supercell multiplier."""
    longest = float(jnp.max(jnp.linalg.norm(real_basis, axis=1)))
    return longest * max(supercell)


@jaxtyped(typechecker=beartype)
def plane_mesh(
    hkl: Tuple[int, int, int],
    recip_basis: Float[Array, "3 3"],
    offset: scalar_float,
    size: scalar_float,
) -> PlaneMesh:
    """Quadrilateral patch of the plane n . r = offset.

    Parameters
    ----------
    hkl : Tuple[int, int, int]
        Miller indices, not all zero.
    recip_basis : Float[Array, "3 3"]
        Reciprocal basis B.
    offset : scalar_float
        Signed distance of the plane from the origin along n.
    size : scalar_float
        Half-extent of the square along each in-plane axis.

    Returns
    -------
    PlaneMesh
        Four vertices and two triangles, counter-clockwise seen from +n.

    Algorithm
    ---------
    - n = normalize(h B_0 + k B_1 + l B_2)
    - Pick the Cartesian axis least aligned with n as a helper
    - u = normalize(helper x n), v = n x u, hence u x v = n
    - Vertices c - su - sv, c + su - sv, c + su + sv, c - su + sv
    - Faces (0, 1, 2) and (0, 2, 3)
    """
    if hkl == (0, 0, 0):
        raise InvalidInputError(
            "Miller indices (0, 0, 0) do not define a plane", "hkl"
        )
    hkl_arr: Int[Array, "3"] = jnp.asarray(hkl, dtype=jnp.int64)
    g_vec: Float[Array, "3"] = miller_to_reciprocal(hkl_arr, recip_basis)
    normal: Float[Array, "3"] = g_vec / jnp.linalg.norm(g_vec)
    helper: Float[Array, "3"] = jnp.eye(3, dtype=jnp.float64)[
        jnp.argmin(jnp.abs(normal))
    ]
    u_axis: Float[Array, "3"] = jnp.cross(helper, normal)
    u_axis = u_axis / jnp.linalg.norm(u_axis)
    v_axis: Float[Array, "3"] = jnp.cross(normal, u_axis)
    center: Float[Array, "3"] = offset * normal
    corners: Float[Array, "4 2"] = jnp.array(
        [[-1.0, -1.0], [1.0, -1.0], [1.0, 1.0], [-1.0, 1.0]]
    )
    vertices: Float[Array, "4 3"] = (
        center[None, :]
        + size * corners[:, 0:1] * u_axis[None, :]
        + size * corners[:, 1:2] * v_axis[None, :]
    )
    faces: Int[Array, "2 3"] = jnp.array([[0, 1, 2], [0, 2, 3]], dtype=jnp.int64)
    return PlaneMesh(hkl_arr, normal, vertices, faces)


@jaxtyped(typechecker=beartype)
def plane_outside_supercell(
    normal: Float[Array, "3"],
    offset: scalar_float,
    real_basis: Float[Array, "3 3"],
    supercell: Tuple[int, int, int],
) -> bool:
    """True if the plane n . r = offset misses the supercell parallelepiped.

    The supercell is convex, so it is enough to compare `offset` with the
    range of n . corner over its eight corners.
    """
    picks = jnp.array(
        [[i, j, k] for i in (0, 1) for j in (0, 1) for k in (0, 1)],
        dtype=jnp.float64,
    )
    corners = (picks * jnp.asarray(supercell, dtype=jnp.float64)) @ real_basis
    heights = corners @ normal
    lowest = float(jnp.min(heights))
    highest = float(jnp.max(heights))
    tol = 1e-9 * max(1.0, abs(lowest), abs(highest))
    return bool(offset < lowest - tol or offset > highest + tol)


def _plane_warnings(
    spec: PlaneSpec,
    mesh: PlaneMesh,
    real_basis: Float[Array, "3 3"],
    supercell: Tuple[int, int, int],
) -> List[str]:
    if plane_outside_supercell(mesh.normal, spec.offset, real_basis, supercell):
        h, k, l = spec.hkl  # noqa: E741
        return [
            f"plane ({h} {k} {l}) at offset {spec.offset:g} lies entirely "
            f"outside the {supercell[0]}x{supercell[1]}x{supercell[2]} supercell"
        ]
    return []


def build_crystal_structure(request: CrystalBuildRequest) -> CrystalBuild:
    """Run the full crystal builder on a validated request.

    Parameters
    ----------
    request : CrystalBuildRequest
        Output of `create_crystal_build_request`.

    Returns
    -------
    CrystalBuild
        Real and reciprocal bases, expanded atoms, G-vectors, plane meshes
        and non-fatal warnings.

    Raises
    ------
    DegenerateLatticeError
        If the real-space basis is singular.
    InvalidInputError
        If the G-vector search box is too large.
    """
    warnings: List[str] = []
    real_basis = basis_for(request.lattice)
    recip_basis = reciprocal_basis(real_basis)
    condition = lattice_condition_number(real_basis)
    if condition > config.ILL_CONDITIONED:
        warnings.append(
            f"lattice basis is nearly degenerate (condition number {condition:.3g})"
        )

    atoms = expand_supercell(request.basis, real_basis, request.supercell)
    reciprocal = generate_reciprocal_points(recip_basis, request.g_max)
    if reciprocal.g_points.shape[0] == 0:
        warnings.append(
            f"no reciprocal lattice points within gMax = {request.g_max:g}"
        )

    meshes = []
    fallback_size = default_plane_size(real_basis, request.supercell)
    for spec in request.planes:
        size = fallback_size if spec.size is None else spec.size
        mesh = plane_mesh(spec.hkl, recip_basis, spec.offset, size)
        warnings.extend(_plane_warnings(spec, mesh, real_basis, request.supercell))
        meshes.append(mesh)

    return CrystalBuild(
        real_basis=real_basis,
        origin=jnp.zeros(3, dtype=jnp.float64),
        atoms=atoms,
        reciprocal=reciprocal,
        planes=tuple(meshes),
        warnings=tuple(warnings),
    )
