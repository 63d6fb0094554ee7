"""
Module: types.crystal_types
---------------------------
Data structures and factory functions for the crystal builder.

Enumerations
------------
- `LatticeKind`:
    Closed set of supported lattice kinds

Classes
-------
- `LatticeParams`:
    Lattice kind with scalar lengths, angles and optional explicit basis
- `BasisAtom`:
    One atom of the unit-cell basis in fractional coordinates
- `PlaneSpec`:
    A family of lattice planes requested for meshing
- `CrystalBuildRequest`:
    Validated input of the crystal builder
- `SupercellAtoms`:
    JAX-compatible expanded atom list
- `ReciprocalLattice`:
    JAX-compatible reciprocal basis and enumerated G-vectors
- `PlaneMesh`:
    JAX-compatible triangulated quadrilateral for one (hkl) plane
- `CrystalBuild`:
    JAX-compatible result of the crystal builder

Factory Functions
-----------------
- `create_lattice_params`
- `create_basis_atom`
- `create_plane_spec`
- `create_crystal_build_request`
- `create_supercell_atoms`
- `create_reciprocal_lattice`
"""

import math

import jax.numpy as jnp
from beartype import beartype
from beartype.typing import NamedTuple, Optional, Sequence, Tuple
from jax.tree_util import register_pytree_node_class
from jaxtyping import Array, Float, Int, jaxtyped

from latticelab import config
from latticelab.errors import InvalidInputError

from .custom_types import ClosedEnum, non_jax_number


class LatticeKind(ClosedEnum):
    """Supported real-space lattice kinds."""

    SC = "sc"
    BCC = "bcc"
    FCC = "fcc"
    HEX = "hex"
    CUSTOM = "custom"


class LatticeParams(NamedTuple):
    """
    Description
    -----------
    Lattice parameters as received from the caller.

    Attributes
    ----------
    - `kind` (LatticeKind):
        Which closed-form basis to build
    - `a` (float):
        Primary lattice length in Angstroms, strictly positive
    - `b`, `c` (Optional[float]):
        Secondary lengths. Only `c` is used (by `hex`).
    - `alpha`, `beta`, `gamma` (Optional[float]):
        Cell angles in degrees. Accepted and hashed, not used by the
        closed-form kinds.
    - `basis` (Optional[Float[Array, "3 3"]]):
        Explicit real-space basis, rows are lattice vectors. Required for
        `custom`.
    """

    kind: LatticeKind
    a: float
    b: Optional[float]
    c: Optional[float]
    alpha: Optional[float]
    beta: Optional[float]
    gamma: Optional[float]
    basis: Optional[Float[Array, "3 3"]]


def _finite(value: float, field: str) -> float:
    if isinstance(value, bool):
        raise InvalidInputError("must be a number, got a boolean", field)
    try:
        value = float(value)
    except (TypeError, ValueError) as err:
        raise InvalidInputError(f"must be a number, got {value!r}", field) from err
    if not math.isfinite(value):
        raise InvalidInputError("must be a finite number", field)
    return value


def _positive(value: float, field: str) -> float:
    value = _finite(value, field)
    if value <= 0.0:
        raise InvalidInputError(f"must be > 0, got {value}", field)
    return value


def _as_array(values, field: str, dtype=jnp.float64) -> jnp.ndarray:
    try:
        return jnp.asarray(values, dtype=dtype)
    except (TypeError, ValueError) as err:
        raise InvalidInputError(f"is not a numeric array ({err})", field) from err


def _vector3(values: Sequence[non_jax_number], field: str) -> Float[Array, "3"]:
    vec = _as_array(values, field)
    if vec.shape != (3,):
        raise InvalidInputError(
            f"must have exactly 3 components, got shape {vec.shape}", field
        )
    if not bool(jnp.all(jnp.isfinite(vec))):
        raise InvalidInputError("components must be finite", field)
    return vec


def _matrix3(values, field: str) -> Float[Array, "3 3"]:
    mat = _as_array(values, field)
    if mat.shape != (3, 3):
        raise InvalidInputError(
            f"must be three 3-vectors, got shape {mat.shape}", field
        )
    if not bool(jnp.all(jnp.isfinite(mat))):
        raise InvalidInputError("entries must be finite", field)
    return mat


def create_lattice_params(
    kind: str,
    a: non_jax_number,
    b: Optional[non_jax_number] = None,
    c: Optional[non_jax_number] = None,
    alpha: Optional[non_jax_number] = None,
    beta: Optional[non_jax_number] = None,
    gamma: Optional[non_jax_number] = None,
    basis=None,
) -> LatticeParams:
    """
    Description
    -----------
    Factory function for `LatticeParams` with schema-level validation.

    Raises
    ------
    - `InvalidInputError`:
        Unknown kind, non-positive length, angle outside (0, 180), or a
        missing or malformed basis for `custom`.

    Flow
    ----
    - Parse `kind` into the closed `LatticeKind` set
    - Check `a` (and `b`, `c` when present) are finite and positive
    - Check angles, when present, lie strictly between 0 and 180 degrees
    - Convert `basis` to a (3, 3) float64 array when present
    - Require `basis` for `custom`
    """
    lattice_kind = LatticeKind.parse(kind, "kind")
    a = _positive(a, "a")
    b = None if b is None else _positive(b, "b")
    c = None if c is None else _positive(c, "c")
    angles = []
    for name, angle in (("alpha", alpha), ("beta", beta), ("gamma", gamma)):
        if angle is not None:
            angle = _finite(angle, name)
            if not 0.0 < angle < 180.0:
                raise InvalidInputError(
                    f"must lie in (0, 180) degrees, got {angle}", name
                )
        angles.append(angle)
    if basis is not None:
        basis = _matrix3(basis, "A")
    if lattice_kind is LatticeKind.CUSTOM and basis is None:
        raise InvalidInputError("is required when kind is 'custom'", "A")
    return LatticeParams(lattice_kind, a, b, c, *angles, basis)


class BasisAtom(NamedTuple):
    """One basis atom; `frac` is conventionally in [0, 1) but not enforced."""

    element: str
    frac: Float[Array, "3"]
    magmom: Optional[float]


def create_basis_atom(
    element: str,
    frac: Sequence[non_jax_number],
    magmom: Optional[non_jax_number] = None,
) -> BasisAtom:
    if not isinstance(element, str) or not element.strip():
        raise InvalidInputError("must be a non-empty string", "element")
    frac_vec = _vector3(frac, "frac")
    if magmom is not None:
        magmom = _finite(magmom, "magmom")
    return BasisAtom(element, frac_vec, magmom)


class PlaneSpec(NamedTuple):
    """
    Description
    -----------
    A family of lattice planes indexed by Miller indices.

    Attributes
    ----------
    - `hkl` (Tuple[int, int, int]):
        Miller indices, not all zero
    - `offset` (float):
        Signed distance of the plane from the origin along its unit normal
    - `size` (Optional[float]):
        Half-extent of the drawn quadrilateral. None selects the default.
    """

    hkl: Tuple[int, int, int]
    offset: float
    size: Optional[float]


def _integer(value, field: str) -> int:
    if isinstance(value, bool):
        raise InvalidInputError("must be an integer", field)
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int):
        raise InvalidInputError(f"must be an integer, got {value!r}", field)
    return value


def create_plane_spec(
    h: int,
    k: int,
    l: int,  # noqa: E741
    offset: non_jax_number = 0.0,
    size: Optional[non_jax_number] = None,
) -> PlaneSpec:
    hkl = (_integer(h, "h"), _integer(k, "k"), _integer(l, "l"))
    if hkl == (0, 0, 0):
        raise InvalidInputError(
            "Miller indices (0, 0, 0) do not define a plane", "hkl"
        )
    offset = _finite(offset, "offset")
    if size is not None:
        size = _positive(size, "size")
    return PlaneSpec(hkl, offset, size)


class CrystalBuildRequest(NamedTuple):
    """Validated crystal builder input."""

    lattice: LatticeParams
    basis: Tuple[BasisAtom, ...]
    supercell: Tuple[int, int, int]
    g_max: float
    planes: Tuple[PlaneSpec, ...]


def create_crystal_build_request(
    lattice: LatticeParams,
    basis: Sequence[BasisAtom],
    supercell: Sequence[int] = (1, 1, 1),
    g_max: non_jax_number = config.DEFAULT_G_MAX,
    planes: Sequence[PlaneSpec] = (),
) -> CrystalBuildRequest:
    """
    Description
    -----------
    Factory function for `CrystalBuildRequest`.

    Raises
    ------
    - `InvalidInputError`:
        Empty basis, supercell entries below 1, non-positive `g_max`, or a
        supercell whose atom count exceeds `config.MAX_SUPERCELL_ATOMS`.
    """
    basis = tuple(basis)
    if not basis:
        raise InvalidInputError("must contain at least one atom", "basis")
    if len(supercell) != 3:
        raise InvalidInputError("must have exactly 3 entries", "supercell")
    cells = tuple(
        _integer(n, f"supercell[{axis}]") for axis, n in enumerate(supercell)
    )
    for axis, n in enumerate(cells):
        if n < 1:
            raise InvalidInputError(f"must be >= 1, got {n}", f"supercell[{axis}]")
    n_atoms = cells[0] * cells[1] * cells[2] * len(basis)
    if n_atoms > config.MAX_SUPERCELL_ATOMS:
        raise InvalidInputError(
            f"expands to {n_atoms} atoms, limit is {config.MAX_SUPERCELL_ATOMS}",
            "supercell",
        )
    g_max = _positive(g_max, "reciprocal.gMax")
    return CrystalBuildRequest(lattice, basis, cells, g_max, tuple(planes))


@register_pytree_node_class
class SupercellAtoms(NamedTuple):
    """
    Description
    -----------
    Expanded atom list. Rows of `frac` and `positions` and entries of
    `elements` and `magmoms` are index-aligned.

    Attributes
    ----------
    - `frac` (Float[Array, "N 3"]):
        Fractional coordinates relative to the unit cell, offset by the
        integer cell index
    - `positions` (Float[Array, "N 3"]):
        Cartesian coordinates in Angstroms
    - `elements` (Tuple[str, ...]):
        Element labels, carried as auxiliary PyTree data
    - `magmoms` (Tuple[Optional[float], ...]):
        Magnetic moments copied from the basis, auxiliary PyTree data
    """

    frac: Float[Array, "N 3"]
    positions: Float[Array, "N 3"]
    elements: Tuple[str, ...]
    magmoms: Tuple[Optional[float], ...]

    def tree_flatten(self):
        return (self.frac, self.positions), (self.elements, self.magmoms)

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        elements, magmoms = aux_data
        return cls(*children, elements, magmoms)


@jaxtyped(typechecker=beartype)
def create_supercell_atoms(
    frac: Float[Array, "N 3"],
    positions: Float[Array, "N 3"],
    elements: Tuple[str, ...],
    magmoms: Tuple[Optional[float], ...],
) -> SupercellAtoms:
    if len(elements) != frac.shape[0] or len(magmoms) != frac.shape[0]:
        raise ValueError("elements and magmoms must match the number of atoms")
    return SupercellAtoms(frac, positions, elements, magmoms)


@register_pytree_node_class
class ReciprocalLattice(NamedTuple):
    """
    Description
    -----------
    Reciprocal basis and the enumerated reciprocal-lattice points.

    Attributes
    ----------
    - `basis` (Float[Array, "3 3"]):
        Rows B_j with A_i . B_j = 2 pi delta_ij, in 1/Angstrom
    - `g_points` (Float[Array, "M 3"]):
        Cartesian G-vectors sorted by length, then by Miller indices
    - `g_hkl` (Int[Array, "M 3"]):
        Miller indices parallel to `g_points`
    """

    basis: Float[Array, "3 3"]
    g_points: Float[Array, "M 3"]
    g_hkl: Int[Array, "M 3"]

    def tree_flatten(self):
        return (self.basis, self.g_points, self.g_hkl), None

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        return cls(*children)


@jaxtyped(typechecker=beartype)
def create_reciprocal_lattice(
    basis: Float[Array, "3 3"],
    g_points: Float[Array, "M 3"],
    g_hkl: Int[Array, "M 3"],
) -> ReciprocalLattice:
    return ReciprocalLattice(basis, g_points, g_hkl)


@register_pytree_node_class
class PlaneMesh(NamedTuple):
    """Two-triangle quadrilateral for one (hkl) plane, CCW seen from +normal."""

    hkl: Int[Array, "3"]
    normal: Float[Array, "3"]
    vertices: Float[Array, "4 3"]
    faces: Int[Array, "2 3"]

    def tree_flatten(self):
        return (self.hkl, self.normal, self.vertices, self.faces), None

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        return cls(*children)


@register_pytree_node_class
class CrystalBuild(NamedTuple):
    """
    Description
    -----------
    Full result of the crystal builder.

    Attributes
    ----------
    - `real_basis` (Float[Array, "3 3"]):
        Real-space basis A, rows are lattice vectors
    - `origin` (Float[Array, "3"]):
        Cell origin, always zero
    - `atoms` (SupercellAtoms):
        Expanded atoms
    - `reciprocal` (ReciprocalLattice):
        Reciprocal basis and G-vectors
    - `planes` (Tuple[PlaneMesh, ...]):
        One mesh per requested plane, in request order
    - `warnings` (Tuple[str, ...]):
        Non-fatal advisories, auxiliary PyTree data
    """

    real_basis: Float[Array, "3 3"]
    origin: Float[Array, "3"]
    atoms: SupercellAtoms
    reciprocal: ReciprocalLattice
    planes: Tuple[PlaneMesh, ...]
    warnings: Tuple[str, ...]

    def tree_flatten(self):
        return (
            (self.real_basis, self.origin, self.atoms, self.reciprocal, self.planes),
            self.warnings,
        )

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        return cls(*children, aux_data)
