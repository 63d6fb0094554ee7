"""Data structures and factory functions for the Ewald diffraction solver.

Extended Summary
----------------
The request side bundles the crystal point cloud, the incident beam, the
planar detector and the intensity model. The result side is an
`EwaldPattern` PyTree with one row per accepted diffraction spot.

Routine Listings
----------------
IntensityModel : enum
    Closed set of intensity models
ReciprocalCloud : PyTree
    Reciprocal basis plus candidate G-vectors and their Miller indices
Beam : NamedTuple
    Wavelength, unit incident direction, optional crystal rotation
Detector : NamedTuple
    Planar detector geometry
EwaldRequest : NamedTuple
    Validated input of the Ewald solver
EwaldPattern : PyTree
    Accepted spots in input order
create_reciprocal_cloud : function
create_beam : function
create_detector : function
create_ewald_request : function
create_ewald_pattern : function
"""

import jax.numpy as jnp
from beartype import beartype
from beartype.typing import NamedTuple, Optional, Sequence
from jax.tree_util import register_pytree_node_class
from jaxtyping import Array, Float, Int, jaxtyped

from latticelab import config
from latticelab.errors import InvalidInputError

from .crystal_types import _as_array, _matrix3, _positive, _vector3
from .custom_types import ClosedEnum, non_jax_number


class IntensityModel(ClosedEnum):
    """Placeholder intensity models. Neither is a true structure factor."""

    UNIT = "unit"
    STRUCTURE_FACTOR_LITE = "structureFactorLite"


@register_pytree_node_class
class ReciprocalCloud(NamedTuple):
    """Candidate reciprocal-lattice points, in the caller's order.

    Attributes
    ----------
    basis : Float[Array, "3 3"]
        Reciprocal basis B. Carried for the caller's bookkeeping only.
    g_points : Float[Array, "N 3"]
        Candidate G-vectors in 1/Angstrom.
    g_hkl : Int[Array, "N 3"]
        Miller indices parallel to `g_points`.
    """

    basis: Float[Array, "3 3"]
    g_points: Float[Array, "N 3"]
    g_hkl: Int[Array, "N 3"]

    def tree_flatten(self):
        return (self.basis, self.g_points, self.g_hkl), None

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        del aux_data
        return cls(*children)


def _points(values, field: str) -> jnp.ndarray:
    if len(values) == 0:
        return jnp.zeros((0, 3), dtype=jnp.float64)
    points = _as_array(values, field)
    if points.ndim != 2 or points.shape[1] != 3:
        raise InvalidInputError(
            f"must be a list of 3-vectors, got shape {points.shape}", field
        )
    if not bool(jnp.all(jnp.isfinite(points))):
        raise InvalidInputError("entries must be finite", field)
    return points


def create_reciprocal_cloud(
    basis,
    g_points: Sequence[Sequence[non_jax_number]],
    g_hkl: Sequence[Sequence[int]],
) -> ReciprocalCloud:
    """Build a `ReciprocalCloud`, checking that both point lists align.

    Raises
    ------
    InvalidInputError
        Malformed basis, non-3-vector rows, non-integer Miller indices, or
        `g_points` and `g_hkl` of different lengths.
    """
    basis = _matrix3(basis, "B")
    points = _points(g_points, "gPoints")
    if len(g_hkl) == 0:
        hkl = jnp.zeros((0, 3), dtype=jnp.int64)
    else:
        raw_hkl = _as_array(g_hkl, "gHKL")
        if raw_hkl.ndim != 2 or raw_hkl.shape[1] != 3:
            raise InvalidInputError(
                f"must be a list of integer triples, got shape {raw_hkl.shape}",
                "gHKL",
            )
        if not bool(jnp.all(raw_hkl == jnp.round(raw_hkl))):
            raise InvalidInputError("Miller indices must be integers", "gHKL")
        hkl = raw_hkl.astype(jnp.int64)
    if points.shape[0] != hkl.shape[0]:
        raise InvalidInputError(
            f"gPoints has {points.shape[0]} rows but gHKL has {hkl.shape[0]}",
            "gHKL",
        )
    return ReciprocalCloud(basis, points, hkl)


def _check_unit(vec: jnp.ndarray, field: str) -> None:
    norm = float(jnp.linalg.norm(vec))
    if abs(norm - 1.0) > config.UNIT_TOL:
        raise InvalidInputError(
            f"must be a unit vector (|v| = {norm:.9g}, tolerance {config.UNIT_TOL})",
            field,
        )


class Beam(NamedTuple):
    """Incident beam.

    Attributes
    ----------
    wavelength : float
        Wavelength lambda in Angstrom.
    k_in_dir : Float[Array, "3"]
        Unit propagation direction.
    orientation : Optional[Float[Array, "3 3"]]
        Rotation R applied to every G (as R @ G) before testing.
    tolerance : Optional[float]
        Explicit elastic-scattering tolerance in 1/Angstrom.
    """

    wavelength: float
    k_in_dir: Float[Array, "3"]
    orientation: Optional[Float[Array, "3 3"]]
    tolerance: Optional[float]


def create_beam(
    wavelength: non_jax_number,
    k_in_dir: Sequence[non_jax_number],
    orientation=None,
    tolerance: Optional[non_jax_number] = None,
) -> Beam:
    """Validate beam parameters.

    `orientation` must be orthogonal (R R^T = I within `config.ORTHO_TOL`);
    improper rotations are accepted since they still preserve |G|.
    """
    wavelength = _positive(wavelength, "lambda")
    direction = _vector3(k_in_dir, "kInDir")
    _check_unit(direction, "kInDir")
    if orientation is not None:
        orientation = _matrix3(orientation, "orientation")
        residual = float(
            jnp.max(jnp.abs(orientation @ orientation.T - jnp.eye(3)))
        )
        if residual > config.ORTHO_TOL:
            raise InvalidInputError(
                f"must be an orthogonal rotation matrix (max |R R^T - I| = {residual:.3g})",
                "orientation",
            )
    if tolerance is not None:
        tolerance = _positive(tolerance, "tolerance")
    return Beam(wavelength, direction, orientation, tolerance)


class Detector(NamedTuple):
    """Planar detector at `distance * normal`, `up` spans its vertical axis."""

    distance: float
    normal: Float[Array, "3"]
    up: Float[Array, "3"]
    width: float
    height: float


def create_detector(
    distance: non_jax_number,
    normal: Sequence[non_jax_number],
    up: Sequence[non_jax_number],
    width: non_jax_number,
    height: non_jax_number,
) -> Detector:
    distance = _positive(distance, "distance")
    normal_vec = _vector3(normal, "normal")
    _check_unit(normal_vec, "normal")
    up_vec = _vector3(up, "up")
    _check_unit(up_vec, "up")
    if float(jnp.linalg.norm(jnp.cross(up_vec, normal_vec))) <= config.PARALLEL_TOL:
        raise InvalidInputError("must not be parallel to the detector normal", "up")
    return Detector(
        distance,
        normal_vec,
        up_vec,
        _positive(width, "width"),
        _positive(height, "height"),
    )


class EwaldRequest(NamedTuple):
    """Validated Ewald solver input."""

    crystal: ReciprocalCloud
    beam: Beam
    detector: Detector
    model: IntensityModel
    sigma: float


def create_ewald_request(
    crystal: ReciprocalCloud,
    beam: Beam,
    detector: Detector,
    model: str = IntensityModel.UNIT.value,
    sigma: Optional[non_jax_number] = None,
) -> EwaldRequest:
    intensity_model = IntensityModel.parse(model, "intensity.model")
    sigma = (
        config.DEFAULT_SIGMA
        if sigma is None
        else _positive(sigma, "intensity.sigma")
    )
    return EwaldRequest(crystal, beam, detector, intensity_model, sigma)


@register_pytree_node_class
class EwaldPattern(NamedTuple):
    """Accepted diffraction spots, in the order of the input G-vectors.

    Attributes
    ----------
    g_indices : Int[Array, "M"]
        Index of each spot's G-vector in the request.
    hkl : Int[Array, "M 3"]
        Miller indices of each spot.
    q_vectors : Float[Array, "M 3"]
        Scattering vectors Q = k_out - k_in (the rotated G).
    k_out_dir : Float[Array, "M 3"]
        Unit outgoing directions.
    detector_uv : Float[Array, "M 2"]
        In-plane detector coordinates (right, up).
    intensities : Float[Array, "M"]
        Model intensities.
    n_tested : int
        Number of candidate G-vectors examined.
    """

    g_indices: Int[Array, "M"]
    hkl: Int[Array, "M 3"]
    q_vectors: Float[Array, "M 3"]
    k_out_dir: Float[Array, "M 3"]
    detector_uv: Float[Array, "M 2"]
    intensities: Float[Array, "M"]
    n_tested: int

    def tree_flatten(self):
        return (
            (
                self.g_indices,
                self.hkl,
                self.q_vectors,
                self.k_out_dir,
                self.detector_uv,
                self.intensities,
            ),
            self.n_tested,
        )

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        return cls(*children, aux_data)


@jaxtyped(typechecker=beartype)
def create_ewald_pattern(
    g_indices: Int[Array, "M"],
    hkl: Int[Array, "M 3"],
    q_vectors: Float[Array, "M 3"],
    k_out_dir: Float[Array, "M 3"],
    detector_uv: Float[Array, "M 2"],
    intensities: Float[Array, "M"],
    n_tested: int,
) -> EwaldPattern:
    """Factory function for `EwaldPattern`; jaxtyping enforces a common M."""
    if not bool(jnp.all(intensities >= 0.0)):
        raise ValueError("intensities must be non-negative")
    return EwaldPattern(
        g_indices, hkl, q_vectors, k_out_dir, detector_uv, intensities, n_tested
    )
