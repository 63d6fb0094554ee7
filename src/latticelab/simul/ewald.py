"""Ewald-sphere diffraction and detector projection.

Extended Summary
----------------
Given a reciprocal-lattice point cloud, an incident beam and a planar
detector, this module finds the points that satisfy the elastic-scattering
condition |k_in + G| = |k_in| and projects the diffracted rays onto the
detector plane.

Routine Listings
----------------
wavevector_magnitude : function
    k = 2 pi / lambda
incident_wavevector : function
    k_in = k * direction
rotate_reciprocal_points : function
    Apply the crystal orientation to every G
elastic_tolerance : function
    Tolerance used for the elastic condition
find_elastic_reflections : function
    Mask and outgoing wavevectors for the Ewald condition
detector_axes : function
    In-plane (right, up) axes of the detector
project_on_detector : function
    Ray-plane intersection in detector coordinates
compute_intensities : function
    Placeholder intensity models
simulate_ewald_pattern : function
    Complete pipeline from request to accepted spots

Notes
-----
The elastic test is ||k_out| - k| <= eps with eps explicit: the caller's
`beam.tolerance` when given, otherwise
max(`config.EWALD_ABS_TOL`, `config.EWALD_REL_TOL` * k).
"""

import logging

import jax
import jax.numpy as jnp
from beartype import beartype
from beartype.typing import Optional, Tuple
from jaxtyping import Array, Bool, Float, jaxtyped

from latticelab import config
from latticelab.types import (
    Detector,
    EwaldPattern,
    EwaldRequest,
    IntensityModel,
    create_ewald_pattern,
    scalar_float,
)

jax.config.update("jax_enable_x64", True)
logger = logging.getLogger(__name__)


@jaxtyped(typechecker=beartype)
def wavevector_magnitude(wavelength: scalar_float) -> Float[Array, ""]:
    """Wavevector magnitude k = 2 pi / lambda in 1/Angstrom."""
    return jnp.asarray(2.0 * jnp.pi / wavelength, dtype=jnp.float64)


@jaxtyped(typechecker=beartype)
def incident_wavevector(
    wavelength: scalar_float,
    k_in_dir: Float[Array, "3"],
) -> Float[Array, "3"]:
    """Calculate the incident wavevector.

    Parameters
    ----------
    wavelength : scalar_float
        Wavelength in Angstrom.
    k_in_dir : Float[Array, "3"]
        Unit propagation direction.

    Returns
    -------
    k_in : Float[Array, "3"]
        Incident wavevector in 1/Angstrom.
    """
    return wavevector_magnitude(wavelength) * k_in_dir


@jaxtyped(typechecker=beartype)
def rotate_reciprocal_points(
    g_points: Float[Array, "N 3"],
    orientation: Optional[Float[Array, "3 3"]],
) -> Float[Array, "N 3"]:
    """Rotate every G by R (G' = R G). No rotation when `orientation` is None."""
    if orientation is None:
        return g_points
    return g_points @ orientation.T


def elastic_tolerance(k_magnitude: float, override: Optional[float] = None) -> float:
    if override is not None:
        return float(override)
    return max(config.EWALD_ABS_TOL, config.EWALD_REL_TOL * float(k_magnitude))


@jaxtyped(typechecker=beartype)
def find_elastic_reflections(
    k_in: Float[Array, "3"],
    gs: Float[Array, "N 3"],
    tolerance: scalar_float,
) -> Tuple[Bool[Array, "N"], Float[Array, "N 3"]]:
    """Test every G against the Ewald-sphere condition.

    Parameters
    ----------
    k_in : Float[Array, "3"]
        Incident wavevector.
    gs : Float[Array, "N 3"]
        Candidate reciprocal lattice vectors (already rotated).
    tolerance : scalar_float
        Accept when ||k_in + G| - |k_in|| <= tolerance.

    Returns
    -------
    allowed : Bool[Array, "N"]
        Elastic-condition mask. G with |G| <= `config.ZERO_G_TOL` is never
        allowed, since the unscattered beam is not a diffraction spot.
    k_out : Float[Array, "N 3"]
        k_in + G for every candidate.
    """
    k_out_all: Float[Array, "N 3"] = k_in[None, :] + gs
    k_in_mag: Float[Array, ""] = jnp.linalg.norm(k_in)
    k_out_mags: Float[Array, "N"] = jnp.linalg.norm(k_out_all, axis=1)
    elastic: Bool[Array, "N"] = jnp.abs(k_out_mags - k_in_mag) <= tolerance
    scattered: Bool[Array, "N"] = jnp.linalg.norm(gs, axis=1) > config.ZERO_G_TOL
    return elastic & scattered, k_out_all


@jaxtyped(typechecker=beartype)
def detector_axes(detector: Detector) -> Tuple[Float[Array, "3"], Float[Array, "3"]]:
    """Detector in-plane axes: right = normalize(up x normal), and up."""
    right: Float[Array, "3"] = jnp.cross(detector.up, detector.normal)
    return right / jnp.linalg.norm(right), detector.up


@jaxtyped(typechecker=beartype)
def project_on_detector(
    k_out_dir: Float[Array, "N 3"],
    detector: Detector,
) -> Tuple[Bool[Array, "N"], Float[Array, "N 2"]]:
    """Intersect rays from the origin with the detector plane.

    Parameters
    ----------
    k_out_dir : Float[Array, "N 3"]
        Unit ray directions.
    detector : Detector
        Plane through distance * normal, bounded by width x height.

    Returns
    -------
    hits : Bool[Array, "N"]
        False for rays parallel to the plane, rays hitting it behind the
        source (s <= 0) and hits outside the detector rectangle.
    detector_uv : Float[Array, "N 2"]
        (right, up) coordinates of the intersection relative to the detector
        center. Only meaningful where `hits` is True.
    """
    right, up = detector_axes(detector)
    center: Float[Array, "3"] = detector.distance * detector.normal
    denom: Float[Array, "N"] = k_out_dir @ detector.normal
    parallel: Bool[Array, "N"] = jnp.abs(denom) <= config.PARALLEL_TOL
    safe_denom: Float[Array, "N"] = jnp.where(parallel, 1.0, denom)
    s: Float[Array, "N"] = detector.distance / safe_denom
    offsets: Float[Array, "N 3"] = s[:, None] * k_out_dir - center[None, :]
    uv: Float[Array, "N 2"] = jnp.stack([offsets @ right, offsets @ up], axis=-1)
    inside: Bool[Array, "N"] = (jnp.abs(uv[:, 0]) <= 0.5 * detector.width) & (
        jnp.abs(uv[:, 1]) <= 0.5 * detector.height
    )
    return (~parallel) & (s > 0.0) & inside, uv


@jaxtyped(typechecker=beartype)
def compute_intensities(
    gs: Float[Array, "N 3"],
    model: IntensityModel,
    sigma: scalar_float = config.DEFAULT_SIGMA,
) -> Float[Array, "N"]:
    """Placeholder spot intensities.

    `unit` gives 1 for every spot. `structureFactorLite` gives the smooth
    proxy exp(-|G|^2 / (2 sigma^2)); it is not a structure factor.
    """
    if model is IntensityModel.UNIT:
        return jnp.ones(gs.shape[0], dtype=jnp.float64)
    g_sq: Float[Array, "N"] = jnp.sum(gs * gs, axis=1)
    return jnp.exp(-g_sq / (2.0 * sigma**2))


def simulate_ewald_pattern(request: EwaldRequest) -> EwaldPattern:
    """Find the diffraction spots for a validated request.

    Parameters
    ----------
    request : EwaldRequest
        Output of `create_ewald_request`.

    Returns
    -------
    EwaldPattern
        Accepted spots in the order of the input G-vectors, with
        `n_tested` equal to the number of candidates.

    Algorithm
    ---------
    - Rotate G by the beam orientation, if any
    - Build k_in and test |k_in + G| against k within the tolerance
    - Normalize k_out, guarding the zero vector
    - Project onto the detector and drop misses
    - Evaluate the intensity model on the surviving G
    """
    beam = request.beam
    g_points = rotate_reciprocal_points(request.crystal.g_points, beam.orientation)
    k_in = incident_wavevector(beam.wavelength, beam.k_in_dir)
    k_mag = float(jnp.linalg.norm(k_in))
    tolerance = elastic_tolerance(k_mag, beam.tolerance)

    elastic, k_out = find_elastic_reflections(k_in, g_points, tolerance)
    k_out_norm = jnp.linalg.norm(k_out, axis=1)
    safe_norm = jnp.where(k_out_norm > 0.0, k_out_norm, 1.0)
    k_out_dir = k_out / safe_norm[:, None]
    hits, uv = project_on_detector(k_out_dir, request.detector)

    accepted = jnp.nonzero(elastic & hits)[0]
    logger.debug(
        "Ewald test: %d elastic, %d on detector (tolerance %.3g)",
        int(jnp.sum(elastic)),
        int(accepted.shape[0]),
        tolerance,
    )
    q_vectors = g_points[accepted]
    intensities = compute_intensities(q_vectors, request.model, request.sigma)
    return create_ewald_pattern(
        accepted.astype(jnp.int64),
        request.crystal.g_hkl[accepted],
        q_vectors,
        k_out_dir[accepted],
        uv[accepted],
        intensities,
        int(g_points.shape[0]),
    )
