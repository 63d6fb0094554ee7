"""Test suite for simul.ewald.

Uses a simple cubic crystal with a = 3 Angstrom probed at lambda = 3
Angstrom, so that |B_i| = k = 2 pi / 3. With the beam along -z the only
reciprocal points on the Ewald sphere are (0, 0, 2), (+-1, 0, 1) and
(0, +-1, 1); the last four scatter parallel to a +z detector.
"""

import chex
import jax.numpy as jnp
import pytest
from absl.testing import parameterized
from jaxtyping import Array, Float

from latticelab.simul.ewald import (
    compute_intensities,
    detector_axes,
    elastic_tolerance,
    find_elastic_reflections,
    incident_wavevector,
    project_on_detector,
    rotate_reciprocal_points,
    simulate_ewald_pattern,
    wavevector_magnitude,
)
from latticelab.types import (
    IntensityModel,
    create_beam,
    create_detector,
    create_ewald_request,
    create_reciprocal_cloud,
)

BETA: float = 2.0 * float(jnp.pi) / 3.0
HKL: list = [
    [0, 0, 0],
    [1, 0, 0],
    [0, 0, 2],
    [1, 0, 1],
    [-1, 0, 1],
    [0, 1, 1],
    [0, 2, 0],
    [0, -1, 1],
    [1, 1, 1],
]


def _rotation_x(angle: float) -> list:
    c, s = float(jnp.cos(angle)), float(jnp.sin(angle))
    return [[1.0, 0.0, 0.0], [0.0, c, -s], [0.0, s, c]]


def _rotation_z(angle: float) -> list:
    c, s = float(jnp.cos(angle)), float(jnp.sin(angle))
    return [[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]]


def _request(orientation=None, model="unit", sigma=None, width=20.0):
    cloud = create_reciprocal_cloud(
        (BETA * jnp.eye(3)).tolist(),
        [[BETA * h for h in hkl] for hkl in HKL],
        HKL,
    )
    beam = create_beam(3.0, [0.0, 0.0, -1.0], orientation=orientation)
    detector = create_detector(10.0, [0.0, 0.0, 1.0], [0.0, 1.0, 0.0], width, 20.0)
    return create_ewald_request(cloud, beam, detector, model, sigma)


class TestWavevector(chex.TestCase):
    def test_magnitude(self) -> None:
        chex.assert_trees_all_close(wavevector_magnitude(3.0), BETA)

    def test_incident(self) -> None:
        k_in = incident_wavevector(1.0, jnp.array([0.0, 1.0, 0.0]))
        chex.assert_trees_all_close(k_in, jnp.array([0.0, 2.0 * jnp.pi, 0.0]))

    def test_tolerance(self) -> None:
        self.assertAlmostEqual(elastic_tolerance(10.0), 0.1)
        self.assertEqual(elastic_tolerance(1e-5), 1e-6)
        self.assertEqual(elastic_tolerance(10.0, 0.5), 0.5)

    def test_rotation_none_is_identity(self) -> None:
        points = jnp.arange(6.0).reshape(2, 3)
        chex.assert_trees_all_equal(rotate_reciprocal_points(points, None), points)


class TestElasticCondition(chex.TestCase):
    def test_mask(self) -> None:
        k_in = jnp.array([0.0, 0.0, -1.0])
        gs: Float[Array, "3 3"] = jnp.array(
            [[0.0, 0.0, 0.0], [0.0, 0.0, 2.0], [0.0, 0.0, 1.0]]
        )
        allowed, k_out = find_elastic_reflections(k_in, gs, 1e-6)
        chex.assert_trees_all_equal(allowed, jnp.array([False, True, False]))
        chex.assert_trees_all_close(k_out[1], jnp.array([0.0, 0.0, 1.0]))

    def test_tolerance_widens_acceptance(self) -> None:
        k_in = jnp.array([0.0, 0.0, -1.0])
        gs = jnp.array([[0.0, 0.0, 2.05]])
        self.assertFalse(bool(find_elastic_reflections(k_in, gs, 1e-3)[0][0]))
        self.assertTrue(bool(find_elastic_reflections(k_in, gs, 0.1)[0][0]))


class TestDetectorProjection(chex.TestCase, parameterized.TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.detector = create_detector(
            8.0, [0.0, 0.0, 1.0], [0.0, 1.0, 0.0], 20.0, 20.0
        )

    def test_axes(self) -> None:
        right, up = detector_axes(self.detector)
        chex.assert_trees_all_close(right, jnp.array([1.0, 0.0, 0.0]))
        chex.assert_trees_all_close(up, jnp.array([0.0, 1.0, 0.0]))

    def test_oblique_ray(self) -> None:
        hits, uv = project_on_detector(jnp.array([[0.6, 0.0, 0.8]]), self.detector)
        self.assertTrue(bool(hits[0]))
        chex.assert_trees_all_close(uv[0], jnp.array([6.0, 0.0]), atol=1e-12)

    @parameterized.named_parameters(
        ("backwards", [0.0, 0.0, -1.0]),
        ("parallel", [1.0, 0.0, 0.0]),
        ("off_detector", [0.8, 0.0, 0.6]),
    )
    def test_misses(self, direction) -> None:
        hits, _ = project_on_detector(jnp.array([direction]), self.detector)
        self.assertFalse(bool(hits[0]))


class TestIntensities(chex.TestCase):
    def test_unit(self) -> None:
        gs = jnp.ones((4, 3))
        chex.assert_trees_all_close(
            compute_intensities(gs, IntensityModel.UNIT), jnp.ones(4)
        )

    def test_structure_factor_lite(self) -> None:
        gs = jnp.array([[0.0, 0.0, 0.0], [2.0, 0.0, 0.0]])
        values = compute_intensities(gs, IntensityModel.STRUCTURE_FACTOR_LITE, 2.0)
        chex.assert_trees_all_close(values, jnp.array([1.0, jnp.exp(-0.5)]))


class TestSimulateEwaldPattern(chex.TestCase, parameterized.TestCase):
    def test_single_backscatter_spot(self) -> None:
        pattern = simulate_ewald_pattern(_request())
        self.assertEqual(pattern.n_tested, len(HKL))
        chex.assert_trees_all_equal(pattern.hkl, jnp.array([[0, 0, 2]]))
        chex.assert_trees_all_equal(pattern.g_indices, jnp.array([2]))
        chex.assert_trees_all_close(pattern.q_vectors[0], jnp.array([0.0, 0.0, 2 * BETA]))
        chex.assert_trees_all_close(pattern.k_out_dir[0], jnp.array([0.0, 0.0, 1.0]))
        chex.assert_trees_all_close(pattern.detector_uv[0], jnp.zeros(2), atol=1e-12)
        chex.assert_trees_all_close(pattern.intensities, jnp.ones(1))

    def test_zero_vector_never_a_spot(self) -> None:
        pattern = simulate_ewald_pattern(_request())
        self.assertFalse(bool(jnp.any(pattern.g_indices == 0)))

    @parameterized.named_parameters(
        ("full_turn_z", _rotation_z(2.0 * float(jnp.pi))),
        ("full_turn_x", _rotation_x(2.0 * float(jnp.pi))),
        ("quarter_turn_z", _rotation_z(0.5 * float(jnp.pi))),
    )
    def test_rotation_invariance(self, rotation) -> None:
        reference = simulate_ewald_pattern(_request())
        rotated = simulate_ewald_pattern(_request(orientation=rotation))
        chex.assert_trees_all_equal(rotated.hkl, reference.hkl)
        chex.assert_trees_all_close(rotated.detector_uv, reference.detector_uv, atol=1e-9)

    def test_quarter_turn_about_x_selects_new_spot(self) -> None:
        pattern = simulate_ewald_pattern(_request(orientation=_rotation_x(0.5 * float(jnp.pi))))
        chex.assert_trees_all_equal(pattern.hkl, jnp.array([[0, 2, 0]]))
        chex.assert_trees_all_close(
            pattern.q_vectors[0], jnp.array([0.0, 0.0, 2 * BETA]), atol=1e-12
        )

    def test_structure_factor_lite_model(self) -> None:
        pattern = simulate_ewald_pattern(
            _request(model="structureFactorLite", sigma=2.0)
        )
        expected = jnp.exp(-((2 * BETA) ** 2) / 8.0)
        chex.assert_trees_all_close(pattern.intensities, jnp.array([expected]))

    def test_no_candidates(self) -> None:
        cloud = create_reciprocal_cloud(jnp.eye(3).tolist(), [], [])
        request = create_ewald_request(
            cloud,
            create_beam(1.0, [0.0, 0.0, -1.0]),
            create_detector(1.0, [0.0, 0.0, 1.0], [0.0, 1.0, 0.0], 1.0, 1.0),
        )
        pattern = simulate_ewald_pattern(request)
        self.assertEqual(pattern.n_tested, 0)
        chex.assert_shape(pattern.hkl, (0, 3))

    def test_idempotent(self) -> None:
        first = simulate_ewald_pattern(_request(model="structureFactorLite"))
        second = simulate_ewald_pattern(_request(model="structureFactorLite"))
        chex.assert_trees_all_equal(first, second)

    def test_invalid_orientation_rejected_upstream(self) -> None:
        with pytest.raises(ValueError):
            _request(orientation=[[2.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]])
