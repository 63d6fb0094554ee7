"""End-to-end tests of the engine operations on JSON-like payloads."""

import json
import logging

import chex
import jax.numpy as jnp
import numpy as np
import pytest
from absl.testing import parameterized

from latticelab import engine
from latticelab.errors import DegenerateLatticeError, InvalidInputError


def _polonium_payload():
    return {
        "lattice": {"kind": "sc", "a": 3.35},
        "basis": [{"element": "Po", "frac": [0, 0, 0]}],
        "supercell": [2, 2, 2],
        "reciprocal": {"gMax": 4.0},
        "planes": [{"h": 1, "k": 0, "l": 0}],
    }


def _chain_payload():
    return {
        "model": {"lattice": "1d_chain", "params": {"t": -2.7}},
        "kpath": {
            "points": [
                {"label": "G", "k": [0, 0, 0]},
                {"label": "X", "k": [3.141592653589793, 0, 0]},
            ],
            "nPerSegment": 100,
        },
        "dos": {"enabled": True, "nE": 400, "eta": 0.05},
    }


def _ewald_payload():
    beta = 2.0 * np.pi / 3.0
    hkl = [[0, 0, 0], [0, 0, 2], [1, 0, 1], [1, 1, 0]]
    return {
        "crystal": {
            "B": (beta * np.eye(3)).tolist(),
            "gPoints": [[beta * h for h in row] for row in hkl],
            "gHKL": hkl,
        },
        "beam": {"lambda": 3.0, "kInDir": [0, 0, -1]},
        "detector": {
            "distance": 10,
            "normal": [0, 0, 1],
            "up": [0, 1, 0],
            "width": 20,
            "height": 20,
        },
        "intensity": {"model": "unit"},
    }


class TestBuildCrystal(chex.TestCase):
    def test_polonium_example(self) -> None:
        response = engine.build_crystal(_polonium_payload())
        self.assertEqual(
            response["real"]["A"],
            [[3.35, 0.0, 0.0], [0.0, 3.35, 0.0], [0.0, 0.0, 3.35]],
        )
        self.assertEqual(response["real"]["origin"], [0.0, 0.0, 0.0])
        self.assertEqual(len(response["atoms"]["positions"]), 8)
        self.assertEqual(response["atoms"]["elements"], ["Po"] * 8)
        self.assertEqual(response["atoms"]["magmoms"], [None] * 8)
        self.assertEqual(len(response["recip"]["gPoints"]), len(response["recip"]["gHKL"]))
        norms = np.linalg.norm(np.asarray(response["recip"]["gPoints"]), axis=1)
        self.assertTrue(np.all(norms <= 4.0))
        plane = response["planes"][0]
        self.assertEqual(plane["hkl"], [1, 0, 0])
        np.testing.assert_allclose(plane["normal"], [1.0, 0.0, 0.0], atol=1e-12)
        self.assertEqual(plane["mesh"]["faces"], [[0, 1, 2], [0, 2, 3]])
        self.assertEqual(response["meta"]["warnings"], [])
        self.assertEqual(len(response["meta"]["requestHash"]), 64)

    def test_json_serializable(self) -> None:
        json.dumps(engine.build_crystal(_polonium_payload()))

    def test_idempotent(self) -> None:
        self.assertEqual(
            engine.build_crystal(_polonium_payload()),
            engine.build_crystal(_polonium_payload()),
        )

    def test_hash_ignores_explicit_defaults(self) -> None:
        minimal = {
            "lattice": {"kind": "fcc", "a": 4.05},
            "basis": [{"element": "Al", "frac": [0, 0, 0]}],
        }
        explicit = dict(minimal, supercell=[1, 1, 1], reciprocal={"gMax": 8}, planes=[])
        self.assertEqual(
            engine.build_crystal(minimal)["meta"]["requestHash"],
            engine.build_crystal(explicit)["meta"]["requestHash"],
        )

    def test_singular_custom_lattice(self) -> None:
        payload = _polonium_payload()
        payload["lattice"] = {
            "kind": "custom",
            "a": 1.0,
            "A": [[1, 0, 0], [0, 1, 0], [1, 1, 0]],
        }
        with pytest.raises(DegenerateLatticeError) as info:
            engine.build_crystal(payload)
        self.assertEqual(info.value.to_payload()["error"], "DegenerateLattice")

    def test_validation_failure_logged(self) -> None:
        payload = _polonium_payload()
        payload["lattice"]["a"] = -3.0
        with self.assertLogs("latticelab.engine", level=logging.WARNING):
            with pytest.raises(InvalidInputError):
                engine.build_crystal(payload)


class TestCalcEwald(chex.TestCase):
    def test_single_spot(self) -> None:
        response = engine.calc_ewald(_ewald_payload())
        self.assertEqual(response["meta"]["nTested"], 4)
        self.assertEqual(len(response["spots"]), 1)
        spot = response["spots"][0]
        self.assertEqual(spot["hkl"], [0, 0, 2])
        np.testing.assert_allclose(spot["kOutDir"], [0.0, 0.0, 1.0], atol=1e-12)
        np.testing.assert_allclose(spot["uv"], [0.0, 0.0], atol=1e-9)
        self.assertEqual(spot["intensity"], 1.0)
        json.dumps(response)

    def test_crystal_output_feeds_ewald(self) -> None:
        crystal = engine.build_crystal(
            {
                "lattice": {"kind": "sc", "a": 3.0},
                "basis": [{"element": "Po", "frac": [0, 0, 0]}],
                "reciprocal": {"gMax": 5.0},
            }
        )
        payload = _ewald_payload()
        payload["crystal"] = crystal["recip"]
        response = engine.calc_ewald(payload)
        self.assertEqual(response["meta"]["nTested"], len(crystal["recip"]["gPoints"]))
        self.assertEqual([spot["hkl"] for spot in response["spots"]], [[0, 0, 2]])


class TestCalcTB(chex.TestCase, parameterized.TestCase):
    def test_chain_example(self) -> None:
        response = engine.calc_tb(_chain_payload())
        self.assertEqual(len(response["k"]), 100)
        self.assertEqual(
            response["labels"], [{"atIndex": 0, "label": "G"}, {"atIndex": 99, "label": "X"}]
        )
        self.assertEqual(len(response["bands"]), 1)
        self.assertAlmostEqual(response["bands"][0][0], 5.4)
        self.assertAlmostEqual(response["bands"][0][-1], -5.4)
        self.assertEqual(len(response["dos"]["E"]), 400)
        self.assertEqual(len(response["dos"]["g"]), 400)
        self.assertEqual(len(response["meta"]["requestHash"]), 64)
        json.dumps(response)

    def test_dos_disabled_omits_block(self) -> None:
        payload = _chain_payload()
        payload["dos"] = {"enabled": False}
        self.assertNotIn("dos", engine.calc_tb(payload))

    @parameterized.named_parameters(
        ("flat_chain", "1d_chain", {"t": 0.0, "eps": 1.0}),
        ("flat_square", "2d_square", {"t": 0.0, "eps": 0.5}),
        ("chain", "1d_chain", {"t": -2.7}),
        ("honeycomb", "2d_honeycomb", {"t": 1.0}),
    )
    def test_default_window_dos_integral(self, lattice, params) -> None:
        payload = {
            "model": {"lattice": lattice, "params": params},
            "kpath": {
                "points": [
                    {"label": "G", "k": [0, 0, 0]},
                    {"label": "K", "k": [2.0943951023931953, -1.2091995761561452, 0]},
                    {"label": "M", "k": [3.141592653589793, 0, 0]},
                    {"label": "G", "k": [0, 0, 0]},
                ],
                "nPerSegment": 60,
            },
            "dos": {"enabled": True},
        }
        response = engine.calc_tb(payload)
        integral = jnp.trapezoid(
            jnp.asarray(response["dos"]["g"]), jnp.asarray(response["dos"]["E"])
        )
        chex.assert_trees_all_close(integral, float(len(response["bands"])), rtol=1e-2)

    @parameterized.named_parameters(
        ("n_per_segment", ("kpath", "nPerSegment"), 801),
        ("n_energies", ("dos", "nE"), 199),
        ("eta", ("dos", "eta"), 0.0),
    )
    def test_bounds(self, path, value) -> None:
        payload = _chain_payload()
        payload[path[0]][path[1]] = value
        with pytest.raises(InvalidInputError) as info:
            engine.calc_tb(payload)
        self.assertEqual(info.value.field, ".".join(path))


class TestHealth(chex.TestCase):
    def test_ok(self) -> None:
        self.assertEqual(engine.health(), {"ok": True})
