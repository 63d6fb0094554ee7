import chex
import jax
import jax.numpy as jnp
import pytest
from absl.testing import parameterized

from latticelab.errors import InvalidInputError
from latticelab.tb.hamiltonians import (
    chain_hamiltonian,
    hamiltonian_for,
    honeycomb_hamiltonian,
    honeycomb_offdiagonal,
    square_hamiltonian,
)
from latticelab.types import TBLattice, TBParams

DIRAC_K = jnp.array(
    [2.0 * jnp.pi / 3.0, -2.0 * jnp.pi / (3.0 * jnp.sqrt(3.0)), 0.0]
)


class TestChain(chex.TestCase, parameterized.TestCase):
    @chex.variants(with_jit=True, without_jit=True)
    @parameterized.named_parameters(
        ("gamma", 0.0, -1.0),
        ("zone_edge", jnp.pi, 1.0),
        ("quarter", 0.5 * jnp.pi, 0.0),
    )
    def test_dispersion(self, kx, cos_sign) -> None:
        params = TBParams(t=1.5, eps=0.25)
        var_hamiltonian = self.variant(chain_hamiltonian)
        h = var_hamiltonian(jnp.array([kx, 0.3, -0.7]), params)
        chex.assert_shape(h, (1, 1))
        chex.assert_trees_all_close(
            jnp.real(h[0, 0]), 0.25 + cos_sign * 2.0 * 1.5, atol=1e-12
        )

    def test_ignores_transverse_k(self) -> None:
        params = TBParams(t=1.0)
        chex.assert_trees_all_close(
            chain_hamiltonian(jnp.array([0.4, 0.0, 0.0]), params),
            chain_hamiltonian(jnp.array([0.4, 2.0, 5.0]), params),
        )


class TestSquare(chex.TestCase, parameterized.TestCase):
    @chex.variants(with_jit=True, without_jit=True)
    @parameterized.named_parameters(
        ("gamma", (0.0, 0.0), 0.1 - 4.0 * 1.0 - 4.0 * 0.2),
        ("m_point", (jnp.pi, jnp.pi), 0.1 + 4.0 * 1.0 - 4.0 * 0.2),
        ("x_point", (jnp.pi, 0.0), 0.1 + 4.0 * 0.2),
    )
    def test_high_symmetry_points(self, k_xy, expected) -> None:
        params = TBParams(t=1.0, tp=0.2, eps=0.1)
        var_hamiltonian = self.variant(square_hamiltonian)
        h = var_hamiltonian(jnp.array([k_xy[0], k_xy[1], 0.0]), params)
        chex.assert_trees_all_close(jnp.real(h[0, 0]), expected, atol=1e-12)


class TestHoneycomb(chex.TestCase, parameterized.TestCase):
    @chex.variants(with_jit=True, without_jit=True)
    def test_hermitian(self) -> None:
        params = TBParams(t=2.7, epsA=0.3, epsB=-0.3)
        var_hamiltonian = self.variant(honeycomb_hamiltonian)
        h = var_hamiltonian(jnp.array([0.37, -1.2, 0.0]), params)
        chex.assert_shape(h, (2, 2))
        chex.assert_trees_all_close(h, jnp.conj(h.T))

    def test_gamma_point(self) -> None:
        params = TBParams(t=1.0)
        f = honeycomb_offdiagonal(jnp.zeros(3), params)
        chex.assert_trees_all_close(f, jnp.asarray(-3.0 + 0.0j))
        energies = jnp.linalg.eigvalsh(honeycomb_hamiltonian(jnp.zeros(3), params))
        chex.assert_trees_all_close(energies, jnp.array([-3.0, 3.0]), atol=1e-12)

    def test_dirac_point_degenerate(self) -> None:
        params = TBParams(t=2.7, epsA=0.4, epsB=0.4)
        chex.assert_trees_all_close(
            jnp.abs(honeycomb_offdiagonal(DIRAC_K, params)), 0.0, atol=1e-12
        )
        energies = jnp.linalg.eigvalsh(honeycomb_hamiltonian(DIRAC_K, params))
        chex.assert_trees_all_close(energies, jnp.array([0.4, 0.4]), atol=1e-12)

    def test_dirac_gap_from_sublattice_asymmetry(self) -> None:
        params = TBParams(t=2.7, epsA=0.5, epsB=-0.5)
        energies = jnp.linalg.eigvalsh(honeycomb_hamiltonian(DIRAC_K, params))
        chex.assert_trees_all_close(energies, jnp.array([-0.5, 0.5]), atol=1e-12)

    def test_vmappable(self) -> None:
        ks = jnp.stack([jnp.zeros(3), DIRAC_K])
        hs = jax.vmap(lambda k: honeycomb_hamiltonian(k, TBParams(t=1.0)))(ks)
        chex.assert_shape(hs, (2, 2, 2))


class TestDispatch(chex.TestCase, parameterized.TestCase):
    @parameterized.named_parameters(
        ("chain", TBLattice.CHAIN_1D, chain_hamiltonian),
        ("square", "2d_square", square_hamiltonian),
        ("honeycomb", "2d_honeycomb", honeycomb_hamiltonian),
    )
    def test_hamiltonian_for(self, lattice, expected) -> None:
        self.assertIs(hamiltonian_for(lattice), expected)

    def test_unknown(self) -> None:
        with pytest.raises(InvalidInputError):
            hamiltonian_for("kagome")
