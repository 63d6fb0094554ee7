"""
Module: tb.hamiltonians
-----------------------
Bloch Hamiltonians H(k) of the supported tight-binding topologies.

Every Hamiltonian is a pure function of one wavevector and a `TBParams`
PyTree, returns a Hermitian complex matrix and is safe under `jax.jit` and
`jax.vmap`.

Functions
---------
- `chain_hamiltonian`:
    1x1 nearest-neighbour chain along x
- `square_hamiltonian`:
    1x1 square lattice with next-nearest-neighbour hopping
- `honeycomb_hamiltonian`:
    2x2 two-sublattice honeycomb
- `honeycomb_offdiagonal`:
    Off-diagonal element f(k) of the honeycomb Hamiltonian
- `hamiltonian_for`:
    Dispatch from `TBLattice` to the Hamiltonian function
"""

import jax
import jax.numpy as jnp
from beartype import beartype
from beartype.typing import Callable, Dict
from jaxtyping import Array, Complex, Float, jaxtyped

from latticelab.types import TBLattice, TBParams

jax.config.update("jax_enable_x64", True)

HONEYCOMB_A1: Float[Array, "2"] = jnp.array([1.0, 0.0], dtype=jnp.float64)
HONEYCOMB_A2: Float[Array, "2"] = jnp.array(
    [-0.5, 0.5 * jnp.sqrt(3.0)], dtype=jnp.float64
)


@jaxtyped(typechecker=beartype)
def chain_hamiltonian(
    k: Float[Array, "3"], params: TBParams
) -> Complex[Array, "1 1"]:
    """
    Description
    -----------
    H(k) = eps - 2 t cos(kx). Only the x component of `k` is used.
    """
    energy = params.eps - 2.0 * params.t * jnp.cos(k[0])
    return jnp.reshape(energy, (1, 1)).astype(jnp.complex128)


@jaxtyped(typechecker=beartype)
def square_hamiltonian(
    k: Float[Array, "3"], params: TBParams
) -> Complex[Array, "1 1"]:
    """
    Description
    -----------
    H(k) = eps - 2 t (cos kx + cos ky) - 4 tp cos kx cos ky
    """
    cx = jnp.cos(k[0])
    cy = jnp.cos(k[1])
    energy = params.eps - 2.0 * params.t * (cx + cy) - 4.0 * params.tp * cx * cy
    return jnp.reshape(energy, (1, 1)).astype(jnp.complex128)


@jaxtyped(typechecker=beartype)
def honeycomb_offdiagonal(
    k: Float[Array, "3"], params: TBParams
) -> Complex[Array, ""]:
    """
    Description
    -----------
    f(k) = -t (1 + exp(-i k.a1) + exp(-i k.a2)) with a1 = (1, 0) and
    a2 = (-1/2, sqrt(3)/2). f vanishes at the Dirac points.
    """
    k_xy = k[:2]
    phase1 = jnp.exp(-1j * jnp.dot(k_xy, HONEYCOMB_A1))
    phase2 = jnp.exp(-1j * jnp.dot(k_xy, HONEYCOMB_A2))
    return -params.t * (1.0 + phase1 + phase2)


@jaxtyped(typechecker=beartype)
def honeycomb_hamiltonian(
    k: Float[Array, "3"], params: TBParams
) -> Complex[Array, "2 2"]:
    """
    Description
    -----------
    Two-sublattice honeycomb Hamiltonian [[epsA, f], [conj(f), epsB]].

    Parameters
    ----------
    - `k` (Float[Array, "3"]):
        Wavevector, the z component is ignored
    - `params` (TBParams):
        Uses `t`, `epsA` and `epsB`

    Returns
    -------
    - `hamiltonian` (Complex[Array, "2 2"]):
        Hermitian Bloch matrix
    """
    f = honeycomb_offdiagonal(k, params)
    eps_a = jnp.asarray(params.epsA, dtype=jnp.complex128)
    eps_b = jnp.asarray(params.epsB, dtype=jnp.complex128)
    return jnp.array([[eps_a, f], [jnp.conj(f), eps_b]], dtype=jnp.complex128)


HamiltonianFn = Callable[[Float[Array, "3"], TBParams], Complex[Array, "N N"]]

_HAMILTONIANS: Dict[TBLattice, HamiltonianFn] = {
    TBLattice.CHAIN_1D: chain_hamiltonian,
    TBLattice.SQUARE_2D: square_hamiltonian,
    TBLattice.HONEYCOMB_2D: honeycomb_hamiltonian,
}


def hamiltonian_for(lattice: TBLattice) -> HamiltonianFn:
    """Hamiltonian function of a `TBLattice`."""
    return _HAMILTONIANS[TBLattice.parse(lattice, "model.lattice")]
