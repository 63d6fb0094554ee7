"""
Module: tb.bands
----------------
Band structure and density of states of a tight-binding model.

Functions
---------
- `band_energies`:
    Eigenvalues of H(k) at every sample, bands ascending
- `solve_bands`:
    Band structure along a k-path
- `solve_tight_binding`:
    Complete solver: k-path sampling, diagonalization and optional DOS
"""

import logging

import jax
import jax.numpy as jnp
from jaxtyping import Array, Float

from latticelab.types import (
    BandStructure,
    KPath,
    TBLattice,
    TBParams,
    TBRequest,
    TBResult,
    create_band_structure,
)

from .dos import compute_dos
from .hamiltonians import HamiltonianFn, hamiltonian_for
from .kpath import sample_kpath

jax.config.update("jax_enable_x64", True)
logger = logging.getLogger(__name__)


def band_energies(
    hamiltonian: HamiltonianFn,
    k_points: Float[Array, "K 3"],
    params: TBParams,
) -> Float[Array, "B K"]:
    """
    Description
    -----------
    Diagonalize H(k) at every sample with `jnp.linalg.eigvalsh`, vmapped
    over k. `eigvalsh` returns ascending eigenvalues, so row b of the result
    is the b-th band.
    """

    def _eigenvalues(k: Float[Array, "3"]) -> Float[Array, "B"]:
        return jnp.linalg.eigvalsh(hamiltonian(k, params))

    per_k: Float[Array, "K B"] = jax.vmap(_eigenvalues)(k_points)
    return jnp.transpose(per_k)


def solve_bands(
    lattice: TBLattice, params: TBParams, kpath: KPath
) -> BandStructure:
    """
    Description
    -----------
    Sample `kpath` and compute the bands of `lattice` with `params`.

    Parameters
    ----------
    - `lattice` (TBLattice):
        Model topology
    - `params` (TBParams):
        Hopping and on-site energies
    - `kpath` (KPath):
        Validated k-path

    Returns
    -------
    - `bands` (BandStructure):
        Energies of shape (n_bands, n_samples) with the sampled path
    """
    path = sample_kpath(kpath)
    energies = band_energies(hamiltonian_for(lattice), path.k_points, params)
    return create_band_structure(path, energies)


def solve_tight_binding(request: TBRequest) -> TBResult:
    """Bands along the path, plus the DOS when `request.dos.enabled`."""
    bands = solve_bands(request.lattice, request.params, request.kpath)
    logger.debug(
        "Solved %s: %d bands x %d k-samples",
        request.lattice.value,
        bands.energies.shape[0],
        bands.energies.shape[1],
    )
    dos = compute_dos(bands.energies, request.dos) if request.dos.enabled else None
    return TBResult(bands, dos)
