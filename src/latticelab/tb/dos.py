"""
Module: tb.dos
--------------
Lorentzian-broadened density of states from sampled band energies.

Functions
---------
- `energy_window`:
    Energy range of the DOS grid, explicit or padded band extrema
- `lorentzian_dos`:
    g(E) on a grid, normalized per k-sample
- `compute_dos`:
    Grid construction and evaluation for a set of `DOSOptions`
"""

import jax
import jax.numpy as jnp
from beartype import beartype
from beartype.typing import Tuple
from jaxtyping import Array, Float, jaxtyped

from latticelab import config
from latticelab.types import DensityOfStates, DOSOptions, scalar_float

jax.config.update("jax_enable_x64", True)


@jaxtyped(typechecker=beartype)
def energy_window(
    band_energies: Float[Array, "B K"], options: DOSOptions
) -> Tuple[float, float]:
    """
    Description
    -----------
    `(e_min, e_max)` of the DOS grid. Missing bounds default to the band
    extrema padded by `config.DOS_MARGIN_ETAS * eta`, so the Lorentzian
    tails at the band edges stay on the grid.
    """
    margin = config.DOS_MARGIN_ETAS * options.eta
    e_min = (
        float(jnp.min(band_energies)) - margin
        if options.e_min is None
        else options.e_min
    )
    e_max = (
        float(jnp.max(band_energies)) + margin
        if options.e_max is None
        else options.e_max
    )
    return e_min, e_max


@jaxtyped(typechecker=beartype)
def lorentzian_dos(
    band_energies: Float[Array, "B K"],
    energies: Float[Array, "E"],
    eta: scalar_float,
) -> Float[Array, "E"]:
    """
    Description
    -----------
    g(E) = sum_{b,k} (eta / pi) / ((E - e_bk)^2 + eta^2) / n_k

    Each Lorentzian integrates to 1, so the integral of g over the real line
    equals the number of bands.

    Parameters
    ----------
    - `band_energies` (Float[Array, "B K"]):
        Band energies at every k-sample
    - `energies` (Float[Array, "E"]):
        Evaluation grid
    - `eta` (scalar_float):
        Half-width at half-maximum of the broadening

    Returns
    -------
    - `density` (Float[Array, "E"]):
        States per unit energy per unit cell

    Flow
    ----
    - Flatten the band energies
    - `jax.lax.map` over the grid so only one (B * K) row is live at a time
    """
    levels: Float[Array, "BK"] = band_energies.ravel()
    n_k = band_energies.shape[1]

    def _density_at(energy: Float[Array, ""]) -> Float[Array, ""]:
        lorentz = (eta / jnp.pi) / ((energy - levels) ** 2 + eta**2)
        return jnp.sum(lorentz) / n_k

    return jax.lax.map(_density_at, energies)


def compute_dos(
    band_energies: Float[Array, "B K"], options: DOSOptions
) -> DensityOfStates:
    """Evaluate the DOS on an `options.n_energies`-point grid."""
    e_min, e_max = energy_window(band_energies, options)
    grid = jnp.linspace(e_min, e_max, options.n_energies, dtype=jnp.float64)
    density = lorentzian_dos(band_energies, grid, options.eta)
    return DensityOfStates(grid, density)
