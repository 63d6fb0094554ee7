"""Real-space and reciprocal-space basis construction.

Extended Summary
----------------
Builds the real-space basis A for each supported lattice kind and the
reciprocal basis B = 2 pi (A^-1)^T. Rows of A are lattice vectors, rows of B
are reciprocal vectors, so that A_i . B_j = 2 pi delta_ij.

Routine Listings
----------------
basis_for : function
    Real-space basis for the given lattice parameters
reciprocal_basis : function
    Reciprocal basis of a real-space basis
is_singular : function
    Singularity test used by both of the above
lattice_condition_number : function
    2-norm condition number of a basis

Notes
-----
A basis is singular when |det A| <= `config.DET_TOL`, or when |det A| divided
by the product of the row lengths is <= `config.DET_TOL`. The second,
scale-free test catches long but nearly collinear vectors whose absolute
determinant is still large.
"""

import jax
import jax.numpy as jnp
from beartype import beartype
from beartype.typing import Callable, Dict
from jaxtyping import Array, Float, jaxtyped

from latticelab import config
from latticelab.errors import DegenerateLatticeError, InvalidInputError
from latticelab.types import LatticeKind, LatticeParams

jax.config.update("jax_enable_x64", True)


def _sc_basis(params: LatticeParams) -> Float[Array, "3 3"]:
    return params.a * jnp.eye(3, dtype=jnp.float64)


def _bcc_basis(params: LatticeParams) -> Float[Array, "3 3"]:
    return (params.a / 2.0) * jnp.array(
        [[-1.0, 1.0, 1.0], [1.0, -1.0, 1.0], [1.0, 1.0, -1.0]],
        dtype=jnp.float64,
    )


def _fcc_basis(params: LatticeParams) -> Float[Array, "3 3"]:
    return (params.a / 2.0) * jnp.array(
        [[0.0, 1.0, 1.0], [1.0, 0.0, 1.0], [1.0, 1.0, 0.0]],
        dtype=jnp.float64,
    )


def _hex_basis(params: LatticeParams) -> Float[Array, "3 3"]:
    a = params.a
    c = config.DEFAULT_HEX_C if params.c is None else params.c
    return jnp.array(
        [
            [a, 0.0, 0.0],
            [-0.5 * a, 0.5 * jnp.sqrt(3.0) * a, 0.0],
            [0.0, 0.0, c],
        ],
        dtype=jnp.float64,
    )


def _custom_basis(params: LatticeParams) -> Float[Array, "3 3"]:
    if params.basis is None:
        raise InvalidInputError("is required when kind is 'custom'", "A")
    return params.basis


_BASIS_BUILDERS: Dict[LatticeKind, Callable[[LatticeParams], Float[Array, "3 3"]]] = {
    LatticeKind.SC: _sc_basis,
    LatticeKind.BCC: _bcc_basis,
    LatticeKind.FCC: _fcc_basis,
    LatticeKind.HEX: _hex_basis,
    LatticeKind.CUSTOM: _custom_basis,
}


@jaxtyped(typechecker=beartype)
def is_singular(basis: Float[Array, "3 3"]) -> bool:
    """True if `basis` is singular within `config.DET_TOL`.

    Parameters
    ----------
    basis : Float[Array, "3 3"]
        Rows are basis vectors.

    Returns
    -------
    bool
        Whether the absolute or the length-normalized determinant vanishes.
    """
    det = float(jnp.abs(jnp.linalg.det(basis)))
    scale = float(jnp.prod(jnp.linalg.norm(basis, axis=1)))
    if det <= config.DET_TOL:
        return True
    return det / scale <= config.DET_TOL


@jaxtyped(typechecker=beartype)
def basis_for(params: LatticeParams) -> Float[Array, "3 3"]:
    """Build the real-space basis A for a lattice.

    Parameters
    ----------
    params : LatticeParams
        Validated lattice parameters.

    Returns
    -------
    Float[Array, "3 3"]
        Basis vectors as rows, in Angstrom.

    Raises
    ------
    DegenerateLatticeError
        If `kind` is `custom` and the supplied basis is singular.

    Examples
    --------
    >>> from latticelab.types import create_lattice_params
    >>> basis_for(create_lattice_params("sc", 3.0))
    Array([[3., 0., 0.],
           [0., 3., 0.],
           [0., 0., 3.]], dtype=float64)
    """
    basis = _BASIS_BUILDERS[params.kind](params)
    if params.kind is LatticeKind.CUSTOM and is_singular(basis):
        raise DegenerateLatticeError(
            f"custom basis is singular (|det A| = {float(jnp.abs(jnp.linalg.det(basis))):.3g})",
            "A",
        )
    return basis


@jaxtyped(typechecker=beartype)
def reciprocal_basis(basis: Float[Array, "3 3"]) -> Float[Array, "3 3"]:
    """Reciprocal basis B = 2 pi (A^-1)^T.

    Parameters
    ----------
    basis : Float[Array, "3 3"]
        Real-space basis A, rows are lattice vectors.

    Returns
    -------
    Float[Array, "3 3"]
        Rows B_j with A_i . B_j = 2 pi delta_ij, in 1/Angstrom.

    Raises
    ------
    DegenerateLatticeError
        If A is singular within tolerance.
    """
    if is_singular(basis):
        raise DegenerateLatticeError(
            "basis is singular, reciprocal lattice is undefined", "A"
        )
    return 2.0 * jnp.pi * jnp.transpose(jnp.linalg.inv(basis))


@jaxtyped(typechecker=beartype)
def lattice_condition_number(basis: Float[Array, "3 3"]) -> float:
    """2-norm condition number; large values flag a nearly degenerate cell."""
    return float(jnp.linalg.cond(basis))
