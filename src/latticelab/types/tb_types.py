"""
Module: types.tb_types
----------------------
Data structures and factory functions for the tight-binding solver.

Enumerations
------------
- `TBLattice`:
    Closed set of supported lattice topologies

Classes
-------
- `TBParams`:
    Hopping and on-site parameters with zero defaults
- `KPoint`:
    Labelled vertex of a k-path
- `KPath`:
    Ordered path vertices plus samples per segment
- `DOSOptions`:
    Density-of-states grid and broadening settings
- `TBRequest`:
    Validated input of the tight-binding solver
- `KPathSamples`:
    JAX-compatible sampled k-points with cumulative arc length
- `BandStructure`:
    JAX-compatible band energies along the path
- `DensityOfStates`:
    JAX-compatible broadened DOS on an energy grid
- `TBResult`:
    Bands plus optional DOS
"""

import logging

import jax.numpy as jnp
from beartype import beartype
from beartype.typing import Mapping, NamedTuple, Optional, Sequence, Tuple
from jax.tree_util import register_pytree_node_class
from jaxtyping import Array, Float, Int, jaxtyped

from latticelab import config
from latticelab.errors import InvalidInputError

from .crystal_types import _finite, _integer, _positive, _vector3
from .custom_types import ClosedEnum, non_jax_number

logger = logging.getLogger(__name__)


class TBLattice(ClosedEnum):
    """Supported tight-binding topologies."""

    CHAIN_1D = "1d_chain"
    SQUARE_2D = "2d_square"
    HONEYCOMB_2D = "2d_honeycomb"


@register_pytree_node_class
class TBParams(NamedTuple):
    """
    Description
    -----------
    Model parameters in energy units. Every field defaults to zero.

    Attributes
    ----------
    - `t` (float):
        Nearest-neighbour hopping
    - `tp` (float):
        Next-nearest-neighbour hopping (square lattice only)
    - `eps` (float):
        On-site energy of single-site models
    - `epsA`, `epsB` (float):
        Sublattice on-site energies of the honeycomb model
    """

    t: float = 0.0
    tp: float = 0.0
    eps: float = 0.0
    epsA: float = 0.0
    epsB: float = 0.0

    def tree_flatten(self):
        return tuple(self), None

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        return cls(*children)


def create_tb_params(params: Optional[Mapping[str, non_jax_number]] = None) -> TBParams:
    """
    Description
    -----------
    Build `TBParams` from a free-form mapping. Recognised keys are the
    field names of `TBParams`; unknown keys are ignored so older engines
    accept payloads written for newer models.
    """
    params = dict(params or {})
    known = {}
    for name in TBParams._fields:
        if name in params:
            known[name] = _finite(params.pop(name), f"params.{name}")
    if params:
        logger.debug("Ignoring unknown tight-binding parameters: %s", sorted(params))
    return TBParams(**known)


class KPoint(NamedTuple):
    label: str
    k: Float[Array, "3"]


def create_kpoint(label: str, k: Sequence[non_jax_number]) -> KPoint:
    if not isinstance(label, str):
        raise InvalidInputError("must be a string", "label")
    return KPoint(label, _vector3(k, "k"))


class KPath(NamedTuple):
    points: Tuple[KPoint, ...]
    n_per_segment: int


def _in_range(value: int, bounds: Tuple[int, int], field: str) -> int:
    value = _integer(value, field)
    low, high = bounds
    if not low <= value <= high:
        raise InvalidInputError(f"must lie in [{low}, {high}], got {value}", field)
    return value


def create_kpath(
    points: Sequence[KPoint],
    n_per_segment: int = config.DEFAULT_N_PER_SEGMENT,
) -> KPath:
    """
    Description
    -----------
    Factory function for `KPath`.

    Raises
    ------
    - `InvalidInputError`:
        Fewer than 2 or more than `config.MAX_KPATH_VERTICES` vertices, or
        `n_per_segment` outside `config.N_PER_SEGMENT_RANGE`.
    """
    points = tuple(points)
    if len(points) < 2:
        raise InvalidInputError(
            f"needs at least 2 vertices, got {len(points)}", "points"
        )
    if len(points) > config.MAX_KPATH_VERTICES:
        raise InvalidInputError(
            f"has {len(points)} vertices, limit is {config.MAX_KPATH_VERTICES}",
            "points",
        )
    n_per_segment = _in_range(
        n_per_segment, config.N_PER_SEGMENT_RANGE, "nPerSegment"
    )
    return KPath(points, n_per_segment)


class DOSOptions(NamedTuple):
    enabled: bool
    n_energies: int
    eta: float
    e_min: Optional[float]
    e_max: Optional[float]


def create_dos_options(
    enabled: bool = True,
    n_energies: int = config.DEFAULT_NE,
    eta: non_jax_number = config.DEFAULT_ETA,
    e_min: Optional[non_jax_number] = None,
    e_max: Optional[non_jax_number] = None,
) -> DOSOptions:
    if not isinstance(enabled, bool):
        raise InvalidInputError("must be a boolean", "enabled")
    n_energies = _in_range(n_energies, config.NE_RANGE, "nE")
    eta = _positive(eta, "eta")
    e_min = None if e_min is None else _finite(e_min, "eMin")
    e_max = None if e_max is None else _finite(e_max, "eMax")
    if e_min is not None and e_max is not None and e_min >= e_max:
        raise InvalidInputError(
            f"eMin ({e_min}) must be below eMax ({e_max})", "eMax"
        )
    return DOSOptions(enabled, n_energies, eta, e_min, e_max)


class TBRequest(NamedTuple):
    lattice: TBLattice
    params: TBParams
    kpath: KPath
    dos: DOSOptions


def create_tb_request(
    lattice: str,
    params: TBParams,
    kpath: KPath,
    dos: Optional[DOSOptions] = None,
) -> TBRequest:
    tb_lattice = TBLattice.parse(lattice, "model.lattice")
    return TBRequest(tb_lattice, params, kpath, dos or create_dos_options())


@register_pytree_node_class
class KPathSamples(NamedTuple):
    """
    Description
    -----------
    Uniformly sampled k-path.

    Attributes
    ----------
    - `k_points` (Float[Array, "K 3"]):
        Sampled wavevectors, shared vertices appear once
    - `distance` (Float[Array, "K"]):
        Cumulative arc length, starting at 0
    - `label_indices` (Int[Array, "V"]):
        Sample index of every path vertex
    - `labels` (Tuple[str, ...]):
        Vertex labels, auxiliary PyTree data
    """

    k_points: Float[Array, "K 3"]
    distance: Float[Array, "K"]
    label_indices: Int[Array, "V"]
    labels: Tuple[str, ...]

    def tree_flatten(self):
        return (self.k_points, self.distance, self.label_indices), self.labels

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        return cls(*children, aux_data)


@register_pytree_node_class
class BandStructure(NamedTuple):
    """Bands along a sampled path; `energies[b, j]` is ascending in `b`."""

    path: KPathSamples
    energies: Float[Array, "B K"]

    def tree_flatten(self):
        return (self.path, self.energies), None

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        return cls(*children)


@jaxtyped(typechecker=beartype)
def create_band_structure(
    path: KPathSamples, energies: Float[Array, "B K"]
) -> BandStructure:
    if energies.shape[1] != path.k_points.shape[0]:
        raise ValueError("energies must have one column per k-sample")
    return BandStructure(path, energies)


@register_pytree_node_class
class DensityOfStates(NamedTuple):
    """Lorentzian-broadened DOS per unit cell on an ascending energy grid."""

    energies: Float[Array, "E"]
    density: Float[Array, "E"]

    def tree_flatten(self):
        return (self.energies, self.density), None

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        return cls(*children)


@register_pytree_node_class
class TBResult(NamedTuple):
    bands: BandStructure
    dos: Optional[DensityOfStates]

    def tree_flatten(self):
        return (self.bands, self.dos), None

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        return cls(*children)
