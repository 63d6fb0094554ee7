"""
Module: tb.kpath
----------------
Uniform sampling of a piecewise-linear path through the Brillouin zone.

Functions
---------
- `kpath_length`:
    Total number of samples of a path
- `sample_kpath`:
    Sample every segment and stitch them without duplicating vertices
"""

import jax
import jax.numpy as jnp
from jaxtyping import Array, Float, Int

from latticelab.types import KPath, KPathSamples

jax.config.update("jax_enable_x64", True)


def kpath_length(n_vertices: int, n_per_segment: int) -> int:
    """Samples in a path: nPerSegment + (nseg - 1)(nPerSegment - 1)."""
    n_segments = n_vertices - 1
    return n_per_segment + (n_segments - 1) * (n_per_segment - 1)


def sample_kpath(kpath: KPath) -> KPathSamples:
    """
    Description
    -----------
    Sample a k-path with `n_per_segment` inclusive points per segment. The
    last point of each segment is the first point of the next and appears
    once, so vertex i lands at index i * (n_per_segment - 1).

    Parameters
    ----------
    - `kpath` (KPath):
        Validated path with at least two vertices

    Returns
    -------
    - `samples` (KPathSamples):
        Wavevectors, cumulative arc length from 0, and the sample index and
        label of every vertex

    Flow
    ----
    - Number the `kpath_length` samples globally
    - Map each sample index to its segment and the fraction along it; the
      final sample is the end of the last segment
    - Interpolate between the segment's vertices
    - Accumulate |k_{j+1} - k_j| for the arc length
    """
    steps = kpath.n_per_segment - 1
    vertices: Float[Array, "V 3"] = jnp.stack([point.k for point in kpath.points])
    n_segments = vertices.shape[0] - 1
    n_samples = kpath_length(vertices.shape[0], kpath.n_per_segment)

    index: Int[Array, "K"] = jnp.arange(n_samples, dtype=jnp.int64)
    segment: Int[Array, "K"] = jnp.minimum(index // steps, n_segments - 1)
    fraction: Float[Array, "K"] = (index - segment * steps) / steps
    start: Float[Array, "K 3"] = vertices[segment]
    k_points: Float[Array, "K 3"] = (
        start + fraction[:, None] * (vertices[segment + 1] - start)
    )

    increments = jnp.linalg.norm(jnp.diff(k_points, axis=0), axis=1)
    distance: Float[Array, "K"] = jnp.concatenate(
        [jnp.zeros(1, dtype=jnp.float64), jnp.cumsum(increments)]
    )
    label_indices = jnp.arange(n_segments + 1, dtype=jnp.int64) * steps
    labels = tuple(point.label for point in kpath.points)
    return KPathSamples(k_points, distance, label_indices, labels)
