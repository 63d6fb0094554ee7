"""
Module: engine
--------------
The four engine operations. Each one takes a JSON-like payload, validates
it, runs the matching solver and returns a JSON-ready response dict.

Functions
---------
- `build_crystal`:
    ``buildCrystal``: lattice, supercell atoms, G-vectors and plane meshes
- `calc_ewald`:
    ``calcEwald``: Ewald-sphere spots on a planar detector
- `calc_tb`:
    ``calcTB``: tight-binding bands and density of states
- `health`:
    Liveness probe

Notes
-----
Every operation is pure and synchronous. Failures raise `EngineError`
subclasses; the caller turns them into an error body with
`EngineError.to_payload`.
"""

import logging

from beartype.typing import Any, Callable, Dict, TypeVar

from latticelab.errors import InvalidInputError
from latticelab.inout import (
    crystal_response,
    ewald_response,
    normalize_crystal_request,
    normalize_ewald_request,
    normalize_tb_request,
    parse_crystal_request,
    parse_ewald_request,
    parse_tb_request,
    request_hash,
    tb_response,
)
from latticelab.simul import simulate_ewald_pattern
from latticelab.tb import solve_tight_binding
from latticelab.ucell import build_crystal_structure

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _validated(operation: str, parse: Callable[[Any], T], payload: Any) -> T:
    try:
        return parse(payload)
    except InvalidInputError as err:
        logger.warning("%s rejected: %s", operation, err)
        raise


def build_crystal(payload: Any) -> Dict[str, Any]:
    """
    Description
    -----------
    Run the crystal builder on a ``buildCrystal`` payload.

    Raises
    ------
    - `InvalidInputError`:
        Schema or resource-limit violation
    - `DegenerateLatticeError`:
        Singular real-space basis
    """
    request = _validated("buildCrystal", parse_crystal_request, payload)
    digest = request_hash(normalize_crystal_request(request))
    try:
        build = build_crystal_structure(request)
    except InvalidInputError as err:
        logger.warning("buildCrystal rejected: %s", err)
        raise
    logger.info(
        "buildCrystal %s: %d atoms, %d G-vectors, %d planes, %d warnings",
        digest[:12],
        len(build.atoms.elements),
        build.reciprocal.g_points.shape[0],
        len(build.planes),
        len(build.warnings),
    )
    return crystal_response(build, digest)


def calc_ewald(payload: Any) -> Dict[str, Any]:
    """Run the Ewald solver on a ``calcEwald`` payload."""
    request = _validated("calcEwald", parse_ewald_request, payload)
    digest = request_hash(normalize_ewald_request(request))
    pattern = simulate_ewald_pattern(request)
    logger.info(
        "calcEwald %s: %d spots of %d tested",
        digest[:12],
        pattern.hkl.shape[0],
        pattern.n_tested,
    )
    return ewald_response(pattern, digest)


def calc_tb(payload: Any) -> Dict[str, Any]:
    """Run the tight-binding solver on a ``calcTB`` payload."""
    request = _validated("calcTB", parse_tb_request, payload)
    digest = request_hash(normalize_tb_request(request))
    result = solve_tight_binding(request)
    logger.info(
        "calcTB %s: %s, %d bands x %d k-samples, dos=%s",
        digest[:12],
        request.lattice.value,
        result.bands.energies.shape[0],
        result.bands.energies.shape[1],
        result.dos is not None,
    )
    return tb_response(result, digest)


def health() -> Dict[str, bool]:
    return {"ok": True}


OPERATIONS: Dict[str, Callable[[Any], Dict[str, Any]]] = {
    "crystal": build_crystal,
    "ewald": calc_ewald,
    "tb": calc_tb,
}
