"""
Module: inout.responses
-----------------------
Serialization of solver results into the JSON response bodies.

Arrays become nested Python lists through ``np.asarray(...).tolist()`` so the
output is directly consumable by `json.dumps`.

Functions
---------
- `crystal_response`:
    `CrystalBuild` to the ``buildCrystal`` response
- `ewald_response`:
    `EwaldPattern` to the ``calcEwald`` response
- `tb_response`:
    `TBResult` to the ``calcTB`` response
"""

import numpy as np
from beartype.typing import Any, Dict

from latticelab.types import CrystalBuild, EwaldPattern, TBResult


def _tolist(array) -> Any:
    return np.asarray(array).tolist()


def crystal_response(build: CrystalBuild, request_hash: str) -> Dict[str, Any]:
    """
    Description
    -----------
    ``{real, recip, atoms, planes, meta}`` body of ``buildCrystal``. The
    atom block carries ``magmoms`` next to ``positions``, ``elements`` and
    ``frac``, with null for basis atoms without a moment.
    """
    return {
        "real": {
            "A": _tolist(build.real_basis),
            "origin": _tolist(build.origin),
        },
        "recip": {
            "B": _tolist(build.reciprocal.basis),
            "gPoints": _tolist(build.reciprocal.g_points),
            "gHKL": _tolist(build.reciprocal.g_hkl),
        },
        "atoms": {
            "positions": _tolist(build.atoms.positions),
            "elements": list(build.atoms.elements),
            "frac": _tolist(build.atoms.frac),
            "magmoms": list(build.atoms.magmoms),
        },
        "planes": [
            {
                "hkl": _tolist(mesh.hkl),
                "normal": _tolist(mesh.normal),
                "mesh": {
                    "vertices": _tolist(mesh.vertices),
                    "faces": _tolist(mesh.faces),
                },
            }
            for mesh in build.planes
        ],
        "meta": {"requestHash": request_hash, "warnings": list(build.warnings)},
    }


def ewald_response(pattern: EwaldPattern, request_hash: str) -> Dict[str, Any]:
    hkl = _tolist(pattern.hkl)
    q_vectors = _tolist(pattern.q_vectors)
    k_out = _tolist(pattern.k_out_dir)
    uv = _tolist(pattern.detector_uv)
    intensities = _tolist(pattern.intensities)
    spots = [
        {
            "hkl": hkl[i],
            "Q": q_vectors[i],
            "kOutDir": k_out[i],
            "uv": uv[i],
            "intensity": intensities[i],
        }
        for i in range(len(hkl))
    ]
    return {
        "spots": spots,
        "meta": {"requestHash": request_hash, "nTested": int(pattern.n_tested)},
    }


def tb_response(result: TBResult, request_hash: str) -> Dict[str, Any]:
    """``{k, labels, bands, dos?, meta}``; ``k`` is the cumulative arc length."""
    path = result.bands.path
    indices = _tolist(path.label_indices)
    body: Dict[str, Any] = {
        "k": _tolist(path.distance),
        "labels": [
            {"atIndex": index, "label": label}
            for index, label in zip(indices, path.labels)
        ],
        "bands": _tolist(result.bands.energies),
    }
    if result.dos is not None:
        body["dos"] = {
            "E": _tolist(result.dos.energies),
            "g": _tolist(result.dos.density),
        }
    body["meta"] = {"requestHash": request_hash}
    return body
