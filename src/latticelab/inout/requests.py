"""
Module: inout.requests
----------------------
Conversion between the camelCase JSON request payloads and the typed,
validated request structures.

Parsing fills in every documented default and reports the first violation
as an `InvalidInputError` whose `field` is the dotted path into the payload
(for example ``basis[2].frac`` or ``detector.up``).

Functions
---------
- `parse_crystal_request`:
    Payload of ``buildCrystal`` to `CrystalBuildRequest`
- `parse_ewald_request`:
    Payload of ``calcEwald`` to `EwaldRequest`
- `parse_tb_request`:
    Payload of ``calcTB`` to `TBRequest`
- `normalize_crystal_request`, `normalize_ewald_request`,
  `normalize_tb_request`:
    Typed request back to a JSON-like dict with all defaults filled, the
    input of the request hash
"""

from contextlib import contextmanager

import numpy as np
from beartype.typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

from latticelab import config
from latticelab.errors import InvalidInputError
from latticelab.types import (
    CrystalBuildRequest,
    EwaldRequest,
    TBRequest,
    create_basis_atom,
    create_beam,
    create_crystal_build_request,
    create_detector,
    create_dos_options,
    create_ewald_request,
    create_kpath,
    create_kpoint,
    create_lattice_params,
    create_plane_spec,
    create_reciprocal_cloud,
    create_tb_params,
    create_tb_request,
)


def _join(prefix: Optional[str], field: Optional[str]) -> Optional[str]:
    if not prefix:
        return field
    if not field:
        return prefix
    if field.startswith("["):
        return f"{prefix}{field}"
    return f"{prefix}.{field}"


@contextmanager
def _scope(prefix: str) -> Iterator[None]:
    """Prefix the `field` of any `InvalidInputError` raised inside the block."""
    try:
        yield
    except InvalidInputError as err:
        raise type(err)(err.constraint, _join(prefix, err.field)) from err


def _mapping(value: Any, field: Optional[str]) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise InvalidInputError(
            f"must be an object, got {type(value).__name__}", field
        )
    return value


def _sequence(value: Any, field: Optional[str]) -> Sequence[Any]:
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise InvalidInputError(
            f"must be an array, got {type(value).__name__}", field
        )
    return value


def _require(data: Mapping[str, Any], key: str) -> Any:
    if data.get(key) is None:
        raise InvalidInputError("is required", key)
    return data[key]


def _tolist(array) -> Optional[List[Any]]:
    return None if array is None else np.asarray(array).tolist()


def parse_crystal_request(payload: Any) -> CrystalBuildRequest:
    """
    Description
    -----------
    Validate a ``buildCrystal`` payload.

    Parameters
    ----------
    - `payload` (Mapping[str, Any]):
        ``{lattice, basis, supercell?, reciprocal?, planes?}``

    Returns
    -------
    - `request` (CrystalBuildRequest):
        Typed request with ``supercell = [1, 1, 1]``,
        ``gMax = config.DEFAULT_G_MAX`` and ``planes = []`` when absent

    Raises
    ------
    - `InvalidInputError`:
        First schema violation, with the dotted field path
    """
    payload = _mapping(payload, None)
    lattice_data = _mapping(_require(payload, "lattice"), "lattice")
    with _scope("lattice"):
        lattice = create_lattice_params(
            _require(lattice_data, "kind"),
            _require(lattice_data, "a"),
            b=lattice_data.get("b"),
            c=lattice_data.get("c"),
            alpha=lattice_data.get("alpha"),
            beta=lattice_data.get("beta"),
            gamma=lattice_data.get("gamma"),
            basis=lattice_data.get("A"),
        )

    basis = []
    for index, atom in enumerate(_sequence(_require(payload, "basis"), "basis")):
        with _scope(f"basis[{index}]"):
            atom = _mapping(atom, None)
            basis.append(
                create_basis_atom(
                    _require(atom, "element"),
                    _sequence(_require(atom, "frac"), "frac"),
                    atom.get("magmom"),
                )
            )

    supercell = _sequence(payload.get("supercell") or [1, 1, 1], "supercell")
    reciprocal = _mapping(payload.get("reciprocal") or {}, "reciprocal")
    g_max = reciprocal.get("gMax")
    if g_max is None:
        g_max = config.DEFAULT_G_MAX

    planes = []
    for index, plane in enumerate(_sequence(payload.get("planes") or [], "planes")):
        with _scope(f"planes[{index}]"):
            plane = _mapping(plane, None)
            planes.append(
                create_plane_spec(
                    _require(plane, "h"),
                    _require(plane, "k"),
                    _require(plane, "l"),
                    offset=plane.get("offset") or 0.0,
                    size=plane.get("size"),
                )
            )

    return create_crystal_build_request(lattice, basis, supercell, g_max, planes)


def normalize_crystal_request(request: CrystalBuildRequest) -> Dict[str, Any]:
    lattice = request.lattice
    return {
        "lattice": {
            "kind": lattice.kind.value,
            "a": lattice.a,
            "b": lattice.b,
            "c": lattice.c,
            "alpha": lattice.alpha,
            "beta": lattice.beta,
            "gamma": lattice.gamma,
            "A": _tolist(lattice.basis),
        },
        "basis": [
            {
                "element": atom.element,
                "frac": _tolist(atom.frac),
                "magmom": atom.magmom,
            }
            for atom in request.basis
        ],
        "supercell": list(request.supercell),
        "reciprocal": {"gMax": request.g_max},
        "planes": [
            {
                "h": plane.hkl[0],
                "k": plane.hkl[1],
                "l": plane.hkl[2],
                "offset": plane.offset,
                "size": plane.size,
            }
            for plane in request.planes
        ],
    }


def parse_ewald_request(payload: Any) -> EwaldRequest:
    """
    Description
    -----------
    Validate a ``calcEwald`` payload
    ``{crystal: {B, gPoints, gHKL}, beam, detector, intensity}``.

    Raises
    ------
    - `InvalidInputError`:
        First schema violation, including non-unit direction vectors, a
        non-orthogonal orientation and mismatched `gPoints` / `gHKL`
    """
    payload = _mapping(payload, None)
    crystal_data = _mapping(_require(payload, "crystal"), "crystal")
    with _scope("crystal"):
        crystal = create_reciprocal_cloud(
            _require(crystal_data, "B"),
            _sequence(_require(crystal_data, "gPoints"), "gPoints"),
            _sequence(_require(crystal_data, "gHKL"), "gHKL"),
        )

    beam_data = _mapping(_require(payload, "beam"), "beam")
    with _scope("beam"):
        beam = create_beam(
            _require(beam_data, "lambda"),
            _sequence(_require(beam_data, "kInDir"), "kInDir"),
            orientation=beam_data.get("orientation"),
            tolerance=beam_data.get("tolerance"),
        )

    detector_data = _mapping(_require(payload, "detector"), "detector")
    with _scope("detector"):
        detector = create_detector(
            _require(detector_data, "distance"),
            _sequence(_require(detector_data, "normal"), "normal"),
            _sequence(_require(detector_data, "up"), "up"),
            _require(detector_data, "width"),
            _require(detector_data, "height"),
        )

    intensity = _mapping(_require(payload, "intensity"), "intensity")
    with _scope("intensity"):
        model = _require(intensity, "model")
    return create_ewald_request(
        crystal, beam, detector, model=model, sigma=intensity.get("sigma")
    )


def normalize_ewald_request(request: EwaldRequest) -> Dict[str, Any]:
    beam = request.beam
    detector = request.detector
    return {
        "crystal": {
            "B": _tolist(request.crystal.basis),
            "gPoints": _tolist(request.crystal.g_points),
            "gHKL": _tolist(request.crystal.g_hkl),
        },
        "beam": {
            "lambda": beam.wavelength,
            "kInDir": _tolist(beam.k_in_dir),
            "orientation": _tolist(beam.orientation),
            "tolerance": beam.tolerance,
        },
        "detector": {
            "distance": detector.distance,
            "normal": _tolist(detector.normal),
            "up": _tolist(detector.up),
            "width": detector.width,
            "height": detector.height,
        },
        "intensity": {"model": request.model.value, "sigma": request.sigma},
    }


def parse_tb_request(payload: Any) -> TBRequest:
    """
    Description
    -----------
    Validate a ``calcTB`` payload ``{model, kpath, dos?}``. Unknown keys in
    ``model.params`` are ignored and missing ones default to zero. An absent
    ``dos`` block means DOS enabled with default grid and broadening.

    Raises
    ------
    - `InvalidInputError`:
        First schema violation
    """
    payload = _mapping(payload, None)
    model = _mapping(_require(payload, "model"), "model")
    with _scope("model"):
        lattice = _require(model, "lattice")
        params = create_tb_params(_mapping(model.get("params") or {}, "params"))

    kpath_data = _mapping(_require(payload, "kpath"), "kpath")
    with _scope("kpath"):
        points = []
        raw_points = _sequence(_require(kpath_data, "points"), "points")
        for index, point in enumerate(raw_points):
            with _scope(f"points[{index}]"):
                point = _mapping(point, None)
                points.append(
                    create_kpoint(
                        _require(point, "label"),
                        _sequence(_require(point, "k"), "k"),
                    )
                )
        n_per_segment = kpath_data.get("nPerSegment")
        if n_per_segment is None:
            n_per_segment = config.DEFAULT_N_PER_SEGMENT
        kpath = create_kpath(points, n_per_segment)

    dos_data = _mapping(payload.get("dos") or {}, "dos")
    with _scope("dos"):
        dos = create_dos_options(
            enabled=dos_data.get("enabled", True),
            n_energies=dos_data.get("nE", config.DEFAULT_NE),
            eta=dos_data.get("eta", config.DEFAULT_ETA),
            e_min=dos_data.get("eMin"),
            e_max=dos_data.get("eMax"),
        )

    return create_tb_request(lattice, params, kpath, dos)


def normalize_tb_request(request: TBRequest) -> Dict[str, Any]:
    dos = request.dos
    return {
        "model": {
            "lattice": request.lattice.value,
            "params": request.params._asdict(),
        },
        "kpath": {
            "points": [
                {"label": point.label, "k": _tolist(point.k)}
                for point in request.kpath.points
            ],
            "nPerSegment": request.kpath.n_per_segment,
        },
        "dos": {
            "enabled": dos.enabled,
            "nE": dos.n_energies,
            "eta": dos.eta,
            "eMin": dos.e_min,
            "eMax": dos.e_max,
        },
    }
