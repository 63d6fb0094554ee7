"""Diffraction simulation on a reciprocal-lattice point cloud.

Routine Listings
----------------
wavevector_magnitude : function
    k = 2 pi / lambda
incident_wavevector : function
    Incident wavevector from wavelength and direction
rotate_reciprocal_points : function
    Apply the crystal orientation to every G
elastic_tolerance : function
    Tolerance of the Ewald-sphere test
find_elastic_reflections : function
    Ewald-sphere condition mask
detector_axes : function
    In-plane axes of the detector
project_on_detector : function
    Ray-plane intersection in detector coordinates
compute_intensities : function
    Placeholder intensity models
simulate_ewald_pattern : function
    Complete Ewald solver
"""

from .ewald import (
    compute_intensities,
    detector_axes,
    elastic_tolerance,
    find_elastic_reflections,
    incident_wavevector,
    project_on_detector,
    rotate_reciprocal_points,
    simulate_ewald_pattern,
    wavevector_magnitude,
)

__all__ = [
    "wavevector_magnitude",
    "incident_wavevector",
    "rotate_reciprocal_points",
    "elastic_tolerance",
    "find_elastic_reflections",
    "detector_axes",
    "project_on_detector",
    "compute_intensities",
    "simulate_ewald_pattern",
]
