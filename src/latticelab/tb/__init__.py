"""
Module: tb
----------
Tight-binding band structure and density of states.

Submodules
----------
- `hamiltonians`:
    Bloch Hamiltonians of the chain, square and honeycomb models
- `kpath`:
    Piecewise-linear k-path sampling
- `dos`:
    Lorentzian-broadened density of states
- `bands`:
    Diagonalization and the complete solver
"""

from .bands import band_energies, solve_bands, solve_tight_binding
from .dos import compute_dos, energy_window, lorentzian_dos
from .hamiltonians import (
    chain_hamiltonian,
    hamiltonian_for,
    honeycomb_hamiltonian,
    honeycomb_offdiagonal,
    square_hamiltonian,
)
from .kpath import kpath_length, sample_kpath

__all__ = [
    "chain_hamiltonian",
    "square_hamiltonian",
    "honeycomb_hamiltonian",
    "honeycomb_offdiagonal",
    "hamiltonian_for",
    "kpath_length",
    "sample_kpath",
    "energy_window",
    "lorentzian_dos",
    "compute_dos",
    "band_energies",
    "solve_bands",
    "solve_tight_binding",
]
