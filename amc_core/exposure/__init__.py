"""
Exposure simulation and metrics for calibrated multi-leg instruments.

This module provides:
- ExposureSimulator: pricing paths, replay and optional close-out rerun
- ExposureProfile with EPE, ENE and PFE profiles
- Standalone EPE/ENE/PFE functions
"""

from amc_core.exposure.metrics import ExposureProfile, calculate_ene, calculate_epe, calculate_pfe
from amc_core.exposure.simulator import ExposureSimulator

__all__ = [
    "ExposureProfile",
    "ExposureSimulator",
    "calculate_epe",
    "calculate_ene",
    "calculate_pfe",
]
