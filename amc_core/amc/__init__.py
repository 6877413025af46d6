"""
American Monte Carlo core for multi-leg instruments.

This module provides:
- Sorted time sets used for the exercise, valuation and simulation grids
- Cash-flow classification into descriptors with pure amount functions
- Calibration path simulation
- Polynomial basis regression
- The backward-induction engine and the forward replay calculator
"""

from amc_core.amc.time_grid import TimeSet
from amc_core.amc.cashflow_info import (
    AmountKind,
    AmountSpec,
    CapFloorTerms,
    CashflowClassifier,
    CashflowInfo,
    FxLinkage,
    cashflow_path_value,
    evaluate_amount,
)
from amc_core.amc.simulator import simulate_paths, state_process
from amc_core.amc.regression import BasisSystem, conditional_expectation, regression_coefficients
from amc_core.amc.calculator import MultiLegAmcCalculator, RegressionCoefficients
from amc_core.amc.engine import AmcResult, McMultiLegEngine

__all__ = [
    "TimeSet",
    "AmountKind",
    "AmountSpec",
    "CapFloorTerms",
    "CashflowClassifier",
    "CashflowInfo",
    "FxLinkage",
    "cashflow_path_value",
    "evaluate_amount",
    "simulate_paths",
    "state_process",
    "BasisSystem",
    "conditional_expectation",
    "regression_coefficients",
    "MultiLegAmcCalculator",
    "RegressionCoefficients",
    "AmcResult",
    "McMultiLegEngine",
]
