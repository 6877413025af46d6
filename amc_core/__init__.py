"""
American Monte Carlo Engine - Core Package.

Values multi-leg, multi-currency instruments with Bermudan exercise rights
by least-squares Monte Carlo on a cross-currency LGM model, and replays the
calibrated regressions on exposure paths.

Example
-------
>>> from amc_core import CrossAssetModel, McMultiLegEngine, make_bermudan_swaption
>>> model = CrossAssetModel.from_config(create_default_model_config())
>>> engine = McMultiLegEngine(model, AmcConfig(), simulation_times=[0.5, 1.0, 1.5, 2.0])
>>> result = engine.calculate(make_bermudan_swaption(1e7, 0.02, euribor6m, 1.0, 6.0))
>>> profile = ExposureSimulator(model, [0.5, 1.0, 1.5, 2.0], seed=17).run(result.calculator)
"""

__version__ = "1.0.0"

# Core types
from amc_core._types import BoolArray, FloatArray, PathValues, SampleVector

# Errors and stats
from amc_core.exceptions import (
    AmcError,
    ClassificationError,
    StructuralConsistencyError,
    UnrecognizedCouponError,
)
from amc_core.stats import EngineStats, Timer

# Configuration
from amc_core.config import (
    AmcConfig,
    CrossAssetModelConfig,
    ExposureConfig,
    create_default_model_config,
    load_config,
)

# Market models
from amc_core.market import (
    CholeskyCorrelation,
    CrossAssetModel,
    DiscountCurve,
    FxBsModel,
    LgmModel,
)

# Instruments
from amc_core.instruments import (
    ExerciseSchedule,
    IborIndex,
    MultiLegInstrument,
    Settlement,
    make_bermudan_swaption,
    make_fixed_leg,
    make_ibor_leg,
    make_swap,
)

# Engine
from amc_core.amc import (
    AmcResult,
    CashflowClassifier,
    McMultiLegEngine,
    MultiLegAmcCalculator,
    simulate_paths,
)

# Exposure
from amc_core.exposure import ExposureProfile, ExposureSimulator

__all__ = [
    # Version
    "__version__",
    # Types
    "BoolArray",
    "FloatArray",
    "PathValues",
    "SampleVector",
    # Errors and stats
    "AmcError",
    "ClassificationError",
    "StructuralConsistencyError",
    "UnrecognizedCouponError",
    "EngineStats",
    "Timer",
    # Config
    "AmcConfig",
    "CrossAssetModelConfig",
    "ExposureConfig",
    "create_default_model_config",
    "load_config",
    # Market
    "CholeskyCorrelation",
    "CrossAssetModel",
    "DiscountCurve",
    "FxBsModel",
    "LgmModel",
    # Instruments
    "ExerciseSchedule",
    "IborIndex",
    "MultiLegInstrument",
    "Settlement",
    "make_bermudan_swaption",
    "make_fixed_leg",
    "make_ibor_leg",
    "make_swap",
    # Engine
    "AmcResult",
    "CashflowClassifier",
    "McMultiLegEngine",
    "MultiLegAmcCalculator",
    "simulate_paths",
    # Exposure
    "ExposureProfile",
    "ExposureSimulator",
]
