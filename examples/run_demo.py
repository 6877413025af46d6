#!/usr/bin/env python3
"""
American Monte Carlo Engine - Demo Script

This script demonstrates the complete workflow:
1. Load the model and engine configuration
2. Define a Bermudan swaption and a cross-currency FX-linked leg
3. Calibrate the engine (backward induction)
4. Replay the calculator on pricing paths, with a close-out rerun
5. Report exposure metrics

Usage:
    python examples/run_demo.py
"""

import logging
from pathlib import Path

from amc_core import (
    CrossAssetModel,
    EngineStats,
    ExposureSimulator,
    IborIndex,
    McMultiLegEngine,
    load_config,
    make_bermudan_swaption,
)
from amc_core.instruments import FloatingRateFXLinkedNotionalCoupon, FxIndex, MultiLegInstrument, make_ibor_leg


def main() -> None:
    """Run the demo."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print("=" * 60)
    print("American Monte Carlo Engine - Demo")
    print("=" * 60)
    print()

    # =========================================================================
    # 1. Configuration
    # =========================================================================
    print("1. Loading configuration...")

    config = load_config(Path(__file__).parent / "bermudan.yaml")
    model = CrossAssetModel.from_config(config["model"])
    amc_config = config["amc"]
    exposure_config = config["exposure"]

    print(f"   Currencies: {', '.join(model.currencies)} (state size {model.state_size})")
    print(f"   Calibration paths: {amc_config.calibration_samples:,}")
    print()

    # =========================================================================
    # 2. Instruments
    # =========================================================================
    print("2. Defining instruments...")

    euribor6m = IborIndex("EURIBOR6M", "EUR", tenor=0.5)
    usd_libor3m = IborIndex("USDLIBOR3M", "USD", tenor=0.25)

    swaption = make_bermudan_swaption(
        nominal=10_000_000,
        fixed_rate=0.022,
        index=euribor6m,
        start=1.0,
        end=6.0,
    )

    # USD floating leg on a EUR nominal, reset at each coupon's fixing
    eurusd = FxIndex("EUR", "USD")
    usd_leg = [
        FloatingRateFXLinkedNotionalCoupon(
            underlying=cpn,
            foreign_amount=5_000_000,
            fx_index=eurusd,
            fx_fixing_time=cpn.accrual_start,
        )
        for cpn in make_ibor_leg(5_000_000, usd_libor3m, start=0.25, end=3.0)
    ]
    fx_linked = MultiLegInstrument(legs=[usd_leg], currencies=["USD"], payer=[False])

    print(f"   Bermudan swaption: {len(swaption.exercise.times)} exercise dates, maturity {swaption.maturity:.1f}Y")
    print(f"   FX-linked leg: {len(usd_leg)} coupons")
    print()

    # =========================================================================
    # 3. Calibration
    # =========================================================================
    print("3. Calibrating...")

    engine = McMultiLegEngine(model, amc_config, simulation_times=exposure_config.valuation_times)
    stats = EngineStats()
    result = engine.calculate(swaption, stats)
    leg_result = engine.calculate(fx_linked, stats)

    print(f"   Swaption underlying NPV: {result.underlying_npv:,.0f} EUR")
    print(f"   Swaption value:          {result.value:,.0f} EUR")
    print(f"   FX-linked leg NPV:       {leg_result.value:,.0f} EUR")
    print(f"   Timings: {', '.join(f'{k}={v:.2f}s' for k, v in stats.to_dict().items())}")
    print()

    # =========================================================================
    # 4. Exposure
    # =========================================================================
    print("4. Replaying on pricing paths...")

    simulator = ExposureSimulator.from_config(model, exposure_config, amc_config)
    path_values = simulator.simulate()
    profile = simulator.run(result.calculator, path_values)

    print(f"   Paths: {profile.n_paths:,}")
    print(f"   Peak EPE: {profile.peak_epe:,.0f} EUR")
    print()
    print(profile.to_dataframe().round(0).to_string())
    print()

    print("=" * 60)
    print("Demo completed successfully!")
    print("=" * 60)


if __name__ == "__main__":
    main()
