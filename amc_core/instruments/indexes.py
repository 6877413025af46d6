"""
Rate and FX index definitions referenced by coupons.

Indexes carry the currency used to pick the LGM component and an optional
projection curve; without one the currency's model curve is used.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from amc_core.market.curve import DiscountCurve


@dataclass(frozen=True)
class IborIndex:
    """
    Term rate index (e.g., EURIBOR 6M).

    Attributes
    ----------
    name : str
        Index name
    currency : str
        Index currency
    tenor : float
        Tenor of the underlying deposit in years
    curve : DiscountCurve | None
        Projection curve
    """

    name: str
    currency: str
    tenor: float
    curve: "DiscountCurve | None" = None

    def __post_init__(self) -> None:
        if self.tenor <= 0:
            raise ValueError(f"Index tenor must be positive, got {self.tenor}")


@dataclass(frozen=True)
class SwapIndex:
    """
    Swap rate index used by CMS coupons.

    Attributes
    ----------
    name : str
        Index name
    currency : str
        Index currency
    tenor : float
        Swap length in years
    fixed_leg_period : float
        Fixed leg payment period in years
    curve : DiscountCurve | None
        Projection and discount curve of the swap
    """

    name: str
    currency: str
    tenor: float
    fixed_leg_period: float = 1.0
    curve: "DiscountCurve | None" = None

    def __post_init__(self) -> None:
        if self.tenor <= 0:
            raise ValueError(f"Swap tenor must be positive, got {self.tenor}")
        if self.fixed_leg_period <= 0 or self.fixed_leg_period > self.tenor:
            raise ValueError(
                f"Fixed leg period must be in (0, tenor], got {self.fixed_leg_period}"
            )


@dataclass(frozen=True)
class OvernightIndex:
    """Overnight rate index (e.g., ESTR, SOFR)."""

    name: str
    currency: str
    curve: "DiscountCurve | None" = None


@dataclass(frozen=True)
class BMAIndex:
    """
    Weekly municipal swap index.

    Attributes
    ----------
    fixing_period : float
        Length of the period each fixing covers, in years
    """

    name: str
    currency: str
    curve: "DiscountCurve | None" = None
    fixing_period: float = 7.0 / 365.0


@dataclass(frozen=True)
class FxIndex:
    """
    FX fixing quoted as target currency units per source currency unit.

    Attributes
    ----------
    source_currency : str
        Currency being converted
    target_currency : str
        Currency converted into
    """

    source_currency: str
    target_currency: str

    @property
    def name(self) -> str:
        """Index name, e.g. 'USDEUR'."""
        return f"{self.source_currency}{self.target_currency}"
