"""
Cross-currency risk-factor model: one LGM component per currency and one
lognormal FX component per foreign currency.

State vector ordering is [z_0, ..., z_{n-1}, ln x_1, ..., ln x_{n-1}] where
currency 0 is the base currency. The model is the narrow interface the
engine consumes: dimensionality, currency and state index lookups, initial
state, numeraire, and a stochastic process to draw paths from.
"""

from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from amc_core._types import FloatArray, SampleVector
from amc_core.exceptions import StructuralConsistencyError
from amc_core.market.correlation import CholeskyCorrelation
from amc_core.market.curve import DiscountCurve
from amc_core.market.fx_model import FxBsModel
from amc_core.market.lgm import LgmModel, LgmVectorised


class AssetType(Enum):
    """Model component types."""

    IR = "interest_rate"
    FX = "fx"


@dataclass
class CrossAssetModel:
    """
    Cross-currency LGM model with lognormal FX rates.

    Attributes
    ----------
    ir_models : list[LgmModel]
        LGM components, base currency first
    fx_models : list[FxBsModel]
        FX components for currencies 1..n-1, in the same order as ir_models
    correlation : CholeskyCorrelation | None
        Correlation of the Brownian drivers (identity if None)

    Example
    -------
    >>> model = CrossAssetModel([LgmModel("EUR"), LgmModel("USD")], [FxBsModel("USD", 0.9)])
    >>> model.dimension
    3
    >>> model.p_idx(AssetType.FX, 0)
    2
    """

    ir_models: list[LgmModel]
    fx_models: list[FxBsModel] = field(default_factory=list)
    correlation: CholeskyCorrelation | None = None

    def __post_init__(self) -> None:
        """Validate component layout and build lookups."""
        if not self.ir_models:
            raise ValueError("At least one IR component is required")
        if len(self.fx_models) != len(self.ir_models) - 1:
            raise StructuralConsistencyError(
                f"CrossAssetModel: {len(self.ir_models)} IR components require "
                f"{len(self.ir_models) - 1} FX components, got {len(self.fx_models)}"
            )
        for i, fx in enumerate(self.fx_models):
            if fx.currency != self.ir_models[i + 1].currency:
                raise StructuralConsistencyError(
                    f"CrossAssetModel: FX component {i} is for {fx.currency}, "
                    f"expected {self.ir_models[i + 1].currency}"
                )
        if self.correlation is None:
            self.correlation = CholeskyCorrelation.identity(self.dimension)
        elif self.correlation.dimension != self.dimension:
            raise StructuralConsistencyError(
                f"CrossAssetModel: correlation dimension {self.correlation.dimension} "
                f"does not match model dimension {self.dimension}"
            )

        self._ccy_index = {m.currency: i for i, m in enumerate(self.ir_models)}
        self._lgm_vectorised = [LgmVectorised(m) for m in self.ir_models]

    @property
    def base_currency(self) -> str:
        """Currency of the numeraire."""
        return self.ir_models[0].currency

    @property
    def currencies(self) -> list[str]:
        """Model currencies, base first."""
        return [m.currency for m in self.ir_models]

    @property
    def dimension(self) -> int:
        """Number of state variables (equals number of Brownian drivers)."""
        return len(self.ir_models) + len(self.fx_models)

    @property
    def state_size(self) -> int:
        """Size of the state vector."""
        return self.dimension

    def components(self, asset_type: AssetType) -> int:
        """Number of components of the given type."""
        return len(self.ir_models) if asset_type is AssetType.IR else len(self.fx_models)

    def ccy_index(self, currency: str) -> int:
        """Model index of a currency (0 is the base currency)."""
        try:
            return self._ccy_index[currency]
        except KeyError:
            raise StructuralConsistencyError(
                f"CrossAssetModel: currency {currency} not in model currencies {self.currencies}"
            ) from None

    def p_idx(self, asset_type: AssetType, i: int) -> int:
        """State vector index of component i of the given type."""
        n = self.components(asset_type)
        if not 0 <= i < n:
            raise StructuralConsistencyError(
                f"CrossAssetModel: {asset_type.name} component {i} out of range (have {n})"
            )
        return i if asset_type is AssetType.IR else len(self.ir_models) + i

    @property
    def initial_values(self) -> FloatArray:
        """State vector at time 0."""
        return np.array(
            [0.0] * len(self.ir_models) + [fx.log_spot for fx in self.fx_models]
        )

    def irlgm1f(self, i: int) -> LgmModel:
        """LGM component i."""
        return self.ir_models[i]

    def fxbs(self, i: int) -> FxBsModel:
        """FX component i (currency i + 1 against base)."""
        return self.fx_models[i]

    def lgm_vectorised(self, i: int) -> LgmVectorised:
        """Batched fixing evaluator of LGM component i."""
        return self._lgm_vectorised[i]

    def corr(self, a: int, b: int) -> float:
        """Correlation between the drivers of state indices a and b."""
        return float(self.correlation.matrix[a, b])  # type: ignore[union-attr]

    def numeraire(
        self,
        t: float,
        x: SampleVector | float,
        discount_curve: DiscountCurve | None = None,
    ) -> SampleVector | float:
        """Base currency LGM numeraire at time t for base IR state x."""
        return self.ir_models[0].numeraire(t, x, discount_curve)

    def state_process(self) -> "CrossAssetStateProcess":  # noqa: F821
        """General multi-factor state process of the model."""
        from amc_core.market.process import CrossAssetStateProcess

        return CrossAssetStateProcess(self)

    @classmethod
    def from_config(cls, config: "CrossAssetModelConfig") -> "CrossAssetModel":  # type: ignore[name-defined]  # noqa: F821
        """
        Create model from configuration object.

        Parameters
        ----------
        config : CrossAssetModelConfig
            Validated model configuration

        Returns
        -------
        CrossAssetModel
            Initialized model
        """
        correlation = (
            CholeskyCorrelation(np.array(config.correlation))
            if config.correlation is not None
            else None
        )
        return cls(
            ir_models=[LgmModel.from_config(c) for c in config.ir_models],
            fx_models=[FxBsModel.from_config(c) for c in config.fx_models],
            correlation=correlation,
        )
