"""
Least-squares regression on polynomial basis functions.

The basis system spans all products of one-dimensional polynomials whose
total degree is at most ``order``, so a d-dimensional state with order p
has C(p + d, d) basis functions. Coefficients are fitted with
``np.linalg.lstsq`` on the design matrix, optionally restricted to a subset
of paths.
"""

import itertools
import logging
from dataclasses import dataclass, field
from math import comb

import numpy as np
from numpy.polynomial import chebyshev, hermite, hermite_e, laguerre, legendre, polynomial

from amc_core._types import BoolArray, FloatArray, SampleVector

logger = logging.getLogger(__name__)

_VANDER = {
    "monomial": polynomial.polyvander,
    "laguerre": laguerre.lagvander,
    "hermite": hermite.hermvander,
    "hermite_e": hermite_e.hermevander,
    "legendre": legendre.legvander,
    "chebyshev": chebyshev.chebvander,
}


@dataclass(frozen=True)
class BasisSystem:
    """
    Multivariate polynomial basis of bounded total degree.

    Attributes
    ----------
    dimension : int
        Number of regressors
    order : int
        Maximum total degree
    family : str
        One-dimensional polynomial family, one of
        monomial, laguerre, hermite, hermite_e, legendre, chebyshev

    Example
    -------
    >>> basis = BasisSystem(dimension=2, order=2)
    >>> basis.size
    6
    >>> basis.multi_indices[:3]
    ((0, 0), (0, 1), (1, 0))
    """

    dimension: int
    order: int
    family: str = "monomial"
    multi_indices: tuple[tuple[int, ...], ...] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.dimension < 1:
            raise ValueError(f"dimension must be at least 1, got {self.dimension}")
        if self.order < 0:
            raise ValueError(f"order must be non-negative, got {self.order}")
        if self.family not in _VANDER:
            raise ValueError(f"unknown polynomial family '{self.family}', expected one of {sorted(_VANDER)}")
        indices = [
            k for k in itertools.product(range(self.order + 1), repeat=self.dimension)
            if sum(k) <= self.order
        ]
        indices.sort(key=lambda k: (sum(k), k))
        object.__setattr__(self, "multi_indices", tuple(indices))

    @property
    def size(self) -> int:
        """Number of basis functions, C(order + dimension, dimension)."""
        return comb(self.order + self.dimension, self.dimension)

    def design_matrix(self, regressors: FloatArray) -> FloatArray:
        """
        Basis functions evaluated on the regressors.

        Parameters
        ----------
        regressors : FloatArray
            Shape (dimension, n_samples)

        Returns
        -------
        FloatArray
            Shape (n_samples, size)
        """
        x = np.atleast_2d(np.asarray(regressors, dtype=float))
        if x.shape[0] != self.dimension:
            raise ValueError(f"expected {self.dimension} regressors, got {x.shape[0]}")
        vander = _VANDER[self.family]
        # (dimension, n_samples, order + 1)
        univariate = np.stack([vander(x[j], self.order) for j in range(self.dimension)])
        columns = [
            np.prod([univariate[j, :, k[j]] for j in range(self.dimension)], axis=0)
            for k in self.multi_indices
        ]
        return np.column_stack(columns)


def regression_coefficients(
    target: SampleVector,
    regressors: FloatArray,
    basis: BasisSystem,
    path_filter: BoolArray | None = None,
) -> FloatArray:
    """
    Least-squares coefficients of target on the basis functions.

    Parameters
    ----------
    target : SampleVector
        Values to regress, shape (n_samples,)
    regressors : FloatArray
        Shape (dimension, n_samples)
    basis : BasisSystem
        Basis functions
    path_filter : BoolArray | None
        Restrict the fit to these paths

    Returns
    -------
    FloatArray
        Coefficients, shape (basis.size,); all zero if the filter selects
        no path
    """
    x = np.atleast_2d(np.asarray(regressors, dtype=float))
    y = np.asarray(target, dtype=float)
    if path_filter is not None:
        if not np.any(path_filter):
            logger.debug("regression filter selects no path, returning zero coefficients")
            return np.zeros(basis.size)
        x = x[:, path_filter]
        y = y[path_filter]
    design = basis.design_matrix(x)
    coefficients, *_ = np.linalg.lstsq(design, y, rcond=None)
    return coefficients


def conditional_expectation(
    regressors: FloatArray, basis: BasisSystem, coefficients: FloatArray
) -> SampleVector:
    """Regression estimate at the given regressor values, shape (n_samples,)."""
    return basis.design_matrix(regressors) @ coefficients
