"""
Correlation handling with Cholesky decomposition for multi-factor simulation.

Provides utilities for generating correlated Brownian increments used in
the joint simulation of LGM states and FX log-spots.
"""

from dataclasses import dataclass

import numpy as np

from amc_core._types import FloatArray


@dataclass
class CholeskyCorrelation:
    """
    Manages the correlation structure of the model's Brownian drivers.

    Uses Cholesky decomposition to transform independent standard normal
    random variables into correlated ones:
        L = cholesky(Σ)
        Z_correlated = L @ Z_independent

    Attributes
    ----------
    matrix : FloatArray
        Square correlation matrix

    Example
    -------
    >>> corr = CholeskyCorrelation(np.array([[1.0, 0.7], [0.7, 1.0]]))
    >>> z = corr.generate_correlated_samples(n_paths=1000, n_steps=4, seed=42)
    >>> print(z.shape)  # (1000, 4, 2)
    """

    matrix: FloatArray

    def __post_init__(self) -> None:
        """Validate correlations and compute Cholesky factor."""
        self.matrix = np.atleast_2d(np.asarray(self.matrix, dtype=float))
        n, m = self.matrix.shape
        if n != m:
            raise ValueError(f"Correlation matrix must be square, got {self.matrix.shape}")
        if np.any(np.abs(self.matrix) > 1.0 + 1e-12):
            raise ValueError("Correlations must be in [-1, 1]")
        if not np.allclose(self.matrix, self.matrix.T):
            raise ValueError("Correlation matrix must be symmetric")

        self._validate_positive_definite()
        self._cholesky = self._factorize()

    @classmethod
    def identity(cls, n: int) -> "CholeskyCorrelation":
        """Uncorrelated drivers."""
        return cls(np.eye(n))

    def _validate_positive_definite(self) -> None:
        """Check that correlation matrix is positive semi-definite."""
        eigenvalues = np.linalg.eigvalsh(self.matrix)
        if np.any(eigenvalues < -1e-10):
            raise ValueError(
                f"Correlation matrix is not positive semi-definite. "
                f"Eigenvalues: {eigenvalues}. "
                f"Check that correlations are consistent."
            )

    def _factorize(self) -> FloatArray:
        """Cholesky factor; semi-definite matrices get a tiny diagonal shift."""
        try:
            return np.linalg.cholesky(self.matrix)
        except np.linalg.LinAlgError:
            n = self.matrix.shape[0]
            return np.linalg.cholesky(self.matrix + 1e-12 * np.eye(n))

    @property
    def dimension(self) -> int:
        """Number of correlated drivers."""
        return self.matrix.shape[0]

    @property
    def cholesky_factor(self) -> FloatArray:
        """Return the lower triangular Cholesky factor."""
        return self._cholesky.copy()

    def correlate(self, z_independent: FloatArray) -> FloatArray:
        """
        Transform independent normals to correlated normals.

        Parameters
        ----------
        z_independent : FloatArray
            Array whose last axis has length ``dimension``

        Returns
        -------
        FloatArray
            Correlated normal variables with the specified correlation structure
        """
        if z_independent.shape[-1] != self.dimension:
            raise ValueError(
                f"Expected last axis of length {self.dimension}, "
                f"got {z_independent.shape[-1]}"
            )
        return z_independent @ self._cholesky.T

    def generate_correlated_samples(
        self,
        n_paths: int,
        n_steps: int,
        seed: int | None = None,
        antithetic: bool = False,
    ) -> FloatArray:
        """
        Generate correlated standard normal samples for simulation.

        Parameters
        ----------
        n_paths : int
            Number of Monte Carlo paths
        n_steps : int
            Number of time steps (excluding t=0)
        seed : int | None
            Random seed
        antithetic : bool
            If True, path i + n_paths/2 mirrors path i (n_paths must be even)

        Returns
        -------
        FloatArray
            Array of shape (n_paths, n_steps, dimension)
        """
        rng = np.random.default_rng(seed)

        if antithetic:
            if n_paths % 2 != 0:
                raise ValueError(
                    f"n_paths must be even for antithetic variates, got {n_paths}"
                )
            z_half = rng.standard_normal((n_paths // 2, n_steps, self.dimension))
            z_ind = np.concatenate([z_half, -z_half], axis=0)
        else:
            z_ind = rng.standard_normal((n_paths, n_steps, self.dimension))

        return self.correlate(z_ind)
