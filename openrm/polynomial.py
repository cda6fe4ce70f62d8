"""Least-squares fit of a two-variable polynomial surface z = f(x, y)."""

from __future__ import annotations

from typing import Iterable, Sequence

import numpy as np


class PolynomialFit:
    """Polynomial in x and y with terms x^i y^j for i <= x_max, j <= y_max, i + j <= max degree."""

    def __init__(self, x_max: int, y_max: int) -> None:
        if x_max < 0 or y_max < 0:
            raise ValueError("degrees must not be negative")
        self.x_max = x_max
        self.y_max = y_max
        limit = max(x_max, y_max) + 1
        self._terms = [
            (i, j)
            for i in range(x_max + 1)
            for j in range(y_max + 1)
            if (i, j) != (0, 0) and i + j < limit
        ]
        self.coefficients = np.zeros(1 + len(self._terms))
        self.r2 = 0.0

    def exponents(self) -> list[tuple[int, int]]:
        """Exponent pairs of the non-constant terms, in coefficient order."""
        return list(self._terms)

    def _design(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        columns = [np.ones_like(xs)]
        columns.extend(xs ** i * ys ** j for i, j in self._terms)
        return np.column_stack(columns)

    def predict(self, x: float, y: float) -> float:
        row = self._design(np.array([float(x)]), np.array([float(y)]))
        return float(row[0] @ self.coefficients)

    def fit(self, samples: Iterable[Sequence[float]], need_r2: bool = False) -> float | None:
        """Fit to (x, y, z) samples; return the coefficient of determination if asked."""
        data = np.asarray(list(samples), dtype=float)
        if data.size == 0:
            raise ValueError("no samples to fit")
        if data.ndim != 2 or data.shape[1] != 3:
            raise ValueError("samples must be (x, y, z) triples")
        xs, ys, zs = data[:, 0], data[:, 1], data[:, 2]
        design = self._design(xs, ys)
        self.coefficients, *_ = np.linalg.lstsq(design, zs, rcond=None)
        if not need_r2:
            return None
        residuals = zs - design @ self.coefficients
        sse = float(np.sum(residuals ** 2))
        sst = float(np.sum(zs ** 2) - np.sum(zs) ** 2 / len(zs))
        self.r2 = 1.0 - sse / sst if sst != 0 else float("nan")
        return self.r2

    def describe(self) -> str:
        """Human-readable form of the fitted polynomial."""
        parts = [f"{self.coefficients[0]:g}"]
        parts.extend(
            f"{c:g}x^{i}y^{j}" for c, (i, j) in zip(self.coefficients[1:], self._terms)
        )
        return " + ".join(parts)