"""Default per-pair model builder.

Maps retention times of system 1 onto system 2 with a straight-line fit and
reports per-compound prediction intervals. The pipeline treats the builder as
an injectable function: anything with the signature of :func:`build_model`
returning a :class:`ModelFit` can replace it.
"""

import logging
from statistics import NormalDist
from typing import Optional

import numpy as np
import pandas as pd

from repredret.domain.models import ModelFit, SUCCESS, FAILURE

logger = logging.getLogger(__name__)

METHODS = ("fast_ci", "bootstrap")
MIN_POINTS = 3


def _failure(sys1_id: str, sys2_id: str, n_points: int, method: str, alpha: float, message: str) -> ModelFit:
    return ModelFit(
        status=FAILURE,
        sys1_id=sys1_id,
        sys2_id=sys2_id,
        n_points=n_points,
        method=method,
        alpha=alpha,
        message=message,
    )


def _fast_ci_bounds(x: np.ndarray, y: np.ndarray, fitted: np.ndarray, alpha: float):
    n = len(x)
    residuals = y - fitted
    s = np.sqrt(np.sum(residuals ** 2) / (n - 2))
    sxx = np.sum((x - x.mean()) ** 2)
    se_pred = s * np.sqrt(1.0 + 1.0 / n + (x - x.mean()) ** 2 / sxx)
    z = NormalDist().inv_cdf(1.0 - alpha / 2.0)
    return fitted - z * se_pred, fitted + z * se_pred


def _bootstrap_bounds(
    x: np.ndarray,
    fitted: np.ndarray,
    residuals: np.ndarray,
    alpha: float,
    n_boot: int,
    rng: np.random.Generator,
):
    n = len(x)
    draws = np.empty((n_boot, n))
    for b in range(n_boot):
        y_star = fitted + rng.choice(residuals, size=n, replace=True)
        slope, intercept = np.polyfit(x, y_star, 1)
        draws[b] = slope * x + intercept + rng.choice(residuals, size=n, replace=True)
    lower = np.quantile(draws, alpha / 2.0, axis=0)
    upper = np.quantile(draws, 1.0 - alpha / 2.0, axis=0)
    return lower, upper


def build_model(
    rt_matrix: pd.DataFrame,
    sys1_id: str,
    sys2_id: str,
    alpha: float = 0.05,
    method: str = "fast_ci",
    n_boot: int = 200,
    random_state: Optional[int] = 0,
) -> ModelFit:
    """
    Fit rt_sys2 ~ rt_sys1 for one pair of systems.

    Args:
        rt_matrix: Shared compounds with columns compound, rt_sys1, rt_sys2
        sys1_id: Source system
        sys2_id: Target system
        alpha: Significance level of the prediction intervals
        method: "fast_ci" (analytic) or "bootstrap" (residual resampling)
        n_boot: Bootstrap replicates
        random_state: Seed for the bootstrap

    Returns:
        ModelFit with status "success" and median CI width / median absolute
        error, or status "failure" and a message.
    """
    if method not in METHODS:
        raise ValueError(f"method must be one of {METHODS}, got {method!r}")

    data = rt_matrix.dropna(subset=["rt_sys1", "rt_sys2"])
    n = len(data)
    if n < MIN_POINTS:
        return _failure(sys1_id, sys2_id, n, method, alpha,
                        f"Need at least {MIN_POINTS} shared compounds, got {n}")

    x = data["rt_sys1"].to_numpy(dtype=float)
    y = data["rt_sys2"].to_numpy(dtype=float)
    if np.ptp(x) == 0.0:
        return _failure(sys1_id, sys2_id, n, method, alpha,
                        "Retention times on the source system have zero variance")

    slope, intercept = np.polyfit(x, y, 1)
    fitted = slope * x + intercept
    residuals = y - fitted

    if method == "fast_ci":
        lower, upper = _fast_ci_bounds(x, y, fitted, alpha)
    else:
        rng = np.random.default_rng(random_state)
        lower, upper = _bootstrap_bounds(x, fitted, residuals, alpha, n_boot, rng)

    ci_width = upper - lower
    if not np.all(np.isfinite(ci_width)):
        return _failure(sys1_id, sys2_id, n, method, alpha, "Non-finite prediction intervals")

    predictions = pd.DataFrame({
        "compound": data["compound"].to_numpy(),
        "rt_sys1": x,
        "rt_sys2": y,
        "predicted": fitted,
        "lower": lower,
        "upper": upper,
    })

    return ModelFit(
        status=SUCCESS,
        sys1_id=sys1_id,
        sys2_id=sys2_id,
        n_points=n,
        stats={
            "median_ci_width": float(np.median(ci_width)),
            "median_error": float(np.median(np.abs(residuals))),
            "slope": float(slope),
            "intercept": float(intercept),
        },
        predictions=predictions,
        method=method,
        alpha=alpha,
    )
