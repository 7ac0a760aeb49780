"""Work done for a single model pair, possibly inside a pool process."""
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Optional

from repredret.domain.exceptions import ModelBuildError
from repredret.domain.models import ModelFit, ModelPair, ModelResult
from repredret.modeling.builder import build_model
from repredret.modeling.export import export_model, model_dir, remove_model

logger = logging.getLogger(__name__)

ModelBuilder = Callable[..., ModelFit]


@dataclass(frozen=True)
class WorkerOptions:
    """Per-run parameters shipped to every worker."""
    alpha: float = 0.05
    method: str = "fast_ci"
    export_dir: Optional[Path] = None
    save_json: bool = True


def _failed(pair: ModelPair, options: WorkerOptions, message: str) -> ModelResult:
    # an earlier successful export of this pair must not outlive its failure
    if options.export_dir is not None:
        try:
            remove_model(options.export_dir, pair.sys1_id, pair.sys2_id)
        except OSError as e:
            logger.warning("Could not remove stale model %s -> %s: %s", pair.sys1_id, pair.sys2_id, e)
    return ModelResult.failed(pair.sys1_id, pair.sys2_id, message)


def build_pair(
    pair: ModelPair,
    options: WorkerOptions,
    builder: ModelBuilder = build_model,
) -> ModelResult:
    """
    Fit and optionally export one pair.

    Never raises for problems with the pair itself: builder and export errors
    are returned as failure results so one bad pair cannot stop a batch. A
    failed pair leaves no exported model behind.
    """
    try:
        fit = builder(
            pair.rt_matrix,
            pair.sys1_id,
            pair.sys2_id,
            alpha=options.alpha,
            method=options.method,
        )
    except ModelBuildError as e:
        return _failed(pair, options, e.message)
    except Exception as e:
        logger.debug("Builder raised for %s -> %s", pair.sys1_id, pair.sys2_id, exc_info=True)
        return _failed(pair, options, f"{type(e).__name__}: {e}")

    if not fit.success:
        return _failed(pair, options, fit.message or "model build failed")

    if (fit.sys1_id, fit.sys2_id) != pair.key:
        fit = replace(fit, sys1_id=pair.sys1_id, sys2_id=pair.sys2_id)

    if options.export_dir is not None:
        try:
            export_model(fit, model_dir(options.export_dir, pair.sys1_id, pair.sys2_id), options.save_json)
        except (OSError, ValueError, TypeError) as e:
            return _failed(pair, options, f"Export failed: {e}")

    return ModelResult.succeeded(pair.sys1_id, pair.sys2_id, fit)
