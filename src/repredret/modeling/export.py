"""Writing fitted models to the export directory."""
import json
import logging
import shutil
from pathlib import Path
from typing import List

from repredret.domain.models import ModelFit, model_dir_name

logger = logging.getLogger(__name__)

POINTS_FILE = "model.csv"
JSON_FILE = "model.json"


def model_dir(export_dir: str | Path, sys1_id: str, sys2_id: str) -> Path:
    return Path(export_dir) / model_dir_name(sys1_id, sys2_id)


def expected_artifacts(save_json: bool) -> List[str]:
    return [POINTS_FILE, JSON_FILE] if save_json else [POINTS_FILE]


def artifacts_exist(export_dir: str | Path, sys1_id: str, sys2_id: str, save_json: bool) -> bool:
    """Whether a previously exported model is still complete on disk."""
    target = model_dir(export_dir, sys1_id, sys2_id)
    return all((target / name).is_file() for name in expected_artifacts(save_json))


def export_model(fit: ModelFit, target_dir: str | Path, save_json: bool = True) -> Path:
    """
    Write a successful fit: the points with predictions as CSV, and
    optionally a JSON document for the viewer.
    """
    target = Path(target_dir)
    target.mkdir(parents=True, exist_ok=True)

    if fit.predictions is not None:
        fit.predictions.to_csv(target / POINTS_FILE, index=False)
    else:
        (target / POINTS_FILE).write_text("", encoding="utf-8")

    if save_json:
        doc = {
            "sys1_id": fit.sys1_id,
            "sys2_id": fit.sys2_id,
            "method": fit.method,
            "alpha": fit.alpha,
            "n_points": fit.n_points,
            "stats": fit.stats,
            "points": (
                fit.predictions.to_dict(orient="records")
                if fit.predictions is not None else []
            ),
        }
        with open(target / JSON_FILE, "w", encoding="utf-8") as fh:
            json.dump(doc, fh, indent=None, allow_nan=False, default=float)

    return target


def remove_model(export_dir: str | Path, sys1_id: str, sys2_id: str) -> bool:
    """Delete an exported model directory. Returns True if something was removed."""
    target = model_dir(export_dir, sys1_id, sys2_id)
    if not target.exists():
        return False
    shutil.rmtree(target)
    logger.debug("Removed model directory %s", target)
    return True
