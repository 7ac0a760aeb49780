"""Input validation for the model build runners."""

import logging
from typing import Any, Dict, Optional

from repredret.domain.exceptions import ParameterValidationError, ValidationError
from repredret.domain.models import ReportData
from repredret.modeling.builder import METHODS

logger = logging.getLogger(__name__)


class BuildParameterValidator:
    """Validates arguments of the build runners before any work starts."""

    @staticmethod
    def validate_report_data(report_data: Any) -> None:
        if not isinstance(report_data, ReportData):
            raise ValidationError(
                f"report_data must be ReportData, got {type(report_data).__name__}",
                field_name="report_data",
            ).add_suggestion("Load datasets with load_report_data()")

    @staticmethod
    def validate_build_parameters(
        *,
        min_compounds: int,
        method: str,
        alpha: float,
        n_workers: int,
        batch_size: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Check build parameters.

        Returns:
            Dictionary with the validated parameters
        """
        if method not in METHODS:
            raise ParameterValidationError(
                "method", method, expected_type=" | ".join(METHODS)
            )

        if isinstance(alpha, bool) or not isinstance(alpha, (int, float)) or not 0.0 < alpha < 1.0:
            raise ParameterValidationError(
                "alpha", alpha, expected_type="float in (0, 1)"
            ).add_suggestion("Use 0.05 for 95% prediction intervals")

        if not isinstance(min_compounds, int) or min_compounds < 1:
            raise ParameterValidationError(
                "min_compounds", min_compounds, expected_type="positive integer"
            )

        if not isinstance(n_workers, int) or n_workers < 1:
            raise ParameterValidationError(
                "n_workers", n_workers, expected_type="positive integer"
            )

        if batch_size is not None and (not isinstance(batch_size, int) or batch_size < 1):
            raise ParameterValidationError(
                "batch_size", batch_size, expected_type="positive integer or None"
            ).add_suggestion("Leave batch_size unset to size batches automatically")

        if min_compounds < 3:
            logger.warning(
                "min_compounds=%d is below the 3 points a linear fit needs; such pairs will fail",
                min_compounds,
            )

        return {
            "min_compounds": min_compounds,
            "method": method,
            "alpha": float(alpha),
            "n_workers": n_workers,
            "batch_size": batch_size,
        }
