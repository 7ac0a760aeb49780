"""Progress and ETA reporting between batches."""
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from tqdm import tqdm

from repredret.domain.models import ModelResult
from repredret.utils.timing import now, format_minutes

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressSnapshot:
    completed: int
    total: int
    successful: int
    elapsed: float
    speed: float
    eta_seconds: Optional[float]

    @property
    def remaining(self) -> int:
        return self.total - self.completed

    def progress_line(self) -> str:
        line = (
            f"Progress: {self.completed}/{self.total} | "
            f"Success: {self.successful} | "
            f"Speed: {self.speed:.2f} models/sec"
        )
        if self.eta_seconds is not None:
            line += f" | ETA: {format_minutes(self.eta_seconds)} min"
        return line


class ProgressTracker:
    """
    Counts finished models and reports speed and ETA after each batch.

    Speed is successful models per second (elapsed clamped to at least one
    second); the ETA is only reported while work remains and speed is positive.
    """

    def __init__(
        self,
        total: int,
        *,
        summary_logger: Optional[logging.Logger] = None,
        show_progress: bool = True,
        verbose: bool = True,
    ):
        self.total = total
        self.completed = 0
        self.successful = 0
        self.verbose = verbose
        self.summary_logger = summary_logger or logger
        self.start_time = now()
        self.pbar = None
        if show_progress and total > 0:
            self.pbar = tqdm(
                total=total,
                desc="Models",
                unit="model",
                ncols=100,
                leave=True,
            )

    def snapshot(self) -> ProgressSnapshot:
        elapsed = now() - self.start_time
        speed = self.successful / max(1.0, elapsed)
        remaining = self.total - self.completed
        eta = remaining / speed if remaining > 0 and speed > 0 else None
        return ProgressSnapshot(
            completed=self.completed,
            total=self.total,
            successful=self.successful,
            elapsed=elapsed,
            speed=speed,
            eta_seconds=eta,
        )

    def update(
        self,
        batch_index: int,
        n_batches: int,
        start: int,
        end: int,
        results: Sequence[ModelResult],
    ) -> ProgressSnapshot:
        """Account for one finished batch covering models ``start``..``end`` (1-based)."""
        self.completed += len(results)
        self.successful += sum(1 for r in results if r.success)
        snap = self.snapshot()

        if self.pbar is not None:
            self.pbar.update(len(results))
            self.pbar.set_postfix_str(f"ok={snap.successful} | {snap.speed:.2f}/s")

        if self.verbose:
            self.summary_logger.info(f"Batch {batch_index}/{n_batches} (models {start}-{end})")
            self.summary_logger.info(snap.progress_line())
        return snap

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None
