import os
import sqlite3
import logging
import psutil
from functools import partial
from pathlib import Path
from typing import Dict, List, Optional

from repredret.utils.logging import get_summary_logger
from repredret.utils.timing import now, timeit, section_timer
from repredret.config.resolvers import resolve_cache_path, resolve_export_dir, CACHE_FILENAME
from repredret.config.integration import BuildConfig
from repredret.data import db, cache_repo, cache_schema
from repredret.domain.models import (
    BuildResult,
    DatasetChanges,
    ModelPair,
    ModelResult,
    ReportData,
)
from repredret.modeling.builder import build_model
from repredret.processing import BatchScheduler, BuildParameterValidator, ProgressTracker, collect_model_pairs
from repredret.processing.fingerprint import compute_fingerprints
from repredret.processing.incremental import (
    BuildPlan,
    analyze_dataset_changes,
    plan_builds,
    prune_stale_models,
    purge_removed_models,
    update_dataset_cache,
)
from repredret.processing.worker import ModelBuilder, WorkerOptions, build_pair
from repredret.results import assemblers

from repredret.domain.exceptions import (
    RePredRetError,
    ProcessingError,
    CacheError,
)

logger = logging.getLogger(__name__)
summary_logger = get_summary_logger()

MEMORY_THRESHOLD_MB = 2000
SEQUENTIAL_LOG_EVERY = 10


def _progress_enabled() -> bool:
    return os.getenv('NO_PROGRESS', '').lower() not in ('1', 'true', 'yes')


class ModelBuildPipeline:
    """
    Builds every pairwise retention time model for a set of datasets.

    Steps: validate parameters, diff datasets against the build cache, collect
    candidate pairs, plan which of them need building, run the builds in
    batches (or one by one when sequential), then assemble the index and
    statistics. Without an export directory nothing is cached or written.
    """

    def __init__(self, config: BuildConfig, model_builder: ModelBuilder = build_model, *, sequential: bool = False):
        self.config = config
        self.model_builder = model_builder
        self.sequential = sequential
        self.export_dir: Optional[Path] = Path(config.export_dir) if config.export_dir else None
        self.cache_conn: Optional[sqlite3.Connection] = None
        self.start_time: Optional[float] = None
        self.process = psutil.Process(os.getpid())

        BuildParameterValidator.validate_build_parameters(
            min_compounds=config.min_compounds,
            method=config.method,
            alpha=config.alpha,
            n_workers=config.n_workers,
            batch_size=config.batch_size,
        )

        self.metrics = {
            'datasets': 0,
            'candidate_pairs': 0,
            'models_built': 0,
            'models_reused': 0,
            'models_succeeded': 0,
            'models_failed': 0,
            'models_pruned': 0,
            'models_purged': 0,
            'processing_time': 0.0,
        }

    def run(self, report_data: ReportData) -> BuildResult:
        """Execute the complete build."""
        BuildParameterValidator.validate_report_data(report_data)
        self.start_time = now()
        try:
            return self._run(report_data)
        except RePredRetError:
            raise
        except sqlite3.Error as e:
            raise CacheError(
                f"Build cache database error: {e}",
                operation="build",
            ).add_context('cache_path', str(self._cache_path_hint())) from e
        except Exception as e:
            raise ProcessingError(
                f"Unexpected pipeline error: {e}",
                stage="pipeline_execution",
            ).add_context('elapsed_time', now() - self.start_time) from e
        finally:
            self._cleanup()

    def _run(self, report_data: ReportData) -> BuildResult:
        datasets = report_data.datasets
        self.metrics['datasets'] = len(datasets)
        if self.config.verbose:
            summary_logger.info(
                f"Building models for {len(datasets)} datasets "
                f"(method={self.config.method}, alpha={self.config.alpha}, workers={self.config.n_workers})"
            )

        with section_timer("Fingerprinting datasets", logger):
            fingerprints = compute_fingerprints(datasets)

        changes = self._sync_cache(datasets, fingerprints)

        pairs = collect_model_pairs(
            datasets,
            min_compounds=self.config.min_compounds,
            method_match=self.config.method_match,
        )
        self.metrics['candidate_pairs'] = len(pairs)

        if self.cache_conn is not None:
            self.metrics['models_pruned'] = prune_stale_models(
                self.cache_conn, {p.key for p in pairs}, self.export_dir
            )

        if not pairs:
            logger.warning("No dataset pairs share at least %d compounds", self.config.min_compounds)
            return self._finalize([], 0, changes)

        plan = self._plan(pairs, fingerprints)
        built = self._build(plan.to_build, fingerprints)

        built_by_key = {r.key: r for r in built}
        merged: List[ModelResult] = [
            plan.reused.get(p.key) or built_by_key[p.key] for p in pairs
        ]
        return self._finalize(merged, len(pairs), changes)

    def _cache_path_hint(self) -> Optional[Path]:
        return self.export_dir / CACHE_FILENAME if self.export_dir else None

    def _sync_cache(self, datasets, fingerprints: Dict[str, str]) -> Optional[DatasetChanges]:
        """Open the build cache, classify datasets and bring the dataset table up to date."""
        if self.export_dir is None:
            logger.info("No export directory: caching and export disabled")
            return None

        try:
            self.export_dir = resolve_export_dir(self.export_dir)
            cache_path = resolve_cache_path(self.export_dir, fresh_cache=self.config.fresh_cache)
            self.cache_conn = db.connect(cache_path)
            cache_schema.create_cache(self.cache_conn)
            logger.info("Using build cache at: %s%s", cache_path, " (fresh)" if self.config.fresh_cache else "")

            changes = analyze_dataset_changes(fingerprints, cache_repo.load_fingerprints(self.cache_conn))
            if self.config.verbose:
                summary_logger.info(
                    f"Dataset changes: {len(changes.new_ids)} new, {len(changes.changed_ids)} changed, "
                    f"{len(changes.unchanged_ids)} unchanged, {len(changes.removed_ids)} removed"
                )
            self.metrics['models_purged'] = purge_removed_models(
                self.cache_conn, changes.removed_ids, self.export_dir
            )
            update_dataset_cache(self.cache_conn, datasets, fingerprints, changes.dirty_ids)
            return changes
        except (sqlite3.Error, OSError) as e:
            raise CacheError(
                f"Failed to set up build cache: {e}",
                operation="cache_setup",
            ).add_context('export_dir', str(self.export_dir)) from e

    def _plan(self, pairs: List[ModelPair], fingerprints: Dict[str, str]) -> BuildPlan:
        entries = cache_repo.load_model_entries(self.cache_conn) if self.cache_conn is not None else {}
        plan = plan_builds(
            pairs,
            entries,
            fingerprints,
            method=self.config.method,
            alpha=self.config.alpha,
            export_dir=self.export_dir,
            save_json=self.config.save_json,
        )
        self.metrics['models_reused'] = plan.n_reused
        if self.config.verbose:
            summary_logger.info(
                f"{len(pairs)} candidate pairs: {len(plan.to_build)} to build, {plan.n_reused} cached"
            )
        return plan

    def _record(self, results: List[ModelResult], fingerprints: Dict[str, str]) -> None:
        if self.cache_conn is None or not results:
            return
        try:
            cache_repo.record_model_results(
                self.cache_conn, results, fingerprints,
                method=self.config.method, alpha=self.config.alpha,
            )
        except sqlite3.Error as e:
            raise CacheError(
                f"Could not record {len(results)} model results: {e}",
                operation="record_results",
            ) from e

    def _build(self, pairs: List[ModelPair], fingerprints: Dict[str, str]) -> List[ModelResult]:
        if not pairs:
            logger.info("All models are up to date, nothing to build")
            return []

        options = WorkerOptions(
            alpha=self.config.alpha,
            method=self.config.method,
            export_dir=self.export_dir,
            save_json=self.config.save_json,
        )
        task = partial(build_pair, options=options, builder=self.model_builder)
        tracker = ProgressTracker(
            len(pairs),
            summary_logger=summary_logger,
            show_progress=self.config.show_progress and _progress_enabled(),
            verbose=self.config.verbose and not self.sequential,
        )
        self._memory_report("before build")

        try:
            if self.sequential:
                results = self._build_sequential(pairs, task, tracker, fingerprints)
            else:
                def on_batch(batch_index, n_batches, start, end, batch_results):
                    self._record(batch_results, fingerprints)
                    tracker.update(batch_index, n_batches, start, end, batch_results)
                    self._memory_report(f"after batch {batch_index}")

                scheduler = BatchScheduler(
                    n_workers=self.config.n_workers,
                    batch_size=self.config.batch_size,
                )
                results = scheduler.run(pairs, task, on_batch=on_batch)
        finally:
            tracker.close()

        self.metrics['models_built'] = len(results)
        return results

    def _build_sequential(self, pairs, task, tracker: ProgressTracker, fingerprints) -> List[ModelResult]:
        results: List[ModelResult] = []
        with section_timer(f"Building {len(pairs)} models sequentially", logger):
            for i, pair in enumerate(pairs, 1):
                result = task(pair)
                results.append(result)
                self._record([result], fingerprints)
                snap = tracker.update(i, len(pairs), i, i, [result])
                if self.config.verbose and (i % SEQUENTIAL_LOG_EVERY == 0 or i == len(pairs)):
                    summary_logger.info(snap.progress_line())
        return results

    def _finalize(
        self,
        results: List[ModelResult],
        total_pairs: int,
        changes: Optional[DatasetChanges],
    ) -> BuildResult:
        elapsed = now() - self.start_time
        self.metrics['processing_time'] = elapsed
        self.metrics['models_succeeded'] = sum(1 for r in results if r.success)
        self.metrics['models_failed'] = len(results) - self.metrics['models_succeeded']

        index = assemblers.assemble_index(results)
        stats = assemblers.summarize(results, total_pairs, elapsed_seconds=elapsed)

        index_paths = None
        if self.export_dir is not None and self.config.write_index:
            index_paths = assemblers.write_index(index, self.export_dir)

        if self.config.verbose:
            self._log_summary(stats)
        self._log_final_metrics()

        return BuildResult(
            models=results,
            index=index,
            stats=stats,
            changes=changes,
            index_paths=index_paths,
        )

    def _cleanup(self) -> None:
        """Clean up resources."""
        if self.cache_conn is not None:
            self.cache_conn.close()
            self.cache_conn = None

    def _log_summary(self, stats) -> None:
        summary_logger.info(f"Model building complete in {stats.elapsed_seconds:.1f}s")
        summary_logger.info(f"  Total pairs: {stats.total_pairs}")
        summary_logger.info(f"  Successful: {stats.successful} ({stats.built} built, {stats.cached} cached)")
        summary_logger.info(f"  Failed: {stats.failed}")
        summary_logger.info(f"  Success rate: {stats.success_rate}%")
        if stats.successful:
            summary_logger.info(f"  Median CI width: {stats.median_ci_width}")
            summary_logger.info(f"  Median error: {stats.median_error}")

    def _memory_report(self, label: str, detailed: bool = False) -> None:
        """Report memory usage with optional detailed breakdown."""
        try:
            memory_info = self.process.memory_info()
        except psutil.Error as e:
            logger.debug(f"[mem] Could not get memory info: {e}")
            return

        rss = memory_info.rss / 1e6  # MB
        if detailed:
            vms = memory_info.vms / 1e6
            logger.debug(f"[mem] {label} RSS={rss:.1f}MB, VMS={vms:.1f}MB")
        else:
            logger.debug(f"[mem] {label} RSS={rss:.1f}MB")

        if rss > MEMORY_THRESHOLD_MB:
            logger.warning(f"[mem] High memory usage: {rss:.1f}MB (threshold: {MEMORY_THRESHOLD_MB}MB)")

    def _log_final_metrics(self) -> None:
        """Log final pipeline metrics."""
        logger.info("="*60)
        logger.info("BUILD METRICS")
        logger.info("="*60)
        logger.info(f"Datasets:            {self.metrics['datasets']:,}")
        logger.info(f"Candidate pairs:     {self.metrics['candidate_pairs']:,}")
        logger.info(f"Models built:        {self.metrics['models_built']:,}")
        logger.info(f"Models reused:       {self.metrics['models_reused']:,}")
        logger.info(f"Models succeeded:    {self.metrics['models_succeeded']:,}")
        logger.info(f"Models failed:       {self.metrics['models_failed']:,}")
        logger.info(f"Models pruned:       {self.metrics['models_pruned']:,}")
        logger.info(f"Models purged:       {self.metrics['models_purged']:,}")
        logger.info(f"Processing time:     {self.metrics['processing_time']:.2f}s")

        if self.metrics['processing_time'] > 0 and self.metrics['models_built']:
            rate = self.metrics['models_built'] / self.metrics['processing_time']
            logger.info(f"Build rate:          {rate:.1f} models/second")

        self._memory_report("Final memory usage", detailed=True)
        logger.info("="*60)


def preview_build(report_data: ReportData, config: BuildConfig) -> Dict[str, int]:
    """
    Count what a build would do without building, exporting or touching the cache.
    """
    BuildParameterValidator.validate_report_data(report_data)
    fingerprints = compute_fingerprints(report_data.datasets)
    pairs = collect_model_pairs(
        report_data.datasets,
        min_compounds=config.min_compounds,
        method_match=config.method_match,
    )

    export_dir = Path(config.export_dir) if config.export_dir else None
    cached_fps: Dict[str, str] = {}
    entries = {}
    cache_path = export_dir / CACHE_FILENAME if export_dir else None
    if cache_path is not None and cache_path.exists() and not config.fresh_cache:
        conn = db.connect(cache_path)
        try:
            cache_schema.create_cache(conn)
            cached_fps = cache_repo.load_fingerprints(conn)
            entries = cache_repo.load_model_entries(conn)
        finally:
            conn.close()

    changes = analyze_dataset_changes(fingerprints, cached_fps)
    plan = plan_builds(
        pairs, entries, fingerprints,
        method=config.method, alpha=config.alpha,
        export_dir=export_dir, save_json=config.save_json,
    )
    return {
        'datasets': len(report_data),
        'new': len(changes.new_ids),
        'changed': len(changes.changed_ids),
        'unchanged': len(changes.unchanged_ids),
        'removed': len(changes.removed_ids),
        'candidate_pairs': len(pairs),
        'to_build': len(plan.to_build),
        'cached': plan.n_reused,
    }


def _config_from_kwargs(
    min_compounds: int,
    method: str,
    alpha: float,
    n_workers: Optional[int],
    save_json: bool,
    export_dir,
    batch_size: Optional[int],
    verbose: bool,
    method_match: bool,
    fresh_cache: bool,
) -> BuildConfig:
    return BuildConfig(
        min_compounds=min_compounds,
        method=method,
        alpha=alpha,
        n_workers=n_workers if n_workers is not None else (os.cpu_count() or 1),
        save_json=save_json,
        export_dir=Path(export_dir) if export_dir else None,
        batch_size=batch_size,
        verbose=verbose,
        method_match=method_match,
        fresh_cache=fresh_cache,
        show_progress=verbose,
    )


@timeit(logger, "build_all_models_parallel")
def build_all_models_parallel(
    report_data: ReportData,
    min_compounds: int = 10,
    method: str = "fast_ci",
    alpha: float = 0.05,
    n_workers: Optional[int] = None,
    save_json: bool = True,
    export_dir=None,
    batch_size: Optional[int] = None,
    verbose: bool = True,
    method_match: bool = False,
    fresh_cache: bool = False,
    model_builder: ModelBuilder = build_model,
) -> BuildResult:
    """
    Build all pairwise models in parallel batches with incremental caching.

    ``n_workers`` defaults to the number of CPUs. With ``export_dir`` set,
    models and the index are written there and unchanged pairs are taken from
    the build cache. A custom ``model_builder`` must be picklable (a
    module-level function) when more than one worker is used.
    """
    config = _config_from_kwargs(
        min_compounds, method, alpha, n_workers, save_json, export_dir,
        batch_size, verbose, method_match, fresh_cache,
    )
    return ModelBuildPipeline(config, model_builder).run(report_data)


@timeit(logger, "build_all_models")
def build_all_models(
    report_data: ReportData,
    min_compounds: int = 10,
    method: str = "fast_ci",
    alpha: float = 0.05,
    save_json: bool = True,
    export_dir=None,
    verbose: bool = True,
    method_match: bool = False,
    fresh_cache: bool = False,
    model_builder: ModelBuilder = build_model,
) -> BuildResult:
    """Build all pairwise models one by one in this process."""
    config = _config_from_kwargs(
        min_compounds, method, alpha, 1, save_json, export_dir,
        None, verbose, method_match, fresh_cache,
    )
    return ModelBuildPipeline(config, model_builder, sequential=True).run(report_data)


def run_build(report_data: ReportData, config: BuildConfig, *, sequential: bool = False,
              model_builder: ModelBuilder = build_model) -> BuildResult:
    """Entry point used by the CLI with a settings-derived config."""
    return ModelBuildPipeline(config, model_builder, sequential=sequential).run(report_data)
