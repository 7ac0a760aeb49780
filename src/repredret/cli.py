"""Command line interface for building retention time models."""

import argparse
import logging
import sys
from typing import Dict, List, Optional

from repredret.config.loader import configure_from_cli
from repredret.config.settings import BuildMethod, set_settings
from repredret.config.integration import BuildConfig
from repredret.domain.exceptions import (
    ConfigurationError,
    PipelineConfigurationError,
    ValidationError,
)

from repredret.utils.logging import setup_logging
from repredret.data.report_loader import load_report_data
from repredret.runners.pipeline import preview_build, run_build


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the repredret CLI."""
    parser = argparse.ArgumentParser(
        prog="repredret",
        description=(
            "Build pairwise retention time models between chromatographic "
            "systems sharing enough compounds."
        ),
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    build_p = sub.add_parser("build", help="Build (or incrementally update) all pairwise models")

    build_p.add_argument(
        "-d",
        "--data-dir",
        required=True,
        help="Directory with <id>_rtdata*.tsv/.csv tables (searched recursively).",
    )
    build_p.add_argument(
        "-o",
        "--export-dir",
        help="Directory for exported models, the model index and the build cache.",
    )
    build_p.add_argument(
        "--default-export-dir",
        action="store_true",
        help="Without --export-dir, export to the per-user data directory instead of disabling export.",
    )
    build_p.add_argument(
        "-f",
        "--fresh-cache",
        action="store_true",
        help="Discard the build cache in --export-dir and rebuild every model.",
    )

    model_group = build_p.add_argument_group("Model Options")
    model_group.add_argument(
        "--method",
        choices=[m.value for m in BuildMethod],
        help="Prediction interval method (default: fast_ci).",
    )
    model_group.add_argument(
        "--alpha",
        type=float,
        help="Significance level of prediction intervals (default: 0.05).",
    )
    model_group.add_argument(
        "--min-compounds",
        type=int,
        metavar="N",
        help="Minimum shared compounds for a pair to be modelled (default: 10).",
    )
    model_group.add_argument(
        "--method-types",
        nargs="+",
        metavar="TYPE",
        help="Only use datasets of these method types, e.g. RP HILIC.",
    )
    model_group.add_argument(
        "--method-match",
        action="store_true",
        help="Only pair systems of the same method type.",
    )
    model_group.add_argument(
        "--compound-column",
        help="Column identifying compounds (default: auto-detect).",
    )

    performance_group = build_p.add_argument_group("Performance Options")
    performance_group.add_argument(
        "-w",
        "--workers",
        type=int,
        metavar="N",
        help="Number of worker processes (default: CPU count).",
    )
    performance_group.add_argument(
        "--batch-size",
        type=int,
        metavar="N",
        help="Models per batch (default: about four batches per worker).",
    )
    performance_group.add_argument(
        "--sequential",
        action="store_true",
        help="Build models one by one in this process.",
    )

    output_group = build_p.add_argument_group("Output Options")
    output_group.add_argument(
        "--no-json",
        action="store_true",
        help="Do not write model.json next to model.csv.",
    )
    output_group.add_argument(
        "--no-index",
        action="store_true",
        help="Do not write model_index.csv and model_index.json.",
    )

    debug_group = build_p.add_argument_group("Debug Options")
    debug_group.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode with verbose logging.",
    )
    debug_group.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be built without building anything.",
    )
    debug_group.add_argument(
        "--log-file",
        type=str,
        metavar="PATH",
        help="Write the log file into the directory of PATH instead of ./logs.",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the repredret CLI."""
    args = build_parser().parse_args(argv)

    if args.cmd != "build":
        logging.error("Unknown command: %s", args.cmd)
        sys.exit(2)

    debug_mode = False
    try:
        settings = configure_from_cli(args)
        set_settings(settings)
        debug_mode = settings.debug_mode

        logger, _ = setup_logging(
            log_dir=str(settings.logging.file_path.parent)
            if settings.logging.file_path
            else "./logs",
            console=settings.logging.console_output,
            level="DEBUG" if settings.debug_mode else "INFO",
            console_level="DEBUG" if settings.debug_mode else "WARNING",
        )

        if settings.debug_mode:
            logger.debug("Configuration details:")
            for section, values in settings.to_dict().items():
                logger.debug("  %s: %s", section, values)

        report_data = load_report_data(
            settings.data.data_dir,
            method_types=settings.data.method_types or None,
            compound_column=settings.data.compound_column,
        )
        cfg = BuildConfig.from_settings(settings)

        logger.info("Build Configuration:")
        logger.info("  Datasets: %s", len(report_data))
        logger.info("  Method: %s (alpha=%s)", cfg.method, cfg.alpha)
        logger.info("  Workers: %s", "sequential" if settings.processing.sequential else cfg.n_workers)
        logger.info("  Export: %s", cfg.export_dir or "disabled")

        if settings.dry_run:
            _print_dry_run_summary(cfg, preview_build(report_data, cfg))
            sys.exit(0)

        res = run_build(report_data, cfg, sequential=settings.processing.sequential)

        logger.info("Build completed: %s", res.stats.to_dict())
        if res.index_paths:
            logger.info("  Index: %s", res.index_paths[0])

        sys.exit(0)

    except (ConfigurationError, PipelineConfigurationError) as e:
        logging.error("Configuration error: %s", e.message)
        _log_suggestions(e)
        sys.exit(1)

    except ValidationError as e:
        logging.error("Invalid input: %s", e.message)
        _log_suggestions(e)
        sys.exit(1)

    except KeyboardInterrupt:
        logging.info("Build interrupted by user")
        sys.exit(130)

    except Exception as e:
        logging.error("Build failed: %s", e)
        if debug_mode:
            logging.exception("Full traceback:")
        sys.exit(1)


def _log_suggestions(e) -> None:
    if getattr(e, "suggestions", None):
        logging.error("Suggestions:")
        for suggestion in e.suggestions:
            logging.error("  - %s", suggestion)


def _print_dry_run_summary(cfg: BuildConfig, preview: Dict[str, int]) -> None:
    """Print a summary for dry run mode."""
    print("\n" + "=" * 60)
    print("DRY RUN SUMMARY")
    print("=" * 60)
    print(f"Datasets:           {preview['datasets']:,}")
    print(f"  new / changed:    {preview['new']:,} / {preview['changed']:,}")
    print(f"  unchanged:        {preview['unchanged']:,}")
    print(f"  removed:          {preview['removed']:,}")
    print(f"Candidate pairs:    {preview['candidate_pairs']:,}")
    print(f"  to build:         {preview['to_build']:,}")
    print(f"  cached:           {preview['cached']:,}")
    print(f"Method:             {cfg.method} (alpha={cfg.alpha})")
    print(f"Min compounds:      {cfg.min_compounds}")
    print(f"Workers:            {cfg.n_workers}")
    print(f"Batch size:         {cfg.batch_size or 'auto'}")
    print(f"Export dir:         {cfg.export_dir or 'disabled'}")
    print(f"Fresh cache:        {cfg.fresh_cache}")
    print("=" * 60)
    print()


if __name__ == "__main__":
    main()
