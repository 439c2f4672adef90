"""
Command Line Interface for responsive image pre-generation.
"""

import argparse
import logging
from typing import List, Optional

from .config import PipelineConfig
from .errors import CacheLocked, ConfigurationError, DiscoveryEmpty
from .pipeline import Pipeline
from .reporter import Reporter
from .run_progress import RunProgress


def setup_logging(verbose: bool) -> logging.Logger:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    logging.getLogger('boto3').setLevel(logging.WARNING)
    logging.getLogger('botocore').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)

    return logging.getLogger('respgen')


def load_config(args: argparse.Namespace, logger: logging.Logger) -> Optional[PipelineConfig]:
    """Load the config file and apply CLI overrides; None if it cannot be loaded."""
    try:
        config = PipelineConfig.from_file(args.config)
    except FileNotFoundError:
        logger.error(f"Config not found: {args.config}")
        return None
    except ConfigurationError as e:
        for error in e.errors:
            logger.error(error)
        return None
    except ValueError as e:
        logger.error(f"Failed to load config: {e}")
        return None

    if getattr(args, 'output_path', None):
        config.output_path = args.output_path
    if getattr(args, 'base_url', None) is not None:
        config.base_url = args.base_url
    if getattr(args, 'preserve_names', False):
        config.preserve_names = True
    if getattr(args, 'workers', None):
        config.workers = args.workers

    return config


def cmd_run(args: argparse.Namespace) -> int:
    """Execute run command."""
    logger = setup_logging(args.verbose)
    config = load_config(args, logger)
    if config is None:
        return 1

    logger.info(f"Config: {args.config}")
    logger.info(f"Output: {config.output_path}")
    logger.info(f"Tasks: {', '.join(task.name for task in config.tasks)}")
    if args.dry_run:
        logger.info("Dry run: nothing will be written")

    pipeline = Pipeline(config, logger=logger)
    progress = None
    if not args.quiet:
        progress = RunProgress(show_files=args.show_files, logger=logger)

    try:
        result = pipeline.run(progress=progress, dry_run=args.dry_run)
    except KeyboardInterrupt:
        pipeline.stop()
        logger.info("Interrupted by user")
        return 130
    except ConfigurationError as e:
        logger.error(f"{e}. Aborting.")
        return 1
    except (DiscoveryEmpty, CacheLocked) as e:
        logger.error(str(e))
        return 1
    except Exception as e:
        logger.exception(f"Run failed: {e}")
        return 1

    if not args.quiet:
        Reporter().report_run(result.stats)
    if result.log_path:
        logger.info(f"Run log saved to: {result.log_path}")

    return 0 if result.ok else 1


def cmd_plan(args: argparse.Namespace) -> int:
    """Execute plan command."""
    logger = setup_logging(args.verbose)
    config = load_config(args, logger)
    if config is None:
        return 1

    try:
        plan = Pipeline(config, logger=logger).plan()
    except ConfigurationError as e:
        logger.error(f"{e}. Aborting.")
        return 1
    except DiscoveryEmpty as e:
        logger.error(str(e))
        return 1

    Reporter().report_plan(plan, show_jobs=args.show_files)
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    """Execute verify command."""
    logger = setup_logging(args.verbose)
    config = load_config(args, logger)
    if config is None:
        return 1

    pipeline = Pipeline(config, logger=logger)
    try:
        pipeline.validate()
    except ConfigurationError as e:
        logger.error(f"{e}. Aborting.")
        return 1

    invalid = pipeline.verify()
    Reporter().report_stale(pipeline.store.records, invalid)

    if not args.rebuild:
        return 0 if not invalid else 1

    try:
        result = pipeline.rebuild()
    except KeyboardInterrupt:
        pipeline.stop()
        logger.info("Interrupted by user")
        return 130
    except (DiscoveryEmpty, CacheLocked) as e:
        logger.error(str(e))
        return 1
    except Exception as e:
        logger.exception(f"Rebuild failed: {e}")
        return 1

    Reporter().report_run(result.stats)
    return 0 if result.ok else 1


def cmd_report(args: argparse.Namespace) -> int:
    """Execute report command."""
    logger = setup_logging(args.verbose)
    config = load_config(args, logger)
    if config is None:
        return 1

    pipeline = Pipeline(config, logger=logger)
    try:
        pipeline.validate()
    except ConfigurationError as e:
        logger.error(f"{e}. Aborting.")
        return 1

    store = pipeline.store
    reporter = Reporter()
    reporter.report_cache(store.records, store.checksum)
    reporter.report_stale(store.records, pipeline.verify())
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog='respgen',
        description='Responsive image pre-generation with an incremental cache',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Workflow:
  1. Plan:    python -m respgen plan -c images.json
  2. Run:     python -m respgen run -c images.json
  3. Verify:  python -m respgen verify -c images.json --rebuild

Re-running is cheap: only missing or stale outputs are generated.
"""
    )

    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    run_parser = subparsers.add_parser('run', help='Generate missing outputs and publish image info')
    run_parser.add_argument('-c', '--config', required=True, help='JSON configuration file')
    run_parser.add_argument('--output-path', help='Override output_path')
    run_parser.add_argument('--base-url', help='Override base_url')
    run_parser.add_argument('--preserve-names', action='store_true',
                            help='Name outputs after the source file instead of its hash')
    run_parser.add_argument('--workers', type=int, metavar='N', help='Concurrent transcodes')
    run_parser.add_argument('-n', '--dry-run', action='store_true', help='Show what would be done')
    run_parser.add_argument('--show-files', action='store_true',
                            help='Print each output as it is produced')
    run_parser.add_argument('-q', '--quiet', action='store_true', help='Suppress progress output')
    run_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')

    plan_parser = subparsers.add_parser('plan', help='Show the jobs a run would execute')
    plan_parser.add_argument('-c', '--config', required=True, help='JSON configuration file')
    plan_parser.add_argument('--show-files', action='store_true', help='List every planned job')
    plan_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')

    verify_parser = subparsers.add_parser('verify', help='Find cache records with missing outputs')
    verify_parser.add_argument('-c', '--config', required=True, help='JSON configuration file')
    verify_parser.add_argument('--rebuild', action='store_true',
                               help='Remove invalid records and regenerate them')
    verify_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')

    report_parser = subparsers.add_parser('report', help='Summarize the cache')
    report_parser.add_argument('-c', '--config', required=True, help='JSON configuration file')
    report_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')

    return parser


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return 1

    if parsed_args.command == 'run':
        return cmd_run(parsed_args)
    elif parsed_args.command == 'plan':
        return cmd_plan(parsed_args)
    elif parsed_args.command == 'verify':
        return cmd_verify(parsed_args)
    elif parsed_args.command == 'report':
        return cmd_report(parsed_args)

    return 1
