"""Command-line entry point for converting a local Drupal site checkout."""

import argparse
import os
import shlex
import sys

from .core.git import SubprocessGit
from .core.logging_config import get_conversion_logger, setup_logging
from .core.settings import load_settings
from .core.subprocess_manager import run_command
from .core.workflow import ConversionWorkflow
from .models import WorkflowStatus


class PrefixedCommandRunner:
    """Runs remote drush commands through a command prefix.

    Example:
        >>> runner = PrefixedCommandRunner(["terminus", "remote:drush", "mysite.conversion", "--"])
        >>> runner("cr")  # runs: terminus remote:drush mysite.conversion -- cr
    """

    def __init__(self, prefix: list[str], timeout: float | None = None):
        self.prefix = prefix
        self.timeout = timeout

    def __call__(self, command: str) -> None:
        run_command([*self.prefix, *shlex.split(command)], timeout=self.timeout)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Convert a standard Drupal site checkout into a Composer-managed one"
    )
    parser.add_argument("site_path", help="Path to the local git checkout of the site")
    parser.add_argument("--branch", default=None, help="Target branch name")
    parser.add_argument(
        "--dry-run", action="store_true", help="Build the branch locally without pushing or running remote commands"
    )
    parser.add_argument("--no-updb", dest="run_updb", action="store_false", help="Skip drush updb after pushing")
    parser.add_argument("--no-cr", dest="run_cr", action="store_false", help="Skip drush cr after pushing")
    parser.add_argument(
        "--remote-drush",
        default=None,
        help="Command prefix used to run drush remotely, e.g. 'terminus remote:drush site.conversion --'",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level",
    )
    parser.add_argument("--log-dir", default=os.getenv("LOG_DIR"), help="Directory for conversion.log")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(log_dir=args.log_dir, log_level=args.log_level)
    logger = get_conversion_logger()

    overrides = {"target_branch": args.branch} if args.branch else {}
    settings = load_settings(**overrides)

    remote_runner = PrefixedCommandRunner(shlex.split(args.remote_drush)) if args.remote_drush else None
    workflow = ConversionWorkflow(
        SubprocessGit(settings.git_executable, timeout=settings.git_timeout),
        settings=settings,
        remote_runner=remote_runner,
    )

    report = workflow.run(args.site_path, dry_run=args.dry_run, run_updb=args.run_updb, run_cr=args.run_cr)
    print(report.model_dump_json(indent=2))

    if report.status is WorkflowStatus.ABORTED:
        logger.error("Conversion aborted", error=report.error)
        return 1
    logger.info("Done!", status=report.status.value)
    return 0


if __name__ == "__main__":
    sys.exit(main())
