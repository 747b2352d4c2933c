"""Command-line entry point."""

from __future__ import annotations

import argparse
import logging
import os
import pprint
import subprocess
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from trunkit.common import STARTING, CommandError, remove_dir_all
from trunkit.layers import ConfigOpts
from trunkit.options import ConfigError, ConfigOptsClean

log = logging.getLogger("trunkit")

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

_QUIET_COMMANDS = frozenset({"config", "tools"})


def _package_version() -> str:
    try:
        return version("trunkit")
    except PackageNotFoundError:
        return "unknown"


def eval_logging(verbose: int, quiet: bool, command: str | None) -> int:
    """Return the log level for the package; quiet wins over verbose."""
    if quiet or command in _QUIET_COMMANDS:
        return logging.WARNING
    if verbose == 0:
        return logging.INFO
    if verbose == 1:
        return logging.DEBUG
    return TRACE


def _global_options() -> argparse.ArgumentParser:
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument(
        "--config",
        type=Path,
        default=argparse.SUPPRESS,
        help="Path to the Trunk config file [default: Trunk.toml]",
    )
    parent.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=argparse.SUPPRESS,
        help="Enable verbose logging.",
    )
    parent.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Be more quiet, conflicts with --verbose",
    )
    return parent


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser with its subcommands."""
    common = _global_options()
    parser = argparse.ArgumentParser(
        prog="trunkit",
        description="Build, bundle & ship your WASM application to the web.",
        parents=[common],
    )
    parser.add_argument("--version", action="version", version=_package_version())
    commands = parser.add_subparsers(dest="command", required=True)

    clean = commands.add_parser("clean", parents=[common], help="Clean output artifacts.")
    clean.add_argument(
        "-d", "--dist", type=Path, help="The output dir for all final assets [default: dist]"
    )
    clean.add_argument(
        "--cargo", action="store_true", help="Optionally perform a cargo clean [default: false]"
    )

    config = commands.add_parser("config", parents=[common], help="Trunk config controls.")
    config_commands = config.add_subparsers(dest="config_action", required=True)
    config_commands.add_parser(
        "show", parents=[common], help="Show Trunk's current config pre-CLI."
    )
    return parser


def run_config_show(config: str | os.PathLike | None) -> ConfigOpts:
    """Print the configuration from the config file and environment; return it."""
    cfg = ConfigOpts.full(config)
    print(pprint.pformat(cfg))
    return cfg


def run_clean(clean_opts: ConfigOptsClean, config: str | os.PathLike | None) -> None:
    """Remove the dist directory and optionally run ``cargo clean``."""
    cfg = ConfigOpts.rtc_clean(clean_opts, config)
    try:
        remove_dir_all(cfg.dist)
    except OSError as err:
        log.debug("could not remove %s: %s", cfg.dist, err)
    if cfg.cargo:
        log.debug("cleaning cargo dir")
        try:
            completed = subprocess.run(["cargo", "clean"], capture_output=True, check=False)
        except OSError as err:
            raise CommandError("error running cargo clean") from err
        if completed.returncode != 0:
            raise CommandError(
                completed.stderr.decode("utf-8", errors="replace"), completed.returncode
            )


def _setup_logging(level: int) -> None:
    logging.basicConfig(level=logging.ERROR, format="%(levelname)s %(message)s")
    log.setLevel(level)


def main(argv: list[str] | None = None) -> int:
    """Run the command line; return the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)
    verbose = getattr(args, "verbose", 0) or 0
    quiet = getattr(args, "quiet", False)
    if verbose and quiet:
        parser.error("argument -q/--quiet: not allowed with argument -v/--verbose")
    config = getattr(args, "config", None)
    if config is None and os.environ.get("TRUNK_CONFIG"):
        config = Path(os.environ["TRUNK_CONFIG"])

    _setup_logging(eval_logging(verbose, quiet, args.command))
    log.info("%sStarting trunkit %s", STARTING, _package_version())

    try:
        if args.command == "clean":
            run_clean(ConfigOptsClean(dist=args.dist, cargo=args.cargo), config)
        elif args.command == "config":
            run_config_show(config)
    except (ConfigError, CommandError, OSError) as err:
        message = str(err)
        cause = err.__cause__
        while cause is not None:
            message += f"\n\nCaused by:\n    {cause}"
            cause = cause.__cause__
        print(f"Error: {message}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())