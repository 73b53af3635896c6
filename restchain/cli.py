"""
restchain CLI

Runs YAML test files against a service, threading stashed values from one
call to the next.

Usage:
    restchain tests/*.yml --host http://localhost:9200
    restchain smoke.yml --config restchain.yml --verbose
"""

import argparse
import sys
import time
from pathlib import Path
from typing import List, Optional

from rich.console import Console

from .config import load_config
from .context import ExecutionContext
from .display import Display
from .errors import ConfigError
from .runner import StepRunner
from .transport import ApiRegistry, HttpTransport


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="restchain",
        description="Run declarative API call sequences against a service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    restchain tests/smoke.yml
    restchain tests/*.yml --host http://localhost:9200
    restchain tests/smoke.yml -c restchain.yml --verbose

Configuration:
    - Looked up as restchain.yml in the current directory
    - Holds host, timeout, version, default_params and apis
        """,
    )
    parser.add_argument(
        "files",
        nargs="+",
        type=Path,
        help="YAML test files to run",
    )
    parser.add_argument(
        "-c",
        "--config",
        dest="config_file",
        type=Path,
        default=None,
        help="Path to a configuration file (default: ./restchain.yml if present)",
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Base URL of the service (overrides the configuration)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=False,
        help="Print every API call and its status",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    console = Console()

    try:
        config = load_config(args.config_file)
    except ConfigError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)

    if args.host:
        config.transport.host = args.host

    display = Display(console=console, verbose=args.verbose or config.verbose)

    passed = 0
    failed: List[str] = []
    start = time.time()

    with HttpTransport(config.transport, ApiRegistry(config.apis)) as transport:
        context = ExecutionContext(transport, display, config.default_params)
        runner = StepRunner(context, display)

        for path in args.files:
            try:
                results = runner.run_file(path)
            except ConfigError as e:
                console.print(f"[bold red]Error:[/bold red] {e}")
                failed.append(str(path))
                continue

            for result in results:
                if result.success:
                    passed += 1
                else:
                    failed.append(result.name)

    display.print_summary(passed, failed, time.time() - start)
    sys.exit(1 if failed else 0)


if __name__ == "__main__":
    main()
