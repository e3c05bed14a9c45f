#!/usr/bin/env python3
"""Test runner for the fxloop package."""

import argparse
import os
import sys
from pathlib import Path

# Add src to path for development testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest  # type: ignore[import-not-found]


def main():
    """Run tests with various options."""
    parser = argparse.ArgumentParser(description="Run fxloop tests")
    suite = parser.add_mutually_exclusive_group()
    suite.add_argument("--unit", action="store_true", help="Run only unit tests")
    suite.add_argument("--functional", action="store_true", help="Run only functional tests")
    suite.add_argument(
        "--module",
        "-m",
        help="Run the unit tests of one module (e.g., 'drain', 'store')",
    )
    parser.add_argument("--coverage", action="store_true", help="Run with coverage report")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--failfast", "-x", action="store_true", help="Stop on first failure")
    parser.add_argument(
        "--parallel",
        "-n",
        type=int,
        metavar="NUM",
        help="Run tests in parallel with NUM workers",
    )
    parser.add_argument("--markers", "-k", help="Run tests matching given expression")
    parser.add_argument(
        "--asyncio-debug",
        action="store_true",
        help="Enable asyncio debug mode (slow callbacks, never-retrieved exceptions)",
    )
    parser.add_argument(
        "--log-level",
        metavar="LEVEL",
        help="Show fxloop log records at LEVEL (e.g. DEBUG) for failing tests",
    )

    args = parser.parse_args()

    if args.unit:
        pytest_args = ["tests/unit"]
    elif args.functional:
        pytest_args = ["tests/functional"]
    elif args.module:
        pytest_args = [f"tests/unit/test_{args.module}.py"]
    else:
        pytest_args = ["tests/"]

    if args.coverage:
        pytest_args.extend(
            [
                "--cov=fxloop",
                "--cov-report=term-missing",
                "--cov-report=html:htmlcov",
            ]
        )

    pytest_args.append("-vv" if args.verbose else "-q")

    if args.failfast:
        pytest_args.append("-x")

    # Requires pytest-xdist
    if args.parallel:
        pytest_args.extend(["-n", str(args.parallel)])

    if args.markers:
        pytest_args.extend(["-k", args.markers])

    if args.log_level:
        pytest_args.extend(["--log-level", args.log_level.upper()])

    if args.asyncio_debug:
        os.environ["PYTHONASYNCIODEBUG"] = "1"
        pytest_args.extend(["-W", "error::RuntimeWarning"])

    pytest_args.append("-ra")

    print(f"Running: pytest {' '.join(pytest_args)}")
    sys.exit(pytest.main(pytest_args))


if __name__ == "__main__":
    main()
