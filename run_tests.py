#!/usr/bin/env python3
"""
Test runner script for the gofer gateway.

Wraps pytest with the usual selections (unit vs. live-server integration
tests) and coverage reporting.
"""

import argparse
import subprocess
import sys


def run_command(cmd, description=""):
    """Run a command and report failures."""
    if description:
        print(f"\n{description}")
        print("=" * len(description))

    print(f"Running: {' '.join(cmd)}")
    result = subprocess.run(cmd, capture_output=False)

    if result.returncode != 0:
        print(f"Command failed with exit code {result.returncode}")
        return False
    return True


def main():
    """Main test runner function."""
    parser = argparse.ArgumentParser(description="gofer Test Runner")
    parser.add_argument("--unit", action="store_true", help="Skip live-server integration tests")
    parser.add_argument("--integration", action="store_true", help="Run only integration tests (needs GOPHER_HOST)")
    parser.add_argument("--coverage", action="store_true", help="Generate coverage report")
    parser.add_argument("--html", action="store_true", help="Generate HTML coverage report")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--file", "-f", help="Run specific test file")
    parser.add_argument("--test", "-t", help="Run tests matching this expression")

    args = parser.parse_args()

    cmd = [sys.executable, "-m", "pytest"]

    if args.verbose:
        cmd.append("-vv")

    if args.unit:
        cmd.extend(["-m", "not integration"])
    elif args.integration:
        cmd.extend(["-m", "integration"])

    if args.file:
        cmd.append(f"tests/{args.file}")
    if args.test:
        cmd.extend(["-k", args.test])

    if args.coverage or args.html:
        cmd.extend([
            "--cov=src",
            "--cov-report=term-missing"
        ])
        if args.html:
            cmd.extend(["--cov-report=html:htmlcov"])

    success = run_command(cmd, "Running gofer Tests")

    if not success:
        print("\nSome tests failed!")
        return 1

    print("\nAll tests passed!")
    if args.html:
        print("HTML coverage report: htmlcov/index.html")
    return 0


if __name__ == "__main__":
    sys.exit(main())
