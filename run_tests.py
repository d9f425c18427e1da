#!/usr/bin/env python3
"""
Test runner script for the MiniTel-Lite orchestrator.

Wraps pytest with the marker selection and coverage options used in
development.
"""

import argparse
import subprocess
import sys


def run_command(cmd, description=""):
    """Run a command and report whether it succeeded."""
    if description:
        print(f"\n{description}")
        print("=" * len(description))

    print(f"Running: {' '.join(cmd)}")
    result = subprocess.run(cmd, capture_output=False)

    if result.returncode != 0:
        print(f"Command failed with exit code {result.returncode}")
        return False
    return True


def build_command(args):
    cmd = [sys.executable, "-m", "pytest"]

    if args.verbose:
        cmd.append("-vv")

    if args.unit:
        cmd.extend(["-m", "unit"])
    elif args.integration:
        cmd.extend(["-m", "integration"])

    if args.file:
        cmd.append(f"tests/{args.file}")
    if args.test:
        cmd.extend(["-k", args.test])

    if args.coverage or args.html:
        cmd.extend(["--cov=src", "--cov-report=term-missing"])
        if args.html:
            cmd.append("--cov-report=html:htmlcov")

    return cmd


def main():
    """Main test runner function."""
    parser = argparse.ArgumentParser(description="MiniTel-Lite Test Runner")
    parser.add_argument("--unit", action="store_true", help="Run only unit tests")
    parser.add_argument("--integration", action="store_true", help="Run only live-server tests")
    parser.add_argument("--coverage", action="store_true", help="Generate coverage report")
    parser.add_argument("--html", action="store_true", help="Generate HTML coverage report")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--file", "-f", help="Run specific test file")
    parser.add_argument("--test", "-t", help="Run tests matching this expression")

    args = parser.parse_args()

    if not run_command(build_command(args), "Running MiniTel-Lite Tests"):
        print("\nSome tests failed!")
        return 1

    print("\nAll tests passed!")
    if args.html:
        print("HTML coverage report: htmlcov/index.html")
    return 0


if __name__ == "__main__":
    sys.exit(main())
