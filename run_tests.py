#!/usr/bin/env python3
"""
Test runner for the Prayer Notify service.

Usage:
    python run_tests.py                      # Run all tests
    python run_tests.py -k dedup             # Run specific test pattern
    python run_tests.py --file test_stores   # Run one test module
    python run_tests.py --pdb                # Drop into debugger on failure
"""

import sys
import subprocess
from pathlib import Path


def run_tests(args=None, target="tests"):
    """Run tests with pytest."""
    cmd = [sys.executable, "-m", "pytest", target, "-v", "--tb=short"]
    cmd.extend(args or [])

    print(f"Running: {' '.join(cmd)}")
    result = subprocess.run(cmd, cwd=Path(__file__).parent)
    return result.returncode


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Run the Prayer Notify test suite")
    parser.add_argument("-k", "--keyword", help="Run tests matching keyword")
    parser.add_argument("--file", help="Run a single module under tests/")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--pdb", action="store_true", help="Drop into debugger on failure")

    args = parser.parse_args()

    pytest_args = []

    if args.keyword:
        pytest_args.extend(["-k", args.keyword])

    if args.verbose:
        pytest_args.append("-vv")

    if args.pdb:
        pytest_args.append("--pdb")

    target = "tests"
    if args.file:
        name = args.file if args.file.endswith(".py") else f"{args.file}.py"
        target = f"tests/{name}"

    return run_tests(pytest_args, target)


if __name__ == "__main__":
    sys.exit(main())
