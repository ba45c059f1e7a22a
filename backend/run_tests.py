#!/usr/bin/env python3
"""
Test runner script for the allocation engine

    python run_tests.py                       # whole suite with coverage
    python run_tests.py tests/test_engine.py  # selected modules, no coverage
"""

import sys
import os
import subprocess

BACKEND_DIR = os.path.dirname(os.path.abspath(__file__))


def pytest_command(paths, with_coverage):
    cmd = [sys.executable, "-m", "pytest"]
    if with_coverage:
        cmd += ["--cov=.", "--cov-report=html", "--cov-report=term-missing"]
    return cmd + list(paths) + ["-v"]


def run_tests(paths=None):
    """Run the given test paths, or the whole suite with coverage"""
    os.chdir(BACKEND_DIR)
    with_coverage = not paths
    cmd = pytest_command(paths or ["tests/"], with_coverage)

    print("Running allocation engine tests")
    print("=" * 50)
    result = subprocess.run(cmd)
    print("=" * 50)

    if result.returncode != 0:
        print("Some tests failed")
        return False

    print("All tests passed")
    if with_coverage:
        print("Coverage report generated in htmlcov/index.html")
    return True


if __name__ == "__main__":
    success = run_tests(sys.argv[1:])
    sys.exit(0 if success else 1)
