#!/usr/bin/env python3
"""
Test Runner Script

Runs the broker intelligence test suite with the project root on PYTHONPATH.

USAGE:
    python run_tests.py                  # everything under tests/
    python run_tests.py unit             # tests/unit only
    python run_tests.py integration      # tests/integration only
    python run_tests.py tests/unit/test_load_extractor.py
"""

import os
import subprocess
import sys
from pathlib import Path

project_root = Path(__file__).parent.absolute()

SUITES = {
    "unit": "tests/unit",
    "integration": "tests/integration",
}


def run_tests(target=None):
    env = os.environ.copy()
    env['PYTHONPATH'] = os.pathsep.join(filter(None, [str(project_root), env.get('PYTHONPATH')]))

    path = SUITES.get(target, target) if target else "tests/"
    cmd = [sys.executable, "-m", "pytest", path, "-v"]

    print(f"Running command: {' '.join(cmd)}")
    print("=" * 70)

    return subprocess.run(cmd, env=env, cwd=project_root).returncode


if __name__ == "__main__":
    sys.exit(run_tests(sys.argv[1] if len(sys.argv) > 1 else None))
