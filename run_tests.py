#!/usr/bin/env python3
"""
Script to run tests for Droxstock project.
"""
import subprocess
import sys
import os


def run_tests():
    """Run pytest with appropriate settings."""
    os.environ["TESTING"] = "true"

    cmd = [
        sys.executable, "-m", "pytest",
        "tests/",
        "-v",
        "--tb=short",
        "--cov=app",
        "--cov=worker",
        "--cov-report=term-missing",
        "--cov-report=html:htmlcov"
    ]

    print("Running tests for Droxstock...")
    print(f"Command: {' '.join(cmd)}")

    try:
        subprocess.run(cmd, check=True)
        print("\nAll tests passed!")
        return 0
    except subprocess.CalledProcessError as e:
        print(f"\nTests failed with exit code {e.returncode}")
        return e.returncode
    except FileNotFoundError:
        print("pytest not found. Please install it with: pip install -e .[test]")
        return 1


if __name__ == "__main__":
    sys.exit(run_tests())
