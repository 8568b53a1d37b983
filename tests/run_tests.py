#!/usr/bin/env python3
"""
Test Runner for bakery-ops

PURPOSE:
    Runs the API, agent and service test suites with optional coverage.

USAGE:
    python tests/run_tests.py [options]

    Options:
    --api            Run HTTP API tests (orders, products, delivery, auth, webhook)
    --agents         Run agent tests
    --services       Run service and helper tests
    --all            Run all available tests
    --coverage       Run tests with coverage reporting
    --verbose        Run with verbose output
"""

import sys
import subprocess
import argparse
from pathlib import Path

project_root = Path(__file__).parent.parent

SUITES = {
    "api": [
        "tests/test_orders_api.py",
        "tests/test_products_api.py",
        "tests/test_delivery_api.py",
        "tests/test_auth_and_guards.py",
        "tests/test_supplier_webhook.py",
    ],
    "agents": ["tests/test_unified_agent.py"],
    "services": ["tests/test_services.py"],
    "all": ["tests/"],
}


def run_command(command, description):
    """Run a command and report whether it passed."""
    print(f"\n{'='*60}")
    print(f"Running: {description}")
    print(f"Command: {' '.join(command)}")
    print(f"{'='*60}")

    try:
        subprocess.run(command, check=True, capture_output=False, cwd=project_root)
        print(f"\n✅ {description} completed successfully!")
        return True
    except subprocess.CalledProcessError as e:
        print(f"\n❌ {description} failed with exit code {e.returncode}")
        return False


def check_environment():
    """Check that pytest and the package are importable."""
    print("🔍 Checking environment...")

    try:
        import pytest  # noqa: F401
        print("✅ pytest is available")
    except ImportError:
        print("❌ pytest is not available. Install the test extra: pip install -e .[test]")
        return False

    if not (project_root / "bakery_ops").exists():
        print("❌ bakery_ops package not found")
        return False

    print("✅ Environment check completed")
    return True


def run_suite(name, verbose=False, coverage=False):
    command = [sys.executable, "-m", "pytest", *SUITES[name]]
    if verbose:
        command.append("-v")
    if coverage:
        command.extend(["--cov=bakery_ops", "--cov-report=term-missing"])
    return run_command(command, f"{name.capitalize()} Tests")


def main():
    parser = argparse.ArgumentParser(
        description="Test Runner for bakery-ops",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python tests/run_tests.py --api
  python tests/run_tests.py --agents --verbose
  python tests/run_tests.py --all --coverage
        """
    )
    parser.add_argument("--api", action="store_true", help="Run HTTP API tests")
    parser.add_argument("--agents", action="store_true", help="Run agent tests")
    parser.add_argument("--services", action="store_true", help="Run service and helper tests")
    parser.add_argument("--all", action="store_true", help="Run all available tests")
    parser.add_argument("--coverage", action="store_true", help="Run tests with coverage reporting")
    parser.add_argument("--verbose", action="store_true", help="Run with verbose output")
    parser.add_argument("--check-env", action="store_true", help="Check environment setup only")

    args = parser.parse_args()

    print("🧪 bakery-ops Test Runner")
    print("=" * 60)

    if args.check_env:
        check_environment()
        return

    if not check_environment():
        print("❌ Environment check failed. Please fix the issues above.")
        sys.exit(1)

    selected = [name for name in ("api", "agents", "services", "all") if getattr(args, name)]
    if not selected:
        selected = ["all"]

    success_count = sum(1 for name in selected if run_suite(name, verbose=args.verbose, coverage=args.coverage))
    total = len(selected)

    print(f"\n{'='*60}")
    print("TEST RUN SUMMARY")
    print(f"{'='*60}")
    print(f"Suites run: {total}")
    print(f"Successful: {success_count}")
    print(f"Failed: {total - success_count}")

    if success_count == total:
        print("\n🎉 All tests passed!")
        sys.exit(0)
    print(f"\n❌ {total - success_count} test suite(s) failed!")
    sys.exit(1)


if __name__ == "__main__":
    main()
