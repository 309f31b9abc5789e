#!/usr/bin/env python3
"""Test runner script for the Google Sheets MCP tests."""

import argparse
import os
import subprocess
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent

# Suite name -> CTRF report file name
SUITES = {
    "oauth": "oauth-proxy-tests.json",
    "server": "mcp-server-tests.json",
}


def _test_env() -> dict[str, str]:
    """Environment for the pytest subprocesses.

    Real credentials are removed so no test can reach Google by accident.
    """
    env = os.environ.copy()
    for name in ("GOOGLE_ACCESS_TOKEN", "GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET"):
        env.pop(name, None)
    env["PYTHONPATH"] = str(PROJECT_ROOT / "docker" / "google_sheets_mcp")
    return env


def run_test_suite(suite_name, ctrf_enabled, fail_fast, env, ctrf_dir):
    """Run one suite and, if requested, write and post-process its CTRF report."""
    test_path = PROJECT_ROOT / "tests" / suite_name
    ctrf_filename = SUITES.get(suite_name, f"{suite_name}-tests.json")

    cmd = [
        sys.executable, "-m", "pytest", "-v", "--tb=short", "--strict-markers",
        "--strict-config", str(test_path), "--color=yes",
    ]

    ctrf_path = None
    if ctrf_enabled:
        ctrf_path = ctrf_dir / ctrf_filename
        cmd.append(f"--ctrf={ctrf_path}")

    if fail_fast:
        cmd.append("-x")

    print(f"Running {suite_name.upper()} tests with command: {' '.join(cmd)}")
    print("-" * 60)

    result = subprocess.run(cmd, env=env, cwd=PROJECT_ROOT)

    if ctrf_path and ctrf_path.exists():
        add_suites_script = Path(__file__).parent / "add_suites_to_ctrf.py"
        suite_result = subprocess.run(
            [sys.executable, str(add_suites_script), str(ctrf_path)],
            env=env, capture_output=True, text=True,
        )
        if suite_result.returncode == 0:
            print(suite_result.stdout.strip())
        else:
            print(f"Warning: Failed to add suite information: {suite_result.stdout.strip()}")

    return result.returncode


def run_tests(test_suite=None, ctrf=False, fail_fast=False):
    """Run one suite, or every suite separately for per-suite CTRF reports."""
    ctrf_dir = PROJECT_ROOT / "ctrf"
    if ctrf:
        ctrf_dir.mkdir(exist_ok=True)

    env = _test_env()
    suites = [test_suite] if test_suite else list(SUITES)

    for suite in suites:
        returncode = run_test_suite(suite, ctrf, fail_fast, env, ctrf_dir)
        if returncode != 0:
            return returncode
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Run Google Sheets MCP test suites",
        epilog=(
            "Examples:\n"
            "  python tests/run_tests.py                  # Run all suites\n"
            "  python tests/run_tests.py --oauth --ctrf   # OAuth proxy tests with CTRF report\n"
            "\n"
            "Install test dependencies first:\n"
            '  pip install -e ".[test]"\n'
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    group = parser.add_mutually_exclusive_group()
    group.add_argument("--oauth", action="store_true", help="Run OAuth proxy and token cache tests only")
    group.add_argument("--server", action="store_true", help="Run MCP server, tools and config tests only")

    parser.add_argument("--ctrf", action="store_true", help="Generate CTRF test reports")
    parser.add_argument("--fast", action="store_true", help="Fail fast on first error")

    args = parser.parse_args()

    test_suite = None
    if args.oauth:
        test_suite = "oauth"
    elif args.server:
        test_suite = "server"

    return run_tests(test_suite=test_suite, ctrf=args.ctrf, fail_fast=args.fast)


if __name__ == "__main__":
    sys.exit(main())
