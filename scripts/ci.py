"""Run the growthsim quality gates and write an aggregate summary.

Runs: lint -> typecheck -> test. Stops at the first failure unless
--continue-on-error is passed.

Writes:
    .reports/<step>/output.txt  - Full console output of each tool
    .reports/test/pytest.json   - pytest-json-report output
    .reports/test/coverage.json - coverage.py JSON output
    .reports/summary.json       - Aggregate results from all steps

Stdout:
    [ci] lint:       PASS (0 issues)
    [ci] typecheck:  PASS (0 errors)
    [ci] test:       PASS (142 passed | 91.3% coverage)
    [ci] OVERALL:    PASS
"""

from __future__ import annotations

import json
import re
import subprocess
import sys
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

ROOT = Path(__file__).resolve().parent.parent
REPORTS_DIR = ROOT / ".reports"

_MYPY_ERRORS = re.compile(r"Found (\d+) errors?")


def run_command(cmd: list[str], timeout: int = 300) -> subprocess.CompletedProcess[str]:
    """Run a subprocess from the repo root and capture all output.

    On timeout, returncode is set to 1 and stderr carries the timeout message.
    """
    try:
        return subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            cwd=ROOT,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired:
        return subprocess.CompletedProcess(
            args=cmd,
            returncode=1,
            stdout="",
            stderr=f"TIMEOUT: command exceeded {timeout}s limit: {' '.join(cmd)}\n",
        )


def _report_dir(step: str) -> Path:
    path = REPORTS_DIR / step
    path.mkdir(parents=True, exist_ok=True)
    return path


def _read_json(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def lint() -> dict[str, Any]:
    """Run ruff and count reported issues."""
    report_dir = _report_dir("lint")
    result = run_command(
        [sys.executable, "-m", "ruff", "check", ".", "--output-format=json"]
    )
    (report_dir / "output.txt").write_text(result.stdout + result.stderr)
    try:
        issues = json.loads(result.stdout or "[]")
    except json.JSONDecodeError:
        issues = []
    return {"passed": result.returncode == 0, "total_issues": len(issues), "output": result.stderr}


def typecheck() -> dict[str, Any]:
    """Run mypy over the package."""
    report_dir = _report_dir("typecheck")
    result = run_command([sys.executable, "-m", "mypy", "growthsim"])
    output = result.stdout + result.stderr
    (report_dir / "output.txt").write_text(output)
    match = _MYPY_ERRORS.search(output)
    errors = int(match.group(1)) if match else 0
    return {"passed": result.returncode == 0, "errors": errors, "output": output}


def test() -> dict[str, Any]:
    """Run pytest with coverage and JSON reporting."""
    report_dir = _report_dir("test")
    pytest_json = report_dir / "pytest.json"
    coverage_json = report_dir / "coverage.json"
    result = run_command(
        [
            sys.executable,
            "-m",
            "pytest",
            "--json-report",
            f"--json-report-file={pytest_json}",
            "--json-report-omit=keywords,streams,log",
            "--cov=growthsim",
            f"--cov-report=json:{coverage_json}",
            "-q",
        ]
    )
    output = result.stdout + result.stderr
    (report_dir / "output.txt").write_text(output)

    summary = _read_json(pytest_json).get("summary", {})
    totals = _read_json(coverage_json).get("totals", {})
    return {
        "passed": result.returncode == 0,
        "tests_passed": summary.get("passed", 0),
        "tests_failed": summary.get("failed", 0),
        "tests_skipped": summary.get("skipped", 0),
        "coverage_percent": round(totals.get("percent_covered", 0.0), 1),
        "output": output,
    }


STEPS: list[tuple[str, Callable[[], dict[str, Any]]]] = [
    ("lint", lint),
    ("typecheck", typecheck),
    ("test", test),
]


def format_result(name: str, result: dict[str, Any]) -> str:
    """Format a single step result into a compact line."""
    status = "PASS" if result["passed"] else "FAIL"
    if name == "lint":
        detail = f"{result.get('total_issues', 0)} issues"
    elif name == "typecheck":
        detail = f"{result.get('errors', 0)} errors"
    elif name == "test":
        detail = (
            f"{result.get('tests_passed', 0)} passed"
            f" | {result.get('coverage_percent', 0):.1f}% coverage"
        )
    else:
        detail = ""
    return f"[ci] {name + ':':12s} {status} ({detail})"


def write_summary(results: dict[str, dict[str, Any]]) -> Path:
    """Write .reports/summary.json without the captured console output."""
    REPORTS_DIR.mkdir(parents=True, exist_ok=True)
    tools = {
        name: {
            "status": "pass" if r["passed"] else "fail",
            **{k: v for k, v in r.items() if k not in ("passed", "output")},
        }
        for name, r in results.items()
    }
    summary = {
        "generated_at": datetime.now(UTC).isoformat(),
        "overall_status": "pass" if all(r["passed"] for r in results.values()) else "fail",
        "tools": tools,
    }
    path = REPORTS_DIR / "summary.json"
    path.write_text(json.dumps(summary, indent=2) + "\n")
    return path


def run(verbose: bool = False, continue_on_error: bool = False) -> dict[str, Any]:
    """Run all steps and return aggregate results."""
    results: dict[str, dict[str, Any]] = {}
    all_passed = True

    for name, step in STEPS:
        result = step()
        results[name] = result
        print(format_result(name, result))
        if verbose or not result["passed"]:
            print(result.get("output", ""))
        if not result["passed"]:
            all_passed = False
            if not continue_on_error:
                break

    write_summary(results)
    print(f"[ci] {'OVERALL:':12s} {'PASS' if all_passed else 'FAIL'}")
    return {"passed": all_passed, "exit_code": 0 if all_passed else 1, "steps": results}


if __name__ == "__main__":
    outcome = run(
        verbose="--verbose" in sys.argv or "-v" in sys.argv,
        continue_on_error="--continue-on-error" in sys.argv,
    )
    sys.exit(outcome["exit_code"])
