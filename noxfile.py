"""Nox sessions for testing and linting parsetrace.

Run with: uv run nox [session]
"""

import shutil
from pathlib import Path

import nox

nox.options.default_venv_backend = "uv"
nox.options.stop_on_first_error = True
nox.options.error_on_external_run = True

# Lint first, then a clean coverage run over all interpreters
nox.options.sessions = ["lint", "cov-clean", "test", "cov-combine"]

PYTHON_VERSIONS = ["3.9", "3.10", "3.11", "3.12", "3.13", "3.14"]
TOOLS_PYTHON = PYTHON_VERSIONS[-1]


@nox.session(python=PYTHON_VERSIONS)
def test(session):
    """Run the test suite under coverage, one data file per interpreter."""
    session.install(".[test]")
    session.run(
        "coverage",
        "run",
        "--parallel-mode",
        "--source",
        "parsetrace",
        "-m",
        "pytest",
        "-qq",
        *(session.posargs or ["tests"]),
    )


@nox.session(python=TOOLS_PYTHON)
def lint(session):
    """Check style with ruff and types with ty."""
    session.install("ruff", "ty")
    session.run("ruff", "check", ".")
    session.run("ruff", "format", "--check", ".")
    session.run("ty", "check", "parsetrace")


@nox.session(python=TOOLS_PYTHON)
def format(session):
    session.install("ruff")
    session.run("ruff", "check", "--fix", ".")
    session.run("ruff", "format", ".")


@nox.session(python=TOOLS_PYTHON, name="cov-clean")
def cov_clean(session):
    """Remove coverage data and reports of earlier runs."""
    for path in Path(".").glob(".coverage*"):
        if path.is_file():
            path.unlink()
    shutil.rmtree("htmlcov", ignore_errors=True)
    Path("coverage.xml").unlink(missing_ok=True)


@nox.session(python=TOOLS_PYTHON, name="cov-combine")
def cov_combine(session):
    """Combine the per-interpreter data and report it."""
    session.install("coverage")
    session.run("coverage", "combine", "--keep", success_codes=[0, 1])
    session.run("coverage", "report", "-m")
    session.run("coverage", "html")
    session.run("coverage", "xml")


@nox.session(python=TOOLS_PYTHON)
def clean(session):
    """Remove build artifacts and caches."""
    session.notify("cov-clean")
    patterns = [
        "**/__pycache__",
        "build",
        "dist",
        "*.egg-info",
        ".pytest_cache",
        ".ruff_cache",
        ".nox",
    ]
    for pattern in patterns:
        for path in Path(".").glob(pattern):
            shutil.rmtree(path, ignore_errors=True)
