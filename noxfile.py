"""Nox sessions for ft-player development tasks."""

from __future__ import annotations

from pathlib import Path

import nox


ROOT = Path(__file__).parent
PACKAGE = "src/ft_player"

nox.options.error_on_missing_interpreters = False
nox.options.sessions = ["lint", "typecheck", "tests"]


@nox.session
def lint(session: nox.Session) -> None:
    """Run ruff linting and formatting checks."""
    session.install("ruff")
    session.run("ruff", "check", ".")
    session.run("ruff", "format", "--check", ".")


@nox.session(name="lint-fix")
def lint_fix(session: nox.Session) -> None:
    """Apply ruff fixes and formatting."""
    session.install("ruff")
    session.run("ruff", "check", "--fix", ".")
    session.run("ruff", "format", ".")


@nox.session
def tests(session: nox.Session) -> None:
    """Run pytest against an editable install."""
    session.install("-e", ".[dev]")
    session.run("pytest", "-q", *session.posargs)


@nox.session
def typecheck(session: nox.Session) -> None:
    """Run mypy over the package."""
    session.install("-e", ".", "mypy", "types-requests")
    session.run("mypy", PACKAGE)


@nox.session
def coverage(session: nox.Session) -> None:
    """Run the suite under coverage and enforce the floor."""
    session.install("-e", ".[dev]", "coverage")
    session.run("coverage", "run", "--source=ft_player", "-m", "pytest")
    session.run("coverage", "report", "--fail-under=80", "-m")


@nox.session
def build(session: nox.Session) -> None:
    """Build sdist and wheel artifacts."""
    session.install("build")
    session.run("python", "-m", "build", str(ROOT))


@nox.session(name="tests-dev", venv_backend="none")
def tests_dev(session: nox.Session) -> None:
    """Fast local pytest using the active venv."""
    session.run("python", "-m", "pytest", "-q", *session.posargs, external=True)
