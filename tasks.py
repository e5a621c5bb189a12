# type: ignore
import os

from invoke import task


@task
def venv(ctx):
    """Create the development environment with uv, including BLE and test extras."""
    ctx.run("uv sync --all-extras")


@task
def clean(ctx):
    """
    Remove every file not under version control.
    Shows a dry run first and asks before deleting anything.
    """

    ctx.run("git clean -nfdx")

    response = (
        input("Are you sure you want to remove all untracked files? (y/n) [n]: ")
        .strip()
        .lower()
    )
    if response == "y":
        ctx.run("git clean -fdx")


@task
def lint(ctx):
    """
    Check style with ruff and types with mypy.
    """
    ctx.run("ruff check src tests", pty=True)
    ctx.run("ruff format --check src tests", pty=True)
    ctx.run("mypy src", pty=True)


@task
def test(ctx):
    """
    Run tests with coverage information.
    """
    ctx.run("pytest --cov=espscan --cov-report=term-missing", pty=True)


@task
def demo(ctx, timeout_ms=3000):
    """
    Run a scan against the simulated radio.
    """
    ctx.run(f"espscan scan --simulate --timeout-ms {timeout_ms}", pty=True)


@task
def build_package(ctx):
    """
    Build package using uv.
    """

    ctx.run("rm -rf dist")
    ctx.run("uv build")


@task
def release(ctx):
    """Run lint and tests, build the package, and publish to PyPI using uv."""
    token = os.getenv("PYPI_TOKEN")
    if not token:
        raise ValueError("PYPI_TOKEN environment variable is not set")

    ctx.run("invoke lint test")

    print("Building package...")
    ctx.run("invoke build-package")

    print("Publishing to PyPI...")
    ctx.run(f"uv publish --token {token}")
