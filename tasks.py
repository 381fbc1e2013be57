from pathlib import Path
from invoke import task, Context

root_path = Path(__file__).parent.absolute()


@task
def test(ctx: Context) -> None:
    # Run linters
    ctx.run("ruff check")
    ctx.run("mypy pem_to_keystore main.py")

    # Run the test suite
    ctx.run("pytest")


@task
def lint(ctx: Context) -> None:
    ctx.run("ruff format .")
    ctx.run("ruff check . --fix")
    ctx.run("mypy pem_to_keystore main.py")


@task
def keystore(ctx: Context, ca_file: str, output: str = "truststore.jks", password: str = "") -> None:
    """Build a keystore from a single PEM file, e.g. `invoke keystore --ca-file root-ca.pem`."""
    ctx.run(f'python {root_path / "main.py"} --ca-file "{ca_file}" --keystore "{output}" --password "{password}"')
