"""CLI entry point: Click group with global options."""

from __future__ import annotations

import logging

import click

from ipdrviz import __version__


@click.group()
@click.version_option(version=__version__, prog_name="ipdrviz")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """ipdrviz: graph analytics and anomaly triage for IPDR session records."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _register_commands() -> None:
    from ipdrviz.cli.analyze import analyze  # noqa: F811
    from ipdrviz.cli.history import history  # noqa: F811
    from ipdrviz.cli.server import server  # noqa: F811

    main.add_command(analyze)
    main.add_command(history)
    main.add_command(server)


_register_commands()
