"""CLI command: ipdrviz server: start the web dashboard API."""

from __future__ import annotations

import click
from rich.console import Console

from ipdrviz.config import IpdrConfig

console = Console(stderr=True)


@click.command()
@click.option(
    "--port",
    type=int,
    default=None,
    help="Port to listen on (default: 8470).",
)
@click.option("--demo", is_flag=True, help="Start with demo sessions loaded.")
@click.pass_context
def server(ctx: click.Context, port: int | None, demo: bool) -> None:
    """Start the ipdrviz web dashboard."""
    try:
        import uvicorn
    except ImportError:
        console.print(
            "[red]Web dependencies not installed.[/red]\n"
            "Install with: pip install ipdrviz[web]"
        )
        raise SystemExit(1)

    config = IpdrConfig.load()
    if port is not None:
        config.web_port = port

    console.print(
        f"[bold]ipdrviz[/bold] web UI starting on "
        f"[cyan]http://{config.web_host}:{config.web_port}[/cyan]"
    )
    console.print(f"  [dim]Detection service: {config.detection_url}[/dim]\n")

    import asyncio

    from ipdrviz.web.app import create_app

    async def _run() -> None:
        app = await create_app(config)
        analysis = None
        if demo:
            from ipdrviz.ingest import generate_demo_sessions

            analysis = asyncio.create_task(
                app.state.dashboard.replace_and_analyze(generate_demo_sessions())
            )
        server_config = uvicorn.Config(
            app,
            host=config.web_host,
            port=config.web_port,
            log_level="info",
        )
        srv = uvicorn.Server(server_config)
        await srv.serve()
        if analysis is not None and not analysis.done():
            analysis.cancel()

    asyncio.run(_run())
