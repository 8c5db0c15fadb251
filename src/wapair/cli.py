"""CLI entry point for the pairing service."""

import json
from pathlib import Path

import click

from wapair import __version__
from wapair.config import load_config
from wapair.errors import ConfigError
from wapair.logging import setup_logging


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Path to config file.",
)
@click.pass_context
def main(ctx: click.Context, config: Path | None) -> None:
    """wapair - Link WhatsApp by QR or pairing code from a web page."""
    ctx.ensure_object(dict)
    try:
        ctx.obj["config"] = load_config(config)
    except ConfigError as e:
        raise click.ClickException(str(e))
    ctx.obj["logger"] = setup_logging(ctx.obj["config"])


@main.command()
@click.option("--port", "-p", type=int, default=None, help="Override listening port.")
@click.pass_context
def serve(ctx: click.Context, port: int | None) -> None:
    """Start the web server and the WhatsApp connection."""
    import asyncio

    from wapair.errors import StartupError
    from wapair.service import PairingService

    config = ctx.obj["config"]
    if port is not None:
        config.port = port

    async def _serve():
        service = PairingService(config=config)
        try:
            await service.start()
        except StartupError as e:
            click.echo(f"Startup error: {e}", err=True)
            raise SystemExit(1)
        click.echo(f"Server running on port {service.server.get_port()}")
        click.echo("Press Ctrl+C to stop")
        await service.run_forever()

    try:
        asyncio.run(_serve())
    except KeyboardInterrupt:
        pass


@main.command()
@click.option("--url", default=None, help="Base URL of a running service.")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON.")
@click.pass_context
def status(ctx: click.Context, url: str | None, as_json: bool) -> None:
    """Show the status of a running service."""
    import asyncio

    import aiohttp

    config = ctx.obj["config"]
    base_url = url or f"http://127.0.0.1:{config.port}"

    async def _fetch() -> dict:
        timeout = aiohttp.ClientTimeout(total=5)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(f"{base_url}/status") as resp:
                resp.raise_for_status()
                return await resp.json()

    try:
        data = asyncio.run(_fetch())
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        click.echo(f"Service status: not reachable at {base_url} ({e})", err=True)
        raise SystemExit(1)

    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    click.echo(f"Status:        {data.get('statusText')}")
    click.echo(f"Pairing codes: {data.get('pairingCodes', 0)}")
    click.echo(f"Last code:     {data.get('lastCode') or 'None'}")
    click.echo(f"QR attempts:   {data.get('qrAttempts', 0)}/{data.get('maxQrAttempts', 0)}")
    click.echo(f"Uptime:        {data.get('uptimeText', '')}")


@main.command()
def version() -> None:
    """Show version."""
    click.echo(f"wapair version {__version__}")


if __name__ == "__main__":
    main()
