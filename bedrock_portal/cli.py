"""bedrock-portal CLI - run a portal from a YAML config."""

import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional

import click

from . import __version__
from .config import PortalConfig, find_config_path, validate_options
from .errors import PortalError

log = logging.getLogger("bedrock_portal.cli")


# --- Config Utilities ---


def load_config(path: Optional[str] = None) -> PortalConfig:
    """Load config from an explicit path or the default locations."""
    config_path = Path(path) if path else find_config_path()
    if not config_path.exists():
        return PortalConfig()
    return PortalConfig.load(config_path)


def _mask_secrets(data: dict) -> dict:
    """Mask sensitive values in config dict."""
    secret_keys = {"xsts_token", "user_hash", "token", "password"}
    result = {}
    for k, v in data.items():
        if isinstance(v, dict):
            result[k] = _mask_secrets(v)
        elif k in secret_keys and isinstance(v, str) and len(v) > 4:
            result[k] = f"***{v[-4:]}"
        else:
            result[k] = v
    return result


def _setup_logging(debug: bool) -> None:
    level = "DEBUG" if debug else os.environ.get("LOG_LEVEL", "INFO")
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


# --- CLI Groups ---


@click.group()
@click.version_option(version=__version__, prog_name="bedrock-portal")
def cli():
    """bedrock-portal - advertise a Bedrock server through Xbox Live."""
    pass


# --- Core Commands ---


async def _run_portal(cfg: PortalConfig) -> None:
    from .modules import load_modules
    from .portal import BedrockPortal
    from .rest import StaticTokenProvider, XboxRest
    from .rta import XboxRTA

    auth = StaticTokenProvider(cfg.auth.user_hash, cfg.auth.xsts_token)
    rest = XboxRest(auth)
    rta = XboxRTA(auth)
    portal = BedrockPortal(rest, rta, cfg)

    load_modules(portal.modules, cfg.modules)

    lost = asyncio.Event()
    portal.on("playerJoin", lambda p: log.info("Join: %s (%s)", p.gamertag, p.xuid))
    portal.on("playerLeave", lambda p: log.info("Leave: %s (%s)", p.gamertag, p.xuid))
    portal.on("sessionLost", lambda _e: lost.set())

    try:
        await portal.start()
        log.info("Session %s published for %s:%s", portal.session.name, cfg.ip, cfg.port)
        await lost.wait()
        log.error("Session lost, exiting")
    finally:
        await portal.end()
        await rest.close()


@cli.command()
@click.option("--config", "-c", type=click.Path(exists=True), help="Config file path")
@click.option("--debug", "-d", is_flag=True, help="Enable debug logging")
def run(config: Optional[str], debug: bool):
    """Publish the session and keep it alive until interrupted."""
    _setup_logging(debug)

    try:
        cfg = load_config(config)
        validate_options(cfg)
    except PortalError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not cfg.auth.user_hash or not cfg.auth.xsts_token:
        click.echo("Error: auth.user_hash and auth.xsts_token must be set", err=True)
        sys.exit(1)

    try:
        asyncio.run(_run_portal(cfg))
    except KeyboardInterrupt:
        click.echo("Stopped.", err=True)
    except PortalError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


# --- Config Commands ---


@cli.group()
def config():
    """Configuration commands."""
    pass


@config.command("show")
@click.option("--config", "-c", "path", type=click.Path(exists=True), help="Config file path")
@click.option("--reveal", is_flag=True, help="Show secrets unmasked")
def config_show(path: Optional[str], reveal: bool):
    """Show current configuration.

    Secrets are masked by default (use --reveal to show).
    """
    import yaml

    try:
        cfg = load_config(path)
    except PortalError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    data = cfg._raw.copy() if cfg._raw else {}

    if not reveal:
        data = _mask_secrets(data)

    if data:
        click.echo(yaml.dump(data, default_flow_style=False, sort_keys=False))
    else:
        click.echo("# No configuration loaded")


@config.command("validate")
@click.option("--config", "-c", "path", type=click.Path(exists=True), help="Config file path")
def config_validate(path: Optional[str]):
    """Check that the configuration can publish a session."""
    try:
        cfg = load_config(path)
        validate_options(cfg)
    except PortalError as e:
        click.echo(f"Invalid: {e}", err=True)
        sys.exit(1)
    click.echo(f"OK: {cfg.ip}:{cfg.port} ({cfg.joinability})")


def main():
    cli()


if __name__ == "__main__":
    main()
