"""Click CLI entry point for feecheck.

All commands are thin orchestration wrappers — business logic lives in
config, fetchers, service, analyzer and output modules.

Exit codes:
  0 — success
  1 — generic error
  2 — API error, upstream rate limit, invalid key
  3 — network error
  4 — data error (invalid mint, malformed payload)
  5 — config error (missing API key, bad config)
  7 — local request budget exceeded
"""

from __future__ import annotations

import asyncio
import json
import shutil
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import click

from feecheck import __version__
from feecheck.analyzer import analyze_token
from feecheck.config import (
    FeecheckConfig,
    get_default_config_path,
    load_config,
    save_config,
    validate_config,
)
from feecheck.exceptions import ConfigInvalidError, DataError, FeecheckError
from feecheck.fetchers import get_source
from feecheck.logging_config import setup_logging
from feecheck.models import RawTokenData
from feecheck.output import format_output, mask_api_key
from feecheck.ratelimit import InMemoryRateLimitStore, RateLimiter
from feecheck.service import TokenChecker
from feecheck.validation import is_valid_token_mint

FORMATS = ["json", "table", "csv"]

# Client identity used for the local request budget
CLI_CLIENT_KEY = "cli"


# ── Error handler ─────────────────────────────────────────────────────────────


def _output_error(err: FeecheckError | Exception) -> None:
    """Write error JSON to stderr and exit with the error's code."""
    if isinstance(err, FeecheckError):
        payload = err.to_dict()
        exit_code = err.exit_code
    else:
        payload = {"error": "unknown_error", "message": str(err), "details": {}}
        exit_code = 1
    sys.stderr.write(json.dumps(payload) + "\n")
    sys.stderr.flush()
    sys.exit(exit_code)


def _now_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


# ── Root group ────────────────────────────────────────────────────────────────


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "config_path",
    envvar="FEECHECK_CONFIG_PATH",
    default=None,
    help="Config file path (default: ~/.feecheck/config.toml)",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(FORMATS),
    default=None,
    help="Output format (overrides config default)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Log level for stderr diagnostics (overrides config)",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: str | None,
    output_format: str | None,
    log_level: str | None,
) -> None:
    """feecheck — fee-distribution health checks for Bags tokens."""
    ctx.ensure_object(dict)
    config_error: FeecheckError | None = None
    try:
        config = load_config(config_path)
    except FeecheckError as e:
        # Fall back to defaults so `config init` still works
        config = FeecheckConfig()
        config_error = e

    setup_logging(log_level or config.logging.level, config.logging.format)

    ctx.obj["config"] = config
    ctx.obj["config_error"] = config_error
    ctx.obj["format"] = output_format or config.output.default_format
    ctx.obj["config_path"] = config_path


# ── Check / analyze / validate ────────────────────────────────────────────────


@cli.command("check")
@click.argument("mints", nargs=-1, required=True)
@click.option("--format", "fmt", type=click.Choice(FORMATS), default=None)
@click.pass_context
def check_command(ctx: click.Context, mints: tuple[str, ...], fmt: str | None) -> None:
    """Fetch fee data from Bags and analyze one or more token mints."""
    config: FeecheckConfig = ctx.obj["config"]
    fmt = fmt or ctx.obj.get("format", "json")

    if ctx.obj.get("config_error") is not None:
        _output_error(ctx.obj["config_error"])

    limiter = RateLimiter(
        InMemoryRateLimitStore(),
        max_requests=config.rate_limit.max_requests,
        window_seconds=config.rate_limit.window_seconds,
    )

    async def _run() -> list[dict[str, Any]]:
        results: list[dict[str, Any]] = []
        async with get_source(config) as source:
            checker = TokenChecker(source, limiter=limiter)
            for mint in mints:
                try:
                    analysis = await checker.check(mint, client_key=CLI_CLIENT_KEY)
                except FeecheckError as e:
                    if len(mints) == 1:
                        raise
                    results.append({"token_mint": mint, "error": e.to_dict(), "_exit": e.exit_code})
                    continue
                results.append(
                    {
                        "token_mint": mint.strip(),
                        "analyzed_at": _now_iso(),
                        "analysis": analysis.to_dict(),
                    }
                )
        return results

    try:
        results = asyncio.run(_run())
    except FeecheckError as e:
        _output_error(e)
        return

    exit_codes = [r.pop("_exit") for r in results if "_exit" in r]
    if len(results) == 1:
        click.echo(format_output(results[0], fmt))
    else:
        click.echo(format_output({"count": len(results), "results": results}, fmt))
    if exit_codes:
        sys.exit(exit_codes[0])


@cli.command("analyze")
@click.argument("input_file", type=click.File("r"))
@click.option("--format", "fmt", type=click.Choice(FORMATS), default=None)
@click.option(
    "--now",
    "now_str",
    default=None,
    help="Evaluate as of this ISO-8601 instant (default: current time)",
)
@click.option("--mint", default="", help="Token mint to label the result with")
@click.pass_context
def analyze_command(
    ctx: click.Context,
    input_file: Any,
    fmt: str | None,
    now_str: str | None,
    mint: str,
) -> None:
    """Analyze a saved raw Bags payload (JSON file, or - for stdin)."""
    fmt = fmt or ctx.obj.get("format", "json")

    try:
        now = _parse_now(now_str)
        try:
            payload = json.load(input_file)
        except json.JSONDecodeError as e:
            raise DataError(f"Input is not valid JSON: {e}") from e
        raw = RawTokenData.from_dict(payload)
    except FeecheckError as e:
        _output_error(e)
        return

    analysis = analyze_token(raw, now=now)
    result = {
        "token_mint": mint,
        "analyzed_at": now.isoformat(),
        "analysis": analysis.to_dict(),
    }
    click.echo(format_output(result, fmt, now=now))


@cli.command("validate")
@click.argument("mint")
def validate_command(mint: str) -> None:
    """Check that MINT is a well-formed Solana address (exit 4 if not)."""
    valid = is_valid_token_mint(mint)
    click.echo(json.dumps({"token_mint": mint, "valid": valid}))
    if not valid:
        sys.exit(DataError.exit_code)


def _parse_now(value: str | None) -> datetime:
    if not value:
        return datetime.now(tz=timezone.utc)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as e:
        raise DataError(f"--now must be ISO-8601, got {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# ── Config commands ───────────────────────────────────────────────────────────


@cli.group("config")
def config_group() -> None:
    """Manage feecheck configuration."""


@config_group.command("init")
@click.option("--force", is_flag=True, help="Overwrite existing config")
@click.pass_context
def config_init(ctx: click.Context, force: bool) -> None:
    """Initialize default config at ~/.feecheck/config.toml."""
    provided = ctx.obj.get("config_path")
    config_path = Path(provided).expanduser() if provided else get_default_config_path()

    if config_path.exists() and not force:
        click.echo(
            json.dumps(
                {
                    "status": "already_exists",
                    "config_path": str(config_path),
                    "hint": "Use --force to reinitialize",
                }
            )
        )
        return

    status = "initialized"
    backup = None

    if config_path.exists() and force:
        backup = str(config_path) + ".bak"
        shutil.copy2(config_path, backup)
        status = "reinitialized"

    save_config(FeecheckConfig(), str(config_path))

    result: dict[str, Any] = {
        "status": status,
        "config_path": str(config_path),
    }
    if backup:
        result["backup"] = backup
    click.echo(json.dumps(result))


@config_group.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """Set a config value by dotted key path (e.g. api.bags_api_key)."""
    config: FeecheckConfig = ctx.obj["config"]

    if ctx.obj.get("config_error") is not None:
        _output_error(ctx.obj["config_error"])

    section_name, _, field_name = key.partition(".")
    if not field_name:
        _output_error(FeecheckError(f"Key must be in form section.key, got: {key!r}"))

    section = getattr(config, section_name, None)
    if section is None or not hasattr(section, field_name):
        _output_error(ConfigInvalidError(f"Unknown config key: {key!r}"))

    if key == "logging.level":
        value = value.upper()

    try:
        typed_value = _coerce_like(getattr(section, field_name), value)
        setattr(section, field_name, typed_value)
        validate_config(config)
    except ValueError as e:
        _output_error(ConfigInvalidError(f"Invalid value for {key}: {e}"))
    except ConfigInvalidError as e:
        _output_error(e)

    save_config(config, ctx.obj.get("config_path"))

    if "api_key" in field_name:
        typed_value = mask_api_key(str(typed_value))
    click.echo(json.dumps({"status": "updated", "key": key, "value": typed_value}))


def _coerce_like(current: Any, value: str) -> Any:
    """Convert the CLI string to the type of the field it replaces."""
    if isinstance(current, bool):
        return value.lower() in ("1", "true", "yes", "on")
    if isinstance(current, int):
        return int(value)
    if isinstance(current, float):
        return float(value)
    return value


@config_group.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show current configuration (API key masked)."""
    config: FeecheckConfig = ctx.obj["config"]
    provided = ctx.obj.get("config_path")
    config_path = Path(provided).expanduser() if provided else get_default_config_path()

    result = {
        "config_path": str(config_path),
        "api": {
            "bags_api_key": mask_api_key(config.api.bags_api_key),
            "base_url": config.api.base_url,
            "timeout_seconds": config.api.timeout_seconds,
            "recent_events_limit": config.api.recent_events_limit,
        },
        "rate_limit": {
            "max_requests": config.rate_limit.max_requests,
            "window_seconds": config.rate_limit.window_seconds,
        },
        "output": {
            "default_format": config.output.default_format,
            "color": config.output.color,
        },
        "logging": {
            "level": config.logging.level,
            "format": config.logging.format,
        },
    }

    click.echo(format_output(result, "json"))


if __name__ == "__main__":
    cli()
