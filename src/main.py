"""
devloop — CLI entrypoint.

Usage:
    python -m src.main --help
    python -m src.main dev
    python -m src.main dev api web --hot=api
    python -m src.main dev --changed api
"""

from __future__ import annotations

import json
import os
import sys
from datetime import datetime
from pathlib import Path

import click

from src import __version__
from src.core.observability.logging_config import (
    ENV_LOG_FILE,
    ENV_LOG_FILE_LEVEL,
    ENV_LOG_LEVEL,
    resolve_level,
    setup_logging,
)


@click.group()
@click.version_option(version=__version__, prog_name="devloop")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to project.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """devloop — build, deploy and test your modules as you change them."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug, verbose, quiet, os.environ.get(ENV_LOG_LEVEL)),
        log_file=os.environ.get(ENV_LOG_FILE),
        log_file_level=os.environ.get(ENV_LOG_FILE_LEVEL),
        quiet_third_party=not debug,
    )


def _split_names(values: tuple[str, ...]) -> list[str]:
    """Flatten repeated and comma-separated option values."""
    names: list[str] = []
    for value in values:
        names.extend(n.strip() for n in value.split(",") if n.strip())
    return names


def greeting_time(now: datetime | None = None) -> str:
    hour = (now or datetime.now()).hour
    if hour >= 17:
        return "evening"
    if hour >= 12:
        return "afternoon"
    return "morning"


_TASK_ICONS = {"build": "🔨", "test": "🧪", "deploy": "🚀"}


def _echo_tasks(tasks: list) -> None:
    for task in tasks:
        icon = _TASK_ICONS.get(task.type.value, "•")
        flags = []
        if task.force:
            flags.append("force")
        if getattr(task, "from_watch", False):
            flags.append("watch")
        if getattr(task, "hot_reload", False):
            flags.append("hot-reload")
        if getattr(task, "dev_mode", False):
            flags.append("dev-mode")
        flag_label = f"  [{', '.join(flags)}]" if flags else ""
        click.echo(f"   {icon} {task.describe()}{flag_label}")


@cli.command()
@click.argument("services", nargs=-1)
@click.option(
    "--hot-reload",
    "--hot",
    "hot_reload",
    multiple=True,
    help="Service(s) to deploy with hot reloading (comma separated, * for all capable).",
)
@click.option("--skip-tests", is_flag=True, help="Disable running the tests.")
@click.option(
    "--test-names",
    "--tn",
    "test_names",
    multiple=True,
    help="Filter tests by name across all modules (glob patterns, e.g. integ*).",
)
@click.option("--force", is_flag=True, help="Force redeploy of service(s).")
@click.option(
    "--changed",
    "changed_module",
    default=None,
    help="Show the tasks a change in this module would trigger.",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def dev(
    ctx: click.Context,
    services: tuple[str, ...],
    hot_reload: tuple[str, ...],
    skip_tests: bool,
    test_names: tuple[str, ...],
    force: bool,
    changed_module: str | None,
    as_json: bool,
) -> None:
    """Plan a dev session: initial tasks, or what one module change (--changed) triggers.

    Examples:

        devloop dev

        devloop dev --hot=foo-service,bar-service

        devloop dev --hot=*

        devloop dev --skip-tests

        devloop dev --test-names 'integ*'

        devloop dev --changed api
    """
    from src.core.engine.resolver import prepare_session_settings
    from src.core.use_cases.dev import preview_watch, start_dev

    settings = prepare_session_settings(
        services=_split_names(services),
        hot_reload=_split_names(hot_reload),
        skip_tests=skip_tests,
        test_names=_split_names(test_names),
    )
    quiet = ctx.obj.get("quiet", False)

    if changed_module:
        preview = preview_watch(settings, changed_module, config_path=ctx.obj.get("config_path"))
        if as_json:
            click.echo(json.dumps(preview.to_dict(), indent=2))
            sys.exit(1 if preview.error else 0)
            return
        if preview.error:
            click.secho(f"❌ {preview.error}", fg="red")
            sys.exit(1)
        click.secho(f"\n👀 Change in {changed_module}", fg="cyan", bold=True)
        click.echo(f"   Tasks: {len(preview.tasks)}")
        click.echo()
        _echo_tasks(preview.tasks)
        click.echo()
        return

    result = start_dev(
        settings,
        config_path=ctx.obj.get("config_path"),
        force_deploy=force,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(1 if result.error else 0)
        return

    if not quiet:
        click.secho(f"Good {greeting_time()}! Let's get your environment wired up...", fg="bright_black")

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    assert result.project is not None

    if result.aborted:
        click.secho(f"⚠️  {result.aborted}", fg="yellow")
        return

    click.secho(f"\n⚡ dev — {result.project.name}", fg="cyan", bold=True)
    click.echo(f"   Session: {result.session_id}")
    click.echo(f"   Tasks: {len(result.initial_tasks)}")
    if result.skip_watch_modules:
        click.echo(f"   Dev mode (not watched): {', '.join(result.skip_watch_modules)}")
    click.echo()
    _echo_tasks(result.initial_tasks)
    click.echo()


if __name__ == "__main__":
    cli()
