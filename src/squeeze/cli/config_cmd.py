"""Config CLI commands — view and change the TOML config file."""

from __future__ import annotations

import click

from squeeze.cli.main import JsonGroup, SqueezeContext, pass_context


@click.group(cls=JsonGroup)
@pass_context
def config(ctx: SqueezeContext) -> None:
    """Machine-level config (data directory, log level, date format)."""
    pass


@config.command("show")
@pass_context
def config_show(ctx: SqueezeContext) -> None:
    """Show the effective config and where it is read from."""
    from squeeze.core.config import get_config_path, load_config

    cfg = load_config()
    if ctx.json_mode:
        ctx.formatter.json({"path": str(get_config_path()), "config": cfg})
        return

    ctx.formatter.print(f"[dim]{get_config_path()}[/dim]")
    for section, values in cfg.items():
        ctx.formatter.print(f"\n[bold]\\[{section}][/bold]")
        for key, value in values.items():
            ctx.formatter.print(f"  {key} = {value!r}")


@config.command("set")
@click.argument("key")
@click.argument("value")
@pass_context
def config_set(ctx: SqueezeContext, key: str, value: str) -> None:
    """Set KEY (e.g. general.log_level) to VALUE."""
    from squeeze.core.config import get_value, set_value

    cfg = set_value(key, value)
    if ctx.json_mode:
        ctx.formatter.json({key: get_value(key, cfg)})
    else:
        ctx.formatter.success(f"{key} = {get_value(key, cfg)!r}")
