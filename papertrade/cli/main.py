"""Main CLI entry point for papertrade.

This module provides the main click group and lazy loading
of command modules to keep startup fast.
"""

import click
from rich.console import Console
from rich.panel import Panel

# Console for rich output
console = Console()


class LazyGroup(click.Group):
    """A click Group that lazily loads commands.

    Command modules are only imported when the command is invoked
    or listed.
    """

    def __init__(self, *args, lazy_subcommands: dict[str, str] | None = None, **kwargs):
        """Initialize the lazy group.

        Args:
            lazy_subcommands: Mapping of command names to module paths.
        """
        super().__init__(*args, **kwargs)
        self._lazy_subcommands = lazy_subcommands or {}

    def list_commands(self, ctx: click.Context) -> list[str]:
        """List all available commands."""
        base = super().list_commands(ctx)
        lazy = list(self._lazy_subcommands.keys())
        return sorted(set(base + lazy))

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        """Get a command by name, lazily loading if needed."""
        if cmd_name in self.commands:
            return self.commands[cmd_name]

        if cmd_name in self._lazy_subcommands:
            return self._lazy_load(cmd_name)

        return None

    def _lazy_load(self, cmd_name: str) -> click.Command:
        """Lazily load a command from its module path."""
        import importlib

        module_path = self._lazy_subcommands[cmd_name]
        module = importlib.import_module(module_path)

        cmd = None
        for attr_name in dir(module):
            attr = getattr(module, attr_name)
            if isinstance(attr, click.Command) and attr.name == cmd_name:
                cmd = attr
                break

        if cmd is None:
            raise click.ClickException(f"Could not find command '{cmd_name}' in {module_path}")

        self.add_command(cmd)
        return cmd


# Define lazy subcommands mapping
LAZY_SUBCOMMANDS = {
    "init": "papertrade.cli.setup",
    "quote": "papertrade.cli.market",
    # Equity trading
    "buy": "papertrade.cli.trade",
    "sell": "papertrade.cli.trade",
    "positions": "papertrade.cli.trade",
    "balance": "papertrade.cli.trade",
    # Derivatives
    "option": "papertrade.cli.derivatives",
    "future": "papertrade.cli.derivatives",
    "derivatives": "papertrade.cli.derivatives",
    "close": "papertrade.cli.derivatives",
    # Contests
    "contest": "papertrade.cli.contest",
    "achievements": "papertrade.cli.contest",
    # Watchlist and Alerts
    "watch": "papertrade.cli.watchlist",
    "alert": "papertrade.cli.watchlist",
}


CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.group(cls=LazyGroup, lazy_subcommands=LAZY_SUBCOMMANDS, context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="papertrade")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Log at INFO level.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """papertrade - paper trading with contests, options and futures.

    Trade a virtual portfolio against recorded quotes, open option and
    futures positions, compete in contests and unlock achievements.

    \b
    Quick Start:
      papertrade init                    # Create config and database
      papertrade quote RELIANCE --set 2500
      papertrade buy RELIANCE 10         # Buy at the recorded price
      papertrade positions               # View holdings
    """
    from papertrade.config import load_settings, set_settings
    from papertrade.exceptions import ConfigurationError
    from papertrade.logging_config import setup_logging

    ctx.ensure_object(dict)

    try:
        settings = load_settings()
    except ConfigurationError as e:
        console.print(Panel(
            f"[red]{e.message}[/red]",
            title="[bold red]Configuration Error[/bold red]",
            border_style="red",
        ))
        raise SystemExit(1)

    set_settings(settings)
    setup_logging("INFO" if verbose else settings.logging.level, settings.logging.file)
    ctx.obj["settings"] = settings


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
