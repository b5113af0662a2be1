"""Setup command for papertrade CLI."""

from typing import Optional

import click
from rich.panel import Panel

from papertrade.cli.common import console, fail


@click.command()
@click.option("-u", "--username", default=None, help="Username to store in the config file.")
@click.option("-f", "--force", is_flag=True, default=False, help="Overwrite an existing config file.")
def init(username: Optional[str], force: bool) -> None:
    """Create the config file and database.

    Writes a template config (unless one exists), creates the SQLite
    database and seeds the achievement catalog.

    \b
    Examples:
      papertrade init
      papertrade init --username alice --force
    """
    from papertrade.config import config_path, load_settings, set_settings, write_template
    from papertrade.db.store import DataStore
    from papertrade.engine.achievements import DEFAULT_ACHIEVEMENTS
    from papertrade.exceptions import PaperTradeError

    path = config_path()
    try:
        if force or not path.exists():
            write_template(path, username=username)
            console.print(f"[green]✓ Wrote config to {path}[/green]")
        else:
            console.print(f"[yellow]Config already exists at {path}[/yellow]")

        settings = load_settings(path)
        set_settings(settings)
        store = DataStore(settings.db_path)
        seeded = store.seed_achievements(DEFAULT_ACHIEVEMENTS)
    except PaperTradeError as e:
        fail(e.message)

    console.print(Panel(
        f"User:          {settings.username}\n"
        f"Database:      {settings.db_path}\n"
        f"Tables:        {len(store.get_tables())}\n"
        f"Achievements:  {seeded} added",
        title="[bold green]Ready[/bold green]",
        border_style="green",
    ))
