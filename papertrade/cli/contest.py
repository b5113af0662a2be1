"""Contest and achievement commands for papertrade CLI."""

from datetime import datetime
from typing import Optional

import click
from rich.panel import Panel
from rich.table import Table

from papertrade.cli.common import (
    console,
    fail,
    get_contest_service,
    ledger_summary,
    money,
    pnl_text,
    positions_table,
)

STATUS_STYLES = {"upcoming": "yellow", "active": "green", "completed": "dim"}


@click.group()
def contest() -> None:
    """Create, join and trade in contests.

    \b
    Examples:
      papertrade contest create "Weekly Sprint" --start 2026-10-19 --end 2026-10-26
      papertrade contest list
      papertrade contest join 1
      papertrade contest mine
      papertrade contest trade 1 RELIANCE BUY 10
      papertrade contest leaderboard 1
    """
    pass


@contest.command("create")
@click.argument("name")
@click.option("--start", "start_date", type=click.DateTime(), required=True, help="Start date (YYYY-MM-DD).")
@click.option("--end", "end_date", type=click.DateTime(), required=True, help="End date (YYYY-MM-DD).")
@click.option("-b", "--balance", type=float, default=100000.0, help="Initial virtual balance per entry.")
@click.option("-m", "--max-participants", type=int, default=None, help="Entry cap (default: unlimited).")
@click.option(
    "-t", "--type", "contest_type",
    type=click.Choice(["weekly", "monthly", "custom"]),
    default="weekly",
    help="Contest type.",
)
@click.option("-d", "--description", default="", help="Contest description.")
def create(
    name: str,
    start_date: datetime,
    end_date: datetime,
    balance: float,
    max_participants: Optional[int],
    contest_type: str,
    description: str,
) -> None:
    """Create a contest."""
    from pydantic import ValidationError as PydanticValidationError

    from papertrade.config import get_settings
    from papertrade.exceptions import PaperTradeError

    try:
        created = get_contest_service().create_contest(
            name,
            start_date,
            end_date,
            initial_balance=balance,
            max_participants=max_participants,
            contest_type=contest_type,
            description=description,
            created_by=get_settings().username,
        )
    except PaperTradeError as e:
        fail(e.message)
    except PydanticValidationError as e:
        fail(f"Invalid contest: {e.errors()[0]['msg']}")

    console.print(f"[green]✓ Created contest #{created.id}: {created.name}[/green]")


@contest.command("list")
@click.option("-n", "--limit", type=int, default=20, help="Number of contests to show.")
def list_contests(limit: int) -> None:
    """List contests."""
    contests = get_contest_service().list_contests(limit)
    if not contests:
        console.print("[dim]No contests yet. Create one with `papertrade contest create`.[/dim]")
        return

    now = datetime.now()
    table = Table(title="Contests", show_header=True, header_style="bold cyan")
    table.add_column("ID", justify="right")
    table.add_column("Name", style="bold")
    table.add_column("Status")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Balance", justify="right")
    table.add_column("Entries", justify="right")

    for c in contests:
        status = c.status_at(now)
        style = STATUS_STYLES[status]
        cap = f"/{c.max_participants}" if c.max_participants else ""
        table.add_row(
            str(c.id),
            c.name,
            f"[{style}]{status}[/{style}]",
            f"{c.start_date:%Y-%m-%d}",
            f"{c.end_date:%Y-%m-%d}",
            money(c.initial_balance),
            f"{c.participant_count}{cap}",
        )
    console.print(table)


@contest.command("mine")
def my_contests() -> None:
    """List contests you have joined."""
    from papertrade.config import get_settings

    joined = get_contest_service().user_entries(get_settings().username)
    if not joined:
        console.print("[dim]You have not joined any contests yet[/dim]")
        return

    now = datetime.now()
    table = Table(title="My Contests", show_header=True, header_style="bold cyan")
    table.add_column("ID", justify="right")
    table.add_column("Name", style="bold")
    table.add_column("Status")
    table.add_column("Total Value", justify="right")
    table.add_column("Returns", justify="right")
    table.add_column("Rank", justify="right")

    for c, e in joined:
        status = c.status_at(now)
        style = STATUS_STYLES[status]
        table.add_row(
            str(c.id),
            c.name,
            f"[{style}]{status}[/{style}]",
            money(e.total_value),
            pnl_text(e.total_returns, e.total_returns_percent),
            f"#{e.rank}" if e.rank else "-",
        )
    console.print(table)


@contest.command("join")
@click.argument("contest_id", type=int)
def join(contest_id: int) -> None:
    """Join a contest with a fresh virtual balance."""
    from papertrade.config import get_settings
    from papertrade.exceptions import PaperTradeError

    try:
        entry = get_contest_service().join(contest_id, get_settings().username)
    except PaperTradeError as e:
        fail(e.message, title="Cannot Join")

    console.print(f"[green]✓ Joined contest #{contest_id} with {money(entry.balance)}[/green]")


@contest.command("trade")
@click.argument("contest_id", type=int)
@click.argument("symbol")
@click.argument("side", type=click.Choice(["BUY", "SELL"], case_sensitive=False))
@click.argument("qty", type=int)
@click.option("-p", "--price", type=float, default=None, help="Execution price. Defaults to the last quote.")
def trade(contest_id: int, symbol: str, side: str, qty: int, price: Optional[float]) -> None:
    """Trade inside an active contest."""
    from papertrade.config import get_settings
    from papertrade.exceptions import PaperTradeError

    side = side.upper()
    try:
        entry = get_contest_service().trade(
            contest_id, get_settings().username, symbol, side, qty, price
        )
    except PaperTradeError as e:
        fail(e.message, title="Order Rejected")

    txn = entry.transactions[-1]
    console.print(
        f"[green]✓ {side} {txn.quantity} {txn.symbol} @ {money(txn.price)}[/green]  "
        f"[dim]Balance: {money(entry.balance)}[/dim]"
    )


@contest.command("entry")
@click.argument("contest_id", type=int)
def entry(contest_id: int) -> None:
    """Show your contest entry with live valuation."""
    from papertrade.config import get_settings
    from papertrade.exceptions import PaperTradeError

    try:
        ledger = get_contest_service().entry_view(contest_id, get_settings().username)
    except PaperTradeError as e:
        fail(e.message)

    console.print(ledger_summary(ledger, f"Contest {contest_id} Entry"))
    if ledger.positions:
        console.print(positions_table(ledger))
    if ledger.achievements:
        console.print(f"\n[bold]Achievements:[/bold] {', '.join(ledger.achievements)}")


@contest.command("leaderboard")
@click.argument("contest_id", type=int)
@click.option(
    "--refresh/--no-refresh",
    default=True,
    help="Revalue all entries and rerank before showing (default: refresh).",
)
def leaderboard(contest_id: int, refresh: bool) -> None:
    """Show the contest leaderboard."""
    from papertrade.exceptions import PaperTradeError

    service = get_contest_service()
    try:
        entries = service.update_leaderboard(contest_id) if refresh else service.leaderboard(contest_id)
        c = service.get_contest(contest_id)
    except PaperTradeError as e:
        fail(e.message)

    if not entries:
        console.print("[dim]No entries yet[/dim]")
        return

    table = Table(title=f"{c.name} Leaderboard", show_header=True, header_style="bold cyan")
    table.add_column("Rank", justify="right")
    table.add_column("Trader", style="bold")
    table.add_column("Total Value", justify="right")
    table.add_column("Returns", justify="right")
    table.add_column("Trades", justify="right")
    table.add_column("Win Rate", justify="right")

    for e in entries:
        table.add_row(
            f"#{e.rank}" if e.rank else "-",
            e.user,
            money(e.total_value),
            pnl_text(e.total_returns, e.total_returns_percent),
            str(e.total_trades),
            f"{e.win_rate:.1f}%",
        )
    console.print(table)


# ==================== Achievements ====================


@click.group()
def achievements() -> None:
    """Browse achievements.

    \b
    Examples:
      papertrade achievements list
      papertrade achievements mine
    """
    pass


@achievements.command("list")
def list_achievements() -> None:
    """Show the achievement catalog."""
    catalog = get_contest_service().trading.catalog()

    table = Table(title="Achievements", show_header=True, header_style="bold cyan")
    table.add_column("", justify="center")
    table.add_column("Name", style="bold")
    table.add_column("Description")
    table.add_column("Tier")
    table.add_column("Points", justify="right")
    table.add_column("Rarity")

    for a in catalog:
        table.add_row(a.icon, a.name, a.description, a.tier, str(a.points), a.rarity)
    console.print(table)


@achievements.command("mine")
def my_achievements() -> None:
    """Show achievements you have earned."""
    from papertrade.config import get_settings

    user = get_settings().username
    service = get_contest_service()
    awards = service.user_achievements(user)
    if not awards:
        console.print("[dim]No achievements yet. Make your first trade![/dim]")
        return

    icons = {a.name: a.icon for a in service.trading.catalog()}
    points = {a.name: a.points for a in service.trading.catalog()}
    lines = []
    for award in awards:
        where = f"contest #{award.contest_id}" if award.contest_id else "portfolio"
        lines.append(
            f"{icons.get(award.achievement, '🏅')} [bold]{award.achievement}[/bold] "
            f"[dim]({where}, {award.earned_at:%Y-%m-%d})[/dim]"
        )
    total = sum(points.get(a.achievement, 0) for a in awards)
    console.print(Panel(
        "\n".join(lines) + f"\n\n[bold]Total points:[/bold] {total}",
        title=f"[bold cyan]{user}'s Achievements[/bold cyan]",
        border_style="cyan",
    ))
