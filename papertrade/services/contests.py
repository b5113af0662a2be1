"""Contest service: joining, contest trading and leaderboard passes."""

import logging
import sqlite3
from datetime import datetime
from typing import Literal, Optional

from papertrade.engine.metrics import recompute_metrics
from papertrade.engine.ranking import rank_entries
from papertrade.exceptions import ContestError, NotFoundError, PaperTradeError
from papertrade.models import AchievementAward, Contest, Ledger
from papertrade.services.trading import TradingService

logger = logging.getLogger(__name__)


class ContestService:
    """Contest lifecycle on top of a TradingService."""

    def __init__(self, trading: TradingService):
        self.trading = trading
        self.data_store = trading.data_store
        self.locks = trading.locks

    # ==================== Contests ====================

    def create_contest(
        self,
        name: str,
        start_date: datetime,
        end_date: datetime,
        initial_balance: float = 100000.0,
        max_participants: Optional[int] = None,
        contest_type: Literal["weekly", "monthly", "custom"] = "weekly",
        description: str = "",
        created_by: Optional[str] = None,
    ) -> Contest:
        """Create and store a contest."""
        contest = self.data_store.create_contest(
            Contest(
                name=name,
                description=description,
                start_date=start_date,
                end_date=end_date,
                initial_balance=initial_balance,
                max_participants=max_participants,
                contest_type=contest_type,
                created_by=created_by,
            )
        )
        logger.info("Created contest %s (%s)", contest.id, contest.name)
        return contest

    def get_contest(self, contest_id: int) -> Contest:
        contest = self.data_store.get_contest(contest_id)
        if contest is None:
            raise NotFoundError(f"Contest {contest_id} not found", details={"contest_id": contest_id})
        return contest

    def list_contests(self, limit: int = 20) -> list[Contest]:
        return self.data_store.get_contests(limit)

    def join(self, contest_id: int, user: str, now: Optional[datetime] = None) -> Ledger:
        """Enter a user into a contest.

        Upcoming and active contests can be joined, once per user, while
        seats remain.

        Returns:
            The new contest entry funded with the contest's initial balance.

        Raises:
            NotFoundError: If the contest does not exist.
            ContestError: If the contest is closed, full, or already joined.
        """
        contest = self.get_contest(contest_id)
        if contest.status_at(now) == "completed":
            raise ContestError("Contest is not open for joining", details={"contest_id": contest_id})
        if self.data_store.find_ledger(user, contest_id) is not None:
            raise ContestError("Already joined this contest", details={"contest_id": contest_id})
        if not self.data_store.increment_participants(contest_id):
            raise ContestError("Contest is full", details={"contest_id": contest_id})

        balance = contest.initial_balance
        try:
            entry = self.data_store.create_ledger(
                Ledger(user=user, contest_id=contest_id, initial_balance=balance,
                       balance=balance, total_value=balance, peak_value=balance)
            )
        except sqlite3.IntegrityError:
            self.data_store.decrement_participants(contest_id)
            raise ContestError("Already joined this contest", details={"contest_id": contest_id})

        logger.info("%s joined contest %s", user, contest_id)
        return entry

    def get_entry(self, contest_id: int, user: str) -> Ledger:
        entry = self.data_store.find_ledger(user, contest_id)
        if entry is None:
            raise NotFoundError(
                f"{user} has not joined contest {contest_id}",
                details={"contest_id": contest_id, "user": user},
            )
        return entry

    def user_entries(self, user: str) -> list[tuple[Contest, Ledger]]:
        """Contests a user has joined with their entries, most recent first."""
        entries = [e for e in self.data_store.get_user_ledgers(user) if e.contest_id is not None]
        return [(self.get_contest(e.contest_id), e) for e in reversed(entries)]

    # ==================== Trading ====================

    def trade(
        self,
        contest_id: int,
        user: str,
        symbol: str,
        side: Literal["BUY", "SELL"],
        quantity: int,
        price: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> Ledger:
        """Trade inside a contest entry. Only active contests accept trades."""
        contest = self.get_contest(contest_id)
        if contest.status_at(now) != "active":
            raise ContestError("Contest is not active", details={"contest_id": contest_id})
        entry = self.get_entry(contest_id, user)
        return self.trading.trade_ledger(entry.id, symbol, side, quantity, price)

    def entry_view(self, contest_id: int, user: str) -> Ledger:
        """Entry revalued with live quotes."""
        entry = self.get_entry(contest_id, user)
        return self.trading.revalue(entry.id)

    # ==================== Leaderboard ====================

    def update_leaderboard(self, contest_id: int) -> list[Ledger]:
        """Run one ranking pass over a contest.

        All entries are recomputed against one quote snapshot, ranked,
        and then each rank is written only if the entry has not changed
        since it was recomputed. Achievements are evaluated on the final
        ranked entries. A failure on one entry is logged and the entry
        keeps its stored metrics.

        Returns:
            Entries in rank order.
        """
        self.get_contest(contest_id)
        entries = self.data_store.get_contest_ledgers(contest_id)
        if not entries:
            return []

        symbols = {p.symbol for entry in entries for p in entry.positions}
        quotes = self.trading.quote_snapshot(symbols)

        refreshed = []
        for entry in entries:
            try:
                with self.locks.hold(entry.id):
                    current = self.trading.get_ledger(entry.id)
                    refreshed.append(self.data_store.save_ledger(recompute_metrics(current, quotes)))
            except PaperTradeError as e:
                logger.warning("Skipping recompute of ledger %s: %s", entry.id, e.message)
                refreshed.append(entry)

        catalog = self.trading.catalog()
        already_awarded = self.data_store.get_awarded_pairs(e.user for e in refreshed)

        results = []
        for entry in rank_entries(refreshed):
            with self.locks.hold(entry.id):
                if not self.data_store.update_rank(entry.id, entry.rank, entry.version):
                    logger.warning("Ledger %s changed during ranking, rank %d not written", entry.id, entry.rank)
                    results.append(entry)
                    continue
                try:
                    awarded, awards = self.trading.apply_achievements(entry, catalog, already_awarded)
                    if awards:
                        awarded = self.data_store.save_ledger(awarded)
                        self.trading.record_awards(awards)
                    results.append(awarded)
                except PaperTradeError as e:
                    logger.warning("Achievements for ledger %s not saved: %s", entry.id, e.message)
                    results.append(entry)

        logger.info("Ranked %d entries in contest %s", len(results), contest_id)
        return results

    def leaderboard(self, contest_id: int) -> list[Ledger]:
        """Stored entries ordered by rank (unranked last)."""
        self.get_contest(contest_id)
        entries = self.data_store.get_contest_ledgers(contest_id)
        return sorted(
            entries,
            key=lambda e: (e.rank is None, e.rank or 0, -e.total_returns_percent),
        )

    # ==================== Achievements ====================

    def user_achievements(self, user: str) -> list[AchievementAward]:
        return self.data_store.get_awards(user)
