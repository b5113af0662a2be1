"""SQLite data store for papertrade."""

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from papertrade.exceptions import StaleLedgerError
from papertrade.models import (
    Achievement,
    AchievementAward,
    AchievementCriteria,
    AlertRule,
    AwardSnapshot,
    Contest,
    DerivativePosition,
    Ledger,
    Position,
    Transaction,
)
from papertrade.quotes.base import Quote


def _dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class DataStore:
    """SQLite-based data store for papertrade."""

    REQUIRED_TABLES = [
        "ledgers",
        "positions",
        "transactions",
        "derivative_positions",
        "ledger_achievements",
        "contests",
        "achievements",
        "achievement_awards",
        "quotes",
        "watchlist",
        "alerts",
    ]

    LEDGER_METRIC_COLUMNS = [
        "balance",
        "portfolio_value",
        "total_value",
        "total_returns",
        "total_returns_percent",
        "total_trades",
        "profitable_trades",
        "win_rate",
        "options_trades",
        "peak_value",
        "max_drawdown",
        "rank",
    ]

    def __init__(self, db_path: Path):
        """Initialize the data store.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = Path(db_path)
        self._ensure_db_dir()
        self._init_schema()

    def _ensure_db_dir(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection."""
        conn = sqlite3.connect(self.db_path, timeout=10)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _init_schema(self) -> None:
        """Initialize database schema on first run."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()

            # Ledgers: one standing ledger per user, one per (user, contest)
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS ledgers (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user TEXT NOT NULL,
                    contest_id INTEGER REFERENCES contests(id),
                    initial_balance REAL NOT NULL,
                    balance REAL NOT NULL,
                    portfolio_value REAL NOT NULL DEFAULT 0,
                    total_value REAL NOT NULL DEFAULT 0,
                    total_returns REAL NOT NULL DEFAULT 0,
                    total_returns_percent REAL NOT NULL DEFAULT 0,
                    total_trades INTEGER NOT NULL DEFAULT 0,
                    profitable_trades INTEGER NOT NULL DEFAULT 0,
                    win_rate REAL NOT NULL DEFAULT 0,
                    options_trades INTEGER NOT NULL DEFAULT 0,
                    peak_value REAL,
                    max_drawdown REAL NOT NULL DEFAULT 0,
                    rank INTEGER,
                    version INTEGER NOT NULL DEFAULT 0,
                    joined_at TEXT NOT NULL,
                    last_updated TEXT NOT NULL
                )
            """)
            cursor.execute("""
                CREATE UNIQUE INDEX IF NOT EXISTS idx_ledgers_owner
                ON ledgers (user, IFNULL(contest_id, 0))
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_ledgers_contest_returns
                ON ledgers (contest_id, total_returns_percent DESC)
            """)

            # Equity positions
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS positions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    ledger_id INTEGER NOT NULL REFERENCES ledgers(id) ON DELETE CASCADE,
                    seq INTEGER NOT NULL,
                    symbol TEXT NOT NULL,
                    quantity INTEGER NOT NULL,
                    average_price REAL NOT NULL,
                    invested_amount REAL NOT NULL,
                    current_price REAL NOT NULL,
                    current_value REAL NOT NULL,
                    profit_loss REAL NOT NULL,
                    profit_loss_percent REAL NOT NULL,
                    UNIQUE(ledger_id, symbol)
                )
            """)

            # Transactions (append-only)
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS transactions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    ledger_id INTEGER NOT NULL REFERENCES ledgers(id) ON DELETE CASCADE,
                    type TEXT NOT NULL,
                    symbol TEXT NOT NULL,
                    quantity INTEGER NOT NULL,
                    price REAL NOT NULL,
                    total_amount REAL NOT NULL,
                    timestamp TEXT NOT NULL,
                    realized_pnl REAL
                )
            """)

            # Option/future positions
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS derivative_positions (
                    id TEXT PRIMARY KEY,
                    ledger_id INTEGER NOT NULL REFERENCES ledgers(id) ON DELETE CASCADE,
                    kind TEXT NOT NULL,
                    side TEXT NOT NULL,
                    symbol TEXT NOT NULL,
                    strike REAL,
                    option_type TEXT,
                    expiry TEXT,
                    lot_size INTEGER NOT NULL,
                    quantity INTEGER NOT NULL,
                    entry_price REAL NOT NULL,
                    current_price REAL NOT NULL,
                    pnl REAL NOT NULL,
                    margin_blocked REAL NOT NULL,
                    opened_at TEXT NOT NULL,
                    closed_at TEXT,
                    is_open INTEGER NOT NULL DEFAULT 1
                )
            """)

            # Achievements earned within a ledger
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS ledger_achievements (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    ledger_id INTEGER NOT NULL REFERENCES ledgers(id) ON DELETE CASCADE,
                    achievement TEXT NOT NULL,
                    UNIQUE(ledger_id, achievement)
                )
            """)

            # Contests
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS contests (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    description TEXT NOT NULL,
                    start_date TEXT NOT NULL,
                    end_date TEXT NOT NULL,
                    initial_balance REAL NOT NULL,
                    prize_pool TEXT NOT NULL,
                    max_participants INTEGER,
                    contest_type TEXT NOT NULL,
                    rules TEXT NOT NULL,
                    participant_count INTEGER NOT NULL DEFAULT 0,
                    created_by TEXT
                )
            """)

            # Achievement catalog
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS achievements (
                    name TEXT PRIMARY KEY,
                    description TEXT NOT NULL,
                    icon TEXT NOT NULL,
                    category TEXT NOT NULL,
                    tier TEXT NOT NULL,
                    criteria_type TEXT NOT NULL,
                    criteria_value REAL NOT NULL,
                    criteria_comparison TEXT NOT NULL,
                    points INTEGER NOT NULL,
                    rarity TEXT NOT NULL,
                    is_active INTEGER NOT NULL DEFAULT 1
                )
            """)

            # Awards: at most once per (user, achievement)
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS achievement_awards (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user TEXT NOT NULL,
                    achievement TEXT NOT NULL,
                    contest_id INTEGER,
                    earned_at TEXT NOT NULL,
                    returns_percent REAL NOT NULL,
                    rank INTEGER,
                    win_rate REAL NOT NULL,
                    total_trades INTEGER NOT NULL,
                    UNIQUE(user, achievement)
                )
            """)

            # Last known prices
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS quotes (
                    symbol TEXT PRIMARY KEY,
                    price REAL NOT NULL,
                    previous_close REAL,
                    timestamp TEXT NOT NULL
                )
            """)

            # Watchlist table
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS watchlist (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    symbol TEXT NOT NULL,
                    list_name TEXT NOT NULL DEFAULT 'default',
                    UNIQUE(symbol, list_name)
                )
            """)

            # Alert rules
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS alerts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    list_name TEXT NOT NULL DEFAULT 'default',
                    symbol TEXT NOT NULL,
                    condition TEXT NOT NULL,
                    threshold REAL NOT NULL,
                    enabled INTEGER NOT NULL DEFAULT 1,
                    last_triggered_at TEXT,
                    UNIQUE(list_name, symbol, condition)
                )
            """)

            conn.commit()
        finally:
            conn.close()

    def get_tables(self) -> list[str]:
        """Get list of all tables in the database."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
            )
            return [row["name"] for row in cursor.fetchall()]
        finally:
            conn.close()

    # ==================== Ledgers ====================

    def create_ledger(self, ledger: Ledger) -> Ledger:
        """Insert a new ledger.

        Args:
            ledger: Ledger without an ID.

        Returns:
            The stored ledger with its ID.

        Raises:
            sqlite3.IntegrityError: If the user already has a ledger for the contest.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO ledgers
                (user, contest_id, initial_balance, balance, total_value, peak_value,
                 version, joined_at, last_updated)
                VALUES (?, ?, ?, ?, ?, ?, 0, ?, ?)
                """,
                (
                    ledger.user,
                    ledger.contest_id,
                    ledger.initial_balance,
                    ledger.balance,
                    ledger.total_value or ledger.balance,
                    ledger.peak_value,
                    ledger.joined_at.isoformat(),
                    ledger.last_updated.isoformat(),
                ),
            )
            conn.commit()
            ledger_id = cursor.lastrowid
        finally:
            conn.close()
        return self.get_ledger(ledger_id)

    def get_ledger(self, ledger_id: int) -> Optional[Ledger]:
        """Load a ledger with its positions, transactions and derivatives.

        Args:
            ledger_id: Ledger ID.

        Returns:
            Ledger if found, None otherwise.
        """
        conn = self._get_connection()
        try:
            row = conn.execute("SELECT * FROM ledgers WHERE id = ?", (ledger_id,)).fetchone()
            if row is None:
                return None
            return self._load_ledger(conn, row)
        finally:
            conn.close()

    def find_ledger(self, user: str, contest_id: Optional[int] = None) -> Optional[Ledger]:
        """Find a user's standing ledger or contest entry.

        Args:
            user: Username.
            contest_id: Contest ID, or None for the standing portfolio.

        Returns:
            Ledger if found, None otherwise.
        """
        conn = self._get_connection()
        try:
            row = conn.execute(
                "SELECT * FROM ledgers WHERE user = ? AND IFNULL(contest_id, 0) = ?",
                (user, contest_id or 0),
            ).fetchone()
            if row is None:
                return None
            return self._load_ledger(conn, row)
        finally:
            conn.close()

    def get_contest_ledgers(self, contest_id: int) -> list[Ledger]:
        """Get every entry of a contest in join order.

        Args:
            contest_id: Contest ID.

        Returns:
            List of ledgers ordered by ID.
        """
        conn = self._get_connection()
        try:
            rows = conn.execute(
                "SELECT * FROM ledgers WHERE contest_id = ? ORDER BY id", (contest_id,)
            ).fetchall()
            return [self._load_ledger(conn, row) for row in rows]
        finally:
            conn.close()

    def get_user_ledgers(self, user: str) -> list[Ledger]:
        """Get all ledgers (standing and contest entries) of a user."""
        conn = self._get_connection()
        try:
            rows = conn.execute(
                "SELECT * FROM ledgers WHERE user = ? ORDER BY id", (user,)
            ).fetchall()
            return [self._load_ledger(conn, row) for row in rows]
        finally:
            conn.close()

    def save_ledger(self, ledger: Ledger) -> Ledger:
        """Persist a ledger if nobody else changed it since it was loaded.

        Scalar fields and metrics are updated, positions are replaced,
        new transactions (those without an ID) are appended, derivatives
        are upserted and earned achievements recorded, all in one SQLite
        transaction.

        Args:
            ledger: Ledger carrying the version it was loaded at.

        Returns:
            The stored ledger with its bumped version.

        Raises:
            StaleLedgerError: If the stored version no longer matches.
        """
        now = datetime.now()
        conn = self._get_connection()
        try:
            conn.execute("BEGIN IMMEDIATE")
            assignments = ", ".join(f"{col} = ?" for col in self.LEDGER_METRIC_COLUMNS)
            cursor = conn.execute(
                f"""
                UPDATE ledgers SET {assignments}, version = version + 1, last_updated = ?
                WHERE id = ? AND version = ?
                """,
                (
                    *(getattr(ledger, col) for col in self.LEDGER_METRIC_COLUMNS),
                    now.isoformat(),
                    ledger.id,
                    ledger.version,
                ),
            )
            if cursor.rowcount == 0:
                conn.rollback()
                raise StaleLedgerError(ledger.id, ledger.version)

            conn.execute("DELETE FROM positions WHERE ledger_id = ?", (ledger.id,))
            for seq, position in enumerate(ledger.positions):
                conn.execute(
                    """
                    INSERT INTO positions
                    (ledger_id, seq, symbol, quantity, average_price, invested_amount,
                     current_price, current_value, profit_loss, profit_loss_percent)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        ledger.id,
                        seq,
                        position.symbol,
                        position.quantity,
                        position.average_price,
                        position.invested_amount,
                        position.current_price,
                        position.current_value,
                        position.profit_loss,
                        position.profit_loss_percent,
                    ),
                )

            for transaction in ledger.transactions:
                if transaction.id is not None:
                    continue
                conn.execute(
                    """
                    INSERT INTO transactions
                    (ledger_id, type, symbol, quantity, price, total_amount, timestamp, realized_pnl)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        ledger.id,
                        transaction.type,
                        transaction.symbol,
                        transaction.quantity,
                        transaction.price,
                        transaction.total_amount,
                        transaction.timestamp.isoformat(),
                        transaction.realized_pnl,
                    ),
                )

            for position in ledger.derivatives:
                conn.execute(
                    """
                    INSERT OR REPLACE INTO derivative_positions
                    (id, ledger_id, kind, side, symbol, strike, option_type, expiry, lot_size,
                     quantity, entry_price, current_price, pnl, margin_blocked, opened_at,
                     closed_at, is_open)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        position.id,
                        ledger.id,
                        position.kind,
                        position.side,
                        position.symbol,
                        position.strike,
                        position.option_type,
                        _iso(position.expiry),
                        position.lot_size,
                        position.quantity,
                        position.entry_price,
                        position.current_price,
                        position.pnl,
                        position.margin_blocked,
                        position.opened_at.isoformat(),
                        _iso(position.closed_at),
                        1 if position.is_open else 0,
                    ),
                )

            for name in ledger.achievements:
                conn.execute(
                    "INSERT OR IGNORE INTO ledger_achievements (ledger_id, achievement) VALUES (?, ?)",
                    (ledger.id, name),
                )

            conn.commit()
        except Exception:
            if conn.in_transaction:
                conn.rollback()
            raise
        finally:
            conn.close()
        return self.get_ledger(ledger.id)

    def update_rank(self, ledger_id: int, rank: int, expected_version: int) -> bool:
        """Write a contest rank unless the ledger changed meanwhile.

        Args:
            ledger_id: Ledger ID.
            rank: New rank.
            expected_version: Version the rank was computed from.

        Returns:
            True if the rank was written, False if the ledger moved on.
        """
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                "UPDATE ledgers SET rank = ? WHERE id = ? AND version = ?",
                (rank, ledger_id, expected_version),
            )
            conn.commit()
            return cursor.rowcount == 1
        finally:
            conn.close()

    def _load_ledger(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Ledger:
        ledger_id = row["id"]
        positions = [
            Position(
                symbol=p["symbol"],
                quantity=p["quantity"],
                average_price=p["average_price"],
                invested_amount=p["invested_amount"],
                current_price=p["current_price"],
                current_value=p["current_value"],
                profit_loss=p["profit_loss"],
                profit_loss_percent=p["profit_loss_percent"],
            )
            for p in conn.execute(
                "SELECT * FROM positions WHERE ledger_id = ? ORDER BY seq", (ledger_id,)
            ).fetchall()
        ]
        transactions = [
            Transaction(
                id=t["id"],
                type=t["type"],
                symbol=t["symbol"],
                quantity=t["quantity"],
                price=t["price"],
                total_amount=t["total_amount"],
                timestamp=datetime.fromisoformat(t["timestamp"]),
                realized_pnl=t["realized_pnl"],
            )
            for t in conn.execute(
                "SELECT * FROM transactions WHERE ledger_id = ? ORDER BY id", (ledger_id,)
            ).fetchall()
        ]
        derivatives = [
            DerivativePosition(
                id=d["id"],
                kind=d["kind"],
                side=d["side"],
                symbol=d["symbol"],
                strike=d["strike"],
                option_type=d["option_type"],
                expiry=_dt(d["expiry"]),
                lot_size=d["lot_size"],
                quantity=d["quantity"],
                entry_price=d["entry_price"],
                current_price=d["current_price"],
                pnl=d["pnl"],
                margin_blocked=d["margin_blocked"],
                opened_at=datetime.fromisoformat(d["opened_at"]),
                closed_at=_dt(d["closed_at"]),
                is_open=bool(d["is_open"]),
            )
            for d in conn.execute(
                "SELECT * FROM derivative_positions WHERE ledger_id = ? ORDER BY opened_at, id",
                (ledger_id,),
            ).fetchall()
        ]
        achievements = [
            a["achievement"]
            for a in conn.execute(
                "SELECT achievement FROM ledger_achievements WHERE ledger_id = ? ORDER BY id",
                (ledger_id,),
            ).fetchall()
        ]
        return Ledger(
            id=ledger_id,
            user=row["user"],
            contest_id=row["contest_id"],
            initial_balance=row["initial_balance"],
            balance=row["balance"],
            positions=positions,
            transactions=transactions,
            derivatives=derivatives,
            portfolio_value=row["portfolio_value"],
            total_value=row["total_value"],
            total_returns=row["total_returns"],
            total_returns_percent=row["total_returns_percent"],
            total_trades=row["total_trades"],
            profitable_trades=row["profitable_trades"],
            win_rate=row["win_rate"],
            options_trades=row["options_trades"],
            peak_value=row["peak_value"],
            max_drawdown=row["max_drawdown"],
            rank=row["rank"],
            achievements=achievements,
            version=row["version"],
            joined_at=datetime.fromisoformat(row["joined_at"]),
            last_updated=datetime.fromisoformat(row["last_updated"]),
        )

    # ==================== Contests ====================

    def create_contest(self, contest: Contest) -> Contest:
        """Insert a contest.

        Args:
            contest: Contest without an ID.

        Returns:
            The stored contest with its ID.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO contests
                (name, description, start_date, end_date, initial_balance, prize_pool,
                 max_participants, contest_type, rules, participant_count, created_by)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    contest.name,
                    contest.description,
                    contest.start_date.isoformat(),
                    contest.end_date.isoformat(),
                    contest.initial_balance,
                    contest.prize_pool,
                    contest.max_participants,
                    contest.contest_type,
                    "\n".join(contest.rules),
                    contest.participant_count,
                    contest.created_by,
                ),
            )
            conn.commit()
            return contest.model_copy(update={"id": cursor.lastrowid})
        finally:
            conn.close()

    def get_contest(self, contest_id: int) -> Optional[Contest]:
        """Get a contest by ID."""
        conn = self._get_connection()
        try:
            row = conn.execute("SELECT * FROM contests WHERE id = ?", (contest_id,)).fetchone()
            return self._row_to_contest(row) if row else None
        finally:
            conn.close()

    def get_contests(self, limit: int = 20) -> list[Contest]:
        """Get the most recent contests, newest start date first."""
        conn = self._get_connection()
        try:
            rows = conn.execute(
                "SELECT * FROM contests ORDER BY start_date DESC, id DESC LIMIT ?", (limit,)
            ).fetchall()
            return [self._row_to_contest(row) for row in rows]
        finally:
            conn.close()

    def increment_participants(self, contest_id: int) -> bool:
        """Count a new entry unless the contest is full.

        Returns:
            True if a seat was taken, False if the contest was full.
        """
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                """
                UPDATE contests SET participant_count = participant_count + 1
                WHERE id = ? AND (max_participants IS NULL OR participant_count < max_participants)
                """,
                (contest_id,),
            )
            conn.commit()
            return cursor.rowcount == 1
        finally:
            conn.close()

    def decrement_participants(self, contest_id: int) -> None:
        """Give back a seat taken by a failed join."""
        conn = self._get_connection()
        try:
            conn.execute(
                "UPDATE contests SET participant_count = MAX(0, participant_count - 1) WHERE id = ?",
                (contest_id,),
            )
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_contest(row: sqlite3.Row) -> Contest:
        return Contest(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            start_date=datetime.fromisoformat(row["start_date"]),
            end_date=datetime.fromisoformat(row["end_date"]),
            initial_balance=row["initial_balance"],
            prize_pool=row["prize_pool"],
            max_participants=row["max_participants"],
            contest_type=row["contest_type"],
            rules=[r for r in row["rules"].split("\n") if r],
            participant_count=row["participant_count"],
            created_by=row["created_by"],
        )

    # ==================== Achievements ====================

    def seed_achievements(self, catalog: Iterable[Achievement]) -> int:
        """Insert catalog achievements that are not stored yet.

        Returns:
            Number of achievements inserted.
        """
        conn = self._get_connection()
        try:
            inserted = 0
            for achievement in catalog:
                cursor = conn.execute(
                    """
                    INSERT OR IGNORE INTO achievements
                    (name, description, icon, category, tier, criteria_type, criteria_value,
                     criteria_comparison, points, rarity, is_active)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        achievement.name,
                        achievement.description,
                        achievement.icon,
                        achievement.category,
                        achievement.tier,
                        achievement.criteria.type,
                        achievement.criteria.value,
                        achievement.criteria.comparison,
                        achievement.points,
                        achievement.rarity,
                        1 if achievement.is_active else 0,
                    ),
                )
                inserted += cursor.rowcount
            conn.commit()
            return inserted
        finally:
            conn.close()

    def get_achievements(self, active_only: bool = True) -> list[Achievement]:
        """Get the achievement catalog ordered by tier and points."""
        conn = self._get_connection()
        try:
            query = "SELECT * FROM achievements"
            if active_only:
                query += " WHERE is_active = 1"
            query += """
                ORDER BY CASE tier WHEN 'bronze' THEN 0 WHEN 'silver' THEN 1
                WHEN 'gold' THEN 2 ELSE 3 END, points DESC, name
            """
            return [
                Achievement(
                    name=row["name"],
                    description=row["description"],
                    icon=row["icon"],
                    category=row["category"],
                    tier=row["tier"],
                    criteria=AchievementCriteria(
                        type=row["criteria_type"],
                        value=row["criteria_value"],
                        comparison=row["criteria_comparison"],
                    ),
                    points=row["points"],
                    rarity=row["rarity"],
                    is_active=bool(row["is_active"]),
                )
                for row in conn.execute(query).fetchall()
            ]
        finally:
            conn.close()

    def award_achievement(self, award: AchievementAward) -> bool:
        """Record an award unless the user already has it.

        Returns:
            True if the award was recorded, False if it already existed.
        """
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO achievement_awards
                (user, achievement, contest_id, earned_at, returns_percent, rank, win_rate, total_trades)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    award.user,
                    award.achievement,
                    award.contest_id,
                    award.earned_at.isoformat(),
                    award.snapshot.returns_percent,
                    award.snapshot.rank,
                    award.snapshot.win_rate,
                    award.snapshot.total_trades,
                ),
            )
            conn.commit()
            return cursor.rowcount == 1
        finally:
            conn.close()

    def get_awards(self, user: str) -> list[AchievementAward]:
        """Get a user's awards, most recent first."""
        conn = self._get_connection()
        try:
            rows = conn.execute(
                "SELECT * FROM achievement_awards WHERE user = ? ORDER BY earned_at DESC, id DESC",
                (user,),
            ).fetchall()
            return [
                AchievementAward(
                    id=row["id"],
                    user=row["user"],
                    achievement=row["achievement"],
                    contest_id=row["contest_id"],
                    earned_at=datetime.fromisoformat(row["earned_at"]),
                    snapshot=AwardSnapshot(
                        returns_percent=row["returns_percent"],
                        rank=row["rank"],
                        win_rate=row["win_rate"],
                        total_trades=row["total_trades"],
                    ),
                )
                for row in rows
            ]
        finally:
            conn.close()

    def get_awarded_pairs(self, users: Iterable[str]) -> set[tuple[str, str]]:
        """Get (user, achievement) pairs already awarded to the given users."""
        users = list(users)
        if not users:
            return set()
        conn = self._get_connection()
        try:
            placeholders = ", ".join("?" for _ in users)
            rows = conn.execute(
                f"SELECT user, achievement FROM achievement_awards WHERE user IN ({placeholders})",
                users,
            ).fetchall()
            return {(row["user"], row["achievement"]) for row in rows}
        finally:
            conn.close()

    # ==================== Quotes ====================

    def save_quote(self, quote: Quote) -> None:
        """Record the latest price for a symbol."""
        conn = self._get_connection()
        try:
            conn.execute(
                """
                INSERT OR REPLACE INTO quotes (symbol, price, previous_close, timestamp)
                VALUES (?, ?, ?, ?)
                """,
                (quote.symbol.upper(), quote.price, quote.previous_close, quote.timestamp.isoformat()),
            )
            conn.commit()
        finally:
            conn.close()

    def get_quote(self, symbol: str) -> Optional[Quote]:
        """Get the latest recorded price for a symbol."""
        conn = self._get_connection()
        try:
            row = conn.execute(
                "SELECT * FROM quotes WHERE symbol = ?", (symbol.upper(),)
            ).fetchone()
            if row is None:
                return None
            return Quote(
                symbol=row["symbol"],
                price=row["price"],
                previous_close=row["previous_close"],
                timestamp=datetime.fromisoformat(row["timestamp"]),
            )
        finally:
            conn.close()

    # ==================== Watchlist ====================

    def add_to_watchlist(self, symbol: str, list_name: str = "default") -> None:
        """Add a symbol to a watchlist.

        Args:
            symbol: Symbol to add.
            list_name: Name of the watchlist.
        """
        conn = self._get_connection()
        try:
            conn.execute(
                "INSERT OR IGNORE INTO watchlist (symbol, list_name) VALUES (?, ?)",
                (symbol, list_name),
            )
            conn.commit()
        finally:
            conn.close()

    def remove_from_watchlist(self, symbol: str, list_name: str = "default") -> None:
        """Remove a symbol from a watchlist.

        Args:
            symbol: Symbol to remove.
            list_name: Name of the watchlist.
        """
        conn = self._get_connection()
        try:
            conn.execute(
                "DELETE FROM watchlist WHERE symbol = ? AND list_name = ?",
                (symbol, list_name),
            )
            conn.commit()
        finally:
            conn.close()

    def get_watchlist(self, list_name: str = "default") -> list[str]:
        """Get all symbols in a watchlist."""
        conn = self._get_connection()
        try:
            rows = conn.execute(
                "SELECT symbol FROM watchlist WHERE list_name = ? ORDER BY id", (list_name,)
            ).fetchall()
            return [row["symbol"] for row in rows]
        finally:
            conn.close()

    def get_watchlist_names(self) -> list[str]:
        """Get all watchlist names."""
        conn = self._get_connection()
        try:
            rows = conn.execute("SELECT DISTINCT list_name FROM watchlist ORDER BY list_name").fetchall()
            return [row["list_name"] for row in rows]
        finally:
            conn.close()

    # ==================== Alerts ====================

    def save_alert_rule(self, rule: AlertRule) -> int:
        """Create or update the rule for (list, symbol, condition).

        Returns:
            The ID of the stored rule.
        """
        conn = self._get_connection()
        try:
            conn.execute(
                """
                INSERT INTO alerts (list_name, symbol, condition, threshold, enabled)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(list_name, symbol, condition)
                DO UPDATE SET threshold = excluded.threshold, enabled = excluded.enabled
                """,
                (rule.list_name, rule.symbol, rule.condition, rule.threshold, 1 if rule.enabled else 0),
            )
            conn.commit()
            row = conn.execute(
                "SELECT id FROM alerts WHERE list_name = ? AND symbol = ? AND condition = ?",
                (rule.list_name, rule.symbol, rule.condition),
            ).fetchone()
            return row["id"]
        finally:
            conn.close()

    def get_alert_rules(self, list_name: Optional[str] = None) -> list[AlertRule]:
        """Get alert rules, optionally for one watchlist."""
        conn = self._get_connection()
        try:
            if list_name is None:
                rows = conn.execute("SELECT * FROM alerts ORDER BY id").fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM alerts WHERE list_name = ? ORDER BY id", (list_name,)
                ).fetchall()
            return [
                AlertRule(
                    id=row["id"],
                    list_name=row["list_name"],
                    symbol=row["symbol"],
                    condition=row["condition"],
                    threshold=row["threshold"],
                    enabled=bool(row["enabled"]),
                    last_triggered_at=_dt(row["last_triggered_at"]),
                )
                for row in rows
            ]
        finally:
            conn.close()

    def mark_alert_triggered(self, alert_id: int, when: datetime) -> None:
        """Record when an alert last fired."""
        conn = self._get_connection()
        try:
            conn.execute(
                "UPDATE alerts SET last_triggered_at = ? WHERE id = ?",
                (when.isoformat(), alert_id),
            )
            conn.commit()
        finally:
            conn.close()

    # ==================== Stats ====================

    def get_stats(self) -> dict:
        """Get database statistics.

        Returns:
            Dictionary with table record counts.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            stats = {}
            for table in self.REQUIRED_TABLES:
                cursor.execute(f"SELECT COUNT(*) as count FROM {table}")
                stats[table] = cursor.fetchone()["count"]
            return stats
        finally:
            conn.close()
