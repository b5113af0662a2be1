"""Contest leaderboard ranking."""

from typing import Iterable

from papertrade.models import Ledger


def rank_entries(entries: Iterable[Ledger]) -> list[Ledger]:
    """Order entries by returns and assign ranks.

    Sorts descending by ``total_returns_percent``. The sort is stable, so
    tied entries keep their input order. Run this only after every entry
    has been recomputed against the same quote snapshot.

    Args:
        entries: Contest entries with fresh metrics.

    Returns:
        New list of entries, best first, with ``rank`` set to position + 1.
    """
    ordered = sorted(entries, key=lambda e: e.total_returns_percent, reverse=True)
    return [entry.model_copy(update={"rank": index + 1}) for index, entry in enumerate(ordered)]
