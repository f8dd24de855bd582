"""
Root resolution within one (day, expiration) group.

The vendor publishes the same expiration under several roots on some days
(SPX standard monthlies, SPXW weeklies, SPXQ quarterlies). Only one root
may survive per group, with precedence SPX > SPXW > SPXQ:

    - the first quote fixes the group's root
    - same root           -> appended
    - lower precedence    -> discarded
    - higher precedence   -> everything accepted so far is dropped and the
                             group restarts with the new root

Whatever the arrival order, the result is every quote of the highest
ranked root observed, in arrival order.
"""

from typing import Dict, Iterable, List, Optional

from .models import ROOT_PRECEDENCE, Quote


class RootDeduplicator:
    """Accumulates one group's quotes, keeping only the best root seen."""

    def __init__(self):
        self.root: Optional[str] = None
        self._quotes: List[Quote] = []

    def add(self, quote: Quote) -> bool:
        """Offer a quote; returns True if it is currently accepted."""
        if self.root is None or quote.root == self.root:
            self.root = quote.root
            self._quotes.append(quote)
            return True
        if ROOT_PRECEDENCE[quote.root] > ROOT_PRECEDENCE[self.root]:
            return False
        self.root = quote.root
        self._quotes = [quote]
        return True

    @property
    def quotes(self) -> List[Quote]:
        return list(self._quotes)

    def __len__(self) -> int:
        return len(self._quotes)

    # TODO: nudge deltas so they are strictly monotonic across strikes
    # (decreasing for calls, increasing for puts) once the tie-break size
    # and precision are pinned down.


def resolve_roots(quotes: Iterable[Quote]) -> List[Quote]:
    """Run one group's quotes, in arrival order, through a RootDeduplicator."""
    group = RootDeduplicator()
    for quote in quotes:
        group.add(quote)
    return group.quotes


def resolve_by_expiration(quotes: Iterable[Quote]) -> Dict:
    """
    Split a day's quotes by expiration and resolve each group.

    Returns {expiration: [surviving quotes]} with expirations in first-seen order.
    """
    groups: Dict = {}
    for quote in quotes:
        groups.setdefault(quote.expiration, RootDeduplicator()).add(quote)
    return {expiration: group.quotes for expiration, group in groups.items()}
