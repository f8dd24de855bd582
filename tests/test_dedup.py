"""
Tests for SPX / SPXW / SPXQ root resolution.
"""

from datetime import date, datetime

import numpy as np

from cboe_audit.dedup import RootDeduplicator, resolve_by_expiration, resolve_roots
from cboe_audit.models import OptionType, Quote


EXPIRATION = date(2014, 2, 1)


def quote(root, strike=2000, expiration=EXPIRATION, minute=0):
    return Quote(
        quote_datetime=datetime(2014, 1, 2, 10, minute),
        expiration=expiration,
        strike=strike,
        option_type=OptionType.PUT,
        root=root,
        underlying=2000.0,
        bid=10.0,
        ask=12.0,
        open_interest=0,
    )


class TestRules:

    def test_first_quote_sets_root(self):
        group = RootDeduplicator()
        assert group.add(quote("SPXQ"))
        assert group.root == "SPXQ"

    def test_same_root_appends(self):
        quotes = [quote("SPXW", strike=k) for k in (1975, 2000, 2025)]
        assert resolve_roots(quotes) == quotes

    def test_spx_then_spxw_keeps_spx(self):
        spx = quote("SPX", strike=2000)
        assert resolve_roots([spx, quote("SPXW", strike=2025)]) == [spx]

    def test_spxw_then_spx_restarts(self):
        spx = quote("SPX", strike=2025)
        assert resolve_roots([quote("SPXW", strike=2000), spx]) == [spx]

    def test_spxq_loses_to_spxw(self):
        w1, w2 = quote("SPXW", strike=2000), quote("SPXW", strike=2050)
        assert resolve_roots([quote("SPXQ", strike=1975), w1, quote("SPXQ", strike=2025), w2]) == [w1, w2]

    def test_lower_root_rejected(self):
        group = RootDeduplicator()
        group.add(quote("SPXW"))
        assert not group.add(quote("SPXQ"))
        assert len(group) == 1

    def test_empty_group(self):
        assert resolve_roots([]) == []

    def test_groups_by_expiration(self):
        feb, mar = date(2014, 2, 1), date(2014, 3, 22)
        a = quote("SPXW", expiration=feb)
        b = quote("SPX", expiration=mar)
        c = quote("SPX", expiration=feb, strike=2025)
        groups = resolve_by_expiration([a, b, c])
        assert list(groups) == [feb, mar]
        assert groups[feb] == [c]
        assert groups[mar] == [b]


class TestOrderIndependence:

    def _mixed_group(self):
        quotes = []
        strike = 1500
        for root, n in (("SPX", 5), ("SPXW", 7), ("SPXQ", 4)):
            for _ in range(n):
                quotes.append(quote(root, strike=strike))
                strike += 25
        return quotes

    def test_highest_root_survives_any_order(self):
        """Shuffled arrival: always the same root, always all of its quotes."""
        quotes = self._mixed_group()
        expected = {q for q in quotes if q.root == "SPX"}
        for _ in range(50):
            order = np.random.permutation(len(quotes))
            survivors = resolve_roots([quotes[i] for i in order])
            assert {q.root for q in survivors} == {"SPX"}
            assert set(survivors) == expected
            assert len(survivors) == len(expected)

    def test_without_spx_spxw_survives(self):
        quotes = [q for q in self._mixed_group() if q.root != "SPX"]
        expected = {q for q in quotes if q.root == "SPXW"}
        for _ in range(20):
            order = np.random.permutation(len(quotes))
            assert set(resolve_roots([quotes[i] for i in order])) == expected

    def test_survivors_keep_arrival_order(self):
        quotes = self._mixed_group()
        order = np.random.permutation(len(quotes))
        shuffled = [quotes[i] for i in order]
        assert resolve_roots(shuffled) == [q for q in shuffled if q.root == "SPX"]
