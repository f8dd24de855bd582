"""
Canonical in-memory index of every accepted quote.

Keyed by (option type, root, expiration, strike, day); each key holds its
quotes ordered by time of day. The index is append-only and shared by all
ingestion workers, so it is sharded: a key hashes to one of N shards,
each with its own dict and lock. Inserts on different shards never wait
on each other, inserts on the same key are serialized by that key's
shard lock.

Duplicate timestamps within a key are kept (a second copy goes after the
existing ones); the index never merges or deduplicates across files.
"""

import bisect
import threading
from collections import Counter
from typing import Dict, Iterable, List, Tuple

import numpy as np
import pandas as pd

from .config import INDEX_SHARDS
from .models import Quote, QuoteKey


class _Shard:
    __slots__ = ("lock", "data")

    def __init__(self):
        self.lock = threading.Lock()
        # key -> (list of time-of-day sort keys, list of quotes), kept parallel
        self.data: Dict[QuoteKey, Tuple[list, List[Quote]]] = {}


class QuoteIndex:

    def __init__(self, n_shards: int = INDEX_SHARDS):
        if n_shards <= 0:
            raise ValueError(f"n_shards must be positive, got {n_shards}")
        self._shards = [_Shard() for _ in range(n_shards)]

    def _shard(self, key: QuoteKey) -> _Shard:
        return self._shards[hash(key) % len(self._shards)]

    def insert(self, quote: Quote) -> QuoteKey:
        """Place one quote under its key, in time-of-day order."""
        key = quote.key
        stamp = quote.time_of_day
        shard = self._shard(key)
        with shard.lock:
            entry = shard.data.get(key)
            if entry is None:
                entry = shard.data[key] = ([], [])
            stamps, quotes = entry
            pos = bisect.bisect_right(stamps, stamp)
            stamps.insert(pos, stamp)
            quotes.insert(pos, quote)
        return key

    def insert_many(self, quotes: Iterable[Quote]) -> int:
        n = 0
        for quote in quotes:
            self.insert(quote)
            n += 1
        return n

    def get(self, key: QuoteKey) -> Tuple[Quote, ...]:
        shard = self._shard(key)
        with shard.lock:
            entry = shard.data.get(key)
            return tuple(entry[1]) if entry is not None else ()

    def keys(self) -> List[QuoteKey]:
        out: List[QuoteKey] = []
        for shard in self._shards:
            with shard.lock:
                out.extend(shard.data.keys())
        return sorted(out)

    def __len__(self) -> int:
        n = 0
        for shard in self._shards:
            with shard.lock:
                n += len(shard.data)
        return n

    def __contains__(self, key) -> bool:
        shard = self._shard(key)
        with shard.lock:
            return key in shard.data

    def quote_count(self) -> int:
        n = 0
        for shard in self._shards:
            with shard.lock:
                n += sum(len(quotes) for _, quotes in shard.data.values())
        return n

    def snapshot(self) -> Dict[QuoteKey, Tuple[Quote, ...]]:
        """Plain copy of the index, keys sorted."""
        merged: Dict[QuoteKey, Tuple[Quote, ...]] = {}
        for shard in self._shards:
            with shard.lock:
                for key, (_, quotes) in shard.data.items():
                    merged[key] = tuple(quotes)
        return {key: merged[key] for key in sorted(merged)}

    def to_frame(self) -> pd.DataFrame:
        """One row per quote, sorted by key then time of day."""
        rows = []
        for key, quotes in self.snapshot().items():
            for quote in quotes:
                rows.append({
                    "option_type": key.option_type.value,
                    "root": key.root,
                    "expiration": key.expiration,
                    "strike": key.strike,
                    "day": key.day,
                    "quote_datetime": quote.quote_datetime,
                    "underlying": quote.underlying,
                    "bid": quote.bid,
                    "ask": quote.ask,
                    "open_interest": quote.open_interest,
                    "iv": quote.implied_volatility,
                    "delta": quote.delta,
                    "theta": quote.theta,
                    "gamma": quote.gamma,
                    "vega": quote.vega,
                    "rho": quote.rho,
                    "risk_free_rate": quote.risk_free_rate,
                    "dividend_yield": quote.dividend_yield,
                })
        return pd.DataFrame(rows)


def compute_index_statistics(index: QuoteIndex) -> dict:
    """
    Quick diagnostics for a finished run.

    Returns
    -------
    dict with keys:
        n_keys, n_quotes      : index size
        n_days, n_expirations : distinct trading days / expirations
        strike_range          : (min, max), or (nan, nan) when empty
        roots                 : {root: number of quotes}
        n_iv_nan              : quotes whose IV inversion failed
        n_iv_clamped          : quotes whose IV was clamped to +/-1
    """
    snapshot = index.snapshot()
    quotes = [quote for group in snapshot.values() for quote in group]
    ivs = np.array([q.implied_volatility for q in quotes], dtype=float)
    strikes = [key.strike for key in snapshot]

    return {
        "n_keys": len(snapshot),
        "n_quotes": len(quotes),
        "n_days": len({key.day for key in snapshot}),
        "n_expirations": len({key.expiration for key in snapshot}),
        "strike_range": (min(strikes), max(strikes)) if strikes else (np.nan, np.nan),
        "roots": dict(Counter(q.root for q in quotes)),
        "n_iv_nan": int(np.isnan(ivs).sum()),
        "n_iv_clamped": int((np.abs(ivs) == 1.0).sum()),
    }
