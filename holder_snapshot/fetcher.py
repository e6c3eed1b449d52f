"""
fetcher.py — block-range log fetching that survives provider caps.

Strategy:
  • Try one eth_getLogs-style query over the whole [from_block, to_block].
  • Retry it a few times with exponential backoff.
  • If it still fails, bisect at the midpoint and fetch [a, mid] then [mid+1, b].
  • A range no wider than `min_width` that still fails raises FetchError.
Results are concatenated left to right, so chronological order is kept.
"""
from __future__ import annotations

import logging
import time
from typing import Callable, List, Sequence

logger = logging.getLogger(__name__)

Query = Callable[[int, int], Sequence]


class FetchError(RuntimeError):
    """Raised when a range that cannot be split further still fails."""
    def __init__(self, from_block: int, to_block: int, cause: BaseException):
        super().__init__(f"Log query failed for blocks [{from_block:,} - {to_block:,}]: {cause}")
        self.from_block = from_block
        self.to_block = to_block
        self.cause = cause


def check_fetch_options(retries: int = 0, backoff: float = 1.5, min_width: int = 1) -> None:
    if min_width < 1:
        raise ValueError(f"min_width must be >= 1, got {min_width}")
    if retries < 0:
        raise ValueError(f"retries must be >= 0, got {retries}")
    if backoff < 0:
        raise ValueError(f"backoff must be >= 0, got {backoff}")


def _query_with_retries(query: Query, a: int, b: int, retries: int, backoff: float) -> list:
    attempt = 0
    while True:
        try:
            return list(query(a, b))
        except Exception as e:
            attempt += 1
            if attempt > retries:
                raise
            logger.debug("Query [%s - %s] failed (%s), retry %d/%d", a, b, e, attempt, retries)
            time.sleep(backoff ** attempt)


def fetch_logs(
    query: Query,
    from_block: int,
    to_block: int,
    *,
    retries: int = 0,
    backoff: float = 1.5,
    min_width: int = 1,
) -> List:
    """
    Return every item `query` yields for [from_block, to_block] (inclusive).

    Args:
        query: callable(from_block, to_block) -> sequence; raises on failure
        from_block: first block (inclusive)
        to_block: last block (inclusive); from_block > to_block yields []
        retries: extra attempts per range before it is bisected
        backoff: base of the exponential sleep between retries (seconds)
        min_width: ranges this wide or narrower are not bisected further

    Raises:
        FetchError: a range of width <= min_width failed after its retries.
    """
    check_fetch_options(retries=retries, backoff=backoff, min_width=min_width)
    if from_block > to_block:
        return []

    try:
        return _query_with_retries(query, from_block, to_block, retries, backoff)
    except Exception as e:
        width = to_block - from_block + 1
        if width <= min_width:
            logger.error("  ✗ Blocks [%s - %s] failed at minimum width: %s", f"{from_block:,}", f"{to_block:,}", e)
            raise FetchError(from_block, to_block, e) from e
        mid = (from_block + to_block) // 2
        logger.warning(
            "  ⚠ Query failed for [%s - %s] (%s), bisecting at %s",
            f"{from_block:,}", f"{to_block:,}", e, f"{mid:,}",
        )

    kwargs = dict(retries=retries, backoff=backoff, min_width=min_width)
    first_half = fetch_logs(query, from_block, mid, **kwargs)
    second_half = fetch_logs(query, mid + 1, to_block, **kwargs)
    return first_half + second_half
