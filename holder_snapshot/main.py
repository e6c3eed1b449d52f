import logging
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Dict, List, Mapping, Tuple

from .config import SNAPSHOT_OUTFILE, TOKEN_DECIMALS
from .fetcher import check_fetch_options
from .ledger import BalanceMap, ownership_shares, replay, total_supply
from .source import TransferLogSource, connect
from .xlsx_io import write_balances_workbook

logger = logging.getLogger(__name__)


def collect_balances(
    sources: Mapping[str, TransferLogSource],
    start_block: int,
    end_block: int,
    *,
    strict: bool = True,
    sort: bool = False,
    max_workers: int = 2,
    **fetch_kwargs,
) -> Dict[str, BalanceMap]:
    """
    Fetch every source over [start_block, end_block] and replay it.
    Sources are independent and fetched concurrently; the first error aborts
    the whole run without waiting for the other fetches. The result keeps the
    order of `sources`.
    """
    pool = ThreadPoolExecutor(max_workers=max(1, max_workers))
    try:
        futures = {
            label: pool.submit(src.fetch_transfers, start_block, end_block, **fetch_kwargs)
            for label, src in sources.items()
        }
        done, pending = wait(futures.values(), return_when=FIRST_EXCEPTION)
        for fut in done:
            err = fut.exception()
            if err is not None:
                for p in pending:
                    p.cancel()
                raise err
        events = {label: fut.result() for label, fut in futures.items()}
    finally:
        pool.shutdown(wait=False, cancel_futures=True)

    result: Dict[str, BalanceMap] = {}
    for label, evts in events.items():
        balances = replay(evts, strict=strict, sort=sort)
        logger.info("[%s] %d holders, supply %d", label, len(balances), total_supply(balances))
        result[label] = balances
    return result


def top_holders(balances: BalanceMap, limit: int = 20) -> List[Tuple[str, int, float]]:
    shares = ownership_shares(balances)
    ranked = sorted(balances.items(), key=lambda kv: kv[1], reverse=True)[:limit]
    return [(addr, bal, float(shares.get(addr, 0))) for addr, bal in ranked]


def take_snapshot(
    rpc_url: str,
    contracts: Mapping[str, str],
    start_block: int,
    end_block: int | None = None,
    outfile: str | None = None,
    decimals: int = TOKEN_DECIMALS,
    strict: bool = True,
    sort: bool = False,
    max_workers: int = 2,
    **fetch_kwargs,
) -> str:
    """
    contracts: sheet label -> contract address (e.g. {"Token Balances": token}).
    end_block None means the latest block. Returns the workbook path.
    """
    if outfile is None:
        outfile = SNAPSHOT_OUTFILE
    check_fetch_options(**fetch_kwargs)

    w3 = connect(rpc_url)
    if end_block is None:
        end_block = w3.eth.block_number
    logger.info("Current block: %s", f"{end_block:,}")

    sources = {label: TransferLogSource(w3, address, label=label) for label, address in contracts.items()}
    balances = collect_balances(
        sources, start_block, end_block,
        strict=strict, sort=sort, max_workers=max_workers, **fetch_kwargs,
    )

    write_balances_workbook(outfile, balances, decimals=decimals)
    logger.info("✅ Balances for blocks %s -> %s saved in %s", f"{start_block:,}", f"{end_block:,}", outfile)
    return outfile
