import logging
from typing import Optional

import typer
from web3.exceptions import Web3Exception

from . import config
from .fetcher import FetchError, check_fetch_options
from .ledger import ConsistencyError, format_units, replay
from .main import take_snapshot, top_holders
from .source import TransferLogSource, connect
from .xlsx_io import read_balances_workbook

app = typer.Typer(help="Token holder snapshots rebuilt from Transfer logs")

TOKEN_SHEET = "Token Balances"
LP_SHEET = "LP Balances"

# OSError: HTTP transport failures (refused, timed out)
CLI_ERRORS = (FetchError, ConsistencyError, RuntimeError, ValueError, OSError, Web3Exception)


def _setup_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def _fail(e: Exception):
    typer.echo(f"Error: {e}", err=True)
    raise typer.Exit(code=1)


@app.command()
def snapshot(
    rpc_url: Optional[str] = typer.Option(None, "--rpc-url", help="EL JSON-RPC URL (defaults to RPC_URL)"),
    token: str = typer.Option(config.TOKEN_ADDRESS, help="Token contract address"),
    pair: str = typer.Option(config.PAIR_ADDRESS, help="LP pair contract address ('' to skip)"),
    start_block: int = typer.Option(config.START_BLOCK, help="First block to scan (inclusive)"),
    end_block: Optional[int] = typer.Option(None, help="Last block to scan (inclusive, default latest)"),
    outfile: str = typer.Option(config.SNAPSHOT_OUTFILE, "--outfile", "-o", help="xlsx output path"),
    decimals: int = typer.Option(config.TOKEN_DECIMALS, help="Token decimals for the Balance column"),
    retries: int = typer.Option(config.FETCH_RETRIES, help="Retries per range before bisecting"),
    backoff: float = typer.Option(config.FETCH_BACKOFF, help="Exponential backoff base (seconds)"),
    min_width: int = typer.Option(config.FETCH_MIN_WIDTH, help="Smallest block range that may fail"),
    workers: int = typer.Option(config.FETCH_WORKERS, help="Contracts fetched in parallel"),
    lenient: bool = typer.Option(False, "--lenient", help="Warn instead of failing on negative balances"),
    sort: bool = typer.Option(False, "--sort", help="Sort events by (block, tx, log) before replay"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Write token and LP holder balances to an xlsx workbook."""
    _setup_logging(verbose)
    contracts = {TOKEN_SHEET: token}
    if pair:
        contracts[LP_SHEET] = pair
    try:
        path = take_snapshot(
            config.require_rpc_url(rpc_url),
            contracts,
            start_block,
            end_block=end_block,
            outfile=outfile,
            decimals=decimals,
            strict=not lenient,
            sort=sort,
            max_workers=workers,
            retries=retries,
            backoff=backoff,
            min_width=min_width,
        )
    except CLI_ERRORS as e:
        _fail(e)
    typer.echo(f"Excel file created: {path}")


@app.command()
def top(
    address: str = typer.Argument(..., help="Token or LP contract address"),
    rpc_url: Optional[str] = typer.Option(None, "--rpc-url"),
    start_block: int = typer.Option(config.START_BLOCK),
    end_block: Optional[int] = typer.Option(None),
    limit: int = typer.Option(20, "--limit", "-n"),
    decimals: int = typer.Option(config.TOKEN_DECIMALS),
    retries: int = typer.Option(config.FETCH_RETRIES, help="Retries per range before bisecting"),
    backoff: float = typer.Option(config.FETCH_BACKOFF, help="Exponential backoff base (seconds)"),
    min_width: int = typer.Option(config.FETCH_MIN_WIDTH, help="Smallest block range that may fail"),
    lenient: bool = typer.Option(False, "--lenient"),
    sort: bool = typer.Option(False, "--sort", help="Sort events by (block, tx, log) before replay"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Print the largest holders of one contract."""
    _setup_logging(verbose)
    fetch_kwargs = dict(retries=retries, backoff=backoff, min_width=min_width)
    try:
        check_fetch_options(**fetch_kwargs)
        w3 = connect(config.require_rpc_url(rpc_url))
        if end_block is None:
            end_block = w3.eth.block_number
        events = TransferLogSource(w3, address).fetch_transfers(start_block, end_block, **fetch_kwargs)
        balances = replay(events, strict=not lenient, sort=sort)
    except CLI_ERRORS as e:
        _fail(e)

    typer.echo(f"{len(balances)} holders at block {end_block}")
    for rank, (addr, bal, share) in enumerate(top_holders(balances, limit), start=1):
        typer.echo(f"{rank:>3}. {addr}  {format_units(bal, decimals):>28}  {share:7.2%}")


@app.command()
def show(path: str = typer.Argument(..., help="Workbook written by `snapshot`")):
    """Print the sheets of an existing snapshot workbook."""
    for label, balances in read_balances_workbook(path).items():
        typer.echo(f"== {label} ({len(balances)} holders)")
        for addr, bal in balances.items():
            typer.echo(f"{addr}  {bal}")


if __name__ == "__main__":
    app()
