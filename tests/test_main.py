import threading
import time

import pytest
from openpyxl import load_workbook

from holder_snapshot import main
from holder_snapshot.events import ZERO_ADDRESS, TransferEvent
from holder_snapshot.fetcher import FetchError
from holder_snapshot.main import collect_balances, take_snapshot, top_holders

A = "0x000000000000000000000000000000000000000A"
B = "0x000000000000000000000000000000000000000B"
POOL = "0x00000000000000000000000000000000000000Ff"


class FakeSource:
    def __init__(self, events=None, error=None):
        self.events = events or []
        self.error = error
        self.calls = []

    def fetch_transfers(self, from_block, to_block, **kwargs):
        self.calls.append((from_block, to_block, kwargs))
        if self.error:
            raise self.error
        return [e for e in self.events if from_block <= e.block_number <= to_block]


TOKEN_EVENTS = [
    TransferEvent(ZERO_ADDRESS, A, 100, block_number=1),
    TransferEvent(A, B, 40, block_number=2),
    TransferEvent(B, ZERO_ADDRESS, 10, block_number=3),
]
LP_EVENTS = [
    TransferEvent(ZERO_ADDRESS, ZERO_ADDRESS, 1000, block_number=2),
    TransferEvent(ZERO_ADDRESS, POOL, 50, block_number=2),
]


def test_collect_balances_per_label():
    sources = {"Token Balances": FakeSource(TOKEN_EVENTS), "LP Balances": FakeSource(LP_EVENTS)}
    result = collect_balances(sources, 0, 10, retries=3)
    assert list(result) == ["Token Balances", "LP Balances"]
    assert result["Token Balances"] == {A: 60, B: 30}
    assert result["LP Balances"] == {POOL: 50}
    assert sources["Token Balances"].calls == [(0, 10, {"retries": 3})]


def test_collect_balances_aborts_on_fetch_error():
    sources = {
        "Token Balances": FakeSource(TOKEN_EVENTS),
        "LP Balances": FakeSource(error=FetchError(5, 5, ValueError("boom"))),
    }
    with pytest.raises(FetchError):
        collect_balances(sources, 0, 10)


def test_top_holders():
    ranked = top_holders({A: 25, B: 75}, limit=1)
    assert ranked == [(B, 75, 0.75)]


def test_take_snapshot_writes_workbook(tmp_path, monkeypatch):
    class FakeEth:
        block_number = 3

    class FakeW3:
        eth = FakeEth()

    sources = {}

    def fake_source(w3, address, label=None):
        src = FakeSource(TOKEN_EVENTS if address == "token" else LP_EVENTS)
        sources[label] = src
        return src

    monkeypatch.setattr(main, "connect", lambda url: FakeW3())
    monkeypatch.setattr(main, "TransferLogSource", fake_source)

    out = str(tmp_path / "balances.xlsx")
    path = take_snapshot(
        "http://node:8545",
        {"Token Balances": "token", "LP Balances": "pair"},
        start_block=0,
        outfile=out,
        decimals=0,
    )
    assert path == out
    assert sources["Token Balances"].calls[0][:2] == (0, 3)

    wb = load_workbook(out)
    assert wb.sheetnames == ["Token Balances", "LP Balances"]
    assert wb["Token Balances"]["A2"].value == A
    assert wb["LP Balances"]["B2"].value == 50


def test_collect_balances_fails_fast_while_other_fetch_runs():
    release = threading.Event()

    class Blocked(FakeSource):
        def fetch_transfers(self, from_block, to_block, **kwargs):
            release.wait(5)
            return []

    sources = {
        "Token Balances": Blocked(),
        "LP Balances": FakeSource(error=FetchError(5, 5, ValueError("boom"))),
    }
    started = time.monotonic()
    try:
        with pytest.raises(FetchError):
            collect_balances(sources, 0, 10)
        assert time.monotonic() - started < 2
    finally:
        release.set()


def _counting_sources(n, state, lock):
    class Counting(FakeSource):
        def fetch_transfers(self, from_block, to_block, **kwargs):
            with lock:
                state["active"] += 1
                state["peak"] = max(state["peak"], state["active"])
            time.sleep(0.05)
            with lock:
                state["active"] -= 1
            return []

    return {f"Sheet {i}": Counting() for i in range(n)}


def test_collect_balances_respects_max_workers():
    lock = threading.Lock()

    single = {"active": 0, "peak": 0}
    result = collect_balances(_counting_sources(3, single, lock), 0, 1, max_workers=1)
    assert list(result) == ["Sheet 0", "Sheet 1", "Sheet 2"]
    assert single["peak"] == 1

    paired = {"active": 0, "peak": 0}
    collect_balances(_counting_sources(4, paired, lock), 0, 1, max_workers=2)
    assert 1 <= paired["peak"] <= 2
