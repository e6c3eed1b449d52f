"""
ledger.py — rebuild holder balances by replaying Transfer events.

Public API:
    replay(events, strict=True, sort=False) -> dict[address, int]
    total_supply(balances) -> int
    ownership_shares(balances) -> dict[address, Decimal]
    format_units(value, decimals=18) -> Decimal

Replay starts from an empty ledger every call. Mints (from == 0x0) and burns
(to == 0x0) only touch the non-sentinel side. Zero balances are pruned, so a
missing key means "no non-zero balance", not "confirmed zero".
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, Iterable

from .events import TransferEvent, is_zero_address

logger = logging.getLogger(__name__)

BalanceMap = Dict[str, int]


class ConsistencyError(ValueError):
    """A transfer drove a balance negative: the log is incomplete or out of order."""
    def __init__(self, address: str, balance: int, event: TransferEvent):
        super().__init__(
            f"Balance of {address} went negative ({balance}) at block {event.block_number} "
            f"(tx {event.tx_hash or '?'}, log {event.log_index})"
        )
        self.address = address
        self.balance = balance
        self.event = event


def replay(events: Iterable[TransferEvent], strict: bool = True, sort: bool = False) -> BalanceMap:
    if sort:
        events = sorted(events, key=lambda e: e.order_key)

    balances: BalanceMap = {}
    for ev in events:
        if not is_zero_address(ev.frm):
            bal = balances.get(ev.frm, 0) - ev.value
            if bal < 0:
                if strict:
                    raise ConsistencyError(ev.frm, bal, ev)
                logger.warning("Negative balance for %s (%d) at block %d", ev.frm, bal, ev.block_number)
            balances[ev.frm] = bal
        if not is_zero_address(ev.to):
            balances[ev.to] = balances.get(ev.to, 0) + ev.value

    return {addr: bal for addr, bal in balances.items() if bal != 0}


def total_supply(balances: BalanceMap) -> int:
    return sum(balances.values())


def ownership_shares(balances: BalanceMap) -> Dict[str, Decimal]:
    total = total_supply(balances)
    if total == 0:
        return {}
    return {addr: Decimal(bal) / Decimal(total) for addr, bal in balances.items()}


def format_units(value: int, decimals: int = 18) -> Decimal:
    return Decimal(value).scaleb(-decimals)
