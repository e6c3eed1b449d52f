"""
events.py — ERC-20 Transfer event model.

A TransferEvent is one decoded `Transfer(from, to, value)` log together with
its on-chain position, so a sequence of them can be replayed in block order.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Tuple

from web3 import Web3

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

TRANSFER_EVENT_ABI = json.loads("""[{"anonymous":false,"inputs":[
 {"indexed":true,"internalType":"address","name":"from","type":"address"},
 {"indexed":true,"internalType":"address","name":"to","type":"address"},
 {"indexed":false,"internalType":"uint256","name":"value","type":"uint256"}],
 "name":"Transfer","type":"event"}]
""")

TRANSFER_TOPIC = Web3.to_hex(Web3.keccak(text="Transfer(address,address,uint256)"))


def is_zero_address(address: str) -> bool:
    """True for the mint/burn sentinel (full or short `0x0` form)."""
    a = address.lower()
    if a.startswith("0x"):
        a = a[2:]
    return bool(a) and not a.strip("0")


@dataclass(frozen=True)
class TransferEvent:
    frm: str
    to: str
    value: int
    block_number: int = 0
    tx_index: int = 0
    log_index: int = 0
    tx_hash: str = ""

    @property
    def order_key(self) -> Tuple[int, int, int]:
        return (self.block_number, self.tx_index, self.log_index)

    @property
    def is_mint(self) -> bool:
        return is_zero_address(self.frm)

    @property
    def is_burn(self) -> bool:
        return is_zero_address(self.to)


def _hex_str(h) -> str:
    if isinstance(h, str):
        return h
    return Web3.to_hex(h)


def transfer_from_event(decoded) -> TransferEvent:
    """Build a TransferEvent from web3 EventData (`process_log` output)."""
    args = decoded["args"]
    return TransferEvent(
        frm=args["from"],
        to=args["to"],
        value=int(args["value"]),
        block_number=int(decoded["blockNumber"]),
        tx_index=int(decoded["transactionIndex"]),
        log_index=int(decoded["logIndex"]),
        tx_hash=_hex_str(decoded["transactionHash"]),
    )
