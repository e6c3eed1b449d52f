import logging
from typing import Iterable, List

from web3 import Web3

from .events import TRANSFER_EVENT_ABI, TRANSFER_TOPIC, TransferEvent, transfer_from_event
from .fetcher import fetch_logs

logger = logging.getLogger(__name__)


def connect(rpc_url: str) -> Web3:
    w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": 60}))
    if not w3.is_connected():
        raise RuntimeError(f"Could not connect to RPC at {rpc_url}")
    return w3


class TransferLogSource:
    """Transfer logs of a single contract, read through eth_getLogs."""

    def __init__(self, w3: Web3, address: str, label: str | None = None):
        self.w3 = w3
        self.address = Web3.to_checksum_address(address)
        self.label = label or self.address
        self._event = w3.eth.contract(address=self.address, abi=TRANSFER_EVENT_ABI).events.Transfer

    def query(self, from_block: int, to_block: int) -> list:
        return self.w3.eth.get_logs({
            "fromBlock": from_block,
            "toBlock": to_block,
            "address": self.address,
            "topics": [TRANSFER_TOPIC],
        })

    def decode(self, raw_logs: Iterable) -> List[TransferEvent]:
        event = self._event()
        return [transfer_from_event(event.process_log(lg)) for lg in raw_logs]

    def fetch_transfers(self, from_block: int, to_block: int, **fetch_kwargs) -> List[TransferEvent]:
        logger.info("[%s] Fetching Transfer logs from block %s to %s", self.label, f"{from_block:,}", f"{to_block:,}")
        raw = fetch_logs(self.query, from_block, to_block, **fetch_kwargs)
        events = self.decode(raw)
        logger.info("[%s] ✓ Got %d Transfer events", self.label, len(events))
        return events
