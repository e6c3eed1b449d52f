import pytest
from hexbytes import HexBytes

from holder_snapshot.events import TRANSFER_TOPIC

TOKEN = "0xB459F7204A8Ac84F9e7758d6d839eBD01670E35C"


def _topic_for(address):
    return HexBytes(b"\x00" * 12 + bytes.fromhex(address[2:]))


@pytest.fixture
def raw_transfer_log():
    """Builder for eth_getLogs-shaped Transfer logs emitted by TOKEN."""
    def build(frm, to, value, block=100, log_index=3):
        return {
            "address": TOKEN,
            "topics": [HexBytes(TRANSFER_TOPIC), _topic_for(frm), _topic_for(to)],
            "data": HexBytes(value.to_bytes(32, "big")),
            "blockNumber": block,
            "blockHash": HexBytes(b"\x11" * 32),
            "transactionIndex": 2,
            "transactionHash": HexBytes(b"\xab" * 32),
            "logIndex": log_index,
            "removed": False,
        }
    return build
