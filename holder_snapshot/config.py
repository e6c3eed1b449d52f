import os
from dotenv import load_dotenv

load_dotenv()

def get_env_for_chain(base_key: str, chain_id: str):
    """
    Prefer CHAIN_ID-suffixed env (e.g. RPC_URL_1) over generic (RPC_URL).
    Return None if neither is set.
    """
    return os.getenv(f"{base_key}_{chain_id}") or os.getenv(base_key)

# Select network (string, e.g. "1", "11155111")
CHAIN_ID = os.getenv("CHAIN_ID", "1").strip()

# EL RPC (checked lazily, see require_rpc_url)
RPC_URL = get_env_for_chain("RPC_URL", CHAIN_ID)

# Tracked contracts
TOKEN_ADDRESS = get_env_for_chain("TOKEN_ADDRESS", CHAIN_ID) or "0xB459F7204A8Ac84F9e7758d6d839eBD01670E35C"
PAIR_ADDRESS = get_env_for_chain("PAIR_ADDRESS", CHAIN_ID)
if PAIR_ADDRESS is None:
    PAIR_ADDRESS = "0x1840c51b131a51bb66f3019cc7b2d54e6d686e10"

START_BLOCK = int(get_env_for_chain("START_BLOCK", CHAIN_ID) or 17_370_667)
TOKEN_DECIMALS = int(get_env_for_chain("TOKEN_DECIMALS", CHAIN_ID) or 18)

SNAPSHOT_OUTFILE = os.getenv("SNAPSHOT_OUTFILE", "balances.xlsx")

# Range fetching
FETCH_RETRIES = int(os.getenv("FETCH_RETRIES", "1"))
FETCH_BACKOFF = float(os.getenv("FETCH_BACKOFF", "1.5"))
FETCH_MIN_WIDTH = int(os.getenv("FETCH_MIN_WIDTH", "1"))
FETCH_WORKERS = int(os.getenv("FETCH_WORKERS", "2"))


def require_rpc_url(value: str | None = None) -> str:
    url = value or RPC_URL
    if not url:
        raise RuntimeError(
            f"Missing EL RPC URL. Set RPC_URL or a chain-specific variant with _{CHAIN_ID}, "
            f"or pass --rpc-url."
        )
    return url
