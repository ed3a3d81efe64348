# explorer.py - links to the public block explorer for display only

from .errors import InvalidInputError

EXPLORER_BASE = "https://explorer.solana.com"
KINDS = ("address", "tx", "token")


def explorer_url(address, kind: str = "address", cluster: str = "mainnet-beta") -> str:
    if kind not in KINDS:
        raise InvalidInputError(f"explorer link kind must be one of {', '.join(KINDS)}", field="kind")
    url = f"{EXPLORER_BASE}/{kind}/{address}"
    if cluster and cluster not in ("mainnet", "mainnet-beta"):
        url += f"?cluster={cluster}"
    return url
