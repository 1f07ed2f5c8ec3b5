# config/subgraphs.py
import os

DEFAULT_SUBGRAPH_NAME = "compound-v2"

# --- Known Compound v2 subgraph deployments ---

SUBGRAPHS = {
    "compound-v2": {
        "http_url": "https://api.thegraph.com/subgraphs/name/graphprotocol/compound-v2",
        "ws_url": "wss://api.thegraph.com/subgraphs/name/graphprotocol/compound-v2",
    },
    # Older deployment exposing CTokenInfo instead of AccountCToken
    "compound-v2-staging": {
        "http_url": "https://api.staging.thegraph.com/subgraphs/name/davekaj/compoundv2",
        "ws_url": "wss://api.staging.thegraph.com/subgraphs/name/davekaj/compoundv2",
    },
}


def get_subgraph_config(name: str = None) -> dict:
    """Retrieve the deployment entry selected by name or SUBGRAPH_NAME."""
    name = name or os.getenv("SUBGRAPH_NAME", DEFAULT_SUBGRAPH_NAME)
    config = SUBGRAPHS.get(name)
    if not config:
        raise ValueError(f"Unknown subgraph '{name}'. Known subgraphs: {', '.join(sorted(SUBGRAPHS))}")
    return config


def get_subgraph_url() -> str:
    """HTTP endpoint for queries; SUBGRAPH_URL overrides the named deployment."""
    url = os.getenv("SUBGRAPH_URL")
    if url:
        return url
    return get_subgraph_config()["http_url"]


def get_subgraph_ws_url() -> str:
    """Websocket endpoint for subscriptions; SUBGRAPH_WS_URL overrides the named deployment."""
    url = os.getenv("SUBGRAPH_WS_URL")
    if url:
        return url
    if os.getenv("SUBGRAPH_URL"):
        # A custom HTTP endpoint without an explicit websocket one: derive it
        return get_subgraph_url().replace("https://", "wss://", 1).replace("http://", "ws://", 1)
    return get_subgraph_config()["ws_url"]
