# config/server.py
import os

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 9500
DEFAULT_GRAPHQL_PATH = "/"


def get_host() -> str:
    return os.getenv("HOST", DEFAULT_HOST)


def get_port() -> int:
    port = os.getenv("PORT")
    if not port:
        return DEFAULT_PORT
    try:
        return int(port)
    except ValueError:
        raise ValueError(f"Invalid PORT '{port}'. Should be an integer.")


def get_graphql_path() -> str:
    path = os.getenv("GRAPHQL_PATH", DEFAULT_GRAPHQL_PATH)
    if not path.startswith("/"):
        raise ValueError(f"Invalid GRAPHQL_PATH '{path}'. Should start with '/'.")
    return path
