"""
Shared plumbing for the external directory adapters: the HTTP client
factory and helpers for reading loosely-typed JSON payloads.
"""

from functools import partial
from typing import Any, Callable, List, Optional

import httpx

from config import Settings, get_settings

ClientFactory = Callable[[], httpx.AsyncClient]


def http_client(cfg: Optional[Settings] = None) -> httpx.AsyncClient:
    cfg = cfg or get_settings()
    timeout = httpx.Timeout(
        timeout=cfg.HTTP_TIMEOUT,
        connect=cfg.HTTP_CONNECT_TIMEOUT,
    )
    return httpx.AsyncClient(timeout=timeout)


def client_factory_for(cfg: Settings) -> ClientFactory:
    return partial(http_client, cfg)


def as_list(value: Any) -> List[Any]:
    """Payload fields may hold a list, a single object, or nothing."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def text(value: Any) -> Optional[str]:
    """String form of a scalar payload value, or None when absent/blank."""
    if value is None or isinstance(value, (dict, list)):
        return None
    s = str(value).strip()
    return s or None


async def get_json(
    client_factory: ClientFactory,
    url: str,
    params: dict,
) -> Any:
    """GET `url` and decode the JSON body. Raises on transport, status or decode errors."""
    async with client_factory() as client:
        r = await client.get(url, params=params)
        r.raise_for_status()
        return r.json()
