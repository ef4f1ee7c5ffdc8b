"""
Deterministic provider deduplication.

Identity is a single string key per record: the NPI when known, otherwise the
normalized name plus the first location's city and zip, otherwise the name.
The first record carrying a key wins; later ones are dropped, not merged.
"""

import re
from typing import Iterable, List, Set

from schemas import Provider

_NON_KEY_CHARS = re.compile(r"[^a-z0-9_]")


def normalize(value: str) -> str:
    return _NON_KEY_CHARS.sub("_", value.lower())


def identity_key(provider: Provider) -> str:
    if provider.npi:
        return f"npi:{provider.npi}"
    loc = provider.first_location
    if loc is not None:
        return normalize(f"name_{provider.name}_{loc.city}_{loc.zip}")
    return normalize(f"name_{provider.name}")


def deduplicate(providers: Iterable[Provider]) -> List[Provider]:
    seen: Set[str] = set()
    unique: List[Provider] = []
    for p in providers:
        key = identity_key(p)
        if key in seen:
            continue
        seen.add(key)
        unique.append(p)
    return unique
