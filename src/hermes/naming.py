"""Name convention conversion between ``snake_case`` and ``CamelCase``."""

from __future__ import annotations

import re
from functools import lru_cache

# Abbreviations written fully upper case in CamelCase identifiers.
INITIALISMS = frozenset(
    {
        "ACL", "API", "ASCII", "CPU", "CSS", "CSV", "DNS", "EOF", "GUID", "HTML",
        "HTTP", "HTTPS", "ID", "IP", "JSON", "JWT", "LHS", "QPS", "RAM", "RHS",
        "RPC", "SKU", "SLA", "SMTP", "SQL", "SSH", "TCP", "TLS", "TTL", "UDP",
        "UI", "UID", "URI", "URL", "UTC", "UTF8", "UUID", "VM", "XML", "XMPP",
        "XSRF", "XSS",
    }
)  # fmt: skip

_LOWER_TO_UPPER = re.compile(r"([a-z0-9])([A-Z])")
_ACRONYM_TO_WORD = re.compile(r"([A-Z]+)([A-Z][a-z])")


@lru_cache(maxsize=1024)
def camel_to_snake(name: str) -> str:
    """Convert ``UserID`` to ``user_id`` keeping acronyms together."""

    spaced = _ACRONYM_TO_WORD.sub(r"\1_\2", name)
    spaced = _LOWER_TO_UPPER.sub(r"\1_\2", spaced)
    return spaced.lower()


@lru_cache(maxsize=1024)
def snake_to_camel(name: str, *, capitalize_first: bool = True) -> str:
    """Convert ``user_id`` to ``UserID``.

    Words listed in :data:`INITIALISMS` are upper cased as a unit. With
    ``capitalize_first=False`` the leading word keeps its lower case form
    (``user_id`` becomes ``userID``).
    """

    words = [word for word in name.split("_") if word]
    converted: list[str] = []
    for index, word in enumerate(words):
        if index == 0 and not capitalize_first:
            converted.append(word.lower())
        elif word.upper() in INITIALISMS:
            converted.append(word.upper())
        else:
            converted.append(word[:1].upper() + word[1:])
    return "".join(converted)


__all__ = ["INITIALISMS", "camel_to_snake", "snake_to_camel"]
