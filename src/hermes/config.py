"""Parameter handling configuration."""

from __future__ import annotations

import datetime as dt
from typing import Any, Callable

from msgspec import Struct

CustomTypeHandler = Callable[[Any, Any, Any], None]


class ParamsConfig(Struct, frozen=True):
    """Explicit configuration threaded through ingestion, population and logging.

    ``custom_type_handler`` receives ``(destination, field, value)`` for
    destination fields whose type has no built-in accessor.
    """

    filtered_keys: tuple[str, ...] = ()
    filter_replacement: str = "FILTERED"
    custom_type_handler: CustomTypeHandler | None = None
    max_part_size: int = 10_000_000
    default_timezone: dt.tzinfo = dt.timezone.utc
    cors_allow_methods: tuple[str, ...] = ("POST", "GET", "OPTIONS", "PUT", "DELETE")
    cors_allow_headers: tuple[str, ...] = (
        "Content-Type",
        "Content-Length",
        "Accept-Encoding",
        "X-CSRF-Token",
    )
    cors_allow_credentials: bool = True
    compression_min_bytes: int = 0

    def is_filtered(self, key: str) -> bool:
        """Return ``True`` when ``key`` must be redacted from logs."""

        lowered = key.lower()
        return any(candidate.lower() == lowered for candidate in self.filtered_keys)


DEFAULT_CONFIG = ParamsConfig()
