"""Opaque, signed pagination bookmarks.

A bookmark records, per source, the sort key of the last registration
consumed from it, plus a fingerprint of the composition that produced it.
It is signed with the application secret so it cannot be forged or
replayed against a different composition.
"""

import hashlib
import json
import logging
from typing import Any, Dict, Iterable, Optional

from jose import JWTError, jwt

from core.config import get_settings
from core.exceptions import InvalidBookmarkError
from .registrations import SortKey

logger = logging.getLogger(__name__)

Positions = Dict[str, SortKey]


def composition_fingerprint(**parts: Any) -> str:
    """Stable digest of everything that determines a collation's content and order."""
    encoded = json.dumps(parts, sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


class BookmarkCodec:
    """Encodes and validates bookmarks for one composition."""

    def __init__(
        self,
        fingerprint: str,
        source_names: Iterable[str],
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
    ):
        settings = get_settings()
        self.fingerprint = fingerprint
        self.source_names = set(source_names)
        self.secret_key = secret_key or settings.SECRET_KEY
        self.algorithm = algorithm or settings.ALGORITHM

    def encode(self, positions: Positions) -> str:
        payload = {
            "c": self.fingerprint,
            "p": {name: list(key) for name, key in sorted(positions.items())},
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def decode(self, bookmark: str) -> Positions:
        """Positions recorded in ``bookmark``.

        Raises:
            InvalidBookmarkError: if the bookmark is malformed, forged, or
                was produced by a different composition.
        """
        try:
            payload = jwt.decode(bookmark, self.secret_key, algorithms=[self.algorithm])
        except JWTError as exc:
            logger.warning(f"Rejected unparseable bookmark: {exc}")
            raise InvalidBookmarkError("Bookmark could not be parsed; restart from the first page")

        if payload.get("c") != self.fingerprint:
            logger.warning("Rejected bookmark from a different composition")
            raise InvalidBookmarkError("Bookmark does not belong to this collection; restart from the first page")

        raw_positions = payload.get("p")
        if not isinstance(raw_positions, dict):
            raise InvalidBookmarkError("Bookmark has no positions")

        positions: Positions = {}
        for name, key in raw_positions.items():
            if name not in self.source_names:
                raise InvalidBookmarkError(f"Bookmark references unknown source {name!r}")
            if (
                not isinstance(key, list)
                or len(key) != 2
                or not all(isinstance(part, str) for part in key)
            ):
                raise InvalidBookmarkError(f"Bookmark position for {name!r} is malformed")
            positions[name] = (key[0], key[1])
        return positions
