"""Supported asset pairs registry backed by a JSON file.

The file is the durable source of truth; the in-memory list is a cache that is
hydrated once at startup and written back wholesale after each admin change.
"""

import json
import logging
import os
from pathlib import Path

from pydantic import ValidationError

from ..models import SupportedPair, normalize_asset

logger = logging.getLogger(__name__)


class PairsFileError(RuntimeError):
    """Raised when the supported pairs file cannot be read or written."""


def parse_pairs(text: str) -> list[tuple[str, str]]:
    """Parse ``from:to[,from:to...]`` into normalized symbol tuples.

    Entries without a colon or with an empty side are skipped.

    Args:
        text: Raw comma separated pair list.

    Returns:
        List of (from_asset, to_asset) tuples in input order.
    """
    pairs = []
    for chunk in text.split(","):
        chunk = chunk.strip()
        if ":" not in chunk:
            continue
        from_asset, _, to_asset = chunk.partition(":")
        from_asset, to_asset = normalize_asset(from_asset), normalize_asset(to_asset)
        if from_asset and to_asset:
            pairs.append((from_asset, to_asset))
    return pairs


class SupportedPairsRegistry:
    """In-memory list of allowed pairs with whole-file persistence.

    Mutations contain no await, so two admin commands handled on the same
    event loop cannot interleave their read-modify-write.

    Attributes:
        file_path: Location of the JSON pairs file.
    """

    def __init__(self, file_path: str | Path):
        """Initialize registry without touching the file.

        Args:
            file_path: Location of the JSON pairs file.
        """
        self.file_path = Path(file_path)
        self._pairs: list[SupportedPair] = []

    @property
    def pairs(self) -> list[SupportedPair]:
        """Snapshot of the registered pairs."""
        return list(self._pairs)

    def load(self) -> None:
        """Hydrate the registry from its file.

        Raises:
            PairsFileError: If the file is missing or malformed.
        """
        try:
            with open(self.file_path, encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, list):
                raise ValueError("supported pairs file must contain a JSON array")
            self._pairs = [SupportedPair.model_validate(item) for item in data]
        except (OSError, ValueError, ValidationError) as e:
            logger.error(f"Failed to load supported pairs from {self.file_path}: {e}")
            raise PairsFileError(f"Cannot load supported pairs: {e}") from e

        logger.info(f"Loaded {len(self._pairs)} supported pairs from {self.file_path}")

    def _save(self, pairs: list[SupportedPair]) -> None:
        """Rewrite the whole file with the given pairs.

        Raises:
            PairsFileError: If the file cannot be written.
        """
        payload = [pair.model_dump(by_alias=True) for pair in pairs]
        tmp_path = self.file_path.with_suffix(self.file_path.suffix + ".tmp")
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=4, ensure_ascii=False)
            os.replace(tmp_path, self.file_path)
        except OSError as e:
            logger.error(f"Failed to write supported pairs to {self.file_path}: {e}")
            raise PairsFileError(f"Cannot save supported pairs: {e}") from e

    def find(self, from_asset: str, to_asset: str) -> SupportedPair | None:
        """Return the registered pair covering the route in either direction."""
        return next((pair for pair in self._pairs if pair.matches(from_asset, to_asset)), None)

    def supports(self, from_asset: str, to_asset: str) -> bool:
        """Check whether conversion between the two assets is allowed."""
        return self.find(from_asset, to_asset) is not None

    def add(self, pairs: list[tuple[str, str]]) -> tuple[list[SupportedPair], list[SupportedPair]]:
        """Register new pairs and persist the registry.

        Args:
            pairs: Normalized (from, to) tuples.

        Returns:
            Tuple of (added pairs, pairs that already existed).

        Raises:
            PairsFileError: If the file cannot be written; memory stays unchanged.
        """
        updated = list(self._pairs)
        added: list[SupportedPair] = []
        existing: list[SupportedPair] = []

        for from_asset, to_asset in pairs:
            candidate = SupportedPair(from_asset=from_asset, to_asset=to_asset)
            if any(pair.matches(from_asset, to_asset) for pair in updated):
                existing.append(candidate)
            else:
                updated.append(candidate)
                added.append(candidate)

        self._save(updated)
        self._pairs = updated
        logger.info(f"Supported pairs added: {[pair.label() for pair in added]}")
        return added, existing

    def remove(self, pairs: list[tuple[str, str]]) -> tuple[list[SupportedPair], list[SupportedPair]]:
        """Unregister pairs (matched in either direction) and persist the registry.

        Args:
            pairs: Normalized (from, to) tuples.

        Returns:
            Tuple of (removed pairs as stored, requested pairs that were not found).

        Raises:
            PairsFileError: If the file cannot be written; memory stays unchanged.
        """
        updated = list(self._pairs)
        removed: list[SupportedPair] = []
        not_found: list[SupportedPair] = []

        for from_asset, to_asset in pairs:
            match = next((pair for pair in updated if pair.matches(from_asset, to_asset)), None)
            if match is None:
                not_found.append(SupportedPair(from_asset=from_asset, to_asset=to_asset))
            else:
                updated.remove(match)
                removed.append(match)

        self._save(updated)
        self._pairs = updated
        logger.info(f"Supported pairs removed: {[pair.label() for pair in removed]}")
        return removed, not_found
