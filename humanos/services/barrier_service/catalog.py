"""Barrier catalog: read-only barrier and lever definitions.

Loaded once at startup from JSON and shared by every request. Load
problems are fatal (CatalogError); lookups of unknown ids return None so
the classifier can skip them.
"""
import json
import logging
import os
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional, Union

from humanos.shared.models import StudentBarrier

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).parent / "data" / "barriers.json"


class CatalogError(Exception):
    """Barrier catalog could not be loaded or failed validation."""
    pass


class BarrierCatalog:
    """Immutable id -> StudentBarrier mapping."""

    def __init__(self, barriers: Mapping[str, StudentBarrier], version: str = ""):
        self._barriers = MappingProxyType(dict(barriers))
        self.version = version

    def get(self, barrier_id: str) -> Optional[StudentBarrier]:
        return self._barriers.get(barrier_id)

    def __contains__(self, barrier_id: object) -> bool:
        return barrier_id in self._barriers

    def __iter__(self) -> Iterator[StudentBarrier]:
        return iter(self._barriers.values())

    def __len__(self) -> int:
        return len(self._barriers)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BarrierCatalog":
        """Build and validate a catalog from decoded JSON.

        Raises:
            CatalogError: On malformed entries, duplicate ids, or levers
                without steps
        """
        entries = data.get("barriers")
        if not isinstance(entries, list):
            raise CatalogError("catalog must contain a 'barriers' list")

        barriers: Dict[str, StudentBarrier] = {}
        for entry in entries:
            try:
                barrier = StudentBarrier.from_dict(entry)
            except (KeyError, TypeError, ValueError) as e:
                raise CatalogError(f"invalid barrier entry: {e}")

            if barrier.id in barriers:
                raise CatalogError(f"duplicate barrier id: {barrier.id}")
            for lever in barrier.effective_levers:
                if not lever.steps:
                    raise CatalogError(f"lever {lever.name} of {barrier.id} has no steps")
            barriers[barrier.id] = barrier

        return cls(barriers, version=data.get("version", ""))

    @classmethod
    def load(cls, path: Union[str, Path, None] = None) -> "BarrierCatalog":
        """Load the catalog from a JSON file.

        Args:
            path: Catalog file; defaults to BARRIER_CATALOG_PATH or the
                bundled data/barriers.json

        Raises:
            CatalogError: If the file is missing, unreadable or invalid
        """
        path = Path(path or os.getenv("BARRIER_CATALOG_PATH") or DEFAULT_CATALOG_PATH)
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.critical(
                "BARRIER_CATALOG_LOAD_FAILED",
                extra={"path": str(path), "error": str(e)}
            )
            raise CatalogError(f"cannot load barrier catalog {path}: {e}")

        catalog = cls.from_dict(data)
        logger.info(
            "BARRIER_CATALOG_LOADED",
            extra={
                "path": str(path),
                "version": catalog.version,
                "barrier_count": len(catalog),
            }
        )
        return catalog


_catalog: Optional[BarrierCatalog] = None


def get_barrier_catalog() -> BarrierCatalog:
    """Get the process-wide catalog, loading it on first use."""
    global _catalog
    if _catalog is None:
        _catalog = BarrierCatalog.load()
    return _catalog
