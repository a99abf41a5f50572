"""
Scrape result stores.

The pipeline only produces the record passed to create(); everything else here
(lookups, recency listing, the freshness window used to reuse recent scrapes)
belongs to the caller.

MemoryScrapeStore: process-local dict, ids start at 1.
FileScrapeStore:   one JSON document per result in a directory, so results
                   survive restarts and can be inspected or edited by hand.
"""

import json
import os
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .logger import get_module_logger
from .schemas import ScrapeResult

logger = get_module_logger("storage")

DEFAULT_RECENT_LIMIT = 10


def _aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so stored and fresh dates compare."""
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class BaseScrapeStore(ABC):
    """Persistence interface for scrape results."""

    @abstractmethod
    def create(self, result: ScrapeResult) -> ScrapeResult:
        """Store a result, returning a copy with its id assigned."""

    @abstractmethod
    def get_by_id(self, scrape_id: int) -> Optional[ScrapeResult]:
        """Result with this id, or None."""

    @abstractmethod
    def get_by_url(self, url: str) -> Optional[ScrapeResult]:
        """Most recent result for this URL, or None."""

    @abstractmethod
    def list_recent(self, limit: int = DEFAULT_RECENT_LIMIT) -> list[ScrapeResult]:
        """Results newest first."""

    def get_fresh(self, url: str, max_age: timedelta) -> Optional[ScrapeResult]:
        """Result for url scraped within max_age, or None."""
        existing = self.get_by_url(url)
        if existing is None:
            return None
        cutoff = datetime.now(timezone.utc) - max_age
        if _aware(existing.scrape_date) > cutoff:
            logger.info(f"Reusing scrape {existing.id} for {url}")
            return existing
        return None


class MemoryScrapeStore(BaseScrapeStore):
    """In-memory store keyed by auto-incrementing integer id."""

    def __init__(self):
        self._results: dict[int, ScrapeResult] = {}
        self._next_id = 1

    def create(self, result: ScrapeResult) -> ScrapeResult:
        stored = result.model_copy(update={"id": self._next_id}, deep=True)
        self._results[stored.id] = stored
        self._next_id += 1
        return stored

    def get_by_id(self, scrape_id: int) -> Optional[ScrapeResult]:
        return self._results.get(scrape_id)

    def get_by_url(self, url: str) -> Optional[ScrapeResult]:
        matches = [r for r in self._results.values() if r.url == url]
        return max(matches, key=lambda r: _aware(r.scrape_date), default=None)

    def list_recent(self, limit: int = DEFAULT_RECENT_LIMIT) -> list[ScrapeResult]:
        ordered = sorted(self._results.values(), key=lambda r: _aware(r.scrape_date), reverse=True)
        return ordered[:limit]


class FileScrapeStore(BaseScrapeStore):
    """
    File-based store.

    Each result is written to <store_dir>/<id>.json. Ids continue from the
    highest id already on disk.
    """

    def __init__(self, store_dir: Optional[str] = None):
        """
        Args:
            store_dir: Directory for result files. Defaults to SCRAPER_STORE_DIR,
                       then ./scrape_store/
        """
        if store_dir is None:
            store_dir = os.getenv("SCRAPER_STORE_DIR") or Path.cwd() / "scrape_store"

        self.store_dir = Path(store_dir)
        self.store_dir.mkdir(parents=True, exist_ok=True)

        logger.info(f"Scrape store initialized at: {self.store_dir}")

    def _path(self, scrape_id: int) -> Path:
        return self.store_dir / f"{scrape_id}.json"

    def _next_id(self) -> int:
        ids = [int(p.stem) for p in self.store_dir.glob("*.json") if p.stem.isdigit()]
        return max(ids, default=0) + 1

    def _load(self, path: Path) -> Optional[ScrapeResult]:
        try:
            return ScrapeResult.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(f"Failed to load stored scrape {path.name}: {e}")
            return None

    def _load_all(self) -> list[ScrapeResult]:
        results = []
        for path in self.store_dir.glob("*.json"):
            result = self._load(path)
            if result is not None:
                results.append(result)
        return results

    def create(self, result: ScrapeResult) -> ScrapeResult:
        stored = result.model_copy(update={"id": self._next_id()}, deep=True)
        path = self._path(stored.id)
        path.write_text(
            json.dumps(stored.to_document(), indent=2, ensure_ascii=False),
            encoding="utf-8"
        )
        logger.info(f"Stored scrape {stored.id} for {stored.url} -> {path}")
        return stored

    def get_by_id(self, scrape_id: int) -> Optional[ScrapeResult]:
        path = self._path(scrape_id)
        if not path.exists():
            logger.debug(f"No stored scrape with id {scrape_id}")
            return None
        return self._load(path)

    def get_by_url(self, url: str) -> Optional[ScrapeResult]:
        matches = [r for r in self._load_all() if r.url == url]
        return max(matches, key=lambda r: _aware(r.scrape_date), default=None)

    def list_recent(self, limit: int = DEFAULT_RECENT_LIMIT) -> list[ScrapeResult]:
        ordered = sorted(self._load_all(), key=lambda r: _aware(r.scrape_date), reverse=True)
        return ordered[:limit]

    def delete(self, scrape_id: int) -> bool:
        path = self._path(scrape_id)
        if path.exists():
            path.unlink()
            logger.info(f"Deleted stored scrape {scrape_id}")
            return True
        return False

    def clear(self) -> int:
        """Delete every stored result. Returns count of deleted files."""
        count = 0
        for path in self.store_dir.glob("*.json"):
            path.unlink()
            count += 1
        logger.info(f"Cleared {count} stored scrapes")
        return count
