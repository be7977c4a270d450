"""Run-scoped, file-backed cache of raw API responses."""

import asyncio
import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_FLUSH_DELAY = 5.0


class ResponseCache:
    """Maps canonical request URLs to raw response bodies, persisted as one JSON file.

    Writes are debounced: the first ``set`` after a flush schedules a flush
    ``flush_delay`` seconds later, and any further writes before then ride
    along with it. Call ``flush`` before shutdown and ``delete`` at the end of
    a run; the file is not meant to outlive the run that created it.

    Args:
        path: Location of the cache file.
        flush_delay: Seconds to wait before persisting a burst of writes.
    """

    def __init__(self, path: Path, *, flush_delay: float = DEFAULT_FLUSH_DELAY) -> None:
        self._path = Path(path)
        self._flush_delay = flush_delay
        self._entries: dict[str, str] = {}
        self._dirty = False
        self._flush_task: asyncio.Task[None] | None = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def dirty(self) -> bool:
        """Whether there are writes not yet persisted."""
        return self._dirty

    @property
    def flush_pending(self) -> bool:
        return self._flush_task is not None and not self._flush_task.done()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def load(self) -> None:
        """Read entries left by an earlier process of the same run, if any."""
        if not self._path.exists():
            return
        try:
            raw = json.loads(self._path.read_text())
        except (OSError, json.JSONDecodeError):
            logger.warning("Ignoring unreadable cache file %s", self._path, exc_info=True)
            return
        if not isinstance(raw, dict):
            logger.warning("Ignoring cache file %s: expected a JSON object", self._path)
            return
        self._entries.update({str(k): str(v) for k, v in raw.items()})
        logger.info("Loaded %d cached responses from %s", len(raw), self._path)

    def get(self, key: str) -> str | None:
        return self._entries.get(key)

    def set(self, key: str, body: str) -> None:
        """Store a response body and schedule a debounced flush."""
        self._entries[key] = body
        self._dirty = True
        if not self.flush_pending:
            self._flush_task = asyncio.create_task(self._flush_later())

    async def _flush_later(self) -> None:
        await asyncio.sleep(self._flush_delay)
        self._flush_task = None
        try:
            self._write()
        except OSError:
            logger.warning("Could not write cache file %s", self._path, exc_info=True)

    async def flush(self) -> None:
        """Persist now, cancelling any scheduled flush."""
        await self._cancel_pending()
        self._write()

    async def delete(self) -> None:
        """Drop pending work, forget all entries and remove the file."""
        await self._cancel_pending()
        self._entries.clear()
        self._dirty = False
        self._path.unlink(missing_ok=True)

    async def _cancel_pending(self) -> None:
        task = self._flush_task
        self._flush_task = None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def _write(self) -> None:
        if not self._dirty:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        tmp_path.write_text(json.dumps(self._entries))
        tmp_path.replace(self._path)
        self._dirty = False
        logger.debug("Flushed %d cached responses to %s", len(self._entries), self._path)
