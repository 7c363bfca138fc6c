# src/taskcycle/tasks/task_store.py

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
from pathlib import Path
from typing import Any

from ..core.ports import Clock
from .default_data import default_collection
from .task_codec import collection_from_dict, collection_to_dict
from .task_models import TaskCollection

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    pass


class JsonTaskStore:
    """
    JSON-file task store: one document per household (user_<id>.json).

    - load() returns seeded defaults when the file does not exist yet
    - save() writes atomically (tmp file + os.replace)
    - file I/O runs in a worker thread so the event loop never blocks
    """

    def __init__(self, data_dir: str | Path, *, user_id: str = "1", clock: Clock) -> None:
        self._data_dir = Path(data_dir)
        self._path = self._data_dir / f"user_{user_id}.json"
        self._clock = clock

    @property
    def path(self) -> Path:
        return self._path

    # ---- sync helpers (run in a thread) ----

    def _read(self) -> dict[str, Any] | None:
        try:
            raw = self._path.read_text("utf-8")
        except FileNotFoundError:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StoreError(f"{self._path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise StoreError(f"{self._path}: expected a JSON object")
        return data

    def _write(self, data: dict[str, Any]) -> None:
        self._data_dir.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), "utf-8")
        os.replace(tmp, self._path)
        with contextlib.suppress(OSError):
            # Best-effort: profile names and history are personal data.
            os.chmod(self._path, 0o600)

    # ---- StateRepo ----

    async def load(self) -> TaskCollection:
        data = await asyncio.to_thread(self._read)
        if data is None:
            logger.info("No task document at %s; starting from defaults", self._path)
            return default_collection(self._clock.now())
        collection = collection_from_dict(data)
        logger.info(
            "Loaded %s: tasks=%d groups=%d profiles=%d history=%d",
            self._path,
            len(collection.tasks),
            len(collection.groups),
            len(collection.profiles),
            len(collection.history),
        )
        return collection

    async def save(self, collection: TaskCollection) -> None:
        data = collection_to_dict(collection)
        await asyncio.to_thread(self._write, data)
        logger.debug("Saved %s (tasks=%d)", self._path, len(collection.tasks))
