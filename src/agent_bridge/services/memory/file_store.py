"""File-based [`ThreadStore`](interface.py).

Storage format:
- One JSON file per agent under the memory directory (`<dir>/<agentName>.json`).

Writes go to a sibling `.tmp` file that `os.replace()` then moves over the
store, so a crash never leaves a half-written file behind.

Notes:
- Agents call the store from worker threads (`asyncio.to_thread`). A per-instance
  lock serialises each read-modify-write; there is no cross-process locking, so
  run a single worker per memory directory.
"""

from __future__ import annotations

import json
import os
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .interface import MemoryStoreError, MessageRole, Thread, ThreadMessage, ThreadStore


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _StoreDoc:
    threads: dict[str, dict[str, Any]]
    messages_by_thread: dict[str, list[dict[str, Any]]]


class FileThreadStore(ThreadStore):
    def __init__(self, store_path: str | Path) -> None:
        self._path = Path(store_path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def get_or_create_thread(self, thread_id: str, resource_id: str) -> Thread:
        with self._lock:
            doc = self._load()
            raw = doc.threads.get(thread_id)
            if raw is not None:
                return Thread.model_validate(raw)

            now = _utc_now()
            thread = Thread(thread_id=thread_id, resource_id=resource_id, created_at=now, updated_at=now)
            doc.threads[thread_id] = thread.model_dump(mode="json")
            doc.messages_by_thread.setdefault(thread_id, [])
            self._save(doc)
            return thread

    def list_messages(self, thread_id: str, *, limit: int | None = None) -> list[ThreadMessage]:
        with self._lock:
            doc = self._load()
            raw = doc.messages_by_thread.get(thread_id, [])
            if limit is not None:
                raw = raw[-limit:] if limit > 0 else []
            return [ThreadMessage.model_validate(m) for m in raw]

    def append_message(self, thread_id: str, resource_id: str, role: MessageRole, content: str) -> ThreadMessage:
        with self._lock:
            doc = self._load()
            now = _utc_now()

            if thread_id not in doc.threads:
                doc.threads[thread_id] = Thread(
                    thread_id=thread_id, resource_id=resource_id, created_at=now, updated_at=now
                ).model_dump(mode="json")

            msg = ThreadMessage(
                message_id=uuid.uuid4().hex,
                thread_id=thread_id,
                role=role,
                content=content,
                created_at=now,
            )
            doc.messages_by_thread.setdefault(thread_id, []).append(msg.model_dump(mode="json"))

            thread = Thread.model_validate(doc.threads[thread_id])
            doc.threads[thread_id] = thread.model_copy(update={"updated_at": now}).model_dump(mode="json")

            self._save(doc)
            return msg

    def delete_thread(self, thread_id: str) -> None:
        with self._lock:
            doc = self._load()
            if thread_id not in doc.threads:
                raise KeyError(thread_id)
            doc.threads.pop(thread_id, None)
            doc.messages_by_thread.pop(thread_id, None)
            self._save(doc)

    def _load(self) -> _StoreDoc:
        if not self._path.exists():
            return _StoreDoc(threads={}, messages_by_thread={})

        text = self._path.read_text(encoding="utf-8")
        if not text.strip():
            return _StoreDoc(threads={}, messages_by_thread={})

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise MemoryStoreError(f"Corrupt memory file at {self._path}: {e}") from e
        return _StoreDoc(
            threads=dict(data.get("threads", {})),
            messages_by_thread=dict(data.get("messages_by_thread", {})),
        )

    def _save(self, doc: _StoreDoc) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)

        payload = {
            "threads": doc.threads,
            "messages_by_thread": doc.messages_by_thread,
        }

        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(
            json.dumps(payload, indent=2, ensure_ascii=False),
            encoding="utf-8",
        )

        os.replace(tmp_path, self._path)
