import asyncio
import time
from pathlib import Path
from typing import Dict, Set

from watchdog.events import PatternMatchingEventHandler
from watchdog.observers import Observer

from rounds.commons.logger import logger


def read_text_retry(path: Path, attempts: int = 10, delay: float = 0.05) -> str:
    """Read a CSV that may still be being written. utf-8-sig drops the BOM."""
    for _ in range(attempts - 1):
        try:
            return path.read_text(encoding="utf-8-sig")
        except FileNotFoundError:
            raise
        except OSError:
            time.sleep(delay)
    return path.read_text(encoding="utf-8-sig")


class FileWatcher:
    """Watchdog consumer for CSV drops into the import inbox.

    A single copy into the inbox raises created + modified (often several
    modified) events. Events are collapsed per path: the file is read and
    handed to ``on_message_async`` once, ``settle`` seconds after the last
    event for that path.
    """

    def __init__(
        self,
        inbox: str,
        glob: str,
        on_message_async,
        loop: asyncio.AbstractEventLoop,
        settle: float = 0.5,
    ):
        self.inbox = Path(inbox)
        self.inbox.mkdir(parents=True, exist_ok=True)
        self.loop = loop
        self.settle = settle
        self.on_message_async = on_message_async
        self._pending: Dict[str, asyncio.TimerHandle] = {}
        self._tasks: Set[asyncio.Task] = set()

        self.handler = PatternMatchingEventHandler(patterns=[glob], ignore_directories=True)
        self.handler.on_created = lambda e: self._touch(e.src_path)
        self.handler.on_modified = lambda e: self._touch(e.src_path)
        self.handler.on_moved = lambda e: self._touch(e.dest_path)

        self.observer = Observer()

    # hilo de watchdog
    def _touch(self, path: str):
        if self.loop.is_closed():
            return
        self.loop.call_soon_threadsafe(self._schedule, path)

    # hilo del loop
    def _schedule(self, path: str):
        handle = self._pending.pop(path, None)
        if handle is not None:
            handle.cancel()
        self._pending[path] = self.loop.call_later(self.settle, self._fire, path)

    def _fire(self, path: str):
        self._pending.pop(path, None)
        p = Path(path)
        # movido fuera del inbox (archive/error) o ya procesado
        if p.parent.resolve() != self.inbox.resolve() or not p.exists():
            return
        try:
            text = read_text_retry(p)
        except FileNotFoundError:
            return
        logger.debug(f"Archivo estable en inbox: {p.name}")
        task = self.loop.create_task(self.on_message_async(text, str(p)))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def start(self):
        self.observer.schedule(self.handler, str(self.inbox), recursive=False)
        self.observer.start()

    def stop(self):
        self.observer.stop()
        self.observer.join()
        for handle in self._pending.values():
            handle.cancel()
        self._pending.clear()
