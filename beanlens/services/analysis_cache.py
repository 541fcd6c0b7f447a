import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional

from ..models.bean_models import Location

logger = logging.getLogger(__name__)

# (document_id, class_name, location or None)
ResolutionListener = Callable[[str, str, Optional[Location]], None]


class CacheState(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"


@dataclass
class CacheEntry:
    class_name: str
    state: CacheState
    location: Optional[Location] = None
    task: Optional["asyncio.Task[Optional[Location]]"] = None

    @property
    def is_pending(self) -> bool:
        return self.state == CacheState.PENDING


class AnalysisCache:
    """
    External resolution outcomes for one document, keyed by class name.

    Entries start as pending (holding the running lookup task) and become
    resolved when the lookup finishes, at which point subscribers are told.
    `invalidate` drops everything at once; lookups still running from an
    earlier generation are cancelled and their results discarded.
    """

    def __init__(self, document_id: str):
        self.document_id = document_id
        self.generation = 0
        self._entries: Dict[str, CacheEntry] = {}
        self._listeners: List[ResolutionListener] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, class_name: str) -> bool:
        return class_name in self._entries

    def get(self, class_name: str) -> Optional[CacheEntry]:
        return self._entries.get(class_name)

    def schedule(self, class_name: str, lookup: Callable[[], Awaitable[Optional[Location]]]) -> CacheEntry:
        """Start `lookup` for `class_name` unless an entry already exists. Needs a running loop."""
        existing = self._entries.get(class_name)
        if existing is not None:
            return existing

        task = asyncio.get_running_loop().create_task(self._run(class_name, lookup, self.generation))
        entry = CacheEntry(class_name=class_name, state=CacheState.PENDING, task=task)
        self._entries[class_name] = entry
        logger.debug(f"Scheduled external lookup for {class_name} in {self.document_id}")
        return entry

    async def _run(self, class_name: str, lookup: Callable[[], Awaitable[Optional[Location]]],
                   generation: int) -> Optional[Location]:
        try:
            location = await lookup()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"External lookup for {class_name} failed: {e}")
            location = None

        if generation != self.generation:
            logger.debug(f"Discarding stale lookup result for {class_name} in {self.document_id}")
            return None

        self._entries[class_name] = CacheEntry(class_name=class_name, state=CacheState.RESOLVED, location=location)
        self._notify(class_name, location)
        return location

    def _notify(self, class_name: str, location: Optional[Location]) -> None:
        for listener in list(self._listeners):
            try:
                listener(self.document_id, class_name, location)
            except Exception as e:
                logger.error(f"Resolution listener failed for {class_name}: {e}", exc_info=True)

    async def wait_pending(self) -> None:
        tasks = [entry.task for entry in self._entries.values() if entry.is_pending and entry.task]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def invalidate(self) -> None:
        self.generation += 1
        for entry in self._entries.values():
            if entry.is_pending and entry.task and not entry.task.done():
                entry.task.cancel()
        self._entries.clear()

    def subscribe(self, listener: ResolutionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
