import asyncio
import logging
from typing import Awaitable, Callable, Dict, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ScanScheduler(Generic[T]):
    """
    Coalesces rapid edits into one scan per document.

    Each submission gets the next version number for its document and
    replaces any scan still waiting out the debounce delay. A finished scan
    is only published when its version is still the latest one submitted.
    """

    def __init__(self, scan: Callable[[str, str, int], Awaitable[T]], publish: Callable[[T], None],
                 debounce_seconds: float = 0.5):
        self.scan = scan
        self.publish = publish
        self.debounce_seconds = debounce_seconds
        self._versions: Dict[str, int] = {}
        self._pending: Dict[str, "asyncio.Task[Optional[T]]"] = {}

    def latest_version(self, document_id: str) -> int:
        return self._versions.get(document_id, 0)

    def submit(self, document_id: str, text: str) -> int:
        version = self.latest_version(document_id) + 1
        self._versions[document_id] = version

        pending = self._pending.get(document_id)
        if pending is not None and not pending.done():
            logger.debug(f"Superseding pending scan of {document_id}")
            pending.cancel()

        self._pending[document_id] = asyncio.get_running_loop().create_task(
            self._run(document_id, text, version)
        )
        return version

    async def _run(self, document_id: str, text: str, version: int) -> Optional[T]:
        await asyncio.sleep(self.debounce_seconds)
        result = await self.scan(document_id, text, version)

        if self._versions.get(document_id) != version:
            logger.debug(f"Dropping scan v{version} of {document_id}; newer edit pending")
            return None

        try:
            self.publish(result)
        except Exception as e:
            logger.error(f"Publishing scan of {document_id} failed: {e}", exc_info=True)
        return result

    async def flush(self, document_id: str) -> Optional[T]:
        """Wait for the latest scheduled scan of `document_id` and return its result."""
        task = self._pending.get(document_id)
        if task is None:
            return None
        try:
            return await task
        except asyncio.CancelledError:
            return None

    def cancel_all(self) -> None:
        for task in self._pending.values():
            if not task.done():
                task.cancel()
        self._pending.clear()
