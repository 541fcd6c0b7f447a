import asyncio
from typing import List, Protocol

from ..models.bean_models import Location, SourcePosition


class SymbolSearch(Protocol):
    """Cross-file symbol index. Either call may raise; callers treat that as empty."""

    async def find_references(self, file_id: str, position: SourcePosition) -> List[Location]:
        ...

    async def find_implementations(self, file_id: str, position: SourcePosition) -> List[Location]:
        ...


class FileSearch(Protocol):
    async def find_files(self, glob_pattern: str, exclude_pattern: str, limit: int) -> List[str]:
        ...


class DocumentAccess(Protocol):
    async def open_document(self, file_id: str) -> str:
        ...

    async def line_at(self, file_id: str, line: int) -> str:
        ...


class CancellationToken:
    """Cooperative cancellation flag checked between units of work."""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancellation_requested(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()
