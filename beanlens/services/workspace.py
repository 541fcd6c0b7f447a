import asyncio
import fnmatch
import logging
import os
import re
from pathlib import Path
from typing import List, Optional

from ..core.config import Settings, settings as default_settings
from ..models.bean_models import Location, SourcePosition, SourceRange

logger = logging.getLogger(__name__)

WORD_PATTERN = re.compile(r'\w+')


def expand_braces(pattern: str) -> List[str]:
    """Expand `{a,b}` alternatives, which pathlib globbing does not support."""
    match = re.search(r'\{([^{}]*)\}', pattern)
    if not match:
        return [pattern]
    expanded = []
    for option in match.group(1).split(','):
        expanded.extend(expand_braces(pattern[:match.start()] + option + pattern[match.end():]))
    return expanded


def identifier_at(text: str, column: int) -> Optional[str]:
    for match in WORD_PATTERN.finditer(text):
        if match.start() <= column < match.end():
            return match.group(0)
    return None


class Workspace:
    """A directory of source files addressed by POSIX paths relative to its root."""

    def __init__(self, root: Optional[str] = None, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        self.root = Path(root or self.settings.WORKSPACE_ROOT).resolve()

    def resolve_path(self, file_id: str) -> Path:
        path = (self.root / file_id).resolve()
        if self.root not in path.parents and path != self.root:
            raise FileNotFoundError(f"{file_id} is outside the workspace")
        if not path.is_file():
            raise FileNotFoundError(f"No such document: {file_id}")
        return path

    def file_id(self, path: Path) -> str:
        return path.resolve().relative_to(self.root).as_posix()

    def read_text(self, file_id: str) -> str:
        path = self.resolve_path(file_id)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return f.read()
        except UnicodeDecodeError:
            logger.warning(f"UnicodeDecodeError with utf-8, trying latin-1 for file: {path}")
            with open(path, 'r', encoding='latin-1') as f:
                return f.read()

    def source_files(self) -> List[str]:
        """All source files in the workspace, skipping build and VCS directories."""
        ignored = self.settings.IGNORED_DIRECTORIES
        suffix = self.settings.SOURCE_FILE_SUFFIX
        found = []
        for root, dirs, files in os.walk(self.root):
            dirs[:] = sorted(d for d in dirs if d not in ignored)
            for file in sorted(files):
                if file.endswith(suffix):
                    found.append(self.file_id(Path(root) / file))
        return found


class WorkspaceDocuments:
    def __init__(self, workspace: Workspace):
        self.workspace = workspace

    async def open_document(self, file_id: str) -> str:
        return await asyncio.to_thread(self.workspace.read_text, file_id)

    async def line_at(self, file_id: str, line: int) -> str:
        lines = (await self.open_document(file_id)).split('\n')
        if 0 <= line < len(lines):
            return lines[line]
        return ""


class WorkspaceFileSearch:
    def __init__(self, workspace: Workspace):
        self.workspace = workspace

    async def find_files(self, glob_pattern: str, exclude_pattern: str, limit: int) -> List[str]:
        return await asyncio.to_thread(self._find_files, glob_pattern, exclude_pattern, limit)

    def _find_files(self, glob_pattern: str, exclude_pattern: str, limit: int) -> List[str]:
        matches = set()
        for pattern in expand_braces(glob_pattern):
            for path in self.workspace.root.glob(pattern):
                if not path.is_file():
                    continue
                file_id = self.workspace.file_id(path)
                if exclude_pattern and self._is_excluded(file_id, exclude_pattern):
                    continue
                matches.add(file_id)
        return sorted(matches)[:limit]

    @staticmethod
    def _is_excluded(file_id: str, exclude_pattern: str) -> bool:
        return any(
            fnmatch.fnmatch(candidate, pattern)
            for pattern in expand_braces(exclude_pattern)
            for candidate in (file_id, '/' + file_id)
        )


class WorkspaceSymbolSearch:
    """
    Text-based stand-in for a language server's reference/implementation index.

    References are whole-word occurrences of the identifier under the given
    position across every source file in the workspace.
    """

    def __init__(self, workspace: Workspace):
        self.workspace = workspace

    async def find_references(self, file_id: str, position: SourcePosition) -> List[Location]:
        return await asyncio.to_thread(self._find_references, file_id, position)

    async def find_implementations(self, file_id: str, position: SourcePosition) -> List[Location]:
        return await asyncio.to_thread(self._find_implementations, file_id, position)

    def _identifier(self, file_id: str, position: SourcePosition) -> Optional[str]:
        lines = self.workspace.read_text(file_id).split('\n')
        if not 0 <= position.line < len(lines):
            return None
        return identifier_at(lines[position.line], position.column)

    def _find_references(self, file_id: str, position: SourcePosition) -> List[Location]:
        identifier = self._identifier(file_id, position)
        if not identifier:
            return []

        pattern = re.compile(r'\b' + re.escape(identifier) + r'\b')
        references = []
        for source_id in self.workspace.source_files():
            for index, line in enumerate(self.workspace.read_text(source_id).split('\n')):
                for match in pattern.finditer(line):
                    references.append(Location(
                        file_id=source_id,
                        range=SourceRange.on_line(index, match.start(), len(identifier)),
                    ))
        logger.debug(f"Text index found {len(references)} references to {identifier}")
        return references

    def _find_implementations(self, file_id: str, position: SourcePosition) -> List[Location]:
        identifier = self._identifier(file_id, position)
        if not identifier:
            return []

        own_class = re.compile(r'^(?!.*\babstract\b).*\bclass\s+(' + re.escape(identifier) + r')\b')
        subtype = re.compile(
            r'\bclass\s+(\w+)[^{]*\b(?:extends|implements)\b[^{]*\b' + re.escape(identifier) + r'\b'
        )
        implementations = []
        for source_id in self.workspace.source_files():
            for index, line in enumerate(self.workspace.read_text(source_id).split('\n')):
                match = subtype.search(line) or own_class.search(line)
                if match:
                    implementations.append(Location(
                        file_id=source_id,
                        range=SourceRange.on_line(index, match.start(1), len(match.group(1))),
                    ))
        return implementations
