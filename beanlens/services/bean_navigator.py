import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from ..core.config import Settings, settings as default_settings
from ..models.bean_models import (
    BeanDefinition,
    BeanOrigin,
    DocumentAnalysis,
    Location,
    ResolutionResult,
    ResolutionStatus,
    SourcePosition,
    UsageResult,
)
from .analysis_cache import AnalysisCache, ResolutionListener
from .capabilities import CancellationToken, DocumentAccess, FileSearch, SymbolSearch
from .declaration_scanner import EXTERNAL_DESCRIPTION, DeclarationScanner, ScanResult
from .external_bean_resolver import ExternalBeanResolver
from .qualifier_resolver import select_definition
from .scan_scheduler import ScanScheduler
from .usage_filter import UsageFilter
from .workspace import Workspace, WorkspaceDocuments, WorkspaceFileSearch, WorkspaceSymbolSearch

logger = logging.getLogger(__name__)


@dataclass
class DocumentSession:
    document_id: str
    cache: AnalysisCache
    text: Optional[str] = None
    version: int = 0
    scan: Optional[ScanResult] = None


class BeanNavigator:
    """Entry point for hover/navigation consumers: per-document analysis plus on-demand resolution."""

    def __init__(self, symbols: SymbolSearch, files: FileSearch, documents: DocumentAccess,
                 settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        self.scanner = DeclarationScanner(self.settings)
        self.resolver = ExternalBeanResolver(symbols, files, documents, self.settings)
        self.usage_filter = UsageFilter(symbols, documents, self.settings)
        self._sessions: Dict[str, DocumentSession] = {}
        self._listeners: List[ResolutionListener] = []

    @classmethod
    def for_workspace(cls, root: Optional[str] = None, settings: Optional[Settings] = None) -> "BeanNavigator":
        workspace = Workspace(root, settings)
        return cls(
            WorkspaceSymbolSearch(workspace),
            WorkspaceFileSearch(workspace),
            WorkspaceDocuments(workspace),
            workspace.settings,
        )

    def session(self, document_id: str) -> DocumentSession:
        session = self._sessions.get(document_id)
        if session is None:
            cache = AnalysisCache(document_id)
            cache.subscribe(self._on_resolution)
            session = DocumentSession(document_id=document_id, cache=cache)
            self._sessions[document_id] = session
        return session

    def subscribe(self, listener: ResolutionListener) -> Callable[[], None]:
        """Be told whenever a background external lookup completes."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _on_resolution(self, document_id: str, class_name: str, location: Optional[Location]) -> None:
        for listener in list(self._listeners):
            listener(document_id, class_name, location)

    def scheduler(self, publish: Callable[[DocumentAnalysis], None],
                  debounce_seconds: Optional[float] = None) -> ScanScheduler[DocumentAnalysis]:
        if debounce_seconds is None:
            debounce_seconds = self.settings.SCAN_DEBOUNCE_MS / 1000
        return ScanScheduler(self.analyze, publish, debounce_seconds)

    async def analyze(self, document_id: str, text: str, version: Optional[int] = None) -> DocumentAnalysis:
        """
        Scan a document and report its bean definitions and injection sites.

        If the document's main class is not a bean locally, its external
        definition is looked up in the background; until that finishes the
        class is listed in `pending_lookups`, afterwards a re-analysis reports
        it as an externally configured bean.
        """
        session = self.session(document_id)
        if session.text is not None and session.text != text:
            session.cache.invalidate()

        session.text = text
        session.version = version if version is not None else session.version + 1
        scan = self.scanner.scan(text)
        session.scan = scan

        beans = list(scan.beans)
        pending: List[str] = []

        if scan.class_name and scan.class_range is not None and not scan.class_is_bean:
            entry = session.cache.get(scan.class_name)
            if entry is None:
                session.cache.schedule(
                    scan.class_name,
                    lambda: self.resolver.find_bean_definition(document_id, scan.class_line, scan.class_name),
                )
                pending.append(scan.class_name)
            elif entry.is_pending:
                pending.append(scan.class_name)
            elif entry.location is not None:
                beans.append(BeanDefinition(
                    name=scan.class_name,
                    produced_type=scan.class_name,
                    range=scan.class_range,
                    origin=BeanOrigin.EXTERNAL_CONFIGURATION,
                    description=EXTERNAL_DESCRIPTION,
                ))

        logger.info(f"Analyzed {document_id} v{session.version}: {len(beans)} beans, "
                    f"{len(scan.injections)} injection sites")
        return DocumentAnalysis(
            document_id=document_id,
            version=session.version,
            beans=beans,
            injections=list(scan.injections),
            pending_lookups=pending,
        )

    async def wait_for_lookups(self, document_id: str) -> None:
        session = self._sessions.get(document_id)
        if session is not None:
            await session.cache.wait_pending()

    def close_document(self, document_id: str) -> None:
        session = self._sessions.pop(document_id, None)
        if session is not None:
            session.cache.invalidate()

    async def resolve(self, document_id: str, type_name: str, position: SourcePosition,
                      qualifier: Optional[str] = None) -> ResolutionResult:
        """Resolve an injected type to its bean definition: locally first, then across the project."""
        session = self._sessions.get(document_id)
        local = ResolutionResult.unresolved()
        if session is not None and session.scan is not None:
            local = select_definition(session.scan.beans, type_name, qualifier, document_id)
            if local.is_resolved:
                return local

        location = await self._external_definition(document_id, type_name, position.line, qualifier)
        if location is not None:
            return ResolutionResult.resolved(location)

        if local.status == ResolutionStatus.AMBIGUOUS:
            local.message = f"Several beans of type {type_name} match; choose one"
            return local
        return ResolutionResult.unresolved(f"Could not find definition for {type_name}")

    async def _external_definition(self, document_id: str, type_name: str, line: int,
                                   qualifier: Optional[str]) -> Optional[Location]:
        try:
            if qualifier is None:
                entry = self.session(document_id).cache.schedule(
                    type_name,
                    lambda: self.resolver.find_bean_definition(document_id, line, type_name),
                )
                if entry.is_pending and entry.task is not None:
                    try:
                        return await entry.task
                    except asyncio.CancelledError:
                        if entry.task.cancelled():
                            return None
                        raise
                return entry.location
            return await self.resolver.find_bean_definition(document_id, line, type_name, qualifier)
        except Exception as e:
            logger.warning(f"External resolution of {type_name} failed: {e}")
            return None

    async def go_to_bean(self, document_id: str, line: int, type_name: str,
                         qualifier: Optional[str] = None) -> ResolutionResult:
        """Bean definition for an injection site, falling back to an annotated implementation class."""
        result = await self.resolve(document_id, type_name, SourcePosition(line=line, column=0), qualifier)
        if result.status != ResolutionStatus.UNRESOLVED:
            return result

        implementation = await self.resolver.find_implementation(document_id, line, type_name, check_annotations=True)
        if implementation.is_resolved:
            return implementation
        return ResolutionResult.unresolved(f"Could not find @Bean or Stereotype for {type_name}")

    async def go_to_class(self, document_id: str, line: int, type_name: str) -> ResolutionResult:
        return await self.resolver.find_implementation(document_id, line, type_name)

    async def find_bean_usages(self, document_id: str, line: int, type_name: str,
                               qualifier: Optional[str] = None, is_primary: bool = False,
                               cancel_token: Optional[CancellationToken] = None) -> UsageResult:
        return await self.usage_filter.find_bean_usages(
            document_id, line, type_name, qualifier, is_primary, cancel_token
        )
