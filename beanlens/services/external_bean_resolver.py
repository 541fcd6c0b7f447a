import logging
import re
from typing import List, Optional, Tuple

from ..core.config import Settings, settings as default_settings
from ..models.bean_models import Location, ResolutionResult, SourcePosition, SourceRange
from .capabilities import DocumentAccess, FileSearch, SymbolSearch
from .line_classifier import has_factory_marker, has_primary_marker, has_stereotype_marker

logger = logging.getLogger(__name__)

# Path fragments that suggest a configuration unit
CONFIG_PATH_TOKENS = ("Config", "App")


def config_path_score(file_id: str) -> int:
    return 1 if any(token in file_id for token in CONFIG_PATH_TOKENS) else 0


class ExternalBeanResolver:
    """Finds where a type is produced as a bean when the answer is not in the current document."""

    def __init__(self, symbols: SymbolSearch, files: FileSearch, documents: DocumentAccess,
                 settings: Optional[Settings] = None):
        self.symbols = symbols
        self.files = files
        self.documents = documents
        self.settings = settings or default_settings

    async def find_bean_definition(self, file_id: str, line: int, class_name: str,
                                   required_qualifier: Optional[str] = None) -> Optional[Location]:
        """
        Locate the @Bean factory method producing `class_name`.

        Phase A ranks symbol-index references to the type, preferring files
        that look like configuration, and inspects the lines just above each
        one for a factory marker. Phase B scans convention-named configuration
        files directly. An exact qualifier match (or, without a qualifier, a
        primary match) from Phase A returns immediately; otherwise Phase A's
        first factory candidate beats Phase B's.

        Args:
            file_id: Document holding the type's declaration or usage
            line: Line of that declaration or usage
            class_name: Type to resolve
            required_qualifier: Qualifier the definition must carry

        Returns:
            Location of the definition, or None when unresolved
        """
        exact, standard_candidate = await self._search_references(file_id, line, class_name, required_qualifier)
        if exact:
            logger.info(f"Resolved {class_name} via symbol index at {exact.file_id}:{exact.range.start.line}")
            return exact

        exact, manual_candidate = await self._scan_config_files(class_name, required_qualifier)
        if exact:
            logger.info(f"Resolved {class_name} via configuration scan at {exact.file_id}:{exact.range.start.line}")
            return exact

        candidate = standard_candidate or manual_candidate
        if candidate is None:
            logger.info(f"No external bean definition found for {class_name}")
        return candidate

    async def _position_of(self, file_id: str, line: int, name: str) -> SourcePosition:
        try:
            text = await self.documents.line_at(file_id, line)
        except Exception as e:
            logger.warning(f"Could not read line {line} of {file_id}: {e}")
            text = ""
        column = text.find(name)
        return SourcePosition(line=line, column=column if column != -1 else 0)

    async def _search_references(self, file_id: str, line: int, class_name: str,
                                 required_qualifier: Optional[str]) -> Tuple[Optional[Location], Optional[Location]]:
        position = await self._position_of(file_id, line, class_name)
        try:
            references = await self.symbols.find_references(file_id, position)
        except Exception as e:
            logger.warning(f"Reference lookup for {class_name} failed: {e}")
            return None, None
        if not references:
            return None, None

        # Stable sort keeps index order within each group
        ranked = sorted(references, key=lambda ref: -config_path_score(ref.file_id))
        standard_candidate = None
        window_size = self.settings.FACTORY_WINDOW_LINES

        for ref in ranked[:self.settings.REFERENCE_CANDIDATE_LIMIT]:
            if ref.file_id == file_id:
                continue
            try:
                lines = (await self.documents.open_document(ref.file_id)).split('\n')
            except Exception as e:
                logger.warning(f"Could not open {ref.file_id}: {e}")
                continue

            ref_line = ref.range.start.line
            window = '\n'.join(lines[max(0, ref_line - window_size):ref_line + 2])
            if not has_factory_marker(window):
                continue

            if required_qualifier:
                if f'"{required_qualifier}"' in window:
                    return ref, standard_candidate
            else:
                if has_primary_marker(window):
                    return ref, standard_candidate
                if standard_candidate is None:
                    standard_candidate = ref

        return None, standard_candidate

    async def _scan_config_files(self, class_name: str,
                                 required_qualifier: Optional[str]) -> Tuple[Optional[Location], Optional[Location]]:
        try:
            config_files = await self.files.find_files(
                self.settings.CONFIG_FILE_GLOB,
                self.settings.CONFIG_FILE_EXCLUDE,
                self.settings.CONFIG_FILE_LIMIT,
            )
        except Exception as e:
            logger.warning(f"Configuration file search failed: {e}")
            return None, None

        producer = re.compile(r'\bpublic\s+' + re.escape(class_name) + r'\b')
        manual_candidate = None

        for config_id in config_files:
            try:
                text = await self.documents.open_document(config_id)
            except Exception as e:
                logger.warning(f"Could not open {config_id}: {e}")
                continue
            if '@Bean' not in text or class_name not in text:
                continue

            found_bean = found_primary = found_qualifier = False
            for index, raw in enumerate(text.split('\n')):
                line = raw.strip()
                if line.startswith('@Bean'):
                    found_bean = True
                if line.startswith('@Primary'):
                    found_primary = True
                if required_qualifier and f'"{required_qualifier}"' in line:
                    found_qualifier = True

                match = producer.search(raw)
                if not (found_bean and match):
                    continue

                column = raw.find(class_name, match.start())
                location = Location(
                    file_id=config_id,
                    range=SourceRange.on_line(index, column, len(class_name)),
                )
                if required_qualifier:
                    if found_qualifier:
                        return location, manual_candidate
                else:
                    if found_primary:
                        return location, manual_candidate
                    if manual_candidate is None:
                        manual_candidate = location
                found_bean = found_primary = found_qualifier = False

        return None, manual_candidate

    async def find_implementation(self, file_id: str, line: int, type_name: str,
                                  check_annotations: bool = False) -> ResolutionResult:
        """
        Resolve a type to its implementing class.

        With `check_annotations` only the first implementation counts, and
        only when its file declares a stereotype bean.
        """
        position = await self._position_of(file_id, line, type_name)
        try:
            implementations: List[Location] = await self.symbols.find_implementations(file_id, position)
        except Exception as e:
            logger.warning(f"Implementation lookup for {type_name} failed: {e}")
            implementations = []

        if not implementations:
            return ResolutionResult.unresolved(f"No implementation found for {type_name}")

        if check_annotations:
            first = implementations[0]
            try:
                text = await self.documents.open_document(first.file_id)
            except Exception as e:
                logger.warning(f"Could not open {first.file_id}: {e}")
                return ResolutionResult.unresolved(f"Could not find @Bean or Stereotype for {type_name}")
            if has_stereotype_marker(text):
                result = ResolutionResult.resolved(first)
                result.message = f"Bean defined via Annotation in {type_name}"
                return result
            return ResolutionResult.unresolved(f"Could not find @Bean or Stereotype for {type_name}")

        if len(implementations) == 1:
            return ResolutionResult.resolved(implementations[0])
        return ResolutionResult.ambiguous(implementations)
