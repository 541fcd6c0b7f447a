import logging
from typing import List, Optional

from ..core.config import Settings, settings as default_settings
from ..models.bean_models import Location, SourcePosition, UsageResult
from .capabilities import CancellationToken, DocumentAccess, SymbolSearch
from .line_classifier import (
    declares_variable,
    extract_qualifier,
    has_convention_constructor_marker,
    has_qualifier_marker,
    has_usage_injection_marker,
    match_field_declaration,
    qualifier_before_column,
)

logger = logging.getLogger(__name__)

NON_USAGE_PREFIXES = ('import ', 'package ')


def describe_bean(type_name: str, qualifier: Optional[str], is_primary: bool) -> str:
    description = f"{'@Primary ' if is_primary else ''}bean {type_name}"
    if qualifier:
        description += f' with @Qualifier("{qualifier}")'
    return description


class UsageFilter:
    """Narrows raw references to a bean type down to genuine injection points."""

    def __init__(self, symbols: SymbolSearch, documents: DocumentAccess, settings: Optional[Settings] = None):
        self.symbols = symbols
        self.documents = documents
        self.settings = settings or default_settings

    async def find_bean_usages(self, file_id: str, line: int, type_name: str,
                               bean_qualifier: Optional[str] = None, is_primary: bool = False,
                               cancel_token: Optional[CancellationToken] = None) -> UsageResult:
        """
        Find injection points that consume the bean declared at `file_id:line`.

        Field declarations only count when an injection or qualifier annotation
        sits in the lines just above them, or when the file generates its
        constructor (Lombok). A qualified bean keeps only usages asking for the
        same qualifier; an unqualified bean keeps only unqualified usages.

        Args:
            file_id: Document declaring the bean
            line: Declaration line of the bean
            type_name: Produced type of the bean
            bean_qualifier: Qualifier of the bean, if any
            is_primary: Whether the bean is marked @Primary (used for messages)
            cancel_token: Checked before each candidate reference

        Returns:
            UsageResult with the kept references and an informational message when empty
        """
        result = UsageResult(type_name=type_name, qualifier=bean_qualifier)

        try:
            line_text = await self.documents.line_at(file_id, line)
        except Exception as e:
            logger.warning(f"Could not read {file_id}:{line}: {e}")
            line_text = ""
        column = line_text.find(type_name)
        if column == -1:
            result.message = f"Could not find type {type_name}."
            return result

        try:
            references = await self.symbols.find_references(file_id, SourcePosition(line=line, column=column))
        except Exception as e:
            logger.warning(f"Reference lookup for {type_name} failed: {e}")
            references = []

        if not references:
            result.message = f"No usages found for {type_name}."
            return result

        logger.info(f"Scanning {len(references)} references for injection points of {type_name}")
        for ref in references:
            if cancel_token is not None and cancel_token.is_cancellation_requested:
                logger.info(f"Usage scan for {type_name} cancelled after {len(result.references)} matches")
                result.cancelled = True
                break

            if self._is_self_reference(ref, file_id, line):
                continue

            try:
                if await self._is_injection_usage(ref, bean_qualifier):
                    result.references.append(ref)
            except Exception as e:
                logger.warning(f"Skipping reference in {ref.file_id}: {e}")

        if not result.references:
            result.message = f"No active injection points found for {describe_bean(type_name, bean_qualifier, is_primary)}."
        return result

    def _is_self_reference(self, ref: Location, file_id: str, line: int) -> bool:
        return ref.file_id == file_id and abs(ref.range.start.line - line) <= self.settings.SELF_REFERENCE_WINDOW

    async def _is_injection_usage(self, ref: Location, bean_qualifier: Optional[str]) -> bool:
        lines = (await self.documents.open_document(ref.file_id)).split('\n')
        ref_line = ref.range.start.line
        if ref_line >= len(lines) or lines[ref_line].strip().startswith(NON_USAGE_PREFIXES):
            return False

        start = max(0, ref_line - self.settings.USAGE_CONTEXT_LINES)
        context = '\n'.join(lines[start:ref_line + 1])

        if match_field_declaration(lines[ref_line]):
            if not has_usage_injection_marker(context) and not has_qualifier_marker(context):
                header = '\n'.join(lines[:self.settings.HEADER_SCAN_LINES])
                if not has_convention_constructor_marker(header):
                    return False

        usage_qualifier = self._usage_qualifier(lines, ref_line, ref.range.start.column, start)
        if bean_qualifier:
            return usage_qualifier == bean_qualifier
        return usage_qualifier is None

    @staticmethod
    def _usage_qualifier(lines: List[str], ref_line: int, column: int, start: int) -> Optional[str]:
        """
        Qualifier attached to the reference: on its own line before the type,
        else on the nearest annotation-only line above it. Another declaration
        in between ends the search.
        """
        line = lines[ref_line]
        qualifier = qualifier_before_column(line, column)
        if qualifier or declares_variable(line[:column]):
            return qualifier
        for index in range(ref_line - 1, start - 1, -1):
            if declares_variable(lines[index]):
                return None
            qualifier = extract_qualifier(lines[index])
            if qualifier:
                return qualifier
        return None

