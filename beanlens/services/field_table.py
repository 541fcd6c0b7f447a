import logging
from typing import Dict, List

from ..models.bean_models import FieldEntry, SourceRange
from .line_classifier import extract_qualifier, is_comment, match_field_declaration

logger = logging.getLogger(__name__)


def build_field_table(lines: List[str]) -> Dict[str, FieldEntry]:
    """
    Collect every field declaration in a document, keyed by field name.

    A qualifier is taken from the declaration line itself or, failing that,
    from the line directly above it. Later declarations replace earlier ones
    with the same name.

    Args:
        lines: Document text split into physical lines

    Returns:
        Mapping of field name to its FieldEntry
    """
    fields: Dict[str, FieldEntry] = {}

    for index, line in enumerate(lines):
        if is_comment(line):
            continue

        match = match_field_declaration(line)
        if not match:
            continue

        qualifier = extract_qualifier(line)
        if qualifier is None and index > 0:
            qualifier = extract_qualifier(lines[index - 1])

        fields[match.name] = FieldEntry(
            name=match.name,
            type=match.type,
            range=SourceRange.on_line(index, match.type_column, len(match.type)),
            declaration_line=index,
            qualifier=qualifier,
        )

    logger.debug(f"Field table built with {len(fields)} entries")
    return fields
