import logging
from typing import Iterable, List, Optional

from ..models.bean_models import BeanDefinition, Location, ResolutionResult

logger = logging.getLogger(__name__)


def qualifiers_match(requested: Optional[str], actual: Optional[str]) -> bool:
    """Both absent, or both present and equal. Present vs. absent never matches."""
    if requested is None or actual is None:
        return requested is None and actual is None
    return requested == actual


def select_definition(definitions: Iterable[BeanDefinition], produced_type: str,
                      qualifier: Optional[str], file_id: str) -> ResolutionResult:
    """
    Pick the bean definition an injection of `produced_type` binds to.

    With a qualifier only definitions carrying that exact qualifier match.
    Without one, only unqualified definitions are candidates; a primary one
    wins, otherwise a single candidate resolves and several are reported as
    ambiguous with the first one seen as the fallback.

    Args:
        definitions: Definitions in scan order
        produced_type: Type requested by the injection site
        qualifier: Qualifier requested by the injection site, if any
        file_id: Document the definitions were scanned from

    Returns:
        ResolutionResult for the request
    """
    candidates: List[BeanDefinition] = [
        bean for bean in definitions
        if bean.produced_type == produced_type and qualifiers_match(qualifier, bean.qualifier)
    ]

    if not candidates:
        return ResolutionResult.unresolved()

    if qualifier is None:
        primaries = [bean for bean in candidates if bean.is_primary]
        if primaries:
            if len(primaries) > 1:
                logger.warning(f"Multiple @Primary definitions for {produced_type}; using {primaries[0].name}")
            return ResolutionResult.resolved(_location(file_id, primaries[0]))

    if len(candidates) == 1:
        return ResolutionResult.resolved(_location(file_id, candidates[0]))

    logger.debug(f"{len(candidates)} candidate definitions for {produced_type}, none preferred")
    return ResolutionResult.ambiguous([_location(file_id, bean) for bean in candidates])


def _location(file_id: str, bean: BeanDefinition) -> Location:
    return Location(file_id=file_id, range=bean.range)
