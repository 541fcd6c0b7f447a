import logging
import re
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, NamedTuple, Optional, Sequence, Set, Tuple, Union

from ..core.config import Settings, settings as default_settings
from ..models.bean_models import (
    BeanDefinition,
    BeanOrigin,
    FieldEntry,
    InjectionMethod,
    InjectionSite,
    SourceRange,
)
from .field_table import build_field_table
from .line_classifier import (
    LineInfo,
    classify_line,
    has_constructor_injection_marker,
    has_convention_constructor_marker,
    is_annotation_line,
    is_constructor_declaration,
    is_final_instance_field,
    is_skippable,
    iter_argument_tokens,
    match_field_declaration,
    qualifier_before_column,
)

logger = logging.getLogger(__name__)

STEREOTYPE_DESCRIPTION = "Defined via Stereotype Annotation"
FACTORY_DESCRIPTION = "Defined via @Bean Configuration"
EXTERNAL_DESCRIPTION = "Defined in External Configuration"

# Annotation arguments may contain parentheses that do not close a signature
ANNOTATION_ARGS_PATTERN = re.compile(r'@\w+\s*\([^)]*\)')

Emission = Union[BeanDefinition, InjectionSite]


@dataclass(frozen=True)
class ScanState:
    """Flags carried from one line to the next. Replaced, never mutated."""
    pending_bean_on_class: bool = False
    pending_bean_on_method: bool = False
    pending_primary: bool = False
    last_qualifier: Optional[str] = None
    inside_annotated_constructor: bool = False
    current_class_name: str = ""
    class_range: Optional[SourceRange] = None
    class_line: int = -1
    class_is_bean: bool = False

    def without_pending_annotations(self) -> "ScanState":
        return replace(self, pending_primary=False, last_qualifier=None)


@dataclass(frozen=True)
class LineContext:
    index: int
    info: LineInfo
    lines: Sequence[str]
    fields: Dict[str, FieldEntry]
    convention_constructor: bool
    builtin_types: Set[str]

    @property
    def previous_line(self) -> str:
        return self.lines[self.index - 1] if self.index > 0 else ""


class Step(NamedTuple):
    state: ScanState
    emitted: Tuple[Emission, ...] = ()
    consumed: bool = False


@dataclass
class ScanResult:
    beans: List[BeanDefinition] = field(default_factory=list)
    injections: List[InjectionSite] = field(default_factory=list)
    fields: Dict[str, FieldEntry] = field(default_factory=dict)
    class_name: str = ""
    class_range: Optional[SourceRange] = None
    class_line: int = -1
    class_is_bean: bool = False


def _field_injection(entry: FieldEntry, method: InjectionMethod, target_line: Optional[int] = None,
                     qualifier: Optional[str] = None) -> InjectionSite:
    return InjectionSite(
        consumed_type=entry.type,
        variable_name=entry.name,
        range=entry.range,
        method=method,
        target_line=target_line,
        qualifier=qualifier if qualifier is not None else entry.qualifier,
    )


def apply_qualifier(state: ScanState, ctx: LineContext) -> Step:
    if ctx.info.qualifier:
        return Step(replace(state, last_qualifier=ctx.info.qualifier))
    return Step(state)


def apply_primary(state: ScanState, ctx: LineContext) -> Step:
    if ctx.info.is_primary:
        return Step(replace(state, pending_primary=True))
    return Step(state)


def apply_stereotype(state: ScanState, ctx: LineContext) -> Step:
    if ctx.info.is_stereotype:
        return Step(replace(state, pending_bean_on_class=True))
    return Step(state)


def apply_class_declaration(state: ScanState, ctx: LineContext) -> Step:
    class_name = ctx.info.class_name
    if not class_name:
        return Step(state)

    class_range = SourceRange.on_line(ctx.index, ctx.info.class_column, len(class_name))
    state = replace(state, current_class_name=class_name, class_range=class_range,
                    class_line=ctx.index, class_is_bean=False)

    if not state.pending_bean_on_class:
        return Step(state)

    bean = BeanDefinition(
        name=class_name,
        produced_type=class_name,
        range=class_range,
        origin=BeanOrigin.STEREOTYPE_ANNOTATION,
        qualifier=state.last_qualifier,
        is_primary=state.pending_primary,
        description=STEREOTYPE_DESCRIPTION,
    )
    state = replace(state.without_pending_annotations(), pending_bean_on_class=False, class_is_bean=True)
    return Step(state, (bean,))


def apply_factory_marker(state: ScanState, ctx: LineContext) -> Step:
    if ctx.info.is_factory:
        return Step(replace(state, pending_bean_on_method=True))
    return Step(state)


def apply_factory_method(state: ScanState, ctx: LineContext) -> Step:
    if not state.pending_bean_on_method:
        return Step(state)

    info = ctx.info
    annotation_line = is_annotation_line(info.text)
    if annotation_line and not info.is_factory:
        # Further annotations between @Bean and the method
        return Step(state, consumed=True)

    method = info.method
    if method:
        if method.name == state.current_class_name:
            return Step(state)
        bean = BeanDefinition(
            name=method.name,
            produced_type=method.return_type,
            range=SourceRange.on_line(ctx.index, method.name_column, len(method.name)),
            origin=BeanOrigin.FACTORY_METHOD,
            qualifier=state.last_qualifier,
            is_primary=state.pending_primary,
            description=FACTORY_DESCRIPTION,
        )
        return Step(replace(state.without_pending_annotations(), pending_bean_on_method=False), (bean,))

    if not annotation_line and ('=' in info.text or ';' in info.text):
        logger.debug(f"Abandoning pending @Bean at line {ctx.index}: not a method declaration")
        return Step(replace(state.without_pending_annotations(), pending_bean_on_method=False))
    return Step(state)


def apply_constructor_start(state: ScanState, ctx: LineContext) -> Step:
    if state.inside_annotated_constructor:
        return Step(state)
    if not is_constructor_declaration(ctx.info.text, state.current_class_name):
        return Step(state)
    if has_constructor_injection_marker(ctx.info.text) or has_constructor_injection_marker(ctx.previous_line):
        return Step(replace(state, inside_annotated_constructor=True))
    return Step(state)


def apply_constructor_arguments(state: ScanState, ctx: LineContext) -> Step:
    if not state.inside_annotated_constructor:
        return Step(state)

    text = ctx.info.text
    line_qualifier = ctx.info.qualifier
    emitted = []
    for arg_type, name, column in iter_argument_tokens(text):
        if arg_type == state.current_class_name or arg_type in ctx.builtin_types:
            continue
        argument_qualifier = qualifier_before_column(text, column) if line_qualifier else None
        entry = ctx.fields.get(name)
        if entry:
            qualifier = entry.qualifier or argument_qualifier
            emitted.append(InjectionSite(
                consumed_type=arg_type,
                variable_name=name,
                range=entry.range,
                method=InjectionMethod.CONSTRUCTOR_MAPPED_TO_FIELD,
                target_line=entry.declaration_line,
                qualifier=qualifier,
            ))
        else:
            emitted.append(InjectionSite(
                consumed_type=arg_type,
                variable_name=name,
                range=SourceRange.on_line(ctx.index, column, len(arg_type)),
                method=InjectionMethod.CONSTRUCTOR_ARGUMENT,
                qualifier=argument_qualifier,
            ))

    if line_qualifier and emitted:
        state = replace(state, last_qualifier=None)
    if ')' in ANNOTATION_ARGS_PATTERN.sub('', text):
        state = replace(state, inside_annotated_constructor=False)
    return Step(state, tuple(emitted), consumed=True)


def _next_declaration_line(ctx: LineContext) -> Optional[str]:
    for text in ctx.lines[ctx.index + 1:]:
        if is_skippable(text) or is_annotation_line(text):
            continue
        return text
    return None


def apply_field_injection(state: ScanState, ctx: LineContext) -> Step:
    if not ctx.info.is_field_injection:
        return Step(state)

    match = ctx.info.field
    if match is None:
        following = _next_declaration_line(ctx)
        match = match_field_declaration(following) if following is not None else None
    if match is None:
        return Step(state)

    entry = ctx.fields.get(match.name)
    if entry is None:
        return Step(state)
    return Step(state, (_field_injection(entry, InjectionMethod.FIELD_ANNOTATION),))


def apply_convention_constructor(state: ScanState, ctx: LineContext) -> Step:
    if not ctx.convention_constructor or ctx.info.field is None:
        return Step(state)
    if not is_final_instance_field(ctx.info.text):
        return Step(state)

    entry = ctx.fields.get(ctx.info.field.name)
    if entry is None:
        return Step(state)
    site = _field_injection(entry, InjectionMethod.CONVENTION_CONSTRUCTOR, target_line=entry.declaration_line)
    return Step(state, (site,))


def apply_field_boundary(state: ScanState, ctx: LineContext) -> Step:
    """A field declaration closes the annotation run above it."""
    if ctx.info.field is None or state.pending_bean_on_class or state.pending_bean_on_method:
        return Step(state)
    return Step(state.without_pending_annotations())


Rule = Callable[[ScanState, LineContext], Step]

RULES: Tuple[Rule, ...] = (
    apply_qualifier,
    apply_primary,
    apply_stereotype,
    apply_class_declaration,
    apply_factory_marker,
    apply_factory_method,
    apply_constructor_start,
    apply_constructor_arguments,
    apply_field_injection,
    apply_convention_constructor,
    apply_field_boundary,
)


class DeclarationScanner:
    """Line-oriented scanner producing bean definitions and injection sites."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings

    def scan(self, text: str) -> ScanResult:
        lines = text.split('\n')
        fields = build_field_table(lines)
        convention_constructor = has_convention_constructor_marker(text)
        builtin_types = set(self.settings.BUILTIN_TYPES)

        result = ScanResult(fields=fields)
        state = ScanState()

        for index, line in enumerate(lines):
            info = classify_line(line)
            if info.skip:
                continue

            ctx = LineContext(
                index=index,
                info=info,
                lines=lines,
                fields=fields,
                convention_constructor=convention_constructor,
                builtin_types=builtin_types,
            )
            state = self._apply_rules(state, ctx, result)

        # Pending annotations left at end of document are dropped
        result.class_name = state.current_class_name
        result.class_range = state.class_range
        result.class_line = state.class_line
        result.class_is_bean = state.class_is_bean

        logger.debug(f"Scan found {len(result.beans)} beans and {len(result.injections)} injection sites")
        return result

    @staticmethod
    def _apply_rules(state: ScanState, ctx: LineContext, result: ScanResult) -> ScanState:
        for rule in RULES:
            step = rule(state, ctx)
            state = step.state
            for item in step.emitted:
                if isinstance(item, BeanDefinition):
                    result.beans.append(item)
                else:
                    result.injections.append(item)
            if step.consumed:
                break
        return state


def scan_document(text: str, settings: Optional[Settings] = None) -> ScanResult:
    return DeclarationScanner(settings).scan(text)
