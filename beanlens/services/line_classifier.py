import re
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

# Annotation patterns recognised on a single source line
STEREOTYPE_PATTERN = re.compile(r'@(?:Component|Service|Repository|Controller|RestController|Configuration)\b')
FACTORY_PATTERN = re.compile(r'@Bean\b')
PRIMARY_PATTERN = re.compile(r'@Primary\b')
FIELD_INJECTION_PATTERN = re.compile(r'@(?:Autowired|Inject|Resource)\b')
CONSTRUCTOR_INJECTION_PATTERN = re.compile(r'@(?:Autowired|Inject)\b')
USAGE_INJECTION_PATTERN = re.compile(r'@(?:Autowired|Inject|Resource|Value)\b')
QUALIFIER_PATTERN = re.compile(r'@Qualifier\s*\(\s*"([^"]+)"\s*\)')
CONVENTION_CONSTRUCTOR_PATTERN = re.compile(r'@(?:RequiredArgsConstructor|AllArgsConstructor)\b')

# Declaration patterns
CLASS_PATTERN = re.compile(r'\b(?:class|interface)\s+(\w+)')
FIELD_PATTERN = re.compile(r'(?:private|protected|public)?\s+(?:final\s+)?([\w<>]+)\s+(\w+)\s*;')
METHOD_PATTERN = re.compile(
    r'^(?!\s*(?:return|new|throw|else|if|for|while|switch|catch)\b)\s*'
    r'(?:@\w+(?:\([^)]*\))?\s+)*'
    r'(?:public|protected|private|static|final|synchronized|\s)*'
    r'([\w<>\[\].]+)\s+(\w+)\s*\('
)
ARGUMENT_PATTERN = re.compile(r'\b([A-Z][\w<>]*)\s+(\w+)\b')

# Type tokens that look like a field type but belong to other statements
NON_TYPE_TOKENS = {'return', 'class'}

COMMENT_PREFIXES = ('//', '/*', '*')


@dataclass(frozen=True)
class FieldMatch:
    type: str
    name: str
    type_column: int


@dataclass(frozen=True)
class MethodMatch:
    return_type: str
    name: str
    name_column: int


@dataclass(frozen=True)
class LineInfo:
    """Everything the scanners need to know about one physical line."""
    text: str
    trimmed: str
    skip: bool
    qualifier: Optional[str] = None
    is_primary: bool = False
    is_stereotype: bool = False
    is_factory: bool = False
    is_field_injection: bool = False
    class_name: Optional[str] = None
    class_column: int = -1
    field: Optional[FieldMatch] = None
    method: Optional[MethodMatch] = None


def is_comment(text: str) -> bool:
    return text.strip().startswith(COMMENT_PREFIXES)


def is_skippable(text: str) -> bool:
    trimmed = text.strip()
    return not trimmed or trimmed.startswith(COMMENT_PREFIXES)


def is_annotation_line(text: str) -> bool:
    return text.strip().startswith('@')


def extract_qualifier(text: str) -> Optional[str]:
    match = QUALIFIER_PATTERN.search(text)
    return match.group(1) if match else None


def has_qualifier_marker(text: str) -> bool:
    return '@Qualifier' in text


def has_primary_marker(text: str) -> bool:
    return bool(PRIMARY_PATTERN.search(text))


def has_stereotype_marker(text: str) -> bool:
    return bool(STEREOTYPE_PATTERN.search(text))


def has_factory_marker(text: str) -> bool:
    return bool(FACTORY_PATTERN.search(text))


def has_injection_marker(text: str) -> bool:
    return bool(FIELD_INJECTION_PATTERN.search(text))


def has_constructor_injection_marker(text: str) -> bool:
    return bool(CONSTRUCTOR_INJECTION_PATTERN.search(text))


def has_usage_injection_marker(text: str) -> bool:
    return bool(USAGE_INJECTION_PATTERN.search(text))


def has_convention_constructor_marker(text: str) -> bool:
    return bool(CONVENTION_CONSTRUCTOR_PATTERN.search(text))


def match_class_declaration(text: str) -> Optional[Tuple[str, int]]:
    """Return (class name, column) for a class/interface declaration."""
    match = CLASS_PATTERN.search(text)
    if not match:
        return None
    return match.group(1), match.start(1)


def match_field_declaration(text: str) -> Optional[FieldMatch]:
    match = FIELD_PATTERN.search(text)
    if not match:
        return None
    field_type, name = match.group(1), match.group(2)
    if field_type in NON_TYPE_TOKENS:
        return None
    return FieldMatch(type=field_type, name=name, type_column=match.start(1))


def match_method_declaration(text: str) -> Optional[MethodMatch]:
    match = METHOD_PATTERN.search(text)
    if not match:
        return None
    return MethodMatch(return_type=match.group(1), name=match.group(2), name_column=match.start(2))


def is_constructor_declaration(text: str, class_name: str) -> bool:
    if not class_name:
        return False
    pattern = r'(?:^|[\s)])(?:(?:public|protected|private)\s+)?' + re.escape(class_name) + r'\s*\('
    return bool(re.search(pattern, text)) and 'new ' + class_name not in text


def qualifier_before_column(text: str, column: int) -> Optional[str]:
    """
    Qualifier of the `Type name` pair whose type starts at `column`.

    Only annotations after the previous pair on the line count, so each
    parameter of a one-line signature keeps its own qualifier.
    """
    lower = 0
    for match in ARGUMENT_PATTERN.finditer(text, 0, column):
        lower = match.end()
    found = None
    for match in QUALIFIER_PATTERN.finditer(text, lower, column):
        found = match.group(1)
    return found


def declares_variable(text: str) -> bool:
    """True when the line holds a field declaration or a `Type name` pair."""
    return bool(ARGUMENT_PATTERN.search(text)) or match_field_declaration(text) is not None


def iter_argument_tokens(text: str) -> Iterator[Tuple[str, str, int]]:
    """Yield (type, name, column) for every `Type name` pair on the line."""
    for match in ARGUMENT_PATTERN.finditer(text):
        yield match.group(1), match.group(2), match.start(1)


def is_final_instance_field(text: str) -> bool:
    return bool(re.search(r'\bfinal\b', text)) and not re.search(r'\bstatic\b', text)


def classify_line(text: str) -> LineInfo:
    trimmed = text.strip()
    if is_skippable(text):
        return LineInfo(text=text, trimmed=trimmed, skip=True)

    class_match = match_class_declaration(text)
    return LineInfo(
        text=text,
        trimmed=trimmed,
        skip=False,
        qualifier=extract_qualifier(text),
        is_primary=has_primary_marker(text),
        is_stereotype=has_stereotype_marker(text),
        is_factory=has_factory_marker(text),
        is_field_injection=has_injection_marker(text),
        class_name=class_match[0] if class_match else None,
        class_column=class_match[1] if class_match else -1,
        field=match_field_declaration(text),
        method=match_method_declaration(text),
    )
