from enum import Enum
from typing import Optional, List

from pydantic import BaseModel, Field


class SourcePosition(BaseModel):
    line: int  # 0-indexed
    column: int


class SourceRange(BaseModel):
    start: SourcePosition
    end: SourcePosition  # exclusive

    @classmethod
    def on_line(cls, line: int, start_col: int, length: int) -> "SourceRange":
        return cls(
            start=SourcePosition(line=line, column=start_col),
            end=SourcePosition(line=line, column=start_col + length),
        )


class Location(BaseModel):
    file_id: str
    range: SourceRange


class FieldEntry(BaseModel):
    name: str
    type: str
    range: SourceRange
    declaration_line: int
    qualifier: Optional[str] = None


class BeanOrigin(str, Enum):
    STEREOTYPE_ANNOTATION = "stereotype_annotation"
    FACTORY_METHOD = "factory_method"
    EXTERNAL_CONFIGURATION = "external_configuration"


class InjectionMethod(str, Enum):
    FIELD_ANNOTATION = "field_annotation"
    CONSTRUCTOR_ARGUMENT = "constructor_argument"
    CONSTRUCTOR_MAPPED_TO_FIELD = "constructor_mapped_to_field"
    CONVENTION_CONSTRUCTOR = "convention_constructor"

    @property
    def label(self) -> str:
        return INJECTION_LABELS[self]


INJECTION_LABELS = {
    InjectionMethod.FIELD_ANNOTATION: "Field Injection (@Autowired)",
    InjectionMethod.CONSTRUCTOR_ARGUMENT: "Constructor Injection (Argument)",
    InjectionMethod.CONSTRUCTOR_MAPPED_TO_FIELD: "Constructor Injection (Mapped to Field)",
    InjectionMethod.CONVENTION_CONSTRUCTOR: "Lombok Constructor Injection",
}


class BeanDefinition(BaseModel):
    name: str
    produced_type: str
    range: SourceRange
    origin: BeanOrigin
    qualifier: Optional[str] = None
    is_primary: bool = False
    description: str


class InjectionSite(BaseModel):
    consumed_type: str
    variable_name: str
    range: SourceRange
    method: InjectionMethod
    target_line: Optional[int] = None
    qualifier: Optional[str] = None

    @property
    def lookup_line(self) -> int:
        """Line a go-to-bean request for this site should start from."""
        return self.target_line if self.target_line is not None else self.range.start.line


class ResolutionStatus(str, Enum):
    RESOLVED = "resolved"
    AMBIGUOUS = "ambiguous"
    UNRESOLVED = "unresolved"


class ResolutionResult(BaseModel):
    status: ResolutionStatus
    # For ambiguous results this is the first-seen candidate
    location: Optional[Location] = None
    candidates: List[Location] = Field(default_factory=list)
    message: Optional[str] = None

    @classmethod
    def resolved(cls, location: Location) -> "ResolutionResult":
        return cls(status=ResolutionStatus.RESOLVED, location=location, candidates=[location])

    @classmethod
    def ambiguous(cls, candidates: List[Location]) -> "ResolutionResult":
        return cls(status=ResolutionStatus.AMBIGUOUS, location=candidates[0], candidates=list(candidates))

    @classmethod
    def unresolved(cls, message: Optional[str] = None) -> "ResolutionResult":
        return cls(status=ResolutionStatus.UNRESOLVED, message=message)

    @property
    def is_resolved(self) -> bool:
        return self.status == ResolutionStatus.RESOLVED


class UsageResult(BaseModel):
    type_name: str
    qualifier: Optional[str] = None
    references: List[Location] = Field(default_factory=list)
    cancelled: bool = False
    message: Optional[str] = None


class DocumentAnalysis(BaseModel):
    document_id: str
    version: int
    beans: List[BeanDefinition] = Field(default_factory=list)
    injections: List[InjectionSite] = Field(default_factory=list)
    # Class names whose external definition lookup is still running
    pending_lookups: List[str] = Field(default_factory=list)


# HTTP request/response models

class AnalyzeRequest(BaseModel):
    document_id: str
    text: Optional[str] = None  # read from the workspace when omitted
    wait_for_external: bool = True


class AnalysisResponse(BaseModel):
    status: str  # "success" or "error"
    message: Optional[str] = None
    analysis: Optional[DocumentAnalysis] = None
    error_details: Optional[str] = None


class ResolveRequest(BaseModel):
    document_id: str
    type_name: str
    line: int
    qualifier: Optional[str] = None


class ImplementationRequest(BaseModel):
    document_id: str
    type_name: str
    line: int


class ResolutionResponse(BaseModel):
    status: str
    message: Optional[str] = None
    result: Optional[ResolutionResult] = None
    error_details: Optional[str] = None


class UsagesRequest(BaseModel):
    document_id: str
    type_name: str
    line: int
    qualifier: Optional[str] = None
    is_primary: bool = False


class UsageResponse(BaseModel):
    status: str
    message: Optional[str] = None
    usages: Optional[UsageResult] = None
    error_details: Optional[str] = None
