from fastapi import APIRouter, Depends, HTTPException, status
from ..core.config import settings
from ..models.bean_models import (
    AnalyzeRequest,
    AnalysisResponse,
    ImplementationRequest,
    ResolutionResponse,
    ResolveRequest,
    UsageResponse,
    UsagesRequest,
)
from ..services.bean_navigator import BeanNavigator
from ..services.workspace import Workspace
import asyncio
import logging
from functools import lru_cache

router = APIRouter(
    prefix="/api/beans",
    tags=["Beans"],
)

logger = logging.getLogger(__name__)


@lru_cache()
def get_workspace() -> Workspace:
    return Workspace(settings.WORKSPACE_ROOT, settings)


@lru_cache()
def get_navigator() -> BeanNavigator:
    return BeanNavigator.for_workspace(settings.WORKSPACE_ROOT, settings)


def _ensure_document(workspace: Workspace, document_id: str) -> None:
    try:
        workspace.resolve_path(document_id)
    except FileNotFoundError as e:
        logger.error(f"Document not found: {document_id}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )


@router.post("/analyze", response_model=AnalysisResponse, status_code=status.HTTP_200_OK)
async def analyze_document(request: AnalyzeRequest,
                           workspace: Workspace = Depends(get_workspace),
                           navigator: BeanNavigator = Depends(get_navigator)):
    """
    Returns the bean definitions and injection sites of a workspace document.
    Uses the supplied text when given (unsaved editor contents), else the file on disk.
    """
    try:
        text = request.text
        if text is None:
            _ensure_document(workspace, request.document_id)
            text = await asyncio.to_thread(workspace.read_text, request.document_id)

        logger.info(f"Analyzing document: {request.document_id}")
        analysis = await navigator.analyze(request.document_id, text)

        if request.wait_for_external and analysis.pending_lookups:
            await navigator.wait_for_lookups(request.document_id)
            analysis = await navigator.analyze(request.document_id, text, analysis.version)

        return AnalysisResponse(
            status="success",
            message=f"Found {len(analysis.beans)} beans and {len(analysis.injections)} injection points",
            analysis=analysis,
        )
    except HTTPException:
        # Re-raise HTTP exceptions
        raise
    except Exception as e:
        logger.error(f"Unexpected error analyzing {request.document_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"An unexpected error occurred: {str(e)}"
        )


@router.post("/resolve", response_model=ResolutionResponse, status_code=status.HTTP_200_OK)
async def resolve_bean(request: ResolveRequest,
                       workspace: Workspace = Depends(get_workspace),
                       navigator: BeanNavigator = Depends(get_navigator)):
    """
    Finds the bean definition an injection site binds to ("Open Bean Config").
    """
    _ensure_document(workspace, request.document_id)
    try:
        if navigator.session(request.document_id).scan is None:
            text = await asyncio.to_thread(workspace.read_text, request.document_id)
            await navigator.analyze(request.document_id, text)

        result = await navigator.go_to_bean(
            request.document_id, request.line, request.type_name, request.qualifier
        )
        return ResolutionResponse(status="success", message=result.message, result=result)
    except Exception as e:
        logger.error(f"Unexpected error resolving {request.type_name}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"An unexpected error occurred: {str(e)}"
        )


@router.post("/implementation", response_model=ResolutionResponse, status_code=status.HTTP_200_OK)
async def find_implementation(request: ImplementationRequest,
                              workspace: Workspace = Depends(get_workspace),
                              navigator: BeanNavigator = Depends(get_navigator)):
    """
    Finds the class implementing a type ("Open Class").
    """
    _ensure_document(workspace, request.document_id)
    try:
        result = await navigator.go_to_class(request.document_id, request.line, request.type_name)
        return ResolutionResponse(status="success", message=result.message, result=result)
    except Exception as e:
        logger.error(f"Unexpected error finding implementation of {request.type_name}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"An unexpected error occurred: {str(e)}"
        )


@router.post("/usages", response_model=UsageResponse, status_code=status.HTTP_200_OK)
async def find_bean_usages(request: UsagesRequest,
                           workspace: Workspace = Depends(get_workspace),
                           navigator: BeanNavigator = Depends(get_navigator)):
    """
    Lists the injection points consuming a bean ("Find Usages").
    """
    _ensure_document(workspace, request.document_id)
    try:
        usages = await navigator.find_bean_usages(
            request.document_id, request.line, request.type_name, request.qualifier, request.is_primary
        )
        message = usages.message or f"Found {len(usages.references)} injection points for {request.type_name}"
        return UsageResponse(status="success", message=message, usages=usages)
    except Exception as e:
        logger.error(f"Unexpected error finding usages of {request.type_name}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"An unexpected error occurred: {str(e)}"
        )
