import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from meetball.data.meeting_repository import MeetingRepository, get_meeting_repository
from meetball.schemas.meeting import (
    MeetingDocument,
    MeetingExistsResponse,
    MeetingResponse,
)
from meetball.services.errors import MeetingAlreadyExistsError, MeetingNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/meetings", tags=["meetings"])


@router.get("/{slug}", response_model=MeetingDocument)
def get_meeting(
    slug: str, repository: MeetingRepository = Depends(get_meeting_repository)
):
    document = repository.get_meeting(slug)
    if document is None:
        raise HTTPException(status_code=404, detail="Meeting not found")
    return document


@router.get("/{slug}/exists", response_model=MeetingExistsResponse)
def meeting_exists(
    slug: str, repository: MeetingRepository = Depends(get_meeting_repository)
):
    return MeetingExistsResponse(slug=slug, exists=repository.meeting_exists(slug))


@router.put(
    "/{slug}",
    response_model=MeetingDocument,
    status_code=status.HTTP_201_CREATED,
)
def create_meeting(
    slug: str,
    document: MeetingDocument,
    repository: MeetingRepository = Depends(get_meeting_repository),
):
    if document.slug != slug:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Slug in path and body must match",
        )
    try:
        return repository.create_meeting(document)
    except MeetingAlreadyExistsError as exc:
        raise HTTPException(status_code=409, detail=exc.message) from exc


@router.get("/{slug}/responses", response_model=List[MeetingResponse])
def list_responses(
    slug: str, repository: MeetingRepository = Depends(get_meeting_repository)
):
    if not repository.meeting_exists(slug):
        raise HTTPException(status_code=404, detail="Meeting not found")
    return repository.list_responses(slug)


@router.put(
    "/{slug}/responses/{response_id}",
    response_model=MeetingResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_response(
    slug: str,
    response_id: str,
    response: MeetingResponse,
    repository: MeetingRepository = Depends(get_meeting_repository),
):
    if response.id != response_id:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Response id in path and body must match",
        )
    try:
        return repository.add_response(slug, response)
    except MeetingNotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message) from exc
