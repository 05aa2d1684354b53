import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Request, Response, UploadFile

from veo_generator.config import settings
from veo_generator.models.schemas import PromptRequest, SessionStateResponse, VideoRequest
from veo_generator.services.blob_store import BlobNotFoundError, BlobStore
from veo_generator.services.image_encoding import ImageEncodingError
from veo_generator.ui.session import GenerationSession, PromptValidationError, SessionBusyError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def get_session(request: Request) -> GenerationSession:
    return request.app.state.session


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


def _state_response(session: GenerationSession) -> SessionStateResponse:
    return SessionStateResponse(**session.snapshot())


@router.get("/session", response_model=SessionStateResponse)
def get_session_state(session: GenerationSession = Depends(get_session)):
    return _state_response(session)


@router.put("/session/prompt", response_model=SessionStateResponse)
def update_prompt(payload: PromptRequest, session: GenerationSession = Depends(get_session)):
    try:
        session.set_prompt(payload.prompt)
    except SessionBusyError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _state_response(session)


@router.post("/session/image", response_model=SessionStateResponse)
def upload_image(image: UploadFile = File(...), session: GenerationSession = Depends(get_session)):
    if image.size is not None and image.size > settings.max_image_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"Image too large. Maximum {settings.max_image_bytes // (1024 * 1024)} MB.",
        )

    try:
        session.select_image(image.file, media_type=image.content_type, filename=image.filename)
    except ImageEncodingError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except SessionBusyError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _state_response(session)


@router.delete("/session/image", response_model=SessionStateResponse)
def remove_image(session: GenerationSession = Depends(get_session)):
    try:
        session.clear_image()
    except SessionBusyError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _state_response(session)


@router.post("/session/generate", response_model=SessionStateResponse, status_code=202)
def generate_video(payload: Optional[VideoRequest] = None, session: GenerationSession = Depends(get_session)):
    try:
        if payload is not None and payload.prompt is not None:
            session.set_prompt(payload.prompt)
        session.submit()
    except PromptValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except SessionBusyError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _state_response(session)


@router.post("/session/reset", response_model=SessionStateResponse)
def reset_session(session: GenerationSession = Depends(get_session)):
    try:
        session.reset()
    except SessionBusyError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _state_response(session)


@router.get("/blobs/{blob_id}")
def get_blob(blob_id: str, blob_store: BlobStore = Depends(get_blob_store)):
    try:
        blob = blob_store.get(blob_id)
    except BlobNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return Response(content=blob.data, media_type=blob.media_type)


@router.get("/health")
def health_check():
    return {"status": "ok"}
