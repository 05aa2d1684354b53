from typing import Literal, Optional

from pydantic import BaseModel, Field


class PromptRequest(BaseModel):
    prompt: str = Field(..., description="Text prompt describing the video")


class VideoRequest(BaseModel):
    prompt: Optional[str] = Field(
        default=None, description="Text prompt for Veo; the stored prompt is used when omitted"
    )


class SessionStateResponse(BaseModel):
    state: Literal["idle", "loading", "error", "ready"]
    prompt: str = ""
    status_message: Optional[str] = None
    error: Optional[str] = None
    video_url: Optional[str] = None
    image_preview_url: Optional[str] = None
    can_submit: bool = False
