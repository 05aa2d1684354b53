from pathlib import Path

import logging
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from veo_generator.api.routes import router as api_router
from veo_generator.config import settings
from veo_generator.logging_config import configure_logging
from veo_generator.services.blob_store import BlobStore
from veo_generator.services.video_service import build_video_service
from veo_generator.ui.session import GenerationSession
from veo_generator.ui.ticker import StatusTicker

logger = logging.getLogger(__name__)

configure_logging(settings.log_level)

app = FastAPI(title="Veo Video Generator", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:8000", "http://127.0.0.1:8000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)

app.state.blob_store = BlobStore()
app.state.session = GenerationSession(
    generator=build_video_service(app.state.blob_store),
    blob_store=app.state.blob_store,
    ticker=StatusTicker(interval=settings.status_message_interval_seconds),
)

frontend_path = Path(__file__).resolve().parent / "frontend"
app.mount("/static", StaticFiles(directory=str(frontend_path)), name="static")


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/", include_in_schema=False)
async def serve_index():
    return FileResponse(frontend_path / "index.html")
