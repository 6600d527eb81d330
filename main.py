import logging

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

# Load environment variables from .env file
load_dotenv()

from app.config import Settings, get_settings, log_startup_status
from app.models import ValidationErrorResponse, field_errors_from_pydantic
from app.routers import ringtones_router
from app.utils.logging_utils import get_request_logger, setup_logger


settings = get_settings()
logger = setup_logger(log_level=getattr(logging, settings.log_level.upper(), logging.INFO))
log_startup_status(settings, get_request_logger("startup", logger))

app = FastAPI(title="RingPing API")

# CORS configuration
app.add_middleware(CORSMiddleware,
    allow_origins=[settings.allowed_origin],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Invalid input is a 400 with one entry per offending field."""
    body = ValidationErrorResponse(errors=field_errors_from_pydantic(exc.errors()))
    return JSONResponse(status_code=400, content=body.model_dump())


app.include_router(ringtones_router)

# Generated ringtones: /downloads/{userId}/{fileName}.{ext}
app.mount("/downloads", StaticFiles(directory=settings.downloads_dir), name="downloads")


@app.get("/")
async def root(settings: Settings = Depends(get_settings)):
    return {
        "message": "Welcome to the RingPing API. POST /ringtones/video-info, then POST /ringtones to cut a ringtone.",
        "server_base_url": settings.server_base_url,
    }


@app.get("/health")
async def health():
    return {"status": "OK"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="::", port=8000)
