from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from fastapi.responses import JSONResponse
from testtracker.core.config import settings
from testtracker.core.exceptions import TrackerError
from testtracker.api.api import api_router
from testtracker.core.logging import get_logger
import os

logger = get_logger("main")

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json"
)

# Set all CORS enabled origins
if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(TrackerError)
async def tracker_error_handler(request: Request, exc: TrackerError):
    logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message},
    )


app.include_router(api_router, prefix=settings.API_V1_STR)

# Submitted result workbooks are downloadable once the folder exists
if os.path.isdir(settings.RESULTS_DIR):
    app.mount("/results", StaticFiles(directory=settings.RESULTS_DIR), name="results")


@app.get("/health")
def health():
    return {"status": "OK", "message": "Backend is running!"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
