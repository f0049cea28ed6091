"""Parse submission and job polling endpoints."""

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, File, Header, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from services.extraction import ItemExtractor, OCRProvider, PlainTextOCRProvider
from services.parse_jobs.manager import ParseJobManager
from services.parse_jobs.registry import ParseJobRegistry
from shared.enums import Industry
from shared.models import (
    APIResponse,
    JobStatusResponse,
    ParseAcceptedResponse,
    ParsedItem,
    TextParseRequest,
)
from shared.utils import config, setup_logging

logger = setup_logging("parse-service")

DEFAULT_SYNC_MAX_BYTES = 2 * 1024 * 1024
KNOWN_INDUSTRIES = {industry.value for industry in Industry}


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await registry.close()


app = FastAPI(
    title="Parse Service",
    description="Item extraction from free text and uploaded files, with background jobs for large inputs",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.get("allowed_origins", ["*"]),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

extractor = ItemExtractor()
ocr_provider: OCRProvider = PlainTextOCRProvider()
registry = ParseJobRegistry()


def sync_max_bytes() -> int:
    return int(config.get_pipeline_value("parse.sync_max_bytes", DEFAULT_SYNC_MAX_BYTES))


def get_job_manager(x_tenant_id: str = Header(default="default")) -> ParseJobManager:
    """Resolve the tenant's manager; the service keeps one lease per tenant until shutdown."""
    return registry.get(x_tenant_id) or registry.acquire(x_tenant_id)


def _check_industry(industry: str) -> None:
    if industry not in KNOWN_INDUSTRIES:
        logger.warning(f"Parsing requested for industry: {industry} (not in standard list, but allowing)")


@app.get("/health")
async def health_check():
    return APIResponse(message="Parse Service is healthy")


@app.post("/{industry}/parse", response_model=list[ParsedItem])
async def parse_text(industry: str, request: TextParseRequest) -> list[ParsedItem]:
    """Parse free text inline using AI extraction with heuristic fallback."""
    _check_industry(industry)
    if not request.text.strip():
        return []
    try:
        return await extractor.extract_ai(request.text)
    except Exception as e:
        logger.error(f"Parse route error: {e!s}")
        raise HTTPException(status_code=500, detail="Failed to parse") from e


@app.post("/{industry}/parse/file")
async def parse_file(
    industry: str,
    file: UploadFile | None = File(default=None),
    manager: ParseJobManager = Depends(get_job_manager),
):
    """Parse an uploaded text file inline when small, otherwise as a background job."""
    _check_industry(industry)
    if file is None:
        raise HTTPException(status_code=400, detail="No file uploaded")

    try:
        data = await file.read()
        text = data.decode("utf-8", errors="replace")

        if len(data) <= sync_max_bytes():
            return [item.model_dump(mode="json") for item in extractor.extract(text)]

        job = await manager.create_job_from_buffer_text(text)
        accepted = ParseAcceptedResponse(job_id=job.job_id)
        return JSONResponse(status_code=202, content=accepted.model_dump())
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"File parse error: {e!s}")
        raise HTTPException(status_code=500, detail="Failed to parse file") from e


@app.post("/{industry}/parse/image", response_model=list[ParsedItem])
async def parse_image(industry: str, file: UploadFile | None = File(default=None)) -> list[ParsedItem]:
    """Run OCR on an uploaded image and parse the recognized text."""
    _check_industry(industry)
    if file is None:
        raise HTTPException(status_code=400, detail="No file uploaded")

    try:
        text = await ocr_provider.extract_text(await file.read(), file.filename)
        if not text.strip():
            return []
        return await extractor.extract_ai(text)
    except Exception as e:
        logger.error(f"Image parse error: {e!s}")
        raise HTTPException(status_code=500, detail="Failed to parse image") from e


@app.get("/{industry}/parse/jobs/{job_id}", response_model=JobStatusResponse)
async def get_job_status(
    industry: str,
    job_id: str,
    manager: ParseJobManager = Depends(get_job_manager),
) -> JobStatusResponse:
    """Poll a parse job; repeated calls have no side effects."""
    _check_industry(industry)
    try:
        job = await manager.get_job(job_id)
    except Exception as e:
        logger.error(f"Job status error: {e!s}")
        raise HTTPException(status_code=500, detail="Failed") from e

    if job is None:
        raise HTTPException(status_code=404, detail="Not found")
    return job.to_status_response()


if __name__ == "__main__":
    try:
        import uvicorn
    except ImportError as e:
        raise RuntimeError("uvicorn must be installed to run this service.") from e
    uvicorn.run(app, host="0.0.0.0", port=8000)
