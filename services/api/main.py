"""FastAPI application for in-app data imports.

Production-ready API with:
- Health and readiness checks for Kubernetes
- Harvest CSV upload import
- Harvest API import
- Structured error responses
- Prometheus metrics for monitoring

Based on FastAPI best practices:
https://fastapi.tiangolo.com/
"""

import logging
import time
from collections.abc import AsyncIterator

from fastapi import Depends, FastAPI, File, HTTPException, Request, Response, UploadFile, status
from pydantic import BaseModel

from services.api import metrics
from services.importer.report import ImportReport
from services.importer.runner import run_import
from services.shared.config import get_settings
from services.sources.base import SourceAdapter, SourceFormatError
from services.sources.harvest_api import HarvestApiSource
from services.sources.harvest_csv import HarvestCsvSource
from services.store.base import RecordStore, StoreError, StoreUnavailableError
from services.store.pocketbase import PocketBaseStore

logger = logging.getLogger(__name__)

settings = get_settings()
app = FastAPI(
    title="Yield Invoicing",
    description="Self-hosted invoicing API: data imports from Harvest",
    version=settings.service_version,
)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Middleware to collect request metrics.

    Tracks:
    - Request count by method, endpoint, and status
    - Request duration by method and endpoint
    """
    # Skip metrics for /metrics endpoint itself
    if request.url.path == "/metrics":
        return await call_next(request)

    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    metrics.http_requests_total.labels(
        method=request.method,
        endpoint=request.url.path,
        status=response.status_code,
    ).inc()

    metrics.http_request_duration_seconds.labels(
        method=request.method,
        endpoint=request.url.path,
    ).observe(duration)

    return response


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    service: str


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool


class ImportResponse(BaseModel):
    """Import run response."""

    success: bool
    report: ImportReport


async def get_record_store() -> AsyncIterator[RecordStore]:
    """Provide a PocketBase store, authenticated when superuser credentials are set."""
    store = PocketBaseStore(settings)
    try:
        if settings.pb_admin_email and settings.pb_admin_password:
            try:
                await store.authenticate(settings.pb_admin_email, settings.pb_admin_password)
            except StoreError as e:
                raise HTTPException(
                    status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                    detail=f"Cannot authenticate with PocketBase at {settings.pb_url}: {e}",
                ) from e
        yield store
    finally:
        await store.aclose()


def get_harvest_source() -> SourceAdapter:
    """Provide the Harvest API source configured from settings."""
    try:
        return HarvestApiSource(settings)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e


async def _run(source: SourceAdapter, store: RecordStore) -> ImportResponse:
    """Run an import and translate fatal errors into HTTP errors."""
    start_time = time.time()
    try:
        report = await run_import(source, store, settings)
    except SourceFormatError as e:
        metrics.import_runs_total.labels(source=source.source_name, status="rejected").inc()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except StoreUnavailableError as e:
        metrics.import_runs_total.labels(source=source.source_name, status="unavailable").inc()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=(
                f"Cannot reach PocketBase at {settings.pb_url}. "
                "Make sure it is running and the schema has been imported."
            ),
        ) from e
    except Exception as e:
        metrics.import_runs_total.labels(source=source.source_name, status="failed").inc()
        logger.exception(f"Import from {source.source_name} failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Import failed: {e}",
        ) from e

    metrics.import_duration_seconds.labels(source=source.source_name).observe(
        time.time() - start_time
    )
    metrics.import_runs_total.labels(source=source.source_name, status="completed").inc()
    metrics.record_report(report)
    logger.info(f"Import from {source.source_name} finished: {report.summary()}")

    return ImportResponse(success=True, report=report)


@app.get("/health", response_model=HealthResponse, tags=["Health"])
def health_check() -> HealthResponse:
    """Health check endpoint for liveness probe.

    Returns:
        Health status information
    """
    return HealthResponse(
        status="healthy", version=settings.service_version, service=settings.service_name
    )


@app.get("/ready", response_model=ReadinessResponse, tags=["Health"])
async def readiness_check(
    store: RecordStore = Depends(get_record_store),  # noqa: B008
) -> ReadinessResponse:
    """Readiness check endpoint: ready when the record store answers.

    Returns:
        Readiness status
    """
    return ReadinessResponse(ready=await store.health_check())


@app.get("/metrics", tags=["Monitoring"])
def get_metrics() -> Response:
    """Prometheus metrics endpoint.

    Returns:
        Prometheus metrics in text format
    """
    metrics_data, content_type = metrics.get_metrics()
    return Response(content=metrics_data, media_type=content_type)


@app.post("/api/v1/imports/harvest-csv", response_model=ImportResponse, tags=["Imports"])
async def import_harvest_csv(
    csv_file: UploadFile = File(  # noqa: B008
        ..., alias="csv", description="Harvest invoice report export (.csv)"
    ),
    store: RecordStore = Depends(get_record_store),  # noqa: B008
) -> ImportResponse:
    """Import clients and invoices from a Harvest invoice report.

    Re-uploading the same report is safe: existing clients are matched by
    name and invoices whose number already exists are skipped.

    ## Usage

    ```bash
    curl -X POST "http://localhost:8000/api/v1/imports/harvest-csv" \\
      -F "csv=@harvest_invoices.csv"
    ```

    ## Error Handling

    - Returns 400 if the file is not a CSV, unreadable, empty, or not a Harvest report
    - Returns 503 if PocketBase is unreachable
    - Returns 200 with per-row skips and failures in the report otherwise

    Args:
        csv_file: Uploaded CSV export
        store: Target record store

    Returns:
        Import report

    Raises:
        HTTPException: If the upload is rejected or the store is unreachable
    """
    if not csv_file.filename or not csv_file.filename.endswith(".csv"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please select a Harvest CSV export file (.csv).",
        )

    try:
        text = (await csv_file.read()).decode("utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Could not read the uploaded file."
        ) from e

    return await _run(HarvestCsvSource(text, name=csv_file.filename), store)


@app.post("/api/v1/imports/harvest-api", response_model=ImportResponse, tags=["Imports"])
async def import_harvest_api(
    source: SourceAdapter = Depends(get_harvest_source),  # noqa: B008
    store: RecordStore = Depends(get_record_store),  # noqa: B008
) -> ImportResponse:
    """Import clients, contacts' emails and invoices from the Harvest API.

    Requires APP_HARVEST_ACCOUNT_ID and APP_HARVEST_ACCESS_TOKEN.

    Returns:
        Import report
    """
    return await _run(source, store)
