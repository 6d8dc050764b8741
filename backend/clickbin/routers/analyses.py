import asyncio
import json
import uuid
from datetime import UTC, datetime

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse

from clickbin.models.analysis import AnalysisRequest
from clickbin.models.job import Job, JobResponse, JobStatus
from clickbin.services.pipeline import request_hash, run_pipeline
from clickbin.storage.file_manager import ARTIFACTS, file_manager
from clickbin.storage.job_store import job_store

router = APIRouter(prefix="/api/analyses", tags=["analyses"])

# Hold references to background tasks so they aren't garbage-collected
_background_tasks: set[asyncio.Task] = set()


@router.post("/", response_model=JobResponse)
async def create_analysis(request: AnalysisRequest):
    """Create an analysis job and run the pipeline in the background."""
    if not request.clicks:
        raise HTTPException(status_code=422, detail="No clicks to analyse")

    job_id = str(uuid.uuid4())
    job = Job(
        id=job_id,
        title=request.title or f"{request.params.feature_name} analysis",
        feature_name=request.params.feature_name,
        bin_width=request.params.bin_width,
        n_clicks=len(request.clicks),
        request_hash=request_hash(request),
        created_at=datetime.now(UTC).isoformat(),
    )
    job_store.create(job)
    file_manager.request_path(job_id).write_text(request.model_dump_json())

    # Start pipeline in background
    task = asyncio.create_task(run_pipeline(job_id))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)

    return JobResponse(**job.model_dump())


@router.get("/", response_model=list[JobResponse])
async def list_analyses():
    """List all analysis jobs, sorted newest first."""
    jobs = job_store.list_all()
    return [JobResponse(**j.model_dump()) for j in jobs]


@router.get("/{job_id}", response_model=JobResponse)
async def get_analysis(job_id: str):
    """Get job status and progress."""
    job = job_store.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Analysis not found")
    return JobResponse(**job.model_dump())


@router.post("/{job_id}/rerun", response_model=JobResponse)
async def rerun_analysis(job_id: str):
    """Discard a job's results and recompute them from its stored request."""
    job = job_store.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Analysis not found")
    if job.status not in (JobStatus.complete, JobStatus.failed):
        raise HTTPException(status_code=409, detail=f"Analysis is still {job.status}")

    file_manager.clear_artifacts(job_id)
    job = job_store.reset(job_id)

    task = asyncio.create_task(run_pipeline(job_id, reuse=False))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)

    return JobResponse(**job.model_dump())


@router.get("/{job_id}/{artifact}")
async def get_artifact(job_id: str, artifact: str):
    """Return one result artifact: counts, distances, ordination or clusters."""
    if artifact not in ARTIFACTS:
        raise HTTPException(status_code=404, detail=f"Unknown artifact: {artifact}")

    job = job_store.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Analysis not found")

    path = file_manager.artifact_path(job_id, artifact)
    if not path.exists():
        raise HTTPException(status_code=404, detail=f"{artifact} not ready")

    return JSONResponse(json.loads(path.read_text()))
