import asyncio
import hashlib
import json
import logging
import shutil
from collections.abc import Callable, Sequence

import numpy as np

from clickbin.models.analysis import AnalysisParams, AnalysisRequest, AnalysisResult
from clickbin.models.click import ClickRecord
from clickbin.models.job import JobStatus
from clickbin.services.density_clustering import cluster_events
from clickbin.services.dissimilarity import dissimilarity_matrix
from clickbin.services.event_binner import bin_events
from clickbin.services.ordination import ordinate
from clickbin.services.preprocessing import (
    event_species,
    log_transform,
    sample_clicks,
    select_features,
)
from clickbin.storage.file_manager import file_manager
from clickbin.storage.job_store import job_store

logger = logging.getLogger(__name__)

# (status, progress) callback so the job runner can report each stage
StageCallback = Callable[[JobStatus, float], None]


def request_hash(request: AnalysisRequest) -> str:
    """SHA-256 over the clicks and params (title excluded)."""
    payload = request.model_dump(mode="json", exclude={"title"})
    return hashlib.sha256(json.dumps(payload, sort_keys=True).encode()).hexdigest()


def run_analysis(
    clicks: Sequence[ClickRecord],
    params: AnalysisParams,
    on_stage: StageCallback | None = None,
) -> AnalysisResult:
    """Preprocess, bin, compute dissimilarities, ordinate and cluster."""

    def stage(status: JobStatus, progress: float) -> None:
        if on_stage is not None:
            on_stage(status, progress)

    rng = np.random.default_rng(params.seed)

    # --- Preprocess ---
    clicks = select_features(clicks, [params.feature_name])
    if params.log_transform:
        clicks = log_transform(clicks, [params.feature_name], offset=params.log_offset)
    if params.sample_per_event is not None:
        clicks = sample_clicks(clicks, params.sample_per_event, rng)
    species = event_species(clicks)

    # --- Bin ---
    stage(JobStatus.binning, 10)
    counts = bin_events(
        clicks,
        params.feature_name,
        params.bin_width,
        range_start=params.range_start,
        range_end=params.range_end,
        out_of_range=params.out_of_range,
    )
    logger.info(
        f"Binned {counts.total_clicks} clicks into {len(counts.event_ids)} events "
        f"x {counts.n_bins} bins ({counts.total_excluded} excluded)"
    )

    # --- Dissimilarity ---
    stage(JobStatus.computing_distances, 35)
    distances = dissimilarity_matrix(counts, metric=params.metric, binary=params.binary)

    # --- Ordination ---
    stage(JobStatus.ordinating, 55)
    ordination = ordinate(
        distances,
        n_components=params.n_components,
        metric=params.metric_mds,
        n_init=params.n_init,
        max_iter=params.max_iter,
        random_state=params.seed,
    )

    # --- Density clustering ---
    stage(JobStatus.clustering, 80)
    clustering = cluster_events(
        distances, eps=params.eps, min_samples=params.min_samples, species=species
    )

    return AnalysisResult(
        counts=counts,
        distances=distances,
        ordination=ordination,
        clustering=clustering,
    )


def save_result(job_id: str, result: AnalysisResult) -> list[str]:
    """Write each result artifact as JSON; returns the artifact names written."""
    artifacts = {
        "counts": result.counts,
        "distances": result.distances,
        "ordination": result.ordination,
        "clusters": result.clustering,
    }
    for name, model in artifacts.items():
        file_manager.artifact_path(job_id, name).write_text(
            json.dumps(model.model_dump(mode="json"), indent=2)
        )
    return list(artifacts)


async def run_pipeline(job_id: str, reuse: bool = True) -> None:
    """Run the full analysis for a stored job.

    With reuse, a completed job with the same request hash donates its
    artifacts instead of the analysis being recomputed.
    """
    try:
        job = job_store.get(job_id)
        if job is None:
            return

        request_path = file_manager.request_path(job_id)
        request = AnalysisRequest.model_validate_json(
            await asyncio.to_thread(request_path.read_text)
        )

        # Reuse artifacts from a finished job with an identical request
        existing_job = None
        if reuse and job.request_hash:
            existing_job = job_store.find_by_request_hash(job.request_hash, exclude_id=job_id)

        if existing_job:
            logger.info(f"Reusing artifacts from job {existing_job.id} (same request hash)")
            for name in existing_job.artifacts:
                src = file_manager.artifact_path(existing_job.id, name)
                dst = file_manager.artifact_path(job_id, name)
                await asyncio.to_thread(shutil.copy2, src, dst)
            job_store.record_result(job_id, existing_job.n_events, existing_job.artifacts)
        else:
            def on_stage(status: JobStatus, progress: float) -> None:
                job_store.update_status(job_id, status, progress=progress)

            logger.info(f"Analysing {len(request.clicks)} clicks for job {job_id}")
            result = await asyncio.to_thread(
                run_analysis, request.clicks, request.params, on_stage
            )
            written = await asyncio.to_thread(save_result, job_id, result)
            job_store.record_result(job_id, len(result.counts.event_ids), written)

        logger.info(f"Analysis job {job_id} complete!")

    except Exception as e:
        logger.exception(f"Pipeline failed for job {job_id}")
        job_store.update_status(job_id, JobStatus.failed, error=str(e))
