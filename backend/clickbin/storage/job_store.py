import json
import logging
from pathlib import Path

from clickbin.config import settings
from clickbin.models.job import Job, JobStatus

logger = logging.getLogger(__name__)

JOB_FILE = "job.json"


class JobStore:
    """Analysis jobs held in memory, mirrored to <jobs_dir>/<id>/job.json.

    Completed jobs are also indexed by request hash so an identical
    submission can copy their artifacts instead of recomputing.
    """

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}
        self._completed_by_hash: dict[str, str] = {}
        self.reload()

    def _path(self, job_id: str) -> Path:
        return settings.jobs_dir / job_id / JOB_FILE

    def _save(self, job: Job) -> Job:
        path = self._path(job.id)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(job.model_dump_json(indent=2))
        return job

    def _index(self, job: Job) -> None:
        if job.request_hash is None:
            return
        if job.status == JobStatus.complete:
            self._completed_by_hash.setdefault(job.request_hash, job.id)
        elif self._completed_by_hash.get(job.request_hash) == job.id:
            del self._completed_by_hash[job.request_hash]
            for other in self._jobs.values():
                if other.request_hash == job.request_hash and other.status == JobStatus.complete:
                    self._completed_by_hash[job.request_hash] = other.id
                    break

    def reload(self) -> None:
        """Re-read every job under the current jobs_dir, skipping unreadable ones."""
        self._jobs.clear()
        self._completed_by_hash.clear()
        if not settings.jobs_dir.exists():
            return
        for path in sorted(settings.jobs_dir.glob(f"*/{JOB_FILE}")):
            try:
                job = Job.model_validate_json(path.read_text())
            except (OSError, ValueError):
                logger.warning(f"Failed to load analysis job from {path}", exc_info=True)
                continue
            self._jobs[job.id] = job
            self._index(job)
        logger.debug(f"Loaded {len(self._jobs)} analysis jobs from {settings.jobs_dir}")

    def create(self, job: Job) -> Job:
        self._jobs[job.id] = job
        self._index(job)
        return self._save(job)

    def get(self, job_id: str) -> Job | None:
        return self._jobs.get(job_id)

    def update_status(
        self,
        job_id: str,
        status: JobStatus,
        progress: float = 0.0,
        error: str | None = None,
    ) -> Job | None:
        job = self._jobs.get(job_id)
        if job is None:
            return None
        job.status = status
        job.progress = progress
        if error is not None:
            job.error = error
        self._index(job)
        return self._save(job)

    def record_result(self, job_id: str, n_events: int, artifacts: list[str]) -> Job | None:
        """Mark a job complete with the artifacts written for it."""
        job = self._jobs.get(job_id)
        if job is None:
            return None
        job.n_events = n_events
        job.artifacts = list(artifacts)
        job.error = None
        return self.update_status(job_id, JobStatus.complete, progress=100)

    def reset(self, job_id: str) -> Job | None:
        """Return a job to pending with no results, ready to be rerun."""
        job = self._jobs.get(job_id)
        if job is None:
            return None
        job.n_events = 0
        job.artifacts = []
        job.error = None
        return self.update_status(job_id, JobStatus.pending)

    def find_by_request_hash(self, request_hash: str, exclude_id: str) -> Job | None:
        """A completed job for an identical request, other than exclude_id."""
        job_id = self._completed_by_hash.get(request_hash)
        if job_id is None or job_id == exclude_id:
            return None
        return self._jobs.get(job_id)

    def list_all(self) -> list[Job]:
        """All jobs, newest first."""
        return sorted(self._jobs.values(), key=lambda j: j.created_at or "", reverse=True)


job_store = JobStore()
