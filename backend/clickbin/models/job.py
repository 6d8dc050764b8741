from enum import StrEnum

from pydantic import BaseModel


class JobStatus(StrEnum):
    pending = "pending"
    binning = "binning"
    computing_distances = "computing_distances"
    ordinating = "ordinating"
    clustering = "clustering"
    complete = "complete"
    failed = "failed"


class Job(BaseModel):
    id: str
    status: JobStatus = JobStatus.pending
    title: str | None = None
    feature_name: str
    bin_width: float
    n_clicks: int = 0
    n_events: int = 0
    request_hash: str | None = None  # SHA-256 of the request for dedup
    created_at: str | None = None
    error: str | None = None
    progress: float = 0.0  # 0-100
    artifacts: list[str] = []  # result files written for this job


class JobResponse(BaseModel):
    id: str
    status: JobStatus
    title: str | None = None
    feature_name: str
    bin_width: float
    n_clicks: int = 0
    n_events: int = 0
    created_at: str | None = None
    error: str | None = None
    progress: float = 0.0
    artifacts: list[str] = []
