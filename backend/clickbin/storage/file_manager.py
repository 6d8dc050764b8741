from pathlib import Path

from clickbin.config import settings

ARTIFACTS: dict[str, str] = {
    "counts": "counts.json",
    "distances": "distances.json",
    "ordination": "ordination.json",
    "clusters": "clusters.json",
}


class FileManager:
    def job_dir(self, job_id: str) -> Path:
        d = settings.jobs_dir / job_id
        d.mkdir(parents=True, exist_ok=True)
        return d

    def request_path(self, job_id: str) -> Path:
        return self.job_dir(job_id) / "request.json"

    def artifact_path(self, job_id: str, artifact: str) -> Path:
        if artifact not in ARTIFACTS:
            raise KeyError(f"Unknown artifact: {artifact}")
        return self.job_dir(job_id) / ARTIFACTS[artifact]

    def clear_artifacts(self, job_id: str) -> None:
        """Delete result artifacts so the analysis can be rerun."""
        job = self.job_dir(job_id)
        for name in ARTIFACTS.values():
            (job / name).unlink(missing_ok=True)


file_manager = FileManager()
