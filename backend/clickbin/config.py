from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    storage_dir: Path = Path("./storage")
    frontend_url: str = "http://localhost:3000"
    log_level: str = "INFO"

    # Binning defaults
    default_feature: str = "peak_khz"
    default_bin_width: float = 1.0

    # Dissimilarity / ordination / clustering defaults
    default_metric: str = "braycurtis"
    random_seed: int = 42
    nmds_n_init: int = 4
    nmds_max_iter: int = 300
    dbscan_eps: float = 0.3
    dbscan_min_samples: int = 2

    model_config = {
        "env_file": "../.env",
        "env_file_encoding": "utf-8",
        "env_prefix": "CLICKBIN_",
        "extra": "ignore",
    }

    @property
    def jobs_dir(self) -> Path:
        return self.storage_dir / "analyses"


settings = Settings()
