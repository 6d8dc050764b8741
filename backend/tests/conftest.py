"""
Shared fixtures for the clickbin test suite.
"""

import pytest

from clickbin.config import settings
from clickbin.models.click import ClickRecord
from clickbin.storage.job_store import job_store


# Three events peaking near 120-122 kHz, three near 130-132 kHz
EVENT_PEAKS = {
    "E1": ("Kogia", [120.2, 120.8, 121.4, 121.9]),
    "E2": ("Kogia", [120.1, 120.6, 121.3, 121.7]),
    "E3": ("Kogia", [120.4, 120.9, 121.2, 121.8]),
    "E4": ("Phocoena", [130.3, 130.7, 131.5, 131.6]),
    "E5": ("Phocoena", [130.2, 130.9, 131.1, 131.8]),
    "E6": ("Phocoena", [130.5, 130.6, 131.4, 131.9]),
}


@pytest.fixture
def scenario_clicks() -> list[ClickRecord]:
    """Two events, three clicks: A=100.5, A=101.2, B=105.9."""
    return [
        ClickRecord(event_id="A", species="Kogia", peak=100.5),
        ClickRecord(event_id="A", species="Kogia", peak=101.2),
        ClickRecord(event_id="B", species="Phocoena", peak=105.9),
    ]


@pytest.fixture
def event_clicks() -> list[ClickRecord]:
    clicks = []
    for event_id, (species, peaks) in EVENT_PEAKS.items():
        for i, peak in enumerate(peaks):
            clicks.append(
                ClickRecord(
                    event_id=event_id,
                    species=species,
                    peak_khz=peak,
                    duration_us=40.0 + i,
                )
            )
    return clicks


@pytest.fixture
def storage(tmp_path, monkeypatch):
    """Point settings.storage_dir at a temp dir and reset the job store."""
    monkeypatch.setattr(settings, "storage_dir", tmp_path / "storage")
    job_store.reload()
    yield tmp_path / "storage"
    job_store._jobs.clear()
    job_store._completed_by_hash.clear()
