"""Load click tables from disk into ClickRecords.

Columns are always selected by name, never by position. Supported formats
are CSV, JSON (records) and Parquet.
"""

import logging
from collections.abc import Sequence
from pathlib import Path

import pandas as pd

from clickbin.errors import EmptyInputError, InvalidParameterError, MissingFieldError
from clickbin.models.click import ClickRecord

logger = logging.getLogger(__name__)


def read_table(path: Path) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Could not find click table: {path}")

    readers = {
        ".csv": pd.read_csv,
        ".json": lambda p: pd.read_json(p, orient="records"),
        ".parquet": pd.read_parquet,
        ".pq": pd.read_parquet,
    }
    reader = readers.get(path.suffix.lower())
    if reader is None:
        raise InvalidParameterError(f"Unsupported click table format: {path.suffix}")
    try:
        return reader(path)
    except ValueError as e:
        # pandas parse errors (malformed or empty files) are ValueErrors
        raise InvalidParameterError(f"Could not read click table {path}: {e}") from e


def load_clicks(
    path: Path,
    event_column: str = "event_id",
    species_column: str | None = "species",
    feature_columns: Sequence[str] | None = None,
) -> list[ClickRecord]:
    """Read a click table and convert each row to a ClickRecord.

    Args:
        path: CSV, JSON or Parquet file.
        event_column: Column holding the event identifier.
        species_column: Column holding the species label, or None if absent.
        feature_columns: Feature columns to keep. Defaults to every numeric
            column other than the event and species columns.

    Returns:
        Click records in file order.
    """
    df = read_table(path)
    if df.empty:
        raise EmptyInputError(f"Click table {path} has no rows")

    if event_column not in df.columns:
        raise MissingFieldError(event_column, detail=f"not a column of {Path(path).name}")
    if df[event_column].isna().any():
        first = int(df[event_column].isna().to_numpy().nonzero()[0][0])
        raise MissingFieldError(event_column, first, "empty event identifier")
    if species_column is not None and species_column not in df.columns:
        raise MissingFieldError(species_column, detail=f"not a column of {Path(path).name}")

    key_columns = {event_column, species_column}
    if feature_columns is None:
        feature_columns = [
            c for c in df.select_dtypes(include="number").columns if c not in key_columns
        ]
    else:
        for column in feature_columns:
            if column not in df.columns:
                raise MissingFieldError(column, detail=f"not a column of {Path(path).name}")

    columns = [event_column] + ([species_column] if species_column else []) + list(feature_columns)
    subset = df[columns].astype(object).where(df[columns].notna(), None)

    clicks: list[ClickRecord] = []
    for row in subset.to_dict(orient="records"):
        features = {c: row[c] for c in feature_columns}
        clicks.append(
            ClickRecord(
                event_id=row[event_column],
                species=str(row[species_column]) if species_column and row[species_column] is not None else None,
                **features,
            )
        )

    logger.info(
        f"Loaded {len(clicks)} clicks with features {list(feature_columns)} from {Path(path).name}"
    )
    return clicks


def write_clicks(clicks: Sequence[ClickRecord], path: Path) -> Path:
    """Write click records to CSV (event_id, species, then features)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    rows = [{"event_id": c.event_id, "species": c.species, **c.features} for c in clicks]
    pd.DataFrame(rows).to_csv(path, index=False)
    return path
