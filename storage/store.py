from __future__ import annotations

"""Parquet-backed store for decision records using pandas + pyarrow.

Unit of data: one row per DecisionRecord (session × question attempt).
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

import pandas as pd

from .schema import DTYPES, META_DTYPES, MODES, DecisionRow, SessionMeta


DATA_FILE = "decisions.parquet"
META_FILE = "sessions.parquet"


def _empty_df(dtypes: dict) -> pd.DataFrame:
    return pd.DataFrame({k: pd.Series(dtype=v) for k, v in dtypes.items()})


def init_store(data_dir: Path) -> None:
    """Ensure data directory and empty Parquet files with correct schema exist."""
    data_dir = Path(data_dir)
    data_dir.mkdir(parents=True, exist_ok=True)
    decisions_path = data_dir / DATA_FILE
    meta_path = data_dir / META_FILE
    if not decisions_path.exists():
        _empty_df(DTYPES).to_parquet(decisions_path, engine="pyarrow", compression="zstd")
    if not meta_path.exists():
        _empty_df(META_DTYPES).to_parquet(meta_path, engine="pyarrow", compression="zstd")


def rows_from_decisions(session_id: str, session_start: datetime, decisions: Iterable[Any]) -> list[DecisionRow]:
    """Wrap engine DecisionRecords (or their JSON dicts) as DecisionRows."""
    rows = []
    for d in decisions:
        data = d.to_json() if hasattr(d, "to_json") else dict(d)
        data.pop("timestamp", None)
        rows.append(DecisionRow(session_id=session_id, session_start=session_start, **data))
    return rows


def _fix_dtypes(df: pd.DataFrame, dtypes: dict) -> pd.DataFrame:
    for col, dt in dtypes.items():
        if col not in df.columns:
            df[col] = pd.NA
        df[col] = df[col].astype(dt)
    return df[list(dtypes.keys())]


def validate_records(records: list[DecisionRow]) -> pd.DataFrame:
    """Validate a list of DecisionRow and return a DataFrame with proper dtypes.

    Accepts model instances or plain dicts; dicts are validated through
    Pydantic first.
    """
    if not isinstance(records, list):
        raise TypeError("records must be a list[DecisionRow]")
    rows = [r if isinstance(r, DecisionRow) else DecisionRow.model_validate(r) for r in records]
    df = pd.DataFrame([r.model_dump() for r in rows])
    return _fix_dtypes(df, DTYPES)


def append_decisions(df_new: pd.DataFrame, data_path: Path) -> None:
    """Append rows to the decisions table.

    Reads existing rows, concatenates, removes exact duplicates and writes
    back with zstd compression.
    """
    data_path = Path(data_path)
    data_path.mkdir(parents=True, exist_ok=True)
    f = data_path / DATA_FILE
    if f.exists():
        df_old = _fix_dtypes(pd.read_parquet(f, engine="pyarrow"), DTYPES)
    else:
        df_old = _empty_df(DTYPES)
    df_new = _fix_dtypes(df_new.copy(), DTYPES)
    frames = [d for d in (df_old, df_new) if not d.empty]
    combined = pd.concat(frames, ignore_index=True) if frames else _empty_df(DTYPES)
    combined = _fix_dtypes(combined, DTYPES)
    combined = combined.drop_duplicates()
    combined.to_parquet(f, engine="pyarrow", compression="zstd", index=False)


def upsert_session_meta(meta: SessionMeta, data_path: Path) -> None:
    """Insert or update a single session row keyed by session_id."""
    data_path = Path(data_path)
    data_path.mkdir(parents=True, exist_ok=True)
    f = data_path / META_FILE
    row = SessionMeta.model_validate(meta).model_dump() if not isinstance(meta, SessionMeta) else meta.model_dump()
    df_new = _fix_dtypes(pd.DataFrame([row]), META_DTYPES)
    if f.exists():
        df = _fix_dtypes(pd.read_parquet(f, engine="pyarrow"), META_DTYPES)
        if not df.empty:
            df = df[df["session_id"] != row["session_id"]]
        df = pd.concat([d for d in (df, df_new) if not d.empty], ignore_index=True)
    else:
        df = df_new
    _fix_dtypes(df, META_DTYPES).to_parquet(f, engine="pyarrow", compression="zstd", index=False)


def load_all(data_path: Path) -> pd.DataFrame:
    """Load the full decisions table with dtypes enforced.

    Adds:
    - solved: bool, final_outcome == "solved"
    """
    f = Path(data_path) / DATA_FILE
    if not f.exists():
        df = _empty_df(DTYPES)
    else:
        df = _fix_dtypes(pd.read_parquet(f, engine="pyarrow"), DTYPES)
    df["solved"] = (df["final_outcome"].astype("string") == "solved").astype("boolean")
    return df


def load_sessions(data_path: Path) -> pd.DataFrame:
    f = Path(data_path) / META_FILE
    if not f.exists():
        return _empty_df(META_DTYPES)
    return _fix_dtypes(pd.read_parquet(f, engine="pyarrow"), META_DTYPES)


def query_session(df: pd.DataFrame, *, session_id: str) -> pd.DataFrame:
    """Rows of one session in question order."""
    dff = df[df["session_id"] == session_id]
    return dff.sort_values("question_id", kind="stable").reset_index(drop=True)


def query_mode(df: pd.DataFrame, *, mode: str) -> pd.DataFrame:
    """Filter rows for one game mode, sorted by session_start."""
    if mode not in MODES:
        raise ValueError(f"Unknown mode: {mode}")
    dff = df[df["mode"].astype("string") == mode]
    return dff.sort_values("session_start", kind="stable").reset_index(drop=True)


def export_ndjson(df: pd.DataFrame, out_path: Path) -> None:
    """Export a DataFrame to line-delimited JSON (NDJSON) for quick inspection."""
    Path(out_path).parent.mkdir(parents=True, exist_ok=True)
    df.to_json(out_path, orient="records", lines=True, date_format="iso")
