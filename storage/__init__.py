from .schema import MODES, DIFFICULTIES, OUTCOMES, DTYPES, META_DTYPES, DecisionRow, SessionMeta
from .store import (
    init_store,
    rows_from_decisions,
    validate_records,
    append_decisions,
    upsert_session_meta,
    load_all,
    load_sessions,
    query_session,
    query_mode,
    export_ndjson,
)

__all__ = [
    "MODES",
    "DIFFICULTIES",
    "OUTCOMES",
    "DTYPES",
    "META_DTYPES",
    "DecisionRow",
    "SessionMeta",
    "init_store",
    "rows_from_decisions",
    "validate_records",
    "append_decisions",
    "upsert_session_meta",
    "load_all",
    "load_sessions",
    "query_session",
    "query_mode",
    "export_ndjson",
]
