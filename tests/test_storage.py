import tempfile
import unittest

from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from iottrainer.engine.state import DecisionRecord
from storage import (
    DecisionRow,
    SessionMeta,
    append_decisions,
    export_ndjson,
    init_store,
    load_all,
    load_sessions,
    query_mode,
    query_session,
    rows_from_decisions,
    upsert_session_meta,
    validate_records,
)

START = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)


def decisions():
    out = []
    for i, outcome in enumerate(("solved", "failed", "solved")):
        out.append(
            DecisionRecord(
                question_id=f"crisis-{i}-attempt-1",
                mode="crisis",
                correct=outcome == "solved",
                partial_credit=False,
                time_spent=12.0 + i,
                reasoning_delta=80,
                efficiency_delta=100 if outcome == "solved" else 48,
                resource_delta=10 if outcome == "solved" else -18,
                bonus_used=False,
                cursor_activity=22.5,
                validation_attempts=1,
                final_outcome=outcome,
                difficulty="medium",
                scenario_id=f"crisis-seq-{i + 1}",
                timestamp=1700000000.0,
            )
        )
    return out


class StoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name) / "data"

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_round_trip(self) -> None:
        init_store(self.dir)
        self.assertEqual(len(load_all(self.dir)), 0)

        df = validate_records(rows_from_decisions("s-1", START, decisions()))
        append_decisions(df, self.dir)
        append_decisions(df, self.dir)  # exact duplicates collapse

        stored = load_all(self.dir)
        self.assertEqual(len(stored), 3)
        self.assertEqual(int(stored["solved"].sum()), 2)
        one = query_session(stored, session_id="s-1")
        self.assertEqual(list(one["question_id"]), ["crisis-0-attempt-1", "crisis-1-attempt-1", "crisis-2-attempt-1"])
        self.assertEqual(len(query_mode(stored, mode="crisis")), 3)
        self.assertEqual(len(query_mode(stored, mode="debug")), 0)

    def test_unknown_mode_query(self) -> None:
        with self.assertRaises(ValueError):
            query_mode(load_all(self.dir), mode="arcade")

    def test_session_meta_upsert(self) -> None:
        meta = SessionMeta(
            session_id="s-1", session_start=START, mode="crisis", total_questions=3, solved=2, total_xp=300
        )
        upsert_session_meta(meta, self.dir)
        upsert_session_meta(meta.model_copy(update={"badge": "Tactical Thinker", "passed": False}), self.dir)
        sessions = load_sessions(self.dir)
        self.assertEqual(len(sessions), 1)
        self.assertEqual(sessions.loc[0, "badge"], "Tactical Thinker")

    def test_row_validation(self) -> None:
        good = rows_from_decisions("s-1", START, decisions())[0].model_dump()
        with self.assertRaises(ValidationError):
            DecisionRow(**dict(good, correct=False))
        with self.assertRaises(ValidationError):
            DecisionRow(**dict(good, mode="arcade"))
        with self.assertRaises(ValidationError):
            SessionMeta(session_id="s", session_start=START, mode="debug", total_questions=1, solved=2, total_xp=0)
        with self.assertRaises(TypeError):
            validate_records("not a list")

    def test_naive_start_is_utc(self) -> None:
        row = rows_from_decisions("s-1", datetime(2026, 3, 1, 9, 30), decisions())[0]
        self.assertEqual(row.session_start, START)

    def test_export_ndjson(self) -> None:
        df = validate_records(rows_from_decisions("s-1", START, decisions()))
        out = Path(self._tmp.name) / "out" / "rows.ndjson"
        export_ndjson(df, out)
        self.assertEqual(len(out.read_text(encoding="utf-8").strip().splitlines()), 3)


if __name__ == "__main__":
    unittest.main()
