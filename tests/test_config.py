import contextlib
import io
import unittest

from pathlib import Path

from iottrainer.config.config import load_config, validate_config


class ConfigTests(unittest.TestCase):
    def test_packaged_defaults(self) -> None:
        cfg = validate_config(load_config())
        self.assertEqual(cfg["engine"]["max_attempts"], 3)
        self.assertEqual(cfg["engine"]["test_size"], 5)
        self.assertEqual(cfg["engine"]["timers_by_difficulty"], {"easy": 90, "medium": 120, "hard": 150})
        self.assertEqual(cfg["engine"]["difficulty_multipliers"], {"easy": 1.0, "medium": 1.5, "hard": 2.0})
        self.assertEqual(cfg["assist"]["bonus_seconds"], 10)
        self.assertIsNone(cfg["persistence"]["endpoint"])
        self.assertTrue(Path(cfg["scenarios"]["circuit_bank"]).exists())
        self.assertTrue(Path(cfg["scenarios"]["crisis_bank"]).exists())

    def test_empty_config_gets_defaults(self) -> None:
        cfg = validate_config({})
        self.assertEqual(cfg["engine"]["power_supply"], {"voltage": 3.3, "current": 500.0})
        self.assertEqual(cfg["assist"]["bonus_cap_seconds"], 120)

    def test_bad_values_are_replaced(self) -> None:
        raw = {
            "engine": {"test_size": "many", "max_attempts": 0, "timers_by_difficulty": {"easy": 30, "insane": 5}},
            "assist": {"bonus_seconds": 30, "bonus_cap_seconds": 20},
        }
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            cfg = validate_config(raw)
        self.assertEqual(cfg["engine"]["test_size"], 5)
        self.assertEqual(cfg["engine"]["max_attempts"], 3)
        self.assertEqual(cfg["engine"]["timers_by_difficulty"], {"easy": 30, "medium": 120, "hard": 150})
        self.assertEqual(cfg["assist"]["bonus_cap_seconds"], 30)
        self.assertIn("WARNING", out.getvalue())


if __name__ == "__main__":
    unittest.main()
