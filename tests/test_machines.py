import random
import unittest

from iottrainer.app.events import RESET, TERMINAL, EventBus
from iottrainer.config.config import load_config, validate_config
from iottrainer.engine import commands as cmd
from iottrainer.engine.circuit_machine import CircuitStateMachine
from iottrainer.engine.crisis_machine import CrisisStateMachine
from iottrainer.engine.state import FAILED, SOLVED, TIMEOUT
from iottrainer.scenarios.templates import CrisisScenario, ScenarioTemplate

LOOP = {
    "id": "loop",
    "title": "Sensor loop",
    "difficulty": "easy",
    "description": "Wire the sensor loop on {GPIO}.",
    "hint": "Check the loop.",
    "required_connections": [
        {"from": "power", "to": "sensor"},
        {"from": "sensor", "to": "resistor"},
        {"from": "resistor", "to": "gnd"},
    ],
    "resistor_range": [100, 1000],
    "required_power": {"min_voltage": 3.3, "min_current": 500},
}


def crisis_scenario(sid: str = "outage") -> CrisisScenario:
    return CrisisScenario(
        id=sid,
        title="Broker outage",
        description="",
        difficulty="easy",
        available_action_ids=("check-wifi", "ping-gateway", "verify-mqtt", "check-certs", "replace-sensor"),
        optimal_sequence=("check-wifi", "ping-gateway", "verify-mqtt", "check-certs"),
        timer_seconds=60,
    )


class CircuitMachineTests(unittest.TestCase):
    def setUp(self) -> None:
        self.cfg = validate_config(load_config())
        self.bus = EventBus()
        self.m = CircuitStateMachine(
            [ScenarioTemplate.from_json(LOOP)], self.cfg, rng=random.Random(1), bus=self.bus, clock=lambda: 1000.0
        )

    def build(self) -> None:
        for cid, ctype in (("p", "power"), ("s", "sensor"), ("r", "resistor"), ("g", "gnd")):
            self.m.place(ctype, component_id=cid)
        self.m.connect("p", "s")
        self.m.connect("s", "r")
        self.m.connect("r", "g")

    def test_timer_starts_on_first_interaction(self) -> None:
        self.assertEqual(self.m.state.timer_seconds, 90)
        self.m.tick()
        self.assertEqual(self.m.state.timer_seconds, 90)
        self.m.place("led")
        self.m.tick()
        self.assertEqual(self.m.state.timer_seconds, 89)

    def test_solve_first_attempt(self) -> None:
        self.build()
        for _ in range(5):
            self.m.tick()
        res = self.m.validate()
        self.assertTrue(res.success)
        st = self.m.state
        self.assertTrue(st.succeeded)
        self.assertFalse(st.timer_running)
        self.assertEqual(st.grade, "S")
        # 100 overall + round(85 * 0.5) + 2 unused attempts * 10
        self.assertEqual(st.xp_earned, 163)
        self.assertEqual(self.m.total_xp, 163)

        (rec,) = self.m.decisions
        self.assertEqual(rec.question_id, "circuit-0-attempt-1")
        self.assertEqual(rec.final_outcome, SOLVED)
        self.assertTrue(rec.correct)
        self.assertEqual(rec.validation_attempts, 1)
        self.assertEqual(rec.time_spent, 5.0)
        self.assertEqual(rec.scenario_id, "loop")

    def test_terminal_state_is_sticky(self) -> None:
        self.build()
        first = self.m.validate()
        self.assertIs(self.m.validate(), first)
        self.assertIsNone(self.m.place("led"))
        self.assertFalse(self.m.remove("p"))
        self.assertIsNone(self.m.connect("p", "g"))
        self.assertFalse(self.m.update("s", sensor_type="Thermocouple"))
        self.assertEqual(len(self.m.decisions), 1)

    def test_attempts_run_out(self) -> None:
        self.m.place("led", component_id="l")
        for _ in range(3):
            self.m.validate()
        st = self.m.state
        self.assertTrue(st.failed)
        self.assertEqual(st.attempts_left, 0)
        self.assertEqual(st.grade, "F")
        self.assertEqual([d.final_outcome for d in self.m.decisions], [FAILED] * 3)
        self.assertEqual(
            [d.question_id for d in self.m.decisions],
            ["circuit-0-attempt-1", "circuit-0-attempt-2", "circuit-0-attempt-3"],
        )
        self.assertTrue(45 <= self.m.stability_drop <= 75)
        self.m.validate()
        self.assertEqual(len(self.m.decisions), 3)

    def test_expired_timer_wins_over_validation(self) -> None:
        self.build()
        self.m.state.timer_seconds = 0
        res = self.m.validate()
        st = self.m.state
        self.assertFalse(res.success)
        self.assertTrue(st.timed_out)
        self.assertTrue(st.failed)
        self.assertEqual(st.attempts_left, 3)
        (rec,) = self.m.decisions
        self.assertEqual(rec.final_outcome, TIMEOUT)
        self.assertEqual(rec.question_id, "circuit-0-attempt-1")
        self.m.validate()
        self.assertEqual(len(self.m.decisions), 1)

    def test_ticking_to_zero_times_out_once(self) -> None:
        seen = []
        self.bus.subscribe(TERMINAL, seen.append)
        self.m.place("led")
        for _ in range(100):
            self.m.tick()
        self.assertTrue(self.m.state.timed_out)
        self.assertEqual(self.m.state.timer_seconds, 0)
        self.assertEqual(len(self.m.decisions), 1)
        self.assertEqual(len(seen), 1)
        self.assertTrue(seen[0]["timed_out"])

    def test_reset_keeps_xp_and_history(self) -> None:
        resets = []
        self.bus.subscribe(RESET, resets.append)
        self.build()
        self.m.validate()
        self.m.reset()
        st = self.m.state
        self.assertEqual(st.attempts_left, 3)
        self.assertEqual(st.timer_seconds, 90)
        self.assertFalse(st.terminal)
        self.assertEqual(self.m.components, {})
        self.assertEqual(self.m.connections, [])
        self.assertEqual(self.m.stability_drop, 0)
        self.assertEqual(self.m.total_xp, 165)
        self.assertEqual(len(self.m.decisions), 1)
        self.assertEqual(len(resets), 1)

    def test_remove_cascades_to_wires(self) -> None:
        self.build()
        self.assertTrue(self.m.remove("s"))
        self.assertEqual([(c.a, c.b) for c in self.m.connections], [("r", "g")])

    def test_duplicate_and_self_wires_are_ignored(self) -> None:
        self.build()
        self.assertIsNone(self.m.connect("p", "p"))
        self.assertIsNone(self.m.connect("s", "p"))
        self.assertIsNone(self.m.connect("p", "nope"))
        self.assertEqual(len(self.m.connections), 3)

    def test_component_edits(self) -> None:
        self.build()
        with self.assertRaises(KeyError):
            self.m.place("power", component_id="p")
        with self.assertRaises(KeyError):
            self.m.place("capacitor")
        with self.assertRaises(ValueError):
            self.m.update("s", sensor_type="Thermistor")
        self.assertTrue(self.m.update("r", resistor_value=330))
        self.assertEqual(self.m.components["r"].resistor_value, 330.0)
        self.assertTrue(self.m.move("r", 40, 50))
        self.assertEqual((self.m.components["r"].x, self.m.components["r"].y), (40, 50))

    def test_extend_timer(self) -> None:
        self.assertFalse(self.m.extend_timer(10, 120))
        self.m.place("led")
        self.assertTrue(self.m.extend_timer(10, 120))
        self.assertEqual(self.m.state.timer_seconds, 100)
        self.assertTrue(self.m.state.bonus_used)
        self.assertFalse(self.m.extend_timer(10, 120))

    def test_extend_timer_respects_cap(self) -> None:
        self.m.place("led")
        self.m.state.timer_seconds = 115
        self.assertTrue(self.m.extend_timer(10, 120))
        self.assertEqual(self.m.state.timer_seconds, 120)

    def test_reroll_keeps_template(self) -> None:
        tpl = dict(LOOP, randomizable_values={"gpio_pins": ["GPIO4", "GPIO5"], "resistor_bounds": [100, 220, 470, 1000]})
        m = CircuitStateMachine([ScenarioTemplate.from_json(tpl)], self.cfg, rng=random.Random(5))
        m.place("led")
        m.reroll()
        self.assertEqual(m.scenario.id, "loop")
        self.assertIn(m.scenario.required_gpio, ("GPIO4", "GPIO5"))
        self.assertIn(m.scenario.required_gpio, m.scenario.description)
        self.assertEqual(m.components, {})
        self.assertFalse(m.state.timer_running)

    def test_scenario_navigation(self) -> None:
        with self.assertRaises(IndexError):
            self.m.select_scenario(3)
        self.assertFalse(self.m.advance())

    def test_dispatch(self) -> None:
        cid = self.m.dispatch(cmd.command_from_json({"cmd": "place", "type": "led", "id": "l1"}))
        self.assertEqual(cid, "l1")
        self.m.dispatch(cmd.command_from_json({"cmd": "power", "voltage": 5}))
        self.assertEqual(self.m.power_supply.voltage, 5.0)
        with self.assertRaises(KeyError):
            self.m.dispatch(cmd.PlaceAction("check-wifi", 0))
        with self.assertRaises(KeyError):
            cmd.command_from_json({"cmd": "explode"})


class CrisisMachineTests(unittest.TestCase):
    def setUp(self) -> None:
        cfg = validate_config(load_config())
        self.m = CrisisStateMachine([crisis_scenario(), crisis_scenario("second")], cfg, rng=random.Random(2))

    def fill(self, seq) -> None:
        for i, action in enumerate(seq):
            self.m.place_action(action, i)

    def test_slots_hold_unique_actions(self) -> None:
        self.m.place_action("check-wifi", 0)
        self.m.place_action("check-wifi", 2)
        self.assertEqual(self.m.slots, [None, None, "check-wifi", None])
        self.assertNotIn("check-wifi", [a.id for a in self.m.available_pool()])
        self.assertTrue(self.m.return_to_pool("check-wifi"))
        self.assertEqual(self.m.slots, [None] * 4)

    def test_slot_errors(self) -> None:
        with self.assertRaises(IndexError):
            self.m.place_action("check-wifi", 4)
        with self.assertRaises(KeyError):
            self.m.place_action("check-antenna", 0)
        with self.assertRaises(IndexError):
            self.m.clear_slot(-1)

    def test_solve(self) -> None:
        self.fill(("check-wifi", "ping-gateway", "verify-mqtt", "check-certs"))
        res = self.m.validate()
        self.assertTrue(res.success)
        self.assertEqual(self.m.stability, 100)
        self.assertEqual(self.m.total_xp, res.xp_earned)
        (rec,) = self.m.decisions
        self.assertEqual(rec.question_id, "crisis-0-attempt-1")
        self.assertEqual(rec.efficiency_delta, 100)
        self.assertEqual(rec.resource_delta, 10)

    def test_finished_scenario_ignores_bad_slot_input(self) -> None:
        self.fill(("check-wifi", "ping-gateway", "verify-mqtt", "check-certs"))
        self.assertTrue(self.m.validate().success)
        self.assertFalse(self.m.place_action("check-wifi", 9))
        self.assertFalse(self.m.place_action("check-antenna", 0))
        self.assertFalse(self.m.clear_slot(-1))
        self.assertEqual(self.m.slots, ["check-wifi", "ping-gateway", "verify-mqtt", "check-certs"])

    def test_wrong_order_costs_stability(self) -> None:
        self.fill(("ping-gateway", "check-wifi", "verify-mqtt", "check-certs"))
        res = self.m.validate()
        self.assertFalse(res.success)
        self.assertEqual(self.m.stability, 100 + res.stability_delta)
        self.assertTrue(self.m.decisions[0].partial_credit)
        self.assertTrue(self.m.state.active)
        self.m.reset()
        self.assertEqual(self.m.stability, 100)
        self.assertEqual(self.m.slots, [None] * 4)

    def test_timeout_drops_stability(self) -> None:
        self.m.place_action("check-wifi", 0)
        self.m.state.timer_seconds = 1
        self.m.tick()
        self.assertTrue(self.m.state.timed_out)
        self.assertEqual(self.m.stability, 80)
        self.assertEqual(self.m.decisions[0].final_outcome, TIMEOUT)
        self.assertFalse(self.m.place_action("ping-gateway", 1))

    def test_advance(self) -> None:
        self.assertTrue(self.m.advance())
        self.assertEqual(self.m.scenario_id, "second")
        self.assertFalse(self.m.advance())

    def test_dispatch(self) -> None:
        self.m.dispatch(cmd.command_from_json({"cmd": "place_action", "action_id": "check-certs", "slot": 3}))
        self.m.dispatch(cmd.ClearSlot(3))
        self.assertEqual(self.m.slots, [None] * 4)
        with self.assertRaises(KeyError):
            self.m.dispatch(cmd.Connect("a", "b"))


if __name__ == "__main__":
    unittest.main()
