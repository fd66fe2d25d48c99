import unittest

from dataclasses import replace

from iottrainer.scenarios.components import Connection, PowerSupply, make_component
from iottrainer.scenarios.templates import PowerRequirement, ResolvedScenario
from iottrainer.validators.circuit import ConnectionGraphValidator, limiter_score, validate_circuit


def sensor_loop(**overrides) -> ResolvedScenario:
    data = dict(
        id="loop-1",
        title="Sensor loop",
        description="",
        difficulty="easy",
        required_connections=(("power", "sensor"), ("sensor", "resistor"), ("resistor", "gnd")),
        resistor_range=(100.0, 1000.0),
        required_power=PowerRequirement(min_voltage=3.3, min_current=500),
        hint="Check the loop.",
    )
    data.update(overrides)
    return ResolvedScenario(**data)


def board(resistor: float = 220):
    comps = [
        make_component("p", "power"),
        make_component("s", "sensor"),
        replace(make_component("r", "resistor"), resistor_value=resistor),
        make_component("g", "gnd"),
    ]
    conns = [Connection("c1", "p", "s"), Connection("c2", "s", "r"), Connection("c3", "r", "g")]
    return comps, conns


class ConnectionGraphValidatorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.validator = ConnectionGraphValidator()
        self.supply = PowerSupply(voltage=3.3, current=500)

    def test_complete_board_scores_full(self) -> None:
        comps, conns = board()
        res = self.validator.validate(comps, conns, self.supply, sensor_loop())
        self.assertTrue(res.success)
        self.assertEqual(res.scores, {"structural": 100, "calibration": 100, "resource": 100})
        self.assertEqual(res.errors, ())
        self.assertEqual(res.overall, 100)
        self.assertTrue(res.feedback.startswith("🎉 Perfect!"))

    def test_wire_direction_does_not_matter(self) -> None:
        comps, _ = board()
        conns = [Connection("c1", "s", "p"), Connection("c2", "r", "s"), Connection("c3", "g", "r")]
        res = self.validator.validate(comps, conns, self.supply, sensor_loop())
        self.assertTrue(res.success)
        self.assertEqual(res.structural, 100)

    def test_same_inputs_same_result(self) -> None:
        comps, conns = board(1500)
        a = validate_circuit(comps, conns, self.supply, sensor_loop())
        b = validate_circuit(comps, conns, self.supply, sensor_loop())
        self.assertEqual(a, b)

    def test_missing_edge_and_floating_component(self) -> None:
        comps, conns = board()
        res = self.validator.validate(comps, conns[:2], self.supply, sensor_loop())
        self.assertFalse(res.success)
        self.assertEqual(res.structural, 67)
        self.assertIn("Missing connection: RESISTOR → GND", res.errors)
        self.assertIn("GND is floating — not connected", res.errors)
        self.assertTrue(res.feedback.startswith("⚡ Almost! 2 issues remaining."))

    def test_empty_requirement_list_is_structurally_complete(self) -> None:
        comps, conns = board()
        res = self.validator.validate(comps, conns, self.supply, sensor_loop(required_connections=()))
        self.assertEqual(res.structural, 100)

    def test_resistor_out_of_range(self) -> None:
        comps, conns = board(4700)
        res = self.validator.validate(comps, conns, self.supply, sensor_loop())
        self.assertFalse(res.success)
        self.assertLessEqual(res.calibration, 60)
        self.assertIn("Resistor 4.7kΩ too high — need ≤ 1kΩ", res.errors)

    def test_calibration_falls_off_with_distance(self) -> None:
        self.assertEqual(limiter_score(1000, 100, 1000), 100)
        self.assertEqual(limiter_score(1500, 100, 1000), 39)
        near = limiter_score(1001, 100, 1000)
        far = limiter_score(2500, 100, 1000)
        self.assertLessEqual(near, 60)
        self.assertGreater(near, limiter_score(1500, 100, 1000))
        self.assertGreater(limiter_score(1500, 100, 1000), far)
        self.assertEqual(limiter_score(0, 100, 1000), 0)
        self.assertEqual(limiter_score(None, 100, 1000), 0)

    def test_no_resistor(self) -> None:
        comps, conns = board()
        comps = [c for c in comps if c.id != "r"]
        conns = [c for c in conns if not c.touches("r")]
        res = self.validator.validate(comps, conns, self.supply, sensor_loop())
        self.assertEqual(res.calibration, 0)
        self.assertIn("No resistor placed — circuit needs current limiting", res.errors)

    def test_supply_below_minimum(self) -> None:
        comps, conns = board()
        res = self.validator.validate(comps, conns, PowerSupply(3.3, 100), sensor_loop())
        self.assertEqual(res.resource, 50)
        self.assertIn("Supply 100mA below 500mA minimum", res.errors)

    def test_missing_ground_zeroes_resource(self) -> None:
        comps, conns = board()
        comps = [c for c in comps if c.id != "g"]
        conns = [c for c in conns if not c.touches("g")]
        res = self.validator.validate(comps, conns, self.supply, sensor_loop())
        self.assertEqual(res.resource, 0)
        self.assertIn("Missing GND component", res.errors)

    def test_missing_controller_costs_structure(self) -> None:
        comps, conns = board()
        res = self.validator.validate(comps, conns, self.supply, sensor_loop(required_gpio="GPIO4"))
        self.assertEqual(res.structural, 80)
        self.assertIn("No ESP32 placed — microcontroller required", res.errors)

    def test_controller_penalty_floors_before_sensor_bonus(self) -> None:
        comps, _ = board()
        scenario = sensor_loop(required_gpio="GPIO4", required_sensor_type="DHT11")
        res = self.validator.validate(comps, [], self.supply, scenario)
        self.assertEqual(res.structural, 5)
        self.assertIn("No ESP32 placed — microcontroller required", res.errors)

    def test_controller_pin(self) -> None:
        comps, conns = board()
        comps.append(make_component("e", "esp32"))
        conns.append(Connection("c4", "e", "s"))
        scenario = sensor_loop(required_gpio="GPIO4")

        res = self.validator.validate(comps, conns, self.supply, scenario)
        self.assertEqual(res.structural, 90)
        self.assertIn("GPIO GPIO2 incorrect — scenario requires GPIO4", res.errors)

        comps[-1] = replace(comps[-1], gpio_pin="GPIO4")
        res = self.validator.validate(comps, conns, self.supply, scenario)
        self.assertTrue(res.success)
        self.assertEqual(res.structural, 100)
        self.assertIn("GPIO4 is properly configured", res.feedback)

    def test_wrong_sensor_type_is_an_error_only(self) -> None:
        comps, conns = board()
        res = self.validator.validate(comps, conns, self.supply, sensor_loop(required_sensor_type="LDR"))
        self.assertFalse(res.success)
        self.assertEqual(res.structural, 100)
        self.assertEqual(res.errors, ("Sensor type DHT11 incorrect — need LDR",))

    def test_many_issues_feedback(self) -> None:
        res = self.validator.validate([], [], self.supply, sensor_loop())
        self.assertFalse(res.success)
        self.assertEqual(res.structural, 0)
        self.assertTrue(res.feedback.startswith(f"🔧 {len(res.errors)} issues."))


if __name__ == "__main__":
    unittest.main()
