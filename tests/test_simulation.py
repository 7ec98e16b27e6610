import contextlib
import io
import os
import tempfile
import unittest

from markguide.direction import Sector
from markguide.marks import Mark
from markguide.narration import RecordingSink, Situation
from markguide.simulation import Probe, Simulation, observe
from markguide.timeline import Timeline
from markguide.trigger import GateState, TriggerGate

CAFE = Mark(
    label="Cafe",
    position=(0.0, 1.0, 0.0),
    scale=(2.0, 2.0, 2.0),
    margin=2.0,
    angle1=-180.0,
    angle2=180.0,
    keyword="coffee",
    details="Open 8 to 18",
)

INSIDE = Probe(position=(0.0, 0.0, 0.0))
NEAR = Probe(position=(0.0, 0.0, -2.5))
AWAY = Probe(position=(10.0, 0.0, 10.0))


class _FailingSink:
    def emit(self, prompt, label) -> None:
        raise RuntimeError("speaker unplugged")


def _simulation(sink=None, timeline=None) -> Simulation:
    sim = Simulation(
        gate=TriggerGate(stable_sec=3.0, cooldown_sec=10.0),
        sink=sink,
        timeline=timeline,
    )
    sim.set_active(True)
    return sim


class TestObserve(unittest.TestCase):
    def test_inside(self) -> None:
        obs = observe(INSIDE, [CAFE])
        self.assertEqual(obs.situation, Situation.INSIDE)
        self.assertEqual(obs.direction, Sector.HERE)
        self.assertEqual(obs.message, "The user is right inside the Cafe.")

    def test_near(self) -> None:
        obs = observe(NEAR, [CAFE])
        self.assertEqual(obs.situation, Situation.NEAR)
        self.assertEqual(obs.direction, Sector.FORWARD)
        self.assertEqual(
            obs.message, "The user is now near Cafe, the Cafe is Forward of the user."
        )

    def test_near_respects_facing(self) -> None:
        obs = observe(Probe(position=(0.0, 0.0, -2.5), facing=180.0), [CAFE])
        self.assertEqual(obs.direction, Sector.BACKWARD)

    def test_none(self) -> None:
        obs = observe(AWAY, [CAFE])
        self.assertEqual(obs.situation, Situation.NONE)
        self.assertIsNone(obs.label)
        self.assertEqual(obs.message, "No mark nearby.")


class TestSimulation(unittest.TestCase):
    def test_inactive_is_inert(self) -> None:
        sim = Simulation(gate=TriggerGate(0.0, 0.0))
        for _ in range(5):
            self.assertIsNone(sim.tick(1.0, INSIDE, [CAFE]))
        self.assertEqual(sim.gate.state, GateState.IDLE)
        self.assertIsNone(sim.last_observation)

    def test_fires_once_with_prompt(self) -> None:
        sink = RecordingSink()
        sim = _simulation(sink)
        requests = [sim.tick(0.0, INSIDE, [CAFE])]
        requests += [sim.tick(0.5, INSIDE, [CAFE]) for _ in range(20)]
        fired = [r for r in requests if r is not None]
        self.assertEqual(len(fired), 1)
        self.assertIs(requests[6], fired[0])
        request = fired[0]
        self.assertEqual(request.label, "Cafe")
        self.assertEqual(request.keyword, "coffee")
        self.assertIn("Keywords: coffee.", request.prompt)
        self.assertEqual(sink.emitted, [(request.prompt, "Cafe")])

    def test_reentry_discards_accumulated_stability(self) -> None:
        sim = _simulation()
        sim.tick(0.0, NEAR, [CAFE])
        for _ in range(5):
            self.assertIsNone(sim.tick(0.5, NEAR, [CAFE]))
        self.assertIsNone(sim.tick(0.4, NEAR, [CAFE]))
        self.assertAlmostEqual(sim.gate.stable_timer, 2.9)

        sim.set_active(False)
        sim.set_active(True)
        self.assertEqual(sim.gate.state, GateState.IDLE)

        self.assertIsNone(sim.tick(0.1, NEAR, [CAFE]))
        for _ in range(5):
            self.assertIsNone(sim.tick(0.5, NEAR, [CAFE]))
        self.assertIsNotNone(sim.tick(0.5, NEAR, [CAFE]))

    def test_same_state_does_not_reset(self) -> None:
        sim = _simulation()
        sim.tick(0.0, NEAR, [CAFE])
        sim.tick(0.5, NEAR, [CAFE])
        sim.set_active(True)
        self.assertEqual(sim.gate.stable_timer, 0.5)

    def test_sink_errors_are_reported(self) -> None:
        sim = _simulation(_FailingSink())
        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr):
            sim.tick(0.0, INSIDE, [CAFE])
            results = [sim.tick(0.5, INSIDE, [CAFE]) for _ in range(6)]
        self.assertIsNotNone(results[-1])
        self.assertIn("Narration sink error: speaker unplugged", stderr.getvalue())

    def test_timeline_records_events(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "timeline.log")
            sim = _simulation(timeline=Timeline(True, path))
            sim.tick(0.0, INSIDE, [CAFE])
            for _ in range(6):
                sim.tick(0.5, INSIDE, [CAFE])
            with open(path, "r", encoding="utf-8") as f:
                text = f.read()
        self.assertIn("event=mode active=True", text)
        self.assertIn("event=observe label=Cafe situation=Inside", text)
        self.assertIn("event=trigger label=Cafe", text)
        self.assertEqual(text.count("event=observe"), 1)


if __name__ == "__main__":
    unittest.main()
