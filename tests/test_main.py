import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import main
from config import INFLATION
from modes import Mode, RateSystem


class StreamlitStub:
    def __init__(self, slider_value=None):
        self.session_state = {}
        self.slider_value = slider_value
        self.sliders = []
        self.reruns = 0

    def slider(self, label, min_value, max_value, value, step, key=None):
        self.sliders.append((label, min_value, max_value, value, step))
        return value if self.slider_value is None else self.slider_value

    def rerun(self):
        self.reruns += 1


def test_point_editor_edits_through_drag_controller(monkeypatch):
    st_stub = StreamlitStub(slider_value=14.0)
    monkeypatch.setattr(main, "st", st_stub)
    system = RateSystem(time_horizon=5)
    before = list(system.inflation.rates)

    main.render_point_editor(system, INFLATION, 3)

    # debasement inflation preset caps the axis at 20
    assert st_stub.sliders == [("Year 3 rate (%)", 0.0, 20.0, 10.0, 2.0)]
    assert system.inflation.mode is Mode.MANUAL
    assert system.inflation.rates[3] == 14.0
    assert system.inflation.rates[:3] == before[:3]
    assert st_stub.reruns == 1


def test_point_editor_leaves_unchanged_value(monkeypatch):
    st_stub = StreamlitStub()
    monkeypatch.setattr(main, "st", st_stub)
    system = RateSystem(time_horizon=5)

    main.render_point_editor(system, INFLATION, 2)

    assert system.inflation.mode is Mode.FOLLOWING
    assert st_stub.reruns == 0
