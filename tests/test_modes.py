import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from calculations import PortfolioConfig
from config import BTC_PRICE, INCOME_YIELD, INFLATION, RATE_SERIES_LENGTH
from modes import Mode, ModeController, ModeFlags, RateSeriesState, RateSystem
from rates import load_scenarios

# debasement inflation, 8 -> 12 over years 0..5
DEBASEMENT_INFLATION = [8.0, 8.0, 8.0, 10.0, 10.0, 12.0]


def assert_exclusive(system):
    for controller in system.controllers():
        flags = controller.state.flags
        assert not (flags.follow_scenario and flags.manual_mode)


def test_new_system_follows_default_scenario():
    system = RateSystem(time_horizon=5)
    assert not system.pending
    for controller in system.controllers():
        assert controller.mode is Mode.FOLLOWING
        assert len(controller.rates) == RATE_SERIES_LENGTH
    assert system.inflation.rates[:6] == DEBASEMENT_INFLATION
    # slots past the horizon keep their flat default
    assert system.inflation.rates[6:] == [8.0] * (RATE_SERIES_LENGTH - 6)


def test_final_year_is_regenerated():
    system = RateSystem(time_horizon=5)
    # debasement income yield ends at 10
    assert system.income_yield.rates[5] == 10.0
    assert system.btc_price.rates[5] == 70.0


def test_short_horizons():
    system = RateSystem(time_horizon=1)
    assert system.inflation.rates[:2] == [8.0, 12.0]
    assert system.btc_price.rates[:2] == [30.0, 70.0]

    system = RateSystem(time_horizon=0)
    assert system.inflation.rates[0] == 8.0
    assert system.btc_price.rates[0] == 30.0


def test_horizon_beyond_series_length_extends_rates():
    horizon = RATE_SERIES_LENGTH + 5
    system = RateSystem(time_horizon=horizon)
    for controller in system.controllers():
        assert len(controller.rates) == horizon + 1
    assert system.income_yield.rates[horizon] == 10.0

    result = system.project(PortfolioConfig(time_horizon=horizon, activation_year=10))
    assert result.usd_income[horizon] > 0


def test_scenario_change_is_deferred_until_flush():
    system = RateSystem(time_horizon=5)
    before = list(system.inflation.rates)

    system.select_economic_scenario("crisis")

    assert system.pending
    assert system.inflation.rates == before
    assert system.flush() == [INFLATION, BTC_PRICE, INCOME_YIELD]
    assert system.inflation.rates[0] == 8.0
    assert system.inflation.rates[5] == 26.0
    assert not system.pending


def test_project_flushes_before_reading(monkeypatch):
    system = RateSystem(time_horizon=5)
    system.select_economic_scenario("spiral")
    seen = {}

    def fake_project(rates, portfolio):
        seen["inflation"] = list(rates.inflation)
        return "result"

    monkeypatch.setattr("modes.project", fake_project)

    assert system.project(PortfolioConfig(time_horizon=5)) == "result"
    assert seen["inflation"][0] == 10.0
    assert seen["inflation"][5] == 100.0


def test_follow_is_noop_on_custom_scenario():
    system = RateSystem(time_horizon=5)
    system.select_economic_scenario("custom")
    # followers ignore the custom scenario
    assert system.inflation.mode is Mode.FOLLOWING
    assert system.inflation.state.params.preset == "debasement"
    assert not system.can_follow_scenario()

    system.set_follow_scenario(INFLATION, False)
    assert system.inflation.mode is Mode.AUTO
    assert system.set_follow_scenario(INFLATION, True) is False
    assert system.inflation.mode is Mode.AUTO
    assert_exclusive(system)


def test_follow_from_manual_clears_manual():
    system = RateSystem(time_horizon=5)
    system.inflation.begin_manual_edit()
    system.inflation.set_rate(0, 50.0)

    assert system.set_follow_scenario(INFLATION, True)
    assert system.inflation.mode is Mode.FOLLOWING
    system.flush()
    assert system.inflation.rates[:6] == DEBASEMENT_INFLATION
    assert_exclusive(system)


def test_drag_start_enters_manual_mode():
    system = RateSystem(time_horizon=5)
    coords = system.chart_coordinates(INFLATION, 490, 400)
    drag = system.drag_controller(INFLATION, coords)

    x, y = coords.point_to_pixel(2, 14)
    assert drag.drag_start(x, y) == (2, 14.0)

    controller = system.inflation
    assert controller.mode is Mode.MANUAL
    assert controller.state.flags.input_type == "manual"
    assert controller.rates[2] == 14.0

    system.select_economic_scenario("spiral")
    system.set_time_horizon(8)
    assert INFLATION not in system.flush()
    assert controller.rates[2] == 14.0
    assert_exclusive(system)


def test_manual_edit_drops_pending_regeneration():
    system = RateSystem(time_horizon=5)
    system.set_time_horizon(6)
    assert system.inflation.pending

    system.inflation.begin_manual_edit()
    system.inflation.set_rate(0, 40.0)

    assert not system.inflation.pending
    system.flush()
    assert system.inflation.rates[0] == 40.0


def test_direct_edit_off_snaps_back_to_formula():
    system = RateSystem(time_horizon=5)
    controller = system.inflation
    controller.set_direct_edit(True)
    controller.set_rate(1, 60.0)
    assert controller.mode is Mode.MANUAL

    assert controller.set_direct_edit(False)
    assert controller.mode is Mode.AUTO
    assert controller.state.flags.input_type == "preset"
    system.flush()
    assert controller.rates[:6] == DEBASEMENT_INFLATION


def test_direct_edit_off_restores_previous_input_type():
    system = RateSystem(time_horizon=2)
    controller = system.btc_price
    controller.select_input_type("linear")
    controller.select_input_type("manual")
    assert controller.mode is Mode.MANUAL

    controller.set_direct_edit(False)
    assert controller.state.flags.input_type == "linear"
    system.flush()
    assert controller.rates[:3] == [30.0, 50.0, 70.0]


def test_param_updates_only_regenerate_the_active_curve():
    system = RateSystem(time_horizon=5)
    controller = system.income_yield
    controller.select_input_type("flat")
    system.flush()
    assert controller.rates[:6] == [8.0] * 6

    assert controller.update_params(start_rate=1.0) is False
    assert not controller.pending

    assert controller.update_params(flat_rate=4.0) is True
    system.flush()
    assert controller.rates[:6] == [4.0] * 6
    assert controller.rates[6:] == [8.0] * (RATE_SERIES_LENGTH - 6)


def test_param_updates_ignored_outside_auto():
    system = RateSystem(time_horizon=5)
    assert system.inflation.update_params(flat_rate=30.0) is False
    system.inflation.begin_manual_edit()
    assert system.inflation.update_params(flat_rate=31.0) is False
    assert not system.inflation.pending


def test_unknown_param_and_input_type_raise():
    system = RateSystem(time_horizon=5)
    with pytest.raises(ValueError):
        system.inflation.update_params(bogus=1)
    with pytest.raises(ValueError):
        system.inflation.select_input_type("spline")
    with pytest.raises(ValueError):
        system.controller("gold")


def test_select_preset_leaves_follow_mode():
    system = RateSystem(time_horizon=5)
    system.inflation.select_preset("spiral")
    assert system.inflation.mode is Mode.AUTO
    system.select_economic_scenario("tight")
    system.flush()
    assert system.inflation.rates[5] == 100.0
    assert system.btc_price.rates[5] == 30.0


def test_values_past_horizon_survive_regeneration():
    system = RateSystem(time_horizon=5)
    system.btc_price.set_rate(10, 42.0)

    system.select_economic_scenario("crisis")
    system.flush()
    system.set_time_horizon(3)
    system.flush()
    system.set_time_horizon(5)
    system.flush()

    assert system.btc_price.rates[10] == 42.0


def test_missing_preset_leaves_series_unchanged():
    scenarios = load_scenarios({"bare": {"name": "Bare"}})
    system = RateSystem(economic_scenario="bare", time_horizon=5, scenarios=scenarios)
    assert system.inflation.mode is Mode.FOLLOWING
    assert system.inflation.rates == [8.0] * RATE_SERIES_LENGTH


def test_set_rate_pads_with_zeros():
    system = RateSystem(time_horizon=5)
    system.inflation.set_rate(RATE_SERIES_LENGTH + 2, 6.0)
    rates = system.inflation.rates
    assert len(rates) == RATE_SERIES_LENGTH + 3
    assert rates[RATE_SERIES_LENGTH:RATE_SERIES_LENGTH + 2] == [0.0, 0.0]
    assert rates[-1] == 6.0


def test_controller_normalizes_inconsistent_flags():
    state = RateSeriesState(
        dimension=INFLATION,
        rates=[1.0] * 3,
        params=RateSeriesState.default(INFLATION).params,
        flags=ModeFlags(follow_scenario=True, manual_mode=True, input_type="flat"),
    )
    controller = ModeController(state)
    assert controller.mode is Mode.MANUAL
    assert not state.flags.follow_scenario


def test_snap_uses_chart_bounds():
    system = RateSystem(time_horizon=5)
    # debasement inflation preset caps the axis at 20
    assert system.snap(INFLATION, 35.0) == 20.0
    assert system.snap(INFLATION, 7.0) == 8.0
    assert system.snap(INFLATION, -4.0) == 0.0


def test_generation_context_carries_chart_bounds():
    system = RateSystem(time_horizon=5)
    ctx = system.inflation.context()
    assert (ctx.min_value, ctx.max_value) == (0.0, 20.0)

    system.inflation.select_input_type("flat")
    ctx = system.inflation.context()
    assert (ctx.min_value, ctx.max_value) == (0.0, 100.0)
