import math
import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from config import BTC_PRICE, INCOME_YIELD, INFLATION
from rates import (
    SCENARIOS,
    FixedCurve,
    FlatCurve,
    GenerationContext,
    LinearCurve,
    ManualCurve,
    PresetCurve,
    apply_rates,
    calculate_cagr,
    chart_max_value,
    chart_min_value,
    generate,
    load_scenarios,
    quantize,
    resolve_preset,
    selectable_scenarios,
    simple_average,
)


@pytest.mark.parametrize(
    "raw, lo, hi, expected",
    [
        (7.1, 0, 100, 8.0),
        (3.0, 0, 100, 4.0),
        (-3.0, -math.inf, 100, -2.0),
        (150.0, 0, 100, 100.0),
        (-5.0, 0, 100, 0.0),
        (0.9, 0, 100, 0.0),
        (float("nan"), 0, 100, 0.0),
    ],
)
def test_quantize_snaps_to_grid(raw, lo, hi, expected):
    assert quantize(raw, lo, hi) == expected


def test_quantize_is_idempotent():
    for raw in (0.0, 1.0, 2.9, 13.0, 57.5, 99.0, 100.0, 250.0):
        once = quantize(raw, 0, 100)
        assert quantize(once, 0, 100) == once
        assert once % 2 == 0
        assert 0 <= once <= 100


def test_quantize_stays_inside_odd_bounds():
    assert quantize(99, 0, 99) == 98.0
    assert quantize(1, 1, 9) == 2.0


def test_flat_curve_repeats_rate():
    ctx = GenerationContext(dimension=INFLATION)
    assert generate(FlatCurve(7.5), 4, ctx) == [7.5] * 4


def test_linear_curve_rounds_half_up():
    ctx = GenerationContext(dimension=BTC_PRICE)
    assert generate(LinearCurve(5, 15), 3, ctx) == [5.0, 10.0, 15.0]
    assert generate(LinearCurve(0, 3), 3, ctx) == [0.0, 2.0, 3.0]


def test_linear_curve_short_horizons():
    ctx = GenerationContext(dimension=BTC_PRICE)
    assert generate(LinearCurve(5, 15), 1, ctx) == [5.0]
    assert generate(LinearCurve(5, 15), 0, ctx) == []


def test_preset_curve_follows_power_shape():
    ctx = GenerationContext(dimension=INFLATION)
    # debasement inflation runs 8 -> 12 with exponent 2
    assert generate(PresetCurve("debasement"), 5, ctx) == [8.0, 8.0, 10.0, 10.0, 12.0]


def test_preset_curve_stays_within_context_bounds():
    ctx = GenerationContext(dimension=INFLATION, min_value=0.0, max_value=10.0)
    rates = generate(PresetCurve("spiral"), 6, ctx)
    assert rates[0] == 10.0
    assert all(0.0 <= r <= 10.0 for r in rates)


def test_preset_curve_values_are_on_grid():
    ctx = GenerationContext(dimension=BTC_PRICE)
    rates = generate(PresetCurve("spiral"), 20, ctx)
    assert rates[0] == 80.0
    assert rates[-1] == 200.0
    assert all(r % 2 == 0 for r in rates)
    assert rates == sorted(rates)


def test_fixed_curve_long_range_forecast():
    ctx = GenerationContext(dimension=BTC_PRICE)
    assert generate(FixedCurve("long_range_forecast"), 5, ctx) == [37.0, 33.0, 29.0, 25.0, 21.0]


def test_unknown_preset_and_fixed_curve_fall_back_to_flat():
    ctx = GenerationContext(dimension=INCOME_YIELD, fallback_rate=3.0)
    assert generate(PresetCurve("custom"), 3, ctx) == [3.0, 3.0, 3.0]
    assert generate(PresetCurve("does-not-exist"), 2, ctx) == [3.0, 3.0]
    assert generate(FixedCurve("nope"), 2, ctx) == [3.0, 3.0]


def test_manual_curve_returns_current_series():
    current = [1.0, 2.0, 3.0]
    ctx = GenerationContext(dimension=INFLATION, current=current)
    out = generate(ManualCurve(), 10, ctx)
    assert out == current
    assert out is not current


def test_generate_rejects_unknown_spec():
    with pytest.raises(ValueError):
        generate("flat", 3, GenerationContext(dimension=INFLATION))


def test_apply_rates_preserves_tail():
    current = [1.0] * 10
    updated = apply_rates(current, [5.0, 5.0, 5.0], 3)
    assert updated == [5.0, 5.0, 5.0] + [1.0] * 7
    assert current == [1.0] * 10


def test_apply_rates_pads_short_series():
    assert apply_rates([1.0], [5.0], 3, fallback_rate=7.0) == [5.0, 7.0, 7.0]
    assert apply_rates([], [], 0) == []


def test_resolve_preset_skips_custom():
    assert resolve_preset("custom", INFLATION) is None
    assert resolve_preset("missing", INFLATION) is None
    assert resolve_preset("crisis", BTC_PRICE).start_rate == 50.0


def test_selectable_scenarios_exclude_custom():
    keys = set(selectable_scenarios())
    assert "custom" not in keys
    assert keys == set(SCENARIOS) - {"custom"}


def test_load_scenarios_tolerates_missing_dimensions():
    scenarios = load_scenarios({"bare": {"name": "Bare"}})
    assert scenarios["bare"].preset_for(INFLATION) is None
    assert resolve_preset("bare", INFLATION, scenarios) is None


def test_chart_max_value():
    assert chart_max_value(PresetCurve("debasement"), INFLATION) == 20.0
    assert chart_max_value(PresetCurve("custom"), INFLATION) == 100.0
    assert chart_max_value(FlatCurve(5), BTC_PRICE) == 200.0
    assert chart_max_value(ManualCurve(), INCOME_YIELD) == 100.0


def test_simple_average_and_cagr():
    assert simple_average([1, 2, 3, 4]) == 2.5
    assert simple_average([1, 2, 3, 4], time_horizon=2) == 1.5
    assert simple_average([]) == 0.0
    assert calculate_cagr([10, 10], 2) == 10.0
    assert calculate_cagr([], 5) == 0.0
    assert calculate_cagr([10], 0) == 0.0


@pytest.mark.parametrize("dimension", [INFLATION, BTC_PRICE, INCOME_YIELD, "unknown"])
def test_chart_min_value_per_dimension(dimension):
    assert chart_min_value(dimension) == 0.0


def test_generation_context_defaults_to_scenario_catalog():
    first = GenerationContext(dimension=INFLATION)
    second = GenerationContext(dimension=BTC_PRICE)
    assert first.scenarios is SCENARIOS
    assert second.scenarios is SCENARIOS
    assert first.scenarios["debasement"].preset_for(INFLATION).end_rate == 12.0
