"""Rate curve generation and value snapping for the projection inputs."""

import logging
import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Sequence

from config import (
    CUSTOM_SCENARIO,
    DEFAULT_MAX_AXIS,
    DEFAULT_MIN_AXIS,
    ECONOMIC_SCENARIOS,
    FIXED_CURVES,
    PRESET_CURVE_EXPONENTS,
    RATE_DIMENSIONS,
    SNAP_STEP,
)


@dataclass(frozen=True)
class ScenarioPreset:
    """Start/end rates and chart ceiling for one rate dimension of a scenario."""

    name: str
    start_rate: float
    end_rate: float
    max_axis: float


@dataclass(frozen=True)
class EconomicScenario:
    """A named macro scenario with a preset for each rate dimension."""

    key: str
    name: str
    description: str
    inflation_avg: float
    btc_appreciation_avg: float
    income_growth: float
    presets: Mapping[str, ScenarioPreset]

    def preset_for(self, dimension: str) -> ScenarioPreset | None:
        return self.presets.get(dimension)


def load_scenarios(raw: Mapping[str, dict]) -> Mapping[str, EconomicScenario]:
    """Freeze the scenario table from :mod:`config` into read-only objects."""

    scenarios = {}
    for key, entry in raw.items():
        presets = {}
        for dimension in RATE_DIMENSIONS:
            if dimension not in entry:
                continue
            name, start, end, max_axis = entry[dimension]
            presets[dimension] = ScenarioPreset(
                name=name,
                start_rate=float(start),
                end_rate=float(end),
                max_axis=float(max_axis),
            )
        scenarios[key] = EconomicScenario(
            key=key,
            name=entry.get("name", key),
            description=entry.get("description", ""),
            inflation_avg=float(entry.get("inflation_avg", 0)),
            btc_appreciation_avg=float(entry.get("btc_appreciation_avg", 0)),
            income_growth=float(entry.get("income_growth", 0)),
            presets=MappingProxyType(presets),
        )
    return MappingProxyType(scenarios)


SCENARIOS = load_scenarios(ECONOMIC_SCENARIOS)


def selectable_scenarios(
    scenarios: Mapping[str, EconomicScenario] = SCENARIOS,
) -> dict[str, EconomicScenario]:
    """Scenarios that can drive a curve (everything except ``custom``)."""

    return {k: v for k, v in scenarios.items() if k != CUSTOM_SCENARIO}


# Curve specifications


@dataclass(frozen=True)
class FlatCurve:
    rate: float
    kind: str = field(default="flat", init=False)


@dataclass(frozen=True)
class LinearCurve:
    start: float
    end: float
    kind: str = field(default="linear", init=False)


@dataclass(frozen=True)
class PresetCurve:
    scenario_key: str
    kind: str = field(default="preset", init=False)


@dataclass(frozen=True)
class FixedCurve:
    name: str
    kind: str = field(default="fixedCurve", init=False)


@dataclass(frozen=True)
class ManualCurve:
    kind: str = field(default="manual", init=False)


CurveSpec = FlatCurve | LinearCurve | PresetCurve | FixedCurve | ManualCurve

CURVE_KINDS = ("flat", "linear", "preset", "fixedCurve", "manual")


@dataclass
class GenerationContext:
    """Everything a curve needs besides its own parameters.

    ``current`` is the series being regenerated (returned as-is for manual
    curves) and ``fallback_rate`` feeds the flat default used whenever a
    preset or fixed curve cannot be resolved.
    """

    dimension: str
    current: Sequence[float] = ()
    fallback_rate: float = 0.0
    scenarios: Mapping[str, EconomicScenario] = field(default_factory=lambda: SCENARIOS)
    min_value: float = -math.inf
    max_value: float = math.inf


def _round_half_up(x: float) -> float:
    return float(math.floor(x + 0.5))


def _finite(x) -> float:
    try:
        value = float(x)
    except (TypeError, ValueError):
        return 0.0
    return value if math.isfinite(value) else 0.0


def quantize(raw: float, min_value: float = -math.inf, max_value: float = math.inf) -> float:
    """Clamp ``raw`` to ``[min_value, max_value]`` and snap it to the 2-unit grid.

    Half-way values round up (``3 -> 4``, ``-3 -> -2``). When the snapped
    value would leave the range (odd bounds) it is moved one grid step back
    inside. NaN is treated as 0.

    Examples
    --------
    >>> quantize(7.1, 0, 100)
    8.0
    >>> quantize(150, 0, 100)
    100.0
    """
    if min_value > max_value:
        min_value, max_value = max_value, min_value
    value = float(raw)
    if math.isnan(value):
        value = 0.0
    value = max(min_value, min(value, max_value))
    if not math.isfinite(value):
        return value
    snapped = _round_half_up(value / SNAP_STEP) * SNAP_STEP
    if snapped > max_value:
        snapped -= SNAP_STEP
    elif snapped < min_value:
        snapped += SNAP_STEP
    if not min_value <= snapped <= max_value:
        # No grid point inside the range
        return value
    return snapped + 0.0


def _progress(i: int, horizon: int) -> float:
    return i / max(1, horizon - 1)


def _flat(rate: float, horizon: int) -> list[float]:
    return [float(rate)] * horizon


def _linear(start: float, end: float, horizon: int) -> list[float]:
    start, end = _finite(start), _finite(end)
    return [
        _round_half_up(start + (end - start) * _progress(i, horizon))
        for i in range(horizon)
    ]


def _preset(preset: ScenarioPreset, exponent: float, length: int, ctx: GenerationContext) -> list[float]:
    delta = preset.end_rate - preset.start_rate
    return [
        quantize(
            preset.start_rate + delta * _progress(i, length) ** exponent,
            ctx.min_value,
            ctx.max_value,
        )
        for i in range(length)
    ]


def resolve_preset(
    scenario_key: str,
    dimension: str,
    scenarios: Mapping[str, EconomicScenario] = SCENARIOS,
) -> ScenarioPreset | None:
    """Return the preset for ``dimension`` of a selectable scenario, if any."""

    if scenario_key == CUSTOM_SCENARIO:
        return None
    scenario = scenarios.get(scenario_key)
    if scenario is None:
        return None
    return scenario.preset_for(dimension)


def generate(spec: CurveSpec, length: int, ctx: GenerationContext) -> list[float]:
    """Produce slots ``0..length-1`` of a rate series from ``spec``.

    A projection over ``time_horizon`` years reads ``time_horizon + 1`` slots.

    Unknown preset keys and fixed-curve names fall back to a flat curve at
    ``ctx.fallback_rate``. A manual spec returns ``ctx.current`` unchanged.
    """
    length = max(0, int(length))

    if isinstance(spec, ManualCurve):
        return list(ctx.current)

    if isinstance(spec, FlatCurve):
        return _flat(spec.rate, length)

    if isinstance(spec, LinearCurve):
        return _linear(spec.start, spec.end, length)

    if isinstance(spec, PresetCurve):
        preset = resolve_preset(spec.scenario_key, ctx.dimension, ctx.scenarios)
        if preset is None:
            logging.debug(
                f"No {ctx.dimension} preset for '{spec.scenario_key}', using flat {ctx.fallback_rate}"
            )
            return _flat(ctx.fallback_rate, length)
        exponent = PRESET_CURVE_EXPONENTS.get(ctx.dimension, 1.5)
        return _preset(preset, exponent, length, ctx)

    if isinstance(spec, FixedCurve):
        bounds = FIXED_CURVES.get(spec.name)
        if bounds is None:
            logging.debug(f"Unknown fixed curve '{spec.name}', using flat {ctx.fallback_rate}")
            return _flat(ctx.fallback_rate, length)
        return _linear(bounds[0], bounds[1], length)

    raise ValueError(f"Unsupported curve specification: {spec!r}")


def apply_rates(
    current: Sequence[float],
    new_rates: Sequence[float],
    length: int,
    fallback_rate: float = 0.0,
) -> list[float]:
    """Overwrite the first ``length`` slots of ``current`` with ``new_rates``.

    Slots at index ``length`` and beyond are kept verbatim so that shrinking
    and re-growing the horizon never loses previously entered values. If
    ``current`` is shorter than ``length`` it is padded with
    ``fallback_rate`` first.
    """
    length = max(0, int(length))
    updated = list(current)
    while len(updated) < length:
        updated.append(float(fallback_rate))
    for index, rate in enumerate(new_rates[:length]):
        updated[index] = rate
    return updated


def chart_max_value(
    spec: CurveSpec,
    dimension: str,
    scenarios: Mapping[str, EconomicScenario] = SCENARIOS,
) -> float:
    """Upper bound of the chart axis for a series generated from ``spec``."""

    if isinstance(spec, PresetCurve):
        preset = resolve_preset(spec.scenario_key, dimension, scenarios)
        if preset is not None:
            return preset.max_axis
    return DEFAULT_MAX_AXIS.get(dimension, 100.0)


def chart_min_value(dimension: str) -> float:
    return DEFAULT_MIN_AXIS.get(dimension, 0.0)


def simple_average(rates: Sequence[float], time_horizon: int | None = None) -> float:
    """Arithmetic mean of the finite rates, limited to ``time_horizon`` entries."""

    valid = [float(r) for r in rates if math.isfinite(float(r))]
    if time_horizon:
        valid = valid[:time_horizon]
    if not valid:
        return 0.0
    return round(sum(valid) / len(valid), 1)


def calculate_cagr(annual_rates: Sequence[float], time_horizon: int) -> float:
    """Compound annual growth rate implied by years ``0..time_horizon-1``.

    A 30% rate contributes a ``1.30`` multiplier; the result is rounded to one
    decimal place. Returns 0 for an empty series or a non-positive horizon.
    """
    if not annual_rates or time_horizon <= 0:
        return 0.0
    used = [_finite(r) for r in list(annual_rates)[:time_horizon]]
    compounded = 1.0
    for rate in used:
        compounded *= max(0.0, 1 + rate / 100)
    if compounded <= 0:
        return -100.0
    cagr = (compounded ** (1 / len(used)) - 1) * 100
    return round(cagr, 1)
