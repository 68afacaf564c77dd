"""Edit-mode state machine for the inflation, BTC price and income yield curves.

Each rate series is in exactly one of three modes:

``FOLLOWING``
    The curve is regenerated from the globally selected economic scenario
    whenever that scenario or the time horizon changes.
``AUTO``
    The curve is regenerated from its own flat/linear/preset/fixed parameters.
``MANUAL``
    The stored values are authoritative and nothing regenerates them.

Regeneration is never run inline with the event that asked for it. Events
only mark the series as pending; :meth:`RateSystem.flush` applies every
pending regeneration before the projection reads the series.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping

from calculations import PortfolioConfig, ProjectionResult, RateInputs, project
from chart import ChartCoordinates, DragInteractionController
from config import (
    BTC_PRICE,
    CUSTOM_SCENARIO,
    DEFAULT_CURVE_PARAMS,
    DEFAULT_ECONOMIC_SCENARIO,
    DEFAULT_TIME_HORIZON,
    INCOME_YIELD,
    INFLATION,
    RATE_DIMENSIONS,
    RATE_SERIES_LENGTH,
)
from rates import (
    SCENARIOS,
    CurveSpec,
    EconomicScenario,
    FixedCurve,
    FlatCurve,
    GenerationContext,
    LinearCurve,
    ManualCurve,
    PresetCurve,
    apply_rates,
    chart_max_value,
    chart_min_value,
    generate,
    quantize,
    resolve_preset,
)


class Mode(Enum):
    FOLLOWING = "following"
    AUTO = "auto"
    MANUAL = "manual"


AUTO_INPUT_TYPES = ("flat", "linear", "preset", "fixedCurve")

# Parameters each input type reads
_PARAMS_BY_TYPE = {
    "flat": ("flat_rate",),
    "linear": ("start_rate", "end_rate"),
    "preset": ("preset",),
    "fixedCurve": ("fixed_curve",),
}


@dataclass
class ModeFlags:
    follow_scenario: bool = False
    manual_mode: bool = False
    input_type: str = "preset"


@dataclass
class CurveParams:
    """Form-control values for one series; ``input_type`` picks which apply."""

    flat_rate: float = 0.0
    start_rate: float = 0.0
    end_rate: float = 0.0
    preset: str = DEFAULT_ECONOMIC_SCENARIO
    fixed_curve: str = "long_range_forecast"

    def spec_for(self, input_type: str) -> CurveSpec:
        if input_type == "flat":
            return FlatCurve(self.flat_rate)
        if input_type == "linear":
            return LinearCurve(self.start_rate, self.end_rate)
        if input_type == "preset":
            return PresetCurve(self.preset)
        if input_type == "fixedCurve":
            return FixedCurve(self.fixed_curve)
        return ManualCurve()


@dataclass
class RateSeriesState:
    """Descriptor bundling a rate series with its curve parameters and flags."""

    dimension: str
    rates: list[float]
    params: CurveParams
    flags: ModeFlags = field(default_factory=ModeFlags)

    @classmethod
    def default(cls, dimension: str, scenario_key: str = DEFAULT_ECONOMIC_SCENARIO) -> "RateSeriesState":
        defaults = DEFAULT_CURVE_PARAMS[dimension]
        params = CurveParams(preset=scenario_key, **defaults)
        return cls(
            dimension=dimension,
            rates=[defaults["flat_rate"]] * RATE_SERIES_LENGTH,
            params=params,
            flags=ModeFlags(follow_scenario=True, manual_mode=False, input_type="preset"),
        )


class ModeController:
    """Decides when one rate series is regenerated and from what."""

    def __init__(self, state: RateSeriesState, scenarios: Mapping[str, EconomicScenario] = SCENARIOS):
        self.state = state
        self.scenarios = scenarios
        flags = state.flags
        if flags.manual_mode or flags.input_type == "manual":
            flags.manual_mode = True
            flags.input_type = "manual"
            flags.follow_scenario = False
            self._auto_input_type = "preset"
        else:
            if flags.input_type not in AUTO_INPUT_TYPES:
                flags.input_type = "preset"
            self._auto_input_type = flags.input_type
        self.pending = False

    @property
    def dimension(self) -> str:
        return self.state.dimension

    @property
    def rates(self) -> list[float]:
        return self.state.rates

    @property
    def mode(self) -> Mode:
        if self.state.flags.follow_scenario:
            return Mode.FOLLOWING
        if self.state.flags.manual_mode:
            return Mode.MANUAL
        return Mode.AUTO

    @property
    def spec(self) -> CurveSpec:
        """The curve specification the series currently answers to."""

        if self.mode is Mode.MANUAL:
            return ManualCurve()
        if self.mode is Mode.FOLLOWING:
            return PresetCurve(self.state.params.preset)
        return self.state.params.spec_for(self.state.flags.input_type)

    def _schedule(self, reason: str) -> bool:
        if self.mode is Mode.MANUAL:
            return False
        self.pending = True
        logging.debug(f"{self.dimension}: regeneration scheduled ({reason})")
        return True

    def _enter_auto(self, input_type: str) -> None:
        flags = self.state.flags
        flags.follow_scenario = False
        flags.manual_mode = False
        flags.input_type = input_type
        self._auto_input_type = input_type

    # Events

    def update_params(self, **changes) -> bool:
        """Apply form-control edits; regenerate only if the active curve reads them."""

        params = self.state.params
        changed = []
        for name, value in changes.items():
            if not hasattr(params, name):
                raise ValueError(f"Unknown curve parameter: {name}")
            if getattr(params, name) != value:
                setattr(params, name, value)
                changed.append(name)
        if not changed or self.mode is not Mode.AUTO:
            return False
        relevant = _PARAMS_BY_TYPE.get(self.state.flags.input_type, ())
        if any(name in relevant for name in changed):
            return self._schedule(f"parameters {', '.join(changed)}")
        return False

    def select_input_type(self, input_type: str) -> bool:
        """Switch the curve shape; choosing ``manual`` enters direct edit."""

        if input_type == "manual":
            self.begin_manual_edit()
            return False
        if input_type not in AUTO_INPUT_TYPES:
            raise ValueError(f"Unknown input type: {input_type}")
        self._enter_auto(input_type)
        return self._schedule(f"input type {input_type}")

    def select_preset(self, scenario_key: str) -> bool:
        self.state.params.preset = scenario_key
        self._enter_auto("preset")
        return self._schedule(f"preset {scenario_key}")

    def set_follow_scenario(self, follow: bool, global_scenario: str) -> bool:
        """Toggle following the global scenario.

        Turning it on is a no-op while the global scenario is ``custom``.
        """
        flags = self.state.flags
        if not follow:
            if flags.follow_scenario:
                flags.follow_scenario = False
                flags.input_type = "preset"
                self._auto_input_type = "preset"
            return False
        if global_scenario == CUSTOM_SCENARIO:
            logging.debug(f"{self.dimension}: cannot follow the custom scenario")
            return False
        flags.follow_scenario = True
        flags.manual_mode = False
        flags.input_type = "preset"
        self._auto_input_type = "preset"
        self.state.params.preset = global_scenario
        return self._schedule(f"following {global_scenario}")

    def global_scenario_changed(self, scenario_key: str) -> bool:
        if self.mode is not Mode.FOLLOWING or scenario_key == CUSTOM_SCENARIO:
            return False
        self.state.params.preset = scenario_key
        return self._schedule(f"scenario {scenario_key}")

    def horizon_changed(self) -> bool:
        return self._schedule("time horizon")

    def begin_manual_edit(self) -> None:
        """Drag-start signal: stop following and regenerating, keep the values."""

        flags = self.state.flags
        flags.follow_scenario = False
        flags.manual_mode = True
        flags.input_type = "manual"
        if self.pending:
            logging.debug(f"{self.dimension}: pending regeneration dropped for manual edit")
        self.pending = False

    def set_direct_edit(self, enabled: bool) -> bool:
        """Toggle direct edit; leaving it snaps the curve back to its formula."""

        if enabled:
            self.begin_manual_edit()
            return False
        if self.mode is not Mode.MANUAL:
            return False
        self._enter_auto(self._auto_input_type)
        return self._schedule("direct edit off")

    def set_rate(self, index: int, value: float) -> None:
        """Write a single, already snapped value; pads the series with zeros."""

        if index < 0:
            return
        rates = self.state.rates
        while len(rates) <= index:
            rates.append(0.0)
        rates[index] = value

    # Regeneration

    def context(self) -> GenerationContext:
        min_value, max_value = self.chart_bounds()
        return GenerationContext(
            dimension=self.dimension,
            current=self.state.rates,
            fallback_rate=self.state.params.flat_rate,
            scenarios=self.scenarios,
            min_value=min_value,
            max_value=max_value,
        )

    def regenerate(self, horizon: int) -> bool:
        """Run a pending regeneration covering years ``0..horizon``.

        Following a scenario whose preset is missing leaves the series
        untouched.
        """
        if not self.pending:
            return False
        self.pending = False
        if self.mode is Mode.MANUAL:
            return False
        spec = self.spec
        if self.mode is Mode.FOLLOWING and resolve_preset(
            spec.scenario_key, self.dimension, self.scenarios
        ) is None:
            logging.debug(f"{self.dimension}: scenario '{spec.scenario_key}' has no preset, series unchanged")
            return False
        length = max(0, int(horizon)) + 1
        new_rates = generate(spec, length, self.context())
        self.state.rates = apply_rates(
            self.state.rates, new_rates, length, self.state.params.flat_rate
        )
        logging.debug(f"{self.dimension}: regenerated {len(new_rates)} years from {spec.kind}")
        return True

    def chart_bounds(self) -> tuple[float, float]:
        return chart_min_value(self.dimension), chart_max_value(self.spec, self.dimension, self.scenarios)


class RateSystem:
    """The three rate series plus the global scenario and horizon they share."""

    def __init__(
        self,
        economic_scenario: str = DEFAULT_ECONOMIC_SCENARIO,
        time_horizon: int = DEFAULT_TIME_HORIZON,
        states: Mapping[str, RateSeriesState] | None = None,
        scenarios: Mapping[str, EconomicScenario] = SCENARIOS,
    ):
        self.economic_scenario = economic_scenario
        self.time_horizon = int(time_horizon)
        self.scenarios = scenarios
        states = dict(states or {})
        for dimension in RATE_DIMENSIONS:
            states.setdefault(dimension, RateSeriesState.default(dimension, economic_scenario))
        self.inflation = ModeController(states[INFLATION], scenarios)
        self.btc_price = ModeController(states[BTC_PRICE], scenarios)
        self.income_yield = ModeController(states[INCOME_YIELD], scenarios)
        for controller in self.controllers():
            if controller.mode is not Mode.MANUAL:
                controller.pending = True
        self.flush()

    def controllers(self) -> tuple[ModeController, ModeController, ModeController]:
        return (self.inflation, self.btc_price, self.income_yield)

    def controller(self, dimension: str) -> ModeController:
        for controller in self.controllers():
            if controller.dimension == dimension:
                return controller
        raise ValueError(f"Unknown rate dimension: {dimension}")

    @property
    def pending(self) -> bool:
        return any(c.pending for c in self.controllers())

    def select_economic_scenario(self, scenario_key: str) -> None:
        if scenario_key == self.economic_scenario:
            return
        self.economic_scenario = scenario_key
        for controller in self.controllers():
            controller.global_scenario_changed(scenario_key)

    def set_time_horizon(self, time_horizon: int) -> None:
        time_horizon = int(time_horizon)
        if time_horizon == self.time_horizon:
            return
        self.time_horizon = time_horizon
        for controller in self.controllers():
            controller.horizon_changed()

    def set_follow_scenario(self, dimension: str, follow: bool) -> bool:
        return self.controller(dimension).set_follow_scenario(follow, self.economic_scenario)

    def can_follow_scenario(self) -> bool:
        return self.economic_scenario != CUSTOM_SCENARIO

    def flush(self) -> list[str]:
        """Apply every pending regeneration; returns the regenerated dimensions."""

        return [
            c.dimension for c in self.controllers() if c.regenerate(self.time_horizon)
        ]

    def rate_inputs(self) -> RateInputs:
        self.flush()
        return RateInputs(
            inflation=list(self.inflation.rates),
            btc_price=list(self.btc_price.rates),
            income_yield=list(self.income_yield.rates),
        )

    def project(self, portfolio: PortfolioConfig) -> ProjectionResult:
        """Flush pending regenerations, then run the projection."""

        if portfolio.time_horizon != self.time_horizon:
            self.set_time_horizon(portfolio.time_horizon)
        return project(self.rate_inputs(), portfolio)

    def drag_controller(
        self,
        dimension: str,
        coords: ChartCoordinates,
        read_only: bool = False,
    ) -> DragInteractionController:
        """Bind a drag controller to one series; drag start enters manual mode."""

        controller = self.controller(dimension)
        return DragInteractionController(
            coords,
            get_series=lambda: controller.rates,
            write=controller.set_rate,
            on_start_drag=controller.begin_manual_edit,
            read_only=read_only,
        )

    def chart_coordinates(self, dimension: str, width: float, height: float) -> ChartCoordinates:
        min_value, max_value = self.controller(dimension).chart_bounds()
        return ChartCoordinates(
            width=width,
            height=height,
            n_points=self.time_horizon + 1,
            min_value=min_value,
            max_value=max_value,
        )

    def snap(self, dimension: str, value: float) -> float:
        min_value, max_value = self.controller(dimension).chart_bounds()
        return quantize(value, min_value, max_value)
