# utils.py
import json
import logging
import math
import os
import uuid
from dataclasses import asdict, fields
from datetime import datetime

import streamlit as st

from calculations import PortfolioConfig
from config import (
    CONFIG_STORE_PATH,
    DEFAULT_CURVE_PARAMS,
    DEFAULT_ECONOMIC_SCENARIO,
    RATE_DIMENSIONS,
    RATE_SERIES_LENGTH,
)
from modes import CurveParams, ModeFlags, RateSeriesState, RateSystem


def initialize_session_state():
    """Initialize the Streamlit session state variables.

    Examples
    --------
    >>> initialize_session_state()
    >>> st.session_state.setdefault("extra_key", "default")
    """
    st.session_state.setdefault("portfolio", PortfolioConfig())
    if "rate_system" not in st.session_state:
        portfolio = st.session_state["portfolio"]
        st.session_state["rate_system"] = RateSystem(time_horizon=portfolio.time_horizon)
    st.session_state.setdefault("config_store_path", CONFIG_STORE_PATH)
    st.session_state.setdefault("loaded_config_id", None)


def _sanitize_json_compat(value):
    """Replace NaN and infinities with ``None`` so the payload is valid JSON."""

    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
        return value
    if isinstance(value, dict):
        return {key: _sanitize_json_compat(val) for key, val in value.items()}
    if isinstance(value, (list, tuple)):
        return [_sanitize_json_compat(item) for item in value]
    return value


def _read_float(data: dict, key: str, default: float) -> float:
    value = data.get(key)
    if isinstance(value, bool) or value is None:
        return default
    try:
        value = float(value)
    except (TypeError, ValueError):
        return default
    return value if math.isfinite(value) else default


def _read_int(data: dict, key: str, default: int) -> int:
    value = _read_float(data, key, float(default))
    return int(value)


def _read_bool(data: dict, key: str, default: bool) -> bool:
    value = data.get(key)
    return value if isinstance(value, bool) else default


def _read_str(data: dict, key: str, default: str) -> str:
    value = data.get(key)
    return value if isinstance(value, str) and value else default


def _read_rates(data: dict, key: str, default: float) -> list[float]:
    value = data.get(key)
    if not isinstance(value, list):
        return [default] * RATE_SERIES_LENGTH
    rates = []
    for item in value:
        try:
            rate = float(item)
        except (TypeError, ValueError):
            rate = 0.0
        rates.append(rate if math.isfinite(rate) else 0.0)
    return rates


def config_to_dict(portfolio: PortfolioConfig, system: RateSystem) -> dict:
    """Flatten a portfolio and its three rate series into a JSON-compatible dict."""

    system.flush()
    data = asdict(portfolio)
    data["economic_scenario"] = system.economic_scenario
    for controller in system.controllers():
        state = controller.state
        prefix = state.dimension
        data[f"{prefix}_rates"] = list(state.rates)
        data[f"{prefix}_flat"] = state.params.flat_rate
        data[f"{prefix}_start"] = state.params.start_rate
        data[f"{prefix}_end"] = state.params.end_rate
        data[f"{prefix}_preset"] = state.params.preset
        data[f"{prefix}_fixed_curve"] = state.params.fixed_curve
        data[f"{prefix}_follow_scenario"] = state.flags.follow_scenario
        data[f"{prefix}_manual_mode"] = state.flags.manual_mode
        data[f"{prefix}_input_type"] = state.flags.input_type
    return _sanitize_json_compat(data)


def config_from_dict(data: dict | None) -> tuple[PortfolioConfig, RateSystem]:
    """Rebuild a portfolio and rate system; any missing or bad field gets its default."""

    data = data if isinstance(data, dict) else {}
    defaults = PortfolioConfig()
    values = {}
    for f in fields(PortfolioConfig):
        default = getattr(defaults, f.name)
        if isinstance(default, bool):
            values[f.name] = _read_bool(data, f.name, default)
        elif isinstance(default, int):
            values[f.name] = _read_int(data, f.name, default)
        else:
            values[f.name] = _read_float(data, f.name, default)
    portfolio = PortfolioConfig(**values)

    economic_scenario = _read_str(data, "economic_scenario", DEFAULT_ECONOMIC_SCENARIO)
    states = {}
    for dimension in RATE_DIMENSIONS:
        curve_defaults = DEFAULT_CURVE_PARAMS[dimension]
        flat_rate = _read_float(data, f"{dimension}_flat", curve_defaults["flat_rate"])
        params = CurveParams(
            flat_rate=flat_rate,
            start_rate=_read_float(data, f"{dimension}_start", curve_defaults["start_rate"]),
            end_rate=_read_float(data, f"{dimension}_end", curve_defaults["end_rate"]),
            preset=_read_str(data, f"{dimension}_preset", economic_scenario),
            fixed_curve=_read_str(data, f"{dimension}_fixed_curve", CurveParams.fixed_curve),
        )
        flags = ModeFlags(
            follow_scenario=_read_bool(data, f"{dimension}_follow_scenario", True),
            manual_mode=_read_bool(data, f"{dimension}_manual_mode", False),
            input_type=_read_str(data, f"{dimension}_input_type", "preset"),
        )
        states[dimension] = RateSeriesState(
            dimension=dimension,
            rates=_read_rates(data, f"{dimension}_rates", flat_rate),
            params=params,
            flags=flags,
        )
    system = RateSystem(
        economic_scenario=economic_scenario,
        time_horizon=portfolio.time_horizon,
        states=states,
    )
    return portfolio, system


class ConfigStore:
    """Named configurations kept in a JSON file, newest first."""

    def __init__(self, path: str = CONFIG_STORE_PATH):
        self.path = path

    def _read(self) -> list[dict]:
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                configs = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            logging.warning(f"[{timestamp}] Could not read saved configurations from {self.path}: {e}")
            return []
        if not isinstance(configs, list):
            logging.warning(f"Ignoring malformed configuration store {self.path}")
            return []
        return [c for c in configs if isinstance(c, dict) and "id" in c]

    def _write(self, configs: list[dict]) -> None:
        folder = os.path.dirname(self.path)
        if folder and not os.path.exists(folder):
            os.makedirs(folder, exist_ok=True)
        if not configs:
            if os.path.exists(self.path):
                os.remove(self.path)
            return
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(_sanitize_json_compat(configs), f)

    def list_configs(self) -> list[dict]:
        return [
            {"id": c["id"], "name": c.get("name", ""), "saved_at": c.get("saved_at", "")}
            for c in self._read()
        ]

    def save_config(self, name: str, data: dict) -> str:
        config_id = uuid.uuid4().hex
        entry = {
            "id": config_id,
            "name": name,
            "data": data,
            "saved_at": datetime.now().isoformat(timespec="seconds"),
        }
        self._write([entry] + self._read())
        return config_id

    def load_config(self, config_id: str) -> dict | None:
        for c in self._read():
            if c["id"] == config_id:
                return c.get("data")
        return None

    def delete_config(self, config_id: str) -> bool:
        configs = self._read()
        remaining = [c for c in configs if c["id"] != config_id]
        if len(remaining) == len(configs):
            return False
        self._write(remaining)
        return True

    def rename_config(self, config_id: str, new_name: str) -> bool:
        configs = self._read()
        found = False
        for c in configs:
            if c["id"] == config_id:
                c["name"] = new_name
                found = True
        if found:
            self._write(configs)
        return found
