# main.py
from dataclasses import replace

import pandas as pd
import streamlit as st

from calculations import (
    calculate_cashflows,
    calculate_escape_velocity,
    calculate_loan_details,
    calculate_portfolio_growth,
    calculate_portfolio_mix,
    format_currency,
    growth_category,
)
from config import (
    BTC_PRICE,
    BTC_STACK_STEP,
    CHART_HEIGHT,
    CHART_WIDTH,
    EXCHANGE_RATE_STEP,
    EXPENSES_STEP,
    INCOME_YIELD,
    INFLATION,
    RATE_STEP,
    SNAP_STEP,
    TIME_HORIZON_RANGE,
)
from modes import AUTO_INPUT_TYPES, Mode
from rates import SCENARIOS, calculate_cagr, selectable_scenarios, simple_average
from utils import ConfigStore, config_from_dict, config_to_dict, initialize_session_state
from validation import validate_inputs, validate_loan
from visualization import GREEN, ORANGE, RED, show_projection_charts, show_rate_curve

INPUT_TYPE_LABELS = {
    "flat": "Flat rate",
    "linear": "Linear progression",
    "preset": "Scenario preset",
    "fixedCurve": "Long-range forecast",
}

RATE_SECTIONS = (
    (INFLATION, "💵 USD Inflation", RED),
    (BTC_PRICE, "📈 BTC Price Appreciation", ORANGE),
    (INCOME_YIELD, "💰 Income Yield", GREEN),
)


def _form_key(name: str) -> str:
    return f"{name}_{st.session_state.get('form_version', 0)}"


def render_portfolio_form(portfolio):
    """Portfolio, loan and income inputs; returns the updated configuration."""

    with st.expander("🧮 Portfolio Setup", expanded=True):
        col1, col2, col3 = st.columns(3)
        with col1:
            btc_stack = st.number_input(
                "BTC Stack (₿)", min_value=0.0, value=float(portfolio.btc_stack),
                step=BTC_STACK_STEP, key=_form_key("btc_stack"),
            )
        with col2:
            time_horizon = st.number_input(
                "Time Horizon (years)", min_value=0, max_value=TIME_HORIZON_RANGE[1],
                value=int(portfolio.time_horizon), step=1, key=_form_key("time_horizon"),
            )
        with col3:
            activation_year = st.number_input(
                "Income Activation Year", min_value=0, max_value=TIME_HORIZON_RANGE[1],
                value=int(portfolio.activation_year), step=1, key=_form_key("activation_year"),
                help="The year part of the stack is converted into a USD income pool",
            )

        col4, col5, col6 = st.columns(3)
        with col4:
            savings_pct = st.number_input(
                "Savings (%)", value=float(portfolio.savings_pct), step=RATE_STEP, key=_form_key("savings_pct"),
            )
        with col5:
            investments_pct = st.number_input(
                "Investments (%)", value=float(portfolio.investments_pct), step=RATE_STEP,
                key=_form_key("investments_pct"),
            )
        with col6:
            speculation_pct = st.number_input(
                "Speculation (%)", value=float(portfolio.speculation_pct), step=RATE_STEP,
                key=_form_key("speculation_pct"),
            )

        col7, col8, col9, col10 = st.columns(4)
        with col7:
            investments_start_yield = st.number_input(
                "Investments start yield (%)", value=float(portfolio.investments_start_yield),
                step=RATE_STEP, key=_form_key("investments_start_yield"),
            )
        with col8:
            investments_end_yield = st.number_input(
                "Investments end yield (%)", value=float(portfolio.investments_end_yield),
                step=RATE_STEP, key=_form_key("investments_end_yield"),
            )
        with col9:
            speculation_start_yield = st.number_input(
                "Speculation start yield (%)", value=float(portfolio.speculation_start_yield),
                step=RATE_STEP, key=_form_key("speculation_start_yield"),
            )
        with col10:
            speculation_end_yield = st.number_input(
                "Speculation end yield (%)", value=float(portfolio.speculation_end_yield),
                step=RATE_STEP, key=_form_key("speculation_end_yield"),
            )

        col11, col12, col13 = st.columns(3)
        with col11:
            exchange_rate = st.number_input(
                "BTC Price Today (USD)", value=float(portfolio.exchange_rate),
                step=EXCHANGE_RATE_STEP, key=_form_key("exchange_rate"),
            )
        with col12:
            starting_expenses = st.number_input(
                "Annual Expenses Today (USD)", value=float(portfolio.starting_expenses),
                step=EXPENSES_STEP, key=_form_key("starting_expenses"),
            )
        with col13:
            price_crash = st.number_input(
                "Price Crash at End (%)", value=float(portfolio.price_crash), step=RATE_STEP,
                key=_form_key("price_crash"),
            )

    with st.expander("🏦 Income & Leverage"):
        col1, col2 = st.columns(2)
        with col1:
            income_allocation_pct = st.number_input(
                "Income Allocation (%)", value=float(portfolio.income_allocation_pct),
                step=RATE_STEP, key=_form_key("income_allocation_pct"),
            )
        with col2:
            income_reinvestment_pct = st.number_input(
                "Income Reinvestment (%)", value=float(portfolio.income_reinvestment_pct),
                step=RATE_STEP, key=_form_key("income_reinvestment_pct"),
            )
        col3, col4, col5 = st.columns(3)
        with col3:
            collateral_pct = st.number_input(
                "Collateral (% of savings)", value=float(portfolio.collateral_pct),
                step=RATE_STEP, key=_form_key("collateral_pct"),
            )
        with col4:
            ltv_ratio = st.number_input(
                "Loan-to-Value (%)", value=float(portfolio.ltv_ratio), step=RATE_STEP,
                key=_form_key("ltv_ratio"),
            )
        with col5:
            loan_rate = st.number_input(
                "Loan Rate (%)", value=float(portfolio.loan_rate), step=0.5, key=_form_key("loan_rate"),
            )
        col6, col7 = st.columns(2)
        with col6:
            loan_term_years = st.number_input(
                "Loan Term (years)", value=int(portfolio.loan_term_years), step=1,
                key=_form_key("loan_term_years"),
            )
        with col7:
            interest_only = st.checkbox(
                "Interest-only loan", value=bool(portfolio.interest_only), key=_form_key("interest_only"),
            )

    return replace(
        portfolio,
        btc_stack=btc_stack,
        time_horizon=int(time_horizon),
        activation_year=int(activation_year),
        savings_pct=savings_pct,
        investments_pct=investments_pct,
        speculation_pct=speculation_pct,
        investments_start_yield=investments_start_yield,
        investments_end_yield=investments_end_yield,
        speculation_start_yield=speculation_start_yield,
        speculation_end_yield=speculation_end_yield,
        exchange_rate=exchange_rate,
        starting_expenses=starting_expenses,
        price_crash=price_crash,
        income_allocation_pct=income_allocation_pct,
        income_reinvestment_pct=income_reinvestment_pct,
        collateral_pct=collateral_pct,
        ltv_ratio=ltv_ratio,
        loan_rate=loan_rate,
        loan_term_years=int(loan_term_years),
        interest_only=interest_only,
    )


def render_economic_scenario(system):
    keys = list(SCENARIOS.keys())
    scenario_key = st.selectbox(
        "Economic Scenario",
        keys,
        index=keys.index(system.economic_scenario) if system.economic_scenario in keys else 0,
        format_func=lambda k: SCENARIOS[k].name,
        key=_form_key("economic_scenario"),
    )
    system.select_economic_scenario(scenario_key)
    st.caption(SCENARIOS[scenario_key].description)


def render_point_editor(system, dimension, index):
    """Edit one year of a rate curve through the chart's drag controller."""

    controller = system.controller(dimension)
    min_value, max_value = controller.chart_bounds()
    current = system.snap(dimension, controller.rates[index] if index < len(controller.rates) else 0.0)
    value = st.slider(
        f"Year {index} rate (%)",
        min_value=float(min_value),
        max_value=float(max_value),
        value=float(current),
        step=SNAP_STEP,
        key=_form_key(f"{dimension}_point_{index}"),
    )
    if value != current:
        coords = system.chart_coordinates(dimension, CHART_WIDTH, CHART_HEIGHT)
        drag = system.drag_controller(dimension, coords)
        drag.drag_start(*coords.point_to_pixel(index, value))
        drag.drag_end()
        st.rerun()


def render_rate_section(system, dimension, label, color):
    controller = system.controller(dimension)
    flags = controller.state.flags
    params = controller.state.params

    with st.expander(label):
        col1, col2 = st.columns(2)
        with col1:
            if system.can_follow_scenario():
                # Keyed on the flag so that outside transitions reset the widget
                follow = st.toggle(
                    "Follow economic scenario",
                    value=flags.follow_scenario,
                    key=f"{dimension}_follow_{flags.follow_scenario}",
                )
                if follow != flags.follow_scenario:
                    system.set_follow_scenario(dimension, follow)
        with col2:
            direct_edit = st.toggle(
                "Direct edit",
                value=flags.manual_mode,
                key=f"{dimension}_direct_{flags.manual_mode}",
            )
            if direct_edit != flags.manual_mode:
                controller.set_direct_edit(direct_edit)

        if controller.mode is Mode.AUTO:
            input_type = st.selectbox(
                "Curve",
                AUTO_INPUT_TYPES,
                index=AUTO_INPUT_TYPES.index(flags.input_type),
                format_func=INPUT_TYPE_LABELS.get,
                key=f"{dimension}_input_type_{flags.input_type}",
            )
            if input_type != flags.input_type:
                controller.select_input_type(input_type)
            if flags.input_type == "flat":
                flat_rate = st.number_input(
                    "Rate (%)", value=float(params.flat_rate), step=RATE_STEP, key=_form_key(f"{dimension}_flat"),
                )
                controller.update_params(flat_rate=flat_rate)
            elif flags.input_type == "linear":
                col3, col4 = st.columns(2)
                with col3:
                    start_rate = st.number_input(
                        "Start (%)", value=float(params.start_rate), step=RATE_STEP, key=_form_key(f"{dimension}_start"),
                    )
                with col4:
                    end_rate = st.number_input(
                        "End (%)", value=float(params.end_rate), step=RATE_STEP, key=_form_key(f"{dimension}_end"),
                    )
                controller.update_params(start_rate=start_rate, end_rate=end_rate)
            elif flags.input_type == "preset":
                presets = list(selectable_scenarios().keys())
                preset = st.selectbox(
                    "Preset",
                    presets,
                    index=presets.index(params.preset) if params.preset in presets else 0,
                    format_func=lambda k: SCENARIOS[k].preset_for(dimension).name,
                    key=_form_key(f"{dimension}_preset"),
                )
                if preset != params.preset:
                    controller.select_preset(preset)

        system.flush()
        used = controller.rates[: system.time_horizon + 1]
        if controller.mode is Mode.MANUAL:
            df = pd.DataFrame({"Year": list(range(len(used))), "Rate (%)": used})
            edited = st.data_editor(
                df, disabled=["Year"], hide_index=True, key=_form_key(f"{dimension}_editor"),
            )
            for index, value in enumerate(edited["Rate (%)"].tolist()):
                if index < len(used) and value != used[index]:
                    controller.set_rate(index, system.snap(dimension, value))
            used = controller.rates[: system.time_horizon + 1]

        min_value, max_value = controller.chart_bounds()
        selected = show_rate_curve(
            controller.rates,
            system.time_horizon,
            min_value,
            max_value,
            color,
            key=_form_key(f"{dimension}_curve"),
            selectable=True,
        )
        if selected is not None:
            render_point_editor(system, dimension, selected)
        st.caption(
            f"Average {simple_average(used):.1f}% · CAGR {calculate_cagr(used, system.time_horizon):.1f}%"
        )


def render_escape_velocity(escape):
    st.subheader("Escape velocity")
    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Income covers expenses", "Never" if escape.base_year is None else f"Year {escape.base_year}")
    with col2:
        st.metric(
            "With leverage", "Never" if escape.leveraged_year is None else f"Year {escape.leveraged_year}"
        )
    with col3:
        if escape.leverage_advantage is None:
            st.metric("Leverage advantage", "n/a")
        else:
            st.metric("Leverage advantage", f"{escape.leverage_advantage} years")


def render_results(portfolio, system):
    """Run the projection and render the summary; returns the projection."""

    result = system.project(portfolio)

    errors, warnings = validate_inputs(portfolio)
    loan_errors, loan_warnings = validate_loan(portfolio)
    for message in list(errors.values()) + loan_errors:
        st.error(message)
    for message in list(warnings.values()) + loan_warnings:
        st.warning(message)

    growth = calculate_portfolio_growth(result, portfolio)
    cashflows = calculate_cashflows(result, portfolio)
    mix = calculate_portfolio_mix(portfolio)

    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Final BTC (with income)", f"₿{growth.final_btc_with_income:,.4f}",
                  f"{growth.btc_growth_with_income:,.2f}%")
    with col2:
        st.metric("Final BTC (without income)", f"₿{growth.final_btc_without_income:,.4f}",
                  f"{growth.btc_growth_without_income:,.2f}%")
    with col3:
        st.metric("Growth", growth_category(growth.btc_growth_with_income).title())

    col4, col5 = st.columns(2)
    with col4:
        st.metric("Cashflow at activation", format_currency(cashflows["activation_year"]["without_leverage"]))
        st.metric("With leverage", format_currency(cashflows["activation_year"]["with_leverage"]))
    with col5:
        st.metric("Cashflow in final year", format_currency(cashflows["final_year"]["without_leverage"]))
        st.metric("With leverage", format_currency(cashflows["final_year"]["with_leverage"]))

    loan = calculate_loan_details(portfolio, result)
    if loan.loan_amount > 0:
        st.write(
            f"Loan of {format_currency(loan.loan_amount)} at activation, "
            f"{format_currency(loan.monthly_payment)} per month, liquidation below "
            f"{format_currency(loan.liquidation_price)} per BTC (risk: {loan.risk_level})."
        )
    render_escape_velocity(calculate_escape_velocity(result, portfolio))
    st.write(
        f"Allocation at the end of the horizon: savings {mix.final_savings_pct:.1f}%, "
        f"investments {mix.final_investments_pct:.1f}%, speculation {mix.final_speculation_pct:.1f}%."
    )

    show_projection_charts(result)
    st.info(
        "Note: Bitcoin prices are highly volatile. These projections are estimates and should not be considered financial advice."
    )
    return result


def render_save_load(portfolio, system):
    store = ConfigStore(st.session_state.config_store_path)
    with st.sidebar:
        st.subheader("Saved configurations")
        name = st.text_input("Name", key="save_config_name")
        if st.button("Save", disabled=not name):
            store.save_config(name, config_to_dict(portfolio, system))
            st.success(f"Saved '{name}'")

        saved = store.list_configs()
        if not saved:
            st.caption("No saved configurations.")
            return
        labels = {c["id"]: f"{c['name']} ({c['saved_at']})" for c in saved}
        selected = st.selectbox("Saved", list(labels), format_func=labels.get)
        col1, col2 = st.columns(2)
        with col1:
            if st.button("Load"):
                loaded_portfolio, loaded_system = config_from_dict(store.load_config(selected))
                st.session_state.portfolio = loaded_portfolio
                st.session_state.rate_system = loaded_system
                st.session_state.loaded_config_id = selected
                st.session_state.form_version = st.session_state.get("form_version", 0) + 1
                st.rerun()
        with col2:
            if st.button("Delete"):
                store.delete_config(selected)
                st.rerun()


def main():
    st.set_page_config(page_title="BTC Income Planner", page_icon="📈")
    st.title("📈 BTC Income Planner")
    initialize_session_state()

    system = st.session_state.rate_system
    portfolio = render_portfolio_form(st.session_state.portfolio)
    st.session_state.portfolio = portfolio
    system.set_time_horizon(portfolio.time_horizon)

    render_economic_scenario(system)
    for dimension, label, color in RATE_SECTIONS:
        render_rate_section(system, dimension, label, color)

    with st.expander("📆 Projection", expanded=True):
        render_results(portfolio, system)

    render_save_load(portfolio, system)


if __name__ == "__main__":
    main()
