# validation.py
from config import (
    ALLOCATION_TOTAL,
    BTC_STACK_MAX,
    COLLATERAL_WARN_MAX,
    LOAN_RATE_WARN_RANGE,
    LOAN_TERM_MIN,
    LOAN_TERM_WARN_MAX,
    LTV_WARN_HIGH,
    LTV_WARN_LOW,
    TIME_HORIZON_RANGE,
    YIELD_RANGE,
)


def validate_time_horizon(time_horizon):
    if time_horizon < TIME_HORIZON_RANGE[0]:
        return f"Time horizon must be at least {TIME_HORIZON_RANGE[0]} year"
    if time_horizon > TIME_HORIZON_RANGE[1]:
        return f"Time horizon cannot exceed {TIME_HORIZON_RANGE[1]} years"
    return None


def validate_btc_stack(btc_stack):
    if btc_stack <= 0:
        return "BTC stack must be greater than 0"
    if btc_stack > BTC_STACK_MAX:
        return f"BTC stack cannot exceed {BTC_STACK_MAX:,.0f} BTC"
    return None


def validate_yield_rates(start_yield, end_yield):
    if start_yield < YIELD_RANGE[0]:
        return "Start yield cannot be negative"
    if end_yield < YIELD_RANGE[0]:
        return "End yield cannot be negative"
    if start_yield > YIELD_RANGE[1]:
        return f"Start yield cannot exceed {YIELD_RANGE[1]:.0f}%"
    if end_yield > YIELD_RANGE[1]:
        return f"End yield cannot exceed {YIELD_RANGE[1]:.0f}%"
    return None


def validate_inputs(portfolio):
    """Classify problems with a portfolio as errors and warnings.

    Advisory only: the projection runs regardless of what is reported here.
    Returns ``(errors, warnings)``, each a dict of field name to message.
    """
    errors = {}
    warnings = {}

    message = validate_time_horizon(portfolio.time_horizon)
    if message:
        errors["time_horizon"] = message

    message = validate_btc_stack(portfolio.btc_stack)
    if message:
        errors["btc_stack"] = message

    message = validate_yield_rates(portfolio.investments_start_yield, portfolio.investments_end_yield)
    if message:
        errors["investments_yield"] = message

    message = validate_yield_rates(portfolio.speculation_start_yield, portfolio.speculation_end_yield)
    if message:
        errors["speculation_yield"] = message

    total_allocation = portfolio.savings_pct + portfolio.investments_pct + portfolio.speculation_pct
    if abs(total_allocation - ALLOCATION_TOTAL) > 1e-9:
        errors["allocation"] = f"Allocations must sum to 100% (current: {total_allocation:g}%)"

    if portfolio.activation_year >= portfolio.time_horizon:
        warnings["activation_year"] = "Activation year should be before the end of time horizon"
    elif portfolio.activation_year < 0:
        warnings["activation_year"] = "Activation year cannot be before year 0"

    if portfolio.starting_expenses <= 0:
        warnings["starting_expenses"] = "Starting expenses should be greater than 0"

    if portfolio.exchange_rate <= 0:
        warnings["exchange_rate"] = "Exchange rate should be greater than 0"

    if not 0 <= portfolio.price_crash <= 100:
        warnings["price_crash"] = "Price crash should be between 0% and 100%"

    return errors, warnings


def validate_loan(portfolio):
    """Return ``(errors, warnings)`` lists for the leverage settings."""

    errors = []
    warnings = []

    if portfolio.ltv_ratio > LTV_WARN_HIGH:
        warnings.append("LTV ratio above 50% increases liquidation risk significantly")
    if portfolio.ltv_ratio < LTV_WARN_LOW and portfolio.collateral_pct > 0:
        warnings.append("Very low LTV ratio may limit the effectiveness of leverage")
    if not 0 <= portfolio.ltv_ratio <= 100:
        errors.append("LTV ratio must be between 0% and 100%")

    if portfolio.loan_rate < LOAN_RATE_WARN_RANGE[0]:
        warnings.append("Unusually low loan rate - verify this is realistic")
    if portfolio.loan_rate > LOAN_RATE_WARN_RANGE[1]:
        warnings.append("High loan rate significantly increases cost of leverage")

    if portfolio.loan_term_years < LOAN_TERM_MIN:
        errors.append("Loan term must be at least 1 year")
    if portfolio.loan_term_years > LOAN_TERM_WARN_MAX:
        warnings.append("Very long loan terms increase exposure to rate changes")

    if portfolio.collateral_pct > COLLATERAL_WARN_MAX:
        warnings.append("Using most of your stack as collateral increases risk")

    return errors, warnings
