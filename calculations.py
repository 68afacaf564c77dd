"""Year-by-year BTC holdings and income projection."""

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from config import (
    DEFAULT_ACTIVATION_YEAR,
    DEFAULT_BTC_STACK,
    DEFAULT_COLLATERAL_PCT,
    DEFAULT_EXCHANGE_RATE,
    DEFAULT_INCOME_ALLOCATION_PCT,
    DEFAULT_INCOME_REINVESTMENT_PCT,
    DEFAULT_INTEREST_ONLY,
    DEFAULT_INVESTMENTS_END_YIELD,
    DEFAULT_INVESTMENTS_PCT,
    DEFAULT_INVESTMENTS_START_YIELD,
    DEFAULT_LOAN_RATE,
    DEFAULT_LOAN_TERM_YEARS,
    DEFAULT_LTV_RATIO,
    DEFAULT_PRICE_CRASH,
    DEFAULT_SAVINGS_PCT,
    DEFAULT_SPECULATION_END_YIELD,
    DEFAULT_SPECULATION_PCT,
    DEFAULT_SPECULATION_START_YIELD,
    DEFAULT_STARTING_EXPENSES,
    DEFAULT_TIME_HORIZON,
    RISK_BUFFER_HIGH,
    RISK_BUFFER_LOW,
    RISK_BUFFER_MODERATE,
)

_MAX_AMOUNT = float(np.finfo(float).max)


def _clamp(x: float, lo: float, hi: float) -> float:
    """Return ``x`` bounded to the inclusive range ``[lo, hi]``."""

    return max(lo, min(x, hi))


def _amount(x: float) -> float:
    """Coerce a derived amount to a finite, non-negative float."""

    x = float(x)
    if math.isnan(x):
        return 0.0
    return _clamp(x, 0.0, _MAX_AMOUNT)


@dataclass
class PortfolioConfig:
    """User-owned portfolio, loan and income parameters."""

    btc_stack: float = DEFAULT_BTC_STACK
    savings_pct: float = DEFAULT_SAVINGS_PCT
    investments_pct: float = DEFAULT_INVESTMENTS_PCT
    speculation_pct: float = DEFAULT_SPECULATION_PCT
    investments_start_yield: float = DEFAULT_INVESTMENTS_START_YIELD
    investments_end_yield: float = DEFAULT_INVESTMENTS_END_YIELD
    speculation_start_yield: float = DEFAULT_SPECULATION_START_YIELD
    speculation_end_yield: float = DEFAULT_SPECULATION_END_YIELD
    collateral_pct: float = DEFAULT_COLLATERAL_PCT
    ltv_ratio: float = DEFAULT_LTV_RATIO
    loan_rate: float = DEFAULT_LOAN_RATE
    loan_term_years: int = DEFAULT_LOAN_TERM_YEARS
    interest_only: bool = DEFAULT_INTEREST_ONLY
    income_allocation_pct: float = DEFAULT_INCOME_ALLOCATION_PCT
    income_reinvestment_pct: float = DEFAULT_INCOME_REINVESTMENT_PCT
    starting_expenses: float = DEFAULT_STARTING_EXPENSES
    price_crash: float = DEFAULT_PRICE_CRASH
    exchange_rate: float = DEFAULT_EXCHANGE_RATE
    time_horizon: int = DEFAULT_TIME_HORIZON
    activation_year: int = DEFAULT_ACTIVATION_YEAR


@dataclass
class RateInputs:
    """Finalised per-year percentage rates consumed by :func:`project`.

    ``investments`` and ``speculation`` are optional bucket yield series; a
    year they do not cover uses the linear start/end blend from the
    portfolio configuration.
    """

    inflation: Sequence[float] = ()
    btc_price: Sequence[float] = ()
    income_yield: Sequence[float] = ()
    investments: Sequence[float] | None = None
    speculation: Sequence[float] | None = None


@dataclass(frozen=True)
class YearResult:
    year: int
    btc_with_income: float
    btc_without_income: float


@dataclass
class ProjectionResult:
    """Everything derived from one projection pass."""

    results: list[YearResult]
    usd_income: list[float]
    usd_income_with_leverage: list[float]
    btc_income: list[float]
    annual_expenses: list[float]
    btc_prices: list[float]
    income_at_activation_years: list[float]
    income_at_activation_years_with_leverage: list[float]
    expenses_at_activation_years: list[float]
    loan_principal: float
    loan_interest: float
    activation_loan_principal: float = 0.0
    activation_debt_service: float = 0.0
    activation_collateral_btc: float = 0.0


def _rate_array(rates: Sequence[float] | None, length: int) -> np.ndarray:
    """Rates as a float array of ``length``; missing or non-finite entries are 0."""

    out = np.zeros(length, dtype=float)
    if rates is None or len(rates) == 0:
        return out
    values = []
    for r in list(rates)[:length]:
        try:
            values.append(float(r))
        except (TypeError, ValueError):
            values.append(0.0)
    arr = np.nan_to_num(np.asarray(values, dtype=float), nan=0.0, posinf=0.0, neginf=0.0)
    out[: arr.size] = arr
    return out


def _compound(start: float, factors: np.ndarray) -> np.ndarray:
    """Value at each year when ``start`` is multiplied by ``factors[i]`` after year ``i``.

    Element ``0`` is ``start``; element ``y`` applies ``factors[0..y-1]``.
    """
    with np.errstate(over="ignore", invalid="ignore"):
        path = start * np.concatenate(([1.0], np.cumprod(np.maximum(factors[:-1], 0.0))))
    path = np.nan_to_num(path, nan=0.0, posinf=_MAX_AMOUNT, neginf=0.0)
    return np.clip(path, 0.0, _MAX_AMOUNT)


def linear_yield(year: int, start: float, end: float, time_horizon: int) -> float:
    """Bucket yield blended linearly from ``start`` towards ``end``."""

    if start == 0 and end == 0:
        return 0.0
    return start - (start - end) * (year / (time_horizon or 1))


def _bucket_yields(
    series: Sequence[float] | None,
    start: float,
    end: float,
    time_horizon: int,
) -> np.ndarray:
    n = time_horizon + 1
    yields = np.array([linear_yield(y, start, end, time_horizon) for y in range(n)], dtype=float)
    if series is not None and len(series) > 0:
        covered = min(len(series), n)
        yields[:covered] = _rate_array(series, covered)
    return np.nan_to_num(yields, nan=0.0, posinf=0.0, neginf=0.0)


def debt_service(principal: float, rate_pct: float, term_years: float, interest_only: bool) -> float:
    """Annual loan payment: straight interest or a level amortizing payment."""

    rate = rate_pct / 100
    if interest_only:
        return principal * rate
    term = term_years if term_years > 0 else 1
    if rate == 0:
        return principal / term
    with np.errstate(over="ignore", invalid="ignore"):
        growth = float(np.power(1 + rate, term))
    denominator = growth - 1
    if denominator == 0:
        return principal / term
    payment = principal * rate * growth / denominator
    if not math.isfinite(payment):
        return principal * rate
    return payment


def project(rates: RateInputs, portfolio: PortfolioConfig) -> ProjectionResult:
    """Run the full projection for ``portfolio`` under ``rates``.

    The BTC stack is split into savings, investments and speculation buckets;
    savings never earn a BTC yield, the other two buckets earn their per-year
    yield. At ``activation_year`` part of the stack is sold into a USD income
    pool, optionally topped up by a loan against the savings bucket. After the
    loop a single price-crash multiplier is applied to the BTC totals.

    Every BTC and USD amount in the result is finite and non-negative.
    """
    horizon = max(0, int(portfolio.time_horizon))
    n = horizon + 1
    activation_year = int(portfolio.activation_year)

    inflation = _rate_array(rates.inflation, n)
    btc_appreciation = _rate_array(rates.btc_price, n)
    income_yield = _rate_array(rates.income_yield, n)

    savings_share = max(0.0, portfolio.savings_pct) / 100
    investments_share = max(0.0, portfolio.investments_pct) / 100
    speculation_share = max(0.0, portfolio.speculation_pct) / 100
    investments_yield = _bucket_yields(
        rates.investments,
        portfolio.investments_start_yield,
        portfolio.investments_end_yield,
        horizon,
    )
    speculation_yield = _bucket_yields(
        rates.speculation,
        portfolio.speculation_start_yield,
        portfolio.speculation_end_yield,
        horizon,
    )
    with np.errstate(over="ignore", invalid="ignore"):
        growth = (
            savings_share
            + investments_share * np.maximum(1 + investments_yield / 100, 0.0)
            + speculation_share * np.maximum(1 + speculation_yield / 100, 0.0)
        )
    growth = np.nan_to_num(growth, nan=0.0, posinf=_MAX_AMOUNT, neginf=0.0)

    btc_stack = _amount(portfolio.btc_stack)
    stack_path = _compound(btc_stack, growth)
    prices = _compound(_amount(portfolio.exchange_rate), 1 + btc_appreciation / 100)
    expenses = _compound(_amount(portfolio.starting_expenses), 1 + inflation / 100)

    allocation_share = _clamp(portfolio.income_allocation_pct / 100, 0.0, 1.0)
    reinvest_share = portfolio.income_reinvestment_pct / 100
    leveraged = portfolio.collateral_pct > 0 and portfolio.income_allocation_pct > 0

    def loan_at(year: int) -> tuple[float, float, float]:
        if portfolio.collateral_pct <= 0 or not 0 <= year <= horizon:
            return 0.0, 0.0, 0.0
        collateral_btc = stack_path[year] * savings_share * max(0.0, portfolio.collateral_pct) / 100
        principal = _amount(collateral_btc * portfolio.ltv_ratio / 100 * prices[year])
        service = debt_service(
            principal, portfolio.loan_rate, portfolio.loan_term_years, portfolio.interest_only
        )
        return _amount(collateral_btc), principal, service

    activation_collateral_btc, loan_principal_at_activation, loan_debt_service = loan_at(activation_year)

    results: list[YearResult] = []
    usd_income: list[float] = []
    usd_income_with_leverage: list[float] = []

    btc_with_income = btc_stack
    btc_without_income = btc_stack
    income_pool = 0.0
    leveraged_pool = 0.0

    for year in range(n):
        if year == activation_year:
            income_pool = _amount(btc_with_income * allocation_share * prices[year])
            leveraged_pool = income_pool + (loan_principal_at_activation if leveraged else 0.0)
            btc_with_income = _amount(btc_with_income * (1 - allocation_share))

        active = year >= activation_year
        yield_rate = income_yield[year] / 100
        base_yield = income_pool * yield_rate if active and income_pool > 0 else 0.0
        leveraged_yield = leveraged_pool * yield_rate if active and leveraged_pool > 0 else 0.0

        base_reinvestment = base_yield * reinvest_share
        leveraged_reinvestment = leveraged_yield * reinvest_share
        base_income = base_yield - base_reinvestment
        leveraged_income = leveraged_yield - leveraged_reinvestment
        if active and leveraged:
            net_leveraged_income = leveraged_income - loan_debt_service
        else:
            net_leveraged_income = base_income

        if active:
            income_pool = _amount(income_pool + base_reinvestment)
            leveraged_pool = _amount(leveraged_pool + leveraged_reinvestment)

        results.append(
            YearResult(
                year=year,
                btc_with_income=_amount(btc_with_income),
                btc_without_income=_amount(btc_without_income),
            )
        )
        usd_income.append(_amount(base_income) if active else 0.0)
        usd_income_with_leverage.append(_amount(net_leveraged_income) if active else 0.0)

        if year < horizon:
            btc_with_income = _amount(btc_with_income * growth[year])
            btc_without_income = _amount(btc_without_income * growth[year])

    crash_multiplier = 1 - portfolio.price_crash / 100
    results = [
        YearResult(
            year=r.year,
            btc_with_income=_amount(r.btc_with_income * crash_multiplier),
            btc_without_income=_amount(r.btc_without_income * crash_multiplier),
        )
        for r in results
    ]

    # Income potential for every possible activation year
    income_at_activation_years = []
    income_at_activation_years_with_leverage = []
    for year in range(n):
        pool = _amount(stack_path[year] * allocation_share * prices[year])
        yield_rate = income_yield[year] / 100
        annual_income = pool * yield_rate * (1 - reinvest_share)
        net_leveraged = annual_income
        if portfolio.collateral_pct > 0:
            _, principal, service = loan_at(year)
            leveraged_income = (pool + principal) * yield_rate * (1 - reinvest_share)
            net_leveraged = leveraged_income - service
        income_at_activation_years.append(_amount(annual_income))
        income_at_activation_years_with_leverage.append(_amount(net_leveraged))

    # Loan figures at the starting point for display
    display_collateral = btc_stack * savings_share * (portfolio.collateral_pct / 100)
    display_loan_principal = _amount(
        display_collateral * (portfolio.ltv_ratio / 100) * _amount(portfolio.exchange_rate)
    )
    display_loan_interest = _amount(display_loan_principal * (portfolio.loan_rate / 100))

    return ProjectionResult(
        results=results,
        usd_income=usd_income,
        usd_income_with_leverage=usd_income_with_leverage,
        btc_income=[0.0] * n,
        annual_expenses=expenses.tolist(),
        btc_prices=prices.tolist(),
        income_at_activation_years=income_at_activation_years,
        income_at_activation_years_with_leverage=income_at_activation_years_with_leverage,
        expenses_at_activation_years=expenses.tolist(),
        loan_principal=display_loan_principal,
        loan_interest=display_loan_interest,
        activation_loan_principal=loan_principal_at_activation,
        activation_debt_service=_amount(loan_debt_service),
        activation_collateral_btc=activation_collateral_btc,
    )


@dataclass
class LoanDetails:
    loan_amount: float
    monthly_payment: float
    total_interest: float
    liquidation_price: float
    risk_level: str


def risk_level(buffer_pct: float) -> str:
    """Classify how far the BTC price sits above the liquidation price."""

    if buffer_pct > RISK_BUFFER_LOW:
        return "low"
    if buffer_pct > RISK_BUFFER_MODERATE:
        return "moderate"
    if buffer_pct > RISK_BUFFER_HIGH:
        return "high"
    return "extreme"


def _at(values: Sequence[float], index: int) -> float:
    if 0 <= index < len(values):
        return values[index]
    return 0.0


def calculate_loan_details(portfolio: PortfolioConfig, result: ProjectionResult) -> LoanDetails:
    """Loan size, monthly payment and liquidation price at the activation year.

    The loan and its collateral come from the projection, so they reflect the
    savings bucket of the stack as grown up to ``activation_year``.
    """
    collateral_btc = result.activation_collateral_btc
    loan_amount = result.activation_loan_principal
    if portfolio.collateral_pct <= 0 or collateral_btc <= 0:
        return LoanDetails(0.0, 0.0, 0.0, 0.0, "low")

    btc_price_at_activation = _at(result.btc_prices, int(portfolio.activation_year))

    monthly_rate = portfolio.loan_rate / 100 / 12
    total_payments = max(portfolio.loan_term_years, 0) * 12
    if portfolio.interest_only:
        monthly_payment = loan_amount * monthly_rate
        total_interest = monthly_payment * total_payments
    elif monthly_rate == 0 or total_payments == 0:
        monthly_payment = loan_amount / max(total_payments, 1)
        total_interest = 0.0
    else:
        monthly_payment = debt_service(loan_amount, monthly_rate * 100, total_payments, False)
        total_interest = monthly_payment * total_payments - loan_amount

    if collateral_btc > 0 and loan_amount > 0:
        liquidation_price = loan_amount / collateral_btc
        buffer_pct = (btc_price_at_activation - liquidation_price) / liquidation_price * 100
    else:
        liquidation_price = 0.0
        buffer_pct = math.inf

    return LoanDetails(
        loan_amount=loan_amount,
        monthly_payment=monthly_payment,
        total_interest=total_interest,
        liquidation_price=liquidation_price,
        risk_level=risk_level(buffer_pct),
    )


@dataclass
class PortfolioGrowth:
    btc_growth_with_income: float
    btc_growth_without_income: float
    btc_growth_difference: float
    final_btc_with_income: float
    final_btc_without_income: float


def calculate_portfolio_growth(result: ProjectionResult, portfolio: PortfolioConfig) -> PortfolioGrowth:
    """Percentage growth of the final stack over the starting stack.

    With a zero starting stack growth is ``0`` if the final stack is also
    zero and ``inf`` otherwise; the difference is then undefined (``nan``).
    """
    final = result.results[-1] if result.results else YearResult(0, 0.0, 0.0)
    with_income = final.btc_with_income
    without_income = final.btc_without_income

    if portfolio.btc_stack == 0:
        return PortfolioGrowth(
            btc_growth_with_income=0.0 if with_income == 0 else math.inf,
            btc_growth_without_income=0.0 if without_income == 0 else math.inf,
            btc_growth_difference=math.nan,
            final_btc_with_income=with_income,
            final_btc_without_income=without_income,
        )

    growth_with = round((with_income - portfolio.btc_stack) / portfolio.btc_stack * 100, 2)
    growth_without = round((without_income - portfolio.btc_stack) / portfolio.btc_stack * 100, 2)
    return PortfolioGrowth(
        btc_growth_with_income=growth_with,
        btc_growth_without_income=growth_without,
        btc_growth_difference=round(growth_without - growth_with, 2),
        final_btc_with_income=with_income,
        final_btc_without_income=without_income,
    )


def calculate_cashflows(result: ProjectionResult, portfolio: PortfolioConfig) -> dict[str, dict[str, float]]:
    """Income minus expenses at the activation year and at the final year."""

    activation = portfolio.activation_year
    last = len(result.annual_expenses) - 1
    return {
        "activation_year": {
            "without_leverage": _at(result.usd_income, activation) - _at(result.annual_expenses, activation),
            "with_leverage": _at(result.usd_income_with_leverage, activation)
            - _at(result.annual_expenses, activation),
        },
        "final_year": {
            "without_leverage": _at(result.usd_income, last) - _at(result.annual_expenses, last),
            "with_leverage": _at(result.usd_income_with_leverage, last) - _at(result.annual_expenses, last),
        },
    }


@dataclass
class EscapeVelocity:
    base_year: int | None
    leveraged_year: int | None
    leverage_advantage: int | None


def calculate_escape_velocity(result: ProjectionResult, portfolio: PortfolioConfig) -> EscapeVelocity:
    """First activation year whose income would exceed that year's expenses.

    ``leveraged_year`` is only searched when part of the savings bucket is
    pledged as collateral. ``leverage_advantage`` is the number of years the
    loan brings that point forward and is ``None`` unless both years exist.
    """

    def first_year(incomes: Sequence[float]) -> int | None:
        for year, (income, expense) in enumerate(zip(incomes, result.expenses_at_activation_years)):
            if income > expense:
                return year
        return None

    base_year = first_year(result.income_at_activation_years)
    leveraged_year = None
    if portfolio.collateral_pct > 0:
        leveraged_year = first_year(result.income_at_activation_years_with_leverage)

    advantage = None
    if base_year is not None and leveraged_year is not None:
        advantage = base_year - leveraged_year
    return EscapeVelocity(base_year=base_year, leveraged_year=leveraged_year, leverage_advantage=advantage)


@dataclass
class PortfolioMix:
    final_savings_pct: float
    final_investments_pct: float
    final_speculation_pct: float
    mix_change: float


def calculate_portfolio_mix(portfolio: PortfolioConfig) -> PortfolioMix:
    """Bucket weights after the investment and speculation yields compound."""

    horizon = int(portfolio.time_horizon)
    if horizon <= 0:
        return PortfolioMix(
            portfolio.savings_pct, portfolio.investments_pct, portfolio.speculation_pct, 0.0
        )

    investment_growth = 1.0
    speculation_growth = 1.0
    for year in range(horizon):
        investment_growth *= max(
            0.0,
            1 + linear_yield(year, portfolio.investments_start_yield, portfolio.investments_end_yield, horizon) / 100,
        )
        speculation_growth *= max(
            0.0,
            1 + linear_yield(year, portfolio.speculation_start_yield, portfolio.speculation_end_yield, horizon) / 100,
        )

    investments = portfolio.investments_pct * investment_growth
    speculation = portfolio.speculation_pct * speculation_growth
    total = portfolio.savings_pct + investments + speculation
    if total == 0 or not math.isfinite(total):
        return PortfolioMix(0.0, 0.0, 0.0, 0.0)

    final_investments = investments / total * 100
    final_speculation = speculation / total * 100
    final_savings = 100 - final_investments - final_speculation
    return PortfolioMix(
        final_savings_pct=final_savings,
        final_investments_pct=final_investments,
        final_speculation_pct=final_speculation,
        mix_change=abs(final_savings - portfolio.savings_pct),
    )


def growth_category(growth_pct: float) -> str:
    if growth_pct > 1000:
        return "exponential"
    if growth_pct > 500:
        return "huge"
    if growth_pct > 200:
        return "strong"
    if growth_pct > 0:
        return "moderate"
    return "decline"


def format_currency(value: float) -> str:
    """Whole-dollar USD string; negatives in parentheses."""

    if math.isnan(value):
        return "$--"
    if math.isinf(value):
        return "$∞" if value > 0 else "($∞)"
    rounded = int(math.floor(abs(value) + 0.5))
    if value >= 0:
        return f"${rounded:,}"
    return f"(${rounded:,})"
