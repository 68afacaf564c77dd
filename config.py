# config.py

# Default portfolio values
DEFAULT_BTC_STACK = 5.0
DEFAULT_SAVINGS_PCT = 65.0
DEFAULT_INVESTMENTS_PCT = 25.0
DEFAULT_SPECULATION_PCT = 10.0
DEFAULT_INVESTMENTS_START_YIELD = 30.0
DEFAULT_INVESTMENTS_END_YIELD = 0.0
DEFAULT_SPECULATION_START_YIELD = 40.0
DEFAULT_SPECULATION_END_YIELD = 0.0
DEFAULT_COLLATERAL_PCT = 50.0
DEFAULT_LTV_RATIO = 40.0
DEFAULT_LOAN_RATE = 7.0
DEFAULT_LOAN_TERM_YEARS = 10
DEFAULT_INTEREST_ONLY = True
DEFAULT_INCOME_ALLOCATION_PCT = 10.0
DEFAULT_INCOME_REINVESTMENT_PCT = 30.0
DEFAULT_STARTING_EXPENSES = 50000.0
DEFAULT_PRICE_CRASH = 0.0
DEFAULT_EXCHANGE_RATE = 100000.0
DEFAULT_TIME_HORIZON = 20
DEFAULT_ACTIVATION_YEAR = 10
DEFAULT_ECONOMIC_SCENARIO = "debasement"

# Rate dimensions
INFLATION = "inflation"
BTC_PRICE = "btc_price"
INCOME_YIELD = "income_yield"
RATE_DIMENSIONS = (INFLATION, BTC_PRICE, INCOME_YIELD)

# Stored series length; only the first time_horizon + 1 slots are used
RATE_SERIES_LENGTH = 30

# Curve parameters per dimension: flat rate, linear start/end
DEFAULT_CURVE_PARAMS = {
    INFLATION: {"flat_rate": 8.0, "start_rate": 5.0, "end_rate": 15.0},
    BTC_PRICE: {"flat_rate": 50.0, "start_rate": 30.0, "end_rate": 70.0},
    INCOME_YIELD: {"flat_rate": 8.0, "start_rate": 8.0, "end_rate": 8.0},
}

# Power-curve exponent used when generating a preset curve
PRESET_CURVE_EXPONENTS = {
    INFLATION: 2.0,
    BTC_PRICE: 1.5,
    INCOME_YIELD: 1.5,
}

# Chart axis range; presets may override the maximum
DEFAULT_MAX_AXIS = {
    INFLATION: 100.0,
    BTC_PRICE: 200.0,
    INCOME_YIELD: 100.0,
}
DEFAULT_MIN_AXIS = {
    INFLATION: 0.0,
    BTC_PRICE: 0.0,
    INCOME_YIELD: 0.0,
}

# Chart size used to map point edits onto the drag controller
CHART_WIDTH = 700.0
CHART_HEIGHT = 400.0

# Chart edits and preset curves snap to this grid (percentage points)
SNAP_STEP = 2.0

# Named hard-coded curves: (start rate, end rate)
FIXED_CURVES = {
    "long_range_forecast": (37.0, 21.0),
}

CUSTOM_SCENARIO = "custom"

# Economic scenarios: per dimension (start rate, end rate, max axis)
ECONOMIC_SCENARIOS = {
    "tight": {
        "name": "Tight monetary policy",
        "description": "Low inflation, steady BTC growth",
        "inflation_avg": 2,
        "btc_appreciation_avg": 15,
        "income_growth": 7.5,
        INFLATION: ("Tight monetary policy", 2, 2, 10),
        BTC_PRICE: ("Tight monetary policy - Low growth", 10, 30, 50),
        INCOME_YIELD: ("Tight monetary policy - Stable income", 5, 5, 10),
    },
    "debasement": {
        "name": "Managed debasement",
        "description": "Moderate inflation, solid BTC growth",
        "inflation_avg": 5,
        "btc_appreciation_avg": 30,
        "income_growth": 12.5,
        INFLATION: ("Managed debasement", 8, 12, 20),
        BTC_PRICE: ("Managed debasement - Conservative growth", 30, 70, 100),
        INCOME_YIELD: ("Managed debasement - Growing income", 8, 10, 15),
    },
    "crisis": {
        "name": "Accelerated crisis",
        "description": "Higher inflation, accelerated BTC adoption",
        "inflation_avg": 12,
        "btc_appreciation_avg": 60,
        "income_growth": 45,
        INFLATION: ("Accelerated crisis", 8, 25, 40),
        BTC_PRICE: ("Accelerated crisis - Rapid adoption", 50, 120, 150),
        INCOME_YIELD: ("Accelerated crisis - Income", 35, 40, 50),
    },
    "spiral": {
        "name": "Hyperinflationary spiral",
        "description": "High inflation, rapid BTC adoption",
        "inflation_avg": 35,
        "btc_appreciation_avg": 120,
        "income_growth": 11,
        INFLATION: ("Hyperinflationary spiral", 10, 100, 100),
        BTC_PRICE: ("Hyperbitcoinization", 80, 200, 250),
        INCOME_YIELD: ("Hyperinflationary spiral", 20, 2, 25),
    },
    CUSTOM_SCENARIO: {
        "name": "Manual configuration",
        "description": "Manually configured settings",
        "inflation_avg": 0,
        "btc_appreciation_avg": 0,
        "income_growth": 0,
        INFLATION: ("Custom Inflation", 3, 3, 100),
        BTC_PRICE: ("Custom BTC Growth", 20, 20, 200),
        INCOME_YIELD: ("Custom Income", 5, 5, 100),
    },
}

# Input validation ranges
TIME_HORIZON_RANGE = (1, 100)
BTC_STACK_MAX = 1000000.0
YIELD_RANGE = (0.0, 1000.0)
ALLOCATION_TOTAL = 100.0
LTV_WARN_HIGH = 50.0
LTV_WARN_LOW = 10.0
LOAN_RATE_WARN_RANGE = (1.0, 20.0)
LOAN_TERM_MIN = 1
LOAN_TERM_WARN_MAX = 30
COLLATERAL_WARN_MAX = 80.0

# Liquidation buffer thresholds (percent above liquidation price)
RISK_BUFFER_LOW = 100.0
RISK_BUFFER_MODERATE = 50.0
RISK_BUFFER_HIGH = 25.0

# UI tuning constants
BTC_STACK_STEP = 0.1
RATE_STEP = 1.0
EXPENSES_STEP = 1000.0
EXCHANGE_RATE_STEP = 1000.0

# Persistence
CONFIG_STORE_PATH = "saved_configs.json"
