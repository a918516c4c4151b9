"""
constants.py – Shared labels, unit conversions, and rule thresholds.
"""

# ── Survey enums ──────────────────────────────────────────────
TRANSPORT_CAR = "car"
TRANSPORT_PUBLIC = "publicTransport"
TRANSPORT_BIKE = "bike"
TRANSPORT_WALKING = "walking"
TRANSPORT_FLIGHT = "flight"

ZERO_EMISSION_MODES = {TRANSPORT_BIKE, TRANSPORT_WALKING}

INCOME_HIGH = "high"
INCOME_LOW = "low"

GREEN_ENERGY_SOURCE = "greenEnergy"

# Upper bound for any numeric survey answer; keeps every product finite.
MAX_SURVEY_QUANTITY = 1_000_000_000

# ── Location ──────────────────────────────────────────────────
GLOBAL_LOCATION = "global"

# ── Unit conversions ──────────────────────────────────────────
MONTHS_PER_YEAR = 12
WEEKS_PER_YEAR = 52
KG_PER_TONNE = 1_000.0
ROUND_TRIP = 2

# ── Home adjustments ──────────────────────────────────────────
RENEWABLE_REDUCTION_PER_SOURCE = 0.15
RENEWABLE_REDUCTION_CAP = 0.6

# ── Transport defaults ────────────────────────────────────────
DEFAULT_CAR_TYPE = "sedan"

# Flight bands (miles, one-way)
SHORT_FLIGHT_MAX_MILES = 1_000
LONG_FLIGHT_MIN_MILES = 1_000
MEDIUM_FLIGHT_MIN_MILES = 1_000
MEDIUM_FLIGHT_MAX_MILES = 2_000
STANDARD_SHORT_FLIGHT_MILES = 500
STANDARD_LONG_FLIGHT_MILES = 2_500
MEDIUM_FLIGHT_SHARE = 0.3

# ── Food ──────────────────────────────────────────────────────
DEFAULT_FOOD_EMISSIONS = 1.7       # tonnes CO₂e / person / year
HIGH_INCOME_FOOD_MULTIPLIER = 1.2
LOW_INCOME_FOOD_MULTIPLIER = 0.8

# ── Output ────────────────────────────────────────────────────
RESULT_DECIMALS = 1

# ── Recommendation thresholds (tonnes CO₂e / year) ────────────
HOME_EMISSIONS_THRESHOLD = 2.0
CAR_TRANSPORT_EMISSIONS_THRESHOLD = 2.0
FREQUENT_SHORT_FLIGHTS = 5
FREQUENT_LONG_FLIGHTS = 2
SHORT_HAUL_FLIGHTS_THRESHOLD = 3
FOOD_EMISSIONS_THRESHOLD = 1.5

# ── Presentation ──────────────────────────────────────────────
# Per-person 1.5 °C-compatible budget (tonnes CO₂e / year)
CARBON_BUDGET_TONNES = 2.5
