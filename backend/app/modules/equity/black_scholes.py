"""
Black-Scholes valuation of stock options, used for option expense reporting.
"""

import math
from datetime import date, datetime
from typing import Optional, Union


DEFAULT_RISK_FREE_RATE = 0.0358
DEFAULT_VOLATILITY = 0.70

DAYS_PER_YEAR = 365.25


def normal_cdf(x: float) -> float:
    """Standard normal cumulative distribution function."""
    return 0.5 * (1 + math.erf(x / math.sqrt(2)))


def calculate_option_value(
    current_price,
    exercise_price,
    expiration_date: Union[date, datetime],
    risk_free_rate: float = DEFAULT_RISK_FREE_RATE,
    volatility: float = DEFAULT_VOLATILITY,
    as_of: Optional[date] = None,
) -> float:
    """
    Theoretical value of a call option per share.

    Args:
        current_price: Current share price (USD)
        exercise_price: Strike price (USD)
        expiration_date: Date the option expires
        risk_free_rate: Annual risk-free rate (0.0358 = 3.58%)
        volatility: Annualized volatility (0.70 = 70%)
        as_of: Valuation date, defaults to today

    Returns:
        Option value, never negative. Options expiring today or earlier are worth 0.

    Raises:
        ValueError: if either price is not positive for an unexpired option.
    """
    if isinstance(expiration_date, datetime):
        expiration_date = expiration_date.date()
    today = as_of or date.today()

    time_to_expiration_years = (expiration_date - today).days / DAYS_PER_YEAR
    if time_to_expiration_years <= 0.0:
        return 0.0

    current_price = float(current_price)
    exercise_price = float(exercise_price)
    if current_price <= 0 or exercise_price <= 0:
        raise ValueError(
            f"Prices must be positive (current_price={current_price}, exercise_price={exercise_price})"
        )

    vol_sqrt_t = volatility * math.sqrt(time_to_expiration_years)
    d1 = (
        math.log(current_price / exercise_price)
        + (risk_free_rate + 0.5 * volatility ** 2) * time_to_expiration_years
    ) / vol_sqrt_t
    d2 = d1 - vol_sqrt_t

    call_value = (
        current_price * normal_cdf(d1)
        - exercise_price * math.exp(-risk_free_rate * time_to_expiration_years) * normal_cdf(d2)
    )

    return max(call_value, 0.0)
