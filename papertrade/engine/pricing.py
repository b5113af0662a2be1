"""Option and futures pricing: Black-Scholes Greeks, payoff curves, mock contracts.

All functions here are pure functions of their numeric inputs. Greeks are
returned at full precision; ``Greeks.rounded()`` applies display
precision at the boundary.
"""

import math
import random
from datetime import datetime, timedelta
from typing import Iterator, Literal, Optional

from pydantic import BaseModel, Field

from papertrade.exceptions import InvalidInputError
from papertrade.models import FutureContract, OptionContract

DAYS_PER_YEAR = 365.0
MIN_TIME_YEARS = 1e-6
DEFAULT_RATE = 0.06
DEFAULT_LOT_SIZE = 25
INV_SQRT_2PI = 1.0 / math.sqrt(2.0 * math.pi)


class Greeks(BaseModel):
    """Black-Scholes sensitivities of one option."""

    delta: float = Field(..., description="dV/dS")
    gamma: float = Field(..., description="d2V/dS2")
    theta: float = Field(..., description="Time decay per calendar day")
    vega: float = Field(..., description="Change per 1 vol point")
    rho: float = Field(..., description="Change per 1% rate move")

    model_config = {"frozen": True}

    def rounded(self) -> "Greeks":
        """Display precision: 2 decimals, gamma 4."""
        return Greeks(
            delta=round(self.delta, 2),
            gamma=round(self.gamma, 4),
            theta=round(self.theta, 2),
            vega=round(self.vega, 2),
            rho=round(self.rho, 2),
        )


class PayoffPoint(BaseModel):
    """One sample of a payoff curve."""

    price: float = Field(..., description="Underlying price at expiry")
    pnl: float = Field(..., description="Position P&L at that price")

    model_config = {"frozen": True}


def normal_cdf(x: float) -> float:
    """Standard normal cumulative distribution function."""
    return 0.5 * (1.0 + math.erf(x / math.sqrt(2.0)))


def normal_pdf(x: float) -> float:
    """Standard normal probability density function."""
    return INV_SQRT_2PI * math.exp(-0.5 * x * x)


def _require_positive(name: str, value: float) -> None:
    if not isinstance(value, (int, float)) or not math.isfinite(value) or value <= 0:
        raise InvalidInputError(f"{name} must be a positive finite number, got {value!r}")


def compute_greeks(
    spot: float,
    strike: float,
    iv_percent: float,
    time_days: float,
    rate: float = DEFAULT_RATE,
    option_type: Literal["CALL", "PUT"] = "CALL",
) -> Greeks:
    """Compute Black-Scholes Greeks.

    Args:
        spot: Underlying price.
        strike: Strike price.
        iv_percent: Implied volatility in percent (20 means 20%).
        time_days: Calendar days to expiry. Floored at a tiny positive
            time so expiry-day inputs stay finite.
        rate: Continuously compounded risk-free rate.
        option_type: CALL or PUT.

    Returns:
        Greeks at full precision.

    Raises:
        InvalidInputError: If spot, strike or volatility is not positive,
            time is negative, or any input is not finite.
    """
    _require_positive("spot", spot)
    _require_positive("strike", strike)
    _require_positive("iv_percent", iv_percent)
    if not math.isfinite(time_days) or time_days < 0:
        raise InvalidInputError(f"time_days must be a non-negative finite number, got {time_days!r}")
    if not math.isfinite(rate):
        raise InvalidInputError(f"rate must be finite, got {rate!r}")
    if option_type not in ("CALL", "PUT"):
        raise InvalidInputError(f"option_type must be CALL or PUT, got {option_type!r}")

    t = max(time_days / DAYS_PER_YEAR, MIN_TIME_YEARS)
    sigma = iv_percent / 100
    sqrt_t = math.sqrt(t)
    d1 = (math.log(spot / strike) + (rate + 0.5 * sigma * sigma) * t) / (sigma * sqrt_t)
    d2 = d1 - sigma * sqrt_t

    pdf_d1 = normal_pdf(d1)
    discount = math.exp(-rate * t)

    gamma = pdf_d1 / (spot * sigma * sqrt_t)
    vega = spot * pdf_d1 * sqrt_t / 100
    decay = -(spot * pdf_d1 * sigma) / (2 * sqrt_t)

    if option_type == "CALL":
        delta = normal_cdf(d1)
        theta = (decay - rate * strike * discount * normal_cdf(d2)) / DAYS_PER_YEAR
        rho = strike * t * discount * normal_cdf(d2) / 100
    else:
        delta = normal_cdf(d1) - 1
        theta = (decay + rate * strike * discount * (1 - normal_cdf(d2))) / DAYS_PER_YEAR
        rho = -strike * t * discount * (1 - normal_cdf(d2)) / 100

    return Greeks(delta=delta, gamma=gamma, theta=theta, vega=vega, rho=rho)


class PayoffCurve:
    """Lazy, finite, restartable sequence of payoff samples.

    Each iteration starts from the lowest price again. Prices are
    computed as ``start + i * step`` so long ranges do not drift.
    """

    def __init__(self, start: float, end: float, step: float, pnl_at):
        self.start = start
        self.end = end
        self.step = step
        self._pnl_at = pnl_at

    def __len__(self) -> int:
        return int(math.floor((self.end - self.start) / self.step + 1e-9)) + 1

    def __iter__(self) -> Iterator[PayoffPoint]:
        for i in range(len(self)):
            price = self.start + i * self.step
            yield PayoffPoint(price=price, pnl=self._pnl_at(price))

    def points(self, precision: Optional[int] = 2) -> list[PayoffPoint]:
        """Materialize the curve, optionally rounded for display."""
        if precision is None:
            return list(self)
        return [
            PayoffPoint(price=round(p.price, precision), pnl=round(p.pnl, precision))
            for p in self
        ]


def option_payoff(
    option_type: Literal["CALL", "PUT"],
    strike: float,
    premium: float,
    side: Literal["BUY", "SELL"] = "BUY",
    lot_size: int = DEFAULT_LOT_SIZE,
) -> PayoffCurve:
    """Payoff at expiry of one option lot across 60%..140% of strike.

    Raises:
        InvalidInputError: On a non-positive strike or lot size, a negative
            premium, or an unknown option type or side.
    """
    _require_positive("strike", strike)
    _require_positive("lot_size", lot_size)
    if not isinstance(premium, (int, float)) or not math.isfinite(premium) or premium < 0:
        raise InvalidInputError(f"premium must be a non-negative finite number, got {premium!r}")
    if option_type not in ("CALL", "PUT"):
        raise InvalidInputError(f"option_type must be CALL or PUT, got {option_type!r}")
    if side not in ("BUY", "SELL"):
        raise InvalidInputError(f"side must be BUY or SELL, got {side!r}")

    sign = -1 if side == "SELL" else 1

    def pnl_at(price: float) -> float:
        if option_type == "CALL":
            intrinsic = max(0.0, price - strike)
        else:
            intrinsic = max(0.0, strike - price)
        return sign * (intrinsic - premium) * lot_size

    return PayoffCurve(0.6 * strike, 1.4 * strike, max(1.0, 0.02 * strike), pnl_at)


def future_payoff(
    entry_price: float,
    lot_size: int = DEFAULT_LOT_SIZE,
    side: Literal["BUY", "SELL"] = "BUY",
) -> PayoffCurve:
    """Payoff of one futures lot across 90%..110% of the entry price."""
    _require_positive("entry_price", entry_price)
    _require_positive("lot_size", lot_size)
    if side not in ("BUY", "SELL"):
        raise InvalidInputError(f"side must be BUY or SELL, got {side!r}")

    sign = -1 if side == "SELL" else 1

    def pnl_at(price: float) -> float:
        return sign * (price - entry_price) * lot_size

    return PayoffCurve(0.9 * entry_price, 1.1 * entry_price, 0.01 * entry_price, pnl_at)


# ==================== Mock contracts ====================


class OptionChainRow(BaseModel):
    """Call and put quoted at one strike."""

    strike: float = Field(..., gt=0, description="Strike price")
    call: OptionContract = Field(..., description="Call contract")
    put: OptionContract = Field(..., description="Put contract")

    model_config = {"frozen": True}


class OptionChain(BaseModel):
    """Simulated option chain around a spot price."""

    symbol: str = Field(..., description="Underlying symbol")
    spot: float = Field(..., gt=0, description="Underlying price")
    expiry: datetime = Field(..., description="Chain expiry")
    lot_size: int = Field(..., gt=0, description="Contract multiplier")
    rows: list[OptionChainRow] = Field(default_factory=list, description="Rows by ascending strike")

    model_config = {"frozen": True}


def build_option_chain(
    symbol: str,
    spot: float,
    lot_size: int = DEFAULT_LOT_SIZE,
    expiry_days: int = 14,
    width: int = 6,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> OptionChain:
    """Simulate an option chain with a moneyness-driven volatility smile.

    Strikes are spaced at 1% of spot (at least 5) and ``width`` steps to
    each side. IV rises with distance from the money; open interest falls
    with it and is jittered by ``rng``.
    """
    _require_positive("spot", spot)
    rng = rng or random.Random()
    expiry = (now or datetime.now()) + timedelta(days=expiry_days)
    step = max(5, round(spot * 0.01))

    rows = []
    for i in range(-width, width + 1):
        strike = round(spot + i * step)
        if strike <= 0:
            continue
        moneyness = abs(strike - spot) / spot
        iv_base = 0.18 + moneyness * 0.6
        oi_base = max(10000, round(50000 * (1 - min(1.0, moneyness * 2))))
        call_premium = max(2, round(max(0.0, spot - strike) * 0.5 + iv_base * spot * 0.05))
        put_premium = max(2, round(max(0.0, strike - spot) * 0.5 + iv_base * spot * 0.05))
        common = {
            "symbol": symbol.upper(),
            "strike": strike,
            "lot_size": lot_size,
            "expiry": expiry,
            "underlying_price": spot,
            "iv": round(iv_base * 100, 2),
        }
        rows.append(
            OptionChainRow(
                strike=strike,
                call=OptionContract(
                    option_type="CALL",
                    premium=call_premium,
                    open_interest=max(0, oi_base + round((rng.random() - 0.5) * 5000)),
                    **common,
                ),
                put=OptionContract(
                    option_type="PUT",
                    premium=put_premium,
                    open_interest=max(0, oi_base + round((rng.random() - 0.5) * 5000)),
                    **common,
                ),
            )
        )

    return OptionChain(symbol=symbol.upper(), spot=spot, expiry=expiry, lot_size=lot_size, rows=rows)


def build_future_contract(
    symbol: str,
    spot: float,
    lot_size: int = DEFAULT_LOT_SIZE,
    margin_percent: float = 15.0,
    basis_percent: float = 1.0,
    expiry_days: int = 30,
    now: Optional[datetime] = None,
) -> FutureContract:
    """Quote a futures contract at spot plus a fixed basis."""
    _require_positive("spot", spot)
    return FutureContract(
        symbol=symbol.upper(),
        price=round(spot * (1 + basis_percent / 100), 2),
        lot_size=lot_size,
        margin_percent=margin_percent,
        expiry=(now or datetime.now()) + timedelta(days=expiry_days),
        underlying_price=spot,
    )
