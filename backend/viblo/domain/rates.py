"""Rate calculator for the campaign budget form.

A brand enters a total budget and picks a price per 1,000 views. Everything
else shown in the "reach estimate" card is derived from those two numbers:

    rate_per_view = cost_per_1k / 1000
    total_views   = floor(total_budget / cost_per_1k * 1000)
    blocks_1k     = floor(total_views / 1000)

The price picker moves on two grids: 5-cent steps below $3 and 50-cent
steps from $3 upwards. Which grid applies is decided by the value being
snapped, so a value of exactly 3.00 is on the coarse grid. The same
``snap_cost`` is used while dragging and on release.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal, localcontext

from pydantic import BaseModel

MIN_COST_PER_1K = 0.05
DEFAULT_MAX_COST_PER_1K = 100.0
COARSE_GRID_THRESHOLD = 3.0
FINE_STEP = 0.05
COARSE_STEP = 0.5


class ReachEstimate(BaseModel):
    rate_per_view: float = 0.0
    total_views: int = 0
    blocks_1k: int = 0


def _round_half_up(value: float, step: float) -> float:
    if not math.isfinite(value):
        return value
    # Decimal keeps ties such as 1.025 on the 0.05 grid exact
    with localcontext() as ctx:
        ctx.prec = 400
        grid = Decimal(str(step))
        units = (Decimal(str(value)) / grid).quantize(Decimal(1), rounding=ROUND_HALF_UP)
        return float((units * grid).quantize(Decimal("0.01")))


def cost_bounds(total_budget: float) -> tuple[float, float]:
    """Slider range: the whole budget is the ceiling (at least one 1k block)."""
    max_cost = total_budget if total_budget > 0 else DEFAULT_MAX_COST_PER_1K
    return MIN_COST_PER_1K, max_cost


def clamp_cost(cost_per_1k: float, total_budget: float) -> float:
    low, high = cost_bounds(total_budget)
    return min(max(cost_per_1k, low), high)


def snap_cost(cost_per_1k: float) -> float:
    """Snap a raw slider value onto the 0.05 or 0.5 grid."""
    if cost_per_1k < COARSE_GRID_THRESHOLD:
        return _round_half_up(cost_per_1k, FINE_STEP)
    return _round_half_up(cost_per_1k, COARSE_STEP)


def step_size(cost_per_1k: float) -> float:
    return FINE_STEP if cost_per_1k < COARSE_GRID_THRESHOLD else COARSE_STEP


def step_cost(cost_per_1k: float, direction: int, total_budget: float) -> float:
    """Apply one press of the "+" (direction=1) or "-" (direction=-1) control.

    2.95 + 0.05 lands on 3.00 and stays there; 2.97 + 0.05 = 3.02 is on the
    coarse side of the threshold and snaps to 3.00 as well.
    """
    if direction not in (1, -1):
        raise ValueError("direction must be 1 or -1")
    moved = cost_per_1k + direction * step_size(cost_per_1k)
    return round(clamp_cost(snap_cost(moved), total_budget), 2)


def estimate_reach(total_budget: float, cost_per_1k: float) -> ReachEstimate:
    if total_budget <= 0:
        return ReachEstimate()
    rate_per_view = cost_per_1k / 1000
    if cost_per_1k <= 0:
        return ReachEstimate(rate_per_view=rate_per_view)
    total_views = math.floor(total_budget / cost_per_1k * 1000)
    return ReachEstimate(
        rate_per_view=rate_per_view,
        total_views=total_views,
        blocks_1k=total_views // 1000,
    )


def format_views(views: int) -> str:
    if views >= 1_000_000:
        return f"{views / 1_000_000:.2f}M"
    if views >= 1000:
        return f"{views / 1000:.1f}K"
    return f"{views:,}"
