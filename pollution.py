"""Global pollution and the fixed-cadence tick that advances it."""

import logging
import math
import time
from dataclasses import dataclass, replace

from catalog import is_numeric

_LOGGER = logging.getLogger("production_network")

TICK_INTERVAL = 1.0  # seconds
SECONDS_PER_HOUR = 3600
POLLUTION_DECIMALS = 4


@dataclass(frozen=True)
class Environment:
    """process-wide values that parametric recipes may read"""

    global_pollution: float = 0.0
    paused: bool = False
    editing: bool = False


def total_pollution_rate(recipes, machine_counts) -> float:
    """Sum of resolved pollution times machine count over all nodes.

    Precondition:
        recipes maps node id -> ResolvedRecipe
        machine_counts maps node id -> machine count

    Postcondition:
        non-numeric and non-finite pollution values are skipped

    Args:
        recipes: resolved recipes by node id
        machine_counts: machine counts by node id

    Returns:
        aggregate pollution rate in %/hr
    """
    total = 0.0
    for node_id in sorted(recipes):
        pollution = recipes[node_id].pollution
        if is_numeric(pollution) and math.isfinite(pollution):
            total += pollution * machine_counts.get(node_id, 0)
    return total


def advance(environment: Environment, solution) -> Environment:
    """Advance global pollution by one tick using a solution's aggregate pollution rate."""
    return advance_by_rate(environment, solution.total_pollution)


def advance_by_rate(environment: Environment, pollution_rate: float) -> Environment:
    """Advance global pollution by one tick.

    Precondition:
        pollution_rate is the aggregate network pollution in %/hr

    Postcondition:
        paused or editing environments are returned unchanged
        otherwise pollution += rate / 3600, rounded to 4 decimals
        a non-finite previous value or result leaves the environment unchanged

    Args:
        environment: environment before the tick
        pollution_rate: aggregate pollution rate

    Returns:
        environment after the tick
    """
    if environment.paused or environment.editing:
        return environment
    previous = environment.global_pollution
    if not is_numeric(previous) or not math.isfinite(previous):
        _LOGGER.warning("Global pollution %r is not finite; tick skipped", previous)
        return environment
    updated = round(previous + pollution_rate / SECONDS_PER_HOUR, POLLUTION_DECIMALS)
    if not math.isfinite(updated):
        _LOGGER.warning("Pollution tick produced %r; keeping %r", updated, previous)
        return environment
    if updated == previous:
        return environment
    return replace(environment, global_pollution=updated)


class TickClock:
    """Tells how many fixed ticks have elapsed since the last call.

    The clock never sleeps; a caller polls due_ticks() from its own loop.
    """

    def __init__(self, interval: float = TICK_INTERVAL, now=time.monotonic):
        self._interval = interval
        self._now = now
        self._last = now()

    def due_ticks(self) -> int:
        """Number of whole intervals elapsed since the previous due tick."""
        elapsed = self._now() - self._last
        if elapsed < self._interval:
            return 0
        ticks = int(elapsed // self._interval)
        self._last += ticks * self._interval
        return ticks

    def reset(self):
        self._last = self._now()
