"""Fitness-Fatigue model calculations (CTL, ATL, TSB, ACWR)."""

import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

from ..config import DEFAULT_CONFIG, EngineConfig
from ..exceptions import ErrorCode, ValidationError
from ..models.workouts import DailyLoad, WorkoutRecord
from .load import daily_loads_from_workouts

logger = logging.getLogger(__name__)

MIN_CTL_FOR_ACWR = 10.0


@dataclass
class FitnessMetric:
    """Daily fitness metrics from the Fitness-Fatigue model."""

    date: date
    daily_load: float
    ctl: float  # Chronic Training Load (fitness) - 42 day EWMA
    atl: float  # Acute Training Load (fatigue) - 7 day EWMA
    tsb: float  # Training Stress Balance (form) = yesterday's CTL - ATL
    acwr: float  # Acute:Chronic Workload Ratio
    risk_zone: str  # 'optimal', 'caution', 'danger', 'undertrained'

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "date": self.date.isoformat(),
            "daily_load": self.daily_load,
            "ctl": self.ctl,
            "atl": self.atl,
            "tsb": self.tsb,
            "acwr": self.acwr,
            "risk_zone": self.risk_zone,
        }


def calculate_ewma(
    current_value: float,
    previous_ewma: float,
    time_constant: int,
) -> float:
    """
    Exponentially Weighted Moving Average.

    Uses the formula: EWMA_n = EWMA_{n-1} * decay + value * (1 - decay)
    where decay = e^(-1/time_constant)

    Args:
        current_value: Today's training load
        previous_ewma: Yesterday's EWMA value
        time_constant: Time constant in days (42 for CTL, 7 for ATL)

    Returns:
        New EWMA value
    """
    decay = math.exp(-1 / time_constant)
    return previous_ewma * decay + current_value * (1 - decay)


def determine_risk_zone(acwr: float) -> str:
    """
    Determine injury risk zone based on ACWR.

    - < 0.8: Undertrained (not enough stimulus)
    - 0.8 - 1.3: Optimal
    - 1.3 - 1.5: Caution (elevated injury risk)
    - > 1.5: Danger (high injury risk)
    """
    if acwr < 0.8:
        return "undertrained"
    elif acwr <= 1.3:
        return "optimal"
    elif acwr <= 1.5:
        return "caution"
    else:
        return "danger"


def fill_daily_load_gaps(
    loads: Iterable[DailyLoad],
    start: date,
    end: date,
) -> List[DailyLoad]:
    """
    Build a contiguous daily load series over [start, end].

    Same-day loads are summed, rest days get 0 and loads outside the range
    are dropped. The result has exactly one entry per calendar day.

    Raises:
        ValidationError: If end is before start
    """
    if end < start:
        raise ValidationError(
            f"End date {end} is before start date {start}",
            field="end",
            code=ErrorCode.INVALID_DATE_RANGE,
        )

    totals: Dict[date, float] = defaultdict(float)
    for entry in loads:
        totals[entry.date] += entry.load

    days = (end - start).days + 1
    return [
        DailyLoad(start + timedelta(days=i), round(totals.get(start + timedelta(days=i), 0.0), 1))
        for i in range(days)
    ]


def _check_contiguous(loads: List[DailyLoad]) -> None:
    for previous, current in zip(loads, loads[1:]):
        if (current.date - previous.date).days != 1:
            raise ValidationError(
                f"Daily loads must be contiguous: {previous.date} is followed by {current.date}",
                field="daily_loads",
                code=ErrorCode.LOAD_SERIES_GAP,
            )


def calculate_fitness_metrics(
    daily_loads: List[DailyLoad],
    config: EngineConfig = DEFAULT_CONFIG,
) -> List[FitnessMetric]:
    """
    Calculate CTL, ATL, TSB, and ACWR for a contiguous daily load series.

    The Fitness-Fatigue (Banister) model uses two exponential moving averages:
    - CTL (Chronic Training Load): 42-day EWMA representing "fitness"
    - ATL (Acute Training Load): 7-day EWMA representing "fatigue"
    - TSB (Training Stress Balance): yesterday's CTL - ATL, so today's load
      does not leak into today's form (0 on the first day)
    - ACWR (Acute:Chronic Workload Ratio): ATL / CTL for injury risk

    Both averages start at the first day's load rather than zero, avoiding
    an artificial ramp-up at the start of the series.

    Args:
        daily_loads: One DailyLoad per calendar day (see fill_daily_load_gaps)
        config: Engine tunables (EWMA time constants)

    Returns:
        List of FitnessMetric, one per input day

    Raises:
        ValidationError: If the series skips or repeats a day
    """
    if not daily_loads:
        return []

    loads = sorted(daily_loads, key=lambda d: d.date)
    _check_contiguous(loads)

    results = []
    ctl = atl = loads[0].load
    previous_ctl = previous_atl = None

    for entry in loads:
        if previous_ctl is not None:
            ctl = calculate_ewma(entry.load, ctl, config.ctl_time_constant)
            atl = calculate_ewma(entry.load, atl, config.atl_time_constant)
            tsb = previous_ctl - previous_atl
        else:
            tsb = 0.0

        # ACWR is meaningless on a tiny chronic base
        acwr = atl / ctl if ctl > MIN_CTL_FOR_ACWR else 1.0

        results.append(
            FitnessMetric(
                date=entry.date,
                daily_load=round(entry.load, 1),
                ctl=round(ctl, 1),
                atl=round(atl, 1),
                tsb=round(tsb, 1),
                acwr=round(acwr, 2),
                risk_zone=determine_risk_zone(acwr),
            )
        )
        previous_ctl, previous_atl = ctl, atl

    return results


def build_fitness_series(
    workouts: Iterable[WorkoutRecord],
    start: Optional[date] = None,
    end: Optional[date] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> List[FitnessMetric]:
    """
    Workouts to fitness metrics in one step.

    The range defaults to the first workout through the last one.
    """
    loads = daily_loads_from_workouts(workouts, config)
    if not loads:
        return []
    start = start or loads[0].date
    end = end or loads[-1].date
    return calculate_fitness_metrics(fill_daily_load_gaps(loads, start, end), config)


def get_fitness_status(tsb: float) -> str:
    """Label form from TSB."""
    if tsb > 20:
        return "fresh"
    elif tsb > 5:
        return "race_ready"
    elif tsb > -10:
        return "training"
    elif tsb > -25:
        return "fatigued"
    else:
        return "overreached"


def get_training_recommendation(tsb: float, acwr: float) -> str:
    """
    Get a training recommendation based on current form and risk.

    Args:
        tsb: Training Stress Balance
        acwr: Acute:Chronic Workload Ratio
    """
    if acwr > 1.5:
        return "High injury risk. Reduce training load significantly."
    if acwr > 1.3:
        return "Elevated injury risk. Consider an easy day or rest."
    if acwr < 0.8:
        return "Training load low. Safe to increase intensity."

    status = get_fitness_status(tsb)
    return {
        "fresh": "Fresh and recovered. Good day for a hard workout.",
        "race_ready": "Positive form. Good window for a race or key session.",
        "training": "Normal training fatigue. Moderate intensity recommended.",
        "fatigued": "Fatigued. Easy training recommended.",
        "overreached": "Very fatigued. Consider rest or very easy activity.",
    }[status]


def calculate_rolling_load(daily_loads: List[DailyLoad], days: int = 7) -> float:
    """Total load over the most recent ``days`` entries."""
    recent = sorted(daily_loads, key=lambda d: d.date, reverse=True)[:days]
    return round(sum(d.load for d in recent), 1)


def calculate_optimal_load_range(ctl: float) -> Dict[str, int]:
    """Weekly load range (80-120% of 7 x CTL) that maintains or builds fitness."""
    weekly_target = ctl * 7
    return {"min": round(weekly_target * 0.8), "max": round(weekly_target * 1.2)}


def calculate_ramp_rate(metrics: List[FitnessMetric], weeks: int = 4) -> Optional[float]:
    """
    CTL change in points per week over the last ``weeks`` weeks.

    Returns None with less than a week of history.
    """
    if len(metrics) < 8:
        return None
    end_idx = len(metrics) - 1
    start_idx = max(0, end_idx - weeks * 7)
    if end_idx - start_idx < 7:
        return None
    actual_weeks = (end_idx - start_idx) / 7
    return round((metrics[end_idx].ctl - metrics[start_idx].ctl) / actual_weeks, 1)


def assess_ramp_rate(ramp_rate: Optional[float]) -> str:
    """
    Injury-risk level for a CTL ramp rate.

    - < 0: decreasing (detraining)
    - < 5: safe
    - 5-8: moderate
    - 8-10: elevated
    - > 10: high
    """
    if ramp_rate is None:
        return "insufficient_data"
    if ramp_rate < 0:
        return "decreasing"
    elif ramp_rate < 5:
        return "safe"
    elif ramp_rate < 8:
        return "moderate"
    elif ramp_rate < 10:
        return "elevated"
    return "high"


def weekly_load_rollup(daily_loads: Iterable[DailyLoad]) -> List[DailyLoad]:
    """Sum daily loads into ISO weeks, keyed by each week's Monday."""
    totals: Dict[date, float] = defaultdict(float)
    for entry in daily_loads:
        monday = entry.date - timedelta(days=entry.date.weekday())
        totals[monday] += entry.load
    return [DailyLoad(week, round(load, 1)) for week, load in sorted(totals.items())]
