"""
Threshold-pace detection from ordinary training history.

Lactate/ventilatory threshold pace is inferred without lab testing from
three independent signals:

1. Threshold efforts: steady, flat, 20-40 minute runs at a pace clearly
   faster than the runner's easy running but not interval-fast.
2. Heart-rate deflection: heart rate rises roughly linearly with speed
   below threshold and more steeply above it. The pace where the local
   slope breaks away from the easy-running slope marks the threshold.
3. Sustainability boundary: within-workout cardiac drift stays small at
   paces the runner can sustain and climbs above threshold.

The signals are blended into one estimate whose confidence grows with the
number of agreeing signals and the volume of threshold-quality evidence.
When the evidence is too thin the result is tagged ``insufficient_data``
and carries no pace at all.

All paces are seconds per mile.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from ..config import DEFAULT_CONFIG, EngineConfig
from ..models.workouts import WorkoutRecord
from .normalization import filter_valid_workouts, has_heart_rate, is_finite_number, valid_splits
from .stats import coefficient_of_variation, least_squares_slope, percentile_value, weighted_mean
from .vdot import threshold_pace_from_vdot

logger = logging.getLogger(__name__)

MIN_VALID_WORKOUTS = 3


class ThresholdMethod(str, Enum):
    """Which signal(s) produced a threshold estimate."""
    INSUFFICIENT_DATA = "insufficient_data"
    THRESHOLD_EFFORTS = "threshold_efforts"
    DEFLECTION = "deflection"
    SUSTAINABILITY = "sustainability"
    COMBINED = "combined"


class Agreement(str, Enum):
    """How closely an estimate matches the VDOT-implied threshold pace."""
    STRONG = "strong"      # <= 10 s/mile
    MODERATE = "moderate"  # <= 20 s/mile
    WEAK = "weak"


@dataclass
class ThresholdEffort:
    """A workout judged representative of threshold intensity."""
    workout_date: date
    pace: float
    duration_seconds: float
    score: float  # 0-1, higher is more threshold-like
    average_heart_rate: Optional[float] = None
    pace_variability: float = 0.0  # CoV of split paces

    def to_dict(self) -> dict:
        return {
            "workout_date": self.workout_date.isoformat(),
            "pace": round(self.pace, 1),
            "duration_seconds": self.duration_seconds,
            "score": round(self.score, 3),
            "average_heart_rate": self.average_heart_rate,
            "pace_variability": round(self.pace_variability, 4),
        }


@dataclass
class PaceHrPoint:
    """One (pace, heart rate) observation from a workout."""
    pace: float
    heart_rate: float
    workout_date: date

    @property
    def speed_mph(self) -> float:
        return 3600 / self.pace

    def to_dict(self) -> dict:
        return {
            "pace": round(self.pace, 1),
            "heart_rate": self.heart_rate,
            "workout_date": self.workout_date.isoformat(),
        }


@dataclass
class VdotValidation:
    """Cross-check of a threshold estimate against a known VDOT."""
    vdot_threshold_pace: float
    estimated_threshold_pace: float
    difference_seconds: float  # positive = estimate slower than VDOT expects
    agreement: Agreement

    def to_dict(self) -> dict:
        return {
            "vdot_threshold_pace": round(self.vdot_threshold_pace, 1),
            "estimated_threshold_pace": self.estimated_threshold_pace,
            "difference_seconds": round(self.difference_seconds, 1),
            "agreement": self.agreement.value,
        }


@dataclass
class ThresholdEvidence:
    """Inspectable evidence behind a threshold estimate."""
    workouts_analyzed: int = 0
    workouts_with_hr: int = 0
    date_range: Optional[Tuple[date, date]] = None
    threshold_efforts: List[ThresholdEffort] = field(default_factory=list)
    pace_hr_points: List[PaceHrPoint] = field(default_factory=list)
    deflection_pace: Optional[float] = None
    sustainability_boundary_pace: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "workouts_analyzed": self.workouts_analyzed,
            "workouts_with_hr": self.workouts_with_hr,
            "date_range": {
                "earliest": self.date_range[0].isoformat(),
                "latest": self.date_range[1].isoformat(),
            } if self.date_range else None,
            "threshold_efforts": [e.to_dict() for e in self.threshold_efforts],
            "pace_hr_points": [p.to_dict() for p in self.pace_hr_points],
            "deflection_pace": self.deflection_pace,
            "sustainability_boundary_pace": self.sustainability_boundary_pace,
        }


@dataclass
class ThresholdEstimate:
    """
    Threshold pace estimate with confidence and evidence.

    ``threshold_pace_seconds_per_mile`` is None exactly when the method is
    ``insufficient_data``; a real estimate is never reported as 0.
    """
    threshold_pace_seconds_per_mile: Optional[float]
    confidence: float
    method: ThresholdMethod
    evidence: ThresholdEvidence = field(default_factory=ThresholdEvidence)
    vdot_validation: Optional[VdotValidation] = None

    @property
    def has_estimate(self) -> bool:
        return self.method != ThresholdMethod.INSUFFICIENT_DATA

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "threshold_pace_seconds_per_mile": self.threshold_pace_seconds_per_mile,
            "confidence": self.confidence,
            "method": self.method.value,
            "evidence": self.evidence.to_dict(),
            "vdot_validation": self.vdot_validation.to_dict() if self.vdot_validation else None,
        }


# =============================================================================
# Signal 1: threshold efforts
# =============================================================================

def _split_pace_cv(workout: WorkoutRecord) -> float:
    splits = valid_splits(workout.splits)
    if len(splits) < 2:
        return 0.0
    return coefficient_of_variation([s.pace_seconds_per_mile for s in splits])


def score_threshold_effort(
    workout: WorkoutRecord,
    pace_ratio: float,
    pace_cv: float,
    config: EngineConfig = DEFAULT_CONFIG,
) -> float:
    """
    Score how threshold-like a workout is, from 0 to 1.

    Args:
        workout: The candidate workout
        pace_ratio: Workout pace / easy-pace reference (lower = harder)
        pace_cv: Coefficient of variation of its split paces
        config: Engine tunables

    Returns:
        Composite score clamped to [0, 1]
    """
    score = 0.0

    # Duration: full credit in the ideal window, tapering away from 30 min
    minutes = workout.duration_seconds / 60
    low, high = config.ideal_effort_duration_range
    if low <= minutes <= high:
        score += 0.3
    else:
        center = (low + high) / 2
        score += max(0.0, 0.3 - abs(minutes - center) * 0.02)

    # Intensity relative to easy running
    score += max(0.0, 0.3 - abs(pace_ratio - config.ideal_pace_ratio) * 2.5)

    # Steadiness
    score += max(0.0, 0.2 - pace_cv * 4)

    # Terrain
    gain_per_mile = workout.elevation_gain_per_mile
    if gain_per_mile is None:
        score += 0.05
    elif gain_per_mile < config.flat_elevation_gain_per_mile:
        score += 0.1

    # Hard-effort heart rate
    if has_heart_rate(workout.average_heart_rate) \
            and workout.average_heart_rate > config.hard_effort_heart_rate:
        score += 0.1

    return min(1.0, max(0.0, score))


def identify_threshold_efforts(
    workouts: Sequence[WorkoutRecord],
    config: EngineConfig = DEFAULT_CONFIG,
) -> List[ThresholdEffort]:
    """
    Find workouts that look like threshold efforts.

    The easy-pace reference is the 60th-percentile pace of the whole log, so
    a handful of hard sessions cannot drag it toward threshold.

    Returns:
        Qualifying efforts, best score first
    """
    paces = [w.average_pace_seconds_per_mile for w in workouts]
    easy_reference = percentile_value(paces, config.easy_pace_percentile)
    if not easy_reference:
        return []

    efforts = []
    for workout in workouts:
        if not config.min_effort_duration_seconds <= workout.duration_seconds \
                <= config.max_effort_duration_seconds:
            continue

        gain_per_mile = workout.elevation_gain_per_mile
        if gain_per_mile is not None and gain_per_mile > config.max_elevation_gain_per_mile:
            continue

        pace_ratio = workout.average_pace_seconds_per_mile / easy_reference
        if not config.min_pace_ratio_vs_easy <= pace_ratio <= config.max_pace_ratio_vs_easy:
            continue

        pace_cv = _split_pace_cv(workout)
        if pace_cv > config.max_pace_cv:
            continue

        efforts.append(ThresholdEffort(
            workout_date=workout.date,
            pace=workout.average_pace_seconds_per_mile,
            duration_seconds=workout.duration_seconds,
            score=score_threshold_effort(workout, pace_ratio, pace_cv, config),
            average_heart_rate=workout.average_heart_rate,
            pace_variability=pace_cv,
        ))

    efforts.sort(key=lambda e: e.score, reverse=True)
    return efforts


# =============================================================================
# Signal 2: heart-rate deflection
# =============================================================================

def build_pace_hr_points(workouts: Sequence[WorkoutRecord]) -> List[PaceHrPoint]:
    """One point per workout with heart rate, ordered by increasing speed."""
    points = [
        PaceHrPoint(
            pace=w.average_pace_seconds_per_mile,
            heart_rate=w.average_heart_rate,
            workout_date=w.date,
        )
        for w in workouts
        if has_heart_rate(w.average_heart_rate)
        and is_finite_number(w.average_pace_seconds_per_mile)
        and w.average_pace_seconds_per_mile > 0
    ]
    points.sort(key=lambda p: p.pace, reverse=True)
    return points


def _bin_by_pace(points: Sequence[PaceHrPoint], bin_width: float) -> List[Tuple[float, float]]:
    """Average (pace, heart rate) per pace bin, slowest bin first."""
    min_pace = min(p.pace for p in points)
    bins = {}
    for point in points:
        index = int((point.pace - min_pace) // bin_width)
        bins.setdefault(index, []).append(point)

    averaged = [
        (
            sum(p.pace for p in members) / len(members),
            sum(p.heart_rate for p in members) / len(members),
        )
        for members in bins.values()
    ]
    averaged.sort(key=lambda b: b[0], reverse=True)
    return averaged


def find_deflection_point(
    points: Sequence[PaceHrPoint],
    config: EngineConfig = DEFAULT_CONFIG,
) -> Optional[float]:
    """
    Locate the pace where heart rate starts rising disproportionately.

    Points are binned by pace. A baseline slope of heart rate against speed
    is fitted over the slowest bins, then a small window slides toward
    faster bins. The deflection is the centre of the first window whose
    slope exceeds the baseline by the sensitivity margin, provided the
    steepening persists in at least half of the windows from there on.

    Returns:
        Deflection pace rounded to the second, or None without a clear break
    """
    if len(points) < config.min_deflection_points:
        return None

    bins = _bin_by_pace(points, config.pace_bin_seconds)
    if len(bins) < config.min_deflection_points:
        return None

    speeds = [3600 / pace for pace, _ in bins]
    heart_rates = [hr for _, hr in bins]

    baseline_size = max(3, int(len(bins) * config.deflection_baseline_fraction))
    baseline_size = min(baseline_size, len(bins))
    baseline_speeds = speeds[:baseline_size]
    if max(baseline_speeds) - min(baseline_speeds) < config.min_baseline_speed_span_mph:
        # Clustered easy runs cannot define an easy-zone slope
        return None

    baseline = least_squares_slope(baseline_speeds, heart_rates[:baseline_size])
    if baseline is None or baseline <= 0:
        return None

    limit = baseline * (1 + config.deflection_sensitivity)
    half = config.deflection_window // 2

    windows = []  # (centre pace, slope)
    for centre in range(max(1, half), len(bins) - (config.deflection_window - half) + 1):
        start = centre - half
        stop = start + config.deflection_window
        slope = least_squares_slope(speeds[start:stop], heart_rates[start:stop])
        if slope is not None:
            windows.append((bins[centre][0], slope))

    for i, (pace, slope) in enumerate(windows):
        if slope <= limit:
            continue
        remaining = windows[i:]
        steep = sum(1 for _, s in remaining if s > limit)
        if steep * 2 >= len(remaining):
            logger.debug(f"HR deflection at {pace:.0f}s/mi (slope {slope:.1f} vs {baseline:.1f})")
            return float(round(pace))

    return None


# =============================================================================
# Signal 3: sustainability boundary
# =============================================================================

@dataclass
class DriftObservation:
    """Cardiac drift measured over one steady workout."""
    pace: float
    drift: float
    workout_date: date


def measure_drift(
    workout: WorkoutRecord,
    config: EngineConfig = DEFAULT_CONFIG,
) -> Optional[DriftObservation]:
    """
    Heart-rate drift from the first half to the second half of a workout.

    Returns None when the workout is too short, has too few splits with
    heart rate, or its pace changed too much to isolate drift.
    """
    if workout.duration_seconds < config.min_sustainable_duration_seconds:
        return None

    splits = [s for s in valid_splits(workout.splits) if has_heart_rate(s.heart_rate)]
    if len(splits) < config.min_splits_for_drift:
        return None

    midpoint = len(splits) // 2
    first, second = splits[:midpoint], splits[midpoint:]

    first_hr = sum(s.heart_rate for s in first) / len(first)
    second_hr = sum(s.heart_rate for s in second) / len(second)
    first_pace = sum(s.pace_seconds_per_mile for s in first) / len(first)
    second_pace = sum(s.pace_seconds_per_mile for s in second) / len(second)

    if abs(second_pace - first_pace) / first_pace > config.max_pace_drift:
        return None

    return DriftObservation(
        pace=workout.average_pace_seconds_per_mile,
        drift=(second_hr - first_hr) / first_hr,
        workout_date=workout.date,
    )


def find_sustainability_boundary(
    workouts: Sequence[WorkoutRecord],
    config: EngineConfig = DEFAULT_CONFIG,
) -> Optional[float]:
    """
    Pace separating efforts the runner can hold from those they cannot.

    Drift below the sustainable cutoff marks a sustainable pace, drift
    up to the reliability ceiling an unsustainable one; anything beyond the
    ceiling is treated as erratic and ignored. The boundary is the midpoint
    of the fastest sustainable pace and the slowest unsustainable pace.

    Returns:
        Boundary pace rounded to the second, or None
    """
    observations = []
    for workout in workouts:
        observation = measure_drift(workout, config)
        if observation is None:
            continue
        if observation.drift >= config.max_reliable_drift:
            logger.debug(f"Ignoring erratic drift {observation.drift:.1%} on {workout.date}")
            continue
        observations.append(observation)

    if len(observations) < config.min_drift_workouts:
        return None

    sustainable = [o.pace for o in observations if o.drift < config.sustainable_drift]
    unsustainable = [o.pace for o in observations if o.drift >= config.sustainable_drift]
    if not sustainable or not unsustainable:
        return None

    return float(round((min(sustainable) + max(unsustainable)) / 2))


# =============================================================================
# Combination and validation
# =============================================================================

def _recency_weight(workout_date: date, reference: date, half_life_days: float) -> float:
    age = max((reference - workout_date).days, 0)
    return 0.5 ** (age / half_life_days)


def effort_signal(
    efforts: Sequence[ThresholdEffort],
    reference: date,
    config: EngineConfig = DEFAULT_CONFIG,
) -> Optional[float]:
    """Score- and recency-weighted mean pace of the best efforts."""
    top = list(efforts[:config.max_efforts_in_blend])
    if not top:
        return None
    weights = [
        e.score * _recency_weight(e.workout_date, reference, config.recency_half_life_days)
        for e in top
    ]
    pace = weighted_mean([e.pace for e in top], weights)
    if pace is None:
        pace = sum(e.pace for e in top) / len(top)
    return pace


def compute_confidence(
    signal_paces: Sequence[float],
    efforts: Sequence[ThresholdEffort],
    config: EngineConfig = DEFAULT_CONFIG,
) -> float:
    """
    Confidence from evidence volume, independent signals and their agreement.
    """
    confidence = 0.2

    if len(efforts) >= config.high_confidence_efforts:
        confidence += 0.3
    elif len(efforts) >= config.medium_confidence_efforts:
        confidence += 0.2
    elif efforts:
        confidence += 0.1

    if len(signal_paces) >= 3:
        confidence += 0.2
    elif len(signal_paces) == 2:
        confidence += 0.1

    if efforts:
        top = efforts[:3]
        confidence += sum(e.score for e in top) / len(top) * 0.15

    confidence = min(0.95, confidence)

    if len(signal_paces) >= 2:
        spread = max(signal_paces) - min(signal_paces)
        if spread <= 15:
            confidence = min(1.0, confidence + 0.15)
        elif spread <= 30:
            confidence = min(1.0, confidence + 0.05)
        elif spread > 45:
            confidence = max(0.1, confidence - 0.15)

    return round(confidence, 2)


def combine_signals(
    efforts: Sequence[ThresholdEffort],
    deflection_pace: Optional[float],
    sustainability_pace: Optional[float],
    reference: date,
    config: EngineConfig = DEFAULT_CONFIG,
) -> Tuple[Optional[float], float, ThresholdMethod]:
    """
    Blend the available signals into (pace, confidence, method).

    Efforts weigh 0.5, 0.35 or 0.2 depending on how many were found; the
    deflection weighs 0.3 and the sustainability boundary 0.2.
    """
    signals = []  # (pace, weight, method)

    effort_pace = effort_signal(efforts, reference, config)
    if effort_pace is not None:
        if len(efforts) >= config.high_confidence_efforts:
            weight = 0.5
        elif len(efforts) >= config.medium_confidence_efforts:
            weight = 0.35
        else:
            weight = 0.2
        signals.append((effort_pace, weight, ThresholdMethod.THRESHOLD_EFFORTS))

    if deflection_pace is not None:
        signals.append((deflection_pace, 0.3, ThresholdMethod.DEFLECTION))

    if sustainability_pace is not None:
        signals.append((sustainability_pace, 0.2, ThresholdMethod.SUSTAINABILITY))

    if not signals:
        return None, 0.0, ThresholdMethod.INSUFFICIENT_DATA

    pace = weighted_mean([s[0] for s in signals], [s[1] for s in signals])
    confidence = compute_confidence([s[0] for s in signals], efforts, config)
    method = ThresholdMethod.COMBINED if len(signals) > 1 else signals[0][2]
    return float(round(pace)), confidence, method


def classify_agreement(difference_seconds: float) -> Agreement:
    """Tier an absolute pace difference in seconds per mile."""
    gap = abs(difference_seconds)
    if gap <= 10:
        return Agreement.STRONG
    elif gap <= 20:
        return Agreement.MODERATE
    return Agreement.WEAK


def validate_against_vdot(estimated_pace: float, vdot: float) -> VdotValidation:
    """
    Compare a threshold estimate with the threshold pace VDOT predicts.

    Raises:
        ValidationError: If vdot is non-positive or not finite
    """
    expected = threshold_pace_from_vdot(vdot)
    difference = estimated_pace - expected
    return VdotValidation(
        vdot_threshold_pace=expected,
        estimated_threshold_pace=estimated_pace,
        difference_seconds=difference,
        agreement=classify_agreement(difference),
    )


# =============================================================================
# Entry point
# =============================================================================

def _date_range(workouts: Sequence[WorkoutRecord]) -> Optional[Tuple[date, date]]:
    if not workouts:
        return None
    dates = [w.date for w in workouts]
    return min(dates), max(dates)


def detect_threshold_pace(
    workouts: Sequence[WorkoutRecord],
    known_vdot: Optional[float] = None,
    config: EngineConfig = DEFAULT_CONFIG,
    as_of: Optional[date] = None,
) -> ThresholdEstimate:
    """
    Estimate threshold pace from a training log.

    Args:
        workouts: Workout records in any order; bad records are filtered
        known_vdot: Optional VDOT to cross-validate the estimate against;
            zero, negative or non-finite values skip the validation
        config: Engine tunables
        as_of: Reference date for lookback and recency (defaults to today)

    Returns:
        ThresholdEstimate; ``insufficient_data`` with zero confidence when
        fewer than three valid workouts remain or no signal is found
    """
    reference = as_of or date.today()
    valid = filter_valid_workouts(workouts, config, as_of=reference)
    with_hr = [w for w in valid if has_heart_rate(w.average_heart_rate)]

    evidence = ThresholdEvidence(
        workouts_analyzed=len(valid),
        workouts_with_hr=len(with_hr),
        date_range=_date_range(valid),
    )

    if len(valid) < MIN_VALID_WORKOUTS:
        logger.debug(f"Only {len(valid)} valid workouts, threshold not estimated")
        return ThresholdEstimate(None, 0.0, ThresholdMethod.INSUFFICIENT_DATA, evidence)

    evidence.threshold_efforts = identify_threshold_efforts(valid, config)
    evidence.pace_hr_points = build_pace_hr_points(with_hr)
    evidence.deflection_pace = find_deflection_point(evidence.pace_hr_points, config)
    evidence.sustainability_boundary_pace = find_sustainability_boundary(valid, config)

    pace, confidence, method = combine_signals(
        evidence.threshold_efforts,
        evidence.deflection_pace,
        evidence.sustainability_boundary_pace,
        reference,
        config,
    )
    if pace is None:
        logger.debug("No threshold signal found")
        return ThresholdEstimate(None, 0.0, ThresholdMethod.INSUFFICIENT_DATA, evidence)

    estimate = ThresholdEstimate(pace, confidence, method, evidence)
    if is_finite_number(known_vdot) and known_vdot > 0:
        estimate.vdot_validation = validate_against_vdot(pace, known_vdot)
    elif known_vdot is not None:
        logger.debug(f"Skipping VDOT validation for unusable VDOT {known_vdot!r}")

    logger.info(
        f"Threshold pace {pace:.0f}s/mi via {method.value} "
        f"(confidence {confidence:.2f}, {len(valid)} workouts)"
    )
    return estimate
