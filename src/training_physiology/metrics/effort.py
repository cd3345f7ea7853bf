"""
Effort classification for workout splits.

Each split is labelled with a training-zone category by a deterministic
pipeline:

1. Resolve zone boundaries (VDOT, manual paces, or the run's own median)
2. Infer the run mode (easy run, workout, race)
3. Raw per-split classification against the boundaries
4. Structural detection (warmup, cooldown, rests between reps)
5. Anomaly detection (GPS artifacts, tiny splits)
6. Three-split smoothing
7. Hysteresis so paces hovering on a boundary do not flicker
8. Per-split confidence

Boundaries are paces in seconds per mile: a split at or slower than the
easy boundary is easy, and so on toward faster zones.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence

from ..models.workouts import SplitRecord
from .normalization import has_heart_rate, is_finite_number
from .stats import coefficient_of_variation
from .vdot import pace_zones

logger = logging.getLogger(__name__)

# Pace band used inside the classifier for "is this a running split"
MIN_RUNNING_PACE = 180
MAX_RUNNING_PACE = 900
ANOMALY_MIN_DISTANCE_MILES = 0.15

PROMOTE_BUFFER = 5  # seconds faster than a boundary needed to move up a zone
DEMOTE_BUFFER = 3   # seconds slower than a boundary needed to move down


class EffortCategory(str, Enum):
    """Training-zone label for one split."""
    WARMUP = "warmup"
    COOLDOWN = "cooldown"
    RECOVERY = "recovery"
    EASY = "easy"
    STEADY = "steady"
    MARATHON = "marathon"
    TEMPO = "tempo"
    THRESHOLD = "threshold"
    INTERVAL = "interval"
    ANOMALY = "anomaly"

    @property
    def label(self) -> str:
        return self.value.title()


class RunMode(str, Enum):
    EASY_RUN = "easy_run"
    WORKOUT = "workout"
    RACE = "race"


EFFORT_ORDER = [
    EffortCategory.EASY,
    EffortCategory.STEADY,
    EffortCategory.MARATHON,
    EffortCategory.TEMPO,
    EffortCategory.THRESHOLD,
    EffortCategory.INTERVAL,
]

SKIP_CATEGORIES = {
    EffortCategory.WARMUP,
    EffortCategory.COOLDOWN,
    EffortCategory.RECOVERY,
    EffortCategory.ANOMALY,
}

HARD_CATEGORIES = {
    EffortCategory.TEMPO,
    EffortCategory.THRESHOLD,
    EffortCategory.INTERVAL,
}

# Plausible average heart rate per effort category (bpm)
HR_RANGES = {
    EffortCategory.RECOVERY: (60, 130),
    EffortCategory.EASY: (90, 145),
    EffortCategory.STEADY: (120, 155),
    EffortCategory.MARATHON: (140, 165),
    EffortCategory.TEMPO: (150, 175),
    EffortCategory.THRESHOLD: (160, 185),
    EffortCategory.INTERVAL: (165, 200),
}


@dataclass
class ZoneBoundaries:
    """Slow edge of each zone in seconds per mile (higher = slower)."""
    easy: float
    steady: float
    marathon: float
    tempo: float
    threshold: float
    interval: float
    recovery: float = MAX_RUNNING_PACE

    def ordered(self) -> List[float]:
        return [self.easy, self.steady, self.marathon, self.tempo, self.threshold, self.interval]

    def to_dict(self) -> dict:
        return {
            "recovery": self.recovery,
            "easy": self.easy,
            "steady": self.steady,
            "marathon": self.marathon,
            "tempo": self.tempo,
            "threshold": self.threshold,
            "interval": self.interval,
        }


@dataclass
class ClassificationContext:
    """What is known about the runner and the workout being classified."""
    vdot: Optional[float] = None
    easy_pace: Optional[float] = None
    marathon_pace: Optional[float] = None
    tempo_pace: Optional[float] = None
    threshold_pace: Optional[float] = None
    interval_pace: Optional[float] = None
    workout_type: Optional[str] = None
    average_pace_seconds: Optional[float] = None
    condition_adjustment: float = 0.0  # sec/mile, positive in heat or hills


@dataclass
class ClassifiedSplit:
    """Classification result for one split."""
    split_number: int
    category: EffortCategory
    raw_category: EffortCategory
    confidence: float
    anomaly_reason: Optional[str] = None
    hr_agreement: Optional[bool] = None

    def to_dict(self) -> dict:
        return {
            "split_number": self.split_number,
            "category": self.category.value,
            "label": self.category.label,
            "raw_category": self.raw_category.value,
            "confidence": self.confidence,
            "anomaly_reason": self.anomaly_reason,
            "hr_agreement": self.hr_agreement,
        }


@dataclass
class Classification:
    """Classified splits together with the boundaries that produced them."""
    splits: List[ClassifiedSplit] = field(default_factory=list)
    zones: Optional[ZoneBoundaries] = None
    run_mode: RunMode = RunMode.EASY_RUN


def _is_running_pace(pace) -> bool:
    return is_finite_number(pace) and MIN_RUNNING_PACE < pace < MAX_RUNNING_PACE


def _running_paces(splits: Sequence[SplitRecord]) -> List[float]:
    return [s.pace_seconds_per_mile for s in splits if _is_running_pace(s.pace_seconds_per_mile)]


def _median_pace(paces: List[float]) -> float:
    ordered = sorted(paces)
    return ordered[len(ordered) // 2]


def _positive(value) -> bool:
    return is_finite_number(value) and value > 0


# =============================================================================
# Stage 1: zone boundaries
# =============================================================================

def resolve_zones(splits: Sequence[SplitRecord], context: ClassificationContext) -> ZoneBoundaries:
    """
    Resolve zone boundaries in priority order: VDOT, manual paces, run data.

    The condition adjustment shifts every boundary slower so that a run in
    heat or over hills is not read as harder than it was.
    """
    adj = context.condition_adjustment or 0.0

    if _positive(context.vdot):
        zones = pace_zones(context.vdot)
        return ZoneBoundaries(
            recovery=zones["recovery"].pace_seconds_per_mile + adj,
            easy=zones["easy"].pace_seconds_per_mile + adj,
            steady=zones["general_aerobic"].pace_seconds_per_mile + adj,
            marathon=zones["marathon"].pace_seconds_per_mile + adj,
            tempo=zones["tempo"].pace_seconds_per_mile + adj,
            threshold=zones["threshold"].pace_seconds_per_mile + adj,
            interval=zones["interval"].pace_seconds_per_mile + adj,
        )

    if _positive(context.easy_pace):
        easy = context.easy_pace
        marathon = context.marathon_pace if _positive(context.marathon_pace) else easy - 45
        tempo = context.tempo_pace if _positive(context.tempo_pace) else marathon - 25
        threshold = context.threshold_pace if _positive(context.threshold_pace) else tempo - 15
        interval = context.interval_pace if _positive(context.interval_pace) else threshold - 15
        return ZoneBoundaries(
            easy=easy + adj,
            steady=round((easy + marathon) / 2) + adj,
            marathon=marathon + adj,
            tempo=tempo + adj,
            threshold=threshold + adj,
            interval=interval + adj,
        )

    paces = _running_paces(splits)
    if not paces:
        fallback = context.average_pace_seconds if _positive(context.average_pace_seconds) else 500
        return ZoneBoundaries(
            easy=fallback + 40 + adj,
            steady=fallback + 10 + adj,
            marathon=fallback - 20 + adj,
            tempo=fallback - 45 + adj,
            threshold=fallback - 60 + adj,
            interval=fallback - 85 + adj,
        )

    median = _median_pace(paces)
    return ZoneBoundaries(
        easy=median + 20 + adj,
        steady=median - 10 + adj,
        marathon=median - 30 + adj,
        tempo=median - 45 + adj,
        threshold=median - 60 + adj,
        interval=median - 85 + adj,
    )


# =============================================================================
# Stage 2: run mode
# =============================================================================

def infer_run_mode(
    splits: Sequence[SplitRecord],
    context: ClassificationContext,
    zones: ZoneBoundaries,
) -> RunMode:
    """Explicit workout type wins; otherwise judge from pacing variability."""
    workout_type = (context.workout_type or "").lower()
    if workout_type == "race":
        return RunMode.RACE
    if workout_type in ("interval", "speed", "tempo", "threshold", "repetition"):
        return RunMode.WORKOUT
    if workout_type in ("easy", "recovery"):
        return RunMode.EASY_RUN

    paces = _running_paces(splits)
    if len(paces) < 2:
        return RunMode.EASY_RUN

    cv = coefficient_of_variation(paces)
    fast_share = sum(1 for p in paces if p <= zones.tempo) / len(paces)

    if cv > 0.08 and fast_share > 0.2:
        return RunMode.WORKOUT
    if fast_share > 0.7 and cv < 0.05:
        return RunMode.RACE
    return RunMode.EASY_RUN


# =============================================================================
# Stages 3-5: raw, structural, anomaly
# =============================================================================

def classify_pace(pace: float, zones: ZoneBoundaries) -> EffortCategory:
    """Classify a single pace against the zone boundaries."""
    if pace > zones.recovery:
        return EffortCategory.RECOVERY
    if pace >= zones.easy:
        return EffortCategory.EASY
    if pace >= zones.steady:
        return EffortCategory.STEADY
    if pace >= zones.marathon:
        return EffortCategory.MARATHON
    if pace >= zones.tempo:
        return EffortCategory.TEMPO
    if pace >= zones.threshold:
        return EffortCategory.THRESHOLD
    return EffortCategory.INTERVAL


def _detect_structure(
    splits: Sequence[SplitRecord],
    categories: List[EffortCategory],
    zones: ZoneBoundaries,
    run_mode: RunMode,
) -> List[EffortCategory]:
    result = list(categories)
    n = len(splits)
    if n < 5:
        return result

    paces = _running_paces(splits)
    median = _median_pace(paces) if paces else zones.steady

    def pace(i: int) -> float:
        return splits[i].pace_seconds_per_mile

    # Warmup: opening splits clearly slower than the body of the run
    if median + 20 < pace(0) < MAX_RUNNING_PACE:
        result[0] = EffortCategory.WARMUP
        if n > 5 and median + 15 < pace(1) < MAX_RUNNING_PACE:
            result[1] = EffortCategory.WARMUP

    # Cooldown: a slow final split after faster running
    if median + 20 < pace(n - 1) < MAX_RUNNING_PACE and pace(n - 1) > pace(n - 2) + 10:
        result[n - 1] = EffortCategory.COOLDOWN

    if run_mode == RunMode.RACE:
        total_miles = sum(s.distance_miles for s in splits if is_finite_number(s.distance_miles))
        if total_miles >= 25:
            # Marathon PR attempts run faster than the predicted marathon band
            for i in range(n):
                if result[i] == EffortCategory.TEMPO and zones.marathon - 40 <= pace(i) < zones.marathon:
                    result[i] = EffortCategory.MARATHON

    if run_mode == RunMode.WORKOUT:
        for i in range(n):
            if result[i] != EffortCategory.RECOVERY and pace(i) > zones.easy + 30:
                result[i] = EffortCategory.RECOVERY

    return result


def detect_anomaly(split: SplitRecord) -> Optional[str]:
    """Return a reason when the split looks like bad data, else None."""
    pace = split.pace_seconds_per_mile
    if not is_finite_number(pace) or pace <= 0:
        return "Missing pace"
    if pace < MIN_RUNNING_PACE:
        return f"Pace {pace:.0f}s/mi is faster than 3:00/mi, likely a GPS artifact"
    if is_finite_number(split.distance_miles) and split.distance_miles < ANOMALY_MIN_DISTANCE_MILES \
            and pace <= MAX_RUNNING_PACE:
        return f"Very short split ({split.distance_miles:.2f} mi)"
    return None


# =============================================================================
# Stages 6-7: smoothing and hysteresis
# =============================================================================

def _smooth(categories: List[EffortCategory]) -> List[EffortCategory]:
    """A split flanked by two agreeing neighbours takes their category."""
    result = list(categories)
    for i in range(1, len(result) - 1):
        prev, curr, nxt = result[i - 1], result[i], result[i + 1]
        if curr in SKIP_CATEGORIES or prev in SKIP_CATEGORIES or nxt in SKIP_CATEGORIES:
            continue
        if prev == nxt and curr != prev:
            result[i] = prev
    return result


def _apply_hysteresis(
    splits: Sequence[SplitRecord],
    categories: List[EffortCategory],
    zones: ZoneBoundaries,
    run_mode: RunMode,
) -> List[EffortCategory]:
    result = list(categories)
    # (boundary, faster zone, slower zone)
    edges = [
        (zones.easy, EffortCategory.STEADY, EffortCategory.EASY),
        (zones.steady, EffortCategory.MARATHON, EffortCategory.STEADY),
        (zones.marathon, EffortCategory.TEMPO, EffortCategory.MARATHON),
        (zones.tempo, EffortCategory.THRESHOLD, EffortCategory.TEMPO),
        (zones.threshold, EffortCategory.INTERVAL, EffortCategory.THRESHOLD),
    ]

    for i, split in enumerate(splits):
        if result[i] in SKIP_CATEGORIES:
            continue
        pace = split.pace_seconds_per_mile
        prev = result[i - 1] if i > 0 else None

        # Stay in the previous zone until the pace clears the boundary buffer
        if prev in EFFORT_ORDER:
            for boundary, faster, slower in edges:
                gap = boundary - pace  # positive = faster than boundary
                if prev == slower and 0 < gap < PROMOTE_BUFFER:
                    result[i] = slower
                elif prev == faster and 0 < -gap < DEMOTE_BUFFER:
                    result[i] = faster

        if run_mode == RunMode.EASY_RUN and result[i] in EFFORT_ORDER:
            idx = EFFORT_ORDER.index(result[i])
            if idx >= 3:
                boundary = {3: zones.tempo, 4: zones.threshold}.get(idx, zones.threshold - 15)
                if pace > boundary - PROMOTE_BUFFER:
                    result[i] = EFFORT_ORDER[idx - 1]

        elif run_mode == RunMode.RACE and result[i] in EFFORT_ORDER:
            counts: Dict[EffortCategory, int] = {}
            for category in result:
                if category not in SKIP_CATEGORIES:
                    counts[category] = counts.get(category, 0) + 1
            dominant = max(counts, key=counts.get) if counts else EffortCategory.STEADY
            if dominant in EFFORT_ORDER:
                curr_idx = EFFORT_ORDER.index(result[i])
                dom_idx = EFFORT_ORDER.index(dominant)
                if abs(curr_idx - dom_idx) == 1:
                    boundary = edges[min(curr_idx, dom_idx)][0]
                    if abs(pace - boundary) < 8:
                        result[i] = dominant

    if run_mode == RunMode.WORKOUT:
        for i in range(1, len(splits) - 1):
            if result[i] in SKIP_CATEGORIES:
                continue
            prev, nxt = result[i - 1], result[i + 1]
            if prev in HARD_CATEGORIES and nxt in HARD_CATEGORIES \
                    and result[i] in (EffortCategory.EASY, EffortCategory.STEADY):
                result[i] = EffortCategory.RECOVERY
            if (prev in HARD_CATEGORIES or nxt in HARD_CATEGORIES) \
                    and splits[i].pace_seconds_per_mile > zones.easy:
                result[i] = EffortCategory.RECOVERY

    return result


# =============================================================================
# Stage 8: confidence
# =============================================================================

def _neighbours_agree(
    category: EffortCategory,
    neighbours: List[Optional[SplitRecord]],
    zones: ZoneBoundaries,
) -> bool:
    checked = [
        n for n in neighbours
        if n is not None and _is_running_pace(n.pace_seconds_per_mile)
    ]
    if not checked:
        return True
    return any(classify_pace(n.pace_seconds_per_mile, zones) == category for n in checked)


def _score_confidence(
    split: SplitRecord,
    category: EffortCategory,
    raw_category: EffortCategory,
    zones: ZoneBoundaries,
    neighbours: List[Optional[SplitRecord]],
    is_anomaly: bool,
) -> tuple:
    if is_anomaly:
        return 0.2, None

    pace = split.pace_seconds_per_mile
    if category == EffortCategory.RECOVERY and pace > MAX_RUNNING_PACE:
        return 0.9, None

    confidence = 0.8
    distance_to_boundary = min(abs(pace - b) for b in zones.ordered())
    if distance_to_boundary > 15:
        confidence += 0.1
    if distance_to_boundary < 5:
        confidence -= 0.2

    if not _neighbours_agree(category, neighbours, zones):
        confidence -= 0.2

    if raw_category != category and category not in (
        EffortCategory.WARMUP, EffortCategory.COOLDOWN, EffortCategory.RECOVERY
    ):
        confidence -= 0.1

    hr_agreement = None
    if has_heart_rate(split.heart_rate):
        low, high = HR_RANGES.get(category, (0, 1000))
        hr_agreement = low <= split.heart_rate <= high
        confidence += 0.1 if hr_agreement else -0.2

    if is_finite_number(split.distance_miles) and split.distance_miles < 0.5:
        confidence -= 0.1

    return max(0.2, min(1.0, round(confidence, 2))), hr_agreement


# =============================================================================
# Entry points
# =============================================================================

def classify_workout(
    splits: Sequence[SplitRecord],
    context: Optional[ClassificationContext] = None,
) -> Classification:
    """
    Run the full pipeline and return splits, boundaries and run mode.

    Args:
        splits: Ordered splits of one workout
        context: Runner paces/VDOT and workout metadata

    Returns:
        Classification (empty when there are no splits)
    """
    context = context or ClassificationContext()
    if not splits:
        return Classification()

    zones = resolve_zones(splits, context)
    run_mode = infer_run_mode(splits, context, zones)

    categories = [
        classify_pace(s.pace_seconds_per_mile, zones) if is_finite_number(s.pace_seconds_per_mile)
        else EffortCategory.ANOMALY
        for s in splits
    ]
    categories = _detect_structure(splits, categories, zones, run_mode)
    raw_categories = list(categories)

    anomalies = [detect_anomaly(s) for s in splits]
    categories = [
        EffortCategory.ANOMALY if reason else category
        for category, reason in zip(categories, anomalies)
    ]
    categories = _smooth(categories)
    categories = _apply_hysteresis(splits, categories, zones, run_mode)
    categories = [
        EffortCategory.ANOMALY if reason else category
        for category, reason in zip(categories, anomalies)
    ]

    classified = []
    for i, split in enumerate(splits):
        neighbours = [
            splits[i - 1] if i > 0 else None,
            splits[i + 1] if i < len(splits) - 1 else None,
        ]
        confidence, hr_agreement = _score_confidence(
            split, categories[i], raw_categories[i], zones, neighbours, anomalies[i] is not None
        )
        classified.append(ClassifiedSplit(
            split_number=split.split_number,
            category=categories[i],
            raw_category=raw_categories[i],
            confidence=confidence,
            anomaly_reason=anomalies[i],
            hr_agreement=hr_agreement,
        ))

    logger.debug(f"Classified {len(classified)} splits as {run_mode.value}")
    return Classification(splits=classified, zones=zones, run_mode=run_mode)


def classify_splits(
    splits: Sequence[SplitRecord],
    context: Optional[ClassificationContext] = None,
) -> List[ClassifiedSplit]:
    """Classify each split of a workout into an effort category."""
    return classify_workout(splits, context).splits


# =============================================================================
# Zone distribution and workout type
# =============================================================================

def compute_zone_distribution(
    classified: Sequence[ClassifiedSplit],
    splits: Sequence[SplitRecord],
) -> Dict[str, float]:
    """Minutes spent in each category, rounded to one decimal."""
    distribution = {category.value: 0.0 for category in EffortCategory}
    for result, split in zip(classified, splits):
        seconds = split.duration_seconds if is_finite_number(split.duration_seconds) else 0
        distribution[result.category.value] += max(seconds, 0) / 60
    return {key: round(minutes, 1) for key, minutes in distribution.items()}


MAIN_BODY = ["recovery", "easy", "steady", "marathon", "tempo", "threshold", "interval"]


def derive_workout_type(
    distribution: Dict[str, float],
    workout_type: Optional[str] = None,
    distance_miles: Optional[float] = None,
) -> str:
    """
    Derive a workout's main training purpose from its zone distribution.

    - race and cross_train are kept when explicitly set
    - warmup, cooldown and anomalies are excluded from the main body
    - 9+ miles or 75+ minutes makes it a long run
    - threshold-dominant runs count as tempo
    - a single zone above 50% names the workout
    - 20%+ hard running names it after the dominant hard zone
    """
    explicit = (workout_type or "").lower()
    if explicit in ("race", "cross_train"):
        return explicit

    main_body = {zone: distribution.get(zone, 0.0) for zone in MAIN_BODY}
    total_main = sum(main_body.values())
    if total_main == 0:
        return explicit or "easy"

    total_all = total_main + distribution.get("warmup", 0.0) + distribution.get("cooldown", 0.0)
    if (is_finite_number(distance_miles) and distance_miles >= 9) or total_all >= 75:
        return "long"

    dominant = max(MAIN_BODY, key=lambda zone: main_body[zone])
    if dominant == "recovery":
        return "recovery"
    if dominant == "threshold":
        return "tempo"
    if main_body[dominant] / total_main > 0.5:
        return dominant

    hard = main_body["tempo"] + main_body["threshold"] + main_body["interval"]
    if hard / total_main >= 0.2:
        tempo_like = main_body["tempo"] + main_body["threshold"]
        return "interval" if main_body["interval"] > tempo_like else "tempo"

    return "easy"
