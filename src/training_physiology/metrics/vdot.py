"""
VDOT Estimator and Race-Time Predictor (Daniels' Running Formula)

Implements the Daniels-Gilbert relationship between running velocity, the
fraction of VO2max that can be sustained for a given duration, and the
oxygen cost of running. VDOT is a "pseudo-VO2max" derived from a
performance; every VDOT value maps back to race times and training paces.

Key concepts:
- VDOT = VO2 cost of the race velocity / fraction of VO2max sustainable
  for the race duration
- Race prediction inverts that relationship with a bounded fixed-point
  iteration (see ``metrics.solver``)
- Predictions carry a symmetric interval that widens as data quality drops

All paces in this module are seconds per mile.

References:
- Jack Daniels' Running Formula (3rd edition)
- Daniels, J. & Gilbert, J. (1979). Oxygen Power.
"""

import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from ..config import DEFAULT_CONFIG, EngineConfig
from ..exceptions import ErrorCode, UnknownDistanceError, ValidationError
from .normalization import is_finite_number
from .solver import SolverResult, solve

logger = logging.getLogger(__name__)

METERS_PER_MILE = 1609.344


class RaceDistance(Enum):
    """Common race distances with values in meters."""
    FOUR_HUNDRED = 400
    ONE_MILE = 1609.344
    FIVE_K = 5000
    TEN_K = 10000
    FIFTEEN_K = 15000
    TEN_MILE = 16093.44
    HALF_MARATHON = 21097.5
    MARATHON = 42195

    @classmethod
    def from_string(cls, s: str) -> "RaceDistance":
        """
        Parse race distance from string.

        Raises:
            UnknownDistanceError: If the label is not recognised
        """
        mapping = {
            "400": cls.FOUR_HUNDRED,
            "400m": cls.FOUR_HUNDRED,
            "mile": cls.ONE_MILE,
            "1mile": cls.ONE_MILE,
            "1_mile": cls.ONE_MILE,
            "5k": cls.FIVE_K,
            "5km": cls.FIVE_K,
            "5000": cls.FIVE_K,
            "10k": cls.TEN_K,
            "10km": cls.TEN_K,
            "10000": cls.TEN_K,
            "15k": cls.FIFTEEN_K,
            "15km": cls.FIFTEEN_K,
            "10_mile": cls.TEN_MILE,
            "10mile": cls.TEN_MILE,
            "10mi": cls.TEN_MILE,
            "half": cls.HALF_MARATHON,
            "half_marathon": cls.HALF_MARATHON,
            "halfmarathon": cls.HALF_MARATHON,
            "21k": cls.HALF_MARATHON,
            "21.1k": cls.HALF_MARATHON,
            "marathon": cls.MARATHON,
            "full": cls.MARATHON,
            "42k": cls.MARATHON,
            "42.2k": cls.MARATHON,
        }
        distance = mapping.get(s.strip().lower().replace("-", "_").replace(" ", "_"))
        if distance is None:
            raise UnknownDistanceError(s)
        return distance

    @property
    def display_name(self) -> str:
        """Get human-readable name."""
        names = {
            RaceDistance.FOUR_HUNDRED: "400m",
            RaceDistance.ONE_MILE: "Mile",
            RaceDistance.FIVE_K: "5K",
            RaceDistance.TEN_K: "10K",
            RaceDistance.FIFTEEN_K: "15K",
            RaceDistance.TEN_MILE: "10 Mile",
            RaceDistance.HALF_MARATHON: "Half Marathon",
            RaceDistance.MARATHON: "Marathon",
        }
        return names[self]

    @property
    def distance_miles(self) -> float:
        return self.value / METERS_PER_MILE


class DataQuality(str, Enum):
    """How much trust the underlying performance data deserves."""
    HIGH = "high"      # recent race result
    MEDIUM = "medium"  # older race or hard training effort
    LOW = "low"        # inferred from easy running


# Relative half-width of the prediction interval per data quality tier
PREDICTION_INTERVALS = {
    DataQuality.HIGH: 0.02,
    DataQuality.MEDIUM: 0.04,
    DataQuality.LOW: 0.07,
}


# =============================================================================
# Daniels-Gilbert equations
# =============================================================================

def oxygen_cost(velocity_m_per_min: float) -> float:
    """VO2 (ml/kg/min) required to run at a velocity in meters per minute."""
    return -4.60 + 0.182258 * velocity_m_per_min + 0.000104 * velocity_m_per_min ** 2


def percent_vo2max(duration_minutes: float) -> float:
    """
    Fraction of VO2max that can be sustained for a duration.

    Shorter efforts allow a higher fraction; for very short efforts the value
    exceeds 1.0 because of the anaerobic contribution.
    """
    return (
        0.8
        + 0.1894393 * math.exp(-0.012778 * duration_minutes)
        + 0.2989558 * math.exp(-0.1932605 * duration_minutes)
    )


def velocity_from_oxygen_cost(vo2: float) -> float:
    """
    Velocity (m/min) whose oxygen cost equals ``vo2``.

    Positive root of 0.000104 v^2 + 0.182258 v - (4.60 + vo2) = 0.
    """
    a = 0.000104
    b = 0.182258
    c = -4.60 - vo2
    discriminant = b ** 2 - 4 * a * c
    if discriminant < 0:
        return 0.0
    return (-b + math.sqrt(discriminant)) / (2 * a)


def _require_positive(value, field: str) -> float:
    if not is_finite_number(value) or value <= 0:
        raise ValidationError(
            f"{field} must be a positive finite number, got {value!r}",
            field=field,
            code=ErrorCode.INVALID_PERFORMANCE,
        )
    return float(value)


def vdot_from_performance(distance_meters: float, time_seconds: float) -> float:
    """
    Calculate VDOT from a performance.

    The value is returned unrounded so that ``race_time_from_vdot`` inverts it
    exactly; round for display only.

    Args:
        distance_meters: Distance covered in meters
        time_seconds: Elapsed time in seconds

    Returns:
        VDOT (roughly 30 for beginners up to 85 for elites)

    Raises:
        ValidationError: If either argument is non-positive or not finite

    Example:
        >>> round(vdot_from_performance(5000, 1200), 1)  # 5K in 20:00
        49.8
    """
    distance_meters = _require_positive(distance_meters, "distance_meters")
    time_seconds = _require_positive(time_seconds, "time_seconds")

    velocity = distance_meters / time_seconds * 60
    return oxygen_cost(velocity) / percent_vo2max(time_seconds / 60)


def velocity_from_vdot(vdot: float, intensity: float) -> float:
    """Velocity (m/min) at a fraction of VDOT."""
    return velocity_from_oxygen_cost(vdot * intensity)


def pace_from_vdot(vdot: float, intensity: float) -> float:
    """Pace in seconds per mile at a fraction of VDOT."""
    velocity = velocity_from_vdot(vdot, intensity)
    if velocity <= 0:
        return math.inf
    return METERS_PER_MILE / velocity * 60


# =============================================================================
# Race-time prediction
# =============================================================================

def solve_race_time(
    vdot: float,
    distance_meters: float,
    config: EngineConfig = DEFAULT_CONFIG,
) -> SolverResult:
    """
    Solve for the race time implied by a VDOT, with convergence details.

    The fixed point is t = d / v(vdot * %VO2max(t)): the finish time whose
    sustainable oxygen uptake yields exactly the velocity that covers the
    distance in that time. The first guess runs at 80% of VO2max.
    """
    vdot = _require_positive(vdot, "vdot")
    distance_meters = _require_positive(distance_meters, "distance_meters")

    def step(time_seconds: float) -> float:
        velocity = velocity_from_vdot(vdot, percent_vo2max(time_seconds / 60))
        if velocity <= 0:
            return math.inf
        return distance_meters / velocity * 60

    initial = distance_meters / velocity_from_vdot(vdot, 0.80) * 60
    result = solve(
        step,
        initial,
        tolerance=config.solver_tolerance_seconds,
        max_iterations=config.solver_max_iterations,
    )
    if not result.converged:
        logger.warning(
            f"Race time for VDOT {vdot:.1f} over {distance_meters:.0f}m "
            f"returned best iterate {result.value:.1f}s"
        )
    return result


def race_time_from_vdot(
    vdot: float,
    distance_meters: float,
    config: EngineConfig = DEFAULT_CONFIG,
) -> float:
    """
    Predict race time in seconds for a distance from VDOT.

    Left inverse of ``vdot_from_performance``: predicting the time of a
    performance from its own VDOT gives back the original time.

    Raises:
        ValidationError: If either argument is non-positive or not finite
    """
    return solve_race_time(vdot, distance_meters, config).value


@dataclass
class RacePrediction:
    """Predicted race result with a confidence interval."""
    distance_name: str
    distance_meters: float
    time_seconds: float
    pace_seconds_per_mile: float
    lower_seconds: float  # optimistic end of the interval
    upper_seconds: float  # conservative end of the interval
    quality: DataQuality

    @property
    def time_formatted(self) -> str:
        return format_time(self.time_seconds)

    @property
    def range_formatted(self) -> str:
        return f"{format_time(self.lower_seconds)} - {format_time(self.upper_seconds)}"

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "distance": self.distance_name,
            "distance_meters": self.distance_meters,
            "time_seconds": round(self.time_seconds, 1),
            "time_formatted": self.time_formatted,
            "pace_seconds_per_mile": round(self.pace_seconds_per_mile, 1),
            "pace_formatted": format_pace(self.pace_seconds_per_mile),
            "range": {
                "lower_seconds": round(self.lower_seconds, 1),
                "upper_seconds": round(self.upper_seconds, 1),
                "formatted": self.range_formatted,
            },
            "quality": self.quality.value,
        }


def predict_race(
    vdot: float,
    distance: Union[RaceDistance, str, float],
    quality: DataQuality = DataQuality.MEDIUM,
    config: EngineConfig = DEFAULT_CONFIG,
) -> RacePrediction:
    """
    Predict a race with a confidence interval.

    The interval is +/-2%, 4% or 7% of the predicted time for high, medium
    and low quality data. It communicates estimator uncertainty, not
    measurement noise.

    Args:
        vdot: VDOT value
        distance: RaceDistance, a label such as "half", or meters
        quality: Data quality tier of the VDOT source
        config: Engine tunables (solver tolerance and iteration cap)
    """
    if isinstance(distance, str):
        distance = RaceDistance.from_string(distance)
    if isinstance(distance, RaceDistance):
        name, meters = distance.display_name, float(distance.value)
    else:
        meters = _require_positive(distance, "distance_meters")
        name = f"{meters:.0f}m"

    quality = DataQuality(quality)
    time_seconds = race_time_from_vdot(vdot, meters, config)
    margin = PREDICTION_INTERVALS[quality]

    return RacePrediction(
        distance_name=name,
        distance_meters=meters,
        time_seconds=time_seconds,
        pace_seconds_per_mile=time_seconds / (meters / METERS_PER_MILE),
        lower_seconds=time_seconds * (1 - margin),
        upper_seconds=time_seconds * (1 + margin),
        quality=quality,
    )


def predict_race_times(
    vdot: float,
    quality: DataQuality = DataQuality.MEDIUM,
    config: EngineConfig = DEFAULT_CONFIG,
) -> Dict[str, RacePrediction]:
    """Predict every standard race distance, keyed by display name."""
    return {
        distance.display_name: predict_race(vdot, distance, quality, config)
        for distance in RaceDistance
    }


def calculate_equivalent_performances(
    distance_meters: float,
    time_seconds: float,
    quality: DataQuality = DataQuality.HIGH,
) -> Dict[str, RacePrediction]:
    """
    Calculate equivalent performances for other distances.

    Given a race result, estimate what the runner should be able to run at
    other distances with equal training.
    """
    vdot = vdot_from_performance(distance_meters, time_seconds)
    return predict_race_times(vdot, quality)


# =============================================================================
# Training pace zones
# =============================================================================

@dataclass
class PaceZone:
    """
    A training pace zone derived from VDOT.

    Attributes:
        name: Zone key (e.g. "threshold")
        intensity: Target fraction of VO2max
        intensity_range: (low, high) fraction of VO2max for the band
        pace_seconds_per_mile: Target pace
        slow_pace_seconds_per_mile: Slow edge of the band
        fast_pace_seconds_per_mile: Fast edge of the band
        description: Training purpose and feel
    """
    name: str
    intensity: float
    intensity_range: Tuple[float, float]
    pace_seconds_per_mile: float
    slow_pace_seconds_per_mile: float
    fast_pace_seconds_per_mile: float
    description: str = ""

    @property
    def display_name(self) -> str:
        return self.name.replace("_", " ").title()

    @property
    def pace_range_formatted(self) -> str:
        """Format pace range as MM:SS - MM:SS /mi (fast to slow)."""
        fast = format_pace(self.fast_pace_seconds_per_mile, suffix="")
        slow = format_pace(self.slow_pace_seconds_per_mile, suffix="")
        return f"{fast} - {slow}/mi"

    def contains(self, pace_seconds_per_mile: float) -> bool:
        return self.fast_pace_seconds_per_mile <= pace_seconds_per_mile <= self.slow_pace_seconds_per_mile

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "intensity": self.intensity,
            "intensity_range": list(self.intensity_range),
            "pace_seconds_per_mile": round(self.pace_seconds_per_mile, 1),
            "slow_pace_seconds_per_mile": round(self.slow_pace_seconds_per_mile, 1),
            "fast_pace_seconds_per_mile": round(self.fast_pace_seconds_per_mile, 1),
            "pace_formatted": format_pace(self.pace_seconds_per_mile),
            "pace_range_formatted": self.pace_range_formatted,
            "description": self.description,
        }


# Zone definitions: (target intensity, (band low, band high), description)
ZONE_DEFINITIONS = {
    "recovery": (0.55, (0.50, 0.59), "Very easy jog between hard days."),
    "easy": (0.65, (0.59, 0.74), "Conversational pace for base building."),
    "general_aerobic": (0.70, (0.65, 0.75), "Steady aerobic running, the default daily pace."),
    "marathon": (0.78, (0.75, 0.84), "Marathon race pace."),
    "half_marathon": (0.83, (0.80, 0.86), "Half marathon race pace."),
    "tempo": (0.85, (0.83, 0.88), "Comfortably hard, sustainable for about an hour."),
    "threshold": (0.88, (0.86, 0.90), "Lactate threshold, sustainable for 20-60 minutes."),
    "vo2max": (0.95, (0.93, 0.97), "Hard 3-5 minute repeats."),
    "interval": (0.97, (0.95, 1.00), "VO2max intervals with equal recovery."),
    "repetition": (1.05, (1.02, 1.10), "Short fast repeats with full recovery."),
}


def pace_zones(vdot: float) -> Dict[str, PaceZone]:
    """
    Calculate training pace zones from VDOT.

    Each zone sits at a fixed fraction of VO2max; higher fractions give
    faster paces.

    Args:
        vdot: VDOT value

    Returns:
        Dictionary mapping zone keys (recovery ... repetition) to PaceZone

    Raises:
        ValidationError: If vdot is non-positive or not finite
    """
    vdot = _require_positive(vdot, "vdot")

    zones = {}
    for name, (intensity, (low, high), description) in ZONE_DEFINITIONS.items():
        zones[name] = PaceZone(
            name=name,
            intensity=intensity,
            intensity_range=(low, high),
            pace_seconds_per_mile=pace_from_vdot(vdot, intensity),
            slow_pace_seconds_per_mile=pace_from_vdot(vdot, low),
            fast_pace_seconds_per_mile=pace_from_vdot(vdot, high),
            description=description,
        )
    return zones


def threshold_pace_from_vdot(vdot: float) -> float:
    """Threshold pace (seconds per mile) implied by VDOT."""
    return pace_from_vdot(_require_positive(vdot, "vdot"), ZONE_DEFINITIONS["threshold"][0])


# =============================================================================
# Weather adjustments
# =============================================================================

OPTIMAL_TEMPERATURE_F = 45

# Share of the weather adjustment applied per zone (others take all of it)
WEATHER_ZONE_SCALING = {
    "threshold": 0.8,
    "vo2max": 0.5,
    "interval": 0.5,
    "repetition": 0.3,
}


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def weather_pace_adjustment(
    temperature_f: float,
    humidity: float,
    dew_point: Optional[float] = None,
) -> int:
    """
    Seconds per mile to add to a pace for the weather (positive = slower).

    Conservative banded model around an optimal ~45°F:
    - 45-70°F: 0.4 s/mile per °F
    - 70-85°F: plus 1.0 s/mile per °F above 70
    - above 85°F: plus 1.5 s/mile per °F above 85
    - humidity above 50% adds 0.1 s/mile per point when warmer than 65°F,
      or above 60% adds 0.05 s/mile per point when warmer than 55°F
    - below 35°F: 0.2 s/mile per °F of cold
    - a dew point above 60°F adds 0.3 s/mile per °F

    Args:
        temperature_f: Air temperature in Fahrenheit
        humidity: Relative humidity percentage (0-100)
        dew_point: Dew point in Fahrenheit, if known

    Returns:
        Whole seconds per mile; 0 for missing or non-finite readings
    """
    if not is_finite_number(temperature_f):
        return 0
    if not is_finite_number(humidity):
        humidity = 0

    adjustment = 0.0
    if temperature_f > OPTIMAL_TEMPERATURE_F:
        if temperature_f > 85:
            adjustment += (70 - OPTIMAL_TEMPERATURE_F) * 0.4
            adjustment += (85 - 70) * 1.0
            adjustment += (temperature_f - 85) * 1.5
        elif temperature_f > 70:
            adjustment += (70 - OPTIMAL_TEMPERATURE_F) * 0.4
            adjustment += (temperature_f - 70) * 1.0
        else:
            adjustment += (temperature_f - OPTIMAL_TEMPERATURE_F) * 0.4

        if temperature_f > 65 and humidity > 50:
            adjustment += (humidity - 50) * 0.1
        elif temperature_f > 55 and humidity > 60:
            adjustment += (humidity - 60) * 0.05
    elif temperature_f < 35:
        adjustment += (35 - temperature_f) * 0.2

    if is_finite_number(dew_point) and dew_point > 60:
        adjustment += (dew_point - 60) * 0.3

    return _round_half_up(adjustment)


def adjust_pace_zones_for_weather(
    zones: Dict[str, PaceZone],
    temperature_f: float,
    humidity: float,
    dew_point: Optional[float] = None,
) -> Dict[str, PaceZone]:
    """
    Slow every pace zone for the weather.

    Aerobic zones take the full adjustment; threshold takes 80%, vo2max
    and interval 50%, repetition 30%. The input zones are not modified.
    """
    adjustment = weather_pace_adjustment(temperature_f, humidity, dew_point)
    if adjustment == 0:
        return dict(zones)

    adjusted = {}
    for name, zone in zones.items():
        shift = _round_half_up(adjustment * WEATHER_ZONE_SCALING.get(name, 1.0))
        adjusted[name] = replace(
            zone,
            pace_seconds_per_mile=zone.pace_seconds_per_mile + shift,
            slow_pace_seconds_per_mile=zone.slow_pace_seconds_per_mile + shift,
            fast_pace_seconds_per_mile=zone.fast_pace_seconds_per_mile + shift,
        )
    logger.debug(f"Weather adjustment {adjustment:+d}s/mi at {temperature_f}°F, {humidity}% RH")
    return adjusted


# =============================================================================
# Supplementary estimates
# =============================================================================

def estimate_vdot_from_easy_pace(easy_pace_seconds_per_mile: float) -> float:
    """
    Rough VDOT from a habitual easy pace, assuming easy running is ~65% VO2max.

    Low quality: use DataQuality.LOW for predictions derived from it.
    """
    pace = _require_positive(easy_pace_seconds_per_mile, "easy_pace_seconds_per_mile")
    velocity = METERS_PER_MILE / (pace / 60)
    return round(oxygen_cost(velocity) / ZONE_DEFINITIONS["easy"][0], 1)


def elevation_pace_correction(elevation_gain_feet: float, distance_miles: float) -> int:
    """
    Seconds per mile lost to climbing: about 12 s/mile per 100 ft/mile of gain.
    """
    if not is_finite_number(elevation_gain_feet) or not is_finite_number(distance_miles):
        return 0
    if distance_miles <= 0 or elevation_gain_feet <= 0:
        return 0
    gain_per_mile = elevation_gain_feet / distance_miles
    return round(gain_per_mile / 100 * 12)


def calculate_adjusted_vdot(
    distance_meters: float,
    time_seconds: float,
    elevation_gain_feet: Optional[float] = None,
) -> float:
    """
    VDOT corrected to flat-course conditions.

    The climbing penalty is removed from the finish time before computing
    VDOT. The correction never removes more than 15% of the time.
    """
    distance_meters = _require_positive(distance_meters, "distance_meters")
    time_seconds = _require_positive(time_seconds, "time_seconds")
    if elevation_gain_feet is None:
        return vdot_from_performance(distance_meters, time_seconds)

    distance_miles = distance_meters / METERS_PER_MILE
    correction = elevation_pace_correction(elevation_gain_feet, distance_miles)
    if correction <= 0:
        return vdot_from_performance(distance_meters, time_seconds)

    corrected = max(time_seconds - correction * distance_miles, time_seconds * 0.85)
    return vdot_from_performance(distance_meters, corrected)


# =============================================================================
# Formatting
# =============================================================================

def format_time(seconds: float) -> str:
    """Format time in seconds to H:MM:SS or MM:SS string."""
    total = int(round(seconds))
    hours = total // 3600
    minutes = (total % 3600) // 60
    secs = total % 60

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    else:
        return f"{minutes}:{secs:02d}"


def format_pace(pace_seconds_per_mile: float, suffix: str = "/mi") -> str:
    """Format pace in sec/mile to MM:SS/mi string."""
    total = int(round(pace_seconds_per_mile))
    return f"{total // 60}:{total % 60:02d}{suffix}"


def parse_race_time(time_str: str) -> int:
    """
    Parse a race time string to seconds.

    Accepts formats: H:MM:SS, MM:SS, or just seconds

    Args:
        time_str: Time string (e.g., "1:45:00", "25:30", "1200")

    Returns:
        Time in seconds

    Raises:
        ValidationError: If time format is invalid
    """
    time_str = time_str.strip()

    try:
        return int(float(time_str))
    except ValueError:
        pass

    parts = time_str.split(":")

    try:
        if len(parts) == 3:
            hours, minutes, seconds = parts
            return int(hours) * 3600 + int(minutes) * 60 + int(float(seconds))
        elif len(parts) == 2:
            minutes, seconds = parts
            return int(minutes) * 60 + int(float(seconds))
    except (ValueError, TypeError) as e:
        raise ValidationError(f"Invalid time format: {time_str}", field="time") from e
    raise ValidationError(f"Invalid time format: {time_str}", field="time")
