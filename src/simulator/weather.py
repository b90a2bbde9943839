"""Weather snapshots and their effect multiplier on node risk."""

from __future__ import annotations

from src.contracts.enums import WeatherCondition
from src.contracts.environment import WeatherSnapshot
from src.shared.rng import SeededRandom

# clear/cloudy listed twice: calm weather is twice as likely
_CONDITIONS: list[WeatherCondition] = [
    WeatherCondition.CLEAR,
    WeatherCondition.CLEAR,
    WeatherCondition.CLOUDY,
    WeatherCondition.CLOUDY,
    WeatherCondition.RAIN,
    WeatherCondition.STORM,
    WeatherCondition.EXTREME_HEAT,
    WeatherCondition.EXTREME_COLD,
]

# condition → (base temp °C, base precipitation mm, base wind km/h, storm probability)
_BASELINES: dict[WeatherCondition, tuple[float, float, float, float]] = {
    WeatherCondition.EXTREME_HEAT: (40.0, 0.0, 10.0, 0.15),
    WeatherCondition.EXTREME_COLD: (-5.0, 0.0, 10.0, 0.1),
    WeatherCondition.STORM: (25.0, 50.0, 60.0, 0.8),
    WeatherCondition.RAIN: (25.0, 20.0, 25.0, 0.2),
}
_DEFAULT_BASELINE = (25.0, 0.0, 10.0, 0.05)

WEATHER_IMPACT: dict[WeatherCondition, float] = {
    WeatherCondition.STORM: 2.0,
    WeatherCondition.EXTREME_HEAT: 1.5,
    WeatherCondition.EXTREME_COLD: 1.3,
    WeatherCondition.RAIN: 1.1,
}

DEFAULT_WEATHER_MULTIPLIER = 1.5


def weather_impact(
    weather: WeatherSnapshot | None,
    multiplier: float = DEFAULT_WEATHER_MULTIPLIER,
) -> float:
    """Risk multiplier for the current condition (1.0 when calm).

    ``multiplier`` scales the excess over calm: the table above holds the
    values for the default 1.5, and 0 turns weather effects off.
    """
    if weather is None:
        return 1.0
    excess = WEATHER_IMPACT.get(weather.condition, 1.0) - 1.0
    return 1.0 + excess * (multiplier / DEFAULT_WEATHER_MULTIPLIER)


def generate_weather(rng: SeededRandom) -> WeatherSnapshot:
    """Draw a fresh weather snapshot."""
    condition = rng.pick(_CONDITIONS)
    base_temp, base_precip, base_wind, storm_prob = _BASELINES.get(
        condition, _DEFAULT_BASELINE
    )
    return WeatherSnapshot(
        condition=condition,
        temperature=base_temp + rng.next_gaussian(0, 5),
        humidity=rng.next_float(30, 95),
        wind_speed=max(0.0, base_wind + rng.next_gaussian(0, 10)),
        precipitation=max(0.0, base_precip + rng.next_gaussian(0, 10)),
        storm_probability=min(1.0, max(0.0, storm_prob + rng.next_float(-0.1, 0.1))),
        heat_index=base_temp + rng.next_float(0, 10),
    )


def calm_weather() -> WeatherSnapshot:
    """Neutral snapshot used before the first draw and in tests."""
    return WeatherSnapshot(
        condition=WeatherCondition.CLEAR,
        temperature=25.0,
        humidity=50.0,
        wind_speed=10.0,
        precipitation=0.0,
        storm_probability=0.05,
        heat_index=25.0,
    )
