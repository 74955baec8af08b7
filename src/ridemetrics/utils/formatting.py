from enum import Enum

METERS_PER_MILE = 1609.344
FEET_PER_METER = 3.28084


class UnitSystem(str, Enum):
    METRIC = "metric"
    IMPERIAL = "imperial"


def format_distance(meters: float, units: UnitSystem = UnitSystem.METRIC) -> str:
    """
    Human readable distance with a natural unit scale.

    Args:
        meters: Distance in meters (negative values are treated as 0)
        units: Unit system of the rider's locale

    Returns:
        e.g. "850 m", "1.2 km", "12 km", "300 ft", "2.4 mi"
    """
    meters = max(0.0, meters)
    if units is UnitSystem.IMPERIAL:
        miles = meters / METERS_PER_MILE
        if miles < 0.1:
            return f"{round(meters * FEET_PER_METER)} ft"
        if miles < 5:
            return f"{miles:.1f} mi"
        return f"{miles:.0f} mi"

    if meters < 1000:
        return f"{round(meters)} m"
    km = meters / 1000.0
    if meters < 5000:
        return f"{km:.1f} km"
    return f"{km:.0f} km"


def format_eta(seconds: float) -> str:
    minutes = int(round(max(0.0, seconds) / 60))
    if minutes < 60:
        return f"{minutes} min"
    hours, mins = divmod(minutes, 60)
    if mins == 0:
        return f"{hours} hr"
    return f"{hours} hr {mins} min"


def option_letter(index: int) -> str:
    """0 -> A, 25 -> Z, 26 -> AA"""
    letters = ""
    index += 1
    while index > 0:
        index, rem = divmod(index - 1, 26)
        letters = chr(65 + rem) + letters
    return letters
