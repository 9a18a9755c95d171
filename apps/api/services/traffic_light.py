"""
Traffic Light Classification

Maps a 0-100 check-in score onto a red / orange / green band using a
client's resolved thresholds. Both cut points are inclusive upper bounds:
a score equal to red_max is red, a score equal to orange_max is orange.

Pure functions; no state.
"""

from dataclasses import dataclass
from enum import Enum

from services.scoring_thresholds import ScoringThresholds


class TrafficLightStatus(str, Enum):
    RED = "red"
    ORANGE = "orange"
    GREEN = "green"


@dataclass(frozen=True)
class StatusDescriptor:
    band: TrafficLightStatus
    label: str
    color_token: str
    gradient: str
    icon: str
    message: str


_LABELS = {
    TrafficLightStatus.RED: "Needs Attention",
    TrafficLightStatus.ORANGE: "On Track",
    TrafficLightStatus.GREEN: "Excellent",
}

_COLOR_TOKENS = {
    TrafficLightStatus.RED: "text-red-600 bg-red-50 border-red-200",
    TrafficLightStatus.ORANGE: "text-orange-600 bg-orange-50 border-orange-200",
    TrafficLightStatus.GREEN: "text-green-600 bg-green-50 border-green-200",
}

_GRADIENTS = {
    TrafficLightStatus.RED: "from-red-500 to-pink-600",
    TrafficLightStatus.ORANGE: "from-orange-500 to-amber-600",
    TrafficLightStatus.GREEN: "from-green-500 to-emerald-600",
}

_ICONS = {
    TrafficLightStatus.RED: "\U0001F534",
    TrafficLightStatus.ORANGE: "\U0001F7E0",
    TrafficLightStatus.GREEN: "\U0001F7E2",
}

_MESSAGES = {
    TrafficLightStatus.RED: "Keep going! Every step forward is progress.",
    TrafficLightStatus.ORANGE: "Good progress! You're on the right track.",
    TrafficLightStatus.GREEN: "Excellent! You're doing amazing!",
}


def get_traffic_light_status(score: float, thresholds: ScoringThresholds) -> TrafficLightStatus:
    if score <= thresholds.red_max:
        return TrafficLightStatus.RED
    if score <= thresholds.orange_max:
        return TrafficLightStatus.ORANGE
    return TrafficLightStatus.GREEN


def describe_status(band: TrafficLightStatus) -> StatusDescriptor:
    return StatusDescriptor(
        band=band,
        label=_LABELS[band],
        color_token=_COLOR_TOKENS[band],
        gradient=_GRADIENTS[band],
        icon=_ICONS[band],
        message=_MESSAGES[band],
    )


def classify(score: float, thresholds: ScoringThresholds) -> StatusDescriptor:
    """Band plus display descriptors for a score."""
    return describe_status(get_traffic_light_status(score, thresholds))
