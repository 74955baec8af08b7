from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum
from typing import Optional


class CueTier(IntEnum):
    """Urgency of a maneuver announcement, increasing as the maneuver gets closer"""
    FAR = 0
    NEAR = 1
    NOW = 2
    ARRIVED = 3


class CueKind(str, Enum):
    START = "start"
    CONTINUE = "continue"
    TURN_LEFT = "turn_left"
    TURN_RIGHT = "turn_right"
    SLIGHT_LEFT = "slight_left"
    SLIGHT_RIGHT = "slight_right"
    U_TURN = "u_turn"
    ROUNDABOUT = "roundabout"
    MERGE = "merge"
    EXIT = "exit"
    ARRIVE = "arrive"
    CUSTOM = "custom"


@dataclass(frozen=True)
class TurnCue:
    step_index: int
    kind: CueKind
    tier: CueTier
    instruction: str
    distance_meters: float
    icon: str
    should_speak: bool
    should_haptic: bool
    timestamp: datetime
    roundabout_exit: Optional[int] = None

    @property
    def id(self) -> str:
        return f"{self.step_index}-{self.kind.value}-{int(self.tier)}"
