from __future__ import annotations

import datetime as dt
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from geofleet.schemas.geo import Coordinate


GeofenceType = Literal["circle", "polygon", "rectangle"]
RuleTrigger = Literal["enter", "exit", "dwell", "speed_limit"]
ActionPriority = Literal["low", "medium", "high", "critical"]
Severity = Literal["info", "warning", "error", "critical"]


# --- Actions: one variant per action type, each with only the fields it uses ---

class _ActionBase(BaseModel):
    id: Optional[str] = None
    priority: ActionPriority = "medium"


class AlertAction(_ActionBase):
    type: Literal["alert"] = "alert"
    message: Optional[str] = None


class StopRobotAction(_ActionBase):
    type: Literal["stop_robot"] = "stop_robot"
    emergency: bool = False


class SlowRobotAction(_ActionBase):
    type: Literal["slow_robot"] = "slow_robot"
    target_speed: Optional[float] = Field(None, ge=0, description="m/s")


class RedirectAction(_ActionBase):
    type: Literal["redirect"] = "redirect"
    waypoint_id: Optional[str] = None


class NotifyAction(_ActionBase):
    type: Literal["notify"] = "notify"
    recipients: List[str] = Field(default_factory=list)


class LogAction(_ActionBase):
    type: Literal["log"] = "log"
    level: str = "info"


GeofenceAction = Annotated[
    Union[AlertAction, StopRobotAction, SlowRobotAction, RedirectAction, NotifyAction, LogAction],
    Field(discriminator="type"),
]


class RuleCondition(BaseModel):
    min_duration: Optional[float] = Field(None, ge=0, description="Seconds inside before a dwell rule fires")
    max_speed: Optional[float] = Field(None, ge=0, description="m/s allowed inside the geofence")


class GeofenceRule(BaseModel):
    id: str
    name: str = ""
    trigger: RuleTrigger
    condition: Optional[RuleCondition] = None
    actions: List[GeofenceAction] = Field(default_factory=list)
    is_active: bool = True


class Geofence(BaseModel):
    id: str
    name: str = ""
    description: Optional[str] = None
    type: GeofenceType
    # circle: [center]; polygon: >= 3 vertices; rectangle: 4 corners.
    # Not enforced here: malformed shapes simply never contain a point.
    coordinates: List[Coordinate] = Field(default_factory=list)
    radius: Optional[float] = Field(None, description="Meters, circle only")
    rules: List[GeofenceRule] = Field(default_factory=list)
    is_active: bool = True
    robot_ids: List[str] = Field(default_factory=list)

    @property
    def is_well_formed(self) -> bool:
        n = len(self.coordinates)
        if self.type == "circle":
            return n == 1 and self.radius is not None and self.radius > 0
        if self.type == "polygon":
            return n >= 3
        return n == 4

    def applies_to(self, robot_id: str) -> bool:
        return not self.robot_ids or robot_id in self.robot_ids


class GeofenceViolation(BaseModel):
    model_config = ConfigDict(frozen=True)

    geofence_id: str
    robot_id: str
    violation_type: RuleTrigger
    coordinates: Coordinate
    timestamp: dt.datetime
    severity: Severity
    # geofence_name, rule_id, rule_name plus dwell_time or current_speed/speed_limit
    details: Dict[str, Any] = Field(default_factory=dict)


class RobotPositionState(BaseModel):
    robot_id: str
    current: Coordinate
    previous: Optional[Coordinate] = None
    last_update: dt.datetime
    speed: Optional[float] = None  # m/s, unknown until the second fix
    # Only read by the stateless sweep; GeofenceMonitor tracks dwell per geofence
    dwell_start: Optional[dt.datetime] = None
