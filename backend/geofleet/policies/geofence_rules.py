from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List, Mapping, Optional, Sequence

from geofleet.schemas.geo import Coordinate
from geofleet.schemas.geofence import (
    Geofence,
    GeofenceAction,
    GeofenceRule,
    GeofenceViolation,
    RobotPositionState,
    Severity,
)
from geofleet.utils.geodesy import calculate_distance
from geofleet.utils.numbers import round_half_up_int
from geofleet.utils.time import seconds_between


# Highest action priority wins; anything below "medium" is informational.
SEVERITY_BY_PRIORITY: Dict[str, Severity] = {
    "critical": "critical",
    "high": "error",
    "medium": "warning",
}


# --- Containment -----------------------------------------------------------

def is_point_in_circle(point: Coordinate, center: Coordinate, radius: float) -> bool:
    return calculate_distance(point, center) <= radius


def is_point_in_polygon(point: Coordinate, polygon: Sequence[Coordinate]) -> bool:
    """Even-odd ray casting with longitude as x and latitude as y."""
    if len(polygon) < 3:
        return False

    x, y = point.longitude, point.latitude
    inside = False
    j = len(polygon) - 1
    for i in range(len(polygon)):
        xi, yi = polygon[i].longitude, polygon[i].latitude
        xj, yj = polygon[j].longitude, polygon[j].latitude
        if (yi > y) != (yj > y) and x < (xj - xi) * (y - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


def is_point_in_rectangle(point: Coordinate, rectangle: Sequence[Coordinate]) -> bool:
    """Axis-aligned bounding box of the four corners.

    Only valid for small, north-up rectangles; rotated rectangles are treated
    as their bounding box.
    """
    if len(rectangle) != 4:
        return False

    lats = [c.latitude for c in rectangle]
    lngs = [c.longitude for c in rectangle]
    return min(lats) <= point.latitude <= max(lats) and min(lngs) <= point.longitude <= max(lngs)


def is_robot_in_geofence(position: Coordinate, geofence: Geofence) -> bool:
    """Containment test for any geofence shape.

    A malformed geofence (wrong vertex count, missing radius) never contains
    anything; this keeps the monitoring loop running instead of raising.
    """
    if geofence.type == "circle":
        if len(geofence.coordinates) != 1 or not geofence.radius or geofence.radius <= 0:
            return False
        return is_point_in_circle(position, geofence.coordinates[0], geofence.radius)
    if geofence.type == "polygon":
        return is_point_in_polygon(position, geofence.coordinates)
    if geofence.type == "rectangle":
        return is_point_in_rectangle(position, geofence.coordinates)
    return False


# --- Rules -----------------------------------------------------------------

def determine_severity(actions: Sequence[GeofenceAction]) -> Severity:
    priorities = {a.priority for a in actions}
    for priority in ("critical", "high", "medium"):
        if priority in priorities:
            return SEVERITY_BY_PRIORITY[priority]
    return "info"


def _violation(
    geofence: Geofence,
    rule: GeofenceRule,
    robot_id: str,
    position: Coordinate,
    now: dt.datetime,
    **metrics: Any,
) -> GeofenceViolation:
    details: Dict[str, Any] = {
        "geofence_name": geofence.name,
        "rule_id": rule.id,
        "rule_name": rule.name,
    }
    details.update(metrics)
    return GeofenceViolation(
        geofence_id=geofence.id,
        robot_id=robot_id,
        violation_type=rule.trigger,
        coordinates=position,
        timestamp=now,
        severity=determine_severity(rule.actions),
        details=details,
    )


def evaluate_rules(
    robot_id: str,
    position: Coordinate,
    geofence: Geofence,
    currently_inside: bool,
    previously_inside: bool,
    *,
    now: dt.datetime,
    dwell_start: Optional[dt.datetime] = None,
    speed: Optional[float] = None,
) -> List[GeofenceViolation]:
    """Evaluate every active rule of ``geofence`` for one robot, in rule order.

    ``enter``/``exit`` are edge-triggered on the containment transition;
    ``dwell`` and ``speed_limit`` are level checks that require the robot to
    be inside.
    """
    if not geofence.is_active:
        return []

    violations: List[GeofenceViolation] = []
    for rule in geofence.rules:
        if not rule.is_active:
            continue
        cond = rule.condition

        if rule.trigger == "enter":
            if currently_inside and not previously_inside:
                violations.append(_violation(geofence, rule, robot_id, position, now))

        elif rule.trigger == "exit":
            if previously_inside and not currently_inside:
                violations.append(_violation(geofence, rule, robot_id, position, now))

        elif rule.trigger == "dwell":
            if not (currently_inside and dwell_start is not None and cond and cond.min_duration is not None):
                continue
            dwell_time = seconds_between(dwell_start, now)
            if dwell_time >= cond.min_duration:
                violations.append(
                    _violation(geofence, rule, robot_id, position, now, dwell_time=round_half_up_int(dwell_time))
                )

        elif rule.trigger == "speed_limit":
            if not (currently_inside and speed is not None and cond and cond.max_speed is not None):
                continue
            if speed > cond.max_speed:
                violations.append(
                    _violation(
                        geofence, rule, robot_id, position, now,
                        current_speed=speed,
                        speed_limit=cond.max_speed,
                    )
                )

    return violations


def check_geofence_violation(
    robot_id: str,
    current: Coordinate,
    previous: Optional[Coordinate],
    geofence: Geofence,
    *,
    now: dt.datetime,
    dwell_start: Optional[dt.datetime] = None,
    speed: Optional[float] = None,
) -> List[GeofenceViolation]:
    """Stateless check of one robot against one geofence.

    Prior containment is derived from ``previous``; without a previous fix
    there is no transition to report.
    """
    if not geofence.is_active:
        return []

    currently_inside = is_robot_in_geofence(current, geofence)
    previously_inside = is_robot_in_geofence(previous, geofence) if previous is not None else currently_inside
    return evaluate_rules(
        robot_id, current, geofence, currently_inside, previously_inside,
        now=now, dwell_start=dwell_start, speed=speed,
    )


def monitor_geofence_violations(
    positions: Mapping[str, RobotPositionState],
    geofences: Sequence[Geofence],
    *,
    now: dt.datetime,
) -> List[GeofenceViolation]:
    """Stateless sweep over ``robot_id -> position state`` for every applicable geofence.

    A state's ``dwell_start`` is maintained by the caller and applies to every
    geofence the robot is checked against.
    """
    violations: List[GeofenceViolation] = []
    for robot_id, state in positions.items():
        for geofence in geofences:
            if not geofence.applies_to(robot_id):
                continue
            violations.extend(
                check_geofence_violation(
                    robot_id, state.current, state.previous, geofence,
                    now=now, dwell_start=state.dwell_start, speed=state.speed,
                )
            )
    return violations
