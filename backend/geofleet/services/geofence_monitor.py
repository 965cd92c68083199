"""
Geofence Monitor
Tracks robot positions between ticks and turns geofence rules into violations.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

from geofleet.config import settings
from geofleet.policies.geofence_rules import evaluate_rules, is_robot_in_geofence
from geofleet.schemas.geo import Coordinate
from geofleet.schemas.geofence import Geofence, GeofenceViolation, RobotPositionState
from geofleet.utils.geodesy import calculate_speed
from geofleet.utils.time import seconds_between, utc_now

logger = logging.getLogger("geofleet.geofence_monitor")

ViolationCallback = Callable[[List[GeofenceViolation]], None]
PairKey = Tuple[str, str]  # (robot_id, geofence_id)


class GeofenceMonitor:
    """Stateful geofence monitor for one monitoring loop.

    Containment is remembered per (robot, geofence) so ``enter``/``exit`` fire
    once per transition no matter how often ``check_violations`` runs.
    Dwell fires once per stay inside a geofence unless ``dwell_refire`` is on,
    in which case it fires on every check past the threshold.

    Every robot is evaluated at the time of its latest fix (the ``timestamp``
    given to ``update_position``, or the clock reading when omitted). Dwell
    start, dwell duration and violation timestamps all use that time base, so
    replayed telemetry behaves like live telemetry.

    Not thread-safe: callers on several threads must serialize access.
    """

    def __init__(
        self,
        on_violation: Optional[ViolationCallback] = None,
        *,
        clock: Callable[[], dt.datetime] = utc_now,
        dwell_refire: Optional[bool] = None,
    ) -> None:
        self._on_violation = on_violation
        self._clock = clock
        self._dwell_refire = settings.dwell_refire if dwell_refire is None else dwell_refire

        self._positions: Dict[str, RobotPositionState] = {}
        self._inside: Dict[PairKey, bool] = {}
        self._dwell_start: Dict[PairKey, dt.datetime] = {}
        # rule ids of dwell rules already reported during the current stay
        self._dwell_fired: Dict[PairKey, Set[str]] = {}
        self._violations: List[GeofenceViolation] = []

    # ── positions ────────────────────────────────────────────

    def update_position(self, robot_id: str, position: Coordinate, timestamp: Optional[dt.datetime] = None) -> None:
        now = timestamp if timestamp is not None else self._clock()
        existing = self._positions.get(robot_id)

        speed: Optional[float] = None
        if existing is not None:
            speed = calculate_speed(position, existing.current, seconds_between(existing.last_update, now))

        self._positions[robot_id] = RobotPositionState(
            robot_id=robot_id,
            current=position,
            previous=existing.current if existing else None,
            last_update=now,
            speed=speed,
        )

    def get_position(self, robot_id: str) -> Optional[RobotPositionState]:
        return self._positions.get(robot_id)

    @property
    def tracked_robots(self) -> List[str]:
        return list(self._positions)

    def forget_robot(self, robot_id: str) -> None:
        """Drop a robot and all of its containment/dwell state."""
        self._positions.pop(robot_id, None)
        self._drop_pairs(lambda key: key[0] == robot_id)

    def forget_geofence(self, geofence_id: str) -> None:
        """Drop containment/dwell state kept for a geofence that was deleted."""
        self._drop_pairs(lambda key: key[1] == geofence_id)

    def _drop_pairs(self, match: Callable[[PairKey], bool]) -> None:
        for key in [k for k in self._inside if match(k)]:
            self._clear_pair(key)
            del self._inside[key]

    def _clear_pair(self, key: PairKey) -> None:
        self._dwell_start.pop(key, None)
        self._dwell_fired.pop(key, None)

    # ── evaluation ───────────────────────────────────────────

    def check_violations(self, geofences: Sequence[Geofence]) -> List[GeofenceViolation]:
        """Evaluate every tracked robot against ``geofences``; return only new violations."""
        new_violations: List[GeofenceViolation] = []

        for robot_id, state in self._positions.items():
            for geofence in geofences:
                if not geofence.is_active or not geofence.applies_to(robot_id):
                    continue
                new_violations.extend(self._check_one(robot_id, state, geofence))

        if new_violations:
            self._violations.extend(new_violations)
            for v in new_violations:
                level = logging.WARNING if v.severity in ("error", "critical") else logging.INFO
                logger.log(
                    level,
                    f"[Geofence] {v.violation_type} robot={v.robot_id} geofence={v.geofence_id} severity={v.severity}",
                )
            if self._on_violation is not None:
                self._on_violation(list(new_violations))

        return new_violations

    def _check_one(self, robot_id: str, state: RobotPositionState, geofence: Geofence) -> List[GeofenceViolation]:
        key = (robot_id, geofence.id)
        now = state.last_update
        currently_inside = is_robot_in_geofence(state.current, geofence)
        # First sighting establishes the state without a transition
        previously_inside = self._inside.get(key, currently_inside)
        self._inside[key] = currently_inside

        if not currently_inside:
            self._clear_pair(key)
        elif not previously_inside or key not in self._dwell_start:
            self._dwell_start[key] = now

        violations = evaluate_rules(
            robot_id,
            state.current,
            geofence,
            currently_inside,
            previously_inside,
            now=now,
            dwell_start=self._dwell_start.get(key),
            speed=state.speed,
        )
        if self._dwell_refire:
            return violations

        kept: List[GeofenceViolation] = []
        for v in violations:
            if v.violation_type == "dwell":
                fired = self._dwell_fired.setdefault(key, set())
                rule_id = v.details.get("rule_id", "")
                if rule_id in fired:
                    continue
                fired.add(rule_id)
            kept.append(v)
        return kept

    # ── history ──────────────────────────────────────────────

    def get_violation_history(self) -> List[GeofenceViolation]:
        return list(self._violations)

    def clear_history(self) -> None:
        self._violations = []
