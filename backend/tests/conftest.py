"""Test fixtures: a controllable clock and small geofence/waypoint builders."""

from __future__ import annotations

import datetime as dt
from typing import List, Optional

import pytest

from geofleet.schemas.geo import Coordinate
from geofleet.schemas.geofence import Geofence, GeofenceRule
from geofleet.schemas.path import Waypoint


class FakeClock:
    def __init__(self, start: Optional[dt.datetime] = None):
        self.now = start or dt.datetime(2024, 1, 1, 12, 0, 0, tzinfo=dt.timezone.utc)

    def __call__(self) -> dt.datetime:
        return self.now

    def advance(self, seconds: float) -> dt.datetime:
        self.now = self.now + dt.timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def coord(lat: float, lng: float) -> Coordinate:
    return Coordinate(latitude=lat, longitude=lng)


def circle_fence(
    rules: List[GeofenceRule],
    *,
    center: Coordinate = Coordinate(latitude=40.0, longitude=-74.0),
    radius: float = 1000.0,
    fence_id: str = "gf_circle",
    robot_ids: Optional[List[str]] = None,
) -> Geofence:
    return Geofence(
        id=fence_id,
        name="Loading Bay",
        type="circle",
        coordinates=[center],
        radius=radius,
        rules=rules,
        robot_ids=robot_ids or [],
    )


def waypoint(wid: str, lat: float, lng: float, wtype: str = "custom") -> Waypoint:
    return Waypoint(id=wid, coordinates=coord(lat, lng), type=wtype)
