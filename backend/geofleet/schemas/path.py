from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, Field

from geofleet.schemas.geo import Coordinate


WaypointType = Literal["pickup", "dropoff", "checkpoint", "charging", "maintenance", "custom"]
Algorithm = Literal["auto", "nearest-neighbor", "2-opt", "hybrid", "smart"]


class Waypoint(BaseModel):
    id: str
    name: str = ""
    coordinates: Coordinate
    type: WaypointType = "custom"


class OptimizationSummary(BaseModel):
    original_distance: float = 0.0
    optimized_distance: float = 0.0
    improvement_percentage: float = 0.0
    algorithm: str


class OptimizedPath(BaseModel):
    waypoints: List[str] = Field(default_factory=list, description="Waypoint ids in visiting order")
    total_distance: float = Field(0.0, description="Meters")
    estimated_duration: int = Field(0, description="Seconds")
    optimization: OptimizationSummary

    @property
    def algorithm(self) -> str:
        return self.optimization.algorithm

    @property
    def improvement_percentage(self) -> float:
        return self.optimization.improvement_percentage
