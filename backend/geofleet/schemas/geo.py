from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., description="Decimal degrees")
    longitude: float = Field(..., description="Decimal degrees")
    altitude: Optional[float] = Field(None, description="Meters")
