from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="GEOFLEET_", env_file=".env", extra="ignore")

    # ------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------
    log_level: str = "INFO"
    log_json: bool = False

    # ------------------------------------------------------------
    # Geodesy
    # ------------------------------------------------------------
    # Mean Earth radius used by the Haversine formula
    earth_radius_m: float = 6_371_000.0

    # ------------------------------------------------------------
    # Path optimizer
    # ------------------------------------------------------------
    # Placeholder physical model: typical robots move at 1-2 m/s
    average_speed_mps: float = 1.5
    two_opt_max_iterations: int = 100
    # "auto" picks nearest-neighbor up to this many waypoints...
    auto_nearest_neighbor_max: int = 5
    # ...hybrid up to this many, smart beyond it
    auto_hybrid_max: int = 15

    # ------------------------------------------------------------
    # Geofence monitor
    # ------------------------------------------------------------
    # False: a dwell rule fires once per stay inside a geofence.
    # True: it fires on every check once the threshold has passed.
    dwell_refire: bool = False

    def validate_runtime(self) -> None:
        """Fail fast on settings the algorithms cannot work with."""
        problems = []
        if self.earth_radius_m <= 0:
            problems.append("GEOFLEET_EARTH_RADIUS_M must be positive")
        if self.average_speed_mps <= 0:
            problems.append("GEOFLEET_AVERAGE_SPEED_MPS must be positive")
        if self.two_opt_max_iterations < 1:
            problems.append("GEOFLEET_TWO_OPT_MAX_ITERATIONS must be at least 1")
        if self.auto_nearest_neighbor_max > self.auto_hybrid_max:
            problems.append("GEOFLEET_AUTO_NEAREST_NEIGHBOR_MAX must not exceed GEOFLEET_AUTO_HYBRID_MAX")
        if problems:
            raise RuntimeError(f"Invalid geofleet configuration: {'; '.join(problems)}")


settings = Settings()
settings.validate_runtime()
