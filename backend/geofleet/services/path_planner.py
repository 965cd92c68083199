from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from geofleet.config import settings
from geofleet.schemas.path import Algorithm, OptimizationSummary, OptimizedPath, Waypoint
from geofleet.utils.geodesy import calculate_distance
from geofleet.utils.numbers import round_half_up, round_half_up_int

logger = logging.getLogger("geofleet.path_planner")

# Visiting priority of waypoint types for the smart workflow
TYPE_PRIORITY = ("charging", "maintenance", "pickup", "dropoff", "checkpoint", "custom")


def _by_id(waypoints: Sequence[Waypoint]) -> Dict[str, Waypoint]:
    index: Dict[str, Waypoint] = {}
    for w in waypoints:
        index.setdefault(w.id, w)
    return index


def _resolve_start(waypoints: Sequence[Waypoint], start_waypoint_id: Optional[str]) -> Optional[Waypoint]:
    if start_waypoint_id is None:
        return waypoints[0] if waypoints else None
    start = _by_id(waypoints).get(start_waypoint_id)
    if start is None:
        logger.warning(f"[PathPlanner] Unknown start waypoint '{start_waypoint_id}'")
    return start


def _improvement(original: float, optimized: float) -> float:
    if original <= 0:
        return 0.0
    return round_half_up((original - optimized) / original * 100, 2)


def _result(path: List[str], original: float, optimized: float, algorithm: str) -> OptimizedPath:
    return OptimizedPath(
        waypoints=path,
        total_distance=round_half_up_int(optimized),
        estimated_duration=estimate_duration(optimized),
        optimization=OptimizationSummary(
            original_distance=round_half_up_int(original),
            optimized_distance=round_half_up_int(optimized),
            improvement_percentage=_improvement(original, optimized),
            algorithm=algorithm,
        ),
    )


def _trivial(waypoints: Sequence[Waypoint], algorithm: str) -> OptimizedPath:
    return OptimizedPath(
        waypoints=[w.id for w in waypoints],
        optimization=OptimizationSummary(algorithm=algorithm),
    )


def calculate_path_distance(waypoints: Sequence[Waypoint], path: Sequence[str]) -> float:
    """Length in meters of the open path visiting ``path`` ids in order.

    Segments touching an unknown id are skipped.
    """
    index = _by_id(waypoints)
    total = 0.0
    for a_id, b_id in zip(path, path[1:]):
        a, b = index.get(a_id), index.get(b_id)
        if a is not None and b is not None:
            total += calculate_distance(a.coordinates, b.coordinates)
    return total


def estimate_duration(distance: float, average_speed: Optional[float] = None) -> int:
    """Seconds to cover ``distance`` meters at a constant average speed."""
    speed = average_speed if average_speed is not None else settings.average_speed_mps
    return round_half_up_int(distance / speed)


def nearest_neighbor_optimization(
    waypoints: Sequence[Waypoint],
    start_waypoint_id: Optional[str] = None,
) -> OptimizedPath:
    """Greedy construction: always move to the closest unvisited waypoint.

    O(n^2). Ties go to the waypoint listed first.
    """
    if len(waypoints) < 2:
        return _trivial(waypoints, "Nearest Neighbor")

    current = _resolve_start(waypoints, start_waypoint_id) or waypoints[0]
    unvisited = list(waypoints)
    unvisited.remove(current)
    path = [current.id]

    while unvisited:
        nearest_index = 0
        shortest = float("inf")
        for i, candidate in enumerate(unvisited):
            d = calculate_distance(current.coordinates, candidate.coordinates)
            if d < shortest:
                shortest = d
                nearest_index = i
        current = unvisited.pop(nearest_index)
        path.append(current.id)

    original = calculate_path_distance(waypoints, [w.id for w in waypoints])
    optimized = calculate_path_distance(waypoints, path)
    return _result(path, original, optimized, "Nearest Neighbor")


def two_opt_optimization(
    waypoints: Sequence[Waypoint],
    initial_path: Sequence[str],
    max_iterations: Optional[int] = None,
) -> OptimizedPath:
    """Improve ``initial_path`` by reversing sub-segments while that shortens it.

    The first and last waypoints stay in place. Stops after a pass with no
    improvement or after ``max_iterations`` passes.
    """
    limit = max_iterations if max_iterations is not None else settings.two_opt_max_iterations
    current_path = list(initial_path)
    current_distance = calculate_path_distance(waypoints, current_path)
    n = len(current_path)

    improved = True
    iterations = 0
    while improved and iterations < limit:
        improved = False
        iterations += 1
        for i in range(1, n - 2):
            for j in range(i + 1, n):
                if j - i == 1:
                    continue
                candidate = current_path[:i] + current_path[i:j][::-1] + current_path[j:]
                candidate_distance = calculate_path_distance(waypoints, candidate)
                if candidate_distance < current_distance:
                    current_path = candidate
                    current_distance = candidate_distance
                    improved = True

    original = calculate_path_distance(waypoints, initial_path)
    return _result(current_path, original, current_distance, f"2-opt ({iterations} iterations)")


def _relabel(waypoints: Sequence[Waypoint], result: OptimizedPath, algorithm: str) -> OptimizedPath:
    """Re-express ``result`` against the naive input order."""
    original = calculate_path_distance(waypoints, [w.id for w in waypoints])
    return result.model_copy(
        update={
            "optimization": OptimizationSummary(
                original_distance=round_half_up_int(original),
                optimized_distance=result.total_distance,
                improvement_percentage=_improvement(original, result.total_distance),
                algorithm=algorithm,
            )
        }
    )


def hybrid_optimization(
    waypoints: Sequence[Waypoint],
    start_waypoint_id: Optional[str] = None,
) -> OptimizedPath:
    nn = nearest_neighbor_optimization(waypoints, start_waypoint_id)
    refined = two_opt_optimization(waypoints, nn.waypoints)
    return _relabel(waypoints, refined, "Hybrid (Nearest Neighbor + 2-opt)")


def smart_optimization(
    waypoints: Sequence[Waypoint],
    start_waypoint_id: Optional[str] = None,
) -> OptimizedPath:
    """Workflow-aware ordering followed by a 2-opt pass.

    Start waypoint first, then charging stations, then each pickup followed by
    its nearest unused dropoff, then everything else by nearest neighbor.
    """
    groups: Dict[str, List[Waypoint]] = {t: [w for w in waypoints if w.type == t] for t in TYPE_PRIORITY}

    path: List[str] = []
    seen = set()

    def visit(waypoint_id: str) -> None:
        path.append(waypoint_id)
        seen.add(waypoint_id)

    start = _resolve_start(waypoints, start_waypoint_id)
    if start is not None:
        visit(start.id)

    if groups["charging"]:
        charging = nearest_neighbor_optimization(groups["charging"])
        for wid in charging.waypoints:
            if wid not in seen:
                visit(wid)

    for pickup in groups["pickup"]:
        if pickup.id in seen:
            continue
        visit(pickup.id)

        nearest_dropoff: Optional[Waypoint] = None
        shortest = float("inf")
        for dropoff in groups["dropoff"]:
            if dropoff.id in seen:
                continue
            d = calculate_distance(pickup.coordinates, dropoff.coordinates)
            if d < shortest:
                shortest = d
                nearest_dropoff = dropoff
        if nearest_dropoff is not None:
            visit(nearest_dropoff.id)

    remaining = [w for w in waypoints if w.id not in seen]
    if remaining:
        for wid in nearest_neighbor_optimization(remaining).waypoints:
            visit(wid)

    refined = two_opt_optimization(waypoints, path)
    return _relabel(waypoints, refined, "Smart Workflow + 2-opt")


def optimize_path(
    waypoints: Sequence[Waypoint],
    start_waypoint_id: Optional[str] = None,
    algorithm: Algorithm = "auto",
) -> OptimizedPath:
    """Order ``waypoints`` to shorten the open path through all of them.

    ``auto`` picks by size: nearest-neighbor for small sets, hybrid for
    medium ones, smart beyond that.
    """
    if not waypoints:
        return _trivial(waypoints, "No waypoints")
    if len(waypoints) == 1:
        return _trivial(waypoints, "Single waypoint")

    if algorithm == "auto":
        n = len(waypoints)
        if n <= settings.auto_nearest_neighbor_max:
            algorithm = "nearest-neighbor"
        elif n <= settings.auto_hybrid_max:
            algorithm = "hybrid"
        else:
            algorithm = "smart"
        logger.debug(f"[PathPlanner] auto selected '{algorithm}' for {n} waypoints")

    if algorithm == "nearest-neighbor":
        return nearest_neighbor_optimization(waypoints, start_waypoint_id)
    if algorithm == "2-opt":
        return two_opt_optimization(waypoints, [w.id for w in waypoints])
    if algorithm == "hybrid":
        return hybrid_optimization(waypoints, start_waypoint_id)
    if algorithm == "smart":
        return smart_optimization(waypoints, start_waypoint_id)

    raise ValueError(f"Unknown path optimization algorithm: {algorithm!r}")
