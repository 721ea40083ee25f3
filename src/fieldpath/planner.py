"""Obstacle-avoiding straight-line planner.

Plans a polyline between two field points around user-drawn obstacle
polygons:

1. If the direct segment keeps ``clearance`` from every obstacle, use it.
2. Otherwise expand each obstacle at three clearance multiples, keep the
   in-bounds vertices as candidate waypoints and connect every mutually
   visible pair (visibility graph).
3. Run A* with the Euclidean heuristic, capped at 1000 expansions.

The planner never raises on a failed search. It falls back to the direct
segment, so callers must re-check the result with :func:`is_path_clear`.
"""

from __future__ import annotations

import heapq
import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .geometry import FIELD_SIZE, Point2D, as_point, distance, point_to_segment_distance, polygon_center

log = logging.getLogger(__name__)

CLEARANCE_MULTIPLES = (1.5, 2.0, 2.5)
SEGMENT_SAMPLES = 50
MAX_EXPANSIONS = 1000


def _vertices(obstacle) -> List[Point2D]:
    verts = obstacle.vertices if hasattr(obstacle, "vertices") else obstacle
    return [as_point(v) for v in verts]


def point_in_polygon(point, polygon: Sequence) -> bool:
    """Ray-casting parity test. Points exactly on an edge may go either way."""
    p = as_point(point)
    poly = [as_point(v) for v in polygon]
    inside = False
    j = len(poly) - 1
    for i in range(len(poly)):
        xi, yi = poly[i]
        xj, yj = poly[j]
        if (yi > p.y) != (yj > p.y) and p.x < (xj - xi) * (p.y - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


def clearance_to_polygon(point, polygon: Sequence) -> float:
    """Minimum distance from ``point`` to any edge of ``polygon``."""
    poly = [as_point(v) for v in polygon]
    n = len(poly)
    return min(
        (point_to_segment_distance(point, poly[i], poly[(i + 1) % n]) for i in range(n)),
        default=math.inf,
    )


def expand_polygon(polygon: Sequence, margin: float) -> List[Point2D]:
    """Push each vertex radially away from the vertex centroid by ``margin``.

    Each vertex is scaled by ``(d + margin) / d`` about the centroid. This
    approximates a Minkowski offset only for roughly convex, centroid
    star-shaped polygons; do not rely on it for concave shapes.
    """
    poly = [as_point(v) for v in polygon]
    if len(poly) < 3 or margin <= 0:
        return poly

    center = polygon_center(poly)
    expanded = []
    for v in poly:
        dx, dy = v.x - center.x, v.y - center.y
        d = math.hypot(dx, dy)
        if d > 1e-3:
            scale = (d + margin) / d
            expanded.append(Point2D(center.x + dx * scale, center.y + dy * scale))
        else:
            expanded.append(Point2D(v.x + margin, v.y + margin))
    return expanded


def _segment_blocked(start: Point2D, end: Point2D, polygon: List[Point2D], clearance: float) -> bool:
    for i in range(SEGMENT_SAMPLES + 1):
        t = i / SEGMENT_SAMPLES
        p = Point2D(start.x + t * (end.x - start.x), start.y + t * (end.y - start.y))
        if point_in_polygon(p, polygon) or clearance_to_polygon(p, polygon) < clearance:
            return True
    return False


def is_path_clear(start, end, obstacles: Sequence, clearance: float) -> bool:
    """True if the straight segment stays outside and ``clearance`` away from every obstacle.

    The segment is checked at 51 evenly spaced samples (both endpoints
    included). Obstacles with fewer than three vertices are ignored.
    """
    start, end = as_point(start), as_point(end)
    for obstacle in obstacles:
        poly = _vertices(obstacle)
        if len(poly) < 3:
            continue
        if _segment_blocked(start, end, poly, clearance):
            return False
    return True


def find_visibility_waypoints(start, end, obstacles: Sequence, robot_radius: float,
                              field_min: float = 0.0, field_max: float = FIELD_SIZE) -> List[Point2D]:
    """Candidate waypoints: start, expanded obstacle vertices in bounds, end."""
    waypoints = [as_point(start)]
    for obstacle in obstacles:
        poly = _vertices(obstacle)
        if len(poly) < 3:
            continue
        for multiple in CLEARANCE_MULTIPLES:
            for v in expand_polygon(poly, robot_radius * multiple):
                if field_min <= v.x <= field_max and field_min <= v.y <= field_max:
                    waypoints.append(v)
    waypoints.append(as_point(end))
    return waypoints


def build_visibility_graph(waypoints: Sequence[Point2D], obstacles: Sequence,
                           clearance: float) -> Dict[int, List[int]]:
    graph: Dict[int, List[int]] = {i: [] for i in range(len(waypoints))}
    for i in range(len(waypoints)):
        for j in range(i + 1, len(waypoints)):
            if is_path_clear(waypoints[i], waypoints[j], obstacles, clearance):
                graph[i].append(j)
                graph[j].append(i)
    return graph


@dataclass(order=True)
class _Node:
    f_cost: float
    index: int = field(compare=False)


def astar(waypoints: Sequence[Point2D], graph: Dict[int, List[int]], start: int, goal: int,
          max_expansions: int = MAX_EXPANSIONS) -> Optional[List[int]]:
    """A* over a waypoint graph with the Euclidean heuristic.

    Returns:
        Waypoint indices from ``start`` to ``goal``, or None when the open
        set empties or ``max_expansions`` is reached first.
    """
    g_score = {start: 0.0}
    came_from: Dict[int, int] = {}
    closed = set()
    open_heap = [_Node(distance(waypoints[start], waypoints[goal]), start)]

    expansions = 0
    while open_heap and expansions < max_expansions:
        current = heapq.heappop(open_heap).index
        if current in closed:
            continue
        expansions += 1

        if current == goal:
            path = [current]
            while current in came_from:
                current = came_from[current]
                path.append(current)
            log.debug("A* reached goal after %d expansions", expansions)
            return path[::-1]

        closed.add(current)
        for neighbor in graph.get(current, ()):
            if neighbor in closed:
                continue
            tentative = g_score[current] + distance(waypoints[current], waypoints[neighbor])
            if tentative >= g_score.get(neighbor, math.inf):
                continue
            came_from[neighbor] = current
            g_score[neighbor] = tentative
            heapq.heappush(open_heap, _Node(tentative + distance(waypoints[neighbor], waypoints[goal]), neighbor))

    log.warning("A* gave up after %d expansions without reaching the goal", expansions)
    return None


def find_path_around_obstacles(start, end, obstacles: Sequence, robot_radius: float,
                               field_min: float = 0.0, field_max: float = FIELD_SIZE) -> List[Point2D]:
    """Shortest visible-waypoint route from ``start`` to ``end``.

    Args:
        start: Path start.
        end: Path goal.
        obstacles: Shapes (or raw vertex lists) to avoid.
        robot_radius: Required clearance; also scales the waypoint offsets.
        field_min: Lower in-bounds limit for waypoints on both axes.
        field_max: Upper in-bounds limit for waypoints on both axes.

    Returns:
        ``[start, ..., end]``. On search failure this is the unchecked
        ``[start, end]`` pair.
    """
    start, end = as_point(start), as_point(end)
    if is_path_clear(start, end, obstacles, robot_radius):
        log.debug("Direct path %s -> %s is clear", start, end)
        return [start, end]

    waypoints = find_visibility_waypoints(start, end, obstacles, robot_radius, field_min, field_max)
    log.debug("Direct path blocked; searching %d waypoints", len(waypoints))
    graph = build_visibility_graph(waypoints, obstacles, robot_radius)
    route = astar(waypoints, graph, 0, len(waypoints) - 1)
    if route is None:
        return [start, end]
    return [waypoints[i] for i in route]


def smooth_path(path: Sequence, obstacles: Sequence, robot_radius: float) -> List[Point2D]:
    """Greedily skip to the farthest waypoint reachable in a clear straight line."""
    pts = [as_point(p) for p in path]
    if len(pts) <= 2:
        return pts

    smoothed = [pts[0]]
    current = 0
    while current < len(pts) - 1:
        farthest = current + 1
        for i in range(len(pts) - 1, current + 1, -1):
            if is_path_clear(pts[current], pts[i], obstacles, robot_radius):
                farthest = i
                break
        smoothed.append(pts[farthest])
        current = farthest
    return smoothed
