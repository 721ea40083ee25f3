from __future__ import annotations

import math
import os
from datetime import datetime, timezone
from typing import List, Literal, Optional, Tuple

from fastapi import FastAPI, HTTPException
from pydantic import Field

from .curve import COLLISION_SAMPLES, CubicBezierCurve, region_penetrations
from .models import FieldModel, Line, Point, SequenceItem, Settings, Shape
from .optimizer import ConstantHeadingSolver
from .planner import find_path_around_obstacles, is_path_clear, smooth_path
from .playback import calculate_robot_state
from .timeline import calculate_path_time, format_time
import logging

log = logging.getLogger(__name__)


app = FastAPI(title="Field Path API", version="1.0.0")


class PathRequest(FieldModel):
    start_point: Point
    lines: List[Line]
    settings: Settings = Field(default_factory=Settings)
    sequence: Optional[List[SequenceItem]] = None


class RobotStateRequest(PathRequest):
    percent: float = Field(ge=0, le=100)


class PlanRequest(FieldModel):
    start: Tuple[float, float]
    end: Tuple[float, float]
    obstacles: List[Shape] = Field(default_factory=list)
    settings: Settings = Field(default_factory=Settings)
    # Overrides the settings-derived radius
    robot_radius: Optional[float] = Field(None, gt=0)
    smooth: bool = False


class OptimizeRequest(FieldModel):
    start: Tuple[float, float]
    end: Tuple[float, float]
    theta_initial: float = 0.0
    theta_final: float = 0.0
    alliance: Literal["red", "blue"] = "red"
    settings: Settings = Field(default_factory=Settings)
    max_evaluations: int = Field(2000, gt=0)


class CollisionRequest(FieldModel):
    start: Tuple[float, float]
    control_points: List[Tuple[float, float]] = Field(default_factory=list, max_length=2)
    end: Tuple[float, float]
    heading: float = 0.0
    alliance: Literal["red", "blue"] = "red"
    settings: Settings = Field(default_factory=Settings)


@app.get("/api/ping")
async def ping():
    return {"ok": True, "time": datetime.now(timezone.utc).isoformat()}


@app.post("/api/predict")
async def predict(req: PathRequest):
    try:
        prediction = calculate_path_time(req.start_point, req.lines, req.settings, req.sequence)
        body = prediction.model_dump(by_alias=True)
        body["formatted"] = format_time(prediction.total_time)
        return body
    except Exception as e:
        log.exception("Time prediction failed")
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/robot-state")
async def robot_state(req: RobotStateRequest):
    try:
        prediction = calculate_path_time(req.start_point, req.lines, req.settings, req.sequence)
        state = calculate_robot_state(req.percent, prediction.timeline, req.lines,
                                      req.start_point, req.settings)
        return state.model_dump(by_alias=True)
    except Exception as e:
        log.exception("Robot state evaluation failed")
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/plan")
async def plan(req: PlanRequest):
    try:
        radius = req.robot_radius or req.settings.robot_radius
        path = find_path_around_obstacles(req.start, req.end, req.obstacles, radius)
        if req.smooth:
            path = smooth_path(path, req.obstacles, radius)
        clear = all(
            is_path_clear(a, b, req.obstacles, radius) for a, b in zip(path, path[1:])
        )
        return {"path": [list(p) for p in path], "clear": clear}
    except Exception as e:
        log.exception("Obstacle planning failed")
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/optimize")
async def optimize(req: OptimizeRequest):
    try:
        solver = ConstantHeadingSolver.from_settings(
            req.settings, req.start, req.end, req.theta_initial, req.theta_final,
            alliance=req.alliance, max_evaluations=req.max_evaluations,
        )
        result = solver.optimize()
        solution = solver.get_solution(result)
        curve = solution.curve
        return {
            "theta": solution.theta,
            "degrees": math.degrees(solution.theta),
            "controlPoints": [list(curve.p1), list(curve.p2)],
            "collisionWeight": result.value,
            "t1": solution.t1,
            "t2": solution.t2,
            "targetTime": solution.target_time,
            "evaluations": result.evaluations,
        }
    except Exception as e:
        log.exception("Control-point optimization failed")
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/collision")
async def collision(req: CollisionRequest):
    try:
        curve = CubicBezierCurve.from_control_points(req.start, req.control_points, req.end)
        s = req.settings
        weight = curve.collision_weight(req.alliance, req.heading, s.safety_margin, s.safety_margin,
                                        s.r_width, s.r_height)
        scored = curve.evaluate((COLLISION_SAMPLES - 1) / COLLISION_SAMPLES)
        overlaps = region_penetrations(scored, req.alliance, req.heading, s.safety_margin,
                                       s.safety_margin, s.r_width, s.r_height)
        return {"collisionWeight": weight, "regions": overlaps}
    except Exception as e:
        log.exception("Collision evaluation failed")
        raise HTTPException(status_code=500, detail=str(e))


def main():
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=int(os.getenv("PORT", 8002)))

if __name__ == "__main__":
    main()
