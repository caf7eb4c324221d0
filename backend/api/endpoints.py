from fastapi import APIRouter, HTTPException, BackgroundTasks
from pydantic import BaseModel
from typing import Optional, Dict, List
from pathlib import Path
import os
import sys
import uuid

# Ensure core modules can be imported
PROJECT_ROOT = Path(__file__).parent.parent.parent.resolve()
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from latticecore.cell import CellStatus, boundary_node_counts, define_cell
from latticecore.errors import DegenerateCellError, LatticeInputError
from latticecore.solidify import solidify, validate_inputs
from latticecore.tolerance import DEFAULT_SIDES, DEFAULT_TOLERANCE
from latticecore.validate import validate_mesh, generate_quality_report

router = APIRouter()

EXPORTS_DIR = Path(os.environ.get("LATTICE_EXPORTS_DIR", str(PROJECT_ROOT / "exports")))


def resolve_tolerance(value: Optional[float]) -> float:
    """Request tolerance, else LATTICE_TOLERANCE, else the engine default."""
    if value is not None:
        return value
    return float(os.environ.get("LATTICE_TOLERANCE", DEFAULT_TOLERANCE))


# --- Task Manager ---
class TaskManager:
    def __init__(self):
        self.tasks = {} # task_id -> {status, progress, message, result}

    def create_task(self):
        task_id = str(uuid.uuid4())
        self.tasks[task_id] = {
            "status": "pending",
            "progress": 0,
            "message": "Initializing...",
            "result": None
        }
        return task_id

    def update_task(self, task_id, status=None, progress=None, message=None, result=None):
        if task_id in self.tasks:
            if status: self.tasks[task_id]["status"] = status
            if progress is not None: self.tasks[task_id]["progress"] = progress
            if message: self.tasks[task_id]["message"] = message
            if result: self.tasks[task_id]["result"] = result

    def get_task(self, task_id):
        return self.tasks.get(task_id)

task_manager = TaskManager()

# --- Pydantic Models ---

class CellRequest(BaseModel):
    # each curve is a list of [x, y, z] points; must be linear
    curves: List[List[List[float]]]
    tolerance: Optional[float] = None

class CellTopology(BaseModel):
    status: str
    severity: str
    message: str
    nodes: List[List[float]]
    struts: List[List[int]]
    node_paths: List[List[int]]
    face_counts: List[List[int]]

class SolidifyParams(BaseModel):
    struts: List[List[List[float]]]
    start_radii: Optional[List[float]] = None
    end_radii: Optional[List[float]] = None
    sides: int = DEFAULT_SIDES
    tolerance: Optional[float] = None
    name: str = "lattice"

# --- Background Worker ---
def solidify_worker(task_id: str, params: SolidifyParams, tol: float):
    try:
        def progress_callback(message, percent):
            task_manager.update_task(task_id, status="processing", progress=percent, message=message)

        print(f"[DEBUG] ===== Solidify Request =====")
        print(f"[DEBUG] Struts: {len(params.struts)}, Sides: {params.sides}, Tol: {tol}")
        print(f"[DEBUG] Radii given - start: {params.start_radii is not None}, end: {params.end_radii is not None}")

        result = solidify(
            params.struts,
            start_radii=params.start_radii,
            end_radii=params.end_radii,
            sides=params.sides,
            tol=tol,
            progress_callback=progress_callback
        )
        if not result.ok:
            raise Exception(result.error)

        validation = validate_mesh(result.mesh, result.failures)
        print(generate_quality_report(validation))

        # Export STL for slicer
        EXPORTS_DIR.mkdir(parents=True, exist_ok=True)
        stl_filename = f"{Path(params.name).name}_{task_id[:8]}.stl"
        result.mesh.export(str(EXPORTS_DIR / stl_filename))

        payload = {
            "stl_url": f"/exports/{stl_filename}",
            "n_vertices": len(result.mesh.vertices),
            "n_faces": len(result.mesh.faces),
            "watertight": bool(result.mesh.is_watertight),
            "failures": [
                {"node_index": f.node_index, "point": list(f.point), "reason": f.reason}
                for f in result.failures
            ],
            "validation": validation,
        }

        task_manager.update_task(task_id, status="completed", progress=100, message="Solidification complete!", result=payload)

    except Exception as e:
        import traceback
        traceback.print_exc()
        task_manager.update_task(task_id, status="failed", message=str(e))


# --- Endpoints ---

@router.post("/cells", response_model=CellTopology)
def create_cell(request: CellRequest):
    tol = resolve_tolerance(request.tolerance)
    try:
        result = define_cell(request.curves, tol)
    except DegenerateCellError as e:
        raise HTTPException(status_code=422, detail={"status": "degenerate", "message": str(e)})

    if not result.ok:
        raise HTTPException(status_code=422, detail={"status": result.status.value, "message": result.message})

    cell = result.cell
    return CellTopology(
        status=CellStatus.VALID.value,
        severity=result.severity,
        message=result.message,
        nodes=cell.nodes.tolist(),
        struts=[list(s) for s in cell.struts],
        node_paths=[list(p) for p in cell.node_paths],
        face_counts=[list(c) for c in boundary_node_counts(cell, tol)],
    )

@router.post("/solidify")
async def create_solid(params: SolidifyParams, background_tasks: BackgroundTasks):
    tol = resolve_tolerance(params.tolerance)
    # Reject bad input before any task is created
    try:
        validate_inputs(params.struts, params.start_radii, params.end_radii, params.sides, tol)
    except LatticeInputError as e:
        raise HTTPException(status_code=422, detail={"status": "invalid_input", "message": str(e)})

    task_id = task_manager.create_task()
    background_tasks.add_task(solidify_worker, task_id, params, tol)
    return {"task_id": task_id}

@router.get("/tasks/{task_id}")
async def get_task_status(task_id: str):
    task = task_manager.get_task(task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task

@router.get("/exports/{filename}")
async def get_export(filename: str):
    from fastapi.responses import FileResponse
    file_path = EXPORTS_DIR / Path(filename).name
    if file_path.exists():
        return FileResponse(file_path)
    raise HTTPException(status_code=404, detail="File not found")
