"""
Lattice Core API

Run with `python backend/main.py` or `uvicorn backend.main:create_app --factory`.
"""

import os
import sys
from pathlib import Path
from typing import Optional

# Add project root to sys.path
PROJECT_ROOT = Path(__file__).parent.parent.resolve()
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from backend.api import endpoints
from latticecore.tolerance import DEFAULT_SIDES

DEFAULT_ORIGINS = "http://localhost:3000,http://127.0.0.1:3000"


def create_app(exports_dir: Optional[Path] = None) -> FastAPI:
    """
    Build the API app.

    Args:
        exports_dir: where solids are written and served from
            (defaults to LATTICE_EXPORTS_DIR / <project>/exports)
    """
    exports_dir = Path(exports_dir) if exports_dir is not None else endpoints.EXPORTS_DIR
    endpoints.EXPORTS_DIR = exports_dir

    app = FastAPI(title="Lattice Core API", version="1.0.0")

    # CORS: comma separated list, e.g. for a viewer on another port
    origins = os.environ.get("LATTICE_CORS_ORIGINS", DEFAULT_ORIGINS)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in origins.split(",") if origin.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(endpoints.router, prefix="/api/v1")

    # Exported STL files are served statically next to the API
    exports_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/exports", StaticFiles(directory=str(exports_dir)), name="exports")

    @app.get("/")
    def root():
        return {
            "message": "Lattice Core API is running",
            "tolerance": endpoints.resolve_tolerance(None),
            "sides": DEFAULT_SIDES,
            "exports": str(exports_dir),
        }

    print(f"[DEBUG] Lattice Core API ready (exports: {exports_dir})")
    return app


if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run(create_app(), host="0.0.0.0", port=port)
