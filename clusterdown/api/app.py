"""FastAPI application exposing cluster teardown over REST."""

import json
import os
from typing import Any, Dict, Optional

from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel
import uvicorn

from ..config import load_settings
from ..events import get_status_from_events, tail_events
from ..models import ClusterIdentity
from ..state import cluster_exists, is_valid_infra_id, read_report_json
from ..uninstaller import destroy


class TeardownRequest(BaseModel):
    infra_id: str
    cluster_id: Optional[str] = None
    remove_template: bool = False


class TeardownAccepted(BaseModel):
    infra_id: str
    message: str


class StatusResponse(BaseModel):
    infra_id: str
    status: str
    report: Optional[Dict[str, Any]] = None


app = FastAPI(
    title="clusterdown API",
    description="Best-effort teardown of oVirt clusters",
    version="0.1.0"
)


def _check_infra_id(infra_id: str) -> None:
    if not is_valid_infra_id(infra_id):
        raise HTTPException(
            status_code=400,
            detail={"code": "invalid_infra_id", "message": f"Invalid infra ID: {infra_id}"}
        )


def _run_teardown(identity: ClusterIdentity) -> None:
    destroy(identity, settings=load_settings(os.environ.get("CLUSTERDOWN_SETTINGS")))


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"message": "clusterdown API is running", "version": "0.1.0"}


@app.post("/clusters/teardown", response_model=TeardownAccepted, status_code=202)
async def teardown_endpoint(request: TeardownRequest, background_tasks: BackgroundTasks):
    """Start tearing down a cluster; progress is reported through events."""
    _check_infra_id(request.infra_id)

    identity = ClusterIdentity(
        infra_id=request.infra_id,
        cluster_id=request.cluster_id,
        remove_template=request.remove_template,
    )
    background_tasks.add_task(_run_teardown, identity)

    return TeardownAccepted(infra_id=request.infra_id, message="Teardown started")


@app.get("/clusters/{infra_id}/status", response_model=StatusResponse)
async def get_status(infra_id: str):
    """Get the status of the last teardown run."""
    _check_infra_id(infra_id)

    if not cluster_exists(infra_id):
        raise HTTPException(
            status_code=404,
            detail={
                "code": "cluster_not_found",
                "message": f"No teardown recorded for {infra_id}",
                "hint": "Check the infra ID"
            }
        )

    return StatusResponse(
        infra_id=infra_id,
        status=get_status_from_events(infra_id),
        report=read_report_json(infra_id),
    )


@app.get("/clusters/{infra_id}/events")
async def stream_events(infra_id: str):
    """Replay teardown events via Server-Sent Events."""
    _check_infra_id(infra_id)

    if not cluster_exists(infra_id):
        raise HTTPException(
            status_code=404,
            detail={"code": "cluster_not_found", "message": f"No teardown recorded for {infra_id}"}
        )

    def event_generator():
        for event in tail_events(infra_id):
            yield f"data: {json.dumps(event)}\n\n"

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"}
    )


if __name__ == "__main__":
    port = int(os.getenv("PORT", 8080))
    uvicorn.run(app, host="0.0.0.0", port=port)
