import asyncio, uuid, logging, time
from typing import Dict, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect, HTTPException
from fastapi.responses import PlainTextResponse, Response
import uvicorn

from .errors import PathFinderError
from .models import ScanRequest
from .report import summary_text, to_csv, to_json
from .scanner import Scanner
from .settings import configure_logging, settings
from .stats import SAMPLE_INTERVAL
from .wordlists import iter_candidates, load_wordlist

configure_logging()
log = logging.getLogger("pathfinder.main")

app = FastAPI(title="PathFinder")

JOBS: Dict[str, Dict] = {}


def _job(job_id: str) -> Dict:
    job = JOBS.get(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="unknown job")
    return job


def _state(job: Dict) -> str:
    task: asyncio.Task = job["task"]
    scanner: Scanner = job["scanner"]
    if not task.done():
        return "cancelling" if scanner.session.cancelled.is_set() else "running"
    if task.cancelled() or task.exception() is not None:
        return "failed"
    return "cancelled" if scanner.session.cancelled.is_set() else "done"


def _status(job_id: str, job: Dict) -> Dict:
    scanner: Scanner = job["scanner"]
    scanner.live.observe_completion()
    baseline = scanner.baseline
    return {
        "job_id": job_id,
        "target": scanner.base,
        "state": _state(job),
        "live": scanner.live.snapshot(),
        "stats": scanner.stats.snapshot(),
        "wildcard": baseline.model_dump() if baseline else None,
    }


@app.post("/api/scan")
async def start_scan(req: ScanRequest):
    try:
        scanner = Scanner(str(req.url), req.to_config())
        if req.paths is not None:
            paths = iter_candidates(req.paths, req.max_paths)
        else:
            paths = await asyncio.to_thread(load_wordlist, req.wordlist or settings.wordlist, req.max_paths)
    except PathFinderError as e:
        raise HTTPException(status_code=400, detail=str(e))

    prune_jobs()
    job_id = str(uuid.uuid4())
    task = scanner.start(paths)
    JOBS[job_id] = {"scanner": scanner, "task": task, "finished_at": None}
    task.add_done_callback(lambda t: _on_done(job_id, t))
    log.info("Job %s submitted: %s (%d paths)", job_id, scanner.base, scanner.live.total.value)
    return {"job_id": job_id, "total": scanner.live.total.value}


def prune_jobs(now: Optional[float] = None) -> int:
    """Drop finished jobs older than the retention window; returns how many went."""
    now = time.monotonic() if now is None else now
    stale = [
        job_id for job_id, job in JOBS.items()
        if job["finished_at"] is not None and now - job["finished_at"] >= settings.job_retention
    ]
    for job_id in stale:
        JOBS.pop(job_id, None)
    if stale:
        log.info("Pruned %d finished jobs", len(stale))
    return len(stale)


def _on_done(job_id: str, task: asyncio.Task) -> None:
    job = JOBS.get(job_id)
    if job is not None:
        job["finished_at"] = time.monotonic()
    if task.cancelled():
        log.warning("Job %s task cancelled", job_id)
    elif task.exception() is not None:
        log.error("Job %s failed", job_id, exc_info=task.exception())


@app.get("/api/scan/{job_id}")
async def scan_status(job_id: str):
    return _status(job_id, _job(job_id))


@app.get("/api/scan/{job_id}/recent")
async def recent(job_id: str):
    scanner: Scanner = _job(job_id)["scanner"]
    return [r.model_dump(mode="json") for r in scanner.recent_results()]


@app.get("/api/scan/{job_id}/results")
async def results(job_id: str, format: str = "json"):
    scanner: Scanner = _job(job_id)["scanner"]
    findings = scanner.stats.findings()
    if format == "csv":
        return Response(to_csv(findings), media_type="text/csv")
    if format == "json":
        return Response(to_json(findings), media_type="application/json")
    raise HTTPException(status_code=400, detail=f"unknown format: {format}")


@app.get("/api/scan/{job_id}/summary", response_class=PlainTextResponse)
async def summary(job_id: str):
    scanner: Scanner = _job(job_id)["scanner"]
    return summary_text(scanner.stats, scanner.live, target=scanner.base, config=scanner.config)


@app.delete("/api/scan/{job_id}")
async def cancel(job_id: str):
    job = _job(job_id)
    job["scanner"].cancel()
    log.info("Job %s cancellation requested", job_id)
    return {"status": "cancelling"}


@app.websocket("/ws/{job_id}")
async def ws_progress(ws: WebSocket, job_id: str):
    await ws.accept()
    job = JOBS.get(job_id)
    if not job:
        await ws.send_json({"type": "error", "message": "unknown job"})
        await ws.close(); return
    try:
        while True:
            status = _status(job_id, job)
            await ws.send_json({"type": "stats", **status})
            if job["task"].done():
                findings = job["scanner"].stats.findings()
                await ws.send_json({
                    "type": "done",
                    "state": status["state"],
                    "findings": [r.model_dump(mode="json") for r in findings],
                })
                # the stream carried the final result, the job is no longer needed
                JOBS.pop(job_id, None)
                break
            await asyncio.sleep(SAMPLE_INTERVAL)
    except WebSocketDisconnect:
        return
    await ws.close()


def serve() -> None:
    configure_logging()
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
