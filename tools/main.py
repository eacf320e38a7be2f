from __future__ import annotations

import json
import math
from pathlib import Path
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import numpy as np
from fastapi import FastAPI, UploadFile, File
from fastapi.responses import JSONResponse, Response
from starlette.responses import StreamingResponse

from analysis.ingest import EmptyInputError, NoValidRowsError, ParseError
from llm.narrator import generate_executive_summary
from schemas.results import AnalysisResult
from tools.config import get_dataset, get_settings
from tools.exporter import data_to_csv, report_to_markdown, report_to_pdf_bytes
from tools.job_manager import JobManager
from tools.logger import build_logger, ring_buffer
from tools.orchestrator import run_analysis_pipeline, run_upload_pipeline


def sanitize_json(obj):
    if isinstance(obj, (float, np.floating)):
        return None if (math.isnan(obj) or math.isinf(obj)) else float(obj)
    if isinstance(obj, dict):
        return {k: sanitize_json(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [sanitize_json(v) for v in obj]
    return obj


app = FastAPI(title="CSV Insights Dashboard")

ALLOWED = {".csv"}
PARSE_ERROR_KINDS = {EmptyInputError.kind, NoValidRowsError.kind, ParseError.kind}

LOGGER = build_logger("csv_insights")
JOB_MANAGER = JobManager()
EXEC = ThreadPoolExecutor(max_workers=2)


def _decode(content: bytes) -> str:
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        return content.decode("latin1")


def _finished_analysis(job_id: str):
    job = JOB_MANAGER.get(job_id)
    if not job or job.kind != "analysis" or not job.done or job.error:
        return None
    return job


@app.post("/upload_async")
async def upload_async(file: UploadFile = File(...)):
    settings = get_settings()
    file_name = file.filename or "upload.csv"
    if Path(file_name).suffix.lower() not in ALLOWED:
        return JSONResponse({"error": "Only CSV files are supported."}, status_code=400)

    content = await file.read()
    if len(content) > settings.app.max_file_size:
        LOGGER.warning("Rejected upload over size limit: %s", file_name,
                       extra={"context": {"fileSize": len(content), "maxFileSize": settings.app.max_file_size}})
        return JSONResponse(
            {"error": f"File exceeds the {settings.app.max_file_size // (1024 * 1024)}MB limit."},
            status_code=413,
        )

    LOGGER.info("File upload initiated: %s", file_name, extra={"context": {"fileSize": len(content)}})
    text = _decode(content)
    job = JOB_MANAGER.create_job("upload")

    def on_event(evt: dict):
        JOB_MANAGER.emit(job.id, evt)

    def run():
        try:
            report = run_upload_pipeline(text, file_name, settings=settings, progress_cb=on_event, logger=LOGGER)
            JOB_MANAGER.set_result(job.id, report)
        except ParseError as e:
            JOB_MANAGER.set_error(job.id, str(e), kind=e.kind)
        except Exception as e:
            LOGGER.exception("Upload job failed: %s", file_name)
            JOB_MANAGER.set_error(job.id, str(e))

    EXEC.submit(run)
    return JSONResponse({"job_id": job.id})


@app.post("/analyze_async/{dataset_id}")
def analyze_async(dataset_id: str):
    dataset = get_dataset(dataset_id)
    if not dataset:
        return JSONResponse({"error": "dataset not found"}, status_code=404)

    settings = get_settings()
    job = JOB_MANAGER.create_job("analysis")

    def on_event(evt: dict):
        JOB_MANAGER.emit(job.id, evt)

    def run():
        try:
            report = run_analysis_pipeline(dataset, settings=settings, progress_cb=on_event, logger=LOGGER)
            JOB_MANAGER.set_result(job.id, report)
        except Exception as e:
            LOGGER.exception("Analysis job failed for dataset %s", dataset_id)
            JOB_MANAGER.set_error(job.id, str(e))

    EXEC.submit(run)
    return JSONResponse({"job_id": job.id})


@app.get("/progress/{job_id}")
def progress(job_id: str):
    job = JOB_MANAGER.get(job_id)
    if not job:
        return JSONResponse({"error": "job not found"}, status_code=404)

    def event_stream():
        yield "event: hello\ndata: {}\n\n"

        while True:
            try:
                evt = job.queue.get(timeout=1.0)
            except Exception:
                # keep connection alive
                yield "event: ping\ndata: {}\n\n"
                if job.done and job.queue.empty():
                    break
                continue

            etype = evt.get("type", "message")
            yield f"event: {etype}\n"
            yield f"data: {json.dumps(evt)}\n\n"

            if evt.get("type") == "done":
                break

    return StreamingResponse(event_stream(), media_type="text/event-stream")


@app.get("/result/{job_id}")
def result(job_id: str):
    job = JOB_MANAGER.get(job_id)
    if not job:
        return JSONResponse({"error": "job not found"}, status_code=404)
    if not job.done:
        return JSONResponse({"status": "running", "progress_pct": job.progress_pct}, status_code=202)
    if job.error:
        status_code = 422 if job.error_kind in PARSE_ERROR_KINDS else 500
        return JSONResponse({"status": "error", "kind": job.error_kind, "error": job.error}, status_code=status_code)

    return JSONResponse({"status": "done", "report": sanitize_json(job.result or {})})


@app.get("/datasets/{dataset_id}/preview")
def preview(dataset_id: str, limit: int = 10):
    dataset = get_dataset(dataset_id)
    if not dataset:
        return JSONResponse({"error": "dataset not found"}, status_code=404)
    limit = max(1, min(limit, 100))
    return JSONResponse(sanitize_json({
        "dataset_id": dataset.id,
        "file_name": dataset.file_name,
        "columns": list(dataset.table.columns),
        "summary": dataset.summary.model_dump(),
        "rows": dataset.table.records(limit=limit),
    }))


@app.post("/summary/{job_id}")
def executive_summary(job_id: str):
    job = _finished_analysis(job_id)
    if not job:
        return JSONResponse({"error": "job not ready"}, status_code=404)
    analysis = AnalysisResult.model_validate(job.result["analysis"])
    narrative = generate_executive_summary(analysis, settings=get_settings(), logger=LOGGER)
    job.result["executive_summary"] = narrative.model_dump()
    return JSONResponse(narrative.model_dump())


@app.get("/export/{job_id}.md")
def export_markdown(job_id: str):
    job = _finished_analysis(job_id)
    if not job:
        return JSONResponse({"error": "job not ready"}, status_code=404)
    md = report_to_markdown(job.result or {})
    return Response(
        content=md.encode("utf-8"),
        media_type="text/markdown; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{job_id}.md"'},
    )


@app.get("/export/{job_id}.pdf")
def export_pdf(job_id: str):
    job = _finished_analysis(job_id)
    if not job:
        return JSONResponse({"error": "job not ready"}, status_code=404)
    pdf_bytes = report_to_pdf_bytes(job.result or {}, job_id=job_id)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{job_id}.pdf"'},
    )


@app.get("/export/{job_id}.csv")
def export_csv(job_id: str):
    job = _finished_analysis(job_id)
    if not job:
        return JSONResponse({"error": "job not ready"}, status_code=404)
    csv_text = data_to_csv(job.result or {})
    return Response(
        content=csv_text.encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{job_id}.csv"'},
    )


@app.get("/logs")
def logs(limit: int = 100, level: Optional[str] = None):
    buf = ring_buffer(LOGGER)
    entries = buf.entries(level=level) if buf else []
    return JSONResponse(sanitize_json({"logs": [e.to_dict() for e in entries[-limit:]]}))
