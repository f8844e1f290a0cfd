"""Flask blueprint implementing SN APIs."""

from __future__ import annotations

import logging
import os
import tempfile
import threading
import time
import uuid
from typing import Any, Dict, List, Optional

from flask import Blueprint, Response, jsonify, request, session
from werkzeug.utils import secure_filename

from .config import (
    DEFAULT_CHUNK_SIZE,
    PROGRESS_CHUNK_END,
    PROGRESS_DISPATCH_SPAN,
    PROGRESS_EXTRACT_END,
    PROGRESS_RENDER_START,
    UPLOAD_TTL,
)
from .errors import DocumentError, SimplifyError
from .export import output_filename, to_csv, to_docx, to_json, to_pdf, to_txt, to_xlsx
from .models import ChunkRow
from .parser import extract_documents, is_supported
from .pipeline import simplify_document_text
from .storage import cleanup_job, create_job, get_job, list_jobs, transition_job, update_job

logger = logging.getLogger(__name__)

sn_bp = Blueprint("sn", __name__, url_prefix="/api/sn")

MAX_CHUNK_SIZE_LIMIT = 20000

EXPORT_MIMETYPES = {
    "txt": "text/plain; charset=utf-8",
    "pdf": "application/pdf",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


def _require_auth() -> Optional[Response]:
    if request.endpoint == "sn.health":
        return None
    if not session.get("authenticated", False):
        return jsonify({"error": "Unauthorized"}), 401
    return None


@sn_bp.before_request
def before_request():
    auth_error = _require_auth()
    if auth_error:
        return auth_error


@sn_bp.route("/health")
def health():
    return jsonify({"status": "ok"})


def _remove_temp_files(paths: List[str]) -> None:
    for path in paths:
        if path and os.path.exists(path):
            try:
                os.unlink(path)
            except OSError:
                logger.warning("Could not delete temporary file %s", path)


def sweep_stale_uploads(now: Optional[float] = None) -> List[str]:
    """Discard uploaded jobs that were never started within ``UPLOAD_TTL``."""
    now = now or time.time()
    swept = []
    for job_id in list_jobs():
        job = get_job(job_id)
        if not job or job.get("status") != "UPLOADED":
            continue
        if now - job.get("created_at", now) <= UPLOAD_TTL:
            continue
        # Claim the job first so a concurrent run request cannot start it.
        if not transition_job(job_id, "UPLOADED", {"status": "EXPIRED"}):
            continue
        _remove_temp_files(job.get("temp_file_paths", []))
        cleanup_job(job_id)
        swept.append(job_id)
    if swept:
        logger.info("Discarded %d stale upload(s)", len(swept))
    return swept


@sn_bp.route("/jobs", methods=["POST"])
def create_sn_job():
    sweep_stale_uploads()
    files = [file for file in request.files.getlist("files") if file.filename]
    if not files:
        return jsonify({"error": "No files provided"}), 400
    rejected = [file.filename for file in files if not is_supported(file.filename)]
    if rejected:
        return jsonify({"error": f"Unsupported file type: {', '.join(rejected)}"}), 400

    job_id = str(uuid.uuid4())
    filenames: List[str] = []
    temp_paths: List[str] = []
    for file in files:
        filename = secure_filename(file.filename) or "document"
        suffix = os.path.splitext(file.filename)[1].lower()
        temp_file = tempfile.NamedTemporaryFile(delete=False, suffix=suffix)
        file.save(temp_file.name)
        temp_file.close()
        filenames.append(filename)
        temp_paths.append(temp_file.name)

    job_data = {
        "job_id": job_id,
        "status": "UPLOADED",
        "filenames": filenames,
        "temp_file_paths": temp_paths,
        "progress": 0,
        "stage": f"{len(filenames)} file(s) uploaded",
        "chunks_total": 0,
        "chunks_completed": 0,
        "result_text": "",
        "result_rows": [],
        "error": None,
    }
    create_job(job_id, job_data)

    return jsonify({"success": True, "job_id": job_id})


def _parse_chunk_size(value: Any) -> int:
    try:
        size = int(value)
    except (TypeError, ValueError):
        return DEFAULT_CHUNK_SIZE
    if 0 < size <= MAX_CHUNK_SIZE_LIMIT:
        return size
    return DEFAULT_CHUNK_SIZE


def process_job(job_id: str, files: List[tuple], max_chunk_size: int) -> None:
    def on_extract(position: int, total: int, name: str) -> None:
        update_job(
            job_id,
            {
                "progress": (position / total) * PROGRESS_EXTRACT_END,
                "stage": f"Extracting text from {name}...",
            },
        )

    def on_prepared(chunks_total: int, workers: int) -> None:
        update_job(
            job_id,
            {
                "status": "SIMPLIFYING",
                "chunks_total": chunks_total,
                "progress": PROGRESS_CHUNK_END,
                "stage": f"Processing {chunks_total} chunks simultaneously with {workers} API keys...",
            },
        )

    def on_progress(completed: int, total: int) -> None:
        update_job(
            job_id,
            {
                "chunks_completed": completed,
                "progress": PROGRESS_CHUNK_END + (completed / total) * PROGRESS_DISPATCH_SPAN,
                "stage": f"Simplifying content ({completed}/{total} chunks completed)...",
            },
        )

    try:
        update_job(job_id, {"status": "EXTRACTING", "progress": 0})
        text = extract_documents(files, progress_callback=on_extract)

        update_job(
            job_id,
            {
                "status": "CHUNKING",
                "progress": PROGRESS_EXTRACT_END,
                "stage": "Preparing content for parallel simplification...",
            },
        )
        result = simplify_document_text(
            text,
            max_chunk_size=max_chunk_size,
            progress_callback=on_progress,
            on_prepared=on_prepared,
        )

        update_job(
            job_id,
            {
                "status": "RENDERING",
                "progress": PROGRESS_RENDER_START,
                "stage": "Generating output...",
            },
        )
        rows = to_json(result.rows())

        update_job(
            job_id,
            {
                "status": "DONE",
                "progress": 100,
                "stage": "Simplification completed!",
                "result_text": result.text,
                "result_rows": rows,
                "chunks_completed": len(result.results),
                "completion_time": time.time(),
            },
        )
    except (SimplifyError, DocumentError) as exc:
        logger.error("Job %s failed: %s", job_id, exc)
        update_job(job_id, {"status": "ERROR", "error": str(exc), "stage": ""})
    except Exception as exc:
        logger.exception("Job %s failed unexpectedly", job_id)
        update_job(job_id, {"status": "ERROR", "error": f"Failed to simplify content: {exc}", "stage": ""})
    finally:
        _remove_temp_files([path for path, _ in files])


@sn_bp.route("/jobs/<job_id>/run", methods=["POST"])
def run_sn_job(job_id: str):
    job = get_job(job_id)
    if not job:
        return jsonify({"error": "Job not found"}), 404

    payload = request.get_json(silent=True) or {}
    max_chunk_size = _parse_chunk_size(payload.get("max_chunk_size"))
    files = list(zip(job.get("temp_file_paths", []), job.get("filenames", [])))

    if not transition_job(job_id, "UPLOADED", {"status": "QUEUED", "max_chunk_size": max_chunk_size}):
        return jsonify({"error": "Job has already been started"}), 400
    threading.Thread(
        target=process_job,
        args=(job_id, files, max_chunk_size),
        name=f"sn_main_{job_id}",
        daemon=True,
    ).start()

    return jsonify({"success": True})


@sn_bp.route("/jobs/<job_id>")
def get_job_status(job_id: str):
    job = get_job(job_id)
    if not job:
        return jsonify({"error": "Job not found"}), 404
    job.pop("temp_file_paths", None)
    return jsonify({"job": job})


@sn_bp.route("/jobs/<job_id>/result")
def get_job_result(job_id: str):
    job = get_job(job_id)
    if not job:
        return jsonify({"error": "Job not found"}), 404
    if job.get("status") != "DONE":
        return jsonify({"error": "No simplified content available yet"}), 400

    text = job.get("result_text", "")
    rows = [
        ChunkRow(index=row["chunk"], original=row["original"], simplified=row["simplified"])
        for row in job.get("result_rows", [])
    ]
    fmt = request.args.get("format", "json").lower()

    if fmt in EXPORT_MIMETYPES:
        if fmt == "txt":
            data = to_txt(text)
        elif fmt == "pdf":
            data = to_pdf(text)
        elif fmt == "docx":
            data = to_docx(text)
        elif fmt == "csv":
            data = to_csv(rows)
        else:
            data = to_xlsx(rows)
        filename = output_filename(job.get("filenames", []), fmt)
        return Response(
            data,
            mimetype=EXPORT_MIMETYPES[fmt],
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    result: Dict[str, Any] = {"text": text, "chunks": job.get("result_rows", [])}
    return jsonify(result)


@sn_bp.route("/jobs/<job_id>/content", methods=["PUT"])
def edit_job_content(job_id: str):
    job = get_job(job_id)
    if not job:
        return jsonify({"error": "Job not found"}), 404
    if job.get("status") != "DONE":
        return jsonify({"error": "No simplified content to edit"}), 400

    payload = request.get_json(silent=True) or {}
    content = payload.get("content")
    if not isinstance(content, str) or not content.strip():
        return jsonify({"error": "Content must be a non-empty string"}), 400

    update_job(job_id, {"result_text": content, "edited": True})
    return jsonify({"success": True})
