"""Storage helpers for SN jobs.

``sn_jobs`` caches only jobs that are still moving through the pipeline.
Finished and failed jobs are evicted from it and served from ``storage``,
where the redis TTL bounds their lifetime.
"""

from __future__ import annotations

import threading
from typing import Dict, Any, List, Optional

from job_storage import PersistentJobStorage

TERMINAL_STATUSES = {"DONE", "ERROR"}

storage = PersistentJobStorage(prefix="sn")

sn_jobs: Dict[str, Dict[str, Any]] = {}
_jobs_lock = threading.Lock()


def create_job(job_id: str, job_data: Dict[str, Any]) -> None:
    storage.create_job(job_id, job_data)
    with _jobs_lock:
        sn_jobs[job_id] = job_data.copy()


def get_job(job_id: str) -> Optional[Dict[str, Any]]:
    with _jobs_lock:
        job = sn_jobs.get(job_id)
        if job:
            return dict(job)
    return storage.get_job(job_id)


def _apply_cached(job_id: str, updates: Dict[str, Any]) -> None:
    if job_id not in sn_jobs:
        return
    if updates.get("status") in TERMINAL_STATUSES:
        sn_jobs.pop(job_id)
    else:
        sn_jobs[job_id].update(updates)


def update_job(job_id: str, updates: Dict[str, Any]) -> None:
    storage.update_job(job_id, updates)
    with _jobs_lock:
        _apply_cached(job_id, updates)


def transition_job(job_id: str, expected_status: str, updates: Dict[str, Any]) -> bool:
    """Move a job out of ``expected_status``; only one caller can win."""
    with _jobs_lock:
        if not storage.transition_job(job_id, expected_status, updates):
            return False
        _apply_cached(job_id, updates)
        return True


def list_jobs() -> List[str]:
    return storage.get_active_jobs()


def cleanup_job(job_id: str) -> None:
    storage.cleanup_job(job_id)
    with _jobs_lock:
        sn_jobs.pop(job_id, None)
