"""
Persistent Job Storage for Simplify Notes
-----------------------------------------
Redis-backed storage for job status and finished results, so the web layer
can be polled from any worker process. Nothing here is used to resume a run:
the dispatcher's queue lives only in memory for the duration of a run.
"""

import json
import logging
import os
import threading
import time
from typing import Dict, Any, Optional, List

import redis
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

MEMORY_URL = "memory://"


class PersistentJobStorage:
    """Redis-based storage for job records, namespaced by prefix."""

    def __init__(self, prefix: str = "sn", redis_url: Optional[str] = None):
        """Create a storage helper scoped by a namespace prefix.

        ``redis_url`` defaults to ``REDIS_URL``. The special value
        ``memory://``, or an unreachable server, selects in-memory storage.
        """

        redis_url = redis_url or os.getenv('REDIS_URL', 'redis://localhost:6379/0')
        self.redis_available = False
        self._memory_jobs: Dict[str, Dict[str, Any]] = {}
        self._memory_lock = threading.Lock()

        if redis_url.startswith(MEMORY_URL):
            logger.info("Using in-memory job storage")
        else:
            try:
                self.redis_client = redis.from_url(redis_url, decode_responses=True)
                self.redis_client.ping()
                self.redis_available = True
                logger.info("Redis connected successfully")
            except (redis.ConnectionError, redis.RedisError) as e:
                logger.warning("Redis not available, falling back to in-memory storage: %s", e)

        namespace = prefix.strip() or "sn"
        self.JOB_PREFIX = f"{namespace}_job:"
        self.JOB_LIST_KEY = f"{namespace}_jobs_list"

        # TTL for jobs (24 hours)
        self.JOB_TTL = 86400

    def _get_job_key(self, job_id: str) -> str:
        return f"{self.JOB_PREFIX}{job_id}"

    def _serialize(self, data: Any) -> str:
        return json.dumps(data, default=str, ensure_ascii=False)

    def _deserialize(self, data: str) -> Any:
        return json.loads(data)

    def _expire_memory_jobs(self) -> None:
        # Mirrors the redis TTL for the in-memory store.
        cutoff = time.time() - self.JOB_TTL
        with self._memory_lock:
            expired = [
                job_id for job_id, job in self._memory_jobs.items()
                if job.get('last_update', 0) < cutoff
            ]
            for job_id in expired:
                del self._memory_jobs[job_id]

    def create_job(self, job_id: str, job_data: Dict[str, Any]) -> bool:
        """Create a new job entry."""
        job_data['created_at'] = time.time()
        job_data['last_update'] = time.time()

        if not self.redis_available:
            self._expire_memory_jobs()
            with self._memory_lock:
                self._memory_jobs[job_id] = job_data.copy()
            return True

        try:
            self.redis_client.setex(self._get_job_key(job_id), self.JOB_TTL, self._serialize(job_data))
            self.redis_client.sadd(self.JOB_LIST_KEY, job_id)
            return True
        except redis.RedisError as e:
            logger.error("Failed to create job %s: %s", job_id, e)
            return False

    def get_job(self, job_id: str) -> Optional[Dict[str, Any]]:
        """Get job data by ID."""
        if not self.redis_available:
            with self._memory_lock:
                job = self._memory_jobs.get(job_id)
                return dict(job) if job else None

        try:
            data = self.redis_client.get(self._get_job_key(job_id))
            return self._deserialize(data) if data else None
        except redis.RedisError as e:
            logger.error("Failed to get job %s: %s", job_id, e)
            return None

    def update_job(self, job_id: str, updates: Dict[str, Any]) -> bool:
        """Merge ``updates`` into an existing job."""
        updates['last_update'] = time.time()

        if not self.redis_available:
            with self._memory_lock:
                if job_id in self._memory_jobs:
                    self._memory_jobs[job_id].update(updates)
                    return True
            return False

        try:
            job_key = self._get_job_key(job_id)
            existing_data = self.redis_client.get(job_key)
            if not existing_data:
                return False
            job_data = self._deserialize(existing_data)
            job_data.update(updates)
            self.redis_client.setex(job_key, self.JOB_TTL, self._serialize(job_data))
            return True
        except redis.RedisError as e:
            logger.error("Failed to update job %s: %s", job_id, e)
            return False

    def transition_job(self, job_id: str, expected_status: str, updates: Dict[str, Any]) -> bool:
        """Apply ``updates`` only if the job is still in ``expected_status``.

        The check and the write happen as one step: under a lock for the
        in-memory store, inside a ``WATCH``/``MULTI`` transaction for redis.
        Returns False when the job is missing or in another status.
        """
        updates['last_update'] = time.time()

        if not self.redis_available:
            with self._memory_lock:
                job = self._memory_jobs.get(job_id)
                if not job or job.get('status') != expected_status:
                    return False
                job.update(updates)
                return True

        job_key = self._get_job_key(job_id)
        try:
            with self.redis_client.pipeline() as pipe:
                while True:
                    try:
                        pipe.watch(job_key)
                        existing_data = pipe.get(job_key)
                        if not existing_data:
                            return False
                        job_data = self._deserialize(existing_data)
                        if job_data.get('status') != expected_status:
                            return False
                        job_data.update(updates)
                        pipe.multi()
                        pipe.setex(job_key, self.JOB_TTL, self._serialize(job_data))
                        pipe.execute()
                        return True
                    except redis.WatchError:
                        # Another writer touched the job; re-read and check again.
                        continue
        except redis.RedisError as e:
            logger.error("Failed to transition job %s: %s", job_id, e)
            return False

    def get_active_jobs(self) -> List[str]:
        """Get list of active job IDs."""
        if not self.redis_available:
            self._expire_memory_jobs()
            with self._memory_lock:
                return list(self._memory_jobs.keys())

        try:
            active_jobs = []
            for job_id in self.redis_client.smembers(self.JOB_LIST_KEY):
                if self.redis_client.exists(self._get_job_key(job_id)):
                    active_jobs.append(job_id)
                else:
                    # Expired
                    self.redis_client.srem(self.JOB_LIST_KEY, job_id)
            return active_jobs
        except redis.RedisError as e:
            logger.error("Failed to get active jobs: %s", e)
            return []

    def cleanup_job(self, job_id: str) -> bool:
        """Remove a job record."""
        if not self.redis_available:
            with self._memory_lock:
                self._memory_jobs.pop(job_id, None)
            return True

        try:
            self.redis_client.delete(self._get_job_key(job_id))
            self.redis_client.srem(self.JOB_LIST_KEY, job_id)
            return True
        except redis.RedisError as e:
            logger.error("Failed to cleanup job %s: %s", job_id, e)
            return False
