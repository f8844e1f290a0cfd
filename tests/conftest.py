"""Shared pytest configuration for SN tests."""

from __future__ import annotations

import os

# Keep job records in memory during tests; must be set before sn.storage is imported.
os.environ["REDIS_URL"] = "memory://"
