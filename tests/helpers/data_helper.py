"""Shared test data constants."""

from datetime import datetime, timezone

# Fixed origin for rows whose ordering a test depends on
BASE_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
