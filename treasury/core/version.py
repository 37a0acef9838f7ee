from __future__ import annotations

import os
import subprocess
from datetime import datetime, timezone
from functools import lru_cache
from importlib import metadata

DISTRIBUTION_NAME = "kas-treasury"


def _resolve_release() -> str:
    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        return "0.0.0+local"


def _resolve_git_sha() -> str:
    sha = os.getenv("GIT_SHA") or os.getenv("SOURCE_COMMIT")
    if sha:
        return sha
    try:
        return (
            subprocess.check_output(["git", "rev-parse", "HEAD"], stderr=subprocess.DEVNULL)
            .decode("utf-8")
            .strip()
        )
    except (OSError, subprocess.CalledProcessError):
        return "unknown"


def _resolve_started_at() -> str:
    return os.getenv("BUILD_TIME", datetime.now(timezone.utc).isoformat())


@lru_cache
def get_version_info() -> dict[str, str]:
    return {
        "version": _resolve_release(),
        "gitSha": _resolve_git_sha(),
        "buildTime": _resolve_started_at(),
        "env": os.getenv("TREASURY_ENV", os.getenv("ENV", "unknown")),
    }
