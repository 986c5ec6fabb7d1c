"""Runtime settings for feedprobe.

Values are read once from the environment (after ``load_dotenv``) so a
deploying host can tune the prober without code changes.  Every setting has a
default matching the behaviour of the original browser-side prober.
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


# Per-request timeout (seconds) for every probe.
REQUEST_TIMEOUT = float(os.getenv("FEEDPROBE_TIMEOUT", "10"))
# Upper bound on in-flight probes across all domains of a batch.
MAX_CONCURRENCY = int(os.getenv("FEEDPROBE_MAX_CONCURRENCY", "20"))
# Cancel the remaining candidates of a tier once its winner is known.
CANCEL_SIBLINGS = _env_bool("FEEDPROBE_CANCEL_SIBLINGS", False)
# Response bodies are truncated to this many bytes before classification.
MAX_BODY_BYTES = int(os.getenv("FEEDPROBE_MAX_BODY_BYTES", str(5 * 1024 * 1024)))
# Also mine ``<a href>`` tags for feed URLs, not only ``<link rel="alternate">``.
SCAN_ANCHORS = _env_bool("FEEDPROBE_SCAN_ANCHORS", True)

HOST = os.getenv("FEEDPROBE_HOST", "127.0.0.1")
PORT = int(os.getenv("FEEDPROBE_PORT", "8090"))
MCP_PORT = int(os.getenv("MCP_PORT", "8000"))
