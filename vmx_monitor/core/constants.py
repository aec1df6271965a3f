"""
Shared constants for VMX Monitor.
Single source of truth — imported by every other module.
"""

import os
import pathlib
import sys

# ── Application identity ──────────────────────────────────────────────
APP_NAME = "VMXMonitor"
APP_DISPLAY_NAME = "VMX Monitor"
APP_VERSION = "1.0.0"

# ── Filesystem paths ─────────────────────────────────────────────────
HOME = pathlib.Path.home()

if sys.platform == "darwin":
    APP_SUPPORT_DIR = HOME / "Library" / "Application Support" / APP_NAME
    LOG_DIR = HOME / "Library" / "Logs" / APP_NAME
else:
    APP_SUPPORT_DIR = pathlib.Path(
        os.environ.get("XDG_CONFIG_HOME", HOME / ".config")) / APP_NAME
    LOG_DIR = pathlib.Path(
        os.environ.get("XDG_STATE_HOME", HOME / ".local" / "state")) / APP_NAME

HANDLES_DB_PATH = APP_SUPPORT_DIR / "handles.db"
CONFIG_PATH = APP_SUPPORT_DIR / "config.json"
DEFAULT_EXPORT_ROOT = HOME / "Downloads"

# ── Remote queue API ─────────────────────────────────────────────────
DEFAULT_API_URL = "http://localhost:8080"
API_URL_ENV = "VMX_API_URL"
QUEUE_LIST_PATH = "/api/queue/list"
QUEUE_CANCEL_PATH = "/api/queue/cancel"

POLL_INTERVAL_SEC = 2.0
ERROR_CLEAR_SEC = 5.0
REQUEST_TIMEOUT_SEC = 10

# ── Handle store ─────────────────────────────────────────────────────
HANDLE_KEY = "directory_handle"

# ── Sidecar / media naming ───────────────────────────────────────────
PROGRESS_SUFFIX = "_progress.txt"
TARGET_SUFFIX = "_progress_target.txt"
MEDIA_EXTENSIONS = (".mp4", ".mkv", ".avi")

# out_time_ms carries microseconds despite its name
OUT_TIME_UNITS_PER_SEC = 1_000_000.0


# ── Progress stream values ────────────────────────────────────────────
class ProgressState:
    CONTINUE = "continue"
    END = "end"


# ── Tracker states ────────────────────────────────────────────────────
class TrackerState:
    UNINITIALIZED = "UNINITIALIZED"
    RESTORING = "RESTORING"
    IDLE = "IDLE"
    ACTIVE = "ACTIVE"
    SCANNING = "SCANNING"


# ── Remote job status values ──────────────────────────────────────────
class QueueStatus:
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


ACTIVE_STATUSES = {QueueStatus.PENDING, QueueStatus.PROCESSING}
FINISHED_STATUSES = {QueueStatus.COMPLETED, QueueStatus.FAILED, QueueStatus.CANCELLED}


# ── Error codes ───────────────────────────────────────────────────────
class ErrorCode:
    # Capability
    FS_UNSUPPORTED = "ERR_FS_UNSUPPORTED"
    ACCESS_REVOKED = "ERR_ACCESS_REVOKED"
    NO_DIRECTORY = "ERR_NO_DIRECTORY"

    # Enumeration
    SCAN_FAILED = "ERR_SCAN_FAILED"
    EXPORT_FAILED = "ERR_EXPORT_FAILED"

    # Remote
    QUEUE_FETCH = "ERR_QUEUE_FETCH"
    QUEUE_CANCEL = "ERR_QUEUE_CANCEL"
    API_UNREACHABLE = "ERR_API_UNREACHABLE"


CAPABILITY_ERRORS = {
    ErrorCode.FS_UNSUPPORTED,
    ErrorCode.ACCESS_REVOKED,
    ErrorCode.NO_DIRECTORY,
}

ENUMERATION_ERRORS = {
    ErrorCode.SCAN_FAILED,
    ErrorCode.EXPORT_FAILED,
}

REMOTE_ERRORS = {
    ErrorCode.QUEUE_FETCH,
    ErrorCode.QUEUE_CANCEL,
    ErrorCode.API_UNREACHABLE,
}

# ── Display ───────────────────────────────────────────────────────────
ENCODER_LABELS = {
    "cpu": "CPU (libx264)",
    "nvenc": "NVIDIA GPU (NVENC)",
    "qsv": "Intel GPU (Quick Sync)",
    "amf": "AMD GPU (AMF)",
    "vaapi": "VAAPI (Linux)",
    "videotoolbox": "Apple GPU (VideoToolbox)",
}

JOB_TYPE_BLACK_SCREEN = "black-screen"
