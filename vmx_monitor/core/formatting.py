"""
Display formatting for file sizes, timestamps, queue job fields and status lines.
"""

from datetime import datetime

from vmx_monitor.core.constants import ENCODER_LABELS, JOB_TYPE_BLACK_SCREEN, TrackerState

_SIZE_UNITS = ['Bytes', 'KB', 'MB', 'GB']


def format_file_size(num_bytes: int) -> str:
    if num_bytes <= 0:
        return '0 Bytes'
    i = 0
    while num_bytes >= 1024 ** (i + 1) and i < len(_SIZE_UNITS) - 1:
        i += 1
    value = round(num_bytes / (1024 ** i), 2)
    return f"{value:g} {_SIZE_UNITS[i]}"


def format_timestamp(ms: int) -> str:
    """Milliseconds since epoch → local 'YYYY-MM-DD HH:MM:SS'."""
    return datetime.fromtimestamp(ms / 1000).strftime('%Y-%m-%d %H:%M:%S')


def format_iso_date(value: str) -> str:
    """ISO-8601 string → local 'YYYY-MM-DD HH:MM:SS'; unparseable input is returned as-is."""
    if not value:
        return ''
    try:
        dt = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        return value
    if dt.tzinfo is not None:
        dt = dt.astimezone()
    return dt.strftime('%Y-%m-%d %H:%M:%S')


def encoder_label(encoder: str | None) -> str:
    if not encoder:
        return ''
    return ENCODER_LABELS.get(encoder, encoder)


def job_type_label(job_type: str) -> str:
    return "Black Screen" if job_type == JOB_TYPE_BLACK_SCREEN else "Video Loop"


def short_id(job_id: str) -> str:
    return f"{job_id[:8]}..."


# ── Status lines ──────────────────────────────────────────────────────

def progress_status_text(tracker) -> str:
    """Status bar text for the progress view; errors always carry the 'Error:' prefix."""
    if tracker.state == TrackerState.RESTORING:
        return "Restoring saved directory..."
    if tracker.state == TrackerState.SCANNING:
        return "Loading files..."
    if tracker.error:
        return f"Error: {tracker.error}"
    if tracker.is_active:
        return f"{len(tracker.files)} file(s)"
    return 'Click "Choose Directory" to select the encoder output folder.'


def queue_status_text(poller) -> str:
    if poller.error:
        return f"Error: {poller.error}"
    if poller.loading:
        return "Loading queue..."
    return f"{len(poller.jobs)} job(s)"
