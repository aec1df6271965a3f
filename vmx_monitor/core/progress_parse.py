"""
Sidecar parsing: encoder progress logs and job target descriptors → dataclasses.

Both formats are `key=value`, one assignment per line. The progress log is
appended to for the whole encode, so it holds one block per report; each
block opens with a `frame=` line. Only the last block is returned.
"""

import re
import logging
from typing import Optional

from vmx_monitor.core.constants import ProgressState
from vmx_monitor.core.directory_access import DirectoryCapability
from vmx_monitor.core.models import ProgressSnapshot, TargetDescriptor

logger = logging.getLogger(__name__)

_LEADING_INT_RE = re.compile(r'^[+-]?\d+')
_LEADING_FLOAT_RE = re.compile(r'^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?')


def _lead_int(value: str) -> int:
    """Leading integer of `value` ('12abc' → 12); 0 if there is none."""
    m = _LEADING_INT_RE.match(value)
    return int(m.group(0)) if m else 0


def _lead_float(value: str) -> float:
    m = _LEADING_FLOAT_RE.match(value)
    return float(m.group(0)) if m else 0.0


def _iter_pairs(text: str):
    """Yield stripped (key, value) pairs; skip blanks, lines without '=' or with several."""
    for line in text.split('\n'):
        if not line.strip() or '=' not in line:
            continue
        parts = line.split('=')
        if len(parts) != 2:
            continue
        yield parts[0].strip(), parts[1].strip()


# ── Progress log ──────────────────────────────────────────────────────

def parse_progress_text(text: str) -> Optional[ProgressSnapshot]:
    """
    Return the most recent snapshot block of a progress log, or None.

    A `frame` key closes the open block and starts a new one with default
    values. Keys seen before the first `frame` are ignored. The block that
    is still open at end of text is the result; it may be partial when the
    encoder is mid-write.
    """
    current: Optional[ProgressSnapshot] = None
    last: Optional[ProgressSnapshot] = None

    for key, value in _iter_pairs(text):
        if key == 'frame':
            if current is not None:
                last = current
            current = ProgressSnapshot(frame=_lead_int(value))
            continue
        if current is None:
            continue

        if key == 'fps':
            current.fps = _lead_float(value)
        elif key == 'bitrate':
            current.bitrate = value
        elif key == 'out_time':
            current.out_time = value
        elif key == 'out_time_ms':
            current.out_time_us = _lead_int(value)
        elif key == 'speed':
            current.speed = value
        elif key == 'progress':
            current.progress = value or ProgressState.CONTINUE
        elif key == 'total_size':
            current.total_size = _lead_int(value)
        elif key == 'stream_0_0_q':
            current.stream_quality = _lead_float(value) or None

    return current if current is not None else last


# ── Target descriptor ─────────────────────────────────────────────────

def parse_target_text(text: str) -> Optional[TargetDescriptor]:
    """
    Parse a target descriptor. Returns None unless queue_id, total_duration
    and total_frames are all present and non-zero.
    """
    fields: dict = {}

    for key, value in _iter_pairs(text):
        if key == 'queue_id':
            fields['queue_id'] = value
        elif key == 'type':
            fields['job_type'] = value
        elif key == 'output_file':
            fields['output_file'] = value
        elif key == 'total_duration':
            fields['total_duration'] = _lead_float(value)
        elif key == 'total_frames':
            fields['total_frames'] = _lead_int(value)
        elif key in ('width', 'height', 'fps'):
            fields[key] = _lead_int(value) or None
        elif key in ('encoder', 'preset', 'created_at'):
            fields[key] = value
        elif key == 'fade_effect':
            fields['fade_effect'] = None if value == 'none' else (value or None)
        elif key in ('fade_duration', 'fade_offset'):
            fields[key] = _lead_float(value) or None

    if not (fields.get('queue_id') and fields.get('total_duration')
            and fields.get('total_frames')):
        return None
    return TargetDescriptor(**fields)


# ── File readers ──────────────────────────────────────────────────────

def _read_text(capability: DirectoryCapability, name: str) -> Optional[str]:
    try:
        return capability.open_entry(name).decode('utf-8', errors='replace')
    except Exception as e:
        logger.error("Error reading sidecar %s: %s", name, e)
        return None


def read_progress_file(capability: DirectoryCapability, name: str) -> Optional[ProgressSnapshot]:
    """Parse a progress log entry; unreadable files count as no data."""
    text = _read_text(capability, name)
    return parse_progress_text(text) if text is not None else None


def read_target_file(capability: DirectoryCapability, name: str) -> Optional[TargetDescriptor]:
    """Parse a target descriptor entry; unreadable files count as no data."""
    text = _read_text(capability, name)
    return parse_target_text(text) if text is not None else None
