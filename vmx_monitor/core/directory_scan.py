"""
Directory scanning: list output videos and attach their sidecar progress data.
"""

import logging

from vmx_monitor.core.constants import (
    ErrorCode, MEDIA_EXTENSIONS, PROGRESS_SUFFIX, TARGET_SUFFIX,
)
from vmx_monitor.core.directory_access import DirectoryCapability
from vmx_monitor.core.error_codes import MonitorError
from vmx_monitor.core.models import MediaFileEntry, TrackedFile
from vmx_monitor.core.progress_parse import read_progress_file, read_target_file

logger = logging.getLogger(__name__)

KIND_MEDIA = "media"
KIND_PROGRESS = "progress"
KIND_TARGET = "target"


def classify(filename: str) -> str | None:
    """Return the kind of a directory entry by its suffix, or None if irrelevant."""
    lower = filename.lower()
    if lower.endswith(TARGET_SUFFIX):
        return KIND_TARGET
    if lower.endswith(PROGRESS_SUFFIX):
        return KIND_PROGRESS
    if lower.endswith(MEDIA_EXTENSIONS):
        return KIND_MEDIA
    return None


def base_name(filename: str) -> str:
    """
    Strip the distinguishing suffix: `song.mp4`, `song_progress.txt` and
    `song_progress_target.txt` all give `song`.
    """
    lower = filename.lower()
    for suffix in (TARGET_SUFFIX, PROGRESS_SUFFIX) + MEDIA_EXTENSIONS:
        if lower.endswith(suffix):
            return filename[:-len(suffix)]
    return filename


def scan_directory(capability: DirectoryCapability) -> list[TrackedFile]:
    """
    Build the full tracked-file list for a directory, newest first.

    Raises MonitorError(SCAN_FAILED) if the directory can't be listed.
    Sidecar read/parse failures only drop that sidecar's data.
    """
    try:
        entries = capability.enumerate()
    except Exception as e:
        logger.error("Error reading directory %s: %s", capability.name, e)
        raise MonitorError(ErrorCode.SCAN_FAILED,
                           f"Failed to read files from {capability.name}: {e}") from e

    # First pass: classify
    media: list[MediaFileEntry] = []
    progress_files: dict[str, str] = {}
    target_files: dict[str, str] = {}

    for entry in entries:
        if not entry.is_file:
            continue
        kind = classify(entry.name)
        if kind == KIND_PROGRESS:
            progress_files[base_name(entry.name)] = entry.name
        elif kind == KIND_TARGET:
            target_files[base_name(entry.name)] = entry.name
        elif kind == KIND_MEDIA:
            media.append(MediaFileEntry(
                name=entry.name,
                size=entry.size,
                last_modified=entry.last_modified,
                mime_type=entry.mime_type or "unknown",
            ))

    # Second pass: parse sidecars and attach
    tracked = []
    for item in media:
        key = base_name(item.name)
        target_name = target_files.get(key)
        progress_name = progress_files.get(key)
        tracked.append(TrackedFile(
            entry=item,
            target=read_target_file(capability, target_name) if target_name else None,
            snapshot=read_progress_file(capability, progress_name) if progress_name else None,
        ))

    tracked.sort(key=lambda t: t.entry.last_modified, reverse=True)
    logger.debug("Scanned %s: %d media file(s), %d progress log(s), %d target(s)",
                 capability.name, len(media), len(progress_files), len(target_files))
    return tracked
