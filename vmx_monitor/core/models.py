"""
Data models (plain dataclasses) for VMX Monitor.
"""

from dataclasses import dataclass
from typing import Optional

from vmx_monitor.core.constants import ProgressState, ACTIVE_STATUSES, FINISHED_STATUSES


@dataclass
class DirectoryEntry:
    name: str
    is_file: bool = True
    size: int = 0
    last_modified: int = 0           # ms since epoch
    mime_type: str = "unknown"


@dataclass
class MediaFileEntry:
    name: str
    size: int
    last_modified: int               # ms since epoch
    mime_type: str = "unknown"


@dataclass
class ProgressSnapshot:
    frame: int = 0
    fps: float = 0.0
    bitrate: str = ""
    out_time: str = ""
    out_time_us: int = 0             # from out_time_ms, which is microseconds
    speed: str = ""
    progress: str = ProgressState.CONTINUE
    total_size: int = 0
    stream_quality: Optional[float] = None

    @property
    def is_finished(self) -> bool:
        return self.progress == ProgressState.END


@dataclass
class TargetDescriptor:
    queue_id: str
    total_duration: float
    total_frames: int
    job_type: str = ""
    output_file: str = ""
    width: Optional[int] = None
    height: Optional[int] = None
    fps: Optional[int] = None
    encoder: str = ""
    preset: str = ""
    fade_effect: Optional[str] = None
    fade_duration: Optional[float] = None
    fade_offset: Optional[float] = None
    created_at: str = ""


@dataclass
class TrackedFile:
    """A media file joined with whatever sidecar data matched its base name."""
    entry: MediaFileEntry
    snapshot: Optional[ProgressSnapshot] = None
    target: Optional[TargetDescriptor] = None

    @property
    def name(self) -> str:
        return self.entry.name

    @property
    def has_progress(self) -> bool:
        return self.snapshot is not None or self.target is not None


@dataclass
class QueueJob:
    id: str
    job_type: str = ""
    status: str = "pending"
    progress: int = 0
    output_file: str = ""
    width: int = 0
    height: int = 0
    fps: int = 0
    encoder: Optional[str] = None
    preset: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""
    error_message: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def is_finished(self) -> bool:
        """Completed, failed or cancelled: the cancel endpoint removes it."""
        return self.status in FINISHED_STATUSES

    @classmethod
    def from_dict(cls, data: dict) -> "QueueJob":
        """Build a job from the server's camelCase JSON object."""
        return cls(
            id=str(data.get('id', '')),
            job_type=data.get('type') or '',
            status=data.get('status') or 'pending',
            progress=_as_int(data.get('progress')),
            output_file=data.get('outputFile') or '',
            width=_as_int(data.get('width')),
            height=_as_int(data.get('height')),
            fps=_as_int(data.get('fps')),
            encoder=data.get('encoder') or None,
            preset=data.get('preset') or None,
            created_at=data.get('createdAt') or '',
            updated_at=data.get('updatedAt') or '',
            error_message=data.get('errorMessage') or None,
        )


def _as_int(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0
