"""
Progress Tracker: owns one directory session.
Restores the saved directory grant, scans it on demand, and exposes the
tracked-file list plus a small state machine for the UI.
"""

import logging
from pathlib import Path
from typing import Callable, Optional

from vmx_monitor.core.config import AppConfig
from vmx_monitor.core.constants import ErrorCode, TrackerState, OUT_TIME_UNITS_PER_SEC
from vmx_monitor.core.directory_access import DirectoryCapability
from vmx_monitor.core.directory_scan import scan_directory
from vmx_monitor.core.error_codes import MonitorError
from vmx_monitor.core.handle_store import HandleStore
from vmx_monitor.core.models import TrackedFile

logger = logging.getLogger(__name__)

# Returns a capability, or None when the user dismissed the picker
DirectoryPicker = Callable[[], Optional[DirectoryCapability]]


def progress_percent(tracked: TrackedFile) -> int | None:
    """
    Percentage complete for one tracked file, or None when it has no sidecar data.
    Based on encoded output time against the target duration; always 0..100.
    """
    snapshot, target = tracked.snapshot, tracked.target
    if snapshot is None and target is None:
        return None
    if snapshot is not None and snapshot.is_finished:
        return 100
    if (snapshot is not None and target is not None
            and target.total_duration > 0 and snapshot.out_time_us > 0):
        seconds = snapshot.out_time_us / OUT_TIME_UNITS_PER_SEC
        ratio = seconds / target.total_duration * 100
        # round half up, not Python's banker's rounding
        return max(0, min(100, int(ratio + 0.5)))
    return 0


class ProgressTracker:
    """
    Directory session for the progress view.

    States: UNINITIALIZED → RESTORING → IDLE | ACTIVE, ACTIVE ⇄ SCANNING,
    and back to UNINITIALIZED on forget().
    """

    def __init__(self, store: HandleStore, config: AppConfig,
                 picker: DirectoryPicker | None = None):
        self.store = store
        self.config = config
        self.picker = picker
        self.state = TrackerState.UNINITIALIZED
        self.capability: DirectoryCapability | None = None
        self.directory_name: str = ''
        self.files: list[TrackedFile] = []
        self.error: str = ''

        self.on_change: Optional[Callable[[], None]] = None

    # ── Properties ────────────────────────────────────────────────────

    @property
    def is_supported(self) -> bool:
        return self.picker is not None

    @property
    def is_active(self) -> bool:
        return self.state in (TrackerState.ACTIVE, TrackerState.SCANNING)

    @property
    def is_busy(self) -> bool:
        return self.state in (TrackerState.RESTORING, TrackerState.SCANNING)

    # ── Session lifecycle ─────────────────────────────────────────────

    def restore(self):
        """Cold start: reuse the stored grant if it still works."""
        self._set_state(TrackerState.RESTORING)
        capability = self.store.load()

        if capability is None:
            self.directory_name = self.config.last_directory_name
            self._set_state(TrackerState.IDLE)
            return

        if not self.store.verify(capability):
            self.store.clear()
            # Name is kept for display only; access has to be granted again
            self.directory_name = self.config.last_directory_name or capability.name
            revoked = MonitorError(
                ErrorCode.ACCESS_REVOKED,
                f"Access to {self.directory_name} is no longer available. "
                "Please choose the directory again.")
            logger.info("Stored directory handle dropped: %s", revoked)
            self.error = revoked.message
            self.capability = None
            self._set_state(TrackerState.IDLE)
            return

        self.capability = capability
        self.directory_name = capability.name
        self._set_state(TrackerState.ACTIVE)
        try:
            self._scan()
            logger.info("Directory restored successfully")
        except MonitorError as e:
            logger.warning("Initial scan after restore failed: %s", e)

    def grant_access(self) -> bool:
        """
        Ask the user for a directory. Returns False if they cancelled.
        Raises MonitorError(FS_UNSUPPORTED) when no picker is available.
        """
        if self.picker is None:
            self._set_error("Directory access is not supported on this platform.")
            raise MonitorError(ErrorCode.FS_UNSUPPORTED,
                               "Directory access is not supported on this platform.")
        if self.state == TrackerState.SCANNING:
            return False

        capability = self.picker()
        if capability is None:
            return False

        self.capability = capability
        self.directory_name = capability.name
        self.files = []
        self.error = ''
        self.config.last_directory_name = capability.name
        self.store.save(capability)
        self._set_state(TrackerState.ACTIVE)
        self._scan()
        return True

    def refresh(self) -> bool:
        """
        Re-scan the current directory. Returns False if a scan is already running.
        Raises MonitorError on scan failure; the stored grant is kept.
        """
        if self.state == TrackerState.SCANNING:
            logger.debug("Refresh ignored: scan already in progress")
            return False
        if self.state != TrackerState.ACTIVE or self.capability is None:
            self._set_error("Please choose a directory first.")
            raise MonitorError(ErrorCode.NO_DIRECTORY, "Please choose a directory first.")
        self._scan()
        return True

    def forget(self):
        """Drop the grant, the stored record and the results."""
        self.store.clear()
        self.config.last_directory_name = ''
        self.capability = None
        self.directory_name = ''
        self.files = []
        self.error = ''
        self._set_state(TrackerState.UNINITIALIZED)

    # ── File actions ──────────────────────────────────────────────────

    def export_file(self, name: str, destination_dir: Path) -> Path:
        """Copy one listed file out of the directory without overwriting anything."""
        if self.capability is None:
            raise MonitorError(ErrorCode.NO_DIRECTORY, "Please choose a directory first.")
        try:
            data = self.capability.open_entry(name)
            destination_dir.mkdir(parents=True, exist_ok=True)
            target = _unique_path(destination_dir / name)
            target.write_bytes(data)
        except OSError as e:
            logger.error("Error exporting %s: %s", name, e)
            self._set_error(f"Failed to open file: {e}")
            raise MonitorError(ErrorCode.EXPORT_FAILED, f"Failed to open file: {e}") from e
        logger.info("Exported %s to %s", name, target)
        return target

    # ── Internals ─────────────────────────────────────────────────────

    def _scan(self):
        self._set_state(TrackerState.SCANNING)
        try:
            files = scan_directory(self.capability)
        except MonitorError as e:
            # Previous results stay visible until the next good scan
            self.error = e.message
            self._set_state(TrackerState.ACTIVE)
            raise
        self.files = files
        self.error = ''
        self._set_state(TrackerState.ACTIVE)

    def _set_error(self, message: str):
        self.error = message
        self._notify()

    def _set_state(self, state: str):
        self.state = state
        self._notify()

    def _notify(self):
        if self.on_change:
            try:
                self.on_change()
            except Exception as e:
                logger.error("Tracker change callback failed: %s", e, exc_info=True)


def _unique_path(path: Path) -> Path:
    if not path.exists():
        return path
    n = 1
    while True:
        candidate = path.with_name(f"{path.stem}_{n:03d}{path.suffix}")
        if not candidate.exists():
            return candidate
        n += 1
