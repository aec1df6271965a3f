"""
Reusable UI components for VMX Monitor.
Built with tkinter (ships with Python).
"""

import tkinter as tk
from tkinter import ttk
from typing import Callable

from vmx_monitor.core.constants import QueueStatus, JOB_TYPE_BLACK_SCREEN
from vmx_monitor.core.formatting import (
    format_file_size, format_timestamp, format_iso_date,
    encoder_label, job_type_label, short_id,
)
from vmx_monitor.core.models import QueueJob, TrackedFile
from vmx_monitor.core.tracker import progress_percent

_STATUS_COLORS = {
    QueueStatus.COMPLETED: "#28a745",
    QueueStatus.PROCESSING: "#007bff",
    QueueStatus.FAILED: "#dc3545",
    QueueStatus.PENDING: "#b8860b",
    QueueStatus.CANCELLED: "#6c757d",
}


class ScrollableList(ttk.LabelFrame):
    """Labelled, vertically scrolling container that rebuilds its rows on update."""

    def __init__(self, parent, title: str, empty_text: str, **kwargs):
        super().__init__(parent, text=f"  {title}  ", padding=5, **kwargs)
        self.empty_text = empty_text
        self._build()

    def _build(self):
        # Canvas + scrollbar for scrolling
        self.canvas = tk.Canvas(self, highlightthickness=0)
        self.scrollbar = ttk.Scrollbar(self, orient=tk.VERTICAL,
                                       command=self.canvas.yview)
        self.inner_frame = ttk.Frame(self.canvas)

        self.inner_frame.bind(
            "<Configure>",
            lambda e: self.canvas.configure(scrollregion=self.canvas.bbox("all")),
        )

        self.canvas_window = self.canvas.create_window(
            (0, 0), window=self.inner_frame, anchor=tk.NW,
        )
        self.canvas.configure(yscrollcommand=self.scrollbar.set)

        self.canvas.pack(side=tk.LEFT, fill=tk.BOTH, expand=True)
        self.scrollbar.pack(side=tk.RIGHT, fill=tk.Y)

        self.canvas.bind("<Configure>", self._on_canvas_resize)
        self.show_message(self.empty_text)

    def _on_canvas_resize(self, event):
        self.canvas.itemconfig(self.canvas_window, width=event.width)

    def clear(self):
        for widget in self.inner_frame.winfo_children():
            widget.destroy()

    def show_message(self, text: str):
        self.clear()
        ttk.Label(
            self.inner_frame, text=text,
            foreground="gray", font=("Helvetica", 12, "italic"),
        ).pack(pady=20)

    def add_row(self, row: tk.Widget):
        row.pack(fill=tk.X, padx=5, pady=2)
        ttk.Separator(self.inner_frame, orient=tk.HORIZONTAL).pack(fill=tk.X, padx=5)


# ── Progress tab ──────────────────────────────────────────────────────

class FileRow(ttk.Frame):
    """One output video with its progress bar and sidecar details."""

    def __init__(self, parent, tracked: TrackedFile,
                 on_export: Callable[[str], None] = None, **kwargs):
        super().__init__(parent, **kwargs)
        self.file_name = tracked.name
        self.on_export = on_export
        self._build(tracked)

    def _build(self, tracked: TrackedFile):
        entry = tracked.entry

        header = ttk.Frame(self)
        header.pack(fill=tk.X)
        ttk.Label(header, text=entry.name, font=("Helvetica", 12, "bold"),
                  anchor=tk.W).pack(side=tk.LEFT, padx=(5, 10))
        ttk.Button(header, text="Export", width=7,
                   command=self._do_export).pack(side=tk.RIGHT, padx=2)

        ttk.Label(
            self,
            text=f"{format_file_size(entry.size)}   {format_timestamp(entry.last_modified)}",
            foreground="gray",
        ).pack(anchor=tk.W, padx=5)

        if not tracked.has_progress:
            return

        snapshot, target = tracked.snapshot, tracked.target

        if snapshot is not None and target is not None:
            pct = progress_percent(tracked) or 0
            bar_row = ttk.Frame(self)
            bar_row.pack(fill=tk.X, padx=5, pady=(4, 0))
            ttk.Progressbar(bar_row, value=pct, maximum=100,
                            length=300).pack(side=tk.LEFT)
            label = "100% Complete" if snapshot.is_finished else f"{pct}%"
            ttk.Label(bar_row, text=label, width=14).pack(side=tk.LEFT, padx=5)

        finished = snapshot is not None and snapshot.is_finished
        ttk.Label(
            self,
            text="Processing Complete" if finished else "Processing...",
            foreground="#28a745" if finished else "#007bff",
        ).pack(anchor=tk.W, padx=5)

        if target is not None:
            parts = [f"Duration: {target.total_duration:.2f}s",
                     f"Total Frames: {target.total_frames:,}"]
            if target.width and target.height:
                parts.append(f"Resolution: {target.width}x{target.height}")
            if target.fps:
                parts.append(f"FPS: {target.fps}")
            parts.append(f"Encoder: {encoder_label(target.encoder)}")
            parts.append(f"Preset: {target.preset}")
            if target.fade_effect:
                parts.append(f"Fade: {target.fade_effect}")
            ttk.Label(self, text="   ".join(parts), wraplength=650,
                      justify=tk.LEFT).pack(anchor=tk.W, padx=5)

        if snapshot is not None:
            parts = []
            if snapshot.frame > 0:
                parts.append(f"Frame: {snapshot.frame:,}")
            if snapshot.fps > 0:
                parts.append(f"FPS: {snapshot.fps:.2f}")
            if snapshot.bitrate:
                parts.append(f"Bitrate: {snapshot.bitrate}")
            if snapshot.out_time:
                parts.append(f"Time: {snapshot.out_time}")
            if snapshot.speed:
                parts.append(f"Speed: {snapshot.speed}")
            if snapshot.stream_quality is not None:
                parts.append(f"Quality: {snapshot.stream_quality:.1f}")
            if parts:
                ttk.Label(self, text="   ".join(parts), wraplength=650,
                          justify=tk.LEFT).pack(anchor=tk.W, padx=5)

    def _do_export(self):
        if self.on_export:
            self.on_export(self.file_name)


class FilesList(ScrollableList):
    """Scrollable list of tracked output files."""

    def __init__(self, parent, on_export=None, **kwargs):
        self.on_export = on_export
        super().__init__(parent, "Output Files",
                         "No video or progress files in this directory", **kwargs)

    def update_files(self, files: list[TrackedFile]):
        if not files:
            self.show_message(self.empty_text)
            return
        self.clear()
        ttk.Label(self.inner_frame, text=f"Total: {len(files)} file(s)",
                  font=("Helvetica", 11, "bold")).pack(anchor=tk.W, padx=5, pady=(0, 4))
        for tracked in files:
            self.add_row(FileRow(self.inner_frame, tracked, on_export=self.on_export))


# ── Queue tab ─────────────────────────────────────────────────────────

class QueueJobRow(ttk.Frame):
    """Single remote job with status, progress and a cancel/remove action."""

    def __init__(self, parent, job: QueueJob, cancelling: bool = False,
                 on_cancel: Callable[[QueueJob], None] = None, **kwargs):
        super().__init__(parent, **kwargs)
        self.job = job
        self.on_cancel = on_cancel
        self._build(job, cancelling)

    def _build(self, job: QueueJob, cancelling: bool):
        color = _STATUS_COLORS.get(job.status, "#6c757d")

        header = ttk.Frame(self)
        header.pack(fill=tk.X)
        ttk.Label(header, text=job_type_label(job.job_type),
                  font=("Helvetica", 12, "bold")).pack(side=tk.LEFT, padx=(5, 10))
        ttk.Label(header, text=f"ID: {short_id(job.id)}",
                  foreground="gray").pack(side=tk.LEFT)
        ttk.Label(header, text=job.status.upper(), foreground=color,
                  font=("Helvetica", 11, "bold")).pack(side=tk.RIGHT, padx=5)

        bar_row = ttk.Frame(self)
        bar_row.pack(fill=tk.X, padx=5, pady=(4, 0))
        ttk.Progressbar(bar_row, value=max(0, min(100, job.progress)),
                        maximum=100, length=300).pack(side=tk.LEFT)
        ttk.Label(bar_row, text=f"{job.progress}%", width=6).pack(side=tk.LEFT, padx=5)

        details = []
        if job.job_type == JOB_TYPE_BLACK_SCREEN:
            details += [f"Width: {job.width}px", f"Height: {job.height}px", f"FPS: {job.fps}"]
        if job.encoder:
            details.append(f"Encoder: {encoder_label(job.encoder)}")
        if job.preset:
            details.append(f"Preset: {job.preset}")
        details.append(f"Created: {format_iso_date(job.created_at)}")
        details.append(f"Updated: {format_iso_date(job.updated_at)}")
        ttk.Label(self, text="   ".join(details), wraplength=650,
                  justify=tk.LEFT).pack(anchor=tk.W, padx=5)

        if job.error_message:
            ttk.Label(self, text=f"Error: {job.error_message}", foreground="red",
                      wraplength=650).pack(anchor=tk.W, padx=5)

        if job.status == QueueStatus.COMPLETED and job.output_file:
            ttk.Label(self, text=f"Output: {job.output_file}",
                      foreground="#28a745", wraplength=650).pack(anchor=tk.W, padx=5)

        if job.is_finished:
            text = "Removing..." if cancelling else "Remove"
        else:
            text = "Cancelling..." if cancelling else "Cancel"
        btn = ttk.Button(self, text=text, command=self._do_cancel)
        if cancelling:
            btn.configure(state=tk.DISABLED)
        btn.pack(anchor=tk.E, padx=5, pady=(2, 4))

    def _do_cancel(self):
        if self.on_cancel:
            self.on_cancel(self.job)


class QueueList(ScrollableList):
    """Scrollable list of remote queue jobs."""

    def __init__(self, parent, on_cancel=None, **kwargs):
        self.on_cancel = on_cancel
        super().__init__(parent, "Queue Processing",
                         "Queue is empty. No jobs are running.", **kwargs)

    def update_jobs(self, jobs: list[QueueJob], cancelling: set[str]):
        if not jobs:
            self.show_message(self.empty_text)
            return
        self.clear()
        for job in jobs:
            self.add_row(QueueJobRow(self.inner_frame, job,
                                     cancelling=job.id in cancelling,
                                     on_cancel=self.on_cancel))
