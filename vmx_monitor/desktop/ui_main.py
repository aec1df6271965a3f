"""
Main application window for VMX Monitor.
Built with tkinter — no external UI dependencies.
Progress tab reads sidecar files from a chosen folder; Queue tab polls the job API.
"""

import logging
import threading
import tkinter as tk
from tkinter import ttk, filedialog, messagebox
from pathlib import Path
from typing import Optional

from vmx_monitor.core.constants import (
    APP_DISPLAY_NAME, APP_VERSION, APP_SUPPORT_DIR, LOG_DIR, TrackerState,
)
from vmx_monitor.core.config import AppConfig
from vmx_monitor.core.directory_access import LocalDirectory
from vmx_monitor.core.error_codes import MonitorError
from vmx_monitor.core.formatting import progress_status_text, queue_status_text
from vmx_monitor.core.handle_store import HandleStore, SqliteHandleBackend
from vmx_monitor.core.models import QueueJob
from vmx_monitor.core.queue_client import QueueClient
from vmx_monitor.core.queue_poller import QueuePoller, Scheduler
from vmx_monitor.core.tracker import ProgressTracker
from vmx_monitor.desktop.ui_components import FilesList, QueueList
from vmx_monitor.desktop.ui_settings import SettingsPanel, DiagnosticsPanel

logger = logging.getLogger(__name__)


class TkScheduler(Scheduler):
    """Scheduler on top of the Tk event loop."""

    def __init__(self, root: tk.Misc):
        self.root = root

    def call_later(self, delay_sec, callback):
        return self.root.after(int(delay_sec * 1000), callback)

    def cancel(self, token):
        try:
            self.root.after_cancel(token)
        except tk.TclError:
            pass

    def run_in_background(self, work, on_done):
        """Run `work` on a daemon thread and deliver the outcome via `after`."""
        def worker():
            try:
                result, error = work(), None
            except Exception as e:
                result, error = None, e
            try:
                self.root.after(0, lambda: on_done(result, error))
            except (RuntimeError, tk.TclError):
                # Window already destroyed
                logger.debug("Dropped background result after shutdown")

        threading.Thread(target=worker, daemon=True).start()


class MainWindow:
    """Main application window."""

    def __init__(self):
        self.root = tk.Tk()
        self.root.title(f"{APP_DISPLAY_NAME} v{APP_VERSION}")
        self.root.geometry("820x700")
        self.root.minsize(700, 550)

        # Initialize backend
        self._init_backend()

        # Build UI
        self._build_ui()

        # Restore saved directory, start polling the queue
        self.root.after(100, self._restore_directory)
        self.poller.start()

    def _init_backend(self):
        """Initialize config, handle store, tracker and queue poller."""
        APP_SUPPORT_DIR.mkdir(parents=True, exist_ok=True)

        self.config = AppConfig()
        self.store = HandleStore(SqliteHandleBackend())
        self.tracker = ProgressTracker(self.store, self.config, picker=self._pick_directory)
        self.scheduler = TkScheduler(self.root)
        self.poller = QueuePoller(
            QueueClient(self.config.api_url, timeout=self.config.request_timeout_sec),
            self.scheduler,
        )

        # Set callbacks
        self.tracker.on_change = self._refresh_progress_view
        self.poller.on_change = self._refresh_queue_view

    def _build_ui(self):
        """Build the main UI layout."""
        style = ttk.Style()
        try:
            style.theme_use('aqua')  # macOS native look
        except tk.TclError:
            try:
                style.theme_use('clam')
            except tk.TclError:
                pass

        self.notebook = ttk.Notebook(self.root)
        self.notebook.pack(fill=tk.BOTH, expand=True, padx=5, pady=5)

        # ── Tab 1: Progress ──
        progress_tab = ttk.Frame(self.notebook)
        self.notebook.add(progress_tab, text="  Progress  ")

        btn_frame = ttk.Frame(progress_tab)
        btn_frame.pack(fill=tk.X, padx=10, pady=(10, 5))

        self.choose_btn = ttk.Button(btn_frame, text="Choose Directory",
                                     command=self._on_choose_directory)
        self.choose_btn.pack(side=tk.LEFT, padx=(0, 5))

        self.refresh_btn = ttk.Button(btn_frame, text="Refresh",
                                      command=self._on_refresh_files, state=tk.DISABLED)
        self.refresh_btn.pack(side=tk.LEFT, padx=(0, 5))

        self.forget_btn = ttk.Button(btn_frame, text="Forget Directory",
                                     command=self._on_forget_directory, state=tk.DISABLED)
        self.forget_btn.pack(side=tk.LEFT, padx=(0, 5))

        dir_frame = ttk.Frame(progress_tab)
        dir_frame.pack(fill=tk.X, padx=10, pady=(0, 5))
        ttk.Label(dir_frame, text="Directory:").pack(side=tk.LEFT)
        self.dir_label = ttk.Label(dir_frame, text="(none)", foreground="blue")
        self.dir_label.pack(side=tk.LEFT, padx=5)

        self.progress_status_var = tk.StringVar(value="Restoring saved directory...")
        ttk.Label(progress_tab, textvariable=self.progress_status_var,
                  relief=tk.SUNKEN, anchor=tk.W).pack(side=tk.BOTTOM, fill=tk.X,
                                                      padx=10, pady=(0, 5))

        self.files_list = FilesList(progress_tab, on_export=self._on_export_file)
        self.files_list.pack(fill=tk.BOTH, expand=True, padx=10, pady=5)

        # ── Tab 2: Queue ──
        queue_tab = ttk.Frame(self.notebook)
        self.notebook.add(queue_tab, text="  Queue  ")

        queue_btns = ttk.Frame(queue_tab)
        queue_btns.pack(fill=tk.X, padx=10, pady=(10, 5))
        ttk.Button(queue_btns, text="Refresh",
                   command=self.poller.refresh).pack(side=tk.LEFT)

        self.queue_status_var = tk.StringVar(value="Loading queue...")
        ttk.Label(queue_tab, textvariable=self.queue_status_var,
                  relief=tk.SUNKEN, anchor=tk.W).pack(side=tk.BOTTOM, fill=tk.X,
                                                      padx=10, pady=(0, 5))

        self.queue_list = QueueList(queue_tab, on_cancel=self._on_cancel_job)
        self.queue_list.pack(fill=tk.BOTH, expand=True, padx=10, pady=5)

        # ── Tab 3: Settings ──
        settings_tab = ttk.Frame(self.notebook)
        self.notebook.add(settings_tab, text="  Settings  ")
        self.settings_panel = SettingsPanel(
            settings_tab, self.config, self.scheduler,
            on_config_changed=self._on_config_changed,
        )
        self.settings_panel.pack(fill=tk.BOTH, expand=True)

        # ── Tab 4: Diagnostics ──
        diag_tab = ttk.Frame(self.notebook)
        self.notebook.add(diag_tab, text="  Diagnostics  ")
        self.diag_panel = DiagnosticsPanel(diag_tab, self.config, self.store, self.scheduler)
        self.diag_panel.pack(fill=tk.BOTH, expand=True)

    # ── Directory picker ──────────────────────────────────────────────

    def _pick_directory(self) -> Optional[LocalDirectory]:
        folder = filedialog.askdirectory(title="Select Output Folder", mustexist=True)
        if not folder:
            return None
        return LocalDirectory(folder)

    # ── Event handlers ────────────────────────────────────────────────

    def _restore_directory(self):
        self.tracker.restore()

    # Tracker errors are recorded on the tracker and rendered by
    # _refresh_progress_view; handlers only log them.

    def _on_choose_directory(self):
        try:
            self.tracker.grant_access()
        except MonitorError as e:
            logger.warning("Choose directory failed: %s", e)

    def _on_refresh_files(self):
        try:
            self.tracker.refresh()
        except MonitorError as e:
            logger.warning("Refresh failed: %s", e)

    def _on_forget_directory(self):
        self.tracker.forget()

    def _on_export_file(self, name: str):
        try:
            target = self.tracker.export_file(name, Path(self.config.export_root))
        except MonitorError as e:
            logger.warning("Export failed: %s", e)
            return
        self.progress_status_var.set(f"Saved {name} to {target}")

    def _on_cancel_job(self, job: QueueJob):
        action = "remove" if job.is_finished else "cancel"
        self.poller.cancel(
            job.id,
            confirm=lambda _id: messagebox.askyesno(
                "Confirm", f"Are you sure you want to {action} this job?",
                parent=self.root),
        )

    def _on_config_changed(self):
        """Config was changed in settings."""
        self.poller.client = QueueClient(self.config.api_url,
                                         timeout=self.config.request_timeout_sec)
        self.poller.refresh()

    # ── UI refresh ────────────────────────────────────────────────────

    def _refresh_progress_view(self):
        tracker = self.tracker
        busy = tracker.is_busy
        self.dir_label.configure(text=tracker.directory_name or "(none)")
        self.choose_btn.configure(
            text="Change Directory" if tracker.is_active else "Choose Directory",
            state=tk.DISABLED if busy else tk.NORMAL,
        )
        self.refresh_btn.configure(
            state=tk.NORMAL if tracker.state == TrackerState.ACTIVE else tk.DISABLED)
        self.forget_btn.configure(
            state=tk.NORMAL if tracker.state == TrackerState.ACTIVE else tk.DISABLED)

        self.progress_status_var.set(progress_status_text(tracker))
        if tracker.state == TrackerState.SCANNING:
            self.root.update_idletasks()
        elif tracker.state == TrackerState.ACTIVE:
            self.files_list.update_files(tracker.files)
        elif not busy:
            self.files_list.show_message("No directory selected")

    def _refresh_queue_view(self):
        poller = self.poller
        self.queue_status_var.set(queue_status_text(poller))
        if not poller.loading:
            self.queue_list.update_jobs(poller.jobs, poller.cancelling)
        self.root.update_idletasks()

    # ── Run ───────────────────────────────────────────────────────────

    def run(self):
        """Start the application main loop."""
        self.root.mainloop()

    def cleanup(self):
        """Cleanup on exit."""
        self.poller.stop()
        self.store.backend.close()


def main():
    """Application entry point."""
    # Configure logging (only add file handler if not already configured)
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
            handlers=[
                logging.FileHandler(LOG_DIR / "app.log"),
            ],
        )

    app = MainWindow()
    try:
        app.run()
    finally:
        app.cleanup()


if __name__ == "__main__":
    main()
