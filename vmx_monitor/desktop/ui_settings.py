"""
Settings and Diagnostics UI panels for VMX Monitor.
"""

import tkinter as tk
from tkinter import ttk, filedialog

from vmx_monitor.core.config import is_valid_api_url, normalize_api_url
from vmx_monitor.core.constants import APP_VERSION, POLL_INTERVAL_SEC
from vmx_monitor.core.diagnostics import get_diagnostics
from vmx_monitor.core.queue_client import QueueClient


class SettingsPanel(ttk.Frame):
    """Settings panel: queue API URL and export folder."""

    def __init__(self, parent, config, scheduler, on_config_changed=None, **kwargs):
        super().__init__(parent, **kwargs)
        self.config = config
        self.scheduler = scheduler
        self.on_config_changed = on_config_changed
        self._build()

    def _build(self):
        # ── API URL ──
        api_frame = ttk.LabelFrame(self, text="  Queue API  ", padding=10)
        api_frame.pack(fill=tk.X, padx=10, pady=5)

        url_row = ttk.Frame(api_frame)
        url_row.pack(fill=tk.X)
        ttk.Label(url_row, text="API URL:").pack(side=tk.LEFT, padx=(0, 10))
        self.url_var = tk.StringVar(value=self.config.api_url)
        ttk.Entry(url_row, textvariable=self.url_var, width=40).pack(
            side=tk.LEFT, fill=tk.X, expand=True, padx=(0, 6))
        ttk.Button(url_row, text="Save", command=self._save_api_url).pack(side=tk.LEFT)
        ttk.Button(url_row, text="Test", command=self._test_api_url).pack(side=tk.LEFT, padx=(6, 0))

        self.api_status_label = ttk.Label(api_frame, text="", foreground="gray",
                                          font=("Helvetica", 10))
        self.api_status_label.pack(anchor=tk.W, pady=(4, 0))

        ttk.Label(api_frame, text=f"The queue is refreshed every {POLL_INTERVAL_SEC:g} seconds.",
                  foreground="gray").pack(anchor=tk.W, pady=(4, 0))

        # ── Export folder ──
        export_frame = ttk.LabelFrame(self, text="  Export Folder  ", padding=10)
        export_frame.pack(fill=tk.X, padx=10, pady=5)

        self.export_var = tk.StringVar(value=self.config.export_root)
        ttk.Label(export_frame, textvariable=self.export_var, wraplength=400).pack(
            side=tk.LEFT, fill=tk.X, expand=True)
        ttk.Button(export_frame, text="Change...",
                   command=self._change_export).pack(side=tk.RIGHT)

        ttk.Label(self, text=f"Version {APP_VERSION}", foreground="gray").pack(
            anchor=tk.W, padx=10, pady=(10, 0))

    def _save_api_url(self):
        entered = normalize_api_url(self.url_var.get())
        if not is_valid_api_url(entered):
            self.api_status_label.configure(
                text="Not saved: the URL must start with http:// or https://",
                foreground="red")
            return
        self.config.set('api_url', entered)
        self.url_var.set(self.config.api_url)
        self.api_status_label.configure(text="Saved", foreground="green")
        self._changed()

    def _test_api_url(self):
        self.api_status_label.configure(text="Checking...", foreground="gray")
        client = QueueClient(self.url_var.get(), timeout=self.config.request_timeout_sec)
        self.scheduler.run_in_background(
            client.health_check,
            lambda online, _error: self._show_api_status(client.base_url, bool(online)))

    def _show_api_status(self, url: str, online: bool):
        if online:
            self.api_status_label.configure(
                text=f"API Server Online ({url})", foreground="green")
        else:
            self.api_status_label.configure(
                text=f"API Server Offline - make sure it is running at {url}",
                foreground="red")

    def _change_export(self):
        folder = filedialog.askdirectory(
            title="Select Export Folder",
            initialdir=self.config.export_root,
        )
        if folder:
            self.config.export_root = folder
            self.export_var.set(folder)
            self._changed()

    def _changed(self):
        if self.on_config_changed:
            self.on_config_changed()


class DiagnosticsPanel(ttk.Frame):
    """Shows API status and stored-directory state."""

    def __init__(self, parent, config, store, scheduler, **kwargs):
        super().__init__(parent, **kwargs)
        self.config = config
        self.store = store
        self.scheduler = scheduler
        self._build()

    def _build(self):
        ttk.Button(self, text="Run Diagnostics",
                   command=self._run).pack(anchor=tk.W, padx=10, pady=10)
        self.output = tk.Text(self, height=14, wrap=tk.WORD,
                              font=("Menlo", 11), state=tk.DISABLED)
        self.output.pack(fill=tk.BOTH, expand=True, padx=10, pady=(0, 10))

    def _run(self):
        self._write("Running diagnostics...")
        self.scheduler.run_in_background(
            lambda: get_diagnostics(self.config, self.store), self._show)

    def _show(self, info, error):
        if error is not None:
            self._write(f"Diagnostics failed: {error}")
            return
        directory = info["directory"]
        if directory["stored"]:
            dir_line = (f"{directory['name']} "
                        f"({'accessible' if directory['accessible'] else 'NOT accessible'})")
        else:
            dir_line = "none"
        lines = [
            f"API:            {info['api']['url']} ({info['api']['status']})",
            f"Directory:      {dir_line}",
            f"Config file:    {info['config_path']}",
            *(f"  {key}: {value}" for key, value in sorted(info["settings"].items())),
            f"Handles DB:     {info['handles_db']}",
            f"Python:         {info['python']}",
        ]
        self._write("\n".join(lines))

    def _write(self, text: str):
        self.output.configure(state=tk.NORMAL)
        self.output.delete("1.0", tk.END)
        self.output.insert("1.0", text)
        self.output.configure(state=tk.DISABLED)
