#!/usr/bin/env python3
"""
VMX Monitor v1.0.0 — Main entry point.
Can be bundled with py2app into a native macOS .app.
"""

import sys
import logging
import traceback
from pathlib import Path
from datetime import datetime

# ── Determine project root ────────────────────────────────────────────
if getattr(sys, 'frozen', False):
    # Running inside a frozen bundle
    PROJECT_ROOT = Path(getattr(sys, '_MEIPASS', Path(sys.executable).parent))
else:
    # Running from source
    PROJECT_ROOT = Path(__file__).resolve().parent

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from vmx_monitor.core.constants import APP_DISPLAY_NAME, APP_VERSION, LOG_DIR

# ── Logging setup ─────────────────────────────────────────────────────
LOG_DIR.mkdir(parents=True, exist_ok=True)
LOG_FILE = LOG_DIR / "app.log"

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        logging.FileHandler(LOG_FILE, encoding="utf-8"),
    ],
)
logger = logging.getLogger("vmx-monitor")


def show_crash_dialog(error_msg: str):
    """Show an error box on crash when a display is available."""
    try:
        import tkinter as tk
        from tkinter import messagebox
        root = tk.Tk()
        root.withdraw()
        messagebox.showerror(
            f"{APP_DISPLAY_NAME} Error",
            f"{error_msg[:500]}\n\nCheck logs at:\n{LOG_FILE}",
        )
        root.destroy()
    except Exception:
        print(f"{APP_DISPLAY_NAME} error: {error_msg}", file=sys.stderr)


def main():
    logger.info("=" * 60)
    logger.info("%s v%s starting at %s", APP_DISPLAY_NAME, APP_VERSION,
                datetime.now().isoformat())
    logger.info("Python: %s", sys.executable)
    logger.info("Project root: %s", PROJECT_ROOT)
    logger.info("Frozen: %s", getattr(sys, 'frozen', False))
    logger.info("=" * 60)

    try:
        from vmx_monitor.desktop.ui_main import main as run_app
        run_app()
    except Exception as e:
        error_msg = f"{type(e).__name__}: {e}"
        logger.critical("Fatal error: %s\n%s", error_msg, traceback.format_exc())
        show_crash_dialog(error_msg)
        sys.exit(1)


if __name__ == "__main__":
    main()
