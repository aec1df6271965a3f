"""
VMX Monitor — setuptools / py2app build script.

Usage:
    # Development install:
    pip install -e .

    # macOS app bundle (alias mode — fast, links to source):
    python3 setup.py py2app -A

    # macOS app bundle (standalone — fully self-contained):
    python3 setup.py py2app

The built app will be in the dist/ directory.
"""

import os
import sys
from setuptools import setup

APP = ["main.py"]
APP_NAME = "VMXMonitor"

PACKAGES = [
    "vmx_monitor",
    "vmx_monitor.core",
    "vmx_monitor.desktop",
]

# Check if .icns icon exists (user builds it on macOS)
ICON_FILE = "AppIcon.icns" if os.path.exists("AppIcon.icns") else None

PY2APP_OPTIONS = {
    "argv_emulation": False,  # Don't use argv emulation with tkinter
    "plist": {
        "CFBundleName": APP_NAME,
        "CFBundleDisplayName": "VMX Monitor",
        "CFBundleIdentifier": "com.local.vmxmonitor",
        "CFBundleVersion": "1.0.0",
        "CFBundleShortVersionString": "1.0.0",
        "CFBundlePackageType": "APPL",
        "LSMinimumSystemVersion": "10.15",
        "NSHumanReadableCopyright": "Local use only",
        "LSUIElement": False,
        "NSHighResolutionCapable": True,
        "LSEnvironment": {
            "PYTHONDONTWRITEBYTECODE": "1",
        },
    },
    "packages": PACKAGES + [
        "tkinter",
        "requests",
    ],
    "includes": [
        "vmx_monitor.core.constants",
        "vmx_monitor.core.config",
        "vmx_monitor.core.error_codes",
        "vmx_monitor.core.models",
        "vmx_monitor.core.directory_access",
        "vmx_monitor.core.handle_store",
        "vmx_monitor.core.progress_parse",
        "vmx_monitor.core.directory_scan",
        "vmx_monitor.core.formatting",
        "vmx_monitor.core.tracker",
        "vmx_monitor.core.queue_client",
        "vmx_monitor.core.queue_poller",
        "vmx_monitor.core.diagnostics",
        "vmx_monitor.desktop.ui_main",
        "vmx_monitor.desktop.ui_components",
        "vmx_monitor.desktop.ui_settings",
        "sqlite3",
    ],
    "excludes": [
        "PyQt5", "PyQt6", "PySide2", "PySide6",
        "matplotlib", "numpy", "scipy", "pandas",
        "PIL", "cv2", "torch", "tensorflow",
        "pytest", "unittest",
    ],
    "site_packages": True,
}

# Add icon if available
if ICON_FILE:
    PY2APP_OPTIONS["iconfile"] = ICON_FILE

extra = {}
if "py2app" in sys.argv:
    extra = dict(
        app=APP,
        options={"py2app": PY2APP_OPTIONS},
        setup_requires=["py2app"],
    )

setup(
    name="vmx-monitor",
    version="1.0.0",
    description="Local monitor for VMX encoding progress files and the job queue",
    packages=PACKAGES,
    install_requires=[
        "requests>=2.28.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "gui_scripts": ["vmx-monitor = vmx_monitor.desktop.ui_main:main"],
    },
    python_requires=">=3.10",
    **extra,
)
