"""
Diagnostics: API reachability and local storage checks.
"""

import logging
import platform

from vmx_monitor.core.config import AppConfig
from vmx_monitor.core.handle_store import HandleStore
from vmx_monitor.core.queue_client import QueueClient

logger = logging.getLogger(__name__)


def check_api(client: QueueClient) -> dict:
    """Return the API base URL and whether its health check passes."""
    online = client.health_check()
    return {"url": client.base_url, "status": "online" if online else "offline"}


def check_stored_directory(store: HandleStore) -> dict:
    """Report whether a directory grant is stored and still usable."""
    info = {"stored": False, "name": None, "accessible": False}
    capability = store.load()
    if capability is not None:
        info["stored"] = True
        info["name"] = capability.name
        info["accessible"] = store.verify(capability)
    return info


def get_diagnostics(config: AppConfig, store: HandleStore,
                    client: QueueClient | None = None) -> dict:
    """Gather all diagnostic information."""
    client = client or QueueClient(config.api_url, timeout=config.request_timeout_sec)
    backend = store.backend
    if getattr(backend, "in_memory", False) or not hasattr(backend, "db_path"):
        handles_db = "in-memory"
    else:
        handles_db = str(backend.db_path)
    return {
        "api": check_api(client),
        "directory": check_stored_directory(store),
        "config_path": str(config.path),
        "settings": config.as_dict(),
        "handles_db": handles_db,
        "python": platform.python_version(),
    }
