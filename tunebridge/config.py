import copy
import json
import logging
import os
import sys

from tunebridge.personas import INNERTUBE_API_KEY, MIRROR_INSTANCES

LOG = logging.getLogger(__name__)

# When frozen (PyInstaller) use the exe directory; otherwise use the directory
# of the main script so config.json stays alongside the app regardless of
# where the user launches it from.
if getattr(sys, 'frozen', False):
    APP_DIR = os.path.dirname(sys.executable)
else:
    APP_DIR = os.path.dirname(os.path.abspath(sys.argv[0]))

CONFIG_FILE = os.path.join(APP_DIR, "config.json")

DEFAULT_CONFIG = {
    "proxy_host": "127.0.0.1",
    "proxy_port": 9876,
    "proxy_startup_delay_ms": 100,  # let the host UI settle before binding
    "innertube_api_key": INNERTUBE_API_KEY,
    "innertube_timeout_seconds": 30,
    "mirror_timeout_seconds": 10,
    "media_timeout_seconds": 30,
    "mirror_instances": list(MIRROR_INSTANCES),
    "fast_start_bytes": 256 * 1024,  # first upstream window when the player sends no Range
    "prefetch_window_bytes": 512 * 1024,  # cap on any single upstream range fetch
    "download_path": "",  # empty => Music folder, then Downloads
    "download_subdir": "TuneBridge",
    "download_quality": "high",
    "log_level": "INFO",
}


class ConfigManager:
    def __init__(self, path=None):
        self.path = path or CONFIG_FILE
        self.config = self.load_config()

    def load_config(self):
        if os.path.exists(self.path):
            try:
                with open(self.path, 'r', encoding='utf-8') as f:
                    loaded = json.load(f)
                    return self._apply_defaults(loaded)
            except (OSError, ValueError) as e:
                LOG.warning("Error loading config %s: %s", self.path, e)
        return copy.deepcopy(DEFAULT_CONFIG)

    def _apply_defaults(self, cfg: dict) -> dict:
        """
        Merge any missing default keys into an existing config without clobbering
        user settings.
        """
        merged = cfg if isinstance(cfg, dict) else {}
        for key, val in DEFAULT_CONFIG.items():
            merged.setdefault(key, copy.deepcopy(val))
        return merged

    def save_config(self):
        try:
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump(self.config, f, indent=4)
        except OSError as e:
            LOG.warning("Error saving config %s: %s", self.path, e)

    def get(self, key, default=None):
        return self.config.get(key, default)

    def set(self, key, value):
        self.config[key] = value
        self.save_config()
