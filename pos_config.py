# Copyright [2025] [ecki]
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-
"""
Configuration for the position bookmark manager.
Constants plus user settings stored as JSON in the config directory.
"""
import json
from pathlib import Path


class PositionConfig:
    """Fixed configuration values"""

    MIN_ROWS = 5
    REFRESH_INTERVAL_MS = 500
    DEFAULT_FILENAME = "positions.txt"

    CSV_HEADER = "X,Y,Z,T,Note"
    HEADER_LINES = ("x,y,z,t", "x,y,z,t,note")

    # Max fields per imported line: X, Y, Z, T, note
    MAX_FIELDS = 5

    SNAPSHOT_SIZE = 256

    CONFIG_DIR = Path("config")
    SETTINGS_FILE = "pos_bookmarks.json"


class Settings:
    """User settings persisted as JSON"""

    DEFAULTS = {
        'min_rows': PositionConfig.MIN_ROWS,
        'refresh_interval_ms': PositionConfig.REFRESH_INTERVAL_MS,
        'last_directory': str(Path.home()),
        'log_level': 'INFO',
        'log_to_file': True,
        'snapshot_size': PositionConfig.SNAPSHOT_SIZE,
    }

    def __init__(self, config_dir=None, **values):
        self.config_dir = Path(config_dir) if config_dir else PositionConfig.CONFIG_DIR
        self.values = dict(self.DEFAULTS)
        self.values.update({k: v for k, v in values.items() if k in self.DEFAULTS})
        self.load_error = None

    @property
    def path(self):
        return self.config_dir / PositionConfig.SETTINGS_FILE

    def __getattr__(self, name):
        values = self.__dict__.get('values')
        if values is not None and name in values:
            return values[name]
        raise AttributeError(name)

    def get(self, key, default=None):
        return self.values.get(key, default)

    def set(self, key, value):
        if key not in self.DEFAULTS:
            raise KeyError(f"Unknown setting: {key}")
        self.values[key] = value

    @classmethod
    def load(cls, config_dir=None):
        """
        Load settings from the JSON file.

        A missing file gives the defaults. An unreadable or malformed file
        also gives the defaults, with the reason kept in ``load_error``.
        """
        settings = cls(config_dir)
        if not settings.path.exists():
            return settings

        try:
            with open(settings.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            settings.load_error = str(e)
            return settings

        if not isinstance(data, dict):
            settings.load_error = "settings file is not a JSON object"
            return settings

        for key, default in cls.DEFAULTS.items():
            value = data.get(key, default)
            if isinstance(default, bool):
                settings.values[key] = bool(value)
            elif isinstance(default, int):
                try:
                    settings.values[key] = max(1, int(value))
                except (TypeError, ValueError):
                    settings.values[key] = default
            else:
                settings.values[key] = str(value)
        return settings

    def save(self):
        """Write settings to the JSON file and return its path"""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(self.values, f, indent=4, ensure_ascii=False)
        return self.path
