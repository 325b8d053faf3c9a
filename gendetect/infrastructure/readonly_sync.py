#!/usr/bin/env python3
"""Read-only allow-list writer for gendetect.

Publishes the generated-file allow-list into a host settings file, for
example ``.vscode/settings.json``:

    {"files.readonlyInclude": {"src/gen.ts": true}}

The previous allow-list is replaced; every other setting is kept. YAML is
used for ``.yaml``/``.yml`` files, JSON otherwise.

Example:
    >>> writer = ReadOnlySettingsWriter(".vscode/settings.json")
    >>> coordinator.on_readonly_sync(writer)
"""

import json
import os
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, Union

import yaml

from gendetect.core.constants import ConfigKey, ErrorCode
from gendetect.infrastructure.logger import get_logger

logger = get_logger("gendetect.readonly")

YAML_SUFFIXES = (".yaml", ".yml")


class SyncError(Exception):
    """Settings file could not be read or written."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INTERNAL_ERROR):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


def build_readonly_include(paths: Iterable[str]) -> Dict[str, bool]:
    """Turn generated-file paths into a ``{path: True}`` allow-list."""
    return {path: True for path in paths}


class ReadOnlySettingsWriter:
    """Callable sink that stores the allow-list under one settings key."""

    def __init__(self, settings_path: Union[str, Path], key: str = ConfigKey.READONLY_INCLUDE):
        """
        Args:
            settings_path: Settings file to update (created if missing)
            key: Top-level settings key holding the allow-list
        """
        self.settings_path = Path(settings_path).expanduser()
        self.key = key
        self._lock = threading.Lock()

    @property
    def is_yaml(self) -> bool:
        return self.settings_path.suffix.lower() in YAML_SUFFIXES

    def __call__(self, include: Dict[str, bool]) -> None:
        self.write(include)

    def read(self) -> Dict[str, Any]:
        """Load the current settings, or {} if the file does not exist.

        Raises:
            SyncError: If the file exists but cannot be parsed
        """
        if not self.settings_path.exists():
            return {}

        try:
            with open(self.settings_path, "r", encoding="utf-8") as f:
                if self.is_yaml:
                    data = yaml.safe_load(f)
                else:
                    text = f.read()
                    data = json.loads(text) if text.strip() else {}
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise SyncError(f"Cannot read settings {self.settings_path}: {e}", ErrorCode.INVALID_INPUT)

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise SyncError(f"Settings file is not a mapping: {self.settings_path}", ErrorCode.INVALID_INPUT)
        return data

    def write(self, include: Dict[str, bool]) -> None:
        """Replace the allow-list in the settings file.

        Raises:
            SyncError: If the settings cannot be read or written
        """
        with self._lock:
            settings = self.read()
            if settings.get(self.key) == include:
                return

            settings[self.key] = dict(include)
            tmp_path = self.settings_path.with_name(self.settings_path.name + ".tmp")
            try:
                self.settings_path.parent.mkdir(parents=True, exist_ok=True)
                with open(tmp_path, "w", encoding="utf-8") as f:
                    if self.is_yaml:
                        yaml.safe_dump(settings, f, default_flow_style=False, sort_keys=False)
                    else:
                        json.dump(settings, f, indent=4)
                        f.write("\n")
                os.replace(tmp_path, self.settings_path)
            except OSError as e:
                raise SyncError(f"Cannot write settings {self.settings_path}: {e}", ErrorCode.PERMISSION_DENIED)

        logger.info("Read-only allow-list updated", path=str(self.settings_path), files=len(include))
