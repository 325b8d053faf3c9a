"""Shared pytest fixtures for gendetect tests."""
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Generator

import pytest
import yaml

from gendetect.core.constants import ConfigKey
from gendetect.infrastructure import logger as logger_module


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def workspace(temp_dir: Path) -> Path:
    """Create a project tree with generated and hand-written files."""
    root = temp_dir / "project"
    root.mkdir()

    (root / "main.py").write_text("import api\n\nprint(api.VERSION)\n")
    (root / "README.md").write_text("# Project\n")

    (root / "src").mkdir()
    (root / "src" / "client.ts").write_text("// @generated by protoc\nexport const x = 1;\n")
    (root / "src" / "util.ts").write_text("export const y = 2;\n")

    (root / "docs").mkdir()
    (root / "docs" / "notes.md").write_text("This page is autogenerated nightly.\n")

    # Marker beyond the default five-line scan window
    (root / "late.py").write_text("\n" * 10 + "# @generated\n")

    (root / ".git").mkdir()
    (root / ".git" / "HEAD").write_text("ref: refs/heads/main  @generated\n")

    return root


@pytest.fixture
def detection_section() -> Dict[str, Any]:
    """Detection settings that only use content patterns."""
    return {
        ConfigKey.REGEX_PATTERNS: ["@generated", "autogenerated"],
        ConfigKey.GIT_ATTRIBUTES: [],
        ConfigKey.EXCLUDE_PATTERNS: [],
        ConfigKey.MAX_SEARCH_CHARS: 1024,
        ConfigKey.MAX_SEARCH_LINES: 5,
    }


@pytest.fixture
def config_file(temp_dir: Path, detection_section: Dict[str, Any]) -> Path:
    """Write a YAML configuration file holding the detection section."""
    path = temp_dir / "gendetect.yaml"
    with open(path, "w") as f:
        yaml.safe_dump({ConfigKey.NAMESPACE: detection_section}, f)
    return path


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch) -> None:
    """Keep GENDETECT_* variables from the outer environment out of tests."""
    for name in list(os.environ):
        if name.startswith("GENDETECT_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def reset_logging_configuration() -> Generator[None, None, None]:
    """Undo configure_logging calls made by a test."""
    yield
    handler = logger_module._configured_handler
    if handler is not None:
        for registered in list(logger_module._loggers.values()):
            registered.remove_handler(handler)
        handler.close()
    logger_module._configured_handler = None
    logger_module._configured_level = None
    for registered in list(logger_module._loggers.values()):
        registered.set_level("INFO")
