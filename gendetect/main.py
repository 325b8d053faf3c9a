#!/usr/bin/env python3
"""Main controller for long-running gendetect sessions.

This module handles:
- Component initialization (engine, coordinator, decorations, sinks)
- Configuration hot-reload wiring
- File system watching
- Signal handling for graceful shutdown
- Cleanup on exit

Example:
    >>> from gendetect.main import run_gendetect
    >>> run_gendetect(args, config, logger)
"""

import argparse
import signal
import sys
import threading
from typing import List, Optional

from gendetect.core.constants import ConfigKey
from gendetect.core.identity import FileIdentity, WorkspaceRoots
from gendetect.detection.coordinator import ChangeCoordinator
from gendetect.detection.decorations import DecorationProvider
from gendetect.detection.engine import ClassificationEngine
from gendetect.infrastructure.config_manager import ConfigManager
from gendetect.infrastructure.file_watcher import FileWatcher
from gendetect.infrastructure.logger import Logger
from gendetect.infrastructure.readonly_sync import ReadOnlySettingsWriter
from gendetect.rules.ruleset import RuleSet

# Seconds between shutdown checks in the main loop
POLL_INTERVAL = 1.0


class GenDetectMain:
    """
    Main class for a watched gendetect session.

    Handles component lifecycle, event wiring, and shutdown.
    """

    def __init__(self, args: argparse.Namespace, config: ConfigManager, logger: Logger):
        """
        Initialize gendetect main controller.

        Args:
            args: Parsed command-line arguments (``roots``, ``settings``, ``initial_scan``)
            config: Loaded configuration manager
            logger: Logger instance
        """
        self.args = args
        self.config = config
        self.logger = logger
        self.shutdown_event = threading.Event()

        # Components
        self.roots: Optional[WorkspaceRoots] = None
        self.engine: Optional[ClassificationEngine] = None
        self.decorations: Optional[DecorationProvider] = None
        self.coordinator: Optional[ChangeCoordinator] = None
        self.settings_writer: Optional[ReadOnlySettingsWriter] = None
        self.file_watcher: Optional[FileWatcher] = None

    def initialize_components(self) -> None:
        """
        Initialize all gendetect components.

        Creates and configures:
        - WorkspaceRoots
        - ClassificationEngine
        - DecorationProvider
        - ChangeCoordinator
        - FileWatcher

        Raises:
            Exception: If component initialization fails
        """
        self.logger.info("Initializing components...")

        # 1. Workspace roots
        self.roots = WorkspaceRoots(self.args.roots)
        self.logger.debug(f"Workspace roots: {len(self.roots)}")

        # 2. Classification engine
        self.logger.debug("Creating ClassificationEngine")
        section = self.config.section(ConfigKey.NAMESPACE)
        self.engine = ClassificationEngine(rules=RuleSet.from_config(section), roots=self.roots)

        # 3. Decorations
        self.logger.debug("Creating DecorationProvider")
        self.decorations = DecorationProvider(self.engine)

        # 4. Coordinator
        self.logger.debug("Creating ChangeCoordinator")
        self.coordinator = ChangeCoordinator(self.engine, self.decorations)
        self.coordinator.on_decorations_changed(self._log_decoration_change)
        self.coordinator.start(self.config.get_all())

        # 5. Settings writer
        settings = getattr(self.args, "settings", None)
        if settings:
            self.settings_writer = ReadOnlySettingsWriter(settings)

        # 6. File watcher
        self.logger.debug("Creating FileWatcher")
        self.file_watcher = FileWatcher()

        self.logger.info("Components initialized successfully")

    def _log_decoration_change(self, identity: Optional[FileIdentity]) -> None:
        if identity is None:
            self.logger.debug("All decorations refreshed")
            return
        decoration = self.decorations.provide(identity) if self.decorations else None
        self.logger.debug(
            "Decoration changed",
            path=self.roots.relative_path(identity) if self.roots else identity.path,
            badge=decoration.badge if decoration else "",
        )

    def initial_scan(self) -> List[str]:
        """
        Classify every file under the roots.

        Runs before the read-only sink is registered, so the settings file is
        written once afterwards rather than once per generated file.

        Returns:
            Root-relative paths of the generated files
        """
        self.logger.info("Scanning workspace...")
        for identity in self.roots.iter_files():
            if self.shutdown_event.is_set():
                break
            self.engine.classify(identity)

        generated = sorted(self.engine.get_generated_files())
        self.logger.info(f"Initial scan complete: {len(generated)} generated file(s)")
        return generated

    def start_watching(self) -> None:
        """Register sinks and watchers so changes flow through the coordinator."""
        if self.settings_writer is not None:
            self.coordinator.on_readonly_sync(self.settings_writer)
            self.coordinator.sync_readonly()

        # Config hot-reload; a reload clears every verdict, so the tree is classified again
        self.coordinator.workspace_files = self.roots.iter_files
        self.config.add_watcher(self.coordinator.configuration_changed)
        for path in self.config.get_loaded_files():
            self.logger.debug(f"Watching config file: {path}")
            self.config.watch_file(path)

        # File system events
        self.file_watcher.start(list(self.roots), self.coordinator.dispatch)

    def setup_signal_handlers(self) -> None:
        """
        Setup signal handlers for graceful shutdown.

        Handles:
        - SIGTERM: Graceful shutdown
        - SIGINT: Graceful shutdown (Ctrl+C)
        """

        def signal_handler(signum, frame):
            """Handle shutdown signals."""
            sig_name = signal.Signals(signum).name
            self.logger.info(f"Received signal {sig_name}, shutting down...")
            self.shutdown_event.set()

        # Register handlers
        signal.signal(signal.SIGTERM, signal_handler)
        signal.signal(signal.SIGINT, signal_handler)

        self.logger.debug("Signal handlers registered")

    def wait_for_shutdown(self) -> int:
        """
        Block until a shutdown signal arrives.

        Returns:
            Exit code (0 for success)
        """
        self.logger.info("Watching for changes (Ctrl+C to stop)")
        while not self.shutdown_event.wait(POLL_INTERVAL):
            pass
        return 0

    def cleanup(self) -> None:
        """
        Cleanup resources on shutdown.

        Performs:
        - File watcher stop
        - Config watcher stop
        - Log final statistics
        """
        self.logger.info("Cleaning up...")

        if self.file_watcher:
            try:
                self.file_watcher.stop()
            except Exception as e:
                self.logger.warning(f"Failed to stop file watcher: {e}")

        self.config.stop_watching()
        if self.coordinator:
            self.config.remove_watcher(self.coordinator.configuration_changed)

        if self.engine:
            self.logger.info(f"Final statistics: {self.engine.get_stats()}")

        self.logger.info("Cleanup complete")

    def run(self) -> int:
        """
        Run the gendetect main loop.

        Returns:
            Exit code (0 for success, non-zero for failure)
        """
        try:
            # Initialize components
            self.initialize_components()

            # Setup signal handlers
            self.setup_signal_handlers()

            if getattr(self.args, "initial_scan", True):
                self.initial_scan()

            self.start_watching()

            # Blocks until SIGINT/SIGTERM
            return self.wait_for_shutdown()

        except KeyboardInterrupt:
            self.logger.info("Interrupted by user")
            return 130

        except Exception as e:
            self.logger.exception("Fatal error", e)
            return 1

        finally:
            # Cleanup
            self.cleanup()


def run_gendetect(args: argparse.Namespace, config: ConfigManager, logger: Logger) -> int:
    """
    Main entry point for running a watched session.

    Args:
        args: Parsed command-line arguments
        config: Configuration manager
        logger: Logger instance

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    # Create main controller
    main = GenDetectMain(args, config, logger)

    # Run
    return main.run()


def main():
    """
    Entry point when run as standalone script.

    Typically called via cli.py, but can be run directly for testing.
    """
    from gendetect.cli import main as cli_main

    return cli_main()


if __name__ == "__main__":
    sys.exit(main())
