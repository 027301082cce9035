"""Composition root for the SuiteSync test-model engine.

This module is the ONLY location that imports both core domain logic
and concrete adapter implementations. All wiring of dependencies
happens here, creating a clear entry point for the application.

Module Structure:
- Configuration loading via config module
- Adapter instantiation
- Test model and collection initialization
- Entry point selection (list, run, watch)
"""

import asyncio
import logging
import sys
from collections.abc import Callable

from suitesync.adapters.debug.launcher import NodeInspectorLauncher
from suitesync.adapters.hooks.static import StaticRunHooks
from suitesync.adapters.reporter.server import ReporterServer
from suitesync.adapters.reporter.stdout import StdoutReporter, format_tree
from suitesync.adapters.runner.cli import CliRunnerClient
from suitesync.adapters.runner.server import TestServerRunnerClient
from suitesync.adapters.settings.sqlite import SQLiteSettingsStore
from suitesync.adapters.sourcemap.resolver import FileSourceMapResolver
from suitesync.adapters.workspace.discovery import discover_configs
from suitesync.adapters.workspace.observer import WorkspaceObserver
from suitesync.config import Settings, load_settings
from suitesync.core.cancellation import CancellationTokenSource
from suitesync.core.collection import TestModelCollection
from suitesync.core.models import TestConfig
from suitesync.core.ports import RunnerClientPort
from suitesync.core.test_model import TestModel, TestModelOptions
from suitesync.core.watch_service import WatchService


def configure_logging(log_level: str, log_format: str) -> None:
    """Configure application logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: Log format (json, text).
    """
    level = getattr(logging, log_level, logging.INFO)

    if log_format == "json":
        format_str = '{"time": "%(asctime)s", "level": "%(levelname)s", "name": "%(name)s", "message": "%(message)s"}'
    else:
        format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )


def create_runner_factory(
    settings: Settings, runner_log: list[str]
) -> Callable[[TestConfig], RunnerClientPort]:
    """Pick the runner client strategy once for every model."""

    def _reporter_server() -> ReporterServer:
        return ReporterServer(settings.reporter_module)

    def _create(config: TestConfig) -> RunnerClientPort:
        if settings.runner_mode == "server":
            return TestServerRunnerClient(
                config,
                node_executable=settings.node_executable,
                env=settings.env,
                timeout_seconds=settings.runner_timeout_seconds,
                runner_log=runner_log,
            )
        return CliRunnerClient(
            config,
            reporter_server_factory=_reporter_server,
            node_executable=settings.node_executable,
            env=settings.env,
            timeout_seconds=settings.runner_timeout_seconds,
            runner_log=runner_log,
        )

    return _create


def create_model_options(settings: Settings) -> TestModelOptions:
    """Build the collaborators shared by every test model."""
    runner_log: list[str] = []
    return TestModelOptions(
        runner_factory=create_runner_factory(settings, runner_log),
        run_hooks=StaticRunHooks(settings.connect_ws_endpoint),
        source_maps=FileSourceMapResolver(),
        debug_launcher=NodeInspectorLauncher(
            node_executable=settings.node_executable,
            node_args=settings.debug_node_args,
        ),
        reporter_server_factory=lambda: ReporterServer(settings.reporter_module),
        reuse_browser=settings.reuse_browser,
        show_trace=settings.show_trace,
        is_under_test=settings.is_under_test,
        env_provider=lambda: dict(settings.env),
        runner_log=runner_log,
    )


async def _list_tests(collection: TestModelCollection) -> None:
    """Print every enabled configuration's test tree and listing errors."""
    for model in collection.enabled_models():
        await model.ensure_tests(sorted(model.enabled_files()))
        print(model.config.config_file)
        for project in model.enabled_projects():
            for line in format_tree(project.suite, indent=1):
                print(line)
        for file in model.errors():
            for error in model.errors().get(file):
                print(f"  error: {error.location or file}: {error.message}")


async def _run_tests(collection: TestModelCollection) -> None:
    reporter = StdoutReporter()
    token = CancellationTokenSource().token
    for model in collection.enabled_models():
        await model.run_tests(model.enabled_projects(), [], reporter, None, token)


async def _watch(collection: TestModelCollection) -> None:
    logger = logging.getLogger(__name__)
    watch_service = WatchService(collection, StdoutReporter())
    source = CancellationTokenSource()
    watch_service.watch(None, source.token)

    observer = WorkspaceObserver(watch_service.workspace_changed)
    observer.start(collection.test_dirs())
    subscription = collection.on_updated.subscribe(
        lambda: observer.watch(collection.test_dirs())
    )
    logger.info("Watching for changes. Press Ctrl+C to stop.")
    try:
        while True:
            await asyncio.sleep(1)
    finally:
        subscription.dispose()
        source.cancel()
        await observer.stop()


async def bootstrap() -> None:
    """Load configuration, wire adapters, and start the application.

    This is the composition root: the single place where all components
    are instantiated and wired together.

    Steps:
    1. Load configuration from environment
    2. Configure logging
    3. Instantiate adapters with configuration
    4. Discover configurations and build the model collection
    5. Select and start run mode

    Raises:
        SystemExit: On fatal errors (no configuration found)
        asyncio.CancelledError: On graceful shutdown signal
    """
    # Step 1: Load configuration
    settings = load_settings()

    # Step 2: Configure logging
    configure_logging(settings.log_level, settings.log_format)
    logger = logging.getLogger(__name__)
    logger.info("Loading SuiteSync...")

    # Step 3: Instantiate adapters
    configs = discover_configs(
        settings.workspace_folder, settings.config_file_names, settings.runner_package
    )
    if not configs:
        logger.error(f"No runner configuration found under {settings.workspace_folder}")
        sys.exit(1)

    store = SQLiteSettingsStore(
        db_path=settings.settings_db_path,
        workspace_folder=configs[0].workspace_folder,
    )
    logger.info(f"Settings store initialized: {settings.settings_db_path}")
    options = create_model_options(settings)

    # Step 4: Build the model collection
    collection = TestModelCollection(store)
    for config in configs:
        await collection.add_model(TestModel(config, options))

    # Step 5: Select run mode and start
    logger.info(f"Starting in {settings.run_mode} mode...")
    try:
        if settings.run_mode == "list":
            await _list_tests(collection)
        elif settings.run_mode == "run":
            await _run_tests(collection)
        elif settings.run_mode == "watch":
            await _watch(collection)
        else:
            logger.error(f"Unknown run mode: {settings.run_mode}")
            sys.exit(1)
    finally:
        # Clean up resources
        await collection.clear()
        await store.close()
        launcher = options.debug_launcher
        if isinstance(launcher, NodeInspectorLauncher):
            await launcher.stop_all()


def main() -> None:
    """Application entry point.

    Loads configuration, wires adapters, builds the test models and
    starts the selected run mode (list, run or watch).

    Exit codes:
        0: Successful shutdown
        1: Fatal bootstrap or runtime error
        130: Interrupted by user (SIGINT/KeyboardInterrupt)
    """
    logger = logging.getLogger(__name__)
    try:
        asyncio.run(bootstrap())
    except KeyboardInterrupt:
        logger.warning("Shutdown requested by user (SIGINT)")
        sys.exit(130)
    except asyncio.CancelledError:
        logger.info("Graceful shutdown completed")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
