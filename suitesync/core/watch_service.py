"""Re-run watched tests when the files they depend on change."""

import logging
from dataclasses import dataclass

from .cancellation import CancellationToken
from .collection import TestModelCollection
from .models import Suite, TestCase, WorkspaceChange
from .ports import ReporterPort
from .test_model import TestModel, project_files

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WatchItem:
    """A watched file, or a single test in it when ``title_path`` is set."""

    file: str
    title_path: tuple[str, ...] | None = None


@dataclass
class _Watch:
    items: list[WatchItem] | None
    token: CancellationToken


def _find_test(suites: list[Suite], title_path: tuple[str, ...]) -> TestCase | None:
    for suite in suites:
        for test in suite.all_tests():
            if tuple(test.title_path()) == title_path:
                return test
    return None


class WatchService:
    """Tracks watch requests and turns workspace changes into test runs."""

    def __init__(self, collection: TestModelCollection, reporter: ReporterPort):
        self._collection = collection
        self._reporter = reporter
        self._watches: list[_Watch] = []

    @property
    def is_watching(self) -> bool:
        return bool(self._watches)

    def watch(self, items: list[WatchItem] | None, token: CancellationToken) -> None:
        """Start watching ``items``, or everything when ``items`` is None.

        The watch ends when ``token`` is cancelled.
        """
        watch = _Watch(items=list(items) if items is not None else None, token=token)
        self._watches.append(watch)
        token.on_cancellation_requested(lambda: self._remove(watch))

    def _remove(self, watch: _Watch) -> None:
        if watch in self._watches:
            self._watches.remove(watch)

    async def workspace_changed(self, change: WorkspaceChange) -> None:
        for model in self._collection.enabled_models():
            await model.workspace_changed(change)

        self._watches = [w for w in self._watches if not w.token.is_cancellation_requested]
        if not self._watches:
            return

        files = sorted(change.changed | change.created)
        if not files:
            return
        for model in self._collection.enabled_models():
            await self._run_watched(model, files)

    async def _run_watched(self, model: TestModel, files: list[str]) -> None:
        try:
            related = set(await model.find_related_test_files(files))
        except Exception as e:
            logger.error(f"Failed to find related test files: {e}", exc_info=True)
            return
        if not related:
            return

        for watch in list(self._watches):
            locations = self._locations(model, watch, related)
            if not locations:
                continue
            logger.info(f"Re-running {len(locations)} watched locations")
            await model.run_tests(
                model.enabled_projects(), locations, self._reporter, None, watch.token
            )

    def _locations(self, model: TestModel, watch: _Watch, related: set[str]) -> list[str]:
        if watch.items is None:
            enabled_files = model.enabled_files()
            return sorted(f for f in related if f in enabled_files)

        locations: dict[str, None] = {}
        for item in watch.items:
            if item.file not in related:
                continue
            if item.title_path is None:
                locations[item.file] = None
                continue
            file_suites = [
                file_suite
                for project in model.enabled_projects()
                if (file_suite := project_files(project).get(item.file)) is not None
            ]
            test = _find_test(file_suites, item.title_path)
            if test is None:
                logger.debug(f"Watched test {' > '.join(item.title_path)} is gone")
                continue
            locations[f"{test.location.file}:{test.location.line}"] = None
        return list(locations)
