"""The set of test models of a workspace and their persisted enablement."""

import logging
import os

from .events import DisposableBase, EventEmitter
from .models import ConfigSettings, ProjectSettings, WorkspaceSettings
from .ports import SettingsStorePort
from .test_model import TestModel

logger = logging.getLogger(__name__)


def relative_config_file(model: TestModel) -> str:
    return os.path.relpath(model.config.config_file, model.config.workspace_folder)


def _find_config_settings(
    settings: WorkspaceSettings, model: TestModel
) -> ConfigSettings | None:
    relative = relative_config_file(model)
    return next((c for c in settings.configs if c.relative_config_file == relative), None)


class TestModelCollection(DisposableBase):
    """Owns one TestModel per discovered configuration.

    Tracks which configurations and projects are enabled, which
    configuration is selected, and persists all of it through the
    settings store after every change.
    """

    __test__ = False

    def __init__(self, settings_store: SettingsStorePort):
        super().__init__()
        self._settings_store = settings_store
        self._models: list[TestModel] = []
        self._selected_config_file: str | None = None
        self.on_updated = EventEmitter()

    async def add_model(self, model: TestModel) -> None:
        """Append a model, apply default or persisted enablement and load it.

        Without a persisted entry, only the first model of a workspace
        with no persisted settings at all starts enabled.
        """
        self._models.append(model)
        workspace_settings = await self._settings_store.load()
        config_settings = _find_config_settings(workspace_settings, model)
        if config_settings is not None:
            model.is_enabled = config_settings.enabled
            if config_settings.selected:
                self._selected_config_file = model.config.config_file
        else:
            model.is_enabled = len(self._models) == 1 and not workspace_settings.configs
        logger.info(
            f"Added configuration {relative_config_file(model)} "
            f"(enabled={model.is_enabled})"
        )
        await self._load_model_if_needed(model)
        self._disposables.append(model.on_updated.subscribe(self.on_updated.fire))
        self.on_updated.fire()

    async def _load_model_if_needed(self, model: TestModel) -> None:
        if not model.is_enabled:
            return
        await model.list_files()
        workspace_settings = await self._settings_store.load()
        config_settings = _find_config_settings(workspace_settings, model)
        projects = model.projects()
        if config_settings is None:
            if projects:
                projects[0].is_enabled = True
            return
        for index, project in enumerate(projects):
            project_settings = next(
                (p for p in config_settings.projects if p.name == project.name), None
            )
            if project_settings is not None:
                project.is_enabled = project_settings.enabled
            elif index == 0:
                project.is_enabled = True

    def _find_model(self, config_file: str) -> TestModel | None:
        return next((m for m in self._models if m.config.config_file == config_file), None)

    async def set_model_enabled(self, config_file: str, enabled: bool) -> None:
        model = self._find_model(config_file)
        if model is None or model.is_enabled == enabled:
            return
        model.is_enabled = enabled
        await self._save_settings()
        await model.reset()
        await self._load_model_if_needed(model)
        self.on_updated.fire()

    async def set_project_enabled(self, config_file: str, name: str, enabled: bool) -> None:
        """Toggle a project. The tree is not re-listed."""
        model = self._find_model(config_file)
        if model is None:
            return
        project = model.project_map().get(name)
        if project is None or project.is_enabled == enabled:
            return
        project.is_enabled = enabled
        await self._save_settings()
        self.on_updated.fire()

    def test_dirs(self) -> list[str]:
        result: dict[str, None] = {}
        for model in self._models:
            for test_dir in model.test_dirs():
                result[test_dir] = None
        return list(result)

    def has_enabled_models(self) -> bool:
        return bool(self.enabled_models())

    def versions(self) -> dict[float, TestModel]:
        """Map runner version to the last model using it."""
        return {model.config.version: model for model in self._models}

    async def clear(self) -> None:
        self.dispose()
        for model in self._models:
            await model.reset()
        self._models = []
        self.on_updated.fire()

    def enabled_models(self) -> list[TestModel]:
        return [m for m in self._models if m.is_enabled]

    def models(self) -> list[TestModel]:
        return self._models

    def selected_model(self) -> TestModel | None:
        model = self._find_model(self._selected_config_file or "")
        if model is not None:
            return model
        return next((m for m in self._models if m.is_enabled), None)

    async def select_model(self, config_file: str) -> None:
        self._selected_config_file = config_file
        await self._save_settings()
        self.on_updated.fire()

    async def _save_settings(self) -> None:
        workspace_settings = WorkspaceSettings(
            configs=[
                ConfigSettings(
                    relative_config_file=relative_config_file(model),
                    selected=model.config.config_file == self._selected_config_file,
                    enabled=model.is_enabled,
                    projects=[
                        ProjectSettings(name=p.name, enabled=p.is_enabled)
                        for p in model.projects()
                    ],
                )
                for model in self._models
            ]
        )
        await self._settings_store.save(workspace_settings)
