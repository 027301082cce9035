"""SQLite settings store adapter.

Implements SettingsStorePort using SQLite with aiosqlite for async
access. Workspace settings are kept as one camelCase JSON document per
workspace folder, validated with pydantic on the way in and out.
"""

import asyncio
import logging
from pathlib import Path

import aiosqlite
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from suitesync.core.models import ConfigSettings, ProjectSettings, WorkspaceSettings
from suitesync.core.ports import SettingsStorePort

logger = logging.getLogger(__name__)


class _Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProjectRecord(_Record):
    name: str
    enabled: bool


class ConfigRecord(_Record):
    relative_config_file: str
    selected: bool = False
    enabled: bool = False
    projects: list[ProjectRecord] = Field(default_factory=list)


class WorkspaceRecord(_Record):
    configs: list[ConfigRecord] = Field(default_factory=list)

    @classmethod
    def from_settings(cls, settings: WorkspaceSettings) -> "WorkspaceRecord":
        return cls(
            configs=[
                ConfigRecord(
                    relative_config_file=c.relative_config_file,
                    selected=c.selected,
                    enabled=c.enabled,
                    projects=[ProjectRecord(name=p.name, enabled=p.enabled) for p in c.projects],
                )
                for c in settings.configs
            ]
        )

    def to_settings(self) -> WorkspaceSettings:
        return WorkspaceSettings(
            configs=[
                ConfigSettings(
                    relative_config_file=c.relative_config_file,
                    selected=c.selected,
                    enabled=c.enabled,
                    projects=[ProjectSettings(name=p.name, enabled=p.enabled) for p in c.projects],
                )
                for c in self.configs
            ]
        )


class SQLiteSettingsStore(SettingsStorePort):
    """SQLite-backed settings store keyed by workspace folder."""

    def __init__(self, db_path: str, workspace_folder: str):
        """Initialize SQLite settings store.

        Args:
            db_path: Path to SQLite database file.
            workspace_folder: Key the settings are stored under.
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.workspace_folder = workspace_folder
        self._conn: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    async def _get_connection(self) -> aiosqlite.Connection:
        """Open the connection and create the schema on first use."""
        if self._conn is None:
            conn = await aiosqlite.connect(str(self.db_path))
            await conn.execute(
                """
                CREATE TABLE IF NOT EXISTS workspace_settings (
                    workspace_folder TEXT PRIMARY KEY,
                    settings_json TEXT NOT NULL,
                    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            await conn.commit()
            self._conn = conn
        return self._conn

    async def load(self) -> WorkspaceSettings:
        async with self._lock:
            conn = await self._get_connection()
            cursor = await conn.execute(
                "SELECT settings_json FROM workspace_settings WHERE workspace_folder = ?",
                (self.workspace_folder,),
            )
            row = await cursor.fetchone()
        if row is None:
            return WorkspaceSettings()
        try:
            return WorkspaceRecord.model_validate_json(row[0]).to_settings()
        except ValidationError as e:
            logger.warning(f"Ignoring invalid persisted settings for {self.workspace_folder}: {e}")
            return WorkspaceSettings()

    async def save(self, settings: WorkspaceSettings) -> None:
        settings_json = WorkspaceRecord.from_settings(settings).model_dump_json(by_alias=True)
        async with self._lock:
            conn = await self._get_connection()
            try:
                await conn.execute(
                    """
                    INSERT INTO workspace_settings (workspace_folder, settings_json)
                    VALUES (?, ?)
                    ON CONFLICT(workspace_folder) DO UPDATE SET
                        settings_json = excluded.settings_json,
                        updated_at = CURRENT_TIMESTAMP
                    """,
                    (self.workspace_folder, settings_json),
                )
                await conn.commit()
            except aiosqlite.Error as e:
                logger.error(f"Failed to save settings: {e}", exc_info=True)
                raise
        logger.debug(f"Saved settings for {len(settings.configs)} configurations")

    async def close(self) -> None:
        """Close the database connection."""
        async with self._lock:
            if self._conn is not None:
                await self._conn.close()
                self._conn = None
