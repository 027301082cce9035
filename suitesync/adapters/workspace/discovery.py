"""Configuration discovery adapter.

Finds runner configuration files under a workspace folder and resolves,
for each, the runner CLI installed in the nearest ``node_modules``.
"""

import json
import logging
import os
from pathlib import Path

from suitesync.core.models import TestConfig

logger = logging.getLogger(__name__)

SKIPPED_DIRECTORIES = {"node_modules", ".git"}


def parse_version(version: str) -> float:
    """Turn ``"1.42.1"`` into ``1.42``.

    Raises:
        ValueError: If the version has no numeric major part.
    """
    parts = version.split(".")
    major = int(parts[0])
    minor = parts[1] if len(parts) > 1 else "0"
    minor_digits = "".join(ch for ch in minor if ch.isdigit()) or "0"
    return float(f"{major}.{minor_digits}")


def find_config_files(workspace_folder: str, config_file_names: list[str]) -> list[str]:
    """Absolute paths of configuration files, sorted, skipping node_modules."""
    names = set(config_file_names)
    result = []
    for root, dirs, files in os.walk(workspace_folder):
        dirs[:] = sorted(d for d in dirs if d not in SKIPPED_DIRECTORIES)
        for file in files:
            if file in names:
                result.append(os.path.join(root, file))
    return sorted(result)


def find_runner_cli(config_file: str, runner_package: str) -> tuple[str, float] | None:
    """Locate the runner CLI and its version for ``config_file``.

    Looks in ``node_modules/<runner_package>`` of the configuration's
    folder and each parent folder.
    """
    folder = Path(config_file).parent
    for candidate in [folder, *folder.parents]:
        package_dir = candidate / "node_modules" / runner_package
        cli = package_dir / "cli.js"
        if not cli.is_file():
            continue
        try:
            with open(package_dir / "package.json", encoding="utf-8") as f:
                version = parse_version(json.load(f)["version"])
        except (OSError, KeyError, ValueError) as e:
            logger.warning(f"Cannot read version of {package_dir}: {e}")
            continue
        return str(cli), version
    return None


def discover_configs(
    workspace_folder: str, config_file_names: list[str], runner_package: str
) -> list[TestConfig]:
    """Discover every configuration of the workspace that has a runner installed."""
    workspace_folder = os.path.abspath(workspace_folder)
    configs = []
    for config_file in find_config_files(workspace_folder, config_file_names):
        runner = find_runner_cli(config_file, runner_package)
        if runner is None:
            logger.warning(f"No {runner_package} installation found for {config_file}")
            continue
        cli, version = runner
        configs.append(
            TestConfig(
                workspace_folder=workspace_folder,
                config_file=config_file,
                cli=cli,
                version=version,
            )
        )
        logger.info(f"Discovered {config_file} (runner {version})")
    return configs
