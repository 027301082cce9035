"""Node inspector debug launcher adapter.

Implements DebugLauncherPort by starting the runner CLI under
``node --inspect-brk`` so a debugger can attach before any test code
runs. The model supplies the full environment and arguments.
"""

import asyncio
import logging

from suitesync.core.models import DebugLaunchConfig
from suitesync.core.ports import DebugLauncherPort

logger = logging.getLogger(__name__)


class NodeInspectorLauncher(DebugLauncherPort):
    """Starts debug sessions as node inspector child processes."""

    def __init__(self, node_executable: str = "node", node_args: list[str] | None = None):
        """Initialize launcher.

        Args:
            node_executable: Node binary to run.
            node_args: Inspector flags passed before the program.
        """
        self.node_executable = node_executable
        self.node_args = node_args if node_args is not None else ["--inspect-brk"]
        self.sessions: list[asyncio.subprocess.Process] = []

    async def start_debugging(self, launch_config: DebugLaunchConfig) -> None:
        try:
            process = await asyncio.create_subprocess_exec(
                self.node_executable,
                *self.node_args,
                launch_config.program,
                *launch_config.args,
                cwd=launch_config.cwd,
                env=dict(launch_config.env),
            )
        except OSError as e:
            logger.error(f"Failed to start debug session {launch_config.name}: {e}", exc_info=True)
            raise RuntimeError(f"Failed to start debug session: {e}") from e
        self.sessions.append(process)
        logger.info(
            f"Started debug session {launch_config.name} (pid {process.pid}); "
            "attach a debugger to continue"
        )

    async def stop_all(self) -> None:
        """Kill every debug session still running."""
        for process in self.sessions:
            if process.returncode is None:
                process.kill()
                await process.wait()
        self.sessions.clear()
