"""Static run hooks adapter.

Implements RunHooksPort with a fixed shared-browser endpoint from
configuration. Tracks how many runs are active so callers can tell
whether the shared browser is in use.
"""

import logging

from suitesync.core.models import RunHookResult, TestConfig
from suitesync.core.ports import RunHooksPort

logger = logging.getLogger(__name__)


class StaticRunHooks(RunHooksPort):
    """Hands out a configured connect endpoint for every run."""

    def __init__(self, connect_ws_endpoint: str | None = None):
        self.connect_ws_endpoint = connect_ws_endpoint or None
        self.active_runs = 0

    async def on_will_run_tests(self, config: TestConfig, is_debug: bool) -> RunHookResult:
        self.active_runs += 1
        logger.debug(
            f"Starting {'debug ' if is_debug else ''}run of {config.config_file} "
            f"({self.active_runs} active)"
        )
        return RunHookResult(connect_ws_endpoint=self.connect_ws_endpoint)

    async def on_did_run_tests(self, is_debug: bool) -> None:
        self.active_runs = max(0, self.active_runs - 1)
        logger.debug(f"Finished {'debug ' if is_debug else ''}run ({self.active_runs} active)")
