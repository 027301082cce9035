"""Tests for the reporter adapters: tele-protocol receiver, websocket
reporter server and stdout reporter."""

import asyncio

import aiohttp
import pytest

from suitesync.adapters.reporter.receiver import TeleReceiver, parse_error, parse_location
from suitesync.adapters.reporter.server import (
    REPORTER_ENDPOINT_ENV_VAR,
    REPORTER_ENV_VAR,
    ReporterServer,
)
from suitesync.adapters.reporter.stdout import StdoutReporter, format_tree
from suitesync.core.cancellation import CancellationTokenSource
from suitesync.core.models import FullResult, Location, Suite, TestCase, TestError, TestResult
from suitesync.tests.fakes import RecordingReporter

TEST_FILE = "/ws/tests/login.spec.ts"


def project_message() -> dict:
    return {
        "method": "onProject",
        "params": {
            "project": {
                "name": "chromium",
                "testDir": "/ws/tests",
                "use": {"testIdAttribute": "data-qa"},
                "suites": [
                    {
                        "title": "login.spec.ts",
                        "location": {"file": TEST_FILE, "line": 0, "column": 0},
                        "suites": [
                            {
                                "title": "login",
                                "location": {"file": TEST_FILE, "line": 3, "column": 1},
                                "tests": [
                                    {
                                        "testId": "t1",
                                        "title": "works",
                                        "location": {"file": TEST_FILE, "line": 4, "column": 3},
                                    }
                                ],
                            }
                        ],
                        "tests": [
                            {
                                "testId": "t2",
                                "title": "top level",
                                "location": {"file": TEST_FILE, "line": 10, "column": 1},
                            }
                        ],
                    }
                ],
            }
        },
    }


def run_messages() -> list[dict]:
    return [
        {"method": "onConfigure", "params": {"config": {"rootDir": "/ws"}}},
        project_message(),
        {"method": "onBegin", "params": {}},
        {"method": "onTestBegin", "params": {"testId": "t1", "result": {"retry": 0}}},
        {"method": "onStdOut", "params": {"testId": "t1", "data": "hello\n"}},
        {
            "method": "onTestEnd",
            "params": {
                "test": {"testId": "t1"},
                "result": {
                    "retry": 0,
                    "status": "failed",
                    "duration": 12,
                    "errors": [
                        {
                            "message": "expected true",
                            "location": {"file": TEST_FILE, "line": 5, "column": 7},
                        }
                    ],
                },
            },
        },
        {"method": "onEnd", "params": {"result": {"status": "failed"}}},
    ]


# ============================================================================
# TELE RECEIVER
# ============================================================================


class TestTeleReceiver:
    """Tests for decoding tele-protocol messages."""

    def test_builds_project_tree(self):
        reporter = RecordingReporter()
        receiver = TeleReceiver(reporter)

        receiver.dispatch(project_message())
        receiver.dispatch({"method": "onBegin", "params": {}})

        root = reporter.root_suite
        assert root is receiver.root_suite
        project = root.suites[0]
        assert project.type == "project"
        assert project.project_config.test_id_attribute == "data-qa"
        file_suite = project.suites[0]
        assert file_suite.type == "file"
        assert file_suite.suites[0].type == "describe"
        assert [t.title_path() for t in root.all_tests()] == [
            ["login.spec.ts", "top level"],
            ["login.spec.ts", "login", "works"],
        ]
        assert file_suite.project() is project.project_config

    def test_forwards_run_events(self):
        reporter = RecordingReporter()
        receiver = TeleReceiver(reporter)

        for message in run_messages():
            receiver.dispatch(message)

        assert reporter.events == [
            "configure /ws",
            "begin",
            "test-begin works",
            "stdout hello\n",
            "test-end works failed",
            "end failed",
        ]
        assert receiver.is_finished
        test, result = reporter.results[0]
        assert result.duration == 12.0
        assert result.errors[0].location == Location(TEST_FILE, 5, 7)
        assert test.results == [result]

    def test_list_mode_ignores_test_events(self):
        reporter = RecordingReporter()
        receiver = TeleReceiver(reporter, mode="list")

        for message in run_messages():
            receiver.dispatch(message)

        assert "test-begin works" not in reporter.events
        assert reporter.results == []

    def test_top_level_error_is_forwarded_with_location(self):
        reporter = RecordingReporter()
        receiver = TeleReceiver(reporter, mode="list")

        receiver.dispatch(
            {
                "method": "onError",
                "params": {
                    "error": {
                        "message": "SyntaxError: Unexpected token",
                        "location": {"file": TEST_FILE, "line": 2, "column": 5},
                    }
                },
            }
        )

        assert reporter.errors == [
            TestError(
                message="SyntaxError: Unexpected token",
                location=Location(TEST_FILE, 2, 5),
            )
        ]

    def test_unknown_method_is_ignored(self):
        reporter = RecordingReporter()
        receiver = TeleReceiver(reporter)

        receiver.dispatch({"method": "onExit", "params": {}})

        assert reporter.events == []

    def test_malformed_message_raises_value_error(self):
        receiver = TeleReceiver(RecordingReporter())

        with pytest.raises(ValueError, match="onTestEnd"):
            receiver.dispatch({"method": "onTestEnd", "params": {"test": {"testId": "nope"}}})

    def test_parse_helpers(self):
        assert parse_location(None) is None
        assert parse_location({"file": "/a.ts"}) == Location("/a.ts", 0, 0)
        assert parse_error({"value": "thrown"}).message == "thrown"


# ============================================================================
# REPORTER SERVER
# ============================================================================


async def _drain(ws: aiohttp.ClientWebSocketResponse) -> list[dict]:
    received = []
    async for msg in ws:
        if msg.type == aiohttp.WSMsgType.TEXT:
            received.append(msg.json())
    return received


class TestReporterServer:
    """Tests for the websocket endpoint the runner reports to."""

    @pytest.mark.asyncio
    async def test_env_points_at_listening_endpoint(self):
        server = ReporterServer("/ext/reporter.js")
        try:
            env = await server.env()

            assert env[REPORTER_ENV_VAR] == "/ext/reporter.js"
            assert env[REPORTER_ENDPOINT_ENV_VAR] == server.endpoint
            assert server.endpoint.startswith("ws://127.0.0.1:")
        finally:
            await server.close()

    @pytest.mark.asyncio
    async def test_streams_messages_to_reporter(self):
        server = ReporterServer("/ext/reporter.js")
        env = await server.env()
        reporter = RecordingReporter()
        listener = asyncio.create_task(
            server.wire_test_listener("test", reporter, CancellationTokenSource().token)
        )

        async with aiohttp.ClientSession() as session:
            async with session.ws_connect(env[REPORTER_ENDPOINT_ENV_VAR]) as ws:
                for message in run_messages():
                    await ws.send_json(message)
                await asyncio.wait_for(asyncio.gather(listener, _drain(ws)), timeout=5)

        assert reporter.events[-1] == "end failed"
        assert "test-end works failed" in reporter.events
        assert server.endpoint is not None

    @pytest.mark.asyncio
    async def test_cancel_before_connect_sends_stop(self):
        server = ReporterServer("/ext/reporter.js")
        env = await server.env()
        reporter = RecordingReporter()
        source = CancellationTokenSource()
        listener = asyncio.create_task(server.wire_test_listener("test", reporter, source.token))
        await asyncio.sleep(0)
        source.cancel()

        async with aiohttp.ClientSession() as session:
            async with session.ws_connect(env[REPORTER_ENDPOINT_ENV_VAR]) as ws:
                stop = await asyncio.wait_for(ws.receive_json(), timeout=5)
                await ws.send_json({"method": "onEnd", "params": {"result": {"status": "interrupted"}}})
                await asyncio.wait_for(asyncio.gather(listener, _drain(ws)), timeout=5)

        assert stop == {"method": "stop"}
        assert reporter.events == ["end interrupted"]

    @pytest.mark.asyncio
    async def test_cancel_while_connected_sends_stop(self):
        server = ReporterServer("/ext/reporter.js")
        env = await server.env()
        reporter = RecordingReporter()
        source = CancellationTokenSource()
        listener = asyncio.create_task(server.wire_test_listener("test", reporter, source.token))

        async with aiohttp.ClientSession() as session:
            async with session.ws_connect(env[REPORTER_ENDPOINT_ENV_VAR]) as ws:
                await ws.send_json(project_message())
                await asyncio.sleep(0.05)
                source.cancel()
                stop = await asyncio.wait_for(ws.receive_json(), timeout=5)
                await ws.send_json({"method": "onEnd", "params": {"result": {"status": "interrupted"}}})
                await asyncio.wait_for(asyncio.gather(listener, _drain(ws)), timeout=5)

        assert stop == {"method": "stop"}
        assert reporter.events == ["end interrupted"]
        assert server._background_tasks == set()

    @pytest.mark.asyncio
    async def test_disconnect_without_end_finishes_listener(self):
        server = ReporterServer("/ext/reporter.js")
        env = await server.env()
        reporter = RecordingReporter()
        listener = asyncio.create_task(
            server.wire_test_listener("list", reporter, CancellationTokenSource().token)
        )

        async with aiohttp.ClientSession() as session:
            async with session.ws_connect(env[REPORTER_ENDPOINT_ENV_VAR]) as ws:
                await ws.send_json(project_message())
                await ws.send_str("not json")

        await asyncio.wait_for(listener, timeout=5)
        assert reporter.events == []


# ============================================================================
# STDOUT REPORTER
# ============================================================================


def _tree() -> tuple[Suite, TestCase]:
    root = Suite(title="", type="root")
    project = Suite(title="", type="project")
    file_suite = Suite(title="login.spec.ts", type="file")
    test = TestCase(id="t1", title="works", location=Location(TEST_FILE, 4, 3))
    root.add_suite(project)
    project.add_suite(file_suite)
    file_suite.add_test(test)
    return root, test


class TestStdoutReporter:
    """Tests for terminal output."""

    def test_format_tree_skips_untitled_nodes(self):
        root, _ = _tree()

        assert format_tree(root) == ["login.spec.ts", "  works [4:3]"]

    def test_prints_failures_and_summary(self, capsys):
        _, test = _tree()
        reporter = StdoutReporter()
        error = TestError(message="expected true", location=Location(TEST_FILE, 5, 7))

        reporter.on_test_end(test, TestResult(status="failed", duration=12.0, errors=(error,)))
        reporter.on_test_end(test, TestResult(status="passed", duration=3.0))
        reporter.on_end(FullResult(status="failed"))

        out = capsys.readouterr().out
        assert "FAIL" in out
        assert "login.spec.ts > works [4:3] (12ms)" in out
        assert f"{TEST_FILE}:5:7: expected true" in out
        assert "Run failed: 1 failed, 1 passed" in out
        assert reporter.counts == {"failed": 1, "passed": 1}

    def test_output_only_when_verbose(self, capsys):
        StdoutReporter().on_std_out("quiet\n")
        StdoutReporter(verbose=True).on_std_out("loud\n")

        out = capsys.readouterr().out
        assert "quiet" not in out
        assert "loud" in out
