import asyncio

import pytest

from relay_bot.__main__ import _serve


class _RecordingApp:
    def __init__(self, fail_start: bool = False):
        self.fail_start = fail_start
        self.calls: list[str] = []

    async def start(self):
        self.calls.append("start")
        if self.fail_start:
            raise RuntimeError("Unauthorized")

    async def stop(self):
        self.calls.append("stop")


@pytest.mark.asyncio
async def test_serve_stops_app_when_start_fails():
    app = _RecordingApp(fail_start=True)

    with pytest.raises(RuntimeError):
        await _serve(app, asyncio.Event())

    assert app.calls == ["start", "stop"]


@pytest.mark.asyncio
async def test_serve_runs_until_stop_event():
    app = _RecordingApp()
    stop_event = asyncio.Event()
    stop_event.set()

    await _serve(app, stop_event)

    assert app.calls == ["start", "stop"]
