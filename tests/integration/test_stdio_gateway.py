"""
Integration tests driving a real worker subprocess over stdio.
"""

import asyncio
import pathlib
import sys

import pytest
import pytest_asyncio

from toolrelay.errors import TransportClosedError
from toolrelay.relay import ReadSource, RelayGateway, StdioChannel
from toolrelay.settings import RelayConfig

WORKER = pathlib.Path(__file__).parent / "fixtures" / "stdio_worker.py"


@pytest.fixture
def worker_config():
    return RelayConfig(command=[sys.executable, str(WORKER)], request_timeout=5.0, resource_read_timeout=2.0)


@pytest_asyncio.fixture
async def live_gateway(worker_config):
    gateway = RelayGateway(worker_config)
    await gateway.start()
    yield gateway
    await gateway.close()


class TestStdioGateway:
    """End-to-end behaviour against a subprocess worker."""

    @pytest.mark.asyncio
    async def test_status_directory_spans_pages(self, live_gateway):
        snapshots = await live_gateway.list_server_status()

        assert sorted(snapshot.name for snapshot in snapshots) == ["figma", "github"]
        assert await live_gateway.read_tool("figma", "figma.generate_diagram") is not None

    @pytest.mark.asyncio
    async def test_resource_read_falls_through_call_shapes(self, live_gateway):
        result = await live_gateway.read_resource("figma", "ui://widget/diagram.html")

        assert result.source is ReadSource.REMOTE
        assert result.contents == [{"text": "<html></html>"}]
        assert result.security.widget_domain == "https://figma.com"

    @pytest.mark.asyncio
    async def test_tool_call_notification_is_enriched(self, live_gateway):
        received = asyncio.Queue()
        live_gateway.subscribe(received.put_nowait)
        await live_gateway.list_server_status()

        assert await live_gateway.start_thread() == "thr_integration"

        while True:
            message = await asyncio.wait_for(received.get(), timeout=5.0)
            if message.get("method") == "item/completed":
                break

        meta = message["params"]["item"]["result"]["result_meta"]
        assert meta["resolved_template_uri"] == "ui://widget/diagram.html"
        assert meta["figma"] == {"renderCapable": True, "trustedPreviewUrl": "https://www.figma.com/board/integration"}

    @pytest.mark.asyncio
    async def test_large_single_line_response(self, live_gateway):
        result = await live_gateway.call("worker/large", {"size": 2 * 1024 * 1024})
        assert len(result["blob"]) == 2 * 1024 * 1024

    @pytest.mark.asyncio
    async def test_worker_exit_fails_pending_call(self, live_gateway):
        with pytest.raises(TransportClosedError) as exc_info:
            await live_gateway.call("worker/exit")

        assert exc_info.value.returncode == 3
        assert exc_info.value.message.endswith("exited (code=3, signal=null)")

        with pytest.raises(TransportClosedError):
            await live_gateway.list_models()

    @pytest.mark.asyncio
    async def test_close_stops_the_worker(self, worker_config):
        channel = StdioChannel(worker_config.command)
        gateway = RelayGateway(worker_config, channel=channel)
        await gateway.list_server_status()

        await gateway.close()

        assert channel.process.returncode is not None
        assert not channel.connected
