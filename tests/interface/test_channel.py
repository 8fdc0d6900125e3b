"""Web channel lifecycle tests."""
import asyncio
import socket

import pytest
import requests

from interface import Channel, WebChannel


def _free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class TestChannel:

    def test_abstract(self):
        with pytest.raises(TypeError):
            Channel("bare")

    def test_web_channel_defaults(self, temp_db):
        channel = WebChannel(temp_db, port=4321, token_ttl_hours=2)
        assert channel.name == "web"
        assert channel.port == 4321
        assert channel.tokens.ttl.total_seconds() == 2 * 3600
        assert not channel.is_running


class TestWebChannelLifecycle:

    @pytest.mark.asyncio
    async def test_startup_and_shutdown(self, temp_db, notifier):
        port = _free_port()
        channel = WebChannel(temp_db, host="127.0.0.1", port=port, notifier=notifier)
        await channel.startup()
        try:
            assert channel.is_running
            body = None
            for _ in range(50):
                try:
                    body = (await asyncio.to_thread(
                        requests.get, f"http://127.0.0.1:{port}/health", timeout=1
                    )).json()
                    break
                except requests.ConnectionError:
                    await asyncio.sleep(0.1)
            assert body["status"] == "ok"
        finally:
            await channel.shutdown()

        assert not channel.is_running
        assert channel._server_thread is None
