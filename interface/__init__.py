"""Serving channels.

- Channel: abstract lifecycle (startup / shutdown)
- WebChannel: the HTTP API served by uvicorn
"""
from interface.base import Channel
from interface.web.channel import WebChannel

__all__ = ["Channel", "WebChannel"]
