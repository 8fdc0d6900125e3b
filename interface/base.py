"""Serving channel abstraction.

A Channel is one way of exposing the tracker to users (currently only the
HTTP API). ``app.py`` starts and stops channels; each channel owns its own
server lifecycle.
"""
from abc import ABC, abstractmethod


class Channel(ABC):
    """Abstract serving channel.

    Usage:
        ```python
        channel = WebChannel(db_manager=db, port=3000)
        await channel.startup()
        ...
        await channel.shutdown()
        ```
    """

    def __init__(self, name: str):
        """
        Args:
            name: Channel identifier, e.g. ``web``.
        """
        self.name = name
        self.running = False

    @abstractmethod
    async def startup(self):
        """Start serving; implementations set ``self.running = True``."""
        pass

    @abstractmethod
    async def shutdown(self):
        """Stop serving and release resources; sets ``self.running = False``."""
        pass

    @property
    def is_running(self) -> bool:
        return self.running
