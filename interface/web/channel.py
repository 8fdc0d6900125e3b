"""HTTP channel - serves the tracker API with uvicorn.

Usage:
    ```python
    channel = WebChannel(db_manager=db, port=3000)
    await channel.startup()
    # API available at http://localhost:3000/api
    ```
"""
import asyncio
import threading
from typing import Optional

from loguru import logger

from auth.tokens import TokenStore
from config.settings import settings
from interface.base import Channel
from interface.web.app import create_app


class WebChannel(Channel):
    """uvicorn server running the FastAPI app in a background thread.

    The server thread has its own event loop; uvicorn's signal handlers are
    disabled so ``app.py`` owns process signals.
    """

    def __init__(
        self,
        db_manager,
        host: str = "0.0.0.0",
        port: int = 3000,
        token_ttl_hours: Optional[int] = None,
        notifier=None,
        document_store=None,
    ):
        super().__init__("web")
        self.host = host
        self.port = port
        self.db_manager = db_manager
        self.tokens = TokenStore(token_ttl_hours or settings.token_ttl_hours)
        self.notifier = notifier
        self.document_store = document_store
        self.app = None
        self._server_thread: Optional[threading.Thread] = None
        self._server = None
        self._server_loop = None

    async def startup(self):
        """Build the app and start uvicorn."""
        import uvicorn

        self.app = create_app(
            self.db_manager, tokens=self.tokens, notifier=self.notifier,
            document_store=self.document_store,
        )
        self.running = True

        def run_server():
            loop = asyncio.new_event_loop()
            asyncio.set_event_loop(loop)
            self._server_loop = loop

            config = uvicorn.Config(
                self.app,
                host=self.host,
                port=self.port,
                log_level="warning",
                loop="asyncio",
            )
            self._server = uvicorn.Server(config)
            # signals are handled by app.py
            self._server.install_signal_handlers = lambda: None

            try:
                loop.run_until_complete(self._server.serve())
            except Exception as e:
                logger.error(f"Web server stopped with error: {e}")
            finally:
                pending = asyncio.all_tasks(loop)
                for task in pending:
                    task.cancel()
                if pending:
                    loop.run_until_complete(
                        asyncio.gather(*pending, return_exceptions=True)
                    )
                loop.run_until_complete(loop.shutdown_asyncgens())
                loop.close()

        self._server_thread = threading.Thread(target=run_server, daemon=True)
        self._server_thread.start()

        waited = 0.0
        while self._server is None and waited < 5:
            await asyncio.sleep(0.1)
            waited += 0.1

        logger.info(f"Workshop Tracker API listening on http://{self.host}:{self.port}")

    async def shutdown(self):
        """Stop uvicorn and wait for the server thread to exit."""
        self.running = False

        if self._server is not None:
            try:
                logger.info("Stopping web server...")
                self._server.should_exit = True

                if self._server_thread and self._server_thread.is_alive():
                    self._server_thread.join(timeout=3.0)

                if self._server_thread and self._server_thread.is_alive():
                    logger.warning("Web server did not stop within 3s, forcing exit")
                    self._server.force_exit = True
                    if self._server_loop and self._server_loop.is_running():
                        self._server_loop.call_soon_threadsafe(self._server_loop.stop)
                    self._server_thread.join(timeout=2.0)
                    if self._server_thread.is_alive():
                        logger.warning("Web server thread still alive, leaving it to process exit")
            finally:
                self._server = None
                self._server_loop = None
                self._server_thread = None

        logger.info("Web server stopped")
