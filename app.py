#!/usr/bin/env python3
"""Workshop Tracker - API server entry point.

Usage:
    python app.py

    # custom port
    python app.py --port 8080

    # custom database
    python app.py --db sqlite:///data/workshop.db

Environment (.env, generate with python scripts/setup_env.py):
    DATABASE_URL          Database connection URL
    WEB_HOST / WEB_PORT   Listen address (default 0.0.0.0:3000)
    FUNCTIONS_BASE_URL    Email notification function base URL
    FUNCTIONS_API_KEY     Bearer key for the notification function
    UPLOAD_DIR            Where uploaded documents are stored
"""
import argparse
import asyncio
import signal

from loguru import logger

from config.settings import settings


async def _cleanup(web, db):
    """Stop the web server and dispose of the connection pool."""
    logger.info("Cleaning up...")

    if web is not None:
        try:
            await web.shutdown()
        except Exception as e:
            logger.warning(f"Error while stopping web server: {e}")

    if db is not None:
        try:
            db.close()
        except Exception as e:
            logger.warning(f"Error while closing database: {e}")

    logger.info("Service stopped")


async def main():
    parser = argparse.ArgumentParser(description="Workshop Tracker API server")
    parser.add_argument("--host", default=settings.web_host,
                        help=f"listen address (default: {settings.web_host})")
    parser.add_argument("--port", type=int, default=settings.web_port,
                        help=f"listen port (default: {settings.web_port})")
    parser.add_argument("--db", default=None,
                        help="database URL (default: DATABASE_URL)")
    args = parser.parse_args()

    web = None
    db = None

    try:
        from database import DatabaseManager
        db = DatabaseManager(args.db)
        db.create_tables()
        logger.info(f"Database connected: {db.database_url}")

        from interface.web.channel import WebChannel
        web = WebChannel(db_manager=db, host=args.host, port=args.port)
        await web.startup()

        print()
        print("=" * 60)
        print(f"  {settings.app_name} is running")
        print(f"  API:      http://localhost:{args.port}/api")
        print(f"  Health:   http://localhost:{args.port}/health")
        print(f"  Database: {db.database_url}")
        print("=" * 60)
        print("  Press Ctrl+C to stop")
        print()

        loop = asyncio.get_running_loop()
        shutdown_event = asyncio.Event()
        shutdown_requested = False

        def signal_handler(signum):
            nonlocal shutdown_requested
            if shutdown_requested:
                logger.warning("Second signal received, forcing exit")
                for task in asyncio.all_tasks(loop):
                    task.cancel()
                return
            shutdown_requested = True
            logger.info(f"Received signal {signum}, shutting down...")
            shutdown_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, signal_handler, sig)

        await shutdown_event.wait()

    except asyncio.CancelledError:
        logger.info("Cancelled, cleaning up...")
    finally:
        await _cleanup(web, db)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        pass
