#!/usr/bin/env python3
"""
Switchboard - Main Entry Point

Loads an application description, starts it and keeps the event loop alive
until the controller requests termination.

Usage:
    switchboard application.json
    switchboard application.json --feed found --feed lost
    switchboard application.json --web --port 8000  # Serve the inspection API

The inspection API runs on the same event loop as the application, so
everything a component does happens on one thread.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from switchboard.core import Application, ConfigurationError, RuntimeConfig, WiringError, invoke

log = logging.getLogger("switchboard")


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s : %(levelname)-8s : (%(name)s) %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Suppress noisy third-party loggers
    logging.getLogger("sse_starlette").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


def setup_web_logging(buffer_size: int = 1000):
    """Set up web log handler to capture all logs for the web interface."""
    from switchboard.web import WebLogHandler, get_shared_state

    shared_state = get_shared_state(log_buffer=buffer_size)

    # Stores records for the log stream, doesn't print to console
    logging.getLogger().addHandler(WebLogHandler(shared_state))
    return shared_state


async def serve_web(application: Application, host: str, port: int) -> None:
    """Serve the inspection API on the running loop until the application finishes."""
    import uvicorn

    from switchboard.web import create_app, get_shared_state

    shared_state = get_shared_state()
    shared_state.application = application

    config = uvicorn.Config(
        create_app(shared_state),
        host=host,
        port=port,
        log_level="warning",
        access_log=False,
    )
    server = uvicorn.Server(config)

    log.info(f"Starting web server at http://{host}:{port}")
    serving = asyncio.ensure_future(server.serve())
    finished = asyncio.ensure_future(application.wait_finished())
    try:
        await asyncio.wait([serving, finished], return_when=asyncio.FIRST_COMPLETED)
    finally:
        server.should_exit = True
        await serving
        finished.cancel()


async def run(
    path: str,
    config: RuntimeConfig,
    tokens: Optional[List[str]] = None,
) -> int:
    """Start the application at `path`, feed `tokens`, then wait for it to finish."""
    application = Application.from_file(path, config=config)

    try:
        report = await application.start()
    except ConfigurationError as e:
        log.error(f"Application failed to start: {e}")
        return 1

    if not report.ok:
        log.warning(f"Started with {len(report.errors)} instantiation error(s)")
    await application.settle()

    for token in tokens or []:
        try:
            invoke(application.controller, "set_token", [token])
        except WiringError as e:
            log.error(f"Cannot feed token '{token}': {e}")
            return 1
        await application.settle()

    if config.web.enabled:
        await serve_web(application, config.web.host, config.web.port)
    elif tokens and not application.finished:
        log.info(f"Tokens consumed, stopping in sheet '{application.current_sheet}'")
    else:
        await application.wait_finished()

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Switchboard - declarative component wiring")
    parser.add_argument("description", help="Path to the application description (JSON)")
    parser.add_argument(
        "--web",
        action="store_true",
        help="Serve the inspection API while the application runs",
    )
    parser.add_argument("--host", default=None, help="Web server host (default: from env)")
    parser.add_argument(
        "--port", type=int, default=None, help="Web server port (default: from env)"
    )
    parser.add_argument(
        "--feed",
        action="append",
        metavar="TOKEN",
        help="Token to feed to the controller once started (repeatable)",
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default: from env)")
    args = parser.parse_args(argv)

    config = RuntimeConfig()
    config.web.enabled = args.web
    if args.host is not None:
        config.web.host = args.host
    if args.port is not None:
        config.web.port = args.port

    setup_logging(args.log_level or config.env.log_level)
    if config.web.enabled:
        setup_web_logging(config.web.log_buffer)

    log.info("=" * 50)
    log.info(f"Switchboard starting: {args.description}")
    log.info("=" * 50)

    try:
        code = asyncio.run(run(args.description, config, args.feed))
    except KeyboardInterrupt:
        log.info("Shutdown requested...")
        code = 0
    except FileNotFoundError as e:
        log.error(f"{e}")
        code = 1

    log.info("Switchboard shutdown complete.")
    return code


if __name__ == "__main__":
    sys.exit(main())
