"""CLI entry point: servidor del relay y cliente de polling."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal

import httpx
import orjson
import uvicorn

from common.config import get_settings

from .poller import MessagePoller

logger = logging.getLogger(__name__)


def _serve(args: argparse.Namespace) -> None:
    settings = get_settings()
    host = args.host or settings.host
    port = args.port or settings.port
    logger.info("Furnace relay starting on %s:%d", host, port)
    logger.info(
        "Config: mqtt=%s:%d enabled=%s topics=%s history=%d chart=%d/%d",
        settings.mqtt_host,
        settings.mqtt_port,
        settings.mqtt_enabled,
        ",".join(settings.sub_topics),
        settings.history_capacity,
        settings.chart_window_size,
        settings.chart_buffer_capacity,
    )
    uvicorn.run(
        "relay_api.main:app",
        host=host,
        port=port,
        log_level=settings.log_level.lower(),
    )


def _print_reading(row: dict) -> None:
    print(orjson.dumps(row).decode("utf-8"), flush=True)


async def _tail(args: argparse.Namespace) -> None:
    settings = get_settings()
    interval = args.interval or settings.poll_interval_seconds
    async with httpx.AsyncClient(base_url=args.url, timeout=interval) as client:
        poller = MessagePoller(
            client,
            _print_reading,
            interval_seconds=interval,
            batch_limit=args.limit,
        )
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, poller.stop)
            except NotImplementedError:
                pass
        await poller.run()
        logger.info(
            "Tail stopped polls=%d emitted=%d skipped=%d errors=%d",
            poller.polls,
            poller.emitted,
            poller.skipped,
            poller.errors,
        )


def main() -> None:
    p = argparse.ArgumentParser(description="Furnace telemetry relay")
    p.add_argument("--log-level", default=None, help="override LOG_LEVEL")
    sub = p.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="run the HTTP/MQTT relay")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)

    tail = sub.add_parser("tail", help="poll a running relay and print new readings")
    tail.add_argument("--url", default="http://localhost:3000")
    tail.add_argument("--interval", type=float, default=None, help="seconds between polls")
    tail.add_argument("--limit", type=int, default=50)

    args = p.parse_args()

    level = (args.log_level or get_settings().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )

    if args.command == "serve":
        _serve(args)
    else:
        asyncio.run(_tail(args))


if __name__ == "__main__":
    main()
