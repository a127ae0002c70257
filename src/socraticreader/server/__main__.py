"""SocraticReader JSON-lines server entry point.

Usage: python -m socraticreader.server

Reads JSON requests from stdin (one per line), writes JSON responses and
engine notifications to stdout. All logging goes to stderr to keep the
protocol clean.
"""

from __future__ import annotations

import asyncio
import sys

from loguru import logger

from .handler import ServerHandler
from .protocol import Notification, ProtocolError, Request, Response


async def main(manual_ticks: bool = False) -> None:
    loop = asyncio.get_running_loop()

    # Log to stderr so stdout stays clean for protocol messages
    logger.remove()
    logger.add(sys.stderr, level="INFO", format="socraticreader-server: {level}: {message}")

    def write_line(text: str) -> None:
        sys.stdout.write(text)
        sys.stdout.flush()

    def write_notification(notification: Notification) -> None:
        write_line(notification.to_json_line())

    handler = ServerHandler(write_notification=write_notification, manual_ticks=manual_ticks)
    logger.info("ready")

    reader = asyncio.StreamReader()
    protocol = asyncio.StreamReaderProtocol(reader)
    await loop.connect_read_pipe(lambda: protocol, sys.stdin)

    try:
        while True:
            line = await reader.readline()
            if not line:
                break  # stdin closed

            line_str = line.decode("utf-8", errors="replace").strip()
            if not line_str:
                continue

            try:
                request = Request.from_line(line_str)
            except ProtocolError as e:
                write_line(Response.failure(0, e).to_json_line())
                continue

            try:
                result = await handler.dispatch(
                    {"method": request.method, "params": request.params}
                )
                resp = Response(id=request.id, result=result)
            except Exception as e:
                logger.error("{} failed: {}", request.method, e)
                resp = Response.failure(request.id, e)

            write_line(resp.to_json_line())
    finally:
        handler.session.close()


if __name__ == "__main__":
    asyncio.run(main(manual_ticks="--manual-ticks" in sys.argv[1:]))
