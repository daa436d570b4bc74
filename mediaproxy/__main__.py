import errno
import socket
import sys
from typing import Optional

import uvicorn
from rich.console import Console

from mediaproxy.config.settings import config

console = Console()


def bind_with_retry(host: str, port: int, max_retries: int) -> Optional[socket.socket]:
    """Bind ``port``, moving to the next one while it is in use"""
    for attempt in range(max_retries + 1):
        candidate = port + attempt
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((host, candidate))
        except OSError as e:
            sock.close()
            if e.errno == errno.EADDRINUSE and attempt < max_retries:
                console.print(f"[yellow]Port {candidate} is in use, retrying on {candidate + 1}...[/yellow]")
                continue
            console.print(f"[red]Failed to start server on port {candidate}: {e.strerror}[/red]")
            return None

        if attempt > 0:
            console.print(f"Port {port} busy. Server running on fallback port {candidate}")
        else:
            console.print(f"Server running on port {candidate}")
        return sock

    return None


def main() -> None:
    sock = bind_with_retry(config.api.host, config.api.port, config.api.max_port_retries)
    if sock is None:
        sys.exit(1)

    server = uvicorn.Server(uvicorn.Config(
        "mediaproxy.main:app",
        log_level=config.logging.level.lower(),
        log_config=None,
    ))
    server.run(sockets=[sock])


if __name__ == "__main__":
    main()
