"""
Generic helpers shared by the connection and the session adapter.
Nothing in here depends on other modules of the package except for the logger.
"""
from __future__ import annotations

import time
import typing
from collections.abc import Callable

from .tds_base import logger

T = typing.TypeVar("T")


def exponential_backoff(
    work: Callable[[float], T],
    ex_handler: Callable[[Exception], None],
    max_time_sec: float,
    first_attempt_time_sec: float,
    backoff_factor: float = 2,
) -> T:
    """
    Run `work` until it succeeds, doubling (or multiplying by `backoff_factor`)
    the time allotted to every following attempt.

    `work` receives the number of seconds it may spend on the attempt.
    `ex_handler` is called with every exception raised by `work`, it can
    re-raise to stop retrying.

    :raises TimeoutError: when `max_time_sec` elapses without a successful attempt
    """
    attempt = 0
    try_time = first_attempt_time_sec
    deadline = time.monotonic() + max_time_sec
    while True:
        attempt += 1
        started = time.monotonic()
        try:
            return work(try_time)
        except Exception as ex:
            elapsed = time.monotonic() - started
            logger.warning(
                "Attempt %d failed after %.3f seconds: %s", attempt, elapsed, ex
            )
            ex_handler(ex)
            now = time.monotonic()
            pause = try_time - (now - started)
            if pause > 0:
                time.sleep(pause)
                now += pause
            if now >= deadline:
                raise TimeoutError(
                    f"gave up after {attempt} attempts in {max_time_sec} seconds"
                ) from ex
            try_time = min(try_time * backoff_factor, deadline - now)


def parse_server(server: str) -> tuple[str, str | None]:
    """
    Split server name in MSSQL format (host\\instance) into server host and instance.
    Instance is ``None`` when server name has no instance part.
    """
    instance = None
    if "\\" in server:
        server, instance = server.split("\\", 1)
        instance = instance.upper() or None

    # local server aliases
    if server in (".", "(local)", ""):
        server = "localhost"

    return server, instance
