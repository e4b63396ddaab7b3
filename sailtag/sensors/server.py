"""Serve /metrics for Prometheus from a daemon thread.

prometheus_client's own HTTP server is used; it runs off the kopf event
loop and dies with the process.
"""

import logging
from threading import Thread
from prometheus_client import start_http_server

logger = logging.getLogger(__name__)


def start_metrics_server(port: int = 8000, addr: str = "0.0.0.0") -> None:
    try:
        start_http_server(port, addr=addr)
    except OSError as e:
        logger.error(f"Cannot bind metrics server to {addr}:{port}: {e}")
        raise
    logger.info(f"Serving metrics on http://{addr}:{port}/metrics")


def init_metrics_server(port: int = 8000) -> Thread:
    thread = Thread(
        target=start_metrics_server,
        args=(port,),
        name="sailtag-metrics",
        daemon=True,
    )
    thread.start()
    return thread
