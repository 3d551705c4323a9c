"""
Entry point for the download gateway.
"""

import logging

import uvicorn

from dlgate.common.config import Config
from dlgate.common.logging_utils import setup_logger

from .core import GatewayServer


def start_server(config: Config | None = None) -> None:
    """Start the download gateway."""
    if config is None:
        config = Config()
    setup_logger(logging.getLogger("dlgate"), config.LOG_LEVEL, config.LOG_FILE)
    server = GatewayServer(config=config)
    uvicorn.run(server.app, host=server.server_host, port=server.server_port)
