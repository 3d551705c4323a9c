# License-gated download gateway

from dlgate.client.client import DownloadClient
from dlgate.server.core import GatewayServer

__all__ = [
    "DownloadClient",
    "GatewayServer",
]
