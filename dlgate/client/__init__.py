from dlgate.client.client import DownloadClient as DownloadClient

__all__ = ["DownloadClient"]
