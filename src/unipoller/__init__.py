"""unipoller - UniFi controller metrics poller."""

__version__ = "0.3.0"
