from windowkeeper.host.base import BaseHost, EventCallback
from windowkeeper.host.cdp import CDPHost

__all__ = ["BaseHost", "CDPHost", "EventCallback"]
