"""Platform capabilities consumed by the auth subsystem.

The session controller never branches on the operating system itself;
it receives a :class:`BrowserLauncher` and a :class:`TokenSink` chosen
once at startup.
"""

from waystation.system.browser import (
    BrowserLauncher,
    CommandBrowserLauncher,
    NullBrowserLauncher,
    WebBrowserLauncher,
    default_browser_launcher,
)
from waystation.system.token_sink import FileTokenSink, NullTokenSink, TokenSink

__all__ = [
    "BrowserLauncher",
    "CommandBrowserLauncher",
    "NullBrowserLauncher",
    "WebBrowserLauncher",
    "default_browser_launcher",
    "FileTokenSink",
    "NullTokenSink",
    "TokenSink",
]
