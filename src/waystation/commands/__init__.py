"""Built-in CLI sub-commands for waystation.

This package groups the Typer sub-command modules registered on the root
app in :mod:`waystation.app`:

* :mod:`~waystation.commands.auth` -- sign in, inspect, refresh and end
  the WayStation session.
* :mod:`~waystation.commands.config` -- view and modify the OAuth client
  settings.
"""
