"""waystation -- OAuth2 + PKCE sign-in for the WayStation desktop companion.

This package signs the user in to WayStation through the browser, keeps
the resulting credential on disk, refreshes it, and publishes the access
token to ``~/.waystation/token`` for the other locally installed
WayStation integrations.

Typical workflow::

    waystation auth login    # browser sign-in with PKCE
    waystation auth status   # show the stored session
    waystation auth token    # print the bearer token

Modules:
    app: Typer application and CLI entry point.
    auth: Session controller, PKCE, token client and credential store.
    system: Platform capabilities (browser launcher, token sink).
    models: Pydantic models shared across the package.
    config: XDG-aware settings and storage paths.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
