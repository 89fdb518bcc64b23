"""Auth commands -- sign in to WayStation and manage the stored session.

Provides the ``waystation auth`` sub-command group. ``login`` opens the
authorization page in the browser and completes the sign-in from the
``waystation://oauth/callback`` URI, which the user pastes back at the
prompt when no deep-link handler delivers it.

Typical workflow::

    waystation auth login        # browser sign-in
    waystation auth status       # who am I, when does the token expire
    waystation auth token        # print the bearer token for scripts
    waystation auth logout
"""

from __future__ import annotations

from typing import NoReturn

import typer

from waystation.exceptions import (
    BrowserLaunchError,
    CallbackError,
    CorruptCredential,
    SessionError,
    WaystationError,
)
from waystation.exit_codes import EXIT_AUTH_FAILURE
from waystation.output import (
    debug,
    describe_expiry,
    describe_user,
    error,
    info,
    print_session,
    print_value,
    success,
    suggest,
    warning,
)


auth_app = typer.Typer(no_args_is_help=True)


def _fail(exc: WaystationError) -> NoReturn:
    """Report *exc* and exit with its exit code."""
    error(str(exc))
    if isinstance(exc, (SessionError, CallbackError)):
        suggest("Sign in again: waystation auth login")
    elif isinstance(exc, CorruptCredential):
        suggest("Clear the stored session: waystation auth logout")
    raise typer.Exit(code=exc.exit_code)


def _prompt_for_callback(redirect_uri: str) -> str:
    """Ask for the callback URI until one under *redirect_uri* is entered."""
    from waystation.auth.callback import DeepLink, classify_deep_link

    while True:
        uri = typer.prompt("Paste the callback URL").strip()
        kind = classify_deep_link(uri, redirect_uri)
        if kind == DeepLink.OAUTH_CALLBACK:
            return uri
        warning(f"Ignoring {kind.value} link; expected a URL starting with {redirect_uri}")


@auth_app.command("login")
def auth_login(
    no_browser: bool = typer.Option(
        False, "--no-browser", help="Print the sign-in URL instead of opening a browser."
    ),
) -> None:
    """Sign in through the browser with OAuth2 + PKCE.

    Opens the WayStation authorization page, then waits for the
    ``waystation://oauth/callback`` URL the browser is redirected to.
    Starting a new login abandons any unfinished one.

    Raises:
        typer.Exit: With code 3 if the callback is rejected, 5 if the token
            exchange fails, 6 on network errors.

    Example::

        waystation auth login
        waystation auth login --no-browser
    """
    from waystation.auth.session import create_controller

    try:
        with create_controller() as controller:
            if no_browser:
                url = controller.authorization_url()
                info("Open this URL in your browser to sign in:")
                print_value(url)
            else:
                try:
                    url = controller.login()
                    info("Opened the WayStation sign-in page in your browser.")
                    debug(f"Authorization URL: {url}")
                except BrowserLaunchError as exc:
                    warning(str(exc))
                    url = controller.authorization_url()
                    info("Open this URL in your browser to sign in:")
                    print_value(url)

            callback_uri = _prompt_for_callback(controller.settings.redirect_uri)
            credential = controller.handle_redirect(callback_uri)
    except WaystationError as exc:
        _fail(exc)

    success(f"Signed in as {describe_user(credential)}.")
    if credential.user_info is None:
        warning("Profile information was unavailable; signed in without it.")


@auth_app.command("status")
def auth_status() -> None:
    """Show the stored session: user, token expiry and refresh capability.

    Exits with code 3 when not signed in so scripts can branch on it.

    Example::

        waystation auth status
        waystation --json auth status
    """
    from waystation.auth.session import create_controller

    try:
        with create_controller() as controller:
            credential = controller.get_credential()
    except WaystationError as exc:
        _fail(exc)

    print_session(credential)
    if credential is None:
        info("Not signed in.")
        suggest("Sign in: waystation auth login")
        raise typer.Exit(code=EXIT_AUTH_FAILURE)


@auth_app.command("token")
def auth_token(
    ensure_fresh: bool = typer.Option(
        False,
        "--ensure-fresh",
        help="Refresh first if the token expires within the configured margin.",
    ),
) -> None:
    """Print the current access token to stdout.

    Example::

        curl -H "Authorization: Bearer $(waystation auth token --ensure-fresh)" ...
    """
    from waystation.auth.session import create_controller

    try:
        with create_controller() as controller:
            if ensure_fresh:
                credential = controller.ensure_fresh()
            else:
                credential = controller.get_credential()
    except WaystationError as exc:
        _fail(exc)

    if credential is None:
        error("Not signed in.")
        suggest("Sign in: waystation auth login")
        raise typer.Exit(code=EXIT_AUTH_FAILURE)
    if credential.is_expired():
        warning("The access token has expired.")
        suggest("Refresh it: waystation auth refresh")
    print_value(credential.access_token)


@auth_app.command("refresh")
def auth_refresh() -> None:
    """Exchange the stored refresh token for a new access token.

    Example::

        waystation auth refresh
    """
    from waystation.auth.session import create_controller

    try:
        with create_controller() as controller:
            credential = controller.refresh()
    except WaystationError as exc:
        _fail(exc)

    success(f"Access token refreshed. Expires: {describe_expiry(credential)}")


@auth_app.command("logout")
def auth_logout() -> None:
    """Delete the stored session and the published token file.

    Safe to run when already signed out.

    Example::

        waystation auth logout
    """
    from waystation.auth.session import create_controller

    try:
        with create_controller() as controller:
            controller.logout()
    except WaystationError as exc:
        _fail(exc)

    success("Signed out.")
