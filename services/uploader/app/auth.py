"""
Google login for the command-line client.

The browser front end gets its access token from Google's token client; the
CLI uses the installed-app flow instead: it opens the consent page, waits on
a local redirect port and hands back the access token the upload endpoint
expects as `Authorization: Bearer <token>`.
"""

import logging
from typing import Optional

from google_auth_oauthlib.flow import InstalledAppFlow

from .drive import DRIVE_SCOPES, TOKEN_URI

logger = logging.getLogger("auth")

AUTH_URI = "https://accounts.google.com/o/oauth2/auth"


class LoginError(RuntimeError):
    pass


def client_config(client_id: str, client_secret: str) -> dict:
    """Build the installed-app client config from the service's OAuth client."""
    if not client_id or not client_secret:
        raise LoginError("GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET must be set to log in")
    return {
        "installed": {
            "client_id": client_id,
            "client_secret": client_secret,
            "auth_uri": AUTH_URI,
            "token_uri": TOKEN_URI,
            "redirect_uris": ["http://localhost"],
        }
    }


def obtain_access_token(
    client_id: str,
    client_secret: str,
    *,
    port: int = 0,
    open_browser: bool = True,
) -> str:
    flow = InstalledAppFlow.from_client_config(client_config(client_id, client_secret), scopes=DRIVE_SCOPES)
    creds = flow.run_local_server(port=port, open_browser=open_browser)
    token: Optional[str] = getattr(creds, "token", None)
    if not token:
        raise LoginError("Login failed: Google returned no access token")
    logger.info("Logged in with Google (scopes=%s)", ",".join(DRIVE_SCOPES))
    return token
