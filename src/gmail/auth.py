"""Gmail OAuth2 authentication."""
import logging
from pathlib import Path
from typing import Optional

import httplib2

from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import Request
from google_auth_oauthlib.flow import InstalledAppFlow

logger = logging.getLogger(__name__)

# Read-only: the monitor never marks, moves or deletes mail
SCOPES = ["https://www.googleapis.com/auth/gmail.readonly"]


class GmailAuth:
    """Handle Gmail OAuth2 authentication."""

    def __init__(
        self,
        credentials_file: str = "credentials.json",
        token_file: str = "token.json",
        interactive: bool = False,
    ):
        """
        Initialize Gmail authentication.

        Args:
            credentials_file: Path to OAuth credentials JSON file
            token_file: Path to store/load OAuth token
            interactive: Allow opening a browser for the consent flow.
                The background monitor runs non-interactively and relies
                on a token produced by scripts/setup_gmail.py.
        """
        self.credentials_file = Path(credentials_file)
        self.token_file = Path(token_file)
        self.interactive = interactive
        self._credentials: Optional[Credentials] = None

    def get_credentials(self) -> Optional[Credentials]:
        """
        Get valid credentials, refreshing or prompting for auth if allowed.

        Returns:
            Valid Credentials object or None if authentication fails
        """
        if self._credentials and self._credentials.valid:
            return self._credentials

        if self._credentials is None and self.token_file.exists():
            self._credentials = Credentials.from_authorized_user_file(
                str(self.token_file),
                SCOPES,
            )

        if self._credentials and not self._credentials.valid:
            if self._credentials.expired and self._credentials.refresh_token:
                try:
                    self._credentials.refresh(Request(httplib2.Http()))
                except RefreshError as e:
                    logger.warning("Gmail token refresh failed: %s", e)
                    self._credentials = None
            else:
                self._credentials = None

        if not self._credentials:
            if self.interactive:
                self._credentials = self._run_oauth_flow()
            else:
                logger.error("No valid Gmail token at %s; run scripts/setup_gmail.py", self.token_file)

        if self._credentials:
            self._save_token()

        return self._credentials

    def _run_oauth_flow(self) -> Optional[Credentials]:
        """Run the OAuth2 flow to get new credentials."""
        if not self.credentials_file.exists():
            logger.error("Credentials file not found: %s", self.credentials_file)
            return None

        flow = InstalledAppFlow.from_client_secrets_file(
            str(self.credentials_file),
            SCOPES,
        )
        return flow.run_local_server(port=0)

    def _save_token(self) -> None:
        """Save credentials to token file."""
        self.token_file.write_text(self._credentials.to_json())

    def is_authenticated(self) -> bool:
        """Check if valid credentials exist."""
        creds = self.get_credentials()
        return creds is not None and creds.valid
