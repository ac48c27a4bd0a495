"""
Token storage for the Takeout bearer credentials

This module implements the token store the service client authenticates
with. Takeout pairs a device with a short code instead of a browser based
OAuth2 flow:

1. GET /api/code returns a pairing code and a short-lived code-exchange token
2. The user enters the code on the server while logged in
3. POST /api/code (authorized with the code-exchange token) returns the
   access, refresh and media tokens
4. The access token is renewed with the refresh token whenever the server
   answers 401

The store keeps these values in a YAML file next to the configuration:

    code: A1B2C3
    codetoken: 6c1c74b8-...
    accesstoken: 235f9fc2-...
    refreshtoken: e8950bb9-...
    mediatoken: 14b61c79-...
    lbztoken: ...

Security considerations:
- Tokens stored with restrictive file permissions (600)
- The renewed access token is written synchronously so a restart never
  loses a renewal
- All mutations are serialized with a lock
"""

import threading
from pathlib import Path
from typing import Dict, Optional, Any

import yaml

from .settings import get_settings
from ..exceptions import TokenStoreError

# YAML keys, shared with other Takeout clients reading the same file
TOKEN_ACCESS = "accesstoken"
TOKEN_REFRESH = "refreshtoken"
TOKEN_MEDIA = "mediatoken"
TOKEN_CODE = "codetoken"
TOKEN_LISTENBRAINZ = "lbztoken"
CODE = "code"


class TokenStore:
    """
    Persistent store for the device code and the five bearer credentials

    The store is the request context of the service client: besides the
    credentials it exposes the endpoint URL and the user agent string taken
    from the application settings.

    Only the access token is mutated during normal operation (renewal).
    The long-lived values are replaced together after a successful code
    exchange.

    Attributes:
        token_file: Path to the YAML token file
        _tokens: In-memory copy of the token file
        _lock: Serializes reads and writes of the token state
    """

    def __init__(
        self,
        token_file: Optional[Path] = None,
        endpoint: Optional[str] = None,
        user_agent: Optional[str] = None
    ):
        """
        Initialize the token store

        Args:
            token_file: Token file location, defaults to the configured path
            endpoint: Service URL, defaults to the configured endpoint
            user_agent: User-Agent header value, defaults to the configured one
        """
        settings = get_settings()
        self.token_file = Path(token_file) if token_file else settings.get_token_storage_path()
        self._endpoint = endpoint if endpoint is not None else settings.server.endpoint
        self._user_agent = user_agent if user_agent is not None else settings.network.user_agent
        self._lock = threading.RLock()
        self._tokens: Dict[str, Any] = self._load_tokens()

    def _load_tokens(self) -> Dict[str, Any]:
        """
        Load stored tokens from file

        A missing file is normal before pairing. A corrupted file is reported
        and treated as empty so the user can pair again.

        Returns:
            Dictionary of stored values, empty if none are available
        """
        try:
            if self.token_file.exists():
                with open(self.token_file, 'r', encoding='utf-8') as f:
                    data = yaml.safe_load(f) or {}
                if isinstance(data, dict):
                    return data
                print("Warning: Invalid token file structure, pairing required")
        except Exception as e:
            print(f"Warning: Failed to load stored tokens: {e}")
        return {}

    def _write_tokens(self) -> None:
        """
        Write the token state to disk

        Creates parent directories if needed and restricts permissions to
        the owner.

        Raises:
            TokenStoreError: If the file cannot be written
        """
        try:
            self.token_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.token_file, 'w', encoding='utf-8') as f:
                yaml.safe_dump(self._tokens, f, default_flow_style=False)
        except Exception as e:
            raise TokenStoreError(
                f"Failed to save tokens: {e}",
                details={'file_path': str(self.token_file), 'original_error': e}
            )

        try:
            # 0o600 = owner read/write only
            self.token_file.chmod(0o600)
        except OSError:
            # Windows doesn't support chmod
            pass

    def _get(self, key: str) -> str:
        with self._lock:
            value = self._tokens.get(key)
        return str(value) if value is not None else ""

    def endpoint(self) -> str:
        return self._endpoint.rstrip('/')

    def user_agent(self) -> str:
        return self._user_agent

    def code(self) -> str:
        return self._get(CODE)

    def code_token(self) -> str:
        return self._get(TOKEN_CODE)

    def access_token(self) -> str:
        return self._get(TOKEN_ACCESS)

    def refresh_token(self) -> str:
        return self._get(TOKEN_REFRESH)

    def media_token(self) -> str:
        return self._get(TOKEN_MEDIA)

    def listenbrainz_token(self) -> str:
        return self._get(TOKEN_LISTENBRAINZ)

    def update_access_token(self, value: str) -> None:
        """
        Replace the access token and persist it immediately

        Called by the service client after a successful renewal. The
        previous token is kept when the file cannot be written.

        Args:
            value: The new access token

        Raises:
            TokenStoreError: If the token file cannot be written
        """
        with self._lock:
            previous = self._tokens.get(TOKEN_ACCESS)
            self._tokens[TOKEN_ACCESS] = value
            try:
                self._write_tokens()
            except TokenStoreError:
                self._tokens[TOKEN_ACCESS] = previous
                raise

    def update_access_code(self, code: str, code_token: str) -> None:
        """
        Store the pairing code and the code-exchange token returned by GET /api/code

        Args:
            code: Pairing code shown to the user
            code_token: Token authorizing the later code check
        """
        with self._lock:
            self._tokens[CODE] = code
            self._tokens[TOKEN_CODE] = code_token
            self._write_tokens()

    def update_tokens(self, access: str, refresh: str, media: str) -> None:
        """
        Replace the access, refresh and media tokens together

        Args:
            access: New access token
            refresh: New refresh token
            media: New media token
        """
        with self._lock:
            self._tokens[TOKEN_ACCESS] = access
            self._tokens[TOKEN_REFRESH] = refresh
            self._tokens[TOKEN_MEDIA] = media
            self._write_tokens()

    def update_listenbrainz_token(self, value: str) -> None:
        with self._lock:
            self._tokens[TOKEN_LISTENBRAINZ] = value
            self._write_tokens()

    def is_authenticated(self) -> bool:
        """
        Check whether the device has completed pairing

        Returns:
            True when refresh and media tokens are stored. The access token
            may still be expired; it is renewed on demand.
        """
        return bool(self.refresh_token() and self.media_token())

    def revoke(self) -> None:
        """
        Delete stored credentials

        This only removes local storage. The tokens remain valid on the
        server until they expire.
        """
        with self._lock:
            if self.token_file.exists():
                try:
                    self.token_file.unlink()
                except OSError as e:
                    raise TokenStoreError(
                        f"Failed to delete token file: {e}",
                        details={'file_path': str(self.token_file)}
                    )
            self._tokens = {}


# Global token store instance
_token_store: Optional[TokenStore] = None


def get_token_store() -> TokenStore:
    """
    Get the global token store instance (singleton pattern)

    Returns:
        Global TokenStore instance
    """
    global _token_store
    if not _token_store:
        _token_store = TokenStore()
    return _token_store


def reset_token_store() -> None:
    """
    Reset the global token store instance

    The next access re-reads settings and the token file. Used after
    loading a different configuration and in tests.
    """
    global _token_store
    _token_store = None
