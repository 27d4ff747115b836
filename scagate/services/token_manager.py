import base64
import json
import threading
from collections.abc import Callable
from datetime import datetime
from datetime import timezone

import requests
import structlog
from pydantic import ValidationError

from scagate.core.client import get_http_client
from scagate.core.client import request_timeout
from scagate.core.config import get_config
from scagate.core.exceptions import AuthenticationFailed
from scagate.core.exceptions import FailedToRefreshToken
from scagate.core.exceptions import ScaError
from scagate.core.exceptions import UnexpectedAuthResponse
from scagate.core.exceptions import UserNotAuthenticated
from scagate.models.token import AccessToken
from scagate.models.token import Credentials

logger = structlog.get_logger('token_manager')

TOKEN_ENDPOINT_PATH = 'identity/connect/token'
CLIENT_ID = 'sca_resource_owner'
OAUTH_SCOPE = 'sca_api'


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AccessTokenManager:
    """
    Owns the bearer token used for authenticated SCA API calls.

    The token is replaced wholesale on every successful authentication.
    Refreshes are serialized so concurrent callers holding an expired token
    trigger a single request to the identity server.
    """

    def __init__(
        self,
        authentication_url: str | None = None,
        session: requests.Session | None = None,
        timeout: float | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        config = get_config()
        url = authentication_url or config.api.authentication_url
        if not url.endswith('/'):
            url += '/'
        self.token_url = f"{url}{TOKEN_ENDPOINT_PATH}"
        self.session = session or get_http_client()
        self.timeout = timeout or config.api.timeout
        self._clock = clock

        self._credentials: Credentials | None = None
        self._token: AccessToken | None = None
        self._refresh_lock = threading.Lock()

    @property
    def is_authenticated(self) -> bool:
        token = self._token
        return token is not None and token.is_active(self._clock())

    @property
    def has_token(self) -> bool:
        """Whether authentication ever succeeded, even if the token has since expired."""
        return self._token is not None

    def authenticate(
        self,
        credentials: Credentials | None = None,
        deadline: float | None = None,
    ) -> bool:
        """
        Run the resource owner password grant. Never raises.

        Returns:
            True when a bearer token was obtained
        """
        if credentials is not None:
            self._credentials = credentials
        if self._credentials is None:
            logger.error('Authentication requested without credentials')
            return False

        try:
            self._token = self._request_token(self._credentials, deadline)
        except (ScaError, requests.RequestException) as e:
            logger.info('Authentication failed. Working without authentication.')
            logger.error('Authentication error', error=str(e))
            return False

        logger.info('Authentication configured successfully.')
        return True

    def get_authorization_header(self, deadline: float | None = None) -> tuple[str, str]:
        """
        Return the ('Authorization', 'Bearer <token>') header pair.

        Raises:
            UserNotAuthenticated if authenticate never succeeded
            FailedToRefreshToken if the token expired and re-authentication failed
        """
        token = self._token
        if token is None:
            raise UserNotAuthenticated()

        if token.is_active(self._clock()):
            return self._header(token)

        with self._refresh_lock:
            # Another caller may have refreshed while we waited
            if self._token is not token and self._token.is_active(self._clock()):
                return self._header(self._token)

            logger.debug('Access token expired, refreshing')
            if not self.authenticate(deadline=deadline):
                raise FailedToRefreshToken()
            return self._header(self._token)

    @property
    def tenant_id(self) -> str | None:
        """The `tenant_id` claim of the current token, if it is a JWT."""
        token = self._token
        if token is None or not token.access_token:
            raise UserNotAuthenticated()
        chunks = token.access_token.split('.')
        if len(chunks) < 2:
            return None
        payload = chunks[1] + '=' * (-len(chunks[1]) % 4)
        try:
            claims = json.loads(base64.urlsafe_b64decode(payload))
        except (ValueError, json.JSONDecodeError):
            return None
        if not isinstance(claims, dict):
            return None
        return claims.get('tenant_id')

    def _request_token(self, credentials: Credentials, deadline: float | None) -> AccessToken:
        form = {
            'scope': OAUTH_SCOPE,
            'client_id': CLIENT_ID,
            'username': credentials.username,
            'password': credentials.password,
            'grant_type': 'password',
            'acr_values': f"Tenant:{credentials.tenant}",
        }
        issued_at = self._clock()
        response = self.session.post(
            self.token_url,
            data=form,
            headers={'Content-Type': 'application/x-www-form-urlencoded'},
            timeout=request_timeout(self.timeout, deadline, 'authentication'),
        )

        if response.status_code != 200:
            raise AuthenticationFailed(response.status_code)

        try:
            token = AccessToken.model_validate_json(response.text)
        except ValidationError:
            raise UnexpectedAuthResponse(response.text)

        if not token.is_bearer or token.expires_in is None or token.expires_in < 0:
            raise UnexpectedAuthResponse(response.text)

        return token.model_copy(update={'issued_at': issued_at})

    @staticmethod
    def _header(token: AccessToken) -> tuple[str, str]:
        return 'Authorization', f"Bearer {token.access_token}"
