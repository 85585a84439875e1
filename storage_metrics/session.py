# -----------------------------------------------------------------------------
# Copyright (c) 2025 Storage Metrics (scaleoutSean@Github)
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Authenticated sessions against storage array control planes.

A SessionClient logs in when it is constructed, injects its credential into
every request and may pick up a rotated credential from any response. close()
tears the session down exactly once; a failing logout is logged and never
raised. There is no retry and no re-login: an expired session surfaces as an
ordinary TransportError. A client is not safe for concurrent use because
credential rotation mutates it.
"""

import logging
import ssl
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Union

import requests
import urllib3
from requests.adapters import HTTPAdapter
from requests.auth import HTTPBasicAuth
from urllib3 import PoolManager
from urllib3.util.ssl_ import create_urllib3_context

from storage_metrics.errors import AuthenticationError, SessionStateError, TransportError

LOG = logging.getLogger(__name__)

TLS_VALIDATION_MODES = ('strict', 'normal', 'none')


class SSLAdapter(HTTPAdapter):
    """An HTTPS Transport Adapter that uses an explicit SSL context."""
    def __init__(self, verify_flags=ssl.VERIFY_X509_STRICT, **kwargs):
        self.verify_flags = verify_flags
        super().__init__(**kwargs)

    def init_poolmanager(self, connections, maxsize, block=False, **pool_kwargs):
        context = create_urllib3_context(verify_flags=self.verify_flags)
        self.poolmanager = PoolManager(num_pools=connections, maxsize=maxsize,
                                       block=block, ssl_context=context, **pool_kwargs)


@dataclass(frozen=True)
class Credentials:
    """Username plus password or token, and an optional client certificate."""
    username: str
    password: Optional[str] = None
    token: Optional[str] = None
    certificate: Optional[str] = None

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, certificate={self.certificate!r})"


class SessionState(Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    CLOSED = "closed"


def build_session(tls_validation: str = 'strict', tls_ca: Optional[str] = None,
                  certificate: Optional[str] = None) -> requests.Session:
    """
    Return a requests.Session with TLS configured for the validation mode.

    Args:
        tls_validation: 'strict', 'normal', or 'none'
        tls_ca: Path to a CA bundle used to verify the array's certificate
        certificate: Path to a client certificate (PEM)
    """
    if tls_validation not in TLS_VALIDATION_MODES:
        raise ValueError(f"Invalid tls_validation '{tls_validation}', expected one of {TLS_VALIDATION_MODES}")

    session = requests.Session()
    if tls_validation == 'none':
        session.verify = False
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
        LOG.warning("TLS validation is DISABLED (verify=False). This is insecure and should only be used for testing.")
    else:
        verify_flags = ssl.VERIFY_X509_STRICT if tls_validation == 'strict' else ssl.VERIFY_DEFAULT
        session.mount("https://", SSLAdapter(verify_flags=verify_flags))
        if tls_ca:
            session.verify = tls_ca
    if certificate:
        session.cert = certificate
    return session


class SessionClient(ABC):
    """
    Base class for one authenticated session with one array.

    Subclasses implement the vendor's auth style: _login() must store the auth
    artifact or raise AuthenticationError, _auth_headers() returns what every
    request carries, _logout() releases the server-side session.
    """

    def __init__(self, endpoint: str, credentials: Credentials, session: Optional[requests.Session] = None,
                 tls_validation: str = 'strict', tls_ca: Optional[str] = None, scheme: str = 'https',
                 timeout: Optional[float] = 30):
        self.endpoint = endpoint
        self.base_url = endpoint.rstrip('/') if endpoint.startswith('http') else f"{scheme}://{endpoint.rstrip('/')}"
        self.credentials = credentials
        self.timeout = timeout
        self.session = session if session is not None else build_session(
            tls_validation, tls_ca, credentials.certificate)
        self.state = SessionState.UNAUTHENTICATED
        self._teardown_attempted = False

        try:
            self.login()
        except Exception:
            self._teardown_attempted = True
            self.session.close()
            raise

    def url(self, path: str) -> str:
        if path.startswith('http'):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _send(self, method: str, url: str, **kwargs) -> requests.Response:
        """Issue one HTTP call; connection, TLS and non-2xx failures become TransportError."""
        kwargs.setdefault('timeout', self.timeout)
        try:
            response = self.session.request(method, url, **kwargs)
        except requests.exceptions.RequestException as e:
            raise TransportError(f"{method} {url} failed: {e}") from e
        if not 200 <= response.status_code < 300:
            raise TransportError(f"{method} {url} returned HTTP {response.status_code}",
                                 status_code=response.status_code)
        return response

    def login(self) -> None:
        if self.state is not SessionState.UNAUTHENTICATED:
            raise SessionStateError(f"Cannot log in from state {self.state.value}")
        self._login()
        self.state = SessionState.AUTHENTICATED
        LOG.info(f"[{self.__class__.__name__}] Authenticated to {self.base_url}")

    def request(self, method: str, path: str, headers: Optional[Dict[str, str]] = None,
                **kwargs) -> requests.Response:
        """
        Send an authenticated request and return the response.

        Raises:
            SessionStateError: the session is not authenticated
            TransportError: connection, TLS or non-2xx failure
        """
        if self.state is not SessionState.AUTHENTICATED:
            raise SessionStateError(f"Cannot send a request on a {self.state.value} session")
        merged = self._auth_headers()
        if headers:
            merged.update(headers)
        response = self._send(method, self.url(path), headers=merged, **kwargs)
        self._rotate_credential(response)
        return response

    def get(self, path: str, **kwargs) -> str:
        return self.request('GET', path, **kwargs).text

    def post(self, path: str, data: Optional[Union[str, bytes, dict]] = None, **kwargs) -> str:
        return self.request('POST', path, data=data, **kwargs).text

    def close(self) -> None:
        """
        Tear the session down. Only the first call does anything; logout
        failures are logged, never raised.
        """
        if self._teardown_attempted:
            return
        self._teardown_attempted = True
        try:
            if self.state is SessionState.AUTHENTICATED:
                self._logout()
                LOG.info(f"[{self.__class__.__name__}] Logged out of {self.base_url}")
        except Exception as e:
            LOG.error(f"[{self.__class__.__name__}] Logout request to {self.base_url} failed: {e}")
        finally:
            self.state = SessionState.CLOSED
            self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __del__(self):
        # A client dropped without close() still gets its one teardown attempt
        if getattr(self, "_teardown_attempted", True):
            return
        self.close()

    @abstractmethod
    def _login(self) -> None:
        pass

    @abstractmethod
    def _auth_headers(self) -> Dict[str, str]:
        pass

    @abstractmethod
    def _logout(self) -> None:
        pass

    def _rotate_credential(self, response: requests.Response) -> None:
        """Pick up a credential refreshed by the server. Default: nothing rotates."""
        return None


class TokenHeaderSession(SessionClient):
    """
    Login returns a token in a response header which replaces the password on
    later requests (Brocade Network Advisor style WStoken).
    """
    login_path = '/rest/login'
    logout_path = '/rest/logout'
    token_header = 'WStoken'
    username_header = 'WSUsername'
    password_header = 'WSPassword'
    accept = 'application/vnd.brocade.networkadvisor+json;version=v1'

    def __init__(self, *args, **kwargs):
        self.token: Optional[str] = None
        super().__init__(*args, **kwargs)

    def _login(self) -> None:
        headers = {
            'Accept': self.accept,
            self.username_header: self.credentials.username,
            self.password_header: self.credentials.password or '',
        }
        response = self._send('POST', self.url(self.login_path), headers=headers)
        token = response.headers.get(self.token_header)
        if not token:
            raise AuthenticationError(f"{self.token_header} header missing from login response. Please check server")
        self.token = token

    def _auth_headers(self) -> Dict[str, str]:
        return {'Accept': self.accept, self.token_header: self.token}

    def _logout(self) -> None:
        self._send('POST', self.url(self.logout_path), headers={self.token_header: self.token})


class CookieSession(SessionClient):
    """
    Form login sets a ticket cookie; API calls hand back a session cookie that
    may change on every response and is sent back with the ticket (Celerra
    XML API style).
    """
    login_path = '/Login'
    api_path = '/servlets/CelerraManagementServices'
    ticket_cookie = 'Ticket'
    session_cookie = 'JSESSIONID'
    session_header = 'CelerraConnector-Sess'
    control_header = 'CelerraConnector-Ctl'

    def __init__(self, *args, **kwargs):
        self.cookies: Dict[str, str] = {}
        super().__init__(*args, **kwargs)

    def _login(self) -> None:
        form = {'user': self.credentials.username, 'password': self.credentials.password or '', 'Login': 'Login'}
        response = self._send('POST', self.url(self.login_path), data=form)
        ticket = response.cookies.get(self.ticket_cookie)
        if not ticket:
            raise AuthenticationError(
                f"Server responded {response.status_code} but {self.ticket_cookie} cookie not set. Cannot proceed further")
        self.cookies = {self.ticket_cookie: ticket}

    def _auth_headers(self) -> Dict[str, str]:
        headers = {'Cookie': '; '.join(f"{name}={value}" for name, value in self.cookies.items())}
        if self.session_cookie in self.cookies:
            headers[self.session_header] = self.cookies[self.session_cookie]
        return headers

    def _rotate_credential(self, response: requests.Response) -> None:
        for name in (self.ticket_cookie, self.session_cookie):
            value = response.cookies.get(name)
            if value and value != self.cookies.get(name):
                LOG.debug(f"[{self.__class__.__name__}] {name} cookie rotated")
                self.cookies[name] = value

    def api_request(self, body: Union[str, bytes]) -> str:
        """POST an XML request packet to the management service."""
        return self.post(self.api_path, data=body, headers={'Content-Type': 'application/xml'})

    def _logout(self) -> None:
        if self.session_cookie not in self.cookies:
            raise AuthenticationError(f"Unable to find {self.session_cookie} cookie from server")
        headers = self._auth_headers()
        headers.update({
            'Content-Type': 'application/xml',
            self.control_header: 'DISCONNECT',
        })
        self._send('POST', self.url(self.api_path), headers=headers, data='')


class BearerTokenSession(SessionClient):
    """
    Access token obtained with HTTP basic auth and sent as a Bearer header
    (SANtricity style). A token already present in the credentials is used as is.
    """
    token_path = '/devmgr/v2/access-token'
    token_duration = 60

    def __init__(self, *args, **kwargs):
        self.token: Optional[str] = None
        super().__init__(*args, **kwargs)

    def _login(self) -> None:
        self.session.headers.update({
            "Accept": "application/json",
            "Content-Type": "application/json"
        })
        if self.credentials.token:
            self.token = self.credentials.token
            return
        response = self._send(
            'POST',
            self.url(self.token_path),
            json={"duration": self.token_duration},
            auth=HTTPBasicAuth(self.credentials.username, self.credentials.password or ''),
        )
        try:
            token = response.json().get('accessToken')
        except ValueError as e:
            raise AuthenticationError(f"Token response is not JSON: {e}") from e
        if not token:
            raise AuthenticationError("accessToken missing from token response")
        self.token = token

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}

    def _logout(self) -> None:
        # Tokens expire on their own; only the local connection pool is released
        LOG.debug(f"[{self.__class__.__name__}] Dropping access token for {self.base_url}")
        self.token = None
