"""
AT Protocol XRPC client.

Talks to a PDS with plain HTTP calls against ``/xrpc/<method>``. A session is
created once from a handle and app password; its bearer token authorizes
every later call. All operations return ``(success, value_or_error)``.
"""

import logging
from typing import Any, Dict, Optional

import requests

from . import __version__
from .errors import ErrorKind, create_error
from .url_validator import ServiceURLValidator

CREATE_SESSION = 'com.atproto.server.createSession'
PUT_RECORD = 'com.atproto.repo.putRecord'
GET_RECORD = 'com.atproto.repo.getRecord'
LIST_RECORDS = 'com.atproto.repo.listRecords'
DELETE_RECORD = 'com.atproto.repo.deleteRecord'

DEFAULT_TIMEOUT = 15
USER_AGENT = f'Folio/{__version__}'

logger = logging.getLogger('Folio.atproto')


def _error_payload(response) -> Dict[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


def _body_snippet(response, limit=200) -> str:
    text = (response.text or '').strip()
    return text[:limit]


class AtProtoClient:
    """An authenticated XRPC session against one PDS."""

    def __init__(self, service: str, did: str, access_jwt: str, session=None,
                 timeout: float = DEFAULT_TIMEOUT):
        self.service = ServiceURLValidator.origin(service)
        self.did = did
        self.access_jwt = access_jwt
        self.session = session or requests.Session()
        self.timeout = timeout

    @classmethod
    def login(cls, config, session=None, timeout: float = DEFAULT_TIMEOUT,
              validator: Optional[ServiceURLValidator] = None):
        """
        Exchange a handle and app password for a session.

        Args:
            config: An ``AtProtoConfig`` with handle, app_password and service
            session: Optional requests session to reuse
            timeout: Per-call timeout in seconds

        Returns:
            ``(True, AtProtoClient)`` or ``(False, FolioError)``
        """
        validator = validator or ServiceURLValidator()
        is_valid, message = validator.validate(config.service)
        if not is_valid:
            return False, create_error(ErrorKind.AUTH, f"Invalid service URL {config.service!r}: {message}")

        service = ServiceURLValidator.origin(config.service)
        session = session or requests.Session()
        url = f"{service}/xrpc/{CREATE_SESSION}"

        try:
            response = session.post(
                url,
                json={'identifier': config.handle, 'password': config.app_password},
                headers={'User-Agent': USER_AGENT},
                timeout=timeout,
            )
        except requests.exceptions.RequestException as e:
            return False, create_error(
                ErrorKind.NETWORK,
                f"Could not reach {service} to authenticate: {e}",
                e,
                retryable=True,
            )

        status = response.status_code
        if status in (400, 401, 403, 404):
            # A bad password and a server that does not host the account look alike
            detail = _error_payload(response).get('message') or _body_snippet(response)
            return False, create_error(
                ErrorKind.AUTH,
                f"Authentication failed for {config.handle} at {service} (HTTP {status}: {detail}). "
                f"Check the app password, and check the service URL if the account is hosted "
                f"on a PDS other than {service}.",
            )
        if not 200 <= status < 300:
            return False, create_error(
                ErrorKind.NETWORK,
                f"createSession at {service} failed (HTTP {status}): {_body_snippet(response)}",
                retryable=status >= 500,
            )

        try:
            payload = response.json()
            access_jwt = payload['accessJwt']
            did = payload['did']
        except (ValueError, KeyError, TypeError) as e:
            return False, create_error(ErrorKind.PARSE, f"Unexpected createSession response from {service}", e)

        logger.info(f"Authenticated as {config.handle} ({did}) at {service}")
        return True, cls(service, did, access_jwt, session=session, timeout=timeout)

    def _xrpc(self, http_method: str, endpoint: str, params: Dict[str, Any] = None,
              body: Dict[str, Any] = None):
        url = f"{self.service}/xrpc/{endpoint}"
        headers = {
            'Authorization': f'Bearer {self.access_jwt}',
            'User-Agent': USER_AGENT,
        }

        try:
            if http_method == 'GET':
                response = self.session.get(url, params=params, headers=headers, timeout=self.timeout)
            else:
                response = self.session.post(url, json=body, headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            return False, create_error(ErrorKind.NETWORK, f"XRPC call failed: {endpoint}: {e}", e, retryable=True)

        status = response.status_code
        if not 200 <= status < 300:
            return False, self._status_error(endpoint, response)

        if not response.text:
            return True, {}
        try:
            return True, response.json()
        except ValueError as e:
            return False, create_error(ErrorKind.PARSE, f"XRPC {endpoint} returned invalid JSON", e)

    def _status_error(self, endpoint, response):
        status = response.status_code
        payload = _error_payload(response)
        code = payload.get('error', '')
        detail = payload.get('message') or _body_snippet(response)

        if status == 404 or code == 'RecordNotFound':
            return create_error(ErrorKind.NOT_FOUND, f"XRPC {endpoint}: record not found")
        if status == 401 or code in ('ExpiredToken', 'InvalidToken', 'AuthRequired'):
            return create_error(ErrorKind.AUTH, f"XRPC {endpoint} rejected the session (HTTP {status}): {detail}")
        return create_error(
            ErrorKind.NETWORK,
            f"XRPC {endpoint} failed (HTTP {status}): {detail}",
            retryable=status >= 500 or status == 429,
        )

    def put_record(self, collection: str, rkey: str, record: Dict[str, Any]):
        """Create or overwrite a record. Returns ``{uri, cid}``."""
        return self._xrpc('POST', PUT_RECORD, body={
            'repo': self.did,
            'collection': collection,
            'rkey': rkey,
            'record': record,
        })

    def get_record(self, collection: str, rkey: str):
        """Returns ``{uri, cid, value}``; a missing record is a NotFound error."""
        return self._xrpc('GET', GET_RECORD, params={
            'repo': self.did,
            'collection': collection,
            'rkey': rkey,
        })

    def list_records(self, collection: str, limit: int = 100, cursor: Optional[str] = None):
        """One page of records: ``{records: [...], cursor?}``.

        A missing cursor marks the last page.
        """
        params = {'repo': self.did, 'collection': collection, 'limit': limit}
        if cursor:
            params['cursor'] = cursor

        success, result = self._xrpc('GET', LIST_RECORDS, params=params)
        if not success:
            return False, result
        if not isinstance(result.get('records'), list):
            return False, create_error(ErrorKind.PARSE, f"XRPC {LIST_RECORDS} response has no records list")
        return True, result

    def delete_record(self, collection: str, rkey: str):
        success, result = self._xrpc('POST', DELETE_RECORD, body={
            'repo': self.did,
            'collection': collection,
            'rkey': rkey,
        })
        if not success:
            return False, result
        return True, None

    def close(self):
        self.session.close()
