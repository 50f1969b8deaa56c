"""Tests for the XRPC client with a mocked requests session."""

import os
import sys

import pytest
import requests

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from conftest import mock_response
from folio_pkg.atproto import AtProtoClient, USER_AGENT
from folio_pkg.errors import ErrorKind
from folio_pkg.settings import AtProtoConfig


@pytest.fixture
def client(mock_session):
    return AtProtoClient('https://pds.example.com/', 'did:plc:abc123', 'jwt-token', session=mock_session)


class TestLogin:
    def test_successful_login(self, atproto_config, mock_session):
        mock_session.post.return_value = mock_response(200, {'accessJwt': 'jwt', 'did': 'did:plc:abc123'})
        success, client = AtProtoClient.login(atproto_config, session=mock_session)

        assert success
        assert client.did == 'did:plc:abc123'
        assert client.access_jwt == 'jwt'
        args, kwargs = mock_session.post.call_args
        assert args[0] == 'https://bsky.social/xrpc/com.atproto.server.createSession'
        assert kwargs['json'] == {'identifier': 'alice.example.com', 'password': 'app-pass'}
        assert kwargs['timeout'] == 15

    def test_rejected_credentials_name_handle_and_service(self, atproto_config, mock_session):
        mock_session.post.return_value = mock_response(
            401, {'error': 'AuthenticationRequired', 'message': 'Invalid identifier or password'})
        success, error = AtProtoClient.login(atproto_config, session=mock_session)

        assert not success
        assert error.kind == ErrorKind.AUTH
        assert 'alice.example.com' in error.message
        assert 'https://bsky.social' in error.message
        assert 'app password' in error.message

    def test_bad_request_is_auth_error(self, atproto_config, mock_session):
        mock_session.post.return_value = mock_response(400, {'error': 'InvalidRequest'})
        success, error = AtProtoClient.login(atproto_config, session=mock_session)
        assert not success
        assert error.kind == ErrorKind.AUTH

    def test_connection_failure_is_retryable_network_error(self, atproto_config, mock_session):
        mock_session.post.side_effect = requests.exceptions.ConnectionError('DNS failure')
        success, error = AtProtoClient.login(atproto_config, session=mock_session)
        assert not success
        assert error.kind == ErrorKind.NETWORK
        assert error.retryable

    def test_non_json_response(self, atproto_config, mock_session):
        mock_session.post.return_value = mock_response(200, text='<html>')
        success, error = AtProtoClient.login(atproto_config, session=mock_session)
        assert not success
        assert error.kind == ErrorKind.PARSE

    def test_invalid_service_url(self, mock_session):
        config = AtProtoConfig(did='did:plc:x', handle='a', app_password='b', service='ftp://pds.example.com')
        success, error = AtProtoClient.login(config, session=mock_session)
        assert not success
        assert error.kind == ErrorKind.AUTH
        mock_session.post.assert_not_called()


class TestRecords:
    def test_put_record(self, client, mock_session):
        mock_session.post.return_value = mock_response(200, {'uri': 'at://x', 'cid': 'bafy'})
        success, result = client.put_record('site.standard.document', 'hello', {'title': 'Hello'})

        assert success
        assert result == {'uri': 'at://x', 'cid': 'bafy'}
        args, kwargs = mock_session.post.call_args
        assert args[0] == 'https://pds.example.com/xrpc/com.atproto.repo.putRecord'
        assert kwargs['json'] == {
            'repo': 'did:plc:abc123',
            'collection': 'site.standard.document',
            'rkey': 'hello',
            'record': {'title': 'Hello'},
        }
        assert kwargs['headers']['Authorization'] == 'Bearer jwt-token'
        assert kwargs['headers']['User-Agent'] == USER_AGENT

    def test_get_record_not_found(self, client, mock_session):
        mock_session.get.return_value = mock_response(400, {'error': 'RecordNotFound', 'message': 'nope'})
        success, error = client.get_record('site.standard.document', 'missing')
        assert not success
        assert error.kind == ErrorKind.NOT_FOUND

    def test_list_records_passes_cursor(self, client, mock_session):
        mock_session.get.return_value = mock_response(200, {'records': [], 'cursor': 'next'})
        success, page = client.list_records('site.standard.document', cursor='abc')

        assert success
        assert page['cursor'] == 'next'
        _, kwargs = mock_session.get.call_args
        assert kwargs['params'] == {
            'repo': 'did:plc:abc123',
            'collection': 'site.standard.document',
            'limit': 100,
            'cursor': 'abc',
        }

    def test_list_records_requires_records_list(self, client, mock_session):
        mock_session.get.return_value = mock_response(200, {'cursor': 'x'})
        success, error = client.list_records('site.standard.document')
        assert not success
        assert error.kind == ErrorKind.PARSE

    def test_delete_record_with_empty_body(self, client, mock_session):
        mock_session.post.return_value = mock_response(200, text='')
        assert client.delete_record('site.standard.document', 'hello') == (True, None)

    def test_server_error_is_retryable(self, client, mock_session):
        mock_session.get.return_value = mock_response(503, text='Service Unavailable')
        success, error = client.list_records('site.standard.document')
        assert not success
        assert error.kind == ErrorKind.NETWORK
        assert error.retryable

    def test_expired_session(self, client, mock_session):
        mock_session.post.return_value = mock_response(400, {'error': 'ExpiredToken', 'message': 'expired'})
        success, error = client.put_record('c', 'k', {})
        assert not success
        assert error.kind == ErrorKind.AUTH

    def test_timeout(self, client, mock_session):
        mock_session.get.side_effect = requests.exceptions.Timeout('slow')
        success, error = client.get_record('c', 'k')
        assert not success
        assert error.kind == ErrorKind.NETWORK
