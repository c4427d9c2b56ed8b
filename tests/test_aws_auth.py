# tests/test_aws_auth.py
import logging
from unittest.mock import MagicMock, patch

import pytest
from botocore.credentials import CredentialResolver, Credentials
from botocore.exceptions import CredentialRetrievalError

from pts_common import Auth, ChainCredentials, CredentialsError, DefaultCredentials, StaticCredentials
from pts_common.aws_auth import client_for, credential_source


def test_credential_source_is_picked_from_what_was_configured(credentials):
    assert isinstance(credential_source(None), DefaultCredentials)
    assert isinstance(credential_source(credentials), StaticCredentials)
    assert isinstance(credential_source(CredentialResolver(providers=[])), ChainCredentials)

    existing = StaticCredentials(credentials)
    assert credential_source(existing) is existing


def test_unsupported_credentials_are_rejected():
    with pytest.raises(TypeError):
        credential_source("AKIDEXAMPLE:secret")


def test_static_credentials_resolve_to_themselves(credentials):
    assert Auth().get_creds(credentials) is credentials


def test_chain_resolves_through_its_providers(credentials):
    provider = MagicMock()
    provider.METHOD = "test"
    provider.load.return_value = credentials

    assert Auth().get_creds(CredentialResolver(providers=[provider])) is credentials


def test_empty_chain_is_a_credentials_error():
    with pytest.raises(CredentialsError):
        Auth().get_creds(CredentialResolver(providers=[]))


def test_chain_provider_error_is_a_credentials_error():
    provider = MagicMock()
    provider.METHOD = "broken"
    provider.load.side_effect = CredentialRetrievalError(provider="broken", error_msg="no role")

    with pytest.raises(CredentialsError, match="no role"):
        Auth().get_creds(CredentialResolver(providers=[provider]))


def test_default_chain_without_credentials_is_a_credentials_error():
    session = MagicMock()
    session.get_credentials.return_value = None

    with pytest.raises(CredentialsError):
        DefaultCredentials(session).resolve()


def test_default_chain_returns_session_credentials(credentials):
    session = MagicMock()
    session.get_credentials.return_value = credentials

    assert DefaultCredentials(session).resolve() is credentials


@pytest.fixture
def botocore_logger():
    logger = logging.getLogger("botocore")
    handlers, level = list(logger.handlers), logger.level
    yield logger
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
    logger.setLevel(level)


def test_debug_level_two_traces_botocore_once(botocore_logger, credentials):
    before = list(botocore_logger.handlers)
    for _ in range(5):
        Auth(debug=2).get_creds(credentials)

    added = [h for h in botocore_logger.handlers if h not in before]
    assert len(added) == 1
    assert botocore_logger.level == logging.DEBUG


@patch("pts_common.aws_auth.boto3.set_stream_logger")
def test_lower_debug_levels_do_not_trace_botocore(mock_set_stream_logger, credentials):
    Auth(debug=1).get_creds(credentials)
    Auth(debug=0).get_creds(credentials)
    mock_set_stream_logger.assert_not_called()


@patch("pts_common.aws_auth.boto3.client")
def test_client_for_signs_with_the_given_credentials(mock_boto_client):
    client_for("s3", Credentials("AKID", "SECRET", "TOKEN"), "us-east-2")

    mock_boto_client.assert_called_once_with(
        "s3",
        region_name="us-east-2",
        aws_access_key_id="AKID",
        aws_secret_access_key="SECRET",
        aws_session_token="TOKEN",
    )


@patch("pts_common.aws_auth.boto3.client")
def test_client_for_without_credentials_uses_boto_defaults(mock_boto_client):
    client_for("s3")
    mock_boto_client.assert_called_once_with("s3", region_name=None)
