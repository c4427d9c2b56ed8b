# pts_common/aws_auth.py
"""
Credential resolution for the PTS helpers.

Every credential source exposes a single ``resolve()`` method. Helpers pick
their source once, when they are configured.
"""
import logging
from typing import Any, Optional, Protocol

import boto3
from botocore.credentials import CredentialResolver, Credentials
from botocore.exceptions import BotoCoreError

from .models import CredentialsError


class CredentialSource(Protocol):
    def resolve(self) -> Credentials:
        ...


class StaticCredentials:
    """Credentials that were already populated by the caller."""
    def __init__(self, credentials: Credentials):
        self.credentials = credentials

    def resolve(self) -> Credentials:
        return self.credentials


class ChainCredentials:
    """Resolves an explicit botocore provider chain."""
    def __init__(self, resolver: CredentialResolver):
        self.resolver = resolver

    def resolve(self) -> Credentials:
        try:
            credentials = self.resolver.load_credentials()
        except BotoCoreError as e:
            raise CredentialsError(f"Encountered an error attempting to resolve credentials from the chain. Error: {e}") from e
        if credentials is None:
            raise CredentialsError("Unable to resolve credentials from the chain, aborting.")
        return credentials


class DefaultCredentials:
    """Resolves the default boto3 chain (env vars, shared config, instance/Lambda role)."""
    def __init__(self, session: Optional[boto3.session.Session] = None):
        self.session = session

    def resolve(self) -> Credentials:
        session = self.session or boto3.session.Session()
        try:
            credentials = session.get_credentials()
        except BotoCoreError as e:
            raise CredentialsError(f"Encountered an error attempting to resolve credentials from the default chain. Error: {e}") from e
        if credentials is None:
            raise CredentialsError("Unable to resolve credentials from the default chain, aborting.")
        return credentials


def credential_source(creds: Any = None) -> CredentialSource:
    """
    Picks the credential source for whatever the caller configured a helper with.

    Args:
        creds: None (use the default chain), populated botocore Credentials,
            a botocore CredentialResolver, or an existing credential source.

    Raises:
        TypeError: If creds is none of the above.
    """
    if creds is None:
        return DefaultCredentials()
    if isinstance(creds, Credentials):
        return StaticCredentials(creds)
    if isinstance(creds, CredentialResolver):
        return ChainCredentials(creds)
    if callable(getattr(creds, "resolve", None)):
        return creds
    raise TypeError(f"Unsupported credentials type: {type(creds).__name__}")


def enable_sdk_trace(debug: int) -> None:
    """
    At debug level 2 and above, botocore logs every request it makes. The
    stream handler is attached once per process, however often this is called.
    """
    if debug < 2:
        return
    logger = logging.getLogger("botocore")
    if any(isinstance(handler, logging.StreamHandler) for handler in logger.handlers):
        return
    boto3.set_stream_logger("botocore", logging.DEBUG)


class Auth:
    """
    Resolves AWS credentials, either from a supplied provider chain or from
    the default chain.
    """
    def __init__(self, debug: int = 0):
        self.debug = debug

    def get_creds(self, cred_chain: Any = None) -> Credentials:
        """
        Resolves credentials and returns them.

        Args:
            cred_chain: Chain to use in obtaining a credential, or None to use the default.

        Raises:
            CredentialsError: If nothing could be resolved.
            TypeError: If cred_chain is not something credentials can be resolved from.
        """
        enable_sdk_trace(self.debug)
        source = credential_source(cred_chain)
        if self.debug:
            print(f"get_creds():: Resolving credentials via {type(source).__name__}")
        credentials = source.resolve()
        if self.debug:
            print(f"get_creds():: Resolved credentials using method '{getattr(credentials, 'method', 'static')}'")
        return credentials


def client_for(service_name: str, credentials: Optional[Credentials] = None, region_name: Optional[str] = None):
    """
    Builds a boto3 client signed with the given credentials. With no
    credentials, boto3 chooses its own defaults.
    """
    if credentials is None:
        return boto3.client(service_name, region_name=region_name)
    frozen = credentials.get_frozen_credentials()
    return boto3.client(
        service_name,
        region_name=region_name,
        aws_access_key_id=frozen.access_key,
        aws_secret_access_key=frozen.secret_key,
        aws_session_token=frozen.token,
    )
