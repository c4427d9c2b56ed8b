# pts_common/es_index.py
"""
Helpers for the indexes of an Amazon OpenSearch / Elasticsearch domain.
"""
from typing import Any, Dict, Optional

from opensearchpy import OpenSearch, RequestsHttpConnection
from opensearchpy.exceptions import OpenSearchException
from requests_aws4auth import AWS4Auth

from .aws_auth import Auth, credential_source, enable_sdk_trace
from .models import SearchConfig


def build_search_client(config: SearchConfig, credentials: Any, debug: int = 0) -> OpenSearch:
    """
    Creates an OpenSearch client whose requests are SigV4-signed with the
    given credentials.
    """
    frozen = credentials.get_frozen_credentials()
    awsauth = AWS4Auth(
        frozen.access_key,
        frozen.secret_key,
        config.region,
        config.service,
        session_token=frozen.token,
    )
    # The endpoint may be given with or without its scheme
    host = config.endpoint.split("://", 1)[-1].rstrip("/")
    if debug:
        print(f"build_search_client():: Connecting to https://{host} ({config.service}, {config.region})")
    return OpenSearch(
        hosts=[{"host": host, "port": 443}],
        http_auth=awsauth,
        use_ssl=True,
        verify_certs=True,
        connection_class=RequestsHttpConnection,
    )


class ESIndex:
    """
    Checks for and creates indexes in the search domain.
    """
    def __init__(self, config: SearchConfig, creds: Any = None, debug: int = 0, client: Optional[OpenSearch] = None):
        self.config = config
        self.debug = debug
        self.credential_source = credential_source(creds)
        self.client = client

    def _client(self) -> OpenSearch:
        if self.client is None:
            self.config.require("ESIndex", "endpoint", "service")
            enable_sdk_trace(self.debug)
            # Make sure we have valid credentials
            credentials = Auth(debug=self.debug).get_creds(self.credential_source)
            self.client = build_search_client(self.config, credentials, self.debug)
        return self.client

    def check_index(self, index: str) -> bool:
        """Returns whether the index exists in the domain."""
        if not index:
            raise ValueError("check_index() requires a valid index")
        if self.debug:
            print(f"check_index():: Checking for index: {index}")
        try:
            exists = bool(self._client().indices.exists(index=index))
        except OpenSearchException as e:
            print(f"check_index():indices.exists():: ES error: {e}")
            raise
        if self.debug:
            print(f"check_index():: Index {'exists' if exists else 'does not exist'}.")
        return exists

    def create_index(self, index: str, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Creates the index, optionally with settings/mappings, and returns the domain's response."""
        if not index:
            raise ValueError("create_index() requires a valid index")
        print(f"create_index():: Creating index: {index}")
        try:
            response = self._client().indices.create(index=index, body=body)
        except OpenSearchException as e:
            print(f"create_index():indices.create():: ES error: {e}")
            raise
        if not response:
            print("create_index():indices.create():: ES Create Index gave an empty response.")
        return response

    def ensure_index(self, index: str, body: Optional[Dict[str, Any]] = None) -> bool:
        """
        Creates the index if it is missing.

        Returns:
            True if the index had to be created.
        """
        if self.check_index(index):
            return False
        self.create_index(index, body)
        return True
