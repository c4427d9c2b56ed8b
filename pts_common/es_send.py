# pts_common/es_send.py
"""
Upserts documents into the search domain: a document whose id is already
indexed is updated, anything else is created.
"""
import json
from typing import Any, Dict, Optional

from opensearchpy import OpenSearch
from opensearchpy.exceptions import OpenSearchException

from .aws_auth import Auth, credential_source
from .es_index import build_search_client
from .models import SearchConfig


def _total_hits(response: Dict[str, Any]) -> int:
    # Older domains report an int, newer ones {"value": n, "relation": "eq"}
    total = response.get("hits", {}).get("total", 0)
    if isinstance(total, dict):
        total = total.get("value", 0)
    return int(total or 0)


def _ids_query(doc_id: Any) -> Dict[str, Any]:
    # Ids such as ARNs hold ':' and '/', which a query string would try to parse
    return {"query": {"ids": {"values": [str(doc_id)]}}}


class SendToES:
    """
    Sends documents to the search domain, keyed by the configured ``searchby`` field.
    """
    def __init__(self, config: SearchConfig, creds: Any = None, debug: int = 0, client: Optional[OpenSearch] = None):
        self.config = config
        self.debug = debug
        self.credential_source = credential_source(creds)
        self.client = client
        self._signed_client: Optional[OpenSearch] = None
        self._signed_with: Any = None

    def _client(self, credentials: Any = None) -> OpenSearch:
        if self.client is not None:
            return self.client
        if credentials is None:
            if self._signed_client is not None:
                return self._signed_client
            credentials = Auth(debug=self.debug).get_creds(self.credential_source)
        # A client is only reused while callers keep signing with the same credentials
        if self._signed_client is None or credentials is not self._signed_with:
            self._signed_client = build_search_client(self.config, credentials, self.debug)
            self._signed_with = credentials
        return self._signed_client

    def send_doc(self, doc: Dict[str, Any], context: Any, credentials: Any = None) -> Optional[Dict[str, Any]]:
        """
        Sends the given document to the search domain.

        Args:
            doc: The document to index.
            context: The caller's context; fail(message) is called if the write fails.
            credentials: Already-resolved credentials to sign requests with, if any.

        Returns:
            The update/create response, or None if the document was skipped or
            the write failed.

        Raises:
            ConfigError: If the config has no index, searchby or endpoint.
        """
        self.config.require("send_doc", "index", "searchby", "endpoint")
        if self.debug:
            print(f"send_doc():: Document: {json.dumps(doc, default=str)}")

        # The id *could* be 0 (zero), so only a missing value is rejected
        doc_id = doc.get(self.config.searchby)
        if doc_id is None:
            print(f"send_doc():: Document does not contain required attribute - {self.config.searchby}")
            return None

        es = self._client(credentials)
        index = self.config.index

        try:
            response = es.search(index=index, body=_ids_query(doc_id))
        except OpenSearchException as e:
            print(f"send_doc():search():: ES Search error: {e}")
            context.fail("send_doc():search():: ES Search failed.")
            return None

        if _total_hits(response) > 0:
            print(f"send_doc():update():: Updating doc with id {doc_id} in index {index}")
            try:
                response = es.update(index=index, id=doc_id, body={"doc": doc})
            except OpenSearchException as e:
                print(f"send_doc():update():: ES Update error: {e}")
                context.fail("send_doc():update():: ES Update failed.")
                return None
        else:
            print(f"send_doc():create():: Creating doc with id {doc_id} in index {index}")
            try:
                response = es.create(index=index, id=doc_id, body=doc)
            except OpenSearchException as e:
                print(f"send_doc():create():: ES Create error: {e}")
                context.fail("send_doc():create():: ES Create failed.")
                return None

        if self.debug:
            print(f"send_doc():: ES response: {json.dumps(response, default=str)}")
        return response
