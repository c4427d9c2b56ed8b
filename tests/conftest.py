# tests/conftest.py
import gzip
import io
import json
from unittest.mock import MagicMock

import pytest
from botocore.credentials import Credentials
from botocore.exceptions import ClientError
from botocore.response import StreamingBody


class RecordingContext:
    """Stands in for the invocation context; remembers every fail() call."""
    def __init__(self):
        self.failures = []

    def fail(self, message):
        self.failures.append(message)


class ChunkedBody:
    """
    A fake S3 body that hands out pre-split chunks and notes each read in a
    shared timeline, so tests can see what happened between reads.
    """
    def __init__(self, chunks, timeline=None):
        self.chunks = chunks
        self.timeline = timeline if timeline is not None else []
        self.closed = False

    def iter_chunks(self, chunk_size=1024):
        for i, chunk in enumerate(self.chunks):
            self.timeline.append(f"chunk-{i}")
            yield chunk

    def close(self):
        self.closed = True


def gz(text: str) -> bytes:
    return gzip.compress(text.encode("utf-8"))


def array_log(records) -> bytes:
    return gz(json.dumps({"Records": records}))


def lines_log(records) -> bytes:
    return gz("".join(json.dumps(r) + "\n" for r in records))


def streaming_body(data: bytes) -> StreamingBody:
    return StreamingBody(io.BytesIO(data), len(data))


def s3_client_for(data: bytes = None, body=None) -> MagicMock:
    client = MagicMock()
    client.get_object.return_value = {"Body": body if body is not None else streaming_body(data)}
    return client


def no_such_key() -> ClientError:
    return ClientError(
        {"Error": {"Code": "NoSuchKey", "Message": "The specified key does not exist."}},
        "GetObject",
    )


@pytest.fixture
def credentials() -> Credentials:
    return Credentials("AKIDEXAMPLE", "wJalrXUtnFEMI/K7MDENG", token="session-token")


@pytest.fixture
def context() -> RecordingContext:
    return RecordingContext()
