# pts_common/s3_getlog.py
"""
Reads gzip-compressed log files from S3 and hands every record to a
callback, one at a time.

Two log layouts are supported (see ``LogFormat``):
  Array - the whole object is one JSON document with a "Records" list
  Lines - every line of the object is its own JSON document
"""
import json
import threading
import zlib
from typing import Any, Callable, Iterator, Optional, Union

from botocore.exceptions import BotoCoreError, ClientError

from .aws_auth import Auth, client_for, credential_source
from .models import (
    IngestionSession,
    InvalidLogReferenceError,
    LogFormat,
    LogReference,
    LogStreamError,
    MalformedRecordError,
    MalformedRecordPolicy,
    RecordEvent,
    get_settings,
)

RecordCallback = Callable[[RecordEvent], Any]

# Window size that makes zlib expect a gzip (or zlib) header
GZIP_WBITS = 32 + zlib.MAX_WBITS


def _is_set(cancel_event: Optional[threading.Event]) -> bool:
    return cancel_event is not None and cancel_event.is_set()


def open_log_stream(s3_client, reference: LogReference, chunk_size: int,
                    cancel_event: Optional[threading.Event] = None) -> Iterator[bytes]:
    """
    Generator of decompressed bytes for the S3 object named by ``reference``.

    Nothing is requested from S3 until the first chunk is pulled. Any problem
    opening, reading or decompressing the object is raised as LogStreamError
    while iterating. Concatenated gzip members are decompressed in sequence.
    """
    try:
        response = s3_client.get_object(Bucket=reference.bucket, Key=reference.key)
    except (ClientError, BotoCoreError) as e:
        raise LogStreamError(f"Error getting object '{reference.key}' from bucket '{reference.bucket}': {e}") from e

    body = response["Body"]
    decompressor = zlib.decompressobj(GZIP_WBITS)
    member_open = False
    try:
        for chunk in body.iter_chunks(chunk_size=chunk_size):
            if _is_set(cancel_event):
                return
            data = chunk
            while data:
                member_open = True
                output = decompressor.decompress(data)
                if output:
                    yield output
                if decompressor.eof:
                    # Anything past the end of this member belongs to the next one
                    data = decompressor.unused_data
                    decompressor = zlib.decompressobj(GZIP_WBITS)
                    member_open = False
                else:
                    data = b""
        if member_open:
            raise LogStreamError(f"Object '{reference.key}' ended in the middle of a gzip stream (truncated?)")
    except (ClientError, BotoCoreError, zlib.error, OSError) as e:
        raise LogStreamError(f"Error reading object '{reference.key}' from bucket '{reference.bucket}': {e}") from e
    finally:
        body.close()


class _Dispatcher:
    """Parses one decompressed log and feeds its records to the callback."""

    def __init__(self, session: IngestionSession, on_record: RecordCallback, context: Any,
                 credentials: Any, forwarded: Any, cancel_event: Optional[threading.Event],
                 malformed_policy: MalformedRecordPolicy, debug: int):
        self.session = session
        self.on_record = on_record
        self.context = context
        self.credentials = credentials
        self.forwarded = forwarded
        self.cancel_event = cancel_event
        self.malformed_policy = malformed_policy
        self.debug = debug

    def _send(self, record: Any, index: int) -> None:
        self.on_record(RecordEvent(
            record=record,
            context=self.context,
            credentials=self.credentials,
            index=index,
            session=self.session,
            forwarded=self.forwarded,
        ))

    def _halt(self) -> bool:
        if _is_set(self.cancel_event):
            self.session.cancelled = True
            print(f"dispatch():: Cancelled after {self.session.records_dispatched} records")
            return True
        return False

    def read_array(self, chunks: Iterator[bytes]) -> None:
        """Buffers the whole object, then dispatches its "Records" in order."""
        json_bytes = b"".join(chunks)
        if self._halt():
            return
        print("read_log_array():: Done reading stream")

        try:
            document = json.loads(json_bytes)
        except ValueError as e:
            raise MalformedRecordError(f"Log '{self.session.reference.key}' is not a valid JSON document: {e}") from e
        records = document.get("Records") if isinstance(document, dict) else None
        if not isinstance(records, list):
            raise MalformedRecordError(f"Log '{self.session.reference.key}' has no 'Records' list")

        self.session.records_dispatched = len(records)
        for i, record in enumerate(records):
            if self._halt():
                return
            if self.debug:
                print(f"read_log_array():: Sending log record {i + 1} to {getattr(self.on_record, '__name__', self.on_record)}")
            self._send(record, i)

        print(f"read_log_array():: Finished processing {len(records)} records.")
        self.session.completed = True

    def read_lines(self, chunks: Iterator[bytes]) -> None:
        """Dispatches each line as soon as it has fully arrived."""
        leftover = b""
        line_number = 0
        for chunk in chunks:
            lines = (leftover + chunk).split(b"\n")
            # The last piece may be an incomplete line; hold it for the next chunk
            leftover = lines.pop()
            for line in lines:
                line_number += 1
                if self._halt():
                    return
                self._dispatch_line(line, line_number)
        if self._halt():
            return
        if leftover:
            self._dispatch_line(leftover, line_number + 1)

        print(f"read_log_lines():: Done reading {self.session.records_dispatched} lines")
        self.session.completed = True

    def _dispatch_line(self, line: bytes, line_number: int) -> None:
        if not line.strip():
            return
        try:
            record = json.loads(line)
        except ValueError as e:
            if self.malformed_policy is MalformedRecordPolicy.SKIP:
                self.session.records_skipped += 1
                print(f"⚠️ read_log_lines():: Skipping malformed line {line_number} of '{self.session.reference.key}': {e}")
                return
            raise MalformedRecordError(
                f"Line {line_number} of '{self.session.reference.key}' is not valid JSON: {e}",
                line_number=line_number,
            ) from e

        index = self.session.records_dispatched
        self.session.records_dispatched += 1
        if self.debug:
            print(f"read_log_lines():: Parsing line {line_number}, record {index + 1}")
        self._send(record, index)


class GetLog:
    """
    Reads log files from S3 and passes their records to a callback.

    Each call to ``get_log_from_s3`` gets its own IngestionSession, so one
    GetLog instance may serve any number of retrievals.
    """
    def __init__(self, creds: Any = None, debug: Optional[int] = None, chunk_size: Optional[int] = None,
                 malformed_policy: Union[str, MalformedRecordPolicy, None] = None,
                 strict_format: Optional[bool] = None, region: Optional[str] = None):
        settings = get_settings()
        self.debug = settings.debug if debug is None else debug
        self.credential_source = credential_source(creds)
        self.chunk_size = chunk_size or settings.s3_chunk_size
        self.malformed_policy = MalformedRecordPolicy(malformed_policy or settings.malformed_record_policy)
        self.strict_format = settings.strict_log_format if strict_format is None else strict_format
        self.region = region
        self.auth = Auth(debug=self.debug)

    def get_log_from_s3(self, s3_log: Union[LogReference, dict], on_record: RecordCallback, context: Any,
                        forwarded: Any = None, cancel_event: Optional[threading.Event] = None,
                        wait: bool = True) -> IngestionSession:
        """
        Requests a log file from S3 and dispatches its records.

        Args:
            s3_log: The log to retrieve, a LogReference or {"bucket", "key", "type"}.
            on_record: Called once per record with a RecordEvent.
            context: The caller's context; its fail(message) is called if the
                object cannot be read.
            forwarded: Passed along untouched in every RecordEvent.
            cancel_event: When set, reading stops and the stream is closed.
            wait: If False, records are dispatched on a background thread and the
                session is returned immediately for polling.

        Returns:
            The IngestionSession tracking this retrieval.

        Raises:
            InvalidLogReferenceError: If the log reference is incomplete.
            TypeError: If on_record is not callable or context cannot fail().
            CredentialsError: If credentials cannot be resolved. No stream is opened.
            MalformedRecordError: If a record cannot be parsed (abort policy).
        """
        reference = self._reference(s3_log)
        if not callable(on_record):
            raise TypeError("get_log_from_s3() requires callback")
        if not callable(getattr(context, "fail", None)):
            raise TypeError("get_log_from_s3() requires a context with fail()")

        print(f"get_log_from_s3():: Reading s3://{reference.bucket}/{reference.key} as {reference.format.value}")
        credentials = self.auth.get_creds(self.credential_source)
        s3_client = client_for("s3", credentials, self.region)

        session = IngestionSession(reference)
        dispatcher = _Dispatcher(session, on_record, context, credentials, forwarded,
                                 cancel_event, self.malformed_policy, self.debug)
        if wait:
            self._read(s3_client, dispatcher)
            return session

        def run():
            try:
                self._read(s3_client, dispatcher)
            except Exception as e:
                print(f"❌ get_log_from_s3():: Background read of '{reference.key}' aborted: {e}")
                session.error = e

        session.run_in_background(run)
        return session

    def _reference(self, s3_log: Union[LogReference, dict]) -> LogReference:
        if isinstance(s3_log, LogReference):
            return s3_log
        if isinstance(s3_log, dict):
            return LogReference.from_dict(s3_log, strict=self.strict_format)
        raise InvalidLogReferenceError("get_log_from_s3() requires S3 Log")

    def _read(self, s3_client, dispatcher: _Dispatcher) -> None:
        session = dispatcher.session
        reference = session.reference
        chunks = open_log_stream(s3_client, reference, self.chunk_size, dispatcher.cancel_event)
        try:
            if reference.format is LogFormat.LINES:
                dispatcher.read_lines(chunks)
            else:
                dispatcher.read_array(chunks)
        except LogStreamError as e:
            print(f"❌ get_log_from_s3():: {e}. Make sure they exist and your bucket is in the same region as this function.")
            dispatcher.context.fail(f"get_log_from_s3():: Error processing S3 stream for '{reference.key}'")
        finally:
            chunks.close()
