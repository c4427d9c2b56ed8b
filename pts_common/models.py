# pts_common/models.py
"""
Settings, plain-dataclass models and error types shared by the PTS helpers.
"""
import os
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


class AppSettings:
    """
    Loads configuration settings directly from environment variables,
    providing sensible defaults for local testing.
    """
    def __init__(self):
        self.aws_region: str = os.getenv("AWS_REGION", "us-east-1")
        self.log_bucket: str = os.getenv("LOG_BUCKET", "")

        # Search domain
        self.es_endpoint: str = os.getenv("ES_ENDPOINT", "")
        self.es_region: str = os.getenv("ES_REGION", self.aws_region)
        self.es_service: str = os.getenv("ES_SERVICE", "es")
        self.es_index: str = os.getenv("ES_INDEX", "logs")
        self.es_search_by: str = os.getenv("ES_SEARCH_BY", "eventID")

        # Log reading
        self.log_format: str = os.getenv("LOG_FORMAT", "Array")
        self.strict_log_format: bool = os.getenv("STRICT_LOG_FORMAT", "false").lower() in ("1", "true", "yes")
        self.malformed_record_policy: str = os.getenv("MALFORMED_RECORD_POLICY", "abort")
        self.s3_chunk_size: int = int(os.getenv("S3_CHUNK_SIZE", str(1024 * 1024)))

        # 0 = quiet | 1 = verbose | 2 = also trace botocore
        self.debug: int = int(os.getenv("PTS_DEBUG", "0"))


def get_settings() -> AppSettings:
    """Builds the settings from the current environment."""
    return AppSettings()


# Errors
class PtsError(Exception):
    """Base class for every error raised by the PTS helpers."""


class CredentialsError(PtsError):
    """Credentials could not be resolved. Fatal to the calling retrieval."""


class InvalidLogReferenceError(PtsError, ValueError):
    """The log reference is missing a bucket/key or names an unknown format."""


class ConfigError(PtsError, ValueError):
    """A required search configuration field is missing."""


class LogStreamError(PtsError):
    """The S3 object could not be opened, read or decompressed."""


class MalformedRecordError(PtsError, ValueError):
    """A log document or line is not a valid record."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        super().__init__(message)
        self.line_number = line_number


class MalformedRecordPolicy(str, Enum):
    ABORT = "abort"
    SKIP = "skip"


class LogFormat(str, Enum):
    """
    Supported S3 log layouts:
      Array - (default) a single JSON document holding a "Records" list
      Lines - one JSON object per line
    """
    ARRAY = "Array"
    LINES = "Lines"

    @classmethod
    def parse(cls, value: Optional[str], strict: bool = False) -> "LogFormat":
        if isinstance(value, cls):
            return value
        for member in cls:
            if value == member.value:
                return member
        if value and strict:
            raise InvalidLogReferenceError(f"Unknown log format '{value}'. Expected one of: Array, Lines")
        print(f"LogFormat.parse():: Unknown or unspecified log format [{value}], assuming Array")
        return cls.ARRAY


# Data models
@dataclass(frozen=True)
class LogReference:
    """Identifies a compressed log object in S3 and how its records are laid out."""
    bucket: str
    key: str
    format: LogFormat = LogFormat.ARRAY

    def __post_init__(self):
        if not self.bucket or not self.key:
            raise InvalidLogReferenceError("A log reference requires both a bucket and a key.")

    @classmethod
    def from_dict(cls, s3_log: Dict[str, Any], strict: bool = False) -> "LogReference":
        """Accepts the {"bucket", "key", "type"} shape used by callers of the S3 log reader."""
        if not s3_log:
            raise InvalidLogReferenceError("A log reference requires both a bucket and a key.")
        return cls(
            bucket=s3_log.get("bucket"),
            key=s3_log.get("key"),
            format=LogFormat.parse(s3_log.get("type"), strict=strict),
        )


class InvocationContext:
    """
    Wraps the Lambda context object and gives the helpers somewhere to
    report an unrecoverable failure.
    """
    def __init__(self, lambda_context: object = None):
        self.lambda_context = lambda_context
        self.failures: List[str] = []

    def fail(self, message: str) -> None:
        print(f"❌ FAILURE: {message}")
        self.failures.append(message)

    @property
    def failed(self) -> bool:
        return bool(self.failures)


class IngestionSession:
    """
    Progress of a single log retrieval. Each retrieval owns its session, so
    overlapping retrievals never share counters.
    """
    def __init__(self, reference: LogReference):
        self.reference = reference
        self.records_dispatched: int = 0
        self.records_skipped: int = 0
        self.completed: bool = False
        self.cancelled: bool = False
        self.error: Optional[BaseException] = None
        self._thread: Optional[threading.Thread] = None

    def record_count(self) -> int:
        """Number of records handed to the callback so far."""
        return self.records_dispatched

    def is_complete(self) -> bool:
        """True only once the whole object has been read and dispatched."""
        return self.completed

    def run_in_background(self, target: Callable[[], None]) -> None:
        """Runs the retrieval on a daemon thread; join() waits for it."""
        if self._thread is not None:
            raise RuntimeError(f"{self!r} is already running")
        self._thread = threading.Thread(target=target, name=f"getlog-{self.reference.key}", daemon=True)
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> "IngestionSession":
        """
        Waits for a background retrieval to finish. A parse or callback
        failure raised on the worker thread is re-raised here.
        """
        if self._thread is not None:
            self._thread.join(timeout)
        if self.error is not None:
            raise self.error
        return self

    def __repr__(self) -> str:
        return (f"IngestionSession(s3://{self.reference.bucket}/{self.reference.key}, "
                f"records={self.records_dispatched}, completed={self.completed})")


@dataclass(frozen=True)
class RecordEvent:
    """
    What a record callback receives for every record read from a log.
    """
    record: Dict[str, Any]
    context: Any
    credentials: Any
    index: int
    session: IngestionSession
    forwarded: Any = None


@dataclass
class SearchConfig:
    """Where and how records are written to the search domain."""
    endpoint: str = ""
    region: str = "us-east-1"
    index: str = ""
    searchby: str = ""
    service: str = "es"

    @classmethod
    def from_settings(cls, settings: Optional[AppSettings] = None) -> "SearchConfig":
        settings = settings or get_settings()
        return cls(
            endpoint=settings.es_endpoint,
            region=settings.es_region,
            index=settings.es_index,
            searchby=settings.es_search_by,
            service=settings.es_service,
        )

    def require(self, caller: str, *names: str) -> None:
        missing = [name for name in names if not getattr(self, name)]
        if missing:
            raise ConfigError(f"{caller}() requires a valid config (missing: {', '.join(missing)})")
