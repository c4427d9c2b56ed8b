# pts_common/__init__.py
"""
Common PTS helpers for Lambda functions: resolve AWS credentials, read
compressed logs from S3, upsert their records into a search domain and put
objects back into S3.
"""
from .aws_auth import Auth, ChainCredentials, DefaultCredentials, StaticCredentials
from .es_index import ESIndex
from .es_send import SendToES
from .models import (
    ConfigError,
    CredentialsError,
    IngestionSession,
    InvalidLogReferenceError,
    InvocationContext,
    LogFormat,
    LogReference,
    LogStreamError,
    MalformedRecordError,
    MalformedRecordPolicy,
    RecordEvent,
    SearchConfig,
)
from .s3_getlog import GetLog
from .s3_put import PutS3, gzip_records

__all__ = [
    "Auth",
    "ChainCredentials",
    "ConfigError",
    "CredentialsError",
    "DefaultCredentials",
    "ESIndex",
    "GetLog",
    "IngestionSession",
    "InvalidLogReferenceError",
    "InvocationContext",
    "LogFormat",
    "LogReference",
    "LogStreamError",
    "MalformedRecordError",
    "MalformedRecordPolicy",
    "PutS3",
    "RecordEvent",
    "SearchConfig",
    "SendToES",
    "StaticCredentials",
    "gzip_records",
]
