# lambdas/ingest_log/app.py
import json
import urllib.parse
from typing import Any, Dict

from pts_common import (
    ESIndex,
    GetLog,
    InvocationContext,
    LogFormat,
    LogReference,
    RecordEvent,
    SearchConfig,
    SendToES,
)
from pts_common.models import get_settings


def build_response(status_code: int, body: dict) -> dict:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body),
    }


def references_from_event(event: Dict[str, Any], log_format: LogFormat) -> list:
    """
    Pulls the (bucket, key) of every object in an S3 notification event.
    Object keys arrive URL-encoded.
    """
    references = []
    for record in event.get("Records", []):
        s3_record = record.get("s3")
        if not s3_record:
            continue
        references.append(LogReference(
            bucket=s3_record["bucket"]["name"],
            key=urllib.parse.unquote_plus(s3_record["object"]["key"]),
            format=log_format,
        ))
    return references


def index_record(event: RecordEvent) -> None:
    """Record callback: upserts one log record into the search domain."""
    sender: SendToES = event.forwarded
    sender.send_doc(event.record, event.context, event.credentials)


# Lambda handler
def handler(event, context):
    """
    Triggered by S3 when a compressed log lands in the bucket. Every record of
    the log is upserted into the search index.
    """
    print("--- Ingest Log Lambda Triggered ---")
    settings = get_settings()
    config = SearchConfig.from_settings(settings)

    if not config.endpoint:
        print("❌ FATAL: ES_ENDPOINT is not set. Aborting.")
        return build_response(500, {"error": "Server configuration error."})

    try:
        log_format = LogFormat.parse(settings.log_format, strict=settings.strict_log_format)
    except ValueError as e:
        print(f"❌ FATAL: {e}. Aborting.")
        return build_response(500, {"error": "Server configuration error."})

    try:
        references = references_from_event(event, log_format)
    except (KeyError, TypeError, ValueError) as e:
        print(f"⚠️ WARNING: Not a valid S3 event ({e}). No action taken.")
        return build_response(200, {"status": "No S3 event detected."})
    if not references:
        print("⚠️ WARNING: Not a valid S3 event. No action taken.")
        return build_response(200, {"status": "No S3 event detected."})

    invocation = InvocationContext(context)
    reader = GetLog(debug=settings.debug)
    sender = SendToES(config, debug=settings.debug)

    ESIndex(config, debug=settings.debug).ensure_index(config.index)

    results = []
    for reference in references:
        print(f"Processing file: s3://{reference.bucket}/{reference.key}")
        session = reader.get_log_from_s3(reference, index_record, invocation, forwarded=sender)
        results.append({
            "bucket": reference.bucket,
            "key": reference.key,
            "records": session.record_count(),
            "complete": session.is_complete(),
        })

    if invocation.failed:
        return build_response(500, {"error": invocation.failures, "result": results})

    print(f"✅ Ingested {sum(r['records'] for r in results)} records from {len(results)} log(s).")
    return build_response(200, {"result": results})
