import argparse
import json
import os
from typing import Any, Dict, List

from dotenv import load_dotenv

from pts_common import InvocationContext, LogFormat, PutS3, gzip_records

# Load environment variables from a .env file for local testing
load_dotenv()


def load_records(file_path: str, log_format: LogFormat) -> List[Dict[str, Any]]:
    """
    Reads the records of a local log file.

    Array files hold either {"Records": [...]} or a plain JSON list; Lines
    files hold one JSON object per line.
    """
    with open(file_path, "r", encoding="utf-8") as f:
        if log_format is LogFormat.LINES:
            return [json.loads(line) for line in f if line.strip()]
        document = json.load(f)
    if isinstance(document, dict):
        return document.get("Records", [])
    return document


def push_log(file_path: str, bucket: str, key: str, log_format: LogFormat) -> bool:
    """Compresses a local log file and uploads it to S3."""
    records = load_records(file_path, log_format)
    if not records:
        print("⚠️ Warning: Log file has no records. Skipping.")
        return False

    print(f"--- Uploading {len(records)} records from {file_path} as {log_format.value} ---")
    context = InvocationContext()
    response = PutS3(debug=int(os.environ.get("PTS_DEBUG", "0"))).put_object(
        {
            "Bucket": bucket,
            "Key": key,
            "Body": gzip_records(records, log_format),
            "ContentType": "application/json",
            "ContentEncoding": "gzip",
        },
        context,
    )
    if context.failed or response is None:
        print("\n❌ Failed to upload log.")
        return False

    print(f"\n✅ Success! Log uploaded to s3://{bucket}/{key}")
    return True


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Gzip a JSON log file and upload it to S3.")
    parser.add_argument("file", help="Path to the local log file")
    parser.add_argument("--bucket", default=os.environ.get("LOG_BUCKET"), help="Target bucket (default: $LOG_BUCKET)")
    parser.add_argument("--key", help="Target object key (default: <file name>.gz)")
    parser.add_argument("--format", choices=[f.value for f in LogFormat], default=LogFormat.ARRAY.value)
    args = parser.parse_args(argv)

    if not args.bucket:
        print("❌ ERROR: No bucket given and LOG_BUCKET is not set. Please create a .env file.")
        return 1

    key = args.key or f"{os.path.basename(args.file)}.gz"
    return 0 if push_log(args.file, args.bucket, key, LogFormat(args.format)) else 1


if __name__ == "__main__":
    raise SystemExit(main())
