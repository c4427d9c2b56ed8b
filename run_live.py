# run_live.py
import json
import os
import sys

from dotenv import load_dotenv

# Import the main handler function and settings
from lambdas.ingest_log.app import handler
from pts_common.models import get_settings

# Load environment variables from a .env file for local testing
load_dotenv()


def build_s3_event(bucket: str, key: str) -> dict:
    """The shape of the notification S3 sends when an object is created."""
    return {
        "Records": [{
            "eventSource": "aws:s3",
            "eventName": "ObjectCreated:Put",
            "s3": {
                "bucket": {"name": bucket},
                "object": {"key": key},
            },
        }]
    }


def run_live(key: str):
    """Executes the ingest_log Lambda handler using your live AWS credentials."""
    settings = get_settings()
    print("--- Starting LIVE Run of ingest_log Lambda ---")

    if not settings.log_bucket or not settings.es_endpoint:
        print("❌ ERROR: LOG_BUCKET and ES_ENDPOINT must be set. Please create a .env file.")
        return

    print(f"\n--- Invoking Lambda handler for s3://{settings.log_bucket}/{key} (this will call S3 and the search domain) ---")
    result = handler(build_s3_event(settings.log_bucket, key), None)
    print("--- Lambda handler execution finished ---")

    print(f"\n--- Final JSON Output from Lambda (status {result['statusCode']}): ---")
    print(json.dumps(json.loads(result["body"]), indent=2))


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python run_live.py <object key>")
        sys.exit(1)
    run_live(sys.argv[1])
