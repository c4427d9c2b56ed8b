# pts_common/s3_put.py
"""
Puts objects into S3, and builds compressed Array/Lines log objects for upload.
"""
import gzip
import json
from typing import Any, Dict, Iterable, Optional

from botocore.exceptions import BotoCoreError, ClientError

from .aws_auth import Auth, client_for, credential_source
from .models import LogFormat


def gzip_records(records: Iterable[Dict[str, Any]], log_format: LogFormat = LogFormat.ARRAY) -> bytes:
    """
    Builds a compressed log object in the given layout, ready for upload.
    """
    records = list(records)
    if log_format is LogFormat.LINES:
        payload = "".join(json.dumps(record) + "\n" for record in records)
    else:
        payload = json.dumps({"Records": records})
    return gzip.compress(payload.encode("utf-8"))


class PutS3:
    """
    Adds objects to S3.
    """
    def __init__(self, creds: Any = None, debug: int = 0, region: Optional[str] = None):
        self.debug = debug
        self.credential_source = credential_source(creds)
        self.region = region

    def put_object(self, obj: Dict[str, Any], context: Any, credentials: Any = None) -> Optional[Dict[str, Any]]:
        """
        Uploads an object to S3.

        Args:
            obj: Upload parameters: Bucket, Key, Body and any extra S3 arguments
                (ContentType, ContentEncoding, ...). Body may be bytes, str or a
                file-like object.
            context: The caller's context; fail(message) is called if the upload fails.
            credentials: Already-resolved credentials, if any.

        Returns:
            The S3 response (with Bucket/Key for streamed uploads), or None on failure.
        """
        if not obj:
            raise ValueError("put_object() requires an object")
        if not obj.get("Bucket") or not obj.get("Key"):
            raise ValueError("put_object() requires a Bucket and a Key")

        if credentials is None:
            credentials = Auth(debug=self.debug).get_creds(self.credential_source)
        s3 = client_for("s3", credentials, self.region)

        params = dict(obj)
        body = params.pop("Body", b"")
        bucket = params.pop("Bucket")
        key = params.pop("Key")
        print(f"put_object():: Uploading s3://{bucket}/{key}")

        try:
            if isinstance(body, (bytes, bytearray, str)):
                response = s3.put_object(Bucket=bucket, Key=key, Body=body, **params)
            else:
                # File-like bodies go through the managed (multipart) uploader
                s3.upload_fileobj(body, bucket, key, ExtraArgs=params or None)
                response = {"Bucket": bucket, "Key": key}
        except (ClientError, BotoCoreError) as e:
            print(f"put_object():S3.upload():: Error - {e}")
            context.fail("put_object():: Error uploading object")
            return None

        if self.debug:
            print(f"put_object():S3.upload():: Response - {response}")
        return response
