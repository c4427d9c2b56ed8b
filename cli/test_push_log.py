# cli/test_push_log.py
import gzip
import json
import tempfile
import unittest
from unittest.mock import patch

from pts_common import LogFormat

# tests cli/push_log.py
from cli.push_log import load_records, main, push_log


class TestPushLog(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)

    def write(self, name: str, text: str) -> str:
        path = f"{self.tmpdir.name}/{name}"
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
        return path

    def test_load_records_from_each_layout(self):
        wrapped = self.write("wrapped.json", json.dumps({"Records": [{"id": 1}]}))
        plain = self.write("plain.json", json.dumps([{"id": 1}, {"id": 2}]))
        lines = self.write("lines.jsonl", '{"id": 1}\n\n{"id": 2}\n')

        self.assertEqual(load_records(wrapped, LogFormat.ARRAY), [{"id": 1}])
        self.assertEqual(load_records(plain, LogFormat.ARRAY), [{"id": 1}, {"id": 2}])
        self.assertEqual(load_records(lines, LogFormat.LINES), [{"id": 1}, {"id": 2}])

    @patch("cli.push_log.PutS3")
    def test_push_log_uploads_gzipped_records(self, mock_put_cls):
        mock_put_cls.return_value.put_object.return_value = {"ETag": '"abc"'}
        path = self.write("lines.jsonl", '{"id": 1}\n{"id": 2}\n')

        self.assertTrue(push_log(path, "log-bucket", "app/log.jsonl.gz", LogFormat.LINES))

        obj = mock_put_cls.return_value.put_object.call_args.args[0]
        self.assertEqual(obj["Bucket"], "log-bucket")
        self.assertEqual(obj["Key"], "app/log.jsonl.gz")
        self.assertEqual(obj["ContentEncoding"], "gzip")
        self.assertEqual(gzip.decompress(obj["Body"]), b'{"id": 1}\n{"id": 2}\n')

    @patch("cli.push_log.PutS3")
    def test_empty_log_is_not_uploaded(self, mock_put_cls):
        path = self.write("empty.json", json.dumps({"Records": []}))

        self.assertFalse(push_log(path, "log-bucket", "empty.json.gz", LogFormat.ARRAY))
        mock_put_cls.return_value.put_object.assert_not_called()

    @patch.dict("os.environ", {"LOG_BUCKET": ""})
    def test_main_requires_a_bucket(self):
        path = self.write("log.json", json.dumps({"Records": [{"id": 1}]}))
        self.assertEqual(main([path]), 1)


if __name__ == '__main__':
    unittest.main()
