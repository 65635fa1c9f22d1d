"""
Tests for the boto3-backed blob store, with the S3 client mocked out.

Run with: python tests/test_s3_blob_store.py
"""

import io
import os
import sys
import unittest
from unittest.mock import MagicMock, patch

TEST_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.dirname(TEST_DIR)
sys.path.insert(0, PROJECT_ROOT)

from stream_utils.s3 import S3BlobStore


class TestS3BlobStore(unittest.TestCase):

    def setUp(self):
        self.client = MagicMock()
        self.store = S3BlobStore(client=self.client)

    def test_get_full_object(self):
        body = io.BytesIO(b'data')
        self.client.get_object.return_value = {'Body': body}
        self.assertIs(self.store.get('bucket', 'key.json'), body)
        self.client.get_object.assert_called_once_with(Bucket='bucket', Key='key.json')

    def test_get_with_range(self):
        self.client.get_object.return_value = {'Body': io.BytesIO(b'')}
        self.store.get('bucket', 'key.json', 'bytes=10-20')
        self.client.get_object.assert_called_once_with(Bucket='bucket', Key='key.json', Range='bytes=10-20')

    def test_put_streams_body_and_returns_metadata(self):
        self.client.head_object.return_value = {
            'ContentLength': 4,
            'ContentType': 'application/json',
            'ETag': '"abc123"',
        }
        body = io.BytesIO(b'[1,2]')
        raw = self.store.put('bucket', 'out.json', 'application/json', body)
        self.client.upload_fileobj.assert_called_once_with(
            body, 'bucket', 'out.json', ExtraArgs={'ContentType': 'application/json'}
        )
        self.client.head_object.assert_called_once_with(Bucket='bucket', Key='out.json')
        self.assertEqual(raw['Bucket'], 'bucket')
        self.assertEqual(raw['Key'], 'out.json')
        self.assertEqual(raw['ETag'], 'abc123')
        self.assertEqual(raw['ContentLength'], 4)

    def test_put_without_content_type(self):
        self.client.head_object.return_value = {}
        body = io.BytesIO(b'x')
        raw = self.store.put('bucket', 'k', None, body)
        self.client.upload_fileobj.assert_called_once_with(body, 'bucket', 'k')
        self.assertIsNone(raw['ETag'])

    def test_client_built_lazily_from_settings(self):
        store = S3BlobStore(region='eu-west-1', endpoint_url='http://minio:9000', use_path_style=True,
                            verify_ssl=False)
        with patch('boto3.client') as mock_client:
            store._get_client()
            store._get_client()
        mock_client.assert_called_once()
        kwargs = mock_client.call_args.kwargs
        self.assertEqual(kwargs['service_name'], 's3')
        self.assertEqual(kwargs['region_name'], 'eu-west-1')
        self.assertEqual(kwargs['endpoint_url'], 'http://minio:9000')
        self.assertFalse(kwargs['verify'])
        self.assertEqual(kwargs['config'].s3, {'addressing_style': 'path'})


if __name__ == '__main__':
    unittest.main()
