"""S3-compatible blob store (AWS S3 / MinIO)."""

from __future__ import annotations

import logging
from typing import BinaryIO, Optional

logger = logging.getLogger(__name__)


class S3BlobStore:
    """Blob store over S3 with lazy boto3 initialization."""

    def __init__(self, *, region: Optional[str] = None, endpoint_url: Optional[str] = None,
                 use_path_style: bool = False, verify_ssl: bool = True, client=None):
        self.region = region
        self.endpoint_url = endpoint_url
        self.use_path_style = use_path_style
        self.verify_ssl = verify_ssl
        self._client = client

    def _get_client(self):
        if self._client is not None:
            return self._client

        try:
            import boto3
            from botocore.config import Config
        except Exception as exc:
            raise RuntimeError('S3 blob store requires boto3 and botocore installed') from exc

        client_kwargs = {
            'service_name': 's3',
            'verify': self.verify_ssl,
        }
        if self.region:
            client_kwargs['region_name'] = self.region
        if self.endpoint_url:
            client_kwargs['endpoint_url'] = self.endpoint_url

        addressing_style = 'path' if self.use_path_style else 'auto'
        client_kwargs['config'] = Config(signature_version='s3v4', s3={'addressing_style': addressing_style})

        self._client = boto3.client(**client_kwargs)
        return self._client

    def get(self, bucket: str, key: str, range_header: Optional[str] = None) -> BinaryIO:
        """Issue a single GET; returns the response body stream."""
        client = self._get_client()
        params = {'Bucket': bucket, 'Key': key}
        if range_header:
            params['Range'] = range_header
        logger.debug(f"GET s3://{bucket}/{key} range={range_header or 'full'}")
        return client.get_object(**params)['Body']

    def put(self, bucket: str, key: str, content_type: Optional[str], body: BinaryIO) -> dict:
        """Stream body into bucket/key; returns the stored object's metadata."""
        client = self._get_client()
        extra = {}
        if content_type:
            extra['ContentType'] = content_type
        if extra:
            client.upload_fileobj(body, bucket, key, ExtraArgs=extra)
        else:
            client.upload_fileobj(body, bucket, key)
        data = client.head_object(Bucket=bucket, Key=key)
        return {
            'Bucket': bucket,
            'Key': key,
            'ContentLength': data.get('ContentLength'),
            'ContentType': data.get('ContentType'),
            'ETag': (data.get('ETag') or '').strip('"') or None,
            'LastModified': data.get('LastModified'),
        }
