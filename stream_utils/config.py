"""
Stream utilities configuration.
"""

import os

# Transport (boto3 client) settings; credentials come from the default boto3 chain
S3_REGION = os.environ.get('STREAM_UTILS_S3_REGION')
S3_ENDPOINT_URL = os.environ.get('STREAM_UTILS_S3_ENDPOINT_URL')
if S3_ENDPOINT_URL:
    S3_ENDPOINT_URL = S3_ENDPOINT_URL.split('#')[0].strip()
S3_USE_PATH_STYLE = os.environ.get('STREAM_UTILS_S3_USE_PATH_STYLE', 'false').lower() == 'true'
S3_VERIFY_SSL = os.environ.get('STREAM_UTILS_S3_VERIFY_SSL', 'true').lower() == 'true'

# Bytes the write pass-through buffer holds before write() blocks
WRITE_HIGH_WATER_MARK = int(os.environ.get('STREAM_UTILS_WRITE_HIGH_WATER_MARK', str(1024 * 1024)))
READ_CHUNK_SIZE = int(os.environ.get('STREAM_UTILS_READ_CHUNK_SIZE', '65536'))

RESOLVE_MAX_WORKERS = int(os.environ.get('STREAM_UTILS_RESOLVE_MAX_WORKERS', '8'))
