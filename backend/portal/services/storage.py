"""
Blob storage for request images.

Two backends share the same contract (`upload`, `get_public_url`, `delete`):
- LocalBlobStorage writes under STORAGE_ROOT and is served by the public blueprint.
- S3BlobStorage writes to an S3-compatible bucket (AWS, R2, MinIO) via boto3.
"""

import logging
import os
from typing import Any, Mapping, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from werkzeug.utils import safe_join

from portal.errors import BackendError

logger = logging.getLogger(__name__)


class BlobStorage:
    def upload(self, bucket: str, name: str, data: bytes, content_type: Optional[str] = None) -> str:
        raise NotImplementedError

    def get_public_url(self, bucket: str, name: str) -> str:
        raise NotImplementedError

    def delete(self, bucket: str, name: str) -> bool:
        raise NotImplementedError


class LocalBlobStorage(BlobStorage):
    def __init__(self, root: str, public_base_url: str = '/storage'):
        self.root = os.path.abspath(root)
        self.public_base_url = public_base_url.rstrip('/')

    def path_for(self, bucket: str, name: str) -> str:
        path = safe_join(self.root, bucket, name)
        if path is None:
            raise BackendError('Invalid object name')
        return path

    def upload(self, bucket: str, name: str, data: bytes, content_type: Optional[str] = None) -> str:
        path = self.path_for(bucket, name)
        if os.path.exists(path):
            raise BackendError('The resource already exists', 409)
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, 'wb') as fh:
                fh.write(data)
        except OSError as e:
            logger.error('Failed to store %s/%s: %s', bucket, name, e)
            raise BackendError('Image upload failed', 502)
        logger.info('Stored %s/%s (%d bytes)', bucket, name, len(data))
        return f'{bucket}/{name}'

    def get_public_url(self, bucket: str, name: str) -> str:
        return f'{self.public_base_url}/{bucket}/{name}'

    def delete(self, bucket: str, name: str) -> bool:
        path = self.path_for(bucket, name)
        try:
            os.remove(path)
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error('Failed to delete %s/%s: %s', bucket, name, e)
            raise BackendError('Image delete failed', 502)
        logger.info('Deleted %s/%s', bucket, name)
        return True


class S3BlobStorage(BlobStorage):
    """Logical buckets map to key prefixes inside one S3 bucket."""

    def __init__(self, s3_bucket: str, endpoint_url: Optional[str] = None, region: Optional[str] = None,
                 access_key_id: Optional[str] = None, secret_access_key: Optional[str] = None,
                 public_base_url: Optional[str] = None, client: Any = None):
        self.s3_bucket = s3_bucket
        self.endpoint_url = endpoint_url
        self.region = region or 'us-east-1'
        self.public_base_url = public_base_url.rstrip('/') if public_base_url else None
        self.client = client or boto3.client(
            's3',
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name=self.region,
            config=Config(signature_version='s3v4'),
        )

    def upload(self, bucket: str, name: str, data: bytes, content_type: Optional[str] = None) -> str:
        key = f'{bucket}/{name}'
        params = {'Bucket': self.s3_bucket, 'Key': key, 'Body': data}
        if content_type:
            params['ContentType'] = content_type
        try:
            self.client.put_object(**params)
        except (BotoCoreError, ClientError) as e:
            logger.error('Failed to upload %s to %s: %s', key, self.s3_bucket, e)
            raise BackendError(f'Image upload failed: {e}', 502)
        logger.info('Uploaded %s to %s', key, self.s3_bucket)
        return key

    def get_public_url(self, bucket: str, name: str) -> str:
        key = f'{bucket}/{name}'
        if self.public_base_url:
            return f'{self.public_base_url}/{key}'
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.s3_bucket}/{key}"
        return f'https://{self.s3_bucket}.s3.{self.region}.amazonaws.com/{key}'

    def delete(self, bucket: str, name: str) -> bool:
        key = f'{bucket}/{name}'
        try:
            self.client.delete_object(Bucket=self.s3_bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            logger.error('Failed to delete %s from %s: %s', key, self.s3_bucket, e)
            raise BackendError(f'Image delete failed: {e}', 502)
        logger.info('Deleted %s from %s', key, self.s3_bucket)
        return True


def build_storage(config: Mapping[str, Any]) -> BlobStorage:
    backend = (config.get('STORAGE_BACKEND') or 'local').lower()
    if backend == 's3':
        if not config.get('S3_BUCKET'):
            raise ValueError('S3_BUCKET is required when STORAGE_BACKEND=s3')
        return S3BlobStorage(
            config['S3_BUCKET'],
            endpoint_url=config.get('S3_ENDPOINT_URL'),
            region=config.get('S3_REGION'),
            access_key_id=config.get('S3_ACCESS_KEY_ID'),
            secret_access_key=config.get('S3_SECRET_ACCESS_KEY'),
            public_base_url=config.get('S3_PUBLIC_BASE_URL'),
        )
    if backend == 'local':
        return LocalBlobStorage(config.get('STORAGE_ROOT') or 'storage', config.get('STORAGE_PUBLIC_BASE_URL') or '/storage')
    raise ValueError(f'Unknown STORAGE_BACKEND {backend}')


def get_storage() -> BlobStorage:
    from flask import current_app
    return current_app.extensions['blob_storage']


__all__ = ['BlobStorage', 'LocalBlobStorage', 'S3BlobStorage', 'build_storage', 'get_storage']
