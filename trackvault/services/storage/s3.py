"""S3-compatible storage backend (AWS S3 / MinIO / Supabase Storage S3 gateway)."""

from __future__ import annotations

from typing import BinaryIO, List, Optional

from .interfaces import ObjectStat, StoredObject

LIST_PAGE_SIZE = 1000


def is_missing_object_error(exc) -> bool:
    response = getattr(exc, 'response', {}) or {}
    status_code = (response.get('ResponseMetadata') or {}).get('HTTPStatusCode')
    error_code = str((response.get('Error') or {}).get('Code') or '')
    return status_code == 404 or error_code in ('404', 'NoSuchKey', 'NotFound')


class S3StorageBackend:
    """S3 storage backend with lazy boto3 initialization.

    Keys are canonical ``<container>/<filename>`` strings stored directly in
    ``bucket``; the bucket name doubles as the container label stripped by the
    path normalizer.
    """

    supports_signed_urls = True

    def __init__(self, *, bucket: str, region: Optional[str] = None, endpoint_url: Optional[str] = None,
                 access_key_id: Optional[str] = None, secret_access_key: Optional[str] = None,
                 session_token: Optional[str] = None, use_path_style: bool = False,
                 verify_ssl: bool = True, client=None):
        self.bucket = bucket
        self.region = region
        self.endpoint_url = endpoint_url
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.session_token = session_token
        self.use_path_style = use_path_style
        self.verify_ssl = verify_ssl
        self._client = client

    def _get_client(self):
        if self._client is not None:
            return self._client

        import boto3
        from botocore.config import Config

        client_kwargs = {
            'service_name': 's3',
            'verify': self.verify_ssl,
        }
        if self.region:
            client_kwargs['region_name'] = self.region
        if self.endpoint_url:
            client_kwargs['endpoint_url'] = self.endpoint_url
        if self.access_key_id:
            client_kwargs['aws_access_key_id'] = self.access_key_id
        if self.secret_access_key:
            client_kwargs['aws_secret_access_key'] = self.secret_access_key
        if self.session_token:
            client_kwargs['aws_session_token'] = self.session_token

        addressing_style = 'path' if self.use_path_style else 'auto'
        client_kwargs['config'] = Config(signature_version='s3v4', s3={'addressing_style': addressing_style})

        self._client = boto3.client(**client_kwargs)
        return self._client

    def list_names(self, container: str) -> List[str]:
        client = self._get_client()
        prefix = f"{container.strip('/')}/"
        data = client.list_objects_v2(Bucket=self.bucket, Prefix=prefix, MaxKeys=LIST_PAGE_SIZE)
        names = []
        for item in data.get('Contents') or []:
            name = (item.get('Key') or '')[len(prefix):]
            if name and '/' not in name:
                names.append(name)
        return names

    def get(self, key: str):
        from botocore.exceptions import ClientError

        client = self._get_client()
        try:
            data = client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            if is_missing_object_error(exc):
                raise FileNotFoundError(key) from exc
            raise
        body = data['Body']
        try:
            content = body.read()
        finally:
            body.close()
        return content, data.get('ContentType')

    def save_fileobj(self, fileobj: BinaryIO, key: str, content_type: Optional[str] = None) -> StoredObject:
        client = self._get_client()
        if content_type:
            client.upload_fileobj(fileobj, self.bucket, key, ExtraArgs={'ContentType': content_type})
        else:
            client.upload_fileobj(fileobj, self.bucket, key)
        stat = self.stat(key)
        return StoredObject(key=key, size=stat.size, content_type=stat.content_type, etag=stat.etag)

    def exists(self, key: str) -> bool:
        try:
            self.stat(key)
            return True
        except FileNotFoundError:
            return False

    def delete(self, key: str, missing_ok: bool = True) -> bool:
        # DeleteObject reports success for absent keys
        if not missing_ok:
            self.stat(key)
        client = self._get_client()
        client.delete_object(Bucket=self.bucket, Key=key)
        return True

    def stat(self, key: str) -> ObjectStat:
        from botocore.exceptions import ClientError

        client = self._get_client()
        try:
            data = client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            if is_missing_object_error(exc):
                raise FileNotFoundError(key) from exc
            raise
        return ObjectStat(
            size=data.get('ContentLength'),
            last_modified=data.get('LastModified'),
            etag=(data.get('ETag') or '').strip('"') or None,
            content_type=data.get('ContentType'),
        )

    def presign_get_url(self, key: str, expires_seconds: int, response_content_type: Optional[str] = None) -> str:
        client = self._get_client()
        params = {'Bucket': self.bucket, 'Key': key}
        if response_content_type:
            params['ResponseContentType'] = response_content_type
        return client.generate_presigned_url(
            'get_object',
            Params=params,
            ExpiresIn=int(expires_seconds),
        )

    def presign_put_url(self, key: str, expires_seconds: int, content_type: Optional[str] = None) -> str:
        client = self._get_client()
        params = {'Bucket': self.bucket, 'Key': key}
        if content_type:
            params['ContentType'] = content_type
        return client.generate_presigned_url(
            'put_object',
            Params=params,
            ExpiresIn=int(expires_seconds),
        )
