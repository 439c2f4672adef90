"""
RemoteFetcher - Downloads remote source images to a local temp directory.
"""

import getpass
import hashlib
import logging
import os
import tempfile
from typing import Optional
from urllib.parse import urlparse

import boto3
import urllib3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from retrying import retry

from .config import S3Settings
from .errors import DownloadError
from .fileio import write_bytes_atomic


class ServerError(DownloadError):
    """The remote server answered with a 5xx status."""

    pass


def _is_retryable(e: Exception) -> bool:
    return isinstance(e, (urllib3.exceptions.HTTPError, ServerError))


class RemoteFetcher:
    """
    Fetches http(s):// and s3:// sources.

    Files land in <tmpdir>/<md5(user-output_path)>/<filename> and an existing
    download is reused instead of fetched again.
    """

    def __init__(
        self,
        output_path: str,
        s3_settings: Optional[S3Settings] = None,
        http: Optional[urllib3.PoolManager] = None,
        tmp_root: Optional[str] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize fetcher.

        Args:
            output_path: Output root; part of the temp directory key
            s3_settings: Credentials for s3:// URLs (default: from environment)
            http: Optional urllib3 pool manager
            tmp_root: Base temp directory (default: system temp dir)
            logger: Optional logger instance
        """
        self.output_path = output_path
        self.s3_settings = s3_settings or S3Settings.from_env()
        self.http = http or urllib3.PoolManager()
        self.tmp_root = tmp_root or tempfile.gettempdir()
        self.logger = logger or logging.getLogger(__name__)
        self._s3 = None

    @property
    def download_dir(self) -> str:
        key = hashlib.md5(f"{getpass.getuser()}-{self.output_path}".encode('utf-8')).hexdigest()
        return os.path.join(self.tmp_root, key)

    @property
    def s3(self):
        """Lazily created boto3 client."""
        if self._s3 is None:
            self._s3 = boto3.client(
                's3',
                endpoint_url=self.s3_settings.endpoint,
                aws_access_key_id=self.s3_settings.access_key,
                aws_secret_access_key=self.s3_settings.secret_key,
                region_name=self.s3_settings.region,
                config=Config(
                    signature_version='s3v4',
                    s3={'addressing_style': 'path'}
                ),
            )
        return self._s3

    def local_path(self, url: str) -> str:
        """Where a URL is downloaded to: <download_dir>/<url hash>/<file name>."""
        name = os.path.basename(urlparse(url).path)
        if not name:
            raise DownloadError(f"Cannot derive a file name from {url}")
        url_key = hashlib.md5(url.encode('utf-8')).hexdigest()[:12]
        return os.path.join(self.download_dir, url_key, name)

    def fetch(self, url: str) -> str:
        """
        Download a remote source, or reuse an earlier download.

        Args:
            url: http(s):// or s3://bucket/key URL

        Returns:
            Local file path

        Raises:
            DownloadError: If the source cannot be fetched
        """
        target = self.local_path(url)
        if os.path.exists(target):
            self.logger.info(f"Using downloaded image \"{url}\" from {self.download_dir}")
            return target

        scheme = urlparse(url).scheme
        self.logger.info(f"Downloading image \"{url}\" to {self.download_dir}")
        if scheme in ('http', 'https'):
            try:
                data = self._get_http(url)
            except urllib3.exceptions.HTTPError as e:
                raise DownloadError(f"Cannot download {url}: {e}") from e
        elif scheme == 's3':
            data = self._get_s3(url)
        else:
            raise DownloadError(f"Unsupported remote source: {url}")

        write_bytes_atomic(target, data)
        return target

    @retry(retry_on_exception=_is_retryable, stop_max_attempt_number=3, wait_exponential_multiplier=1000)
    def _get_http(self, url: str) -> bytes:
        try:
            response = self.http.request('GET', url, retries=False)
        except urllib3.exceptions.HTTPError as e:
            self.logger.warning(f"Error downloading {url}: {e}")
            raise
        if response.status >= 500:
            raise ServerError(f"Server error {response.status} for {url}")
        if response.status != 200:
            raise DownloadError(f"HTTP {response.status} for {url}")
        return response.data

    def _get_s3(self, url: str) -> bytes:
        parsed = urlparse(url)
        bucket, key = parsed.netloc, parsed.path.lstrip('/')
        try:
            response = self.s3.get_object(Bucket=bucket, Key=key)
            return response['Body'].read()
        except (BotoCoreError, ClientError) as e:
            raise DownloadError(f"Cannot download {url}: {e}") from e
