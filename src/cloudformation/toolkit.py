"""
S3 bucket used to store templates and assets.

Objects are keyed by the MD5 of their content, so uploading something that
is already there is skipped.
"""

import hashlib
import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

from botocore.exceptions import ClientError

from .stack import get_stack_outputs

logger = logging.getLogger(__name__)

BUCKET_NAME_OUTPUT = "BucketName"
BUCKET_DOMAIN_NAME_OUTPUT = "BucketDomainName"


@dataclass(frozen=True)
class UploadResult:
    """Where content ended up and whether it had to be uploaded."""

    key: str
    hash: str
    changed: bool


class ToolkitInfo:
    """Template and asset store backed by an S3 bucket."""

    def __init__(self, s3: Any, bucket_name: str, bucket_endpoint: str):
        """
        Initialize the store.

        Args:
            s3: S3 client
            bucket_name: Name of the bucket
            bucket_endpoint: Domain name of the bucket, without scheme
        """
        self.s3 = s3
        self.bucket_name = bucket_name
        self.bucket_endpoint = bucket_endpoint

    @property
    def bucket_url(self) -> str:
        return f"https://{self.bucket_endpoint}"

    @classmethod
    def from_bucket(cls, s3: Any, bucket_name: str, region: str) -> "ToolkitInfo":
        """Use an existing bucket directly."""
        if region == "us-east-1":
            endpoint = f"{bucket_name}.s3.amazonaws.com"
        else:
            endpoint = f"{bucket_name}.s3.{region}.amazonaws.com"
        return cls(s3, bucket_name, endpoint)

    @classmethod
    def lookup(cls, cfn: Any, s3: Any, toolkit_stack_name: str) -> Optional["ToolkitInfo"]:
        """Find the bucket through the outputs of the toolkit stack."""
        outputs = get_stack_outputs(cfn, toolkit_stack_name)
        if BUCKET_NAME_OUTPUT not in outputs:
            logger.debug(f"Toolkit stack {toolkit_stack_name} not found or has no bucket")
            return None

        bucket_name = outputs[BUCKET_NAME_OUTPUT]
        endpoint = outputs.get(BUCKET_DOMAIN_NAME_OUTPUT, f"{bucket_name}.s3.amazonaws.com")
        return cls(s3, bucket_name, endpoint)

    def _object_exists(self, key: str) -> bool:
        try:
            self.s3.head_object(Bucket=self.bucket_name, Key=key)
            return True
        except ClientError as e:
            if e.response["Error"]["Code"] in ("404", "NoSuchKey", "NotFound"):
                return False
            raise

    def upload_if_changed(
        self,
        data: Union[str, bytes],
        key_prefix: str = "",
        key_suffix: str = "",
        content_type: Optional[str] = None,
    ) -> UploadResult:
        """
        Upload content unless an identical object is already stored.

        Returns:
            UploadResult with the object key
        """
        body = data.encode("utf-8") if isinstance(data, str) else data
        digest = hashlib.md5(body).hexdigest()
        key = f"{key_prefix}{digest}{key_suffix}"

        if self._object_exists(key):
            logger.debug(f"s3://{self.bucket_name}/{key} already exists, skipping upload")
            return UploadResult(key=key, hash=digest, changed=False)

        params = {"Bucket": self.bucket_name, "Key": key, "Body": body}
        if content_type:
            params["ContentType"] = content_type
        self.s3.put_object(**params)
        logger.info(f"Uploaded s3://{self.bucket_name}/{key}")
        return UploadResult(key=key, hash=digest, changed=True)
