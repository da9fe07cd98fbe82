"""
Publish file assets a stack depends on and produce the template parameters
that point at them.
"""

import hashlib
import io
import logging
import os
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

from .errors import ConfigurationError

if TYPE_CHECKING:
    from .artifact import StackArtifact
    from .toolkit import ToolkitInfo

logger = logging.getLogger(__name__)

SKIPPED_DIRECTORIES = {".git", "__pycache__", ".pytest_cache", ".venv", "venv"}
SKIPPED_SUFFIXES = (".pyc", ".pyo", ".DS_Store")

# Fixed timestamp for zip entries; archive bytes depend only on file contents.
ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


@dataclass(frozen=True)
class FileAsset:
    """A local file or directory uploaded to the toolkit bucket before deployment."""

    id: str
    path: str
    s3_bucket_parameter: str
    s3_key_parameter: str
    artifact_hash_parameter: str
    packaging: str = "file"

    def __post_init__(self) -> None:
        if self.packaging not in ("file", "zip"):
            raise ValueError(f"Unsupported packaging for asset {self.id}: {self.packaging}")

    @property
    def parameter_names(self) -> List[str]:
        return [self.s3_bucket_parameter, self.s3_key_parameter, self.artifact_hash_parameter]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileAsset":
        """Create an asset from a config entry."""
        return cls(
            id=data["id"],
            path=data["path"],
            packaging=data.get("packaging", "file"),
            s3_bucket_parameter=data["bucket_parameter"],
            s3_key_parameter=data["key_parameter"],
            artifact_hash_parameter=data["hash_parameter"],
        )


def zip_directory(source_dir: Path) -> bytes:
    """Build a reproducible ZIP archive of a directory in memory."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zipf:
        for root, dirs, files in os.walk(source_dir):
            dirs[:] = sorted(d for d in dirs if d not in SKIPPED_DIRECTORIES)
            for file in sorted(files):
                if file.endswith(SKIPPED_SUFFIXES):
                    continue
                file_path = Path(root) / file
                info = zipfile.ZipInfo(file_path.relative_to(source_dir).as_posix(), ZIP_EPOCH)
                info.compress_type = zipfile.ZIP_DEFLATED
                info.external_attr = (file_path.stat().st_mode & 0o777) << 16
                zipf.writestr(info, file_path.read_bytes())
    return buffer.getvalue()


def _package(asset: FileAsset) -> bytes:
    path = Path(asset.path)
    if not path.exists():
        raise ConfigurationError(f"Asset {asset.id} not found at {path}")

    if asset.packaging == "zip":
        if path.is_dir():
            return zip_directory(path)
        if zipfile.is_zipfile(path):
            return path.read_bytes()
        raise ConfigurationError(f"Asset {asset.id} is packaged as zip but {path} is not a directory")

    if path.is_dir():
        raise ConfigurationError(f"Asset {asset.id} is a directory; use packaging 'zip'")
    return path.read_bytes()


def _reused_parameters(asset: FileAsset) -> List[Dict[str, Any]]:
    return [{"ParameterKey": name, "UsePreviousValue": True} for name in asset.parameter_names]


def prepare_assets(
    stack: "StackArtifact",
    toolkit_info: Optional["ToolkitInfo"] = None,
    reuse: Optional[Iterable[str]] = None,
) -> List[Dict[str, Any]]:
    """
    Upload the stack's assets and return the CloudFormation parameters for them.

    Args:
        stack: Stack whose assets to publish
        toolkit_info: Bucket to upload to
        reuse: Asset ids whose previously deployed parameter values are kept

    Returns:
        Parameter entries ready for CreateChangeSet
    """
    if not stack.assets:
        return []

    if toolkit_info is None:
        raise ConfigurationError(
            f"Stack {stack.display_name} has assets but no template bucket is available; "
            "run 'stackdeploy bootstrap' or pass --toolkit-bucket",
            stack_name=stack.stack_name,
        )

    reuse_ids = set(reuse or [])
    params: List[Dict[str, Any]] = []

    for asset in stack.assets:
        if asset.id in reuse_ids:
            logger.debug(f"Reusing previously deployed asset {asset.id}")
            params.extend(_reused_parameters(asset))
            continue

        data = _package(asset)
        suffix = ".zip" if asset.packaging == "zip" else Path(asset.path).suffix
        result = toolkit_info.upload_if_changed(
            data,
            key_prefix=f"assets/{asset.id}/",
            key_suffix=suffix,
            content_type="application/zip" if asset.packaging == "zip" else None,
        )
        logger.debug(f"Asset {asset.id} stored at {result.key} (uploaded: {result.changed})")

        params.extend(
            [
                {"ParameterKey": asset.s3_bucket_parameter, "ParameterValue": toolkit_info.bucket_name},
                {"ParameterKey": asset.s3_key_parameter, "ParameterValue": result.key},
                {
                    "ParameterKey": asset.artifact_hash_parameter,
                    "ParameterValue": hashlib.sha256(data).hexdigest(),
                },
            ]
        )

    return params
