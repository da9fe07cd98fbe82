"""
Description of a stack to deploy.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from .assets import FileAsset
from .serialize import load_template_file

UNKNOWN_ACCOUNT = "unknown-account"
UNKNOWN_REGION = "unknown-region"


@dataclass(frozen=True)
class Environment:
    """Account and region a stack is deployed to."""

    account: str = UNKNOWN_ACCOUNT
    region: str = UNKNOWN_REGION

    @property
    def name(self) -> str:
        return f"aws://{self.account}/{self.region}"

    @property
    def is_account_unknown(self) -> bool:
        return not self.account or self.account == UNKNOWN_ACCOUNT


@dataclass(frozen=True)
class StackArtifact:
    """A synthesized stack: its name, template, target environment and assets."""

    id: str
    stack_name: str
    template: Dict[str, Any]
    environment: Optional[Environment] = None
    assets: Tuple[FileAsset, ...] = field(default_factory=tuple)
    display_name: Optional[str] = None

    def __post_init__(self) -> None:
        if self.display_name is None:
            object.__setattr__(self, "display_name", self.stack_name)

    @classmethod
    def from_template_file(
        cls,
        path: Union[str, Path],
        stack_name: str,
        environment: Optional[Environment] = None,
        assets: Tuple[FileAsset, ...] = (),
        artifact_id: Optional[str] = None,
    ) -> "StackArtifact":
        """Build an artifact from a JSON or YAML template on disk."""
        return cls(
            id=artifact_id or stack_name,
            stack_name=stack_name,
            template=load_template_file(path),
            environment=environment,
            assets=tuple(assets),
        )
