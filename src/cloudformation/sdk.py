"""
AWS session and client provider.
"""

import logging
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import boto3

from .artifact import UNKNOWN_REGION, Environment
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class Mode(Enum):
    """What a client will be used for."""

    FOR_READING = "reading"
    FOR_WRITING = "writing"


class SDK:
    """Hand out boto3 clients scoped to a target environment."""

    def __init__(
        self,
        profile: Optional[str] = None,
        region: Optional[str] = None,
        session: Optional[boto3.Session] = None,
    ):
        """
        Initialize the provider.

        Args:
            profile: AWS profile to use
            region: Region used when an environment does not name one
            session: Pre-built session (profile and region are then ignored)
        """
        self.profile = profile
        self.default_region = region
        self._session = session or self._create_session()
        self._clients: Dict[Tuple[str, str, Mode], Any] = {}
        self._verified_accounts: Dict[str, str] = {}

    def _create_session(self) -> boto3.Session:
        """Create AWS session with appropriate credentials."""
        session_args = {}
        if self.default_region:
            session_args["region_name"] = self.default_region
        if self.profile:
            session_args["profile_name"] = self.profile
        return boto3.Session(**session_args)

    def _resolve_region(self, environment: Environment) -> Optional[str]:
        if environment.region and environment.region != UNKNOWN_REGION:
            return environment.region
        return self.default_region or self._session.region_name

    def _verify_account(self, environment: Environment, region: Optional[str]) -> None:
        if environment.is_account_unknown:
            return
        if region not in self._verified_accounts:
            identity = self._session.client("sts", region_name=region).get_caller_identity()
            self._verified_accounts[region] = identity["Account"]
        actual = self._verified_accounts[region]
        if actual != environment.account:
            raise ConfigurationError(
                f"Credentials are for account {actual}, but {environment.name} was requested"
            )

    def _get_client(self, service: str, environment: Environment, mode: Mode) -> Any:
        region = self._resolve_region(environment)
        key = (service, region or "", mode)
        if key not in self._clients:
            self._verify_account(environment, region)
            logger.debug(f"Creating {service} client for {environment.name} ({mode.value})")
            self._clients[key] = self._session.client(service, region_name=region)
        return self._clients[key]

    def cloudformation(self, environment: Environment, mode: Mode = Mode.FOR_READING) -> Any:
        """Get CloudFormation client."""
        return self._get_client("cloudformation", environment, mode)

    def s3(self, environment: Environment, mode: Mode = Mode.FOR_READING) -> Any:
        """Get S3 client."""
        return self._get_client("s3", environment, mode)
