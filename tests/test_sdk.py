"""
Tests for the AWS client provider.
"""

from unittest.mock import Mock, patch

import pytest

from cloudformation.artifact import Environment
from cloudformation.errors import ConfigurationError
from cloudformation.sdk import SDK, Mode


@pytest.fixture
def session():
    """Create a mock boto3 session handing out one mock client per call."""
    mock_session = Mock()
    mock_session.region_name = "us-east-1"
    mock_session.client.side_effect = lambda service, region_name=None: Mock(
        service=service, region_name=region_name
    )
    return mock_session


class TestSDK:
    """Test SDK."""

    def test_creates_session(self) -> None:
        """Test the session is built from profile and region."""
        with patch("boto3.Session") as mock_session:
            SDK(profile="prod", region="eu-west-1")

        mock_session.assert_called_once_with(region_name="eu-west-1", profile_name="prod")

    def test_client_for_environment_region(self, session) -> None:
        """Test clients are created in the environment's region."""
        sdk = SDK(session=session)

        cfn = sdk.cloudformation(Environment(region="eu-west-1"))

        assert cfn.service == "cloudformation"
        assert cfn.region_name == "eu-west-1"

    def test_unknown_region_falls_back(self, session) -> None:
        """Test the default region is used when the environment has none."""
        sdk = SDK(region="ap-southeast-2", session=session)

        assert sdk.s3(Environment()).region_name == "ap-southeast-2"
        assert SDK(session=session).s3(Environment()).region_name == "us-east-1"

    def test_clients_cached(self, session) -> None:
        """Test the same client is reused per region and mode."""
        sdk = SDK(session=session)
        environment = Environment(region="eu-west-1")

        first = sdk.cloudformation(environment)
        second = sdk.cloudformation(environment, Mode.FOR_READING)
        writer = sdk.cloudformation(environment, Mode.FOR_WRITING)

        assert first is second
        assert writer is not first
        assert session.client.call_count == 2

    def test_account_verified(self, session) -> None:
        """Test the credentials must belong to the requested account."""
        sts = Mock()
        sts.get_caller_identity.return_value = {"Account": "123456789012"}
        session.client.side_effect = lambda service, region_name=None: sts if service == "sts" else Mock()
        sdk = SDK(session=session)

        sdk.cloudformation(Environment("123456789012", "eu-west-1"))
        sdk.s3(Environment("123456789012", "eu-west-1"))

        sts.get_caller_identity.assert_called_once()

    def test_account_mismatch(self, session) -> None:
        """Test credentials for another account are rejected."""
        sts = Mock()
        sts.get_caller_identity.return_value = {"Account": "999999999999"}
        session.client.side_effect = lambda service, region_name=None: sts if service == "sts" else Mock()
        sdk = SDK(session=session)

        with pytest.raises(ConfigurationError, match="999999999999"):
            sdk.cloudformation(Environment("123456789012", "eu-west-1"), Mode.FOR_WRITING)

    def test_unknown_account_not_verified(self, session) -> None:
        """Test no identity call is made for an unknown account."""
        sdk = SDK(session=session)

        sdk.cloudformation(Environment(region="eu-west-1"))

        services = [c.args[0] for c in session.client.call_args_list]
        assert "sts" not in services
