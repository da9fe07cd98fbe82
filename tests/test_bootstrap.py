"""
Tests for provisioning the template bucket.
"""

from unittest.mock import Mock, patch

from cloudformation.artifact import Environment
from cloudformation.bootstrap import bootstrap_environment, toolkit_template


class TestToolkitTemplate:
    """Test toolkit_template."""

    def test_outputs(self) -> None:
        """Test the outputs the bucket lookup relies on."""
        template = toolkit_template()

        assert template["Outputs"]["BucketName"]["Value"] == {"Ref": "StagingBucket"}
        assert template["Outputs"]["BucketDomainName"]["Value"] == {
            "Fn::GetAtt": ["StagingBucket", "RegionalDomainName"]
        }
        assert "BucketName" not in template["Resources"]["StagingBucket"]["Properties"]

    def test_bucket_private(self) -> None:
        """Test the bucket blocks public access and is retained."""
        bucket = toolkit_template()["Resources"]["StagingBucket"]

        assert all(bucket["Properties"]["PublicAccessBlockConfiguration"].values())
        assert bucket["DeletionPolicy"] == "Retain"

    def test_explicit_bucket_name(self) -> None:
        """Test naming the bucket."""
        template = toolkit_template("my-deploy-bucket")

        assert template["Resources"]["StagingBucket"]["Properties"]["BucketName"] == "my-deploy-bucket"


class TestBootstrapEnvironment:
    """Test bootstrap_environment."""

    def test_deploys_toolkit_stack(self) -> None:
        """Test the toolkit stack is deployed like any other stack."""
        sdk = Mock()
        environment = Environment("123456789012", "eu-west-1")

        with patch("cloudformation.bootstrap.deploy_stack") as mock_deploy:
            bootstrap_environment(
                environment,
                sdk,
                toolkit_stack_name="MyToolkit",
                bucket_name="my-deploy-bucket",
                quiet=True,
                stack_poll_interval=0,
            )

        options = mock_deploy.call_args.args[0]
        assert options.stack.stack_name == "MyToolkit"
        assert options.stack.environment == environment
        assert options.stack.template == toolkit_template("my-deploy-bucket")
        assert options.toolkit_info is None
        assert options.stack_poll_interval == 0
        assert options.sdk is sdk
