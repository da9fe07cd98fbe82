"""
Tests for the template and asset bucket.
"""

import hashlib
from unittest.mock import Mock

import pytest
from botocore.exceptions import ClientError

from cloudformation.toolkit import ToolkitInfo


def missing_object() -> ClientError:
    return ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject")


class TestUploadIfChanged:
    """Test ToolkitInfo.upload_if_changed."""

    def test_uploads_new_content(self) -> None:
        """Test content not yet in the bucket is uploaded under its hash."""
        s3 = Mock()
        s3.head_object.side_effect = missing_object()
        toolkit = ToolkitInfo(s3, "deploy-bucket", "deploy-bucket.s3.amazonaws.com")
        digest = hashlib.md5(b"Resources: {}\n").hexdigest()

        result = toolkit.upload_if_changed(
            "Resources: {}\n", key_prefix="templates/Orders/", key_suffix=".yml", content_type="application/x-yaml"
        )

        assert result.key == f"templates/Orders/{digest}.yml"
        assert result.hash == digest
        assert result.changed is True
        s3.put_object.assert_called_once_with(
            Bucket="deploy-bucket",
            Key=f"templates/Orders/{digest}.yml",
            Body=b"Resources: {}\n",
            ContentType="application/x-yaml",
        )

    def test_skips_existing_content(self) -> None:
        """Test identical content is not uploaded again."""
        s3 = Mock()
        toolkit = ToolkitInfo(s3, "deploy-bucket", "deploy-bucket.s3.amazonaws.com")

        result = toolkit.upload_if_changed(b"\x00\x01", key_prefix="assets/handler/", key_suffix=".zip")

        assert result.changed is False
        s3.put_object.assert_not_called()

    def test_no_content_type(self) -> None:
        """Test ContentType is only sent when given."""
        s3 = Mock()
        s3.head_object.side_effect = ClientError({"Error": {"Code": "NoSuchKey"}}, "HeadObject")
        toolkit = ToolkitInfo(s3, "deploy-bucket", "deploy-bucket.s3.amazonaws.com")

        toolkit.upload_if_changed(b"data")

        assert "ContentType" not in s3.put_object.call_args.kwargs

    def test_other_errors_propagate(self) -> None:
        """Test errors other than a missing object are raised."""
        s3 = Mock()
        s3.head_object.side_effect = ClientError({"Error": {"Code": "403", "Message": "Forbidden"}}, "HeadObject")
        toolkit = ToolkitInfo(s3, "deploy-bucket", "deploy-bucket.s3.amazonaws.com")

        with pytest.raises(ClientError):
            toolkit.upload_if_changed(b"data")

        s3.put_object.assert_not_called()


class TestToolkitLookup:
    """Test finding the bucket."""

    def test_lookup_from_outputs(self) -> None:
        """Test the bucket is read from the toolkit stack outputs."""
        cfn = Mock()
        cfn.describe_stacks.return_value = {
            "Stacks": [
                {
                    "StackName": "DeployToolkit",
                    "StackId": "toolkit-id",
                    "StackStatus": "CREATE_COMPLETE",
                    "Outputs": [
                        {"OutputKey": "BucketName", "OutputValue": "deploy-bucket"},
                        {
                            "OutputKey": "BucketDomainName",
                            "OutputValue": "deploy-bucket.s3.eu-west-1.amazonaws.com",
                        },
                    ],
                }
            ]
        }
        s3 = Mock()

        toolkit = ToolkitInfo.lookup(cfn, s3, "DeployToolkit")

        assert toolkit.bucket_name == "deploy-bucket"
        assert toolkit.bucket_url == "https://deploy-bucket.s3.eu-west-1.amazonaws.com"
        assert toolkit.s3 is s3

    def test_lookup_missing_stack(self) -> None:
        """Test no toolkit stack means no bucket."""
        cfn = Mock()
        cfn.describe_stacks.side_effect = ClientError(
            {"Error": {"Code": "ValidationError", "Message": "Stack with id DeployToolkit does not exist"}},
            "DescribeStacks",
        )

        assert ToolkitInfo.lookup(cfn, Mock(), "DeployToolkit") is None

    @pytest.mark.parametrize(
        "region,expected",
        [
            ("us-east-1", "https://deploy-bucket.s3.amazonaws.com"),
            ("eu-west-1", "https://deploy-bucket.s3.eu-west-1.amazonaws.com"),
        ],
    )
    def test_from_bucket(self, region: str, expected: str) -> None:
        """Test explicit buckets get a regional endpoint."""
        assert ToolkitInfo.from_bucket(Mock(), "deploy-bucket", region).bucket_url == expected
