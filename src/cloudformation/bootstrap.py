"""
Provision the S3 bucket used for templates and assets.
"""

from typing import Any, Dict, Optional

from .artifact import Environment, StackArtifact
from .deploy_stack import DeployStackOptions, DeployStackResult, deploy_stack
from .sdk import SDK
from .toolkit import BUCKET_DOMAIN_NAME_OUTPUT, BUCKET_NAME_OUTPUT

DEFAULT_TOOLKIT_STACK_NAME = "DeployToolkit"


def toolkit_template(bucket_name: Optional[str] = None) -> Dict[str, Any]:
    """Template of the toolkit stack: one private, encrypted bucket."""
    bucket_properties: Dict[str, Any] = {
        "BucketEncryption": {
            "ServerSideEncryptionConfiguration": [
                {"ServerSideEncryptionByDefault": {"SSEAlgorithm": "AES256"}}
            ]
        },
        "PublicAccessBlockConfiguration": {
            "BlockPublicAcls": True,
            "BlockPublicPolicy": True,
            "IgnorePublicAcls": True,
            "RestrictPublicBuckets": True,
        },
    }
    if bucket_name:
        bucket_properties["BucketName"] = bucket_name

    return {
        "Description": "Template and asset storage for stack deployments",
        "Resources": {
            "StagingBucket": {
                "Type": "AWS::S3::Bucket",
                "Properties": bucket_properties,
                "DeletionPolicy": "Retain",
            }
        },
        "Outputs": {
            BUCKET_NAME_OUTPUT: {
                "Description": "Name of the template and asset bucket",
                "Value": {"Ref": "StagingBucket"},
            },
            BUCKET_DOMAIN_NAME_OUTPUT: {
                "Description": "Regional domain name of the bucket",
                "Value": {"Fn::GetAtt": ["StagingBucket", "RegionalDomainName"]},
            },
        },
    }


def bootstrap_environment(
    environment: Environment,
    sdk: SDK,
    toolkit_stack_name: str = DEFAULT_TOOLKIT_STACK_NAME,
    bucket_name: Optional[str] = None,
    role_arn: Optional[str] = None,
    quiet: bool = False,
    **poll_intervals: float,
) -> DeployStackResult:
    """Deploy (or update) the toolkit stack in an environment."""
    stack = StackArtifact(
        id=toolkit_stack_name,
        stack_name=toolkit_stack_name,
        template=toolkit_template(bucket_name),
        environment=environment,
    )
    return deploy_stack(
        DeployStackOptions(
            stack=stack,
            sdk=sdk,
            role_arn=role_arn,
            quiet=quiet,
            **poll_intervals,
        )
    )
