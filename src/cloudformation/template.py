"""
Decide how a template is handed to CreateChangeSet.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Optional

from .errors import TemplateTooLargeError
from .serialize import to_yaml

if TYPE_CHECKING:
    from .artifact import StackArtifact
    from .toolkit import ToolkitInfo

logger = logging.getLogger(__name__)

# CloudFormation rejects inline template bodies above this size.
LARGE_TEMPLATE_SIZE_KB = 50


@dataclass(frozen=True)
class TemplateBodyParameter:
    """Either an inline template body or a URL to one, never both."""

    template_body: Optional[str] = None
    template_url: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.template_body is None) == (self.template_url is None):
            raise ValueError("Exactly one of template_body or template_url must be set")

    def to_api_kwargs(self) -> Dict[str, str]:
        if self.template_url is not None:
            return {"TemplateURL": self.template_url}
        return {"TemplateBody": self.template_body}


def make_body_parameter(
    stack: "StackArtifact", toolkit_info: Optional["ToolkitInfo"] = None
) -> TemplateBodyParameter:
    """
    Store the template in the toolkit bucket when there is one, inline it otherwise.

    Raises:
        TemplateTooLargeError: no bucket and the template is over the inline limit
    """
    body = to_yaml(stack.template)

    if toolkit_info is not None:
        result = toolkit_info.upload_if_changed(
            body,
            key_prefix=f"templates/{stack.id}/",
            key_suffix=".yml",
            content_type="application/x-yaml",
        )
        template_url = f"{toolkit_info.bucket_url}/{result.key}"
        logger.debug(f"Stored template in S3 at: {template_url}")
        return TemplateBodyParameter(template_url=template_url)

    size = len(body.encode("utf-8"))
    if size > LARGE_TEMPLATE_SIZE_KB * 1024:
        environment = stack.environment.name if stack.environment else ""
        logger.error(
            f'The template for stack "{stack.display_name}" is {round(size / 1024)}KiB. '
            f"Templates larger than {LARGE_TEMPLATE_SIZE_KB}KiB must be uploaded to S3.\n"
            "Run the following command to set up a template bucket in this environment, "
            f"then re-deploy (or pass --toolkit-bucket):\n\n\t$ stackdeploy bootstrap {environment}\n"
        )
        raise TemplateTooLargeError(
            f"Template for {stack.display_name} is too large to deploy inline "
            f"({round(size / 1024)}KiB > {LARGE_TEMPLATE_SIZE_KB}KiB); "
            "a template bucket is required",
            stack_name=stack.stack_name,
            size=size,
        )

    return TemplateBodyParameter(template_body=body)
