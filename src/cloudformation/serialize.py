"""
Template serialization.

Templates travel to CloudFormation as YAML. Deployed templates come back
either already parsed (JSON bodies are decoded by botocore) or as JSON/YAML
text, possibly using the short-form intrinsic function tags.
"""

import json
from pathlib import Path
from typing import Any, Dict, Union

import yaml


class CloudFormationYAMLLoader(yaml.SafeLoader):
    """YAML loader that expands CloudFormation short-form intrinsic functions."""


class TemplateYAMLDumper(yaml.SafeDumper):
    """YAML dumper that never emits anchors or aliases."""

    def ignore_aliases(self, data: Any) -> bool:
        return True


def _construct_node(loader: yaml.Loader, node: yaml.Node) -> Any:
    if isinstance(node, yaml.ScalarNode):
        return loader.construct_scalar(node)
    if isinstance(node, yaml.SequenceNode):
        return loader.construct_sequence(node, deep=True)
    if isinstance(node, yaml.MappingNode):
        return loader.construct_mapping(node, deep=True)
    raise yaml.constructor.ConstructorError(
        None, None, f"could not determine a constructor for the tag '{node.tag}'", node.start_mark
    )


def _intrinsic_constructor(tag: str):
    def construct(loader: yaml.Loader, node: yaml.Node) -> Dict[str, Any]:
        value = _construct_node(loader, node)
        if tag == "Ref" or tag == "Condition":
            return {tag: value}
        if tag == "GetAtt" and isinstance(value, str):
            value = value.split(".", 1)
        return {f"Fn::{tag}": value}

    return construct


CFN_TAGS = [
    "Ref", "Condition", "GetAtt", "GetAZs", "ImportValue", "Join", "Select",
    "Split", "Sub", "Transform", "Base64", "Cidr", "FindInMap", "Equals",
    "If", "Not", "And", "Or", "ToJsonString", "Length",
]

for _tag in CFN_TAGS:
    CloudFormationYAMLLoader.add_constructor(f"!{_tag}", _intrinsic_constructor(_tag))


def to_yaml(template: Any) -> str:
    """Serialize a template to the YAML text sent to CloudFormation."""
    return yaml.dump(
        template,
        Dumper=TemplateYAMLDumper,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
        width=float("inf"),
    )


def deserialize_structure(body: Union[str, Dict[str, Any], None]) -> Any:
    """Parse a template body that may be a dict, JSON text or YAML text."""
    if body is None:
        return None
    if not isinstance(body, str):
        return body
    try:
        return json.loads(body)
    except ValueError:
        return yaml.load(body, Loader=CloudFormationYAMLLoader)


def load_template_file(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a JSON or YAML template from disk."""
    text = Path(path).read_text(encoding="utf-8")
    template = deserialize_structure(text)
    if not isinstance(template, dict):
        raise ValueError(f"Template {path} does not contain a mapping")
    return template
