# --- File: formats/yaml_codec.py ---
import logging
import re

import yaml

from core.document_tree import DocumentTree, validate_tree
from core.errors import InputFormatError, SerializationError
from core.metadata import SopsMetadata
from .base import FormatCodec, build_output_document, reject_existing_metadata

logger = logging.getLogger(__name__)

_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"
_BOOL_TAG = "tag:yaml.org,2002:bool"
_INT_TAG = "tag:yaml.org,2002:int"
_FLOAT_TAG = "tag:yaml.org,2002:float"

# YAML 1.2 core schema. No sexagesimal numbers, no "_" separators, no 0b ints.
CORE_BOOL = re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$")
CORE_INT = re.compile(r"^(?:[-+]?[0-9]+|0o[0-7]+|0x[0-9a-fA-F]+)$")
CORE_FLOAT = re.compile(
    r"^(?:[-+]?(?:\.[0-9]+|[0-9]+(?:\.[0-9]*)?)(?:[eE][-+]?[0-9]+)?"
    r"|[-+]?\.(?:inf|Inf|INF)|\.(?:nan|NaN|NAN))$"
)


def construct_core_int(loader, node):
    value = loader.construct_scalar(node)
    try:
        if value.startswith("0o"):
            return int(value[2:], 8)
        if value.startswith("0x"):
            return int(value[2:], 16)
        return int(value)
    except ValueError:
        raise yaml.constructor.ConstructorError(
            None, None, f"found invalid integer {value!r}", node.start_mark
        ) from None


class SopsYamlLoader(yaml.SafeLoader):
    """SafeLoader with YAML 1.2 core-schema scalars, so values reach the encryptor as written."""


SopsYamlLoader.yaml_implicit_resolvers = {
    first: [
        (tag, regexp) for tag, regexp in resolvers
        if tag not in (_TIMESTAMP_TAG, _BOOL_TAG, _INT_TAG, _FLOAT_TAG)
    ]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
SopsYamlLoader.add_implicit_resolver(_BOOL_TAG, CORE_BOOL, list("tTfF"))
# int before float: "123" matches both
SopsYamlLoader.add_implicit_resolver(_INT_TAG, CORE_INT, list("-+0123456789"))
SopsYamlLoader.add_implicit_resolver(_FLOAT_TAG, CORE_FLOAT, list("-+.0123456789"))
SopsYamlLoader.add_constructor(_INT_TAG, construct_core_int)


class IndentedSafeDumper(yaml.SafeDumper):
    """Indents block sequences under their parent key (`key:\\n  - item`)."""

    def increase_indent(self, flow=False, indentless=False):
        return super().increase_indent(flow, False)


# Quote strings a YAML 1.2 reader would take as numbers (e.g. "0o17").
IndentedSafeDumper.add_implicit_resolver(_INT_TAG, CORE_INT, list("-+0123456789"))
IndentedSafeDumper.add_implicit_resolver(_FLOAT_TAG, CORE_FLOAT, list("-+.0123456789"))


def dump_yaml(data) -> str:
    """Block-style YAML, 2-space indent, insertion order kept, no line folding."""
    return yaml.dump(
        data,
        Dumper=IndentedSafeDumper,
        default_flow_style=False,
        sort_keys=False,
        indent=2,
        allow_unicode=True,
        width=float("inf"),
    )


class YamlCodec(FormatCodec):
    name = "yaml"

    def parse(self, text: str) -> DocumentTree:
        if not isinstance(text, str):
            raise InputFormatError(f"YAML content must be text, got {type(text).__name__}")
        try:
            tree = yaml.load(text, Loader=SopsYamlLoader)
        except yaml.MarkedYAMLError as e:
            logger.error(f"Error parsing YAML input: {e}")
            mark = e.problem_mark or e.context_mark
            fragment = None
            if mark is not None:
                lines = text.splitlines()
                fragment = lines[mark.line] if mark.line < len(lines) else None
                message = f"parsing content as YAML: {e.problem} at line {mark.line + 1} column {mark.column + 1}"
            else:
                message = f"parsing content as YAML: {e.problem}"
            raise InputFormatError(message, fragment=fragment) from e
        except yaml.YAMLError as e:
            logger.error(f"Error parsing YAML input: {e}")
            raise InputFormatError(f"parsing content as YAML: {e}") from e
        validate_tree(tree)
        reject_existing_metadata(tree)
        return tree

    def serialize(self, tree: DocumentTree, metadata: SopsMetadata, pretty: bool = False) -> str:
        document = build_output_document(tree, metadata)
        try:
            return dump_yaml(document)
        except yaml.YAMLError as e:
            logger.error(f"Error emitting encrypted YAML: {e}")
            raise SerializationError(f"emitting encrypted YAML document: {e}") from e
