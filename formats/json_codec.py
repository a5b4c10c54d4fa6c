# --- File: formats/json_codec.py ---
import json
import logging
from typing import Any, Dict, List, Tuple

from core.document_tree import DocumentTree
from core.errors import InputFormatError, SerializationError
from core.metadata import SopsMetadata
from .base import FormatCodec, build_output_document, excerpt, reject_existing_metadata

logger = logging.getLogger(__name__)


def _unique_object(pairs: List[Tuple[str, Any]]) -> Dict[str, Any]:
    obj: Dict[str, Any] = {}
    for key, value in pairs:
        if key in obj:
            raise InputFormatError(f"duplicate key {key!r} in JSON object", fragment=key)
        obj[key] = value
    return obj


def _reject_constant(name: str):
    raise InputFormatError(f"{name} is not valid JSON", fragment=name)


class JsonCodec(FormatCodec):
    name = "json"

    def parse(self, text: str) -> DocumentTree:
        if not isinstance(text, str):
            raise InputFormatError(f"JSON content must be text, got {type(text).__name__}")
        try:
            tree = json.loads(text, object_pairs_hook=_unique_object, parse_constant=_reject_constant)
        except json.JSONDecodeError as e:
            logger.error(f"Error parsing JSON input: {e}")
            raise InputFormatError(
                f"parsing content as JSON: {e.msg} at line {e.lineno} column {e.colno}",
                fragment=excerpt(text, e.pos),
            ) from e
        reject_existing_metadata(tree)
        return tree

    def serialize(self, tree: DocumentTree, metadata: SopsMetadata, pretty: bool = False) -> str:
        document = build_output_document(tree, metadata)
        try:
            if pretty:
                return json.dumps(document, indent=2, ensure_ascii=False, allow_nan=False)
            return json.dumps(document, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
        except ValueError as e:
            logger.error(f"Error emitting encrypted JSON: {e}")
            raise SerializationError(f"emitting encrypted JSON document: {e}") from e
