# --- File: formats/base.py ---
from abc import ABC, abstractmethod
from typing import Any, Dict

from core.document_tree import DocumentTree, EncryptedLeaf, map_leaves
from core.errors import InputFormatError, SerializationError
from core.metadata import SopsMetadata

METADATA_KEY = "sops"


def excerpt(text: str, position: int, radius: int = 30) -> str:
    """The slice of text around position, for error messages."""
    start = max(position - radius, 0)
    return text[start:position + radius]


def reject_existing_metadata(tree: DocumentTree) -> None:
    if isinstance(tree, dict) and METADATA_KEY in tree:
        raise InputFormatError(
            f"document already contains a top-level '{METADATA_KEY}' key; it looks already encrypted",
            fragment=METADATA_KEY,
        )


def build_output_document(tree: DocumentTree, metadata: SopsMetadata) -> Dict[str, Any]:
    """Renders encrypted leaves as ENC[...] strings and appends the 'sops' block last."""
    if not isinstance(tree, dict):
        raise SerializationError(
            f"top-level value must be a mapping to carry '{METADATA_KEY}' metadata; got {type(tree).__name__}"
        )
    if METADATA_KEY in tree:
        raise SerializationError(f"top-level key '{METADATA_KEY}' is reserved for encryption metadata")

    rendered = map_leaves(
        tree, lambda _path, value: value.to_sops_string() if isinstance(value, EncryptedLeaf) else value
    )
    rendered[METADATA_KEY] = metadata.to_sops_dict()
    return rendered


class FormatCodec(ABC):
    """Parses plaintext input into a document tree and emits encrypted documents."""

    name: str = ""

    @abstractmethod
    def parse(self, text: str) -> DocumentTree:
        """Raises InputFormatError with the offending fragment when text is malformed."""

    @abstractmethod
    def serialize(self, tree: DocumentTree, metadata: SopsMetadata, pretty: bool = False) -> str:
        """Raises SerializationError when the tree cannot be represented."""
