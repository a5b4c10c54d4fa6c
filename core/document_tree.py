# --- File: core/document_tree.py ---
"""
Recursive value model for documents handed to the encryptor.

A document is built from plain Python values exactly as a JSON/YAML parser
returns them: dict (ordered, string keys), list, and scalars
(str, int, float, bool, None). Encrypted scalars are replaced by
EncryptedLeaf instances; nothing else about the structure changes.
"""
import math
from decimal import Decimal
from typing import Any, Callable, Dict, List, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from core.errors import InputFormatError
from sops_crypto_package import format_sops_value

Scalar = Union[str, int, float, bool, None]
PathComponent = Union[str, int]
TreePath = Tuple[PathComponent, ...]
DocumentTree = Union[Scalar, Dict[str, Any], List[Any]]

SCALAR_TYPES = (str, int, float, bool, type(None))


class EncryptedLeaf(BaseModel):
    """A scalar after AES-256-GCM encryption, with the type tag needed to restore it."""
    model_config = ConfigDict(frozen=True)

    ciphertext_b64: str = Field(..., description="AES-GCM ciphertext without the tag (base64).")
    nonce_b64: str = Field(..., description="Per-value GCM nonce (base64).")
    tag_b64: str = Field(..., description="128-bit GCM authentication tag (base64).")
    type_tag: str = Field(..., description="Original scalar type: str, int, float, bool or null.")

    @classmethod
    def from_package(cls, aes_encrypted_package: Dict[str, str], type_tag: str) -> "EncryptedLeaf":
        return cls(
            ciphertext_b64=aes_encrypted_package["ciphertext_b64"],
            nonce_b64=aes_encrypted_package["nonce_b64"],
            tag_b64=aes_encrypted_package["tag_b64"],
            type_tag=type_tag,
        )

    def to_sops_string(self) -> str:
        return format_sops_value(
            {"ciphertext_b64": self.ciphertext_b64, "nonce_b64": self.nonce_b64, "tag_b64": self.tag_b64},
            self.type_tag,
        )


def is_scalar(value: Any) -> bool:
    return isinstance(value, SCALAR_TYPES)


def scalar_type_tag(value: Scalar) -> str:
    # bool is a subclass of int, check it first
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int"
    if isinstance(value, float):
        return "float"
    if isinstance(value, str):
        return "str"
    if value is None:
        return "null"
    raise TypeError(f"Unsupported scalar type: {type(value).__name__}")


def format_float(value: float) -> str:
    """Shortest round-trip decimal, no exponent, no trailing '.0' (Go's FormatFloat 'f', -1)."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def scalar_to_bytes(value: Scalar) -> bytes:
    """Canonical plaintext bytes that get encrypted for a scalar."""
    type_tag = scalar_type_tag(value)
    if type_tag == "str":
        return value.encode("utf-8")
    if type_tag == "bool":
        return b"true" if value else b"false"
    if type_tag == "int":
        return str(value).encode("utf-8")
    if type_tag == "float":
        return format_float(value).encode("utf-8")
    return b""


def is_empty_scalar(value: Scalar) -> bool:
    """null and the empty string are stored as-is, the way sops leaves them."""
    return value is None or (isinstance(value, str) and not value)


def scalar_mac_bytes(value: Scalar):
    """Bytes fed into the document MAC, or None for values the MAC skips (null)."""
    if value is None:
        return None
    if isinstance(value, bool):
        return b"True" if value else b"False"
    return scalar_to_bytes(value)


def sops_path_string(path: TreePath) -> str:
    """Additional data for a leaf: mapping keys joined by ':' plus a trailing ':'."""
    return "".join(f"{component}:" for component in path if isinstance(component, str))


def map_leaves(tree: DocumentTree, fn: Callable[[TreePath, Scalar], Any], path: TreePath = ()) -> DocumentTree:
    """
    Depth-first walk that returns a new tree with every scalar replaced by fn(path, scalar).
    Key order and sequence order are preserved; the input tree is not modified.
    """
    if isinstance(tree, dict):
        return {key: map_leaves(value, fn, path + (key,)) for key, value in tree.items()}
    if isinstance(tree, list):
        return [map_leaves(item, fn, path + (index,)) for index, item in enumerate(tree)]
    return fn(path, tree)


def validate_tree(tree: Any, path: TreePath = ()) -> None:
    """Rejects values a parser may produce that the document model cannot hold."""
    if isinstance(tree, dict):
        for key, value in tree.items():
            if not isinstance(key, str):
                raise InputFormatError(
                    f"mapping keys must be strings; found {type(key).__name__} key at {_render_path(path)}",
                    fragment=repr(key),
                )
            validate_tree(value, path + (key,))
    elif isinstance(tree, list):
        for index, item in enumerate(tree):
            validate_tree(item, path + (index,))
    elif not is_scalar(tree):
        raise InputFormatError(
            f"unsupported value of type {type(tree).__name__} at {_render_path(path)}",
            fragment=repr(tree)[:80],
        )


def _render_path(path: TreePath) -> str:
    if not path:
        return "<root>"
    return "".join(f"[{c}]" if isinstance(c, int) else f".{c}" for c in path).lstrip(".")
