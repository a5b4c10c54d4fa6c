# --- File: core/scope.py ---
import logging
import re
from enum import Enum
from typing import Optional, Pattern

from pydantic import BaseModel, ConfigDict, PrivateAttr

from core.document_tree import TreePath
from core.errors import ConfigurationError, ScopeConflictError

logger = logging.getLogger(__name__)


class ScopeKind(str, Enum):
    NONE = "none"
    UNENCRYPTED_SUFFIX = "unencrypted_suffix"
    ENCRYPTED_SUFFIX = "encrypted_suffix"
    UNENCRYPTED_REGEX = "unencrypted_regex"
    ENCRYPTED_REGEX = "encrypted_regex"


class ScopePolicy(BaseModel):
    """
    Which leaves get encrypted. Exactly one rule is active; the value is the
    suffix or regex for that rule and is empty for NONE (encrypt everything).
    """
    model_config = ConfigDict(frozen=True)

    kind: ScopeKind = ScopeKind.NONE
    value: str = ""

    _pattern: Optional[Pattern[str]] = PrivateAttr(default=None)

    def model_post_init(self, __context) -> None:
        if self.kind != ScopeKind.NONE and not self.value:
            raise ConfigurationError(f"{self.kind.value} requires a non-empty value")
        if self.kind in (ScopeKind.UNENCRYPTED_REGEX, ScopeKind.ENCRYPTED_REGEX):
            try:
                self._pattern = re.compile(self.value)
            except re.error as e:
                raise ConfigurationError(f"invalid {self.kind.value} {self.value!r}: {e}") from e

    @classmethod
    def from_fields(
        cls,
        unencrypted_suffix: Optional[str] = None,
        encrypted_suffix: Optional[str] = None,
        unencrypted_regex: Optional[str] = None,
        encrypted_regex: Optional[str] = None,
    ) -> "ScopePolicy":
        """Builds a policy from the four optional caller fields; empty strings count as unset."""
        supplied = {
            ScopeKind.UNENCRYPTED_SUFFIX: unencrypted_suffix,
            ScopeKind.ENCRYPTED_SUFFIX: encrypted_suffix,
            ScopeKind.UNENCRYPTED_REGEX: unencrypted_regex,
            ScopeKind.ENCRYPTED_REGEX: encrypted_regex,
        }
        active = {kind: value for kind, value in supplied.items() if value}
        if len(active) > 1:
            logger.error(f"Conflicting scope fields supplied: {sorted(k.value for k in active)}")
            raise ScopeConflictError(kind.value for kind in active)
        if not active:
            return cls()
        kind, value = next(iter(active.items()))
        return cls(kind=kind, value=value)

    def metadata_fields(self):
        """The single scope field recorded in the sops metadata block, if any."""
        if self.kind == ScopeKind.NONE:
            return {}
        return {self.kind.value: self.value}

    def matches(self, name: str) -> bool:
        if self.kind in (ScopeKind.UNENCRYPTED_SUFFIX, ScopeKind.ENCRYPTED_SUFFIX):
            return name.endswith(self.value)
        if self._pattern is not None:
            return self._pattern.search(name) is not None
        return False


def leaf_key_name(path: TreePath) -> str:
    """Name of the nearest enclosing mapping key; sequence indices are skipped."""
    for component in reversed(path):
        if isinstance(component, str):
            return component
    return ""


def should_encrypt(path: TreePath, policy: ScopePolicy) -> bool:
    if policy.kind == ScopeKind.NONE:
        return True
    matched = policy.matches(leaf_key_name(path))
    if policy.kind in (ScopeKind.UNENCRYPTED_SUFFIX, ScopeKind.UNENCRYPTED_REGEX):
        return not matched
    return matched
