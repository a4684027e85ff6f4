"""Key derivation for records, retention sets and scope names.

Responsibilities of this stage:
- derive one canonical key per incoming record from the configured key field
- validate dataset/collection names against the safe charset
- stay pure: no storage access, no hidden state

Record keys are opaque identifiers and only need to be non-empty after string
coercion. Scope names select physical storage and are restricted to
``[a-z0-9_]`` after trimming and case-folding.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Collection, Mapping, Sequence, Set
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from snapsync.domain.errors import BatchTypeError, InvalidKeyError, ScopeError
from snapsync.domain.types import KeyedRecord, Scope

if TYPE_CHECKING:
    from collections.abc import Iterable

log = logging.getLogger(__name__)

SCOPE_NAME_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-z0-9_]+$")


@dataclass(frozen=True, slots=True)
class KeyDerivation:
    """Keyed records of one batch plus the number of records that were skipped."""

    records: tuple[KeyedRecord, ...]
    skipped: int = 0

    @property
    def keys(self) -> frozenset[str]:
        return frozenset(record.key for record in self.records)


def normalize_record_key(raw: object) -> str:
    """Return the canonical key for ``raw`` or raise ``InvalidKeyError``."""

    if raw is None:
        raise InvalidKeyError("Key value is missing")
    if isinstance(raw, (Mapping, Set, bytes, bytearray)) or (
        isinstance(raw, Sequence) and not isinstance(raw, str)
    ):
        raise InvalidKeyError(f"Key value must be a scalar, got {type(raw).__name__}")
    key = str(raw).strip()
    if not key:
        raise InvalidKeyError("Key value is empty")
    return key


def normalize_name(raw: object) -> str:
    """Return a trimmed, case-folded scope name or raise ``InvalidKeyError``."""

    if raw is None:
        raise InvalidKeyError("Name is missing")
    if not isinstance(raw, str):
        raise InvalidKeyError(f"Name must be a string, got {type(raw).__name__}")
    name = raw.strip().casefold()
    if not SCOPE_NAME_PATTERN.fullmatch(name):
        raise InvalidKeyError(f"Invalid name {raw!r}: use lowercase letters, digits or '_'")
    return name


def normalize_scope(dataset: object, collection: object) -> Scope:
    """Build a validated ``Scope``; failures surface as ``ScopeError``."""

    try:
        return Scope(dataset=normalize_name(dataset), collection=normalize_name(collection))
    except InvalidKeyError as exc:
        raise ScopeError(str(exc)) from exc


def derive_keyed_records(records: Iterable[object], key_field: str) -> KeyDerivation:
    """Key every record, skipping the ones that cannot yield a key.

    When a key occurs more than once, the last record carrying it wins and keeps
    the position of the first occurrence.
    """

    by_key: dict[str, KeyedRecord] = {}
    skipped = 0
    for index, record in enumerate(records):
        if not isinstance(record, Mapping):
            skipped += 1
            log.debug("Skipping record #%s: not a mapping (%s)", index, type(record).__name__)
            continue
        try:
            key = normalize_record_key(record.get(key_field))
        except InvalidKeyError as exc:
            skipped += 1
            log.debug("Skipping record #%s: %s", index, exc)
            continue
        if key in by_key:
            log.debug("Record #%s repeats key %r; keeping the later record", index, key)
        by_key[key] = KeyedRecord(key=key, fields=record)
    return KeyDerivation(records=tuple(by_key.values()), skipped=skipped)


def normalize_retention_keys(keys: object) -> frozenset[str]:
    """Normalize an explicit retention set.

    Entries that are not valid keys are dropped; no stored key can equal them, so
    dropping them never changes what the delete phase removes.
    """

    if isinstance(keys, (str, bytes, bytearray, Mapping)) or not isinstance(keys, Collection):
        raise BatchTypeError(
            f"Retention keys must be a list of keys, got {type(keys).__name__}"
        )
    normalized: set[str] = set()
    for raw in keys:
        try:
            normalized.add(normalize_record_key(raw))
        except InvalidKeyError:
            log.debug("Dropping invalid retention key %r", raw)
    return frozenset(normalized)


def validate_key_field(key_field: object) -> str:
    if not isinstance(key_field, str) or not key_field.strip():
        raise BatchTypeError("Key field must be a non-empty string")
    return key_field.strip()
