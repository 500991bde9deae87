"""Indicator classifier — maps a raw string to an indicator kind.

Pure and total: every input yields exactly one kind, there is no
"unrecognized" outcome. Hash rules run before path rules, so a 32/40/64
character hex string is always a hash.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class IndicatorKind(str, Enum):
    FILE_HASH = "file_hash"
    FILE_PATH = "file_path"
    FILE_NAME = "file_name"
    PROCESS_NAME = "process_name"


class HashAlgorithm(str, Enum):
    MD5 = "md5"
    SHA1 = "sha1"
    SHA256 = "sha256"


@dataclass(frozen=True)
class Classification:
    """Result of classifying one indicator value."""

    kind: IndicatorKind
    hash_algorithm: Optional[HashAlgorithm] = None


# Longest first: a 64-char digest must never be read as a shorter one
_HASH_PATTERNS = (
    (re.compile(r"^[a-f0-9]{64}$", re.IGNORECASE), HashAlgorithm.SHA256),
    (re.compile(r"^[a-f0-9]{40}$", re.IGNORECASE), HashAlgorithm.SHA1),
    (re.compile(r"^[a-f0-9]{32}$", re.IGNORECASE), HashAlgorithm.MD5),
)

_PATH_SEPARATOR = re.compile(r"[\\/]")
_EXTENSION = re.compile(r"\.\w+$", re.ASCII)


def classify(value: str) -> Classification:
    """Classify an indicator value into its kind and optional hash algorithm."""
    trimmed = value.strip()

    for pattern, algorithm in _HASH_PATTERNS:
        if pattern.match(trimmed):
            return Classification(IndicatorKind.FILE_HASH, algorithm)

    has_separator = _PATH_SEPARATOR.search(trimmed) is not None
    has_extension = _EXTENSION.search(trimmed) is not None

    if has_separator and has_extension:
        return Classification(IndicatorKind.FILE_PATH)
    if has_extension:
        return Classification(IndicatorKind.FILE_NAME)

    # Extension-less names such as "malware" land here too
    return Classification(IndicatorKind.PROCESS_NAME)
