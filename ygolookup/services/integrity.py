"""SHA-256 verification of staged release files."""

import hashlib
import logging
import re
from pathlib import Path

from ygolookup.models.failure import IntegrityFailure

logger = logging.getLogger(__name__)

# The digest may be alone or embedded in a longer line ("<digest>  cards_0.tar.xz")
_SHA256_HEX = re.compile(r"\b([0-9a-fA-F]{64})\b")


def compute_sha256(path: Path, chunk_size: int = 1024 * 1024) -> str:
    """Hex SHA-256 of a file, read in chunks."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        while chunk := f.read(chunk_size):
            digest.update(chunk)
    return digest.hexdigest()


def parse_checksum_file(path: Path, file_name: str | None = None) -> str:
    """
    Read the expected digest from a `.sha256` companion file.

    Raises:
        IntegrityFailure: If the file holds no 64-character hex digest
    """
    match = _SHA256_HEX.search(path.read_text(encoding="utf-8", errors="replace"))
    if not match:
        raise IntegrityFailure(file_name or path.name, expected=None, actual=None)
    return match.group(1).lower()


def verify_artifact(path: Path, checksum_path: Path | None) -> bool:
    """
    Compare a staged file against its companion checksum.

    Args:
        path: Staged file
        checksum_path: Companion `.sha256` file, or None if none was published

    Returns:
        True if verified, False if there was nothing to verify against

    Raises:
        IntegrityFailure: On digest mismatch or an unreadable checksum file
    """
    if checksum_path is None or not checksum_path.exists():
        logger.warning("No checksum published for %s, skipping verification", path.name)
        return False

    expected = parse_checksum_file(checksum_path, path.name)
    actual = compute_sha256(path)
    if actual != expected:
        raise IntegrityFailure(path.name, expected=expected, actual=actual)

    logger.info("Checksum verified for %s", path.name)
    return True
