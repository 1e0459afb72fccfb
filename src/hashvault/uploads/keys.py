"""Storage key derivation."""

import secrets
from typing import Optional

TEMPORARY_PREFIX = "tmp/"


def new_temporary_key() -> str:
    """Return a fresh temporary key with 128 random bits."""
    return f"{TEMPORARY_PREFIX}{secrets.token_hex(16)}"


def file_extension(filename: Optional[str]) -> Optional[str]:
    """Extract the extension of the last path component of a filename hint.

    Dotfiles (".bashrc") and names ending in a dot have no extension.
    Anything else after the final dot is returned verbatim.
    """
    if not filename:
        return None
    name = filename.rsplit("/", 1)[-1]
    stem, dot, ext = name.rpartition(".")
    if not dot or not stem or not ext:
        return None
    return ext


def derive_final_key(hexdigest: str, filename: Optional[str] = None) -> str:
    """Build the content-addressed key ``<digest>[.<ext>]``, lowercased."""
    ext = file_extension(filename)
    key = f"{hexdigest}.{ext}" if ext else hexdigest
    return key.lower()
