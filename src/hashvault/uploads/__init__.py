"""
Content-addressed uploads.

Streams inbound files to a temporary object while hashing them, then
promotes each to a key derived from its SHA-256 digest.
"""

from hashvault.uploads.digest import DigestingStream
from hashvault.uploads.keys import derive_final_key, file_extension, new_temporary_key
from hashvault.uploads.service import StreamingDigestUploader, iter_upload_file

__all__ = [
    "DigestingStream",
    "StreamingDigestUploader",
    "derive_final_key",
    "file_extension",
    "iter_upload_file",
    "new_temporary_key",
]
