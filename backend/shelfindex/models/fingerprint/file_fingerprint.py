from __future__ import annotations
import hashlib, os, re

_UNSAFE_CHARS = re.compile(r'[<>:"|?*\x00-\x1f]')
MAX_FILENAME_LEN = 200


def sha256_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def sanitize_filename(name: str) -> str:
    """
    Strip directory components, replace characters that are unsafe on common
    filesystems with "_", and cap the length at 200 while keeping the extension.
    """
    base_name = os.path.basename(name.replace("\\", "/"))
    cleaned = _UNSAFE_CHARS.sub("_", base_name)

    stem, ext = os.path.splitext(cleaned)
    max_stem = MAX_FILENAME_LEN - len(ext)
    if len(stem) > max_stem:
        cleaned = stem[:max_stem] + ext
    return cleaned
