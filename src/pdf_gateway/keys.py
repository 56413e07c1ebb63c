"""Object key naming: how uploads are named and how path-embedded keys are decoded."""

import re
import time
from typing import Optional
from urllib.parse import unquote

from pdf_gateway.errors import ValidationError

KEY_PREFIX = "documents/"

# a '%' that does not start a valid two-digit hex escape
_MALFORMED_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def derive_key(original_name: str, now_ms: Optional[int] = None) -> str:
    """
    Build the storage key for an uploaded file.

    The original name is attacker-controlled, so it is only ever used as an
    opaque suffix: it is neither escaped nor interpreted as a path.

    :param original_name: The filename the client sent with the upload.
    :param now_ms: Override for the current unix time in milliseconds.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{KEY_PREFIX}{now_ms}-{original_name}"


def decode_key(raw_key: str) -> str:
    """
    Percent-decode a key taken from a URL path. Call it exactly once per key.

    :raises ValidationError: if the key is empty or not a valid percent-encoding.
    """
    if not raw_key:
        raise ValidationError("No file key provided", summary="No file key provided")

    if _MALFORMED_ESCAPE.search(raw_key):
        raise ValidationError(f"Malformed file key: invalid percent-escape in '{raw_key}'", summary="Malformed file key")

    try:
        key = unquote(raw_key, encoding="utf-8", errors="strict")
    except UnicodeDecodeError as err:
        raise ValidationError(f"Malformed file key: '{raw_key}' does not decode to UTF-8", summary="Malformed file key") from err

    if not key:
        raise ValidationError("No file key provided", summary="No file key provided")
    return key
