"""
Wire format for session tables.

A table is stored as a UTF-8 JSON object whose values are the standard
base64 encoding of each entry's bytes, e.g. ``{"k": "dg=="}``. Peer
services read and write the same format.
"""

import base64
import binascii
import json
from typing import Dict

from shared.errors import SessionSerializationError


def serialize_table(table: Dict[str, bytes]) -> bytes:
    """Encode a session table for the distributed cache."""
    encoded = {key: base64.b64encode(value).decode("ascii") for key, value in table.items()}
    return json.dumps(encoded, separators=(",", ":")).encode("utf-8")


def deserialize_table(payload: bytes) -> Dict[str, bytes]:
    """Decode a cached payload back into a session table."""
    try:
        data = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise SessionSerializationError("Session payload is not valid JSON", {"error": str(e)}) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise SessionSerializationError(
            "Session payload must be a JSON object",
            {"type": type(data).__name__}
        )

    table: Dict[str, bytes] = {}
    for key, value in data.items():
        if not isinstance(value, str):
            raise SessionSerializationError("Session value must be a base64 string", {"key": key})
        try:
            table[key] = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as e:
            raise SessionSerializationError("Session value is not valid base64", {"key": key}) from e

    return table
