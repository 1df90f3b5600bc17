"""Inline-data-or-file resolution for certificates, keys and tokens."""

from __future__ import annotations

import base64
import binascii
from pathlib import Path

import structlog

from kubeconfig_resolver.errors import DataOrFileNotFoundError, InvalidEncodingError

log = structlog.get_logger()


def data_or_file(
    data: str | bytes | None,
    path: str | None,
    field: str,
    *,
    decode_data: bool = True,
    base_path: str | Path | None = None,
) -> bytes:
    """Return credential material from inline data or from a file.

    Inline data always wins over the path. When ``decode_data`` is set the inline
    value is standard base64, possibly wrapped over several lines, and is decoded;
    otherwise it is returned as-is. File contents are returned raw. With neither
    set the result is empty: optional material that is absent is not an error.

    Args:
        data: Inline value from the ``*-data`` key (or ``token``).
        path: File path from the matching key. Relative paths are joined to
            ``base_path`` when one is given.
        field: Name of the path key, used in error messages.
        decode_data: Whether inline data is base64.
        base_path: Directory the kubeconfig was loaded from.

    Raises:
        InvalidEncodingError: If inline data is not valid base64.
        DataOrFileNotFoundError: If the file is missing or unreadable.
    """
    if data is not None:
        raw = data.encode() if isinstance(data, str) else data
        if not decode_data:
            return raw
        try:
            return base64.b64decode(b"".join(raw.split()), validate=True)
        except binascii.Error as e:
            msg = f"invalid base64 in {field}-data: {e}"
            raise InvalidEncodingError(msg) from e

    if not path:
        return b""

    file_path = Path(path).expanduser()
    if base_path is not None and not file_path.is_absolute():
        file_path = Path(base_path) / file_path
    try:
        return file_path.read_bytes()
    except OSError as e:
        log.error("failed_to_read_material", field=field, path=str(file_path))
        raise DataOrFileNotFoundError(field, str(file_path), e.strerror or type(e).__name__) from e
