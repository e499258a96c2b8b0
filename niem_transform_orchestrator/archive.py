"""Archive packager for multi-file outputs."""

from __future__ import annotations

import io
import shutil
import zipfile
from pathlib import Path

import structlog

from niem_transform_orchestrator.errors import InternalFailureError

logger = structlog.get_logger(__name__)

# Earliest timestamp the zip format can store; keeps archives reproducible
ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


def zip_directory(directory: Path, remove: bool = True) -> bytes:
    """Zip ``directory`` into an in-memory archive.

    Members are rooted at the directory's own name, sorted by path and stamped
    with a fixed timestamp, so the same files always give the same bytes.

    Args:
        directory: Directory to package
        remove: Delete ``directory`` afterwards, on success or failure

    Returns:
        The zip archive bytes

    Raises:
        InternalFailureError: If the directory cannot be read
    """
    buffer = io.BytesIO()
    try:
        files = sorted(p for p in directory.rglob("*") if p.is_file())
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for path in files:
                arcname = path.relative_to(directory.parent).as_posix()
                info = zipfile.ZipInfo(arcname, date_time=ZIP_EPOCH)
                info.compress_type = zipfile.ZIP_DEFLATED
                info.external_attr = 0o644 << 16
                zf.writestr(info, path.read_bytes())
        logger.info("archive_created", directory=directory.name, member_count=len(files),
                    size_bytes=buffer.tell())
    except OSError as e:
        raise InternalFailureError(f"Failed to package {directory.name}: {str(e)}", operation="zip_directory") from e
    finally:
        if remove:
            shutil.rmtree(directory, ignore_errors=True)
    return buffer.getvalue()
