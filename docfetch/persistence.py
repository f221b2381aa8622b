from pathlib import Path

from loguru import logger

from docfetch.errors import SaveError


def save(data: bytes, path: Path) -> bool:
    """
    Write the fetched document to ``path``, overwriting any existing file.

    Args:
        data: Document bytes.
        path: Destination file.

    Returns:
        True if the file was written, False if there was nothing to write.

    Raises:
        SaveError: if the write fails.
    """
    if not data:
        logger.error("Failed to fetch PDF content: empty payload, nothing written")
        return False

    path = Path(path)
    logger.info("PDF content received ({size} bytes). Saving file...", size=len(data))
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)
    except OSError as e:
        raise SaveError(e.errno, f"Could not write {path}: {e.strerror or e}", str(path)) from e

    logger.success(f"PDF saved successfully to: {path}")
    return True
