"""ZIP archive extraction into text file entries."""

import io
import logging
import zipfile
import zlib
from pathlib import Path

from ..config import ProcessingConfig
from .errors import ExtractionError
from .models import ExtractionResult, FileEntry

logger = logging.getLogger(__name__)

UTF8_BOM = '\ufeff'


def decode_text(data: bytes) -> str | None:
    """Decode entry bytes as UTF-8 text.

    Returns None for content that is not text: invalid UTF-8 or data that
    contains NUL bytes.
    """
    if b'\x00' in data:
        return None
    try:
        text = data.decode('utf-8')
    except UnicodeDecodeError:
        return None
    return text[1:] if text.startswith(UTF8_BOM) else text


def is_filtered(path: str, cfg: ProcessingConfig) -> bool:
    """Return True for OS metadata entries and empty paths."""
    if not path.rstrip('/'):
        return True
    if any(path.startswith(prefix) for prefix in cfg.ignore_prefixes):
        return True
    return any(path.endswith(name) for name in cfg.ignore_filenames)


def extract_archive(
    source: bytes | Path | str,
    cfg: ProcessingConfig | None = None
) -> ExtractionResult:
    """Read a ZIP archive into an ordered list of text entries.

    Directory entries are skipped. Entries that cannot be decoded as text
    are logged and skipped without failing the extraction; OS metadata
    entries are filtered out. The output follows the archive's own entry
    order, and each path appears at most once.

    Args:
        source: Raw archive bytes or a path to a ZIP file
        cfg: Filtering configuration (defaults apply when omitted)

    Returns:
        ExtractionResult with the entries, every file path seen, and the
        reason each skipped path was dropped

    Raises:
        ExtractionError: If the source is not a readable ZIP archive
    """
    cfg = cfg or ProcessingConfig()
    handle = io.BytesIO(source) if isinstance(source, (bytes, bytearray)) else Path(source)

    entries: list[FileEntry] = []
    all_paths: list[str] = []
    skipped: dict[str, str] = {}
    seen: set[str] = set()

    try:
        with zipfile.ZipFile(handle, 'r') as z:
            for info in z.infolist():
                filename = info.filename
                if info.is_dir() or filename in seen:
                    continue
                seen.add(filename)
                all_paths.append(filename)

                try:
                    data = z.read(info)
                except (
                    zipfile.BadZipFile, zlib.error, NotImplementedError, RuntimeError, OSError
                ) as e:
                    # Corrupt, encrypted or unsupported compression for this entry only
                    logger.warning("Could not read %s, skipping: %s", filename, e)
                    skipped[filename] = "unreadable"
                    continue

                content = decode_text(data)
                if content is None:
                    logger.warning("Could not read file %s as text, skipping.", filename)
                    skipped[filename] = "binary"
                    continue

                if is_filtered(filename, cfg):
                    logger.debug("Filtered metadata entry: %s", filename)
                    skipped[filename] = "filtered"
                    continue

                entries.append(FileEntry(path=filename, content=content))
    except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError) as e:
        raise ExtractionError(
            f"Failed to process ZIP file: {e}. Please ensure it is a valid .zip archive."
        ) from e

    logger.info(
        "Extracted %d text files (%d skipped) from archive",
        len(entries), len(skipped)
    )
    return ExtractionResult(entries=entries, all_paths=all_paths, skipped=skipped)
