"""Image pre-processing applied before writing over DFU."""

from __future__ import annotations

import logging
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from fwflash.core.errors import ImageFileError
from fwflash.core.model import MODULE_HEADER_SIZE

LOGGER = logging.getLogger(__name__)


@contextmanager
def drop_module_info(image: Path) -> Iterator[Path]:
    """Yield a temporary copy of ``image`` without its leading module header.

    The copy is removed when the context exits, including when the copy
    itself fails part way.
    """
    try:
        with tempfile.NamedTemporaryFile(prefix="fwflash-", suffix=".bin", delete=False) as tmp:
            stripped = Path(tmp.name)
    except OSError as exc:
        raise ImageFileError(f"Could not allocate a temporary file to strip {image}: {exc}") from exc

    try:
        try:
            with image.open("rb") as src, stripped.open("wb") as dst:
                src.seek(MODULE_HEADER_SIZE)
                shutil.copyfileobj(src, dst)
        except OSError as exc:
            raise ImageFileError(f"Could not copy {image} into {stripped}: {exc}") from exc
        LOGGER.debug("Stripped %d byte module header from %s into %s", MODULE_HEADER_SIZE, image, stripped)
        yield stripped
    finally:
        stripped.unlink(missing_ok=True)
