"""Local disk storage for uploaded files."""

import logging
import secrets
import time
from pathlib import Path
from typing import Dict

from config import MAX_UPLOAD_SIZE, UPLOAD_DIR
from core.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def validate_upload(content: bytes, content_type: str, allowed: Dict[str, str]) -> str:
    """Check size and MIME type of an upload.

    Args:
        content: Raw file bytes, already read into memory.
        content_type: MIME type declared by the client.
        allowed: Mapping of accepted MIME types to short type labels.

    Returns:
        The short type label for ``content_type``.

    Raises:
        ValidationError: If the file is empty, too large or of a refused type.
    """
    if not content:
        raise ValidationError("Arquivo vazio.")
    if len(content) > MAX_UPLOAD_SIZE:
        raise ValidationError(
            f"Arquivo excede o tamanho máximo de {MAX_UPLOAD_SIZE // (1024 * 1024)}MB."
        )
    if content_type not in allowed:
        raise ValidationError("Tipo de arquivo não permitido.")
    return allowed[content_type]


class FileStorage:
    """Stores files under a root directory using generated unique names."""

    def __init__(self, root: Path = UPLOAD_DIR):
        self.root = Path(root)

    def save(self, content: bytes, original_name: str, folder: str) -> str:
        """Write ``content`` and return its path relative to the root."""
        suffix = Path(original_name or "").suffix.lower()
        unique_name = f"{int(time.time() * 1000)}_{secrets.token_hex(4)}{suffix}"
        relative = Path(folder) / unique_name
        target = self.root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        logger.info("Stored upload %s (%d bytes)", relative, len(content))
        return relative.as_posix()

    def resolve(self, relative: str) -> Path:
        """Absolute path of a stored file; refuses paths outside the root."""
        root = self.root.resolve()
        path = (root / relative).resolve()
        if root not in path.parents or not path.is_file():
            raise NotFoundError("Arquivo não encontrado.")
        return path

    def delete(self, relative: str) -> None:
        path = (self.root / relative)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.warning("Stored file %s already missing", relative)
