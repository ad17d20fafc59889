"""
Payment slip file storage.

The reviewer needs "store these bytes, give me a reference", plus reading
a stored file back for an admin and removing one whose slip row was never
kept.  ``LocalSlipStorage`` writes under a root directory;
``InMemorySlipStorage`` keeps files in a dict for tests and local runs.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Protocol
from uuid import UUID, uuid4

from lease_kernel.exceptions import SlipFileMissingError, SlipStorageError
from lease_kernel.logging_config import get_logger

logger = get_logger("services.slip_storage")

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def safe_file_name(file_name: str) -> str:
    """Strip directories and replace characters outside [A-Za-z0-9._-]."""
    base = file_name.replace("\\", "/").rsplit("/", 1)[-1]
    cleaned = _UNSAFE_CHARS.sub("_", base).strip("._")
    return cleaned or "slip"


class SlipStorage(Protocol):
    def store(self, bill_id: UUID, file_name: str, content: bytes) -> str:
        """Persist the file and return its reference (stored as file_url)."""
        ...

    def read(self, reference: str) -> bytes:
        """Return the stored bytes; SlipFileMissingError if absent."""
        ...

    def delete(self, reference: str) -> None:
        """Remove the file; a missing file is not an error."""
        ...


class LocalSlipStorage:
    """Writes slips to ``<root>/<bill_id>/<uuid>_<safe-name>``."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def store(self, bill_id: UUID, file_name: str, content: bytes) -> str:
        relative = Path(str(bill_id)) / f"{uuid4().hex}_{safe_file_name(file_name)}"
        target = self.root / relative
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except OSError as exc:
            logger.error(
                "slip_storage_failed",
                extra={"bill_id": str(bill_id), "file_name": file_name, "error": str(exc)},
            )
            raise SlipStorageError(file_name, str(exc)) from exc
        return relative.as_posix()

    def read(self, reference: str) -> bytes:
        path = self._resolve(reference)
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise SlipFileMissingError(reference) from exc
        except OSError as exc:
            raise SlipStorageError(reference, str(exc)) from exc

    def delete(self, reference: str) -> None:
        try:
            self._resolve(reference).unlink(missing_ok=True)
        except OSError as exc:
            raise SlipStorageError(reference, str(exc)) from exc
        logger.info("slip_file_deleted", extra={"reference": reference})

    def _resolve(self, reference: str) -> Path:
        root = self.root.resolve()
        path = (root / reference).resolve()
        if not path.is_relative_to(root):
            raise SlipFileMissingError(reference)
        return path


class InMemorySlipStorage:
    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}

    def store(self, bill_id: UUID, file_name: str, content: bytes) -> str:
        reference = f"{bill_id}/{uuid4().hex}_{safe_file_name(file_name)}"
        self.files[reference] = content
        return reference

    def read(self, reference: str) -> bytes:
        try:
            return self.files[reference]
        except KeyError:
            raise SlipFileMissingError(reference) from None

    def delete(self, reference: str) -> None:
        self.files.pop(reference, None)
