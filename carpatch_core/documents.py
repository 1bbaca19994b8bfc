"""
Document retrieval.

The pipeline never touches the filesystem directly; it reads through a
``DocumentStore``. Stores do not cache and the pipeline does not retry.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from .errors import DocumentNotFoundError


@dataclass(frozen=True)
class SourceDocument:
    identity: str
    text: str


class DocumentStore(Protocol):
    def read(self, identity: str) -> str:
        """Return the document text or raise DocumentNotFoundError / OSError."""
        ...


class FileDocumentStore:
    """Reads UTF-8 documents from disk, relative to ``base_dir`` when given."""

    def __init__(self, base_dir: str | Path | None = None, encoding: str = "utf-8") -> None:
        self.base_dir = Path(base_dir) if base_dir is not None else None
        self.encoding = encoding

    def resolve(self, identity: str) -> Path:
        path = Path(identity)
        if self.base_dir is not None and not path.is_absolute():
            path = self.base_dir / path
        return path

    def read(self, identity: str) -> str:
        path = self.resolve(identity)
        if not path.is_file():
            raise DocumentNotFoundError(identity)
        # newline="" keeps \r\n intact; the scanner normalizes line endings itself
        with open(path, "r", encoding=self.encoding, newline="") as f:
            return f.read()


class InMemoryDocumentStore:
    def __init__(self, documents: Mapping[str, str] | None = None) -> None:
        self._documents: dict[str, str] = dict(documents or {})

    def put(self, identity: str, text: str) -> None:
        self._documents[identity] = text

    def read(self, identity: str) -> str:
        try:
            return self._documents[identity]
        except KeyError:
            raise DocumentNotFoundError(identity) from None


def load_document(store: DocumentStore, identity: str) -> SourceDocument:
    return SourceDocument(identity=identity, text=store.read(identity))
