"""Document files: one JSON snapshot per mind map in a document directory."""

from pathlib import Path

from loguru import logger

from mindmap_core.config import DOCUMENT_SUFFIX
from mindmap_core.core.snapshot import json_codec
from mindmap_core.models.node import Document


class DocumentStore:
    """Read and write mind map documents in a smart way.

    - Documents are addressed by name; the file is ``<name>.mindmap.json``.
    - Do not rewrite a file if its contents would stay the same.
    - Names may not escape the document directory.
    """

    def __init__(self, directory: str | Path, *, dry_run: bool = False) -> None:
        self.directory = str(Path(directory).resolve())
        self.dry_run = dry_run

        if not dry_run and not Path(self.directory).is_dir():
            msg = f"Document directory {self.directory!r} not found"
            raise ValueError(msg)

        logger.debug("Store ready, directory {!r}, dry_run {!r}", self.directory, dry_run)
        # list of (action, name) tuples
        self.updates: list[tuple[str, str]] = []

    def path_for(self, name: str) -> Path:
        """Absolute path of a named document.

        Raises:
            ValueError: if the name is empty, absolute or escapes the directory.
        """
        if name.endswith(DOCUMENT_SUFFIX):
            name = name[: -len(DOCUMENT_SUFFIX)]
        if not name or Path(name).is_absolute():
            msg = f"Invalid document name: {name!r}"
            raise ValueError(msg)
        fname = str(Path(self.directory) / (name + DOCUMENT_SUFFIX))
        if not str(Path(fname).resolve()).startswith(self.directory + "/"):
            msg = f"Path escapes document directory: {fname!r}"
            raise ValueError(msg)
        return Path(fname)

    def list_documents(self) -> list[str]:
        """Names of all documents in the directory, sorted."""
        root = Path(self.directory)
        if not root.is_dir():
            return []
        return sorted(
            str(path.relative_to(root))[: -len(DOCUMENT_SUFFIX)]
            for path in root.rglob(f"*{DOCUMENT_SUFFIX}")
        )

    def exists(self, name: str) -> bool:
        return self.path_for(name).is_file()

    def load(self, name: str) -> Document:
        """Read and parse a document.

        Raises:
            FileNotFoundError: if there is no such document.
            ValueError: if the file is not a valid snapshot.
        """
        path = self.path_for(name)
        document = json_codec.loads(path.read_text(encoding="utf-8"))
        logger.info("Loaded {} ({} nodes)", name, len(document.index))
        return document

    def try_load(self, name: str) -> Document | None:
        """Like load, but None when the document does not exist."""
        try:
            return self.load(name)
        except FileNotFoundError:
            return None

    def save(self, name: str, document: Document) -> bool:
        """Write a document unless the file already holds exactly this snapshot.

        Returns:
            True if the file was (or, in dry-run mode, would be) written.
        """
        path = self.path_for(name)
        contents = json_codec.dumps(document)
        action = "create"
        try:
            if path.read_text(encoding="utf-8") == contents:
                logger.debug("Unchanged {!r}, not writing", str(path))
                return False
            action = "update"
        except (FileNotFoundError, UnicodeDecodeError):
            pass

        self.updates.append((action, name))
        if self.dry_run:
            logger.info("dry-run: would {} {!r}", action, str(path))
        else:
            logger.debug("Writing ({}) {!r}", action, str(path))
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(contents, encoding="utf-8")
            logger.info("Saved {}", name)
        return True

    def delete(self, name: str) -> None:
        """Remove a document file.

        Raises:
            FileNotFoundError: if there is no such document.
        """
        path = self.path_for(name)
        self.updates.append(("delete", name))
        if self.dry_run:
            logger.info("dry-run: would remove {!r}", str(path))
            return
        path.unlink()
        logger.info("Deleted {}", name)
