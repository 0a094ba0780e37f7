import json
import logging
import os
import re
from pathlib import Path
from typing import List

from pydantic import ValidationError

from reqdeck.models import Collection, CollectionInfo

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when a collection cannot be read, written or removed."""


class CollectionExistsError(StorageError):
    """Raised when creating a collection whose file is already taken."""


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "_", name.lower()).strip("_")
    return slug or "collection"


class StorageEngine:
    def __init__(self, collections_dir: str | Path, dry_run: bool = False):
        self.collections_dir = Path(collections_dir)
        self.dry_run = dry_run
        if not dry_run:
            self.collections_dir.mkdir(parents=True, exist_ok=True)

    def _collection_path(self, name: str) -> Path:
        return self.collections_dir / f"{slugify(name)}.json"

    def _atomic_write(self, target_path: Path, data: Collection):
        target_path.parent.mkdir(parents=True, exist_ok=True)
        tmp = target_path.with_suffix(".tmp")
        payload = json.dumps(data.model_dump(mode="json"), indent=2)
        with open(tmp, "w", encoding="utf-8") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, target_path)

    def read(self, path: str | Path) -> Collection:
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                collection = Collection.model_validate(json.load(f))
        except (OSError, ValueError, ValidationError) as ex:
            raise StorageError(f"failed to read collection {path}: {ex}") from ex
        collection.path = path
        return collection

    def load_collections(self) -> List[Collection]:
        """Every readable collection in the directory, ordered by file name."""
        if not self.collections_dir.exists():
            return []
        collections = []
        for path in sorted(self.collections_dir.glob("*.json")):
            try:
                collections.append(self.read(path))
            except StorageError as ex:
                logger.warning("skipping collection: %s", ex)
        return collections

    def write(self, path: str | Path, collection: Collection):
        if self.dry_run:
            logger.debug("dry run, not writing %s", path)
            return
        try:
            self._atomic_write(Path(path), collection)
        except OSError as ex:
            raise StorageError(f"failed to write collection {path}: {ex}") from ex
        logger.debug("synced collection %s", path)

    def delete(self, path: str | Path):
        if self.dry_run:
            logger.debug("dry run, not deleting %s", path)
            return
        try:
            Path(path).unlink()
        except OSError as ex:
            raise StorageError(f"failed to delete collection {path}: {ex}") from ex
        logger.debug("deleted collection %s", path)

    def create_collection(self, name: str, description: str = "") -> Collection:
        name = name or "unnamed collection"
        path = self._collection_path(name)
        if path.exists():
            raise CollectionExistsError(f"a collection already exists at {path}")
        collection = Collection(info=CollectionInfo(name=name, description=description), path=path)
        self.write(path, collection)
        return collection
