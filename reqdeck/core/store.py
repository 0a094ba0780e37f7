"""In-memory tree of the active collection.

The tree is kept as an arena: a flat ``id -> node`` table where directories
hold the ids of their children rather than the children themselves. Views
hold ids and resolve them when they draw, so nothing outside the store ever
keeps a live reference into it.

One ``RWLock`` guards the whole arena. Mutations take the write side for
their full duration; lookups and snapshots take the read side. Neither is
ever held across an ``await``.
"""

from __future__ import annotations

import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from reqdeck.models import (
    Collection,
    CollectionInfo,
    Directory,
    Request,
    RequestMethod,
)

logger = logging.getLogger(__name__)

UNNAMED_DIRECTORY = "unnamed directory"
UNNAMED_REQUEST = "unnamed request"


class RWLock:
    """Many readers or one writer; writers are not starved by new readers."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._waiting_writers += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._waiting_writers -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


@dataclass
class _DirNode:
    id: str
    name: str
    parent: Optional[str]
    children: List[str] = field(default_factory=list)


@dataclass
class _ReqNode:
    request: Request
    parent: Optional[str]

    @property
    def id(self) -> str:
        return self.request.id


@dataclass(frozen=True)
class Row:
    """One visible line of the sidebar tree."""

    id: str
    name: str
    depth: int
    is_dir: bool
    method: Optional[RequestMethod] = None
    expanded: bool = False


class CollectionStore:
    def __init__(self, collection: Collection):
        self.lock = RWLock()
        self.info = collection.info.model_copy()
        self.path = collection.path
        self._nodes: Dict[str, Any] = {}
        self._root: List[str] = []
        # bumped by every successful mutation; used to detect unsaved changes
        self.version = 0
        # version last written to disk; the loaded tree is what is on disk
        self.saved_version = 0
        for item in collection.requests:
            self._root.append(self._insert_loaded(item, None))

    def _insert_loaded(self, item, parent: Optional[str]) -> str:
        if item.id in self._nodes:
            # duplicated id in the file: mint a fresh one so ids stay unique
            logger.warning("duplicated id %s in collection %s, reassigning", item.id, self.info.name)
            item = item.model_copy(update={"id": str(uuid.uuid4())})
        if isinstance(item, Directory):
            node = _DirNode(item.id, item.name, parent)
            self._nodes[node.id] = node
            for child in item.requests:
                node.children.append(self._insert_loaded(child, node.id))
            return node.id
        self._nodes[item.id] = _ReqNode(item.model_copy(deep=True), parent)
        return item.id

    # --- helpers (caller holds the lock) ---

    def _siblings(self, parent: Optional[str]) -> List[str]:
        if parent is None:
            return self._root
        return self._nodes[parent].children

    def _resolve_parent(self, parent_id: Optional[str]) -> Optional[str]:
        if parent_id is None:
            return None
        node = self._nodes.get(parent_id)
        if isinstance(node, _DirNode):
            return parent_id
        if isinstance(node, _ReqNode):
            # a request can't hold children: insert next to it instead
            return node.parent
        logger.warning("parent %s not found, inserting at the root", parent_id)
        return None

    def _subtree(self, node_id: str) -> Set[str]:
        ids = {node_id}
        node = self._nodes[node_id]
        if isinstance(node, _DirNode):
            for child in node.children:
                ids |= self._subtree(child)
        return ids

    def _export(self, node_id: str):
        node = self._nodes[node_id]
        if isinstance(node, _DirNode):
            return Directory(
                id=node.id,
                name=node.name,
                requests=[self._export(child) for child in node.children],
            )
        return node.request.model_copy(deep=True)

    # --- mutations ---

    def create_directory(self, name: str, parent_id: Optional[str] = None) -> str:
        with self.lock.write():
            parent = self._resolve_parent(parent_id)
            node = _DirNode(str(uuid.uuid4()), name or UNNAMED_DIRECTORY, parent)
            self._nodes[node.id] = node
            self._siblings(parent).append(node.id)
            self.version += 1
        logger.debug("created directory %s (%s)", node.name, node.id)
        return node.id

    def rename_directory(self, dir_id: str, name: str) -> bool:
        with self.lock.write():
            node = self._nodes.get(dir_id)
            if not isinstance(node, _DirNode):
                logger.warning("rename: directory %s not found", dir_id)
                return False
            node.name = name or UNNAMED_DIRECTORY
            self.version += 1
        return True

    def create_request(
        self,
        name: str,
        method: RequestMethod = RequestMethod.GET,
        uri: str = "",
        parent_id: Optional[str] = None,
    ) -> str:
        request = Request(name=name or UNNAMED_REQUEST, method=method, uri=uri)
        with self.lock.write():
            parent = self._resolve_parent(parent_id)
            self._nodes[request.id] = _ReqNode(request, parent)
            self._siblings(parent).append(request.id)
            self.version += 1
        logger.debug("created request %s (%s)", request.name, request.id)
        return request.id

    def update_request(self, request_id: str, **changes) -> Optional[Request]:
        """Replace fields of a request; the id can never change."""
        changes.pop("id", None)
        with self.lock.write():
            node = self._nodes.get(request_id)
            if not isinstance(node, _ReqNode):
                logger.warning("update: request %s not found", request_id)
                return None
            data = node.request.model_dump()
            data.update(changes)
            # validation errors leave the stored request untouched
            node.request = Request.model_validate(data)
            self.version += 1
            return node.request.model_copy(deep=True)

    def delete_node(self, node_id: str) -> bool:
        with self.lock.write():
            node = self._nodes.get(node_id)
            if node is None:
                logger.warning("delete: node %s not found", node_id)
                return False
            self._siblings(node.parent).remove(node_id)
            for removed in self._subtree(node_id):
                del self._nodes[removed]
            self.version += 1
        return True

    def cycle_method(self, request_id: str) -> Optional[RequestMethod]:
        with self.lock.write():
            node = self._nodes.get(request_id)
            if not isinstance(node, _ReqNode):
                logger.warning("cycle method: request %s not found", request_id)
                return None
            node.request.method = node.request.method.next()
            self.version += 1
            return node.request.method

    # --- inspection ---

    def find(self, node_id: str):
        """Detached copy of a request or directory (with its children)."""
        with self.lock.read():
            if node_id not in self._nodes:
                return None
            return self._export(node_id)

    def find_request(self, request_id: str) -> Optional[Request]:
        found = self.find(request_id)
        return found if isinstance(found, Request) else None

    def contains(self, node_id: str) -> bool:
        with self.lock.read():
            return node_id in self._nodes

    def parent_of(self, node_id: str) -> Optional[str]:
        with self.lock.read():
            node = self._nodes.get(node_id)
            return node.parent if node is not None else None

    def ids(self) -> List[str]:
        with self.lock.read():
            return list(self._nodes)

    def rows(self, expanded: Set[str]) -> List[Row]:
        """Depth-first listing; children show only under expanded directories."""
        rows: List[Row] = []

        def walk(ids: List[str], depth: int) -> None:
            for node_id in ids:
                node = self._nodes[node_id]
                if isinstance(node, _DirNode):
                    is_open = node_id in expanded
                    rows.append(Row(node_id, node.name, depth, True, expanded=is_open))
                    if is_open:
                        walk(node.children, depth + 1)
                else:
                    req = node.request
                    rows.append(Row(node_id, req.name, depth, False, method=req.method))

        with self.lock.read():
            walk(self._root, 0)
        return rows

    def _collection(self) -> Collection:
        return Collection(
            info=CollectionInfo(name=self.info.name, description=self.info.description),
            requests=[self._export(node_id) for node_id in self._root],
            path=self.path,
        )

    def to_collection(self) -> Collection:
        with self.lock.read():
            return self._collection()

    def snapshot(self) -> Tuple[int, Collection]:
        """The tree together with the version it reflects."""
        with self.lock.read():
            return self.version, self._collection()
