from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set

from reqdeck.core.bus import Channel
from reqdeck.core.store import CollectionStore, Row
from reqdeck.models import Response


class ResponseTab(Enum):
    PRETTY = "pretty"
    RAW = "raw"
    HEADERS = "headers"

    def next(self) -> "ResponseTab":
        tabs = list(ResponseTab)
        return tabs[(tabs.index(self) + 1) % len(tabs)]


@dataclass
class ViewerSession:
    """UI state shared by the explorer and its dialogs.

    Holds ids only; every lookup goes through the store.
    """

    store: Optional[CollectionStore] = None
    hovered: Optional[str] = None
    selected: Optional[str] = None
    expanded: Set[str] = field(default_factory=set)
    pending: Set[str] = field(default_factory=set)
    responses: Dict[str, Response] = field(default_factory=dict)
    results: Channel[Response] = field(default_factory=Channel)
    response_tab: ResponseTab = ResponseTab.PRETTY

    def reset(self, store: CollectionStore) -> None:
        # responses still in flight for the previous collection go nowhere
        self.results.close()
        self.results = Channel()
        self.store = store
        self.expanded = set()
        self.pending = set()
        self.responses = {}
        self.response_tab = ResponseTab.PRETTY
        rows = store.rows(self.expanded)
        self.hovered = rows[0].id if rows else None
        self.selected = next((row.id for row in rows if not row.is_dir), None)

    def rows(self) -> List[Row]:
        if self.store is None:
            return []
        return self.store.rows(self.expanded)

    def collect_responses(self) -> None:
        for response in self.results.drain():
            self.pending.discard(response.request_id)
            # the request may have been deleted while in flight
            if self.store is not None and self.store.contains(response.request_id):
                self.responses[response.request_id] = response

    def forget(self, node_id: str) -> None:
        """Drop UI references to nodes that no longer exist."""
        if self.store is None:
            return
        store = self.store
        if self.selected is not None and not store.contains(self.selected):
            self.selected = None
        self.expanded = {dir_id for dir_id in self.expanded if store.contains(dir_id)}
        self.responses = {req_id: res for req_id, res in self.responses.items() if store.contains(req_id)}
        if self.hovered is None or not store.contains(self.hovered):
            rows = self.rows()
            self.hovered = rows[0].id if rows else None
