"""
Persistent, per-listen scrobble cache.

- One file per undelivered final listen, named `<listened_at>.json`, holding
  the bare payload object (not the submit-listens envelope).
- reconcile() sends everything pending in one request and deletes the files
  only after the server accepted it. A failed attempt leaves the cache as is.
"""

from __future__ import annotations
import json
import logging
import os
from typing import Any, Dict, List

from listenbrainz_client import (
    ListenBrainzClient, ListenBrainzError, LISTEN_IMPORT, LISTEN_SINGLE, encode,
)

log = logging.getLogger("cache")

SUFFIX = ".json"


class ScrobbleCache:
    def __init__(self, path: str, client: ListenBrainzClient):
        self.path = path
        self.client = client
        os.makedirs(self.path, exist_ok=True)

    # -------- persistence --------
    def _sort_key(self, name: str):
        stem = name[:-len(SUFFIX)]
        return (0, int(stem), name) if stem.isdigit() else (1, 0, name)

    def pending(self) -> List[str]:
        """Pending cache files, oldest listen first."""
        names = [n for n in os.listdir(self.path) if n.endswith(SUFFIX)]
        return [os.path.join(self.path, n) for n in sorted(names, key=self._sort_key)]

    def size(self) -> int:
        return len(self.pending())

    def persist(self, payload: Dict[str, Any]) -> str:
        listened_at = payload.get("listened_at")
        if not listened_at:
            raise ValueError("Only final listens (with listened_at) can be cached")

        target = os.path.join(self.path, f"{int(listened_at)}{SUFFIX}")
        # Write atomically so reconcile never reads a half-written file
        tmp = f"{target}.tmp"
        with open(tmp, "wb") as f:
            f.write(encode(payload))
        os.replace(tmp, target)
        log.info("Cached listen %s (pending=%s)", os.path.basename(target), self.size())
        return target

    def load(self, path: str) -> Dict[str, Any]:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    # -------- reconciliation --------
    def reconcile(self) -> bool:
        """
        Submit all pending listens: one file as `single`, several as one
        `import` batch. Returns False when the submission failed.
        """
        files, payloads = [], []
        for path in self.pending():
            try:
                payloads.append(self.load(path))
            except (OSError, ValueError) as e:
                log.warning("Skipping unreadable cache file %s: %s", path, e)
                continue
            files.append(path)

        if not payloads:
            return True

        listen_type = LISTEN_SINGLE if len(payloads) == 1 else LISTEN_IMPORT
        try:
            self.client.submit_listen(listen_type, payloads)
        except ListenBrainzError as e:
            log.warning("Error importing %d cached listen(s): %s", len(payloads), e)
            return False

        for path in files:
            try:
                os.remove(path)
            except OSError as e:
                log.error("Submitted but could not remove %s: %s", path, e)
        log.info("Reconciled %d cached listen(s) as %s", len(files), listen_type)
        return True
