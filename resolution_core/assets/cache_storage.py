# =============================================================================
# resolution_core/assets/cache_storage.py
# Named, Versioned Cache Generations on Disk
# =============================================================================
"""
CacheStorage - persistent named caches of HTTP responses.

Directory Structure:
-------------------
asset_cache/
├── static-v1/
│   ├── cache_index.json    # url -> status, headers, body file, stored_at
│   └── <md5>.body
└── dynamic-v1/
    └── ...
"""

from __future__ import annotations
import hashlib
import json
import shutil
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Union
import logging

from resolution_core.assets.http import AssetRequest, CachedResponse

logger = logging.getLogger(__name__)

CACHE_INDEX_FILE = "cache_index.json"


def _cache_key(request: Union[AssetRequest, str]) -> str:
    return request.url if isinstance(request, AssetRequest) else request


class AssetCache:
    """One cache generation. Entries are keyed by absolute URL."""

    def __init__(self, name: str, directory: Path, lock: threading.RLock):
        self.name = name
        self.directory = directory
        self._lock = lock
        self._index: Dict[str, Dict] = self._load_index()

    def _load_index(self) -> Dict[str, Dict]:
        index_path = self.directory / CACHE_INDEX_FILE
        if not index_path.exists():
            return {}
        try:
            with open(index_path, "r") as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Error loading index of cache '{self.name}': {e}")
            return {}

    def _save_index(self) -> None:
        with open(self.directory / CACHE_INDEX_FILE, "w") as f:
            json.dump(self._index, f, indent=2)

    @staticmethod
    def _body_file(key: str) -> str:
        return hashlib.md5(key.encode("utf-8")).hexdigest() + ".body"

    def put(self, request: Union[AssetRequest, str], response: CachedResponse) -> None:
        key = _cache_key(request)
        body_file = self._body_file(key)
        with self._lock:
            (self.directory / body_file).write_bytes(response.body)
            self._index[key] = {
                "status": response.status,
                "headers": dict(response.headers),
                "body_file": body_file,
                "stored_at": datetime.now().isoformat(),
            }
            self._save_index()
        logger.debug(f"Cached {key} in '{self.name}'")

    def match(self, request: Union[AssetRequest, str]) -> Optional[CachedResponse]:
        key = _cache_key(request)
        with self._lock:
            entry = self._index.get(key)
            if entry is None:
                return None
            body_path = self.directory / entry["body_file"]
            if not body_path.exists():
                logger.warning(f"Body missing for cached {key}, dropping entry")
                del self._index[key]
                self._save_index()
                return None
            body = body_path.read_bytes()

        return CachedResponse(
            status=entry["status"],
            body=body,
            headers=dict(entry["headers"]),
            url=key,
            stored_at=datetime.fromisoformat(entry["stored_at"]),
        )

    def delete(self, request: Union[AssetRequest, str]) -> bool:
        key = _cache_key(request)
        with self._lock:
            entry = self._index.pop(key, None)
            if entry is None:
                return False
            (self.directory / entry["body_file"]).unlink(missing_ok=True)
            self._save_index()
        return True

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._index)


class CacheStorage:
    """All cache generations under one root directory."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._open: Dict[str, AssetCache] = {}

    def open(self, name: str) -> AssetCache:
        """Open a generation, creating it if needed."""
        with self._lock:
            cache = self._open.get(name)
            if cache is None:
                directory = self.root / name
                directory.mkdir(parents=True, exist_ok=True)
                cache = AssetCache(name, directory, self._lock)
                self._open[name] = cache
            return cache

    def keys(self) -> List[str]:
        with self._lock:
            return sorted(p.name for p in self.root.iterdir() if p.is_dir())

    def has(self, name: str) -> bool:
        return (self.root / name).is_dir()

    def delete(self, name: str) -> bool:
        """Remove a whole generation with everything in it."""
        with self._lock:
            self._open.pop(name, None)
            directory = self.root / name
            if not directory.is_dir():
                return False
            shutil.rmtree(directory)
        logger.info(f"Deleted cache generation '{name}'")
        return True

    def match(self, request: Union[AssetRequest, str]) -> Optional[CachedResponse]:
        """First entry for `request` across all generations."""
        for name in self.keys():
            response = self.open(name).match(request)
            if response is not None:
                return response
        return None
