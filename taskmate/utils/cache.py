"""
File backed key/value cache with optional expiry.

Used to keep Composio tool listings between requests; values must be JSON
serialisable.
"""
import os
import json
import time
import hashlib
from typing import Any, Optional
from pathlib import Path
from taskmate.utils.logger import get_logger

logger = get_logger("cache")

DEFAULT_CACHE_DIR = os.getenv("CACHE_DIR", str(Path(__file__).parent.parent.parent / "runtime" / "cache"))


class FileCache:
    """One JSON file per key, named by the key's MD5."""

    def __init__(self, cache_dir: str = DEFAULT_CACHE_DIR):
        self.cache_dir = cache_dir
        os.makedirs(cache_dir, exist_ok=True)

    def _get_cache_path(self, key: str) -> str:
        key_hash = hashlib.md5(key.encode('utf-8')).hexdigest()
        return os.path.join(self.cache_dir, f"{key_hash}.cache")

    def set(self, key: str, value: Any, expire: Optional[int] = None) -> bool:
        """
        Store ``value`` under ``key``.

        Args:
            key: cache key
            value: JSON serialisable value
            expire: lifetime in seconds, None keeps it forever

        Returns:
            True when the value was written
        """
        try:
            expire_time = None
            if expire is not None:
                expire_time = time.time() + expire

            cache_data = {
                "key": key,
                "value": value,
                "expire_time": expire_time,
                "created_at": time.time()
            }

            with open(self._get_cache_path(key), 'w', encoding='utf-8') as f:
                json.dump(cache_data, f, ensure_ascii=False)

            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"[FileCache] set failed - key: {key}, error: {e}")
            return False

    def get(self, key: str, default: Any = None) -> Any:
        """
        Return the value stored under ``key``, or ``default`` when it is
        missing or expired. Expired entries are removed on read.
        """
        cache_path = self._get_cache_path(key)
        if not os.path.exists(cache_path):
            return default

        try:
            with open(cache_path, 'r', encoding='utf-8') as f:
                cache_data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"[FileCache] get failed - key: {key}, error: {e}")
            return default

        expire_time = cache_data.get("expire_time")
        if expire_time is not None and time.time() > expire_time:
            self.delete(key)
            return default

        return cache_data.get("value", default)

    def delete(self, key: str) -> bool:
        try:
            cache_path = self._get_cache_path(key)
            if os.path.exists(cache_path):
                os.remove(cache_path)
                return True
            return False
        except OSError as e:
            logger.error(f"[FileCache] delete failed - key: {key}, error: {e}")
            return False

    def clear(self, pattern: Optional[str] = None) -> int:
        """
        Remove every entry, or only those whose key starts with ``pattern``.

        Returns:
            number of removed entries
        """
        count = 0
        for filename in os.listdir(self.cache_dir):
            if not filename.endswith('.cache'):
                continue

            cache_path = os.path.join(self.cache_dir, filename)

            if pattern is not None:
                try:
                    with open(cache_path, 'r', encoding='utf-8') as f:
                        if not json.load(f).get("key", "").startswith(pattern):
                            continue
                except (OSError, ValueError):
                    continue

            try:
                os.remove(cache_path)
                count += 1
            except OSError as e:
                logger.error(f"[FileCache] clear failed - file: {filename}, error: {e}")

        return count


cache = FileCache()
