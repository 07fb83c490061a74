import json
import logging
import os
import tempfile
import threading

from .errors import CacheWriteError


class FileStore:
    """
    Durable store keeping one JSON file per namespace inside a directory.
    """

    def __init__(self, directory):
        self.directory = directory

    def _path(self, namespace):
        return os.path.join(self.directory, f"{namespace}.json")

    def read(self, namespace):
        try:
            with open(self._path(namespace), 'r', encoding='utf-8') as f:
                return f.read()
        except FileNotFoundError:
            return None

    def write(self, namespace, raw):
        tmp_path = None
        try:
            os.makedirs(self.directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=f".{namespace}.", suffix=".tmp")
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(raw)
            # Readers only ever see a complete file
            os.replace(tmp_path, self._path(namespace))
        except OSError as e:
            if tmp_path is not None:
                self._discard(tmp_path)
            raise CacheWriteError(f"Could not write cache namespace '{namespace}': {e}") from e

    @staticmethod
    def _discard(tmp_path):
        try:
            os.remove(tmp_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logging.warning(f"Could not remove temporary cache file {tmp_path}: {e}")


class MemoryStore:
    """Dict-backed store for tests and throwaway sessions."""

    def __init__(self, initial=None):
        self.data = dict(initial or {})

    def read(self, namespace):
        return self.data.get(namespace)

    def write(self, namespace, raw):
        self.data[namespace] = raw


class PersistentCache:
    """
    Write-through key/value cache backed by a durable store.

    The in-memory mapping is authoritative for the process. Every set persists the
    whole mapping; persistence failures are logged and never reach the caller.
    """

    def __init__(self, store, namespace):
        self.store = store
        self.namespace = namespace
        self._lock = threading.Lock()
        self._entries = self.load()

    def load(self):
        """
        Reads the durable store. Missing or malformed data yields an empty mapping.
        """
        try:
            raw = self.store.read(self.namespace)
        except Exception as e:
            logging.warning("Failed to read cache '%s': %s", self.namespace, e)
            return {}
        if not raw:
            logging.warning("No stored data for cache '%s', starting empty", self.namespace)
            return {}
        try:
            entries = json.loads(raw)
        except (ValueError, TypeError) as e:
            logging.warning("Ignoring malformed cache '%s': %s", self.namespace, e)
            return {}
        if not isinstance(entries, dict):
            logging.warning("Ignoring cache '%s': expected an object, got %s", self.namespace, type(entries).__name__)
            return {}
        logging.info("Loaded %d entries from cache '%s'", len(entries), self.namespace)
        return entries

    def reload(self):
        entries = self.load()
        with self._lock:
            self._entries = entries

    def get(self, key):
        return self._entries.get(key)

    def set(self, key, value):
        with self._lock:
            entries = dict(self._entries)
            entries[key] = value
            # Swap in a new mapping so lock-free readers always see a whole snapshot
            self._entries = entries
            self._persist(entries)

    def clear(self):
        with self._lock:
            self._entries = {}
            self._persist({})

    def _persist(self, entries):
        try:
            self.store.write(self.namespace, json.dumps(entries))
        except Exception as e:
            logging.warning("Failed to persist cache '%s': %s", self.namespace, e)

    def __contains__(self, key):
        return key in self._entries

    def __len__(self):
        return len(self._entries)
