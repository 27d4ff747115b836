import json
import threading
from abc import ABC
from abc import abstractmethod
from pathlib import Path

import structlog

logger = structlog.get_logger('storage')


class PropertyStore(ABC):
    """The host's metadata store, keyed by physical artifact location."""

    @abstractmethod
    def exists(self, location: str) -> bool:
        ...

    @abstractmethod
    def get_property(self, location: str, key: str) -> str | None:
        ...

    @abstractmethod
    def get_all_properties(self, location: str) -> dict[str, str]:
        ...

    @abstractmethod
    def set_property(self, location: str, key: str, value: str) -> None:
        ...

    def set_properties(self, location: str, properties: dict[str, str]) -> None:
        for key, value in properties.items():
            self.set_property(location, key, value)


class MemoryPropertyStore(PropertyStore):
    """In-process store, used by tests and embedding hosts."""

    def __init__(self, data: dict[str, dict[str, str]] | None = None):
        self._data: dict[str, dict[str, str]] = {
            location: dict(props) for location, props in (data or {}).items()
        }
        self._lock = threading.Lock()

    def add_location(self, location: str) -> None:
        with self._lock:
            self._data.setdefault(location, {})

    def exists(self, location: str) -> bool:
        with self._lock:
            return location in self._data

    def get_property(self, location: str, key: str) -> str | None:
        with self._lock:
            return self._data.get(location, {}).get(key)

    def get_all_properties(self, location: str) -> dict[str, str]:
        with self._lock:
            return dict(self._data.get(location, {}))

    def set_property(self, location: str, key: str, value: str) -> None:
        with self._lock:
            if location not in self._data:
                raise KeyError(f"Location does not exist: {location}")
            self._data[location][key] = value

    def set_properties(self, location: str, properties: dict[str, str]) -> None:
        with self._lock:
            if location not in self._data:
                raise KeyError(f"Location does not exist: {location}")
            self._data[location].update(properties)


class JsonPropertyStore(MemoryPropertyStore):
    """Persists properties as one JSON document mapping location -> properties."""

    def __init__(self, filepath: str | Path):
        self.filepath = Path(filepath)
        # Serializes save(); every writer goes through the same temp file
        self._write_lock = threading.Lock()
        super().__init__(self._load())

    def _load(self) -> dict[str, dict[str, str]]:
        if not self.filepath.exists():
            return {}
        try:
            with open(self.filepath, encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(
                'Failed to load property store',
                path=str(self.filepath), error=str(e),
            )
            return {}
        if not isinstance(data, dict):
            logger.error('Property store is not a JSON object', path=str(self.filepath))
            return {}
        return {
            str(location): {str(k): str(v) for k, v in (props or {}).items()}
            for location, props in data.items()
        }

    def add_location(self, location: str) -> None:
        super().add_location(location)
        self.save()

    def set_property(self, location: str, key: str, value: str) -> None:
        super().set_property(location, key, value)
        self.save()

    def set_properties(self, location: str, properties: dict[str, str]) -> None:
        super().set_properties(location, properties)
        self.save()

    def save(self) -> None:
        with self._write_lock:
            with self._lock:
                snapshot = {location: dict(props) for location, props in self._data.items()}
            self.filepath.parent.mkdir(parents=True, exist_ok=True)
            temp_file = self.filepath.with_suffix('.tmp')
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(snapshot, f, indent=2, sort_keys=True)
            temp_file.replace(self.filepath)
