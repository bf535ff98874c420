"""
Tracing progress persistence.

Progress is stored as one JSON document under a single key of a simple
key-value store. Corrupt or missing documents fall back to the default
(pack 1 unlocked, everything else locked).
"""

import json
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Protocol

from .config import PACK_UNLOCK_REQUIREMENTS, PROGRESS_STORAGE_KEY
from .logger import get_logger
from .tracing_paths import ALL_TRACING_PATHS, TracingPath, get_pack, get_path, pack_numbers

logger = get_logger("ProgressStore")


class KeyValueStore(Protocol):
    """Minimal string key-value storage."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """In-process store, mainly for tests and replays."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore:
    """
    Key-value store backed by one JSON object file.

    A missing file reads as empty. An unreadable file is logged and also
    reads as empty so the caller falls back to defaults.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _read_all(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Cannot read progress file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Progress file {self.path} is not a JSON object, ignoring")
            return {}
        return data

    def _write_all(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def get(self, key: str) -> Optional[str]:
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def delete(self, key: str) -> None:
        data = self._read_all()
        if key in data:
            del data[key]
            self._write_all(data)


@dataclass
class LevelProgress:
    """Per-path record."""
    path_id: str
    completed: bool = False
    best_accuracy: float = 0.0
    attempts: int = 0
    last_completed_at: Optional[float] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LevelProgress":
        """Create from JSON dictionary with camelCase keys."""
        return cls(
            path_id=str(data["pathId"]),
            completed=bool(data.get("completed", False)),
            best_accuracy=float(data.get("bestAccuracy", 0.0)),
            attempts=int(data.get("attempts", 0)),
            last_completed_at=data.get("lastCompletedAt")
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "pathId": self.path_id,
            "completed": self.completed,
            "bestAccuracy": self.best_accuracy,
            "attempts": self.attempts,
            "lastCompletedAt": self.last_completed_at,
        }


@dataclass
class PackProgress:
    """Per-pack unlock state."""
    pack: int
    unlocked: bool = False
    completed_levels: int = 0
    unlocked_level_index: int = -1

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PackProgress":
        """Create from JSON dictionary with camelCase keys."""
        return cls(
            pack=int(data["pack"]),
            unlocked=bool(data.get("unlocked", False)),
            completed_levels=int(data.get("completedLevels", 0)),
            unlocked_level_index=int(data.get("unlockedLevelIndex", -1))
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "pack": self.pack,
            "unlocked": self.unlocked,
            "completedLevels": self.completed_levels,
            "unlockedLevelIndex": self.unlocked_level_index,
        }


def _default_packs() -> dict[int, PackProgress]:
    packs = {pack: PackProgress(pack) for pack in pack_numbers()}
    packs[1].unlocked = True
    packs[1].unlocked_level_index = 0
    return packs


@dataclass
class TracingProgress:
    """Whole progress document."""
    current_pack: int = 1
    current_level_index: int = 0
    packs: dict[int, PackProgress] = field(default_factory=_default_packs)
    levels: dict[str, LevelProgress] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TracingProgress":
        """
        Create from JSON dictionary with camelCase keys.

        Packs missing from the document keep their defaults.
        """
        packs_data = data.get("packs") or {}
        levels_data = data.get("levels") or {}
        if not isinstance(packs_data, dict) or not isinstance(levels_data, dict):
            raise ValueError("packs and levels must be objects")

        packs = _default_packs()
        for key, pack_data in packs_data.items():
            pack = PackProgress.from_dict(pack_data)
            if pack.pack != int(key):
                raise ValueError(f"Pack key {key} does not match record {pack.pack}")
            packs[pack.pack] = pack

        levels = {}
        for key, level_data in levels_data.items():
            levels[key] = LevelProgress.from_dict(level_data)

        current_pack = int(data.get("currentPack", 1))
        current_level_index = int(data.get("currentLevelIndex", 0))
        if not 0 <= current_level_index < len(get_pack(current_pack)):
            logger.warning(
                f"Current level {current_pack}/{current_level_index} does not exist, "
                f"starting from the first level"
            )
            current_pack, current_level_index = 1, 0

        return cls(
            current_pack=current_pack,
            current_level_index=current_level_index,
            packs=packs,
            levels=levels
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "currentPack": self.current_pack,
            "currentLevelIndex": self.current_level_index,
            "packs": {str(pack): record.to_dict() for pack, record in self.packs.items()},
            "levels": {key: record.to_dict() for key, record in self.levels.items()},
        }


@dataclass(frozen=True)
class CompletionStats:
    total_levels: int
    completed_levels: int
    completion_percent: float


class ProgressStore:
    """
    Reads and updates tracing progress.

    Usage:
        store = ProgressStore(JsonFileStore("progress.json"))
        store.complete_level("warmup-h1", accuracy=0.93)
        next_path = store.advance_to_next_level()
    """

    def __init__(self, backend: Optional[KeyValueStore] = None, key: str = PROGRESS_STORAGE_KEY):
        self.backend = backend if backend is not None else MemoryStore()
        self.key = key
        self.progress = self.load()

    def load(self) -> TracingProgress:
        """Load progress from the backend, falling back to defaults."""
        raw = self.backend.get(self.key)
        if raw is None:
            return TracingProgress()
        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("progress document is not an object")
            return TracingProgress.from_dict(data)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Corrupt progress record, using defaults: {e}")
            return TracingProgress()

    def save(self) -> None:
        self.backend.set(self.key, json.dumps(self.progress.to_dict()))

    def get_level_progress(self, path_id: str) -> Optional[LevelProgress]:
        return self.progress.levels.get(path_id)

    def get_pack_progress(self, pack: int) -> Optional[PackProgress]:
        return self.progress.packs.get(pack)

    def get_current_path(self) -> Optional[TracingPath]:
        """Path at the current pack/level position, if it exists."""
        paths = get_pack(self.progress.current_pack)
        if 0 <= self.progress.current_level_index < len(paths):
            return paths[self.progress.current_level_index]
        return None

    def complete_level(
        self,
        path_id: str,
        accuracy: float,
        completed_at: Optional[float] = None
    ) -> LevelProgress:
        """
        Record a completed path and apply unlock rules.

        Args:
            path_id: Completed path id.
            accuracy: Accuracy of this attempt in [0, 1].
            completed_at: Completion time (epoch seconds), now if None.

        Returns:
            Updated level record.
        """
        record = self.progress.levels.setdefault(path_id, LevelProgress(path_id))
        record.completed = True
        record.best_accuracy = max(record.best_accuracy, accuracy)
        record.attempts += 1
        record.last_completed_at = completed_at if completed_at is not None else time.time()

        path = get_path(path_id)
        if path is not None and path.pack in self.progress.packs:
            pack_paths = get_pack(path.pack)
            pack_record = self.progress.packs[path.pack]
            pack_record.completed_levels = sum(
                1 for p in pack_paths
                if self.progress.levels.get(p.id) and self.progress.levels[p.id].completed
            )
            level_index = path.level - 1
            if level_index < len(pack_paths) - 1:
                pack_record.unlocked_level_index = max(
                    pack_record.unlocked_level_index, level_index + 1
                )

        self._check_pack_unlocks()
        self.save()
        logger.info(f"Level {path_id} completed (accuracy {accuracy:.0%})")
        return record

    def _check_pack_unlocks(self) -> None:
        packs = self.progress.packs
        for pack, required in sorted(PACK_UNLOCK_REQUIREMENTS.items()):
            previous = packs.get(pack - 1)
            target = packs.get(pack)
            if target is None or previous is None or target.unlocked:
                continue
            if previous.unlocked and previous.completed_levels >= required:
                target.unlocked = True
                target.unlocked_level_index = 0
                logger.info(f"Pack {pack} unlocked")

    def set_current_level(self, pack: int, level_index: int) -> None:
        self.progress.current_pack = pack
        self.progress.current_level_index = level_index
        self.save()

    def advance_to_next_level(self) -> Optional[TracingPath]:
        """
        Move to the next level, or the first level of the next unlocked pack.

        Returns:
            The new current path, or None if there is nowhere to go.
        """
        paths = get_pack(self.progress.current_pack)
        if self.progress.current_level_index < len(paths) - 1:
            self.progress.current_level_index += 1
            self.save()
            return self.get_current_path()

        for pack in pack_numbers():
            if pack <= self.progress.current_pack:
                continue
            if self.progress.packs[pack].unlocked:
                self.progress.current_pack = pack
                self.progress.current_level_index = 0
                self.save()
                return self.get_current_path()
        return None

    def unlock_pack(self, pack: int) -> None:
        if pack not in self.progress.packs:
            logger.warning(f"Cannot unlock unknown pack {pack}")
            return
        self.progress.packs[pack].unlocked = True
        self.progress.packs[pack].unlocked_level_index = max(
            0, self.progress.packs[pack].unlocked_level_index
        )
        self.save()

    def reset_progress(self) -> None:
        self.progress = TracingProgress()
        self.save()
        logger.info("Tracing progress reset")

    def is_level_unlocked(self, path_id: str) -> bool:
        path = get_path(path_id)
        if path is None:
            return False
        pack_record = self.progress.packs.get(path.pack)
        if pack_record is None or not pack_record.unlocked:
            return False
        return path.level - 1 <= pack_record.unlocked_level_index

    def get_completion_stats(self) -> CompletionStats:
        total = len(ALL_TRACING_PATHS)
        completed = sum(1 for record in self.progress.levels.values() if record.completed)
        return CompletionStats(
            total_levels=total,
            completed_levels=completed,
            completion_percent=completed / total * 100 if total else 0.0
        )
