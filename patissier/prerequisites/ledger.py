"""
Unlock ledger: the persisted sets of unlocked modules and paths.

Unlocking is a ratchet. Ids are only ever added; nothing removes them
except an explicit reset, even when the prerequisites that allowed the
unlock later become unmet.
"""

from __future__ import annotations

from loguru import logger
from pydantic import ConfigDict, TypeAdapter

from patissier.storage.repository import StateRepository

_IDS_ADAPTER = TypeAdapter(list[str], config=ConfigDict(coerce_numbers_to_str=True))


class UnlockLedger:
    MODULES = "unlocked-modules"
    PATHS = "unlocked-paths"

    def __init__(self, repository: StateRepository):
        self._repository = repository
        self._modules = set(repository.load(self.MODULES, _IDS_ADAPTER, list))
        self._paths = set(repository.load(self.PATHS, _IDS_ADAPTER, list))

    @property
    def unlocked_module_ids(self) -> frozenset[str]:
        return frozenset(self._modules)

    @property
    def unlocked_path_ids(self) -> frozenset[str]:
        return frozenset(self._paths)

    def has_module(self, module_id: str) -> bool:
        return module_id in self._modules

    def has_path(self, path_id: str) -> bool:
        return path_id in self._paths

    def add_module(self, module_id: str) -> bool:
        """Record a module as unlocked. Returns False if it already was."""
        if module_id in self._modules:
            return False
        self._modules.add(module_id)
        self._repository.save(self.MODULES, sorted(self._modules))
        logger.info(f"Unlocked module {module_id}")
        return True

    def add_path(self, path_id: str) -> bool:
        """Record a path as unlocked. Returns False if it already was."""
        if path_id in self._paths:
            return False
        self._paths.add(path_id)
        self._repository.save(self.PATHS, sorted(self._paths))
        logger.info(f"Unlocked path {path_id}")
        return True

    def reset(self) -> None:
        self._modules.clear()
        self._paths.clear()
        self._repository.delete(self.MODULES)
        self._repository.delete(self.PATHS)
        logger.info("Unlocks reset")
