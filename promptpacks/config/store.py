# promptpacks/config/store.py
from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from typing import Any, Callable, Literal

from .types import ConfigProvider, ChangeListener, Validator

logger = logging.getLogger(__name__)

__all__ = ["ConfigStore", "deepMerge"]

Target = Literal["runtime", "save", "defaults"]



def deepMerge(base: dict[str, Any], overlay: Mapping[str, Any]) -> dict[str, Any]:
    """Merges `overlay` into `base` recursively (in place) and returns `base`."""
    for key, value in overlay.items():
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            deepMerge(current, value)
        else:
            base[key] = copy.deepcopy(value)
    return base



class ConfigStore:
    """
    Layered settings store:
      - read: first non-None hit from the topmost provider down
      - write: dispatch to a target provider (runtime override or user file)
      - validate: on set(), validate the *effective* merged document and roll back on failure
    """

    def __init__(self, *, namespace: str, validator: Validator | None, providers: list[ConfigProvider]) -> None:
        if not providers:
            raise ValueError("ConfigStore needs at least one provider")
        self.namespace = namespace
        self._validator = validator
        self._providers = providers
        self._listeners: list[ChangeListener] = []

        # Index providers by role (best-effort, by class name)
        self._roleIdx: dict[str, int] = {}
        for idx, provider in enumerate(self._providers):
            name = provider.__class__.__name__.lower()
            if "override" in name and "runtime" not in self._roleIdx:
                self._roleIdx["runtime"] = idx
            if "file" in name and "save" not in self._roleIdx:
                self._roleIdx["save"] = idx
            if "defaults" in name:
                self._roleIdx.setdefault("defaults", idx)

    # ----- Helpers -----

    def _resolveTargetIdx(self, target: Target) -> int:
        if target not in self._roleIdx:
            raise KeyError(f"No provider mapped for target '{target}' in {self.namespace}")
        return self._roleIdx[target]

    def effective(self) -> dict[str, Any]:
        """Bottom-to-top deep merge of every layer."""
        merged: dict[str, Any] = {}
        for provider in self._providers:
            deepMerge(merged, provider.to_dict())
        return merged

    def validate(self) -> dict[str, Any]:
        """Validates the effective document; returns it (with schema defaults applied)."""
        effective = self.effective()
        if self._validator is None:
            return effective
        result = self._validator(effective)
        return result if isinstance(result, dict) else effective

    # ----- Public API -----

    def get(self, key: str, default: Any | None = None) -> Any | None:
        for provider in reversed(self._providers): # Topmost first precedence
            value = provider.get(key)
            if value is not None:
                return value
        return default

    def set(
        self,
        key: str,
        value: Any,
        *,
        target: Target = "runtime",
        actor: str = "system",
    ) -> None:
        idx = self._resolveTargetIdx(target)
        provider = self._providers[idx]
        oldValue = self.get(key)
        oldLayerValue = copy.deepcopy(provider.get(key))

        # Provisional write to the target layer
        provider.set(key, value)

        try:
            self.validate()
        except Exception:
            provider.set(key, oldLayerValue) # None deletes the key again
            raise

        newValue = self.get(key)
        if oldValue != newValue:
            context = {"namespace": self.namespace, "actor": actor, "target": target}
            for fn in list(self._listeners):
                try:
                    fn(key, oldValue, newValue, context)
                except Exception:
                    logger.exception("Config listener failed for '%s' in %s", key, self.namespace)

    def subscribe(self, fn: ChangeListener) -> Callable[[], None]:
        self._listeners.append(fn)
        def _unsub() -> None:
            try:
                self._listeners.remove(fn)
            except ValueError:
                pass
        return _unsub

    def snapshot(self) -> dict[str, Any]:
        return {
            "namespace": self.namespace,
            "values": self.effective(),
            "layers": [provider.__class__.__name__ for provider in self._providers],
        }

    def saveAll(self) -> None:
        for provider in self._providers:
            try:
                provider.save()
            except (OSError, RuntimeError) as err:
                logger.warning("Failed to save %s layer of %s: %s", type(provider).__name__, self.namespace, err)
