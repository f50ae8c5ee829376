from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from .models import Plugin

logger = logging.getLogger(__name__)

PluginSource = Callable[[], Union[Plugin, Mapping[str, Any]]]


def coerce_plugin(definition: Union[Plugin, Mapping[str, Any]]) -> Plugin:
    if isinstance(definition, Plugin):
        return definition
    return Plugin.model_validate(definition)


class PluginRegistry:
    """Built-in plugins plus a dynamic overlay keyed by plugin id.

    Built-ins come from source callables registered at import time and are
    assembled lazily. The overlay is what callers mutate; a dynamic plugin
    with a built-in's id replaces it in place.
    """

    def __init__(self):
        self._sources: Dict[str, PluginSource] = {}
        self._cache: Dict[str, Plugin] = {}
        self._dynamic: Dict[str, Plugin] = {}
        self._lock = threading.RLock()

    def register_builtin(self, plugin_id: str, source: PluginSource) -> None:
        if not plugin_id:
            raise ValueError("Built-in plugin source missing plugin id")
        with self._lock:
            if plugin_id in self._sources:
                raise ValueError(f"Duplicate built-in plugin registered: {plugin_id}")
            self._sources[plugin_id] = source

    def builtin_ids(self) -> Iterable[str]:
        return list(self._sources.keys())

    def _load_builtin(self, plugin_id: str) -> Plugin:
        with self._lock:
            if plugin_id not in self._cache:
                plugin = coerce_plugin(self._sources[plugin_id]())
                if plugin.id != plugin_id:
                    raise ValueError(f"Built-in source {plugin_id} produced plugin {plugin.id!r}")
                self._cache[plugin_id] = plugin
            return self._cache[plugin_id]

    def get_builtin_plugins(self) -> List[Plugin]:
        with self._lock:
            return [self._load_builtin(plugin_id) for plugin_id in self._sources]

    def register_plugin(self, plugin: Union[Plugin, Mapping[str, Any]]) -> Plugin:
        plugin = coerce_plugin(plugin)
        with self._lock:
            replaced = plugin.id in self._dynamic
            self._dynamic[plugin.id] = plugin
        logger.debug("Registered dynamic plugin %s v%s (replaced=%s)", plugin.id, plugin.version, replaced)
        return plugin

    def unregister_plugin(self, plugin_id: str) -> bool:
        with self._lock:
            removed = self._dynamic.pop(plugin_id, None) is not None
        if removed:
            logger.debug("Unregistered dynamic plugin %s", plugin_id)
        return removed

    def get_dynamic_plugins(self) -> List[Plugin]:
        with self._lock:
            return list(self._dynamic.values())

    def reset_plugin_system(self) -> None:
        with self._lock:
            self._dynamic.clear()
            self._cache.clear()
        logger.debug("Plugin system reset")

    def reload_builtin_plugin(self, plugin_id: str) -> Optional[Plugin]:
        """Re-assemble a built-in from its source, ignoring any dynamic override.

        The active set keeps its cached copy; the result is a fresh, independent plugin.
        """
        with self._lock:
            if plugin_id not in self._sources:
                return None
            source = self._sources[plugin_id]
        return coerce_plugin(source())

    def get_available_plugins(self) -> List[Plugin]:
        with self._lock:
            builtins = self.get_builtin_plugins()
            dynamic = dict(self._dynamic)

        builtin_ids = {p.id for p in builtins}
        merged = [dynamic.get(p.id, p) for p in builtins]
        merged.extend(p for plugin_id, p in dynamic.items() if plugin_id not in builtin_ids)
        return merged

    def get_plugin(self, plugin_id: str) -> Optional[Plugin]:
        for plugin in self.get_available_plugins():
            if plugin.id == plugin_id:
                return plugin
        return None

    def get_plugin_for_area(self, area: str) -> Optional[Plugin]:
        for plugin in self.get_available_plugins():
            if area in plugin.areas:
                return plugin
        return None


registry = PluginRegistry()


def register_builtin(plugin_id: str) -> Callable[[PluginSource], PluginSource]:
    def _decorate(source: PluginSource) -> PluginSource:
        registry.register_builtin(plugin_id, source)
        return source

    return _decorate


def register_plugin(plugin: Union[Plugin, Mapping[str, Any]]) -> Plugin:
    return registry.register_plugin(plugin)


def unregister_plugin(plugin_id: str) -> bool:
    return registry.unregister_plugin(plugin_id)


def get_dynamic_plugins() -> List[Plugin]:
    return registry.get_dynamic_plugins()


def reset_plugin_system() -> None:
    registry.reset_plugin_system()


def reload_builtin_plugin(plugin_id: str) -> Optional[Plugin]:
    return registry.reload_builtin_plugin(plugin_id)


def get_available_plugins() -> List[Plugin]:
    return registry.get_available_plugins()


def get_plugin_for_area(area: str) -> Optional[Plugin]:
    return registry.get_plugin_for_area(area)


def get_plugin(plugin_id: str) -> Optional[Plugin]:
    return registry.get_plugin(plugin_id)


def builtin_ids() -> Iterable[str]:
    return registry.builtin_ids()
