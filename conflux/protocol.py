"""Protocol plugins and the manager that starts them."""

from __future__ import annotations

import abc
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

log = logging.getLogger(__name__)


@dataclass
class ProtocolConfig:
    """Settings for one protocol instance."""

    listen_addr: str = "127.0.0.1:8080"
    options: Dict[str, str] = field(default_factory=dict)


class ProtocolPlugin(abc.ABC):
    """A front end (HTTP, gRPC, ...) that serves requests against the core."""

    @abc.abstractmethod
    def name(self) -> str:
        """Unique name of the protocol, such as ``"http-rest"``."""

    @abc.abstractmethod
    async def start(self, core_handle: Any, config: ProtocolConfig) -> None:
        """Serve requests until cancelled, using the core services in ``core_handle``."""

    async def health_check(self) -> bool:
        """Whether the protocol is running normally."""
        return True

    async def shutdown(self) -> None:
        """Release resources when the application stops."""
        return None


class ProtocolManager:
    """Keeps the registered protocol plugins and their configurations."""

    def __init__(self) -> None:
        self._plugins: List[ProtocolPlugin] = []
        self._configs: Dict[str, ProtocolConfig] = {}

    def register_plugin(self, plugin: ProtocolPlugin) -> None:
        self._plugins.append(plugin)

    def set_config(self, protocol_name: str, config: ProtocolConfig) -> None:
        self._configs[protocol_name] = config

    def get_config(self, protocol_name: str) -> ProtocolConfig:
        """The configuration set for a protocol, or the default one."""
        return self._configs.get(protocol_name, ProtocolConfig())

    async def start_all(self, core_handle: Any) -> List["asyncio.Task[None]"]:
        """Start every registered plugin in its own task and return the tasks."""
        tasks = []
        for plugin in self._plugins:
            plugin_name = plugin.name()
            config = self.get_config(plugin_name)
            log.info("Starting protocol plugin: %s", plugin_name)
            tasks.append(
                asyncio.create_task(plugin.start(core_handle, config), name=plugin_name)
            )
        return tasks

    def plugin_count(self) -> int:
        return len(self._plugins)

    def plugin_names(self) -> List[str]:
        return [plugin.name() for plugin in self._plugins]