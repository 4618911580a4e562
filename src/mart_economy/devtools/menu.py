"""Developer menu extension point and service lookup.

Plugins contribute named entries to the host's developer menu instead of patching
it, and look up each other's services by name instead of probing globals.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)

SPECIALS_CREATOR = "Specials Creator"
SPECIALS_EDITOR_SERVICE = "specials_editor"
NOT_LOADED_MESSAGE = "Specials Creator not loaded!"


@dataclass
class MenuOption:
    name: str
    description: str
    action: Callable[[], Any]


class DevToolsMenu:
    def __init__(self, options: list[MenuOption] | None = None) -> None:
        self._options: list[MenuOption] = list(options or [])

    def contribute(self, option: MenuOption, after: int = 2) -> int:
        """Insert *option* after the first *after* entries, or at the end if the menu is shorter.

        Returns the index the option landed at.
        """
        index = min(after, len(self._options))
        self._options.insert(index, option)
        logger.debug("Menu option %r added at position %d", option.name, index)
        return index

    def options(self) -> list[MenuOption]:
        return list(self._options)

    def names(self) -> list[str]:
        return [o.name for o in self._options]

    def find(self, name: str) -> MenuOption | None:
        for option in self._options:
            if option.name == name:
                return option
        return None

    def select(self, name: str) -> Any:
        option = self.find(name)
        if option is None:
            raise KeyError(name)
        return option.action()

    def __len__(self) -> int:
        return len(self._options)


class ServiceRegistry:
    def __init__(self) -> None:
        self._services: dict[str, Any] = {}

    def register(self, name: str, service: Any) -> None:
        self._services[name] = service

    def get(self, name: str) -> Any | None:
        return self._services.get(name)

    def is_registered(self, name: str) -> bool:
        return name in self._services


def register_specials_creator(
    menu: DevToolsMenu,
    services: ServiceRegistry,
    notify: Callable[[str], Any],
    launch: Callable[[Any], Any],
) -> MenuOption:
    """Add the Specials Creator entry to *menu*.

    The editor service is resolved when the entry is chosen, not when it is added,
    so the order in which plugins register does not matter.
    """

    def _open() -> Any:
        editor = services.get(SPECIALS_EDITOR_SERVICE)
        if editor is None:
            return notify(NOT_LOADED_MESSAGE)
        return launch(editor)

    option = MenuOption(SPECIALS_CREATOR, "Create and edit custom shop specials", _open)
    menu.contribute(option)
    return option
