from __future__ import annotations

from typing import Any, Callable, Dict, Tuple, Type

from hotpatch.core.connectors.base import ConnectorInit


class ConnectorRegistry:
    """
    Registry + factory for collaborators.

    Supports decorator registration:
        @registry.register("store", "sqlite")
        class SqliteBundleStore: ...

    And factory instantiation:
        store = registry.create(name="store", kind="store", driver="sqlite", config=..., options=...)
    """

    def __init__(self) -> None:
        self._items: Dict[Tuple[str, str], Type] = {}

    def register(self, kind: str, driver: str):
        def deco(cls):
            self._items[(kind, driver)] = cls
            return cls
        return deco

    def get(self, kind: str, driver: str):
        key = (kind, driver)
        if key not in self._items:
            avail = sorted([f"{k}:{d}" for (k, d) in self._items.keys()])
            raise KeyError(f"Unknown connector: {kind}:{driver}. Loaded: {avail}")
        return self._items[key]

    def list(self) -> list[str]:
        return sorted([f"{k}:{d}" for (k, d) in self._items.keys()])

    def create(
        self,
        *,
        name: str,
        kind: str,
        driver: str,
        config: dict | None = None,
        options: dict | None = None,
        on_reload: Callable[[], Any] | None = None,
    ) -> Any:
        Cls = self.get(kind, driver)
        return Cls(
            ConnectorInit(
                name=name,
                kind=kind,
                driver=driver,
                config=config or {},
                options=options or {},
                on_reload=on_reload,
            )
        )


# Singleton registry used by core + host plugins
REGISTRY = ConnectorRegistry()


def register_connector(kind: str, driver: str):
    return REGISTRY.register(kind, driver)


def get_connector(kind: str, driver: str):
    return REGISTRY.get(kind, driver)


def list_connectors() -> list[str]:
    return REGISTRY.list()
