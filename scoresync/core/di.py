from __future__ import annotations

__all__ = [
    "Closing",
    "Container",
    "NotReady",
    "Provider",
    "Provide",
    "ProviderOf",
    "inject",
    "providers",
    "containers",
]

import typing as t

import dependency_injector.containers as containers
import dependency_injector.providers as providers
import dependency_injector.wiring as wiring
from dependency_injector.containers import Container
from dependency_injector.providers import Provider
from dependency_injector.wiring import ClassGetItemMeta, Closing, inject, Provide

T = t.TypeVar("T")


class ProviderOf(object, metaclass=ClassGetItemMeta):
    """Inject the provider rather than its value, for callers that need a new instance per use"""

    def __new__(cls, provider: Provider[T] | Container | str):
        return wiring.Provider[provider]

    @classmethod
    def __class_getitem__(cls, item: Provider[T] | Container | str):
        return cls(item)


class NotReady(object):
    """Placeholder value of a provider that is only set during `boot()`."""

    _instance: t.ClassVar[NotReady | None] = None

    def __new__(cls) -> NotReady:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "<NotReady>"
