from __future__ import annotations
from typing import Callable, Dict, List, Type
from importlib import import_module

_BUILTINS = (
    "llmstream.providers.nanogpt",
    "llmstream.providers.openai_adapter",
    "llmstream.providers.echo",
)


class ProviderRegistry:
    _classes: Dict[str, Type] = {}

    @classmethod
    def register(cls, name: str) -> Callable[[Type], Type]:
        name = name.lower()
        def deco(klass: Type) -> Type:
            cls._classes[name] = klass
            return klass
        return deco

    @classmethod
    def get(cls, name: str) -> Type:
        key = name.lower()
        if key not in cls._classes:
            raise KeyError(f"Provider '{name}' not registered")
        return cls._classes[key]

    @classmethod
    def names(cls) -> List[str]:
        return sorted(cls._classes)

    @classmethod
    def ensure_imports(cls) -> None:
        """
        Import built-in providers so their @register decorators run.
        Call once at bootstrap before get().
        """
        for module in _BUILTINS:
            import_module(module)
