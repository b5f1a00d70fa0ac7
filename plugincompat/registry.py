from __future__ import annotations

import hashlib
import importlib
import importlib.util
import logging
import sys
from pathlib import Path
from types import ModuleType
from typing import Iterable, List

from .errors import ConfigError
from .extractors import MetadataExtractionChain, PluginMetadataExtractor
from .hooks import (
    BeforeCheckoutHook,
    BeforeCompilationHook,
    BeforeExecutionHook,
    PluginCompatTesterHooks,
)
from .ordering import qualified_name

logger = logging.getLogger(__name__)

BUILTIN_LOCATION = "plugincompat.builtin_hooks"


class ExtensionRegistry:
    """Hooks and extractors collected once at start-up and shared by the whole run.

    Each extension location is a dotted module name, a ``.py`` file or a
    directory of ``.py`` files. Every module must expose ``register(registry)``,
    which hands its objects to :meth:`add`. The registry is read-only once
    :meth:`freeze` has been called.
    """

    def __init__(self, excluded: Iterable[str] = ()) -> None:
        self.excluded = {name for name in excluded if name}
        self.extractors: List[PluginMetadataExtractor] = []
        self.before_checkout: List[BeforeCheckoutHook] = []
        self.before_compilation: List[BeforeCompilationHook] = []
        self.before_execution: List[BeforeExecutionHook] = []
        self._frozen = False

    @classmethod
    def discover(
        cls, locations: Iterable[str] = (), excluded: Iterable[str] = (), *, builtins: bool = True
    ) -> "ExtensionRegistry":
        registry = cls(excluded)
        if builtins:
            registry.load(BUILTIN_LOCATION)
        for location in locations:
            registry.load(location)
        registry.freeze()
        return registry

    def is_excluded(self, obj: object) -> bool:
        return type(obj).__name__ in self.excluded or qualified_name(obj) in self.excluded

    def add(self, obj: object) -> None:
        if self._frozen:
            raise RuntimeError("Extensions cannot be added after discovery has completed")
        if self.is_excluded(obj):
            logger.info("Extension %s is excluded; skipping", qualified_name(obj))
            return
        if isinstance(obj, PluginMetadataExtractor):
            self.extractors.append(obj)
        elif isinstance(obj, BeforeCheckoutHook):
            self.before_checkout.append(obj)
        elif isinstance(obj, BeforeCompilationHook):
            self.before_compilation.append(obj)
        elif isinstance(obj, BeforeExecutionHook):
            self.before_execution.append(obj)
        else:
            raise ConfigError(f"{qualified_name(obj)} is neither a hook nor a metadata extractor")
        logger.debug("Registered extension %s", qualified_name(obj))

    def freeze(self) -> None:
        self._frozen = True

    def load(self, location: str) -> None:
        path = Path(location)
        if path.is_dir():
            for module_path in sorted(path.glob("*.py")):
                if not module_path.name.startswith("_"):
                    self._register_module(self._load_file(module_path), str(module_path))
            return
        if location.endswith(".py"):
            module = self._load_file(path)
        else:
            try:
                module = importlib.import_module(location)
            except ImportError as exc:
                raise ConfigError(f"Cannot import extension module {location}: {exc}") from exc
        self._register_module(module, location)

    def _register_module(self, module: ModuleType, location: str) -> None:
        register = getattr(module, "register", None)
        if not callable(register):
            raise ConfigError(f"Extension location {location} does not define register(registry)")
        register(self)

    def _load_file(self, module_path: Path) -> ModuleType:
        module_path = module_path.resolve()
        if not module_path.is_file():
            raise ConfigError(f"Extension file {module_path} does not exist")

        # stable across runs for the same file
        path_hash = hashlib.sha1(str(module_path).encode("utf-8")).hexdigest()[:16]
        module_name = f"plugincompat_extension_{module_path.stem}_{path_hash}"

        spec = importlib.util.spec_from_file_location(module_name, str(module_path))
        if spec is None or spec.loader is None:
            raise ConfigError(f"Cannot create module spec for {module_path}")
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except Exception:
            sys.modules.pop(module_name, None)
            raise
        return module

    def hooks(self) -> PluginCompatTesterHooks:
        return PluginCompatTesterHooks(
            before_checkout=self.before_checkout,
            before_compilation=self.before_compilation,
            before_execution=self.before_execution,
        )

    def extraction_chain(self) -> MetadataExtractionChain:
        return MetadataExtractionChain(self.extractors)
