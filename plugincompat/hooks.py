"""Hook pipelines that run around the checkout, compile and test steps of a plugin.

A hook instance is shared by every plugin of the run, so it must not keep state
between calls or hold on to a context after ``action`` returns. Contexts are
created fresh for each plugin and phase, and only the hook whose turn it is
may change them:

* ``BeforeCheckoutContext.plugin_metadata`` may be replaced, typically to point
  at another repository or commit.
* ``BeforeCompilationContext.ran_compile`` may be set by a hook that compiled
  the plugin itself; the build against the unmodified project is then skipped.
* ``BeforeExecutionContext.goals`` and ``properties`` may be edited in place;
  the forced core properties are applied after the pipeline and always win.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Generic, List, TypeVar, TYPE_CHECKING

from .models import PluginMetadata
from .ordering import sort_by_priority

if TYPE_CHECKING:
    from .config import RunConfig

logger = logging.getLogger(__name__)


@dataclass
class StageContext:
    plugin_metadata: PluginMetadata
    core_version: str
    config: "RunConfig"


@dataclass
class BeforeCheckoutContext(StageContext):
    pass


@dataclass
class BeforeCompilationContext(StageContext):
    clone_directory: Path = Path(".")
    ran_compile: bool = False


@dataclass
class BeforeExecutionContext(StageContext):
    clone_directory: Path = Path(".")
    goals: List[str] = field(default_factory=list)
    properties: Dict[str, str] = field(default_factory=dict)


C = TypeVar("C", bound=StageContext)


class PluginCompatTesterHook(Generic[C]):
    """A predicate-gated step that may modify the context of one phase."""

    priority = 0

    def check(self, context: C) -> bool:
        return True

    def action(self, context: C) -> None:
        raise NotImplementedError


class BeforeCheckoutHook(PluginCompatTesterHook[BeforeCheckoutContext]):
    pass


class BeforeCompilationHook(PluginCompatTesterHook[BeforeCompilationContext]):
    pass


class BeforeExecutionHook(PluginCompatTesterHook[BeforeExecutionContext]):
    pass


class HookPipeline(Generic[C]):
    """Runs every matching hook of one phase, highest priority first."""

    def __init__(self, phase: str) -> None:
        self.phase = phase
        self._hooks: List[PluginCompatTesterHook[C]] = []

    def register(self, hook: PluginCompatTesterHook[C]) -> None:
        self._hooks.append(hook)

    @property
    def hooks(self) -> List[PluginCompatTesterHook[C]]:
        return sort_by_priority(self._hooks)

    def run(self, context: C) -> C:
        for hook in self.hooks:
            if hook.check(context):
                logger.debug(
                    "Running %s hook %s for %s",
                    self.phase,
                    type(hook).__name__,
                    context.plugin_metadata.plugin_id,
                )
                hook.action(context)
        return context


class PluginCompatTesterHooks:
    """The three hook pipelines of a run."""

    def __init__(
        self,
        before_checkout: List[BeforeCheckoutHook] | None = None,
        before_compilation: List[BeforeCompilationHook] | None = None,
        before_execution: List[BeforeExecutionHook] | None = None,
    ) -> None:
        self.before_checkout: HookPipeline[BeforeCheckoutContext] = HookPipeline("before checkout")
        self.before_compilation: HookPipeline[BeforeCompilationContext] = HookPipeline(
            "before compilation"
        )
        self.before_execution: HookPipeline[BeforeExecutionContext] = HookPipeline(
            "before execution"
        )
        for hook in before_checkout or []:
            self.before_checkout.register(hook)
        for hook in before_compilation or []:
            self.before_compilation.register(hook)
        for hook in before_execution or []:
            self.before_execution.register(hook)

    def run_before_checkout(self, context: BeforeCheckoutContext) -> BeforeCheckoutContext:
        return self.before_checkout.run(context)

    def run_before_compilation(self, context: BeforeCompilationContext) -> BeforeCompilationContext:
        return self.before_compilation.run(context)

    def run_before_execution(self, context: BeforeExecutionContext) -> BeforeExecutionContext:
        return self.before_execution.run(context)
