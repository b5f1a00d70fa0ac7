"""Workarounds for plugins whose builds do not follow the usual layout."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .extractors import BUILTIN_EXTRACTORS
from .hooks import BeforeExecutionContext, BeforeExecutionHook

if TYPE_CHECKING:
    from .registry import ExtensionRegistry

FAILSAFE_GOALS = ("failsafe:integration-test", "failsafe:verify")


class PluginWithFailsafeIntegrationTestsHook(BeforeExecutionHook):
    """Also run the integration tests of plugins that keep them under failsafe."""

    def check(self, context: BeforeExecutionContext) -> bool:
        raise NotImplementedError

    def action(self, context: BeforeExecutionContext) -> None:
        for goal in FAILSAFE_GOALS:
            if goal not in context.goals:
                context.goals.append(goal)


class WarningsNGExecutionHook(PluginWithFailsafeIntegrationTestsHook):
    """Warnings NG keeps most of its tests in failsafe integration tests."""

    def check(self, context: BeforeExecutionContext) -> bool:
        return context.plugin_metadata.plugin_id == "warnings-ng"


def register(registry: "ExtensionRegistry") -> None:
    for extractor in BUILTIN_EXTRACTORS:
        registry.add(extractor())
    registry.add(WarningsNGExecutionHook())
