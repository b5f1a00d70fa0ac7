"""Drives the compatibility test of every plugin bundled in a core archive."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from .config import RunConfig
from .errors import FailureList, PluginCompatError, SourcesUnavailableError
from .extractors import MetadataExtractionChain, extract_local_checkout_metadata
from .hooks import (
    BeforeCheckoutContext,
    BeforeCompilationContext,
    BeforeExecutionContext,
    PluginCompatTesterHooks,
)
from .maven import ExternalMavenRunner, MavenRunner
from .models import PluginEntry, PluginMetadata
from .registry import ExtensionRegistry
from .scanner import iter_plugin_descriptors, scan_archive
from .scm import clone_from_scm, get_repo_name_from_git_url
from .utils import recreate_file

logger = logging.getLogger(__name__)

Cloner = Callable[[str, Optional[str], str, Path], None]
RepositoryGroup = Tuple[Optional[str], List[PluginMetadata]]

ORIGINAL_BUILD_GOALS = ("clean", "process-test-classes")
TEST_GOALS = ("hpi:resolve-test-dependencies", "hpi:test-hpl", "surefire:test")

# Cores before this version ship javax.servlet:servlet-api at version 0 on
# purpose (JENKINS-68696), which the upper bounds check reports as a violation.
SERVLET_API_UPPER_BOUNDS_FIXED_IN = "2.382"
SERVLET_API_COORDINATES = "javax.servlet:servlet-api"

_NUMERIC_VERSION = re.compile(r"\d+(?:\.\d+)*")


def _version_key(version: str) -> Tuple[Tuple[int, ...], bool]:
    match = _NUMERIC_VERSION.match(version)
    if match is None:
        raise ValueError(f"Not a version number: {version}")
    numbers = tuple(int(part) for part in match.group(0).split("."))
    return numbers, match.end() < len(version)


def is_older_than(version: str, other: str) -> bool:
    """Compare dotted versions; a qualified version precedes its plain release."""

    numbers, qualified = _version_key(version)
    other_numbers, other_qualified = _version_key(other)
    width = max(len(numbers), len(other_numbers))
    numbers += (0,) * (width - len(numbers))
    other_numbers += (0,) * (width - len(other_numbers))
    if numbers != other_numbers:
        return numbers < other_numbers
    return qualified and not other_qualified


def build_log_path(working_dir: Path, metadata: PluginMetadata, core_version: str) -> Path:
    return (
        Path(working_dir)
        / "logs"
        / metadata.plugin_id
        / f"v{metadata.version}_against_jenkins_{core_version}.log"
    )


def is_selected(plugin_id: str, name: Optional[str], include: Set[str], exclude: Set[str]) -> bool:
    """False for excluded plugins and, when ``include`` is not empty, for those not in it."""

    if plugin_id in exclude:
        logger.info("Plugin '%s' (%s) in excluded plugins; skipping", name or plugin_id, plugin_id)
        return False
    if include and plugin_id not in include:
        logger.info("Plugin '%s' (%s) not in included plugins; skipping", name or plugin_id, plugin_id)
        return False
    return True


def filter_entries(
    entries: Iterable[PluginEntry], include: Set[str], exclude: Set[str]
) -> List[PluginEntry]:
    return [e for e in entries if is_selected(e.short_name, e.long_name, include, exclude)]


def group_by_repository(plugins: Iterable[PluginMetadata]) -> Dict[str, List[PluginMetadata]]:
    """Bucket plugins by source repository, keeping first-seen order."""

    groups: Dict[str, List[PluginMetadata]] = {}
    for plugin in plugins:
        if not plugin.scm_url:
            raise SourcesUnavailableError(f"No source repository known for {plugin.plugin_id}")
        groups.setdefault(plugin.scm_url, []).append(plugin)
    return groups


class PluginCompatTester:
    """Checks out each plugin at its release commit and tests it against the core.

    Repository checkouts and plugin builds that fail are recorded and the run
    goes on, unless ``config.fail_fast`` is set, in which case the first
    failure is raised straight away. Failures that are not plugin specific
    (unreadable archive, I/O errors) always end the run.
    """

    def __init__(
        self,
        config: RunConfig,
        runner: Optional[MavenRunner] = None,
        registry: Optional[ExtensionRegistry] = None,
        cloner: Optional[Cloner] = None,
    ) -> None:
        self.config = config
        self.runner = runner or ExternalMavenRunner(
            config.external_maven, config.maven_settings, config.maven_args
        )
        self.registry = registry or ExtensionRegistry.discover(
            config.extension_locations, config.exclude_hooks
        )
        self.cloner: Cloner = cloner or clone_from_scm
        self.hooks: PluginCompatTesterHooks = self.registry.hooks()
        self.extraction_chain: MetadataExtractionChain = self.registry.extraction_chain()

    def list_plugins(self) -> Tuple[str, List[PluginMetadata]]:
        """Return the core version and the metadata of every plugin selected for testing."""

        failures = FailureList()
        core_version, plugins = self.select_plugins(failures)
        failures.raise_if_any()
        return core_version, plugins

    def select_plugins(self, failures: FailureList) -> Tuple[str, List[PluginMetadata]]:
        """Scan the archive once, filter its inventory by id and extract what remains.

        Extraction failures go through the run's failure policy.
        """

        scanned = scan_archive(self.config.war)
        entries = filter_entries(
            scanned.plugins, self.config.include_plugins, self.config.exclude_plugins
        )
        plugins: List[PluginMetadata] = []
        for descriptor in iter_plugin_descriptors(entries):
            try:
                metadata = self.extraction_chain.extract(descriptor)
            except PluginCompatError as exc:
                logger.error("Cannot describe %s: %s", descriptor.plugin_id, exc)
                self._record(failures, exc)
                continue
            if metadata is not None:
                plugins.append(metadata)
        return scanned.core_version, plugins

    def test_plugins(self) -> None:
        failures = FailureList()
        core_version, plugins = self.select_plugins(failures)

        checked_out: List[PluginMetadata] = []
        for plugin in plugins:
            try:
                checked_out.append(self.run_before_checkout(plugin, core_version))
            except PluginCompatError as exc:
                self._record(failures, exc)

        groups: List[RepositoryGroup] = []
        for plugin in checked_out:
            if not plugin.scm_url:
                self._record(
                    failures,
                    SourcesUnavailableError(f"No source repository known for {plugin.plugin_id}"),
                )
        groups.extend(group_by_repository(p for p in checked_out if p.scm_url).items())
        if self.config.local_checkout_provided():
            # plugins of a local checkout skip the before checkout hooks
            try:
                local_plugins = extract_local_checkout_metadata(self.config.local_checkout_dir)
            except PluginCompatError as exc:
                logger.error("Cannot describe local checkout %s: %s", self.config.local_checkout_dir, exc)
                self._record(failures, exc)
            else:
                groups.append((None, local_plugins))

        logger.info(
            "Starting plugin tests on core coordinates org.jenkins-ci.main:jenkins-war:%s:executable-war",
            core_version,
        )
        for git_url, group in groups:
            if git_url is None:
                clone_directory = self.config.local_checkout_dir
            else:
                try:
                    clone_directory = self.config.working_dir / get_repo_name_from_git_url(git_url)
                    # every plugin of one repository is built from the same commit
                    self.cloner(
                        git_url,
                        self.config.fallback_github_organization,
                        group[0].git_commit,
                        clone_directory,
                    )
                except PluginCompatError as exc:
                    logger.error(
                        "Skipping %s: %s", ", ".join(p.plugin_id for p in group), exc
                    )
                    self._record(failures, exc)
                    continue

            for plugin in group:
                try:
                    self.test_plugin_against(core_version, plugin, clone_directory)
                except PluginCompatError as exc:
                    logger.error("Testing %s failed: %s", plugin.plugin_id, exc)
                    self._record(failures, exc)

        failures.raise_if_any()

    def _record(self, failures: FailureList, exc: PluginCompatError) -> None:
        if self.config.fail_fast:
            raise exc
        failures.record(exc)

    def run_before_checkout(self, plugin: PluginMetadata, core_version: str) -> PluginMetadata:
        context = BeforeCheckoutContext(plugin, core_version, self.config)
        self.hooks.run_before_checkout(context)
        return context.plugin_metadata

    def build_properties(self, properties: Dict[str, str], core_version: str) -> Dict[str, str]:
        """Apply the properties every test build is forced to run with."""

        properties = dict(properties)
        properties["overrideWar"] = str(self.config.war.resolve())
        properties["jenkins.version"] = core_version
        properties["useUpperBounds"] = "true"
        if is_older_than(core_version, SERVLET_API_UPPER_BOUNDS_FIXED_IN):
            properties["upperBoundsExcludes"] = SERVLET_API_COORDINATES
        return properties

    def test_plugin_against(
        self, core_version: str, plugin: PluginMetadata, clone_directory: Path
    ) -> None:
        logger.info(
            "\n%s\n## Starting to test %s %s against Jenkins %s\n%s",
            "#" * 45,
            plugin.name,
            plugin.version,
            core_version,
            "#" * 45,
        )
        log_file = recreate_file(build_log_path(self.config.working_dir, plugin, core_version))

        compilation = BeforeCompilationContext(
            plugin, core_version, self.config, clone_directory=clone_directory
        )
        self.hooks.run_before_compilation(compilation)

        # Build the unmodified project first: this is the binary that was
        # released, and source incompatibilities with the new core do not
        # matter here. Javadoc generation fails too often to be worth running.
        if not compilation.ran_compile:
            self.runner.run(
                {"maven.javadoc.skip": "true"},
                clone_directory,
                plugin.module_path,
                log_file,
                *ORIGINAL_BUILD_GOALS,
            )

        execution = BeforeExecutionContext(
            plugin,
            core_version,
            self.config,
            clone_directory=clone_directory,
            goals=list(TEST_GOALS),
            properties=dict(self.config.build_properties),
        )
        self.hooks.run_before_execution(execution)

        self.runner.run(
            self.build_properties(execution.properties, core_version),
            clone_directory,
            plugin.module_path,
            log_file,
            *execution.goals,
        )
