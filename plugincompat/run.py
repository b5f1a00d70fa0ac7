from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Dict

from .config import RunConfig
from .errors import ConfigError, PluginCompatError
from .tester import PluginCompatTester


def _parse_properties(values: list[str] | None) -> Dict[str, str] | None:
    if not values:
        return None
    properties: Dict[str, str] = {}
    for value in values:
        key, sep, prop = value.partition("=")
        if not sep or not key:
            raise ConfigError(f"Build properties must be given as key=value, got {value!r}")
        properties[key] = prop
    return properties


def _load_config(args: argparse.Namespace) -> RunConfig:
    overrides: Dict[str, Any] = {
        "war": args.war,
        "working_dir": args.working_dir,
        "include_plugins": args.include_plugins,
        "exclude_plugins": args.exclude_plugins,
        "fail_fast": args.fail_fast,
        "fallback_github_organization": args.fallback_github_organization,
        "build_properties": _parse_properties(args.define),
        "external_maven": args.external_maven,
        "maven_settings": args.maven_settings,
        "maven_args": args.maven_args,
        "extension_locations": args.external_hooks,
        "exclude_hooks": args.exclude_hooks,
        "local_checkout_dir": args.local_checkout_dir,
    }
    if args.config:
        return RunConfig.from_file(args.config, **overrides)
    return RunConfig.from_dict({key: value for key, value in overrides.items() if value is not None})


def cmd_list_plugins(args: argparse.Namespace) -> None:
    tester = PluginCompatTester(_load_config(args))
    try:
        core_version, plugins = tester.list_plugins()
    except PluginCompatError as exc:
        print(exc, file=sys.stderr)
        raise SystemExit(1) from exc
    print(json.dumps(
        {"core_version": core_version, "plugins": [plugin.to_dict() for plugin in plugins]},
        indent=2,
    ))


def cmd_test_plugins(args: argparse.Namespace) -> None:
    tester = PluginCompatTester(_load_config(args))
    try:
        tester.test_plugins()
    except PluginCompatError as exc:
        print(exc, file=sys.stderr)
        raise SystemExit(1) from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Plugin compatibility tester")
    parser.add_argument("--config", help="JSON or YAML file with the run configuration.")
    parser.add_argument("--war", help="Core WAR file whose plugins are tested.")
    parser.add_argument("--working-dir", help="Directory used for checkouts and build logs.")
    parser.add_argument("--include-plugins", help="Comma separated plugin ids to test.")
    parser.add_argument("--exclude-plugins", help="Comma separated plugin ids to skip.")
    parser.add_argument(
        "--fail-fast",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Stop at the first failing repository or plugin.",
    )
    parser.add_argument("--fallback-github-organization", help="Organization holding forks to try.")
    parser.add_argument(
        "-D", dest="define", action="append", metavar="KEY=VALUE", help="Extra build property."
    )
    parser.add_argument("--external-maven", help="Build tool executable.")
    parser.add_argument("--maven-settings", help="Settings file passed to the build tool.")
    parser.add_argument(
        "--maven-args", action="append", help="Extra argument passed to the build tool."
    )
    parser.add_argument(
        "--external-hooks",
        action="append",
        help="Module, file or directory providing hooks and extractors.",
    )
    parser.add_argument("--exclude-hooks", help="Comma separated hook class names to leave out.")
    parser.add_argument("--local-checkout-dir", help="Existing checkout to test instead of cloning.")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list-plugins", help="Show the plugins that would be tested")
    list_parser.set_defaults(func=cmd_list_plugins)

    test_parser = subparsers.add_parser("test-plugins", help="Build and test every selected plugin")
    test_parser.set_defaults(func=cmd_test_plugins)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        args.func(args)
    except ConfigError as exc:
        parser.error(str(exc))


if __name__ == "__main__":  # pragma: no cover
    main()
