"""Command-line entry point for qcli.

Only the configuration and template subcommands live here; code generation
commands build on ``Config`` and ``TemplateEngine`` directly.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

from qcli import __version__
from qcli.config import CONFIG_FILE_NAME, SAMPLE_FILE_NAME, Config, ConfigKeyError
from qcli.scaffolder import RenderContext, TemplateEngine, TemplateError
from qcli.utils import console, load_json, print_error, print_success, print_summary_table, print_warning


def configure_logging(verbose: bool = False) -> None:
    """Send log records to stderr through Rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------

def cmd_config_init(args: argparse.Namespace) -> int:
    target = Path(args.path) if args.path else Path.cwd() / CONFIG_FILE_NAME
    if target.exists() and not args.force:
        print_warning(f"Configuration already exists at {target} (use --force to overwrite)")
        return 1

    config = Config.create_default()
    console.print(f"[blue]Detected root path:[/blue] [green]{config.project_paths.root_path}[/green]")
    config.save(target)
    print_success(f"Configuration initialized at {target}")
    return 0


def cmd_config_show(args: argparse.Namespace) -> int:
    config = Config.load(args.config)
    paths = config.project_paths
    codegen = config.code_generation_settings
    templates = config.template_settings

    print_summary_table(
        {
            "Project Name": config.project_info.name,
            "Project Type": config.project_type,
            "Root Path": paths.root_path,
            "API Path": paths.api_path,
            "Application Path": paths.application_path,
            "Domain Path": paths.domain_path,
            "Persistence Path": paths.persistence_path,
            "Application Tests Path": paths.application_tests_path,
            "Integration Tests Path": paths.integration_tests_path,
            "Controllers Path": paths.controllers_path,
            "Default Entity Type": codegen.default_entity_type.value,
            "Generate Events": str(codegen.generate_events),
            "Generate Mapping Profiles": str(codegen.generate_mapping_profiles),
            "Generate Permissions": str(codegen.generate_permissions),
            "Generate Tests": str(codegen.generate_tests),
            "Default Template": templates.default_template,
            "Custom Templates": (
                templates.custom_templates_path if templates.enable_custom_templates else "disabled"
            ),
        },
        title="qcli configuration",
    )
    return 0


def cmd_config_get(args: argparse.Namespace) -> int:
    config = Config.load(args.config)
    value = config.get_value(args.key)
    if isinstance(value, (dict, list)):
        console.print_json(json.dumps(value))
    else:
        console.print(f"{args.key}: [green]{value}[/green]")
    return 0


def cmd_config_set(args: argparse.Namespace) -> int:
    target = Config.locate(args.config)
    if target is None:
        config = Config.create_default()
        target = Path.cwd() / CONFIG_FILE_NAME
    else:
        try:
            config = Config.load_file(target)
        except (ValueError, OSError) as exc:
            if not args.force:
                print_warning(
                    f"Cannot read {target} ({exc}); not overwriting it "
                    "(use --force to replace it with defaults)"
                )
                return 1
            print_warning(f"Replacing unreadable {target} with defaults")
            config = Config.create_default()

    config.set_value(args.key, args.value)
    config.save(target)
    print_success(f"Set {args.key} = {args.value}")
    return 0


def cmd_config_sample(args: argparse.Namespace) -> int:
    target = Path(args.path) if args.path else Path.cwd() / SAMPLE_FILE_NAME
    Config.create_sample().save(target)
    print_success(f"Sample configuration generated at {target}")
    console.print(f"[yellow]Copy this file to '{CONFIG_FILE_NAME}' and customize as needed.[/yellow]")
    return 0


# ---------------------------------------------------------------------------
# templates
# ---------------------------------------------------------------------------

def cmd_templates_list(args: argparse.Namespace) -> int:
    engine = TemplateEngine.from_config(Config.load(args.config))
    names = engine.list_templates()
    if not names:
        print_warning("No templates registered.")
        return 0
    for name in names:
        console.print(f"  [yellow]{name}[/yellow]")
    return 0


def cmd_templates_render(args: argparse.Namespace) -> int:
    engine = TemplateEngine.from_config(Config.load(args.config))
    fields: dict[str, Any] = load_json(args.model) if args.model else {}
    fields.update(parse_assignments(args.set or []))
    # Plain write so the output can be redirected without Rich markup.
    sys.stdout.write(engine.render(args.name, RenderContext(fields)))
    return 0


def parse_assignments(pairs: list[str]) -> dict[str, Any]:
    """Parse ``KEY=VALUE`` strings; ``true``/``false`` become booleans."""
    fields: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Expected KEY=VALUE, got {pair!r}")
        lowered = value.lower()
        if lowered in ("true", "false"):
            fields[key] = lowered == "true"
        else:
            fields[key] = value
    return fields


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="qcli",
        description="qcli -- Clean Architecture scaffolding toolkit",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  qcli config init\n"
            "  qcli config set rootPath /src/shop\n"
            "  qcli config get codeGenerationSettings.generateTests\n"
            "  qcli templates render readme -s ProjectName=Shop\n"
        ),
    )
    parser.add_argument("--config", default=None, help=f"Path to {CONFIG_FILE_NAME}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    commands = parser.add_subparsers(dest="command", required=True)

    config_parser = commands.add_parser("config", help="Inspect or edit the configuration")
    config_commands = config_parser.add_subparsers(dest="subcommand", required=True)

    init = config_commands.add_parser("init", help="Write a default configuration file")
    init.add_argument("--path", default=None, help="Destination (default: ./quillysoft-cli.json)")
    init.add_argument("--force", action="store_true", help="Overwrite an existing file")
    init.set_defaults(handler=cmd_config_init)

    show = config_commands.add_parser("show", help="Show the resolved configuration")
    show.set_defaults(handler=cmd_config_show)

    get = config_commands.add_parser("get", help="Print one setting")
    get.add_argument("key", help="Dotted camelCase key, e.g. projectPaths.apiPath")
    get.set_defaults(handler=cmd_config_get)

    set_ = config_commands.add_parser("set", help="Change one setting and save")
    set_.add_argument("key", help="Dotted camelCase key, e.g. projectPaths.apiPath")
    set_.add_argument("value")
    set_.add_argument("--force", action="store_true", help="Replace an unreadable file with defaults")
    set_.set_defaults(handler=cmd_config_set)

    sample = config_commands.add_parser("sample", help="Write a documented sample configuration")
    sample.add_argument("--path", default=None, help=f"Destination (default: ./{SAMPLE_FILE_NAME})")
    sample.set_defaults(handler=cmd_config_sample)

    templates_parser = commands.add_parser("templates", help="List or render templates")
    template_commands = templates_parser.add_subparsers(dest="subcommand", required=True)

    list_ = template_commands.add_parser("list", help="List registered templates")
    list_.set_defaults(handler=cmd_templates_list)

    render = template_commands.add_parser("render", help="Render a template to stdout")
    render.add_argument("name", help="Registered template name")
    render.add_argument("--model", "-m", default=None, help="JSON file with the render model")
    render.add_argument(
        "--set", "-s", action="append", metavar="KEY=VALUE", help="Model field (repeatable)"
    )
    render.set_defaults(handler=cmd_templates_render)

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for ``qcli`` / ``python -m qcli.cli``."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        return args.handler(args)
    except (TemplateError, ConfigKeyError, ValueError, OSError) as exc:
        print_error(f"Error: {exc}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
