#!/usr/bin/env python3
"""Main CLI entry point for meta-registry."""

import argparse
import sys
from pathlib import Path

from .. import __version__
from ..config.parser import load_config
from ..errors import DeploymentError, MetaError, MetaRegistryError, explain
from ..logging import configure_logging
from ..schema.loader import load_deployment
from ..storage.service_registry import ServiceRegistry
from ..storage.sqlite import SQLiteStorage


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(description="Service revision registry")
    parser.add_argument("--version", action="version", version=f"meta-registry {__version__}")
    parser.add_argument("--db", help="Override storage.db_path")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override logging.level",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Register command
    register_parser = subparsers.add_parser("register", help="Register a deployment")
    register_parser.add_argument("path", help="Path to the contract document (YAML or JSON)")
    register_parser.add_argument(
        "--dry-run", action="store_true", help="Validate without registering"
    )

    # Validate command
    validate_parser = subparsers.add_parser(
        "validate", help="Validate a deployment against the registry without registering"
    )
    validate_parser.add_argument("path", help="Path to the contract document (YAML or JSON)")

    # Services command
    services_parser = subparsers.add_parser("services", help="Inspect registered services")
    services_subparsers = services_parser.add_subparsers(dest="services_command", help="Service commands")
    services_subparsers.add_parser("list", help="List services")
    describe_parser = services_subparsers.add_parser("describe", help="Describe a service")
    describe_parser.add_argument("name", help="Service name")
    describe_parser.add_argument("--revision", type=int, help="Revision to describe (default: latest)")

    # Deployments command
    deployments_parser = subparsers.add_parser("deployments", help="Manage deployments")
    deployments_subparsers = deployments_parser.add_subparsers(
        dest="deployments_command", help="Deployment commands"
    )
    deployments_subparsers.add_parser("list", help="List deployments")
    remove_parser = deployments_subparsers.add_parser("remove", help="Remove a deployment")
    remove_parser.add_argument("deployment_id", help="Deployment ID")

    # Explain command
    explain_parser = subparsers.add_parser("explain", help="Explain an error code")
    explain_parser.add_argument("code", help="Error code, e.g. META0002")

    # Server command
    server_parser = subparsers.add_parser("server", help="Start API server")
    server_parser.add_argument("--host", help="Host to bind server to")
    server_parser.add_argument("--port", type=int, help="Port to bind server to")

    # Config command
    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_subparsers = config_parser.add_subparsers(dest="config_command", help="Config commands")
    config_subparsers.add_parser("validate", help="Validate configuration")
    show_parser = config_subparsers.add_parser("show", help="Show effective configuration")
    show_parser.add_argument("--json", action="store_true", help="Output in JSON format")

    return parser


def main(argv=None):
    """Main CLI function."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Build CLI config overrides
    cli_overrides = {}
    if args.db:
        cli_overrides["storage"] = {"db_path": args.db}
    if args.log_level:
        cli_overrides["logging"] = {"level": args.log_level}
    if getattr(args, "host", None):
        cli_overrides.setdefault("server", {})["host"] = args.host
    if getattr(args, "port", None):
        cli_overrides.setdefault("server", {})["port"] = args.port

    if args.command == "register":
        register(args, cli_overrides, dry_run=args.dry_run)
    elif args.command == "validate":
        register(args, cli_overrides, dry_run=True)
    elif args.command == "services":
        if args.services_command == "list":
            services_list(args, cli_overrides)
        elif args.services_command == "describe":
            services_describe(args, cli_overrides)
        else:
            parser.parse_args(["services", "--help"])
    elif args.command == "deployments":
        if args.deployments_command == "list":
            deployments_list(args, cli_overrides)
        elif args.deployments_command == "remove":
            deployments_remove(args, cli_overrides)
        else:
            parser.parse_args(["deployments", "--help"])
    elif args.command == "explain":
        explain_code(args)
    elif args.command == "server":
        start_server(args, cli_overrides)
    elif args.command == "config":
        if args.config_command == "validate":
            config_validate(args, cli_overrides)
        elif args.config_command == "show":
            config_show(args, cli_overrides)
        else:
            parser.parse_args(["config", "--help"])
    else:
        parser.print_help()


def _open_registry(cli_overrides):
    """Load configuration, set up logging and open the registry."""
    config, _ = load_config(Path.cwd(), cli_overrides)
    configure_logging(config.logging.level, config.logging.json_output)
    db = SQLiteStorage(config.storage.db_path)
    return ServiceRegistry(db, allow_field_rename=config.compatibility.allow_field_rename)


def _fail(message: str):
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def register(args, cli_overrides=None, dry_run=False):
    """Register (or validate) a deployment from a contract document."""
    registry = _open_registry(cli_overrides)

    try:
        deployment = load_deployment(args.path)
        result = registry.register_deployment(deployment, dry_run=dry_run)
    except MetaError as e:
        print(f"✗ {e}", file=sys.stderr)
        print(f"  See: {e.link}", file=sys.stderr)
        sys.exit(1)
    except DeploymentError as e:
        _fail(str(e))

    verb = "Validated" if dry_run else "Registered"
    print(f"✓ {verb} deployment {result.deployment_id}")
    for revision in result.revisions:
        print(f"  {revision.service_name}: revision {revision.revision} ({revision.kind.value})")


def services_list(args, cli_overrides=None):
    """List registered services."""
    registry = _open_registry(cli_overrides)
    services = registry.list_services()
    if not services:
        print("No services registered.")
        return

    print(f"{'NAME':<40} {'KIND':<10} {'REVISION':<9} {'PUBLIC':<7} DEPLOYMENT")
    for revision in services:
        print(
            f"{revision.service_name:<40} {revision.kind.value:<10} "
            f"{revision.revision:<9} {str(revision.public):<7} {revision.deployment_id}"
        )


def services_describe(args, cli_overrides=None):
    """Describe a service revision."""
    registry = _open_registry(cli_overrides)
    try:
        revision = registry.get_service(args.name, args.revision)
        deployment = registry.get_deployment(revision.deployment_id)
    except MetaRegistryError as e:
        _fail(str(e))

    print("Service Information")
    print(f"  Name:       {revision.service_name}")
    print(f"  Kind:       {revision.kind.value}")
    print(f"  Revision:   {revision.revision}")
    print(f"  Public:     {revision.public}")
    print(f"  Deployment: {revision.deployment_id}")
    print(f"  Endpoint:   {deployment.endpoint or '-'}")
    print()
    print("Methods")
    print(f"  {'NAME':<24} {'INPUT TYPE':<28} {'OUTPUT TYPE':<28} KEY FIELD")
    for method in revision.methods:
        key = revision.key_definition.get(method.name)
        key_text = f"{key.name} (#{key.number})" if key else ""
        print(f"  {method.name:<24} {method.input_type:<28} {method.output_type:<28} {key_text}")


def deployments_list(args, cli_overrides=None):
    """List registered deployments."""
    registry = _open_registry(cli_overrides)
    deployments = registry.list_deployments()
    if not deployments:
        print("No deployments registered.")
        return

    for deployment in deployments:
        services = ", ".join(deployment.service_names)
        print(f"{deployment.id}  {deployment.endpoint or '-'}  [{services}]")


def deployments_remove(args, cli_overrides=None):
    """Remove a deployment."""
    registry = _open_registry(cli_overrides)
    try:
        registry.remove_deployment(args.deployment_id)
    except MetaRegistryError as e:
        _fail(str(e))
    print(f"✓ Removed deployment {args.deployment_id}")


def explain_code(args):
    """Print documentation for an error code."""
    try:
        entry = explain(args.code)
    except KeyError:
        _fail(f"Unknown error code: {args.code}")

    print(f"{entry['code']}: {entry['title']}")
    print()
    print(entry["description"])
    print()
    print(f"See: {entry['link']}")


def start_server(args, cli_overrides=None):
    """Start the API server."""
    import uvicorn
    from ..api.server import app

    config, _ = load_config(Path.cwd(), cli_overrides)
    configure_logging(config.logging.level, config.logging.json_output)

    print(f"Starting meta-registry API server on {config.server.host}:{config.server.port}")
    uvicorn.run(app, host=config.server.host, port=config.server.port, log_level="info")


def config_validate(args, cli_overrides=None):
    """Validate configuration."""
    try:
        config, sources = load_config(Path.cwd(), cli_overrides)
    except Exception as e:
        print(f"✗ Configuration validation failed: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"✓ Version: {config.version}")
    print(f"✓ Sources: {', '.join(s.name for s in sources)}")
    print(f"✓ Storage: {config.storage.db_path}")
    if config.compatibility.allow_field_rename:
        print("⚠ Warning: field renames are treated as compatible")
    print("\nConfiguration validation completed successfully.")


def config_show(args, cli_overrides=None):
    """Show effective configuration."""
    config, sources = load_config(Path.cwd(), cli_overrides)

    if args.json:
        print(config.model_dump_json(indent=2))
        return

    source_map = {}
    for source in sources:
        _build_source_map(source_map, source.data, source.name)

    _print_config_with_sources(config.model_dump(), source_map)


def _build_source_map(source_map, data, source_name, prefix=""):
    """Build a map of config paths to their sources."""
    for key, value in data.items():
        current_prefix = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict):
            _build_source_map(source_map, value, source_name, current_prefix)
        else:
            source_map[current_prefix] = source_name


def _print_config_with_sources(config_dict, source_map, prefix=""):
    """Print configuration with source information."""
    for key, value in config_dict.items():
        current_prefix = f"{prefix}.{key}" if prefix else key

        if isinstance(value, dict):
            print(f"{current_prefix}:")
            _print_config_with_sources(value, source_map, current_prefix)
        else:
            source = source_map.get(current_prefix, "defaults")
            print(f"{current_prefix}: {value} (from {source})")


if __name__ == "__main__":
    main()
