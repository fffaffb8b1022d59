"""Command-line interface for fhirschema."""

import argparse
import logging
import sys
from pathlib import Path

from fhirschema.config import Config
from fhirschema.control.generator import generate_model
from fhirschema.control.resource_types import ALL_RESOURCE_TYPES, load_resource_types
from fhirschema.deploy.codegen import DdlGenerator
from fhirschema.deploy.exporter import export_plan_to_file, export_plan_yaml
from fhirschema.deploy.plan import DeploymentPlan
from fhirschema.exceptions import ConfigError, FhirSchemaError


def main() -> int:
    """Main entry point."""
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    parser = argparse.ArgumentParser(
        prog="fhirschema",
        description="FHIR persistence schema generator",
    )
    parser.add_argument("--profile", help="Profile section in ~/.fhirschema.cfg")
    parser.add_argument("--schema", help="Data schema name")
    parser.add_argument("--admin-schema", help="Admin schema name")
    parser.add_argument(
        "--resource-types",
        type=Path,
        help="YAML file listing the resource types to generate tables for",
    )
    parser.add_argument(
        "--per-resource-procedures",
        action="store_true",
        default=None,
        help="Also generate one add_resource procedure per resource type",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("resource-types", help="List the resource types in use")
    subparsers.add_parser("plan", help="Show the deployment waves")

    ddl_parser = subparsers.add_parser("ddl", help="Generate the deployment script")
    ddl_parser.add_argument(
        "--output",
        type=Path,
        help="Output file path (default: stdout)",
    )

    export_parser = subparsers.add_parser("export", help="Export the plan as YAML")
    export_parser.add_argument(
        "--output",
        type=Path,
        help="Output file path (default: stdout)",
    )

    args = parser.parse_args()

    if args.command == "resource-types":
        return cmd_resource_types(args)
    elif args.command == "plan":
        return cmd_plan(args)
    elif args.command == "ddl":
        return cmd_ddl(args)
    elif args.command == "export":
        return cmd_export(args)
    else:
        print(f"Command '{args.command}' not yet implemented", file=sys.stderr)
        return 1


def _config_from_args(args: argparse.Namespace) -> Config:
    resource_types = getattr(args, "resource_types", None)
    return Config.from_env(
        schema_name=getattr(args, "schema", None),
        admin_schema_name=getattr(args, "admin_schema", None),
        resource_types_file=str(resource_types) if resource_types else None,
        per_resource_procedures=getattr(args, "per_resource_procedures", None),
        profile=getattr(args, "profile", None),
    )


def _build_plan(args: argparse.Namespace) -> DeploymentPlan:
    config = _config_from_args(args)
    model = generate_model(config)
    return DeploymentPlan.from_model(model)


def cmd_resource_types(args: argparse.Namespace) -> int:
    """List the resource types a schema would be generated for."""
    try:
        config = _config_from_args(args)
        if config.resource_types_file:
            resource_types = load_resource_types(Path(config.resource_types_file))
            source = config.resource_types_file
        else:
            resource_types = list(ALL_RESOURCE_TYPES)
            source = "built-in FHIR R4 list"

        print(f"{len(resource_types)} resource types ({source}):")
        for name in resource_types:
            print(f"  - {name}")
        return 0
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        print(f"Resource type error: {e}", file=sys.stderr)
        return 1


def cmd_plan(args: argparse.Namespace) -> int:
    """Show the deployment waves without rendering statements."""
    try:
        plan = _build_plan(args)

        print(
            f"Deployment plan: {len(plan.objects())} objects in {len(plan.waves)} waves"
        )
        for wave in plan.waves:
            print(f"Wave {wave.index} ({len(wave.objects)} objects):")
            for obj in wave.objects:
                print(f"  {obj.key} v{obj.version}")
        return 0
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except FhirSchemaError as e:
        print(f"Plan error: {e}", file=sys.stderr)
        return 1


def cmd_ddl(args: argparse.Namespace) -> int:
    """Render the full deployment script."""
    try:
        config = _config_from_args(args)
        model = generate_model(config)

        generator = DdlGenerator()
        sql = generator.generate(model.waves(), f"FHIR schema {config.schema_name}")

        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(sql)
            print(f"Wrote {args.output}")
        else:
            print(sql)
        return 0
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except FhirSchemaError as e:
        print(f"Generation error: {e}", file=sys.stderr)
        return 1


def cmd_export(args: argparse.Namespace) -> int:
    """Export the deployment plan as YAML."""
    try:
        plan = _build_plan(args)

        if args.output:
            path = export_plan_to_file(plan, args.output)
            print(f"Exported {len(plan.objects())} objects to {path}")
        else:
            print(export_plan_yaml(plan))
        return 0
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except FhirSchemaError as e:
        print(f"Export error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
