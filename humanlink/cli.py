#!/usr/bin/env python3
"""
HUMANLINK CLI

Command-line helpers for operators and relayers.

Usage:
    humanlink [--config FILE] [--format json|yaml|text] <command> [subcommand] [options]

Commands:
    commitment  Commitment hash of a stealth meta-address
    inputs      Verifier public inputs for a (derived address, commitment) pair
    state       Query a saved registry state snapshot
    config      Configuration management
    networks    List known networks

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import argparse
import json
import sys
from enum import Enum
from typing import Any, List, Optional

import yaml

from humanlink import __version__
from humanlink.config import ConfigError, get_config_manager
from humanlink.hardening import META_ADDRESS_LENGTH, ValidationError, parse_meta_address
from humanlink.observability import Layer, configure_logging, correlation_scope, get_logger

logger = get_logger("main", Layer.CLI)


class OutputFormat(Enum):
    """Output format options."""
    JSON = "json"
    YAML = "yaml"
    TEXT = "text"


class CLIError(Exception):
    """CLI error with exit code."""
    def __init__(self, message: str, exit_code: int = 1):
        super().__init__(message)
        self.exit_code = exit_code


def format_output(data: Any, fmt: OutputFormat = OutputFormat.JSON) -> str:
    """Format data for output."""
    if fmt == OutputFormat.JSON:
        return json.dumps(data, indent=2, default=str)
    elif fmt == OutputFormat.YAML:
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)
    elif isinstance(data, dict):
        return "\n".join(f"{k}: {v}" for k, v in data.items())
    elif isinstance(data, list):
        return "\n".join(str(item) for item in data)
    return str(data)


class HumanlinkCLI:
    """Main CLI application."""

    def __init__(self):
        self.parser = argparse.ArgumentParser(
            prog="humanlink",
            description="Cross-network human identity registry tools",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        self.parser.add_argument(
            "--version", "-V",
            action="version",
            version=f"humanlink {__version__}",
        )
        self.parser.add_argument(
            "--format", "-f",
            choices=[f.value for f in OutputFormat],
            default="json",
            help="Output format (default: json)",
        )
        self.parser.add_argument(
            "--config", "-c",
            help="YAML configuration file",
        )
        self.parser.add_argument(
            "--quiet", "-q",
            action="store_true",
            help="Suppress error messages",
        )

        self.subparsers = self.parser.add_subparsers(dest="command", help="Commands")
        self._register_commands()

    def _register_commands(self) -> None:
        commitment = self.subparsers.add_parser("commitment", help="Hash a stealth meta-address")
        commitment.add_argument("--meta-address", "-m", required=True, help="Hex-encoded blob")

        inputs = self.subparsers.add_parser("inputs", help="Verifier public inputs")
        inputs.add_argument("--address", "-a", required=True, help="Derived address")
        inputs.add_argument("--commitment", "-H", required=True, help="Commitment hash")

        self._register_state_commands()
        self._register_config_commands()

        self.subparsers.add_parser("networks", help="List known networks")

    def _register_state_commands(self) -> None:
        state = self.subparsers.add_parser("state", help="Query a state snapshot")
        state_sub = state.add_subparsers(dest="subcommand")

        show = state_sub.add_parser("show", help="Summarize a snapshot")
        show.add_argument("--file", required=True, help="Snapshot JSON file")

        linked = state_sub.add_parser("linked", help="Is a meta-address linked")
        linked.add_argument("--file", required=True, help="Snapshot JSON file")
        linked.add_argument("--meta-address", "-m", required=True, help="Hex-encoded blob")

        validate = state_sub.add_parser("validate", help="Check a snapshot against its schema")
        validate.add_argument("--file", required=True, help="Snapshot JSON file")

        human = state_sub.add_parser("human", help="Is an address human-verified")
        human.add_argument("--file", required=True, help="Snapshot JSON file")
        human.add_argument("--address", "-a", required=True, help="Derived address")

    def _register_config_commands(self) -> None:
        config = self.subparsers.add_parser("config", help="Configuration management")
        config_sub = config.add_subparsers(dest="subcommand")

        get = config_sub.add_parser("get", help="Get a configuration value")
        get.add_argument("path", help="Config path (e.g., registry.home_chain_id)")

        set_cmd = config_sub.add_parser("set", help="Set a configuration value")
        set_cmd.add_argument("path", help="Config path")
        set_cmd.add_argument("value", help="New value")

        config_sub.add_parser("show", help="Show full configuration")
        config_sub.add_parser("validate", help="Validate configuration")
        config_sub.add_parser("schema", help="Export configuration schema")

    def run(self, args: Optional[List[str]] = None) -> int:
        """Run the CLI."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 0

        try:
            self._load_config(parsed)
            fmt = OutputFormat(parsed.format)
            with correlation_scope():
                result = self._dispatch(parsed)

            if result is not None:
                print(format_output(result, fmt))

            return 0

        except CLIError as e:
            if not parsed.quiet:
                print(f"Error: {e}", file=sys.stderr)
            return e.exit_code

        except (ConfigError, ValidationError, FileNotFoundError) as e:
            logger.warning(str(e), operation=parsed.command, error_code=type(e).__name__)
            if not parsed.quiet:
                print(f"Error: {e}", file=sys.stderr)
            return 1

    def _load_config(self, args: argparse.Namespace) -> None:
        mgr = get_config_manager()
        if args.config:
            mgr.load_from_file(args.config)
        try:
            configure_logging(
                level=mgr.get("observability.log_level"),
                fmt=mgr.get("observability.log_format"),
            )
        except ValueError as e:
            raise ConfigError(f"Invalid observability.log_level: {e}") from e

    def _dispatch(self, args: argparse.Namespace) -> Any:
        """Dispatch command to handler."""
        cmd = args.command
        subcmd = getattr(args, "subcommand", None)
        if cmd in ("state", "config") and not subcmd:
            raise CLIError(f"Missing subcommand for {cmd}", exit_code=2)

        handler_name = f"_handle_{cmd}_{subcmd}" if subcmd else f"_handle_{cmd}"
        handler = getattr(self, handler_name, None)

        if handler is None:
            raise CLIError(f"Unknown command: {cmd} {subcmd or ''}")

        return handler(args)

    # Commitment handlers
    def _handle_commitment(self, args: argparse.Namespace) -> Any:
        from humanlink.commitment import commitment_of, has_valid_length, split_meta_address

        blob = parse_meta_address(args.meta_address)
        if not has_valid_length(blob):
            raise CLIError(
                f"Meta-address must be {META_ADDRESS_LENGTH} bytes, got {len(blob)}"
            )
        return {
            "commitment_hash": commitment_of(blob),
            "length": len(blob),
            **split_meta_address(blob),
        }

    def _handle_inputs(self, args: argparse.Namespace) -> Any:
        from humanlink.commitment import to_public_inputs

        address_input, commitment_input = to_public_inputs(args.address, args.commitment)
        return {
            "public_inputs": [str(address_input), str(commitment_input)],
            "derived_address": "0x" + format(address_input, "040x"),
            "commitment_hash": "0x" + format(commitment_input, "064x"),
        }

    # State handlers
    def _handle_state_show(self, args: argparse.Namespace) -> Any:
        from humanlink.network import describe_chain
        from humanlink.state import RegistryState

        state = RegistryState.load(args.file)
        return {
            "home_chain_id": state.home_chain_id,
            "instance_id": state.instance_id,
            "home_network": describe_chain(state.home_chain_id),
            "linked_commitments": len(state.linked_commitments),
            "linked_identities": len(state.has_linked),
            "verified_addresses": len(state.verified_addresses),
        }

    def _handle_state_linked(self, args: argparse.Namespace) -> Any:
        from humanlink.commitment import commitment_of, has_valid_length
        from humanlink.state import RegistryState

        state = RegistryState.load(args.file)
        blob = parse_meta_address(args.meta_address)
        if not has_valid_length(blob):
            return {"linked": False, "reason": "invalid_length"}
        commitment = commitment_of(blob)
        return {"commitment_hash": commitment, "linked": commitment in state.linked_commitments}

    def _handle_state_validate(self, args: argparse.Namespace) -> Any:
        from pathlib import Path

        from humanlink.schema import REGISTRY_STATE_SCHEMA, validate_with_schema

        path = Path(args.file)
        if not path.exists():
            raise FileNotFoundError(f"State snapshot not found: {path}")
        try:
            data = json.loads(path.read_text())
        except json.JSONDecodeError as e:
            raise CLIError(f"Invalid JSON in {path}: {e}")
        errors = validate_with_schema(data, REGISTRY_STATE_SCHEMA)
        return {"valid": not errors, "errors": errors}

    def _handle_state_human(self, args: argparse.Namespace) -> Any:
        from humanlink.hardening import normalize_address
        from humanlink.state import RegistryState

        state = RegistryState.load(args.file)
        address = normalize_address(args.address)
        return {"address": address, "human": address in state.verified_addresses}

    # Config handlers
    def _handle_config_get(self, args: argparse.Namespace) -> Any:
        mgr = get_config_manager()
        return {"path": args.path, "value": mgr.get(args.path)}

    def _handle_config_set(self, args: argparse.Namespace) -> Any:
        mgr = get_config_manager()
        mgr.set(args.path, args.value)
        return {"path": args.path, "value": mgr.get(args.path), "status": "updated"}

    def _handle_config_show(self, args: argparse.Namespace) -> Any:
        return get_config_manager().config.to_dict()

    def _handle_config_validate(self, args: argparse.Namespace) -> Any:
        errors = get_config_manager().validate()
        return {"valid": len(errors) == 0, "errors": errors}

    def _handle_config_schema(self, args: argparse.Namespace) -> Any:
        return get_config_manager().export_schema()

    def _handle_networks(self, args: argparse.Namespace) -> Any:
        from humanlink.network import list_chains
        return list_chains()


def main() -> int:
    """CLI entry point."""
    cli = HumanlinkCLI()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
