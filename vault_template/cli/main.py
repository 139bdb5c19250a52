"""CLI entrypoint for vault-template."""
import sys
import argparse
import logging
from pathlib import Path

from .validators import validate_secret_path

VERSION = "0.1.0"

logger = logging.getLogger(__name__)


def _configure_logging(args):
    """Configure logging to stderr according to -v/-q."""
    verbose = getattr(args, "verbose", 0) or 0
    if getattr(args, "quiet", False):
        level = logging.ERROR
    elif verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        stream=sys.stderr,
        force=True
    )


def _settings_overrides(args):
    """Collect command-line overrides for load_settings."""
    return {
        "address": getattr(args, "address", None),
        "template_path": getattr(args, "template", None),
        "secret_paths": getattr(args, "secrets", None),
        "kv_version": getattr(args, "kv_version", None),
        "timeout": getattr(args, "timeout", None),
        "value_encoding": getattr(args, "encoding", None),
        "renew_token": False if getattr(args, "no_renew", False) else None,
    }


def cmd_version(args):
    """Show version information."""
    print(f"vault-template {VERSION}")


def cmd_render(args):
    """Fetch secrets and render them into the template."""
    from vault_template.secrets.domains.config_loader import load_settings
    from vault_template.secrets.workflows.render import render_template

    settings = load_settings(args.config, overrides=_settings_overrides(args))
    for path in settings.secret_paths:
        validate_secret_path(path)

    result = render_template(settings)

    if result.renewal is not None and not result.renewal.renewed:
        print(f"Warning: token renewal failed: {result.renewal.error}", file=sys.stderr)
    print(
        f"Rendered {settings.template_path}: "
        f"{result.report.total} placeholder(s) across {len(result.report.replaced)} key(s)"
    )
    if result.report.unresolved:
        print(f"Unresolved placeholders: {', '.join(result.report.unresolved)}")
    sys.exit(0)


def cmd_keys(args):
    """List key names stored at one secret path. Values are never printed."""
    from vault_template.secrets.domains.config_loader import load_settings
    from vault_template.secrets.domains.vault_client import VaultClient
    from vault_template.secrets.workflows.aggregate import validate_record

    validate_secret_path(args.path)
    overrides = _settings_overrides(args)
    overrides["secret_paths"] = args.path
    settings = load_settings(args.config, overrides=overrides, require_template=False)

    client = VaultClient.from_settings(settings)
    record = client.fetch_secret(args.path)
    validate_record(record, args.path)
    for key in sorted(record):
        print(key)
    sys.exit(0)


def cmd_placeholders(args):
    """List the placeholder names found in a template."""
    from vault_template.secrets.workflows.substitute import PLACEHOLDER_PATTERN

    template = Path(args.template)
    if not template.is_file():
        print(f"Error: Template file does not exist: {template}", file=sys.stderr)
        sys.exit(1)

    text = template.read_text(encoding="utf-8")
    for name in sorted({m.group(1) for m in PLACEHOLDER_PATTERN.finditer(text)}):
        print(name)
    sys.exit(0)


def _add_store_arguments(parser):
    parser.add_argument(
        "--config",
        help="Path to YAML config file (default: $VAULT_TEMPLATE_CONFIG or ~/.config/vault-template/config.yml)"
    )
    parser.add_argument(
        "--address",
        help="Vault address (overrides VAULT_ADDR)"
    )
    parser.add_argument(
        "--kv-version",
        choices=["1", "2"],
        help="KV secrets engine version (overrides VAULT_KV_VERSION, default 2)"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Per-request timeout in seconds (overrides VAULT_TIMEOUT, default 30)"
    )


def build_parser():
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="vault-template",
        description="Render Vault KV secrets into %KEY% placeholders of a template file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit codes:
  0 - Success
  1 - Runtime error (network, malformed response, invalid key, template I/O, etc.)
  2 - Usage error (invalid arguments, invalid configuration)

Environment variables:
  VAULT_ADDR        - Vault address
  VAULT_TOKEN       - Vault token
  HCL_TEMPLATE      - Template file to render in place
  VAULT_SECRETS     - Comma-separated secret paths, later paths win
  VAULT_KV_VERSION  - KV engine version (1 or 2, default 2)
  VAULT_TIMEOUT     - Per-request timeout in seconds (default 30)
        """
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v info, -vv debug)"
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Only log errors"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser(
        "version",
        help="Show version information",
        description="Display the current version of vault-template"
    )

    render_parser = subparsers.add_parser(
        "render",
        help="Render secrets into a template",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description="""
Fetch every configured secret path and substitute %KEY% placeholders in the
template file in place.

Behavior:
  1. Renews the token (best effort, failure is only reported)
  2. Fetches each path in order; the first failure aborts the run
  3. Later paths win when two paths define the same key
  4. Unknown placeholders are left untouched
  5. The template is either fully rendered or left unchanged
        """
    )
    _add_store_arguments(render_parser)
    render_parser.add_argument(
        "--template",
        help="Template file to render in place (overrides HCL_TEMPLATE)"
    )
    render_parser.add_argument(
        "--secrets",
        help="Comma-separated secret paths (overrides VAULT_SECRETS)"
    )
    render_parser.add_argument(
        "--encoding",
        choices=["raw", "json"],
        help="Value encoding: raw inserts values verbatim, json inserts the JSON-escaped string body"
    )
    render_parser.add_argument(
        "--no-renew",
        action="store_true",
        help="Skip the token renewal call"
    )

    keys_parser = subparsers.add_parser(
        "keys",
        help="List key names at a secret path",
        description="Fetch one secret path and print its key names, one per line. Values are never printed."
    )
    _add_store_arguments(keys_parser)
    keys_parser.add_argument(
        "path",
        help="Secret path, e.g. secret/my-app/config"
    )

    placeholders_parser = subparsers.add_parser(
        "placeholders",
        help="List placeholders in a template",
        description="Print the distinct %NAME% placeholder names found in a template file."
    )
    placeholders_parser.add_argument(
        "template",
        help="Template file"
    )

    return parser


def main(argv=None):
    """Main CLI entrypoint.

    Exit codes:
        0 - Success
        1 - Runtime errors (network, store response, invalid key, template I/O)
        2 - Usage errors (invalid arguments, invalid configuration)
    """
    from vault_template.secrets.domains.errors import ConfigError

    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args)

    if not args.command:
        parser.print_help()
        sys.exit(2)

    try:
        if args.command == "version":
            cmd_version(args)
        elif args.command == "render":
            cmd_render(args)
        elif args.command == "keys":
            cmd_keys(args)
        elif args.command == "placeholders":
            cmd_placeholders(args)
        else:
            parser.print_help()
            sys.exit(2)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
