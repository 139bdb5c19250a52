"""Input validation for CLI arguments."""
import sys


def validate_secret_path(path: str) -> None:
    """
    Validate a secret path has a mount and a sub-path.

    Args:
        path: Secret path to validate, e.g. "secret/my-app/config"

    Raises:
        SystemExit with code 2 if validation fails
    """
    stripped = path.strip().strip("/") if path else ""
    if not stripped:
        print("Error: Secret path cannot be empty", file=sys.stderr)
        sys.exit(2)

    mount, _, rest = stripped.partition("/")
    if not mount or not rest or any(not part for part in rest.split("/")):
        print(f"Error: Invalid secret path '{path}'", file=sys.stderr)
        print("\nSecret paths are '<mount>/<path>', without empty segments.", file=sys.stderr)
        print("\nExamples of valid paths:", file=sys.stderr)
        print("  ✓ secret/my-app", file=sys.stderr)
        print("  ✓ kv/team/db/credentials", file=sys.stderr)
        print("\nExamples of invalid paths:", file=sys.stderr)
        print("  ✗ secret (no path below the mount)", file=sys.stderr)
        print("  ✗ secret//db (empty segment)", file=sys.stderr)
        sys.exit(2)
