"""Helper that creates or deletes a local volume directory."""

from __future__ import annotations

import argparse
import os
import shutil
import sys

SETUP = "create"
TEARDOWN = "delete"


class ProvisionerError(Exception):
    """Raised when the helper cannot carry out its action."""


def _remove_all(path: str) -> None:
    if not os.path.lexists(path):
        return
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
    else:
        os.remove(path)


def run_action(action: str, path: str) -> None:
    """Create ``path`` (world-writable) or remove it with everything below."""
    if action not in (SETUP, TEARDOWN):
        raise ProvisionerError(f"Incorrect action: {action}")
    if path == "":
        raise ProvisionerError("Path is empty")
    if path == "/":
        raise ProvisionerError("Path cannot be '/'")

    if action == TEARDOWN:
        try:
            _remove_all(path)
        except OSError as exc:
            raise ProvisionerError(f"Cannot remove directory {path}: {exc}") from exc
        return

    previous = os.umask(0)
    try:
        os.makedirs(path, 0o777, exist_ok=True)
    except OSError as exc:
        raise ProvisionerError(f"Cannot create directory {path}: {exc}") from exc
    finally:
        os.umask(previous)


def main(argv: list[str] | None = None) -> int:
    """Parse the command line and run the requested action."""
    parser = argparse.ArgumentParser(prog="k8sdemo-provisioner")
    parser.add_argument("-p", dest="path", default="", help="Absolute path")
    parser.add_argument("-s", dest="size", default="", help="Size in bytes")
    parser.add_argument("-m", dest="mode", default="", help="Dir mode")
    parser.add_argument(
        "-a",
        dest="action",
        default="",
        help=f"Action name. Can be '{SETUP}' or '{TEARDOWN}'",
    )
    args = parser.parse_args(argv)
    try:
        run_action(args.action, args.path)
    except ProvisionerError as exc:
        print(exc, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())