"""
S3 Conveyor command line interface.
"""

import argparse
import json
import logging
import os
import sys
from typing import List, Optional

from .config.manager import ConfigManager
from .exceptions import ConveyorError
from .logging_utils import initLogging
from .manager import Manager

# Configure basic logging first
logging.basicConfig(format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", level=logging.WARNING)
logger = logging.getLogger(__name__)


def parseCategory(value: Optional[str]) -> Optional[List[str]]:
    """Split a 'a/b/c' category argument into segments."""
    if value is None:
        return None
    return value.split("/")


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="S3 Conveyor - convey files to and from S3 buckets")
    parser.add_argument(
        "-c",
        "--config",
        default="config.toml",
        help="Path to configuration file (default: config.toml)",
    )
    parser.add_argument(
        "--config-dir",
        action="append",
        help="Directory to search for .toml config files recursively (can be specified multiple times)",
    )
    parser.add_argument(
        "--print-config",
        action="store_true",
        help="Pretty-print loaded configuration and exit",
    )

    subparsers = parser.add_subparsers(dest="command")

    upload = subparsers.add_parser("upload", help="Upload a local file under an obfuscated name")
    upload.add_argument("path")
    upload.add_argument("--category")
    upload.add_argument("--mime-type")

    get = subparsers.add_parser("get", help="Download an object")
    get.add_argument("name")
    get.add_argument("--category")
    get.add_argument("-o", "--output", help="Output file (default: stdout)")

    for command, helpText in (
        ("info", "Print object info as JSON"),
        ("exists", "Check if an object exists (exit code 1 if not)"),
        ("delete", "Delete an object"),
        ("url", "Print the public URL of an object"),
    ):
        sub = subparsers.add_parser(command, help=helpText)
        sub.add_argument("name")
        sub.add_argument("--category")
        if command == "url":
            sub.add_argument("--secure", action="store_true")

    sync = subparsers.add_parser("sync", help="Sync a local directory with a category")
    sync.add_argument("directory")
    sync.add_argument("--category")
    sync.add_argument("--download", action="store_true", help="Download instead of upload")

    args = parser.parse_args(argv)
    if not args.print_config and args.command is None:
        parser.error("a command is required")

    args.config = os.path.abspath(args.config)
    if args.config_dir:
        args.config_dir = [os.path.abspath(dirPath) for dirPath in args.config_dir]

    return args


def runCommand(manager: Manager, args: argparse.Namespace) -> int:
    """Run one CLI command, returning the exit code."""
    category = parseCategory(getattr(args, "category", None))

    match args.command:
        case "upload":
            file = manager.uploadFile(args.path, category, args.mime_type)
            if file is None:
                return 1
            print(manager.getUrl(file.fullFilename))
        case "get":
            data = manager.getConveyor().getObjectRaw(args.name, category)
            if data is None:
                return 1
            if args.output:
                with open(args.output, "wb") as f:
                    f.write(data)
            else:
                sys.stdout.buffer.write(data)
        case "info":
            print(json.dumps(manager.getInfo(args.name, category), indent=2))
        case "exists":
            exists = manager.fileExists(args.name, category)
            print("true" if exists else "false")
            return 0 if exists else 1
        case "delete":
            # Deletion only targets the current category
            manager.getConveyor().setFileCategory(category)
            return 0 if manager.deleteFile(args.name) else 1
        case "url":
            print(manager.getUrl(args.name, category, args.secure))
        case "sync":
            manager.sync(args.directory, category, args.download)
        case _:
            raise ValueError(f"Unknown command: {args.command}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_arguments(argv)

    try:
        configManager = ConfigManager(args.config, args.config_dir)
        initLogging(configManager.getLoggingConfig())

        if args.print_config:
            print(json.dumps(configManager.config, indent=2, default=str))
            return 0

        return runCommand(Manager.fromConfig(configManager), args)
    except ConveyorError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
