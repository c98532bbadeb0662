from __future__ import annotations

from argparse import ArgumentParser, Namespace, RawTextHelpFormatter
from pathlib import Path


def create_arg_parser() -> ArgumentParser:
    """
    Creates the argument parser for the pyprefab command-line interface.

    Options left unset default to None so that values from a config file are
    only overridden by options the user actually passed.

    Returns:
        ArgumentParser: The configured parser.
    """
    parser = ArgumentParser(
        prog="pyprefab",
        description="generate build system integration for prebuilt native library packages",
        formatter_class=RawTextHelpFormatter)

    parser.add_argument(
        "--abi",
        help="target ABI (Android: all ABIs when omitted; GNU/Linux: the Debian arch name)")

    parser.add_argument(
        "--audit-log",
        metavar="DEST",
        help="audit log destinations, space separated: stdout, stderr, file:<path>\n"
             "(defaults to stderr)")

    parser.add_argument(
        "--build-system",
        help="build system to generate for (e.g. cmake, ndk-build)")

    parser.add_argument(
        "--config",
        type=Path,
        help="optional config file (TOML, YAML or JSON) used as option source")

    parser.add_argument(
        "--config-save",
        type=Path,
        metavar="PATH",
        help="write the merged options to a TOML config file and exit")

    parser.add_argument(
        "--ndk-version",
        type=int,
        help="major version of the NDK used by the consumer (Android only)")

    parser.add_argument(
        "--os-version",
        help="minimum OS version targeted:\n"
             " - Android: the minSdkVersion, e.g. 21\n"
             " - GNU/Linux: the glibc version, e.g. 2.31")

    parser.add_argument(
        "--output",
        type=Path,
        help="output directory; deleted and recreated on every run")

    parser.add_argument(
        "--platform",
        help="target platform (defaults to android)")

    parser.add_argument(
        "--stl",
        help="STL used by the consumer, e.g. c++_shared (Android only)")

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="emit the full audit log instead of warnings and errors only")

    parser.add_argument(
        "-v",
        "--version",
        action="store_true",
        help="show version and exit")

    parser.add_argument(
        "package_paths",
        nargs="*",
        type=Path,
        metavar="PACKAGE_PATH",
        help="package directories to generate for")

    return parser


def parse_cli(argv: list[str] | None = None) -> Namespace:
    parser = create_arg_parser()
    return parser.parse_args(argv)
