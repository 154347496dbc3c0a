# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Command-line interface for ghupload.

Usage:
    ghupload <file-path> [<repository>] [options]

Example:
    Upload to the repository of the current checkout:
        ```bash
        $ ghupload dist/tool-1.0.zip
        ```

    Upload under another name, replacing an existing file:
        ```bash
        $ ghupload build.zip acme/tools -n tool-nightly.zip -f
        ```

    Mint and cache a fresh token:
        ```bash
        $ ghupload build.zip acme/tools --reset-token -u octocat
        ```

Exit Codes:

- 0: Success (the file's URL is printed to stdout)
- 1: Error (bad arguments, authentication, conflict, network or storage)

Note:
    Progress goes to stderr so stdout carries only the resulting URL.
    Verbose mode shows full tracebacks on errors for debugging.
    Debug mode implies verbose mode and traces every HTTP request.

"""

from __future__ import annotations

import argparse
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
import sys

from ghupload.auth import Credentials
from ghupload.config import load_effective_config
from ghupload.core import UploadRequest, upload_file
from ghupload.exceptions import GHUploadError, InvalidInvocationError
from ghupload.logging import get_logger, set_global_logger
from ghupload.vcs import default_repository


def _package_version() -> str:
    try:
        return version("ghupload")
    except PackageNotFoundError:
        from ghupload import __version__

        return __version__


def cmd_upload(args: argparse.Namespace) -> int:
    """Handler for the upload command.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    logger = get_logger(verbose=args.verbose, debug=args.debug)
    set_global_logger(logger)

    try:
        config = load_effective_config(args.config)

        repository = args.repository or default_repository()
        if not repository:
            raise InvalidInvocationError(
                "No repository given and none could be read from "
                "'git config remote.origin.url'"
            )

        file_path = Path(args.file) if args.file else None
        description = args.description
        if description is None:
            description = config.description
        request = UploadRequest.create(
            file_path,
            repository,
            display_name=args.name,
            description=description,
            force_overwrite=args.force,
        )
        credentials = Credentials(
            token=args.token,
            username=args.username,
            password=args.password,
            reset_token=args.reset_token,
            skip_tls_verification=args.skip_ssl_verification,
        )

        result = upload_file(request, credentials, config=config)
    except GHUploadError as err:
        print(f"Error: {err}")
        if args.verbose or args.debug:
            import traceback

            traceback.print_exc()
        return 1

    print(result.url)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ghupload",
        usage="%(prog)s <file-path> [<repository>] [options]",
        description="Upload a file to a GitHub repository's downloads.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"ghupload {_package_version()}",
    )
    parser.add_argument(
        "file",
        nargs="?",
        help="Path to the file to upload",
    )
    parser.add_argument(
        "repository",
        nargs="?",
        help="Target repository as owner/name (default: from remote.origin.url)",
    )
    parser.add_argument(
        "-d",
        "--description",
        default=None,
        help="Add a description to the uploaded file",
    )
    parser.add_argument(
        "-n",
        "--name",
        default=None,
        help="New name of the uploaded file",
    )
    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="If a file with that name already exists on the server, replace it",
    )
    parser.add_argument(
        "-t",
        "--token",
        default=None,
        help="API token to use instead of the cached one",
    )
    parser.add_argument(
        "-u",
        "--username",
        default=None,
        help="Username for creating a new token",
    )
    parser.add_argument(
        "-p",
        "--password",
        default=None,
        help="Password for creating a new token",
    )
    parser.add_argument(
        "--reset-token",
        action="store_true",
        help="Create and cache a new token even if one is cached",
    )
    parser.add_argument(
        "--skip-ssl-verification",
        action="store_true",
        help="Do not verify TLS certificates (insecure)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML configuration file (default: $GHUPLOAD_CONFIG)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show progress and high-level status updates",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Show detailed debugging output (implies --verbose)",
    )
    parser.set_defaults(func=cmd_upload)
    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the ghupload CLI.

    This function is registered as the 'ghupload' console script in
    pyproject.toml.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.file:
        parser.print_usage()
        print("Error: No file to upload was given")
        sys.exit(1)

    exit_code = args.func(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
