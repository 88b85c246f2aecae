#!/usr/bin/python3 -B
import argparse
import json
import logging
import sys
import textwrap
import traceback
from typing import Any, Callable, Dict, List, NoReturn, Optional

from starman_dpkg import __version__
from starman_dpkg.config_parser.parser import load_package_config
from starman_dpkg.exceptions import StarmanDpkgRuntimeError
from starman_dpkg.generator import BuildContext, DpkgFileGenerator
from starman_dpkg.templates import TEMPLATE_KINDS
from starman_dpkg.util import (
    ColorizedArgumentParser,
    _error,
    _info,
    _warn,
    change_log_level,
    program_name,
    setup_logging,
)

CommandHandler = Callable[[argparse.Namespace], None]

_COMMANDS: Dict[str, CommandHandler] = {}


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        dest="config_path",
        default="debian/starman-dpkg.yaml",
        metavar="FILE",
        help="The configuration file (defaults to debian/starman-dpkg.yaml)",
    )
    parser.add_argument(
        "--changelog",
        dest="changelog_path",
        default="debian/changelog",
        metavar="FILE",
        help="The changelog to read the package name, version and maintainer from",
    )
    parser.add_argument(
        "--package-name",
        dest="package_name",
        default=None,
        help="Use this package name instead of the one from the changelog",
    )
    parser.add_argument(
        "--version-override",
        dest="version",
        default=None,
        metavar="VERSION",
        help="Use this version instead of the one from the changelog",
    )
    parser.add_argument(
        "--maintainer",
        dest="author",
        default=None,
        help="Use this maintainer instead of the author of the latest changelog entry",
    )
    parser.add_argument(
        "--description",
        dest="package_description",
        default=None,
        help="The package description for debian/control",
    )
    parser.add_argument(
        "--debug",
        dest="debug_mode",
        action="store_true",
        default=False,
        help="Enable debug logging and raw stack traces on errors",
    )


def _register_command(
    name: str,
) -> Callable[[CommandHandler], CommandHandler]:
    def _wrapper(handler: CommandHandler) -> CommandHandler:
        _COMMANDS[name] = handler
        return handler

    return _wrapper


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    description = textwrap.dedent(
        """\
    Generate Debian packaging files for a perlbrew-backed, Starman-based Perl application.

    The configuration is read from a YAML file (debian/starman-dpkg.yaml by default)
    and the package name, version and maintainer from debian/changelog.
    """
    )

    parser: argparse.ArgumentParser = ColorizedArgumentParser(
        description=description,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
        prog=program_name(),
    )
    parser.add_argument("--version", action="version", version=__version__)
    subparsers = parser.add_subparsers(dest="command", required=True)

    check_parser = subparsers.add_parser(
        "check-config",
        help="Validate the configuration without generating anything",
    )
    _add_common_args(check_parser)

    show_parser = subparsers.add_parser(
        "show-variables",
        help="Show the template variables as JSON",
    )
    _add_common_args(show_parser)
    show_parser.add_argument(
        "--template",
        dest="template_kind",
        choices=TEMPLATE_KINDS,
        default="postinst",
        help="Show the variables used for this template (defaults to postinst)",
    )

    generate_parser = subparsers.add_parser(
        "generate",
        help="Generate the packaging files",
    )
    _add_common_args(generate_parser)
    generate_parser.add_argument(
        "--output-dir",
        dest="output_dir",
        default="debian",
        help="Where to write the generated files (defaults to debian)",
    )

    return parser.parse_args(argv)


def _build_context(parsed_args: argparse.Namespace) -> BuildContext:
    overrides = {
        k: v
        for k in ("package_name", "version", "author", "package_description")
        if (v := getattr(parsed_args, k)) is not None
    }
    if {"package_name", "version", "author"} <= overrides.keys():
        return BuildContext(**overrides)
    return BuildContext.from_changelog(parsed_args.changelog_path, **overrides)


def _generator(parsed_args: argparse.Namespace) -> DpkgFileGenerator:
    context = _build_context(parsed_args)
    config = load_package_config(parsed_args.config_path, context.package_name)
    return DpkgFileGenerator(config, context)


@_register_command("check-config")
def _check_config(parsed_args: argparse.Namespace) -> None:
    generator = _generator(parsed_args)
    _info(
        f"The configuration in {parsed_args.config_path} is valid"
        f" (web server: {generator.config.web_server.value})"
    )


@_register_command("show-variables")
def _show_variables(parsed_args: argparse.Namespace) -> None:
    generator = _generator(parsed_args)
    variables = generator.variables_for(parsed_args.template_kind)
    _json_output(variables)


@_register_command("generate")
def _generate(parsed_args: argparse.Namespace) -> None:
    generator = _generator(parsed_args)
    written = generator.write_files(parsed_args.output_dir)
    _info(f"Generated {len(written)} files in {parsed_args.output_dir}")


def _json_output(data: Any) -> None:
    json.dump(
        data,
        sys.stdout,
        indent=2,
        sort_keys=True,
    )
    sys.stdout.write("\n")


def main(argv: Optional[List[str]] = None) -> None:
    setup_logging(reconfigure_logging=True)
    parsed_args = parse_args(argv)
    if parsed_args.command == "show-variables":
        # Keep stdout clean for the JSON output
        setup_logging(log_only_to_stderr=True, reconfigure_logging=True)
    if parsed_args.debug_mode:
        change_log_level(logging.DEBUG)
    try:
        _COMMANDS[parsed_args.command](parsed_args)
    except StarmanDpkgRuntimeError as e:
        if parsed_args.debug_mode:
            _warn(
                "Re-raising original exception to show the full stack trace due to debug mode being active"
            )
            raise e
        _error(e.message)
    except Exception as e:
        _error_w_stack_trace(
            "Unhandled exception (Re-run with --debug to see the raw stack trace)",
            str(e),
            e,
            parsed_args.debug_mode,
        )


def _error_w_stack_trace(
    warning: str,
    error_msg: str,
    stacktrace: BaseException,
    debug_mode: bool,
) -> "NoReturn":
    if debug_mode:
        _warn(
            "Re-raising original exception to show the full stack trace due to debug mode being active"
        )
        raise stacktrace
    _warn(warning)
    _warn("  ----- 8< ---- BEGIN STACK TRACE ---- 8< -----")
    traceback.print_exception(stacktrace)
    _warn("  ----- 8< ---- END STACK TRACE ---- 8< -----")
    _warn("Please file a bug against starman-dpkg with the full output.")
    _error(error_msg)


if __name__ == "__main__":
    main()
