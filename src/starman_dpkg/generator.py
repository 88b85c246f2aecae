import dataclasses
import os
from typing import Dict, Iterable, Mapping, Optional

from debian.changelog import Changelog, ChangelogParseError
from debian.deb822 import Deb822
from debian.debian_support import Version

from starman_dpkg.exceptions import (
    BuildContextError,
    GeneratedFileError,
    MissingResourceError,
)
from starman_dpkg.package_config import PackageConfig
from starman_dpkg.resolver import TemplateVariables, resolve_template_variables
from starman_dpkg.substitution import TemplateSubstitution
from starman_dpkg.templates import (
    EXECUTABLE_TEMPLATE_KINDS,
    REQUIRED_TEMPLATE_KINDS,
    TEMPLATE_KINDS,
    debian_file_name,
    load_default_template,
)
from starman_dpkg.util import PKGNAME_REGEX, _info, ensure_dir

DEFAULT_PACKAGE_SECTION = "perl"
DEFAULT_PACKAGE_PRIORITY = "optional"
DEFAULT_ARCHITECTURE = "any"
DEFAULT_PACKAGE_DEPENDS = "debhelper-compat (= 13)"
DEFAULT_PACKAGE_BINARY_DEPENDS = "${misc:Depends}, ${perl:Depends}"


def _format_description(description: str) -> str:
    synopsis, _, extended = description.strip().partition("\n")
    lines = [synopsis.strip()]
    for line in extended.splitlines():
        line = line.rstrip()
        lines.append(f" {line}" if line.strip() else " .")
    return "\n".join(lines)


@dataclasses.dataclass(slots=True, frozen=True)
class BuildContext:
    """Facts about the package being built that do not come from the configuration"""

    package_name: str
    version: str
    author: str
    package_description: str = ""
    package_section: str = DEFAULT_PACKAGE_SECTION
    package_priority: str = DEFAULT_PACKAGE_PRIORITY
    architecture: str = DEFAULT_ARCHITECTURE
    package_depends: str = DEFAULT_PACKAGE_DEPENDS
    package_binary_depends: str = DEFAULT_PACKAGE_BINARY_DEPENDS

    def __post_init__(self) -> None:
        if not PKGNAME_REGEX.fullmatch(self.package_name):
            raise BuildContextError(
                f'The package name "{self.package_name}" is not a valid Debian package name'
            )
        try:
            Version(self.version)
        except ValueError as e:
            raise BuildContextError(
                f'The version "{self.version}" is not a valid Debian version: {e.args[0]}'
            ) from e

    @classmethod
    def from_changelog(
        cls,
        changelog_path: str,
        **overrides: str,
    ) -> "BuildContext":
        """Read the package name, version and maintainer from `debian/changelog`

        Keyword arguments replace the values read from the changelog.
        """
        try:
            with open(changelog_path, encoding="utf-8") as fd:
                changelog = Changelog(fd, max_blocks=1, strict=True)
        except FileNotFoundError as e:
            raise BuildContextError(
                f"Cannot read {changelog_path}: The file does not exist"
            ) from e
        except ChangelogParseError as e:
            raise BuildContextError(f"Cannot parse {changelog_path}: {e}") from e
        if len(changelog) == 0:
            raise BuildContextError(f"Cannot use {changelog_path}: It has no entries")
        values = {
            "package_name": changelog.package,
            "version": str(changelog.version),
            "author": changelog.author,
        }
        values.update(overrides)
        return cls(**values)


class DpkgFileGenerator:
    def __init__(self, config: PackageConfig, context: BuildContext) -> None:
        self.config = config
        self.context = context

    def base_variables(self) -> TemplateVariables:
        context = self.context
        return {
            "package_name": context.package_name,
            "version": context.version,
            "author": context.author,
            "package_description": _format_description(
                context.package_description or f"{context.package_name} web application"
            ),
            "package_section": context.package_section,
            "package_priority": context.package_priority,
            "architecture": context.architecture,
            "package_depends": context.package_depends,
            "package_binary_depends": context.package_binary_depends,
            "psgi_script": self.config.psgi_script,
            "uid": "",
            "webserver_config_link": "",
            "webserver_restart": "",
        }

    def template_for(self, kind: str) -> str:
        override = self.config.template_overrides.get(kind)
        if override is None:
            return load_default_template(kind)
        try:
            with open(override, encoding="utf-8") as fd:
                return fd.read()
        except OSError as e:
            raise MissingResourceError(
                f'Cannot read the {kind} template "{override}": {e.strerror}'
            ) from e

    def variables_for(self, kind: str) -> TemplateVariables:
        return resolve_template_variables(self.config, self.base_variables())

    def generate_file(self, kind: str) -> str:
        template = self.template_for(kind)
        variables = self.variables_for(kind)
        content = TemplateSubstitution(variables).substitute(
            template, f"the {kind} template"
        )
        if kind in REQUIRED_TEMPLATE_KINDS and not content.strip():
            raise GeneratedFileError(
                f"The {kind} template rendered to an empty file, but debian/{kind} is required"
            )
        if kind == "control":
            _verify_control_file(content)
        return content

    def generate_all(
        self,
        kinds: Optional[Iterable[str]] = None,
    ) -> Mapping[str, str]:
        """Render the templates, keyed by their file name below `debian/`"""
        if kinds is None:
            kinds = TEMPLATE_KINDS
        package_name = self.context.package_name
        return {
            debian_file_name(kind, package_name): self.generate_file(kind)
            for kind in kinds
        }

    def write_files(self, output_dir: str) -> Mapping[str, str]:
        ensure_dir(output_dir)
        package_name = self.context.package_name
        written: Dict[str, str] = {}
        for kind in TEMPLATE_KINDS:
            content = self.generate_file(kind)
            path = os.path.join(output_dir, debian_file_name(kind, package_name))
            _info(f"Generating {path}")
            with open(path, "w", encoding="utf-8") as fd:
                fd.write(content)
            os.chmod(path, 0o755 if kind in EXECUTABLE_TEMPLATE_KINDS else 0o644)
            written[kind] = path
        return written


def _verify_control_file(content: str) -> None:
    paragraphs = list(Deb822.iter_paragraphs(content.splitlines()))
    if len(paragraphs) < 2:
        raise GeneratedFileError(
            "The generated debian/control must have a source paragraph and at least one"
            f" binary paragraph, but it has {len(paragraphs)} paragraph(s)"
        )
    if "Source" not in paragraphs[0]:
        raise GeneratedFileError(
            'The first paragraph of the generated debian/control must have a "Source" field'
        )
    for paragraph in paragraphs[1:]:
        if "Package" not in paragraph:
            raise GeneratedFileError(
                'Every binary paragraph of the generated debian/control must have a "Package" field'
            )
