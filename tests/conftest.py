import os
import textwrap

import pytest

from starman_dpkg.config_parser.parser import parse_package_config
from starman_dpkg.generator import BuildContext
from starman_dpkg.package_config import PackageConfig

# Keep the log output free of terminal escape sequences
os.environ["STARMAN_DPKG_COLORS"] = "never"


@pytest.fixture()
def build_context() -> BuildContext:
    return BuildContext(
        package_name="foo",
        version="1.0-1",
        author="Jane Doe <jane@example.org>",
        package_description="The foo web application",
    )


@pytest.fixture()
def apache_config() -> PackageConfig:
    return parse_package_config(
        {
            "web_server": "apache",
            "starman_port": "6000",
            "apache_modules": "ldap ssl",
            "uid": 782,
        },
        "foo",
    )


@pytest.fixture()
def nginx_config() -> PackageConfig:
    return parse_package_config(
        {
            "web_server": "nginx",
            "starman_port": 6000,
        },
        "foo",
    )


@pytest.fixture()
def debian_dir(tmp_path):
    d = tmp_path / "debian"
    d.mkdir()
    (d / "changelog").write_text(
        textwrap.dedent(
            """\
        foo (1.2.3-1) unstable; urgency=medium

          * Initial release.

         -- Jane Doe <jane@example.org>  Mon, 05 Oct 2026 12:00:00 +0000
        """
        ),
        encoding="utf-8",
    )
    (d / "starman-dpkg.yaml").write_text(
        textwrap.dedent(
            """\
        web_server: all
        starman_port: 6000
        apache_modules: ldap ssl
        """
        ),
        encoding="utf-8",
    )
    return d


@pytest.fixture(autouse=True)
def isolate_logging(monkeypatch) -> None:
    # The CLI binds its log handlers to the streams captured for that test only
    monkeypatch.setattr("starman_dpkg.util._DEFAULT_LOGGER", None)
