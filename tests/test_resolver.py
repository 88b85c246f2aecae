from typing import Dict

import pytest

from starman_dpkg.config_parser.parser import parse_package_config
from starman_dpkg.package_config import PackageConfig, WebServer
from starman_dpkg.resolver import (
    APACHE_CONFIG_LINK,
    NGINX_CONFIG_LINK,
    NGINX_RESTART,
    resolve_template_variables,
)

SEED = {
    "package_binary_depends": "${misc:Depends}, ${perl:Depends}",
    "webserver_config_link": "",
    "webserver_restart": "",
}


def _config(web_server: str, **kwargs) -> PackageConfig:
    raw = {"web_server": web_server, "starman_port": "6000"}
    raw.update(kwargs)
    return parse_package_config(raw, "foo")


def _resolve(config: PackageConfig) -> Dict[str, str]:
    return resolve_template_variables(config, dict(SEED))


def test_apache_only() -> None:
    variables = _resolve(_config("apache"))
    assert (
        variables["package_binary_depends"]
        == "${misc:Depends}, ${perl:Depends}, apache2"
    )
    assert variables["webserver_config_link"] == APACHE_CONFIG_LINK
    restart = variables["webserver_restart"]
    assert restart.startswith("a2enmod proxy proxy_http rewrite\n")
    assert "a2ensite $PACKAGE" in restart
    assert "mkdir -p /var/log/apache2/$PACKAGE" in restart
    assert "invoke-rc.d apache2 restart" in restart
    assert "/etc/init.d/apache2 restart" in restart
    assert "nginx" not in restart
    assert "nginx" not in variables["webserver_config_link"]


def test_nginx_only() -> None:
    variables = _resolve(_config("nginx"))
    assert (
        variables["package_binary_depends"] == "${misc:Depends}, ${perl:Depends}, nginx"
    )
    assert variables["webserver_config_link"] == NGINX_CONFIG_LINK
    assert variables["webserver_restart"] == NGINX_RESTART
    assert "apache" not in variables["webserver_restart"]
    assert "a2enmod" not in variables["webserver_restart"]


def test_all_appends_apache_then_nginx() -> None:
    apache = _resolve(_config("apache"))
    nginx = _resolve(_config("nginx"))
    both = _resolve(_config("all"))
    assert (
        both["package_binary_depends"]
        == "${misc:Depends}, ${perl:Depends}, apache2, nginx"
    )
    assert both["webserver_config_link"] == APACHE_CONFIG_LINK + NGINX_CONFIG_LINK
    assert (
        both["webserver_restart"]
        == apache["webserver_restart"] + nginx["webserver_restart"]
    )


def test_appends_to_existing_values() -> None:
    variables = resolve_template_variables(
        _config("nginx"),
        {
            "package_binary_depends": "libfoo-perl",
            "webserver_config_link": "# existing\n",
            "webserver_restart": "true\n",
        },
    )
    assert variables["package_binary_depends"] == "libfoo-perl, nginx"
    assert variables["webserver_config_link"] == "# existing\n" + NGINX_CONFIG_LINK
    assert variables["webserver_restart"] == "true\n" + NGINX_RESTART


def test_missing_seed_values_are_treated_as_empty() -> None:
    variables = resolve_template_variables(_config("nginx"), {})
    assert variables["package_binary_depends"] == ", nginx"
    assert variables["webserver_config_link"] == NGINX_CONFIG_LINK


def test_apache_modules_are_enabled_in_order() -> None:
    variables = _resolve(_config("apache", apache_modules="ldap ssl"))
    assert "a2enmod proxy proxy_http rewrite ldap ssl\n" in variables["webserver_restart"]


@pytest.mark.parametrize("uid", [782, 0])
def test_uid(uid: int) -> None:
    variables = _resolve(_config("nginx", uid=uid))
    assert variables["uid"] == f"--uid {uid}"


def test_uid_absent_leaves_variable_untouched() -> None:
    variables = _resolve(_config("nginx"))
    assert "uid" not in variables

    seeded = resolve_template_variables(_config("nginx"), {"uid": ""})
    assert seeded["uid"] == ""


def test_starman_variables() -> None:
    variables = _resolve(_config("nginx", starman_workers="8", startup_time=45))
    assert variables["starman_port"] == "6000"
    assert variables["starman_workers"] == "8"
    assert variables["startup_time"] == "45"


def test_defaults_reach_the_variables() -> None:
    variables = _resolve(_config("nginx"))
    assert variables["starman_workers"] == "5"
    assert variables["startup_time"] == "30"


def test_other_variables_are_not_touched() -> None:
    seed = dict(SEED, package_name="foo", psgi_script="script/foo.psgi")
    variables = resolve_template_variables(_config("all", uid=1), seed)
    assert variables["package_name"] == "foo"
    assert variables["psgi_script"] == "script/foo.psgi"
    assert set(variables) == set(SEED) | {
        "package_name",
        "psgi_script",
        "uid",
        "starman_port",
        "starman_workers",
        "startup_time",
    }


def test_returns_the_given_mapping() -> None:
    seed = dict(SEED)
    assert resolve_template_variables(_config("apache"), seed) is seed


@pytest.mark.parametrize("web_server", [w.value for w in WebServer])
def test_resolution_is_repeatable(web_server: str) -> None:
    config = _config(web_server, uid=782, apache_modules="ldap")
    assert _resolve(config) == _resolve(config)
