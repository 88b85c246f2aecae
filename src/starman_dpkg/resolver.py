"""Computes the template variables that depend on the package configuration

The variables are substituted into the maintainer scripts and control files
just before each template is rendered. Most keys are set outright, but
`package_binary_depends`, `webserver_config_link` and `webserver_restart`
are appended to, so the values seeded by the caller are preserved.
"""

from typing import Dict, MutableMapping

from starman_dpkg.package_config import PackageConfig

TemplateVariables = Dict[str, str]

BASE_APACHE_MODULES = ("proxy", "proxy_http", "rewrite")

APACHE_CONFIG_LINK = """# Symlink to the apache config for this environment
        rm -f /etc/apache2/sites-available/$PACKAGE
        ln -s /srv/$PACKAGE/config/apache/$PACKAGE.conf /etc/apache2/sites-available/$PACKAGE
"""

NGINX_CONFIG_LINK = """# Symlink to the nginx config for this environment
        rm -f /etc/nginx/sites-available/$PACKAGE
        ln -s /srv/$PACKAGE/config/nginx/$PACKAGE.conf /etc/nginx/sites-available/$PACKAGE
"""

# The init system is picked on the target machine when the maintainer script runs.
APACHE_RESTART = """
        a2ensite $PACKAGE
        mkdir -p /var/log/apache2/$PACKAGE
        if which invoke-rc.d >/dev/null 2>&1; then
            invoke-rc.d apache2 restart
        else
            /etc/init.d/apache2 restart
        fi
"""

NGINX_RESTART = """if which invoke-rc.d >/dev/null 2>&1; then
            invoke-rc.d nginx restart
        else
            /etc/init.d/nginx restart
        fi
"""


def _append(variables: MutableMapping[str, str], key: str, value: str) -> None:
    variables[key] = variables.get(key, "") + value


def apache_enable_modules_command(config: PackageConfig) -> str:
    modules = BASE_APACHE_MODULES + (config.apache_modules or ())
    return "a2enmod " + " ".join(modules)


def resolve_template_variables(
    config: PackageConfig,
    variables: TemplateVariables,
) -> TemplateVariables:
    """Add the configuration dependent variables to `variables`

    Called once per template with a freshly seeded mapping. The mapping is
    updated in place and returned.

    :param config: The validated package configuration
    :param variables: The variables seeded by the caller
    :return: `variables` with the additional variables
    """
    if config.has_uid:
        variables["uid"] = f"--uid {config.uid}"

    variables["starman_port"] = config.starman_port
    variables["starman_workers"] = config.starman_workers
    variables["startup_time"] = str(config.startup_time)

    web_server = config.web_server
    if web_server.uses_apache:
        _append(variables, "package_binary_depends", ", apache2")
        _append(variables, "webserver_config_link", APACHE_CONFIG_LINK)
        _append(
            variables,
            "webserver_restart",
            apache_enable_modules_command(config) + APACHE_RESTART,
        )
    if web_server.uses_nginx:
        _append(variables, "package_binary_depends", ", nginx")
        _append(variables, "webserver_config_link", NGINX_CONFIG_LINK)
        _append(variables, "webserver_restart", NGINX_RESTART)
    return variables
