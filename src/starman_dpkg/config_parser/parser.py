import os
from typing import (
    Any,
    Callable,
    IO,
    List,
    Mapping,
    Optional,
    Tuple,
    Union,
)

from starman_dpkg.config_parser.exceptions import (
    ConfigParseError,
    InvalidEnumerationError,
    InvalidTokenError,
    InvalidValueTypeError,
    MissingRequiredFieldError,
    UnknownConfigKeyError,
)
from starman_dpkg.config_parser.util import AttributePath
from starman_dpkg.package_config import (
    APACHE_MODULE_RE,
    DEFAULT_STARMAN_WORKERS,
    DEFAULT_STARTUP_TIME,
    PackageConfig,
    WebServer,
    default_psgi_script,
)
from starman_dpkg.templates import TEMPLATE_OVERRIDE_KEYS
from starman_dpkg.util import _info, escape_shell
from starman_dpkg.yaml import CONFIG_YAML, YAMLError

_PLUGIN_KEYS = frozenset(
    {
        "web_server",
        "starman_port",
        "starman_workers",
        "psgi_script",
        "startup_time",
        "uid",
        "apache_modules",
    }
)
KNOWN_CONFIG_KEYS = _PLUGIN_KEYS | frozenset(TEMPLATE_OVERRIDE_KEYS)

try:
    from Levenshtein import distance
except ImportError:

    def _typo_hint(key: str) -> str:
        _info(
            "Install python3-levenshtein to have starman-dpkg try to detect typos in the configuration."
        )
        return ""

else:

    def _typo_hint(key: str) -> str:
        k_len = len(key)
        matches: List[str] = []
        for acceptable_key in sorted(KNOWN_CONFIG_KEYS):
            if abs(k_len - len(acceptable_key)) > 2:
                continue
            if distance(key, acceptable_key) > 2:
                continue
            matches.append(acceptable_key)
        if not matches:
            return ""
        if len(matches) == 1:
            return f' Perhaps you meant "{matches[0]}"?'
        return " Perhaps you meant one of: " + ", ".join(f'"{m}"' for m in matches)


def _required_key(
    d: Mapping[str, Any],
    key: str,
    attribute_parent_path: AttributePath,
) -> Any:
    v = d.get(key)
    if v is None:
        raise MissingRequiredFieldError(
            f"Missing required key {attribute_parent_path[key].path}."
        )
    return v


def _scalar_str(v: Any, key_path: AttributePath) -> str:
    # Integers are accepted because YAML turns `starman_port: 6000` into an int.
    if isinstance(v, bool) or not isinstance(v, (str, int)):
        raise InvalidValueTypeError(
            f"The key {key_path.path} must be a string or an integer"
        )
    return str(v)


def _integer(v: Any, key_path: AttributePath) -> int:
    if isinstance(v, bool):
        raise InvalidValueTypeError(f"The key {key_path.path} must be an integer")
    if isinstance(v, int):
        return v
    if isinstance(v, str):
        token = v.strip()
        # Only ASCII digits; str.isdigit() also accepts superscripts and the like
        if token.isascii() and token.isdigit():
            return int(token)
    raise InvalidValueTypeError(f"The key {key_path.path} must be an integer")


def _parse_web_server(v: Any, key_path: AttributePath) -> WebServer:
    try:
        return WebServer(v)
    except ValueError:
        valid = ", ".join(w.value for w in WebServer)
        raise InvalidEnumerationError(
            f'The value "{v}" for {key_path.path} is not valid. It must be one of: {valid}'
        ) from None


def parse_apache_modules(
    v: Union[str, List[str], Tuple[str, ...]],
    key_path: AttributePath,
) -> Tuple[str, ...]:
    """Normalize `apache_modules` into a tuple of module names

    A single string is split on runs of whitespace. Each module name must
    consist of lowercase letters and underscores.
    """
    if isinstance(v, str):
        tokens: List[str] = v.split()
    elif isinstance(v, (list, tuple)):
        tokens = list(v)
    else:
        raise InvalidValueTypeError(
            f"The key {key_path.path} must be a string or a list of strings"
        )
    for idx, token in enumerate(tokens):
        if not isinstance(token, str) or not APACHE_MODULE_RE.fullmatch(token):
            raise InvalidTokenError(
                f"The value provided for {key_path.path} does not look like a list of"
                f" whitespace-separated Apache modules: {token!r} (at {key_path[idx].path})"
                " is not a valid module name. Module names consist of lowercase letters (a-z)"
                " and underscores (_)."
            )
    return tuple(tokens)


def _template_overrides(
    raw: Mapping[str, Any],
    attribute_path: AttributePath,
    resolve_path: Callable[[str], str],
) -> Mapping[str, str]:
    overrides = {}
    for key, kind in TEMPLATE_OVERRIDE_KEYS.items():
        v = raw.get(key)
        if v is None:
            continue
        if not isinstance(v, str) or not v:
            raise InvalidValueTypeError(
                f"The key {attribute_path[key].path} must be a non-empty path"
            )
        overrides[kind] = resolve_path(v)
    return overrides


def parse_package_config(
    raw: Mapping[str, Any],
    package_name: str,
    attribute_path: Optional[AttributePath] = None,
    *,
    resolve_path: Callable[[str], str] = lambda p: p,
) -> PackageConfig:
    """Validate raw key/value configuration into a PackageConfig

    :param raw: The configuration as supplied by the user
    :param package_name: Name of the binary package (used for the default `psgi_script`)
    :param attribute_path: Where `raw` was defined; used in error messages
    :param resolve_path: Used to make template override paths absolute
    :return: The validated configuration with defaults applied
    :raises ConfigParseException: if the configuration is invalid
    """
    if attribute_path is None:
        attribute_path = AttributePath.root_path()
    if not isinstance(raw, Mapping):
        raise InvalidValueTypeError(
            f"The configuration at {attribute_path.path} must be a mapping"
        )

    for key in raw:
        if key not in KNOWN_CONFIG_KEYS:
            raise UnknownConfigKeyError(
                f'Unknown key "{key}" at {attribute_path.path}.{_typo_hint(str(key))}'
            )

    web_server = _parse_web_server(
        _required_key(raw, "web_server", attribute_path),
        attribute_path["web_server"],
    )
    starman_port = _scalar_str(
        _required_key(raw, "starman_port", attribute_path),
        attribute_path["starman_port"],
    )

    starman_workers = DEFAULT_STARMAN_WORKERS
    if raw.get("starman_workers") is not None:
        starman_workers = _scalar_str(
            raw["starman_workers"], attribute_path["starman_workers"]
        )

    psgi_script = default_psgi_script(package_name)
    if raw.get("psgi_script") is not None:
        psgi_script = _scalar_str(raw["psgi_script"], attribute_path["psgi_script"])

    startup_time = DEFAULT_STARTUP_TIME
    if raw.get("startup_time") is not None:
        startup_time = _integer(raw["startup_time"], attribute_path["startup_time"])

    uid = None
    if raw.get("uid") is not None:
        uid = _integer(raw["uid"], attribute_path["uid"])

    apache_modules = None
    if raw.get("apache_modules") is not None:
        apache_modules = parse_apache_modules(
            raw["apache_modules"], attribute_path["apache_modules"]
        )

    return PackageConfig(
        web_server=web_server,
        starman_port=starman_port,
        psgi_script=psgi_script,
        starman_workers=starman_workers,
        startup_time=startup_time,
        uid=uid,
        apache_modules=apache_modules,
        template_overrides=_template_overrides(raw, attribute_path, resolve_path),
    )


def _load_yaml(fd: Union[IO[bytes], str], config_path: str) -> Any:
    try:
        return CONFIG_YAML.load(fd)
    except YAMLError as e:
        msg = str(e).rstrip()
        msg += (
            f"\n\nYou can use `yamllint -d relaxed {escape_shell(config_path)}` to validate"
            " the YAML syntax."
        )
        raise ConfigParseError(
            f"Could not parse {config_path} as a YAML document: {msg}"
        ) from e


def load_package_config(
    config_path: str,
    package_name: str,
    *,
    fd: Optional[Union[IO[bytes], str]] = None,
) -> PackageConfig:
    """Read and validate a YAML configuration file

    Relative template override paths are resolved against the directory
    containing the configuration file.
    """
    if fd is None:
        try:
            with open(config_path, "rb") as config_fd:
                data = _load_yaml(config_fd, config_path)
        except FileNotFoundError as e:
            raise ConfigParseError(
                f"The configuration file {config_path} does not exist"
            ) from e
    else:
        data = _load_yaml(fd, config_path)

    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ConfigParseError(
            f"The configuration file {config_path} must contain a mapping at the top level"
        )
    base_dir = os.path.dirname(config_path)

    def _resolve_path(p: str) -> str:
        return os.path.normpath(os.path.join(base_dir, p))

    _info(f"Loading configuration from {config_path}")
    return parse_package_config(
        data,
        package_name,
        AttributePath.root_path(),
        resolve_path=_resolve_path,
    )
