import dataclasses
import re
from enum import Enum
from typing import Mapping, Optional, Tuple

APACHE_MODULE_RE = re.compile(r"[a-z_]+")

DEFAULT_STARMAN_WORKERS = "5"
DEFAULT_STARTUP_TIME = 30


class WebServer(Enum):
    APACHE = "apache"
    NGINX = "nginx"
    ALL = "all"

    @property
    def uses_apache(self) -> bool:
        return self in (WebServer.APACHE, WebServer.ALL)

    @property
    def uses_nginx(self) -> bool:
        return self in (WebServer.NGINX, WebServer.ALL)


def default_psgi_script(package_name: str) -> str:
    return f"script/{package_name}.psgi"


@dataclasses.dataclass(slots=True, frozen=True)
class PackageConfig:
    """Validated settings for one package build

    Instances are created by `starman_dpkg.config_parser.parser`, which
    applies the defaults and rejects invalid input. `uid` and
    `apache_modules` are None when not configured.
    """

    web_server: WebServer
    starman_port: str
    psgi_script: str
    starman_workers: str = DEFAULT_STARMAN_WORKERS
    startup_time: int = DEFAULT_STARTUP_TIME
    uid: Optional[int] = None
    apache_modules: Optional[Tuple[str, ...]] = None
    template_overrides: Mapping[str, str] = dataclasses.field(
        default_factory=dict, hash=False
    )

    @property
    def has_uid(self) -> bool:
        return self.uid is not None
