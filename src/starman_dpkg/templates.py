import functools
from typing import FrozenSet, Mapping, Tuple

from starman_dpkg import STARMAN_DPKG_DATA_DIR
from starman_dpkg.exceptions import MissingResourceError

TEMPLATE_KINDS: Tuple[str, ...] = (
    "conffiles",
    "control",
    "default",
    "init",
    "install",
    "postinst",
    "postrm",
    "rules",
)
KNOWN_TEMPLATE_KINDS: FrozenSet[str] = frozenset(TEMPLATE_KINDS)

# Templates that must render to a non-empty file for the package to be buildable.
REQUIRED_TEMPLATE_KINDS: FrozenSet[str] = frozenset({"control", "rules"})

EXECUTABLE_TEMPLATE_KINDS: FrozenSet[str] = frozenset(
    {"init", "postinst", "postrm", "rules"}
)


def template_override_key(kind: str) -> str:
    return f"{kind}_template"


TEMPLATE_OVERRIDE_KEYS: Mapping[str, str] = {
    template_override_key(k): k for k in TEMPLATE_KINDS
}


def debian_file_name(kind: str, package_name: str) -> str:
    """The name of the file below `debian/` that a template kind renders to

    The init script and its defaults file are named after the package so
    `dh_installinit` picks them up. Everything else uses the plain name.
    """
    _check_kind(kind)
    if kind in ("control", "rules"):
        return kind
    return f"{package_name}.{kind}"


def _check_kind(kind: str) -> None:
    if kind not in KNOWN_TEMPLATE_KINDS:
        raise ValueError(
            f'Unknown template kind "{kind}". Valid kinds are: {", ".join(TEMPLATE_KINDS)}'
        )


@functools.lru_cache
def load_default_template(kind: str) -> str:
    _check_kind(kind)
    path = STARMAN_DPKG_DATA_DIR / f"{kind}_template_default"
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise MissingResourceError(
            f'The default template for "{kind}" is missing (expected at {path}).'
            " The installation of starman-dpkg appears to be incomplete."
        ) from e
