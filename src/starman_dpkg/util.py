import argparse
import logging
import os
import re
import sys
from typing import (
    NoReturn,
    Optional,
    Tuple,
    Any,
)

PKGNAME_REGEX = re.compile(r"[a-z0-9][-+.a-z0-9]+", re.ASCII)

_DOUBLE_ESCAPEES = re.compile(r'([\n`$"\\])')
_REGULAR_ESCAPEES = re.compile(r'([\s!"$()*+#;<>?@\[\]\\`|~])')
_DEFAULT_LOGGER: Optional[logging.Logger] = None
_STDOUT_HANDLER: Optional[logging.StreamHandler] = None
_STDERR_HANDLER: Optional[logging.StreamHandler] = None
_LOGGING_SET_UP = False

_COLOR_FORMAT = (
    "{bold}{name}{reset}: {bold}{log_color}{levelnamelower}{reset}: {message}"
)
_COLORLESS_FORMAT = "{name}: {levelnamelower}: {message}"


def _info(msg: str) -> None:
    if _DEFAULT_LOGGER is not None:
        _DEFAULT_LOGGER.info(msg)


def _fallback_print(level: str, msg: str, prog: Optional[str]) -> None:
    me = prog if prog is not None else program_name()
    print(f"{me}: {level}: {msg}", file=sys.stderr)


def _error(msg: str, *, prog: Optional[str] = None) -> "NoReturn":
    if _DEFAULT_LOGGER is not None:
        _DEFAULT_LOGGER.error(msg)
    else:
        _fallback_print("error", msg, prog)
    sys.exit(1)


def _warn(msg: str) -> None:
    if _DEFAULT_LOGGER is not None:
        _DEFAULT_LOGGER.warning(msg)
    else:
        _fallback_print("warning", msg, None)


class ColorizedArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        _error(message, prog=self.prog)


def ensure_dir(path: str) -> None:
    if not os.path.isdir(path):
        os.makedirs(path, mode=0o755, exist_ok=True)


def _backslash_escape(m: re.Match[str]) -> str:
    return "\\" + m.group(0)


def _escape_shell_word(w: str) -> str:
    if _REGULAR_ESCAPEES.search(w) is None:
        return w
    return '"' + _DOUBLE_ESCAPEES.sub(_backslash_escape, w) + '"'


def escape_shell(*args: str) -> str:
    return " ".join(_escape_shell_word(w) for w in args)


def _check_color() -> Tuple[bool, bool, Optional[str]]:
    """Decide whether stdout and stderr get colored output

    STARMAN_DPKG_COLORS takes precedence over DPKG_COLORS. Setting NO_COLOR
    changes the default from "auto" to "never".
    """
    default = "never" if "NO_COLOR" in os.environ else "auto"
    requested = os.environ.get(
        "STARMAN_DPKG_COLORS", os.environ.get("DPKG_COLORS", default)
    )
    bad_request = None
    if requested not in ("auto", "always", "never"):
        bad_request = requested
        requested = "auto"
    if requested == "auto":
        return sys.stdout.isatty(), sys.stderr.isatty(), bad_request
    enable = requested == "always"
    return enable, enable, bad_request


def program_name() -> str:
    name = os.path.basename(sys.argv[0])
    if name.endswith(".py"):
        name = name[:-3]
    if name == "__main__":
        name = os.path.basename(os.path.dirname(sys.argv[0]))
    if name == "starman_dpkg_cmd":
        name = "starman-dpkg"
    return name


class _LogLevelFilter(logging.Filter):
    """Pass records below (or at and above) a level threshold"""

    def __init__(self, threshold: int, above: bool) -> None:
        super().__init__()
        self.threshold = threshold
        self.above = above

    def filter(self, record: logging.LogRecord) -> bool:
        if self.above:
            return record.levelno >= self.threshold
        return record.levelno < self.threshold


def _stream_handler(stream: Any, color: bool) -> logging.StreamHandler:
    if color:
        import colorlog

        handler: logging.StreamHandler = colorlog.StreamHandler(stream)
        handler.setFormatter(
            colorlog.ColoredFormatter(_COLOR_FORMAT, style="{", force_color=True)
        )
    else:
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter(_COLORLESS_FORMAT, style="{"))
    return handler


def _install_record_factory() -> None:
    old_factory = logging.getLogRecordFactory()

    def record_factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
        record = old_factory(*args, **kwargs)
        record.levelnamelower = record.levelname.lower()
        return record

    logging.setLogRecordFactory(record_factory)


def setup_logging(
    *, log_only_to_stderr: bool = False, reconfigure_logging: bool = False
) -> None:
    """Route log records below WARNING to stdout and the rest to stderr

    With `log_only_to_stderr`, everything goes to stderr so stdout stays
    free for machine-readable output.
    """
    global _LOGGING_SET_UP, _DEFAULT_LOGGER, _STDOUT_HANDLER, _STDERR_HANDLER
    if _LOGGING_SET_UP and not reconfigure_logging:
        raise RuntimeError(
            "Logging has already been configured."
            " Use reconfigure_logging=True if you need to reconfigure it"
        )
    stdout_color, stderr_color, bad_request = _check_color()
    if stdout_color or stderr_color:
        try:
            import colorlog  # noqa: F401
        except ImportError:
            stdout_color = stderr_color = False

    low_stream = sys.stdout
    if log_only_to_stderr:
        low_stream = sys.stderr
        stdout_color = stderr_color

    root_logger = logging.getLogger()
    for old_handler in (_STDOUT_HANDLER, _STDERR_HANDLER):
        if old_handler is not None:
            root_logger.removeHandler(old_handler)

    _STDOUT_HANDLER = _stream_handler(low_stream, stdout_color)
    _STDOUT_HANDLER.addFilter(_LogLevelFilter(logging.WARN, False))
    _STDERR_HANDLER = _stream_handler(sys.stderr, stderr_color)
    _STDERR_HANDLER.addFilter(_LogLevelFilter(logging.WARN, True))
    root_logger.addHandler(_STDOUT_HANDLER)
    root_logger.addHandler(_STDERR_HANDLER)

    if not _LOGGING_SET_UP:
        _install_record_factory()

    root_logger.setLevel(logging.INFO)
    _DEFAULT_LOGGER = logging.getLogger(program_name())

    if bad_request:
        _DEFAULT_LOGGER.warning(
            f'Invalid color request "{bad_request}" in STARMAN_DPKG_COLORS or DPKG_COLORS.'
            ' Falling back to "auto".'
        )

    _LOGGING_SET_UP = True


def change_log_level(log_level: int) -> None:
    if _DEFAULT_LOGGER is not None:
        _DEFAULT_LOGGER.setLevel(log_level)
    logging.getLogger().setLevel(log_level)
