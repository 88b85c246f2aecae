import pathlib

from .version import __version__

# fmt: off
STARMAN_DPKG_DATA_DIR = pathlib.Path(__file__).parent / "data"
# fmt: on
