from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

CONFIG_YAML = YAML(typ="safe", pure=True)

__all__ = [
    "CONFIG_YAML",
    "YAMLError",
]
