from starman_dpkg.exceptions import StarmanDpkgRuntimeError


class ConfigException(StarmanDpkgRuntimeError):
    pass


class ConfigParseException(ConfigException):
    pass


class ConfigParseError(ConfigParseException):
    """The configuration file could not be read as a YAML document"""


class MissingRequiredFieldError(ConfigParseException):
    pass


class InvalidEnumerationError(ConfigParseException):
    pass


class InvalidTokenError(ConfigParseException):
    pass


class InvalidValueTypeError(ConfigParseException):
    pass


class UnknownConfigKeyError(ConfigParseException):
    pass
