from typing import cast


class StarmanDpkgRuntimeError(RuntimeError):
    @property
    def message(self) -> str:
        return cast("str", self.args[0])


class TemplateSubstitutionError(StarmanDpkgRuntimeError):
    pass


class MissingResourceError(StarmanDpkgRuntimeError):
    pass


class GeneratedFileError(StarmanDpkgRuntimeError):
    pass


class BuildContextError(StarmanDpkgRuntimeError):
    pass
