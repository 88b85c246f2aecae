import re
from typing import Mapping, NoReturn, Optional

from starman_dpkg.exceptions import TemplateSubstitutionError

# `{$name}` as used by the templates; shell constructs like `${VAR}` do not match.
SUBST_VAR_RE = re.compile(
    r"""
    ([{][$])

    (
        [A-Za-z_][A-Za-z0-9_]*
    )

    ([}])
""",
    re.VERBOSE,
)


class TemplateSubstitution:
    __slots__ = ("_variables",)

    def __init__(self, variables: Mapping[str, str]) -> None:
        self._variables = dict(variables)

    def _error(
        self,
        msg: str,
        *,
        caused_by: Optional[BaseException] = None,
    ) -> NoReturn:
        raise TemplateSubstitutionError(msg) from caused_by

    def _replacement(self, key: str, definition_source: str) -> str:
        try:
            return self._variables[key]
        except KeyError as e:
            self._error(
                "Cannot resolve {$" + key + "}: it is not a known variable."
                f" The error occurred while trying to process {definition_source}",
                caused_by=e,
            )

    def substitute(self, value: str, definition_source: str) -> str:
        if "{$" not in value:
            return value
        replacement = value
        offset = 0
        for match in SUBST_VAR_RE.finditer(value):
            prefix, matched_key, suffix = match.groups()
            replacement_value = self._replacement(matched_key, definition_source)
            s, e = match.span()
            s += offset
            e += offset
            replacement = replacement[:s] + replacement_value + replacement[e:]
            token_fluff_len = len(prefix) + len(suffix)
            offset += len(replacement_value) - len(matched_key) - token_fluff_len
        return replacement
