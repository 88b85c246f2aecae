from typing import (
    Iterator,
    Union,
    Optional,
    List,
)


class AttributePath(object):
    """Location of a value in the configuration, used for error messages"""

    __slots__ = ("parent", "name")

    def __init__(
        self,
        parent: Optional["AttributePath"],
        key: Optional[Union[str, int]],
    ) -> None:
        self.parent = parent
        self.name = key

    @classmethod
    def root_path(cls) -> "AttributePath":
        return AttributePath(None, None)

    def __bool__(self) -> bool:
        return self.name is not None or self.parent is not None

    @property
    def path(self) -> str:
        segments = list(self._iter_path())
        segments.reverse()
        parts: List[str] = []

        for s in segments:
            k = s.name
            if isinstance(k, int):
                parts.append(f"[{k}]")
            elif k is not None:
                if parts:
                    parts.append(".")
                parts.append(k)
        if not parts:
            return "document root"
        return "".join(parts)

    def __str__(self) -> str:
        return self.path

    def __getitem__(self, item: Union[str, int]) -> "AttributePath":
        return AttributePath(self, item)

    def _iter_path(self) -> Iterator["AttributePath"]:
        current = self
        yield current
        while True:
            parent = current.parent
            if not parent:
                break
            current = parent
            yield current
