"""
Path pattern compilation.

Route paths are `/`-separated and may contain `{name}` (one segment) and
`{name+}` (greedy, the remaining segments) placeholders, the same syntax the
routing document uses.

Example: "/users/{user_id}/files/{rest+}"
    → "^/users/(?P<user_id>[^/]+)/files/(?P<rest>.+)$"
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Optional, Pattern, Tuple

_PARAM_RE = re.compile(r"\{(\w+)(\+?)\}")


def normalize_path(path: str) -> str:
    """Prefix a missing leading `/`."""
    if not path.startswith("/"):
        return "/" + path
    return path


def _strip_trailing_slash(path: str) -> str:
    if len(path) > 1 and path.endswith("/"):
        return path.rstrip("/") or "/"
    return path


@dataclass(frozen=True)
class PathPattern:
    path: str
    regex: Pattern = field(repr=False, compare=False)
    params: Tuple[str, ...] = ()
    greedy: Optional[str] = None
    shape: str = ""

    @classmethod
    def compile(cls, path: str) -> "PathPattern":
        """
        Compile a route path into a matchable pattern.

        Raises:
            ValueError: a greedy parameter is not the last segment, or a
                parameter name is repeated.
        """
        path = normalize_path(path)
        matchable = _strip_trailing_slash(path)

        regex_parts = []
        shape_parts = []
        params = []
        greedy = None
        cursor = 0
        for m in _PARAM_RE.finditer(matchable):
            literal = matchable[cursor : m.start()]
            regex_parts.append(re.escape(literal))
            shape_parts.append(literal)
            name, plus = m.group(1), m.group(2)
            if name in params:
                raise ValueError(f"Duplicate path parameter {name!r} in {path}")
            if greedy is not None:
                raise ValueError(f"Greedy parameter {{{greedy}+}} must be last in {path}")
            params.append(name)
            if plus:
                greedy = name
                regex_parts.append(f"(?P<{name}>.+)")
                shape_parts.append("{+}")
            else:
                regex_parts.append(f"(?P<{name}>[^/]+)")
                shape_parts.append("{}")
            cursor = m.end()
        tail = matchable[cursor:]
        if greedy is not None and tail:
            raise ValueError(f"Greedy parameter {{{greedy}+}} must be last in {path}")
        regex_parts.append(re.escape(tail))
        shape_parts.append(tail)

        return cls(
            path=path,
            regex=re.compile("^" + "".join(regex_parts) + "$"),
            params=tuple(params),
            greedy=greedy,
            shape="".join(shape_parts),
        )

    def match(self, request_path: str) -> Optional[Dict[str, str]]:
        """Return the captured parameters, or None when the path does not match."""
        m = self.regex.match(_strip_trailing_slash(normalize_path(request_path)))
        if m is None:
            return None
        return m.groupdict()

    @property
    def specificity(self) -> Tuple[int, int, int]:
        """Sort key: literal paths first, then fewer parameters, greedy last."""
        literal_length = len(self.shape.replace("{+}", "").replace("{}", ""))
        return (1 if self.greedy else 0, len(self.params), -literal_length)
