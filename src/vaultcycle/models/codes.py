"""
Result code vocabulary shared by policies, clients and the orchestrator.

Codes are plain integers on the wire (HTTP status codes); ResultCode names
the small fixed vocabulary policies are written against. A code outside the
vocabulary is still a valid int and simply matches no policy set.
"""

from __future__ import annotations

from enum import IntEnum


class ResultCode(IntEnum):
    """Status codes the remote resource-management API answers with."""

    SUCCESS = 200
    ACCEPTED = 202
    NO_CONTENT = 204
    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404
    CONFLICT = 409
    INTERNAL_ERROR = 500

    @property
    def label(self) -> str:
        """Hyphenated name used in policy configuration ("not-found")."""
        return self.name.lower().replace("_", "-")

    def __str__(self) -> str:
        return f"{self.value} {self.label}"


SUCCESS_CODES: frozenset[int] = frozenset(
    {ResultCode.SUCCESS, ResultCode.ACCEPTED, ResultCode.NO_CONTENT}
)

_BY_LABEL = {code.label: code for code in ResultCode}


def parse_code(value: int | str) -> int:
    """
    Turn a configured code into an int.

    Accepts ints, numeric strings and vocabulary labels in either
    hyphenated or enum spelling ("not-found", "NOT_FOUND").

    Raises:
        ValueError: If a label is not part of the vocabulary
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid result code: {value!r}")
    if isinstance(value, int):
        return int(value)

    text = value.strip()
    if text.isdigit():
        return int(text)

    label = text.lower().replace("_", "-")
    try:
        return int(_BY_LABEL[label])
    except KeyError:
        raise ValueError(f"Unknown result code {value!r}") from None


def describe_code(code: int | None) -> str:
    """Readable form of a code for log lines and error messages."""
    if code is None:
        return "no status"
    try:
        return str(ResultCode(code))
    except ValueError:
        return str(code)
