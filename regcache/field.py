"""Field paths and structured validation errors."""

from __future__ import annotations

import enum
import re
from collections.abc import Iterable, Iterator, Sequence
from typing import Any


class ErrorType(enum.Enum):
    """The kind of problem a validation error reports."""

    REQUIRED = "FieldValueRequired"
    INVALID = "FieldValueInvalid"
    DUPLICATE = "FieldValueDuplicate"
    NOT_SUPPORTED = "FieldValueNotSupported"

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]


_DESCRIPTIONS = {
    ErrorType.REQUIRED: "Required value",
    ErrorType.INVALID: "Invalid value",
    ErrorType.DUPLICATE: "Duplicate value",
    ErrorType.NOT_SUPPORTED: "Unsupported value",
}

# Error types whose message does not repeat the offending value.
_VALUELESS = frozenset({ErrorType.REQUIRED})


class FieldPath:
    """An immutable path to a field, such as ``spec.extensions[0].providerConfig``."""

    __slots__ = ("_parts",)

    def __init__(self, *names: str) -> None:
        self._parts: tuple[str | int, ...] = tuple(names)

    @classmethod
    def _from_parts(cls, parts: tuple[str | int, ...]) -> FieldPath:
        path = cls.__new__(cls)
        path._parts = parts
        return path

    def child(self, *args: str) -> FieldPath:
        """Return the path extended by one or more field names."""
        return self._from_parts(self._parts + tuple(args))

    def index(self, i: int) -> FieldPath:
        """Return the path extended by a list index."""
        return self._from_parts(self._parts + (int(i),))

    def __str__(self) -> str:
        out: list[str] = []
        for part in self._parts:
            if isinstance(part, int):
                out.append(f"[{part}]")
            else:
                if out:
                    out.append(".")
                out.append(part)
        return "".join(out)

    def __repr__(self) -> str:
        return f"FieldPath({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FieldPath):
            return NotImplemented
        return self._parts == other._parts

    def __hash__(self) -> int:
        return hash(self._parts)


def _quote(text: str) -> str:
    escaped = (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\t", "\\t")
        .replace("\r", "\\r")
    )
    return f'"{escaped}"'


def _format_value(value: Any) -> str:
    if isinstance(value, str):
        return _quote(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


class FieldError(Exception):
    """A single validation problem tied to a field path."""

    __hash__ = None  # type: ignore[assignment]

    def __init__(self, type: ErrorType, field: str, bad_value: Any = None, detail: str = "") -> None:
        self.type = type
        self.field = field
        self.bad_value = bad_value
        self.detail = detail
        super().__init__(self._message())

    def _message(self) -> str:
        body = self.type.description
        if self.type not in _VALUELESS:
            body += f": {_format_value(self.bad_value)}"
        if self.detail:
            body += f": {self.detail}"
        return f"{self.field}: {body}" if self.field else body

    def __str__(self) -> str:
        return self._message()

    def __repr__(self) -> str:
        return (
            f"FieldError(type={self.type}, field={self.field!r}, "
            f"bad_value={self.bad_value!r}, detail={self.detail!r})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FieldError):
            return NotImplemented
        return (self.type, self.field, self.bad_value, self.detail) == (
            other.type,
            other.field,
            other.bad_value,
            other.detail,
        )


class ValidationErrors(Exception):
    """Several field errors raised together."""

    def __init__(self, errors: Iterable[FieldError]) -> None:
        self.errors: list[FieldError] = list(errors)
        super().__init__(self._message())

    def _message(self) -> str:
        messages = [str(err) for err in self.errors]
        if len(messages) == 1:
            return messages[0]
        return "[" + ", ".join(messages) + "]"

    def __str__(self) -> str:
        return self._message()

    def __iter__(self) -> Iterator[FieldError]:
        return iter(self.errors)

    def __len__(self) -> int:
        return len(self.errors)

    def __getitem__(self, index: int) -> FieldError:
        return self.errors[index]


def required(path: FieldPath | str, detail: str) -> FieldError:
    """A required field is missing."""
    return FieldError(ErrorType.REQUIRED, str(path), "", detail)


def invalid(path: FieldPath | str, value: Any, detail: str) -> FieldError:
    """A field holds a value that is not valid."""
    return FieldError(ErrorType.INVALID, str(path), value, detail)


def duplicate(path: FieldPath | str, value: Any) -> FieldError:
    """A value occurs more than once where it must be unique."""
    return FieldError(ErrorType.DUPLICATE, str(path), value, "")


def not_supported(path: FieldPath | str, value: Any, supported: Sequence[str]) -> FieldError:
    """A value is not one of the supported values."""
    detail = ""
    if supported:
        detail = "supported values: " + ", ".join(_quote(v) for v in supported)
    return FieldError(ErrorType.NOT_SUPPORTED, str(path), value, detail)


_DNS1123_LABEL = r"[a-z0-9]([-a-z0-9]*[a-z0-9])?"
_DNS1123_SUBDOMAIN = _DNS1123_LABEL + r"(\." + _DNS1123_LABEL + r")*"
_DNS1123_SUBDOMAIN_RE = re.compile(_DNS1123_SUBDOMAIN)
_DNS1123_SUBDOMAIN_MAX_LENGTH = 253
_DNS1123_SUBDOMAIN_MESSAGE = (
    "a lowercase RFC 1123 subdomain must consist of lower case alphanumeric characters, "
    "'-' or '.', and must start and end with an alphanumeric character"
)


def is_dns1123_subdomain(value: str) -> list[str]:
    """Return the reasons why ``value`` is not a DNS subdomain (RFC 1123); empty when valid."""
    errors: list[str] = []
    if len(value) > _DNS1123_SUBDOMAIN_MAX_LENGTH:
        errors.append(f"must be no more than {_DNS1123_SUBDOMAIN_MAX_LENGTH} characters")
    if not _DNS1123_SUBDOMAIN_RE.fullmatch(value):
        errors.append(
            f"{_DNS1123_SUBDOMAIN_MESSAGE} (e.g. 'example.com', "
            f"regex used for validation is '{_DNS1123_SUBDOMAIN}')"
        )
    return errors


def to_aggregate(errors: Iterable[FieldError]) -> ValidationErrors | None:
    """Bundle errors into one exception, dropping repeated messages; None when there are none."""
    unique: list[FieldError] = []
    seen: set[str] = set()
    for err in errors:
        message = str(err)
        if message not in seen:
            seen.add(message)
            unique.append(err)
    if not unique:
        return None
    return ValidationErrors(unique)