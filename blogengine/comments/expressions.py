"""Filter and sort expressions for comment listings.

The admin dashboard sends filters such as ``IsApproved == true and
Author.Contains("bob")`` and orders such as ``DateCreated desc``. They are
parsed into closures over Comment attributes; nothing is ever evaluated as
Python code.

Grammar (keywords are case-insensitive)::

    expr       := or_expr
    or_expr    := and_expr (("or" | "||") and_expr)*
    and_expr   := not_expr (("and" | "&&") not_expr)*
    not_expr   := ("not" | "!") not_expr | comparison
    comparison := operand (("==" | "=" | "!=" | "<" | "<=" | ">" | ">=") operand)?
    operand    := literal | field ("." method "(" literal ")")? | "(" expr ")"
    literal    := string | number | "true" | "false" | "null"
    method     := "Contains" | "StartsWith" | "EndsWith"

    order      := key ("," key)*
    key        := field ("asc" | "ascending" | "desc" | "descending")?
"""

import operator
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import UUID


# Attributes of Comment reachable from expressions
FILTERABLE_FIELDS = frozenset(
    {
        "id",
        "parent_id",
        "post_id",
        "author",
        "email",
        "website",
        "content",
        "ip",
        "date_created",
        "is_approved",
        "is_spam",
        "is_deleted",
        "is_pending",
        "is_pingback",
    }
)

_TOKEN_RE = re.compile(
    r"""
    \s*(?:
        (?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
      | (?P<number>\d+(?:\.\d+)?)
      | (?P<op>==|!=|<=|>=|&&|\|\||[<>=!(),.])
      | (?P<name>[A-Za-z_][A-Za-z0-9_]*)
    )
    """,
    re.VERBOSE,
)

_COMPARISONS: dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "=": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}

_METHODS: dict[str, Callable[[str, str], bool]] = {
    "contains": lambda value, arg: arg in value,
    "startswith": lambda value, arg: value.startswith(arg),
    "endswith": lambda value, arg: value.endswith(arg),
}

_KEYWORD_LITERALS = {"true": True, "false": False, "null": None}

_DIRECTIONS = {"asc": False, "ascending": False, "desc": True, "descending": True}


class InvalidExpressionError(ValueError):
    """Filter or order expression could not be parsed or evaluated."""


Predicate = Callable[[Any], Any]


@dataclass(frozen=True)
class _Token:
    kind: str
    text: str
    pos: int


@dataclass(frozen=True)
class OrderKey:
    """One sort key of an order expression."""

    field: str
    descending: bool = False


def field_name(identifier: str) -> str:
    """Map a dashboard field name to a Comment attribute.

    ``DateCreated`` → ``date_created``, ``IP`` → ``ip``; snake_case names
    pass through.

    Raises:
        InvalidExpressionError: If the field is not filterable
    """
    name = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", identifier).lower()
    if name not in FILTERABLE_FIELDS:
        msg = f"Unknown field: {identifier}"
        raise InvalidExpressionError(msg)
    return name


def _tokenize(expression: str) -> list[_Token]:
    tokens: list[_Token] = []
    pos = 0
    end = len(expression.rstrip())
    while pos < end:
        match = _TOKEN_RE.match(expression, pos)
        if not match or match.end() == pos:
            msg = f"Unexpected character at position {pos}: {expression[pos]!r}"
            raise InvalidExpressionError(msg)
        kind = match.lastgroup or ""
        tokens.append(_Token(kind, match.group(kind), match.start(kind)))
        pos = match.end()
    return tokens


def _unquote(text: str) -> str:
    return re.sub(r"\\(.)", r"\1", text[1:-1])


def _coerce(value: Any, literal: Any) -> Any:
    """Convert a literal to the type of the attribute it is compared with."""
    if isinstance(value, datetime) and isinstance(literal, str):
        try:
            parsed = datetime.fromisoformat(literal)
        except ValueError as e:
            msg = f"Invalid date literal: {literal!r}"
            raise InvalidExpressionError(msg) from e
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return literal


def _normalize(value: Any) -> Any:
    return str(value) if isinstance(value, UUID) else value


class _Parser:
    """Recursive-descent parser producing predicate closures."""

    def __init__(self, expression: str):
        self.expression = expression
        self.tokens = _tokenize(expression)
        self.index = 0

    def parse(self) -> Predicate:
        if not self.tokens:
            msg = "Empty expression"
            raise InvalidExpressionError(msg)
        predicate = self._or()
        if self.index < len(self.tokens):
            token = self.tokens[self.index]
            msg = f"Unexpected token {token.text!r} at position {token.pos}"
            raise InvalidExpressionError(msg)
        return predicate

    # -- token helpers ---------------------------------------------------------

    def _peek(self) -> _Token | None:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def _accept(self, *texts: str) -> _Token | None:
        token = self._peek()
        if token and token.kind in ("op", "name") and token.text.lower() in texts:
            self.index += 1
            return token
        return None

    def _expect(self, text: str) -> None:
        if not self._accept(text):
            token = self._peek()
            found = repr(token.text) if token else "end of expression"
            msg = f"Expected {text!r}, found {found}"
            raise InvalidExpressionError(msg)

    # -- grammar ---------------------------------------------------------------

    def _or(self) -> Predicate:
        left = self._and()
        while self._accept("or", "||"):
            right = self._and()
            left = (lambda a, b: lambda c: bool(a(c)) or bool(b(c)))(left, right)
        return left

    def _and(self) -> Predicate:
        left = self._not()
        while self._accept("and", "&&"):
            right = self._not()
            left = (lambda a, b: lambda c: bool(a(c)) and bool(b(c)))(left, right)
        return left

    def _not(self) -> Predicate:
        if self._accept("not", "!"):
            inner = self._not()
            return lambda c: not inner(c)
        return self._comparison()

    def _comparison(self) -> Predicate:
        left = self._operand()
        token = self._peek()
        if token is None or token.kind != "op" or token.text not in _COMPARISONS:
            return left

        self.index += 1
        compare = _COMPARISONS[token.text]
        right = self._operand()

        def predicate(comment: Any) -> bool:
            lhs, rhs = left(comment), right(comment)
            lhs, rhs = _coerce(rhs, lhs), _coerce(lhs, rhs)
            lhs, rhs = _normalize(lhs), _normalize(rhs)
            if (lhs is None or rhs is None) and token.text not in ("==", "=", "!="):
                return False
            try:
                return compare(lhs, rhs)
            except TypeError as e:
                msg = f"Cannot compare {lhs!r} {token.text} {rhs!r}"
                raise InvalidExpressionError(msg) from e

        return predicate

    def _operand(self) -> Predicate:
        token = self._peek()
        if token is None:
            msg = "Unexpected end of expression"
            raise InvalidExpressionError(msg)

        if self._accept("("):
            inner = self._or()
            self._expect(")")
            return inner

        if token.kind in ("string", "number") or (
            token.kind == "name" and token.text.lower() in _KEYWORD_LITERALS
        ):
            value = self._literal()
            return lambda _c: value

        if token.kind == "name":
            self.index += 1
            attr = field_name(token.text)
            if self._accept("."):
                return self._method_call(attr)
            return lambda c: getattr(c, attr)

        msg = f"Unexpected token {token.text!r} at position {token.pos}"
        raise InvalidExpressionError(msg)

    def _method_call(self, attr: str) -> Predicate:
        token = self._peek()
        if token is None or token.kind != "name" or token.text.lower() not in _METHODS:
            msg = f"Unknown method after {attr!r}"
            raise InvalidExpressionError(msg)
        self.index += 1
        method = _METHODS[token.text.lower()]
        self._expect("(")
        argument = self._literal()
        self._expect(")")
        if not isinstance(argument, str):
            msg = f"{token.text} expects a string argument"
            raise InvalidExpressionError(msg)

        def predicate(comment: Any) -> bool:
            value = getattr(comment, attr)
            return value is not None and method(str(value), argument)

        return predicate

    def _literal(self) -> Any:
        token = self._peek()
        if token is None:
            msg = "Expected a literal, found end of expression"
            raise InvalidExpressionError(msg)
        self.index += 1
        if token.kind == "string":
            return _unquote(token.text)
        if token.kind == "number":
            return float(token.text) if "." in token.text else int(token.text)
        if token.kind == "name" and token.text.lower() in _KEYWORD_LITERALS:
            return _KEYWORD_LITERALS[token.text.lower()]
        msg = f"Expected a literal, found {token.text!r}"
        raise InvalidExpressionError(msg)


def compile_filter(expression: str) -> Callable[[Any], bool]:
    """Compile a filter expression into a predicate over comments.

    Raises:
        InvalidExpressionError: If the expression is malformed
    """
    predicate = _Parser(expression).parse()
    return lambda comment: bool(predicate(comment))


def parse_order(expression: str) -> list[OrderKey]:
    """Parse an order expression such as ``DateCreated desc, Author``."""
    keys: list[OrderKey] = []
    for part in expression.split(","):
        words = part.split()
        if not words or len(words) > 2:
            msg = f"Invalid order clause: {part.strip()!r}"
            raise InvalidExpressionError(msg)
        descending = False
        if len(words) == 2:
            direction = words[1].lower()
            if direction not in _DIRECTIONS:
                msg = f"Invalid sort direction: {words[1]!r}"
                raise InvalidExpressionError(msg)
            descending = _DIRECTIONS[direction]
        keys.append(OrderKey(field=field_name(words[0]), descending=descending))
    return keys


def apply_order(items: Iterable[Any], keys: list[OrderKey]) -> list[Any]:
    """Sort items by the given keys; ties keep their incoming order.

    Missing values sort before present ones in ascending order.
    """
    def sort_key(item: Any, attr: str) -> tuple[bool, Any]:
        value = getattr(item, attr)
        if value is None:
            return (False, 0)
        return (True, _normalize(value))

    ordered = list(items)
    for key in reversed(keys):
        ordered.sort(
            key=lambda item, attr=key.field: sort_key(item, attr),
            reverse=key.descending,
        )
    return ordered
