"""Boolean condition expressions.

Conditions of iterating and conditional containers are plain strings
such as `i lt 5 and ${ready} = true`. After dynamic content is replaced
they are evaluated here. The grammar is intentionally small:

    expression := conjunction ('or' conjunction)*
    conjunction := comparison ('and' comparison)*
    comparison := operand (operator operand)?
    operand := integer | 'true' | 'false' | '(' expression ')'

Supported comparison operators are `=`, `==`, `!=`, `<`, `<=`, `>`, `>=`
and their word forms `lt`, `lt=`, `gt`, `gt=`.
"""

from operator import eq, ge, gt, le, lt, ne
from re import compile as compile_regex
from typing import TYPE_CHECKING

from pytest_relay.errors import ExpressionError

if TYPE_CHECKING:
    from collections.abc import Callable

type Operand = int | bool

TOKEN_PATTERN = compile_regex(r'\s*(-?\d+|<=|>=|==|!=|<|>|=|\(|\)|[A-Za-z_]\w*=?|\S)')

OPERATORS: dict[str, 'Callable[[Operand, Operand], bool]'] = {
    '=': eq,
    '==': eq,
    '!=': ne,
    '<': lt,
    'lt': lt,
    '<=': le,
    'lt=': le,
    '>': gt,
    'gt': gt,
    '>=': ge,
    'gt=': ge,
}

LITERALS = {
    'true': True,
    'false': False,
}

KEYWORDS = frozenset({'and', 'or', '(', ')'})


def tokenize(expression: str) -> list[str]:
    """Split an expression into tokens.

    Args:
        expression: Condition text with dynamic content already replaced.

    Returns:
        Ordered list of tokens.

    Raises:
        ExpressionError: If a word is neither a literal nor an operator.
    """
    tokens = TOKEN_PATTERN.findall(expression.strip())
    for token in tokens:
        if token.lstrip('-').isdigit():
            continue
        if token.lower() in LITERALS or token in OPERATORS or token in KEYWORDS:
            continue
        raise ExpressionError(f"Unknown operator '{token}'")

    return tokens


class _Parser:
    """Recursive descent evaluator over a token list."""

    def __init__(self, expression: str) -> None:
        self.expression = expression
        self.tokens = tokenize(expression)
        self.position = 0

    def incomplete(self) -> ExpressionError:
        return ExpressionError(
            f"Unable to parse boolean expression '{self.expression}'. "
            'Maybe expression is incomplete!',
        )

    def peek(self) -> str | None:
        if self.position < len(self.tokens):
            return self.tokens[self.position]
        return None

    def take(self) -> str:
        token = self.peek()
        if token is None:
            raise self.incomplete()

        self.position += 1
        return token

    def parse(self) -> bool:
        value = self.disjunction()
        if self.peek() is not None or not isinstance(value, bool):
            raise self.incomplete()

        return value

    def disjunction(self) -> Operand:
        value = self.conjunction()
        while self.peek() == 'or':
            self.take()
            right = self.conjunction()
            value = self.as_bool(value) or self.as_bool(right)

        return value

    def conjunction(self) -> Operand:
        value = self.comparison()
        while self.peek() == 'and':
            self.take()
            right = self.comparison()
            value = self.as_bool(value) and self.as_bool(right)

        return value

    def comparison(self) -> Operand:
        left = self.operand()
        if (token := self.peek()) in OPERATORS:
            self.take()
            right = self.operand()
            return OPERATORS[token](left, right)

        return left

    def operand(self) -> Operand:
        token = self.take()
        if token == '(':
            value = self.disjunction()
            if self.take() != ')':
                raise self.incomplete()
            return value

        if token.lower() in LITERALS:
            return LITERALS[token.lower()]

        if token.lstrip('-').isdigit():
            return int(token)

        raise self.incomplete()

    def as_bool(self, value: Operand) -> bool:
        if not isinstance(value, bool):
            raise self.incomplete()
        return value


def evaluate(expression: str) -> bool:
    """Evaluate a boolean condition expression.

    Args:
        expression: Condition text with dynamic content already replaced.

    Returns:
        The boolean value of the expression.

    Raises:
        ExpressionError: If the expression contains unknown words or
            can not be parsed completely.
    """
    return _Parser(expression).parse()
