"""Tests for boolean condition expressions."""

import pytest

from pytest_relay.errors import ExpressionError
from pytest_relay.expressions import evaluate, tokenize


@pytest.mark.parametrize('expression, expected', (
    pytest.param('true', True, id='literal true'),
    pytest.param('FALSE', False, id='literal false'),
    pytest.param('5 = 5', True, id='equals'),
    pytest.param('5 == 4', False, id='double equals'),
    pytest.param('5 != 4', True, id='not equals'),
    pytest.param('3 lt 5', True, id='word less'),
    pytest.param('5 lt= 5', True, id='word less or equal'),
    pytest.param('5 gt 5', False, id='word greater'),
    pytest.param('5 gt= 5', True, id='word greater or equal'),
    pytest.param('-1 < 0', True, id='negative'),
    pytest.param('2 >= 3', False, id='symbol greater or equal'),
    pytest.param('1 = 1 and 2 = 3', False, id='and'),
    pytest.param('1 = 2 or 3 = 3', True, id='or'),
    pytest.param('true or true and false', True, id='and binds tighter'),
    pytest.param('(true or true) and false', False, id='parentheses'),
    pytest.param('true = (1 lt 2)', True, id='boolean comparison'),
))
def test_evaluate(expression: str, expected: bool) -> None:
    """Evaluate valid expressions."""
    assert evaluate(expression) is expected


def test_tokenize() -> None:
    """Split an expression into words, numbers and operators."""
    assert tokenize('(5 lt= 10)and true') == ['(', '5', 'lt=', '10', ')', 'and', 'true']


@pytest.mark.parametrize('expression, word', (
    pytest.param('i lt 5', 'i', id='unresolved variable'),
    pytest.param('1 xor 2', 'xor', id='unknown word'),
    pytest.param('1 & 2', '&', id='unknown symbol'),
))
def test_unknown_operator(expression: str, word: str) -> None:
    """Reject unknown words."""
    with pytest.raises(ExpressionError, match=rf"^Unknown operator '{word}'$"):
        evaluate(expression)


@pytest.mark.parametrize('expression', (
    pytest.param('', id='empty'),
    pytest.param('5 lt', id='missing operand'),
    pytest.param('true and', id='dangling and'),
    pytest.param('(true', id='unclosed parenthesis'),
    pytest.param('true)', id='extra parenthesis'),
    pytest.param('5', id='not boolean'),
    pytest.param('1 and true', id='integer conjunction'),
))
def test_incomplete_expression(expression: str) -> None:
    """Reject expressions that can not be parsed completely."""
    with pytest.raises(ExpressionError, match=r'Maybe expression is incomplete!$'):
        evaluate(expression)
