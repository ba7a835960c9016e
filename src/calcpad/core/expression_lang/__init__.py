"""
calcpad line language.

Tokenizer, parser, evaluator and formatter for the free-form lines of a
calcpad sheet: arithmetic, percentages, units, money, dates and durations.

Usage:
    from calcpad.core.expression_lang import (
        EvalContext, Environment, evaluate, format_value, parse_line,
    )

    env = Environment()
    expr = parse_line("price = $10 + 7%")
    value = evaluate(expr, env, EvalContext(today=date.today()))
    format_value(value)  # "$10.7"
"""

from calcpad.core.expression_lang.environment import Environment
from calcpad.core.expression_lang.evaluator import EvalContext, evaluate
from calcpad.core.expression_lang.formatting import format_value
from calcpad.core.expression_lang.parser import parse_line, parse_tokens
from calcpad.core.expression_lang.tokenizer import Token, TokenKind, tokenize
from calcpad.core.expression_lang.units import convert, lookup_currency, lookup_unit

__all__ = [
    "Environment",
    "EvalContext",
    "Token",
    "TokenKind",
    "convert",
    "evaluate",
    "format_value",
    "lookup_currency",
    "lookup_unit",
    "parse_line",
    "parse_tokens",
    "tokenize",
]
