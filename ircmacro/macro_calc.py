"""
The arithmetic evaluator used by $calc.

Parsing is done by a koine grammar (grammar/calc_grammar.yaml) that yields
one flat `expr` node per parenthesis level; the Calculator folds each level
with the usual operator precedence.
"""
import math
import operator
from pathlib import Path
from typing import Any, List, Optional

import yaml
from koine import Parser

from ircmacro.macro_debug import _dbg

NAN = float("nan")

# (precedence, right-associative)
_PRECEDENCE = {
    '+': (1, False),
    '-': (1, False),
    '*': (2, False),
    '/': (2, False),
    '%': (2, False),
    '^': (3, True),
}

_APPLY = {
    '+': operator.add,
    '-': operator.sub,
    '*': operator.mul,
    '/': operator.truediv,
    '%': math.fmod,
    '^': math.pow,
}


class _Op(str):
    """Marks an operator term in a flattened expression."""


def format_number(value: float) -> str:
    """Render a result the way scripts expect: integral values without a decimal point."""
    if math.isnan(value) or math.isinf(value):
        return ""
    if value == int(value) and abs(value) < 1e15:
        return str(int(value))
    return f"{value:.15g}"


class Calculator:
    """Evaluates `$calc` expressions; returns NaN instead of raising."""

    _parser: Optional[Parser] = None
    DEFAULT_GRAMMAR = Path(__file__).parent / "grammar" / "calc_grammar.yaml"

    def __init__(self, grammar_path: Optional[str] = None):
        self.grammar_path = grammar_path
        self._own_parser: Optional[Parser] = None

    @staticmethod
    def _load_parser(path) -> Parser:
        with open(path, "r", encoding="utf-8") as f:
            grammar = yaml.safe_load(f)
        return Parser(grammar)

    @property
    def parser(self) -> Parser:
        """The grammar is compiled on first use and shared for the default path."""
        if self.grammar_path is not None:
            if self._own_parser is None:
                self._own_parser = self._load_parser(self.grammar_path)
            return self._own_parser
        if Calculator._parser is None:
            Calculator._parser = self._load_parser(self.DEFAULT_GRAMMAR)
        return Calculator._parser

    def evaluate(self, expr: str) -> float:
        if expr is None or not expr.strip():
            return NAN
        try:
            parse_out = self.parser.parse(expr)
        except Exception as e:
            _dbg("CALC parse raised", repr(expr), e)
            return NAN
        if isinstance(parse_out, dict) and 'status' in parse_out:
            if parse_out.get('status') != 'success':
                _dbg("CALC parse failed", repr(expr), parse_out.get('error_message'))
                return NAN
            ast_node = parse_out.get('ast')
        else:
            ast_node = parse_out
        try:
            value = self._reduce(ast_node)
        except (ArithmeticError, ValueError, TypeError) as e:
            _dbg("CALC eval failed", repr(expr), e)
            return NAN
        if math.isinf(value):
            return NAN
        return value

    # --- AST folding ---

    def _reduce(self, nodes: Any) -> float:
        terms: List[Any] = []
        self._collect(nodes, terms)
        return self._fold(terms)

    def _collect(self, node: Any, terms: List[Any]):
        match node:
            case list():
                for child in node:
                    self._collect(child, terms)
            case {'tag': 'number'}:
                terms.append(self._number(node))
            case {'tag': 'op'}:
                terms.append(_Op(node.get('text', '')))
            case {'tag': 'neg'}:
                terms.append(-self._reduce(node.get('children', [])))
            case {'tag': 'expr' | 'group'}:
                terms.append(self._reduce(node.get('children', [])))
            case dict():
                # Untagged or promoted wrappers: look through them.
                if 'children' in node:
                    self._collect(node['children'], terms)
                elif 'ast' in node:
                    self._collect(node['ast'], terms)

    def _number(self, node: dict) -> float:
        text = node.get('text')
        if isinstance(text, str) and text:
            return float(text)
        return float(node['value'])

    def _fold(self, terms: List[Any]) -> float:
        """Shunting-yard over an alternating operand/operator sequence."""
        if not terms or len(terms) % 2 == 0:
            raise ValueError("malformed expression")
        values: List[float] = []
        ops: List[str] = []

        def apply_top():
            op = ops.pop()
            right = values.pop()
            left = values.pop()
            values.append(_APPLY[op](left, right))

        for i, term in enumerate(terms):
            if i % 2 == 0:
                if isinstance(term, _Op):
                    raise ValueError("operator where operand expected")
                values.append(float(term))
                continue
            if not isinstance(term, _Op) or term not in _PRECEDENCE:
                raise ValueError(f"unknown operator {term!r}")
            prec, right_assoc = _PRECEDENCE[term]
            while ops:
                top_prec = _PRECEDENCE[ops[-1]][0]
                if top_prec > prec or (top_prec == prec and not right_assoc):
                    apply_top()
                else:
                    break
            ops.append(term)
        while ops:
            apply_top()
        return values[0]
