# src/template_auditor/template/expression.py
import ast
import logging
from typing import FrozenSet, Iterator, Optional

logger = logging.getLogger(__name__)


def parse_expression(code: str) -> Optional[ast.expr]:
    """
    Parses the source of one embedded-code block as a single expression.

    Returns None when the code is not a valid expression (statements such as
    'for x in items', template filters, broken syntax). Callers treat such a
    block as opaque and move on.
    """
    try:
        return ast.parse(code.strip(), mode="eval").body
    except (SyntaxError, ValueError) as e:
        logger.debug("Treating embedded code as opaque (%s): %r", e.__class__.__name__, code)
        return None


def literal_values(expr: Optional[ast.expr]) -> Optional[FrozenSet[str]]:
    """
    Returns every string an expression can statically evaluate to, or None.

    Only plain string literals and conditional expressions whose branches are
    themselves literals qualify. F-strings, names, calls and operators are never
    evaluated, even partially.
    """
    if isinstance(expr, ast.Constant) and isinstance(expr.value, str):
        return frozenset((expr.value,))

    if isinstance(expr, ast.IfExp):
        body = literal_values(expr.body)
        orelse = literal_values(expr.orelse)
        if body is None or orelse is None:
            return None
        return body | orelse

    return None


def string_literal(expr: Optional[ast.expr]) -> Optional[str]:
    """Value of a plain string constant, else None."""
    if isinstance(expr, ast.Constant) and isinstance(expr.value, str):
        return expr.value
    return None


def iter_calls(expr: ast.expr) -> Iterator[ast.Call]:
    """Yields the call nodes of an expression, outermost first."""
    for node in ast.walk(expr):
        if isinstance(node, ast.Call):
            yield node


def callee_name(call: ast.Call) -> Optional[str]:
    """Name of the called function for 'link_to(...)' and 'helpers.link_to(...)'."""
    func = call.func
    if isinstance(func, ast.Name):
        return func.id
    if isinstance(func, ast.Attribute):
        return func.attr
    return None
