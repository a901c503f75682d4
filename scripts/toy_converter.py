"""
Toy AST converter utilities.

Provides:
- to_source(): render an AST node back to toy source text
- program_to_source(): render a parsed program (top-level Block)
- ast_to_dict(): convert an AST to plain dicts/lists for JSON output
"""

from dataclasses import fields
from typing import Any, Dict

from toy_ast import (
    Assignment, BinaryOp, Block, Call, Expr, Function, Id, If, Node, Not,
    Number, Return, Statement, Var, While,
)
from toy_parser import parse

INDENT = '    '

# Precedence of nodes that never need parentheses
_ATOM_PRECEDENCE = 5
_UNARY_PRECEDENCE = 4


# =============================================================================
# Source rendering
# =============================================================================

def _precedence(expr: Expr) -> int:
    if isinstance(expr, BinaryOp):
        return expr.precedence
    if isinstance(expr, Not):
        return _UNARY_PRECEDENCE
    return _ATOM_PRECEDENCE


def _operand_to_source(expr: Expr, minimum: int) -> str:
    text = _expr_to_string(expr)
    if _precedence(expr) < minimum:
        return f"({text})"
    return text


def _expr_to_string(expr: Expr) -> str:
    """Convert an expression node to source text, parenthesizing as needed."""
    if isinstance(expr, Number):
        return str(expr.value)
    elif isinstance(expr, Id):
        return expr.name
    elif isinstance(expr, Call):
        args = ', '.join(_expr_to_string(arg) for arg in expr.args)
        return f"{expr.callee}({args})"
    elif isinstance(expr, Not):
        # ! only applies to a primary
        return f"!{_operand_to_source(expr.operand, _ATOM_PRECEDENCE)}"
    elif isinstance(expr, BinaryOp):
        # Left associative: the right operand needs parens at equal precedence
        left = _operand_to_source(expr.left, expr.precedence)
        right = _operand_to_source(expr.right, expr.precedence + 1)
        return f"{left} {expr.symbol} {right}"
    else:
        raise TypeError(f"not an expression node: {expr!r}")


def _block_to_source(block: Block, depth: int) -> str:
    if not block.statements:
        return "{}"
    lines = [_statement_to_source(stmt, depth + 1) for stmt in block.statements]
    return "{\n" + "\n".join(lines) + "\n" + INDENT * depth + "}"


def _if_to_source(node: If, depth: int) -> str:
    text = f"if ({_expr_to_string(node.condition)}) {_block_to_source(node.consequence, depth)}"
    alternative = node.alternative.statements
    if not alternative:
        return text
    if len(alternative) == 1 and isinstance(alternative[0], If):
        return f"{text} else {_if_to_source(alternative[0], depth)}"
    return f"{text} else {_block_to_source(node.alternative, depth)}"


def _statement_to_source(node: Statement, depth: int = 0) -> str:
    prefix = INDENT * depth
    if isinstance(node, Var):
        return f"{prefix}var {node.name} = {_expr_to_string(node.initializer)};"
    elif isinstance(node, Assignment):
        return f"{prefix}{node.name} = {_expr_to_string(node.value)};"
    elif isinstance(node, Return):
        return f"{prefix}return {_expr_to_string(node.expr)};"
    elif isinstance(node, Block):
        return prefix + _block_to_source(node, depth)
    elif isinstance(node, If):
        return prefix + _if_to_source(node, depth)
    elif isinstance(node, While):
        return (f"{prefix}while ({_expr_to_string(node.condition)}) "
                f"{_block_to_source(node.body, depth)}")
    elif isinstance(node, Function):
        params = ', '.join(node.parameters)
        return f"{prefix}function {node.name}({params}) {_block_to_source(node.body, depth)}"
    else:
        return f"{prefix}{_expr_to_string(node)};"


def to_source(node: Node) -> str:
    """Render a single statement or expression as toy source text."""
    if isinstance(node, (Number, Id, Call, Not, BinaryOp)):
        return _expr_to_string(node)
    return _statement_to_source(node)


def program_to_source(program: Block) -> str:
    """Render a parsed program; the top-level Block gets no braces."""
    return "".join(_statement_to_source(stmt) + "\n" for stmt in program.statements)


# =============================================================================
# Dict conversion
# =============================================================================

def ast_to_dict(node) -> Any:
    """Convert an AST node to nested dicts with a 'type' key per node."""
    if isinstance(node, tuple):
        return [ast_to_dict(item) for item in node]
    if not hasattr(node, '__dataclass_fields__'):
        return node

    result: Dict[str, Any] = {'type': type(node).__name__}
    for f in fields(node):
        result[f.name] = ast_to_dict(getattr(node, f.name))
    return result


def convert_source(source: str) -> Dict[str, Any]:
    """Parse toy source and return the dict form of the program."""
    return ast_to_dict(parse(source))
