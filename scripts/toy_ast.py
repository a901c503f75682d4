"""
AST node definitions for the toy language.

Nodes are frozen dataclasses. Sequences are stored as tuples; lists passed to
a constructor are converted, so Block([a, b]) == Block((a, b)).
"""

from dataclasses import dataclass, field
from typing import ClassVar, Tuple, Union


def _freeze(node, name: str) -> None:
    value = getattr(node, name)
    if not isinstance(value, tuple):
        object.__setattr__(node, name, tuple(value))


# =============================================================================
# Expression AST nodes
# =============================================================================

@dataclass(frozen=True)
class Number:
    """Signed 64-bit integer literal."""
    value: int


@dataclass(frozen=True)
class Id:
    """Identifier reference."""
    name: str


@dataclass(frozen=True)
class Not:
    """Logical negation: !operand."""
    operand: 'Expr'


@dataclass(frozen=True)
class BinaryOp:
    """Base for left op right nodes. Subclasses set symbol and precedence."""
    left: 'Expr'
    right: 'Expr'

    symbol: ClassVar[str] = ''
    precedence: ClassVar[int] = 0


@dataclass(frozen=True)
class Equal(BinaryOp):
    symbol = '=='
    precedence = 1


@dataclass(frozen=True)
class NotEqual(BinaryOp):
    symbol = '!='
    precedence = 1


@dataclass(frozen=True)
class Add(BinaryOp):
    symbol = '+'
    precedence = 2


@dataclass(frozen=True)
class Subtract(BinaryOp):
    symbol = '-'
    precedence = 2


@dataclass(frozen=True)
class Multiply(BinaryOp):
    symbol = '*'
    precedence = 3


@dataclass(frozen=True)
class Divide(BinaryOp):
    symbol = '/'
    precedence = 3


@dataclass(frozen=True)
class Call:
    """Function call by name: callee(arg1, arg2, ...)."""
    callee: str
    args: Tuple['Expr', ...] = ()

    def __post_init__(self):
        _freeze(self, 'args')


# Binary operator classes grouped by precedence level, lowest first
BINARY_LEVELS = (
    (Equal, NotEqual),
    (Add, Subtract),
    (Multiply, Divide),
)

BINARY_OPERATORS = {cls.symbol: cls for level in BINARY_LEVELS for cls in level}


# =============================================================================
# Statement AST nodes
# =============================================================================

@dataclass(frozen=True)
class Return:
    expr: 'Expr'


@dataclass(frozen=True)
class Block:
    """Statements in execution order."""
    statements: Tuple['Statement', ...] = ()

    def __post_init__(self):
        _freeze(self, 'statements')


@dataclass(frozen=True)
class If:
    """if (condition) consequence else alternative.

    Both branches are always blocks; a missing else is an empty Block.
    """
    condition: 'Expr'
    consequence: Block
    alternative: Block = field(default_factory=Block)


@dataclass(frozen=True)
class Function:
    """Function declaration: function name(parameters) body."""
    name: str
    parameters: Tuple[str, ...]
    body: Block

    def __post_init__(self):
        _freeze(self, 'parameters')


@dataclass(frozen=True)
class Var:
    """Variable declaration: var name = initializer;"""
    name: str
    initializer: 'Expr'


@dataclass(frozen=True)
class Assignment:
    """Rebinding of an existing name: name = value;"""
    name: str
    value: 'Expr'


@dataclass(frozen=True)
class While:
    condition: 'Expr'
    body: Block


# Union types
Expr = Union[Number, Id, Not, Equal, NotEqual, Add, Subtract, Multiply, Divide, Call]

Statement = Union[Var, Assignment, If, While, Return, Function, Block, Expr]

# Every node the parser can produce
Node = Union[
    Number, Id, Not, Equal, NotEqual, Add, Subtract, Multiply, Divide, Call,
    Var, Assignment, If, While, Return, Function, Block,
]
