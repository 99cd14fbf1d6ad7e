import enum


class NodeKind(enum.Enum):
    CONST = "Const"
    VAR = "Var"
    NEG = "Neg"
    ADD = "Add"
    SUB = "Sub"
    MUL = "Mul"
    DIV = "Div"
    POW = "Pow"
    SIN = "Sin"
    COS = "Cos"

    @property
    def arity(self) -> int:
        if self in (NodeKind.CONST, NodeKind.VAR):
            return 0
        if self in (NodeKind.ADD, NodeKind.SUB, NodeKind.MUL, NodeKind.DIV):
            return 2
        return 1
