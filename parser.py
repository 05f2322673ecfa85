from __future__ import annotations
from fractions import Fraction
from typing import Any, Dict, List, NamedTuple, Optional, Tuple
import logging
import re
import threading

from edag import ExpressionDAG, compile_expr
from errors import DivisionByZero, InvalidInput
from expression import (
    HALF, NEG_ONE, UNDEFINED, Add, Const, Derivative, Expr, Func, Integral, Interval, Limit,
    Matrix, MethodCall, Mul, Num, Piecewise, Pow, Product, Relation, RelKind, Set, Sum, Sym,
    negate,
)
from functions import ALIASES, LATEX_NAMES, REGISTRY, WOLFRAM_NAMES
from number import Number
from printing import GREEK

logger = logging.getLogger(__name__)

DIALECTS = ("plain", "latex", "wolfram")
CACHE_SIZE = 512

# =====================
# Tokens
# =====================


class ExprTok:
    def __init__(self, kind: str, lex: str = "", num: Any = None):
        self.kind, self.lex, self.num = kind, lex, num

    def __repr__(self) -> str:
        return f"ExprTok({self.kind!r}, {self.lex!r})"


_NUMBER = re.compile(r"\d+(?:\.\d*)?(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?")
_WORD = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_SYMBOL_OPS = (
    ("===", "REL"), ("==", "REL"), ("!=", "REL"), ("<=", "REL"), (">=", "REL"),
    ("->", "->"), ("**", "^"), ("<", "REL"), (">", "REL"), ("=", "REL"), ("~", "REL"),
)
_SINGLE = set("+-*/^(),[]{}!")

_OPERAND_START = {"NUM", "ID", "CONST", "FUNC", "(", "[", "{"}
_OPERAND_END = {"NUM", "ID", "CONST", ")", "]", "}", "!"}
_PREFIX_CONTEXT = {"+", "-", "*", "/", "^", "NEG", "(", "[", "{", ",", "REL", "->"}

_REL_KINDS = {
    "=": RelKind.EQ, "==": RelKind.EQ, "!=": RelKind.NE, "<": RelKind.LT, "<=": RelKind.LE,
    ">": RelKind.GT, ">=": RelKind.GE, "~": RelKind.APPROX, "===": RelKind.EQUIV,
}

_PLAIN_CONSTANTS = {
    "pi": "pi", "e": "e", "i": "i", "oo": "oo", "inf": "oo", "infinity": "oo",
    "euler_gamma": "euler_gamma", "phi": "phi", "undefined": "undefined",
}
_WOLFRAM_CONSTANTS = {
    "Pi": "pi", "E": "e", "I": "i", "Infinity": "oo", "EulerGamma": "euler_gamma",
    "GoldenRatio": "phi", "Indeterminate": "undefined", "ComplexInfinity": "undefined",
}
_WOLFRAM_STRUCTURES = {
    "D": "diff", "Integrate": "integrate", "Sum": "sum", "Product": "product", "Limit": "limit",
    "Piecewise": "piecewise", "Interval": "interval", "Sqrt": "sqrt", "Surd": "root",
}


def _number(text: str):
    if any(ch in text for ch in ".eE"):
        return float(text)
    return int(text)


class _Lexer:
    """Shared token emission: unary minus and implicit multiplication."""

    def __init__(self) -> None:
        self.out: List[ExprTok] = []

    @property
    def prev(self) -> Optional[ExprTok]:
        return self.out[-1] if self.out else None

    def emit(self, kind: str, lex: str = "", num: Any = None) -> None:
        prev = self.prev
        if kind in ("-", "+") and (prev is None or prev.kind in _PREFIX_CONTEXT):
            if kind == "+":
                return
            kind = "NEG"
        if kind in _OPERAND_START and prev is not None and prev.kind in _OPERAND_END:
            self.out.append(ExprTok("*", "*"))
        self.out.append(ExprTok(kind, lex or kind, num))

    def emit_number(self, s: str, i: int) -> int:
        m = _NUMBER.match(s, i)
        self.emit("NUM", m.group(0), _number(m.group(0)))
        return m.end()

    def emit_operator(self, s: str, i: int) -> int:
        for text, kind in _SYMBOL_OPS:
            if s.startswith(text, i):
                self.emit(kind, text)
                return i + len(text)
        c = s[i]
        if c in _SINGLE:
            self.emit(c)
            return i + 1
        raise InvalidInput(f"Unexpected char {c!r} at {i}")

    def run(self, text: str) -> List[ExprTok]:
        self.lex(text)
        return self.out

    def lex(self, s: str) -> None:
        raise NotImplementedError


def _next_char(s: str, i: int) -> Tuple[str, int]:
    while i < len(s) and s[i].isspace():
        i += 1
    return (s[i] if i < len(s) else ""), i


class _PlainLexer(_Lexer):
    def lex(self, s: str) -> None:
        i, n = 0, len(s)
        while i < n:
            c = s[i]
            if c.isspace():
                i += 1
                continue
            if c.isdigit() or c == "." and i + 1 < n and s[i + 1].isdigit():
                i = self.emit_number(s, i)
                continue
            if c == "." and self.prev is not None and self.prev.kind in _OPERAND_END:
                m = _WORD.match(s, i + 1)
                if m is None or _next_char(s, m.end())[0] != "(":
                    raise InvalidInput(f"Expected a method call at {i}")
                self.out.append(ExprTok("METHOD", m.group(0)))
                i = m.end()
                continue
            if c.isalpha() or c == "_":
                m = _WORD.match(s, i)
                name = m.group(0)
                i = m.end()
                if name in _PLAIN_CONSTANTS:
                    self.emit("CONST", _PLAIN_CONSTANTS[name])
                elif _next_char(s, i)[0] == "(":
                    self.emit("FUNC", name)
                else:
                    self.emit("ID", name)
                continue
            i = self.emit_operator(s, i)


class _WolframLexer(_Lexer):
    def lex(self, s: str) -> None:
        i, n = 0, len(s)
        brackets: List[str] = []
        while i < n:
            c = s[i]
            if c.isspace():
                i += 1
                continue
            if c.isdigit() or c == "." and i + 1 < n and s[i + 1].isdigit():
                i = self.emit_number(s, i)
                continue
            if c == "." and self.prev is not None and self.prev.kind in _OPERAND_END:
                m = _WORD.match(s, i + 1)
                nxt, j = _next_char(s, m.end()) if m else ("", i)
                if m is None or nxt != "[":
                    raise InvalidInput(f"Expected a method call at {i}")
                self.out.append(ExprTok("METHOD", m.group(0)))
                self.out.append(ExprTok("(", "("))
                brackets.append("call")
                i = j + 1
                continue
            if c.isalpha():
                m = _WORD.match(s, i)
                name = m.group(0)
                i = m.end()
                nxt, j = _next_char(s, i)
                if nxt == "[":
                    head = _WOLFRAM_STRUCTURES.get(name) or WOLFRAM_NAMES.get(name, name)
                    self.emit("FUNC", head)
                    self.out.append(ExprTok("(", "("))
                    brackets.append("call")
                    i = j + 1
                elif name in _WOLFRAM_CONSTANTS:
                    self.emit("CONST", _WOLFRAM_CONSTANTS[name])
                else:
                    self.emit("ID", name)
                continue
            if c == "[":
                raise InvalidInput(f"Unexpected '[' at {i}")
            if c == "]":
                if not brackets or brackets.pop() != "call":
                    raise InvalidInput("Mismatched brackets")
                self.emit(")")
                i += 1
                continue
            if c == "{":
                brackets.append("list")
                self.emit("[")
                i += 1
                continue
            if c == "}":
                if not brackets or brackets.pop() != "list":
                    raise InvalidInput("Mismatched braces")
                self.emit("]")
                i += 1
                continue
            i = self.emit_operator(s, i)


# -----------------
# LaTeX
# -----------------
_COMMAND = re.compile(r"\\([A-Za-z]+|.)")
_LATEX_SKIP = {",", ";", "!", " ", ":", "quad", "qquad", "displaystyle"}
_LATEX_RELATIONS = {
    "neq": "!=", "ne": "!=", "leq": "<=", "le": "<=", "geq": ">=", "ge": ">=",
    "lt": "<", "gt": ">", "approx": "~", "equiv": "===",
}
_LATEX_CONSTANTS = {"pi": "pi", "infty": "oo", "gamma": "euler_gamma", "phi": "phi", "varphi": "phi"}
_LATEX_VAR = r"(\\mathrm\{[^{}]*\}(?:_\{[^{}]*\})?|\\[A-Za-z]+(?:_\{[^{}]*\})?|[A-Za-z](?:_\{[^{}]*\}|_\w)?)"
_LETTERS = re.compile(r"[A-Za-z]+")
_DIFFERENTIAL = re.compile(r"\\,\s*d" + _LATEX_VAR)
_LOOSE_DIFFERENTIAL = re.compile(r"\s+d" + _LATEX_VAR + r"(?![A-Za-z])")
_DERIV_NUM = re.compile(r"d(?:\^\{?(\d+)\}?)?")
_DERIV_DEN = re.compile(r"d\s*" + _LATEX_VAR + r"(?:\^\{?(\d+)\}?)?")
_DIRECTION = re.compile(r"\^\{?([+-])\}?\s*$")
_OTHERWISE = re.compile(r"\s*\\text\{\s*otherwise\s*\}\s*")


def _match_brace(s: str, i: int) -> int:
    """Index of the `}` closing the `{` at s[i]; escaped braces do not count."""
    depth = 0
    j = i
    while j < len(s):
        c = s[j]
        if c == "\\":
            j += 2
            continue
        if c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
            if depth == 0:
                return j
        j += 1
    raise InvalidInput("Unbalanced braces")


def _match_paren(s: str, i: int) -> int:
    depth = 0
    for j in range(i, len(s)):
        if s[j] == "(":
            depth += 1
        elif s[j] == ")":
            depth -= 1
            if depth == 0:
                return j
    raise InvalidInput("Mismatched parens")


def _read_delim(s: str, i: int) -> Tuple[str, int]:
    _, i = _next_char(s, i)
    if s.startswith("\\", i):
        m = _COMMAND.match(s, i)
        return "\\" + m.group(1), m.end()
    if i >= len(s):
        raise InvalidInput("Missing delimiter")
    return s[i], i + 1


def _match_right(s: str, i: int) -> Tuple[int, str, int]:
    """For a \\left ending at i: (start of the matching \\right, its delimiter, index after it)."""
    depth = 1
    for m in re.finditer(r"\\left(?![A-Za-z])|\\right(?![A-Za-z])", s[i:]):
        depth += 1 if m.group(0) == "\\left" else -1
        if depth == 0:
            start = i + m.start()
            delim, end = _read_delim(s, i + m.end())
            return start, delim, end
    raise InvalidInput("\\left without matching \\right")


def _top_level_comma(s: str) -> bool:
    depth = 0
    i = 0
    while i < len(s):
        if s.startswith("\\left", i) and not s[i + 5:i + 6].isalpha():
            depth += 1
            i += 5
            continue
        if s.startswith("\\right", i) and not s[i + 6:i + 7].isalpha():
            depth -= 1
            i += 6
            continue
        c = s[i]
        if c == "\\":
            i += 2
            continue
        if c in "({[":
            depth += 1
        elif c in ")}]":
            depth -= 1
        elif c == "," and depth == 0:
            return True
        i += 1
    return False


def _split_top(s: str, sep: str) -> List[str]:
    """Split on sep outside braces and \\left..\\right groups."""
    parts: List[str] = []
    depth = 0
    start = i = 0
    while i < len(s):
        if s.startswith("\\left", i) and not s[i + 5:i + 6].isalpha():
            depth += 1
            i += 5
            continue
        if s.startswith("\\right", i) and not s[i + 6:i + 7].isalpha():
            depth -= 1
            i += 6
            continue
        if depth == 0 and s.startswith(sep, i):
            parts.append(s[start:i])
            i += len(sep)
            start = i
            continue
        c = s[i]
        if c == "\\":
            i += 2
            continue
        if c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
        i += 1
    parts.append(s[start:])
    return parts


class _LatexLexer(_Lexer):
    def lex(self, s: str) -> None:
        i, n = 0, len(s)
        while i < n:
            c = s[i]
            if c.isspace():
                i += 1
                continue
            if c == "\\":
                i = self._command(s, i)
                continue
            if c.isdigit() or c == "." and i + 1 < n and s[i + 1].isdigit():
                i = self.emit_number(s, i)
                continue
            if c == "." and s.startswith("\\operatorname{", i + 1):
                name, i = self._group(s, i + len("\\operatorname{"))
                self.out.append(ExprTok("METHOD", name.strip()))
                continue
            if c.isalpha():
                i = self._letters(s, i)
                continue
            if c == "{":
                self.emit("(")
                i += 1
                continue
            if c == "}":
                self.emit(")")
                i += 1
                continue
            if c == "[":
                self.emit("(")
                i += 1
                continue
            if c == "]":
                self.emit(")")
                i += 1
                continue
            if c == "^":
                self.emit("^")
                body, i = self._group(s, i + 1)
                self._wrapped(body)
                continue
            if c in "|&_":
                raise InvalidInput(f"Unexpected {c!r} at {i}")
            i = self.emit_operator(s, i)

    # -----------------
    # Helpers
    # -----------------
    def _wrapped(self, body: str) -> None:
        self.emit("(")
        self.lex(body)
        self.emit(")")

    def _group(self, s: str, i: int) -> Tuple[str, int]:
        """Brace group or single atom starting at i: (text, index after it)."""
        c, i = _next_char(s, i)
        if not c:
            raise InvalidInput("Missing argument")
        if c == "{":
            j = _match_brace(s, i)
            return s[i + 1:j], j + 1
        if c == "\\":
            m = _COMMAND.match(s, i)
            return m.group(0), m.end()
        return c, i + 1

    def _operand(self, s: str, i: int) -> Tuple[str, int]:
        """Parenthesised operand (\\left(..\\right), (..) or {..}) or a single atom."""
        c, i = _next_char(s, i)
        if s.startswith("\\left", i):
            delim, j = _read_delim(s, i + 5)
            start, _, end = _match_right(s, j)
            return s[j:start], end
        if c == "(":
            j = _match_paren(s, i)
            return s[i + 1:j], j + 1
        return self._group(s, i)

    def _scripts(self, s: str, i: int) -> Tuple[Optional[str], Optional[str], int]:
        sub = sup = None
        while True:
            c, j = _next_char(s, i)
            if c == "_" and sub is None:
                sub, i = self._group(s, j + 1)
            elif c == "^" and sup is None:
                sup, i = self._group(s, j + 1)
            else:
                return sub, sup, i

    def _args(self, name: str, parts: List[Optional[str]]) -> None:
        self.emit("FUNC", name)
        self.emit("(")
        for k, part in enumerate(parts):
            if k:
                self.emit(",")
            self.lex(part)
        self.emit(")")

    def _letters(self, s: str, i: int) -> int:
        m = _LETTERS.match(s, i)
        word = m.group(0)
        nxt, k = _next_char(s, m.end())
        called = nxt == "(" or s.startswith("\\left", k)
        if len(word) > 1 and (word in REGISTRY or word in ALIASES) and called:
            self.emit("FUNC", word)
            return m.end()
        name, j = word[0], i + 1
        if s.startswith("_", j):
            sub, j = self._group(s, j + 1)
            name = f"{name}_{sub.strip()}"
        elif name in ("e", "i"):
            self.emit("CONST", name)
            return j
        self.emit("ID", name)
        return j

    # -----------------
    # Commands
    # -----------------
    def _command(self, s: str, i: int) -> int:
        m = _COMMAND.match(s, i)
        if m is None:
            raise InvalidInput("Dangling backslash")
        name, j = m.group(1), m.end()
        if name in _LATEX_SKIP:
            return j
        if name == "{":
            self.emit("{")
            return j
        if name == "}":
            self.emit("}")
            return j
        if name == "left":
            return self._left(s, j)
        if name == "right":
            _, j = _read_delim(s, j)
            self.emit(")")
            return j
        if name in ("lfloor", "lceil"):
            self.emit("FUNC", "floor" if name == "lfloor" else "ceiling")
            self.emit("(")
            return j
        if name in ("rfloor", "rceil"):
            self.emit(")")
            return j
        if name in ("cdot", "times"):
            self.emit("*")
            return j
        if name == "div":
            self.emit("/")
            return j
        if name in _LATEX_RELATIONS:
            self.emit("REL", _LATEX_RELATIONS[name])
            return j
        if name in _LATEX_CONSTANTS:
            self.emit("CONST", _LATEX_CONSTANTS[name])
            return j
        if name in ("frac", "dfrac", "tfrac"):
            return self._frac(s, j)
        if name == "sqrt":
            return self._sqrt(s, j)
        if name in ("mathrm", "text", "mathit", "operatorname"):
            return self._named(s, j, name == "operatorname")
        if name == "log":
            return self._log(s, j)
        if name == "int":
            return self._int(s, j)
        if name in ("sum", "prod"):
            return self._big(s, j, "sum" if name == "sum" else "product")
        if name == "lim":
            return self._lim(s, j)
        if name == "begin":
            return self._environment(s, j)
        if name in GREEK:
            return self._subscripted(s, j, name)
        head = LATEX_NAMES.get("\\" + name)
        if head is not None:
            return self._function(s, j, head)
        raise InvalidInput(f"Unsupported LaTeX command \\{name}")

    def _subscripted(self, s: str, j: int, name: str) -> int:
        if s.startswith("_", j):
            sub, j = self._group(s, j + 1)
            name = f"{name}_{sub.strip()}"
        self.emit("ID", name)
        return j

    def _function(self, s: str, j: int, head: str) -> int:
        self.emit("FUNC", head)
        c, k = _next_char(s, j)
        if c in ("(", "{") or s.startswith("\\left", k):
            return j
        body, j = self._group(s, k)
        self._wrapped(body)
        return j

    def _left(self, s: str, j: int) -> int:
        delim, j = _read_delim(s, j)
        if delim in ("\\lfloor", "\\lceil"):
            self.emit("FUNC", "floor" if delim == "\\lfloor" else "ceiling")
            self.emit("(")
            return j
        start, right, end = _match_right(s, j)
        inner = s[j:start]
        if delim == "|":
            self._args("abs", [inner])
        elif delim == "\\{":
            self.emit("{")
            self.lex(inner)
            self.emit("}")
        elif self.prev is not None and self.prev.kind in ("FUNC", "METHOD"):
            self.emit("(")
            self.lex(inner)
            self.emit(")")
        elif _top_level_comma(inner):
            lo, hi = _split_top(inner, ",")
            self._args("interval", [lo, hi, "1" if delim == "(" else "0", "1" if right == ")" else "0"])
        else:
            self._wrapped(inner)
        return end

    def _frac(self, s: str, j: int) -> int:
        num, j = self._group(s, j)
        den, j = self._group(s, j)
        top = _DERIV_NUM.fullmatch(num.strip())
        bottom = _DERIV_DEN.fullmatch(den.strip())
        if top and bottom:
            body, j = self._operand(s, j)
            parts = [body, bottom.group(1)]
            order = top.group(1) or bottom.group(2)
            if order and order != "1":
                parts.append(order)
            self._args("diff", parts)
            return j
        self.emit("(")
        self._wrapped(num)
        self.emit("/")
        self._wrapped(den)
        self.emit(")")
        return j

    def _sqrt(self, s: str, j: int) -> int:
        c, k = _next_char(s, j)
        index = None
        if c == "[":
            end = s.index("]", k)
            index, j = s[k + 1:end], end + 1
        body, j = self._group(s, j)
        self._args("root" if index else "sqrt", [body, index] if index else [body])
        return j

    def _named(self, s: str, j: int, operator: bool) -> int:
        text, j = self._group(s, j)
        text = text.strip()
        c, k = _next_char(s, j)
        if operator and (c in ("(", "{") or s.startswith("\\left", k)):
            head = LATEX_NAMES.get(f"\\operatorname{{{text}}}", text)
            self.emit("FUNC", head)
            return j
        if text == "undefined":
            self.emit("CONST", "undefined")
            return j
        return self._subscripted(s, j, text)

    def _log(self, s: str, j: int) -> int:
        if not s.startswith("_", _next_char(s, j)[1]):
            return self._function(s, j, "ln")
        base, j = self._group(s, _next_char(s, j)[1] + 1)
        body, j = self._operand(s, j)
        self._args("log", [body, base])
        return j

    def _int(self, s: str, j: int) -> int:
        lo, hi, j = self._scripts(s, j)
        m = _DIFFERENTIAL.search(s, j + 1) or _LOOSE_DIFFERENTIAL.search(s, j + 1)
        if m is None:
            raise InvalidInput("Integral without a differential")
        parts = [s[j:m.start()], m.group(1)]
        if lo is not None and hi is not None:
            parts += [lo, hi]
        self._args("integrate", parts)
        return m.end()

    def _big(self, s: str, j: int, name: str) -> int:
        sub, sup, j = self._scripts(s, j)
        if sub is None:
            raise InvalidInput(f"\\{name} needs an index")
        body, j = self._operand(s, j)
        var, eq, lower = sub.partition("=")
        parts = [body, var]
        if eq and sup is not None:
            parts += [lower, sup]
        self._args(name, parts)
        return j

    def _lim(self, s: str, j: int) -> int:
        sub, _, j = self._scripts(s, j)
        if sub is None:
            raise InvalidInput("\\lim needs a subscript")
        pieces = re.split(r"\\to|\\rightarrow|->", sub, maxsplit=1)
        if len(pieces) != 2:
            raise InvalidInput("\\lim subscript must read 'x \\to a'")
        var, point = pieces
        parts = [None, var]
        d = _DIRECTION.search(point)
        if d:
            point = point[:d.start()]
        parts.append(point)
        if d:
            parts.append("1" if d.group(1) == "+" else "-1")
        body, j = self._operand(s, j)
        parts[0] = body
        self._args("limit", parts)
        return j

    def _environment(self, s: str, j: int) -> int:
        env, j = self._group(s, j)
        end_tag = f"\\end{{{env}}}"
        stop = s.find(end_tag, j)
        if stop < 0:
            raise InvalidInput(f"Unterminated environment {env}")
        rows = [r for r in _split_top(s[j:stop], "\\\\") if r.strip()]
        if env in ("pmatrix", "bmatrix", "matrix", "vmatrix"):
            self.emit("FUNC", "matrix")
            self.emit("(")
            for k, row in enumerate(rows):
                if k:
                    self.emit(",")
                self.emit("[")
                for t, cell in enumerate(_split_top(row, "&")):
                    if t:
                        self.emit(",")
                    self.lex(cell)
                self.emit("]")
            self.emit(")")
        elif env == "cases":
            self.emit("FUNC", "piecewise")
            self.emit("(")
            for k, row in enumerate(rows):
                if k:
                    self.emit(",")
                cells = _split_top(row, "&")
                if len(cells) == 2 and _OTHERWISE.fullmatch(cells[1]):
                    self.lex(cells[0])
                    continue
                if len(cells) != 2:
                    raise InvalidInput("cases rows need 'value & condition'")
                self.emit("[")
                self.lex(cells[0])
                self.emit(",")
                self.lex(cells[1])
                self.emit("]")
            self.emit(")")
        else:
            raise InvalidInput(f"Unsupported environment {env}")
        return stop + len(end_tag)


_LEXERS = {"plain": _PlainLexer, "latex": _LatexLexer, "wolfram": _WolframLexer}


def expr_tokenize(text: str, dialect: str = "plain") -> List[ExprTok]:
    return _LEXERS[dialect]().run(text)


# =====================
# Shunting-yard
# =====================

_expr_prec = {"REL": 1, "->": 2, "+": 3, "-": 3, "*": 4, "/": 4, "NEG": 5, "^": 6}
_expr_right_assoc = {"^", "->"}
_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = {v: k for k, v in _OPENERS.items()}


def expr_to_rpn(toks: List[ExprTok]) -> List[ExprTok]:
    """Operators in postfix order; FUNC/METHOD/LIST/SET tokens carry their argument count in num."""
    out: List[ExprTok] = []
    op: List[ExprTok] = []
    arity: List[int] = []
    prev: Optional[ExprTok] = None
    for t in toks:
        k = t.kind
        if k in ("NUM", "ID", "CONST", "!"):
            out.append(t)
        elif k in ("FUNC", "METHOD", "NEG"):
            op.append(t)
        elif k in _OPENERS:
            op.append(t)
            arity.append(1)
        elif k == ",":
            while op and op[-1].kind not in _OPENERS:
                out.append(op.pop())
            if not op:
                raise InvalidInput("Comma outside of a group")
            arity[-1] += 1
        elif k in _expr_prec:
            while (
                op
                and op[-1].kind in _expr_prec
                and (
                    (k in _expr_right_assoc and _expr_prec[k] < _expr_prec[op[-1].kind])
                    or (k not in _expr_right_assoc and _expr_prec[k] <= _expr_prec[op[-1].kind])
                )
            ):
                out.append(op.pop())
            op.append(t)
        elif k in _CLOSERS:
            opener = _CLOSERS[k]
            while op and op[-1].kind not in _OPENERS:
                out.append(op.pop())
            if not op or op[-1].kind != opener:
                raise InvalidInput("Mismatched parens")
            op.pop()
            n = arity.pop()
            if prev is not None and prev.kind == opener:
                n = 0
            if k == ")":
                if op and op[-1].kind in ("FUNC", "METHOD"):
                    f = op.pop()
                    out.append(ExprTok(f.kind, f.lex, n))
                elif n != 1:
                    raise InvalidInput("Empty or comma-separated group")
            else:
                out.append(ExprTok("LIST" if k == "]" else "SET", k, n))
        else:
            raise InvalidInput(f"Unknown token kind {k}")
        prev = t
    while op:
        if op[-1].kind in _OPENERS or op[-1].kind in ("FUNC", "METHOD"):
            raise InvalidInput("Mismatched parens")
        out.append(op.pop())
    return out


# =====================
# RPN -> Expr
# =====================


class _Rule(NamedTuple):
    lhs: Any
    rhs: Any


def _as_expr(v: Any) -> Expr:
    if isinstance(v, Expr):
        return v
    if isinstance(v, list):
        if v and all(isinstance(r, list) for r in v):
            return Matrix([[_as_expr(x) for x in r] for r in v])
        return Set(*[_as_expr(x) for x in v])
    raise InvalidInput("Rule outside of a function call")


def _pop_n(stack: List[Any], n: int) -> List[Any]:
    if len(stack) < n:
        raise InvalidInput("Missing operand")
    if n == 0:
        return []
    args = stack[-n:]
    del stack[-n:]
    return args


def _binary(kind: str, lex: str, a: Any, b: Any) -> Any:
    if kind == "->":
        return _Rule(a, b)
    a, b = _as_expr(a), _as_expr(b)
    if kind == "+":
        return Add(a, b)
    if kind == "-":
        return Add(a, negate(b))
    if kind == "*":
        return Mul(a, b)
    if kind == "/":
        if isinstance(b, Num):
            if b.is_zero():
                return UNDEFINED
            return Mul(a, Num(Number(1).div(b.value)))
        return Mul(a, Pow(b, NEG_ONE))
    if kind == "^":
        try:
            return Pow(a, b)
        except DivisionByZero:
            return UNDEFINED
    return Relation(a, b, _REL_KINDS[lex])


def _int_arg(e: Any, what: str) -> int:
    if isinstance(e, Num) and e.value.is_int():
        return e.value.to_int()
    raise InvalidInput(f"{what} must be an integer")


def _bounded(cls, args: List[Any]):
    if len(args) == 2 and isinstance(args[1], list):
        bounds = args[1]
        if len(bounds) == 3:
            return cls(_as_expr(args[0]), *[_as_expr(x) for x in bounds])
        if len(bounds) == 1:
            return cls(_as_expr(args[0]), _as_expr(bounds[0]))
        raise InvalidInput(f"{cls.__name__} needs {{var, lower, upper}}")
    if len(args) in (2, 4):
        return cls(*[_as_expr(x) for x in args])
    raise InvalidInput(f"{cls.__name__} takes (expr, var) or (expr, var, lower, upper)")


def _build_diff(args: List[Any], dialect: str) -> Expr:
    if len(args) == 2 and isinstance(args[1], list):
        var, order = args[1]
        return Derivative(_as_expr(args[0]), _as_expr(var), _int_arg(order, "derivative order"))
    if len(args) == 2:
        return Derivative(_as_expr(args[0]), _as_expr(args[1]))
    if len(args) == 3:
        return Derivative(_as_expr(args[0]), _as_expr(args[1]), _int_arg(args[2], "derivative order"))
    raise InvalidInput("diff takes (expr, var) or (expr, var, order)")


def _direction(value: Any, wolfram: bool) -> str:
    n = _int_arg(value, "limit direction")
    # Mathematica: Direction -> -1 approaches from above
    if wolfram:
        n = -n
    return "+" if n > 0 else "-"


def _build_limit(args: List[Any], dialect: str) -> Expr:
    if dialect == "wolfram" and len(args) >= 2 and isinstance(args[1], _Rule):
        direction = "+-"
        if len(args) == 3 and isinstance(args[2], _Rule):
            direction = _direction(args[2].rhs, True)
        return Limit(_as_expr(args[0]), _as_expr(args[1].lhs), _as_expr(args[1].rhs), direction)
    if len(args) == 3:
        return Limit(*[_as_expr(a) for a in args])
    if len(args) == 4:
        return Limit(*[_as_expr(a) for a in args[:3]], direction=_direction(args[3], False))
    raise InvalidInput("limit takes (expr, var, point[, direction])")


def _build_interval(args: List[Any], dialect: str) -> Expr:
    if args and isinstance(args[0], list):
        flags = args[1] if len(args) > 1 else [Num(0), Num(0)]
        args = list(args[0]) + list(flags)
    if len(args) == 2:
        return Interval(_as_expr(args[0]), _as_expr(args[1]))
    if len(args) == 4:
        lo, hi, lo_open, hi_open = (_as_expr(a) for a in args)
        return Interval(lo, hi, not lo_open == 0, not hi_open == 0)
    raise InvalidInput("interval takes (lo, hi) or (lo, hi, left_open, right_open)")


def _build_piecewise(args: List[Any], dialect: str) -> Expr:
    if args and isinstance(args[0], list) and args[0] and all(isinstance(p, list) for p in args[0]):
        pieces, rest = args[0], args[1:]
    else:
        pieces = [a for a in args if isinstance(a, list)]
        rest = [a for a in args if not isinstance(a, list)]
    if any(len(p) != 2 for p in pieces) or len(rest) > 1:
        raise InvalidInput("piecewise takes [value, condition] pairs and an optional default")
    pairs = [(_as_expr(v), _as_expr(c)) for v, c in pieces]
    return Piecewise(*pairs, otherwise=_as_expr(rest[0]) if rest else None)


def _build_matrix(args: List[Any], dialect: str) -> Expr:
    if len(args) == 1 and isinstance(args[0], list) and all(isinstance(r, list) for r in args[0]):
        args = args[0]
    if not all(isinstance(r, list) for r in args):
        raise InvalidInput("matrix rows must be lists")
    return Matrix([[_as_expr(x) for x in row] for row in args])


_STRUCTURES = {
    "diff": _build_diff,
    "limit": _build_limit,
    "interval": _build_interval,
    "piecewise": _build_piecewise,
    "matrix": _build_matrix,
    "integrate": lambda args, d: _bounded(Integral, args),
    "sum": lambda args, d: _bounded(Sum, args),
    "product": lambda args, d: _bounded(Product, args),
    "set": lambda args, d: Set(*[_as_expr(a) for a in args]),
}


def build_function(name: str, args: List[Any], dialect: str = "plain") -> Expr:
    builder = _STRUCTURES.get(name)
    if builder is not None:
        return builder(args, dialect)
    args = [_as_expr(a) for a in args]
    if name in ("log", "ln") and len(args) == 2:
        x, base = (args[1], args[0]) if dialect == "wolfram" else (args[0], args[1])
        return Func("log", x, base)
    name = ALIASES.get(name, name)
    if name == "sqrt" and len(args) == 1:
        return Pow(args[0], HALF)
    if name == "root" and len(args) == 2:
        n = args[1]
        if isinstance(n, Num) and n.value.is_int() and not n.is_zero():
            return Pow(args[0], Num(Fraction(1, n.value.to_int())))
        return Pow(args[0], Pow(n, NEG_ONE))
    info = REGISTRY.get(name)
    if info is not None and len(args) not in info.nargs:
        raise InvalidInput(f"{name} takes {' or '.join(map(str, info.nargs))} argument(s), got {len(args)}")
    return Func(name, *args)


def rpn_to_expr(rpn: List[ExprTok], dialect: str = "plain") -> Expr:
    stack: List[Any] = []
    for t in rpn:
        k = t.kind
        if k == "NUM":
            stack.append(Num(t.num))
        elif k == "ID":
            stack.append(Sym(t.lex))
        elif k == "CONST":
            stack.append(UNDEFINED if t.lex == "undefined" else Const(t.lex))
        elif k == "NEG":
            stack.append(negate(_as_expr(_pop_n(stack, 1)[0])))
        elif k == "!":
            stack.append(Func("factorial", _as_expr(_pop_n(stack, 1)[0])))
        elif k in _expr_prec:
            a, b = _pop_n(stack, 2)
            stack.append(_binary(k, t.lex, a, b))
        elif k == "FUNC":
            stack.append(build_function(t.lex, _pop_n(stack, t.num), dialect))
        elif k == "METHOD":
            target, *args = _pop_n(stack, t.num + 1)
            stack.append(MethodCall(_as_expr(target), t.lex, *[_as_expr(a) for a in args]))
        elif k == "LIST":
            stack.append(_pop_n(stack, t.num))
        elif k == "SET":
            stack.append(Set(*[_as_expr(a) for a in _pop_n(stack, t.num)]))
        else:
            raise InvalidInput(f"Unknown RPN token {k}")
    if len(stack) != 1:
        raise InvalidInput("Invalid expression")
    return _as_expr(stack[-1])


# =====================
# Entry points
# =====================

_WOLFRAM_HINT = re.compile(
    r"\b[A-Z][A-Za-z0-9]*\s*\[|\b(?:Pi|E|I|Infinity|EulerGamma|GoldenRatio|Indeterminate)\b"
)


def detect_dialect(text: str) -> str:
    """Best guess of the dialect: backslashes mean LaTeX, capitalised heads or constants Wolfram."""
    if "\\" in text:
        return "latex"
    if _WOLFRAM_HINT.search(text):
        return "wolfram"
    return "plain"


_local = threading.local()


def _cache() -> Dict[Tuple[str, str], Expr]:
    cache = getattr(_local, "cache", None)
    if cache is None:
        cache = _local.cache = {}
    return cache


def clear_cache() -> None:
    _cache().clear()


def parse(text: str, dialect: Optional[str] = None, use_cache: bool = True) -> Expr:
    """Parse text into an (unsimplified) expression; InvalidInput on malformed input."""
    if not isinstance(text, str) or not text.strip():
        raise InvalidInput("Empty input")
    if dialect is None:
        dialect = detect_dialect(text)
    if dialect not in _LEXERS:
        raise InvalidInput(f"Unknown dialect {dialect!r}")
    key = (text, dialect)
    cache = _cache() if use_cache else None
    if cache is not None and key in cache:
        return cache[key]
    try:
        toks = expr_tokenize(text, dialect)
        rpn = expr_to_rpn(toks)
        result = rpn_to_expr(rpn, dialect)
    except InvalidInput:
        raise
    except (ValueError, TypeError) as err:
        raise InvalidInput(f"Cannot parse {text!r}: {err}") from err
    logger.debug("parsed %r as %s (%s)", text, dialect, type(result).__name__)
    if cache is not None:
        if len(cache) >= CACHE_SIZE:
            cache.clear()
        cache[key] = result
    return result


def parse_plain(text: str) -> Expr:
    return parse(text, "plain")


def parse_latex(text: str) -> Expr:
    return parse(text, "latex")


def parse_wolfram(text: str) -> Expr:
    return parse(text, "wolfram")


def parse_expression_edag(text: str, dialect: Optional[str] = None) -> ExpressionDAG:
    return compile_expr(parse(text, dialect))
