from __future__ import annotations
import networkx as nx
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional
import math

import numpy as np

from errors import DomainError, InvalidInput
from expression import (
	Add, Const, Expr, Func, Mul, Num, Pow, Sym, cast, make_add, make_mul,
)

# Hash-consed expression DAG on networkx.DiGraph; edges run child -> parent
@dataclass
class Node:
	type: str  # 'VAR','CONST','OP'
	symbol: str
	value: Any = None
	op: Optional[str] = None
	children: List[str] = field(default_factory=list)  # ordered child node ids

_CONSTANTS = {
	'pi': math.pi,
	'e': math.e,
	'euler_gamma': 0.5772156649015329,
	'phi': (1.0 + math.sqrt(5.0)) / 2.0,
	'oo': math.inf,
}

_UFUNCS: Dict[str, Callable[..., Any]] = {
	'sin': np.sin,
	'cos': np.cos,
	'tan': np.tan,
	'cot': lambda x: 1.0 / np.tan(x),
	'sec': lambda x: 1.0 / np.cos(x),
	'csc': lambda x: 1.0 / np.sin(x),
	'arcsin': np.arcsin,
	'arccos': np.arccos,
	'arctan': np.arctan,
	'sinh': np.sinh,
	'cosh': np.cosh,
	'tanh': np.tanh,
	'exp': np.exp,
	'ln': np.log,
	'log': lambda x, b: np.log(x) / np.log(b),
	'abs': np.abs,
	'sign': np.sign,
	'floor': np.floor,
	'ceiling': np.ceil,
}

class ExpressionDAG:
	"""Expression stored once per distinct sub-expression.

	Structurally equal sub-trees share one node, so `size()` counts distinct sub-expressions
	and `shared_subexpressions()` reports those used more than once.
	"""
	def __init__(self) -> None:
		self.g = nx.DiGraph()
		self.root: Optional[str] = None
		self._id = 0
		self._interned: Dict[Expr, str] = {}
	def _nid(self) -> str:
		self._id += 1
		return f"n{self._id}"

	# -----------------
	# Construction
	# -----------------
	def _add_const(self, e: Expr, value: float) -> str:
		n = self._nid()
		self.g.add_node(n, data=Node('CONST', str(e), value=value))
		return n
	def _add_var(self, name: str) -> str:
		n = self._nid()
		self.g.add_node(n, data=Node('VAR', name))
		return n
	def _add_op(self, op: str, children: List[str]) -> str:
		n = self._nid()
		self.g.add_node(n, data=Node('OP', op, op=op, children=children))
		for c in children:
			self.g.add_edge(c, n)
		return n
	def add(self, e: Expr) -> str:
		"""Insert e (and its sub-expressions) and return its node id."""
		hit = self._interned.get(e)
		if hit is not None:
			return hit
		if isinstance(e, Num):
			nid = self._add_const(e, e.value.to_float())
		elif isinstance(e, Const):
			if e.name not in _CONSTANTS:
				raise DomainError(f"{e.name} has no real value")
			nid = self._add_const(e, _CONSTANTS[e.name])
		elif isinstance(e, Sym):
			nid = self._add_var(e.name)
		elif isinstance(e, Add):
			nid = self._add_op('+', [self.add(c) for c in e.children])
		elif isinstance(e, Mul):
			nid = self._add_op('*', [self.add(c) for c in e.children])
		elif isinstance(e, Pow):
			nid = self._add_op('^', [self.add(e.base), self.add(e.exp)])
		elif isinstance(e, Func):
			if e.name not in _UFUNCS and e.name not in ('factorial', 'gamma'):
				raise InvalidInput(f"cannot compile function {e.name}")
			nid = self._add_op(e.name, [self.add(c) for c in e.children])
		else:
			raise InvalidInput(f"cannot compile {type(e).__name__}")
		self._interned[e] = nid
		return nid
	@staticmethod
	def from_expr(expr: Any) -> 'ExpressionDAG':
		dag = ExpressionDAG()
		dag.root = dag.add(cast(expr))
		return dag

	# -----------------
	# Queries
	# -----------------
	def size(self) -> int:
		return self.g.number_of_nodes()
	def node_expr(self, nid: str) -> Expr:
		data: Node = self.g.nodes[nid]['data']
		if data.type == 'VAR':
			return Sym(data.symbol)
		for e, i in self._interned.items():
			if i == nid:
				return e
		raise KeyError(nid)
	def shared_subexpressions(self) -> List[Expr]:
		"""Compound sub-expressions referenced by more than one parent."""
		out = []
		for nid in self.g.nodes:
			data: Node = self.g.nodes[nid]['data']
			if data.type == 'OP' and self.g.out_degree(nid) > 1:
				out.append(self.node_expr(nid))
		return out
	def depth(self) -> int:
		if self.root is None:
			return 0
		return nx.dag_longest_path_length(self.g) + 1
	def to_expr(self) -> Expr:
		if self.root is None:
			raise RuntimeError('empty DAG')
		built: Dict[str, Expr] = {}
		for nid in nx.topological_sort(self.g):
			data: Node = self.g.nodes[nid]['data']
			if data.type == 'VAR':
				built[nid] = Sym(data.symbol)
				continue
			if data.type == 'CONST':
				built[nid] = self.node_expr(nid)
				continue
			kids = [built[c] for c in data.children]
			if data.op == '+':
				built[nid] = make_add(kids)
			elif data.op == '*':
				built[nid] = make_mul(kids)
			elif data.op == '^':
				built[nid] = Pow(*kids)
			else:
				built[nid] = Func(data.op, *kids)
		return built[self.root]

	# -----------------
	# Evaluation
	# -----------------
	def _run(self, leaf: Callable[[Node], Any]) -> Any:
		if self.root is None:
			raise RuntimeError('empty DAG')
		values: Dict[str, Any] = {}
		for nid in nx.topological_sort(self.g):
			data: Node = self.g.nodes[nid]['data']
			if data.type != 'OP':
				values[nid] = leaf(data)
				continue
			args = [values[c] for c in data.children]
			if data.op == '+':
				acc = args[0]
				for a in args[1:]:
					acc = acc + a
				values[nid] = acc
			elif data.op == '*':
				acc = args[0]
				for a in args[1:]:
					acc = acc * a
				values[nid] = acc
			elif data.op == '^':
				values[nid] = np.power(args[0], args[1])
			elif data.op == 'factorial':
				values[nid] = _vector_gamma(np.asarray(args[0], dtype=float) + 1.0)
			elif data.op == 'gamma':
				values[nid] = _vector_gamma(np.asarray(args[0], dtype=float))
			else:
				values[nid] = _UFUNCS[data.op](*args)
		return values[self.root]
	def eval(self, env: Mapping[str, float] | None = None) -> float:
		env = dict(env or {})
		def leaf(data: Node) -> float:
			if data.type == 'CONST':
				return data.value
			if data.symbol not in env:
				raise InvalidInput(f"Variable '{data.symbol}' not in env")
			return float(env[data.symbol])
		with np.errstate(all='ignore'):
			out = float(self._run(leaf))
		if math.isnan(out):
			raise DomainError('expression is undefined at this point')
		return out
	def eval_array(self, var: Any, xs: np.ndarray, env: Mapping[Any, float] | None = None) -> np.ndarray:
		"""Evaluate at every point of xs for var; NaN marks points outside the domain."""
		name = cast(var).name
		fixed = {(k.name if isinstance(k, Sym) else str(k)): float(v) for k, v in (env or {}).items()}
		xs = np.asarray(xs, dtype=float)
		def leaf(data: Node) -> Any:
			if data.type == 'CONST':
				return np.full_like(xs, data.value)
			if data.symbol == name:
				return xs
			if data.symbol not in fixed:
				raise InvalidInput(f"Variable '{data.symbol}' not in env")
			return np.full_like(xs, fixed[data.symbol])
		with np.errstate(all='ignore'):
			out = np.asarray(self._run(leaf), dtype=float)
		return np.broadcast_to(out, xs.shape).copy()

	# -----------------
	# Stringification
	# -----------------
	def to_string(self) -> str:
		if self.root is None:
			return ''
		from printing import to_plain
		return to_plain(self.to_expr())

def _gamma_point(v: float) -> float:
	if v <= 0 and float(v).is_integer():
		return math.nan
	try:
		return math.gamma(v)
	except OverflowError:
		return math.inf

def _vector_gamma(x: np.ndarray) -> np.ndarray:
	flat = [_gamma_point(float(v)) for v in np.ravel(x)]
	return np.asarray(flat, dtype=float).reshape(np.shape(x))

def compile_expr(expr: Any) -> ExpressionDAG:
	return ExpressionDAG.from_expr(expr)
