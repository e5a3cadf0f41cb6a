"""
Python AST Canonicalizer

Parses Python source and rewrites the tree into a canonical form so that
submissions differing only in insignificant ways compare equal:

- Scope-aware alpha renaming: parameters and loop targets become _v0, _v1, ...
  in first-seen order within their scope. Globals, builtins and names that
  are never bound locally are left alone.
- Slice normalization: a literal 0 start and a literal 1 step are dropped,
  so seq[0:3:1], seq[0:3] and seq[:3] are the same tree.
- Docstring stripping for module, function and class bodies.

The fingerprint is `ast.dump(tree, include_attributes=False)`.

The scope stack is a tuple of per-scope dicts passed down the recursion.
Entering a scope creates a new tuple; only the innermost dict of the
current call is ever written to.

Usage:
    from grader.services.grading.canonicalizer import canonicalize, compare_by_ast

    assert canonicalize("def f(a): return a+1") == canonicalize("def f(n): return n+1")
"""

import ast
import logging
from typing import Optional, Union

from grader.models.comparison import AstCompareResult, CanonicalizeOptions

logger = logging.getLogger(__name__)

Scopes = tuple[dict[str, str], ...]

_FunctionNode = Union[ast.FunctionDef, ast.AsyncFunctionDef]
_ComprehensionNode = Union[ast.ListComp, ast.SetComp, ast.DictComp, ast.GeneratorExp]


def _is_int_literal(node: Optional[ast.AST], value: int) -> bool:
    # bool is an int subclass; x[False:] is not x[0:]
    return (
        isinstance(node, ast.Constant)
        and type(node.value) is int
        and node.value == value
    )


def _strip_docstring(body: list[ast.stmt]) -> list[ast.stmt]:
    if (
        body
        and isinstance(body[0], ast.Expr)
        and isinstance(body[0].value, ast.Constant)
        and isinstance(body[0].value.value, str)
    ):
        return body[1:]
    return body


class _Canonicalizer:
    """
    Recursive rewriter over Python AST nodes.

    Holds only the options. Every visit method receives the scope stack it
    should resolve names against.
    """

    def __init__(self, options: CanonicalizeOptions):
        self.options = options

    def visit(self, node: ast.AST, scopes: Scopes) -> ast.AST:
        method = getattr(self, f"visit_{type(node).__name__}", self.generic_visit)
        return method(node, scopes)

    def generic_visit(self, node: ast.AST, scopes: Scopes) -> ast.AST:
        for field, value in ast.iter_fields(node):
            if isinstance(value, list):
                value[:] = [
                    self.visit(item, scopes) if isinstance(item, ast.AST) else item
                    for item in value
                ]
            elif isinstance(value, ast.AST):
                setattr(node, field, self.visit(value, scopes))
        return node

    def _visit_list(self, nodes: list, scopes: Scopes) -> list:
        return [self.visit(n, scopes) for n in nodes]

    def _visit_optional(self, node: Optional[ast.AST], scopes: Scopes):
        return self.visit(node, scopes) if node is not None else None

    # Binding

    def _bind(self, name: str, scopes: Scopes) -> str:
        if not self.options.rename_locals or not scopes:
            return name
        scope = scopes[-1]
        if name not in scope:
            scope[name] = f"_v{len(scope)}"
        return scope[name]

    @staticmethod
    def _lookup(name: str, scopes: Scopes) -> str:
        for scope in reversed(scopes):
            if name in scope:
                return scope[name]
        return name

    def _bind_target(self, target: ast.AST, scopes: Scopes) -> ast.AST:
        """Bind a loop target; tuples and lists are bound element-wise."""
        if isinstance(target, ast.Name):
            target.id = self._bind(target.id, scopes)
            return target
        if isinstance(target, (ast.Tuple, ast.List)):
            target.elts = [self._bind_target(elt, scopes) for elt in target.elts]
            return target
        if isinstance(target, ast.Starred):
            target.value = self._bind_target(target.value, scopes)
            return target
        # Attribute or subscript targets bind nothing
        return self.visit(target, scopes)

    def _bind_arguments(self, args: ast.arguments, scopes: Scopes) -> None:
        for arg in args.posonlyargs:
            arg.arg = self._bind(arg.arg, scopes)
        for arg in args.args:
            arg.arg = self._bind(arg.arg, scopes)
        if args.vararg:
            args.vararg.arg = self._bind(args.vararg.arg, scopes)
        for arg in args.kwonlyargs:
            arg.arg = self._bind(arg.arg, scopes)
        if args.kwarg:
            args.kwarg.arg = self._bind(args.kwarg.arg, scopes)

    def _visit_outer_argument_parts(self, args: ast.arguments, scopes: Scopes) -> None:
        """Defaults and annotations are evaluated where the function is defined."""
        args.defaults = self._visit_list(args.defaults, scopes)
        args.kw_defaults = [self._visit_optional(d, scopes) for d in args.kw_defaults]
        every_arg = [*args.posonlyargs, *args.args, *args.kwonlyargs]
        every_arg += [a for a in (args.vararg, args.kwarg) if a is not None]
        for arg in every_arg:
            arg.annotation = self._visit_optional(arg.annotation, scopes)

    # Scope-creating nodes

    def visit_Module(self, node: ast.Module, scopes: Scopes) -> ast.Module:
        if self.options.ignore_docstrings:
            node.body = _strip_docstring(node.body)
        node.body = self._visit_list(node.body, scopes + ({},))
        return node

    def visit_Expression(self, node: ast.Expression, scopes: Scopes) -> ast.Expression:
        node.body = self.visit(node.body, scopes + ({},))
        return node

    def _visit_function(self, node: _FunctionNode, scopes: Scopes) -> _FunctionNode:
        node.decorator_list = self._visit_list(node.decorator_list, scopes)
        self._visit_outer_argument_parts(node.args, scopes)
        node.returns = self._visit_optional(node.returns, scopes)

        inner = scopes + ({},)
        self._bind_arguments(node.args, inner)
        body = node.body
        if self.options.ignore_docstrings:
            body = _strip_docstring(body)
        node.body = self._visit_list(body, inner)
        return node

    visit_FunctionDef = _visit_function
    visit_AsyncFunctionDef = _visit_function

    def visit_ClassDef(self, node: ast.ClassDef, scopes: Scopes) -> ast.ClassDef:
        node.decorator_list = self._visit_list(node.decorator_list, scopes)
        node.bases = self._visit_list(node.bases, scopes)
        node.keywords = self._visit_list(node.keywords, scopes)
        if self.options.ignore_docstrings:
            node.body = _strip_docstring(node.body)
        node.body = self._visit_list(node.body, scopes)
        return node

    def visit_Lambda(self, node: ast.Lambda, scopes: Scopes) -> ast.Lambda:
        self._visit_outer_argument_parts(node.args, scopes)
        inner = scopes + ({},)
        self._bind_arguments(node.args, inner)
        node.body = self.visit(node.body, inner)
        return node

    def _visit_comprehension(
        self, node: _ComprehensionNode, scopes: Scopes
    ) -> _ComprehensionNode:
        inner = scopes + ({},)
        for index, generator in enumerate(node.generators):
            # The first iterable is evaluated in the enclosing scope
            generator.iter = self.visit(generator.iter, scopes if index == 0 else inner)
            generator.target = self._bind_target(generator.target, inner)
            generator.ifs = self._visit_list(generator.ifs, inner)
        if isinstance(node, ast.DictComp):
            node.key = self.visit(node.key, inner)
            node.value = self.visit(node.value, inner)
        else:
            node.elt = self.visit(node.elt, inner)
        return node

    visit_ListComp = _visit_comprehension
    visit_SetComp = _visit_comprehension
    visit_DictComp = _visit_comprehension
    visit_GeneratorExp = _visit_comprehension

    # Loops bind into the current scope

    def _visit_for(self, node: Union[ast.For, ast.AsyncFor], scopes: Scopes):
        node.iter = self.visit(node.iter, scopes)
        node.target = self._bind_target(node.target, scopes)
        node.body = self._visit_list(node.body, scopes)
        node.orelse = self._visit_list(node.orelse, scopes)
        return node

    visit_For = _visit_for
    visit_AsyncFor = _visit_for

    # Names and slices

    def visit_Name(self, node: ast.Name, scopes: Scopes) -> ast.Name:
        if self.options.rename_locals:
            node.id = self._lookup(node.id, scopes)
        return node

    def visit_Slice(self, node: ast.Slice, scopes: Scopes) -> ast.Slice:
        if self.options.normalize_slices:
            if _is_int_literal(node.lower, 0):
                node.lower = None
            if _is_int_literal(node.step, 1):
                node.step = None
        node.lower = self._visit_optional(node.lower, scopes)
        node.upper = self._visit_optional(node.upper, scopes)
        node.step = self._visit_optional(node.step, scopes)
        return node


def _parse(code: str, mode: str) -> Optional[ast.AST]:
    modes = ("exec", "eval") if mode == "auto" else (mode,)
    for parse_mode in modes:
        try:
            return ast.parse(code, mode=parse_mode)
        except (SyntaxError, ValueError):
            # ValueError: source contains null bytes
            continue
    return None


def canonicalize(
    code: str, options: Optional[CanonicalizeOptions] = None
) -> Optional[str]:
    """
    Canonical fingerprint of Python source.

    Args:
        code: Python source text (statements or a single expression)
        options: Canonicalization switches, all enabled by default

    Returns:
        Structural dump of the canonical tree, or None if the code doesn't parse
    """
    options = options or CanonicalizeOptions()
    if options.mode not in ("auto", "exec", "eval"):
        raise ValueError(f"Unknown parse mode: {options.mode}")

    tree = _parse(code, options.mode)
    if tree is None:
        return None

    tree = _Canonicalizer(options).visit(tree, ())
    return ast.dump(tree, include_attributes=False)


def compare_by_ast(
    user_answer: str,
    expected_answer: str,
    accepted_solutions: Optional[list[str]] = None,
    options: Optional[CanonicalizeOptions] = None,
) -> AstCompareResult:
    """
    Compare canonical fingerprints of a submission and the expected answers.

    A submission that fails to parse is a legitimate no-match. Only a fault
    of the canonicalizer itself (e.g. recursion limit on a pathological
    tree) reports the engine as unavailable.

    Args:
        user_answer: Learner's submission
        expected_answer: Primary expected answer
        accepted_solutions: Alternatives, checked in order
        options: Canonicalization switches

    Returns:
        AstCompareResult; matched_alternative is None for the primary answer
    """
    try:
        user_fingerprint = canonicalize(user_answer, options)
        if user_fingerprint is None:
            return AstCompareResult(match=False)

        expected_fingerprint = canonicalize(expected_answer, options)
        if expected_fingerprint is not None and user_fingerprint == expected_fingerprint:
            return AstCompareResult(match=True)

        for alternative in accepted_solutions or []:
            alt_fingerprint = canonicalize(alternative, options)
            if alt_fingerprint is not None and user_fingerprint == alt_fingerprint:
                return AstCompareResult(match=True, matched_alternative=alternative)

        return AstCompareResult(match=False)
    except Exception as e:
        logger.warning(f"AST comparison engine failed: {e}")
        return AstCompareResult(
            match=False,
            infra_available=False,
            error=str(e) or "AST comparison failed",
        )
