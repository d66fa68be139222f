"""Scope rewriting for component children.

Children of a component are hoisted into a top-level Jinja macro, where the
variables of the call site are no longer visible. Before hoisting, every
free name in the children is rewritten to read from the block context
passed to the macro, and the set of such names is reported so the call site
can capture their current values:

    {{ name }}        ->  {{ glam__ctx.locals["name"] }}
    {{ this.title }}  ->  {{ glam__ctx.dot.title }}
    {{ root.user }}   ->  {{ glam__ctx.root.user }}

Names bound inside the hoisted content (loop targets, ``set``, ``with`` and
macro arguments) stay as they are wherever the binding is in effect; before
it, or outside its block, the same name still reads the call site's value.
Attribute names, filters, tests, keyword
arguments, string literals, comments and ``{% raw %}`` blocks are never
touched. Rewritten names are reserved, so running the rewrite twice gives
the same text.
"""

from dataclasses import dataclass, replace
from typing import AbstractSet, Dict, Iterable, List, Optional, Set, Tuple

from glam.compiler.ast_nodes import Node, RawNode
from glam.compiler.scanner import (
    COMMENT,
    QUOTES,
    STATEMENT,
    WHITESPACE_CONTROL,
    Delimiters,
    Scanner,
    skip_string,
)

CONTEXT_NAME = "glam__ctx"
RESERVED_PREFIX = "glam__"
THIS_NAME = "this"
ROOT_NAME = "root"

KEYWORDS = frozenset(
    {
        "and", "or", "not", "in", "is", "if", "else",
        "true", "false", "none", "True", "False", "None",
        "as", "with", "without", "context", "ignore", "missing",
        "recursive", "import", "from", "self", "super",
    }
)

# Statements whose first argument is a label rather than an expression.
LABEL_STATEMENTS = frozenset({"block", "endblock", "filter"})

MULTI_CHAR_OPERATORS = ("**", "//", "==", "!=", "<=", ">=")

WS = "ws"
STRING = "string"
NUMBER = "number"
NAME = "name"
OP = "op"


@dataclass(frozen=True)
class Token:
    kind: str
    text: str

    def is_op(self, text: str) -> bool:
        return self.kind == OP and self.text == text

    def is_name(self, text: Optional[str] = None) -> bool:
        return self.kind == NAME and (text is None or self.text == text)


def tokenize(expr: str) -> List[Token]:
    """Split the inside of a Jinja span into tokens.

    The tokens concatenate back to ``expr`` exactly.
    """
    tokens: List[Token] = []
    i = 0
    n = len(expr)
    while i < n:
        char = expr[i]
        if char.isspace():
            j = i
            while j < n and expr[j].isspace():
                j += 1
            tokens.append(Token(WS, expr[i:j]))
        elif char in QUOTES:
            j = skip_string(expr, i)
            tokens.append(Token(STRING, expr[i:j]))
        elif char.isdigit():
            j = i
            while j < n and (expr[j].isalnum() or expr[j] in "._"):
                j += 1
            tokens.append(Token(NUMBER, expr[i:j]))
        elif char.isalpha() or char == "_":
            j = i
            while j < n and (expr[j].isalnum() or expr[j] == "_"):
                j += 1
            tokens.append(Token(NAME, expr[i:j]))
        else:
            j = i + 1
            for op in MULTI_CHAR_OPERATORS:
                if expr.startswith(op, i):
                    j = i + len(op)
                    break
            tokens.append(Token(OP, expr[i:j]))
        i = j
    return tokens


def _significant(tokens: Iterable[Token]) -> List[Token]:
    return [token for token in tokens if token.kind != WS]


def _parenthesised_names(tokens: List[Token], open_index: int) -> Set[str]:
    """Argument names of the parameter list opening at ``tokens[open_index]``."""
    names: Set[str] = set()
    depth = 0
    for k in range(open_index, len(tokens)):
        token = tokens[k]
        if token.kind == OP and token.text in "([{":
            depth += 1
        elif token.kind == OP and token.text in ")]}":
            depth -= 1
            if depth == 0:
                break
        elif depth == 1 and token.kind == NAME and k > 0:
            previous = tokens[k - 1]
            if previous.is_op("(") or previous.is_op(","):
                names.add(token.text)
    return names


def statement_bindings(tokens: List[Token]) -> Set[str]:
    """Names a single statement binds."""
    sig = _significant(tokens)
    if not sig or sig[0].kind != NAME:
        return set()
    tag, rest = sig[0].text, sig[1:]

    if tag == "for":
        names = set()
        for token in rest:
            if token.is_name("in"):
                break
            if token.kind == NAME:
                names.add(token.text)
        names.add("loop")
        return names

    if tag == "set":
        equals = next((k for k, token in enumerate(rest) if token.is_op("=")), None)
        if equals is None:
            return {rest[0].text} if rest and rest[0].kind == NAME else set()
        targets = rest[:equals]
        return {
            token.text
            for k, token in enumerate(targets)
            if token.kind == NAME
            and not (k > 0 and targets[k - 1].is_op("."))
            and not (k + 1 < len(targets) and targets[k + 1].is_op("."))
        }

    if tag == "with":
        names = set()
        for k, token in enumerate(rest):
            if token.kind != NAME or k + 1 >= len(rest) or not rest[k + 1].is_op("="):
                continue
            if k == 0 or rest[k - 1].is_op(","):
                names.add(token.text)
        return names

    if tag == "macro":
        names = {"varargs", "kwargs", "caller"}
        if rest and rest[0].kind == NAME:
            names.add(rest[0].text)
            if len(rest) > 1 and rest[1].is_op("("):
                names |= _parenthesised_names(rest, 1)
        return names

    if tag == "call":
        if rest and rest[0].is_op("("):
            return _parenthesised_names(rest, 0)
        return set()

    if tag == "import":
        return {
            token.text
            for k, token in enumerate(rest)
            if token.kind == NAME and k > 0 and rest[k - 1].is_name("as")
        }

    if tag == "from":
        names = set()
        importing = False
        for token in rest:
            if token.is_name("import"):
                importing = True
            elif importing and token.kind == NAME and token.text not in KEYWORDS:
                names.add(token.text)
        return names

    return set()


def _spans(text: str, delimiters: Optional[Delimiters]):
    """Yield ``(kind, start, end)`` for every template span in ``text``.

    ``kind`` is None for comments and raw blocks, which are never rewritten.
    """
    scanner = Scanner(text, delimiters)
    pos = 0
    while pos < len(text):
        kind = scanner.span_start(pos)
        if kind is None:
            pos += 1
            continue
        end = scanner.skip_span(pos)
        if kind == COMMENT or (kind == STATEMENT and scanner.statement_name(pos) == "raw"):
            yield None, pos, end
        else:
            yield kind, pos, end
        pos = end


def split_span(span: str, kind: str, delimiters: Delimiters) -> Tuple[str, str, str]:
    """Split a span into opening delimiter, body and closing delimiter.

    Whitespace control markers stay with the delimiters.
    """
    start = delimiters.start(kind)
    end = delimiters.end(kind)
    opening = span[: len(start)]
    closing = span[len(span) - len(end) :]
    body = span[len(start) : len(span) - len(end)]
    if body[:1] and body[0] in WHITESPACE_CONTROL:
        opening += body[0]
        body = body[1:]
    if body[-1:] and body[-1] in WHITESPACE_CONTROL:
        closing = body[-1] + closing
        body = body[:-1]
    return opening, body, closing


# Block statements whose bindings are visible only up to the matching end tag.
BLOCK_SCOPES = {"for": "endfor", "with": "endwith", "macro": "endmacro", "call": "endcall"}
BLOCK_ENDS = frozenset(BLOCK_SCOPES.values())


class Scope:
    """Names bound at the current point of a left-to-right walk.

    A ``for`` target is bound from the end of its statement to the
    matching ``endfor``, so the loop's own iterable still reads the outer
    name. ``set``, ``import`` and ``from`` bind from the end of the
    statement until the enclosing block closes.
    """

    def __init__(self, bound: AbstractSet[str] = frozenset()) -> None:
        self._frames: List[Tuple[Optional[str], Set[str]]] = [(None, set(bound))]

    def names(self) -> Set[str]:
        names: Set[str] = set()
        for _, frame in self._frames:
            names |= frame
        return names

    def bind(self, names: Iterable[str]) -> None:
        self._frames[-1][1].update(names)

    def push(self, closer: str, names: Iterable[str]) -> None:
        self._frames.append((closer, set(names)))

    def pop(self, closer: str) -> None:
        if len(self._frames) > 1 and self._frames[-1][0] == closer:
            self._frames.pop()


def _rewrite_tokens(
    tokens: List[Token], bound: AbstractSet[str], statement: bool, captured: Dict[str, None]
) -> str:
    sig = [i for i, token in enumerate(tokens) if token.kind != WS]
    keep: Set[int] = set()
    # names bound only from ``late_from`` onwards, e.g. a loop filter
    late_bound: Set[str] = set()
    late_from = len(tokens)

    if statement and sig and tokens[sig[0]].kind == NAME:
        tag = tokens[sig[0]].text
        keep.add(sig[0])
        if tag in LABEL_STATEMENTS and len(sig) > 1:
            keep.add(sig[1])
        if tag == "set":
            equals = next((k for k in sig[1:] if tokens[k].is_op("=")), None)
            if equals is None:
                keep.update(sig[1:2])
            else:
                keep.update(k for k in sig[1:] if k < equals)
        if tag == "for":
            depth = 0
            after_in = False
            for k in sig[1:]:
                token = tokens[k]
                if not after_in:
                    if token.is_name("in"):
                        after_in = True
                    else:
                        keep.add(k)
                        if token.kind == NAME:
                            late_bound.add(token.text)
                    continue
                if token.kind == OP and token.text in "([{":
                    depth += 1
                elif token.kind == OP and token.text in ")]}":
                    depth -= 1
                elif depth == 0 and token.is_name("if"):
                    late_from = k
                    break
        if tag == "with":
            binders = statement_bindings(tokens)
            for position, k in enumerate(sig[1:], 1):
                following = tokens[sig[position + 1]] if position + 1 < len(sig) else None
                if tokens[k].text in binders and following is not None and following.is_op("="):
                    keep.add(k)

    replacements: Dict[int, str] = {}
    brackets: List[str] = []
    for position, i in enumerate(sig):
        token = tokens[i]
        if token.kind == OP:
            if token.text in "([{":
                brackets.append(token.text)
            elif token.text in ")]}" and brackets:
                brackets.pop()
            continue
        if token.kind != NAME or i in keep:
            continue

        name = token.text
        previous = tokens[sig[position - 1]] if position > 0 else None
        before_previous = tokens[sig[position - 2]] if position > 1 else None
        following = tokens[sig[position + 1]] if position + 1 < len(sig) else None

        if previous is not None and (previous.is_op(".") or previous.is_op("|")):
            continue
        if previous is not None and previous.is_name("is"):
            continue
        if previous is not None and previous.is_name("not") and before_previous is not None and before_previous.is_name("is"):
            continue
        if name in KEYWORDS or name.startswith(RESERVED_PREFIX):
            continue
        if following is not None and following.is_op("=") and brackets and brackets[-1] == "(":
            continue
        if name in bound or (i > late_from and name in late_bound):
            continue

        if name == THIS_NAME:
            replacements[i] = f"{CONTEXT_NAME}.dot"
        elif name == ROOT_NAME:
            replacements[i] = f"{CONTEXT_NAME}.root"
        else:
            replacements[i] = f'{CONTEXT_NAME}.locals["{name}"]'
            captured.setdefault(name, None)

    return "".join(replacements.get(i, token.text) for i, token in enumerate(tokens))


def _rewrite_statement(tokens: List[Token], scope: Scope, captured: Dict[str, None]) -> str:
    sig = _significant(tokens)
    tag = sig[0].text if sig and sig[0].kind == NAME else None
    names = statement_bindings(tokens)

    if tag in ("macro", "call", "import", "from"):
        # parameters and imported names appear only as binders here
        text = _rewrite_tokens(tokens, scope.names() | names, True, captured)
    else:
        text = _rewrite_tokens(tokens, scope.names(), True, captured)

    if tag == "macro" and len(sig) > 1 and sig[1].kind == NAME:
        scope.bind({sig[1].text})
    if tag in BLOCK_SCOPES:
        scope.push(BLOCK_SCOPES[tag], names)
    elif tag in BLOCK_ENDS:
        scope.pop(tag)
    else:
        scope.bind(names)
    return text


def _rewrite_spans(
    text: str, scope: Scope, delimiters: Delimiters, captured: Dict[str, None]
) -> str:
    parts: List[str] = []
    last = 0
    for kind, start, end in _spans(text, delimiters):
        if kind is None:
            continue
        opening, body, closing = split_span(text[start:end], kind, delimiters)
        tokens = tokenize(body)
        parts.append(text[last:start])
        parts.append(opening)
        if kind == STATEMENT:
            parts.append(_rewrite_statement(tokens, scope, captured))
        else:
            parts.append(_rewrite_tokens(tokens, scope.names(), False, captured))
        parts.append(closing)
        last = end
    parts.append(text[last:])
    return "".join(parts)


def rewrite_text(
    text: str, bound: AbstractSet[str] = frozenset(), delimiters: Optional[Delimiters] = None
) -> Tuple[str, List[str]]:
    """Rewrite free names in every span of ``text``.

    Returns the new text and the captured names in order of first use.
    """
    captured: Dict[str, None] = {}
    rewritten = _rewrite_spans(text, Scope(bound), delimiters or Delimiters(), captured)
    return rewritten, list(captured)


def _rewrite_level(
    nodes: List[Node],
    bound: AbstractSet[str],
    delimiters: Delimiters,
    captured: Dict[str, None],
) -> List[Node]:
    scope = Scope(bound)
    rewritten: List[Node] = []
    for node in nodes:
        if isinstance(node, RawNode):
            rewritten.append(RawNode(_rewrite_spans(node.content, scope, delimiters, captured)))
            continue

        visible = scope.names()
        attributes = {
            key: _rewrite_spans(value, Scope(visible), delimiters, captured)
            for key, value in node.attributes.items()
        }
        children = _rewrite_level(node.children, visible, delimiters, captured)
        rewritten.append(replace(node, attributes=attributes, children=children))
    return rewritten


def rewrite_nodes(
    nodes: List[Node],
    bound: AbstractSet[str] = frozenset(),
    delimiters: Optional[Delimiters] = None,
) -> Tuple[List[Node], List[str]]:
    """Rewrite free names throughout a node tree.

    Raw content and component attribute values are rewritten with the names
    bound at their position, including those of enclosing levels. Returns
    new nodes and the captured names; ``nodes`` is left untouched.
    """
    captured: Dict[str, None] = {}
    rewritten = _rewrite_level(nodes, bound, delimiters or Delimiters(), captured)
    return rewritten, list(captured)
