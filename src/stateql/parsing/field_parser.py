"""Parser for StateQL field declarations.

A field line has the shape ``<name> is <type definition>``. The type
definition is classified by an ordered rule table; the first rule that
matches decides the kind of the field:

1. ``action [...] thru verb(args)``  -> ActionField
2. ``many [Target] thru through``    -> ManyRelationField
3. ``<type> thru function(args)``    -> ComputedField
4. anything else                     -> ScalarField
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

import ply.lex as lex

from stateql.errors import InvalidRelationshipClause, MalformedFieldDeclaration
from stateql.model import (
    ActionField,
    ComputedField,
    Field,
    FieldKind,
    ManyRelationField,
    ScalarField,
)
from stateql.parsing.field_lexer import FieldLexer

logger = logging.getLogger(__name__)


@dataclass
class FieldDeclaration:
    """A field line split at its ``is`` keyword, before classification."""

    name: str
    text: str
    tokens: list[lex.LexToken]
    line: int | None = None

    def span(self, tokens: list[lex.LexToken]) -> str:
        """Return the source text covered by *tokens*, verbatim."""
        return _span(self.text, tokens)

    def thru_positions(self) -> list[int]:
        return [i for i, tok in enumerate(self.tokens) if tok.type == "THRU"]


@dataclass(frozen=True)
class FieldRule:
    """One row of the classification table."""

    kind: FieldKind
    matches: Callable[[FieldDeclaration], bool]
    build: Callable[[FieldDeclaration], Field]


def _span(text: str, tokens: list[lex.LexToken]) -> str:
    if not tokens:
        return ""
    last = tokens[-1]
    return text[tokens[0].lexpos:last.lexpos + len(last.value)].strip()


def unquote(value: str) -> str:
    """Strip exactly one layer of enclosing double quotes."""
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        return value[1:-1]
    return value


def _parse_call(
    decl: FieldDeclaration,
    tokens: list[lex.LexToken],
    error: type[MalformedFieldDeclaration] | type[InvalidRelationshipClause],
) -> tuple[str, str]:
    """Parse ``name`` or ``name(arg arg ...)`` into the name and raw argument text."""
    if not tokens or tokens[0].type in ("LPAREN", "RPAREN"):
        raise error(f"Field '{decl.name}' is missing a name after 'thru'", line=decl.line)
    name = tokens[0].value
    rest = tokens[1:]
    if not rest:
        return name, ""
    if rest[0].type != "LPAREN" or rest[-1].type != "RPAREN":
        raise error(
            f"Field '{decl.name}' expects '{name}(...)' after 'thru', got {decl.span(tokens)!r}",
            line=decl.line,
        )
    inner = rest[1:-1]
    if any(tok.type in ("LPAREN", "RPAREN") for tok in inner):
        raise error(
            f"Field '{decl.name}' has unbalanced or nested parentheses in {decl.span(tokens)!r}",
            line=decl.line,
        )
    return name, decl.span(inner)


_argument_lexer: FieldLexer | None = None


def split_arguments(text: str) -> list[str]:
    """Split the text between parentheses into argument tokens.

    Whitespace separates arguments unless it sits inside double quotes.
    """
    global _argument_lexer
    if _argument_lexer is None:
        _argument_lexer = FieldLexer()
        _argument_lexer.build()
    try:
        tokens = _argument_lexer.tokenize(text)
    except SyntaxError as exc:
        raise MalformedFieldDeclaration(f"{exc} in {text!r}") from exc
    for tok in tokens:
        if tok.type in ("LPAREN", "RPAREN"):
            raise MalformedFieldDeclaration(f"Unexpected '{tok.value}' in arguments {text!r}")
    return [tok.value for tok in tokens]


def parse_action_args(text: str) -> tuple[list[str], dict[str, str], list[str]]:
    """Split action arguments into positional, named and required parameters.

    ``:name`` is a parameter supplied when the action is invoked, ``key=value``
    is a named argument and anything else is positional. A named argument
    that does not split into exactly one key and one value is ignored.

    Raises:
        MalformedFieldDeclaration: A ``:`` has no parameter name after it.
    """
    args: list[str] = []
    kwargs: dict[str, str] = {}
    required: list[str] = []
    for token in split_arguments(text):
        if token.startswith(":"):
            if len(token) == 1:
                raise MalformedFieldDeclaration(f"Missing parameter name after ':' in {text!r}")
            required.append(token[1:])
            continue
        if "=" in token:
            parts = token.split("=")
            if len(parts) != 2 or not parts[0]:
                logger.debug("Ignoring malformed action argument %r", token)
                continue
            kwargs[parts[0]] = unquote(parts[1])
            continue
        args.append(unquote(token))
    return args, kwargs, required


def parse_function_args(text: str) -> list[str]:
    """Split computed-field arguments, stripping one layer of quotes from each."""
    return [unquote(token) for token in split_arguments(text)]


def _build_action(decl: FieldDeclaration) -> Field:
    thru = decl.thru_positions()
    if len(thru) != 1:
        raise InvalidRelationshipClause(
            f"Action field '{decl.name}' must read 'action [...] thru <verb>(...)'",
            line=decl.line,
        )
    # Words between 'action' and 'thru' are not part of the action
    verb, arg_text = _parse_call(decl, decl.tokens[thru[0] + 1:], InvalidRelationshipClause)
    args, kwargs, required = parse_action_args(arg_text)
    return ActionField(
        name=decl.name,
        action_type=verb,
        args=tuple(args),
        kwargs=tuple(kwargs.items()),
        required_params=tuple(required),
        line=decl.line,
    )


def _build_many(decl: FieldDeclaration) -> Field:
    thru = decl.thru_positions()
    if not thru:
        joiner = next((tok for tok in decl.tokens if tok.type == "AND"), None)
        if joiner is not None:
            raise InvalidRelationshipClause(
                f"Many field '{decl.name}' uses unsupported keyword 'and'; use 'thru'",
                line=decl.line,
            )
        raise InvalidRelationshipClause(
            f"Many field '{decl.name}' is missing a 'thru' clause", line=decl.line
        )
    if len(thru) > 1:
        raise InvalidRelationshipClause(
            f"Many field '{decl.name}' has more than one 'thru' clause", line=decl.line
        )
    target = decl.span(decl.tokens[1:thru[0]])
    through_tokens = decl.tokens[thru[0] + 1:]
    if len(through_tokens) != 1 or through_tokens[0].type in ("LPAREN", "RPAREN"):
        raise InvalidRelationshipClause(
            f"Many field '{decl.name}' needs exactly one field name after 'thru'",
            line=decl.line,
        )
    return ManyRelationField(
        name=decl.name,
        through=through_tokens[0].value,
        target=target,
        line=decl.line,
    )


def _build_computed(decl: FieldDeclaration) -> Field:
    thru = decl.thru_positions()
    if len(thru) > 1:
        raise MalformedFieldDeclaration(
            f"Field '{decl.name}' has more than one 'thru' clause", line=decl.line
        )
    declared_type = decl.span(decl.tokens[:thru[0]])
    if not declared_type:
        raise MalformedFieldDeclaration(
            f"Computed field '{decl.name}' has no type before 'thru'", line=decl.line
        )
    function_name, arg_text = _parse_call(
        decl, decl.tokens[thru[0] + 1:], MalformedFieldDeclaration
    )
    return ComputedField(
        name=decl.name,
        type=declared_type,
        function_name=function_name,
        function_args=tuple(parse_function_args(arg_text)),
        line=decl.line,
    )


def _build_scalar(decl: FieldDeclaration) -> Field:
    return ScalarField(name=decl.name, type=decl.span(decl.tokens), line=decl.line)


FIELD_RULES: tuple[FieldRule, ...] = (
    FieldRule(FieldKind.ACTION, lambda d: d.tokens[0].type == "ACTION", _build_action),
    FieldRule(FieldKind.MANY_RELATION, lambda d: d.tokens[0].type == "MANY", _build_many),
    FieldRule(FieldKind.COMPUTED, lambda d: bool(d.thru_positions()), _build_computed),
    FieldRule(FieldKind.SCALAR, lambda d: True, _build_scalar),
)

CLASSIFICATION_ORDER: tuple[FieldKind, ...] = tuple(rule.kind for rule in FIELD_RULES)


class FieldParser:
    """Parser turning one field line into a tagged ``Field``."""

    def __init__(self) -> None:
        self.lexer = FieldLexer()
        self.lexer.build()

    def tokenize(self, text: str, line: int | None = None) -> list[lex.LexToken]:
        try:
            return self.lexer.tokenize(text)
        except SyntaxError as exc:
            raise MalformedFieldDeclaration(f"{exc} in {text!r}", line=line) from exc

    def split(self, text: str, line: int | None = None) -> FieldDeclaration:
        """Split a field line at its single ``is`` keyword."""
        tokens = self.tokenize(text, line)
        is_positions = [i for i, tok in enumerate(tokens) if tok.type == "IS"]
        if len(is_positions) != 1:
            raise MalformedFieldDeclaration(
                f"Expected '<name> is <type>', got {text!r}", line=line
            )
        pos = is_positions[0]
        name = _span(text, tokens[:pos])
        if not name:
            raise MalformedFieldDeclaration(f"Field declaration {text!r} has no name", line=line)
        type_tokens = tokens[pos + 1:]
        if not type_tokens:
            raise MalformedFieldDeclaration(f"Field '{name}' has no type", line=line)
        return FieldDeclaration(name=name, text=text, tokens=type_tokens, line=line)

    def parse(self, text: str, line: int | None = None) -> Field:
        """Parse a field line (marker already stripped) into a Field.

        Raises:
            MalformedFieldDeclaration: The line is not ``<name> is <type>``.
            InvalidRelationshipClause: A ``many`` or ``action`` field has no
                usable ``thru`` clause.
        """
        decl = self.split(text.strip(), line)
        for rule in FIELD_RULES:
            if rule.matches(decl):
                return rule.build(decl)
        raise AssertionError("scalar rule matches every declaration")
