"""StateQL Language Server — diagnostics, completion, hover via pygls."""

from __future__ import annotations

from lsprotocol import types
from pygls.lsp.server import LanguageServer

from stateql.compiler import SchemaCompiler
from stateql.errors import Diagnostic, Severity, StateQLError
from stateql.parsing import parse_source
from stateql.parsing.entity_parser import FIELD_MARKER, split_blocks

# ---------------------------------------------------------------------------
# Static data
# ---------------------------------------------------------------------------

BUILTIN_TYPES: dict[str, str] = {
    "text": "Free-form text (TEXT column)",
    "number": "Arbitrary-precision number (NUMERIC column)",
    "switch": "On/off value (BOOLEAN column)",
    "date": "Calendar date (DATE column)",
    "timestamp": "Date and time (TIMESTAMP column)",
    "seconds": "Whole number of seconds (INTEGER column)",
}

KEYWORDS: dict[str, str] = {
    "is": "Separates a field name from its type: `name is text`",
    "many": "Many-to-many relationship: `friends is many User thru befriendedBy`",
    "thru": "Names the inverse field, action verb or function of a field",
    "action": "Invocable verb: `share is action thru share(doc :email)`",
    "and": "Not supported as a relationship joiner; use `thru`",
}

_SEVERITIES = {
    Severity.ERROR: types.DiagnosticSeverity.Error,
    Severity.WARNING: types.DiagnosticSeverity.Warning,
}

# ---------------------------------------------------------------------------
# Helpers (module-level so they are easy to unit-test)
# ---------------------------------------------------------------------------


def to_lsp_diagnostic(diagnostic: Diagnostic, lines: list[str]) -> types.Diagnostic:
    """Convert a parse diagnostic into an LSP diagnostic spanning its line."""
    line = max((diagnostic.line or 1) - 1, 0)
    text = lines[line] if line < len(lines) else ""
    start_char = len(text) - len(text.lstrip())
    return types.Diagnostic(
        range=types.Range(
            start=types.Position(line=line, character=start_char),
            end=types.Position(line=line, character=max(len(text), start_char + 1)),
        ),
        severity=_SEVERITIES[diagnostic.severity],
        code=diagnostic.code,
        source="stateql",
        message=diagnostic.message,
    )


def collect_diagnostics(source: str) -> list[types.Diagnostic]:
    """Return parse diagnostics plus the first compile error of a clean parse."""
    lines = source.splitlines()
    result = parse_source(source)
    diagnostics = list(result.diagnostics)
    if result.ok:
        try:
            SchemaCompiler().compile(result.model)
        except StateQLError as e:
            diagnostics.append(e.to_diagnostic())
    return [to_lsp_diagnostic(d, lines) for d in diagnostics]


def _find_entities(source: str) -> list[str]:
    """Return entity names declared in *source*."""
    blocks, _ = split_blocks(source.splitlines())
    names = [block.header.text.removesuffix(":").strip() for block in blocks]
    return [name for name in names if name]


def _word_at_position(line_text: str, character: int) -> str:
    """Return the contiguous identifier-like word surrounding *character*."""
    if character < 0 or character >= len(line_text):
        return ""
    ch = line_text[character]
    if not (ch.isalnum() or ch == "_"):
        return ""
    # Scan left
    left = character
    while left > 0 and (line_text[left - 1].isalnum() or line_text[left - 1] == "_"):
        left -= 1
    # Scan right
    right = character
    while right < len(line_text) and (line_text[right].isalnum() or line_text[right] == "_"):
        right += 1
    return line_text[left:right]


def completion_items(source: str, prefix: str) -> list[types.CompletionItem]:
    """Return completions for a field line typed up to *prefix*."""
    stripped = prefix.strip()
    if not stripped.startswith(FIELD_MARKER):
        return []

    items: list[types.CompletionItem] = []
    words = stripped.split()
    if words[-1] == "is":
        # Type context — offer primitive types plus the many/action forms
        for name, desc in BUILTIN_TYPES.items():
            items.append(
                types.CompletionItem(
                    label=name,
                    kind=types.CompletionItemKind.TypeParameter,
                    detail=desc,
                )
            )
        for name in ("many", "action"):
            items.append(
                types.CompletionItem(
                    label=name,
                    kind=types.CompletionItemKind.Keyword,
                    detail=KEYWORDS[name],
                )
            )
    elif words[-1] == "many":
        for name in _find_entities(source):
            items.append(
                types.CompletionItem(
                    label=name,
                    kind=types.CompletionItemKind.Class,
                    detail="Entity",
                )
            )
    return items


def hover_text(word: str) -> str | None:
    lower = word.lower()
    if lower in BUILTIN_TYPES:
        return f"**{lower}** — {BUILTIN_TYPES[lower]}"
    if word in KEYWORDS:
        return f"**{word}** — {KEYWORDS[word]}"
    return None


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------

server = LanguageServer("stateql-language-server", "0.1.0")


@server.feature(types.TEXT_DOCUMENT_DID_OPEN)
def did_open(params: types.DidOpenTextDocumentParams) -> None:
    _validate_document(params.text_document.uri)


@server.feature(types.TEXT_DOCUMENT_DID_CHANGE)
def did_change(params: types.DidChangeTextDocumentParams) -> None:
    _validate_document(params.text_document.uri)


def _validate_document(uri: str) -> None:
    doc = server.workspace.get_text_document(uri)
    server.text_document_publish_diagnostics(
        types.PublishDiagnosticsParams(uri=uri, diagnostics=collect_diagnostics(doc.source))
    )


@server.feature(
    types.TEXT_DOCUMENT_COMPLETION,
    types.CompletionOptions(trigger_characters=[" "]),
)
def completions(params: types.CompletionParams) -> types.CompletionList:
    doc = server.workspace.get_text_document(params.text_document.uri)
    line_text = doc.lines[params.position.line] if params.position.line < len(doc.lines) else ""
    prefix = line_text[: params.position.character]
    items = completion_items(doc.source, prefix)
    return types.CompletionList(is_incomplete=False, items=items)


@server.feature(types.TEXT_DOCUMENT_HOVER)
def hover(params: types.HoverParams) -> types.Hover | None:
    doc = server.workspace.get_text_document(params.text_document.uri)
    if params.position.line >= len(doc.lines):
        return None
    line_text = doc.lines[params.position.line]
    word = _word_at_position(line_text, params.position.character)
    if not word:
        return None

    content = hover_text(word)
    if content is None:
        return None
    return types.Hover(
        contents=types.MarkupContent(
            kind=types.MarkupKind.Markdown,
            value=content,
        )
    )


def main() -> None:
    server.start_io()


if __name__ == "__main__":
    main()
