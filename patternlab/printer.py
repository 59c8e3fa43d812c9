"""Plain text rendering of evaluation results."""

from __future__ import annotations

from typing import Iterable, List

from .lexer import tokenize
from .patterns import PatternNode
from .runtime import EvaluationResult


class ResultTextRenderer:
    """Render :class:`EvaluationResult` instances into a stable textual form."""

    indent = "  "

    def render(self, result: EvaluationResult) -> str:
        lines: List[str] = []
        if result.tree is not None:
            lines.append("; patterns")
            if result.tree.roots:
                for root in result.tree.roots:
                    lines.extend(self._render_node(root, 1))
            else:
                lines.append(";   (empty)")
        if result.diagnostic is not None:
            lines.append(f"; error: {result.diagnostic.describe()}")
        lines.append("; console")
        lines.extend(self._render_console(result))
        return "\n".join(lines) + "\n"

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _render_node(self, node: PatternNode, depth: int) -> Iterable[str]:
        yield self.indent * depth + node.describe()
        for child in node.children:
            yield from self._render_node(child, depth + 1)

    def _render_console(self, result: EvaluationResult) -> Iterable[str]:
        if not result.console:
            yield ";   (empty)"
            return
        for entry in result.console:
            yield f";   [{entry.level.value}] {entry.message}"


def render_tokens(source: str) -> str:
    """List the highlighted tokens of ``source`` one per line."""

    lines = []
    for token in tokenize(source):
        line = source.count("\n", 0, token.start) + 1
        column = token.start - (source.rfind("\n", 0, token.start) + 1) + 1
        text = token.text(source)
        lines.append(f"{line}:{column}\t{token.category.value:<13}{text}")
    return "\n".join(lines) + "\n"
