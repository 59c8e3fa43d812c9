"""Helpers to serialise evaluation results into JSON-ready mappings."""

from __future__ import annotations

from typing import Any, Dict, List

from .lexer import Token
from .patterns import PatternNode, PatternTree
from .runtime import Diagnostic, EvaluationResult, LogEntry


def serialize_node(node: PatternNode) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "name": node.name,
        "type": node.type_name,
        "offset": node.offset,
        "size": node.size,
        "value": node.value,
        "endian": node.endian,
        "color": node.color,
    }
    if node.display is not None:
        payload["display"] = node.display
    if node.children:
        payload["children"] = [serialize_node(child) for child in node.children]
    return payload


def serialize_tree(tree: PatternTree) -> List[Dict[str, Any]]:
    return [serialize_node(root) for root in tree.roots]


def serialize_diagnostic(diagnostic: Diagnostic) -> Dict[str, Any]:
    return {"message": diagnostic.message, "line": diagnostic.line}


def serialize_log_entry(entry: LogEntry) -> Dict[str, str]:
    return {"level": entry.level.value, "message": entry.message}


def serialize_result(result: EvaluationResult) -> Dict[str, Any]:
    """Convert an :class:`EvaluationResult` into a JSON-serialisable mapping."""

    return {
        "patterns": serialize_tree(result.tree) if result.tree is not None else None,
        "diagnostic": (
            serialize_diagnostic(result.diagnostic) if result.diagnostic is not None else None
        ),
        "console": [serialize_log_entry(entry) for entry in result.console],
    }


def serialize_token(token: Token, source: str) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "start": token.start,
        "end": token.end,
        "category": token.category.value,
        "text": token.text(source),
    }
    if token.declaration is not None:
        payload["declaration"] = token.declaration
    return payload


__all__ = [
    "serialize_diagnostic",
    "serialize_log_entry",
    "serialize_node",
    "serialize_result",
    "serialize_token",
    "serialize_tree",
]
