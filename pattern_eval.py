#!/usr/bin/env python3
"""Command-line interface for evaluating pattern scripts against binary files."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from dataclasses import replace
from pathlib import Path
from typing import Optional, Sequence

from patternlab import (
    DataSource,
    EditorSettings,
    EvaluationOrchestrator,
    PatternRuntime,
    PatternTree,
    detect_content_type,
    find_compatible_scripts,
)
from patternlab.lexer import tokenize
from patternlab.printer import ResultTextRenderer, render_tokens
from patternlab.serialize import serialize_result, serialize_token

EXIT_DIAGNOSTIC = 1
EXIT_NO_PATTERN = 2


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("data", type=Path, help="Binary file the pattern is evaluated against")
    parser.add_argument(
        "--pattern",
        type=Path,
        default=None,
        help="Pattern script to evaluate. When omitted the first script whose"
        " '#pragma MIME' matches the data is used.",
    )
    parser.add_argument(
        "--patterns-dir",
        type=Path,
        action="append",
        dest="pattern_dirs",
        default=[],
        help="Additional directory searched for pattern scripts (repeatable)",
    )
    parser.add_argument(
        "--content-type",
        default=None,
        help="Override the detected MIME type of the data",
    )
    parser.add_argument("--json", action="store_true", help="Emit the result as JSON")
    parser.add_argument(
        "--tokens",
        action="store_true",
        help="Print the highlighted tokens of the pattern instead of evaluating it",
    )
    parser.add_argument(
        "--node",
        default=None,
        help="Only print the pattern at this dotted path (e.g. header.magic)",
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default: WARNING)")
    return parser.parse_args(argv)


def validate_inputs(args: argparse.Namespace) -> None:
    paths = [args.data] + ([args.pattern] if args.pattern is not None else [])
    for path in paths:
        if not path.exists():
            raise SystemExit(f"missing input file: {path}")


def resolve_pattern(
    args: argparse.Namespace, settings: EditorSettings, source: DataSource
) -> Optional[Path]:
    if args.pattern is not None:
        return args.pattern
    content_type = args.content_type or detect_content_type(source)
    candidates = find_compatible_scripts(settings.pattern_paths, content_type)
    print(f"content type: {content_type}", file=sys.stderr)
    if not candidates:
        return None
    if len(candidates) > 1:
        others = ", ".join(path.name for path in candidates[1:])
        print(f"also compatible: {others}", file=sys.stderr)
    return candidates[0]


def main(argv: Optional[Sequence[str]] = None) -> int:
    start_time = time.perf_counter()
    args = parse_args(argv)
    settings = EditorSettings.from_environment().with_pattern_paths(args.pattern_dirs)
    logging.basicConfig(
        level=getattr(logging, (args.log_level or settings.log_level).upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
    )
    validate_inputs(args)

    source = DataSource.load(args.data)
    summary = source.describe()
    print(f"data: {summary['name']} ({summary['size']} bytes)", file=sys.stderr)
    pattern_path = resolve_pattern(args, settings, source)
    if pattern_path is None:
        print("no compatible pattern found", file=sys.stderr)
        return EXIT_NO_PATTERN

    text = pattern_path.read_text("utf-8")
    if args.tokens:
        if args.json:
            print(json.dumps([serialize_token(token, text) for token in tokenize(text)], indent=2))
        else:
            sys.stdout.write(render_tokens(text))
        return 0

    orchestrator = EvaluationOrchestrator(PatternRuntime(), data_source=source)
    try:
        orchestrator.request(text)
        orchestrator.wait()
        result = orchestrator.last_result
    finally:
        orchestrator.shutdown()

    if args.node is not None and result.tree is not None:
        node = result.tree.find(args.node)
        if node is None:
            print(f"no pattern named {args.node}", file=sys.stderr)
            return EXIT_DIAGNOSTIC
        result = replace(result, tree=PatternTree((node,)))

    if args.json:
        print(json.dumps(serialize_result(result), indent=2))
    else:
        print(f"pattern: {pattern_path}")
        sys.stdout.write(ResultTextRenderer().render(result))

    total_time = time.perf_counter() - start_time
    print(f"total execution time: {total_time:.2f}s", file=sys.stderr)
    return 0 if result.ok else EXIT_DIAGNOSTIC


if __name__ == "__main__":
    sys.exit(main())
