"""Find pattern scripts that declare support for a content type.

Scripts announce the data they understand with ``#pragma MIME <type>``.  The
scanner preprocesses every regular file of the configured pattern directories
(pragmas only, the script is never evaluated) and keeps the files whose MIME
pragma equals the active content type.  Results are returned in directory
enumeration order and nothing is cached between calls.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

from .errors import PreprocessorError
from .preprocessor import Preprocessor
from .provider import DataSource, is_loaded

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass
class CandidateScript:
    """A script file considered during one scan pass."""

    path: Path
    preprocessed_once: bool = False


class MimeMatcher:
    """``MIME`` pragma predicate for a single candidate file.

    Returns ``False`` (stop scanning the file) on an exact match and on
    malformed values, ``True`` for well-formed values that do not match.
    """

    def __init__(self, content_type: str) -> None:
        self.content_type = content_type
        self.matched = False

    def __call__(self, value: str) -> bool:
        if value == self.content_type:
            self.matched = True
            return False
        if not value.strip() or value.endswith(("\n", "\r")):
            return False
        return True


def is_blank(text: str) -> bool:
    return not text.strip(" \f\n\r\t\v")


def should_scan(script_text: str, source: Optional[DataSource]) -> bool:
    """Scan only for a freshly loaded source while the script buffer is blank."""

    return is_blank(script_text) and is_loaded(source)


def iter_candidates(directories: Iterable[PathLike]) -> Iterator[CandidateScript]:
    for directory in directories:
        root = Path(directory)
        try:
            entries = list(root.iterdir())
        except OSError as exc:
            logger.debug("skipping pattern directory %s: %s", root, exc)
            continue
        for entry in entries:
            if not entry.is_file():
                continue
            yield CandidateScript(entry)


def matches_content_type(candidate: CandidateScript, content_type: str) -> bool:
    """Return ``True`` when ``candidate`` declares ``content_type``.

    Unreadable files and files the preprocessor rejects count as
    non-matching.
    """

    try:
        # decoded by hand so carriage returns reach the MIME predicate
        code = candidate.path.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("skipping unreadable pattern %s: %s", candidate.path, exc)
        return False

    matcher = MimeMatcher(content_type)
    preprocessor = Preprocessor()
    preprocessor.add_pragma_handler("MIME", matcher)
    preprocessor.add_default_pragma_handlers()
    try:
        preprocessor.preprocess(code)
    except PreprocessorError as exc:
        logger.debug("skipping pattern %s: %s", candidate.path, exc)
        return False
    finally:
        candidate.preprocessed_once = True
    return matcher.matched


def find_compatible_scripts(
    directories: Union[PathLike, Iterable[PathLike]], content_type: str
) -> List[Path]:
    """Return the scripts in ``directories`` whose MIME pragma is ``content_type``."""

    if isinstance(directories, (str, Path)):
        directories = [directories]

    compatible: List[Path] = []
    for candidate in iter_candidates(directories):
        if matches_content_type(candidate, content_type):
            compatible.append(candidate.path)
    logger.debug("found %d pattern(s) for %s", len(compatible), content_type)
    return compatible
