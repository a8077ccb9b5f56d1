"""Extraction of executable code blocks from docstrings.

Every fenced block found in the docstring of a public module or callable
becomes a doc-test unless its info string opts out. Blocks are numbered per
owner, counting only the blocks that are registered, so the name
``mylib.shapes.area (1)`` always denotes the second runnable example in the
docstring of ``mylib.shapes.area``.
"""

import ast
import logging
import re
from collections.abc import Iterator, MutableMapping, Sequence
from dataclasses import dataclass

from testharness.models.expectation import (
    Expectation,
    MustPanic,
    MustPanicContaining,
    MustPass,
)
from testharness.models.unit import DocMode, DocProgram, DocProvenance, TestUnit

log = logging.getLogger(__name__)

FENCE_RE = re.compile(r"^(?P<indent>\s*)(?P<fence>`{3,}|~{3,})(?P<info>.*)$")
PYTHON_TAGS = frozenset({"python", "py", "python3"})
FUTURE_IMPORT_RE = re.compile(r"^from\s+__future__\s+import\b")
MAIN_DEF_RE = re.compile(r"^(async\s+)?def\s+main\s*\(", re.MULTILINE)
MAIN_CALL_RE = re.compile(
    r"^(main\s*\(|asyncio\.run\s*\(\s*main\s*\(|if\s+__name__\s*==)", re.MULTILINE
)


@dataclass(frozen=True, kw_only=True)
class BlockAttributes:
    """Annotations parsed from a fence's info string."""

    python: bool = True
    ignore: bool = False
    should_panic: bool = False
    no_run: bool = False
    compile_fail: bool = False


@dataclass(frozen=True, kw_only=True)
class Fence:
    """A fenced block as found in text."""

    text: str
    info: str
    line: int


@dataclass(frozen=True, kw_only=True)
class DocBlock:
    """A fenced block attributed to its documentation owner."""

    owner: str
    text: str
    attributes: BlockAttributes
    origin: str = "<doc>"


def parse_info(info: str) -> BlockAttributes:
    """Parse a fence info string such as ``python,should_panic``.

    Unknown tokens mark the block as another language unless a Python tag
    is present too; an empty info string means Python.
    """
    tokens = [t for t in re.split(r"[\s,]+", info.strip().strip("{}")) if t]
    seen_python = False
    seen_other = False
    flags: dict[str, bool] = {}

    for token in tokens:
        token = token.lstrip(".")
        if token in PYTHON_TAGS:
            seen_python = True
        elif token in {"ignore", "should_panic", "no_run", "compile_fail"}:
            flags[token] = True
        else:
            seen_other = True

    return BlockAttributes(python=seen_python or not seen_other, **flags)


def extract_fences(text: str) -> Iterator[Fence]:
    """Yield fenced code blocks of ``text`` in order.

    A block closes on a fence of the same character at least as long as the
    opening one; an unclosed block extends to the end of the text.
    """
    lines = text.splitlines()
    i = 0
    while i < len(lines):
        match = FENCE_RE.match(lines[i])
        if match is None or (match["fence"][0] == "`" and "`" in match["info"]):
            i += 1
            continue

        indent = len(match["indent"])
        fence = match["fence"]
        start = i + 1
        end = start
        while end < len(lines) and not _closes(lines[end], fence):
            end += 1

        body = [_strip_indent(line, indent) for line in lines[start:end]]
        text = "".join(f"{line}\n" for line in body)
        yield Fence(text=text, info=match["info"], line=start)
        i = end + 1


def _closes(line: str, fence: str) -> bool:
    stripped = line.strip()
    return len(stripped) >= len(fence) and stripped == fence[0] * len(stripped)


def _strip_indent(line: str, indent: int) -> str:
    removable = len(line) - len(line.lstrip())
    return line[min(indent, removable) :]


def collect_doc_blocks(
    source: str, module_name: str, filename: str = "<doc>"
) -> Sequence[DocBlock]:
    """Collect fenced blocks from a module's public docstrings in source order.

    Args:
        source: Module source text
        module_name: Dotted name of the module, the owner of its docstring
        filename: Path reported in block origins

    Returns:
        Blocks of the module docstring, then of each public function, class
        and public method, as they appear in the file

    """
    tree = ast.parse(source, filename=filename)
    blocks: list[DocBlock] = []
    blocks.extend(_blocks_of(tree, module_name, filename))

    for node in tree.body:
        if not isinstance(node, ast.FunctionDef | ast.AsyncFunctionDef | ast.ClassDef):
            continue
        if node.name.startswith("_"):
            continue
        owner = f"{module_name}.{node.name}"
        blocks.extend(_blocks_of(node, owner, filename))

        if isinstance(node, ast.ClassDef):
            for member in node.body:
                if isinstance(
                    member, ast.FunctionDef | ast.AsyncFunctionDef
                ) and not member.name.startswith("_"):
                    blocks.extend(
                        _blocks_of(member, f"{owner}.{member.name}", filename)
                    )

    return blocks


def _blocks_of(
    node: ast.Module | ast.FunctionDef | ast.AsyncFunctionDef | ast.ClassDef,
    owner: str,
    filename: str,
) -> Iterator[DocBlock]:
    docstring = ast.get_docstring(node, clean=True)
    if not docstring:
        return
    doc_line = node.body[0].lineno if node.body else 1
    for fence in extract_fences(docstring):
        yield DocBlock(
            owner=owner,
            text=fence.text,
            attributes=parse_info(fence.info),
            origin=f"{filename}:{doc_line + fence.line}",
        )


def register_doc_units(
    blocks: Sequence[DocBlock],
    library: str,
    counters: MutableMapping[str, int] | None = None,
) -> Sequence[TestUnit]:
    """Turn executable blocks into doc-test units numbered per owner.

    Args:
        blocks: Blocks in the order they were found
        library: Import name of the library, imported by every program
        counters: Next index per owner; updated in place so several calls
            can share numbering

    Returns:
        One unit per registered block

    """
    if counters is None:
        counters = {}
    units: list[TestUnit] = []

    for block in blocks:
        attrs = block.attributes
        if not attrs.python:
            log.debug("Skipping non-Python block of %s at %s", block.owner, block.origin)
            continue
        if attrs.ignore:
            log.debug("Skipping ignored block of %s at %s", block.owner, block.origin)
            continue

        index = counters.get(block.owner, 0)
        counters[block.owner] = index + 1

        expectation: Expectation
        mode: DocMode
        if attrs.compile_fail:
            expectation, mode = MustPanicContaining(""), "compile_fail"
        elif attrs.should_panic:
            expectation, mode = MustPanic(), "no_run" if attrs.no_run else "run"
        else:
            expectation, mode = MustPass(), "no_run" if attrs.no_run else "run"

        units.append(
            TestUnit(
                name=f"{block.owner} ({index})",
                provenance=DocProvenance(owner=block.owner, index=index),
                expectation=expectation,
                body=DocProgram(
                    source=synthesize(block.text, library),
                    mode=mode,
                    origin=block.origin,
                ),
            )
        )

    return units


def synthesize(text: str, library: str) -> str:
    """Wrap a snippet into a standalone program importing the library.

    ``from __future__`` imports are hoisted above the library import. A
    snippet that defines ``main`` without calling it gets the call appended.
    """
    future: list[str] = []
    body: list[str] = []
    for line in text.splitlines():
        (future if FUTURE_IMPORT_RE.match(line) else body).append(line)

    program = [*future, f"import {library}", *body]
    snippet = "\n".join(body)
    if MAIN_DEF_RE.search(snippet) and not MAIN_CALL_RE.search(snippet):
        if re.search(r"^async\s+def\s+main\s*\(", snippet, re.MULTILINE):
            program += ["import asyncio", "asyncio.run(main())"]
        else:
            program.append("main()")
    return "\n".join(program) + "\n"
