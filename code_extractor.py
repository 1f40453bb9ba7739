"""
Code and Configuration Block Extraction

Scans raw, unsegmented text for multi-line code or config blocks. Code
contains punctuation that defeats sentence splitting, so this runs over the
original text rather than the segmenter's output.

Shapes recognised:
- Fenced blocks delimited by paired triple backticks
- Programming token density (keywords, braces, parens, assignments)
- Orchestration playbooks (hosts: + tasks: + "- name:" task items)
- Container build files (line-initial FROM/RUN/CMD/COPY/... directives)
- key=value and [section] configuration files

Every match must be at least 20 characters and span more than one line.
The highest scoring match wins; ties go to the longer text, then to the
earlier block.

Author: Quinn Evans
"""

import re
from typing import Callable, Iterator, List, Optional, Tuple

from confidence_scorer import score_code
from models import CODE_KIND, Candidate

CODE_CHALLENGE = "code_challenge"
ANSIBLE_PLAYBOOK = "ansible_playbook"

MIN_BLOCK_CHARS = 20

_FENCE = re.compile(r"```[ \t]*([\w+#.-]*)[ \t]*\n(.*?)```", re.DOTALL)

_CODE_LINE = re.compile(
    r"^\s*(?:function|class|import|from|const|let|var|def|return|if|elif|else|"
    r"for|while|try|except|catch|public|private|static)\b"
    r"|[{};]\s*$"
    r"|^\s*[}\])]"
    r"|^\s*[\w.\[\]]+\s*[-+*/%]?=\s*\S"
    r"|\w\([^()]*\)\s*[:{]?\s*$"
)
_INDENTED_LINE = re.compile(r"^(?: {2,}|\t)\S")

_YAML_LINE = re.compile(r"^\s*(?:---\s*$|-\s+\S|[\w.\-/]+:(?:\s|$)|#)")
_PLAYBOOK_HOSTS = re.compile(r"^\s*(?:-\s+)?hosts:", re.MULTILINE)
_PLAYBOOK_TASKS = re.compile(r"^\s*tasks:", re.MULTILINE)
_PLAYBOOK_TASK_ITEM = re.compile(r"^\s*-\s+name:", re.MULTILINE)
PLAYBOOK_MARKERS = ("tasks:", "become:", "apt:", "yum:", "service:", "ansible.builtin")

_BUILD_DIRECTIVE = re.compile(
    r"^(?:FROM|RUN|CMD|COPY|ENTRYPOINT|ADD|ENV|WORKDIR|EXPOSE|ARG|LABEL|USER|VOLUME)\s+\S"
)
_COMMENT_LINE = re.compile(r"^\s*[#;]")

_CONFIG_SECTION = re.compile(r"^\s*\[[^\]\n]+\]\s*$")
_CONFIG_PAIR = re.compile(r"^\s*[\w.\-]+\s*=\s*\S")


def code_subtype(text: str) -> str:
    """Resolve the code subtype from orchestration-specific co-occurring tokens."""
    if _PLAYBOOK_HOSTS.search(text) and any(marker in text for marker in PLAYBOOK_MARKERS):
        return ANSIBLE_PLAYBOOK
    return CODE_CHALLENGE


class CodeExtractor:
    """
    Finds the single most code-like block in a piece of text.

    Attributes:
        min_chars (int): Minimum trimmed length of an accepted block
    """

    def __init__(self, min_chars: int = MIN_BLOCK_CHARS):
        self.min_chars = min_chars

    def extract(self, text: str) -> Optional[Candidate]:
        """
        Extract the best code candidate from raw text.

        Args:
            text (str): Raw, unsegmented input text

        Returns:
            Optional[Candidate]: Highest scoring accepted block, or None
        """
        candidates = self.find_blocks(text)
        if not candidates:
            return None
        return max(candidates, key=lambda c: (c.raw_confidence, len(c.text), -c.position))

    def find_blocks(self, text: str) -> List[Candidate]:
        """Return every accepted block from every shape, scored."""
        if not text or not text.strip():
            return []

        # Pasted Windows text arrives with CRLF or bare CR line endings
        text = text.replace("\r\n", "\n").replace("\r", "\n")
        candidates = list(self._fenced_blocks(text))

        lines = text.splitlines()
        shapes = (
            (self._is_code_line, self._accept_code),
            (self._is_yaml_line, self._accept_playbook),
            (self._is_build_line, self._accept_build_file),
            (self._is_config_line, self._accept_config),
        )
        for starts_block, accept in shapes:
            for start, block_lines in _line_runs(lines, starts_block, self._is_continuation):
                block = "\n".join(block_lines).strip()
                if accept(block_lines) and self._is_multiline_block(block):
                    candidates.append(self._make_candidate(block, block, start))

        return candidates

    # ------------------------------------------------------------------ Fences

    def _fenced_blocks(self, text: str) -> Iterator[Candidate]:
        for match in _FENCE.finditer(text):
            whole = match.group(0).strip()
            body = match.group(2).strip("\n").rstrip()
            if not body.strip() or not self._is_multiline_block(whole):
                continue
            position = text.count("\n", 0, match.start())
            yield self._make_candidate(
                body, whole, position, fenced=True, language=match.group(1) or None
            )

    # ------------------------------------------------------------------ Line predicates

    def _is_code_line(self, line: str) -> bool:
        return bool(_CODE_LINE.search(line))

    def _is_yaml_line(self, line: str) -> bool:
        return bool(_YAML_LINE.match(line))

    def _is_build_line(self, line: str) -> bool:
        return bool(_BUILD_DIRECTIVE.match(line) or _COMMENT_LINE.match(line))

    def _is_config_line(self, line: str) -> bool:
        return bool(_CONFIG_SECTION.match(line) or _CONFIG_PAIR.match(line) or _COMMENT_LINE.match(line))

    def _is_continuation(self, line: str) -> bool:
        return bool(_INDENTED_LINE.match(line))

    # ------------------------------------------------------------------ Shape acceptance

    def _accept_code(self, lines: List[str]) -> bool:
        # At least half the non-blank lines must carry programming tokens
        entries = [line for line in lines if line.strip()]
        code_lines = sum(1 for line in entries if _CODE_LINE.search(line))
        return code_lines * 2 >= len(entries)

    def _accept_playbook(self, lines: List[str]) -> bool:
        block = "\n".join(lines)
        return bool(
            _PLAYBOOK_HOSTS.search(block)
            and _PLAYBOOK_TASKS.search(block)
            and _PLAYBOOK_TASK_ITEM.search(block)
        )

    def _accept_build_file(self, lines: List[str]) -> bool:
        return sum(1 for line in lines if _BUILD_DIRECTIVE.match(line)) >= 2

    def _accept_config(self, lines: List[str]) -> bool:
        entries = [line for line in lines if not _COMMENT_LINE.match(line) and line.strip()]
        return len(entries) >= 2 and any(_CONFIG_PAIR.match(line) for line in entries)

    # ------------------------------------------------------------------ Helpers

    def _is_multiline_block(self, block: str) -> bool:
        return len(block) >= self.min_chars and "\n" in block

    def _make_candidate(
        self,
        body: str,
        original: str,
        position: int,
        fenced: bool = False,
        language: Optional[str] = None,
    ) -> Candidate:
        return Candidate(
            text=body,
            original_text=original,
            position=position,
            raw_confidence=score_code(body, fenced=fenced),
            kind=CODE_KIND,
            fenced=fenced,
            language=language,
        )


def _line_runs(
    lines: List[str],
    starts_block: Callable[[str], bool],
    continues_block: Callable[[str], bool],
) -> Iterator[Tuple[int, List[str]]]:
    """
    Yield maximal runs of lines belonging to one block.

    A run opens on a line accepted by starts_block and extends over lines
    accepted by either predicate. Single blank lines are kept inside a run
    when the block continues after them.
    """
    run: List[str] = []
    run_start = 0
    pending_blank: List[str] = []

    for index, line in enumerate(lines):
        if not line.strip():
            if run:
                pending_blank.append(line)
                if len(pending_blank) > 1:
                    yield run_start, run
                    run, pending_blank = [], []
            continue

        if starts_block(line) or (run and continues_block(line)):
            if not run:
                run_start = index
            run.extend(pending_blank)
            run.append(line)
            pending_blank = []
        elif run:
            yield run_start, run
            run, pending_blank = [], []

    if run:
        yield run_start, run
