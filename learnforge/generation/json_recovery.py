"""
JSON recovery for free-form completion text.

Models wrap JSON in Markdown fences, prepend chatter, append commentary and
get cut off mid-object when they hit the output limit. JSONRecoveryParser
turns such text back into a decoded value:

1. strip_fences        - drop the outer ``` markers and leading reasoning
2. trim_to_structure   - discard everything before the first { or [
3. find_structure_end  - string-aware depth scan for the last complete end
4. fallback_extract    - try every closer from the right
5. repair              - cut at the last complete value and close open scopes
6. strip_trailing_commas, then a final decode

Each step is a pure function of its input, so every stage can be tested on
string fixtures alone.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Optional

from loguru import logger

from learnforge.core.errors import UnrecoverableJSON

_OPENING_FENCE = re.compile(r"\A```[a-zA-Z0-9_-]*[ \t]*")
_CLOSING_FENCE = re.compile(r"```\Z")
_REASONING = re.compile(r"<(think|thinking|reasoning)>.*?</\1>", re.DOTALL | re.IGNORECASE)

_OPENERS = {"{": "}", "[": "]"}
_CLOSERS = {"}": "{", "]": "["}


@dataclass
class _Frame:
    """One open object or array seen by the repair scanner."""
    opener: str
    expecting_key: bool = False


class JSONRecoveryParser:
    """Extract, clean and repair a JSON payload embedded in text."""

    # Last recovery path taken, for logging and tests
    last_path: Optional[str] = None

    def recover(self, raw_text: str) -> Any:
        """
        Decode the JSON value embedded in `raw_text`.

        Raises:
            UnrecoverableJSON: if no valid structure can be produced
        """
        if not raw_text or not raw_text.strip():
            raise UnrecoverableJSON("Empty response text", raw_text=raw_text or "")

        text = self.strip_fences(raw_text)
        text = self.trim_to_structure(text, raw_text)

        # Fast path: already valid
        value = self._try_decode(text)
        if value is not _FAILED:
            self.last_path = "direct"
            return value

        end = self.find_structure_end(text)
        if end is not None:
            value = self._try_decode(text[: end + 1])
            if value is not _FAILED:
                self.last_path = "boundary"
                if end + 1 < len(text.rstrip()):
                    logger.debug(f"Dropped {len(text) - end - 1} chars of trailing text after JSON")
                return value

        value = self.fallback_extract(text)
        if value is not _FAILED:
            self.last_path = "fallback"
            logger.debug("Recovered JSON by fallback extraction")
            return value

        for candidate in self.repair_candidates(text):
            value = self._try_decode(candidate)
            if value is not _FAILED:
                self.last_path = "repair"
                logger.info(f"Repaired truncated JSON ({len(text)} -> {len(candidate)} chars)")
                return value

        self.last_path = None
        raise UnrecoverableJSON(
            f"Failed to parse AI response as JSON: {raw_text[:120]!r}",
            raw_text=raw_text,
        )

    # =========================================================================
    # Stages
    # =========================================================================

    @staticmethod
    def strip_fences(text: str) -> str:
        """
        Remove a leading and a trailing Markdown code fence and any reasoning
        blocks that precede the JSON.

        Fences and tags after the first `{` or `[` are left alone; they may be
        part of a string value.
        """
        text = text.strip()
        while True:
            match = _REASONING.search(text)
            if match is None:
                break
            first = _first_structural(text)
            if first is not None and first < match.start():
                break
            text = (text[: match.start()] + text[match.end():]).strip()

        text = _OPENING_FENCE.sub("", text).strip()
        return _CLOSING_FENCE.sub("", text).strip()

    @staticmethod
    def trim_to_structure(text: str, raw_text: str = "") -> str:
        """
        Discard everything before the first `{` or `[`.

        Raises:
            UnrecoverableJSON: if the text contains neither
        """
        first = _first_structural(text)
        if first is None:
            raise UnrecoverableJSON("No JSON structure found in response", raw_text=raw_text or text)
        return text[first:]

    @staticmethod
    def find_structure_end(text: str) -> Optional[int]:
        """
        Index of the last character at which a top-level structure closes.

        Braces and brackets inside strings are ignored; an escaped character
        inside a string is skipped. Scanning continues past the first
        candidate so that trailing text after a complete value is excluded
        while a later complete value is preferred.
        """
        brace_depth = 0
        bracket_depth = 0
        opened = False
        in_string = False
        escaped = False
        candidate: Optional[int] = None

        for index, char in enumerate(text):
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue

            if char == '"':
                in_string = True
            elif char == "{":
                brace_depth += 1
                opened = True
            elif char == "[":
                bracket_depth += 1
                opened = True
            elif char == "}" and brace_depth > 0:
                brace_depth -= 1
            elif char == "]" and bracket_depth > 0:
                bracket_depth -= 1
            else:
                continue

            if opened and brace_depth == 0 and bracket_depth == 0 and char in _CLOSERS:
                candidate = index

        return candidate

    def fallback_extract(self, text: str) -> Any:
        """Decode the longest prefix ending at a `}` or `]`, trying closers right to left."""
        closers = [index for index, char in enumerate(text) if char in _CLOSERS]
        for index in sorted(closers, reverse=True):
            value = self._try_decode(text[: index + 1])
            if value is not _FAILED:
                return value
        return _FAILED

    @staticmethod
    def repair_candidates(text: str) -> list[str]:
        """
        Balanced rewrites of a truncated structure, most complete first.

        The scanner tracks open scopes and records the last point at which
        every value seen so far is complete (after an opener, a closer, a
        value string or a scalar). The candidates are the whole text and the
        text cut at that point, each with the open scopes closed in order.
        """
        stack: list[_Frame] = []
        in_string = False
        escaped = False
        string_is_key = False
        scalar_start: Optional[int] = None
        safe_cut = 0
        safe_stack: list[str] = []

        def mark(cut: int) -> None:
            nonlocal safe_cut, safe_stack
            safe_cut = cut
            safe_stack = [frame.opener for frame in stack]

        def end_scalar(cut: int) -> None:
            nonlocal scalar_start
            if scalar_start is not None:
                scalar_start = None
                mark(cut)

        for index, char in enumerate(text):
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                    if not string_is_key:
                        mark(index + 1)
                continue

            if char == '"':
                end_scalar(index)
                in_string = True
                string_is_key = bool(stack) and stack[-1].opener == "{" and stack[-1].expecting_key
                if string_is_key:
                    stack[-1].expecting_key = False
            elif char in _OPENERS:
                end_scalar(index)
                stack.append(_Frame(opener=char, expecting_key=char == "{"))
                mark(index + 1)
            elif char in _CLOSERS:
                end_scalar(index)
                if not stack or stack[-1].opener != _CLOSERS[char]:
                    break
                stack.pop()
                mark(index + 1)
                if not stack:
                    break
            elif char == ",":
                end_scalar(index)
                if stack and stack[-1].opener == "{":
                    stack[-1].expecting_key = True
            elif char == ":":
                end_scalar(index)
            elif char.isspace():
                end_scalar(index)
            elif scalar_start is None:
                scalar_start = index

        open_scopes = [frame.opener for frame in stack]
        candidates = []
        if not in_string:
            candidates.append(_close(text, open_scopes))
        if safe_cut:
            candidates.append(_close(text[:safe_cut], safe_stack))
        return candidates

    def repair(self, text: str) -> str:
        """Best balanced rewrite of `text` that decodes, or the first candidate."""
        candidates = self.repair_candidates(text)
        for candidate in candidates:
            if self._try_decode(candidate) is not _FAILED:
                return candidate
        return candidates[0] if candidates else text

    @staticmethod
    def strip_trailing_commas(text: str) -> str:
        """Remove commas that directly precede a closing brace or bracket (outside strings)."""
        out: list[str] = []
        in_string = False
        escaped = False
        pending_comma: Optional[int] = None

        for char in text:
            if in_string:
                out.append(char)
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue

            if char == ",":
                pending_comma = len(out)
            elif char in _CLOSERS and pending_comma is not None:
                del out[pending_comma]
                pending_comma = None
            elif not char.isspace():
                pending_comma = None
                if char == '"':
                    in_string = True
            out.append(char)

        return "".join(out)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _try_decode(self, text: str) -> Any:
        for candidate in (text, self.strip_trailing_commas(text)):
            try:
                return json.loads(candidate)
            except json.JSONDecodeError:
                continue
        return _FAILED


def _first_structural(text: str) -> Optional[int]:
    positions = [pos for pos in (text.find("{"), text.find("[")) if pos != -1]
    return min(positions) if positions else None


def _close(text: str, open_scopes: list[str]) -> str:
    """Drop a dangling comma or colon and append the closers for `open_scopes`."""
    trimmed = text.rstrip()
    while trimmed and trimmed[-1] in ",:":
        trimmed = trimmed[:-1].rstrip()
    return trimmed + "".join(_OPENERS[opener] for opener in reversed(open_scopes))


class _Failed:
    def __repr__(self) -> str:
        return "<decode failed>"


_FAILED: Any = _Failed()
