# =============================================================
# recovery.py
# -------------------------------------------------------------
# Turns arbitrary model output into syntactically valid JSON.
# Stages, each tried only when the previous one failed:
#   1) strip markdown fences / HTML comments, parse as-is
#   2) outermost balanced {...} (string- and escape-aware scan)
#   3) loose boundaries: first "{" to last "}"
#   4) truncation completion: trim dangling tail, close open [ and {
#   5) fixed placeholder object (recover_json only)
# =============================================================

from __future__ import annotations
import json
import re
from typing import Any, Dict, List, Optional, Tuple

from .errors import JSONRecoveryError
from .logs import get_logger

logger = get_logger(__name__)

PLACEHOLDER_RESULT: Dict[str, Any] = {
    "overall_score": 0,
    "ats_score": 0,
    "main_roast": "Error parsing AI response",
    "score_category": "Poor",
    "resume_sections": [],
    "missing_sections": [],
}

# Top-level keys surfaced while a streamed document is still incomplete.
PARTIAL_INT_FIELDS = ("overall_score", "ats_score", "original_resume_score", "improved_resume_score")
PARTIAL_STR_FIELDS = ("main_roast", "analysis_headline", "score_category")

_HTML_COMMENT = re.compile(r"<!--[\s\S]*?-->")
_FENCED_BLOCK = re.compile(r"```(?:json)?[ \t]*\n?([\s\S]*?)\s*```", re.IGNORECASE)
_OPEN_FENCE = re.compile(r"^```(?:json)?[ \t]*\n?", re.IGNORECASE)
_CLOSE_FENCE = re.compile(r"\n?\s*```\s*$")
_DANGLING_KEY = re.compile(r'[,{]\s*"(?:[^"\\]|\\.)*"\s*:?\s*$')
_TRUNCATED_KEY = re.compile(r'"[^"]*":\s*$')
_STRING_BODY = r'"((?:[^"\\]|\\.)*)(")?'


def dumps(obj: Any) -> str:
    """Compact serialization used for every recovered payload."""
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"))


# ---------- Stage 1
def strip_markup(text: str) -> str:
    """Remove HTML comments and markdown code fences around a JSON payload."""
    cleaned = _HTML_COMMENT.sub("", text or "").strip()
    if cleaned.startswith(("{", "[")):
        # already bare JSON; backticks inside string values are content
        return cleaned
    fenced = _FENCED_BLOCK.search(cleaned)
    if fenced:
        return fenced.group(1).strip()
    # an unterminated fence is common on truncated streams
    cleaned = _OPEN_FENCE.sub("", cleaned)
    cleaned = _CLOSE_FENCE.sub("", cleaned)
    return cleaned.strip()


# ---------- Scanning
def _scan(text: str) -> Tuple[List[str], bool, bool]:
    """Return (open bracket stack, inside string?, pending escape?) at the end of text."""
    stack: List[str] = []
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in "{[":
            stack.append(ch)
        elif ch in "}]" and stack:
            stack.pop()
    return stack, in_string, escaped


def find_balanced_object(text: str) -> Optional[str]:
    """
    Return the outermost balanced {...} starting at the first "{".
    Braces inside string literals (including escaped quotes) do not count.
    """
    start = text.find("{")
    if start < 0:
        return None
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def find_loose_object(text: str) -> Optional[str]:
    start = text.find("{")
    end = text.rfind("}")
    if start < 0 or end <= start:
        return None
    return text[start:end + 1]


# ---------- Stage 4
def looks_truncated(text: str) -> bool:
    t = text.rstrip()
    return t.endswith(":") or t.endswith('",') or bool(_TRUNCATED_KEY.search(t))


def trim_dangling_tail(body: str) -> str:
    while True:
        t = body.rstrip()
        if t.endswith(","):
            body = t[:-1]
            continue
        m = _DANGLING_KEY.search(t)
        if m:
            stack, _, _ = _scan(t[:m.start() + 1])
            if stack and stack[-1] == "{":
                # a string right after "{" or "," inside an object is a key without a value
                cut = m.start() + 1 if t[m.start()] == "{" else m.start()
                body = t[:cut]
                continue
        return t


def complete_truncated(text: str) -> str:
    """Close a cut-off document with the minimum number of ] and } tokens."""
    start = text.find("{")
    if start < 0:
        raise JSONRecoveryError("No JSON object found")
    body = text[start:].rstrip()
    _, in_string, escaped = _scan(body)
    if in_string:
        if escaped:
            body = body[:-1]
        body += '"'
    body = trim_dangling_tail(body)
    stack, _, _ = _scan(body)
    closers = "".join("}" if c == "{" else "]" for c in reversed(stack))
    return body + closers


# ---------- Public entry points
def _loads(candidate: Optional[str]) -> Any:
    if candidate is None:
        raise ValueError("no candidate")
    return json.loads(candidate)


def parse_json(text: str) -> Any:
    """Run stages 1-4 and return the parsed value, or raise JSONRecoveryError."""
    cleaned = strip_markup(text)
    if not cleaned:
        raise JSONRecoveryError("Empty response")

    stages = (
        ("direct", lambda: cleaned),
        ("balanced", lambda: find_balanced_object(cleaned)),
        ("loose", lambda: find_loose_object(cleaned)),
        ("completion", lambda: complete_truncated(cleaned)),
    )
    for name, candidate in stages:
        try:
            value = _loads(candidate())
        except (ValueError, JSONRecoveryError):
            logger.debug("JSON recovery stage %s failed", name)
            continue
        if name != "direct":
            logger.info("Recovered JSON with %s stage", name)
        return value
    raise JSONRecoveryError("Could not parse the AI response as JSON")


def recover_json(text: str, placeholder: Optional[Dict[str, Any]] = None) -> str:
    """Always return valid JSON text; falls back to a placeholder object."""
    try:
        return dumps(parse_json(text))
    except JSONRecoveryError:
        logger.warning("All JSON recovery stages failed, returning placeholder: %r", (text or "")[:200])
        return dumps(placeholder if placeholder is not None else PLACEHOLDER_RESULT)


# ---------- Streaming helpers
def extract_partial_fields(buffer: str) -> Optional[Dict[str, Any]]:
    """Pull allow-listed top-level fields out of an incomplete document."""
    partial: Dict[str, Any] = {}
    for key in PARTIAL_INT_FIELDS:
        m = re.search(rf'"{key}"\s*:\s*(\d+)', buffer)
        if m:
            partial[key] = int(m.group(1))
    for key in PARTIAL_STR_FIELDS:
        m = re.search(rf'"{key}"\s*:\s*' + _STRING_BODY, buffer)
        if not m:
            continue
        raw, closed = m.group(1), m.group(2)
        if closed:
            try:
                partial[key] = json.loads(f'"{raw}"')
            except ValueError:
                partial[key] = raw
        elif raw:
            partial[key] = raw.rstrip("\\")
    return partial or None


def try_parse_partial(buffer: str) -> Any:
    """Full parse of the accumulated stream buffer, else a field-level best effort."""
    try:
        return json.loads(strip_markup(buffer))
    except ValueError:
        return extract_partial_fields(buffer)
