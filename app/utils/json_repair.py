"""
Repair-parser for generative-text quiz output

Models are asked for a JSON array of question objects but routinely
return prose around it, Markdown fences, trailing commas, bare keys or
a truncated array. ``parse_question_candidates`` applies an ordered chain
of strategies and returns whatever objects it can recover. It knows
nothing about the question schema; that is the validator's job.
"""
import json
import logging
import re
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

CODE_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*")
TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f]+")
ESCAPE_RE = re.compile(r'\\(["\\/bfnrtu])?')
BARE_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)\s*:")

SMART_QUOTES = {
    "“": '"',
    "”": '"',
    "‘": "'",
    "’": "'",
}


def _normalize_smart_quotes(text: str) -> str:
    for smart, plain in SMART_QUOTES.items():
        text = text.replace(smart, plain)
    return text


def _as_candidates(parsed: Any) -> Optional[List[Dict[str, Any]]]:
    """Accept a list of objects, a {"questions": [...]} envelope or a single object"""
    if isinstance(parsed, dict):
        inner = parsed.get("questions")
        if isinstance(inner, list):
            parsed = inner
        else:
            parsed = [parsed]
    if not isinstance(parsed, list):
        return None
    objects = [item for item in parsed if isinstance(item, dict)]
    # A list with no objects is usually an inner array cut out by the bracket trim
    return objects or None


def clean_response(raw: str) -> str:
    """
    Strip fences and surrounding prose and drop trailing commas

    Everything before the first ``[`` and after the last ``]`` is removed.
    """
    cleaned = CODE_FENCE_RE.sub("", _normalize_smart_quotes(raw.strip()))

    first_bracket = cleaned.find("[")
    if first_bracket > 0:
        cleaned = cleaned[first_bracket:]

    last_bracket = cleaned.rfind("]")
    if last_bracket >= 0:
        cleaned = cleaned[:last_bracket + 1]

    return TRAILING_COMMA_RE.sub(r"\1", cleaned)


def _fix_escape(match: "re.Match") -> str:
    # Valid JSON escapes are kept; a lone backslash becomes a literal one
    return match.group(0) if match.group(1) else "\\\\"


def sanitize_json_string(text: str) -> str:
    """Remove control characters, fix stray escapes, drop trailing commas and quote bare keys"""
    sanitized = CONTROL_CHARS_RE.sub("", text)
    sanitized = ESCAPE_RE.sub(_fix_escape, sanitized)
    sanitized = TRAILING_COMMA_RE.sub(r"\1", sanitized)
    return BARE_KEY_RE.sub(r'\1"\2":', sanitized)


def extract_object_strings(text: str) -> List[str]:
    """
    Carve every top-level ``{...}`` object out of ``text``

    Tracks brace depth and quoted-string state (honouring backslash
    escapes) so braces inside string values do not count. An object that
    is still open when the text ends is dropped.
    """
    objects = []
    depth = 0
    start = -1
    in_string = False
    escape_next = False

    for index, char in enumerate(text):
        if escape_next:
            escape_next = False
            continue
        if char == "\\":
            escape_next = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue

        if char == "{":
            if depth == 0:
                start = index
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0 and start != -1:
                objects.append(text[start:index + 1])
                start = -1

    return objects


def _loads(text: str) -> Optional[List[Dict[str, Any]]]:
    try:
        return _as_candidates(json.loads(text))
    except (ValueError, TypeError):
        return None


def _parse_direct(raw: str) -> Optional[List[Dict[str, Any]]]:
    return _loads(clean_response(raw))


def _parse_sanitized(raw: str) -> Optional[List[Dict[str, Any]]]:
    return _loads(sanitize_json_string(clean_response(raw)))


def _parse_fragments(text: str) -> List[Dict[str, Any]]:
    candidates = []
    for fragment in extract_object_strings(sanitize_json_string(text)):
        try:
            parsed = json.loads(fragment)
        except ValueError:
            logger.debug(f"Discarding unparseable object fragment: {fragment[:80]}")
            continue
        if isinstance(parsed, dict):
            candidates.append(parsed)
    return candidates


def _parse_object_by_object(raw: str) -> Optional[List[Dict[str, Any]]]:
    candidates = _parse_fragments(clean_response(raw))
    if not candidates:
        # The bracket cut can land inside an object when no array was emitted
        candidates = _parse_fragments(CODE_FENCE_RE.sub("", _normalize_smart_quotes(raw)))
    return candidates or None


REPAIR_STAGES = (
    ("direct", _parse_direct),
    ("sanitized", _parse_sanitized),
    ("object_scan", _parse_object_by_object),
)


def parse_question_candidates(raw: Any) -> List[Dict[str, Any]]:
    """
    Turn raw generator output into a list of loosely-typed question objects

    Never raises; returns an empty list when nothing can be recovered.
    """
    if not isinstance(raw, str) or not raw.strip():
        return []

    for name, stage in REPAIR_STAGES:
        try:
            candidates = stage(raw)
        except Exception as e:
            # Repair never raises
            logger.warning(f"Repair stage '{name}' crashed: {str(e)}")
            continue
        if candidates is not None:
            logger.debug(f"Repair stage '{name}' recovered {len(candidates)} objects")
            return candidates
        logger.debug(f"Repair stage '{name}' failed, trying next")

    logger.warning(f"Could not recover any question objects from response: {raw[:200]}")
    return []
