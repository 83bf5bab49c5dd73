"""
Response Repair
Tolerant extraction of the {explanation, code} payload from a model response

Models are asked for a JSON object but routinely wrap it in code fences, add
prose around it, or put raw newlines inside the "code" string. Parsing is
attempted in order of strictness:

1. strict JSON
2. JSON after re-escaping control characters inside the "code" string
3. direct extraction of the "code"/"explanation" string bodies
4. the whole response as code
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Optional, Tuple

from .errors import MalformedResponse

logger = logging.getLogger(__name__)

NO_EXPLANATION = "No explanation provided"

FENCED_BLOCK = re.compile(r'```[\w+-]*[^\S\n]*\n?(.*?)```', re.DOTALL)
WHOLE_FENCE = re.compile(r'\s*```[\w+-]*[^\S\n]*\n(.*?)\n?```\s*', re.DOTALL)
HEX4 = re.compile(r'[0-9a-fA-F]{4}')

CONTROL_ESCAPES = {
    '\n': '\\n',
    '\r': '\\r',
    '\t': '\\t',
    '\f': '\\f',
    '\b': '\\b',
    '\v': '\\u000b',  # JSON has no \v escape
}

SIMPLE_UNESCAPES = {
    'n': '\n',
    'r': '\r',
    't': '\t',
    'f': '\f',
    'v': '\v',
    'b': '\b',
    '"': '"',
    "'": "'",
    '\\': '\\',
    '/': '/',
}


@dataclass
class ParsedResponse:
    explanation: str
    code: str
    strategy: str  # strict | sanitized | extracted | raw


def parse_model_response(response_text: str) -> ParsedResponse:
    """
    Extract the explanation and code from a model response.

    Args:
        response_text: Raw model output

    Returns:
        ParsedResponse with the strategy that succeeded

    Raises:
        MalformedResponse: if the resulting code body is empty
    """
    text = response_text or ''
    candidate = select_candidate(text)

    parsed = (
        _parse_strict(candidate, 'strict')
        or _parse_sanitized(candidate)
        or _parse_extracted(candidate)
    )

    if parsed is None:
        logger.debug(" Response is not JSON, using the whole response as code")
        parsed = ParsedResponse(NO_EXPLANATION, _strip_outer_fence(text), 'raw')

    if not parsed.code.strip():
        raise MalformedResponse("Model response did not contain any code")

    logger.debug(f" Parsed model response ({parsed.strategy}, {len(parsed.code)} chars of code)")
    return parsed


def _has_payload_tokens(text: str) -> bool:
    return '"explanation"' in text and '"code"' in text


def select_candidate(text: str) -> str:
    """Pick the substring most likely to hold the JSON payload"""
    for match in FENCED_BLOCK.finditer(text):
        body = match.group(1)
        if _has_payload_tokens(body):
            return body.strip()

    start, end = text.find('{'), text.rfind('}')
    if start != -1 and end > start:
        span = text[start:end + 1]
        if _has_payload_tokens(span):
            return span

    return text


def _parse_strict(candidate: str, strategy: str) -> Optional[ParsedResponse]:
    try:
        data = json.loads(candidate)
    except (json.JSONDecodeError, ValueError):
        return None

    if not isinstance(data, dict) or not isinstance(data.get('code'), str):
        return None

    explanation = data.get('explanation')
    if not isinstance(explanation, str) or not explanation.strip():
        explanation = NO_EXPLANATION
    return ParsedResponse(explanation, data['code'], strategy)


def _parse_sanitized(candidate: str) -> Optional[ParsedResponse]:
    span = find_string_value(candidate, 'code')
    if span is None:
        return None

    start, end = span
    repaired = candidate[:start] + escape_control_chars(candidate[start:end]) + candidate[end:]
    if repaired == candidate:
        return None
    return _parse_strict(repaired, 'sanitized')


def _parse_extracted(candidate: str) -> Optional[ParsedResponse]:
    code_span = find_string_value(candidate, 'code')
    if code_span is None:
        return None

    code = unescape_json_string(candidate[code_span[0]:code_span[1]])

    explanation = NO_EXPLANATION
    explanation_span = find_string_value(candidate, 'explanation')
    if explanation_span is not None:
        explanation = unescape_json_string(candidate[explanation_span[0]:explanation_span[1]]) or NO_EXPLANATION

    return ParsedResponse(explanation, code, 'extracted')


def find_string_value(text: str, field: str) -> Optional[Tuple[int, int]]:
    """
    Locate the body of a JSON string field, tolerating raw control characters.

    Returns (start, end) such that text[start:end] is the string body without
    its quotes, or None when the field or its closing quote is missing.
    """
    key = re.search(r'"%s"\s*:\s*"' % re.escape(field), text)
    if key is None:
        return None

    start = key.end()
    closing = find_closing_quote(text, start)
    if closing is None:
        return None
    return start, closing


def find_closing_quote(text: str, start: int) -> Optional[int]:
    """
    Scan a string body from start and return the index of its closing quote.

    Escaped quotes are skipped. A bare quote only closes the string when it is
    followed by optional whitespace and then ',' or '}' (or the end of the
    text), so stray unescaped quotes inside code do not end the body early.
    """
    escaped = False
    i = start
    length = len(text)

    while i < length:
        ch = text[i]
        if escaped:
            escaped = False
        elif ch == '\\':
            escaped = True
        elif ch == '"':
            j = i + 1
            while j < length and text[j] in ' \t\r\n':
                j += 1
            if j >= length or text[j] in ',}':
                return i
        i += 1

    return None


def escape_control_chars(body: str) -> str:
    """Re-escape literal control characters so the body is a valid JSON string"""
    out = []
    for ch in body:
        if ch in CONTROL_ESCAPES:
            out.append(CONTROL_ESCAPES[ch])
        elif ord(ch) < 0x20:
            out.append(f'\\u{ord(ch):04x}')
        else:
            out.append(ch)
    return ''.join(out)


def unescape_json_string(body: str) -> str:
    """Decode the common JSON/JS escape sequences; unknown escapes are kept verbatim"""
    out = []
    i = 0
    length = len(body)

    while i < length:
        ch = body[i]
        if ch == '\\' and i + 1 < length:
            nxt = body[i + 1]
            if nxt in SIMPLE_UNESCAPES:
                out.append(SIMPLE_UNESCAPES[nxt])
                i += 2
                continue
            if nxt == 'u' and HEX4.fullmatch(body[i + 2:i + 6]):
                out.append(chr(int(body[i + 2:i + 6], 16)))
                i += 6
                continue
        out.append(ch)
        i += 1

    return ''.join(out)


def _strip_outer_fence(text: str) -> str:
    match = WHOLE_FENCE.fullmatch(text)
    if match:
        return match.group(1).strip()
    return text.strip()
