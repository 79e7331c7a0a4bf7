from __future__ import annotations

import json
import logging
import os
import re
import shutil
import subprocess
from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote, urlsplit

from aipreview.templates import ALLOWED_IMAGE_HOSTS


log = logging.getLogger(__name__)

CANONICAL_COMPONENT = "App"
ALTERNATE_COMPONENT = "GeneratedComponent"

try:
    JS_CHECK_TIMEOUT_SECS = float(os.getenv("JS_SYNTAX_CHECK_TIMEOUT_SECS", "5") or 5)
except ValueError:
    JS_CHECK_TIMEOUT_SECS = 5.0

SYNTAX_CHECK_UNAVAILABLE = "syntax check unavailable"


class MalformedModelOutput(ValueError):
    """Raised internally when every JSON repair layer has failed."""


# ---------------------------------------------------------------------------
# JSON extraction
# ---------------------------------------------------------------------------

_LEADING_FENCE_RE = re.compile(r"^```[\w+-]*[ \t]*\n?")
_TRAILING_FENCE_RE = re.compile(r"\n?[ \t]*```\s*$")
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_FIELD_END_RE = re.compile(r"\s*[,}]")

_VALID_JSON_ESCAPES = frozenset('"\\/bfnrtu')
_RAW_CHAR_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}


def strip_markdown_fence(text: str) -> str:
    t = (text or "").strip()
    t = _LEADING_FENCE_RE.sub("", t, count=1)
    t = _TRAILING_FENCE_RE.sub("", t, count=1)
    return t.strip()


def extract_json_candidate(text: str) -> str:
    """Fence-strip, cut to the outermost {...} span and drop control characters.

    Newlines, carriage returns and tabs survive so pretty-printed JSON stays intact.
    """
    t = strip_markdown_fence(text)
    start = t.find("{")
    end = t.rfind("}")
    if start != -1 and end > start:
        t = t[start : end + 1]
    return _CONTROL_CHARS_RE.sub("", t)


def _escape_string_contents(text: str) -> str:
    """Escape raw newlines/tabs and stray backslashes inside every string literal."""
    out = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        out.append(ch)
        i += 1
        if ch != '"':
            continue
        while i < n:
            c = text[i]
            if c == "\\":
                nxt = text[i + 1] if i + 1 < n else ""
                if nxt and nxt in _VALID_JSON_ESCAPES:
                    out.append(c + nxt)
                    i += 2
                else:
                    out.append("\\\\")
                    i += 1
                continue
            i += 1
            if c == '"':
                out.append(c)
                break
            out.append(_RAW_CHAR_ESCAPES.get(c, c))
    return "".join(out)


def _escape_raw(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )


def _find_code_value(text: str) -> Optional[Tuple[int, int, bool]]:
    """Locate the raw value of the "code" field.

    Returns (start, end, terminated). A quote only closes the value when it is
    unescaped and followed by optional whitespace and then ``,`` or ``}``.
    When no such quote exists the value runs to the last ``}`` (or the end of
    the text), minus trailing whitespace and one trailing quote.
    """
    key = text.find('"code"')
    if key == -1:
        return None
    colon = text.find(":", key + 6)
    if colon == -1:
        return None
    open_quote = text.find('"', colon + 1)
    if open_quote == -1:
        return None
    start = open_quote + 1
    last_brace = text.rfind("}")
    limit = last_brace if last_brace >= start else len(text)

    escaped = False
    for i in range(start, limit):
        ch = text[i]
        if escaped:
            escaped = False
            continue
        if ch == "\\":
            escaped = True
            continue
        if ch == '"' and _FIELD_END_RE.match(text, i + 1):
            return start, i, True

    end = limit
    while end > start and text[end - 1].isspace():
        end -= 1
    if end > start and text[end - 1] == '"':
        end -= 1
    return start, end, False


def _repair_code_field(text: str) -> str:
    span = _find_code_value(text)
    if span is None:
        raise MalformedModelOutput("no code field to repair")
    start, end, terminated = span
    value = _escape_raw(text[start:end])
    if terminated:
        return text[:start] + value + text[end:]
    return text[:start] + value + '"}'


def _load_with_repairs(candidate: str) -> Any:
    try:
        return json.loads(candidate)
    except ValueError as e:
        log.warning("Model JSON did not parse (%s); escaping string contents", e)

    try:
        parsed = json.loads(_escape_string_contents(candidate))
        log.info("Recovered model JSON by escaping string contents")
        return parsed
    except ValueError:
        pass

    repaired = _repair_code_field(candidate)
    try:
        parsed = json.loads(repaired)
    except ValueError:
        # The code field is clean now; other fields may still carry raw newlines.
        try:
            parsed = json.loads(_escape_string_contents(repaired))
        except ValueError as e:
            raise MalformedModelOutput(f"all JSON repair layers failed: {e}") from e
    log.info("Recovered model JSON by re-escaping the code field")
    return parsed


def _degraded_result(candidate: str, reason: str) -> Dict[str, Any]:
    span = _find_code_value(candidate)
    code = candidate[span[0] : span[1]] if span else ""
    if code:
        code = finalize_component_source(code)
    return {
        "analysis": f"AI returned invalid JSON format that could not be fixed ({reason})",
        "code": code,
    }


def parse_combined_response(text: str) -> Dict[str, Any]:
    """Turn combined-mode model text into ``{"analysis": ..., "code": ...}``.

    Never raises: when no repair layer yields JSON the result is a degraded
    object whose ``analysis`` is a diagnostic string.
    """
    candidate = ""
    try:
        candidate = extract_json_candidate(text)
        try:
            parsed = _load_with_repairs(candidate)
        except MalformedModelOutput as e:
            log.error("All JSON parsing attempts failed (length=%d): %s", len(candidate), e)
            return _degraded_result(candidate, str(e))

        if not isinstance(parsed, dict):
            return _degraded_result(candidate, "model output is not a JSON object")

        code = parsed.get("code")
        if isinstance(code, str) and code:
            parsed["code"] = finalize_component_source(code)
        elif not isinstance(code, str):
            parsed["code"] = ""
        if "analysis" not in parsed:
            parsed["analysis"] = {}
        return parsed
    except Exception as e:
        log.exception("Unexpected error while parsing combined response")
        return {
            "analysis": f"AI returned invalid JSON format that could not be fixed ({e!r})",
            "code": "",
        }


def parse_analysis_response(text: str) -> Tuple[Optional[Any], str]:
    """Return (parsed document or None, result text) for analysis-only output."""
    candidate = extract_json_candidate(text)
    for attempt in (candidate, _escape_string_contents(candidate)):
        try:
            parsed = json.loads(attempt)
        except ValueError:
            continue
        return parsed, json.dumps(parsed, indent=2, ensure_ascii=False)
    return None, (text or "").strip()


def extract_code(text: str) -> str:
    """Website-only output: the whole fence-stripped text is the component."""
    return finalize_component_source(strip_markdown_fence(text))


# ---------------------------------------------------------------------------
# Component source normalization
# ---------------------------------------------------------------------------

_ANY_FENCE_RE = re.compile(r"```[\w+-]*[ \t]*\n?")
_FUNCTION_ARROW_RE = re.compile(r"\bfunction\s+([A-Za-z_$][\w$]*)\s*\(([^)]*)\)\s*=>")
_ALT_ARROW_DECL_RE = re.compile(
    rf"\b(?:const|let|var)\s+{ALTERNATE_COMPONENT}\s*=\s*\(([^)]*)\)\s*=>\s*\{{"
)
_ALT_NAME_RE = re.compile(rf"\b{ALTERNATE_COMPONENT}\b")
_CANONICAL_DECL_RE = re.compile(
    rf"^[ \t]*(?:export\s+(?:default\s+)?)?"
    rf"(?:(?:async\s+)?function\s+{CANONICAL_COMPONENT}\s*\(|(?:const|let|var)\s+{CANONICAL_COMPONENT}\s*=|class\s+{CANONICAL_COMPONENT}\b)",
    re.MULTILINE,
)
_TOP_LEVEL_COMPONENT_RE = re.compile(
    r"^(?:export\s+(?:default\s+)?)?"
    r"(?:(?:async\s+)?function\s+([A-Z][\w$]*)\s*\(|(?:const|let|var)\s+([A-Z][\w$]*)\s*=\s*(?:\(|function\b|async\b|React\.|memo\()|class\s+([A-Z][\w$]*)\b)",
    re.MULTILINE,
)
_ANON_DEFAULT_FUNCTION_RE = re.compile(r"^([ \t]*)export\s+default\s+function\s*\(", re.MULTILINE)
_ANON_DEFAULT_ARROW_RE = re.compile(r"^([ \t]*)export\s+default\s+(?=\(|async\b)", re.MULTILINE)
_DEFAULT_EXPORT_TARGET_RE = re.compile(
    r"^[ \t]*export\s+default\s+(?:(?:async\s+)?function\s+|class\s+)?([A-Za-z_$][\w$]*)", re.MULTILINE
)
_DEFAULT_EXPORT_DECL_RE = re.compile(
    r"^([ \t]*)export\s+default\s+(?=(?:async\s+)?function\b|class\b)", re.MULTILINE
)
_DEFAULT_EXPORT_STMT_RE = re.compile(
    r"^[ \t]*export\s+default\s+[\w.$]+(?:\([\w.$, ]*\))?[ \t]*;?[ \t]*(?:\n|$)", re.MULTILINE
)
_IMPORT_LINE_RE = re.compile(r"^[ \t]*import\s[^\n]*(?:\n|$)", re.MULTILINE)

_JSX_EXPRESSION_RE = re.compile(r"\{([^{}]*)\}")
_TRAILING_PUNCT_RE = re.compile(r"(?:\s*[;,.])+\s*$")
_BLOCK_OPENER_RE = re.compile(r"(?:\)|=>|\belse|\btry|\bfinally|\bdo)$")

_SYNTAX_REPAIRS = [
    (re.compile(r";+(?=\})"), ""),
    (re.compile(r"';+(?=\s*[)\]}])"), "'"),
    (re.compile(r",{2,}"), ","),
    (re.compile(r"\{,+"), "{"),
    (re.compile(r",+(?=\})"), ""),
]


def _unquote_json_string(code: str) -> str:
    if len(code) >= 2 and code.startswith('"') and code.endswith('"'):
        try:
            value = json.loads(code)
        except ValueError:
            return code
        if isinstance(value, str):
            return value
    return code


def _unescape_literals(code: str) -> str:
    # Text with real newlines was already decoded; its backslashes belong to the JS.
    if "\n" in code:
        return code
    return (
        code.replace("\\n", "\n")
        .replace("\\t", "\t")
        .replace("\\r", "\r")
        .replace('\\"', '"')
        .replace("\\\\", "\\")
    )


def _default_export_target(code: str) -> Optional[str]:
    m = _DEFAULT_EXPORT_TARGET_RE.search(code)
    if not m:
        return None
    name = m.group(1)
    if name in {"function", "class", "async"}:
        return None
    declared = re.search(
        rf"^(?:export\s+(?:default\s+)?)?(?:(?:async\s+)?function\s+{re.escape(name)}\s*\(|(?:const|let|var)\s+{re.escape(name)}\s*=|class\s+{re.escape(name)}\b)",
        code,
        re.MULTILINE,
    )
    return name if declared else None


def _first_top_level_component(code: str) -> Optional[str]:
    m = _TOP_LEVEL_COMPONENT_RE.search(code)
    if not m:
        return None
    return next(g for g in m.groups() if g)


def _rename_component(code: str, name: str) -> str:
    """Rename the component where it is used as an identifier.

    Covers the declaration, JSX tags, the default export and bare references
    such as ``{Home}`` or ``memo(Home)``. JSX text and string literals that
    merely spell the name stay as they are.
    """
    rx = re.compile(
        r"(\bfunction\s+|\bclass\s+|\b(?:const|let|var)\s+|</?|\bexport\s+default\s+|[({]\s*)"
        rf"{re.escape(name)}(?![\w$])"
    )
    return rx.sub(lambda m: m.group(1) + CANONICAL_COMPONENT, code)


def _canonicalize_component(code: str) -> str:
    code = _FUNCTION_ARROW_RE.sub(r"function \1(\2)", code)
    code = _ALT_ARROW_DECL_RE.sub(rf"function {CANONICAL_COMPONENT}(\1) {{", code)
    code = _ALT_NAME_RE.sub(CANONICAL_COMPONENT, code)
    if _CANONICAL_DECL_RE.search(code):
        return code
    if _ANON_DEFAULT_FUNCTION_RE.search(code):
        return _ANON_DEFAULT_FUNCTION_RE.sub(rf"\1export default function {CANONICAL_COMPONENT}(", code, count=1)
    if _ANON_DEFAULT_ARROW_RE.search(code):
        return _ANON_DEFAULT_ARROW_RE.sub(rf"\1const {CANONICAL_COMPONENT} = ", code, count=1)
    # Prefer the component the model exported; otherwise the first one declared.
    name = _default_export_target(code) or _first_top_level_component(code)
    if name and name != CANONICAL_COMPONENT:
        log.info("Renaming component %s to %s", name, CANONICAL_COMPONENT)
        code = _rename_component(code, name)
    return code


def _ensure_default_export(code: str) -> str:
    code = _DEFAULT_EXPORT_DECL_RE.sub(r"\1", code)
    code = _DEFAULT_EXPORT_STMT_RE.sub("", code)
    return code.rstrip() + f"\n\nexport default {CANONICAL_COMPONENT};"


def _preceding_token(s: str, idx: int) -> str:
    j = idx
    while j > 0 and s[j - 1].isspace():
        j -= 1
    return s[max(0, j - 8) : j]


def sanitize_jsx_expressions(code: str) -> str:
    """Drop stray ``;`` ``,`` ``.`` at the end of single-level ``{...}`` expressions.

    ``{value;}`` -> ``{value}`` and ``{;}`` -> ``{}``. Braces that open a block
    (after ``)``, ``=>``, ``else`` ...) are left alone.
    """

    def repl(m: re.Match[str]) -> str:
        inner = m.group(1)
        if not _TRAILING_PUNCT_RE.search(inner):
            return m.group(0)
        if _BLOCK_OPENER_RE.search(_preceding_token(m.string, m.start())):
            return m.group(0)
        return "{" + _TRAILING_PUNCT_RE.sub("", inner) + "}"

    return _JSX_EXPRESSION_RE.sub(repl, code)


def _node_binary() -> Optional[str]:
    return shutil.which("node")


def _js_syntax_error(code: str) -> Optional[str]:
    """Compile the component as a function body with Node; None when it compiles."""
    node = _node_binary()
    if not node:
        return SYNTAX_CHECK_UNAVAILABLE
    body = _DEFAULT_EXPORT_STMT_RE.sub("", _IMPORT_LINE_RE.sub("", code))
    script = "let s='';process.stdin.on('data',d=>s+=d).on('end',()=>{new Function(s);});"
    try:
        result = subprocess.run(
            [node, "-e", script],
            input=body,
            capture_output=True,
            text=True,
            check=False,
            timeout=JS_CHECK_TIMEOUT_SECS,
        )
    except (OSError, subprocess.SubprocessError) as e:
        log.debug("JS syntax check unavailable: %r", e)
        return SYNTAX_CHECK_UNAVAILABLE
    if result.returncode != 0:
        err = (result.stderr or result.stdout or "JS syntax error").strip()
        return err.splitlines()[-1] if err else "JS syntax error"
    return None


def repair_js_syntax(code: str) -> str:
    """Best-effort regex repairs; the result is accepted whether or not it compiles."""
    error = _js_syntax_error(code)
    if error is None:
        return code
    log.debug("Applying best-effort syntax repairs: %s", error)
    for _ in range(5):
        before = code
        for rx, replacement in _SYNTAX_REPAIRS:
            code = rx.sub(replacement, code)
        if code == before:
            break
    return code


def normalize_component_source(code: str) -> str:
    """Canonicalize model-written component source.

    Unquotes and unescapes the text, strips fences, renames the component to
    ``App`` with a single ``export default App;`` and runs the JSX sanitizer
    and best-effort syntax repairs.
    """
    code = _unquote_json_string(code or "")
    code = _unescape_literals(code)
    code = _ANY_FENCE_RE.sub("", code)
    code = _canonicalize_component(code)
    code = _ensure_default_export(code)
    code = sanitize_jsx_expressions(code)
    return repair_js_syntax(code)


# ---------------------------------------------------------------------------
# Image sources
# ---------------------------------------------------------------------------

_IMG_SRC_RE = re.compile(r"<img([^>]*)\ssrc=([\"'])([^\"']*)\2([^>]*)>", re.IGNORECASE)
_ALT_RE = re.compile(r"\balt=([\"'])([^\"']*)\1", re.IGNORECASE)


def _is_allowed_image(src: str) -> bool:
    src = src.strip()
    # "picsum.photos/200" carries no scheme, so urlsplit would see only a path
    if "://" not in src and not src.startswith("/"):
        src = "//" + src
    try:
        host = (urlsplit(src).hostname or "").lower()
    except ValueError:
        return False
    return any(host == h or host.endswith("." + h) for h in ALLOWED_IMAGE_HOSTS)


def placeholder_image_url(alt: Optional[str]) -> str:
    text = quote(alt[:30], safe="!*'()") if alt else "Preview"
    return f"https://placehold.co/400x300?text={text}"


def sanitize_image_sources(code: str) -> str:
    def repl(m: re.Match[str]) -> str:
        if _is_allowed_image(m.group(3)):
            return m.group(0)
        alt = _ALT_RE.search(m.group(0))
        url = placeholder_image_url(alt.group(2) if alt else None)
        return f'<img{m.group(1)} src="{url}"{m.group(4)}>'

    return _IMG_SRC_RE.sub(repl, code or "")


def finalize_component_source(code: str) -> str:
    return sanitize_image_sources(normalize_component_source(code))
