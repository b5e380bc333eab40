"""Validation of AI-generated animation code."""

import re

MAX_CODE_LENGTH = 100_000

FENCE_RE = re.compile(r"```(?:[a-zA-Z]+)?\s*\n(.*?)```", re.DOTALL)

# (pattern, message) pairs for APIs generated code must never touch
FORBIDDEN_PATTERNS = [
    (re.compile(r"\brequire\s*\("), "require() is not allowed"),
    (re.compile(r"^\s*import\s", re.MULTILINE), "import statements are not allowed"),
    (re.compile(r"\bimport\s*\("), "dynamic import() is not allowed"),
    (re.compile(r"\beval\s*\("), "eval() is not allowed"),
    (re.compile(r"\bnew\s+Function\b"), "new Function is not allowed"),
    (re.compile(r"\bfetch\s*\("), "network access (fetch) is not allowed"),
    (re.compile(r"\bXMLHttpRequest\b"), "network access (XMLHttpRequest) is not allowed"),
    (re.compile(r"\bWebSocket\b"), "network access (WebSocket) is not allowed"),
    (re.compile(r"\bprocess\s*\."), "process access is not allowed"),
    (re.compile(r"\bwindow\s*\."), "window access is not allowed"),
    (re.compile(r"\bdocument\s*\."), "document access is not allowed"),
    (re.compile(r"\b(?:localStorage|sessionStorage)\b"), "browser storage is not allowed"),
    (re.compile(r"\bchild_process\b"), "child_process is not allowed"),
]

BRACKET_PAIRS = {")": "(", "]": "[", "}": "{"}


def extract_code(raw: str) -> str:
    """Strip markdown fences and surrounding prose from a model response."""
    text = (raw or "").strip()
    match = FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return re.sub(r"```(?:[a-zA-Z]+)?|```", "", text).strip()


def validate_security(code: str) -> list[str]:
    """Return one message per forbidden API used."""
    return [message for pattern, message in FORBIDDEN_PATTERNS if pattern.search(code)]


def _check_brackets(code: str) -> str | None:
    """Check bracket balance, ignoring comments and string literal contents."""
    code = re.sub(r"/\*.*?\*/", "", code, flags=re.DOTALL)
    code = re.sub(r"(?m)^\s*//.*$", "", code)

    stack: list[str] = []
    quote: str | None = None
    escaped = False

    for char in code:
        if quote:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == quote:
                quote = None
            continue
        if char in "\"'`":
            quote = char
        elif char in "([{":
            stack.append(char)
        elif char in BRACKET_PAIRS:
            if not stack or stack.pop() != BRACKET_PAIRS[char]:
                return f"Unbalanced '{char}'"

    if stack:
        return f"Unclosed '{stack[-1]}'"
    return None


def validate_structure(code: str) -> list[str]:
    """Check that code is a non-empty function body returning a component."""
    if not code.strip():
        return ["Code is empty"]

    errors = []
    if len(code) > MAX_CODE_LENGTH:
        errors.append(f"Code exceeds {MAX_CODE_LENGTH} characters")
    if not re.search(r"\breturn\s+[A-Za-z_$]", code):
        errors.append("Code must return a React component")
    if "Sequence" not in code:
        errors.append("Code must lay scenes out with Sequence")

    bracket_error = _check_brackets(code)
    if bracket_error:
        errors.append(bracket_error)
    return errors


def validate_all(code: str) -> list[str]:
    """All validation errors; empty when the code is acceptable."""
    return validate_structure(code) + validate_security(code)
