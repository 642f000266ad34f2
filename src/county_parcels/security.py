import re


_ANGLE_BRACKETS_RE = re.compile(r"[<>]")
# C0 controls except tab/newline/carriage return, plus DEL.
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_WHITESPACE_RUN_RE = re.compile(r"\s+")


def sanitize_text(value):
    """Strip angle brackets and control characters from untrusted text.

    Non-string values pass through unchanged. This never replaces bound
    parameters; it only keeps markup and terminal garbage out of LIKE patterns
    and logs.
    """
    if not isinstance(value, str):
        return value
    text = _ANGLE_BRACKETS_RE.sub("", value)
    text = _CONTROL_CHARS_RE.sub("", text)
    return text.strip()


def like_pattern(value: str) -> str:
    return f"%{sanitize_text(value)}%"


def collapse_whitespace(value):
    if value is None:
        return None
    return _WHITESPACE_RUN_RE.sub(" ", str(value)).strip()
