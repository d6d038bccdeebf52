import re

_FENCE = re.compile(r"```(?:json|JSON)?")


def clip_chars(text: str, max_chars: int) -> tuple[str, bool]:
    """
    - Keep the head of `text`, at most `max_chars` characters.
    - Returns (text, truncated).
    """
    if max_chars < 0:
        max_chars = 0
    if len(text) <= max_chars:
        return text, False
    return text[:max_chars], True


def strip_code_fences(raw: str) -> str:
    """
    Remove markdown fences and any prose around the outermost JSON object.
    Returns the trimmed input unchanged when no object braces are present.
    """
    cleaned = _FENCE.sub("", raw or "").strip()
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end <= start:
        return cleaned
    return cleaned[start : end + 1]


def format_bytes(n: int) -> str:
    mb = n / (1024 * 1024)
    if mb >= 1 and float(mb).is_integer():
        return f"{int(mb)}MB"
    if mb >= 1:
        return f"{mb:.1f}MB"
    kb = n / 1024
    return f"{int(kb)}KB" if float(kb).is_integer() else f"{kb:.1f}KB"
