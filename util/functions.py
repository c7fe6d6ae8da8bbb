# util/functions.py
def clip_words(text: str, max_words: int = 100) -> str:
    """
    - Trim 'text' to at most `max_words` tokens separated by whitespace.
    - Adds an ellipsis when trimming occurs.
    """
    words = text.split()
    if len(words) <= max_words:
        return text
    return " ".join(words[:max_words]) + " …"


def strip_code_fences(raw: str) -> str:
    """Drop ```json fences models sometimes wrap around JSON replies."""
    out = (raw or "").strip()
    if out.startswith("```"):
        out = out.strip("`").strip()
        if out.lower().startswith("json"):
            out = out[4:].strip()
    return out


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def confidence_badge(score: float) -> str:
    """Label for a 0-1 confidence score."""
    if score >= 0.8:
        return "High"
    if score >= 0.6:
        return "Medium"
    if score >= 0.4:
        return "Low"
    return "Very Low"
