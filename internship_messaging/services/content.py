from internship_messaging.errors import ContentValidationError


def normalize_content(content: str, max_length: int) -> str:
    """Strip surrounding whitespace and enforce the 1..max_length bound."""
    text = (content or "").strip()
    if not text:
        raise ContentValidationError("Message content must not be empty")
    if len(text) > max_length:
        raise ContentValidationError(
            f"Message content must be at most {max_length} characters"
        )
    return text
