def required_text(v):
    if v is None:
        raise ValueError("field required")
    v = str(v).strip()
    if not v:
        raise ValueError("must not be blank")
    return v


def optional_text(v):
    """Trimmed text, with blank strings stored as None."""
    if v is None:
        return None
    v = str(v).strip()
    return v or None
