def mask_token(token: str) -> str:
    """Shorten a bearer token or provider credential for logging."""
    if len(token) > 30:
        return f"{token[:20]}...{token[-10:]}"
    if len(token) > 10:
        return token[:10] + "..."
    return token
