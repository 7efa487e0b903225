"""API token checks for mutating control routes."""

import hmac


def supplied_api_token(request):
    """Return the token sent by the caller via header or form/json field."""
    token = request.headers.get("X-API-Token") or request.form.get("token") or ""
    if not token and request.is_json:
        payload = request.get_json(silent=True) or {}
        token = str(payload.get("token") or "")
    return token.strip()


def is_api_token_valid(request, expected):
    """Compare the supplied token against the configured one in constant time."""
    if not expected:
        return False
    supplied = supplied_api_token(request)
    if not supplied:
        return False
    return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))
