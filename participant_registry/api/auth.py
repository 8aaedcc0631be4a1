from fastapi import Header, HTTPException
from participant_registry.settings import settings


def require_api_key(x_api_key: str = Header(default="", alias="x-api-key")):
    """
    API key is optional.
    - If API_KEY env is empty: allow all requests.
    - If API_KEY env is set: require matching x-api-key header.
    """
    if not settings.API_KEY:
        return
    if x_api_key != settings.API_KEY:
        raise HTTPException(status_code=401, detail="Invalid API key")


def require_caller(x_caller_id: str = Header(default="", alias="x-caller-id")) -> str:
    """
    Caller identity as established by the upstream authenticating gateway.
    The registry trusts it as-is; it never authenticates identities itself.
    """
    caller = (x_caller_id or "").strip()
    if not caller:
        raise HTTPException(status_code=401, detail="Missing x-caller-id")
    return caller
