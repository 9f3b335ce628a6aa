from fastapi import Header, HTTPException
from contestbot.settings import settings


def require_admin(x_admin_key: str = Header(default="", alias="x-admin-key")):
    """
    Admin key is OPTIONAL.
    - If ADMIN_API_KEY is empty: allow all requests.
    - If set: require a matching x-admin-key header.
    """
    if not settings.ADMIN_API_KEY:
        return
    if x_admin_key != settings.ADMIN_API_KEY:
        raise HTTPException(status_code=403, detail="Invalid admin key")
