import secrets

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.config.settings import settings

bearer_scheme = HTTPBearer(auto_error=False)


def get_admin_api_key() -> str:
    return settings.admin_api_key


async def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    admin_api_key: str = Depends(get_admin_api_key),
) -> None:
    """Admin routes stay closed while no API key is configured."""
    if not admin_api_key or credentials is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    if not secrets.compare_digest(credentials.credentials.encode(), admin_api_key.encode()):
        raise HTTPException(status_code=401, detail="Unauthorized")
