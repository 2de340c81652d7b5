from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.database import AsyncSessionLocal
from app.services.auth_service import decode_access_token
from app.services.economy import EconomyService, LedgerEconomyService

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_player_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    player_id = decode_access_token(credentials.credentials)
    if player_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return player_id


async def get_economy() -> EconomyService:
    return LedgerEconomyService(AsyncSessionLocal)
