"""Authentication dependencies for FastAPI"""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Dict
from shared.auth.jwt_handler import decode_token
from app.core.config import get_settings


security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> Dict:
    '''Current user from the bearer token'''
    payload = decode_token(credentials.credentials)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail='Invalid or expired token',
            headers={'WWW-Authenticate': 'Bearer'},
        )

    user_id = payload.get('sub') or payload.get('user_id')
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail='Invalid token: missing user_id',
        )

    return {
        'user_id': user_id,
        'email': payload.get('email'),
        'role': payload.get('role') or payload.get('app_metadata', {}).get('role', 'caang'),
    }


async def get_current_admin(
    current_user: Dict = Depends(get_current_user)
) -> Dict:
    '''Require the admin role'''
    if current_user.get('role') != 'admin':
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Admin permissions required'
        )
    return current_user


async def get_current_scanner(
    current_user: Dict = Depends(get_current_user)
) -> Dict:
    '''Require one of the roles allowed to scan attendance codes'''
    if current_user.get('role') not in get_settings().scanner_roles:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Scanner permissions required'
        )
    return current_user
