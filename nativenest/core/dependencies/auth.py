from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from typing import Annotated
from jose import JWTError, jwt
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from nativenest.core.database import get_db
from nativenest.core.config import SECRET_KEY, ALGORITHM, JWT_ISSUER, JWT_AUDIENCE
from nativenest.core.ctx import bind_actor
from nativenest.domain.users.models import User
from nativenest.domain.users.crud import get_active_user_by_id
from nativenest.domain.auth.schemas import TokenPayload
from nativenest.domain.exceptions import Unauthorized, Forbidden


# tokens are issued by the identity service, tokenUrl only feeds the OpenAPI docs
oauth2_bearer = OAuth2PasswordBearer(tokenUrl="/auth/login")


async def get_token_payload(token: Annotated[str, Depends(oauth2_bearer)]) -> TokenPayload:
    try:
        raw_payload = jwt.decode(
            token,
            SECRET_KEY,
            algorithms=[ALGORITHM],
            issuer=JWT_ISSUER,
            audience=JWT_AUDIENCE,
            options={"verify_aud": True, "leeway": 5}
        )
    except JWTError:
        raise Unauthorized("Invalid authentication credentials", ctx={"reason": "invalid_token"})

    if raw_payload.get("typ") != "access":
        raise Unauthorized("Invalid token type", ctx={"reason": "invalid_type"})
    try:
        return TokenPayload.model_validate(raw_payload)
    except ValidationError:
        raise Unauthorized("Invalid authentication credentials", ctx={"reason": "invalid_claims"})


def get_current_user_with_roles(*allowed_roles: str):
    allowed = set(allowed_roles)

    async def _inner(payload: Annotated[TokenPayload, Depends(get_token_payload)],
                     db: Annotated[AsyncSession, Depends(get_db)]) -> User:
        try:
            user_id = int(payload.sub)
        except ValueError:
            raise Unauthorized("Invalid authentication credentials", ctx={"reason": "invalid_subject"})

        user = await get_active_user_by_id(user_id, db)
        if not user:
            raise Unauthorized("User not found", ctx={"user_id": payload.sub})

        roles = {r.name for r in user.roles}
        bind_actor(user.id, roles)

        if allowed and roles.isdisjoint(allowed):
            raise Forbidden("Permission denied", ctx={"required": sorted(allowed), "user_roles": sorted(roles)})
        return user
    return _inner
