from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Annotated

import jwt
from fastapi import Depends

from passbook.auth.auth import JWTBearer, JWTCredentials
from passbook.auth.constants import (
    ACCOUNT_KIND_CLAIM,
    CONTACT_CLAIM,
    FORBIDDEN_EXCEPTION,
    JWT_ALGORITHM,
    JWT_LEEWAY,
    UNAUTHORIZED_EXCEPTION,
)
from passbook.auth.context import AuthenticationContext, auth_context
from passbook.conf import Settings
from passbook.dependencies.core import AppSettings
from passbook.enums import AccountKind
from passbook.identity import OwnerIdentity


async def get_authentication_context(
    settings: AppSettings,
    credentials: Annotated[JWTCredentials | None, Depends(JWTBearer())],
):
    """
    Builds the authentication context from a JWT bearer token signed with the
    shared secret. Yields nothing when no token was sent.
    """
    if credentials:
        try:
            context = build_authentication_context(settings, credentials)
        except (jwt.InvalidTokenError, ValueError) as e:
            raise UNAUTHORIZED_EXCEPTION from e

        reset_token = auth_context.set(context)

        try:
            yield context
            return
        finally:
            auth_context.reset(reset_token)
    yield


def build_authentication_context(
    settings: Settings, credentials: JWTCredentials
) -> AuthenticationContext:
    claims = jwt.decode(
        credentials.credentials,
        settings.auth_jwt_secret,
        options={"require": ["exp", "nbf", "iat", "sub"]},
        algorithms=[JWT_ALGORITHM],
        leeway=JWT_LEEWAY,
    )
    if claims["exp"] - claims["iat"] > settings.auth_jwt_max_lifespan_minutes * 60:
        raise jwt.InvalidTokenError("Token lifespan exceeds the allowed maximum")

    owner = OwnerIdentity(
        id=claims["sub"],
        kind=AccountKind(claims.get(ACCOUNT_KIND_CLAIM, AccountKind.USER.value)),
    )
    return AuthenticationContext(owner=owner, contact=claims.get(CONTACT_CLAIM))


async def authentication_required(
    settings: AppSettings,
    credentials: Annotated[JWTCredentials | None, Depends(JWTBearer())],
) -> AsyncGenerator[None]:
    async with asynccontextmanager(get_authentication_context)(
        settings, credentials
    ) as context:
        if not context:
            raise UNAUTHORIZED_EXCEPTION
        yield


def system_account_required(
    context: Annotated[AuthenticationContext | None, Depends(get_authentication_context)],
) -> None:
    if not context:
        raise UNAUTHORIZED_EXCEPTION

    if not context.owner.is_system:
        raise FORBIDDEN_EXCEPTION


def get_current_owner(
    context: Annotated[AuthenticationContext | None, Depends(get_authentication_context)],
) -> OwnerIdentity:
    if not context:
        raise UNAUTHORIZED_EXCEPTION
    return context.owner


CurrentAuthContext = Annotated[AuthenticationContext | None, Depends(get_authentication_context)]
CurrentOwner = Annotated[OwnerIdentity, Depends(get_current_owner)]
