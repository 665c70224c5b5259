from __future__ import annotations

import hmac

from fastapi import Depends, Header

from api.deps import get_config
from collector.core.config import Config
from collector.core.exceptions import AuthError, MissingTokenError


def require_operator_token(
    authorization: str | None = Header(default=None, alias="Authorization"),
    config: Config = Depends(get_config),
) -> None:
    """Gate operator routes (alarms) on ``api.auth_token``.

    Event submission is not gated here; clients authenticate by signature.
    """

    expected = config.api.auth_token
    if not expected:
        return
    if not authorization:
        raise MissingTokenError()

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not hmac.compare_digest(token.strip().encode(), expected.encode()):
        raise AuthError()


OperatorAuth = Depends(require_operator_token)
