"""collector.pipeline.signature

Binds the request body to the resolved identity's public key.

On success the supporter's ``version`` follows the header-declared client version.
That is tracking, not validation: a version change is logged, never refused.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from collector.core.alarms import AlarmReporter
from collector.core.exceptions import SignatureError, ValidationError
from collector.core.models import RequestContext, Supporter
from collector.pipeline.result import Failure
from collector.security.signing import Encoding, verify_signature

logger = logging.getLogger(__name__)

Verifier = Callable[[bytes, str, str], bool]


@dataclass
class SignatureVerifier:
    alarms: AlarmReporter
    encoding: Encoding = "hex"
    verify: Verifier | None = None

    def _verify(self, body: bytes, signature: str, public_key: str) -> bool:
        if self.verify is not None:
            return self.verify(body, signature, public_key)
        return verify_signature(body, signature, public_key, encoding=self.encoding)

    async def check(self, ctx: RequestContext, supporter: Supporter, body: bytes) -> Supporter | Failure:
        """Return the supporter with its version updated, or a :class:`Failure`.

        Raises:
            AlarmError: the failure alarm could not be recorded.
        """

        header_info = _header_info(ctx)

        if not ctx.signature or not supporter.public_key:
            logger.warning(
                "signature_validation_fail",
                extra={"user_id": supporter.user_id, "has_signature": bool(ctx.signature)},
            )
            await self.alarms.report(what="Validation fail", info=header_info)
            return Failure(error=ValidationError(), stage="signature")

        if not self._verify(body, ctx.signature, supporter.public_key):
            logger.warning("signature_verification_failure", extra={"user_id": supporter.user_id})
            await self.alarms.report(what="Signature verification failure", info=header_info)
            return Failure(error=SignatureError(), stage="signature")

        if supporter.version != ctx.version:
            logger.info(
                "supporter_version_upgrade",
                extra={"user_id": supporter.user_id, "from": supporter.version, "to": ctx.version},
            )
        return supporter.model_copy(update={"version": ctx.version})


def _header_info(ctx: RequestContext) -> dict[str, object]:
    return {
        "length": ctx.length,
        "build": ctx.build,
        "version": ctx.version,
        "supporterId": ctx.supporter_id,
        "publicKey": ctx.public_key,
        "signature": ctx.signature,
    }
