"""One-time access tokens.

Wire format, 70 characters:

    payload (16 hex) || signature (44 base64) || exp (10 digits, unix seconds)

The signature is the request signature over ``{payload, exp}`` with the
provider's sign_iv/sign_key. A token is accepted once: the first
successful verification writes the payload to the ``tokens`` ledger and
every later verification of the same payload fails. Expired rows are
removed by the ``delete_expired_tokens`` Celery task, never by the request
path.
"""

import re
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from licensor.db.models import Token
from licensor.db.session import transaction
from licensor.errors import InternalError
from licensor.logging import get_logger
from licensor.services import signature
from licensor.services.redact import fingerprint, safe_kv

if TYPE_CHECKING:
    from licensor.context import ServiceContext

logger = get_logger(__name__)

TOKEN_LENGTH = 70
PAYLOAD_LENGTH = 16
SIGNATURE_LENGTH = 44
EXP_LENGTH = 10

_EXP_PATTERN = re.compile(r"[0-9]{10}")


def build_token(payload: str, exp: int, iv: bytes | str, key: bytes | str) -> str:
    """Assemble a token string the way providers mint them.

    Args:
        payload: 16 hex chars (8 random bytes).
        exp: Expiry as unix seconds.
        iv: Provider sign_iv.
        key: Provider sign_key.
    """
    exp_str = str(int(exp)).zfill(EXP_LENGTH)
    sig = signature.sign({"payload": payload, "exp": exp_str}, iv, key)
    return f"{payload}{sig}{exp_str}"


class TokenAuthority:
    """Validates single-use, time-bounded tokens against the replay ledger."""

    def __init__(self, context: "ServiceContext"):
        self._ctx = context

    def verify(self, token: Any, iv: bytes | str, key: bytes | str) -> bool:
        """Check a token and consume it.

        Returns True only for a well-formed, unexpired, correctly signed
        token never seen before. Ledger failures are logged and reported as
        False.
        """
        if not token or not isinstance(token, str) or len(token) != TOKEN_LENGTH:
            return False

        exp_raw = token[PAYLOAD_LENGTH + SIGNATURE_LENGTH :]
        if not _EXP_PATTERN.fullmatch(exp_raw):
            return False
        exp = int(exp_raw)
        token_fp = fingerprint(token)
        if exp <= self._ctx.clock():
            logger.debug("token_expired", **safe_kv(token_fp=token_fp, exp=exp))
            return False

        payload = token[:PAYLOAD_LENGTH]
        sig = token[PAYLOAD_LENGTH : PAYLOAD_LENGTH + SIGNATURE_LENGTH]
        if not signature.verify({"sign": sig, "payload": payload, "exp": exp_raw}, iv, key):
            logger.debug("token_signature_invalid", **safe_kv(token_fp=token_fp))
            return False

        try:
            with self._ctx.registry_sessions() as db, transaction(db):
                if db.get(Token, payload) is not None:
                    logger.debug("token_replayed", **safe_kv(token_fp=token_fp))
                    return False
                db.add(Token(payload=payload, exp=exp))
        except IntegrityError:
            # Concurrent consumer inserted the same payload first.
            logger.debug("token_replayed", **safe_kv(token_fp=token_fp))
            return False
        except SQLAlchemyError as exc:
            logger.error("token_ledger_failed", **safe_kv(token_fp=token_fp, error=str(exc)))
            return False

        logger.debug("token_consumed", **safe_kv(token_fp=token_fp, exp=exp))
        return True

    def delete_expired(self) -> int:
        """Delete every ledger row whose ``exp`` is in the past.

        Returns:
            Number of rows deleted.

        Raises:
            InternalError: Store failure.
        """
        now = int(self._ctx.clock())
        try:
            with self._ctx.registry_sessions() as db, transaction(db):
                result = db.execute(delete(Token).where(Token.exp < now))
                deleted = result.rowcount
        except SQLAlchemyError as exc:
            logger.error("token_sweep_failed", error=str(exc))
            raise InternalError() from exc

        logger.info("tokens_deleted", count=deleted)
        return deleted
