"""
SQLAlchemy Challenge Store.

Relational backend for challenge records. The store TTL is kept in a
``ttl_expires_at`` column: rows past it are invisible to every read and
are physically removed by ``delete_expired``.

Requirements:
- sqlalchemy[asyncio]
- asyncpg (or another async driver)

Usage:
    from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

    engine = create_async_engine("postgresql+asyncpg://...")
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    store = SQLAlchemyChallengeStore(session_factory)
"""

import logging
from datetime import datetime, timedelta
from typing import Optional, Callable
from contextlib import asynccontextmanager

from sqlalchemy import (
    Column,
    String,
    DateTime,
    Integer,
    Boolean,
    select,
    update,
    delete,
    case,
)
from sqlalchemy.exc import OperationalError, InterfaceError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import declarative_base

from custody_challenge.domain.aggregates import Challenge
from custody_challenge.domain.errors import StorageUnavailableError
from custody_challenge.infrastructure.adapters.challenge_store import (
    Clock,
    utc_now,
    validate_ttl,
)
from custody_challenge.infrastructure.ports.challenge_store import ChallengeStore


logger = logging.getLogger("custody_challenge.infrastructure.adapters.sqlalchemy")

Base = declarative_base()

# Type for async session factory
AsyncSessionFactory = Callable[[], AsyncSession]


# ═══════════════════════════════════════════════════════════════
# SQLALCHEMY MODELS
# ═══════════════════════════════════════════════════════════════


class GuardianChallengeModel(Base):
    """SQLAlchemy model for guardian challenges."""

    __tablename__ = "guardian_challenges"

    challenge_id = Column(String(128), primary_key=True, nullable=False)
    transaction_id = Column(String(128), nullable=False, index=True)
    guardian_id = Column(String(128), nullable=False, index=True)
    nonce = Column(String(256), nullable=False)  # hex

    # Timing
    issued_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    ttl_expires_at = Column(DateTime(timezone=True), nullable=False, index=True)

    # State
    attempt_count = Column(Integer, nullable=False, default=0)
    max_attempts = Column(Integer, nullable=False, default=Challenge.MAX_ATTEMPTS)
    consumed = Column(Boolean, nullable=False, default=False)
    consumed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = {"comment": "Single-use guardian challenges for transaction approval."}


# ═══════════════════════════════════════════════════════════════
# SQLALCHEMY CHALLENGE STORE
# ═══════════════════════════════════════════════════════════════


class SQLAlchemyChallengeStore(ChallengeStore):
    """
    SQLAlchemy implementation of ChallengeStore.

    Attempt counting is a single ``UPDATE ... RETURNING`` and consumption
    a conditional ``UPDATE ... WHERE consumed IS false``, so both are
    atomic in the database.
    """

    def __init__(
        self,
        session_factory: AsyncSessionFactory,
        model_class: type = GuardianChallengeModel,
        clock: Optional[Clock] = None,
    ):
        self.session_factory = session_factory
        self.model_class = model_class
        self._clock = clock or utc_now

    @asynccontextmanager
    async def _session_scope(self):
        """Provide a transactional scope for database operations."""
        try:
            async with self.session_factory() as session:
                try:
                    yield session
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise
        except (OperationalError, InterfaceError) as e:
            logger.error(f"Challenge database unavailable: {e}")
            raise StorageUnavailableError(details={"backend": "sqlalchemy"}) from e

    def _from_model(self, model) -> Challenge:
        return Challenge.from_dict(
            {
                "challenge_id": model.challenge_id,
                "transaction_id": model.transaction_id,
                "guardian_id": model.guardian_id,
                "nonce": model.nonce,
                "issued_at": model.issued_at,
                "expires_at": model.expires_at,
                "attempt_count": model.attempt_count,
                "max_attempts": model.max_attempts,
                "consumed": model.consumed,
                "consumed_at": model.consumed_at,
            }
        )

    async def put(self, challenge: Challenge, ttl_seconds: int) -> None:
        validate_ttl(ttl_seconds)
        ttl_expires_at = self._clock() + timedelta(seconds=ttl_seconds)

        async with self._session_scope() as db:
            db.add(
                self.model_class(
                    challenge_id=challenge.challenge_id,
                    transaction_id=challenge.transaction_id,
                    guardian_id=challenge.guardian_id,
                    nonce=challenge.nonce.hex(),
                    issued_at=challenge.issued_at,
                    expires_at=challenge.expires_at,
                    ttl_expires_at=ttl_expires_at,
                    attempt_count=challenge.attempt_count,
                    max_attempts=challenge.max_attempts,
                    consumed=challenge.consumed,
                    consumed_at=challenge.consumed_at,
                )
            )

        logger.debug(f"Stored challenge: {challenge.challenge_id}")

    async def get(self, challenge_id: str) -> Optional[Challenge]:
        now = self._clock()

        async with self._session_scope() as db:
            stmt = select(self.model_class).where(
                self.model_class.challenge_id == challenge_id,
                self.model_class.ttl_expires_at > now,
            )
            result = await db.execute(stmt)
            model = result.scalar_one_or_none()

            if model is None:
                return None
            return self._from_model(model)

    async def delete(self, challenge_id: str) -> None:
        async with self._session_scope() as db:
            await db.execute(
                delete(self.model_class).where(
                    self.model_class.challenge_id == challenge_id
                )
            )
        logger.debug(f"Deleted challenge: {challenge_id}")

    async def increment_attempt(self, challenge_id: str) -> Optional[int]:
        now = self._clock()
        model = self.model_class

        async with self._session_scope() as db:
            stmt = (
                update(model)
                .where(model.challenge_id == challenge_id, model.ttl_expires_at > now)
                .values(attempt_count=model.attempt_count + 1)
                .returning(model.attempt_count)
                .execution_options(synchronize_session=False)
            )
            result = await db.execute(stmt)
            count = result.scalar_one_or_none()

        if count is not None:
            logger.debug(f"Incremented attempts: {challenge_id} -> {count}")
        return count

    async def mark_consumed(
        self,
        challenge_id: str,
        consumed_at: datetime,
        retain_seconds: int,
    ) -> bool:
        now = self._clock()
        retain_until = now + timedelta(seconds=retain_seconds)
        model = self.model_class

        async with self._session_scope() as db:
            stmt = (
                update(model)
                .where(
                    model.challenge_id == challenge_id,
                    model.consumed.is_(False),
                    model.ttl_expires_at > now,
                )
                .values(
                    consumed=True,
                    consumed_at=consumed_at,
                    ttl_expires_at=case(
                        (model.ttl_expires_at > retain_until, retain_until),
                        else_=model.ttl_expires_at,
                    ),
                )
                .execution_options(synchronize_session=False)
            )
            result = await db.execute(stmt)
            flipped = result.rowcount == 1

        if flipped:
            logger.debug(f"Marked challenge consumed: {challenge_id}")
        return flipped

    async def delete_expired(self) -> int:
        """Delete rows past their TTL."""
        now = self._clock()

        async with self._session_scope() as db:
            stmt = delete(self.model_class).where(self.model_class.ttl_expires_at <= now)
            result = await db.execute(stmt)
            return result.rowcount


__all__ = [
    "Base",
    "GuardianChallengeModel",
    "SQLAlchemyChallengeStore",
]
